from __future__ import annotations

"""
Two-phase simplex over textual linear programs.
- Objective and constraints are plain strings: "3x1+5x2", "3x1+2x2<=18".
- Constraints: <=, >=, =
- Records every tableau (initial + one per pivot) as a structured trace.
- Failures are raised as typed SimplexError subclasses carrying the trace so far.

Phase transition methods:
- "two_phase": phase-1 row priced out against the artificial basis, phase 2
  continues from the phase-1 basis, values read from basic rows.
- "legacy": phase 2 rebuilt from scratch and values read from the objective
  row, matching the output of the earlier web solver.

CLI takes the objective and constraints as arguments or from a JSON file.
"""

import argparse
import json
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from twophase.errors import InfeasibleError, SimplexError
from twophase.parser import Direction, Problem, normalize, parse_problem
from twophase.tableau import (
    EPS,
    MAX_ITERATIONS,
    Phase,
    basic_columns,
    build_tableau,
    column_layout,
    iterate,
    objective_row,
    pivot,
    price_out,
)
from twophase.trace import (
    FinalReport,
    PhaseComplete,
    ProblemEcho,
    TableauSnapshot,
    TraceLog,
    fmt_num,
    render_trace,
)

FEASIBILITY_TOL = 1e-7
METHODS = ("two_phase", "legacy")


@dataclass
class SimplexResult:
    optimal_value: float
    values: Dict[str, float]  # decision variables with a positive terminal value
    variables: List[str]
    iterations: Tuple[int, int]  # pivots in phase 1, phase 2
    method: str
    tableau: np.ndarray
    trace: List[object] = field(default_factory=list)

    @property
    def report(self) -> str:
        return render_trace(self.trace)


def extract_solution(T: np.ndarray, variables: Sequence[str], direction: Direction,
                     method: str = "two_phase") -> Tuple[float, Dict[str, float]]:
    obj = T[-1]
    n = len(variables)
    if method == "legacy":
        # objective row read directly, as legacy output reports it
        values = {variables[j]: float(obj[j]) for j in range(n) if obj[j] > 0}
        return float(obj[-1]), values

    value = float(obj[-1])
    if direction is Direction.MINIMIZE:
        value = -value
    row_of = {j: i for i, j in basic_columns(T).items()}
    values = {}
    for j in range(n):
        if j in row_of and T[row_of[j], -1] > EPS:
            values[variables[j]] = float(T[row_of[j], -1])
    return value + 0.0, values


def _phase_two_start(T: np.ndarray, problem: Problem) -> np.ndarray:
    """Carry the phase-1 basis into phase 2 with the real objective."""
    layout = column_layout(len(problem.variables), problem.constraints)
    art = layout.artificial_cols

    # artificials left in the basis at zero level are swapped for any real column
    for i, j in basic_columns(T).items():
        if art.start <= j < art.stop:
            candidates = np.flatnonzero(np.abs(T[i, :art.start]) > EPS)
            if len(candidates):
                T = pivot(T, i, int(candidates[0]))

    T = T.copy()
    T[:, art] = 0.0
    T[-1] = objective_row(layout, problem.variables, problem.objective, Phase.PHASE_TWO)
    return price_out(T, basic_columns(T))


def _run_phases(problem: Problem, trace: List[object], method: str,
                max_iterations: int) -> Tuple[np.ndarray, Tuple[int, int]]:
    canonical = method == "two_phase"
    tol = EPS if canonical else 0.0

    T = build_tableau(problem.variables, problem.constraints, problem.objective, Phase.PHASE_ONE)
    if canonical:
        T = price_out(T, basic_columns(T))
    trace.append(TableauSnapshot(1, 0, T))
    T, iters1 = iterate(T, Phase.PHASE_ONE, trace, max_iterations, tol)

    if canonical:
        artificial_sum = -float(T[-1, -1])
        if artificial_sum > FEASIBILITY_TOL:
            raise InfeasibleError(artificial_sum)
    trace.append(PhaseComplete(1))

    if canonical:
        T = _phase_two_start(T, problem)
    else:
        T = build_tableau(problem.variables, problem.constraints, problem.objective, Phase.PHASE_TWO)
    trace.append(TableauSnapshot(2, 0, T))
    T, iters2 = iterate(T, Phase.PHASE_TWO, trace, max_iterations, tol)
    return T, (iters1, iters2)


def solve(objective: str, constraints: Sequence[str], direction=Direction.MAXIMIZE,
          method: str = "two_phase", max_iterations: int = MAX_ITERATIONS,
          verbose=False) -> SimplexResult:
    if method not in METHODS:
        raise ValueError("method must be one of two_phase, legacy")
    direction = Direction(direction)
    constraints = list(constraints)
    trace = TraceLog(verbose)

    try:
        trace.append(ProblemEcho(objective, tuple(constraints), direction))
        problem = parse_problem(objective, constraints, direction)
        T, iterations = _run_phases(problem, trace, method, max_iterations)
        value, values = extract_solution(T, problem.variables, direction, method)
        trace.append(FinalReport(value, values))
    except SimplexError as e:
        e.trace = list(trace)
        raise

    return SimplexResult(
        optimal_value=value,
        values=values,
        variables=list(problem.variables),
        iterations=iterations,
        method=method,
        tableau=T,
        trace=list(trace),
    )


# CLI

def main(argv=None):
    p = argparse.ArgumentParser(description="Two-phase tableau simplex for textual LPs (shows iterations)")
    p.add_argument("objective", nargs="?", help='Objective function, e.g. "3x1+5x2"')
    p.add_argument("constraints", nargs="*", help='Constraints, e.g. "x1<=4" "2x2<=12"')
    p.add_argument("--json", help="Path to a JSON file with objective, constraints and maximize")
    p.add_argument("--sense", choices=["max", "min"], default=None, help="Objective sense (default: use JSON or max)")
    p.add_argument("--method", choices=list(METHODS), default="two_phase")
    p.add_argument("--max-iterations", type=int, default=MAX_ITERATIONS, help="Pivot cap per phase")
    p.add_argument("--no-verbose", action="store_true", help="Hide the iteration trace")
    args = p.parse_args(argv)

    objective, constraints, maximize = args.objective, args.constraints, True
    if args.json:
        with open(args.json, "r") as f:
            cfg = json.load(f)
        objective = cfg.get("objective", objective)
        constraints = cfg.get("constraints", constraints)
        maximize = bool(cfg.get("maximize", True))

    # CLI value wins over JSON; JSON falls back to max
    sense = args.sense or ("max" if maximize else "min")
    objective = normalize(objective or "")
    constraints = [c for c in map(normalize, constraints) if c]
    if not objective or not constraints:
        p.error("an objective function and at least one constraint are required")

    try:
        res = solve(objective, constraints, direction=sense, method=args.method,
                    max_iterations=args.max_iterations)
    except SimplexError as e:
        if not args.no_verbose:
            print(render_trace(e.trace), end="")
        print(f"Error ({e.kind}): {e.message}", file=sys.stderr)
        return 1

    if not args.no_verbose:
        print(render_trace(res.trace), end="")
    print("\n=== Result ===")
    print("Optimal value:", fmt_num(res.optimal_value))
    for name, value in res.values.items():
        print(f"{name} = {fmt_num(value)}")
    print("Iterations:", f"phase 1 = {res.iterations[0]}, phase 2 = {res.iterations[1]}")
    print("Method:", res.method)
    return 0


if __name__ == "__main__":
    sys.exit(main())
