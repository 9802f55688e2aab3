"""
Tableau construction and simplex pivoting.

Layout of a tableau built from M constraints over V variables:

    rows    0..M-1  constraints, row M  objective
    columns [ decision (V) | slack | surplus | artificial | RHS ]

The objective row follows the minimization convention: the tableau is
optimal once no entry left of the RHS is negative. Pivots never modify
their input; every step returns a new array of the same shape.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from twophase.errors import (
    IterationLimitError,
    NoImprovingColumnError,
    NoValidPivotRowError,
    TableauShapeError,
)
from twophase.parser import Constraint, Direction, Objective
from twophase.trace import TableauSnapshot

EPS = 1e-9
MAX_ITERATIONS = 100


class Phase(IntEnum):
    PHASE_ONE = 1
    PHASE_TWO = 2


@dataclass(frozen=True)
class ColumnLayout:
    variables: int
    slack: int
    surplus: int
    artificial: int

    @property
    def width(self) -> int:
        return self.variables + self.slack + self.surplus + self.artificial + 1

    @property
    def slack_cols(self) -> slice:
        start = self.variables
        return slice(start, start + self.slack)

    @property
    def surplus_cols(self) -> slice:
        start = self.variables + self.slack
        return slice(start, start + self.surplus)

    @property
    def artificial_cols(self) -> slice:
        start = self.variables + self.slack + self.surplus
        return slice(start, start + self.artificial)


def column_layout(n_variables: int, constraints: Sequence[Constraint]) -> ColumnLayout:
    ops = [c.operator for c in constraints]
    return ColumnLayout(
        variables=n_variables,
        slack=ops.count("<="),
        surplus=ops.count(">="),
        artificial=ops.count(">=") + ops.count("="),
    )


def objective_row(layout: ColumnLayout, variables: Sequence[str],
                  objective: Optional[Objective], phase: Phase) -> np.ndarray:
    row = np.zeros(layout.width)
    if phase == Phase.PHASE_ONE:
        # minimize the total artificial mass
        row[layout.artificial_cols] = 1.0
        return row
    if objective is None:
        raise ValueError("phase 2 objective row needs an objective")
    sign = -1.0 if objective.direction is Direction.MAXIMIZE else 1.0
    for name, coeff in objective.coefficients().items():
        row[variables.index(name)] = sign * coeff
    return row


def build_tableau(variables: Sequence[str], constraints: Sequence[Constraint],
                  objective: Optional[Objective], phase: Phase) -> np.ndarray:
    if not constraints:
        raise TableauShapeError("Cannot build a tableau without constraints.")
    variables = list(variables)
    layout = column_layout(len(variables), constraints)
    index = {name: j for j, name in enumerate(variables)}

    T = np.zeros((len(constraints) + 1, layout.width))
    slack_j = layout.slack_cols.start
    surplus_j = layout.surplus_cols.start
    art_j = layout.artificial_cols.start

    for i, constraint in enumerate(constraints):
        for name, coeff in constraint.coefficients().items():
            T[i, index[name]] = coeff
        if constraint.operator == "<=":
            T[i, slack_j] = 1.0
            slack_j += 1
        elif constraint.operator == ">=":
            T[i, surplus_j] = -1.0
            T[i, art_j] = 1.0
            surplus_j += 1
            art_j += 1
        elif constraint.operator == "=":
            T[i, art_j] = 1.0
            art_j += 1
        else:
            raise ValueError("operator must be one of <=, >=, =")
        T[i, -1] = constraint.rhs

    T[-1] = objective_row(layout, variables, objective, phase)
    return T


# --- Iterator ---

def is_optimal(T: np.ndarray, tol: float = 0.0) -> bool:
    return bool(np.all(T[-1, :-1] >= -tol))


def select_entering_column(T: np.ndarray, tol: float = 0.0) -> Optional[int]:
    # most negative reduced cost, first one wins on ties
    best_val = -tol
    best_j = None
    for j, rc in enumerate(T[-1, :-1]):
        if rc < best_val:
            best_val = rc
            best_j = j
    return best_j


def select_leaving_row(T: np.ndarray, col: int, tol: float = 0.0) -> Optional[int]:
    best_ratio = np.inf
    best_i = None
    for i in range(T.shape[0] - 1):
        aij = T[i, col]
        if aij > tol:
            ratio = T[i, -1] / aij
            if ratio < best_ratio:
                best_ratio = ratio
                best_i = i
    return best_i


def pivot(T: np.ndarray, row: int, col: int) -> np.ndarray:
    piv = T[row, col]
    if piv == 0:
        raise RuntimeError("Zero pivot encountered")
    normalized = T[row] / piv
    new = T - np.outer(T[:, col], normalized)
    new[row] = normalized
    return new


def basic_columns(T: np.ndarray, tol: float = EPS) -> Dict[int, int]:
    """Map constraint row -> column holding the unit vector for that row.

    Only constraint rows are inspected. Columns are scanned left to right, so
    an artificial column is reported only for a row no other column covers.
    """
    body = T[:-1]
    basis: Dict[int, int] = {}
    for j in range(T.shape[1] - 1):
        column = body[:, j]
        ones = np.flatnonzero(np.abs(column - 1.0) <= tol)
        if len(ones) != 1:
            continue
        i = int(ones[0])
        if i in basis:
            continue
        if np.all(np.abs(np.delete(column, i)) <= tol):
            basis[i] = j
    return basis


def price_out(T: np.ndarray, basis: Dict[int, int]) -> np.ndarray:
    # zero the objective row on every basic column
    new = T.copy()
    for i, j in sorted(basis.items()):
        coeff = new[-1, j]
        if coeff != 0:
            new[-1] = new[-1] - coeff * new[i]
    return new


def iterate(T: np.ndarray, phase: Phase, trace: Optional[List[object]] = None,
            max_iterations: int = MAX_ITERATIONS, tol: float = 0.0) -> Tuple[np.ndarray, int]:
    iterations = 0
    while not is_optimal(T, tol):
        if iterations >= max_iterations:
            raise IterationLimitError(int(phase), max_iterations)
        enter_j = select_entering_column(T, tol)
        if enter_j is None:
            raise NoImprovingColumnError(int(phase))
        leave_i = select_leaving_row(T, enter_j, tol)
        if leave_i is None:
            raise NoValidPivotRowError(int(phase), enter_j)
        T = pivot(T, leave_i, enter_j)
        iterations += 1
        if trace is not None:
            trace.append(TableauSnapshot(int(phase), iterations, T, (leave_i, enter_j)))
    return T, iterations
