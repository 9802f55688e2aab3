"""Structured solve trace and its text rendering."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from twophase.parser import Direction


@dataclass(frozen=True)
class ProblemEcho:
    objective: str
    constraints: Tuple[str, ...]
    direction: Direction


@dataclass(frozen=True, eq=False)
class TableauSnapshot:
    phase: int
    iteration: int  # 0 is the phase's starting tableau
    tableau: np.ndarray
    pivot: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class PhaseComplete:
    phase: int


@dataclass(frozen=True)
class FinalReport:
    optimal_value: float
    values: Dict[str, float] = field(default_factory=dict)


def fmt_num(x: float) -> str:
    if abs(x) < 1e-12:
        x = 0.0
    return f"{x:.2f}"


def format_tableau(tableau: np.ndarray) -> str:
    return "\n".join(" ".join(fmt_num(v) for v in row) for row in tableau) + "\n"


def render_event(event) -> str:
    if isinstance(event, ProblemEcho):
        lines = [f"Objective function: {event.objective}", "Constraints:"]
        lines += [f" R{i}: {text}" for i, text in enumerate(event.constraints, start=1)]
        lines.append(f"Optimization type: {event.direction.label}")
        return "\n".join(lines) + "\n\n"
    if isinstance(event, TableauSnapshot):
        if event.iteration:
            title = f"Iteration {event.iteration} (Phase {event.phase}):"
        elif event.phase == 1:
            title = "Phase 1 - Initial simplex tableau (with artificial variables):"
        else:
            title = "Phase 2 - Solving with the original objective function:"
        return f"{title}\n{format_tableau(event.tableau)}\n"
    if isinstance(event, PhaseComplete):
        if event.phase == 1:
            return "Phase 1 complete. Artificial variables eliminated.\n"
        return f"Phase {event.phase} complete.\n"
    if isinstance(event, FinalReport):
        lines = ["", "Optimal result:", f"Optimal value: {fmt_num(event.optimal_value)}"]
        lines += [f"{name}: {fmt_num(value)}" for name, value in event.values.items()]
        return "\n".join(lines) + "\n"
    raise TypeError(f"unknown trace event {event!r}")


def render_trace(events: Iterable[object]) -> str:
    return "".join(render_event(e) for e in events)


class TraceLog(list):
    """Event list that also prints each event when verbose."""

    def __init__(self, verbose: bool = False):
        super().__init__()
        self.verbose = verbose

    def append(self, event) -> None:
        super().append(event)
        if self.verbose:
            print(render_event(event), end="")
