"""Failure kinds raised by the parser, the tableau builder and the simplex loop."""

from typing import List, Optional


class SimplexError(Exception):
    kind = "error"

    def __init__(self, message: str, trace: Optional[List[object]] = None):
        super().__init__(message)
        self.message = message
        # events recorded before the failure; filled in by solve()
        self.trace = list(trace or [])


class ParseError(SimplexError, ValueError):
    kind = "parse"

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.position = position


class TableauShapeError(SimplexError, ValueError):
    kind = "structural"


class IterationLimitError(SimplexError):
    kind = "iteration_limit"

    def __init__(self, phase: int, limit: int):
        super().__init__("Iteration limit reached. Possible unbounded problem.")
        self.phase = phase
        self.limit = limit


class NoImprovingColumnError(SimplexError):
    # Legacy label; the condition itself is not unboundedness.
    kind = "no_improving_column"

    def __init__(self, phase: int):
        super().__init__("Unbounded solution.")
        self.phase = phase


class NoValidPivotRowError(SimplexError):
    # Legacy label; an empty ratio test means an unbounded objective.
    kind = "no_valid_pivot_row"

    def __init__(self, phase: int, column: int):
        super().__init__("No feasible solution.")
        self.phase = phase
        self.column = column


class InfeasibleError(SimplexError):
    kind = "infeasible"

    def __init__(self, artificial_sum: float):
        super().__init__(
            f"No feasible solution: phase 1 ended with artificial sum {artificial_sum:.2f}."
        )
        self.artificial_sum = artificial_sum
