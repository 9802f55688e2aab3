"""
Expression parser for textual linear programs.

Objective:   3x1+5x2
Constraints: x1<=4, 2x2<=12, 3x1+2x2<=18

A term is  [sign] [magnitude] ['*'] letter [digits]; a missing sign means +,
a missing magnitude means 1. Terms after the first must carry a sign.
Input is expected to be normalized (ASCII comparators, no whitespace);
see normalize() for the conversion callers apply to raw user text.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from twophase.errors import ParseError

# Checked in this order so the '=' inside '<=' / '>=' is never picked first.
OPERATORS = ("<=", ">=", "=")

_TERM = re.compile(r"([+-])?(?:(\d+(?:\.\d*)?|\.\d+)\*?)?([A-Za-z])(\d*)")


class Direction(Enum):
    MAXIMIZE = "max"
    MINIMIZE = "min"

    @property
    def label(self) -> str:
        return "Maximize" if self is Direction.MAXIMIZE else "Minimize"


@dataclass(frozen=True)
class Term:
    coefficient: float
    name: str


@dataclass(frozen=True)
class Constraint:
    terms: Tuple[Term, ...]
    operator: str
    rhs: float
    text: str = ""

    def coefficients(self) -> Dict[str, float]:
        return _sum_terms(self.terms)


@dataclass(frozen=True)
class Objective:
    terms: Tuple[Term, ...]
    direction: Direction
    text: str = ""

    def coefficients(self) -> Dict[str, float]:
        return _sum_terms(self.terms)


@dataclass(frozen=True)
class Problem:
    objective: Objective
    constraints: Tuple[Constraint, ...]
    variables: Tuple[str, ...]


def _sum_terms(terms: Sequence[Term]) -> Dict[str, float]:
    # a variable written twice in one expression contributes the sum of both
    coeffs: Dict[str, float] = {}
    for term in terms:
        coeffs[term.name] = coeffs.get(term.name, 0.0) + term.coefficient
    return coeffs


def _at(position: Optional[int]) -> str:
    return f" at position {position}" if position is not None else ""


def normalize(text: str) -> str:
    """Map unicode comparators to ASCII and drop all whitespace."""
    text = text.replace("≤", "<=").replace("≥", ">=")
    return re.sub(r"\s+", "", text)


def parse_terms(text: str) -> List[Term]:
    terms: List[Term] = []
    pos = 0
    while pos < len(text):
        m = _TERM.match(text, pos)
        if m is None:
            raise ParseError(f"Unexpected character {text[pos]!r} at offset {pos} in {text!r}")
        sign, magnitude, letter, digits = m.groups()
        if terms and sign is None:
            raise ParseError(f"Missing sign before term {m.group(0)!r} in {text!r}")
        coefficient = float(magnitude) if magnitude else 1.0
        if sign == "-":
            coefficient = -coefficient
        terms.append(Term(coefficient, letter + digits))
        pos = m.end()
    if not terms:
        raise ParseError(f"No terms found in expression {text!r}")
    return terms


def parse_constraint(text: str, position: Optional[int] = None) -> Constraint:
    """Parse 'lhs OP rhs' into a Constraint.

    position is the 1-based index of the constraint in its list; it only
    feeds error messages.
    """
    operator = next((op for op in OPERATORS if op in text), None)
    if operator is None:
        raise ParseError(f"Invalid operator in constraint{_at(position)}", position)

    left, _, right = text.partition(operator)
    left = left.strip()
    right = right.strip()
    if not left:
        raise ParseError(f"Invalid constraint{_at(position)}: empty left side", position)
    try:
        rhs = float(right)
    except ValueError:
        rhs = math.nan
    if not math.isfinite(rhs):
        raise ParseError(
            f"Invalid constraint{_at(position)}: right side {right!r} is not a number", position
        )

    try:
        terms = parse_terms(left)
    except ParseError as e:
        raise ParseError(f"Invalid constraint{_at(position)}: {e.message}", position) from e
    return Constraint(tuple(terms), operator, rhs, text)


def parse_objective(text: str, direction=Direction.MAXIMIZE) -> Objective:
    try:
        terms = parse_terms(text)
    except ParseError as e:
        raise ParseError(f"Invalid objective function: {e.message}") from e
    return Objective(tuple(terms), Direction(direction), text)


def collect_variables(objective: Objective, constraints: Sequence[Constraint]) -> List[str]:
    # dict keeps insertion order: first appearance fixes the column index
    seen: Dict[str, None] = {}
    for term in objective.terms:
        seen.setdefault(term.name, None)
    for constraint in constraints:
        for term in constraint.terms:
            seen.setdefault(term.name, None)
    return list(seen)


def parse_problem(objective: str, constraints: Sequence[str], direction=Direction.MAXIMIZE) -> Problem:
    obj = parse_objective(objective, direction)
    parsed = [parse_constraint(text, i + 1) for i, text in enumerate(constraints)]
    return Problem(obj, tuple(parsed), tuple(collect_variables(obj, parsed)))
