"""Parameter constraints and the penalized objective.

Constraint lines come in two kinds:
    - simple bounds on one parameter, e.g. "p0 >= 0" or "p2 <= 1.5", which
      become box bounds handed to the optimizer
    - general relations, e.g. "p0 + p1 = 1" or "p0*p1 >= p2", which become
      quadratic penalties added to the objective when violated

Each line is classified once when the constraint set is built.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Callable
from typing import Iterable
from typing import Mapping
from typing import NamedTuple
from typing import Sequence

import numpy as np

from .evaluator import CompiledExpression
from .evaluator import compile_expression
from .objectives import Metric
from .problem import SearchMode
from .types import DomainError
from .types import ParseError
from .types import ValidationError

logger = logging.getLogger(__name__)

SIMPLE_BOUND_RE = re.compile(
    r"^\s*(p\d+)\s*(>=|<=)\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*$"
)
RELATION_RE = re.compile(r"<=|>=|==|=")


class Relationship(Enum):
    LEQ = "<="
    EQ = "="
    GEQ = ">="

    @classmethod
    def from_operator(cls, operator: str) -> Relationship:
        if operator == "==":
            return cls.EQ
        return cls(operator)


class SimpleBound(NamedTuple):
    """Bound on a single parameter."""

    parameter: str
    relationship: Relationship
    value: float


@dataclass(frozen=True)
class Constraint:
    """A relation "g(params) REL 0" between parameters.

    Attributes:
        evaluate: Computes g from a mapping of parameter name to value
        relationship: How g must compare to zero
        parameter_names: Parameters g depends on
        text: Source line, for messages
    """

    evaluate: Callable[[Mapping[str, float]], float]
    relationship: Relationship
    parameter_names: frozenset = field(default_factory=frozenset)
    text: str = ""

    def is_feasible(self, value: float) -> bool:
        if self.relationship is Relationship.LEQ:
            return value <= 0
        if self.relationship is Relationship.GEQ:
            return value >= 0
        return value == 0

    def penalty(self, params: Mapping[str, float]) -> float:
        """Squared violation, 0 when the constraint holds."""
        value = self.evaluate(params)
        if self.is_feasible(value):
            return 0.0
        return value * value


def parse_simple_bound(text: str) -> SimpleBound | None:
    """Parse "p<i> >= c" or "p<i> <= c"; None if the line is not of that form."""
    match = SIMPLE_BOUND_RE.match(text)
    if not match:
        return None
    parameter, operator, value = match.groups()
    return SimpleBound(parameter, Relationship(operator), float(value))


def parse_constraint(text: str, input_names: Iterable[str] = ()) -> Constraint:
    """Parse a general relation into a Constraint on "lhs - (rhs)".

    Raises:
        ParseError: If the line has no single relation or a side is malformed.
        ValidationError: If the relation mentions an input.
    """
    operators = RELATION_RE.findall(text)
    if len(operators) != 1:
        raise ParseError(f"Constraint must contain exactly one of >=, <=, =: {text!r}")
    lhs, rhs = (side.strip() for side in RELATION_RE.split(text))
    if not lhs or not rhs:
        raise ParseError(f"Constraint is missing a side: {text!r}")

    expression = lhs if rhs == "0" else f"{lhs}-({rhs})"
    compiled = compile_expression(expression)

    inputs = set(input_names) & set(compiled.parameter_names)
    if inputs:
        raise ValidationError(
            f"Constraint {text!r} refers to inputs {sorted(inputs)}"
        )

    def evaluate(params: Mapping[str, float]) -> float:
        return compiled.evaluate(None, params)

    return Constraint(
        evaluate=evaluate,
        relationship=Relationship.from_operator(operators[0]),
        parameter_names=frozenset(compiled.parameter_names),
        text=text.strip(),
    )


class ConstraintSet:
    """Simple bounds and general constraints of a problem."""

    def __init__(
        self,
        simple_bounds: Sequence[SimpleBound] = (),
        general: Sequence[Constraint] = (),
    ):
        self.simple_bounds = list(simple_bounds)
        self.general = list(general)

    @classmethod
    def from_lines(
        cls, lines: Iterable[str], input_names: Iterable[str] = ()
    ) -> ConstraintSet:
        input_names = tuple(input_names)
        simple_bounds = []
        general = []
        for line in lines:
            if not line.strip():
                continue
            bound = parse_simple_bound(line)
            if bound is not None:
                simple_bounds.append(bound)
            else:
                general.append(parse_constraint(line, input_names))
        logger.debug(
            f"Parsed {len(simple_bounds)} simple bounds and "
            f"{len(general)} general constraints"
        )
        return cls(simple_bounds, general)

    def bounds_for(self, parameter_names: Sequence[str]) -> tuple[np.ndarray, np.ndarray]:
        """Lower and upper bound arrays aligned with parameter_names."""
        lower = np.full(len(parameter_names), -np.inf)
        upper = np.full(len(parameter_names), np.inf)
        positions = {name: i for i, name in enumerate(parameter_names)}
        for bound in self.simple_bounds:
            i = positions.get(bound.parameter)
            if i is None:
                continue
            if bound.relationship is Relationship.GEQ:
                lower[i] = max(lower[i], bound.value)
            else:
                upper[i] = min(upper[i], bound.value)
        return lower, upper

    def general_for(self, parameter_names: Iterable[str]) -> list[Constraint]:
        """General constraints whose parameters all occur in parameter_names."""
        names = set(parameter_names)
        return [c for c in self.general if c.parameter_names <= names]

    def __len__(self) -> int:
        return len(self.simple_bounds) + len(self.general)


class PenalizedObjective:
    """Metric plus constraint and bound-search penalties, as a function of
    the parameter vector.

    Any evaluation failure scores +inf, so the optimizer steers away from
    the failing region instead of aborting.
    """

    def __init__(
        self,
        model: CompiledExpression,
        metric: Metric,
        inputs: np.ndarray,
        expected: np.ndarray,
        constraints: Sequence[Constraint] = (),
        search_mode: SearchMode = SearchMode.APPROXIMATE,
        parameter_names: Sequence[str] | None = None,
    ):
        self.model = model
        self.metric = metric
        self.inputs = inputs
        self.expected = np.asarray(expected, dtype=float)
        self.constraints = list(constraints)
        self.search_mode = search_mode
        self.parameter_names = tuple(
            model.parameter_names if parameter_names is None else parameter_names
        )

    def _bound_penalty(self, predicted: np.ndarray) -> float:
        if self.search_mode is SearchMode.UPPER_BOUND:
            return float(np.sum(np.maximum(0.0, self.expected - predicted)))
        if self.search_mode is SearchMode.LOWER_BOUND:
            return float(np.sum(np.maximum(0.0, predicted - self.expected)))
        return 0.0

    def __call__(self, x: Sequence[float]) -> float:
        params = dict(zip(self.parameter_names, (float(v) for v in x)))
        try:
            predicted = self.model.evaluate(self.inputs, params)
            value = self.metric(self.expected, predicted)
            for constraint in self.constraints:
                value += constraint.penalty(params)
            value += self._bound_penalty(predicted)
        except (DomainError, ArithmeticError):
            return np.inf
        if not np.isfinite(value):
            return np.inf
        return float(value)
