"""Gene alphabet for Gene Expression Programming.

A gene is one of three symbol kinds:
    - Operator: a function from the fixed catalog below (arity from the table)
    - Input: a reference to a column of the data table (e.g. x, y)
    - Parameter: a free constant p0, p1, ... fitted by the optimizer

The arity of an operator is always looked up in OPERATOR_ARITY, never stored
on the symbol itself.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable
from typing import Union

from ..config import GEP_MAX_PARAMETERS
from ..config import PARAMETER_NAME_RE
from ..config import PARAMETER_PREFIX
from ..types import ValidationError

OPERATOR_ARITY: dict[str, int] = {
    # basic operators
    "+": 2,
    "-": 2,
    "*": 2,
    "/": 2,
    # trigonometric functions
    "sin": 1,
    "cos": 1,
    "tan": 1,
    "asin": 1,
    "acos": 1,
    "atan": 1,
    "atan2": 2,
    # hyperbolic functions
    "sinh": 1,
    "cosh": 1,
    "tanh": 1,
    # exponential and logarithmic functions
    "exp": 1,
    "log": 1,
    "sqrt": 1,
    "cbrt": 1,
    "pow": 2,
    "hypot": 2,
    # rounding and other functions
    "ceil": 1,
    "floor": 1,
    "round": 1,
    "floorDiv": 2,
    "floorMod": 2,
    "ceilDiv": 2,
    "ceilMod": 2,
    "abs": 1,
    "clamp": 3,
    "signum": 1,
    # logical functions
    "max": 2,
    "min": 2,
}

# Rendered as "(left OP right)"; every other operator is rendered "name(args)"
SIMPLE_BINARY_OPERATORS = frozenset({"+", "-", "*", "/"})


@dataclass(frozen=True)
class Operator:
    """A function symbol from the catalog."""

    name: str

    def __post_init__(self):
        if self.name not in OPERATOR_ARITY:
            raise ValidationError(f"Unknown operator: {self.name!r}")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Input:
    """Reference to an input column, rendered by its name."""

    index: int
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Parameter:
    """A free parameter, rendered as p<index>."""

    index: int

    @property
    def name(self) -> str:
        return f"{PARAMETER_PREFIX}{self.index}"

    def __str__(self) -> str:
        return self.name


Symbol = Union[Operator, Input, Parameter]


def tail_length_for(head_length: int, max_arity: int) -> int:
    """Tail length required by a head of the given size."""
    return head_length * (max_arity - 1) + 1


def arity(symbol: Symbol) -> int:
    """Number of operands consumed by a symbol (0 for terminals)."""
    if isinstance(symbol, Operator):
        return OPERATOR_ARITY[symbol.name]
    return 0


def is_terminal(symbol: Symbol) -> bool:
    return not isinstance(symbol, Operator)


def symbol_from_token(token: str, input_names: Iterable[str]) -> Symbol:
    """Parse a single token ("+", "sin", "p3", "x") into a symbol.

    Raises:
        ValidationError: If the token is neither an operator, a parameter,
            nor one of the given input names.
    """
    if token in OPERATOR_ARITY:
        return Operator(token)
    match = PARAMETER_NAME_RE.match(token)
    if match:
        return Parameter(int(match.group(1)))
    names = list(input_names)
    if token in names:
        return Input(names.index(token), token)
    raise ValidationError(f"Unknown gene token: {token!r}")


class GeneAlphabet:
    """The symbols a population may use, with the sampling rules of GEP.

    Head positions sample a symbol class uniformly among operator, input and
    parameter, then a member of that class uniformly. Tail positions do the
    same among input and parameter only, so the tail stays terminal.
    """

    def __init__(
        self,
        input_names: Iterable[str],
        operators: Iterable[str] | None = None,
        max_parameters: int = GEP_MAX_PARAMETERS,
    ):
        self.input_names: tuple[str, ...] = tuple(input_names)
        for name in self.input_names:
            if PARAMETER_NAME_RE.match(name) or name in OPERATOR_ARITY:
                raise ValidationError(
                    f"Input name {name!r} collides with a parameter or operator"
                )

        names = list(operators) if operators is not None else list(OPERATOR_ARITY)
        if not names:
            raise ValidationError("The alphabet needs at least one operator")
        if max_parameters < 0:
            raise ValidationError("max_parameters must be non-negative")

        self.operators: tuple[Operator, ...] = tuple(
            Operator(name) for name in dict.fromkeys(names)
        )
        self.inputs: tuple[Input, ...] = tuple(
            Input(index, name) for index, name in enumerate(self.input_names)
        )
        self.parameters: tuple[Parameter, ...] = tuple(
            Parameter(index) for index in range(max_parameters)
        )
        if not self.inputs and not self.parameters:
            raise ValidationError("The alphabet needs at least one terminal symbol")

        self.max_arity: int = max(arity(op) for op in self.operators)

        self._head_classes = [
            group for group in (self.operators, self.inputs, self.parameters) if group
        ]
        self._tail_classes = [
            group for group in (self.inputs, self.parameters) if group
        ]

    def tail_length(self, head_length: int) -> int:
        """Tail size guaranteeing enough terminals for any head."""
        return tail_length_for(head_length, self.max_arity)

    def sample_head_symbol(self, rng: random.Random) -> Symbol:
        return rng.choice(rng.choice(self._head_classes))

    def sample_tail_symbol(self, rng: random.Random) -> Symbol:
        return rng.choice(rng.choice(self._tail_classes))

    def __repr__(self) -> str:
        return (
            f"GeneAlphabet(inputs={list(self.input_names)}, "
            f"operators={[op.name for op in self.operators]}, "
            f"parameters={len(self.parameters)})"
        )
