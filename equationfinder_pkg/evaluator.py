"""Textual expression evaluation.

Expressions such as "(p0*sin((x+p1)))" are parsed with SymPy, then compiled
with ``sympy.lambdify`` into a NumPy function evaluated over a whole data
table at once. Every catalog function is bound to a SymPy function carrying
its NumPy implementation, so parsing never depends on SymPy's own meaning of
names like ``round`` or ``max``.

Numeric failures (log of a negative value, division by zero, overflow, ...)
surface as DomainError.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from typing import Callable
from typing import Iterable
from typing import Mapping
from typing import Sequence

import numpy as np
import sympy as sp
from sympy.parsing.sympy_parser import convert_xor
from sympy.parsing.sympy_parser import parse_expr
from sympy.parsing.sympy_parser import standard_transformations
from sympy.utilities.lambdify import implemented_function

from .config import CACHE_SIZE_COMPILE
from .config import PARAMETER_NAME_RE
from .types import DomainError
from .types import ParseError

logger = logging.getLogger(__name__)


def _round(x):
    return np.floor(x + 0.5)


def _floor_div(a, b):
    return np.floor_divide(a, b)


def _floor_mod(a, b):
    return np.mod(a, b)


def _ceil_div(a, b):
    return -np.floor_divide(-a, b)


def _ceil_mod(a, b):
    return a - b * _ceil_div(a, b)


def _clamp(value, low, high):
    if np.any(np.asarray(low) > np.asarray(high)):
        raise DomainError("clamp called with min > max")
    return np.clip(value, low, high)


NUMERIC_FUNCTIONS: dict[str, Callable] = {
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "asin": np.arcsin,
    "acos": np.arccos,
    "atan": np.arctan,
    "atan2": np.arctan2,
    "sinh": np.sinh,
    "cosh": np.cosh,
    "tanh": np.tanh,
    "exp": np.exp,
    "log": np.log,
    "sqrt": np.sqrt,
    "cbrt": np.cbrt,
    "pow": np.power,
    "hypot": np.hypot,
    "ceil": np.ceil,
    "floor": np.floor,
    "round": _round,
    "floorDiv": _floor_div,
    "floorMod": _floor_mod,
    "ceilDiv": _ceil_div,
    "ceilMod": _ceil_mod,
    "abs": np.abs,
    "clamp": _clamp,
    "signum": np.sign,
    "max": np.maximum,
    "min": np.minimum,
}

SYMPY_FUNCTIONS: dict[str, Any] = {
    name: implemented_function(name, function)
    for name, function in NUMERIC_FUNCTIONS.items()
}

CONSTANTS: dict[str, Any] = {"pi": sp.pi}

TRANSFORMATIONS = standard_transformations + (convert_xor,)

IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_NUMERIC_ERRORS = (
    FloatingPointError,
    ZeroDivisionError,
    OverflowError,
    ValueError,
    TypeError,
)


def _parameter_sort_key(name: str) -> tuple[int, int, str]:
    match = PARAMETER_NAME_RE.match(name)
    if match:
        return (0, int(match.group(1)), name)
    return (1, 0, name)


@lru_cache(maxsize=CACHE_SIZE_COMPILE)
def parse_expression(text: str) -> sp.Expr:
    """Parse expression text into a SymPy expression.

    Raises:
        ParseError: If the text is empty or not a valid expression.
    """
    if not text or not text.strip():
        raise ParseError("Empty expression")

    local_dict: dict[str, Any] = {}
    for name in set(IDENTIFIER_RE.findall(text)):
        if name in SYMPY_FUNCTIONS:
            local_dict[name] = SYMPY_FUNCTIONS[name]
        elif name in CONSTANTS:
            local_dict[name] = CONSTANTS[name]
        else:
            local_dict[name] = sp.Symbol(name)

    try:
        expr = parse_expr(text, local_dict=local_dict, transformations=TRANSFORMATIONS)
    except Exception as e:
        # parse_expr reports malformed text through several exception types
        raise ParseError(f"Cannot parse expression '{text}': {e}") from e

    if not isinstance(expr, sp.Expr):
        raise ParseError(f"'{text}' is not an arithmetic expression")
    return expr


def extract_variables(text: str) -> set[str]:
    """Names of all free variables (inputs and parameters) in the text."""
    return {str(symbol) for symbol in parse_expression(text).free_symbols}


@dataclass(frozen=True)
class CompiledExpression:
    """An expression ready for vectorized numeric evaluation.

    Attributes:
        text: Source expression text
        input_names: Names bound, in order, to the columns of the input table
        parameter_names: Remaining free names, sorted by parameter index
    """

    text: str
    input_names: tuple[str, ...]
    parameter_names: tuple[str, ...]
    function: Callable = None

    @property
    def parameter_count(self) -> int:
        return len(self.parameter_names)

    def _parameter_values(
        self, params: Sequence[float] | Mapping[str, float]
    ) -> list[np.float64]:
        if isinstance(params, Mapping):
            try:
                return [np.float64(params[name]) for name in self.parameter_names]
            except KeyError as e:
                raise DomainError(f"Missing value for parameter {e}") from e
        values = list(params)
        if len(values) != len(self.parameter_names):
            raise DomainError(
                f"Expected {len(self.parameter_names)} parameters, got {len(values)}"
            )
        return [np.float64(v) for v in values]

    def evaluate(
        self,
        inputs: np.ndarray | None,
        params: Sequence[float] | Mapping[str, float],
    ) -> np.ndarray | float:
        """Evaluate the expression.

        Args:
            inputs: Table of shape (n_rows, n_inputs), or None when the
                expression has no inputs (a scalar is returned)
            params: Parameter values, in parameter_names order or by name

        Returns:
            Array of shape (n_rows,), or a float when inputs is None

        Raises:
            DomainError: On any arithmetic or domain failure
        """
        param_values = self._parameter_values(params)
        if inputs is None:
            columns = [np.float64(0.0)] * len(self.input_names)
            n_rows = None
        else:
            table = np.asarray(inputs, dtype=float)
            if table.ndim == 1:
                table = table.reshape(-1, 1)
            if table.shape[1] < len(self.input_names):
                raise DomainError(
                    f"Input table has {table.shape[1]} columns, "
                    f"expected {len(self.input_names)}"
                )
            columns = [table[:, i] for i in range(len(self.input_names))]
            n_rows = table.shape[0]

        try:
            # Underflow rounds to zero and is not a domain failure
            with np.errstate(
                divide="raise", over="raise", invalid="raise", under="ignore"
            ):
                result = self.function(*columns, *param_values)
                result = np.asarray(result, dtype=float)
        except DomainError:
            raise
        except _NUMERIC_ERRORS as e:
            raise DomainError(f"Evaluation of '{self.text}' failed: {e}") from e

        if not np.all(np.isfinite(result)):
            raise DomainError(f"Evaluation of '{self.text}' is not finite")

        if n_rows is None:
            return float(result)
        if result.ndim == 0:
            return np.full(n_rows, float(result))
        return result

    def __call__(self, inputs, params):
        return self.evaluate(inputs, params)


@lru_cache(maxsize=CACHE_SIZE_COMPILE)
def _compile(text: str, input_names: tuple[str, ...]) -> CompiledExpression:
    expr = parse_expression(text)
    free_names = {str(symbol) for symbol in expr.free_symbols}
    parameter_names = tuple(
        sorted(free_names - set(input_names), key=_parameter_sort_key)
    )
    arguments = [sp.Symbol(name) for name in (*input_names, *parameter_names)]
    function = sp.lambdify(arguments, expr, modules="numpy")
    logger.debug(f"Compiled '{text}' with parameters {parameter_names}")
    return CompiledExpression(
        text=text,
        input_names=input_names,
        parameter_names=parameter_names,
        function=function,
    )


def compile_expression(
    text: str, input_names: Iterable[str] = ()
) -> CompiledExpression:
    """Compile expression text for evaluation over a data table.

    Args:
        text: Infix expression text
        input_names: Names of the data table columns

    Returns:
        CompiledExpression (memoized per text and input names)

    Raises:
        ParseError: If the text cannot be parsed
    """
    return _compile(text, tuple(input_names))


def evaluate(
    text: str,
    inputs: np.ndarray | None,
    params: Sequence[float] | Mapping[str, float],
    input_names: Iterable[str] = (),
) -> np.ndarray | float:
    """Parse, compile and evaluate expression text in one call."""
    return compile_expression(text, input_names).evaluate(inputs, params)
