import json
import logging
import math
import re
from typing import Any, Mapping

from ..config import OUTPUT_PRECISION

logger = logging.getLogger(__name__)

PARAMETER_TOKEN_RE = re.compile(r"\bp(\d+)\b")


def format_number(value: float, precision: int = OUTPUT_PRECISION) -> str:
    """Format a number with the given significant digits, integers without a decimal point."""
    if value is None:
        return "none"
    value = float(value)
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = f"{value:.{precision}g}"
    if "e" not in text and "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def substitute_parameters(
    expression: str, parameters: Mapping[str, float], precision: int = OUTPUT_PRECISION
) -> str:
    """Replace p<i> names in the expression text with their fitted values."""

    def replace(match: re.Match) -> str:
        name = match.group(0)
        if name not in parameters:
            return name
        text = format_number(parameters[name], precision)
        return f"({text})" if text.startswith("-") else text

    return PARAMETER_TOKEN_RE.sub(replace, expression)


def result_to_dict(result: Any, precision: int = OUTPUT_PRECISION) -> dict:
    """Plain dict view of a SearchResult or FitResult, ready for JSON."""
    found = bool(result.expression) and math.isfinite(result.fitness)
    return {
        "ok": found,
        "expression": result.expression or None,
        "parameters": {name: float(v) for name, v in result.parameters.items()},
        "fitness": float(result.fitness) if math.isfinite(result.fitness) else None,
        "equation": (
            substitute_parameters(result.expression, result.parameters, precision)
            if found
            else None
        ),
    }


def format_result(
    result: Any, precision: int = OUTPUT_PRECISION, output_format: str = "human"
) -> str:
    """Render a search or fit result as human text or JSON."""
    if output_format == "json":
        return json.dumps(result_to_dict(result, precision))

    if not result.expression:
        return "No equation found."

    lines = [f"Expression: {result.expression}"]
    if result.parameters:
        lines.append("Parameters:")
        for name, value in result.parameters.items():
            lines.append(f"  {name} = {format_number(value, precision)}")
    lines.append(f"Fitness: {format_number(result.fitness, precision)}")
    if math.isfinite(result.fitness):
        lines.append(
            "Equation: "
            + substitute_parameters(result.expression, result.parameters, precision)
        )
    return "\n".join(lines)
