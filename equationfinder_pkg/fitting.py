"""Parameter estimation for a fixed expression."""

from __future__ import annotations

import logging
from typing import NamedTuple

import numpy as np

from .config import OPTIMIZER_MAX_EVALUATIONS
from .constraints import ConstraintSet
from .constraints import PenalizedObjective
from .evaluator import compile_expression
from .objectives import get_metric
from .optimizer import optimize
from .problem import ProblemData
from .types import ValidationError

logger = logging.getLogger(__name__)


class FitResult(NamedTuple):
    expression: str
    parameters: dict[str, float]
    fitness: float


def fit_expression(
    problem: ProblemData,
    expression: str | None = None,
    max_evaluations: int = OPTIMIZER_MAX_EVALUATIONS,
    optimizer=optimize,
) -> FitResult:
    """Fit the free parameters of an expression to the problem data.

    Simple bounds in the problem's constraints limit the search box, other
    constraints and the bound-search mode add penalties.

    Args:
        problem: Validated problem description
        expression: Expression to fit, defaults to problem.expression
        max_evaluations: Optimizer budget
        optimizer: Box-constrained minimizer

    Returns:
        FitResult; fitness is +inf when no finite fit exists

    Raises:
        ValidationError: If there is no expression or it has no parameters
        ParseError: If the expression or a constraint is malformed
    """
    problem.validate()
    expression = expression or problem.expression
    if not expression:
        raise ValidationError("No expression to fit")

    model = compile_expression(expression, problem.input_names)
    if model.parameter_count == 0:
        raise ValidationError(f"Expression {expression!r} has no free parameters")

    constraints = ConstraintSet.from_lines(problem.constraints, problem.input_names)
    lower, upper = constraints.bounds_for(model.parameter_names)
    objective = PenalizedObjective(
        model,
        get_metric(problem.search_metric),
        problem.inputs,
        problem.expected,
        constraints.general_for(model.parameter_names),
        problem.search_mode,
    )

    logger.info(f"Fitting {expression} ({model.parameter_count} parameters)")
    x = optimizer(objective, lower, upper, None, max_evaluations)
    fitness = objective(x)
    parameters = dict(zip(model.parameter_names, map(float, x)))
    if not np.isfinite(fitness):
        logger.warning(f"No finite fit found for {expression}")
    return FitResult(expression, parameters, float(fitness))
