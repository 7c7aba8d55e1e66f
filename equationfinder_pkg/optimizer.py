"""Derivative-free, box-constrained parameter optimization."""

from __future__ import annotations

import logging
import warnings
from typing import Callable
from typing import Sequence

import numpy as np
from scipy.optimize import Bounds
from scipy.optimize import minimize

from .config import OPTIMIZER_FTOL
from .config import OPTIMIZER_INITIAL_GUESS
from .config import OPTIMIZER_MAX_EVALUATIONS
from .config import OPTIMIZER_XTOL

logger = logging.getLogger(__name__)

Objective = Callable[[np.ndarray], float]


def optimize(
    objective: Objective,
    lower: Sequence[float],
    upper: Sequence[float],
    initial_guess: Sequence[float] | None = None,
    max_evaluations: int = OPTIMIZER_MAX_EVALUATIONS,
) -> np.ndarray:
    """Minimize an objective over a box with Powell's method.

    Non-convergence is not an error: the best point scipy reached within the
    evaluation budget is returned.

    Args:
        objective: Function of the parameter vector, may return +inf
        lower: Lower bounds (-inf allowed)
        upper: Upper bounds (+inf allowed)
        initial_guess: Starting point, all OPTIMIZER_INITIAL_GUESS if omitted
        max_evaluations: Budget of objective evaluations

    Returns:
        Parameter vector of the same size as the bounds
    """
    lower = np.asarray(lower, dtype=float)
    upper = np.asarray(upper, dtype=float)
    if lower.shape != upper.shape:
        raise ValueError("lower and upper bounds differ in size")
    if lower.size == 0:
        return np.zeros(0)

    if initial_guess is None:
        x0 = np.full(lower.shape, OPTIMIZER_INITIAL_GUESS)
    else:
        x0 = np.asarray(initial_guess, dtype=float)
    x0 = np.clip(x0, lower, upper)

    bounds = None
    if np.isfinite(lower).any() or np.isfinite(upper).any():
        bounds = Bounds(lower, upper)

    with warnings.catch_warnings():
        # Infinite objective values inside line searches are expected
        warnings.simplefilter("ignore", RuntimeWarning)
        result = minimize(
            objective,
            x0,
            method="Powell",
            bounds=bounds,
            options={
                "maxfev": max_evaluations,
                "xtol": OPTIMIZER_XTOL,
                "ftol": OPTIMIZER_FTOL,
            },
        )

    if not result.success:
        logger.debug(f"Optimizer stopped without convergence: {result.message}")
    return np.atleast_1d(np.asarray(result.x, dtype=float))
