"""Error metrics comparing expected and predicted values.

Every metric is a loss: lower is better and 0 means a perfect fit.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from .types import DomainError
from .types import ValidationError

Metric = Callable[[np.ndarray, np.ndarray], float]


def mean_absolute_error(expected: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.mean(np.abs(expected - predicted)))


def mean_absolute_relative_error(expected: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.mean(np.abs(1.0 - predicted / expected)))


def maximum_error(expected: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.max(np.abs(expected - predicted)))


def maximum_relative_error(expected: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.max(np.abs(1.0 - predicted / expected)))


def median_absolute_error(expected: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.median(np.abs(expected - predicted)))


def nash_sutcliffe_loss(expected: np.ndarray, predicted: np.ndarray) -> float:
    """1 - NSE computed on log1p values, so 0 is a perfect fit."""
    log_expected = np.log1p(expected)
    log_predicted = np.log1p(predicted)
    numerator = np.sum((log_expected - log_predicted) ** 2)
    denominator = np.sum((log_expected - np.mean(log_expected)) ** 2)
    return float(numerator / denominator)


def root_mean_squared_log_error(expected: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.sqrt(np.mean((np.log1p(expected) - np.log1p(predicted)) ** 2)))


def residual_sum_of_squares(expected: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.sum((expected - predicted) ** 2))


# Short code -> (long name, function)
METRICS: dict[str, tuple[str, Metric]] = {
    "MA": ("mean absolute error", mean_absolute_error),
    "MAR": ("mean absolute relative error", mean_absolute_relative_error),
    "Max": ("maximum error", maximum_error),
    "MaxR": ("maximum relative error", maximum_relative_error),
    "MedA": ("median absolute error", median_absolute_error),
    "NSE": ("nash sutcliffe efficiency", nash_sutcliffe_loss),
    "RMSL": ("root mean squared log error", root_mean_squared_log_error),
    "RSS": ("residual sum of squares", residual_sum_of_squares),
}


def _normalize(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch not in " _-")


_LOOKUP: dict[str, str] = {}
for _code, (_long_name, _) in METRICS.items():
    _LOOKUP[_normalize(_code)] = _code
    _LOOKUP[_normalize(_long_name)] = _code


def canonical_metric_name(name: str) -> str:
    """Short code of a metric given any accepted spelling.

    Raises:
        ValidationError: If the name is not a known metric.
    """
    try:
        return _LOOKUP[_normalize(name)]
    except KeyError:
        known = ", ".join(METRICS)
        raise ValidationError(f"Unknown search metric {name!r} (known: {known})") from None


def get_metric(name: str) -> Metric:
    """Metric function for a name; non-finite values raise DomainError."""
    function = METRICS[canonical_metric_name(name)][1]

    def metric(expected: np.ndarray, predicted: np.ndarray) -> float:
        with np.errstate(all="ignore"):
            value = function(
                np.asarray(expected, dtype=float), np.asarray(predicted, dtype=float)
            )
        if not np.isfinite(value):
            raise DomainError(f"Metric {name} is not finite")
        return value

    metric.__name__ = function.__name__
    return metric
