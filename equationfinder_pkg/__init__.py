"""EquationFinder package: equation discovery by Gene Expression Programming
with numerically fitted parameters."""

from .config import VERSION

__version__ = VERSION

from . import config, constraints, evaluator, logging_config, objectives, problem, types
from .fitting import FitResult, fit_expression
from .gene_expression import (
    CancellationToken,
    GEPConfig,
    GeneExpressionSearch,
    SearchResult,
    discover_equation,
    search,
)
from .problem import ProblemData, SearchMode, parse_problem_text, read_problem_data

__all__ = [
    "config",
    "constraints",
    "evaluator",
    "logging_config",
    "objectives",
    "problem",
    "types",
    "ProblemData",
    "SearchMode",
    "parse_problem_text",
    "read_problem_data",
    "GEPConfig",
    "GeneExpressionSearch",
    "CancellationToken",
    "SearchResult",
    "search",
    "discover_equation",
    "FitResult",
    "fit_expression",
]
