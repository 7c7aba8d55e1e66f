"""Equivalence-class evaluation of a population.

Many chromosomes decode to the same expression text. They are grouped into
one OptimizationProblem per distinct text, so each expression has its
parameters optimized exactly once per generation.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Callable
from typing import Iterable
from typing import Mapping

import numpy as np

from ..config import GEP_MIN_PARAMETERS
from ..config import OPTIMIZER_MAX_EVALUATIONS
from ..constraints import ConstraintSet
from ..constraints import PenalizedObjective
from ..evaluator import compile_expression
from ..objectives import get_metric
from ..optimizer import optimize
from ..problem import ProblemData
from ..types import DomainError
from ..types import ParseError
from .chromosome import Chromosome
from .decoder import decode_to_infix

if TYPE_CHECKING:
    from .engine import CancellationToken

logger = logging.getLogger(__name__)

Optimizer = Callable[..., np.ndarray]


@dataclass
class OptimizationProblem:
    """One distinct expression and the chromosomes that encode it.

    Attributes:
        expression: Canonical expression text
        objective: Penalized objective over the parameter vector
        parameter_names: Parameters in optimizer vector order
        lower: Lower bounds per parameter
        upper: Upper bounds per parameter
        source_chromosomes: Distinct chromosomes decoding to expression
        best_parameters: Optimized values, once evaluated
        fitness: Objective at best_parameters (+inf until evaluated)
    """

    expression: str
    objective: PenalizedObjective
    parameter_names: tuple[str, ...]
    lower: np.ndarray
    upper: np.ndarray
    source_chromosomes: list[Chromosome] = field(default_factory=list)
    best_parameters: np.ndarray | None = None
    fitness: float = np.inf
    _members: set = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.source_chromosomes = list(dict.fromkeys(self.source_chromosomes))
        self._members = set(self.source_chromosomes)

    @property
    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        return self.lower, self.upper

    def add_source(self, chromosome: Chromosome) -> None:
        if chromosome not in self._members:
            self._members.add(chromosome)
            self.source_chromosomes.append(chromosome)

    def parameters(self) -> dict[str, float]:
        if self.best_parameters is None:
            return {}
        return dict(zip(self.parameter_names, map(float, self.best_parameters)))


@dataclass(frozen=True)
class Evaluation:
    """Outcome of optimizing one problem: a score or the error that
    prevented it."""

    value: float = np.inf
    parameters: np.ndarray | None = None
    error: Exception | None = None

    @classmethod
    def ok(cls, value: float, parameters: np.ndarray) -> Evaluation:
        return cls(value=float(value), parameters=parameters)

    @classmethod
    def failed(cls, error: Exception) -> Evaluation:
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def fitness(self) -> float:
        """Score, with failures folded to +inf."""
        return self.value if self.error is None else np.inf


def build_optimization_problems(
    chromosomes: Iterable[Chromosome],
    problem: ProblemData,
    constraints: ConstraintSet | None = None,
    min_parameters: int = GEP_MIN_PARAMETERS,
) -> tuple[dict[str, OptimizationProblem], list[Chromosome]]:
    """Group chromosomes by the expression they decode to.

    Args:
        chromosomes: Population to group
        problem: Data, metric and search mode
        constraints: Parsed constraints of the problem
        min_parameters: Expressions with fewer free parameters are degenerate

    Returns:
        (problems keyed by expression text in first-seen order,
         degenerate chromosomes that are not evaluated)
    """
    if constraints is None:
        constraints = ConstraintSet.from_lines(problem.constraints, problem.input_names)
    metric = get_metric(problem.search_metric)
    inputs = problem.inputs
    expected = problem.expected

    problems: dict[str, OptimizationProblem] = {}
    degenerate_texts: set[str] = set()
    degenerate: list[Chromosome] = []

    for chromosome in chromosomes:
        text = decode_to_infix(chromosome)
        existing = problems.get(text)
        if existing is not None:
            existing.add_source(chromosome)
            continue
        if text in degenerate_texts:
            degenerate.append(chromosome)
            continue

        try:
            model = compile_expression(text, problem.input_names)
        except ParseError as e:
            logger.debug(f"Skipping {text}: {e}")
            degenerate_texts.add(text)
            degenerate.append(chromosome)
            continue

        if model.parameter_count < min_parameters:
            degenerate_texts.add(text)
            degenerate.append(chromosome)
            continue

        lower, upper = constraints.bounds_for(model.parameter_names)
        objective = PenalizedObjective(
            model,
            metric,
            inputs,
            expected,
            constraints.general_for(model.parameter_names),
            problem.search_mode,
        )
        problems[text] = OptimizationProblem(
            expression=text,
            objective=objective,
            parameter_names=model.parameter_names,
            lower=lower,
            upper=upper,
            source_chromosomes=[chromosome],
        )

    return problems, degenerate


def evaluate_problem(
    optimization_problem: OptimizationProblem,
    optimizer: Optimizer = optimize,
    max_evaluations: int = OPTIMIZER_MAX_EVALUATIONS,
    initial_guess: np.ndarray | None = None,
) -> Evaluation:
    """Optimize the parameters of one problem and score the result."""
    try:
        x = optimizer(
            optimization_problem.objective,
            optimization_problem.lower,
            optimization_problem.upper,
            initial_guess,
            max_evaluations,
        )
        value = optimization_problem.objective(x)
    except (DomainError, ArithmeticError, ValueError) as e:
        logger.debug(f"Evaluation of {optimization_problem.expression} failed: {e}")
        return Evaluation.failed(e)

    if not np.isfinite(value):
        return Evaluation.failed(
            DomainError(f"{optimization_problem.expression} has no finite fit")
        )
    return Evaluation.ok(value, np.asarray(x, dtype=float))


def evaluate_problems(
    problems: Mapping[str, OptimizationProblem],
    optimizer: Optimizer = optimize,
    max_evaluations: int = OPTIMIZER_MAX_EVALUATIONS,
    workers: int = 1,
    cancel_token: CancellationToken | None = None,
) -> dict[str, Evaluation]:
    """Evaluate every distinct problem once.

    Problems skipped because of cancellation are absent from the result.
    Each evaluated problem gets its fitness and best_parameters updated.

    Returns:
        Mapping from expression text to Evaluation
    """
    items = list(problems.items())

    def run(optimization_problem: OptimizationProblem) -> Evaluation | None:
        if cancel_token is not None and cancel_token.cancelled:
            return None
        return evaluate_problem(optimization_problem, optimizer, max_evaluations)

    if workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(run, [op for _, op in items]))
    else:
        outcomes = [run(op) for _, op in items]

    evaluations: dict[str, Evaluation] = {}
    for (text, optimization_problem), evaluation in zip(items, outcomes):
        if evaluation is None:
            continue
        optimization_problem.fitness = evaluation.fitness
        optimization_problem.best_parameters = evaluation.parameters
        evaluations[text] = evaluation
    return evaluations
