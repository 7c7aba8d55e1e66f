"""Gene Expression Programming search engine.

Each generation:
    1. groups the population into one optimization problem per distinct
       expression,
    2. fits the parameters of every problem and records the best,
    3. runs tournaments among the problems to pick survivors,
    4. applies one genetic operator to a chromosome of each survivor,
    5. forms the next population from survivors, offspring and mutated
       degenerate chromosomes, topped up with random chromosomes.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from dataclasses import field
from typing import NamedTuple
from typing import Sequence

import numpy as np

from ..config import GEP_FITNESS_THRESHOLD
from ..config import GEP_HEAD_LENGTH
from ..config import GEP_INVERSION_PROBABILITY
from ..config import GEP_MATING_RATIO
from ..config import GEP_MAX_GENERATIONS
from ..config import GEP_MAX_PARAMETERS
from ..config import GEP_MIN_PARAMETERS
from ..config import GEP_MUTATION_PROBABILITY
from ..config import GEP_ONE_POINT_RECOMBINATION_PROBABILITY
from ..config import GEP_POPULATION_SIZE
from ..config import GEP_SELECTION_PRESSURE
from ..config import GEP_TIMEOUT
from ..config import GEP_TRANSPOSITION_PROBABILITY
from ..config import GEP_TWO_POINT_RECOMBINATION_PROBABILITY
from ..config import GEP_WORKERS
from ..config import OPTIMIZER_MAX_EVALUATIONS
from ..constraints import ConstraintSet
from ..optimizer import optimize
from ..problem import ProblemData
from .alphabet import GeneAlphabet
from .chromosome import Chromosome
from .evaluation import OptimizationProblem
from .evaluation import Optimizer
from .evaluation import build_optimization_problems
from .evaluation import evaluate_problems
from .operators import random_inversion
from .operators import random_mutation
from .operators import random_one_point_recombination
from .operators import random_transposition
from .operators import random_two_point_recombination
from .operators import tournament_selection

logger = logging.getLogger(__name__)

MUTATION = "mutation"
INVERSION = "inversion"
TRANSPOSITION = "transposition"
ONE_POINT_RECOMBINATION = "one_point_recombination"
TWO_POINT_RECOMBINATION = "two_point_recombination"


@dataclass
class GEPConfig:
    """Configuration for Gene Expression Programming search."""

    population_size: int = GEP_POPULATION_SIZE
    max_generations: int = GEP_MAX_GENERATIONS
    head_length: int = GEP_HEAD_LENGTH
    max_parameters: int = GEP_MAX_PARAMETERS
    min_parameters: int = GEP_MIN_PARAMETERS
    fitness_threshold: float = GEP_FITNESS_THRESHOLD
    mating_ratio: float = GEP_MATING_RATIO
    selection_pressure: int = GEP_SELECTION_PRESSURE
    max_evaluations: int = OPTIMIZER_MAX_EVALUATIONS
    workers: int = GEP_WORKERS
    timeout: float | None = GEP_TIMEOUT or None
    seed: int | None = None
    operators: list[str] | None = None  # None = whole catalog
    verbose: bool = True

    # Relative weights, normalized before use
    operator_probabilities: dict[str, float] = field(
        default_factory=lambda: {
            MUTATION: GEP_MUTATION_PROBABILITY,
            INVERSION: GEP_INVERSION_PROBABILITY,
            TRANSPOSITION: GEP_TRANSPOSITION_PROBABILITY,
            ONE_POINT_RECOMBINATION: GEP_ONE_POINT_RECOMBINATION_PROBABILITY,
            TWO_POINT_RECOMBINATION: GEP_TWO_POINT_RECOMBINATION_PROBABILITY,
        }
    )


class CancellationToken:
    """Cooperative cancellation flag shared with a running search."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SearchResult(NamedTuple):
    """Best expression found, its fitted parameters and fitness."""

    expression: str
    parameters: dict[str, float]
    fitness: float


NO_RESULT = SearchResult("", {}, np.inf)


def _normalize_weights(weights: Sequence[float]) -> list[float]:
    total = sum(weights)
    if total > 0:
        return [w / total for w in weights]
    if weights:
        return [1.0 / len(weights) for _ in weights]
    return []


class GeneExpressionSearch:
    """Evolutionary search over Karva chromosomes.

    Example:
        >>> engine = GeneExpressionSearch(GEPConfig(population_size=50, seed=1))
        >>> population = engine.initial_population(problem)
        >>> result = engine.run(population, problem)
        >>> print(result.expression, result.fitness)
    """

    def __init__(
        self,
        config: GEPConfig | None = None,
        optimizer: Optimizer = optimize,
        rng: random.Random | None = None,
    ):
        self.config = config or GEPConfig()
        self.optimizer = optimizer
        self.rng = rng if rng is not None else random.Random(self.config.seed)
        self.history: list[dict] = []
        self.generation: int = 0

        names = list(self.config.operator_probabilities)
        weights = _normalize_weights(
            [max(0.0, float(self.config.operator_probabilities[n])) for n in names]
        )
        self._operator_names = names
        self._operator_weights = weights

    def alphabet(self, problem: ProblemData) -> GeneAlphabet:
        return GeneAlphabet(
            problem.input_names, self.config.operators, self.config.max_parameters
        )

    def initial_population(self, problem: ProblemData) -> list[Chromosome]:
        """Random chromosomes over the problem's inputs."""
        alphabet = self.alphabet(problem)
        return [
            Chromosome.random(alphabet, self.config.head_length, self.rng)
            for _ in range(self.config.population_size)
        ]

    def _choose_operator(self) -> str:
        r = self.rng.random()
        cumulative = 0.0
        for name, weight in zip(self._operator_names, self._operator_weights):
            cumulative += weight
            if r <= cumulative:
                return name
        return self._operator_names[-1]

    def _reproduce(
        self,
        survivor: OptimizationProblem,
        survivors: list[OptimizationProblem],
        alphabet: GeneAlphabet,
    ) -> list[Chromosome]:
        """Apply one operator to a chromosome of a survivor."""
        parent = self.rng.choice(survivor.source_chromosomes)
        operator = self._choose_operator()

        if operator in (ONE_POINT_RECOMBINATION, TWO_POINT_RECOMBINATION):
            partners = [s for s in survivors if s is not survivor]
            compatible = []
            if partners:
                compatible = [
                    c
                    for c in self.rng.choice(partners).source_chromosomes
                    if c.head_length == parent.head_length
                ]
            if compatible:
                partner = self.rng.choice(compatible)
                if operator == ONE_POINT_RECOMBINATION:
                    return list(random_one_point_recombination(parent, partner, self.rng))
                return list(random_two_point_recombination(parent, partner, self.rng))
        elif operator == INVERSION:
            offspring = random_inversion(parent, self.rng)
            if offspring is not None:
                return [offspring]
        elif operator == TRANSPOSITION:
            offspring = random_transposition(parent, self.rng)
            if offspring is not None:
                return [offspring]

        return [random_mutation(parent, alphabet, self.rng)]

    def _select_survivors(
        self, candidates: list[OptimizationProblem]
    ) -> list[OptimizationProblem]:
        tournaments = max(int(len(candidates) * self.config.mating_ratio), 1)
        survivors: dict[str, OptimizationProblem] = {}
        for _ in range(tournaments):
            winner = tournament_selection(
                candidates,
                lambda op: op.fitness,
                self.config.selection_pressure,
                self.rng,
            )
            survivors.setdefault(winner.expression, winner)
        return list(survivors.values())

    def _next_generation(
        self,
        candidates: list[OptimizationProblem],
        degenerate: list[Chromosome],
        alphabet: GeneAlphabet,
    ) -> list[Chromosome]:
        pool: list[Chromosome] = []
        if candidates:
            survivors = self._select_survivors(candidates)
            for survivor in survivors:
                pool.extend(survivor.source_chromosomes)
            for survivor in survivors:
                pool.extend(self._reproduce(survivor, survivors, alphabet))
        pool.extend(random_mutation(c, alphabet, self.rng) for c in degenerate)

        population = list(dict.fromkeys(pool))[: self.config.population_size]
        while len(population) < self.config.population_size:
            population.append(
                Chromosome.random(alphabet, self.config.head_length, self.rng)
            )
        return population

    def run(
        self,
        population: Sequence[Chromosome],
        problem: ProblemData,
        cancel_token: CancellationToken | None = None,
    ) -> SearchResult:
        """Evolve the population until a stopping condition is met.

        Stops when the best fitness drops below the threshold, after
        max_generations, on timeout or on cancellation.

        Args:
            population: Starting chromosomes
            problem: Validated problem description
            cancel_token: Optional cooperative cancellation flag

        Returns:
            Best SearchResult seen over all generations
        """
        problem.validate()
        alphabet = self.alphabet(problem)
        constraints = ConstraintSet.from_lines(problem.constraints, problem.input_names)
        level = logging.INFO if self.config.verbose else logging.DEBUG

        population = list(population)
        best = NO_RESULT
        self.history = []
        start_time = time.time()
        logger.log(
            level,
            f"Starting search with {len(population)} chromosomes over inputs "
            f"{list(problem.input_names)} ({problem.search_mode.value}, "
            f"metric {problem.search_metric})",
        )

        for generation in range(self.config.max_generations):
            self.generation = generation
            if cancel_token is not None and cancel_token.cancelled:
                logger.info(f"Search cancelled at generation {generation}")
                break

            problems, degenerate = build_optimization_problems(
                population, problem, constraints, self.config.min_parameters
            )
            evaluations = evaluate_problems(
                problems,
                self.optimizer,
                self.config.max_evaluations,
                self.config.workers,
                cancel_token,
            )
            candidates = [problems[text] for text in evaluations]

            generation_best = min(candidates, key=lambda op: op.fitness, default=None)
            if generation_best is not None and generation_best.fitness < best.fitness:
                best = SearchResult(
                    generation_best.expression,
                    generation_best.parameters(),
                    generation_best.fitness,
                )

            self.history.append(
                {
                    "generation": generation,
                    "best_expression": best.expression,
                    "best_fitness": best.fitness,
                    "problems": len(problems),
                    "degenerate": len(degenerate),
                    "population": len(population),
                }
            )
            logger.log(
                level,
                f"Generation {generation}: best {best.expression or '-'} "
                f"fitness {best.fitness:.6g} ({len(problems)} expressions, "
                f"{len(degenerate)} degenerate)",
            )

            if best.fitness < self.config.fitness_threshold:
                logger.log(level, f"Fitness threshold reached at generation {generation}")
                break
            if cancel_token is not None and cancel_token.cancelled:
                logger.info(f"Search cancelled at generation {generation}")
                break
            if self.config.timeout and (time.time() - start_time) > self.config.timeout:
                logger.info(f"Timeout after {generation + 1} generations")
                break
            if generation == self.config.max_generations - 1:
                break

            population = self._next_generation(candidates, degenerate, alphabet)

        logger.info(
            f"Search finished after {len(self.history)} generations: "
            f"{best.expression or 'no expression'} (fitness {best.fitness:.6g})"
        )
        return best


def search(
    population: Sequence[Chromosome],
    problem: ProblemData,
    config: GEPConfig | None = None,
    optimizer: Optimizer = optimize,
    rng: random.Random | None = None,
    cancel_token: CancellationToken | None = None,
) -> SearchResult:
    """Run a search from a given population."""
    engine = GeneExpressionSearch(config, optimizer, rng)
    return engine.run(population, problem, cancel_token)


def discover_equation(
    problem: ProblemData,
    config: GEPConfig | None = None,
    cancel_token: CancellationToken | None = None,
    optimizer: Optimizer = optimize,
) -> SearchResult:
    """Search for an equation fitting the problem from a random population."""
    engine = GeneExpressionSearch(config, optimizer)
    population = engine.initial_population(problem)
    return engine.run(population, problem, cancel_token)
