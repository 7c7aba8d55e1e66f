import random

import numpy as np
import pytest

from equationfinder_pkg.gene_expression import CancellationToken
from equationfinder_pkg.gene_expression import Chromosome
from equationfinder_pkg.gene_expression import GeneExpressionSearch
from equationfinder_pkg.gene_expression import GEPConfig
from equationfinder_pkg.gene_expression import SearchResult
from equationfinder_pkg.gene_expression import discover_equation
from equationfinder_pkg.gene_expression import search
from equationfinder_pkg.problem import ProblemData
from equationfinder_pkg.types import ValidationError

LINEAR = ProblemData(
    input_names=("x",), data_table=[[1.0, 3.0], [2.0, 5.0], [3.0, 7.0], [4.0, 9.0]]
)


def ones_optimizer(objective, lower, upper, initial_guess, max_evaluations):
    return np.ones(len(lower))


def small_config(**overrides):
    settings = dict(
        population_size=20,
        max_generations=3,
        head_length=3,
        max_parameters=2,
        max_evaluations=200,
        seed=7,
        verbose=False,
        timeout=None,
        workers=1,
    )
    settings.update(overrides)
    return GEPConfig(**settings)


def run_once(**overrides):
    engine = GeneExpressionSearch(small_config(**overrides), ones_optimizer)
    result = engine.run(engine.initial_population(LINEAR), LINEAR)
    return result, engine.history


def test_same_seed_same_search():
    first, first_history = run_once()
    second, second_history = run_once()
    assert first == second
    assert first_history == second_history


def test_worker_threads_do_not_change_the_outcome():
    sequential, _ = run_once()
    threaded, _ = run_once(workers=3)
    assert sequential == threaded


def test_population_size_is_kept():
    _, history = run_once(max_generations=4)
    assert all(entry["population"] == 20 for entry in history)


def test_best_fitness_never_gets_worse():
    _, history = run_once(max_generations=5)
    fitnesses = [entry["best_fitness"] for entry in history]
    assert fitnesses == sorted(fitnesses, reverse=True)


def test_exact_model_stops_at_threshold():
    seed = Chromosome.from_tokens(
        ["+", "p0", "*", "p1", "x", "x", "x"], ["x"], head_length=3
    )
    engine = GeneExpressionSearch(
        small_config(max_generations=10, max_evaluations=10000)
    )
    result = engine.run([seed], LINEAR)

    assert result.expression == "(p0+(p1*x))"
    assert result.fitness < 1e-6
    assert result.parameters["p0"] == pytest.approx(1.0, rel=1e-3)
    assert result.parameters["p1"] == pytest.approx(2.0, rel=1e-3)
    assert len(engine.history) == 1


def test_nothing_evaluable_gives_empty_result():
    result, history = run_once(min_parameters=10, max_generations=2)
    assert result == SearchResult("", {}, np.inf)
    assert all(entry["problems"] == 0 for entry in history)


def test_cancelled_search_runs_no_generation():
    token = CancellationToken()
    token.cancel()
    engine = GeneExpressionSearch(small_config(), ones_optimizer)
    result = engine.run(engine.initial_population(LINEAR), LINEAR, token)
    assert result.expression == ""
    assert engine.history == []


def test_timeout_stops_after_first_generation():
    _, history = run_once(max_generations=50, timeout=1e-9)
    assert len(history) == 1


def test_mutation_only_configuration():
    only_mutation = {
        "mutation": 1.0,
        "inversion": 0.0,
        "transposition": 0.0,
        "one_point_recombination": 0.0,
        "two_point_recombination": 0.0,
    }
    engine = GeneExpressionSearch(
        small_config(operator_probabilities=only_mutation), ones_optimizer
    )
    assert all(engine._choose_operator() == "mutation" for _ in range(100))


def test_search_helpers():
    config = small_config(max_generations=2)
    population = GeneExpressionSearch(config).initial_population(LINEAR)
    result = search(population, LINEAR, config, ones_optimizer, random.Random(1))
    assert isinstance(result, SearchResult)

    discovered = discover_equation(LINEAR, config, optimizer=ones_optimizer)
    assert isinstance(discovered, SearchResult)


def test_invalid_problem_rejected():
    bad = ProblemData(input_names=("x", "y"), data_table=[[1.0, 2.0]])
    with pytest.raises(ValidationError):
        GeneExpressionSearch(small_config(), ones_optimizer).run([], bad)


def test_degenerate_chromosomes_are_mutated_not_evaluated():
    # 6-gene head, 7-gene tail: longer than the random fill of small_config
    degenerate = Chromosome.from_tokens(["+"] + ["x"] * 12, ["x"], head_length=6)
    calls = []

    def counting_optimizer(objective, lower, upper, initial_guess, max_evaluations):
        calls.append(objective)
        return np.ones(len(lower))

    engine = GeneExpressionSearch(small_config(max_generations=1), counting_optimizer)
    result = engine.run([degenerate] * 3, LINEAR)

    assert calls == []
    assert result.expression == ""
    assert engine.history[0]["problems"] == 0
    assert engine.history[0]["degenerate"] == 3

    population = engine._next_generation([], [degenerate], engine.alphabet(LINEAR))
    mutants = [c for c in population if c.length == degenerate.length]
    assert len(population) == 20
    assert len(mutants) == 1
    assert mutants[0].head_length == 6
