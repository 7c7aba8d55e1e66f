import numpy as np
import pytest

from equationfinder_pkg.fitting import FitResult
from equationfinder_pkg.fitting import fit_expression
from equationfinder_pkg.problem import ProblemData
from equationfinder_pkg.types import ValidationError

# y = 2x + 1
LINEAR = ProblemData(
    expression="(p0+(p1*x))",
    input_names=("x",),
    data_table=[[0.0, 1.0], [1.0, 3.0], [2.0, 5.0], [3.0, 7.0]],
)


def test_linear_fit_recovers_parameters():
    result = fit_expression(LINEAR)
    assert isinstance(result, FitResult)
    assert result.expression == "(p0+(p1*x))"
    assert result.parameters["p0"] == pytest.approx(1.0, rel=1e-3)
    assert result.parameters["p1"] == pytest.approx(2.0, rel=1e-3)
    assert result.fitness < 1e-6


def test_explicit_expression_overrides_problem_expression():
    result = fit_expression(LINEAR, expression="(p0*x+p1)")
    assert result.expression == "(p0*x+p1)"
    assert result.parameters["p0"] == pytest.approx(2.0, rel=1e-3)


def test_simple_bound_limits_the_fit():
    bounded = ProblemData(
        expression=LINEAR.expression,
        constraints=("p1 <= 1.5",),
        input_names=LINEAR.input_names,
        data_table=LINEAR.data_table,
    )
    result = fit_expression(bounded)
    assert result.parameters["p1"] <= 1.5 + 1e-9
    assert result.fitness > 0.0


def test_missing_expression():
    problem = ProblemData(input_names=("x",), data_table=[[1.0, 2.0]])
    with pytest.raises(ValidationError):
        fit_expression(problem)


def test_expression_without_parameters():
    with pytest.raises(ValidationError):
        fit_expression(LINEAR, expression="(x*x)")


def test_custom_optimizer_is_used():
    calls = []

    def fixed(objective, lower, upper, initial_guess, max_evaluations):
        calls.append(max_evaluations)
        return np.array([1.0, 2.0])

    result = fit_expression(LINEAR, max_evaluations=50, optimizer=fixed)
    assert calls == [50]
    assert result.fitness == 0.0


def test_vanishing_terms_keep_a_finite_fitness():
    x = np.array([1.0, 2.0, 100.0, 750.0])
    decay = ProblemData(
        expression="(p1*exp((p0*x)))",
        input_names=("x",),
        data_table=np.column_stack([x, np.exp(-x)]),
    )

    def true_parameters(objective, lower, upper, initial_guess, max_evaluations):
        return np.array([-1.0, 1.0])

    result = fit_expression(decay, optimizer=true_parameters)
    assert result.fitness == pytest.approx(0.0, abs=1e-12)
