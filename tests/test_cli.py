import _thread
import json
import logging
import time

import pytest

import equationfinder_pkg.config as config
import equationfinder_pkg.gene_expression as gene_expression
from equationfinder_pkg import logging_config
from equationfinder_pkg.cli import build_parser
from equationfinder_pkg.cli import main_entry

LINEAR_PROBLEM = """best fit search
(p0+(p1*x))
with input
x
with data
0 1
1 3
2 5
3 7
"""

OVERRIDDEN = (
    "GEP_POPULATION_SIZE",
    "GEP_MAX_GENERATIONS",
    "GEP_HEAD_LENGTH",
    "GEP_MAX_PARAMETERS",
    "GEP_WORKERS",
    "GEP_TIMEOUT",
    "OPTIMIZER_MAX_EVALUATIONS",
    "OUTPUT_PRECISION",
)


@pytest.fixture(autouse=True)
def restore_config(monkeypatch):
    for name in OVERRIDDEN:
        monkeypatch.setattr(config, name, getattr(config, name))
    yield
    root = logging.getLogger()
    for handler in logging_config._configured_handlers:
        root.removeHandler(handler)
    logging_config._configured_handlers.clear()


@pytest.fixture
def problem_file(tmp_path):
    path = tmp_path / "linear.txt"
    path.write_text(LINEAR_PROBLEM, encoding="utf-8")
    return str(path)


def test_parser_defaults():
    args = build_parser().parse_args(["problem.txt"])
    assert args.mode == "search"
    assert args.format == "human"
    assert args.seed is None


def test_version(capsys):
    assert main_entry(["--version"]) == 0
    assert capsys.readouterr().out.strip() == config.VERSION


def test_problem_file_required(capsys):
    assert main_entry([]) == 1
    assert "problem file is required" in capsys.readouterr().err


def test_fit_mode(problem_file, capsys):
    code = main_entry(
        [problem_file, "--mode", "fit", "--format", "json", "--log-level", "WARNING"]
    )
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is True
    assert data["parameters"]["p0"] == pytest.approx(1.0, rel=1e-3)
    assert data["parameters"]["p1"] == pytest.approx(2.0, rel=1e-3)


def test_small_search(problem_file, capsys):
    code = main_entry(
        [
            problem_file,
            "--population",
            "20",
            "--generations",
            "2",
            "--head-length",
            "3",
            "--max-parameters",
            "2",
            "--max-evaluations",
            "200",
            "--seed",
            "3",
            "--format",
            "json",
            "--log-level",
            "WARNING",
        ]
    )
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert set(data) == {"ok", "expression", "parameters", "fitness", "equation"}
    assert config.GEP_POPULATION_SIZE == 20


def test_csv_data_replaces_table(problem_file, tmp_path, capsys):
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("x,y\n0,2\n1,5\n2,8\n", encoding="utf-8")
    code = main_entry(
        [
            problem_file,
            "--mode",
            "fit",
            "--data",
            str(csv_path),
            "--format",
            "json",
            "--log-level",
            "WARNING",
        ]
    )
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["parameters"]["p0"] == pytest.approx(2.0, rel=1e-3)
    assert data["parameters"]["p1"] == pytest.approx(3.0, rel=1e-3)


def test_missing_problem_file(tmp_path, capsys):
    assert main_entry([str(tmp_path / "absent.txt"), "--log-level", "ERROR"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_malformed_problem(tmp_path, capsys):
    path = tmp_path / "bad.txt"
    path.write_text("best fit search\nwith input\nx\nwith data\n1 two\n")
    assert main_entry([str(path), "--log-level", "ERROR"]) == 1
    assert "non-numeric" in capsys.readouterr().err


def test_log_file(problem_file, tmp_path):
    log_path = tmp_path / "run.log"
    code = main_entry(
        [problem_file, "--mode", "fit", "--log-level", "INFO", "--log-file", str(log_path)]
    )
    assert code == 0
    for handler in logging_config._configured_handlers:
        handler.flush()
    assert "Fitting (p0+(p1*x))" in log_path.read_text(encoding="utf-8")


def test_interrupt_cancels_running_search(problem_file, monkeypatch, capsys):
    seen = {}

    def interrupted_search(problem, search_config, cancel_token):
        time.sleep(0.2)
        _thread.interrupt_main()
        deadline = time.time() + 5.0
        while not cancel_token.cancelled and time.time() < deadline:
            time.sleep(0.01)
        seen["cancelled"] = cancel_token.cancelled
        return gene_expression.SearchResult("", {}, float("inf"))

    monkeypatch.setattr(gene_expression, "discover_equation", interrupted_search)

    assert main_entry([problem_file, "--log-level", "ERROR"]) == 130
    assert seen == {"cancelled": True}
    assert "Interrupted" in capsys.readouterr().err
