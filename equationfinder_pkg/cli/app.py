from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from ..config import VERSION
from ..types import EquationFinderError
from ..types import ParseError
from ..types import ValidationError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="equationfinder",
        description="Find an equation, with fitted parameters, describing a data table",
    )
    parser.add_argument("problem", nargs="?", help="Problem description file")
    parser.add_argument(
        "--mode",
        type=str,
        choices=["search", "fit"],
        default="search",
        help="search: discover an expression; fit: fit the problem's expression",
    )
    parser.add_argument(
        "--data",
        type=str,
        help="CSV file with a header row replacing the problem's data table",
    )
    parser.add_argument("--population", type=int, help="Population size")
    parser.add_argument("--generations", type=int, help="Maximum generations")
    parser.add_argument("--head-length", type=int, help="Chromosome head length")
    parser.add_argument(
        "--max-parameters", type=int, help="Number of parameters p0..pN available"
    )
    parser.add_argument("--seed", type=int, help="Random seed for reproducible runs")
    parser.add_argument(
        "--workers", type=int, help="Threads evaluating expressions in parallel"
    )
    parser.add_argument(
        "-t", "--timeout", type=float, help="Stop the search after this many seconds"
    )
    parser.add_argument(
        "--max-evaluations",
        type=int,
        help="Objective evaluations allowed per parameter optimization",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["json", "human"],
        default="human",
        help="Output format: json (machine-readable) or human (human-readable)",
    )
    parser.add_argument(
        "-p", "--precision", type=int, help="Set output precision (significant digits)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level",
    )
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    parser.add_argument(
        "-v", "--version", action="store_true", help="Show program version"
    )
    return parser


def _apply_overrides(args: argparse.Namespace) -> None:
    """Apply CLI configuration overrides to the config module."""
    import equationfinder_pkg.config as _config

    if args.population and args.population > 0:
        _config.GEP_POPULATION_SIZE = int(args.population)
    if args.generations and args.generations > 0:
        _config.GEP_MAX_GENERATIONS = int(args.generations)
    if args.head_length and args.head_length > 0:
        _config.GEP_HEAD_LENGTH = int(args.head_length)
    if args.max_parameters is not None and args.max_parameters >= 0:
        _config.GEP_MAX_PARAMETERS = int(args.max_parameters)
    if args.workers and args.workers > 0:
        _config.GEP_WORKERS = int(args.workers)
    if args.timeout and args.timeout > 0:
        _config.GEP_TIMEOUT = float(args.timeout)
    if args.max_evaluations and args.max_evaluations > 0:
        _config.OPTIMIZER_MAX_EVALUATIONS = int(args.max_evaluations)
    if args.precision and args.precision > 0:
        _config.OUTPUT_PRECISION = int(args.precision)


def _search_config(args: argparse.Namespace):
    import equationfinder_pkg.config as _config

    from ..gene_expression import GEPConfig

    return GEPConfig(
        population_size=_config.GEP_POPULATION_SIZE,
        max_generations=_config.GEP_MAX_GENERATIONS,
        head_length=_config.GEP_HEAD_LENGTH,
        max_parameters=_config.GEP_MAX_PARAMETERS,
        max_evaluations=_config.OPTIMIZER_MAX_EVALUATIONS,
        workers=_config.GEP_WORKERS,
        timeout=_config.GEP_TIMEOUT or None,
        seed=args.seed,
    )


def _run_search(problem, search_config, cancel_token):
    """Run the search on a worker thread so that Ctrl-C cancels it.

    On KeyboardInterrupt the token is cancelled, the current generation is
    allowed to finish and the interrupt is re-raised.
    """
    from ..gene_expression import discover_equation

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(
            discover_equation, problem, search_config, cancel_token
        )
        try:
            while True:
                try:
                    return future.result(timeout=0.1)
                except FutureTimeoutError:
                    continue
        except KeyboardInterrupt:
            cancel_token.cancel()
            future.exception()
            raise


def main_entry(argv: list[str] | None = None) -> int:
    """
    Main entry point for the EquationFinder CLI.

    Args:
        argv: Optional command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for errors, 130 when interrupted)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    from ..logging_config import setup_logging

    setup_logging(level=args.log_level, log_file=args.log_file)

    if args.version:
        print(VERSION)
        return EXIT_OK
    if not args.problem:
        parser.print_usage(sys.stderr)
        print("Error: a problem file is required", file=sys.stderr)
        return EXIT_ERROR

    _apply_overrides(args)

    import equationfinder_pkg.config as _config

    from ..fitting import fit_expression
    from ..gene_expression import CancellationToken
    from ..problem import read_problem_data
    from ..utils import format_result
    from ..utils import load_csv_table

    cancel_token = CancellationToken()
    try:
        problem = read_problem_data(args.problem)
        if args.data:
            problem = problem.with_data_table(
                load_csv_table(args.data, problem.input_names)
            )
        problem.validate()

        if args.mode == "fit":
            result = fit_expression(
                problem, max_evaluations=_config.OPTIMIZER_MAX_EVALUATIONS
            )
        else:
            result = _run_search(problem, _search_config(args), cancel_token)
    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except (ParseError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (EquationFinderError, OSError) as e:
        logger.error(f"Run failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(format_result(result, _config.OUTPUT_PRECISION, args.format))
    return EXIT_OK
