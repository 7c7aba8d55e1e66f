"""Centralized configuration for EquationFinder.

This module defines:
- Gene Expression Programming defaults (population, head length, operator rates)
- Parameter optimizer limits
- Output formatting options
- Regex patterns for parameter and variable names

Configuration can be overridden via:
- CLI flags (see cli/app.py)
- Environment variables (prefixed with EQUATIONFINDER_)
"""

import os
import re

VERSION = "0.3.0"

# ============================================================================
# GENE EXPRESSION PROGRAMMING CONFIGURATION
# ============================================================================

GEP_POPULATION_SIZE = int(
    os.getenv("EQUATIONFINDER_GEP_POPULATION_SIZE", "1000")
)  # Chromosomes in the initial population
GEP_MAX_GENERATIONS = int(
    os.getenv("EQUATIONFINDER_GEP_MAX_GENERATIONS", "1000")
)  # Hard generation limit
GEP_HEAD_LENGTH = int(
    os.getenv("EQUATIONFINDER_GEP_HEAD_LENGTH", "5")
)  # Head symbols per chromosome (tail is derived from it)
GEP_MAX_PARAMETERS = int(
    os.getenv("EQUATIONFINDER_GEP_MAX_PARAMETERS", "4")
)  # Parameter indices p0..p(n-1) available to the alphabet
GEP_MIN_PARAMETERS = int(
    os.getenv("EQUATIONFINDER_GEP_MIN_PARAMETERS", "2")
)  # Expressions with fewer free parameters are not evaluated
GEP_FITNESS_THRESHOLD = float(
    os.getenv("EQUATIONFINDER_GEP_FITNESS_THRESHOLD", "1e-6")
)  # Stop as soon as the best fitness drops below this
GEP_MATING_RATIO = float(
    os.getenv("EQUATIONFINDER_GEP_MATING_RATIO", "0.5")
)  # Tournaments per generation, as a fraction of distinct expressions
GEP_SELECTION_PRESSURE = int(
    os.getenv("EQUATIONFINDER_GEP_SELECTION_PRESSURE", "5")
)  # Contestants per tournament
GEP_TIMEOUT = float(os.getenv("EQUATIONFINDER_GEP_TIMEOUT", "0"))  # Seconds, 0 = none
GEP_WORKERS = int(
    os.getenv("EQUATIONFINDER_GEP_WORKERS", "1")
)  # Threads evaluating distinct expressions

# Relative weights of the genetic operators (normalized before use)
GEP_MUTATION_PROBABILITY = float(
    os.getenv("EQUATIONFINDER_GEP_MUTATION_PROBABILITY", "0.044")
)
GEP_INVERSION_PROBABILITY = float(
    os.getenv("EQUATIONFINDER_GEP_INVERSION_PROBABILITY", "0.1")
)
GEP_TRANSPOSITION_PROBABILITY = float(
    os.getenv("EQUATIONFINDER_GEP_TRANSPOSITION_PROBABILITY", "0.1")
)
GEP_ONE_POINT_RECOMBINATION_PROBABILITY = float(
    os.getenv("EQUATIONFINDER_GEP_ONE_POINT_RECOMBINATION_PROBABILITY", "0.3")
)
GEP_TWO_POINT_RECOMBINATION_PROBABILITY = float(
    os.getenv("EQUATIONFINDER_GEP_TWO_POINT_RECOMBINATION_PROBABILITY", "0.3")
)

# ============================================================================
# PARAMETER OPTIMIZER CONFIGURATION
# ============================================================================

OPTIMIZER_MAX_EVALUATIONS = int(
    os.getenv("EQUATIONFINDER_OPTIMIZER_MAX_EVALUATIONS", "10000")
)  # Objective evaluations per expression
OPTIMIZER_XTOL = float(os.getenv("EQUATIONFINDER_OPTIMIZER_XTOL", "1e-8"))
OPTIMIZER_FTOL = float(os.getenv("EQUATIONFINDER_OPTIMIZER_FTOL", "1e-10"))
OPTIMIZER_INITIAL_GUESS = float(
    os.getenv("EQUATIONFINDER_OPTIMIZER_INITIAL_GUESS", "1.0")
)  # Every parameter starts from this value

# Cache sizes
CACHE_SIZE_COMPILE = int(
    os.getenv("EQUATIONFINDER_CACHE_SIZE_COMPILE", "4096")
)  # Compiled expressions kept in memory

# Output configuration
OUTPUT_PRECISION = int(os.getenv("EQUATIONFINDER_OUTPUT_PRECISION", "10"))

DEFAULT_SEARCH_METRIC = os.getenv("EQUATIONFINDER_DEFAULT_SEARCH_METRIC", "RSS")

PARAMETER_PREFIX = "p"
PARAMETER_NAME_RE = re.compile(r"^p(\d+)$")
VAR_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
