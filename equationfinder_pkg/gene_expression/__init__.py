"""Gene Expression Programming Module.

This module searches for the structure of an equation with Gene Expression
Programming: fixed-length linear chromosomes (Karva notation) decode into
expression trees, whose free parameters p0, p1, ... are fitted numerically.

Main Components:
    - GeneAlphabet / Chromosome: genotype representation
    - decode / decode_to_infix: genotype to expression text
    - Genetic operators: mutation, inversion, transposition, recombination
    - GeneExpressionSearch: the evolutionary loop

Example:
    >>> from equationfinder_pkg.gene_expression import discover_equation
    >>> from equationfinder_pkg.problem import read_problem_data
    >>> problem = read_problem_data("problem.txt")
    >>> result = discover_equation(problem)
    >>> print(result.expression, result.parameters, result.fitness)
"""

from .alphabet import OPERATOR_ARITY
from .alphabet import SIMPLE_BINARY_OPERATORS
from .alphabet import GeneAlphabet
from .alphabet import Input
from .alphabet import Operator
from .alphabet import Parameter
from .alphabet import arity
from .alphabet import is_terminal
from .alphabet import symbol_from_token
from .alphabet import tail_length_for
from .chromosome import Chromosome
from .decoder import Node
from .decoder import coding_length
from .decoder import decode
from .decoder import decode_to_infix
from .decoder import extract_free_parameters
from .decoder import to_infix
from .engine import CancellationToken
from .engine import GeneExpressionSearch
from .engine import GEPConfig
from .engine import SearchResult
from .engine import discover_equation
from .engine import search
from .evaluation import Evaluation
from .evaluation import OptimizationProblem
from .evaluation import build_optimization_problems
from .evaluation import evaluate_problem
from .evaluation import evaluate_problems
from .operators import invert
from .operators import mutate
from .operators import random_inversion
from .operators import random_mutation
from .operators import random_one_point_recombination
from .operators import random_transposition
from .operators import random_two_point_recombination
from .operators import recombine_one_point
from .operators import recombine_two_point
from .operators import tournament_selection
from .operators import transpose

__all__ = [
    # Alphabet
    "OPERATOR_ARITY",
    "SIMPLE_BINARY_OPERATORS",
    "GeneAlphabet",
    "Operator",
    "Input",
    "Parameter",
    "arity",
    "is_terminal",
    "symbol_from_token",
    "tail_length_for",
    # Chromosomes and decoding
    "Chromosome",
    "Node",
    "decode",
    "to_infix",
    "decode_to_infix",
    "coding_length",
    "extract_free_parameters",
    # Genetic Operators
    "mutate",
    "invert",
    "transpose",
    "recombine_one_point",
    "recombine_two_point",
    "random_mutation",
    "random_inversion",
    "random_transposition",
    "random_one_point_recombination",
    "random_two_point_recombination",
    "tournament_selection",
    # Evaluation
    "OptimizationProblem",
    "Evaluation",
    "build_optimization_problems",
    "evaluate_problem",
    "evaluate_problems",
    # Main Algorithm
    "GEPConfig",
    "GeneExpressionSearch",
    "CancellationToken",
    "SearchResult",
    "search",
    "discover_equation",
]
