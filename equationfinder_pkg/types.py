"""Exception types shared across the EquationFinder package."""

from __future__ import annotations


class EquationFinderError(Exception):
    """Base class for all EquationFinder errors."""


class ParseError(EquationFinderError):
    """Malformed expression, constraint, or problem text.

    Raised immediately to the caller and never retried.
    """


class ValidationError(EquationFinderError):
    """Problem data that parses but is inconsistent or unsupported."""


class StructuralError(EquationFinderError):
    """A chromosome violates its head/tail structure or cannot be decoded.

    Decoding a chromosome built by this package never raises this; seeing it
    means a chromosome was constructed by hand with a tail that is too short.
    """


class DomainError(EquationFinderError):
    """Arithmetic or domain failure while evaluating an expression.

    Examples are the logarithm of a negative number or a division by zero.
    The search loop recovers from it by scoring the candidate +inf.
    """
