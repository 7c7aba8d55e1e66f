"""Genetic operators on Karva chromosomes.

Every operator is pure: it takes explicit indices, leaves its inputs
untouched and returns chromosomes of the same total length. The random_*
drivers pick the indices from an explicit random.Random so runs are
reproducible. Operators never check whether the result decodes to a
meaningful expression.
"""

from __future__ import annotations

import random
from typing import Callable
from typing import Sequence
from typing import TypeVar

from .alphabet import GeneAlphabet
from .chromosome import Chromosome

T = TypeVar("T")


def _check_run(chromosome: Chromosome, start: int, length: int) -> None:
    if start < 0 or length < 0 or start + length > chromosome.length:
        raise ValueError(
            f"Run [{start}, {start + length}) outside chromosome of length "
            f"{chromosome.length}"
        )


def _within_one_region(chromosome: Chromosome, start: int, length: int) -> bool:
    if length == 0:
        return True
    end = start + length - 1
    return chromosome.is_head_index(start) == chromosome.is_head_index(end)


def mutate(
    chromosome: Chromosome,
    start: int,
    length: int,
    alphabet: GeneAlphabet,
    rng: random.Random,
) -> Chromosome:
    """Replace genes [start, start + length) with freshly sampled symbols.

    Head positions are sampled from the head distribution and tail positions
    from the terminal-only tail distribution.
    """
    _check_run(chromosome, start, length)
    symbols = [
        alphabet.sample_head_symbol(rng)
        if chromosome.is_head_index(index)
        else alphabet.sample_tail_symbol(rng)
        for index in range(start, start + length)
    ]
    return chromosome.replace(start, symbols)


def invert(chromosome: Chromosome, start: int, length: int) -> Chromosome:
    """Reverse genes [start, start + length).

    Raises:
        ValueError: If the run straddles the head/tail boundary.
    """
    _check_run(chromosome, start, length)
    if not _within_one_region(chromosome, start, length):
        raise ValueError("Inversion must lie entirely within the head or the tail")
    genes = chromosome.genes
    return chromosome.replace(start, genes[start : start + length][::-1])


def transpose(
    chromosome: Chromosome, origin: int, target: int, length: int
) -> Chromosome:
    """Copy genes [origin, origin + length) over [target, target + length).

    The source run is read from the parent, so overlapping runs copy the
    original genes.

    Raises:
        ValueError: If either run straddles the head/tail boundary or they
            lie in different regions.
    """
    _check_run(chromosome, origin, length)
    _check_run(chromosome, target, length)
    if length > 0 and not (
        _within_one_region(chromosome, origin, length)
        and _within_one_region(chromosome, target, length)
        and chromosome.is_head_index(origin) == chromosome.is_head_index(target)
    ):
        raise ValueError("Transposition must stay within the head or the tail")
    genes = chromosome.genes
    return chromosome.replace(target, genes[origin : origin + length])


def _check_head_lengths(first: Chromosome, second: Chromosome) -> None:
    if first.head_length != second.head_length:
        raise ValueError(
            f"Cannot recombine heads of length {first.head_length} "
            f"and {second.head_length}"
        )


def _swap(
    first: Chromosome, second: Chromosome, start: int, end: int
) -> tuple[Chromosome, Chromosome]:
    genes1 = list(first.genes)
    genes2 = list(second.genes)
    genes1[start:end], genes2[start:end] = genes2[start:end], genes1[start:end]
    return first.with_genes(genes1), second.with_genes(genes2)


def recombine_one_point(
    first: Chromosome, second: Chromosome, point: int
) -> tuple[Chromosome, Chromosome]:
    """Swap every gene from point to the end of the shorter parent.

    Returns the parents unchanged when point is outside [0, min_length).
    """
    _check_head_lengths(first, second)
    min_length = min(first.length, second.length)
    if not 0 <= point < min_length:
        return first, second
    return _swap(first, second, point, min_length)


def recombine_two_point(
    first: Chromosome, second: Chromosome, point1: int, point2: int
) -> tuple[Chromosome, Chromosome]:
    """Swap genes [point1, point2).

    Returns the parents unchanged unless 0 <= point1, point2 < min_length
    and point2 > point1 + 1.
    """
    _check_head_lengths(first, second)
    min_length = min(first.length, second.length)
    if point1 < 0 or point2 >= min_length or point2 <= point1 + 1:
        return first, second
    return _swap(first, second, point1, point2)


# Random drivers


def _random_region(chromosome: Chromosome, rng: random.Random) -> tuple[int, int]:
    """Index range [min, max] of the head or the tail, chosen by a coin flip."""
    if rng.random() < 0.5:
        return 0, chromosome.head_length - 1
    return chromosome.head_length, chromosome.length - 1


def random_mutation(
    chromosome: Chromosome, alphabet: GeneAlphabet, rng: random.Random
) -> Chromosome:
    length = chromosome.length
    start = rng.randrange(length - 1)
    run = rng.randrange(length - start - 1) + 1
    return mutate(chromosome, start, run, alphabet, rng)


def random_inversion(chromosome: Chromosome, rng: random.Random) -> Chromosome | None:
    """Invert a random run of the head or the tail; None if it is too short."""
    low, high = _random_region(chromosome, rng)
    if high - low <= 0:
        return None
    start = rng.randrange(high - low) + low
    run = rng.randrange(high - start) + 1
    return invert(chromosome, start, run)


def random_transposition(
    chromosome: Chromosome, rng: random.Random
) -> Chromosome | None:
    """Transpose a random run inside the head or the tail; None if the chosen
    region is too short to hold distinct origin and target runs."""
    low, high = _random_region(chromosome, rng)
    if high - (low + 2) <= 0:
        return None
    origin = rng.randrange(high - (low + 2)) + low
    target = rng.randrange(high - (origin + 1)) + origin + 1
    run = rng.randrange(high - target) + 1
    return transpose(chromosome, origin, target, run)


def random_one_point_recombination(
    first: Chromosome, second: Chromosome, rng: random.Random
) -> tuple[Chromosome, Chromosome]:
    min_length = min(first.length, second.length)
    point = rng.randrange(min_length - 1)
    return recombine_one_point(first, second, point)


def random_two_point_recombination(
    first: Chromosome, second: Chromosome, rng: random.Random
) -> tuple[Chromosome, Chromosome]:
    min_length = min(first.length, second.length)
    point1 = rng.randrange(min_length - 1)
    point2 = rng.randrange(min_length - point1 - 1) + point1
    return recombine_two_point(first, second, point1, point2)


def tournament_selection(
    candidates: Sequence[T],
    fitness_of: Callable[[T], float],
    selection_pressure: int,
    rng: random.Random,
) -> T:
    """Select a candidate by tournament.

    Args:
        candidates: Pool to draw from
        fitness_of: Fitness of a candidate (lower is better)
        selection_pressure: Contestants, drawn without replacement
        rng: Random source

    Returns:
        The contestant with the lowest fitness; ties go to the one drawn first
    """
    if not candidates:
        raise ValueError("Tournament needs at least one candidate")
    contestants = rng.sample(list(candidates), min(selection_pressure, len(candidates)))
    return min(contestants, key=fitness_of)
