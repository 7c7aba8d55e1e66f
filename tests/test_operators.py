import random
import unittest

import pytest

from equationfinder_pkg.gene_expression import Chromosome
from equationfinder_pkg.gene_expression import GeneAlphabet
from equationfinder_pkg.gene_expression import invert
from equationfinder_pkg.gene_expression import is_terminal
from equationfinder_pkg.gene_expression import mutate
from equationfinder_pkg.gene_expression import random_inversion
from equationfinder_pkg.gene_expression import random_mutation
from equationfinder_pkg.gene_expression import random_one_point_recombination
from equationfinder_pkg.gene_expression import random_transposition
from equationfinder_pkg.gene_expression import random_two_point_recombination
from equationfinder_pkg.gene_expression import recombine_one_point
from equationfinder_pkg.gene_expression import recombine_two_point
from equationfinder_pkg.gene_expression import tournament_selection
from equationfinder_pkg.gene_expression import transpose

INPUTS = ["x", "y"]


def make(tokens, head_length=5):
    return Chromosome.from_tokens(tokens, INPUTS, head_length=head_length)


FIRST = make(["+", "*", "-", "x", "y", "p0", "p1", "x", "y", "p0", "p1"])
SECOND = make(["/", "sin", "x", "p2", "+", "y", "y", "p3", "x", "p1", "x"])


def assert_well_formed(chromosome, like):
    assert chromosome.head_length == like.head_length
    assert chromosome.length == like.length
    assert all(is_terminal(s) for s in chromosome.tail)


class TestInversion(unittest.TestCase):
    def test_reverses_run(self):
        inverted = invert(FIRST, 1, 3)
        self.assertEqual(inverted.tokens()[:5], ["+", "x", "-", "*", "y"])

    def test_self_inverse(self):
        for start, length in [(0, 5), (1, 2), (5, 6), (6, 3)]:
            self.assertEqual(invert(invert(FIRST, start, length), start, length), FIRST)

    def test_run_crossing_boundary_rejected(self):
        with self.assertRaises(ValueError):
            invert(FIRST, 3, 4)


class TestTransposition(unittest.TestCase):
    def test_copy_with_overwrite(self):
        transposed = transpose(FIRST, 0, 2, 2)
        self.assertEqual(transposed.tokens()[:5], ["+", "*", "+", "*", "y"])
        self.assertEqual(transposed.tail, FIRST.tail)

    def test_overlapping_runs_read_from_parent(self):
        transposed = transpose(FIRST, 0, 1, 3)
        self.assertEqual(transposed.tokens()[:5], ["+", "+", "*", "-", "y"])

    def test_tail_transposition_keeps_tail_terminal(self):
        transposed = transpose(FIRST, 5, 8, 3)
        self.assertEqual(transposed.tokens()[5:], ["p0", "p1", "x", "p0", "p1", "x"])

    def test_cross_region_rejected(self):
        with self.assertRaises(ValueError):
            transpose(FIRST, 3, 5, 2)


class TestRecombination(unittest.TestCase):
    def test_one_point_swaps_suffix(self):
        child1, child2 = recombine_one_point(FIRST, SECOND, 2)
        self.assertEqual(child1.genes, FIRST.genes[:2] + SECOND.genes[2:])
        self.assertEqual(child2.genes, SECOND.genes[:2] + FIRST.genes[2:])

    def test_one_point_out_of_range_is_noop(self):
        self.assertEqual(recombine_one_point(FIRST, SECOND, 11), (FIRST, SECOND))
        self.assertEqual(recombine_one_point(FIRST, SECOND, -1), (FIRST, SECOND))

    def test_two_point_swaps_middle(self):
        child1, child2 = recombine_two_point(FIRST, SECOND, 1, 4)
        self.assertEqual(
            child1.genes, FIRST.genes[:1] + SECOND.genes[1:4] + FIRST.genes[4:]
        )
        self.assertEqual(
            child2.genes, SECOND.genes[:1] + FIRST.genes[1:4] + SECOND.genes[4:]
        )

    def test_two_point_requires_gap(self):
        self.assertEqual(recombine_two_point(FIRST, SECOND, 3, 4), (FIRST, SECOND))
        self.assertEqual(recombine_two_point(FIRST, SECOND, 3, 3), (FIRST, SECOND))
        self.assertEqual(recombine_two_point(FIRST, SECOND, 0, 11), (FIRST, SECOND))

    def test_head_lengths_must_match(self):
        other = make(["+", "x", "y", "p0", "p1"], head_length=2)
        with self.assertRaises(ValueError):
            recombine_one_point(FIRST, other, 1)


def test_mutation_only_touches_run():
    alphabet = GeneAlphabet(INPUTS, max_parameters=4)
    rng = random.Random(11)
    for _ in range(50):
        mutant = mutate(FIRST, 3, 4, alphabet, rng)
        assert_well_formed(mutant, FIRST)
        assert mutant.genes[:3] == FIRST.genes[:3]
        assert mutant.genes[7:] == FIRST.genes[7:]


@pytest.mark.parametrize("seed", range(20))
def test_random_drivers_preserve_structure(seed):
    alphabet = GeneAlphabet(INPUTS, max_parameters=4)
    rng = random.Random(seed)

    assert_well_formed(random_mutation(FIRST, alphabet, rng), FIRST)

    inverted = random_inversion(FIRST, rng)
    if inverted is not None:
        assert_well_formed(inverted, FIRST)

    transposed = random_transposition(FIRST, rng)
    if transposed is not None:
        assert_well_formed(transposed, FIRST)

    for driver in (random_one_point_recombination, random_two_point_recombination):
        children = driver(FIRST, SECOND, rng)
        assert len(children) == 2
        assert_well_formed(children[0], FIRST)
        assert_well_formed(children[1], SECOND)


def test_random_transposition_needs_room():
    tiny = Chromosome.from_tokens(["sin", "x", "y"], INPUTS, head_length=1)
    rng = random.Random(0)
    assert all(random_transposition(tiny, rng) is None for _ in range(20))


def test_operators_do_not_modify_parents():
    before = FIRST.tokens()
    invert(FIRST, 0, 3)
    transpose(FIRST, 0, 2, 2)
    recombine_one_point(FIRST, SECOND, 1)
    assert FIRST.tokens() == before


class TestTournament:
    def test_full_tournament_returns_minimum(self):
        fitness = {"a": 3.0, "b": 1.0, "c": 2.0}
        rng = random.Random(0)
        for _ in range(10):
            assert tournament_selection(list(fitness), fitness.get, 5, rng) == "b"

    def test_winner_beats_or_ties_every_contestant_it_could_meet(self):
        fitness = {name: float(i) for i, name in enumerate("abcdefghij")}
        rng = random.Random(4)
        winners = [tournament_selection(list(fitness), fitness.get, 3, rng) for _ in range(50)]
        # With three contestants out of ten the two worst can never win
        assert not {"i", "j"} & set(winners)

    def test_empty_pool_rejected(self):
        with pytest.raises(ValueError):
            tournament_selection([], lambda c: 0.0, 5, random.Random(0))
