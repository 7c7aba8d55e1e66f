import unittest

from equationfinder_pkg.gene_expression import Chromosome
from equationfinder_pkg.gene_expression import coding_length
from equationfinder_pkg.gene_expression import decode
from equationfinder_pkg.gene_expression import decode_to_infix
from equationfinder_pkg.gene_expression import extract_free_parameters
from equationfinder_pkg.types import StructuralError


def infix(tokens):
    return decode_to_infix(Chromosome.from_tokens(tokens))


class TestKarvaToInfix(unittest.TestCase):
    def test_simple_sum(self):
        self.assertEqual(infix(["+", "a", "b"]), "(a+b)")

    def test_unary_function(self):
        self.assertEqual(infix(["sin", "x"]), "sin(x)")

    def test_binary_function_renders_as_call(self):
        self.assertEqual(infix(["hypot", "a", "b"]), "hypot(a,b)")

    def test_breadth_first_nesting(self):
        self.assertEqual(infix(["+", "a", "*", "b", "c"]), "(a+(b*c))")

    def test_deep_nesting(self):
        self.assertEqual(
            infix(["sin", "*", "-", "+", "a", "b", "c", "d"]), "sin(((a-b)*(c+d)))"
        )

    def test_two_operators_on_second_level(self):
        self.assertEqual(infix(["+", "/", "*", "a", "b", "c", "d"]), "((a/b)+(c*d))")

    def test_mixed_arities(self):
        tokens = ["sin", "*", "b", "*", "*", "+", "b", "a", "cos", "b", "a"]
        self.assertEqual(infix(tokens), "sin((b*((b*a)*(cos(a)+b))))")

    def test_ternary_function(self):
        self.assertEqual(infix(["clamp", "x", "p0", "p1"]), "clamp(x,p0,p1)")

    def test_unused_trailing_genes_are_ignored(self):
        chromosome = Chromosome.from_tokens(["+", "a", "b", "c", "d"], head_length=1)
        self.assertEqual(decode_to_infix(chromosome), "(a+b)")
        self.assertEqual(coding_length(chromosome), 3)

    def test_terminal_root(self):
        chromosome = Chromosome.from_tokens(["x", "p0", "p1"], ["x"], head_length=1)
        self.assertEqual(decode_to_infix(chromosome), "x")
        self.assertEqual(decode(chromosome).children, [])


class TestDecoderErrors(unittest.TestCase):
    def test_operator_without_operands(self):
        chromosome = Chromosome.from_tokens(["+", "a"])
        with self.assertRaises(StructuralError):
            decode(chromosome)


def test_tree_shape():
    root = decode(Chromosome.from_tokens(["sin", "*", "-", "+", "a", "b", "c", "d"]))
    assert str(root.value) == "sin"
    assert root.count_nodes() == 8
    assert root.depth() == 4


def test_extract_free_parameters():
    assert extract_free_parameters("(p0*sin((x+p1)))", ["x"]) == {"p0", "p1"}
    assert extract_free_parameters("(x+y)", ["x", "y"]) == set()
