"""Decoding of chromosomes into expression trees and infix text.

Decoding reads the genes breadth-first: the first gene is the root, and each
node taken from the queue consumes as many of the following genes as its
arity requires. Rendering then walks the tree in post-order.

Example:
    >>> c = Chromosome.from_tokens(["+", "a", "*", "b", "c"])
    >>> decode_to_infix(c)
    '(a+(b*c))'
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from dataclasses import field
from typing import Iterable

from ..evaluator import extract_variables
from ..types import StructuralError
from .alphabet import SIMPLE_BINARY_OPERATORS
from .alphabet import Operator
from .alphabet import Symbol
from .alphabet import arity
from .chromosome import Chromosome


@dataclass(eq=False)
class Node:
    """A node of a decoded expression tree.

    Attributes:
        value: Gene symbol held by this node
        children: Operands, as many as the arity of value
    """

    value: Symbol
    children: list[Node] = field(default_factory=list)

    def count_nodes(self) -> int:
        return 1 + sum(child.count_nodes() for child in self.children)

    def depth(self) -> int:
        if not self.children:
            return 1
        return 1 + max(child.depth() for child in self.children)


def decode(chromosome: Chromosome) -> Node:
    """Build the expression tree encoded by a chromosome.

    Trailing genes that are not reached are ignored.

    Raises:
        StructuralError: If an operator has no genes left to consume.
    """
    genes = chromosome.genes
    root = Node(genes[0])
    queue = deque([root])
    index = 1
    while queue:
        node = queue.popleft()
        for _ in range(arity(node.value)):
            if index >= len(genes):
                raise StructuralError(
                    f"Operator {node.value} ran out of genes in {chromosome}"
                )
            child = Node(genes[index])
            index += 1
            node.children.append(child)
            queue.append(child)
    return root


def to_infix(node: Node) -> str:
    """Render a tree as canonical infix text.

    The four arithmetic operators render as "(left OP right)"; every other
    operator renders as "name(arg0,arg1,...)".
    """
    operands = [to_infix(child) for child in node.children]
    value = node.value
    if not isinstance(value, Operator):
        return str(value)
    if value.name in SIMPLE_BINARY_OPERATORS:
        return f"({operands[0]}{value.name}{operands[1]})"
    return f"{value.name}({','.join(operands)})"


def decode_to_infix(chromosome: Chromosome) -> str:
    """Canonical expression text of a chromosome."""
    return to_infix(decode(chromosome))


def coding_length(chromosome: Chromosome) -> int:
    """Number of genes actually read by the decoder (the open reading frame)."""
    return decode(chromosome).count_nodes()


def extract_free_parameters(expression: str, input_names: Iterable[str]) -> set[str]:
    """Names in the expression text that are not inputs."""
    return extract_variables(expression) - set(input_names)
