"""Fixed-length linear chromosome (Karva expression).

A chromosome is a head, which may hold any symbol, followed by a tail that
holds terminals only. The tail length t = h * (max_arity - 1) + 1 guarantees
that decoding never runs out of operands whatever operators fill the head.

Chromosomes are immutable: every edit returns a new instance.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable
from typing import Sequence

from ..types import StructuralError
from ..types import ValidationError
from .alphabet import GeneAlphabet
from .alphabet import Input
from .alphabet import Operator
from .alphabet import Symbol
from .alphabet import is_terminal
from .alphabet import symbol_from_token


@dataclass(frozen=True)
class Chromosome:
    """Head and tail gene sequences.

    Attributes:
        head: Symbols of any kind (operators or terminals)
        tail: Terminal symbols only
    """

    head: tuple[Symbol, ...]
    tail: tuple[Symbol, ...]

    def __post_init__(self):
        object.__setattr__(self, "head", tuple(self.head))
        object.__setattr__(self, "tail", tuple(self.tail))
        if not self.head:
            raise StructuralError("A chromosome needs a non-empty head")
        for symbol in self.tail:
            if not is_terminal(symbol):
                raise StructuralError(f"Operator {symbol} found in chromosome tail")

    @property
    def head_length(self) -> int:
        return len(self.head)

    @property
    def tail_length(self) -> int:
        return len(self.tail)

    @property
    def length(self) -> int:
        return len(self.head) + len(self.tail)

    def __len__(self) -> int:
        return self.length

    @property
    def genes(self) -> tuple[Symbol, ...]:
        """Head followed by tail."""
        return self.head + self.tail

    def gene_at(self, index: int) -> Symbol:
        if index < len(self.head):
            return self.head[index]
        return self.tail[index - len(self.head)]

    def is_head_index(self, index: int) -> bool:
        return 0 <= index < len(self.head)

    def with_genes(self, genes: Sequence[Symbol]) -> Chromosome:
        """New chromosome with the same head/tail split and the given genes."""
        if len(genes) != self.length:
            raise StructuralError(
                f"Expected {self.length} genes, got {len(genes)}"
            )
        genes = tuple(genes)
        return Chromosome(genes[: self.head_length], genes[self.head_length :])

    def replace(self, start: int, symbols: Sequence[Symbol]) -> Chromosome:
        """New chromosome with genes [start, start + len(symbols)) overwritten."""
        genes = list(self.genes)
        genes[start : start + len(symbols)] = symbols
        return self.with_genes(genes)

    def tokens(self) -> list[str]:
        return [str(symbol) for symbol in self.genes]

    @staticmethod
    def random(
        alphabet: GeneAlphabet, head_length: int, rng: random.Random
    ) -> Chromosome:
        """Generate a random chromosome with a correctly sized tail.

        Args:
            alphabet: Symbols to sample from
            head_length: Number of head genes
            rng: Random source

        Returns:
            New random Chromosome
        """
        if head_length < 1:
            raise StructuralError("head_length must be at least 1")
        head = tuple(alphabet.sample_head_symbol(rng) for _ in range(head_length))
        tail = tuple(
            alphabet.sample_tail_symbol(rng)
            for _ in range(alphabet.tail_length(head_length))
        )
        return Chromosome(head, tail)

    @staticmethod
    def from_tokens(
        tokens: Iterable[str],
        input_names: Iterable[str] | None = None,
        head_length: int | None = None,
    ) -> Chromosome:
        """Build a chromosome from textual genes, e.g. ["+", "x", "p0"].

        Args:
            tokens: Gene tokens in head-then-tail order
            input_names: Known input names; when omitted every token that is
                neither an operator nor a parameter becomes an input, numbered
                in order of first appearance
            head_length: Head size; defaults to everything up to the last
                operator token (at least one gene)

        Returns:
            New Chromosome
        """
        tokens = list(tokens)
        if input_names is None:
            names: list[str] = []
            symbols = []
            for token in tokens:
                try:
                    symbol = symbol_from_token(token, names)
                except ValidationError:
                    names.append(token)
                    symbol = Input(len(names) - 1, token)
                symbols.append(symbol)
        else:
            names = list(input_names)
            symbols = [symbol_from_token(token, names) for token in tokens]

        if head_length is None:
            operator_positions = [
                i for i, symbol in enumerate(symbols) if isinstance(symbol, Operator)
            ]
            head_length = operator_positions[-1] + 1 if operator_positions else 1

        return Chromosome(tuple(symbols[:head_length]), tuple(symbols[head_length:]))

    def __str__(self) -> str:
        return "[" + ", ".join(map(str, self.head)) + "],[" + ", ".join(
            map(str, self.tail)
        ) + "]"
