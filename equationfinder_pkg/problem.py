"""Problem descriptions and the problem file format.

A problem file is line oriented. Blank lines and lines starting with "#" are
ignored. Example:

    upper bound search
    # optional expression, used by fitting mode
    (p0*x+p1)
    subject to
    p0 >= 0
    p0 + p1 <= 10
    with input
    x
    with data
    1 2.1
    2 3.9
    with search metric
    RSS

The first content line is a search mode keyword ("best fit search",
"upper bound search", "lower bound search"); any other first line is taken as
the expression of a best fit search. Each data row holds the input values
followed by the expected output.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Sequence

import numpy as np

from .config import DEFAULT_SEARCH_METRIC
from .config import PARAMETER_NAME_RE
from .config import VAR_NAME_RE
from .objectives import canonical_metric_name
from .types import ParseError
from .types import ValidationError

logger = logging.getLogger(__name__)


class SearchMode(Enum):
    APPROXIMATE = "best fit search"
    UPPER_BOUND = "upper bound search"
    LOWER_BOUND = "lower bound search"


SUBJECT_TO = "subject to"
WITH_INPUT = "with input"
WITH_DATA = "with data"
WITH_SEARCH_METRIC = "with search metric"

SECTION_HEADERS = (SUBJECT_TO, WITH_INPUT, WITH_DATA, WITH_SEARCH_METRIC)

WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ProblemData:
    """Everything needed to search for or fit an equation.

    Attributes:
        search_mode: Best fit, upper bound or lower bound search
        expression: Expression to fit (None for a pure search)
        constraints: Constraint lines, unparsed
        input_names: Names of the input columns
        data_table: Rows of input values followed by the expected output
        search_metric: Short code or long name of the error metric
    """

    search_mode: SearchMode = SearchMode.APPROXIMATE
    expression: str | None = None
    constraints: tuple[str, ...] = ()
    input_names: tuple[str, ...] = ()
    data_table: np.ndarray = field(default=None, compare=False, repr=False)
    search_metric: str = DEFAULT_SEARCH_METRIC

    def __post_init__(self):
        object.__setattr__(self, "constraints", tuple(self.constraints))
        object.__setattr__(self, "input_names", tuple(self.input_names))
        table = np.empty((0, len(self.input_names) + 1))
        if self.data_table is not None:
            table = np.asarray(self.data_table, dtype=float)
            if table.ndim == 1:
                table = table.reshape(1, -1)
        object.__setattr__(self, "data_table", table)

    @property
    def inputs(self) -> np.ndarray:
        """Input columns, shape (n_rows, n_inputs)."""
        return self.data_table[:, : len(self.input_names)]

    @property
    def expected(self) -> np.ndarray:
        """Expected outputs, shape (n_rows,)."""
        return self.data_table[:, len(self.input_names)]

    @property
    def row_count(self) -> int:
        return self.data_table.shape[0]

    def validate(self) -> ProblemData:
        """Check the problem is consistent; returns self for chaining.

        Raises:
            ValidationError: On missing inputs or data, a malformed input
                name, a row of the wrong width or an unknown metric.
        """
        if not self.input_names:
            raise ValidationError("No input names given")
        for name in self.input_names:
            if not VAR_NAME_RE.match(name):
                raise ValidationError(f"Invalid input name {name!r}")
            if PARAMETER_NAME_RE.match(name):
                raise ValidationError(
                    f"Input name {name!r} is reserved for parameters"
                )
        if len(set(self.input_names)) != len(self.input_names):
            raise ValidationError("Duplicate input names")
        if self.row_count == 0:
            raise ValidationError("No data rows given")
        width = len(self.input_names) + 1
        if self.data_table.shape[1] != width:
            raise ValidationError(
                f"Data rows have {self.data_table.shape[1]} values, "
                f"expected {width} ({len(self.input_names)} inputs and the output)"
            )
        canonical_metric_name(self.search_metric)
        return self

    def with_data_table(self, data_table: np.ndarray) -> ProblemData:
        return replace(self, data_table=data_table)

    def with_expression(self, expression: str | None) -> ProblemData:
        return replace(self, expression=expression)


def _parse_mode(line: str) -> SearchMode | None:
    for mode in SearchMode:
        if line.lower() == mode.value:
            return mode
    return None


def _parse_row(line: str, line_number: int) -> list[float]:
    try:
        return [float(value) for value in WHITESPACE_RE.split(line)]
    except ValueError as e:
        raise ParseError(f"Line {line_number}: non-numeric data {line!r}") from e


def parse_problem_lines(lines: Sequence[str]) -> ProblemData:
    """Parse the lines of a problem file (see module docstring)."""
    search_mode = None
    expression = None
    constraints: list[str] = []
    input_names: list[str] = []
    rows: list[list[float]] = []
    search_metric = None

    section = None
    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if section is None:
            section = "objective"
            search_mode = _parse_mode(line)
            if search_mode is None:
                search_mode = SearchMode.APPROXIMATE
                expression = line
            continue

        header = next((h for h in SECTION_HEADERS if line.lower().startswith(h)), None)
        if header is not None:
            section = header
            continue

        if section == "objective":
            expression = line
        elif section == SUBJECT_TO:
            constraints.append(line)
        elif section == WITH_INPUT:
            input_names.extend(WHITESPACE_RE.split(line))
        elif section == WITH_DATA:
            row = _parse_row(line, line_number)
            if rows and len(row) != len(rows[0]):
                raise ValidationError(
                    f"Line {line_number}: row has {len(row)} values, "
                    f"previous rows have {len(rows[0])}"
                )
            rows.append(row)
        elif section == WITH_SEARCH_METRIC:
            search_metric = line

    if section is None:
        raise ParseError("Problem description is empty")

    problem = ProblemData(
        search_mode=search_mode,
        expression=expression,
        constraints=tuple(constraints),
        input_names=tuple(input_names),
        data_table=np.array(rows, dtype=float) if rows else None,
        search_metric=search_metric or DEFAULT_SEARCH_METRIC,
    )
    logger.debug(
        f"Parsed problem: mode={problem.search_mode.name}, "
        f"inputs={list(problem.input_names)}, rows={problem.row_count}, "
        f"constraints={len(problem.constraints)}"
    )
    return problem


def parse_problem_text(text: str) -> ProblemData:
    return parse_problem_lines(text.splitlines())


def read_problem_data(path: str | Path) -> ProblemData:
    """Read a problem file.

    Raises:
        ParseError: If the file is empty or holds non-numeric data.
        ValidationError: If rows are ragged.
    """
    path = Path(path)
    logger.info(f"Reading problem from {path}")
    return parse_problem_text(path.read_text(encoding="utf-8"))
