import csv
import logging
import os
from typing import Optional, Sequence

import numpy as np

from ..types import ParseError
from ..types import ValidationError

logger = logging.getLogger(__name__)


def load_csv_table(
    filepath: str, input_names: Sequence[str], output_name: Optional[str] = None
) -> np.ndarray:
    """
    Load a data table from a CSV file with a header row.

    Args:
        filepath: Path to the CSV file.
        input_names: Columns to use as inputs, in order.
        output_name: Column holding the expected output; the last column of
            the file when omitted.

    Returns:
        Array of shape (n_rows, len(input_names) + 1): inputs then output.

    Raises:
        ValidationError: If the file or a requested column is missing.
        ParseError: If a cell is not numeric.
    """
    if not os.path.exists(filepath):
        raise ValidationError(f"File not found: {filepath}")

    with open(filepath, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise ValidationError("CSV file is empty or missing header")

        # Header cells may carry padding spaces
        columns = {name.strip(): name for name in reader.fieldnames if name}
        if output_name is None:
            output_name = list(columns)[-1]

        wanted = list(input_names) + [output_name]
        missing = [name for name in wanted if name not in columns]
        if missing:
            raise ValidationError(f"CSV file has no column(s): {', '.join(missing)}")

        rows = []
        for line_number, row in enumerate(reader, start=2):
            values = []
            for name in wanted:
                cell = row.get(columns[name])
                try:
                    values.append(float(cell))
                except (ValueError, TypeError):
                    raise ParseError(
                        f"Line {line_number}: non-numeric value {cell!r} in column {name}"
                    ) from None
            rows.append(values)

    logger.info(f"Loaded {len(rows)} rows from '{filepath}'")
    return np.array(rows, dtype=float).reshape(len(rows), len(wanted))
