from .data_loading import load_csv_table
from .formatting import format_number
from .formatting import format_result
from .formatting import result_to_dict
from .formatting import substitute_parameters

__all__ = [
    "load_csv_table",
    "format_number",
    "format_result",
    "result_to_dict",
    "substitute_parameters",
]
