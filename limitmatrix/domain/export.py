"""CSV export of the matrix view."""

import csv
import io
from collections.abc import Iterable
from typing import Final

from .constants import EMPTY_CSV_CELL
from .matrix import MatrixRow

MATRIX_CSV_HEADER: Final = (
    "ID",
    "Description",
    "Priority",
    "Region",
    "Subscriber Type",
    "Network",
    "Amount Limits (IN)",
    "Amount Limits (OUT)",
    "Amount Limits (IN&OUT)",
    "Count Limits (IN)",
    "Count Limits (OUT)",
    "Count Limits (IN&OUT)",
    "Frequencies",
    "Co-Insurance (IN)",
    "Co-Insurance (OUT)",
)


def matrix_csv_filename(contract_id: int) -> str:
    return f"contract-{contract_id}-limits-matrix.csv"


def _optional(value) -> str:
    return "" if value is None else str(value)


def matrix_csv_record(row: MatrixRow) -> list[str]:
    """Cells of one data line, in header order."""
    combination = row.combination
    return [
        _optional(combination.id),
        combination.description or "",
        str(combination.priority),
        _optional(combination.region_id),
        _optional(combination.subscriber_type_id),
        _optional(combination.network_id),
        row.amount_in or EMPTY_CSV_CELL,
        row.amount_out or EMPTY_CSV_CELL,
        row.amount_in_out or EMPTY_CSV_CELL,
        row.count_in or EMPTY_CSV_CELL,
        row.count_out or EMPTY_CSV_CELL,
        row.count_in_out or EMPTY_CSV_CELL,
        row.frequencies or EMPTY_CSV_CELL,
        row.co_insurance_in or EMPTY_CSV_CELL,
        row.co_insurance_out or EMPTY_CSV_CELL,
    ]


def export_matrix_csv(rows: Iterable[MatrixRow]) -> str:
    """Serialize matrix rows to CSV text.

    Every cell is quoted. Quotes inside free text are doubled so descriptions
    such as ``"Gold" plan`` survive a round trip through a spreadsheet.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(MATRIX_CSV_HEADER)
    for row in rows:
        writer.writerow(matrix_csv_record(row))
    return buffer.getvalue()
