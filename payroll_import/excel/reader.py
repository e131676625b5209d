from __future__ import annotations

import math
from dataclasses import dataclass
from io import BytesIO
from typing import Any

import pandas as pd

from ..models.row_data import RawRow
from .values import cell_text

"""Tabular sheet reader for the column-mapped import paths.

The first row of the sheet is the header row; every following row is a
data row. pandas reads the workbook without header inference and without
its default NA-string conversion, so literal texts like "NA" or "N/A"
reach the mapping layer untouched. Blank cells come back as None.
"""

__all__ = [
    "MissingColumnsError",
    "SheetHeaderError",
    "SheetTable",
    "read_table",
]


class SheetHeaderError(Exception):
    """Raised when the header row is missing or unusable."""


class MissingColumnsError(Exception):
    """Raised when expected columns are missing in sheet header."""


@dataclass(frozen=True)
class SheetTable:
    sheet_name: str
    headers: list[str]  # trimmed header texts, "" for blank header cells
    rows: list[RawRow]  # data rows, row_number is the 1-based sheet row


def _clean(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def read_table(content: bytes, sheet_name: str | int | None = None, filename: str = "") -> SheetTable:
    """Read the first (or named) sheet of a workbook into headers + RawRows.

    Raises:
        SheetHeaderError: the sheet has no header row or no row below it.
    """
    df = pd.read_excel(
        BytesIO(content),
        sheet_name=0 if sheet_name is None else sheet_name,
        header=None,
        dtype=object,
        keep_default_na=False,
        na_values=[],
    )
    label = filename or str(sheet_name or "sheet")
    if df.shape[0] < 2:
        raise SheetHeaderError(f"File {label} has no data rows or is missing its header")

    headers = [cell_text(_clean(v)) for v in df.iloc[0].tolist()]
    rows: list[RawRow] = []
    for offset, raw in enumerate(df.iloc[1:].itertuples(index=False, name=None)):
        # header is sheet row 1, so data starts at sheet row 2
        rows.append(RawRow(row_number=offset + 2, cells=tuple(_clean(v) for v in raw)))
    return SheetTable(sheet_name=str(sheet_name if sheet_name is not None else 0), headers=headers, rows=rows)
