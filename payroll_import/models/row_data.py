from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from .error_record import ErrorRecord

"""Row-level models for the generic (column-mapped) import path.

A row moves through explicit stages:

    RawRow  ->  MappedRow  ->  ReconciledRecord (see models.reconciled)

RawRow is the literal cell list read from the sheet, MappedRow carries the
typed values keyed by database field together with everything that went
wrong while mapping that row.
"""

__all__ = [
    "FieldValue",
    "MappedRow",
    "MergeKey",
    "RawRow",
]

# Closed set of typed values a mapped field can hold (chosen by ValueKind).
FieldValue = str | Decimal | date | None


@dataclass(frozen=True)
class RawRow:
    """Literal cells of one data row. row_number is the 1-based sheet row."""
    row_number: int
    cells: tuple[Any, ...]

    def cell(self, index: int) -> Any:
        if index < 0 or index >= len(self.cells):
            return None
        return self.cells[index]


@dataclass(frozen=True, order=True)
class MergeKey:
    """Composite (employee identifier, period) join key."""
    employee_id: str
    salary_month: str

    def __str__(self) -> str:
        return f"{self.employee_id}-{self.salary_month}"


@dataclass(frozen=True)
class MappedRow:
    """Typed values of one row after applying a column-mapping configuration."""
    row_number: int
    values: dict[str, FieldValue]  # database_field -> typed value
    raw_values: dict[str, Any] | None = None  # database_field -> literal cell
    source_file: str | None = None
    file_type: str | None = None
    missing_required: tuple[str, ...] = ()  # database fields
    issues: tuple[ErrorRecord, ...] = field(default_factory=tuple)

    @property
    def employee_id(self) -> str:
        value = self.values.get("employee_id")
        return str(value).strip() if value is not None else ""

    @property
    def salary_month(self) -> str:
        value = self.values.get("salary_month")
        return str(value).strip() if value is not None else ""

    @property
    def key(self) -> MergeKey | None:
        if not self.employee_id or not self.salary_month:
            return None
        return MergeKey(self.employee_id, self.salary_month)

    @property
    def invalid(self) -> bool:
        """True when mapping produced at least one hard error for this row."""
        return any(issue.is_error for issue in self.issues)
