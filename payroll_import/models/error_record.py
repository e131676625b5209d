from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum

"""ErrorRecord model for import issue reporting.

Every problem found while importing a sheet (a bad period, a field that
overflows its fixed-point column, a key present in only one of two files)
is captured as one immutable ErrorRecord instead of an exception, so a
single bad row never aborts the rest of the import.

Row numbers are 1-based and spreadsheet-relative. Row 0 is used for
workbook-level problems where no row applies (unreadable file).
"""

__all__ = [
    "ErrorCategory",
    "ErrorRecord",
    "Severity",
]


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


class ErrorCategory(Enum):
    """Issue classification.

    - STRUCTURAL: sheet cannot be interpreted at all (header not found)
    - FORMAT: a cell's text cannot be parsed under any supported convention
    - RANGE: value parses but violates a range / fixed-point / sign constraint
    - VALIDATION: required field missing or otherwise invalid
    - DUPLICATE: composite key seen more than once in one file
    - RECONCILIATION: key present in only one of two sources
    """
    STRUCTURAL = "structural"
    FORMAT = "format"
    RANGE = "range"
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    RECONCILIATION = "reconciliation"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured, row-addressable import error or warning.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        severity: "error" blocks the owning record, "warning" never does
        category: ErrorCategory value
        row: Row number (1-based). 0 for workbook-level issues
        employee_id: Best-effort entity identifier ("" when unknown)
        message: Human readable description
        salary_month: Period of the record when known (YYYY-MM)
        source: Which input produced the issue ("file1"/"file2") on dual imports
        field: Database field the issue refers to, when field-scoped
        file: Source file name when known
    """
    timestamp: str  # ISO8601 UTC
    severity: str
    category: str
    row: int
    employee_id: str
    message: str
    salary_month: str | None = None
    source: str | None = None
    field: str | None = None
    file: str | None = None

    @staticmethod
    def create(
        row: int,
        employee_id: str | None,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.VALIDATION,
        severity: Severity = Severity.ERROR,
        salary_month: str | None = None,
        source: str | None = None,
        field: str | None = None,
        file: str | None = None,
    ) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            severity=severity.value,
            category=category.value,
            row=row,
            employee_id=employee_id or "",
            message=message,
            salary_month=salary_month,
            source=source,
            field=field,
            file=file,
        )

    @staticmethod
    def warning(row: int, employee_id: str | None, message: str, **kwargs) -> ErrorRecord:
        """Shortcut for ``create(..., severity=Severity.WARNING)``."""
        return ErrorRecord.create(row, employee_id, message, severity=Severity.WARNING, **kwargs)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR.value

    def with_context(self, **changes: object) -> ErrorRecord:
        """Return a copy with extra context (file, source, ...) filled in."""
        data = asdict(self)
        data.update({k: v for k, v in changes.items() if v is not None})
        return ErrorRecord(**data)  # type: ignore[arg-type]

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
