from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .attendance import ParsedEntityRecord
from .employee import EmployeeData
from .error_record import ErrorRecord
from .reconciled import ReconciledRecord
from .row_data import MappedRow

"""Result models returned by the import entry points.

Every result is best-effort: ``success`` is true only when no error was
recorded, but the records list still holds everything that did parse, so
a caller may choose to accept a partial import.
"""

__all__ = [
    "AttendanceParseResult",
    "DualImportResult",
    "EmployeeImportResult",
    "FileStat",
    "MappedImportResult",
    "ProcessingResult",
    "ReconciliationSummary",
]


def _issue_dict(issue: ErrorRecord) -> dict[str, object]:
    return {
        "row": issue.row,
        "employeeId": issue.employee_id,
        "category": issue.category,
        "message": issue.message,
    }


@dataclass(frozen=True)
class AttendanceParseResult:
    success: bool
    total_records: int
    records: list[ParsedEntityRecord]
    errors: list[ErrorRecord]
    warnings: list[ErrorRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "totalRecords": self.total_records,
            "records": [r.to_dict() for r in self.records],
            "errors": [_issue_dict(e) for e in self.errors],
            "warnings": [_issue_dict(w) for w in self.warnings],
        }


@dataclass(frozen=True)
class MappedImportResult:
    success: bool
    total_records: int
    records: list[MappedRow]
    errors: list[ErrorRecord]
    warnings: list[ErrorRecord] = field(default_factory=list)
    detected_columns: list[str] = field(default_factory=list)
    unresolved_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "totalRecords": self.total_records,
            "records": [
                {"row": r.row_number, **{k: _plain(v) for k, v in r.values.items()}}
                for r in self.records
            ],
            "errors": [_issue_dict(e) for e in self.errors],
            "warnings": [_issue_dict(w) for w in self.warnings],
            "detectedColumns": list(self.detected_columns),
            "unresolvedFields": list(self.unresolved_fields),
        }


@dataclass(frozen=True)
class EmployeeImportResult:
    success: bool
    total_rows: int
    records: list[EmployeeData]
    errors: list[ErrorRecord]
    warnings: list[ErrorRecord] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.records)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "totalRows": self.total_rows,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "errors": [_issue_dict(e) for e in self.errors],
            "data": [r.to_dict() for r in self.records],
        }


@dataclass(frozen=True)
class ReconciliationSummary:
    file1_only: int = 0
    file2_only: int = 0
    both_files: int = 0
    validation_errors: int = 0


@dataclass(frozen=True)
class DualImportResult:
    """Outcome of a two-file payroll import."""
    success: bool
    session_id: str
    total_employees: int
    file1_processed: int
    file2_processed: int
    matched_records: int
    unmatched_records: int
    errors: list[ErrorRecord]
    warnings: list[ErrorRecord]
    summary: ReconciliationSummary
    records: list[ReconciledRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "session_id": self.session_id,
            "total_employees": self.total_employees,
            "file1_processed": self.file1_processed,
            "file2_processed": self.file2_processed,
            "matched_records": self.matched_records,
            "unmatched_records": self.unmatched_records,
            "errors": [
                {
                    "row": e.row,
                    "employee_id": e.employee_id,
                    "salary_month": e.salary_month or "N/A",
                    "file_type": e.source,
                    "error": e.message,
                }
                for e in self.errors
            ],
            "warnings": [
                {
                    "row": w.row,
                    "employee_id": w.employee_id,
                    "salary_month": w.salary_month or "N/A",
                    "file_type": w.source,
                    "message": w.message,
                }
                for w in self.warnings
            ],
            "summary": {
                "file1_only": self.summary.file1_only,
                "file2_only": self.summary.file2_only,
                "both_files": self.summary.both_files,
                "validation_errors": self.summary.validation_errors,
            },
            "records": [r.to_dict() for r in self.records],
        }


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics of one CLI run."""
    file_name: str
    status: str  # success / partial / failed
    records: int
    errors: int
    warnings: int
    elapsed_seconds: float


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated outcome of one CLI invocation (one or more files)."""
    kind: str  # attendance / mapped / dual / employees
    success_files: int
    failed_files: int
    total_records: int
    total_errors: int
    total_warnings: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None


def _plain(value: object) -> object:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()  # type: ignore[union-attr]
    return float(value)  # type: ignore[arg-type]
