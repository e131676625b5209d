"""Domain models for the payroll / attendance spreadsheet import engine.

This package contains the typed records flowing through the import
pipeline (RawRow -> MappedRow -> ReconciledRecord, and the attendance
ParsedEntityRecord), the configuration dataclasses and the result types
returned to callers.
"""

from .attendance import DailyRecord, LayoutDescriptor, ParsedEntityRecord, PeriodSummary, SummaryColumns
from .config_models import ColumnMapping, FieldClass, ImportConfig, MappingConfig, PrecisionRule, ValueKind
from .employee import EmployeeData
from .error_record import ErrorCategory, ErrorRecord, Severity
from .processing_result import (
    AttendanceParseResult,
    DualImportResult,
    EmployeeImportResult,
    FileStat,
    MappedImportResult,
    ProcessingResult,
    ReconciliationSummary,
)
from .reconciled import BOOKKEEPING_FIELDS, ReconciledRecord, SourceClass
from .row_data import FieldValue, MappedRow, MergeKey, RawRow

__all__ = [
    # Configuration models
    "ColumnMapping",
    "FieldClass",
    "ImportConfig",
    "MappingConfig",
    "PrecisionRule",
    "ValueKind",
    # Row pipeline
    "BOOKKEEPING_FIELDS",
    "FieldValue",
    "MappedRow",
    "MergeKey",
    "RawRow",
    "ReconciledRecord",
    "SourceClass",
    # Attendance
    "DailyRecord",
    "LayoutDescriptor",
    "ParsedEntityRecord",
    "PeriodSummary",
    "SummaryColumns",
    # Employees
    "EmployeeData",
    # Issues and results
    "AttendanceParseResult",
    "DualImportResult",
    "EmployeeImportResult",
    "ErrorCategory",
    "ErrorRecord",
    "FileStat",
    "MappedImportResult",
    "ProcessingResult",
    "ReconciliationSummary",
    "Severity",
]
