from __future__ import annotations

import logging
import re
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from ..excel.reader import SheetHeaderError, read_table
from ..models.config_models import ColumnMapping
from ..models.error_record import ErrorCategory, ErrorRecord
from ..models.processing_result import DualImportResult, ReconciliationSummary
from ..models.reconciled import BOOKKEEPING_FIELDS, ReconciledRecord
from ..models.row_data import FieldValue, MergeKey
from .mapping import SourceRecords, missing_required_message, parse_mapped_table

"""Dual-source reconciliation of payroll files.

Two independently mapped files (typically the attendance export and the
salary sheet for the same month) are joined on the composite key
(employee_id, salary_month). Keys present in only one file are kept and
reported as warnings; the second file's values win when both files supply
the same field.
"""

__all__ = [
    "DualFileImporter",
    "Reconciliation",
    "new_session_id",
    "reconcile",
    "to_payroll_records",
]

logger = logging.getLogger(__name__)

_NUMBERED_SOURCE = re.compile(r"^file(\d+)$")


def _display(label: str) -> str:
    match = _NUMBERED_SOURCE.match(label)
    return f"File {match.group(1)}" if match else label


def new_session_id() -> str:
    return f"DUAL_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


@dataclass
class Reconciliation:
    records: list[ReconciledRecord] = field(default_factory=list)
    errors: list[ErrorRecord] = field(default_factory=list)
    warnings: list[ErrorRecord] = field(default_factory=list)
    summary: ReconciliationSummary = field(default_factory=ReconciliationSummary)

    @property
    def matched(self) -> int:
        return self.summary.both_files

    @property
    def unmatched(self) -> int:
        return self.summary.file1_only + self.summary.file2_only


def _required_errors(source: SourceRecords, key: MergeKey) -> list[ErrorRecord]:
    row = source.records[key]
    by_field = {m.database_field: m for m in source.mappings}
    return [
        ErrorRecord.create(
            row.row_number,
            key.employee_id,
            missing_required_message(by_field[fld]),
            category=ErrorCategory.VALIDATION,
            salary_month=key.salary_month,
            source=source.label,
            field=fld,
            file=source.filename,
        )
        for fld in row.missing_required
    ]


def reconcile(first: SourceRecords, second: SourceRecords) -> Reconciliation:
    """Join two keyed sources.

    Required fields are checked per source against that source's own
    mappings; a value present only in the other file never satisfies them.
    """
    out = Reconciliation()
    keys = list(first.records)
    keys.extend(k for k in second.records if k not in first.records)

    file1_only = file2_only = both = validation_errors = 0
    for key in keys:
        row1 = first.records.get(key)
        row2 = second.records.get(key)

        source_files: dict[str, str] = {}
        values: dict[str, FieldValue] = {"employee_id": key.employee_id, "salary_month": key.salary_month}
        provenance: dict[str, str] = {}
        for source, row in ((first, row1), (second, row2)):
            if row is None:
                continue
            source_files[source.label] = source.filename
            for fld, value in row.values.items():
                if fld in BOOKKEEPING_FIELDS:
                    continue
                values[fld] = value
                provenance[fld] = source.label

        record = ReconciledRecord(
            key=key,
            file1_data=row1,
            file2_data=row2,
            source_files=source_files,
            values=values,
            provenance=provenance,
        )
        out.records.append(record)

        if row1 is not None and row2 is not None:
            both += 1
        else:
            present, absent, row = (first, second, row1) if row1 is not None else (second, first, row2)
            if row1 is not None:
                file1_only += 1
            else:
                file2_only += 1
            assert row is not None
            out.warnings.append(
                ErrorRecord.warning(
                    row.row_number,
                    key.employee_id,
                    f"Chỉ có dữ liệu từ {_display(present.label)}, thiếu dữ liệu {_display(absent.label)}",
                    category=ErrorCategory.RECONCILIATION,
                    salary_month=key.salary_month,
                    source=present.label,
                    file=present.filename,
                )
            )

        for source, row in ((first, row1), (second, row2)):
            if row is None:
                continue
            errors = _required_errors(source, key)
            validation_errors += len(errors)
            out.errors.extend(errors)

    out.summary = ReconciliationSummary(
        file1_only=file1_only,
        file2_only=file2_only,
        both_files=both,
        validation_errors=validation_errors,
    )
    return out


def to_payroll_records(reconciliation: Reconciliation, session_id: str) -> list[dict[str, object]]:
    """Flatten reconciled records into persistence-ready rows."""
    now = datetime.now(UTC).isoformat().replace("+00:00", "Z")
    rows: list[dict[str, object]] = []
    for record in reconciliation.records:
        row: dict[str, object] = {
            "employee_id": record.key.employee_id,
            "salary_month": record.key.salary_month,
            "import_batch_id": session_id,
            "import_status": "imported",
            "created_at": now,
            "updated_at": now,
        }
        row.update({k: v for k, v in record.values.items() if k not in BOOKKEEPING_FIELDS})
        row["source_file"] = record.source_file
        rows.append(row)
    return rows


class DualFileImporter:
    """Parse, reconcile and validate a pair of mapped payroll files."""

    def __init__(
        self,
        file1_mappings: Sequence[ColumnMapping],
        file2_mappings: Sequence[ColumnMapping],
    ) -> None:
        self.file1_mappings = sorted(file1_mappings, key=lambda m: m.display_order)
        self.file2_mappings = sorted(file2_mappings, key=lambda m: m.display_order)

    def _parse(
        self,
        content: bytes | None,
        filename: str | None,
        mappings: Sequence[ColumnMapping],
        label: str,
    ) -> SourceRecords:
        name = filename or f"{label}.xlsx"
        if content is None:
            return SourceRecords(label=label, filename=name, mappings=tuple(mappings))
        try:
            table = read_table(content, filename=name)
        except (SheetHeaderError, ValueError, OSError) as e:
            # one unreadable file does not stop the other one
            logger.warning("%s (%s): %s", name, label, e)
            empty = SourceRecords(label=label, filename=name, mappings=tuple(mappings))
            empty.issues.append(
                ErrorRecord.create(
                    0, "SYSTEM", str(e), category=ErrorCategory.STRUCTURAL, source=label, file=name
                )
            )
            return empty
        return parse_mapped_table(table.headers, table.rows, mappings, filename=name, source=label)

    def parse_files(
        self,
        file1: bytes | None,
        file1_name: str | None,
        file2: bytes | None,
        file2_name: str | None,
    ) -> DualImportResult:
        session_id = new_session_id()
        first = self._parse(file1, file1_name, self.file1_mappings, "file1")
        second = self._parse(file2, file2_name, self.file2_mappings, "file2")
        reconciliation = reconcile(first, second)

        errors = first.errors + second.errors + reconciliation.errors
        warnings = first.warnings + second.warnings + reconciliation.warnings
        logger.debug(
            "session=%s file1=%d file2=%d keys=%d matched=%d",
            session_id, len(first.records), len(second.records),
            len(reconciliation.records), reconciliation.matched,
        )
        return DualImportResult(
            success=not errors,
            session_id=session_id,
            total_employees=len(reconciliation.records),
            file1_processed=len(first.records),
            file2_processed=len(second.records),
            matched_records=reconciliation.matched,
            unmatched_records=reconciliation.unmatched,
            errors=errors,
            warnings=warnings,
            summary=reconciliation.summary,
            records=reconciliation.records,
        )
