from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pandas as pd
from openpyxl.utils.datetime import from_excel

from ..excel.precision import parse_precise_number
from ..excel.reader import SheetHeaderError, read_table
from ..excel.values import cell_text, format_period, is_blank, parse_period
from ..models.config_models import ColumnMapping, ValueKind
from ..models.error_record import ErrorCategory, ErrorRecord
from ..models.processing_result import MappedImportResult
from ..models.row_data import FieldValue, MappedRow, MergeKey, RawRow

"""Column-mapping resolver for configuration-driven payroll sheets.

Given the header texts of a sheet and an ordered list of ColumnMapping
rules, each rule is resolved to one column index and every data row is
turned into a MappedRow of typed values keyed by database field.

Header matching is fuzzy: both sides are lower-cased and trimmed, and a
header matches exactly, or failing that when either text contains the
other. Among substring matches the first header wins, so two rules whose
labels overlap may still resolve to the same column.
"""

__all__ = [
    "ColumnResolution",
    "SourceRecords",
    "convert_date",
    "import_mapped_file",
    "map_row",
    "match_column",
    "missing_required_message",
    "parse_mapped_table",
    "resolve_columns",
]

logger = logging.getLogger(__name__)


def missing_required_message(mapping: ColumnMapping) -> str:
    return f"Thiếu trường bắt buộc: {mapping.excel_column_name}"


def _normalize(text: str) -> str:
    return text.lower().strip()


def match_column(headers: Sequence[str], excel_column_name: str) -> int | None:
    """Index of the header matching ``excel_column_name``.

    An exact (normalized) match wins; otherwise the first header where
    either text contains the other.
    """
    wanted = _normalize(excel_column_name)
    if not wanted:
        return None
    normalized = [_normalize(h) for h in headers]
    if wanted in normalized:
        return normalized.index(wanted)
    for index, text in enumerate(normalized):
        if text and (wanted in text or text in wanted):
            return index
    return None


@dataclass(frozen=True)
class ColumnResolution:
    indexes: dict[str, int]  # database_field -> column index
    unresolved: tuple[ColumnMapping, ...] = ()

    def column_for(self, database_field: str) -> int | None:
        return self.indexes.get(database_field)

    @property
    def unresolved_fields(self) -> list[str]:
        return [m.database_field for m in self.unresolved]


def resolve_columns(headers: Sequence[str], mappings: Sequence[ColumnMapping]) -> ColumnResolution:
    indexes: dict[str, int] = {}
    unresolved: list[ColumnMapping] = []
    for mapping in sorted(mappings, key=lambda m: m.display_order):
        index = match_column(headers, mapping.excel_column_name)
        if index is None:
            unresolved.append(mapping)
            logger.debug("no column matches '%s' (%s)", mapping.excel_column_name, mapping.database_field)
        else:
            indexes[mapping.database_field] = index
    return ColumnResolution(indexes=indexes, unresolved=tuple(unresolved))


def convert_date(raw: Any) -> date | None:
    """date/datetime cells, Excel serial numbers and day-first date texts."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        try:
            converted = from_excel(float(raw))
        except (ValueError, OverflowError):
            return None
        return converted.date() if isinstance(converted, datetime) else None
    parsed = pd.to_datetime(cell_text(raw), dayfirst=True, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _blank_value(mapping: ColumnMapping) -> FieldValue:
    return Decimal(0) if mapping.data_type is ValueKind.NUMBER else ""


def _has_default(mapping: ColumnMapping) -> bool:
    return not is_blank(mapping.default_value)


def map_row(
    raw_row: RawRow,
    mappings: Sequence[ColumnMapping],
    resolution: ColumnResolution,
    *,
    filename: str | None = None,
    source: str | None = None,
) -> MappedRow:
    """Apply every mapping to one data row.

    Numbers go through the precision validator of their database field:
    hard violations become errors (the row is then ``invalid``), soft ones
    warnings. A required field is missing when its column did not resolve,
    or its cell is blank and the mapping has no default value.
    """
    values: dict[str, FieldValue] = {}
    raw_values: dict[str, Any] = {}
    missing: list[str] = []
    issues: list[ErrorRecord] = []
    row_number = raw_row.row_number

    def issue(message: str, category: ErrorCategory, fld: str, *, warning: bool = False) -> None:
        factory = ErrorRecord.warning if warning else ErrorRecord.create
        issues.append(
            factory(row_number, None, message, category=category, field=fld, source=source, file=filename)
        )

    for mapping in sorted(mappings, key=lambda m: m.display_order):
        fld = mapping.database_field
        column = resolution.column_for(fld)
        if column is None:
            if mapping.is_required:
                missing.append(fld)
            continue

        raw = raw_row.cell(column)
        raw_values[fld] = raw
        if is_blank(raw):
            if not _has_default(mapping):
                values[fld] = _blank_value(mapping)
                if mapping.is_required:
                    missing.append(fld)
                continue
            raw = mapping.default_value

        if mapping.data_type is ValueKind.NUMBER:
            result = parse_precise_number(raw, fld)
            if not result.ok:
                category = ErrorCategory.RANGE if result.parsed else ErrorCategory.FORMAT
                issue(f"{mapping.excel_column_name}: {result.error}", category, fld)
                values[fld] = None
                continue
            for note in result.warnings:
                issue(f"{mapping.excel_column_name}: {note}", ErrorCategory.RANGE, fld, warning=True)
            values[fld] = result.value
        elif mapping.data_type is ValueKind.DATE:
            converted = convert_date(raw)
            if converted is None:
                issue(
                    f"{mapping.excel_column_name}: cannot read '{cell_text(raw)}' as a date",
                    ErrorCategory.FORMAT,
                    fld,
                    warning=True,
                )
            values[fld] = converted
        else:
            values[fld] = cell_text(raw)

    _canonicalize_period(values, raw_values, issue)

    employee_id = cell_text(values.get("employee_id"))
    salary_month = cell_text(values.get("salary_month")) if "salary_month" in values else ""
    if employee_id or salary_month:
        issues[:] = [i.with_context(employee_id=employee_id or None, salary_month=salary_month or None) for i in issues]

    return MappedRow(
        row_number=row_number,
        values=values,
        raw_values=raw_values,
        source_file=filename,
        file_type=source,
        missing_required=tuple(missing),
        issues=tuple(issues),
    )


def _canonicalize_period(values: dict[str, FieldValue], raw_values: dict[str, Any], issue) -> None:
    """Rewrite ``salary_month`` as YYYY-MM so both sources key identically."""
    value = values.get("salary_month")
    if value is None or value == "":
        return
    parsed = parse_period(value)
    if parsed is None or not 1 <= parsed[1] <= 12:
        issue(
            f"Invalid salary month '{cell_text(raw_values.get('salary_month', value))}'",
            ErrorCategory.FORMAT,
            "salary_month",
        )
        return
    values["salary_month"] = format_period(*parsed)


@dataclass
class SourceRecords:
    """Keyed rows of one mapped source file (the input of reconciliation)."""
    label: str  # "file1" / "file2"
    filename: str
    mappings: tuple[ColumnMapping, ...]
    records: dict[MergeKey, MappedRow] = field(default_factory=dict)
    issues: list[ErrorRecord] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)
    unresolved_fields: list[str] = field(default_factory=list)
    rows_read: int = 0

    @property
    def errors(self) -> list[ErrorRecord]:
        return [i for i in self.issues if i.is_error]

    @property
    def warnings(self) -> list[ErrorRecord]:
        return [i for i in self.issues if not i.is_error]


def parse_mapped_table(
    headers: Sequence[str],
    rows: Sequence[RawRow],
    mappings: Sequence[ColumnMapping],
    *,
    filename: str,
    source: str,
) -> SourceRecords:
    """Map every data row and index the valid ones by composite key.

    Rows with a hard per-field violation are reported and left out. A key
    seen twice keeps the later row and records a duplicate warning.
    """
    resolution = resolve_columns(headers, mappings)
    out = SourceRecords(
        label=source,
        filename=filename,
        mappings=tuple(mappings),
        headers=list(headers),
        unresolved_fields=resolution.unresolved_fields,
    )
    mapped_columns = set(resolution.indexes.values())

    for raw_row in rows:
        if all(is_blank(raw_row.cell(c)) for c in mapped_columns):
            continue
        out.rows_read += 1
        mapped = map_row(raw_row, mappings, resolution, filename=filename, source=source)
        out.issues.extend(mapped.issues)
        if mapped.invalid:
            continue
        key = mapped.key
        if key is None:
            out.issues.append(
                ErrorRecord.create(
                    raw_row.row_number,
                    mapped.employee_id,
                    "Row has no employee_id / salary_month and cannot be matched",
                    category=ErrorCategory.VALIDATION,
                    salary_month=mapped.salary_month or None,
                    source=source,
                    file=filename,
                )
            )
            continue
        previous = out.records.get(key)
        if previous is not None:
            out.issues.append(
                ErrorRecord.warning(
                    raw_row.row_number,
                    key.employee_id,
                    f"Duplicate key {key}: row {raw_row.row_number} replaces row {previous.row_number}",
                    category=ErrorCategory.DUPLICATE,
                    salary_month=key.salary_month,
                    source=source,
                    file=filename,
                )
            )
        out.records[key] = mapped

    logger.debug(
        "%s (%s): %d rows read, %d keys, %d issues",
        filename, source, out.rows_read, len(out.records), len(out.issues),
    )
    return out


def import_mapped_file(
    content: bytes,
    mappings: Sequence[ColumnMapping],
    filename: str,
    *,
    source: str = "file",
) -> MappedImportResult:
    """Single-file import: required-field violations reject the record."""
    try:
        table = read_table(content, filename=filename)
    except (SheetHeaderError, ValueError, OSError) as e:
        logger.warning("%s: %s", filename, e)
        return MappedImportResult(
            success=False,
            total_records=0,
            records=[],
            errors=[ErrorRecord.create(1, "", str(e), category=ErrorCategory.STRUCTURAL, file=filename)],
        )

    parsed = parse_mapped_table(table.headers, table.rows, mappings, filename=filename, source=source)
    by_field = {m.database_field: m for m in mappings}
    errors = parsed.errors
    accepted: list[MappedRow] = []
    for key, row in parsed.records.items():
        if not row.missing_required:
            accepted.append(row)
            continue
        for fld in row.missing_required:
            errors.append(
                ErrorRecord.create(
                    row.row_number,
                    key.employee_id,
                    missing_required_message(by_field[fld]),
                    category=ErrorCategory.VALIDATION,
                    salary_month=key.salary_month,
                    source=source,
                    field=fld,
                    file=filename,
                )
            )

    return MappedImportResult(
        success=not errors,
        total_records=len(accepted),
        records=accepted,
        errors=errors,
        warnings=parsed.warnings,
        detected_columns=[h for h in table.headers if h],
        unresolved_fields=parsed.unresolved_fields,
    )
