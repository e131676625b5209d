from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from zipfile import BadZipFile

from openpyxl.utils.exceptions import InvalidFileException

from ..models.attendance import DailyRecord, LayoutDescriptor, ParsedEntityRecord, PeriodSummary
from ..models.error_record import ErrorCategory, ErrorRecord
from ..models.processing_result import AttendanceParseResult
from .grid import GridError, SheetGrid, load_grid
from .layout import LayoutDetectionError, detect_layout
from .values import cell_text, format_period, is_blank, normalize_number, parse_period, parse_time_value

"""Paired-row record assembly for per-day attendance sheets.

Each employee-period occupies two physically adjacent rows below the
header:

    row 1: id | month | in  out | in  out | ... | summary figures
    row 2:    |       | wu  ot  | wu  ot  | ...

The cursor always advances by two rows, blank spacer pairs included, so
a single malformed pair never shifts the alignment of the rest of the
sheet.
"""

__all__ = [
    "PairOutcome",
    "assemble_pair",
    "parse_attendance_grid",
    "parse_attendance_workbook",
]

logger = logging.getLogger(__name__)

HEADER_NOT_FOUND = "Không thể detect header columns"


@dataclass(frozen=True)
class PairOutcome:
    """Result of reading one row pair: a record, an error, or a skip."""
    record: ParsedEntityRecord | None = None
    error: ErrorRecord | None = None
    warnings: tuple[ErrorRecord, ...] = field(default_factory=tuple)

    @property
    def skipped(self) -> bool:
        return self.record is None and self.error is None


def _units(
    raw: Any,
    *,
    sheet_row: int,
    employee_id: str,
    period: str,
    label: str,
    warnings: list[ErrorRecord],
) -> float:
    if is_blank(raw):
        return 0.0
    number = normalize_number(raw)
    if not number.parsed:
        warnings.append(
            ErrorRecord.warning(
                sheet_row,
                employee_id,
                f"{label}: cannot read '{cell_text(raw)}' as a number, using 0",
                category=ErrorCategory.FORMAT,
                salary_month=period,
            )
        )
    return float(number.value)


def assemble_pair(grid: SheetGrid, layout: LayoutDescriptor, row: int) -> PairOutcome:
    """Read rows ``row`` and ``row + 1`` (0-based) as one employee-period."""
    sheet_row = row + 1
    employee_id = cell_text(grid.effective_value(row, layout.employee_id_col))
    if not employee_id:
        return PairOutcome()

    raw_period = grid.effective_value(row, layout.period_col)
    parsed = parse_period(raw_period)
    if parsed is None:
        return PairOutcome(
            error=ErrorRecord.create(
                sheet_row,
                employee_id,
                f"Tháng không hợp lệ: {cell_text(raw_period)}",
                category=ErrorCategory.FORMAT,
            )
        )
    year, month = parsed
    if not 1 <= month <= 12:
        return PairOutcome(
            error=ErrorRecord.create(
                sheet_row,
                employee_id,
                f"Tháng phải từ 1-12: {month}",
                category=ErrorCategory.RANGE,
            )
        )
    period = format_period(year, month)

    warnings: list[ErrorRecord] = []
    daily: list[DailyRecord] = []
    for day in range(1, layout.days_in_month + 1):
        col = layout.day_column(day)
        daily.append(
            DailyRecord(
                day=day,
                check_in=parse_time_value(grid.value(row, col)),
                check_out=parse_time_value(grid.value(row, col + 1)),
                working_units=_units(
                    grid.value(row + 1, col),
                    sheet_row=sheet_row + 1,
                    employee_id=employee_id,
                    period=period,
                    label=f"day {day} working units",
                    warnings=warnings,
                ),
                overtime_units=_units(
                    grid.value(row + 1, col + 1),
                    sheet_row=sheet_row + 1,
                    employee_id=employee_id,
                    period=period,
                    label=f"day {day} overtime units",
                    warnings=warnings,
                ),
            )
        )

    cols = layout.summary_columns

    def figure(col: int | None, label: str) -> float:
        if col is None:
            return 0.0
        return _units(
            grid.value(row, col),
            sheet_row=sheet_row,
            employee_id=employee_id,
            period=period,
            label=label,
            warnings=warnings,
        )

    summary = PeriodSummary(
        total_hours=figure(cols.total_hours, "total hours"),
        total_days=figure(cols.total_days, "total days"),
        total_meal_ot_hours=figure(cols.total_meal_ot_hours, "meal overtime hours"),
        total_ot_hours=figure(cols.total_ot_hours, "overtime hours"),
        sick_days=figure(cols.sick_days, "sick days"),
    )
    record = ParsedEntityRecord(
        employee_id=employee_id,
        period_year=year,
        period_month=month,
        daily_records=tuple(daily),
        summary=summary,
        row_number=sheet_row,
    )
    return PairOutcome(record=record, warnings=tuple(warnings))


def _header_failure(message: str) -> AttendanceParseResult:
    return AttendanceParseResult(
        success=False,
        total_records=0,
        records=[],
        errors=[ErrorRecord.create(1, "", message, category=ErrorCategory.STRUCTURAL)],
    )


def parse_attendance_grid(
    grid: SheetGrid, layout: LayoutDescriptor | None = None
) -> AttendanceParseResult:
    """Assemble every row pair of an attendance sheet.

    A sheet without a detectable header is a whole-sheet structural
    failure (row 1). Every other problem is scoped to its pair.
    """
    if layout is None:
        try:
            layout = detect_layout(grid)
        except LayoutDetectionError as e:
            logger.warning("sheet '%s': %s", grid.name, e)
            return _header_failure(f"{HEADER_NOT_FOUND}: {e}")

    records: list[ParsedEntityRecord] = []
    errors: list[ErrorRecord] = []
    warnings: list[ErrorRecord] = []
    row = layout.first_data_row
    while row <= grid.max_row:
        outcome = assemble_pair(grid, layout, row)
        if outcome.error is not None:
            logger.debug("row %d: %s", outcome.error.row, outcome.error.message)
            errors.append(outcome.error)
        elif outcome.record is not None:
            records.append(outcome.record)
        warnings.extend(outcome.warnings)
        row += 2

    return AttendanceParseResult(
        success=not errors,
        total_records=len(records),
        records=records,
        errors=errors,
        warnings=warnings,
    )


def parse_attendance_workbook(content: bytes, *, sheet_name: str | None = None) -> AttendanceParseResult:
    """Parse attendance data from xlsx bytes (first sheet unless named)."""
    try:
        grid = load_grid(content, sheet_name)
    except (GridError, KeyError, OSError, ValueError, BadZipFile, InvalidFileException) as e:
        logger.warning("cannot load workbook: %s", e)
        return AttendanceParseResult(
            success=False,
            total_records=0,
            records=[],
            errors=[ErrorRecord.create(0, "", f"Lỗi parse file: {e}", category=ErrorCategory.STRUCTURAL)],
        )
    return parse_attendance_grid(grid)
