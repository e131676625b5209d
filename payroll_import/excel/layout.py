from __future__ import annotations

import logging
import unicodedata

from ..models.attendance import LayoutDescriptor, SummaryColumns
from .grid import SheetGrid
from .reader import SheetHeaderError
from .values import cell_text

"""Header / schema detection for attendance sheets.

The header row is scanned left to right once. Column roles are found by
keyword matching on the lower-cased header text:

- identifier: contains "mã" and ("nv" or "nhân viên") (unaccented too)
- period: contains "tháng" or equals "thang"
- first day: first unclaimed column whose header literal is "1"

Summary columns are matched independently against ordered pattern groups;
within a group the first matching pattern decides, across columns the last
matching column wins.
"""

__all__ = [
    "LayoutDetectionError",
    "LayoutOrderError",
    "SUMMARY_PATTERNS",
    "detect_layout",
    "detect_layout_at",
]

logger = logging.getLogger(__name__)

SUMMARY_PATTERNS: dict[str, tuple[str, ...]] = {
    "total_hours": ("tổng giờ công", "tong gio cong", "total hours"),
    "total_days": ("tổng ngày công", "tong ngay cong", "total days"),
    "total_meal_ot_hours": ("tổng giờ ăn tc", "tong gio an tc", "meal ot"),
    "total_ot_hours": ("tổng giờ tăng ca", "tong gio tang ca", "total ot"),
    "sick_days": ("nghỉ ốm", "nghi om", "sick"),
}

_ID_MARKERS = ("nv", "nhân viên")
_ID_UNACCENTED = ("ma nv", "ma nhan vien", "manv")


class LayoutDetectionError(SheetHeaderError):
    """Raised when identifier, period or first-day column cannot be located."""


class LayoutOrderError(LayoutDetectionError):
    """Raised when a summary column sits inside the day block."""


def _header_text(grid: SheetGrid, row: int, col: int) -> str:
    return unicodedata.normalize("NFC", cell_text(grid.header_value(row, col))).lower()


def _is_identifier(text: str) -> bool:
    if "mã" in text:
        return any(m in text for m in _ID_MARKERS)
    return any(v in text for v in _ID_UNACCENTED)


def _is_period(text: str) -> bool:
    return "tháng" in text or text == "thang"


def _parse_day(text: str) -> int | None:
    if not text.isdigit():
        return None
    day = int(text)
    return day if 1 <= day <= 31 else None


def detect_layout_at(grid: SheetGrid, header_row: int) -> LayoutDescriptor:
    """Detect the layout using one specific header row."""
    employee_id_col: int | None = None
    period_col: int | None = None
    day_start_col: int | None = None
    summary: dict[str, int] = {}

    for col in range(grid.max_col + 1):
        text = _header_text(grid, header_row, col)
        if not text:
            continue
        is_summary = False
        for key, patterns in SUMMARY_PATTERNS.items():
            if any(p in text for p in patterns):
                summary[key] = col
                is_summary = True
        if is_summary:
            # "Tổng ngày công tháng" is a summary, not the period column
            continue
        if _is_identifier(text):
            employee_id_col = col
        elif _is_period(text):
            period_col = col
        elif text == "1" and day_start_col is None:
            day_start_col = col

    missing = [
        name
        for name, col in (
            ("employee id", employee_id_col),
            ("month", period_col),
            ("day 1", day_start_col),
        )
        if col is None
    ]
    if missing:
        raise LayoutDetectionError(
            f"cannot detect header columns on row {header_row + 1}: missing {', '.join(missing)}"
        )
    assert employee_id_col is not None and period_col is not None and day_start_col is not None

    summary_columns = SummaryColumns(**summary)
    claimed = summary_columns.claimed()

    # contiguous ascending run of day numbers, blanks (merged continuation
    # cells) skipped; stops at the first summary column or non-day header
    days = 0
    for col in range(day_start_col, grid.max_col + 1):
        if col in claimed:
            break
        text = _header_text(grid, header_row, col)
        if not text:
            continue
        day = _parse_day(text)
        if day is None or day <= days:
            break
        days = day

    # a label merged downwards (e.g. "Mã NV" over a two-row header) pushes
    # the first data row below the merge
    header_end_row = header_row
    for col in (employee_id_col, period_col, day_start_col):
        region = grid.region_at(header_row, col)
        if region is not None:
            header_end_row = max(header_end_row, region.max_row)

    layout = LayoutDescriptor(
        header_row=header_row,
        employee_id_col=employee_id_col,
        period_col=period_col,
        day_start_col=day_start_col,
        days_in_month=days,
        summary_columns=summary_columns,
        header_end_row=header_end_row,
    )
    _check_summary_after_days(layout)
    return layout


def _check_summary_after_days(layout: LayoutDescriptor) -> None:
    """Summary columns must not sit inside the two-column-per-day block."""
    inside = sorted(
        c for c in layout.summary_columns.claimed()
        if layout.day_start_col <= c < layout.day_block_end
    )
    if inside:
        raise LayoutOrderError(
            f"summary column(s) {inside} fall inside the day block "
            f"[{layout.day_start_col}, {layout.day_block_end})"
        )


def detect_layout(grid: SheetGrid, *, max_header_rows: int = 5) -> LayoutDescriptor:
    """Find the header among the first rows and return its LayoutDescriptor.

    Raises:
        LayoutDetectionError: no row within ``max_header_rows`` carries the
            identifier, period and first-day columns.
    """
    first_error: LayoutDetectionError | None = None
    for header_row in range(min(max_header_rows, grid.max_row + 1)):
        try:
            layout = detect_layout_at(grid, header_row)
        except LayoutOrderError:
            # the header was found; its shape is wrong
            raise
        except LayoutDetectionError as e:
            first_error = first_error or e
            continue
        logger.debug(
            "sheet=%s header_row=%d id_col=%d month_col=%d day_start=%d days=%d",
            grid.name,
            header_row + 1,
            layout.employee_id_col,
            layout.period_col,
            layout.day_start_col,
            layout.days_in_month,
        )
        return layout
    raise LayoutDetectionError(
        f"cannot detect header columns in sheet '{grid.name}'"
        + (f" ({first_error})" if first_error else "")
    )
