from __future__ import annotations

import pytest

from payroll_import.excel.grid import SheetGrid
from payroll_import.excel.layout import LayoutDetectionError, LayoutOrderError, detect_layout
from payroll_import.excel.reader import SheetHeaderError

HEADER = ["STT", "Mã NV", "Tháng", "1", None, "2", None, "3", None, "Tổng giờ công", "Tổng ngày công", "Nghỉ ốm"]


def test_detects_roles_and_day_count():
    grid = SheetGrid.from_rows([HEADER], merged=[(0, 3, 0, 4), (0, 5, 0, 6), (0, 7, 0, 8)])
    layout = detect_layout(grid)
    assert layout.header_row == 0
    assert layout.employee_id_col == 1
    assert layout.period_col == 2
    assert layout.day_start_col == 3
    assert layout.days_in_month == 3
    assert layout.day_column(2) == 5
    assert layout.summary_columns.total_hours == 9
    assert layout.summary_columns.total_days == 10
    assert layout.summary_columns.sick_days == 11
    assert layout.summary_columns.total_ot_hours is None
    assert layout.first_data_row == 1


def test_unmerged_blank_day_continuations_are_skipped():
    layout = detect_layout(SheetGrid.from_rows([HEADER]))
    assert layout.days_in_month == 3


def test_header_found_below_title_rows():
    grid = SheetGrid.from_rows([["BẢNG CHẤM CÔNG"], ["Tháng 07/2024"], HEADER])
    layout = detect_layout(grid)
    assert layout.header_row == 2
    assert layout.first_data_row == 3


def test_unaccented_and_english_labels():
    grid = SheetGrid.from_rows([["Ma NV", "Thang", "1", None, "2", None, "Total hours", "Sick"]])
    layout = detect_layout(grid)
    assert (layout.employee_id_col, layout.period_col, layout.day_start_col) == (0, 1, 2)
    assert layout.days_in_month == 2
    assert layout.summary_columns.total_hours == 6
    assert layout.summary_columns.sick_days == 7


def test_summary_label_with_month_word_is_not_period():
    grid = SheetGrid.from_rows([["Mã NV", "Tháng", "1", None, "Tổng ngày công tháng"]])
    layout = detect_layout(grid)
    assert layout.period_col == 1
    assert layout.summary_columns.total_days == 4


def test_last_matching_summary_column_wins():
    grid = SheetGrid.from_rows([["Mã NV", "Tháng", "1", None, "Nghỉ ốm", "Sick leave"]])
    assert detect_layout(grid).summary_columns.sick_days == 5


def test_day_run_stops_at_non_ascending_number():
    grid = SheetGrid.from_rows([["Mã NV", "Tháng", "1", None, "2", None, "2", None]])
    assert detect_layout(grid).days_in_month == 2


def test_multi_row_header_with_vertical_merges():
    rows = [
        ["Mã NV", "Tháng", "1", None, "2", None],
        [None, None, "Vào", "Ra", "Vào", "Ra"],
        ["NV001", "07-2024"],
    ]
    grid = SheetGrid.from_rows(rows, merged=[(0, 0, 1, 0), (0, 1, 1, 1), (0, 2, 0, 3), (0, 4, 0, 5)])
    layout = detect_layout(grid)
    assert layout.header_row == 0
    assert layout.first_data_row == 2


@pytest.mark.parametrize(
    "header",
    [
        ["Họ tên", "Tháng", "1"],
        ["Mã NV", "Năm", "1"],
        ["Mã NV", "Tháng", "Ngày 1"],
    ],
)
def test_missing_role_is_structural_failure(header):
    with pytest.raises(LayoutDetectionError, match="cannot detect header columns"):
        detect_layout(SheetGrid.from_rows([header]))


def test_layout_error_is_a_sheet_header_error():
    assert issubclass(LayoutDetectionError, SheetHeaderError)


def test_summary_inside_day_block_rejected():
    grid = SheetGrid.from_rows([["Mã NV", "Tháng", "1", None, "2", None, "3", "Tổng giờ công", None]])
    with pytest.raises(LayoutOrderError):
        detect_layout(grid)


def test_header_search_limited_to_first_rows():
    rows = [["title"]] * 5 + [["Mã NV", "Tháng", "1"]]
    with pytest.raises(LayoutDetectionError):
        detect_layout(SheetGrid.from_rows(rows))
    assert detect_layout(SheetGrid.from_rows(rows), max_header_rows=6).header_row == 5
