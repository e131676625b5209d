from __future__ import annotations

import pytest

from payroll_import.excel.reader import MissingColumnsError
from payroll_import.services.employees import detect_employee_columns, import_employee_file, normalize_position

HEADERS = ["Mã nhân viên", "Họ tên", "CCCD", "Phòng ban", "Chức vụ", "Số điện thoại", "Trạng thái"]


def test_detect_columns_with_aliases():
    columns = detect_employee_columns(["employee_id", "Ho_ten", "Số CMND", "Bộ phận", "Position"])
    assert columns == {"employee_id": 0, "full_name": 1, "cccd": 2, "department": 3, "chuc_vu": 4}


def test_detect_columns_missing_required():
    with pytest.raises(MissingColumnsError, match="department"):
        detect_employee_columns(["Mã NV", "Họ tên", "CCCD"])


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Nhân viên", "nhan_vien"),
        ("TỔ TRƯỞNG", "to_truong"),
        ("Phó phòng", "truong_phong"),
        ("truong_phong", "truong_phong"),
        ("Giám đốc", "giám đốc"),
    ],
)
def test_normalize_position(raw, expected):
    assert normalize_position(raw) == expected


def test_import_roster(make_table):
    content = make_table(
        [
            HEADERS,
            ["=== Hướng dẫn: xoá dòng này ===", None, None, None, None, None, None],
            ["NV001", "Nguyễn Văn A", "012345678901", "Sản xuất", "Tổ trưởng", "0901 234 567", "Có"],
            ["NV002", "Trần Thị B", "012345678902", "Kế toán", None, None, "Nghỉ"],
            ["NV003", None, "012345678903", "Kế toán", None, None, None],
            ["NV004", "Lê C", "012345678904", "Kho", "Giám đốc", None, None],
            ["NV005", "Phạm D", "012345678905", "Kho", None, "abc", None],
            ["NV001", "Nguyễn Văn A2", "012345678906", "Kho", None, None, None],
        ]
    )
    result = import_employee_file(content, "nhan_vien.xlsx")

    assert not result.success
    assert result.total_rows == 6
    assert [e.employee_id for e in result.records] == ["NV001", "NV002"]

    a, b = result.records
    assert a.chuc_vu == "to_truong"
    assert a.phone_number == "0901 234 567"
    assert a.is_active
    assert b.chuc_vu == "nhan_vien"
    assert not b.is_active

    by_row = {e.row: e for e in result.errors}
    assert by_row[5].message == "Thiếu họ tên"
    assert by_row[6].message.startswith('Chức vụ không hợp lệ: "giám đốc"')
    assert by_row[7].message.startswith("Số điện thoại không hợp lệ")
    assert by_row[8].message == "Mã nhân viên bị trùng trong file"
    assert by_row[8].category == "duplicate"
    assert result.to_dict()["successCount"] == 2


def test_import_roster_too_long_id(make_table):
    content = make_table([HEADERS, ["X" * 51, "A", "1", "B", None, None, None]])
    result = import_employee_file(content, "nv.xlsx")
    assert result.errors[0].message == "Mã nhân viên quá dài (tối đa 50 ký tự)"


def test_import_roster_missing_columns(make_table):
    result = import_employee_file(make_table([["Mã NV", "Tên"], ["NV001", "A"]]), "nv.xlsx")
    assert not result.success
    assert result.errors[0].row == 1
    assert result.errors[0].category == "structural"
    assert "Thiếu các cột bắt buộc" in result.errors[0].message
