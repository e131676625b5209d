from __future__ import annotations

from payroll_import.excel.attendance import parse_attendance_grid
from payroll_import.excel.grid import SheetGrid
from payroll_import.models.config_models import ColumnMapping, ValueKind
from payroll_import.services.employees import import_employee_file
from payroll_import.services.reconcile import DualFileImporter

"""Shape of the result documents printed with --json."""


def test_attendance_document_keys():
    grid = SheetGrid.from_rows([["Mã NV", "Tháng", "1", None], ["NV001", "07-2024", "08:00", "17:00"], [None, None, 1, 0]])
    document = parse_attendance_grid(grid).to_dict()
    assert set(document) == {"success", "totalRecords", "records", "errors", "warnings"}
    record = document["records"][0]
    assert set(record) == {"employeeId", "periodYear", "periodMonth", "dailyRecords", "summary"}
    assert set(record["dailyRecords"][0]) == {"day", "checkIn", "checkOut", "workingUnits", "overtimeUnits"}
    assert set(record["summary"]) == {"totalHours", "totalDays", "totalMealOtHours", "totalOtHours", "sickDays"}


def test_dual_document_keys(make_table):
    mappings = [
        ColumnMapping("Mã NV", "employee_id", is_required=True, display_order=1),
        ColumnMapping("Tháng", "salary_month", is_required=True, display_order=2),
        ColumnMapping("Lương", "luong_co_ban", ValueKind.NUMBER, display_order=3),
    ]
    content = make_table([["Mã NV", "Tháng", "Lương"], ["NV001", "2025-01", 100]])
    document = DualFileImporter(mappings, mappings).parse_files(content, "a.xlsx", None, None).to_dict()
    assert set(document) == {
        "success",
        "session_id",
        "total_employees",
        "file1_processed",
        "file2_processed",
        "matched_records",
        "unmatched_records",
        "errors",
        "warnings",
        "summary",
        "records",
    }
    assert set(document["summary"]) == {"file1_only", "file2_only", "both_files", "validation_errors"}
    assert set(document["warnings"][0]) == {"row", "employee_id", "salary_month", "file_type", "message"}
    assert set(document["records"][0]) == {
        "employee_id",
        "salary_month",
        "classification",
        "source_files",
        "values",
        "provenance",
    }


def test_employee_document_keys(make_table):
    content = make_table([["Mã nhân viên", "Họ tên", "CCCD", "Phòng ban"], ["NV001", "A", "1", "Kho"]])
    document = import_employee_file(content, "nv.xlsx").to_dict()
    assert set(document) == {"success", "totalRows", "successCount", "errorCount", "errors", "data"}
    assert set(document["data"][0]) == {
        "employee_id",
        "full_name",
        "cccd",
        "department",
        "chuc_vu",
        "phone_number",
        "is_active",
    }
