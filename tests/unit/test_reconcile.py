from __future__ import annotations

import re
from decimal import Decimal

from payroll_import.models.config_models import ColumnMapping, ValueKind
from payroll_import.models.reconciled import SourceClass
from payroll_import.models.row_data import MergeKey, RawRow
from payroll_import.services.mapping import parse_mapped_table
from payroll_import.services.reconcile import DualFileImporter, new_session_id, reconcile, to_payroll_records

FILE1_HEADERS = ["Mã NV", "Tháng", "Hệ số làm việc", "Lương cơ bản"]
FILE2_HEADERS = ["Mã nhân viên", "Tháng", "Lương cơ bản", "Tiền lương thực nhận cuối kỳ"]

FILE1_MAPPINGS = [
    ColumnMapping("Mã NV", "employee_id", is_required=True, display_order=1),
    ColumnMapping("Tháng", "salary_month", is_required=True, display_order=2),
    ColumnMapping("Hệ số làm việc", "he_so_lam_viec", ValueKind.NUMBER, display_order=3),
    ColumnMapping("Lương cơ bản", "luong_co_ban", ValueKind.NUMBER, display_order=4),
]
FILE2_MAPPINGS = [
    ColumnMapping("Mã nhân viên", "employee_id", is_required=True, display_order=1),
    ColumnMapping("Tháng", "salary_month", is_required=True, display_order=2),
    ColumnMapping("Lương cơ bản", "luong_co_ban", ValueKind.NUMBER, display_order=3),
    ColumnMapping(
        "Tiền lương thực nhận cuối kỳ", "tien_luong_thuc_nhan_cuoi_ky", ValueKind.NUMBER,
        is_required=True, display_order=4,
    ),
]


def _sources():
    first = parse_mapped_table(
        FILE1_HEADERS,
        [
            RawRow(2, ("NV001", "2025-01", 1.2, 10000000)),
            RawRow(3, ("NV002", "2025-01", 1, 9000000)),
        ],
        FILE1_MAPPINGS,
        filename="cham_cong.xlsx",
        source="file1",
    )
    second = parse_mapped_table(
        FILE2_HEADERS,
        [
            RawRow(2, ("NV001", "01/2025", 12000000, 12000000)),
            RawRow(3, ("NV003", "2025-01", 5000000)),
        ],
        FILE2_MAPPINGS,
        filename="bang_luong.xlsx",
        source="file2",
    )
    return first, second


def test_keys_are_classified_in_first_seen_order():
    result = reconcile(*_sources())
    assert [r.key for r in result.records] == [
        MergeKey("NV001", "2025-01"),
        MergeKey("NV002", "2025-01"),
        MergeKey("NV003", "2025-01"),
    ]
    assert [r.classification for r in result.records] == [
        SourceClass.BOTH,
        SourceClass.FILE1_ONLY,
        SourceClass.FILE2_ONLY,
    ]
    assert (result.summary.both_files, result.summary.file1_only, result.summary.file2_only) == (1, 1, 1)
    assert result.matched == 1
    assert result.unmatched == 2


def test_second_source_wins_and_provenance_is_recorded():
    both = reconcile(*_sources()).records[0]
    assert both.values["luong_co_ban"] == Decimal(12000000)
    assert both.values["he_so_lam_viec"] == Decimal("1.2")
    assert both.provenance == {
        "he_so_lam_viec": "file1",
        "luong_co_ban": "file2",
        "tien_luong_thuc_nhan_cuoi_ky": "file2",
    }
    assert both.source_file == "cham_cong.xlsx + bang_luong.xlsx"


def test_one_sided_keys_are_warnings():
    result = reconcile(*_sources())
    messages = {(w.employee_id, w.message) for w in result.warnings}
    assert messages == {
        ("NV002", "Chỉ có dữ liệu từ File 1, thiếu dữ liệu File 2"),
        ("NV003", "Chỉ có dữ liệu từ File 2, thiếu dữ liệu File 1"),
    }
    assert all(w.category == "reconciliation" for w in result.warnings)


def test_required_fields_checked_per_source():
    result = reconcile(*_sources())
    assert len(result.errors) == 1
    err = result.errors[0]
    assert err.employee_id == "NV003"
    assert err.source == "file2"
    assert err.row == 3
    assert err.salary_month == "2025-01"
    assert err.message == "Thiếu trường bắt buộc: Tiền lương thực nhận cuối kỳ"
    assert result.summary.validation_errors == 1


def test_to_payroll_records_flattens_values():
    rows = to_payroll_records(reconcile(*_sources()), "DUAL_1_abc")
    first = rows[0]
    assert first["employee_id"] == "NV001"
    assert first["salary_month"] == "2025-01"
    assert first["import_batch_id"] == "DUAL_1_abc"
    assert first["import_status"] == "imported"
    assert first["luong_co_ban"] == Decimal(12000000)
    assert first["source_file"] == "cham_cong.xlsx + bang_luong.xlsx"
    assert rows[1]["source_file"] == "cham_cong.xlsx"


def test_session_id_shape():
    assert re.fullmatch(r"DUAL_\d+_[0-9a-f]{9}", new_session_id())
    assert new_session_id() != new_session_id()


def test_dual_importer_end_to_end(make_table):
    file1 = make_table([FILE1_HEADERS, ["NV001", "2025-01", 1.2, None]])
    file2 = make_table([FILE2_HEADERS, ["NV001", "2025-01", None, 12000000]])
    result = DualFileImporter(FILE1_MAPPINGS, FILE2_MAPPINGS).parse_files(file1, "a.xlsx", file2, "b.xlsx")

    assert result.success
    assert result.total_employees == 1
    assert result.matched_records == 1
    assert result.file1_processed == result.file2_processed == 1
    payload = result.to_dict()
    assert payload["summary"] == {"file1_only": 0, "file2_only": 0, "both_files": 1, "validation_errors": 0}
    assert payload["records"][0]["values"]["tien_luong_thuc_nhan_cuoi_ky"] == 12000000


def test_unreadable_file_does_not_stop_the_other(make_table):
    file2 = make_table([FILE2_HEADERS, ["NV005", "2025-02", 1, 2]])
    result = DualFileImporter(FILE1_MAPPINGS, FILE2_MAPPINGS).parse_files(
        b"not a workbook", "broken.xlsx", file2, "b.xlsx"
    )
    assert not result.success
    system = result.errors[0]
    assert (system.row, system.employee_id, system.source) == (0, "SYSTEM", "file1")
    assert result.file2_processed == 1
    assert result.summary.file2_only == 1


def test_single_file_dual_import(make_table):
    file1 = make_table([FILE1_HEADERS, ["NV002", "2025-01", 1, 1]])
    result = DualFileImporter(FILE1_MAPPINGS, FILE2_MAPPINGS).parse_files(file1, "a.xlsx", None, None)
    assert result.success
    assert result.summary.file1_only == 1
    assert result.warnings[0].message == "Chỉ có dữ liệu từ File 1, thiếu dữ liệu File 2"
    assert result.to_dict()["warnings"][0]["file_type"] == "file1"


def test_swapping_sources_keeps_classification_and_flips_provenance():
    first, second = _sources()
    forward = reconcile(first, second)
    backward = reconcile(second, first)

    def matched(result):
        return {r.key for r in result.records if r.classification is SourceClass.BOTH}

    def present_in(result):
        return {(r.key, frozenset(r.source_files)) for r in result.records}

    assert matched(forward) == matched(backward) == {MergeKey("NV001", "2025-01")}
    assert present_in(forward) == present_in(backward)
    assert forward.summary.file1_only == backward.summary.file2_only == 1
    assert forward.summary.file2_only == backward.summary.file1_only == 1

    shared = MergeKey("NV001", "2025-01")
    forward_record = next(r for r in forward.records if r.key == shared)
    backward_record = next(r for r in backward.records if r.key == shared)
    assert forward_record.provenance["luong_co_ban"] == "file2"
    assert backward_record.provenance["luong_co_ban"] == "file1"
    assert forward_record.values["luong_co_ban"] == Decimal(12000000)
    assert backward_record.values["luong_co_ban"] == Decimal(10000000)
