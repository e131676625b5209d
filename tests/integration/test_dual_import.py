from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from payroll_import.cli.__main__ import main
from payroll_import.config.loader import load_config
from payroll_import.models.reconciled import SourceClass
from payroll_import.services.reconcile import DualFileImporter

FILE1 = [["Mã NV", "Tháng", "Hệ số làm việc"], ["NV001", "2025-01", 1.2]]
FILE2 = [["Mã nhân viên", "Tháng", "Tiền lương thực nhận cuối kỳ"], ["NV001", "01/2025", 12000000]]


def _importer(config_path: Path) -> DualFileImporter:
    cfg = load_config(config_path)
    return DualFileImporter(cfg.for_file_type("file1").mappings, cfg.for_file_type("file2").mappings)


def test_both_files_merge_into_one_record(write_config: Path, make_table):
    result = _importer(write_config).parse_files(make_table(FILE1), "f1.xlsx", make_table(FILE2), "f2.xlsx")

    assert result.success
    assert result.errors == []
    assert result.summary.both_files == 1
    assert result.summary.validation_errors == 0
    (record,) = result.records
    assert record.classification is SourceClass.BOTH
    assert record.values["he_so_lam_viec"] == Decimal("1.2")
    assert record.values["tien_luong_thuc_nhan_cuoi_ky"] == Decimal(12000000)
    assert record.source_file == "f1.xlsx + f2.xlsx"


def test_single_file_is_kept_with_warning(write_config: Path, make_table):
    rows = [FILE1[0], ["NV002", "2025-01", 1]]
    result = _importer(write_config).parse_files(make_table(rows), "f1.xlsx", None, None)

    assert result.success
    (record,) = result.records
    assert record.classification is SourceClass.FILE1_ONLY
    assert record.key.employee_id == "NV002"
    assert result.unmatched_records == 1
    (warning,) = result.warnings
    assert warning.message == "Chỉ có dữ liệu từ File 1, thiếu dữ liệu File 2"


def test_dual_cli_run_writes_error_log(write_config: Path, make_table, capsys):
    data = write_config.parent.parent / "data"
    (data / "f1.xlsx").write_bytes(make_table(FILE1))
    (data / "f2.xlsx").write_bytes(
        make_table([FILE2[0], ["NV001", "2025-01", 12000000], ["NV003", "2025-01", None]])
    )

    code = main(["dual", "--file1", "data/f1.xlsx", "--file2", "data/f2.xlsx"])
    out = capsys.readouterr().out

    assert code == 2
    assert "SUMMARY kind=dual files=1/1 success=0 failed=1 records=2 errors=1 warnings=1" in out
    (log,) = (write_config.parent.parent / "logs").glob("errors-*.log")
    entries = [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines()]
    assert [(e["severity"], e["category"], e["employee_id"]) for e in entries] == [
        ("error", "validation", "NV003"),
        ("warning", "reconciliation", "NV003"),
    ]
    assert entries[0]["message"] == "Thiếu trường bắt buộc: Tiền lương thực nhận cuối kỳ"
    assert all(e["file"] == "f2.xlsx" for e in entries)
