# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable, Sequence
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd
import pytest
from openpyxl import Workbook

import payroll_import.logging.init as logging_init


@pytest.fixture(autouse=True)
def _fresh_logging():
    logging_init.reset_logging()
    yield
    logging_init.reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("PAYROLL_IMPORT_CONFIG", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
error_log_dir: ./logs
mapping_configs:
  - config_name: cham_cong
    file_type: file1
    mappings:
      - {excel_column_name: "Mã NV", database_field: employee_id, is_required: true, display_order: 1}
      - {excel_column_name: "Tháng", database_field: salary_month, is_required: true, display_order: 2}
      - {excel_column_name: "Hệ số làm việc", database_field: he_so_lam_viec, data_type: number, display_order: 3}
  - config_name: bang_luong
    file_type: file2
    mappings:
      - {excel_column_name: "Mã nhân viên", database_field: employee_id, is_required: true, display_order: 1}
      - {excel_column_name: "Tháng", database_field: salary_month, is_required: true, display_order: 2}
      - {excel_column_name: "Tiền lương thực nhận cuối kỳ", database_field: tien_luong_thuc_nhan_cuoi_ky, data_type: number, is_required: true, display_order: 3}
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def build_workbook(
    rows: Sequence[Sequence[Any]],
    merges: Sequence[str] = (),
    sheet_name: str = "Sheet1",
) -> bytes:
    """xlsx bytes written with openpyxl (merged ranges in A1 notation)."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    for row in rows:
        ws.append(list(row))
    for rng in merges:
        ws.merge_cells(rng)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def build_table(rows: Sequence[Sequence[Any]]) -> bytes:
    """xlsx bytes written through pandas; the first row is the header row."""
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
    return buf.getvalue()


@pytest.fixture()
def make_workbook() -> Callable[..., bytes]:
    return build_workbook


@pytest.fixture()
def make_table() -> Callable[..., bytes]:
    return build_table
