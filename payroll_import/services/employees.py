from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from ..excel.reader import MissingColumnsError, SheetHeaderError, read_table
from ..excel.values import cell_text, is_blank
from ..models.employee import EmployeeData
from ..models.error_record import ErrorCategory, ErrorRecord
from ..models.processing_result import EmployeeImportResult
from ..models.row_data import RawRow

"""Employee roster import.

Header cells are matched against alias lists (Vietnamese with and without
accents, English, snake_case) by substring. Rows are validated one at a
time; the first problem found on a row rejects that row only.
"""

__all__ = [
    "COLUMN_ALIASES",
    "REQUIRED_COLUMNS",
    "detect_employee_columns",
    "import_employee_file",
    "normalize_position",
]

logger = logging.getLogger(__name__)

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "employee_id": ("mã nhân viên", "employee_id", "ma_nhan_vien", "id", "mã nv", "manv"),
    "full_name": ("họ tên", "full_name", "ho_ten", "name", "tên", "họ và tên", "hoten"),
    "cccd": ("cccd", "cmnd", "số cccd", "so_cccd", "căn cước", "can_cuoc"),
    "department": ("phòng ban", "department", "phong_ban", "dept", "bộ phận", "bo_phan"),
    "chuc_vu": ("chức vụ", "position", "chuc_vu", "vai trò", "role", "chucvu"),
    "phone_number": ("số điện thoại", "phone", "phone_number", "sdt", "điện thoại", "dien_thoai"),
    "is_active": ("trạng thái", "status", "is_active", "active", "hoạt động", "hoat_dong"),
}
REQUIRED_COLUMNS = ("employee_id", "full_name", "cccd", "department")

_POSITIONS = {
    "nhân viên": "nhan_vien",
    "nhanvien": "nhan_vien",
    "tổ trưởng": "to_truong",
    "totruong": "to_truong",
    "tổ_trưởng": "to_truong",
    "trưởng phòng": "truong_phong",
    "truongphong": "truong_phong",
    "trưởng_phòng": "truong_phong",
    "phó phòng": "truong_phong",
    "phophong": "truong_phong",
}
VALID_POSITIONS = ("nhan_vien", "to_truong", "truong_phong")

_ACTIVE_WORDS = frozenset({"true", "1", "có", "hoạt động", "active", "yes"})
_PHONE = re.compile(r"^[0-9+\-\s()]*$")
_MAX_PHONE = 15

# (field, missing message, max length, too-long message)
_REQUIRED_RULES = (
    ("employee_id", "Thiếu mã nhân viên", 50, "Mã nhân viên quá dài (tối đa 50 ký tự)"),
    ("full_name", "Thiếu họ tên", 255, "Họ tên quá dài (tối đa 255 ký tự)"),
    ("cccd", "Thiếu số CCCD", 20, "Số CCCD quá dài (tối đa 20 ký tự)"),
    ("department", "Thiếu phòng ban", 100, "Tên phòng ban quá dài (tối đa 100 ký tự)"),
)


def detect_employee_columns(headers: Sequence[str]) -> dict[str, int]:
    """Map roster fields to column indexes.

    Raises:
        MissingColumnsError: one of REQUIRED_COLUMNS has no matching header.
    """
    lowered = [h.lower().strip() for h in headers]
    indexes: dict[str, int] = {}
    for fld, aliases in COLUMN_ALIASES.items():
        for index, header in enumerate(lowered):
            if header and any(alias in header for alias in aliases):
                indexes[fld] = index
                break
    missing = [c for c in REQUIRED_COLUMNS if c not in indexes]
    if missing:
        raise MissingColumnsError(
            f"Thiếu các cột bắt buộc: {', '.join(missing)}. Vui lòng kiểm tra lại header của file Excel."
        )
    return indexes


def normalize_position(raw: str) -> str:
    text = raw.strip().lower()
    return _POSITIONS.get(text, text)


def _is_instruction(row: RawRow) -> bool:
    return cell_text(row.cell(0)).startswith("===")


def _parse_row(row: RawRow, columns: dict[str, int]) -> EmployeeData | str:
    """Return the parsed employee, or the message of the first problem."""

    def text(fld: str) -> str:
        index = columns.get(fld)
        return cell_text(row.cell(index)) if index is not None else ""

    required = {fld: text(fld) for fld, *_ in _REQUIRED_RULES}
    for fld, missing_message, _, _ in _REQUIRED_RULES:
        if not required[fld]:
            return missing_message
    for fld, _, max_length, too_long in _REQUIRED_RULES:
        if len(required[fld]) > max_length:
            return too_long

    raw_position = text("chuc_vu") or "nhan_vien"
    position = normalize_position(raw_position)
    if position not in VALID_POSITIONS:
        return (
            f'Chức vụ không hợp lệ: "{raw_position.lower()}". '
            f"Chỉ chấp nhận: {', '.join(VALID_POSITIONS)}"
        )

    phone = text("phone_number")
    if phone and (len(phone) > _MAX_PHONE or not _PHONE.match(phone)):
        return "Số điện thoại không hợp lệ (chỉ chấp nhận số, +, -, khoảng trắng, dấu ngoặc)"

    active = (text("is_active") or "true").lower()
    return EmployeeData(
        employee_id=required["employee_id"],
        full_name=required["full_name"],
        cccd=required["cccd"],
        department=required["department"],
        chuc_vu=position,
        phone_number=phone or None,
        is_active=active in _ACTIVE_WORDS,
        row_number=row.row_number,
    )


def import_employee_file(content: bytes, filename: str) -> EmployeeImportResult:
    """Validate an employee roster workbook (first sheet, header on row 1)."""
    try:
        table = read_table(content, filename=filename)
        columns = detect_employee_columns(table.headers)
    except (SheetHeaderError, MissingColumnsError, ValueError, OSError) as e:
        logger.warning("%s: %s", filename, e)
        return EmployeeImportResult(
            success=False,
            total_rows=0,
            records=[],
            errors=[ErrorRecord.create(1, "", str(e), category=ErrorCategory.STRUCTURAL, file=filename)],
        )

    records: list[EmployeeData] = []
    errors: list[ErrorRecord] = []
    seen: set[str] = set()
    total = 0
    for row in table.rows:
        if all(is_blank(c) for c in row.cells) or _is_instruction(row):
            continue
        total += 1
        parsed = _parse_row(row, columns)
        employee_id = cell_text(row.cell(columns["employee_id"]))
        if isinstance(parsed, str):
            errors.append(ErrorRecord.create(row.row_number, employee_id, parsed, file=filename))
            continue
        if parsed.employee_id in seen:
            errors.append(
                ErrorRecord.create(
                    row.row_number,
                    employee_id,
                    "Mã nhân viên bị trùng trong file",
                    category=ErrorCategory.DUPLICATE,
                    file=filename,
                )
            )
            continue
        seen.add(parsed.employee_id)
        records.append(parsed)

    logger.debug("%s: %d rows, %d valid, %d errors", filename, total, len(records), len(errors))
    return EmployeeImportResult(
        success=not errors,
        total_rows=total,
        records=records,
        errors=errors,
        warnings=[],
    )
