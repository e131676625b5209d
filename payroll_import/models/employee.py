from __future__ import annotations

from dataclasses import asdict, dataclass

"""Employee roster record produced by the employee import."""

__all__ = [
    "EmployeeData",
]


@dataclass(frozen=True)
class EmployeeData:
    employee_id: str
    full_name: str
    cccd: str  # national ID card number
    department: str
    chuc_vu: str  # nhan_vien / to_truong / truong_phong
    phone_number: str | None = None
    is_active: bool = True
    row_number: int = 0

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data.pop("row_number")
        return data
