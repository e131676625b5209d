from __future__ import annotations

from dataclasses import dataclass, field

"""Attendance domain models.

The attendance sheet encodes one employee-period as two physically
adjacent rows: the first carries check-in/check-out times per day, the
second carries worked units / overtime units per day. Each day spans two
columns.
"""

__all__ = [
    "DailyRecord",
    "LayoutDescriptor",
    "ParsedEntityRecord",
    "PeriodSummary",
    "SummaryColumns",
]


@dataclass(frozen=True)
class SummaryColumns:
    """Column indices (0-based) of the period summary figures, None if absent."""
    total_hours: int | None = None
    total_days: int | None = None
    total_meal_ot_hours: int | None = None
    total_ot_hours: int | None = None
    sick_days: int | None = None

    def claimed(self) -> set[int]:
        return {c for c in (
            self.total_hours,
            self.total_days,
            self.total_meal_ot_hours,
            self.total_ot_hours,
            self.sick_days,
        ) if c is not None}


@dataclass(frozen=True)
class LayoutDescriptor:
    """Derived, read-only facts about one attendance sheet.

    Created once by the layout detector before any data row is read.
    Only valid descriptors exist: a sheet without identifier, period or
    first-day columns raises instead of producing one.
    """
    header_row: int  # 0-based
    employee_id_col: int
    period_col: int
    day_start_col: int
    days_in_month: int
    summary_columns: SummaryColumns = field(default_factory=SummaryColumns)
    header_end_row: int | None = None  # last header row when labels are merged downwards

    @property
    def first_data_row(self) -> int:
        end = self.header_row if self.header_end_row is None else max(self.header_row, self.header_end_row)
        return end + 1

    @property
    def day_block_end(self) -> int:
        """First column after the day block (each day spans two columns)."""
        return self.day_start_col + 2 * self.days_in_month

    def day_column(self, day: int) -> int:
        return self.day_start_col + (day - 1) * 2


@dataclass(frozen=True)
class DailyRecord:
    day: int
    check_in: str | None  # "HH:MM" or None (no time, distinct from "00:00")
    check_out: str | None
    working_units: float
    overtime_units: float


@dataclass(frozen=True)
class PeriodSummary:
    total_hours: float = 0.0
    total_days: float = 0.0
    total_meal_ot_hours: float = 0.0
    total_ot_hours: float = 0.0
    sick_days: float = 0.0


@dataclass(frozen=True)
class ParsedEntityRecord:
    """One employee's attendance for one period."""
    employee_id: str
    period_year: int
    period_month: int
    daily_records: tuple[DailyRecord, ...]
    summary: PeriodSummary
    row_number: int = 0  # 1-based sheet row of the first row of the pair

    def __post_init__(self) -> None:
        if not self.employee_id:
            raise ValueError("employee_id must not be empty")
        if not 1 <= self.period_month <= 12:
            raise ValueError(f"period_month out of range: {self.period_month}")

    @property
    def period(self) -> str:
        return f"{self.period_year:04d}-{self.period_month:02d}"

    def to_dict(self) -> dict[str, object]:
        return {
            "employeeId": self.employee_id,
            "periodYear": self.period_year,
            "periodMonth": self.period_month,
            "dailyRecords": [
                {
                    "day": d.day,
                    "checkIn": d.check_in,
                    "checkOut": d.check_out,
                    "workingUnits": d.working_units,
                    "overtimeUnits": d.overtime_units,
                }
                for d in self.daily_records
            ],
            "summary": {
                "totalHours": self.summary.total_hours,
                "totalDays": self.summary.total_days,
                "totalMealOtHours": self.summary.total_meal_ot_hours,
                "totalOtHours": self.summary.total_ot_hours,
                "sickDays": self.summary.sick_days,
            },
        }
