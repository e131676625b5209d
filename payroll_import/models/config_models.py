from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

"""Config dataclasses for the payroll / attendance import engine.

These are the typed forms of externally supplied configuration: column
mappings (which Excel label feeds which database field) and the static
fixed-point precision rules per database field. The engine only applies
them; it never computes or persists them.
"""

__all__ = [
    "ColumnMapping",
    "FieldClass",
    "ImportConfig",
    "MappingConfig",
    "PrecisionRule",
    "ValueKind",
]


class ValueKind(Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


class FieldClass(Enum):
    """Semantic class of a numeric field, drives plausibility checks."""
    COEFFICIENT = "coefficient"
    TIME = "time"
    MONEY = "money"


@dataclass(frozen=True)
class ColumnMapping:
    """One Excel column -> database field rule.

    The Excel label is matched fuzzily (bidirectional substring on the
    normalized header text), so small label drift between spreadsheet
    versions does not break the mapping.
    """
    excel_column_name: str
    database_field: str
    data_type: ValueKind = ValueKind.TEXT
    is_required: bool = False
    default_value: Any = None
    display_order: int = 0

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ColumnMapping:
        return ColumnMapping(
            excel_column_name=str(data["excel_column_name"]),
            database_field=str(data["database_field"]),
            data_type=ValueKind(data.get("data_type", "text")),
            is_required=bool(data.get("is_required", False)),
            default_value=data.get("default_value"),
            display_order=int(data.get("display_order", 0)),
        )


@dataclass(frozen=True)
class MappingConfig:
    """A named, ordered set of column mappings for one kind of file."""
    config_name: str
    file_type: str  # file1 / file2 / any other label
    mappings: tuple[ColumnMapping, ...]
    description: str = ""

    @property
    def ordered_mappings(self) -> list[ColumnMapping]:
        return sorted(self.mappings, key=lambda m: m.display_order)

    @property
    def required_fields(self) -> set[str]:
        return {m.database_field for m in self.mappings if m.is_required}


@dataclass(frozen=True)
class PrecisionRule:
    """Fixed-point storage contract of one numeric field.

    ``warn_above`` is a plausibility ceiling: exceeding it only yields a
    warning, never a rejection.
    """
    max_integer_digits: int
    max_decimal_places: int
    allow_negative: bool
    field_class: FieldClass
    warn_above: Decimal | None = None
    warn_message: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object loaded from config/import.yml."""
    source_directory: str
    mapping_configs: dict[str, MappingConfig] = field(default_factory=dict)  # keyed by config_name
    error_log_dir: str = "./logs"
    attendance_sheet: str | None = None  # None -> first sheet of the workbook

    def for_file_type(self, file_type: str) -> MappingConfig | None:
        """First mapping config declared for ``file_type`` (file1 / file2)."""
        for config in self.mapping_configs.values():
            if config.file_type == file_type:
                return config
        return None
