from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .row_data import FieldValue, MappedRow, MergeKey

"""ReconciledRecord: one composite key merged across two sources."""

__all__ = [
    "BOOKKEEPING_FIELDS",
    "ReconciledRecord",
    "SourceClass",
]

# Never overwritten by the later source during a merge.
BOOKKEEPING_FIELDS = frozenset({"employee_id", "salary_month", "source_file", "file_type"})


class SourceClass(Enum):
    BOTH = "both_files"
    FILE1_ONLY = "file1_only"
    FILE2_ONLY = "file2_only"


@dataclass(frozen=True)
class ReconciledRecord:
    """Merged view of one MergeKey.

    Attributes:
        key: composite (employee_id, salary_month) key
        file1_data: mapped row from the first source, if present
        file2_data: mapped row from the second source, if present
        source_files: source label -> file name
        values: merged field values (second source wins on collisions)
        provenance: field -> source label that supplied the final value
    """
    key: MergeKey
    file1_data: MappedRow | None
    file2_data: MappedRow | None
    source_files: dict[str, str] = field(default_factory=dict)
    values: dict[str, FieldValue] = field(default_factory=dict)
    provenance: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.file1_data is None and self.file2_data is None:
            raise ValueError(f"reconciled record {self.key} has no source data")

    @property
    def classification(self) -> SourceClass:
        if self.file1_data is not None and self.file2_data is not None:
            return SourceClass.BOTH
        if self.file1_data is not None:
            return SourceClass.FILE1_ONLY
        return SourceClass.FILE2_ONLY

    @property
    def source_file(self) -> str:
        """Concatenated file names of every source that supplied this key."""
        return " + ".join(self.source_files.values())

    def to_dict(self) -> dict[str, object]:
        return {
            "employee_id": self.key.employee_id,
            "salary_month": self.key.salary_month,
            "classification": self.classification.value,
            "source_files": dict(self.source_files),
            "values": {k: _jsonable(v) for k, v in self.values.items()},
            "provenance": dict(self.provenance),
        }


def _jsonable(value: FieldValue) -> object:
    if value is None or isinstance(value, str):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    # Decimal: keep integral amounts as int
    return int(value) if value == value.to_integral_value() else float(value)
