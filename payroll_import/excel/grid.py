from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any

from openpyxl import load_workbook

"""Cell-addressable view of one worksheet, merged regions included.

pandas flattens merged cells away, but the attendance layout relies on
them (employee id and month are usually merged vertically over the two
rows of a pair), so sheets that need merge resolution are loaded through
openpyxl into a SheetGrid.

All coordinates are 0-based. Merged regions are a flat list checked
linearly per lookup; they are static and declared once per sheet load.
"""

__all__ = [
    "GridError",
    "MergedRegion",
    "SheetGrid",
    "load_grid",
]


class GridError(Exception):
    """Raised when a sheet declares overlapping merged regions."""


@dataclass(frozen=True)
class MergedRegion:
    min_row: int
    min_col: int
    max_row: int
    max_col: int

    def contains(self, row: int, col: int) -> bool:
        return self.min_row <= row <= self.max_row and self.min_col <= col <= self.max_col

    def overlaps(self, other: MergedRegion) -> bool:
        return not (
            self.max_row < other.min_row
            or other.max_row < self.min_row
            or self.max_col < other.min_col
            or other.max_col < self.min_col
        )


@dataclass(frozen=True)
class SheetGrid:
    name: str
    cells: dict[tuple[int, int], Any]
    merged: tuple[MergedRegion, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        regions = self.merged
        for i, a in enumerate(regions):
            for b in regions[i + 1:]:
                if a.overlaps(b):
                    raise GridError(f"sheet '{self.name}' has overlapping merged regions {a} / {b}")

    @property
    def max_row(self) -> int:
        rows = [r for r, _ in self.cells]
        rows.extend(m.max_row for m in self.merged)
        return max(rows, default=-1)

    @property
    def max_col(self) -> int:
        cols = [c for _, c in self.cells]
        cols.extend(m.max_col for m in self.merged)
        return max(cols, default=-1)

    def value(self, row: int, col: int | None) -> Any:
        """Literal cell value (None for blank or out-of-range coordinates)."""
        if col is None or col < 0 or row < 0:
            return None
        return self.cells.get((row, col))

    def region_at(self, row: int, col: int) -> MergedRegion | None:
        for region in self.merged:
            if region.contains(row, col):
                return region
        return None

    def effective_value(self, row: int, col: int | None) -> Any:
        """Cell value with merged regions resolved to their top-left anchor."""
        if col is None or col < 0 or row < 0:
            return None
        region = self.region_at(row, col)
        if region is not None:
            return self.cells.get((region.min_row, region.min_col))
        return self.cells.get((row, col))

    def header_value(self, row: int, col: int) -> Any:
        """Value used for header matching.

        Vertical merges resolve to their anchor so a label merged over a
        multi-row header is visible on every header row. Horizontal
        continuation cells read as blank so a label spanning several
        columns is matched once, at its leftmost column.
        """
        region = self.region_at(row, col)
        if region is None:
            return self.cells.get((row, col))
        if col != region.min_col:
            return None
        return self.cells.get((region.min_row, region.min_col))

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[Any]],
        merged: Iterable[MergedRegion | tuple[int, int, int, int]] = (),
        name: str = "Sheet1",
    ) -> SheetGrid:
        """Build a grid from a list of rows (None / "" cells are dropped)."""
        cells: dict[tuple[int, int], Any] = {}
        for r, row in enumerate(rows):
            for c, val in enumerate(row):
                if val is None or (isinstance(val, str) and val == ""):
                    continue
                cells[(r, c)] = val
        regions = tuple(m if isinstance(m, MergedRegion) else MergedRegion(*m) for m in merged)
        return cls(name=name, cells=cells, merged=regions)


def load_grid(content: bytes, sheet_name: str | None = None) -> SheetGrid:
    """Load one worksheet (first one by default) from xlsx bytes.

    Cached formula results are used (``data_only=True``); formulas are
    never evaluated.
    """
    wb = load_workbook(BytesIO(content), data_only=True)
    try:
        ws = wb[sheet_name] if sheet_name is not None else wb.worksheets[0]
        cells: dict[tuple[int, int], Any] = {}
        for r, row in enumerate(ws.iter_rows(values_only=True)):
            for c, val in enumerate(row):
                if val is None or (isinstance(val, str) and val == ""):
                    continue
                cells[(r, c)] = val
        merged = tuple(
            MergedRegion(rng.min_row - 1, rng.min_col - 1, rng.max_row - 1, rng.max_col - 1)
            for rng in ws.merged_cells.ranges
        )
        return SheetGrid(name=str(ws.title), cells=cells, merged=merged)
    finally:
        wb.close()
