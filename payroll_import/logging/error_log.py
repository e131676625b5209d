from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Append-only sink for import errors and warnings.

Records are kept in memory during a run and written as JSON Lines (one
ErrorRecord per line, fixed key set) to ``<logs_dir>/errors-YYYYMMDD-HHMMSS.log``
(UTC). The file name is fixed on first access so every flush of one run
lands in the same file.
"""

__all__ = [
    "DEFAULT_LOGS_DIR",
    "ErrorLogBuffer",
    "ErrorRecord",
]

DEFAULT_LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer of ErrorRecords; ``flush()`` appends them to disk.

    Single-threaded use only: one buffer per CLI run.
    """

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._logs_dir = Path(logs_dir) if logs_dir is not None else DEFAULT_LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._written = 0

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        self._records.extend(records)

    @property
    def errors(self) -> list[ErrorRecord]:
        return [r for r in self._records if r.is_error]

    @property
    def warnings(self) -> list[ErrorRecord]:
        return [r for r in self._records if not r.is_error]

    @property
    def written(self) -> int:
        """Number of records already flushed to disk."""
        return self._written

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write pending records; returns the log path, None when nothing was ever written."""
        if not self._records:
            return self._file_path
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._written += len(self._records)
        self._records.clear()
        return fp
