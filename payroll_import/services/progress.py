from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""File-level progress bar for batch imports (TTY only).

On a non-TTY stdout (CI, redirected output) no bar is created at all so
log files stay free of control sequences; the per-file log lines still
report progress there.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """One tqdm bar over the input files of a CLI run.

    The postfix shows running totals (records parsed, errors found) over
    every file finished so far. Usable as a context manager; ``close()``
    is safe to call twice.
    """

    def __init__(self, total_files: int, *, description: str = "Importing") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.total_records = 0
        self.total_errors = 0
        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                ncols=80,
                ascii=True,
            )

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, *, records: int = 0, errors: int = 0) -> None:
        self.total_records += records
        self.total_errors += errors
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            self.pbar.set_postfix(records=self.total_records, errors=self.total_errors)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
