from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format (one line, space separated key=value pairs, stable key order):

    SUMMARY kind=<kind> files=<ok+failed>/<total> success=<n> failed=<n>
    records=<n> errors=<n> warnings=<n> elapsed_sec=<x>

The ``SUMMARY`` label itself is added by the logging formatter when the
line is emitted through ``log_summary``; this module renders the payload
with the label included so it can also be printed as-is.
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    """Plain decimal text: no scientific notation, integral values without '.0'."""
    if seconds <= 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    return f"{seconds:.3f}".rstrip("0").rstrip(".") or "0"


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line of one CLI run.

    Examples:
        >>> from datetime import UTC, datetime
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=UTC)
        >>> result = ProcessingResult(
        ...     kind="attendance", success_files=1, failed_files=0, total_records=12,
        ...     total_errors=0, total_warnings=1, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY kind=attendance files=1/1 success=1 failed=0 records=12 errors=0 warnings=1 elapsed_sec=2'
    """
    processed = result.success_files + result.failed_files
    return (
        f"SUMMARY kind={result.kind} "
        f"files={processed}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"records={result.total_records} "
        f"errors={result.total_errors} "
        f"warnings={result.total_warnings} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
