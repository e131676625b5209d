from __future__ import annotations

from datetime import UTC, datetime

import pytest

from payroll_import.models.processing_result import ProcessingResult
from payroll_import.services.summary import format_elapsed, render_summary_line


def _result(**overrides) -> ProcessingResult:
    start = datetime(2024, 1, 1, tzinfo=UTC)
    values = dict(
        kind="dual",
        success_files=0,
        failed_files=1,
        total_records=3,
        total_errors=1,
        total_warnings=2,
        start_time=start,
        end_time=start,
        elapsed_seconds=0.5,
    )
    values.update(overrides)
    return ProcessingResult(**values)


def test_render_summary_line_key_order():
    line = render_summary_line(1, _result())
    assert line == "SUMMARY kind=dual files=1/1 success=0 failed=1 records=3 errors=1 warnings=2 elapsed_sec=0.5"


def test_render_summary_counts_processed_files():
    line = render_summary_line(3, _result(kind="attendance", success_files=1, failed_files=1))
    assert "files=2/3" in line


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "0"),
        (-1.0, "0"),
        (2.0, "2"),
        (0.1234, "0.123"),
        (1.5, "1.5"),
        (0.00001, "0"),
    ],
)
def test_format_elapsed(seconds, expected):
    assert format_elapsed(seconds) == expected
