from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..excel.attendance import parse_attendance_workbook
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import ImportConfig, MappingConfig
from ..models.error_record import ErrorCategory
from ..models.processing_result import AttendanceParseResult, FileStat, ProcessingResult
from .employees import import_employee_file
from .mapping import import_mapped_file
from .progress import ProgressTracker
from .reconcile import DualFileImporter

"""Run orchestration for the CLI.

Each ``run_*`` function reads its input files fully into memory, hands the
bytes to the parsing engine, feeds every error/warning into the run's
ErrorLogBuffer (with the file name attached) and aggregates per-file
statistics into a ProcessingResult.

Only conditions that prevent a run from starting (missing input file,
empty directory, missing mapping config) raise ProcessingError; anything
wrong inside a file is reported as data. In a multi-file attendance run an
unreadable file is recorded as a failed file and the batch goes on.
"""

__all__ = [
    "ProcessingError",
    "RunOutput",
    "run_attendance",
    "run_dual",
    "run_employees",
    "run_mapped",
    "scan_excel_files",
]

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Raised when a run cannot start (unreadable input, missing config)."""


@dataclass
class RunOutput:
    result: ProcessingResult
    documents: list[dict[str, object]] = field(default_factory=list)  # per-file to_dict() payloads


def scan_excel_files(directory: Path) -> list[Path]:
    """List the .xlsx files of a directory (non-recursive, sorted by name).

    Raises:
        ProcessingError: the directory does not exist or cannot be read.
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        # "~$" files are Excel lock files of workbooks open elsewhere
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ProcessingError(f"cannot read {path}: {e}") from e


def _parse_attendance_file(path: Path, sheet_name: str | int | None) -> AttendanceParseResult:
    """Parse one workbook; an unreadable file becomes a failed result, not a stop."""
    try:
        content = path.read_bytes()
    except OSError as e:
        logger.error("cannot read %s: %s", path, e)
        return AttendanceParseResult(
            success=False,
            total_records=0,
            records=[],
            errors=[
                ErrorRecord.create(
                    0, "", f"cannot read {path.name}: {e}", category=ErrorCategory.STRUCTURAL, file=path.name
                )
            ],
        )
    return parse_attendance_workbook(content, sheet_name=sheet_name)


def _file_stat(
    name: str,
    records: int,
    errors: Sequence[ErrorRecord],
    warnings: Sequence[ErrorRecord],
    started: datetime,
) -> FileStat:
    if not errors:
        status = "success"
    elif records:
        status = "partial"
    else:
        status = "failed"
    elapsed = (datetime.now(UTC) - started).total_seconds()
    logger.info(
        "file=%s status=%s records=%d errors=%d warnings=%d",
        name, status, records, len(errors), len(warnings),
    )
    return FileStat(
        file_name=name,
        status=status,
        records=records,
        errors=len(errors),
        warnings=len(warnings),
        elapsed_seconds=elapsed,
    )


def _record_issues(
    error_log: ErrorLogBuffer, name: str, errors: Sequence[ErrorRecord], warnings: Sequence[ErrorRecord]
) -> None:
    for issue in (*errors, *warnings):
        logger.debug("%s row=%d %s: %s", name, issue.row, issue.severity, issue.message)
        error_log.append(issue if issue.file else issue.with_context(file=name))


def _result(kind: str, stats: list[FileStat], started: datetime) -> ProcessingResult:
    ended = datetime.now(UTC)
    return ProcessingResult(
        kind=kind,
        success_files=sum(1 for s in stats if s.status == "success"),
        failed_files=sum(1 for s in stats if s.status != "success"),
        total_records=sum(s.records for s in stats),
        total_errors=sum(s.errors for s in stats),
        total_warnings=sum(s.warnings for s in stats),
        start_time=started,
        end_time=ended,
        elapsed_seconds=(ended - started).total_seconds(),
        file_stats=stats,
    )


def run_attendance(paths: Sequence[Path], config: ImportConfig, error_log: ErrorLogBuffer) -> RunOutput:
    """Parse attendance workbooks; an empty ``paths`` scans ``config.source_directory``."""
    started = datetime.now(UTC)
    files = list(paths) or scan_excel_files(Path(config.source_directory))
    if not files:
        raise ProcessingError(f"no .xlsx files in {config.source_directory}")

    stats: list[FileStat] = []
    documents: list[dict[str, object]] = []
    with ProgressTracker(len(files), description="Attendance") as progress:
        for path in files:
            progress.start_file(path)
            file_started = datetime.now(UTC)
            parsed = _parse_attendance_file(path, config.attendance_sheet)
            _record_issues(error_log, path.name, parsed.errors, parsed.warnings)
            stats.append(_file_stat(path.name, parsed.total_records, parsed.errors, parsed.warnings, file_started))
            documents.append({"file": path.name, **parsed.to_dict()})
            progress.finish_file(records=parsed.total_records, errors=len(parsed.errors))
    return RunOutput(_result("attendance", stats, started), documents)


def run_mapped(path: Path, mapping: MappingConfig, error_log: ErrorLogBuffer) -> RunOutput:
    started = datetime.now(UTC)
    parsed = import_mapped_file(_read_bytes(path), mapping.mappings, path.name, source=mapping.file_type)
    _record_issues(error_log, path.name, parsed.errors, parsed.warnings)
    stat = _file_stat(path.name, parsed.total_records, parsed.errors, parsed.warnings, started)
    return RunOutput(_result("mapped", [stat], started), [{"file": path.name, **parsed.to_dict()}])


def run_dual(
    file1: Path | None,
    file2: Path | None,
    config: ImportConfig,
    error_log: ErrorLogBuffer,
) -> RunOutput:
    """Reconcile the file1 / file2 pair using the mapping configs of those file types."""
    if file1 is None and file2 is None:
        raise ProcessingError("dual import needs at least one of --file1 / --file2")
    mappings: list[MappingConfig] = []
    for file_type, path in (("file1", file1), ("file2", file2)):
        config_for_type = config.for_file_type(file_type)
        if config_for_type is None:
            if path is not None:
                raise ProcessingError(f"no mapping config with file_type '{file_type}'")
            config_for_type = MappingConfig(config_name=file_type, file_type=file_type, mappings=())
        mappings.append(config_for_type)

    started = datetime.now(UTC)
    importer = DualFileImporter(mappings[0].mappings, mappings[1].mappings)
    parsed = importer.parse_files(
        _read_bytes(file1) if file1 else None,
        file1.name if file1 else None,
        _read_bytes(file2) if file2 else None,
        file2.name if file2 else None,
    )
    name = " + ".join(p.name for p in (file1, file2) if p is not None)
    _record_issues(error_log, name, parsed.errors, parsed.warnings)
    stat = _file_stat(name, parsed.total_employees, parsed.errors, parsed.warnings, started)
    logger.info(
        "session=%s matched=%d file1_only=%d file2_only=%d",
        parsed.session_id,
        parsed.matched_records,
        parsed.summary.file1_only,
        parsed.summary.file2_only,
    )
    return RunOutput(_result("dual", [stat], started), [parsed.to_dict()])


def run_employees(path: Path, error_log: ErrorLogBuffer) -> RunOutput:
    started = datetime.now(UTC)
    parsed = import_employee_file(_read_bytes(path), path.name)
    _record_issues(error_log, path.name, parsed.errors, parsed.warnings)
    stat = _file_stat(path.name, parsed.success_count, parsed.errors, parsed.warnings, started)
    return RunOutput(_result("employees", [stat], started), [{"file": path.name, **parsed.to_dict()}])
