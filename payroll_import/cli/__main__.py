from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from payroll_import.config.loader import ConfigError, load_config, resolve_config_path
from payroll_import.logging.error_log import ErrorLogBuffer
from payroll_import.logging.init import log_summary, setup_logging
from payroll_import.models.config_models import ImportConfig
from payroll_import.services.orchestrator import (
    ProcessingError,
    RunOutput,
    run_attendance,
    run_dual,
    run_employees,
    run_mapped,
)
from payroll_import.services.summary import render_summary_line

"""CLI entrypoint: ``python -m payroll_import.cli <command> ...``.

Commands:
- attendance FILE...            paired-row attendance workbooks
- mapped --config-name NAME FILE  one column-mapped payroll file
- dual [--file1 F] [--file2 F]  reconcile two mapped payroll files
- employees FILE                employee roster

Exit codes: 0 no errors, 2 completed with errors, 1 fatal (config / input).
"""

__all__ = [
    "EXIT_FATAL",
    "EXIT_PARTIAL_FAILURE",
    "EXIT_SUCCESS_ALL",
    "main",
]

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path) -> None:
    """Load .env without overriding variables already set in the process."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="payroll-import",
        description="Payroll / attendance spreadsheet import and reconciliation",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", help="Config YAML (default: $PAYROLL_IMPORT_CONFIG or config/import.yml)")
    p.add_argument("--json", action="store_true", help="Print the parse results as JSON on stdout")
    sub = p.add_subparsers(dest="command", required=True)

    att = sub.add_parser("attendance", help="Parse attendance workbooks")
    att.add_argument("files", nargs="*", type=Path, help="Workbooks (default: every .xlsx in source_directory)")

    mapped = sub.add_parser("mapped", help="Import one column-mapped payroll file")
    mapped.add_argument("--config-name", required=True, help="mapping config name from the config file")
    mapped.add_argument("file", type=Path)

    dual = sub.add_parser("dual", help="Reconcile two payroll files on (employee_id, salary_month)")
    dual.add_argument("--file1", type=Path)
    dual.add_argument("--file2", type=Path)

    emp = sub.add_parser("employees", help="Validate an employee roster")
    emp.add_argument("file", type=Path)
    return p.parse_args(argv)


def _dispatch(args: argparse.Namespace, cfg: ImportConfig | None, error_log: ErrorLogBuffer) -> RunOutput:
    if cfg is None:
        return run_employees(args.file, error_log)
    if args.command == "attendance":
        return run_attendance(args.files, cfg, error_log)
    if args.command == "mapped":
        mapping = cfg.mapping_configs.get(args.config_name)
        if mapping is None:
            known = ", ".join(sorted(cfg.mapping_configs)) or "none"
            raise ConfigError(f"unknown mapping config '{args.config_name}' (known: {known})")
        return run_mapped(args.file, mapping, error_log)
    return run_dual(args.file1, args.file2, cfg, error_log)


def main(argv: list[str] | None = None) -> int:
    # None only: an explicit [] from tests must not fall back to sys.argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    _load_env_file(Path(".env"))

    try:
        # the roster import needs no configuration
        cfg = None if args.command == "employees" else load_config(resolve_config_path(args.config))
        error_log = ErrorLogBuffer(cfg.error_log_dir if cfg is not None else None)
        output = _dispatch(args, cfg, error_log)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log: {log_path}")

    if args.json:
        print(json.dumps(output.documents, ensure_ascii=False, indent=2, default=str))

    result = output.result
    total_files = len(result.file_stats or [])
    summary_line = render_summary_line(total_files, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.total_errors > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
