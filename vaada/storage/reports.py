"""Append-only JSONL log of settlement run reports."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vaada.settlement.report import RunReport

logger = logging.getLogger(__name__)


def _reports_dir(data_dir: Path) -> Path:
    return data_dir / "reports"


def log_run_report(report: RunReport, data_dir: Path) -> Path:
    """Append a run report to data/reports/{date}.jsonl.

    Note:
        Each report is a single JSON object on one line. The file is created
        if it doesn't exist; existing lines are never rewritten.
    """
    reports_dir = _reports_dir(data_dir)
    reports_dir.mkdir(parents=True, exist_ok=True)

    date_str = report.started_at.strftime("%Y-%m-%d")
    log_path = reports_dir / f"{date_str}.jsonl"

    report_json = report.model_dump_json() + "\n"

    try:
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(report_json)

        logger.info(f"Logged run report {report.run_id} to {log_path}")

    except OSError as e:
        logger.error(f"Failed to log run report {report.run_id}: {e}")
        raise

    return log_path


def read_run_reports(data_dir: Path, date: datetime) -> list[RunReport]:
    """Load every report logged on the given (UTC) date, oldest first."""
    from vaada.settlement.report import RunReport

    log_path = _reports_dir(data_dir) / f"{date.strftime('%Y-%m-%d')}.jsonl"
    if not log_path.exists():
        return []

    reports: list[RunReport] = []
    with open(log_path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                reports.append(RunReport.model_validate_json(line))
            except ValueError as e:
                logger.warning(f"Skipping malformed report at {log_path}:{line_no}: {e}")

    return reports
