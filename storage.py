"""JSON document store for intelligence reports.

Layout under the data directory:

    reports/<report_id>.json            full report, one file per cycle
    latest_intelligence_summary.json    condensed summary, overwritten

Directories are created on first use. Write failures raise
PersistenceError; a missing or unreadable summary is not an error and
yields a SummaryPlaceholder instead.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from models.report import IntelligenceSummary, Report, SummaryPlaceholder

logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "latest_intelligence_summary.json"


class PersistenceError(Exception):
    """A report or summary could not be written.

    Attributes:
        report: The in-memory report that failed to persist, when known
    """

    def __init__(self, message: str, report: Report | None = None):
        super().__init__(message)
        self.report = report


def _write_json(path: Path, payload: dict) -> None:
    """Write JSON atomically (temp file, then rename)."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)


class ReportStore:
    """File-backed store for reports and the latest summary.

    Args:
        data_dir: Root directory for all intelligence documents
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)
        self.reports_dir = self.data_dir / "reports"
        self.summary_path = self.data_dir / SUMMARY_FILENAME

    def ensure_directories(self) -> None:
        """Create storage directories. Safe to call repeatedly."""
        self.reports_dir.mkdir(parents=True, exist_ok=True)

    def report_path(self, report_id: str) -> Path:
        return self.reports_dir / f"{report_id}.json"

    def save(self, report: Report) -> Path:
        """Persist the full report and overwrite the latest summary.

        Returns:
            Path of the full report document

        Raises:
            PersistenceError: If any write fails
        """
        path = self.report_path(report.report_id)
        try:
            self.ensure_directories()
            _write_json(path, report.model_dump(mode="json"))
            summary = IntelligenceSummary.from_report(report)
            _write_json(self.summary_path, summary.model_dump(mode="json"))
        except OSError as e:
            logger.error("Report save failed | report_id=%s error=%s", report.report_id, e)
            raise PersistenceError(f"Could not persist report {report.report_id}: {e}", report) from e

        logger.info("Report saved | file=%s", path)
        return path

    def load_report(self, report_id: str) -> Report | None:
        path = self.report_path(report_id)
        if not path.exists():
            return None
        return Report.model_validate_json(path.read_text(encoding="utf-8"))

    def load_latest_summary(self) -> IntelligenceSummary | SummaryPlaceholder:
        """Return the latest summary, or a placeholder when none is usable."""
        if not self.summary_path.exists():
            return SummaryPlaceholder()
        try:
            return IntelligenceSummary.model_validate_json(self.summary_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Could not load intelligence summary | path=%s error=%s", self.summary_path, e)
            return SummaryPlaceholder()
