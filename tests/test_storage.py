"""Tests for the report store."""

import json
from pathlib import Path

import pytest

from conftest import make_alert
from models.alert import Severity
from models.report import IntelligenceSummary, SummaryPlaceholder, Timeframe
from report_builder import ReportBuilder
from storage import SUMMARY_FILENAME, PersistenceError, ReportStore


@pytest.fixture
def report(clock):
    alerts = [
        make_alert("Wallet exploit disclosed", "security", Severity.CRITICAL, ("security", "wallet")),
        make_alert("Lightning explained", "education", Severity.INFO, ("education", "lightning")),
    ]
    return ReportBuilder(clock=clock).build_report(alerts, Timeframe.DAY)


class TestReportStore:
    def test_save_creates_directories_and_documents(self, tmp_path: Path, report) -> None:
        store = ReportStore(tmp_path / "intel")
        path = store.save(report)

        assert path == tmp_path / "intel" / "reports" / f"{report.report_id}.json"
        assert path.exists()
        assert (tmp_path / "intel" / SUMMARY_FILENAME).exists()

    def test_report_document_shape(self, tmp_path: Path, report) -> None:
        store = ReportStore(tmp_path)
        data = json.loads(store.save(report).read_text(encoding="utf-8"))

        assert set(data) == {
            "report_id", "generated_at", "period", "summary", "total_alerts",
            "critical_alerts", "high_alerts", "educational_opportunities",
            "threat_landscape", "market_intelligence", "educational_insights",
            "recommendations",
        }
        assert data["period"] == "24h"
        alert = data["critical_alerts"][0]
        assert set(alert) == {
            "id", "title", "description", "category", "severity", "source", "url",
            "timestamp", "tags", "relevance_score", "educational_impact", "action_items",
        }
        assert alert["severity"] == "critical"

    def test_round_trip(self, tmp_path: Path, report) -> None:
        store = ReportStore(tmp_path)
        store.save(report)
        assert store.load_report(report.report_id).model_dump() == report.model_dump()
        assert store.load_report("missing") is None

    def test_latest_summary(self, tmp_path: Path, report) -> None:
        store = ReportStore(tmp_path)
        store.save(report)
        summary = store.load_latest_summary()

        assert isinstance(summary, IntelligenceSummary)
        assert summary.total_alerts == 2
        assert summary.critical_count == 1
        assert summary.high_count == 0
        assert summary.key_recommendations == report.recommendations[:5]
        assert summary.top_threats == report.threat_landscape.new_threats[:3]
        assert summary.education_opportunities == report.educational_insights.new_resources[:3]

    def test_save_is_idempotent_on_directories(self, tmp_path: Path, report) -> None:
        store = ReportStore(tmp_path)
        store.ensure_directories()
        store.ensure_directories()
        store.save(report)
        store.save(report)
        assert len(list(store.reports_dir.iterdir())) == 1

    def test_placeholder_when_nothing_saved(self, tmp_path: Path) -> None:
        result = ReportStore(tmp_path).load_latest_summary()
        assert isinstance(result, SummaryPlaceholder)
        assert result.recommendations

    def test_placeholder_when_summary_corrupt(self, tmp_path: Path) -> None:
        (tmp_path / SUMMARY_FILENAME).write_text("{not json", encoding="utf-8")
        assert isinstance(ReportStore(tmp_path).load_latest_summary(), SummaryPlaceholder)

    def test_write_failure_raises_persistence_error(self, tmp_path: Path, report) -> None:
        blocked = tmp_path / "blocked"
        blocked.write_text("a file, not a directory")

        with pytest.raises(PersistenceError) as exc_info:
            ReportStore(blocked).save(report)
        assert exc_info.value.report is report
