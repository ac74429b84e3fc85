"""Tests for aggregation and report synthesis."""

import pytest

from conftest import NOW, make_alert
from models.alert import Alert, Severity
from models.report import Timeframe
from report_builder import KnowledgeBaseStrategy, ReportBuilder


@pytest.fixture
def builder(clock) -> ReportBuilder:
    return ReportBuilder(clock=clock)


@pytest.fixture
def mixed_alerts() -> list[Alert]:
    return [
        make_alert("Wallet exploit disclosed", "security", Severity.CRITICAL, ("security", "wallet"),
                   action_items=("Update security warnings in relevant courses",)),
        make_alert("Exchange hack", "news", Severity.CRITICAL, ("threat",)),
        make_alert("Phishing risk rising", "security", Severity.HIGH, ("security",)),
        make_alert("SEC guidance", "regulatory", Severity.MEDIUM, ("regulatory",)),
        make_alert("Lightning explained", "education", Severity.INFO, ("education", "lightning")),
        make_alert("Mining difficulty up", "news", Severity.LOW, ("mining",)),
    ]


class TestViews:
    def test_views_are_exact_filters(self, builder, mixed_alerts) -> None:
        report = builder.build_report(mixed_alerts, Timeframe.DAY)

        assert report.total_alerts == len(mixed_alerts)
        assert report.critical_alerts == [a for a in mixed_alerts if a.severity == Severity.CRITICAL]
        assert report.high_alerts == [a for a in mixed_alerts if a.severity == Severity.HIGH]
        assert report.educational_opportunities == [a for a in mixed_alerts if a.category == "education"]

    def test_view_members_are_in_population(self, builder, mixed_alerts) -> None:
        report = builder.build_report(mixed_alerts, "24h")
        population = {a.id for a in mixed_alerts}
        for view in (report.critical_alerts, report.high_alerts, report.educational_opportunities):
            assert {a.id for a in view} <= population

    def test_report_metadata(self, builder, mixed_alerts) -> None:
        report = builder.build_report(mixed_alerts, "7d")
        assert report.period == Timeframe.WEEK
        assert report.generated_at == NOW
        assert report.report_id.startswith(f"intel_{int(NOW.timestamp() * 1000)}_")

    def test_report_ids_unique(self, builder) -> None:
        first = builder.build_report([], Timeframe.DAY)
        second = builder.build_report([], Timeframe.DAY)
        assert first.report_id != second.report_id


class TestSummary:
    def test_counts_and_top_categories(self, builder, mixed_alerts) -> None:
        summary = builder.build_report(mixed_alerts, Timeframe.DAY).summary
        assert "Processed 6 total alerts." in summary
        assert "2 critical, 1 high priority." in summary
        assert "Top categories: news (2), security (2)." in summary
        assert "1 educational opportunities identified." in summary

    def test_zero_alerts(self, builder) -> None:
        summary = builder.build_report([], Timeframe.DAY).summary
        assert summary
        assert "0 alerts found; no relevant items were published" in summary

    def test_unavailable_sources_mentioned(self, builder) -> None:
        summary = builder.build_report([], Timeframe.DAY, sources_failed=3, sources_total=3).summary
        assert "0 alerts found; sources were unavailable." in summary
        assert "3 of 3 sources unavailable." in summary
        assert "no relevant items were published" not in summary


class TestSynthesis:
    def test_education_only_population(self, builder) -> None:
        alerts = [
            make_alert("Interactive transaction explorer", "education", Severity.INFO, ("education", "interactive")),
            make_alert("Blockchain basics course", "education", Severity.INFO, ("education",)),
        ]
        report = builder.build_report(alerts, Timeframe.DAY)

        assert report.threat_landscape.new_threats == []
        assert report.educational_insights.new_resources
        assert "Interactive transaction explorer" in report.educational_insights.new_resources

    def test_new_threats_require_security_alerts(self, builder) -> None:
        alerts = [make_alert("Exchange hack", "news", Severity.CRITICAL, ("threat",))]
        report = builder.build_report(alerts, Timeframe.DAY)
        assert report.threat_landscape.new_threats == []
        assert report.threat_landscape.trending_risks

    def test_security_alerts_produce_threats(self, builder, mixed_alerts) -> None:
        threats = builder.build_report(mixed_alerts, Timeframe.DAY).threat_landscape
        assert threats.new_threats[0] == "Wallet exploit disclosed"
        assert "Update security warnings in relevant courses" in threats.mitigation_strategies

    def test_regulatory_updates_follow_regulatory_alerts(self, builder, mixed_alerts) -> None:
        market = builder.build_report(mixed_alerts, Timeframe.DAY).market_intelligence
        assert "SEC guidance" in market.regulatory_updates
        assert market.economic_factors == []

    def test_content_gap_from_uncovered_topic(self, builder) -> None:
        alerts = [
            make_alert("Mining difficulty up", "news", tags=("mining",)),
            make_alert("Wallet basics", "education", Severity.INFO, ("education", "wallet")),
        ]
        insights = builder.build_report(alerts, Timeframe.DAY).educational_insights
        assert "Mining economics and proof-of-work fundamentals" in insights.content_gaps

    def test_recommendations_non_empty(self, builder, mixed_alerts) -> None:
        for population in (mixed_alerts, mixed_alerts[-1:]):
            report = builder.build_report(population, Timeframe.DAY)
            assert report.recommendations
            assert report.recommendations[-1].startswith(f"Review the {len(population)} gathered alerts")

    def test_critical_recommendation_first(self, builder, mixed_alerts) -> None:
        recs = builder.build_report(mixed_alerts, Timeframe.DAY).recommendations
        assert recs[0].startswith("Address 2 critical alerts")

    def test_recommendations_are_unique(self, builder, mixed_alerts) -> None:
        recs = builder.build_report(mixed_alerts, Timeframe.DAY).recommendations
        assert len(recs) == len(set(recs))


class FixedStrategy(KnowledgeBaseStrategy):
    def recommendations(self, alerts, threats, market, insights) -> list[str]:
        return ["custom"]


def test_strategy_is_pluggable(clock, mixed_alerts) -> None:
    report = ReportBuilder(strategy=FixedStrategy(), clock=clock).build_report(mixed_alerts, Timeframe.DAY)
    assert report.recommendations == ["custom"]
