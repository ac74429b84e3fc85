"""Report models for a gather cycle.

Report:
    Full output of one gather cycle. Persisted as a JSON document keyed by
    ``report_id``.

IntelligenceSummary:
    Condensed view of the latest report, overwritten after every save.

SummaryPlaceholder:
    Returned instead of a summary when nothing has been persisted yet.
"""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from models.alert import Alert


class Timeframe(str, Enum):
    """Recency window for eligible items."""

    HOUR = "1h"
    SIX_HOURS = "6h"
    DAY = "24h"
    WEEK = "7d"

    @property
    def duration(self) -> timedelta:
        return _DURATIONS[self]


_DURATIONS = {
    Timeframe.HOUR: timedelta(hours=1),
    Timeframe.SIX_HOURS: timedelta(hours=6),
    Timeframe.DAY: timedelta(hours=24),
    Timeframe.WEEK: timedelta(days=7),
}


class ThreatLandscape(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_threats: list[str] = Field(default_factory=list)
    trending_risks: list[str] = Field(default_factory=list)
    mitigation_strategies: list[str] = Field(default_factory=list)


class MarketIntelligence(BaseModel):
    model_config = ConfigDict(frozen=True)

    economic_factors: list[str] = Field(default_factory=list)
    regulatory_updates: list[str] = Field(default_factory=list)
    adoption_trends: list[str] = Field(default_factory=list)


class EducationalInsights(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_resources: list[str] = Field(default_factory=list)
    course_improvements: list[str] = Field(default_factory=list)
    content_gaps: list[str] = Field(default_factory=list)


class Report(BaseModel):
    """Aggregated, synthesized output of one gather cycle.

    ``critical_alerts``, ``high_alerts`` and ``educational_opportunities``
    are pure filters over the cycle's full alert population.
    """

    model_config = ConfigDict(frozen=True)

    report_id: str
    generated_at: datetime
    period: Timeframe
    summary: str
    total_alerts: int = Field(ge=0)
    critical_alerts: list[Alert] = Field(default_factory=list)
    high_alerts: list[Alert] = Field(default_factory=list)
    educational_opportunities: list[Alert] = Field(default_factory=list)
    threat_landscape: ThreatLandscape = Field(default_factory=ThreatLandscape)
    market_intelligence: MarketIntelligence = Field(default_factory=MarketIntelligence)
    educational_insights: EducationalInsights = Field(default_factory=EducationalInsights)
    recommendations: list[str] = Field(default_factory=list)

    @field_serializer("generated_at")
    def _serialize_generated_at(self, value: datetime) -> str:
        return value.isoformat()

    def __str__(self) -> str:
        return (
            f"Report({self.report_id}, {self.period.value}, total={self.total_alerts}, "
            f"critical={len(self.critical_alerts)}, high={len(self.high_alerts)})"
        )


class IntelligenceSummary(BaseModel):
    """Condensed "latest summary" document."""

    last_updated: datetime
    total_alerts: int
    critical_count: int
    high_count: int
    key_recommendations: list[str] = Field(default_factory=list)
    top_threats: list[str] = Field(default_factory=list)
    education_opportunities: list[str] = Field(default_factory=list)

    @field_serializer("last_updated")
    def _serialize_last_updated(self, value: datetime) -> str:
        return value.isoformat()

    @classmethod
    def from_report(cls, report: Report) -> "IntelligenceSummary":
        """Condense a full report into the latest-summary document."""
        return cls(
            last_updated=report.generated_at,
            total_alerts=report.total_alerts,
            critical_count=len(report.critical_alerts),
            high_count=len(report.high_alerts),
            key_recommendations=report.recommendations[:5],
            top_threats=report.threat_landscape.new_threats[:3],
            education_opportunities=report.educational_insights.new_resources[:3],
        )


class SummaryPlaceholder(BaseModel):
    """Returned when no summary has been written yet."""

    message: str = "No intelligence summary available. Run intelligence gathering first."
    recommendations: list[str] = Field(
        default_factory=lambda: ["Run `scout gather` to start intelligence collection"]
    )
