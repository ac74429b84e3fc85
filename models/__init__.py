"""Pydantic models for the Scout intelligence engine.

This package contains all data models used throughout the engine:

Source:
    Static feed descriptor (name, address, transport, category, priority).

FeedEntry / ApiRecord / PageSnapshot / CuratedInsight:
    Raw item variants, one per transport kind, discriminated on ``kind``.

Alert:
    Normalized, classified intelligence item with a Severity.

Report:
    Output of one gather cycle, with synthesized sections.

IntelligenceSummary / SummaryPlaceholder:
    Condensed latest-summary document, or the "nothing yet" placeholder.

SourceSuccess / SourceFailure / GatherResult:
    Per-source outcomes aggregated by the orchestrator.

Example:
    >>> from models import Alert, Severity, Timeframe
    >>> Timeframe("24h").duration
    datetime.timedelta(days=1)
"""

from models.alert import Alert, Severity
from models.items import ApiRecord, CuratedInsight, FeedEntry, PageSnapshot, RawItem
from models.report import (
    EducationalInsights,
    IntelligenceSummary,
    MarketIntelligence,
    Report,
    SummaryPlaceholder,
    ThreatLandscape,
    Timeframe,
)
from models.results import GatherResult, SourceFailure, SourceResult, SourceSuccess
from models.source import Priority, Source, SourceCategory, TransportKind, UpdateCadence

__all__ = [
    "Alert",
    "Severity",
    "ApiRecord",
    "CuratedInsight",
    "FeedEntry",
    "PageSnapshot",
    "RawItem",
    "EducationalInsights",
    "IntelligenceSummary",
    "MarketIntelligence",
    "Report",
    "SummaryPlaceholder",
    "ThreatLandscape",
    "Timeframe",
    "GatherResult",
    "SourceFailure",
    "SourceResult",
    "SourceSuccess",
    "Priority",
    "Source",
    "SourceCategory",
    "TransportKind",
    "UpdateCadence",
]
