"""Aggregation and report synthesis.

The builder partitions a cycle's alerts into filtered views and delegates
the synthesized sections (threat landscape, market intelligence,
educational insights, recommendations) to an InsightStrategy.

Section Design:
    Views:
        critical_alerts / high_alerts filter on severity,
        educational_opportunities filters on the education category.
        Each view is a pure filter over the full population, in
        population order. An alert may appear in several views.

    Synthesized sections (KnowledgeBaseStrategy):
        Each section mixes observed data (titles, counts, tag frequencies,
        action items) with knowledge-base statements. A statement is only
        emitted when the alert population it speaks about is present, so
        e.g. new_threats stays empty without security alerts.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, Protocol, Sequence
from uuid import uuid4

from clock import Clock, SystemClock
from models.alert import Alert, Severity
from models.report import (
    EducationalInsights,
    MarketIntelligence,
    Report,
    ThreatLandscape,
    Timeframe,
)
from models.source import SourceCategory

logger = logging.getLogger(__name__)

_SECURITY = SourceCategory.SECURITY.value
_EDUCATION = SourceCategory.EDUCATION.value
_ECONOMICS = SourceCategory.ECONOMICS.value
_REGULATORY = SourceCategory.REGULATORY.value
_NEWS = SourceCategory.NEWS.value
_TECHNICAL = SourceCategory.TECHNICAL.value


# === Knowledge base ===
# Keyed by the tag (or text term) that must be observed for the statement to apply.

THREAT_KB = {
    "wallet": "Multi-signature wallet vulnerabilities in specific implementations",
    "threat": "Social engineering attacks targeting Bitcoin educators",
    "education": "Fake educational content spreading misinformation",
}

RISK_KB = {
    "security": "Increased phishing attempts using educational content as bait",
    "wallet": "Malware targeting Bitcoin wallets during learning exercises",
    "regulatory": "Regulatory uncertainty affecting educational content distribution",
}

MITIGATION_KB = (
    "Implement security warnings in all wallet-related educational content",
    "Create cybersecurity awareness modules for Bitcoin learners",
    "Establish content verification protocols for educational materials",
)

ECONOMIC_KB = (
    "Institutional adoption driving demand for professional Bitcoin education",
    "Economic uncertainty increasing interest in Bitcoin as store of value",
)

REGULATORY_KB = (
    "New educational compliance requirements for cryptocurrency content",
    "Tax reporting changes affecting Bitcoin transaction tutorials",
)

ADOPTION_KB = {
    "lightning": "Growing Lightning Network usage creating demand for payment-channel education",
    "mining": "Mining industry changes raising interest in proof-of-work fundamentals",
    "wallet": "Growing demand for hands-on self-custody education",
}

RESOURCE_KB = {
    "interactive": "Interactive Bitcoin transaction builders on educational sites",
    "visualization": "Advanced cryptography visualization tools",
}

IMPROVEMENT_KB = {
    "security": "Create security-focused scenario-based assessments",
    "interactive": "Add more hands-on wallet creation exercises",
    "economics": "Integrate live market data into fee calculation lessons",
}

# topic term -> content gap statement
CONTENT_GAP_KB = {
    "scripting": "Advanced scripting and smart contracts",
    "lightning": "Lightning Network development tutorials",
    "privacy": "Bitcoin privacy techniques and best practices",
    "enterprise": "Enterprise Bitcoin integration strategies",
    "mining": "Mining economics and proof-of-work fundamentals",
}


def _dedupe(items: Iterable[str]) -> list[str]:
    """Drop duplicates while preserving order."""
    return list(dict.fromkeys(i for i in items if i))


def _ranked(alerts: Iterable[Alert]) -> list[Alert]:
    """Most severe first, then most relevant, then title for stability."""
    return sorted(alerts, key=lambda a: (a.severity.rank, -a.relevance_score, a.title))


def _mentions(alert: Alert, term: str) -> bool:
    return term in alert.tags or term in f"{alert.title} {alert.description}".lower()


def _observed_tags(alerts: Iterable[Alert]) -> Counter:
    counts: Counter = Counter()
    for alert in alerts:
        counts.update(alert.tags)
    return counts


class InsightStrategy(Protocol):
    """Derivation rule for the synthesized report sections."""

    def threat_landscape(self, alerts: Sequence[Alert]) -> ThreatLandscape:
        ...

    def market_intelligence(self, alerts: Sequence[Alert]) -> MarketIntelligence:
        ...

    def educational_insights(self, alerts: Sequence[Alert]) -> EducationalInsights:
        ...

    def recommendations(
        self,
        alerts: Sequence[Alert],
        threats: ThreatLandscape,
        market: MarketIntelligence,
        insights: EducationalInsights,
    ) -> list[str]:
        ...


class KnowledgeBaseStrategy:
    """Observed data plus knowledge-base statements gated on the alert mix.

    Args:
        max_observed: Maximum alert titles quoted per list
    """

    def __init__(self, max_observed: int = 3):
        self.max_observed = max_observed

    def _titles(self, alerts: Iterable[Alert]) -> list[str]:
        return [a.title for a in _ranked(alerts)[: self.max_observed]]

    def threat_landscape(self, alerts: Sequence[Alert]) -> ThreatLandscape:
        security = [a for a in alerts if a.category == _SECURITY]
        severe = [a for a in alerts if a.severity in (Severity.CRITICAL, Severity.HIGH)]
        if not security and not severe:
            return ThreatLandscape()

        new_threats: list[str] = []
        if security:
            new_threats = self._titles(security)
            security_tags = _observed_tags(security)
            new_threats += [text for tag, text in THREAT_KB.items() if tag in security_tags]

        severe_tags = _observed_tags(severe)
        trending = [
            f"'{tag}' mentioned in {count} high-severity alert{'s' if count != 1 else ''}"
            for tag, count in sorted(severe_tags.items(), key=lambda kv: (-kv[1], kv[0]))[: self.max_observed]
        ]
        trending += [text for tag, text in RISK_KB.items() if tag in severe_tags]

        mitigations = [item for a in _ranked(security + severe) for item in a.action_items]
        if security:
            mitigations += MITIGATION_KB

        return ThreatLandscape(
            new_threats=_dedupe(new_threats),
            trending_risks=_dedupe(trending),
            mitigation_strategies=_dedupe(mitigations),
        )

    def market_intelligence(self, alerts: Sequence[Alert]) -> MarketIntelligence:
        economics = [a for a in alerts if a.category == _ECONOMICS]
        regulatory = [a for a in alerts if a.category == _REGULATORY]
        general = [a for a in alerts if a.category in (_NEWS, _TECHNICAL)]

        economic_factors = self._titles(economics) + (list(ECONOMIC_KB) if economics else [])
        regulatory_updates = self._titles(regulatory) + (list(REGULATORY_KB) if regulatory else [])

        adoption: list[str] = []
        if general:
            general_tags = _observed_tags(general)
            adoption.append(f"{len(general)} news and technical developments tracked")
            adoption += [text for tag, text in ADOPTION_KB.items() if tag in general_tags]
            adoption += self._titles(general)

        return MarketIntelligence(
            economic_factors=_dedupe(economic_factors),
            regulatory_updates=_dedupe(regulatory_updates),
            adoption_trends=_dedupe(adoption),
        )

    def educational_insights(self, alerts: Sequence[Alert]) -> EducationalInsights:
        if not alerts:
            return EducationalInsights()

        education = [a for a in alerts if a.category == _EDUCATION]
        education_tags = _observed_tags(education)
        all_tags = _observed_tags(alerts)

        new_resources = self._titles(education)
        if education:
            new_resources += [text for tag, text in RESOURCE_KB.items() if tag in education_tags]

        improvements = [item for a in _ranked(education) for item in a.action_items]
        categories = {a.category for a in alerts}
        improvements += [
            text for key, text in IMPROVEMENT_KB.items()
            if key in all_tags or key in categories
        ]

        # A gap is a topic the wider feed talks about that no educational alert covers
        others = [a for a in alerts if a.category != _EDUCATION]
        gaps = [
            text for term, text in CONTENT_GAP_KB.items()
            if any(_mentions(a, term) for a in others)
            and not any(_mentions(a, term) for a in education)
        ]
        gaps += [a.title for a in education if "content-gap" in a.tags]

        return EducationalInsights(
            new_resources=_dedupe(new_resources),
            course_improvements=_dedupe(improvements),
            content_gaps=_dedupe(gaps),
        )

    def recommendations(
        self,
        alerts: Sequence[Alert],
        threats: ThreatLandscape,
        market: MarketIntelligence,
        insights: EducationalInsights,
    ) -> list[str]:
        if not alerts:
            return ["Verify source connectivity and widen the timeframe; no alerts were gathered"]

        recs: list[str] = []
        critical = [a for a in alerts if a.severity == Severity.CRITICAL]
        if critical:
            top = _ranked(critical)[0]
            recs.append(f"Address {len(critical)} critical alert{'s' if len(critical) != 1 else ''}, starting with: {top.title}")
        if threats.new_threats:
            recs.append("Develop security awareness modules addressing latest Bitcoin threats")
        if market.regulatory_updates:
            recs.append("Create regulatory compliance updates for Bitcoin educational content")
        if any("interactive" in a.tags for a in alerts):
            recs.append("Integrate interactive transaction visualizations from leading educational sites")
        recs += [f"Fill content gap: {gap}" for gap in insights.content_gaps[:2]]
        if any("lightning" in a.tags for a in alerts):
            recs.append("Create advanced Lightning Network development curriculum")

        top = max(alerts, key=lambda a: (a.relevance_score, -a.severity.rank))
        recs.append(f"Review the {len(alerts)} gathered alerts, starting with the most relevant: {top.title}")
        return _dedupe(recs)


class ReportBuilder:
    """Builds a Report from one cycle's alerts.

    Args:
        strategy: Derivation rule for synthesized sections
        clock: Time source for generated_at
    """

    def __init__(self, strategy: InsightStrategy | None = None, clock: Clock | None = None):
        self.strategy = strategy or KnowledgeBaseStrategy()
        self.clock = clock or SystemClock()

    @staticmethod
    def new_report_id(generated_at: datetime) -> str:
        return f"intel_{int(generated_at.timestamp() * 1000)}_{uuid4().hex[:6]}"

    def summarize(
        self,
        alerts: Sequence[Alert],
        timeframe: Timeframe,
        sources_failed: int = 0,
        sources_total: int | None = None,
    ) -> str:
        """One-paragraph summary with total, critical, high and top-category counts."""
        parts = [f"Intelligence summary for {timeframe.value}:"]
        if not alerts and sources_failed:
            parts.append("0 alerts found; sources were unavailable.")
        elif not alerts:
            parts.append("0 alerts found; no relevant items were published in this window.")
        else:
            critical = sum(1 for a in alerts if a.severity == Severity.CRITICAL)
            high = sum(1 for a in alerts if a.severity == Severity.HIGH)
            categories = Counter(a.category for a in alerts)
            top = sorted(categories.items(), key=lambda kv: (-kv[1], kv[0]))[:2]
            parts.append(f"Processed {len(alerts)} total alerts.")
            parts.append(f"{critical} critical, {high} high priority.")
            parts.append("Top categories: " + ", ".join(f"{name} ({count})" for name, count in top) + ".")
            educational = categories.get(_EDUCATION, 0)
            if educational:
                parts.append(f"{educational} educational opportunities identified.")
        if sources_failed:
            total = f" of {sources_total}" if sources_total is not None else ""
            parts.append(f"{sources_failed}{total} sources unavailable.")
        return " ".join(parts)

    def build_report(
        self,
        alerts: Sequence[Alert],
        timeframe: Timeframe | str,
        sources_failed: int = 0,
        sources_total: int | None = None,
    ) -> Report:
        timeframe = Timeframe(timeframe)
        alerts = list(alerts)
        generated_at = self.clock.now()

        threats = self.strategy.threat_landscape(alerts)
        market = self.strategy.market_intelligence(alerts)
        insights = self.strategy.educational_insights(alerts)
        recommendations = self.strategy.recommendations(alerts, threats, market, insights)

        report = Report(
            report_id=self.new_report_id(generated_at),
            generated_at=generated_at,
            period=timeframe,
            summary=self.summarize(alerts, timeframe, sources_failed, sources_total),
            total_alerts=len(alerts),
            critical_alerts=[a for a in alerts if a.severity == Severity.CRITICAL],
            high_alerts=[a for a in alerts if a.severity == Severity.HIGH],
            educational_opportunities=[a for a in alerts if a.category == _EDUCATION],
            threat_landscape=threats,
            market_intelligence=market,
            educational_insights=insights,
            recommendations=recommendations,
        )
        logger.debug("Report built | %s", report)
        return report
