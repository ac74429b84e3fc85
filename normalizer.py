"""Normalization and rule-based classification of raw feed items.

This module turns one raw item from one source into zero or one Alert.

Filters (an item is dropped when any fails):
    - Time window: publish time must lie within the timeframe of "now".
      Items without a publish time are dropped.
    - Topic: title + description must mention one of TOPIC_KEYWORDS.

Classification (all deterministic, case-insensitive substring rules):
    - Severity: first matching rule wins (see assess_severity)
    - Relevance: additive score starting at 50, clamped to [0, 100]
    - Tags: fixed vocabulary plus the source's own category tag
    - Educational impact and action items: small rule tables

Error Handling Strategy:
    - normalize() may raise on a malformed item
    - normalize_all() isolates each item: failures are logged at DEBUG and
      the item is skipped, the remaining items are still processed
"""

import logging
import re
import unicodedata
from datetime import datetime
from hashlib import sha256
from typing import Iterable

from pydantic import ValidationError

from clock import Clock, SystemClock
from models.alert import Alert, Severity
from models.items import ApiRecord, CuratedInsight, FeedEntry, PageSnapshot, RawItem
from models.report import Timeframe
from models.source import Source, SourceCategory

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 300

TOPIC_KEYWORDS = (
    "bitcoin", "btc", "cryptocurrency", "blockchain",
    "lightning", "satoshi", "wallet", "mining",
)

_CRITICAL_TERMS = ("vulnerability", "exploit", "hack")
_HIGH_TERMS = ("security", "threat", "risk")

# tag -> terms that trigger it
_TAG_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("security", ("security",)),
    ("education", ("education", "learn")),
    ("regulatory", ("regulatory", "regulation")),
    ("mining", ("mining",)),
    ("wallet", ("wallet",)),
    ("lightning", ("lightning",)),
    ("interactive", ("interactive",)),
    ("threat", ("threat",)),
)

# Source categories that always tag their own alerts
_CATEGORY_TAGS = {
    SourceCategory.SECURITY: "security",
    SourceCategory.EDUCATION: "education",
    SourceCategory.REGULATORY: "regulatory",
}

_IMPACT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("interactive", "visualization"), "High - Interactive content enhances learning engagement"),
    (("security", "privacy"), "High - Critical knowledge for Bitcoin users"),
    (("regulatory", "compliance"), "Medium - Important for comprehensive understanding"),
    (("technical", "development"), "Medium - Valuable for advanced learners"),
)
_DEFAULT_IMPACT = "Low - General interest content"

_ACTION_ITEMS: dict[SourceCategory, tuple[str, ...]] = {
    SourceCategory.SECURITY: (
        "Review security implications for educational content",
        "Update security warnings in relevant courses",
    ),
    SourceCategory.EDUCATION: (
        "Analyze content for course improvement opportunities",
        "Consider integrating new educational techniques",
    ),
    SourceCategory.REGULATORY: (
        "Review compliance requirements for educational content",
        "Update disclaimer and legal information",
    ),
}

_TAG_PATTERN = re.compile(r"<[^>]*>")


def clean_description(text: str, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    """Strip markup, collapse whitespace and cap the length."""
    text = _TAG_PATTERN.sub("", text or "")
    text = re.sub(r"\s+", " ", text).strip()
    return text[:max_length]


def within_timeframe(published: datetime | None, timeframe: Timeframe, now: datetime) -> bool:
    """True if ``now - published <= timeframe``. Undated items never qualify."""
    if published is None:
        return False
    return now - published <= timeframe.duration


def is_on_topic(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in TOPIC_KEYWORDS)


def assess_severity(text: str, category: SourceCategory) -> Severity:
    """Assign severity; the first matching rule wins.

    Rules, in order:
        vulnerability / exploit / hack  -> critical
        security / threat / risk        -> high
        regulatory or economics source  -> medium
        education source                -> info
        anything else                   -> low
    """
    lowered = text.lower()
    if any(term in lowered for term in _CRITICAL_TERMS):
        return Severity.CRITICAL
    if any(term in lowered for term in _HIGH_TERMS):
        return Severity.HIGH
    if category in (SourceCategory.REGULATORY, SourceCategory.ECONOMICS):
        return Severity.MEDIUM
    if category == SourceCategory.EDUCATION:
        return Severity.INFO
    return Severity.LOW


def relevance_score(text: str, category: SourceCategory) -> int:
    lowered = text.lower()
    score = 50

    # Direct Bitcoin mentions
    if "bitcoin" in lowered:
        score += 20
    if "btc" in lowered:
        score += 15

    if category == SourceCategory.EDUCATION:
        score += 15
    if category == SourceCategory.SECURITY:
        score += 10

    if any(term in lowered for term in ("learn", "tutorial", "course")):
        score += 10
    if any(term in lowered for term in ("interactive", "hands-on")):
        score += 10

    return min(100, max(0, score))


def extract_tags(text: str, category: SourceCategory) -> tuple[str, ...]:
    """Return the sorted set of vocabulary tags present in the text."""
    lowered = text.lower()
    tags = {tag for tag, terms in _TAG_RULES if any(term in lowered for term in terms)}
    category_tag = _CATEGORY_TAGS.get(category)
    if category_tag:
        tags.add(category_tag)
    return tuple(sorted(tags))


def educational_impact(text: str) -> str:
    lowered = text.lower()
    for terms, impact in _IMPACT_RULES:
        if any(term in lowered for term in terms):
            return impact
    return _DEFAULT_IMPACT


def action_items(category: SourceCategory) -> tuple[str, ...]:
    return _ACTION_ITEMS.get(category, ())


def alert_id(title: str, published: datetime, source_name: str, url: str = "") -> str:
    """Deterministic alert id.

    Combines the normalized title (lowercase, NFKC, no punctuation), the
    publication hour, the source name and the item link, so the same item
    from the same source always maps to the same id while distinct items
    sharing a headline do not.
    """
    normalized = unicodedata.normalize("NFKC", title.lower())
    normalized = re.sub(r"[^\w\s]", "", normalized)
    normalized = re.sub(r"\s+", " ", normalized).strip()
    payload = f"{normalized}|{published.strftime('%Y-%m-%d-%H')}|{source_name}|{url}"
    return "alert_" + sha256(payload.encode()).hexdigest()[:16]


class Normalizer:
    """Converts raw items into classified Alerts.

    The normalizer holds no state besides its clock; classifying the same
    item twice yields the same severity, score, tags and id.
    """

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()

    def normalize(
        self,
        item: RawItem,
        source: Source,
        timeframe: Timeframe,
        now: datetime | None = None,
    ) -> Alert | None:
        """Produce an Alert, or None if the item is filtered out."""
        now = now or self.clock.now()
        curated: CuratedInsight | None = None

        match item:
            case FeedEntry(title=title, summary=body, link=url, published=published):
                pass
            case ApiRecord(title=title, body=body, url=url, published=published):
                pass
            case PageSnapshot(title=title, text=body, url=url, published=published):
                pass
            case CuratedInsight(title=title, description=body, url=url, published=published):
                curated = item
                published = published or now
            case _:
                raise TypeError(f"Unsupported item type: {type(item).__name__}")

        if not within_timeframe(published, timeframe, now):
            return None

        title = (title or "").strip() or "Untitled"
        description = clean_description(body)
        text = f"{title} {description}"
        if not is_on_topic(text):
            return None

        severity = assess_severity(text, source.category)
        tags = extract_tags(text, source.category)
        if curated is not None:
            # Catalog classification can raise severity, never lower it
            severity = min(severity, curated.severity, key=lambda s: s.rank)
            tags = tuple(sorted(set(tags) | set(curated.tags)))
            score = min(100, max(0, curated.relevance_score))
            impact = curated.educational_impact or educational_impact(text)
            actions = curated.action_items or action_items(source.category)
        else:
            score = relevance_score(text, source.category)
            impact = educational_impact(text)
            actions = action_items(source.category)

        url = url or source.address
        return Alert(
            id=alert_id(title, published, source.name, url),
            title=title,
            description=description,
            category=source.category.value,
            severity=severity,
            source=source.name,
            url=url,
            timestamp=published,
            tags=tags,
            relevance_score=score,
            educational_impact=impact,
            action_items=actions,
        )

    def normalize_all(
        self,
        items: Iterable[RawItem],
        source: Source,
        timeframe: Timeframe,
    ) -> list[Alert]:
        """Normalize a batch from one source, skipping items that fail."""
        now = self.clock.now()
        alerts = []
        skipped = 0
        for item in items:
            try:
                alert = self.normalize(item, source, timeframe, now=now)
            except (ValidationError, ValueError, TypeError, KeyError, AttributeError) as e:
                skipped += 1
                logger.debug("Item skipped | source=%s error=%s", source.name, e)
                continue
            if alert is not None:
                alerts.append(alert)

        if skipped:
            logger.warning("Malformed items skipped | source=%s count=%d", source.name, skipped)
        return alerts
