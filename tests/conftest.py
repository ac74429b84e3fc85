"""Shared fixtures: manual clock, scripted fetcher, small source catalog."""

import asyncio
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from cache import TTLCache
from clock import ManualClock
from models.alert import Alert, Severity
from models.items import ApiRecord, FeedEntry
from models.source import Source, SourceCategory, TransportKind

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class FakeFetcher:
    """Fetcher that returns scripted items (or raises) per source name.

    A script value may be a list of raw items, an exception instance to
    raise, or a float meaning "sleep this long, then return nothing".
    """

    def __init__(self, scripts: dict | None = None):
        self.scripts = scripts or {}
        self.calls: Counter = Counter()

    async def fetch(self, source: Source):
        self.calls[source.name] += 1
        script = self.scripts.get(source.name, [])
        if isinstance(script, BaseException):
            raise script
        if isinstance(script, float):
            await asyncio.sleep(script)
            return []
        return list(script)


def make_source(name: str, category: SourceCategory, transport: TransportKind = TransportKind.SYNDICATION_FEED) -> Source:
    return Source(
        name=name,
        address=f"https://example.com/{name.lower().replace(' ', '-')}",
        transport=transport,
        category=category,
    )


def feed_entry(title: str, summary: str = "", age: timedelta = timedelta(hours=1), link: str = "") -> FeedEntry:
    return FeedEntry(title=title, summary=summary, link=link, published=NOW - age)


def api_record(title: str, body: str = "", age: timedelta = timedelta(hours=1)) -> ApiRecord:
    return ApiRecord(title=title, body=body, url="https://example.com/item", published=NOW - age)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(NOW)


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(clock)


@pytest.fixture
def security_source() -> Source:
    return make_source("Security Wire", SourceCategory.SECURITY)


@pytest.fixture
def news_source() -> Source:
    return make_source("Daily News", SourceCategory.NEWS)


@pytest.fixture
def education_source() -> Source:
    return make_source("Academy", SourceCategory.EDUCATION)


@pytest.fixture
def sources(security_source, news_source, education_source) -> list[Source]:
    return [security_source, news_source, education_source]


def make_alert(
    title: str,
    category: str = "news",
    severity: Severity = Severity.LOW,
    tags: tuple[str, ...] = (),
    relevance: int = 60,
    action_items: tuple[str, ...] = (),
) -> Alert:
    return Alert(
        id="alert_" + title.lower().replace(" ", "_"),
        title=title,
        description="",
        category=category,
        severity=severity,
        source="Test Source",
        url="https://example.com",
        timestamp=NOW - timedelta(hours=1),
        tags=tags,
        relevance_score=relevance,
        action_items=action_items,
    )
