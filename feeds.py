"""Async feed retrieval and parsing.

This module retrieves each source over HTTP and converts its payload into
typed raw items, one variant per transport kind:

    syndication-feed -> FeedEntry      (RSS/Atom via feedparser)
    structured-api   -> ApiRecord      (JSON listing)
    page-scrape      -> PageSnapshot   (HTML headline metadata)
    curated-site     -> PageSnapshot + CuratedInsight catalog

Features:
    - One pooled aiohttp session per gather cycle
    - SSL certificate handling with fallback
    - Per-request timeout (the orchestrator adds its own hard limit)

Error Handling Strategy:
    - Source-level problems (HTTP status, connection, malformed payload)
      raise FetchError; the orchestrator turns them into SourceFailure
    - SSL errors trigger a retry without verification
    - A single entry that cannot be parsed is skipped and logged at DEBUG,
      the rest of the feed is kept
"""

import asyncio
import json
import logging
import re
import ssl
from datetime import datetime, timezone
from html.parser import HTMLParser
from io import StringIO
from typing import Any, Mapping, Protocol

import aiohttp
import certifi
import feedparser
from dateutil import parser as date_parser
from pydantic import ValidationError

from clock import Clock, SystemClock
from models.items import ApiRecord, CuratedInsight, FeedEntry, PageSnapshot, RawItem
from models.source import Source, TransportKind
from registry import CURATED_INSIGHTS

logger = logging.getLogger(__name__)

# Browser-like User-Agent to avoid being blocked by some servers
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Key aliases for JSON API records, in order of preference
_LIST_KEYS = ("items", "data", "results", "articles", "entries", "hits")
_TITLE_KEYS = ("title", "name", "headline")
_BODY_KEYS = ("description", "summary", "body", "content", "story_text", "text")
_URL_KEYS = ("url", "link", "html_url", "permalink")
_DATE_KEYS = ("published_at", "published", "pubDate", "created_at", "date", "timestamp", "updated_at")

# HTML meta keys carrying a publication time, in order of preference
_PAGE_DATE_KEYS = (
    "article:published_time",
    "article:modified_time",
    "og:updated_time",
    "date",
    "dc.date",
)


class FetchError(Exception):
    """A source could not be retrieved or its payload could not be parsed."""


class Fetcher(Protocol):
    """Anything that can turn a Source into raw items."""

    async def fetch(self, source: Source) -> list[RawItem]:
        ...


def _ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with optional certificate verification.

    Args:
        verify: If True, verify SSL certificates using certifi bundle.
                If False, disable verification (for problematic servers).

    Returns:
        Configured SSL context
    """
    if verify:
        return ssl.create_default_context(cafile=certifi.where())
    # Fallback: disable verification for servers with cert issues
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def parse_datetime(value: Any) -> datetime | None:
    """Parse a loosely-typed timestamp into an aware UTC datetime.

    Accepts datetimes, epoch seconds (or milliseconds), numeric strings,
    ISO 8601 and RFC 822 strings. Naive values are assumed to be UTC.

    Returns:
        Datetime in UTC, or None if the value is empty or unparseable
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
        seconds = float(value)
        if seconds > 1e12:  # milliseconds
            seconds /= 1000
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_entry_date(entry: Mapping) -> datetime | None:
    """Extract publication date from feed entry.

    Tries multiple date fields in order of preference:
    1. published_parsed - Standard RSS pubDate
    2. updated_parsed - Atom updated timestamp
    3. created_parsed - Less common creation date

    Args:
        entry: Parsed feed entry dictionary

    Returns:
        Datetime in UTC, or None if no valid date found
    """
    for field in ("published_parsed", "updated_parsed", "created_parsed"):
        time_tuple = entry.get(field)
        if time_tuple:
            try:
                return datetime(*time_tuple[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return None


def parse_feed_content(content: str) -> list[FeedEntry]:
    """Parse RSS/Atom content into FeedEntry items.

    Entries without a title are skipped. Entries without a date are kept
    with ``published=None``; the normalizer decides what to do with them.

    Raises:
        FetchError: If the payload is not a feed at all
    """
    feed = feedparser.parse(content)
    if feed.bozo and not feed.entries:
        raise FetchError(f"Malformed feed: {feed.get('bozo_exception', 'unknown error')}")

    entries = []
    for entry in feed.entries:
        try:
            title = (entry.get("title") or "").strip()
            if not title:
                continue
            summary = entry.get("summary") or entry.get("description") or ""
            if not summary and entry.get("content"):
                summary = entry.content[0].get("value", "")
            entries.append(FeedEntry(
                title=title,
                summary=summary,
                link=entry.get("link") or entry.get("id") or "",
                published=_parse_entry_date(entry),
            ))
        except (AttributeError, IndexError, TypeError, ValidationError) as e:
            logger.debug("Feed entry skipped | error=%s", e)
    return entries


def _first(record: Mapping, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_api_payload(payload: Any) -> list[ApiRecord]:
    """Convert a decoded JSON listing into ApiRecord items.

    The payload may be a list of records or an object that holds the list
    under one of the common keys (items, data, results, ...).

    Raises:
        FetchError: If no record list can be found
    """
    records = payload
    if isinstance(payload, Mapping):
        records = next(
            (payload[key] for key in _LIST_KEYS if isinstance(payload.get(key), list)),
            None,
        )
    if not isinstance(records, list):
        raise FetchError("API payload has no record list")

    items = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        try:
            items.append(ApiRecord(
                title=str(_first(record, _TITLE_KEYS) or "").strip(),
                body=str(_first(record, _BODY_KEYS) or ""),
                url=str(_first(record, _URL_KEYS) or ""),
                published=parse_datetime(_first(record, _DATE_KEYS)),
            ))
        except ValidationError as e:
            logger.debug("API record skipped | error=%s", e)
    return items


class _PageMetaExtractor(HTMLParser):
    """Collect title, meta tags, first <time> and visible text from HTML."""

    # Tags whose content should be completely ignored
    SKIP_TAGS = frozenset({"script", "style", "head", "noscript"})

    def __init__(self):
        super().__init__()
        self.meta: dict[str, str] = {}
        self.title = ""
        self.time_value = ""
        self._in_title = False
        self._skip_depth = 0
        self._buffer = StringIO()

    def handle_starttag(self, tag, attrs):
        attributes = {k.lower(): (v or "") for k, v in attrs}
        if tag == "meta":
            key = (attributes.get("property") or attributes.get("name") or "").lower()
            if key and key not in self.meta:
                self.meta[key] = attributes.get("content", "")
            return
        if tag == "title":
            self._in_title = True
        elif tag == "time" and not self.time_value:
            self.time_value = attributes.get("datetime", "")
        if tag in self.SKIP_TAGS:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag == "title":
            self._in_title = False
        if tag in self.SKIP_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1

    def handle_data(self, data):
        if self._in_title:
            self.title += data
        elif self._skip_depth == 0:
            self._buffer.write(data)

    def get_text(self) -> str:
        return re.sub(r"\s+", " ", self._buffer.getvalue()).strip()


def parse_page(html: str, url: str, last_modified: str | None = None) -> PageSnapshot:
    """Extract headline metadata from an HTML page.

    Publication time comes from article/OpenGraph meta tags, then the first
    ``<time datetime>`` element, then the HTTP Last-Modified header.
    """
    extractor = _PageMetaExtractor()
    extractor.feed(html)
    extractor.close()

    meta = extractor.meta
    title = meta.get("og:title") or extractor.title
    text = meta.get("description") or meta.get("og:description") or extractor.get_text()[:2000]

    published = None
    for key in _PAGE_DATE_KEYS:
        published = parse_datetime(meta.get(key))
        if published:
            break
    if published is None:
        published = parse_datetime(extractor.time_value) or parse_datetime(last_modified)

    return PageSnapshot(
        title=re.sub(r"\s+", " ", title).strip(),
        text=text,
        url=url,
        published=published,
    )


def curated_insights(source: Source, url: str, published: datetime) -> list[CuratedInsight]:
    """Build the editorial insights registered for a curated source."""
    return [
        CuratedInsight(url=url, published=published, **entry)
        for entry in CURATED_INSIGHTS.get(source.name, [])
    ]


class FeedFetcher:
    """HTTP fetcher for all transport kinds.

    Use as an async context manager so one connection pool serves the
    whole gather cycle:

        >>> async with FeedFetcher(timeout=8) as fetcher:
        ...     items = await fetcher.fetch(source)
    """

    def __init__(
        self,
        timeout: float = 8.0,
        max_concurrent: int = 10,
        clock: Clock | None = None,
    ):
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self.clock = clock or SystemClock()
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "FeedFetcher":
        connector = aiohttp.TCPConnector(limit=self.max_concurrent)
        self._session = aiohttp.ClientSession(connector=connector)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _get(self, url: str, verify_ssl: bool = True) -> tuple[str, Mapping[str, str]]:
        """GET a URL and return (body, headers).

        On SSL certificate errors, automatically retries without verification.

        Raises:
            FetchError: On non-200 status or connection failure
        """
        if self._session is None:
            raise RuntimeError("FeedFetcher must be used as an async context manager")
        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": USER_AGENT},
                ssl=_ssl_context(verify_ssl),
            ) as resp:
                if resp.status != 200:
                    raise FetchError(f"HTTP {resp.status}")
                return await resp.text(), resp.headers
        except aiohttp.ClientSSLError as e:
            # Retry without SSL verification on certificate errors
            if verify_ssl:
                logger.debug("Source %s: SSL error, retrying without verification", url)
                return await self._get(url, verify_ssl=False)
            raise FetchError(f"SSL verification failed after retry: {e}") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

    async def fetch(self, source: Source) -> list[RawItem]:
        """Retrieve one source and parse it into raw items.

        Raises:
            FetchError: On any source-level failure
            asyncio.TimeoutError: If the request exceeds the timeout
        """
        body, headers = await self._get(source.address)

        match source.transport:
            case TransportKind.SYNDICATION_FEED:
                items: list[RawItem] = list(parse_feed_content(body))
            case TransportKind.STRUCTURED_API:
                try:
                    payload = json.loads(body)
                except json.JSONDecodeError as e:
                    raise FetchError(f"Malformed JSON: {e}") from e
                items = list(parse_api_payload(payload))
            case TransportKind.PAGE_SCRAPE:
                items = [parse_page(body, source.address, headers.get("Last-Modified"))]
            case TransportKind.CURATED_SITE:
                snapshot = parse_page(body, source.address, headers.get("Last-Modified"))
                items = [snapshot, *curated_insights(source, source.address, self.clock.now())]
            case _:
                raise FetchError(f"Unsupported transport: {source.transport}")

        logger.debug("Source fetched | source=%s items=%d", source.name, len(items))
        return items


async def fetch_with_timeout(fetcher: Fetcher, source: Source, timeout: float) -> list[RawItem]:
    """Run fetcher.fetch under a hard deadline."""
    return await asyncio.wait_for(fetcher.fetch(source), timeout=timeout)
