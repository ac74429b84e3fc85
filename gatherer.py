"""Fetch orchestration: concurrent, isolated retrieval of every source.

One gather cycle fans out one task per source and waits for all of them
to settle. Each task:

    1. Checks the cache under (source name, timeframe)
    2. On a miss, fetches the source under a hard timeout, normalizes the
       raw items and caches the resulting alert list
    3. Reports SourceSuccess or SourceFailure

A failing source never affects the others and never raises out of
gather(); losing every source just yields an empty alert list.
"""

import asyncio
import logging
from typing import Iterable

from cache import DEFAULT_TTL_SECONDS, TTLCache
from clock import Clock, SystemClock
from feeds import Fetcher, FetchError, fetch_with_timeout
from models.alert import Alert
from models.report import Timeframe
from models.results import GatherResult, SourceFailure, SourceResult, SourceSuccess
from models.source import Source
from normalizer import Normalizer, within_timeframe
from observability.logging import set_source_context
from observability.tracing import trace_operation

logger = logging.getLogger(__name__)


def cache_key(source: Source, timeframe: Timeframe) -> tuple[str, str]:
    return (source.name, timeframe.value)


class IntelligenceGatherer:
    """Fan-out/fan-in retrieval over a fixed set of sources.

    Args:
        sources: Sources to retrieve (in registry order)
        fetcher: Transport used for network I/O
        cache: Shared TTL cache of per-source alert lists
        normalizer: Item classifier (defaults to one sharing the clock)
        clock: Time source for window checks
        cache_ttl: Seconds a fresh alert list stays cached
        source_timeout: Hard per-source deadline in seconds
    """

    def __init__(
        self,
        sources: Iterable[Source],
        fetcher: Fetcher,
        cache: TTLCache,
        normalizer: Normalizer | None = None,
        clock: Clock | None = None,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        source_timeout: float = 8.0,
    ):
        self.sources = tuple(sources)
        self.fetcher = fetcher
        self.cache = cache
        self.clock = clock or SystemClock()
        self.normalizer = normalizer or Normalizer(self.clock)
        self.cache_ttl = cache_ttl
        self.source_timeout = source_timeout

    async def gather_source(self, source: Source, timeframe: Timeframe) -> SourceResult:
        """Retrieve one source, consulting the cache first. Never raises."""
        set_source_context(source.name)
        key = cache_key(source, timeframe)
        cached: list[Alert] | None = self.cache.get(key)
        if cached is not None:
            now = self.clock.now()
            fresh = [a for a in cached if within_timeframe(a.timestamp, timeframe, now)]
            logger.debug("Cache hit | source=%s alerts=%d", source.name, len(fresh))
            return SourceSuccess(source_name=source.name, alerts=fresh, from_cache=True)

        try:
            with trace_operation("fetch_source", {"source": source.name}):
                items = await fetch_with_timeout(self.fetcher, source, self.source_timeout)
        except asyncio.TimeoutError:
            logger.warning("Source timed out | source=%s timeout=%.1fs", source.name, self.source_timeout)
            return SourceFailure(source_name=source.name, reason=f"timed out after {self.source_timeout:g}s")
        except FetchError as e:
            logger.warning("Source failed | source=%s error=%s", source.name, e)
            return SourceFailure(source_name=source.name, reason=str(e))
        except Exception as e:
            logger.warning("Source error | source=%s type=%s error=%s", source.name, type(e).__name__, e)
            return SourceFailure(source_name=source.name, reason=f"{type(e).__name__}: {e}")

        alerts = self.normalizer.normalize_all(items, source, timeframe)
        self.cache.set(key, alerts, ttl=self.cache_ttl)
        logger.info("Source gathered | source=%s items=%d alerts=%d", source.name, len(items), len(alerts))
        return SourceSuccess(source_name=source.name, alerts=alerts)

    async def gather(self, timeframe: Timeframe | str) -> GatherResult:
        """Retrieve all sources concurrently and merge their alerts.

        Alerts are merged in source order and de-duplicated by id (first
        occurrence wins).
        """
        timeframe = Timeframe(timeframe)

        with trace_operation("gather", {"timeframe": timeframe.value, "sources": len(self.sources)}) as attrs:
            tasks = [self.gather_source(source, timeframe) for source in self.sources]
            results = await asyncio.gather(*tasks, return_exceptions=True)

            outcome = GatherResult()
            seen: set[str] = set()
            for source, result in zip(self.sources, results):
                if isinstance(result, BaseException):
                    if isinstance(result, asyncio.CancelledError):
                        raise result
                    result = SourceFailure(source_name=source.name, reason=f"{type(result).__name__}: {result}")
                outcome.results.append(result)
                if isinstance(result, SourceSuccess):
                    for alert in result.alerts:
                        if alert.id not in seen:
                            seen.add(alert.id)
                            outcome.alerts.append(alert)

            attrs["alerts"] = len(outcome.alerts)
            attrs["failures"] = len(outcome.failures)

        logger.info(
            "Gather complete | timeframe=%s sources=%d alerts=%d failed=%d cached=%d",
            timeframe.value, len(self.sources), len(outcome.alerts),
            len(outcome.failures), outcome.cache_hits,
        )
        return outcome
