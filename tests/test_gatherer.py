"""Tests for the fetch orchestrator."""

from datetime import timedelta

import pytest

from conftest import FakeFetcher, NOW, feed_entry
from feeds import FetchError
from gatherer import IntelligenceGatherer, cache_key
from models.report import Timeframe
from models.results import SourceFailure, SourceSuccess


def _gatherer(sources, fetcher, cache, clock, **kwargs) -> IntelligenceGatherer:
    return IntelligenceGatherer(sources, fetcher, cache, clock=clock, **kwargs)


class TestGather:
    @pytest.mark.asyncio
    async def test_failing_source_is_isolated(self, sources, cache, clock) -> None:
        fetcher = FakeFetcher({
            "Security Wire": FetchError("HTTP 503"),
            "Daily News": [feed_entry("Bitcoin adoption grows")],
            "Academy": [feed_entry("Learn bitcoin basics")],
        })
        result = await _gatherer(sources, fetcher, cache, clock).gather("24h")

        assert [a.source for a in result.alerts] == ["Daily News", "Academy"]
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.source_name == "Security Wire"
        assert "HTTP 503" in failure.reason

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_isolated(self, sources, cache, clock) -> None:
        fetcher = FakeFetcher({"Daily News": RuntimeError("boom")})
        result = await _gatherer(sources, fetcher, cache, clock).gather(Timeframe.DAY)
        assert [f.source_name for f in result.failures] == ["Daily News"]
        assert "RuntimeError" in result.failures[0].reason

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self, sources, cache, clock) -> None:
        fetcher = FakeFetcher({
            "Security Wire": 5.0,
            "Daily News": [feed_entry("Bitcoin mining report")],
        })
        gatherer = _gatherer(sources, fetcher, cache, clock, source_timeout=0.05)
        result = await gatherer.gather(Timeframe.DAY)

        assert [a.source for a in result.alerts] == ["Daily News"]
        assert isinstance(result.results[0], SourceFailure)
        assert "timed out" in result.results[0].reason

    @pytest.mark.asyncio
    async def test_all_sources_fail_yields_empty_list(self, sources, cache, clock) -> None:
        fetcher = FakeFetcher({s.name: FetchError("down") for s in sources})
        result = await _gatherer(sources, fetcher, cache, clock).gather(Timeframe.DAY)
        assert result.alerts == []
        assert len(result.failures) == len(sources)

    @pytest.mark.asyncio
    async def test_one_result_per_source_in_order(self, sources, cache, clock) -> None:
        result = await _gatherer(sources, FakeFetcher(), cache, clock).gather(Timeframe.DAY)
        assert [r.source_name for r in result.results] == [s.name for s in sources]
        assert all(isinstance(r, SourceSuccess) for r in result.results)

    @pytest.mark.asyncio
    async def test_stale_items_excluded(self, news_source, cache, clock) -> None:
        fetcher = FakeFetcher({"Daily News": [
            feed_entry("Bitcoin old news", age=timedelta(days=10)),
            feed_entry("Bitcoin fresh news"),
        ]})
        result = await _gatherer([news_source], fetcher, cache, clock).gather(Timeframe.DAY)
        assert [a.title for a in result.alerts] == ["Bitcoin fresh news"]
        for alert in result.alerts:
            assert NOW - alert.timestamp <= Timeframe.DAY.duration

    @pytest.mark.asyncio
    async def test_duplicates_merged_by_id(self, news_source, cache, clock) -> None:
        item = feed_entry("Bitcoin ETF approved")
        fetcher = FakeFetcher({"Daily News": [item, item]})
        result = await _gatherer([news_source], fetcher, cache, clock).gather(Timeframe.DAY)
        assert len(result.alerts) == 1

    @pytest.mark.asyncio
    async def test_same_title_different_links_kept(self, news_source, cache, clock) -> None:
        items = [
            feed_entry("Bitcoin Core release", link="https://example.com/27.0"),
            feed_entry("Bitcoin Core release", age=timedelta(minutes=50), link="https://example.com/26.2"),
        ]
        fetcher = FakeFetcher({"Daily News": items})
        result = await _gatherer([news_source], fetcher, cache, clock).gather(Timeframe.DAY)
        assert [a.url for a in result.alerts] == ["https://example.com/27.0", "https://example.com/26.2"]


class TestGatherCache:
    @pytest.mark.asyncio
    async def test_second_gather_within_ttl_uses_cache(self, sources, cache, clock) -> None:
        fetcher = FakeFetcher({"Daily News": [feed_entry("Bitcoin rally")]})
        gatherer = _gatherer(sources, fetcher, cache, clock)

        first = await gatherer.gather(Timeframe.DAY)
        clock.advance(minutes=10)
        second = await gatherer.gather(Timeframe.DAY)

        assert all(count == 1 for count in fetcher.calls.values())
        assert second.cache_hits == len(sources)
        assert [a.id for a in second.alerts] == [a.id for a in first.alerts]

    @pytest.mark.asyncio
    async def test_refetch_after_ttl(self, news_source, cache, clock) -> None:
        fetcher = FakeFetcher({"Daily News": [feed_entry("Bitcoin rally")]})
        gatherer = _gatherer([news_source], fetcher, cache, clock, cache_ttl=60)

        await gatherer.gather(Timeframe.DAY)
        clock.advance(seconds=61)
        await gatherer.gather(Timeframe.DAY)

        assert fetcher.calls["Daily News"] == 2

    @pytest.mark.asyncio
    async def test_timeframes_cached_separately(self, news_source, cache, clock) -> None:
        fetcher = FakeFetcher()
        gatherer = _gatherer([news_source], fetcher, cache, clock)

        await gatherer.gather(Timeframe.DAY)
        await gatherer.gather(Timeframe.WEEK)

        assert fetcher.calls["Daily News"] == 2
        assert cache.get(cache_key(news_source, Timeframe.DAY)) == []
        assert cache.get(cache_key(news_source, Timeframe.WEEK)) == []

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, news_source, cache, clock) -> None:
        fetcher = FakeFetcher({"Daily News": FetchError("down")})
        gatherer = _gatherer([news_source], fetcher, cache, clock)

        await gatherer.gather(Timeframe.DAY)
        await gatherer.gather(Timeframe.DAY)

        assert fetcher.calls["Daily News"] == 2

    @pytest.mark.asyncio
    async def test_cached_alerts_refiltered_by_window(self, news_source, cache, clock) -> None:
        fetcher = FakeFetcher({"Daily News": [feed_entry("Bitcoin rally", age=timedelta(minutes=50))]})
        gatherer = _gatherer([news_source], fetcher, cache, clock)

        first = await gatherer.gather(Timeframe.HOUR)
        clock.advance(minutes=15)
        second = await gatherer.gather(Timeframe.HOUR)

        assert len(first.alerts) == 1
        assert second.alerts == []
        assert second.cache_hits == 1
        assert len(cache.get(cache_key(news_source, Timeframe.HOUR))) == 1
