"""Intelligence engine: one gather cycle from sources to persisted report.

Cycle Flow:
    1. GATHER: Fetch every source concurrently (cache first, hard timeout)
    2. NORMALIZE: Turn raw items into classified alerts, drop stale/off-topic
    3. BUILD: Partition alerts into views and synthesize report sections
    4. SAVE: Write the full report and overwrite the latest summary

Error Handling Strategy:
    - Source failures never escape a cycle; they are counted in the summary
    - A cycle with zero alerts still yields a report
    - Only persistence failures fail the call, and the PersistenceError
      carries the computed report so callers never lose it
"""

import logging
import time
from contextlib import AsyncExitStack
from typing import Iterable

from cache import TTLCache
from clock import Clock, SystemClock
from config import Config
from feeds import FeedFetcher, Fetcher
from gatherer import IntelligenceGatherer
from models.alert import Alert
from models.report import IntelligenceSummary, Report, SummaryPlaceholder, Timeframe
from models.results import GatherResult
from models.source import Source, SourceCategory, TransportKind
from normalizer import Normalizer
from observability.logging import clear_context, set_run_context
from observability.tracing import setup_tracing
from registry import SourceRegistry
from report_builder import InsightStrategy, ReportBuilder
from storage import PersistenceError, ReportStore

logger = logging.getLogger(__name__)


def is_educational(source: Source) -> bool:
    return source.category == SourceCategory.EDUCATION or source.transport == TransportKind.CURATED_SITE


class IntelligenceScout:
    """Gathers, classifies and reports Bitcoin intelligence.

    Every collaborator can be injected; defaults are built from config.
    The cache lives as long as the engine so repeated cycles within the
    TTL reuse per-source results.

    Args:
        config: Application configuration
        sources: Source catalog (defaults to config.sources)
        fetcher: Transport override (tests); when None a FeedFetcher is
            opened for each cycle
        clock: Time source shared by cache, normalizer and report builder
        cache: Per-source alert cache
        store: Report persistence
        strategy: Derivation rule for synthesized report sections
    """

    def __init__(
        self,
        config: Config,
        sources: Iterable[Source] | None = None,
        fetcher: Fetcher | None = None,
        clock: Clock | None = None,
        cache: TTLCache | None = None,
        store: ReportStore | None = None,
        strategy: InsightStrategy | None = None,
    ):
        self.config = config
        self.registry = SourceRegistry(sources if sources is not None else config.sources)
        self.fetcher = fetcher
        self.clock = clock or SystemClock()
        self.cache = cache if cache is not None else TTLCache(self.clock)
        self.store = store or ReportStore(config.data_dir)
        self.normalizer = Normalizer(self.clock)
        self.builder = ReportBuilder(strategy=strategy, clock=self.clock)
        self.last_gather: GatherResult | None = None

        if config.enable_logfire:
            setup_tracing(enabled=True, service_name="scout", token=config.logfire_token)

    async def _gather(self, sources: Iterable[Source], timeframe: Timeframe) -> GatherResult:
        async with AsyncExitStack() as stack:
            fetcher = self.fetcher
            if fetcher is None:
                fetcher = await stack.enter_async_context(
                    FeedFetcher(
                        timeout=self.config.source_timeout_seconds,
                        max_concurrent=self.config.max_workers,
                        clock=self.clock,
                    )
                )
            gatherer = IntelligenceGatherer(
                sources,
                fetcher,
                self.cache,
                normalizer=self.normalizer,
                clock=self.clock,
                cache_ttl=self.config.cache_ttl_seconds,
                source_timeout=self.config.source_timeout_seconds,
            )
            return await gatherer.gather(timeframe)

    async def gather_intelligence(self, timeframe: Timeframe | str | None = None) -> Report:
        """Run one gather cycle and persist its report.

        Args:
            timeframe: One of 1h, 6h, 24h, 7d (default from config)

        Returns:
            The persisted report

        Raises:
            ValueError: If timeframe is not a known window
            PersistenceError: If the report could not be written; the
                built report is available as error.report
        """
        timeframe = Timeframe(timeframe or self.config.default_timeframe)
        sources = self.registry.list_sources()
        start = time.monotonic()

        set_run_context(f"intel_{int(self.clock.now().timestamp() * 1000)}")
        try:
            logger.info("Gather started | timeframe=%s sources=%d", timeframe.value, len(sources))

            result = await self._gather(sources, timeframe)
            self.last_gather = result

            report = self.builder.build_report(
                result.alerts,
                timeframe,
                sources_failed=len(result.failures),
                sources_total=len(sources),
            )

            try:
                self.store.save(report)
            except PersistenceError as e:
                e.report = report
                logger.error("Report not persisted | report_id=%s error=%s", report.report_id, e)
                raise

            logger.info(
                "Gather finished | report_id=%s alerts=%d critical=%d high=%d duration=%.2fs",
                report.report_id, report.total_alerts, len(report.critical_alerts),
                len(report.high_alerts), time.monotonic() - start,
            )
            return report
        finally:
            clear_context()

    def get_current_intelligence_summary(self) -> IntelligenceSummary | SummaryPlaceholder:
        """Latest persisted summary, or a placeholder with a next step."""
        return self.store.load_latest_summary()

    async def monitor_educational_sites(self) -> list[Alert]:
        """Gather educational and curated sources over the last 7 days.

        Shares the engine cache; builds no report and persists nothing.
        """
        sources = [s for s in self.registry if is_educational(s)]
        if not sources:
            logger.info("No educational sources configured")
            return []

        result = await self._gather(sources, Timeframe.WEEK)
        logger.info(
            "Educational monitoring complete | sources=%d alerts=%d failed=%d",
            len(sources), len(result.alerts), len(result.failures),
        )
        return result.alerts
