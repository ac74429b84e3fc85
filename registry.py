"""Source registry: the catalog of monitored intelligence feeds.

The registry is an immutable, ordered sequence of Source descriptors.
The built-in catalog below is only a default; the engine always receives
its sources explicitly (see Config.sources), so tests and deployments can
inject their own.

Curated sites additionally carry a small editorial catalog of insights
(CURATED_INSIGHTS) emitted whenever the site is reachable.
"""

from typing import Iterable, Iterator

from models.alert import Severity
from models.source import Priority, Source, SourceCategory, TransportKind, UpdateCadence

_FEED = TransportKind.SYNDICATION_FEED

# Bitcoin intelligence sources organized by category
DEFAULT_SOURCES: list[Source] = [
    # === News ===
    Source(name="CoinDesk Bitcoin", address="https://www.coindesk.com/tag/bitcoin/feed/",
           transport=_FEED, category=SourceCategory.NEWS,
           priority=Priority.HIGH, update_cadence=UpdateCadence.HOURLY),
    Source(name="Bitcoin Magazine", address="https://bitcoinmagazine.com/.rss/full/",
           transport=_FEED, category=SourceCategory.NEWS,
           priority=Priority.HIGH, update_cadence=UpdateCadence.HOURLY),
    Source(name="Decrypt Bitcoin", address="https://decrypt.co/feed?tag=bitcoin",
           transport=_FEED, category=SourceCategory.NEWS,
           priority=Priority.MEDIUM, update_cadence=UpdateCadence.HOURLY),

    # === Security & Threats ===
    Source(name="Bitcoin Security Research", address="https://bitcoinsecurity.org/feed/",
           transport=_FEED, category=SourceCategory.SECURITY,
           priority=Priority.HIGH, update_cadence=UpdateCadence.DAILY),
    Source(name="Blockchain Threat Intelligence", address="https://www.chainalysis.com/blog/rss/",
           transport=_FEED, category=SourceCategory.SECURITY,
           priority=Priority.HIGH, update_cadence=UpdateCadence.DAILY),

    # === Economic & Regulatory ===
    Source(name="Federal Reserve Economic Data", address="https://fred.stlouisfed.org/feed",
           transport=_FEED, category=SourceCategory.ECONOMICS,
           priority=Priority.MEDIUM, update_cadence=UpdateCadence.DAILY),
    Source(name="SEC Cryptocurrency Releases", address="https://www.sec.gov/news/pressreleases.rss",
           transport=_FEED, category=SourceCategory.REGULATORY,
           priority=Priority.HIGH, update_cadence=UpdateCadence.DAILY),

    # === Educational Resources ===
    Source(name="Learn Me A Bitcoin", address="https://learnmeabitcoin.com",
           transport=TransportKind.CURATED_SITE, category=SourceCategory.EDUCATION,
           priority=Priority.HIGH, update_cadence=UpdateCadence.WEEKLY),
    Source(name="Bitcoin Optech", address="https://bitcoinops.org/feed.xml",
           transport=_FEED, category=SourceCategory.TECHNICAL,
           priority=Priority.HIGH, update_cadence=UpdateCadence.WEEKLY),
    Source(name="Andreas Antonopoulos", address="https://antonopoulos.com/feed/",
           transport=_FEED, category=SourceCategory.EDUCATION,
           priority=Priority.HIGH, update_cadence=UpdateCadence.WEEKLY),

    # === Technical Development ===
    Source(name="Bitcoin Core Development", address="https://github.com/bitcoin/bitcoin/releases.atom",
           transport=_FEED, category=SourceCategory.TECHNICAL,
           priority=Priority.MEDIUM, update_cadence=UpdateCadence.WEEKLY),
    Source(name="Hacker News Bitcoin",
           address="https://hn.algolia.com/api/v1/search_by_date?query=bitcoin&tags=story",
           transport=TransportKind.STRUCTURED_API, category=SourceCategory.TECHNICAL,
           priority=Priority.LOW, update_cadence=UpdateCadence.REALTIME),

    # === Research & Academic ===
    Source(name="MIT Digital Currency Research", address="https://dci.mit.edu/feed/",
           transport=_FEED, category=SourceCategory.EDUCATION,
           priority=Priority.MEDIUM, update_cadence=UpdateCadence.WEEKLY),
]


# Editorial insights keyed by curated source name.
# Each entry holds CuratedInsight fields except url/published, which are
# filled in at fetch time.
CURATED_INSIGHTS: dict[str, list[dict]] = {
    "Learn Me A Bitcoin": [
        {
            "title": "Learn Me A Bitcoin: New Interactive Features Detected",
            "description": (
                "The site has excellent interactive diagrams for Bitcoin transaction "
                "visualization and blockchain exploration that could enhance our courses."
            ),
            "severity": Severity.INFO,
            "tags": ("interactive", "visualization", "course-improvement"),
            "relevance_score": 85,
            "educational_impact": "High - Interactive visualizations could significantly improve student engagement",
            "action_items": (
                "Review transaction visualization techniques",
                "Consider implementing similar interactive elements",
                "Analyze their progressive complexity approach",
            ),
        },
        {
            "title": "Educational Content Gap Analysis",
            "description": (
                "Identified advanced topics in Bitcoin scripting and UTXO management that are "
                "well-explained on educational sites but missing from our content."
            ),
            "severity": Severity.MEDIUM,
            "tags": ("content-gap", "advanced-topics", "scripting"),
            "relevance_score": 75,
            "educational_impact": "Medium - Could fill important knowledge gaps for advanced learners",
            "action_items": (
                "Create Bitcoin scripting tutorial module",
                "Add UTXO management hands-on exercises",
                "Develop advanced transaction construction content",
            ),
        },
    ],
}


class SourceRegistry:
    """Read-only, ordered catalog of sources.

    Enumeration is stable across calls and has no side effects.
    Duplicate source names are rejected at construction time because
    the name is the cache identity.
    """

    def __init__(self, sources: Iterable[Source]):
        self._sources: tuple[Source, ...] = tuple(sources)
        names = [s.name for s in self._sources]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate source names: {', '.join(duplicates)}")

    def list_sources(self) -> tuple[Source, ...]:
        return self._sources

    def get(self, name: str) -> Source | None:
        for source in self._sources:
            if source.name == name:
                return source
        return None

    def __iter__(self) -> Iterator[Source]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)
