"""Source descriptor model for intelligence feeds.

A Source is a static catalog entry describing one external feed: where it
lives, how to retrieve it, and what kind of intelligence it carries.
Sources are created at configuration time and never mutated.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TransportKind(str, Enum):
    """How a source is retrieved and parsed."""

    SYNDICATION_FEED = "syndication-feed"  # RSS / Atom
    STRUCTURED_API = "structured-api"      # JSON endpoint
    PAGE_SCRAPE = "page-scrape"            # Plain HTML page
    CURATED_SITE = "curated-site"          # HTML page + curated editorial catalog


class SourceCategory(str, Enum):
    """Topical category of a source, inherited by its alerts."""

    NEWS = "news"
    SECURITY = "security"
    ECONOMICS = "economics"
    EDUCATION = "education"
    REGULATORY = "regulatory"
    TECHNICAL = "technical"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UpdateCadence(str, Enum):
    """Expected publishing rhythm. Informational only."""

    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class Source(BaseModel):
    """An external intelligence feed.

    Attributes:
        name: Unique display name (also the cache identity)
        address: URL to retrieve
        transport: How to retrieve and parse the address
        category: Topical category
        priority: Editorial priority
        update_cadence: Expected update rhythm (informational)

    Example:
        >>> Source(
        ...     name="Bitcoin Optech",
        ...     address="https://bitcoinops.org/feed.xml",
        ...     transport=TransportKind.SYNDICATION_FEED,
        ...     category=SourceCategory.TECHNICAL,
        ... )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Unique source name")
    address: str = Field(description="Fetch target URL")
    transport: TransportKind = Field(description="Transport kind")
    category: SourceCategory = Field(description="Topical category")
    priority: Priority = Field(default=Priority.MEDIUM)
    update_cadence: UpdateCadence = Field(default=UpdateCadence.DAILY)

    def __str__(self) -> str:
        return f"Source({self.name}, {self.transport.value}, {self.category.value})"
