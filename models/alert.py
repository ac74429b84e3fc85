"""Alert model: the unit of intelligence.

An Alert is produced by the normalizer from a single raw feed item and is
immutable afterwards. Its JSON shape is the persisted alert document:

    {id, title, description, category, severity, source, url, timestamp,
     tags[], relevance_score, educational_impact, action_items[]}
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class Severity(str, Enum):
    """Ordered urgency classification, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort key: 0 for critical up to 4 for info."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = list(Severity)


class Alert(BaseModel):
    """A normalized, classified intelligence item.

    Attributes:
        id: Deterministic identifier, unique within a gather cycle
        title: Item headline
        description: Sanitized, length-capped text
        category: Topical category (inherited from the source)
        severity: Urgency classification
        source: Name of the source the item came from
        url: Link to the original item
        timestamp: Publication time (UTC)
        tags: Keyword tokens found in the text (order irrelevant)
        relevance_score: 0-100 topical importance
        educational_impact: Free-text impact classification
        action_items: Ordered suggested next steps
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    category: str
    severity: Severity
    source: str
    url: str = ""
    timestamp: datetime
    tags: tuple[str, ...] = ()
    relevance_score: int = Field(ge=0, le=100)
    educational_impact: str = ""
    action_items: tuple[str, ...] = ()

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()

    def __str__(self) -> str:
        return f"Alert({self.severity.value}, {self.category}, '{self.title[:50]}')"
