"""Raw feed item variants.

Each transport kind yields its own strongly-typed item. The union is
discriminated on ``kind`` so a normalizer can match on it exhaustively.
"""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from models.alert import Severity


class FeedEntry(BaseModel):
    """One RSS/Atom entry."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["syndication-feed"] = "syndication-feed"
    title: str = ""
    summary: str = Field(default="", description="HTML/text summary or content")
    link: str = ""
    published: datetime | None = None


class ApiRecord(BaseModel):
    """One record from a JSON API listing."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["structured-api"] = "structured-api"
    title: str = ""
    body: str = ""
    url: str = ""
    published: datetime | None = None


class PageSnapshot(BaseModel):
    """Headline metadata scraped from an HTML page."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["page-scrape"] = "page-scrape"
    title: str = ""
    text: str = ""
    url: str = ""
    published: datetime | None = None


class CuratedInsight(BaseModel):
    """Editorial insight registered for a curated site.

    Unlike the other variants, curated insights carry their own
    classification. The normalizer merges it with the keyword rules:
    the more severe of the two severities wins and the tags are unioned.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["curated-site"] = "curated-site"
    title: str
    description: str = ""
    url: str = ""
    published: datetime | None = None
    severity: Severity = Severity.INFO
    tags: tuple[str, ...] = ()
    relevance_score: int = 50
    educational_impact: str = ""
    action_items: tuple[str, ...] = ()


RawItem = Annotated[
    Union[FeedEntry, ApiRecord, PageSnapshot, CuratedInsight],
    Field(discriminator="kind"),
]
