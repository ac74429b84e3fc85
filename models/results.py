"""Per-source retrieval outcomes.

The orchestrator records one result per source so that failures are
visible to callers and tests instead of only in the logs.
"""

from dataclasses import dataclass, field

from models.alert import Alert


@dataclass(frozen=True)
class SourceSuccess:
    """A source that produced an alert list (possibly empty)."""

    source_name: str
    alerts: list[Alert] = field(default_factory=list)
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class SourceFailure:
    """A source that could not be retrieved or parsed."""

    source_name: str
    reason: str

    @property
    def ok(self) -> bool:
        return False


SourceResult = SourceSuccess | SourceFailure


@dataclass
class GatherResult:
    """Merged output of one fan-out/fan-in retrieval."""

    alerts: list[Alert] = field(default_factory=list)
    results: list[SourceResult] = field(default_factory=list)

    @property
    def failures(self) -> list[SourceFailure]:
        return [r for r in self.results if isinstance(r, SourceFailure)]

    @property
    def successes(self) -> list[SourceSuccess]:
        return [r for r in self.results if isinstance(r, SourceSuccess)]

    @property
    def cache_hits(self) -> int:
        return sum(1 for r in self.successes if r.from_cache)
