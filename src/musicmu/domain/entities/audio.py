"""Domain entities for audio stream resolution.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

ContentId = str

DEFAULT_TITLE = "Unknown Title"
DEFAULT_ARTIST = "Unknown Artist"


class StrategyName(str, Enum):
    """Extraction strategies, declared in fallback priority order."""

    PRIMARY_LIBRARY = "primary-library"
    SECONDARY_LIBRARY = "secondary-library"
    TERTIARY_LIBRARY = "tertiary-library"
    PUBLIC_MIRROR_API = "public-mirror-api"
    EMBED_FALLBACK = "embed-fallback"


STRATEGY_ORDER: tuple[StrategyName, ...] = tuple(StrategyName)


@dataclass(frozen=True)
class AudioStreamDescriptor:
    """A playable audio reference produced by one strategy."""

    url: str
    source_method: StrategyName
    bitrate: int | None = None  # kbps

    @property
    def proxyable(self) -> bool:
        """Embed references point at a player page, not at audio bytes."""
        return self.source_method is not StrategyName.EMBED_FALLBACK


@dataclass(frozen=True)
class ResolutionSnapshot:
    """Read-only view of the session resolution state."""

    method: StrategyName | None = None
    fail_counts: dict[StrategyName, int] = field(default_factory=dict)

    @property
    def locked(self) -> bool:
        return self.method is not None


@dataclass(frozen=True)
class TrackMetadata:
    """Display metadata for a track. Every field is always populated."""

    content_id: ContentId
    title: str = DEFAULT_TITLE
    artist: str = DEFAULT_ARTIST
    duration_seconds: int = 0
    thumbnail_url: str = ""

    @classmethod
    def defaults(cls, content_id: ContentId) -> TrackMetadata:
        return cls(content_id=content_id)


@dataclass(frozen=True)
class MetadataLookup:
    """Outcome of a metadata lookup; ``degraded_reason`` is set on fallback."""

    metadata: TrackMetadata
    source: str | None = None
    degraded_reason: str | None = None

    @property
    def degraded(self) -> bool:
        return self.degraded_reason is not None


@dataclass(frozen=True)
class SearchResult:
    """A single search hit."""

    content_id: ContentId
    title: str = DEFAULT_TITLE
    artist: str = DEFAULT_ARTIST
    duration_seconds: int = 0
    thumbnail_url: str = ""


@dataclass(frozen=True)
class SearchOutcome:
    """Search results, or an empty degraded list when search is unavailable."""

    results: list[SearchResult] = field(default_factory=list)
    degraded_reason: str | None = None

    @property
    def degraded(self) -> bool:
        return self.degraded_reason is not None


@dataclass(frozen=True)
class QueueStats:
    """Point-in-time snapshot of an admission queue."""

    name: str
    concurrency: int
    timeout_seconds: float
    pending: int  # tasks executing
    queued: int  # tasks waiting for a slot
