from .audio import (
    DEFAULT_ARTIST,
    DEFAULT_TITLE,
    STRATEGY_ORDER,
    AudioStreamDescriptor,
    ContentId,
    MetadataLookup,
    QueueStats,
    ResolutionSnapshot,
    SearchOutcome,
    SearchResult,
    StrategyName,
    TrackMetadata,
)
from .deadline import Clock, Deadline

__all__ = [
    "DEFAULT_ARTIST",
    "DEFAULT_TITLE",
    "STRATEGY_ORDER",
    "AudioStreamDescriptor",
    "Clock",
    "ContentId",
    "Deadline",
    "MetadataLookup",
    "QueueStats",
    "ResolutionSnapshot",
    "SearchOutcome",
    "SearchResult",
    "StrategyName",
    "TrackMetadata",
]
