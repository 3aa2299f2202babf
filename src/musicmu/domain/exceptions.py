"""Resolution error taxonomy."""

from __future__ import annotations


class MusicMuError(Exception):
    """Base class for all service errors."""


class ExtractionError(MusicMuError):
    """A single strategy could not produce a stream."""

    def __init__(self, message: str, *, strategy: str | None = None) -> None:
        super().__init__(message)
        self.strategy = strategy


class ExtractionFailure(ExtractionError):
    """Raised when a strategy completes but finds no usable audio stream."""


class StrategyTimeout(ExtractionError):
    """Raised when a strategy call exceeds its deadline."""


class AllStrategiesExhausted(MusicMuError):
    """Raised when every strategy in the fallback chain failed for a request."""

    def __init__(self, content_id: str, last_error: Exception | None) -> None:
        detail = str(last_error) if last_error is not None else "Unknown"
        super().__init__(f"All methods failed for {content_id}. Last: {detail}")
        self.content_id = content_id
        self.last_error = last_error


class QueueTaskAbandoned(MusicMuError):
    """Raised when a queued task exceeds its queue's per-task timeout."""

    def __init__(self, queue: str, timeout_seconds: float) -> None:
        super().__init__(f"{queue} task abandoned after {timeout_seconds}s")
        self.queue = queue
        self.timeout_seconds = timeout_seconds


class MetadataUnavailable(MusicMuError):
    """Raised by a metadata source that could not describe a track."""


class SearchUnavailable(MusicMuError):
    """Raised by a search source that could not answer a query."""
