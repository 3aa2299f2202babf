"""Best-effort track metadata with an independent source fallback."""

from __future__ import annotations

import time
from collections.abc import Sequence

import structlog

from musicmu.domain.entities import (
    Clock,
    Deadline,
    MetadataLookup,
    TrackMetadata,
)
from musicmu.domain.exceptions import MetadataUnavailable
from musicmu.domain.ports import MetadataSourcePort

log = structlog.get_logger(__name__)

DEFAULT_SOURCE_TIMEOUT_SECONDS = 8.0


class MetadataResolver:
    """Asks each source in turn; never raises for a missing track.

    Each source gets its own ``source_timeout_seconds`` deadline.  When
    every source fails the lookup carries default metadata and the last
    failure as ``degraded_reason``.
    """

    def __init__(
        self,
        *,
        sources: Sequence[MetadataSourcePort],
        source_timeout_seconds: float = DEFAULT_SOURCE_TIMEOUT_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self._sources = list(sources)
        self._timeout = source_timeout_seconds
        self._clock = clock

    async def lookup(self, content_id: str) -> MetadataLookup:
        reason = "no metadata sources configured"
        for source in self._sources:
            deadline = Deadline.after(self._timeout, clock=self._clock)
            try:
                metadata = await source.fetch(content_id, deadline)
            except MetadataUnavailable as exc:
                reason = f"{source.name}: {exc}"
                log.warning(
                    "metadata_source_failed",
                    source=source.name,
                    content_id=content_id,
                    error=str(exc),
                )
                continue
            except Exception as exc:
                reason = f"{source.name}: {exc}"
                log.exception(
                    "metadata_source_unexpected_error",
                    source=source.name,
                    content_id=content_id,
                )
                continue
            return MetadataLookup(metadata=metadata, source=source.name)

        log.warning("metadata_degraded", content_id=content_id, reason=reason)
        return MetadataLookup(
            metadata=TrackMetadata.defaults(content_id), degraded_reason=reason
        )

    async def get_metadata(self, content_id: str) -> TrackMetadata:
        return (await self.lookup(content_id)).metadata
