"""Ports for metadata and search sources."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from musicmu.domain.entities import Deadline, SearchResult, TrackMetadata


@runtime_checkable
class MetadataSourcePort(Protocol):
    """Looks up display metadata for a content id."""

    @property
    def name(self) -> str: ...

    async def fetch(self, content_id: str, deadline: Deadline) -> TrackMetadata:
        """Return metadata for *content_id*.

        Raises:
            MetadataUnavailable: If the source cannot describe the track.
        """
        ...


@runtime_checkable
class SearchSourcePort(Protocol):
    """Answers free-text queries with playable items."""

    @property
    def name(self) -> str: ...

    async def search(
        self, query: str, limit: int, deadline: Deadline
    ) -> list[SearchResult]:
        """Return up to *limit* results for *query*.

        Raises:
            SearchUnavailable: If the source cannot answer.
        """
        ...
