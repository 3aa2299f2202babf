"""YouTube Music (ytmusicapi) metadata and search sources.

ytmusicapi is synchronous; every call runs on the worker pool handed to
the source, under the caller's deadline.  One unauthenticated ``YTMusic``
client is created lazily and shared by both sources.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor
from typing import Any, Callable, TypeVar

import structlog
from ytmusicapi import YTMusic
from ytmusicapi.exceptions import YTMusicError

from musicmu.domain.entities import (
    DEFAULT_ARTIST,
    DEFAULT_TITLE,
    Deadline,
    SearchResult,
    TrackMetadata,
)
from musicmu.domain.exceptions import (
    MetadataUnavailable,
    SearchUnavailable,
    StrategyTimeout,
)
from musicmu.infrastructure.timeout_guard import guard, run_blocking

log = structlog.get_logger(__name__)

T = TypeVar("T")


def best_thumbnail(thumbnails: Any) -> str:
    """Return the URL of the largest thumbnail (ytmusicapi lists them ascending)."""
    if not isinstance(thumbnails, list):
        return ""
    for thumb in reversed(thumbnails):
        if isinstance(thumb, dict) and thumb.get("url"):
            return str(thumb["url"])
    return ""


def _as_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def parse_song(content_id: str, data: dict[str, Any]) -> TrackMetadata:
    """Map a ``get_song`` response to metadata, filling blanks with defaults."""
    details = data.get("videoDetails")
    if not isinstance(details, dict):
        raise MetadataUnavailable(f"No videoDetails for {content_id}")
    thumbnails = (details.get("thumbnail") or {}).get("thumbnails")
    return TrackMetadata(
        content_id=content_id,
        title=details.get("title") or DEFAULT_TITLE,
        artist=details.get("author") or DEFAULT_ARTIST,
        duration_seconds=_as_int(details.get("lengthSeconds")),
        thumbnail_url=best_thumbnail(thumbnails),
    )


def parse_search_item(item: dict[str, Any]) -> SearchResult | None:
    """Map one ``search`` hit to a result; items without a video id are dropped."""
    content_id = item.get("videoId")
    if not content_id:
        return None
    artists = item.get("artists") or []
    artist = next(
        (a.get("name") for a in artists if isinstance(a, dict) and a.get("name")),
        None,
    )
    return SearchResult(
        content_id=content_id,
        title=item.get("title") or DEFAULT_TITLE,
        artist=artist or DEFAULT_ARTIST,
        duration_seconds=_as_int(item.get("duration_seconds")),
        thumbnail_url=best_thumbnail(item.get("thumbnails")),
    )


class YTMusicProvider:
    """Lazily creates and shares one ``YTMusic`` client."""

    def __init__(
        self,
        factory: Callable[[], YTMusic] = YTMusic,
    ) -> None:
        self._factory = factory
        self._client: YTMusic | None = None
        self._lock = threading.Lock()

    def get(self) -> YTMusic:
        with self._lock:
            if self._client is None:
                self._client = self._factory()
            return self._client

    async def call(
        self,
        fn: Callable[[YTMusic], T],
        deadline: Deadline,
        *,
        label: str,
        executor: Executor | None = None,
    ) -> T:
        """Run ``fn(client)`` on *executor* before *deadline*."""
        return await guard(
            run_blocking(executor, lambda: fn(self.get())), deadline, label=label
        )


class YTMusicMetadataSource:
    """Primary metadata source: ``YTMusic.get_song``."""

    name = "ytmusic"

    def __init__(
        self, provider: YTMusicProvider, executor: Executor | None = None
    ) -> None:
        self._provider = provider
        self._executor = executor

    async def fetch(self, content_id: str, deadline: Deadline) -> TrackMetadata:
        try:
            data = await self._provider.call(
                lambda yt: yt.get_song(content_id),
                deadline,
                label="ytmusic metadata",
                executor=self._executor,
            )
        except StrategyTimeout as exc:
            raise MetadataUnavailable(str(exc)) from exc
        except YTMusicError as exc:
            raise MetadataUnavailable(f"ytmusicapi: {exc}") from exc
        if not isinstance(data, dict):
            raise MetadataUnavailable(f"Unexpected get_song payload for {content_id}")
        return parse_song(content_id, data)


class YTMusicSearchSource:
    """Video search through ``YTMusic.search``."""

    name = "ytmusic"

    def __init__(
        self, provider: YTMusicProvider, executor: Executor | None = None
    ) -> None:
        self._provider = provider
        self._executor = executor

    async def search(
        self, query: str, limit: int, deadline: Deadline
    ) -> list[SearchResult]:
        try:
            items = await self._provider.call(
                lambda yt: yt.search(query, filter="videos", limit=limit),
                deadline,
                label="ytmusic search",
                executor=self._executor,
            )
        except StrategyTimeout as exc:
            raise SearchUnavailable("Search timeout") from exc
        except YTMusicError as exc:
            raise SearchUnavailable(f"ytmusicapi: {exc}") from exc

        results: list[SearchResult] = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            parsed = parse_search_item(item)
            if parsed is not None:
                results.append(parsed)
            if len(results) >= limit:
                break
        log.debug("ytmusic_search_done", query=query, count=len(results))
        return results
