"""Tests for the track, search and stats routers."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from musicmu.domain.entities import (
    AudioStreamDescriptor,
    MetadataLookup,
    ResolutionSnapshot,
    SearchOutcome,
    SearchResult,
    StrategyName,
    TrackMetadata,
)
from musicmu.domain.exceptions import AllStrategiesExhausted, ExtractionFailure
from musicmu.infrastructure.admission_queue import AdmissionQueue
from musicmu.infrastructure.stream_proxy import UpstreamAudio
from musicmu.interfaces.api.search.router import parse_limit
from musicmu.interfaces.api.search.router import router as search_router
from musicmu.interfaces.api.stats.router import router as stats_router
from musicmu.interfaces.api.track.router import router as track_router

_META = TrackMetadata("abc123", "Song", "Artist", 215, "https://i.example/t.jpg")
_TERTIARY = AudioStreamDescriptor(
    url="https://rr1.googlevideo.example/audio",
    source_method=StrategyName.TERTIARY_LIBRARY,
    bitrate=128,
)
_EMBED = AudioStreamDescriptor(
    url="https://www.youtube.com/embed/abc123?autoplay=1&enablejsapi=1",
    source_method=StrategyName.EMBED_FALLBACK,
)


def _make_app(
    *,
    resolver: MagicMock | None = None,
    metadata: MagicMock | None = None,
    search: MagicMock | None = None,
) -> FastAPI:
    """Create a minimal FastAPI app with the API routers."""
    app = FastAPI()
    app.include_router(track_router, prefix="/api")
    app.include_router(search_router, prefix="/api")
    app.include_router(stats_router, prefix="/api")

    if resolver is None:
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=_TERTIARY)
    if metadata is None:
        metadata = MagicMock()
        metadata.lookup = AsyncMock(
            return_value=MetadataLookup(metadata=_META, source="ytmusic")
        )
    if search is None:
        search = MagicMock()
        search.search = AsyncMock(return_value=SearchOutcome(results=[]))

    app.state.resolver = resolver
    app.state.metadata = metadata
    app.state.search = search
    app.state.http_client = MagicMock()
    app.state.stream_queue = AdmissionQueue(
        name="stream", concurrency=10, timeout_seconds=30
    )
    app.state.search_queue = AdmissionQueue(
        name="search", concurrency=5, timeout_seconds=15
    )
    return app


# ---------------------------------------------------------------------------
# Track
# ---------------------------------------------------------------------------


class TestTrackMetadata:
    def test_returns_metadata(self) -> None:
        client = TestClient(_make_app())
        resp = client.get("/api/track/abc123")
        assert resp.status_code == 200
        assert resp.json() == {
            "videoId": "abc123",
            "title": "Song",
            "artist": "Artist",
            "duration": 215,
            "thumbnail": "https://i.example/t.jpg",
        }

    def test_degraded_metadata_is_still_200(self) -> None:
        metadata = MagicMock()
        metadata.lookup = AsyncMock(
            return_value=MetadataLookup(
                metadata=TrackMetadata.defaults("abc123"), degraded_reason="down"
            )
        )
        client = TestClient(_make_app(metadata=metadata))

        resp = client.get("/api/track/abc123")

        assert resp.status_code == 200
        assert resp.json()["title"] == "Unknown Title"
        assert resp.json()["artist"] == "Unknown Artist"

    def test_abandoned_metadata_task_degrades_to_defaults(self) -> None:
        async def hang(_: str) -> MetadataLookup:
            await asyncio.sleep(10)
            raise AssertionError("unreachable")

        metadata = MagicMock()
        metadata.lookup = hang
        app = _make_app(metadata=metadata)
        app.state.stream_queue = AdmissionQueue(
            name="stream", concurrency=1, timeout_seconds=0.05
        )

        resp = TestClient(app).get("/api/track/abc123")

        assert resp.status_code == 200
        assert resp.json()["duration"] == 0


class TestTrackStream:
    def test_proxyable_stream_is_rewritten(self) -> None:
        client = TestClient(_make_app())
        resp = client.get("/api/track/abc123/stream")
        assert resp.status_code == 200
        assert resp.json() == {
            "url": "/api/track/abc123/proxy",
            "source": "tertiary-library",
            "bitrate": 128,
            "proxied": True,
        }

    def test_embed_stream_is_not_proxied(self) -> None:
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=_EMBED)
        client = TestClient(_make_app(resolver=resolver))

        data = client.get("/api/track/abc123/stream").json()

        assert data["url"] == _EMBED.url
        assert data["source"] == "embed-fallback"
        assert data["bitrate"] is None
        assert data["proxied"] is False

    def test_exhaustion_is_500(self) -> None:
        resolver = MagicMock()
        resolver.resolve = AsyncMock(
            side_effect=AllStrategiesExhausted("abc123", ExtractionFailure("nope"))
        )
        client = TestClient(_make_app(resolver=resolver))

        resp = client.get("/api/track/abc123/stream")

        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to get audio stream"
        assert "All methods failed for abc123" in resp.json()["message"]


class TestTrackFull:
    def test_merges_metadata_and_stream(self) -> None:
        client = TestClient(_make_app())
        data = client.get("/api/track/abc123/full").json()
        assert data["title"] == "Song"
        assert data["stream"]["source"] == "tertiary-library"
        assert data["stream"]["url"] == "/api/track/abc123/proxy"

    def test_stream_failure_is_500(self) -> None:
        resolver = MagicMock()
        resolver.resolve = AsyncMock(side_effect=AllStrategiesExhausted("abc123", None))
        client = TestClient(_make_app(resolver=resolver))

        resp = client.get("/api/track/abc123/full")

        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to get track information"


class TestTrackProxy:
    def test_embed_source_is_503_with_iframe_hint(self) -> None:
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=_EMBED)
        client = TestClient(_make_app(resolver=resolver))

        resp = client.get("/api/track/abc123/proxy")

        assert resp.status_code == 503
        assert resp.json()["useIframe"] is True
        assert resp.json()["videoId"] == "abc123"

    def test_streams_upstream_bytes_with_range(self) -> None:
        async def body() -> AsyncIterator[bytes]:
            yield b"abc"
            yield b"def"

        upstream = UpstreamAudio(
            status_code=206,
            headers={
                "content-type": "audio/webm",
                "content-length": "6",
                "accept-ranges": "bytes",
                "content-range": "bytes 0-5/100",
            },
            body=body(),
        )
        opener = AsyncMock(return_value=upstream)
        with patch("musicmu.interfaces.api.track.router.open_upstream_audio", opener):
            client = TestClient(_make_app())
            resp = client.get("/api/track/abc123/proxy", headers={"Range": "bytes=0-5"})

        assert resp.status_code == 206
        assert resp.content == b"abcdef"
        assert resp.headers["content-type"] == "audio/webm"
        assert resp.headers["content-range"] == "bytes 0-5/100"
        assert resp.headers["accept-ranges"] == "bytes"
        assert opener.await_args.args[1] == _TERTIARY.url
        assert opener.await_args.kwargs["range_header"] == "bytes=0-5"

    def test_upstream_error_is_502(self) -> None:
        request = httpx.Request("GET", _TERTIARY.url)
        error = httpx.HTTPStatusError(
            "403 Forbidden", request=request, response=httpx.Response(403, request=request)
        )
        opener = AsyncMock(side_effect=error)
        with patch("musicmu.interfaces.api.track.router.open_upstream_audio", opener):
            resp = TestClient(_make_app()).get("/api/track/abc123/proxy")

        assert resp.status_code == 502


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestSearch:
    def test_missing_query_is_400(self) -> None:
        resp = TestClient(_make_app()).get("/api/search")
        assert resp.status_code == 400
        assert "q" in resp.json()["error"]

    def test_results(self) -> None:
        search = MagicMock()
        search.search = AsyncMock(
            return_value=SearchOutcome(
                results=[SearchResult("v1", "Title", "Artist", 100, "https://t")]
            )
        )
        client = TestClient(_make_app(search=search))

        resp = client.get("/api/search", params={"q": "lofi", "limit": "3"})

        assert resp.status_code == 200
        assert resp.json() == {
            "results": [
                {
                    "videoId": "v1",
                    "title": "Title",
                    "artist": "Artist",
                    "duration": 100,
                    "thumbnail": "https://t",
                }
            ]
        }
        search.search.assert_awaited_once_with("lofi", 3)

    def test_unparsable_limit_falls_back_to_default(self) -> None:
        search = MagicMock()
        search.search = AsyncMock(return_value=SearchOutcome(results=[]))
        client = TestClient(_make_app(search=search))

        resp = client.get("/api/search", params={"q": "lofi", "limit": "abc"})

        assert resp.status_code == 200
        search.search.assert_awaited_once_with("lofi", None)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(None, None), ("5", 5), (" 7", 7), ("12abc", 12), ("-3", -3), ("abc", None), ("", None)],
    )
    def test_parse_limit(self, raw, expected) -> None:
        assert parse_limit(raw) == expected

    def test_empty_results_carry_message(self) -> None:
        resp = TestClient(_make_app()).get("/api/search", params={"q": "zzz"})
        assert resp.status_code == 200
        assert resp.json()["results"] == []
        assert "No results found" in resp.json()["message"]

    def test_failure_is_200_with_error(self) -> None:
        search = MagicMock()
        search.search = AsyncMock(
            return_value=SearchOutcome(results=[], degraded_reason="blocked")
        )
        resp = TestClient(_make_app(search=search)).get("/api/search", params={"q": "x"})

        assert resp.status_code == 200
        assert resp.json() == {
            "results": [],
            "error": "Search temporarily unavailable",
            "message": "blocked",
        }


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class TestStats:
    def test_queue_stats(self) -> None:
        data = TestClient(_make_app()).get("/api/stats/queues").json()
        assert data["stream"]["concurrency"] == 10
        assert data["stream"]["pending"] == 0
        assert data["search"]["concurrency"] == 5
        assert data["search"]["queued"] == 0

    def test_resolver_status(self) -> None:
        resolver = MagicMock()
        resolver.status = AsyncMock(
            return_value=ResolutionSnapshot(
                method=StrategyName.SECONDARY_LIBRARY,
                fail_counts={StrategyName.SECONDARY_LIBRARY: 1},
            )
        )
        data = TestClient(_make_app(resolver=resolver)).get("/api/stats/resolver").json()
        assert data == {
            "method": "secondary-library",
            "failCounts": {"secondary-library": 1},
        }

    def test_resolver_reset(self) -> None:
        resolver = MagicMock()
        resolver.reset = AsyncMock()
        resolver.status = AsyncMock(return_value=ResolutionSnapshot())
        client = TestClient(_make_app(resolver=resolver))

        data = client.post("/api/stats/resolver/reset").json()

        resolver.reset.assert_awaited_once()
        assert data["method"] is None
        assert data["failCounts"] == {}
