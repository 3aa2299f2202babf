"""Tests for the upstream audio proxy helper."""

from __future__ import annotations

import httpx
import pytest
import respx

from musicmu.infrastructure.stream_proxy import open_upstream_audio

_URL = "https://rr1.googlevideo.example/videoplayback?id=1"


class TestOpenUpstreamAudio:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_forwards_range_and_echoes_headers(self) -> None:
        route = respx.get(_URL).respond(
            206,
            content=b"0123",
            headers={
                "Content-Type": "audio/mp4",
                "Content-Range": "bytes 0-3/10",
                "Accept-Ranges": "bytes",
                "X-Internal": "dropped",
            },
        )

        async with httpx.AsyncClient() as client:
            upstream = await open_upstream_audio(client, _URL, range_header="bytes=0-3")
            body = b"".join([chunk async for chunk in upstream.body])

        assert route.calls.last.request.headers["range"] == "bytes=0-3"
        assert upstream.status_code == 206
        assert body == b"0123"
        assert upstream.headers["content-type"] == "audio/mp4"
        assert upstream.headers["content-range"] == "bytes 0-3/10"
        assert "x-internal" not in upstream.headers

    @respx.mock
    @pytest.mark.asyncio()
    async def test_defaults_for_missing_headers(self) -> None:
        route = respx.get(_URL).respond(200, content=b"x")

        async with httpx.AsyncClient() as client:
            upstream = await open_upstream_audio(client, _URL)
            await upstream.body.aclose()

        assert "range" not in route.calls.last.request.headers
        assert upstream.headers["content-type"] == "audio/webm"
        assert upstream.headers["accept-ranges"] == "bytes"

    @respx.mock
    @pytest.mark.asyncio()
    async def test_upstream_error_raises(self) -> None:
        respx.get(_URL).respond(403)

        async with httpx.AsyncClient() as client:
            with pytest.raises(httpx.HTTPStatusError):
                await open_upstream_audio(client, _URL)
