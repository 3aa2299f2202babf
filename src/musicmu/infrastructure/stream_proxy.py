"""Same-origin audio proxy.

Upstream stream URLs are signed for the resolving client and rarely
allow cross-origin playback, so audio bytes are relayed through the
service.  Bytes flow through without buffering the whole file, and an
inbound ``Range`` header is forwarded so players can seek.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import httpx
import structlog

log = structlog.get_logger(__name__)

CHUNK_SIZE = 64 * 1024

# Upstream headers echoed to the client.
PASSTHROUGH_HEADERS = (
    "content-type",
    "content-length",
    "accept-ranges",
    "content-range",
)


@dataclass
class UpstreamAudio:
    """An open upstream response: status, echoed headers and a body iterator."""

    status_code: int
    headers: dict[str, str]
    body: AsyncIterator[bytes] = field(repr=False)


async def open_upstream_audio(
    http_client: httpx.AsyncClient,
    url: str,
    *,
    range_header: str | None = None,
) -> UpstreamAudio:
    """Open a streaming GET to *url*.

    Raises ``httpx.HTTPStatusError`` on non-2xx responses and any other
    ``httpx.HTTPError`` on transport failure.  The response is closed
    when the returned body iterator is exhausted or closed.
    """
    headers: dict[str, str] = {}
    if range_header:
        headers["Range"] = range_header

    resp = await http_client.send(
        http_client.build_request("GET", url, headers=headers),
        stream=True,
        follow_redirects=True,
    )
    try:
        resp.raise_for_status()
    except httpx.HTTPStatusError:
        await resp.aclose()
        raise

    echoed = {
        name: resp.headers[name] for name in PASSTHROUGH_HEADERS if name in resp.headers
    }
    echoed.setdefault("content-type", "audio/webm")
    echoed.setdefault("accept-ranges", "bytes")

    async def _iter() -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes(chunk_size=CHUNK_SIZE):
                yield chunk
        finally:
            await resp.aclose()

    log.debug(
        "upstream_audio_opened",
        status_code=resp.status_code,
        ranged=bool(range_header),
        content_length=echoed.get("content-length"),
    )
    return UpstreamAudio(status_code=resp.status_code, headers=echoed, body=_iter())
