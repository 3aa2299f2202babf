"""Track endpoints: metadata, stream resolution, audio proxy."""

from __future__ import annotations

import asyncio
from typing import cast

import httpx
import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from musicmu.domain.entities import (
    AudioStreamDescriptor,
    MetadataLookup,
    TrackMetadata,
)
from musicmu.domain.exceptions import MusicMuError, QueueTaskAbandoned
from musicmu.infrastructure.stream_proxy import open_upstream_audio
from musicmu.interfaces.api.presenter import present_metadata, present_stream
from musicmu.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/track", tags=["track"])


async def _lookup_metadata(state: AppState, content_id: str) -> MetadataLookup:
    """Metadata through the stream queue; an abandoned task degrades to defaults."""
    try:
        return await state.stream_queue.submit(
            lambda: state.metadata.lookup(content_id)
        )
    except QueueTaskAbandoned as exc:
        log.warning("metadata_abandoned", content_id=content_id, error=str(exc))
        return MetadataLookup(
            metadata=TrackMetadata.defaults(content_id), degraded_reason=str(exc)
        )


async def _resolve_stream(state: AppState, content_id: str) -> AudioStreamDescriptor:
    return await state.stream_queue.submit(lambda: state.resolver.resolve(content_id))


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": error, "message": str(exc)}
    )


@router.get("/{content_id}")
async def get_track(request: Request, content_id: str) -> JSONResponse:
    """Track metadata; defaults are substituted, never a 5xx."""
    state = cast(AppState, request.app.state)
    lookup = await _lookup_metadata(state, content_id)
    return JSONResponse(content=present_metadata(lookup.metadata))


@router.get("/{content_id}/stream")
async def get_stream(request: Request, content_id: str) -> JSONResponse:
    state = cast(AppState, request.app.state)
    try:
        descriptor = await _resolve_stream(state, content_id)
    except MusicMuError as exc:
        log.error("stream_failed", content_id=content_id, error=str(exc))
        return _error(500, "Failed to get audio stream", exc)
    return JSONResponse(content=present_stream(content_id, descriptor))


@router.get("/{content_id}/full")
async def get_full(request: Request, content_id: str) -> JSONResponse:
    """Metadata and stream, resolved concurrently."""
    state = cast(AppState, request.app.state)
    lookup, stream = await asyncio.gather(
        _lookup_metadata(state, content_id),
        _resolve_stream(state, content_id),
        return_exceptions=True,
    )
    if isinstance(stream, BaseException):
        if not isinstance(stream, MusicMuError):
            raise stream
        log.error("full_track_failed", content_id=content_id, error=str(stream))
        return _error(500, "Failed to get track information", stream)
    if isinstance(lookup, BaseException):
        raise lookup

    payload = present_metadata(lookup.metadata)
    payload["stream"] = present_stream(content_id, stream)
    return JSONResponse(content=payload)


@router.get("/{content_id}/proxy", response_model=None)
async def proxy_audio(
    request: Request, content_id: str
) -> StreamingResponse | JSONResponse:
    """Relay upstream audio bytes, honouring ``Range`` for seeking."""
    state = cast(AppState, request.app.state)
    try:
        descriptor = await _resolve_stream(state, content_id)
    except MusicMuError as exc:
        log.error("proxy_resolve_failed", content_id=content_id, error=str(exc))
        return _error(500, "Failed to get audio stream", exc)

    if not descriptor.proxyable:
        return JSONResponse(
            status_code=503,
            content={
                "error": "Stream not proxyable",
                "useIframe": True,
                "videoId": content_id,
            },
        )

    try:
        upstream = await open_upstream_audio(
            state.http_client,
            descriptor.url,
            range_header=request.headers.get("range"),
        )
    except httpx.HTTPError as exc:
        log.warning(
            "proxy_upstream_failed",
            content_id=content_id,
            source=descriptor.source_method.value,
            error=str(exc),
        )
        return _error(502, "Upstream stream unavailable", exc)

    return StreamingResponse(
        upstream.body,
        status_code=upstream.status_code,
        headers=upstream.headers,
    )
