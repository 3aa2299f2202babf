"""Operational endpoints: queue load and sticky resolver state."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from musicmu.interfaces.api.presenter import present_queue, present_resolution
from musicmu.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/queues")
async def queue_stats(request: Request) -> JSONResponse:
    """Current pending/queued counts for the stream and search queues."""
    state = cast(AppState, request.app.state)
    return JSONResponse(
        content={
            "stream": present_queue(state.stream_queue.stats()),
            "search": present_queue(state.search_queue.stats()),
        }
    )


@router.get("/resolver")
async def resolver_status(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    return JSONResponse(content=present_resolution(await state.resolver.status()))


@router.post("/resolver/reset")
async def resolver_reset(request: Request) -> JSONResponse:
    """Forget the sticky strategy; the next request walks the full chain."""
    state = cast(AppState, request.app.state)
    await state.resolver.reset()
    return JSONResponse(
        content={
            "message": "Stream method cache reset",
            **present_resolution(await state.resolver.status()),
        }
    )
