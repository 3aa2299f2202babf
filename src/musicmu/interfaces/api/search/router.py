from __future__ import annotations

import re
from typing import cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from musicmu.domain.entities import SearchOutcome
from musicmu.domain.exceptions import QueueTaskAbandoned
from musicmu.interfaces.api.presenter import present_search_result
from musicmu.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["search"])

NO_RESULTS_MESSAGE = "No results found. YouTube search may be temporarily unavailable."

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_limit(raw: str | None) -> int | None:
    """Read the leading integer of *raw* (``"12abc"`` is 12).

    Anything unparsable yields ``None``, which the search service replaces
    with its default limit.
    """
    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else None


@router.get("/search")
async def search(
    request: Request,
    q: str | None = Query(default=None, description="Search query."),
    limit: str | None = Query(default=None, description="Maximum results."),
) -> JSONResponse:
    """Video search. Failures answer 200 with an empty list and a message."""
    if not q:
        return JSONResponse(
            status_code=400, content={"error": 'Query parameter "q" is required'}
        )

    state = cast(AppState, request.app.state)
    try:
        outcome = await state.search_queue.submit(
            lambda: state.search.search(q, parse_limit(limit))
        )
    except QueueTaskAbandoned as exc:
        log.warning("search_abandoned", query=q, error=str(exc))
        outcome = SearchOutcome(results=[], degraded_reason=str(exc))

    if outcome.degraded:
        return JSONResponse(
            content={
                "results": [],
                "error": "Search temporarily unavailable",
                "message": outcome.degraded_reason,
            }
        )
    if not outcome.results:
        return JSONResponse(content={"results": [], "message": NO_RESULTS_MESSAGE})
    return JSONResponse(
        content={"results": [present_search_result(r) for r in outcome.results]}
    )
