from __future__ import annotations

import time

import structlog

from musicmu.domain.entities import Clock, Deadline, SearchOutcome
from musicmu.domain.exceptions import SearchUnavailable
from musicmu.domain.ports import SearchSourcePort

log = structlog.get_logger(__name__)


class SearchService:
    """Video search that degrades to an empty outcome instead of failing."""

    def __init__(
        self,
        *,
        source: SearchSourcePort,
        timeout_seconds: float = 15.0,
        default_limit: int = 10,
        max_limit: int = 50,
        clock: Clock = time.monotonic,
    ) -> None:
        self._source = source
        self._timeout = timeout_seconds
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._clock = clock

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None or limit < 1:
            return self._default_limit
        return min(limit, self._max_limit)

    async def search(self, query: str, limit: int | None = None) -> SearchOutcome:
        query = query.strip()
        if not query:
            return SearchOutcome(results=[])
        limit = self.clamp_limit(limit)
        deadline = Deadline.after(self._timeout, clock=self._clock)
        try:
            results = await self._source.search(query, limit, deadline)
        except SearchUnavailable as exc:
            log.warning("search_failed", query=query, error=str(exc))
            return SearchOutcome(results=[], degraded_reason=str(exc))
        except Exception as exc:
            log.exception("search_unexpected_error", query=query)
            return SearchOutcome(results=[], degraded_reason=str(exc))
        return SearchOutcome(results=results[:limit])
