"""Sticky-method bookkeeping shared by every stream resolution.

One instance lives for the whole process.  All reads and writes go
through a single ``asyncio.Lock`` so a fail-count increment or a reset
is never lost to a concurrent request.
"""

from __future__ import annotations

import asyncio

import structlog

from musicmu.domain.entities import ResolutionSnapshot, StrategyName

log = structlog.get_logger(__name__)

DEFAULT_MAX_STICKY_FAILURES = 3


class ResolutionState:
    """Optional sticky strategy plus per-strategy consecutive failure counts."""

    def __init__(self, *, max_failures: int = DEFAULT_MAX_STICKY_FAILURES) -> None:
        if max_failures < 1:
            raise ValueError("max_failures must be >= 1")
        self._max_failures = max_failures
        self._sticky: StrategyName | None = None
        self._fail_counts: dict[StrategyName, int] = {}
        self._lock = asyncio.Lock()

    @property
    def max_failures(self) -> int:
        return self._max_failures

    async def snapshot(self) -> ResolutionSnapshot:
        async with self._lock:
            return ResolutionSnapshot(
                method=self._sticky, fail_counts=dict(self._fail_counts)
            )

    async def record_success(self, name: StrategyName) -> None:
        """Lock onto *name* and zero its failure count."""
        async with self._lock:
            previous = self._sticky
            self._sticky = name
            self._fail_counts[name] = 0
        if previous is not name:
            log.info("resolver_locked", method=name.value, previous=_value(previous))

    async def record_failure(self, name: StrategyName) -> bool:
        """Count a failure of *name*.

        Returns ``True`` when the failure pushed the sticky method over the
        threshold and the state was cleared.
        """
        async with self._lock:
            count = self._fail_counts.get(name, 0) + 1
            self._fail_counts[name] = count
            if name is not self._sticky or count < self._max_failures:
                return False
            self._sticky = None
            self._fail_counts.clear()
        log.warning(
            "resolver_reset",
            method=name.value,
            failures=count,
            reason="max_failures",
        )
        return True

    async def reset(self) -> None:
        """Drop the sticky method and all counts."""
        async with self._lock:
            previous = self._sticky
            self._sticky = None
            self._fail_counts.clear()
        log.info("resolver_reset", method=_value(previous), reason="manual")


def _value(name: StrategyName | None) -> str | None:
    return name.value if name is not None else None
