"""Adaptive stream resolution.

Tries the sticky strategy first when one is set, then walks the fixed
fallback chain:

    primary -> secondary -> tertiary -> public mirror -> embed

The first strategy that succeeds becomes sticky.  Three consecutive
failures of the sticky strategy drop back to the full chain.
"""

from __future__ import annotations

import time
from collections.abc import Sequence

import structlog

from musicmu.domain.entities import (
    STRATEGY_ORDER,
    AudioStreamDescriptor,
    Clock,
    Deadline,
    ResolutionSnapshot,
    StrategyName,
)
from musicmu.domain.exceptions import AllStrategiesExhausted, ExtractionError
from musicmu.domain.ports import ExtractionStrategyPort

from .resolution_state import ResolutionState

log = structlog.get_logger(__name__)


class AdaptiveResolver:
    """Resolves a content id to an audio stream through the strategy chain."""

    def __init__(
        self,
        *,
        strategies: Sequence[ExtractionStrategyPort],
        state: ResolutionState,
        clock: Clock = time.monotonic,
    ) -> None:
        names = tuple(s.name for s in strategies)
        if names != STRATEGY_ORDER:
            expected = ", ".join(n.value for n in STRATEGY_ORDER)
            raise ValueError(
                f"strategies must be exactly [{expected}] in that order, "
                f"got [{', '.join(str(getattr(n, 'value', n)) for n in names)}]"
            )
        self._strategies = {s.name: s for s in strategies}
        self._state = state
        self._clock = clock

    @property
    def state(self) -> ResolutionState:
        return self._state

    async def resolve(self, content_id: str) -> AudioStreamDescriptor:
        """Return a playable stream for *content_id*.

        Raises:
            AllStrategiesExhausted: Every strategy failed for this request.
        """
        attempted: set[StrategyName] = set()
        last_error: Exception | None = None

        snapshot = await self._state.snapshot()
        if snapshot.locked:
            sticky = snapshot.method
            attempted.add(sticky)
            try:
                descriptor = await self._attempt(sticky, content_id)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                await self._state.record_failure(sticky)
            else:
                await self._state.record_success(sticky)
                return descriptor

        for name in STRATEGY_ORDER:
            if name in attempted:
                continue
            attempted.add(name)
            try:
                descriptor = await self._attempt(name, content_id)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                await self._state.record_failure(name)
                continue
            await self._state.record_success(name)
            return descriptor

        log.error(
            "all_strategies_exhausted",
            content_id=content_id,
            last_error=str(last_error) if last_error else None,
        )
        raise AllStrategiesExhausted(content_id, last_error)

    async def _attempt(
        self, name: StrategyName, content_id: str
    ) -> AudioStreamDescriptor:
        """Run one strategy under its own deadline; failures are logged and re-raised."""
        strategy = self._strategies[name]
        deadline = Deadline.after(strategy.timeout_seconds, clock=self._clock)
        log.debug("strategy_attempt", strategy=name.value, content_id=content_id)
        try:
            descriptor = await strategy.resolve(content_id, deadline)
        except ExtractionError as exc:
            log.warning(
                "strategy_failed",
                strategy=name.value,
                content_id=content_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise
        except Exception:
            log.exception(
                "strategy_unexpected_error",
                strategy=name.value,
                content_id=content_id,
            )
            raise
        log.info(
            "strategy_succeeded",
            strategy=name.value,
            content_id=content_id,
            bitrate=descriptor.bitrate,
        )
        return descriptor

    async def status(self) -> ResolutionSnapshot:
        return await self._state.snapshot()

    async def reset(self) -> None:
        await self._state.reset()
