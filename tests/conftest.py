"""Shared test fixtures for the MusicMu test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field

import pytest

from musicmu.domain.entities import (
    STRATEGY_ORDER,
    AudioStreamDescriptor,
    Deadline,
    StrategyName,
)
from musicmu.domain.exceptions import ExtractionFailure

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


@dataclass
class FakeStrategy:
    """Scripted strategy.

    ``outcomes`` is consumed one entry per call: an ``int`` succeeds with
    that bitrate, ``None`` succeeds without a bitrate and an exception
    instance is raised.  When exhausted, the last entry repeats.
    """

    name: StrategyName
    outcomes: list[int | None | Exception] = field(default_factory=lambda: [None])
    timeout_seconds: float | None = 5.0
    calls: list[str] = field(default_factory=list)
    deadlines: list[Deadline] = field(default_factory=list)

    async def resolve(self, content_id: str, deadline: Deadline) -> AudioStreamDescriptor:
        self.calls.append(content_id)
        self.deadlines.append(deadline)
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        await asyncio.sleep(0)
        return AudioStreamDescriptor(
            url=f"https://audio.example/{self.name.value}/{content_id}",
            source_method=self.name,
            bitrate=outcome,
        )


def fail(name: StrategyName | str = "strategy") -> ExtractionFailure:
    label = name.value if isinstance(name, StrategyName) else name
    return ExtractionFailure(f"{label} failed", strategy=label)


def make_strategies(
    outcomes: dict[StrategyName, Iterable[int | None | Exception]] | None = None,
) -> list[FakeStrategy]:
    """One fake per strategy name, in priority order.

    Unlisted strategies fail, except embed-fallback which always succeeds.
    """
    outcomes = outcomes or {}
    strategies = []
    for name in STRATEGY_ORDER:
        if name in outcomes:
            scripted = list(outcomes[name])
        elif name is StrategyName.EMBED_FALLBACK:
            scripted = [None]
        else:
            scripted = [fail(name)]
        timeout = None if name is StrategyName.EMBED_FALLBACK else 5.0
        strategies.append(
            FakeStrategy(name=name, outcomes=scripted, timeout_seconds=timeout)
        )
    return strategies


@pytest.fixture()
def strategies() -> list[FakeStrategy]:
    return make_strategies()


@pytest.fixture()
def strategy_factory():
    """Returns :func:`make_strategies`."""
    return make_strategies


@pytest.fixture()
def failure():
    """Returns :func:`fail`."""
    return fail
