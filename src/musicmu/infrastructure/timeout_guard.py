"""Hard deadlines for outbound awaitables.

A guarded call either finishes before its :class:`Deadline` or is
abandoned and surfaces as :class:`StrategyTimeout`.  The caller is never
blocked past the deadline.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from concurrent.futures import Executor
from typing import Any, Awaitable, Callable, TypeVar

from musicmu.domain.entities import Deadline
from musicmu.domain.exceptions import StrategyTimeout

T = TypeVar("T")


def _discard(awaitable: Awaitable[object]) -> None:
    # An already-expired deadline never schedules the coroutine.
    if inspect.iscoroutine(awaitable):
        awaitable.close()


async def guard(awaitable: Awaitable[T], deadline: Deadline, *, label: str) -> T:
    """Await *awaitable* until *deadline*, raising ``StrategyTimeout`` after.

    Unbounded deadlines await directly.  An expired deadline fails
    immediately without starting the work.
    """
    if not deadline.bounded:
        return await awaitable
    remaining = deadline.remaining() or 0.0
    if remaining <= 0.0:
        _discard(awaitable)
        raise StrategyTimeout(f"{label} deadline already expired", strategy=label)
    try:
        return await asyncio.wait_for(awaitable, timeout=remaining)
    except TimeoutError as exc:
        raise StrategyTimeout(
            f"{label} timeout after {int(remaining * 1000)}ms", strategy=label
        ) from exc


async def run_blocking(
    executor: Executor | None, fn: Callable[..., T], *args: Any
) -> T:
    """Run a blocking callable on *executor* (the loop default when ``None``).

    Being a coroutine, nothing is submitted until it is awaited, so a
    guard with an expired deadline never occupies a worker.  A guard that
    times out abandons the await; the worker thread runs to completion.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, functools.partial(fn, *args))
