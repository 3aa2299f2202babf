"""Bounded-concurrency admission queues for outbound work.

Each queue admits at most ``concurrency`` tasks at once.  Further
submissions wait in FIFO order (``asyncio.Semaphore`` wakes waiters in
arrival order) for as long as it takes; nothing is ever rejected.  A
running task is bounded by ``timeout_seconds``: on expiry it is cancelled,
its slot is released for the next waiter, and the submitter receives
:class:`QueueTaskAbandoned`.

Two independent instances exist at runtime (stream and search), so
saturating one never blocks the other.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from musicmu.domain.entities import QueueStats
from musicmu.domain.exceptions import QueueTaskAbandoned

log = structlog.get_logger(__name__)

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]


class AdmissionQueue:
    """Runs submitted tasks with a concurrency cap and a per-task timeout.

    Parameters:
        name: Queue label used in logs and stats (``"stream"``, ``"search"``).
        concurrency: Maximum number of tasks executing at once.
        timeout_seconds: Per-task deadline, measured from slot acquisition.
    """

    def __init__(self, *, name: str, concurrency: int, timeout_seconds: float) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self.name = name
        self.concurrency = concurrency
        self.timeout_seconds = timeout_seconds
        self._slots = asyncio.Semaphore(concurrency)
        self._pending = 0
        self._queued = 0

    @property
    def pending(self) -> int:
        """Tasks currently executing."""
        return self._pending

    @property
    def queued(self) -> int:
        """Tasks waiting for a free slot."""
        return self._queued

    def stats(self) -> QueueStats:
        return QueueStats(
            name=self.name,
            concurrency=self.concurrency,
            timeout_seconds=self.timeout_seconds,
            pending=self._pending,
            queued=self._queued,
        )

    async def submit(self, task: TaskFactory[T]) -> T:
        """Wait for a slot, then run ``task()`` under the per-task timeout.

        *task* is a zero-argument callable returning an awaitable, so no
        work starts before a slot is held.

        Raises:
            QueueTaskAbandoned: If the task outlives ``timeout_seconds``.
        """
        self._queued += 1
        try:
            await self._slots.acquire()
        finally:
            self._queued -= 1

        self._pending += 1
        try:
            if self._pending > 1 or self._queued > 0:
                log.debug(
                    f"{self.name}_queue_active",
                    pending=self._pending,
                    queued=self._queued,
                )
            return await asyncio.wait_for(task(), timeout=self.timeout_seconds)
        except TimeoutError as exc:
            log.warning(
                "queue_task_abandoned",
                queue=self.name,
                timeout_seconds=self.timeout_seconds,
            )
            raise QueueTaskAbandoned(self.name, self.timeout_seconds) from exc
        finally:
            self._pending -= 1
            self._slots.release()
