"""Explicit deadlines threaded through every outbound call."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

Clock = Callable[[], float]


@dataclass(frozen=True)
class Deadline:
    """Absolute point in (clock) time after which a call is abandoned.

    ``expires_at`` of ``None`` means unbounded.  The clock is injectable so
    tests can expire a deadline without sleeping.
    """

    expires_at: float | None
    clock: Clock = field(default=time.monotonic, compare=False, repr=False)

    @classmethod
    def after(cls, seconds: float | None, *, clock: Clock = time.monotonic) -> Deadline:
        if seconds is None:
            return cls(expires_at=None, clock=clock)
        return cls(expires_at=clock() + seconds, clock=clock)

    @property
    def bounded(self) -> bool:
        return self.expires_at is not None

    def remaining(self) -> float | None:
        """Seconds left, clamped at zero; ``None`` when unbounded."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - self.clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def cap(self, seconds: float) -> float:
        """Return *seconds* shortened to what is left of this deadline."""
        remaining = self.remaining()
        if remaining is None:
            return seconds
        return min(seconds, remaining)
