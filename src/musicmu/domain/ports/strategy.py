"""Port for audio stream extraction strategies."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from musicmu.domain.entities import AudioStreamDescriptor, Deadline, StrategyName


@runtime_checkable
class ExtractionStrategyPort(Protocol):
    """Extracts a playable audio stream for a content id.

    Implementations wrap one extraction library or public API.  They pick
    the highest-bitrate audio-only format they can see and raise
    ``ExtractionFailure`` when none is usable.
    """

    @property
    def name(self) -> StrategyName:
        """Position of this strategy in the fallback chain."""
        ...

    @property
    def timeout_seconds(self) -> float | None:
        """Hard deadline for one call, ``None`` for no deadline."""
        ...

    async def resolve(
        self, content_id: str, deadline: Deadline
    ) -> AudioStreamDescriptor:
        """Resolve *content_id* to an audio stream before *deadline*.

        Raises:
            ExtractionError: If no usable stream could be produced.
        """
        ...
