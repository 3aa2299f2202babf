"""Last-resort embed strategy.

Returns the platform's embeddable player URL instead of a direct audio
stream.  It never fails and carries no bitrate; consumers must play it in
an iframe because the bytes cannot be proxied.
"""

from __future__ import annotations

from urllib.parse import quote

from musicmu.domain.entities import AudioStreamDescriptor, Deadline, StrategyName

EMBED_URL = "https://www.youtube.com/embed/{content_id}?autoplay=1&enablejsapi=1"


class EmbedStrategy:
    """Builds an embeddable player reference for any content id."""

    name = StrategyName.EMBED_FALLBACK
    timeout_seconds: float | None = None

    async def resolve(
        self, content_id: str, deadline: Deadline
    ) -> AudioStreamDescriptor:
        return AudioStreamDescriptor(
            url=EMBED_URL.format(content_id=quote(content_id, safe="")),
            source_method=self.name,
        )
