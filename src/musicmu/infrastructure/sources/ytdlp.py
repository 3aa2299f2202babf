"""yt-dlp metadata source (secondary)."""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Any

from yt_dlp.utils import DownloadError, ExtractorError

from musicmu.domain.entities import (
    DEFAULT_ARTIST,
    DEFAULT_TITLE,
    Deadline,
    TrackMetadata,
)
from musicmu.domain.exceptions import (
    ExtractionFailure,
    MetadataUnavailable,
    StrategyTimeout,
)
from musicmu.infrastructure.strategies.ytdlp import build_ydl_options, extract_info
from musicmu.infrastructure.timeout_guard import guard, run_blocking


def parse_info(content_id: str, info: dict[str, Any]) -> TrackMetadata:
    """Map a yt-dlp info dict to metadata, filling blanks with defaults."""
    try:
        duration = max(0, int(info.get("duration") or 0))
    except (TypeError, ValueError):
        duration = 0
    return TrackMetadata(
        content_id=content_id,
        title=info.get("title") or DEFAULT_TITLE,
        artist=(
            info.get("artist")
            or info.get("uploader")
            or info.get("channel")
            or DEFAULT_ARTIST
        ),
        duration_seconds=duration,
        thumbnail_url=info.get("thumbnail") or "",
    )


class YtDlpMetadataSource:
    """Basic video info through yt-dlp."""

    name = "yt-dlp"

    def __init__(self, executor: Executor | None = None) -> None:
        self._executor = executor

    async def fetch(self, content_id: str, deadline: Deadline) -> TrackMetadata:
        options = build_ydl_options(socket_timeout=deadline.remaining())
        try:
            info = await guard(
                run_blocking(self._executor, extract_info, content_id, options),
                deadline,
                label="yt-dlp metadata",
            )
        except (StrategyTimeout, ExtractionFailure) as exc:
            raise MetadataUnavailable(str(exc)) from exc
        except (DownloadError, ExtractorError) as exc:
            raise MetadataUnavailable(f"yt-dlp: {exc}") from exc
        return parse_info(content_id, info)
