"""yt-dlp backed extraction strategies.

yt-dlp is synchronous, so extraction runs on a worker pool owned by the
composition root.  The primary strategy uses yt-dlp's default player
clients; the secondary one forces the ``android_music`` client, which
exposes direct audio URLs through a different extraction path and keeps
working when the web client is challenged.
"""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Any, Iterator, Sequence

import structlog
import yt_dlp
from yt_dlp.utils import DownloadError, ExtractorError

from musicmu.domain.entities import AudioStreamDescriptor, Deadline, StrategyName
from musicmu.domain.exceptions import ExtractionFailure
from musicmu.infrastructure.strategies.formats import (
    AudioFormat,
    pick_best_audio,
    to_kbps,
)
from musicmu.infrastructure.timeout_guard import guard, run_blocking

log = structlog.get_logger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={content_id}"

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


def build_ydl_options(
    player_clients: Sequence[str] | None = None,
    *,
    socket_timeout: float | None = None,
) -> dict[str, Any]:
    """yt-dlp options for metadata-only extraction (no download)."""
    opts: dict[str, Any] = {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
        "noplaylist": True,
        "http_headers": dict(_BROWSER_HEADERS),
    }
    if player_clients:
        opts["extractor_args"] = {"youtube": {"player_client": list(player_clients)}}
    if socket_timeout is not None:
        opts["socket_timeout"] = socket_timeout
    return opts


def extract_info(content_id: str, options: dict[str, Any]) -> dict[str, Any]:
    """Run ``YoutubeDL.extract_info`` for a content id (blocking)."""
    with yt_dlp.YoutubeDL(options) as ydl:
        info = ydl.extract_info(WATCH_URL.format(content_id=content_id), download=False)
    if not info:
        raise ExtractionFailure(f"No info extracted for {content_id}")
    return info


def iter_audio_formats(info: dict[str, Any]) -> Iterator[AudioFormat]:
    """Yield audio-only formats with a direct URL, in discovery order."""
    for fmt in info.get("formats") or []:
        if fmt.get("acodec") in (None, "none"):
            continue
        if fmt.get("vcodec") not in (None, "none"):
            continue
        url = fmt.get("url")
        if not url:
            continue
        yield AudioFormat(
            url=url,
            bitrate=to_kbps(fmt.get("abr")),
            mime_type=f"audio/{fmt.get('audio_ext') or fmt.get('ext') or 'webm'}",
        )


class YtDlpStrategy:
    """Extraction through yt-dlp with a fixed set of player clients."""

    def __init__(
        self,
        *,
        name: StrategyName,
        timeout_seconds: float | None,
        player_clients: Sequence[str] | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._name = name
        self._timeout = timeout_seconds
        self._player_clients = tuple(player_clients or ())
        self._executor = executor

    @property
    def name(self) -> StrategyName:
        return self._name

    @property
    def timeout_seconds(self) -> float | None:
        return self._timeout

    async def resolve(
        self, content_id: str, deadline: Deadline
    ) -> AudioStreamDescriptor:
        options = build_ydl_options(
            self._player_clients, socket_timeout=deadline.remaining()
        )
        try:
            info = await guard(
                run_blocking(self._executor, extract_info, content_id, options),
                deadline,
                label=self._name.value,
            )
        except (DownloadError, ExtractorError) as exc:
            raise ExtractionFailure(str(exc), strategy=self._name.value) from exc

        best = pick_best_audio(iter_audio_formats(info))
        if best is None:
            raise ExtractionFailure(
                "No audio-only formats available", strategy=self._name.value
            )
        log.debug(
            "ytdlp_audio_selected",
            strategy=self._name.value,
            content_id=content_id,
            bitrate=best.bitrate,
            mime_type=best.mime_type,
        )
        return AudioStreamDescriptor(
            url=best.url, source_method=self._name, bitrate=best.bitrate
        )


def create_primary_strategy(
    timeout_seconds: float | None = 5.0,
    executor: Executor | None = None,
) -> YtDlpStrategy:
    return YtDlpStrategy(
        name=StrategyName.PRIMARY_LIBRARY,
        timeout_seconds=timeout_seconds,
        executor=executor,
    )


def create_secondary_strategy(
    timeout_seconds: float | None = 5.0,
    player_clients: Sequence[str] = ("android_music",),
    executor: Executor | None = None,
) -> YtDlpStrategy:
    return YtDlpStrategy(
        name=StrategyName.SECONDARY_LIBRARY,
        timeout_seconds=timeout_seconds,
        player_clients=player_clients,
        executor=executor,
    )
