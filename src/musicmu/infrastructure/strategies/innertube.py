"""Innertube player API strategy.

Calls YouTube's internal ``/youtubei/v1/player`` endpoint directly with an
Android VR client context.  That client receives pre-signed format URLs,
so no player-script deciphering is needed; formats that only carry a
``signatureCipher`` are skipped.
"""

from __future__ import annotations

from typing import Any, Iterator

import httpx
import structlog

from musicmu.domain.entities import AudioStreamDescriptor, Deadline, StrategyName
from musicmu.domain.exceptions import ExtractionFailure
from musicmu.infrastructure.strategies.formats import (
    AudioFormat,
    bps_to_kbps,
    pick_best_audio,
)
from musicmu.infrastructure.timeout_guard import guard

log = structlog.get_logger(__name__)

PLAYER_URL = "https://www.youtube.com/youtubei/v1/player"

_CLIENT_NAME = "ANDROID_VR"
_CLIENT_ID = "28"
_CLIENT_VERSION = "1.60.19"
_CLIENT_USER_AGENT = (
    "com.google.android.apps.youtube.vr.oculus/1.60.19 "
    "(Linux; U; Android 12L; eureka-user Build/SQ3A.220605.009.A1) gzip"
)


def build_player_request(content_id: str) -> dict[str, Any]:
    """JSON body for a player request."""
    return {
        "context": {
            "client": {
                "clientName": _CLIENT_NAME,
                "clientVersion": _CLIENT_VERSION,
                "androidSdkVersion": 32,
                "hl": "en",
                "gl": "US",
            }
        },
        "videoId": content_id,
        "contentCheckOk": True,
        "racyCheckOk": True,
    }


def iter_player_audio_formats(payload: dict[str, Any]) -> Iterator[AudioFormat]:
    """Yield audio-only adaptive formats that carry a direct URL."""
    streaming = payload.get("streamingData") or {}
    for fmt in streaming.get("adaptiveFormats") or []:
        mime_type = fmt.get("mimeType") or ""
        if not mime_type.startswith("audio/"):
            continue
        url = fmt.get("url")
        if not url:
            continue
        yield AudioFormat(
            url=url,
            bitrate=bps_to_kbps(fmt.get("averageBitrate") or fmt.get("bitrate")),
            mime_type=mime_type.split(";", 1)[0],
        )


class InnertubeStrategy:
    """Extraction through the Innertube player endpoint."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        timeout_seconds: float | None = 7.0,
        name: StrategyName = StrategyName.TERTIARY_LIBRARY,
    ) -> None:
        self._http = http_client
        self._timeout = timeout_seconds
        self._name = name

    @property
    def name(self) -> StrategyName:
        return self._name

    @property
    def timeout_seconds(self) -> float | None:
        return self._timeout

    async def resolve(
        self, content_id: str, deadline: Deadline
    ) -> AudioStreamDescriptor:
        payload = await guard(
            self._fetch_player(content_id), deadline, label=self._name.value
        )

        playability = payload.get("playabilityStatus") or {}
        status = playability.get("status", "UNKNOWN")
        if status != "OK":
            reason = playability.get("reason") or status
            raise ExtractionFailure(
                f"Video not playable: {reason}", strategy=self._name.value
            )

        best = pick_best_audio(iter_player_audio_formats(payload))
        if best is None:
            raise ExtractionFailure(
                "No audio format available", strategy=self._name.value
            )
        log.debug(
            "innertube_audio_selected",
            content_id=content_id,
            bitrate=best.bitrate,
            mime_type=best.mime_type,
        )
        return AudioStreamDescriptor(
            url=best.url, source_method=self._name, bitrate=best.bitrate
        )

    async def _fetch_player(self, content_id: str) -> dict[str, Any]:
        try:
            resp = await self._http.post(
                PLAYER_URL,
                params={"prettyPrint": "false"},
                json=build_player_request(content_id),
                headers={
                    "User-Agent": _CLIENT_USER_AGENT,
                    "X-YouTube-Client-Name": _CLIENT_ID,
                    "X-YouTube-Client-Version": _CLIENT_VERSION,
                    "Origin": "https://www.youtube.com",
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise ExtractionFailure(
                f"Innertube request failed: {exc}", strategy=self._name.value
            ) from exc
        except ValueError as exc:
            raise ExtractionFailure(
                "Innertube returned invalid JSON", strategy=self._name.value
            ) from exc
        if not isinstance(data, dict):
            raise ExtractionFailure(
                "Innertube returned unexpected payload", strategy=self._name.value
            )
        return data
