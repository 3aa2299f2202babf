"""Public Invidious mirror strategy.

Walks a list of Invidious instances one at a time, each with a short
per-endpoint timeout, and stops at the first instance that returns a
usable audio format.  The strategy fails only when every mirror fails.
"""

from __future__ import annotations

from typing import Any, Iterator, Sequence

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

DEFAULT_INSTANCES: tuple[str, ...] = (
    "https://yewtu.be",
    "https://invidious.kavin.rocks",
    "https://vid.puffyan.us",
    "https://invidious.snopyta.org",
)

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
)


def iter_invidious_audio_formats(data: dict[str, Any]) -> Iterator[AudioFormat]:
    """Yield audio entries of ``adaptiveFormats`` in response order."""
    for fmt in data.get("adaptiveFormats") or []:
        mime_type = fmt.get("type") or ""
        if "audio" not in mime_type:
            continue
        url = fmt.get("url")
        if not url:
            continue
        yield AudioFormat(
            url=url,
            bitrate=bps_to_kbps(fmt.get("bitrate")),
            mime_type=mime_type.split(";", 1)[0],
        )


class InvidiousStrategy:
    """Extraction through public Invidious API mirrors."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        instances: Sequence[str] = DEFAULT_INSTANCES,
        timeout_seconds: float | None = 8.0,
        endpoint_timeout_seconds: float = 3.0,
        name: StrategyName = StrategyName.PUBLIC_MIRROR_API,
    ) -> None:
        self._http = http_client
        self._instances = tuple(i.rstrip("/") for i in instances)
        self._timeout = timeout_seconds
        self._endpoint_timeout = endpoint_timeout_seconds
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
        last_error: Exception | None = None

        for instance in self._instances:
            if deadline.expired:
                break
            endpoint_deadline = Deadline.after(
                deadline.cap(self._endpoint_timeout), clock=deadline.clock
            )
            try:
                best = await guard(
                    self._fetch_best(instance, content_id),
                    endpoint_deadline,
                    label=f"{self._name.value}:{instance}",
                )
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                log.debug(
                    "invidious_instance_failed",
                    instance=instance,
                    content_id=content_id,
                    error=str(exc),
                )
                continue

            log.debug(
                "invidious_audio_selected",
                instance=instance,
                content_id=content_id,
                bitrate=best.bitrate,
            )
            return AudioStreamDescriptor(
                url=best.url, source_method=self._name, bitrate=best.bitrate
            )

        detail = f" (last: {last_error})" if last_error is not None else ""
        raise ExtractionFailure(
            f"All Invidious instances failed{detail}", strategy=self._name.value
        )

    async def _fetch_best(self, instance: str, content_id: str) -> AudioFormat:
        try:
            resp = await self._http.get(
                f"{instance}/api/v1/videos/{content_id}",
                headers={"User-Agent": _USER_AGENT},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise ExtractionFailure(
                f"{instance}: {exc}", strategy=self._name.value
            ) from exc
        except ValueError as exc:
            raise ExtractionFailure(
                f"{instance}: invalid JSON", strategy=self._name.value
            ) from exc

        best = pick_best_audio(iter_invidious_audio_formats(data))
        if best is None:
            raise ExtractionFailure(
                f"{instance}: no audio formats", strategy=self._name.value
            )
        return best
