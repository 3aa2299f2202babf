"""Audio format selection shared by all extraction strategies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class AudioFormat:
    """One audio-only format exposed by a provider."""

    url: str
    bitrate: int | None = None  # kbps
    mime_type: str = ""


def pick_best_audio(candidates: Iterable[AudioFormat]) -> AudioFormat | None:
    """Return the highest-bitrate candidate.

    Only a strictly higher bitrate replaces the current pick, so ties and
    the all-missing/zero case keep the first discovered format.
    """
    best: AudioFormat | None = None
    for candidate in candidates:
        if best is None or (candidate.bitrate or 0) > (best.bitrate or 0):
            best = candidate
    return best


def bps_to_kbps(value: Any) -> int | None:
    """Convert a bits-per-second value (int or numeric string) to kbps."""
    try:
        bps = int(value)
    except (TypeError, ValueError):
        return None
    if bps <= 0:
        return None
    return round(bps / 1000)


def to_kbps(value: Any) -> int | None:
    """Normalize an already-kbps value (yt-dlp ``abr`` is a float)."""
    try:
        kbps = float(value)
    except (TypeError, ValueError):
        return None
    if kbps <= 0:
        return None
    return int(round(kbps))
