"""Tests for format selection and the yt-dlp strategies."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from yt_dlp.utils import DownloadError

from musicmu.domain.entities import Deadline, StrategyName
from musicmu.domain.exceptions import ExtractionFailure
from musicmu.infrastructure.strategies.formats import (
    AudioFormat,
    bps_to_kbps,
    pick_best_audio,
    to_kbps,
)
from musicmu.infrastructure.strategies.ytdlp import (
    build_ydl_options,
    create_primary_strategy,
    create_secondary_strategy,
    iter_audio_formats,
)

_INFO = {
    "id": "abc123",
    "formats": [
        {"format_id": "18", "acodec": "mp4a", "vcodec": "avc1", "url": "https://v/18", "abr": 96},
        {"format_id": "139", "acodec": "mp4a", "vcodec": "none", "url": "https://a/139", "abr": 48.8},
        {"format_id": "251", "acodec": "opus", "vcodec": "none", "url": "https://a/251", "abr": 135.4, "audio_ext": "webm"},
        {"format_id": "140", "acodec": "mp4a", "vcodec": "none", "url": "https://a/140", "abr": 129.5},
        {"format_id": "sb0", "acodec": "none", "vcodec": "none", "url": "https://s/sb0"},
    ],
}


def _patched_ydl(info=None, error: Exception | None = None) -> MagicMock:
    ydl_cls = MagicMock()
    ydl = ydl_cls.return_value.__enter__.return_value
    if error is not None:
        ydl.extract_info.side_effect = error
    else:
        ydl.extract_info.return_value = info
    return ydl_cls


# ---------------------------------------------------------------------------
# Format selection
# ---------------------------------------------------------------------------


class TestPickBestAudio:
    def test_highest_bitrate_wins(self) -> None:
        best = pick_best_audio(
            [AudioFormat("a", 64), AudioFormat("b", 160), AudioFormat("c", 128)]
        )
        assert best is not None and best.url == "b"

    def test_tie_keeps_first_discovered(self) -> None:
        best = pick_best_audio([AudioFormat("a", 128), AudioFormat("b", 128)])
        assert best is not None and best.url == "a"

    def test_all_missing_keeps_first(self) -> None:
        best = pick_best_audio(
            [AudioFormat("a"), AudioFormat("b", 0), AudioFormat("c")]
        )
        assert best is not None and best.url == "a"

    def test_empty(self) -> None:
        assert pick_best_audio([]) is None


class TestBitrateConversion:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(128000, 128), ("160000", 160), (129500, 130), (0, None), (None, None), ("x", None)],
    )
    def test_bps_to_kbps(self, value, expected) -> None:
        assert bps_to_kbps(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"), [(129.5, 130), (48.8, 49), (0, None), (None, None)]
    )
    def test_to_kbps(self, value, expected) -> None:
        assert to_kbps(value) == expected


# ---------------------------------------------------------------------------
# yt-dlp
# ---------------------------------------------------------------------------


class TestYdlOptions:
    def test_default_clients_have_no_extractor_args(self) -> None:
        opts = build_ydl_options()
        assert opts["skip_download"] is True
        assert opts["quiet"] is True
        assert "extractor_args" not in opts

    def test_forced_player_client(self) -> None:
        opts = build_ydl_options(["android_music"], socket_timeout=4.5)
        assert opts["extractor_args"] == {"youtube": {"player_client": ["android_music"]}}
        assert opts["socket_timeout"] == 4.5


class TestIterAudioFormats:
    def test_only_audio_only_formats_with_urls(self) -> None:
        urls = [f.url for f in iter_audio_formats(_INFO)]
        assert urls == ["https://a/139", "https://a/251", "https://a/140"]

    def test_mime_type_from_extension(self) -> None:
        formats = list(iter_audio_formats(_INFO))
        assert formats[1].mime_type == "audio/webm"


class TestYtDlpStrategy:
    def test_factories(self) -> None:
        primary = create_primary_strategy()
        secondary = create_secondary_strategy()
        assert primary.name is StrategyName.PRIMARY_LIBRARY
        assert secondary.name is StrategyName.SECONDARY_LIBRARY
        assert primary.timeout_seconds == 5.0
        assert secondary.timeout_seconds == 5.0

    @pytest.mark.asyncio
    async def test_selects_highest_bitrate(self) -> None:
        ydl_cls = _patched_ydl(_INFO)
        with patch("musicmu.infrastructure.strategies.ytdlp.yt_dlp.YoutubeDL", ydl_cls):
            result = await create_primary_strategy().resolve(
                "abc123", Deadline.after(5)
            )

        assert result.url == "https://a/251"
        assert result.bitrate == 135
        assert result.source_method is StrategyName.PRIMARY_LIBRARY
        ydl_cls.return_value.__enter__.return_value.extract_info.assert_called_once_with(
            "https://www.youtube.com/watch?v=abc123", download=False
        )

    @pytest.mark.asyncio
    async def test_secondary_forces_android_music_client(self) -> None:
        ydl_cls = _patched_ydl(_INFO)
        with patch("musicmu.infrastructure.strategies.ytdlp.yt_dlp.YoutubeDL", ydl_cls):
            result = await create_secondary_strategy().resolve(
                "abc123", Deadline.after(5)
            )

        assert result.source_method is StrategyName.SECONDARY_LIBRARY
        options = ydl_cls.call_args.args[0]
        assert options["extractor_args"]["youtube"]["player_client"] == [
            "android_music"
        ]

    @pytest.mark.asyncio
    async def test_download_error_becomes_extraction_failure(self) -> None:
        ydl_cls = _patched_ydl(error=DownloadError("Sign in to confirm"))
        with patch("musicmu.infrastructure.strategies.ytdlp.yt_dlp.YoutubeDL", ydl_cls):
            with pytest.raises(ExtractionFailure, match="Sign in") as exc_info:
                await create_primary_strategy().resolve("abc123", Deadline.after(5))
        assert exc_info.value.strategy == "primary-library"

    @pytest.mark.asyncio
    async def test_no_audio_formats(self) -> None:
        info = {"formats": [{"acodec": "mp4a", "vcodec": "avc1", "url": "https://v"}]}
        with patch(
            "musicmu.infrastructure.strategies.ytdlp.yt_dlp.YoutubeDL", _patched_ydl(info)
        ):
            with pytest.raises(ExtractionFailure, match="No audio-only formats"):
                await create_primary_strategy().resolve("abc123", Deadline.after(5))

    @pytest.mark.asyncio
    async def test_empty_info(self) -> None:
        with patch(
            "musicmu.infrastructure.strategies.ytdlp.yt_dlp.YoutubeDL", _patched_ydl(None)
        ):
            with pytest.raises(ExtractionFailure, match="No info extracted"):
                await create_primary_strategy().resolve("abc123", Deadline.after(5))
