"""Extraction strategies, one per ``StrategyName``."""

from __future__ import annotations

from concurrent.futures import Executor

import httpx

from musicmu.domain.ports import ExtractionStrategyPort
from musicmu.infrastructure.config import ResolverConfig

from .embed import EmbedStrategy
from .formats import AudioFormat, pick_best_audio
from .innertube import InnertubeStrategy
from .invidious import InvidiousStrategy
from .ytdlp import (
    YtDlpStrategy,
    create_primary_strategy,
    create_secondary_strategy,
)

__all__ = [
    "AudioFormat",
    "EmbedStrategy",
    "InnertubeStrategy",
    "InvidiousStrategy",
    "YtDlpStrategy",
    "create_default_strategies",
    "pick_best_audio",
]


def create_default_strategies(
    *,
    http_client: httpx.AsyncClient,
    config: ResolverConfig,
    executor: Executor | None = None,
) -> list[ExtractionStrategyPort]:
    """Build the fallback chain in priority order.

    *executor* runs the blocking yt-dlp strategies; the HTTP strategies
    stay on the event loop.
    """
    return [
        create_primary_strategy(config.primary_timeout_seconds, executor),
        create_secondary_strategy(
            config.secondary_timeout_seconds,
            config.secondary_player_clients,
            executor,
        ),
        InnertubeStrategy(
            http_client=http_client,
            timeout_seconds=config.tertiary_timeout_seconds,
        ),
        InvidiousStrategy(
            http_client=http_client,
            instances=config.mirror_instances,
            timeout_seconds=config.mirror_timeout_seconds,
            endpoint_timeout_seconds=config.mirror_endpoint_timeout_seconds,
        ),
        EmbedStrategy(),
    ]
