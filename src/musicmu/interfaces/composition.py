"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from musicmu.application.use_cases import (
    AdaptiveResolver,
    MetadataResolver,
    ResolutionState,
    SearchService,
)
from musicmu.infrastructure.admission_queue import AdmissionQueue
from musicmu.infrastructure.sources import (
    YtDlpMetadataSource,
    YTMusicMetadataSource,
    YTMusicProvider,
    YTMusicSearchSource,
)
from musicmu.infrastructure.strategies import create_default_strategies
from musicmu.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. HTTP client (required by the tertiary and mirror strategies)
        2. Worker pools for the blocking libraries (yt-dlp, ytmusicapi)
        3. Strategies, resolution state, adaptive resolver
        4. Metadata and search services (share one YTMusic client)
        5. Admission queues

    Each pool serves one kind of blocking call and is sized from the queue
    that feeds it.  A timed-out call leaves its thread running, so a hung
    yt-dlp extraction can only occupy extraction workers; ytmusicapi
    search keeps its own threads.
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Shared HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 2) Worker pools
    queues = config.queues
    state.worker_pools = {
        "extraction": ThreadPoolExecutor(
            max_workers=queues.stream_concurrency,
            thread_name_prefix="musicmu-extraction",
        ),
        "metadata": ThreadPoolExecutor(
            max_workers=queues.stream_concurrency,
            thread_name_prefix="musicmu-metadata",
        ),
        "search": ThreadPoolExecutor(
            max_workers=queues.search_concurrency,
            thread_name_prefix="musicmu-search",
        ),
    }
    pools = state.worker_pools
    log.info(
        "worker_pools_initialized",
        extraction_workers=queues.stream_concurrency,
        metadata_workers=queues.stream_concurrency,
        search_workers=queues.search_concurrency,
    )

    # 3) Stream resolution
    strategies = create_default_strategies(
        http_client=state.http_client,
        config=config.resolver,
        executor=pools["extraction"],
    )
    state.resolution_state = ResolutionState(
        max_failures=config.resolver.max_sticky_failures
    )
    state.resolver = AdaptiveResolver(
        strategies=strategies, state=state.resolution_state
    )
    log.info(
        "resolver_initialized",
        strategies=[s.name.value for s in strategies],
        max_sticky_failures=config.resolver.max_sticky_failures,
    )

    # 4) Metadata and search
    ytmusic = YTMusicProvider()
    state.metadata = MetadataResolver(
        sources=[
            YTMusicMetadataSource(ytmusic, pools["metadata"]),
            YtDlpMetadataSource(pools["extraction"]),
        ],
        source_timeout_seconds=config.metadata.source_timeout_seconds,
    )
    state.search = SearchService(
        source=YTMusicSearchSource(ytmusic, pools["search"]),
        timeout_seconds=config.search.timeout_seconds,
        default_limit=config.search.default_limit,
        max_limit=config.search.max_limit,
    )

    # 5) Admission queues
    state.stream_queue = AdmissionQueue(
        name="stream",
        concurrency=config.queues.stream_concurrency,
        timeout_seconds=config.queues.stream_timeout_seconds,
    )
    state.search_queue = AdmissionQueue(
        name="search",
        concurrency=config.queues.search_concurrency,
        timeout_seconds=config.queues.search_timeout_seconds,
    )
    log.info(
        "admission_queues_initialized",
        stream_concurrency=config.queues.stream_concurrency,
        search_concurrency=config.queues.search_concurrency,
    )

    try:
        yield
    finally:
        await state.http_client.aclose()
        log.info("http_client_closed")
        for pool in pools.values():
            # Abandoned calls may still hold threads.
            pool.shutdown(wait=False, cancel_futures=True)
        log.info("worker_pools_shutdown")
