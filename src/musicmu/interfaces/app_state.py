"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from musicmu.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from musicmu.application.use_cases import (
        AdaptiveResolver,
        MetadataResolver,
        ResolutionState,
        SearchService,
    )
    from musicmu.infrastructure.admission_queue import AdmissionQueue


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient

    # Blocking-library worker pools, keyed "extraction" / "metadata" / "search"
    worker_pools: dict[str, ThreadPoolExecutor]

    # Stream resolution (sticky state lives for the whole process)
    resolution_state: ResolutionState
    resolver: AdaptiveResolver

    # Best-effort lookups
    metadata: MetadataResolver
    search: SearchService

    # Admission queues (independent: saturating one never blocks the other)
    stream_queue: AdmissionQueue
    search_queue: AdmissionQueue
