from __future__ import annotations

from .load import load_config
from .schema import (
    AppConfig,
    EnvOverrides,
    MetadataConfig,
    QueueConfig,
    ResolverConfig,
    SearchConfig,
)

__all__ = [
    "AppConfig",
    "EnvOverrides",
    "MetadataConfig",
    "QueueConfig",
    "ResolverConfig",
    "SearchConfig",
    "load_config",
]
