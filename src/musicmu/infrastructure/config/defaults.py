"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "musicmu",
    "environment": "dev",
    "cors_origin": "*",
    "http": {
        "timeout_seconds": 10.0,
        "user_agent": "MusicMu/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "queues": {
        "stream_concurrency": 10,
        "stream_timeout_seconds": 30.0,
        "search_concurrency": 5,
        "search_timeout_seconds": 15.0,
    },
    "resolver": {
        "max_sticky_failures": 3,
        "primary_timeout_seconds": 5.0,
        "secondary_timeout_seconds": 5.0,
        "tertiary_timeout_seconds": 7.0,
        "mirror_timeout_seconds": 8.0,
        "mirror_endpoint_timeout_seconds": 3.0,
    },
    "metadata": {
        "source_timeout_seconds": 8.0,
    },
    "search": {
        "timeout_seconds": 15.0,
        "default_limit": 10,
        "max_limit": 50,
    },
}
