"""JSON shapes returned by the HTTP API."""

from __future__ import annotations

from typing import Any

from musicmu.domain.entities import (
    AudioStreamDescriptor,
    QueueStats,
    ResolutionSnapshot,
    SearchResult,
    TrackMetadata,
)


def proxy_path(content_id: str) -> str:
    return f"/api/track/{content_id}/proxy"


def present_metadata(metadata: TrackMetadata) -> dict[str, Any]:
    return {
        "videoId": metadata.content_id,
        "title": metadata.title,
        "artist": metadata.artist,
        "duration": metadata.duration_seconds,
        "thumbnail": metadata.thumbnail_url,
    }


def present_stream(content_id: str, descriptor: AudioStreamDescriptor) -> dict[str, Any]:
    """Proxyable sources point at the same-origin proxy, never the raw upstream URL."""
    proxied = descriptor.proxyable
    return {
        "url": proxy_path(content_id) if proxied else descriptor.url,
        "source": descriptor.source_method.value,
        "bitrate": descriptor.bitrate,
        "proxied": proxied,
    }


def present_search_result(result: SearchResult) -> dict[str, Any]:
    return {
        "videoId": result.content_id,
        "title": result.title,
        "artist": result.artist,
        "duration": result.duration_seconds,
        "thumbnail": result.thumbnail_url,
    }


def present_queue(stats: QueueStats) -> dict[str, Any]:
    return {
        "pending": stats.pending,
        "queued": stats.queued,
        "concurrency": stats.concurrency,
        "timeoutSeconds": stats.timeout_seconds,
    }


def present_resolution(snapshot: ResolutionSnapshot) -> dict[str, Any]:
    return {
        "method": snapshot.method.value if snapshot.method else None,
        "failCounts": {name.value: n for name, n in snapshot.fail_counts.items()},
    }
