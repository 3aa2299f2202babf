"""``musicmu`` command: resolve configuration, configure logging, serve.

Every tuning flag maps onto a flat config key understood by
``load_config``, so a flag always wins over YAML and ``MUSICMU_*`` values.
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from musicmu.infrastructure.config import load_config
from musicmu.infrastructure.logging.setup import configure_logging
from musicmu.interfaces.app import create_app

log = structlog.get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001

# argparse dest -> flat config key
_OVERRIDE_FLAGS: dict[str, str] = {
    "environment": "environment",
    "cors_origin": "cors_origin",
    "log_level": "log_level",
    "log_format": "log_format",
    "stream_concurrency": "stream_concurrency",
    "stream_timeout": "stream_timeout_seconds",
    "search_concurrency": "search_concurrency",
    "search_timeout": "search_timeout_seconds",
    "max_sticky_failures": "max_sticky_failures",
}


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected an integer >= 1, got {raw}")
    return value


def _positive_seconds(raw: str) -> float:
    value = float(raw)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected seconds > 0, got {raw}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="musicmu",
        description="Adaptive audio stream resolution service.",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help=f"Bind host (env HOST, default {DEFAULT_HOST}).")
    server.add_argument(
        "--port", type=int, help=f"Bind port (env PORT, default {DEFAULT_PORT})."
    )

    sources = parser.add_argument_group("configuration sources")
    sources.add_argument("--config", type=Path, help="YAML config file.")
    sources.add_argument("--dotenv", type=Path, help=".env file read as MUSICMU_* vars.")

    service = parser.add_argument_group("service")
    service.add_argument("--environment", choices=["dev", "test", "prod"])
    service.add_argument("--cors-origin", help="Allowed origin for the player frontend.")
    service.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    service.add_argument("--log-format", choices=["json", "console"])

    queues = parser.add_argument_group("admission queues")
    queues.add_argument(
        "--stream-concurrency",
        type=_positive_int,
        help="Simultaneous stream/metadata resolutions.",
    )
    queues.add_argument(
        "--stream-timeout",
        type=_positive_seconds,
        metavar="SECONDS",
        help="Per-task timeout on the stream queue.",
    )
    queues.add_argument(
        "--search-concurrency", type=_positive_int, help="Simultaneous searches."
    )
    queues.add_argument(
        "--search-timeout",
        type=_positive_seconds,
        metavar="SECONDS",
        help="Per-task timeout on the search queue.",
    )

    resolver = parser.add_argument_group("resolver")
    resolver.add_argument(
        "--max-sticky-failures",
        type=_positive_int,
        help="Consecutive failures before the sticky method is dropped.",
    )
    return parser


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Flat config overrides for every flag that was given."""
    overrides: dict[str, Any] = {}
    for dest, key in _OVERRIDE_FLAGS.items():
        value = getattr(args, dest)
        if value is not None:
            overrides[key] = value
    return overrides


def bind_address(args: argparse.Namespace) -> tuple[str, int]:
    """Flag, then HOST/PORT env, then the defaults."""
    host = args.host or os.getenv("HOST") or DEFAULT_HOST
    port = args.port or int(os.getenv("PORT") or DEFAULT_PORT)
    return host, port


def start(argv: Iterable[str] | None = None) -> None:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else list(argv))
    host, port = bind_address(args)

    config = load_config(
        config_path=args.config,
        dotenv_path=args.dotenv,
        cli_overrides=cli_overrides(args),
    )
    configure_logging(config)
    log.info(
        "server_starting",
        host=host,
        port=port,
        environment=config.environment,
        stream_concurrency=config.queues.stream_concurrency,
        search_concurrency=config.queues.search_concurrency,
        max_sticky_failures=config.resolver.max_sticky_failures,
    )

    uvicorn.run(create_app(config), host=host, port=port, log_config=None)


if __name__ == "__main__":
    raise SystemExit(start())
