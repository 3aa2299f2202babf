"""structlog + stdlib logging for the musicmu service.

Every record (ours, uvicorn's, and those of the HTTP/YouTube libraries) is
rendered by one structlog ``ProcessorFormatter``: console output in
dev/test, JSON lines in prod.  Records are handed to a background listener
through a queue, so neither the event loop nor the yt-dlp/ytmusicapi worker
threads block on terminal or pipe writes.  DEBUG..WARNING go to stdout,
ERROR and above to stderr.

Request-scoped fields (``request_id``) are bound with
``structlog.contextvars`` by the HTTP middleware and merged into every event
logged while the request runs.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
import queue
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Optional

import structlog

from musicmu.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# Libraries that log every request or extractor step at INFO.
NOISY_LIBRARIES: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "urllib3",
    "ytmusicapi",
    "yt_dlp",
)

_listener: Optional[QueueListener] = None


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self._max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self._max_level


class _MinLevelFilter(logging.Filter):
    def __init__(self, min_level: int) -> None:
        super().__init__()
        self._min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self._min_level


class _RecordQueueHandler(QueueHandler):
    """Enqueue records untouched.

    ``QueueHandler.prepare`` formats ``record.msg`` to a string, which would
    flatten the event dict structlog hands to ``ProcessorFormatter``.
    """

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        return record


def _drop_color_message(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    # uvicorn repeats the message with ANSI codes as "color_message".
    event_dict.pop("color_message", None)
    return event_dict


def _add_record_created_timestamp_utc(
    _: Any, __: Any, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp stdlib records with their creation time, not the render time."""
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = dt.isoformat().replace("+00:00", "Z")
    return event_dict


def _service_fields(config: AppConfig) -> structlog.typing.Processor:
    service = config.app_name
    environment = config.environment

    def add_service(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service)
        event_dict.setdefault("env", environment)
        return event_dict

    return add_service


def _renderer(config: AppConfig) -> structlog.typing.Processor:
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def library_level(config: AppConfig) -> str:
    """Level for :data:`NOISY_LIBRARIES`: WARNING unless debugging."""
    return "DEBUG" if config.log_level == "DEBUG" else "WARNING"


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """dictConfig for stdlib logging; handlers are moved behind a queue later."""
    foreign_pre_chain = [
        _drop_color_message,
        structlog.contextvars.merge_contextvars,
        _add_record_created_timestamp_utc,
        _service_fields(config),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    loggers: dict[str, Any] = {
        # Propagate to root so uvicorn shares the queue and renderer.
        "uvicorn": {"handlers": [], "propagate": True, "level": config.log_level},
        "uvicorn.error": {"handlers": [], "propagate": True, "level": config.log_level},
        # Requests are already logged by the http_request middleware.
        "uvicorn.access": {"handlers": [], "propagate": True, "level": "WARNING"},
    }
    for name in NOISY_LIBRARIES:
        loggers[name] = {"level": library_level(config)}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": foreign_pre_chain,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    _renderer(config),
                ],
            }
        },
        "filters": {
            "up_to_warning": {"()": _MaxLevelFilter, "max_level": logging.WARNING},
            "errors_only": {"()": _MinLevelFilter, "min_level": logging.ERROR},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "structlog",
                "filters": ["up_to_warning"],
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "structlog",
                "filters": ["errors_only"],
            },
        },
        "loggers": loggers,
        "root": {"handlers": ["stdout", "stderr"], "level": config.log_level},
    }


def _stop_listener() -> None:
    global _listener
    if _listener is not None:
        try:
            _listener.stop()
        finally:
            _listener = None


def _route_root_through_queue() -> None:
    """Swap root's stream handlers for a queue drained on a listener thread."""
    global _listener
    _stop_listener()

    root = logging.getLogger()
    stream_handlers = list(root.handlers)
    records: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    root.handlers = [_RecordQueueHandler(records)]

    _listener = QueueListener(records, *stream_handlers, respect_handler_level=True)
    _listener.start()


def configure_logging(config: AppConfig) -> None:
    """Configure structlog and stdlib logging once per process.

    uvicorn must then be started with ``log_config=None`` so it keeps this
    setup instead of applying its own.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _service_fields(config),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(build_logging_config(config))
    _route_root_through_queue()
    atexit.register(_stop_listener)

    log.info(
        "logging_configured",
        log_format=config.log_format,
        log_level=config.log_level,
        library_level=library_level(config),
    )
