"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _require_positive(name: str, value: float) -> float:
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


class QueueConfig(BaseModel):
    """Admission queue limits (YAML section: queues.*)."""

    stream_concurrency: int = Field(
        default=10,
        description="Max simultaneous stream/metadata resolutions.",
    )
    stream_timeout_seconds: float = Field(
        default=30.0,
        description="Per-task timeout on the stream queue.",
    )
    search_concurrency: int = Field(
        default=5,
        description="Max simultaneous searches.",
    )
    search_timeout_seconds: float = Field(
        default=15.0,
        description="Per-task timeout on the search queue.",
    )

    @field_validator("stream_concurrency", "search_concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("queue concurrency must be >= 1")
        return v

    @field_validator("stream_timeout_seconds", "search_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        return _require_positive("queue timeout", v)


class ResolverConfig(BaseModel):
    """Adaptive resolver and strategy settings (YAML section: resolver.*)."""

    max_sticky_failures: int = Field(
        default=3,
        description="Consecutive sticky-method failures before unlocking.",
    )
    primary_timeout_seconds: float = Field(default=5.0)
    secondary_timeout_seconds: float = Field(default=5.0)
    tertiary_timeout_seconds: float = Field(default=7.0)
    mirror_timeout_seconds: float = Field(
        default=8.0,
        description="Deadline for the whole mirror walk.",
    )
    mirror_endpoint_timeout_seconds: float = Field(
        default=3.0,
        description="Timeout per mirror endpoint.",
    )
    mirror_instances: list[str] = Field(
        default=[
            "https://yewtu.be",
            "https://invidious.kavin.rocks",
            "https://vid.puffyan.us",
            "https://invidious.snopyta.org",
        ],
        description="Invidious instances, tried in order.",
    )
    secondary_player_clients: list[str] = Field(
        default=["android_music"],
        description="yt-dlp player clients for the secondary strategy.",
    )

    @field_validator("max_sticky_failures")
    @classmethod
    def _validate_failures(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_sticky_failures must be >= 1")
        return v

    @field_validator(
        "primary_timeout_seconds",
        "secondary_timeout_seconds",
        "tertiary_timeout_seconds",
        "mirror_timeout_seconds",
        "mirror_endpoint_timeout_seconds",
    )
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        return _require_positive("strategy timeout", v)


class MetadataConfig(BaseModel):
    """Metadata lookup settings (YAML section: metadata.*)."""

    source_timeout_seconds: float = Field(
        default=8.0,
        description="Deadline for each metadata source.",
    )

    @field_validator("source_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        return _require_positive("source_timeout_seconds", v)


class SearchConfig(BaseModel):
    """Search settings (YAML section: search.*)."""

    timeout_seconds: float = Field(default=15.0)
    default_limit: int = Field(default=10)
    max_limit: int = Field(default=50)

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        return _require_positive("search timeout_seconds", v)

    @model_validator(mode="after")
    def _validate_limits(self) -> "SearchConfig":
        if self.default_limit < 1 or self.max_limit < 1:
            raise ValueError("search limits must be >= 1")
        if self.default_limit > self.max_limit:
            raise ValueError("search default_limit must be <= max_limit")
        return self


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/queues/resolver/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow
      strict precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="musicmu", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )
    cors_origin: str = Field(
        default="*",
        description="Allowed CORS origin for the player frontend.",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default timeout for outgoing HTTP requests.",
    )
    http_user_agent: str = Field(
        default="MusicMu/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    queues: QueueConfig = Field(default_factory=QueueConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        return _require_positive("http_timeout_seconds", v)

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "cors_origin": self.cors_origin,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "queues": self.queues.model_dump(),
            "resolver": self.resolver.model_dump(),
            "metadata": self.metadata.model_dump(),
            "search": self.search.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py creates EnvOverrides() to read MUSICMU_* variables, converts the
    set values to a dict, merges them into YAML/defaults, then validates
    AppConfig.

    Supported env var examples (flat, explicit):
    - MUSICMU_LOG_LEVEL
    - MUSICMU_HTTP_TIMEOUT_SECONDS
    - MUSICMU_STREAM_CONCURRENCY
    - MUSICMU_SEARCH_TIMEOUT_SECONDS
    """

    model_config = SettingsConfigDict(
        env_prefix="MUSICMU_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None
    cors_origin: Optional[str] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    stream_concurrency: Optional[int] = None
    stream_timeout_seconds: Optional[float] = None
    search_concurrency: Optional[int] = None
    search_timeout_seconds: Optional[float] = None

    max_sticky_failures: Optional[int] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
