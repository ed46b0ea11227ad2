"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
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

from animarr.infrastructure.delivery.policy import DEFAULT_ALLOWED_DOMAINS

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseSettings):
    """Cache configuration (backend-agnostic)."""

    backend: Literal["diskcache", "redis"] = Field(
        default="diskcache",
        description="Cache backend: 'diskcache' (SQLite) or 'redis'",
    )

    # Diskcache settings
    directory: Path = Field(
        default=Path("./.cache/animarr"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )

    # Redis settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis)",
    )

    # Shared settings
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries without an explicit TTL",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",  # Env vars: CACHE_BACKEND, CACHE_REDIS_URL, ...
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache ttl_seconds must be >= 0")
        return v


class CatalogConfig(BaseModel):
    """Jikan (MyAnimeList) catalog client settings."""

    base_url: str = Field(
        default="https://api.jikan.moe/v4",
        description="Jikan v4 API base URL.",
    )
    ttl_seconds: int = Field(
        default=86_400,
        description="TTL for cached catalog records (seconds).",
    )
    search_limit: int = Field(
        default=25,
        description="Maximum number of results requested per title search.",
    )


class StreamingConfig(BaseModel):
    """Aggregation, identity resolution and cache lifetimes.

    All values configurable via YAML (streaming section) or ENV vars.
    """

    streaming_ttl_seconds: int = Field(
        default=1200,
        description="TTL for the aggregated source list per (id, episode).",
    )
    resolved_url_ttl_seconds: int = Field(
        default=21_600,
        description="TTL for cached extractor results per embed URL.",
    )
    delivery_code_ttl_seconds: int = Field(
        default=86_400,
        description="Lifetime of an opaque delivery code.",
    )
    catalog_detail_ttl_seconds: int = Field(
        default=1200,
        description="TTL for the unified catalog detail response.",
    )
    listing_memo_ttl_seconds: int = Field(
        default=300,
        description="How long a provider listing is reused in memory.",
    )
    home_feed_ttl_seconds: int = Field(
        default=21_600,
        description="TTL for the matched home feed.",
    )
    home_feed_max_titles: int = Field(
        default=60,
        description="Merged titles matched against the catalog per feed build.",
    )
    provider_timeout_seconds: float = Field(
        default=30.0,
        description="Per-provider timeout for scrapes and slug lookups.",
    )
    extract_concurrency: int = Field(
        default=10,
        description="Max parallel extractions for non quota-limited sources.",
    )
    deny_list: list[str] = Field(
        default_factory=list,
        description="URL substrings; matching raw sources are dropped.",
    )
    public_base_url: str = Field(
        default="",
        description="Prefix used to build public_proxy_url values.",
    )

    @field_validator(
        "streaming_ttl_seconds",
        "resolved_url_ttl_seconds",
        "delivery_code_ttl_seconds",
        "catalog_detail_ttl_seconds",
        "listing_memo_ttl_seconds",
        "home_feed_ttl_seconds",
    )
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("streaming TTLs must be >= 0")
        return v

    @field_validator("provider_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("provider_timeout_seconds must be > 0")
        return v

    @field_validator("extract_concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("extract_concurrency must be >= 1")
        return v

    @field_validator("home_feed_max_titles")
    @classmethod
    def _validate_max_titles(cls, v: int) -> int:
        if v < 1:
            raise ValueError("home_feed_max_titles must be >= 1")
        return v

    @field_validator("public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class DeliveryConfig(BaseModel):
    """Delivery proxy settings."""

    timeout_seconds: float = Field(
        default=30.0,
        description="Upstream timeout for proxied fetches.",
    )
    allowed_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_DOMAINS),
        description="Host suffixes the proxy is allowed to fetch from.",
    )
    chunk_size: int = Field(
        default=65_536,
        description="Chunk size for relayed response bodies (bytes).",
    )

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("delivery timeout_seconds must be > 0")
        return v


class ArchiveConfig(BaseModel):
    """Cold-storage archival queue and GitHub dispatch settings."""

    enabled: bool = Field(
        default=False,
        description="Enqueue resolved sources and notify the archive worker.",
    )
    github_owner: str | None = Field(default=None)
    github_repo: str | None = Field(default=None)
    github_token: str | None = Field(
        default=None,
        description="Token used for the repository_dispatch call.",
    )
    event_type: str = Field(
        default="process_queue",
        description="repository_dispatch event_type.",
    )
    webhook_secret: str | None = Field(
        default=None,
        description="Shared secret expected as 'Authorization: Bearer ...'.",
    )
    queue_ttl_seconds: int = Field(
        default=604_800,
        description="TTL for archive queue items (seconds).",
    )

    @model_validator(mode="after")
    def _require_target(self) -> "ArchiveConfig":
        if self.enabled and not (
            self.github_owner and self.github_repo and self.github_token
        ):
            raise ValueError(
                "archive.enabled requires github_owner, github_repo and github_token"
            )
        return self


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (plugins/http/logging/cache/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="animarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Plugins (YAML section: plugins.plugin_dir)
    plugin_dir: Path = Field(
        default=Path("./plugins"),
        validation_alias=AliasChoices(
            "plugin_dir",
            AliasPath("plugins", "plugin_dir"),
        ),
        description="Directory containing provider plugins.",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds for scrapes and extractions.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default="animarr/0.1.0",
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

    cache: CacheConfig = Field(default_factory=CacheConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)

    @field_validator("plugin_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.

        Secrets are masked.
        """
        archive = self.archive.model_dump()
        for secret in ("github_token", "webhook_secret"):
            if archive.get(secret):
                archive[secret] = "***"
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "plugins": {"plugin_dir": str(self.plugin_dir)},
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "backend": self.cache.backend,
                "dir": str(self.cache.directory),
                "redis_url": self.cache.redis_url,
                "ttl_seconds": self.cache.ttl_seconds,
                "max_concurrent": self.cache.max_concurrent,
            },
            "catalog": self.catalog.model_dump(),
            "streaming": self.streaming.model_dump(),
            "delivery": self.delivery.model_dump(),
            "archive": archive,
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read ANIMARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - ANIMARR_PLUGIN_DIR
    - ANIMARR_HTTP_TIMEOUT_SECONDS
    - ANIMARR_LOG_LEVEL
    - ANIMARR_PUBLIC_BASE_URL
    - ANIMARR_GITHUB_TOKEN
    - ANIMARR_WEBHOOK_SECRET
    """

    model_config = SettingsConfigDict(
        env_prefix="ANIMARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    plugin_dir: Optional[Path] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_dir: Optional[Path] = None
    cache_ttl_seconds: Optional[int] = None

    catalog_base_url: Optional[str] = None

    public_base_url: Optional[str] = None
    provider_timeout_seconds: Optional[float] = None

    delivery_timeout_seconds: Optional[float] = None

    archive_enabled: Optional[bool] = None
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    github_token: Optional[str] = None
    webhook_secret: Optional[str] = None

    @field_validator("plugin_dir", "cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
