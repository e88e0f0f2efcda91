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
    """Disk cache configuration."""

    directory: Path = Field(
        default=Path("./.cache/magnetarr"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries (seconds)",
    )
    search_ttl_seconds: int = Field(
        default=300,
        description="TTL for cached search results (seconds). 0 = disabled.",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",  # Env vars: CACHE_DIR, CACHE_TTL_SECONDS, ...
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("ttl_seconds", "search_ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache TTLs must be >= 0")
        return v


class EngineConfig(BaseModel):
    """Tunables of the torrent discovery and selection engine.

    All values configurable via YAML (engine section) or ENV vars.
    """

    api_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the torrent search/stream backend.",
    )

    min_seeders: int = Field(
        default=5,
        description="Minimum seeders for results of the primary query.",
    )
    min_seeders_fallback: int = Field(
        default=3,
        description="Minimum seeders for results of a fallback query.",
    )
    title_match_threshold: float = Field(
        default=0.3,
        description="Minimum share of title words present in a release name.",
    )
    title_match_threshold_fallback: float = Field(
        default=0.2,
        description="Title-word threshold applied to fallback results.",
    )

    alternatives_limit: int = Field(
        default=10,
        description="How many ranked candidates are exposed for source switching.",
    )
    candidates_to_try: int = Field(
        default=3,
        description="How many top candidates are tried before giving up.",
    )
    add_timeout_seconds: float = Field(
        default=45.0,
        description="Timeout of a single add-torrent call.",
    )
    attempt_delay_seconds: float = Field(
        default=1.0,
        description="Pause between two add-torrent attempts.",
    )
    stream_cache_ttl_seconds: int = Field(
        default=300,
        description="How long a resolved stream is served from memory.",
    )

    mp4_bonus: int = Field(default=300, description="Score bonus for .mp4 releases.")
    good_audio_bonus: int = Field(
        default=500,
        description="Score bonus for explicit AAC/MP3 audio.",
    )
    h264_bonus: int = Field(default=200, description="Score bonus for H.264/x264.")
    mkv_penalty_factor: float = Field(
        default=0.5,
        description="Score multiplier for MKV without browser-safe audio.",
    )

    title_abbreviations: dict[str, str] = Field(
        default={
            "Special Victims Unit": "SVU",
            "Criminal Intent": "CI",
            "Criminal Minds": "CM",
            "Crime Scene Investigation": "CSI",
        },
        description="Long-form show names rewritten to their release abbreviation.",
    )
    adult_keywords: list[str] = Field(
        default=["xxx", "porn", "sex", "nsfw", "adult", "hentai"],
        description="Whole-word keywords that reject a release.",
    )

    @field_validator("api_url")
    @classmethod
    def _validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator(
        "title_match_threshold",
        "title_match_threshold_fallback",
        "mkv_penalty_factor",
    )
    @classmethod
    def _validate_ratio(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("value must be between 0 and 1")
        return v

    @field_validator("candidates_to_try", "alternatives_limit")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be >= 1")
        return v

    @field_validator("add_timeout_seconds")
    @classmethod
    def _validate_add_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("add_timeout_seconds must be > 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/engine).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="magnetarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default HTTP timeout in seconds for backend calls.",
    )
    http_user_agent: str = Field(
        default="Magnetarr/0.1.0",
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

    # Cache (YAML section: cache.*)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    # Engine (YAML section: engine.*)
    engine: EngineConfig = Field(default_factory=EngineConfig)

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
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "dir": str(self.cache.directory),
                "ttl_seconds": self.cache.ttl_seconds,
                "search_ttl_seconds": self.cache.search_ttl_seconds,
                "max_concurrent": self.cache.max_concurrent,
            },
            "engine": self.engine.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read MAGNETARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - MAGNETARR_API_URL
    - MAGNETARR_MIN_SEEDERS
    - MAGNETARR_LOG_LEVEL
    - MAGNETARR_CACHE_DIR
    """

    model_config = SettingsConfigDict(
        env_prefix="MAGNETARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_dir: Optional[Path] = None
    cache_ttl_seconds: Optional[int] = None
    cache_search_ttl_seconds: Optional[int] = None

    api_url: Optional[str] = None
    min_seeders: Optional[int] = None
    min_seeders_fallback: Optional[int] = None
    candidates_to_try: Optional[int] = None
    add_timeout_seconds: Optional[float] = None
    stream_cache_ttl_seconds: Optional[int] = None

    @field_validator("cache_dir", mode="before")
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
