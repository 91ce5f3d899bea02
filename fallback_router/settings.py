"""
Typed settings management using pydantic-settings.

Every tunable of the routing core lives here: where model-schema overlays and
the availability snapshot are read from, the routing mode, and the timing
knobs of the retry engine.

Features:
- Type-safe configuration with validation
- Automatic environment variable loading (prefix ``FALLBACK_ROUTER_``)
- .env file support
- Nested settings grouped by concern

Usage:
    from fallback_router.settings import get_settings

    settings = get_settings()
    print(settings.retry.prompt_timeout_ms)
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Enums for validated choices
# =============================================================================


class RoutingMode(str, Enum):
    """How the resolution pipeline treats agents without an explicit model."""

    STATIC = "static"
    DYNAMIC = "dynamic"


class CostPreference(str, Enum):
    """Bias applied by the model router when scoring candidates."""

    ECONOMY = "economy"
    PERFORMANCE = "performance"


# =============================================================================
# Path Configuration
# =============================================================================


def _get_xdg_dir(env_var: str, fallback_subdir: str) -> Path:
    """Get XDG directory, defaulting to ~/<fallback_subdir>/fallback-router."""
    xdg_base = os.getenv(env_var)
    if xdg_base:
        return Path(xdg_base) / "fallback-router"
    return Path.home() / fallback_subdir / "fallback-router"


class PathSettings(BaseSettings):
    """XDG-compliant path configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FALLBACK_ROUTER_",
        extra="ignore",
    )

    project_dir_name: str = Field(
        default=".fallback-router",
        description="Directory inside a project that holds project-level overrides",
    )
    model_schema_file_name: str = Field(
        default="model-schema.jsonc",
        description="File name of user/project model catalog overlays",
    )
    availability_cache_file_name: str = Field(
        default="connected-providers.json",
        description="File name of the cached provider/model availability snapshot",
    )

    @property
    def config_dir(self) -> Path:
        """XDG_CONFIG_HOME/fallback-router or ~/.config/fallback-router"""
        return _get_xdg_dir("XDG_CONFIG_HOME", ".config")

    @property
    def cache_dir(self) -> Path:
        """XDG_CACHE_HOME/fallback-router or ~/.cache/fallback-router"""
        return _get_xdg_dir("XDG_CACHE_HOME", ".cache")

    @property
    def availability_cache_file(self) -> Path:
        return self.cache_dir / self.availability_cache_file_name

    def user_model_schema_file(self, user_config_dir: Optional[Path] = None) -> Path:
        return Path(user_config_dir or self.config_dir) / self.model_schema_file_name

    def project_model_schema_file(self, project_dir: Path) -> Path:
        return Path(project_dir) / self.project_dir_name / self.model_schema_file_name


# =============================================================================
# Routing Settings
# =============================================================================


class RoutingSettings(BaseSettings):
    """Model resolution configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FALLBACK_ROUTER_",
        extra="ignore",
    )

    routing_mode: RoutingMode = Field(
        default=RoutingMode.STATIC,
        description="static walks fallback chains, dynamic classifies and routes first",
    )
    cost_preference: Optional[CostPreference] = Field(
        default=None,
        description="Optional router bias (economy or performance)",
    )
    system_default_model: Optional[str] = Field(
        default=None,
        description="Last-resort 'provider/model' when nothing else resolves",
    )

    @field_validator("system_default_model")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


# =============================================================================
# Retry Settings
# =============================================================================


class RetrySettings(BaseSettings):
    """Timing knobs of the prompt retry engine."""

    model_config = SettingsConfigDict(
        env_prefix="FALLBACK_ROUTER_",
        extra="ignore",
    )

    prompt_timeout_ms: int = Field(
        default=120_000,
        ge=1,
        description="Upper bound for a single host prompt call",
    )
    deferred_poll_attempts: int = Field(
        default=8,
        ge=0,
        description="How many times the session log is re-read after a send",
    )
    deferred_poll_interval_ms: int = Field(
        default=250,
        ge=0,
        description="Delay between deferred-error polls",
    )
    provider_ban_ttl_ms: int = Field(
        default=5 * 60 * 1000,
        ge=1000,
        description="How long a provider stays banned after a quota/billing failure",
    )
    recent_output_window_ms: int = Field(
        default=60_000,
        ge=0,
        description="Assistant/tool output newer than this keeps a timed-out turn alive",
    )
    session_create_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for session creation on retryable errors",
    )
    session_backoff_base_ms: int = Field(
        default=750,
        ge=0,
        description="Base delay of the session-creation exponential backoff",
    )
    session_backoff_cap_ms: int = Field(
        default=8_000,
        ge=0,
        description="Upper bound of a single session-creation backoff delay",
    )


# =============================================================================
# Host Settings
# =============================================================================


class HostSettings(BaseSettings):
    """Where the host process exposes its session/provider HTTP API."""

    model_config = SettingsConfigDict(
        env_prefix="FALLBACK_ROUTER_HOST_",
        extra="ignore",
    )

    base_url: str = Field(
        default="http://127.0.0.1:4096",
        description="Base URL of the host HTTP API",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout (seconds) for non-prompt host calls",
    )


# =============================================================================
# Master Settings Class
# =============================================================================


class Settings(BaseSettings):
    """Master settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FALLBACK_ROUTER_",
        extra="ignore",
        case_sensitive=False,
    )

    log_level: str = Field(default="INFO", description="Level for the fallback_router logger")

    paths: PathSettings = Field(default_factory=PathSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    host: HostSettings = Field(default_factory=HostSettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"):
            raise ValueError(f"Unknown log level: {value}")
        return level


# =============================================================================
# Cached Singleton Accessors
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings singleton.

    The settings are loaded once and cached for the process lifetime.
    To reload, call clear_settings_cache() first.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the cached settings instance.

    Call this if environment variables or .env files have changed
    and you need to reload configuration.
    """
    get_settings.cache_clear()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured level to the package logger."""
    settings = settings or get_settings()
    logging.getLogger("fallback_router").setLevel(settings.log_level)
