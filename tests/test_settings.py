"""Tests for typed settings."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from fallback_router.settings import (
    CostPreference,
    PathSettings,
    RetrySettings,
    RoutingMode,
    RoutingSettings,
    Settings,
    clear_settings_cache,
    configure_logging,
    get_settings,
)


class TestDefaults:
    """Default values of every settings group."""

    def test_retry_defaults(self):
        retry = RetrySettings()
        assert retry.prompt_timeout_ms == 120_000
        assert retry.deferred_poll_attempts == 8
        assert retry.deferred_poll_interval_ms == 250
        assert retry.provider_ban_ttl_ms == 300_000
        assert retry.session_create_attempts == 3
        assert retry.session_backoff_base_ms == 750
        assert retry.session_backoff_cap_ms == 8_000

    def test_routing_defaults(self):
        routing = RoutingSettings()
        assert routing.routing_mode == RoutingMode.STATIC
        assert routing.cost_preference is None
        assert routing.system_default_model is None

    def test_log_level_default(self):
        assert Settings().log_level == "INFO"


class TestEnvironment:
    """Environment variable loading."""

    def test_env_overrides_retry(self, monkeypatch):
        monkeypatch.setenv("FALLBACK_ROUTER_PROMPT_TIMEOUT_MS", "5000")
        assert RetrySettings().prompt_timeout_ms == 5000

    def test_env_sets_routing_mode(self, monkeypatch):
        monkeypatch.setenv("FALLBACK_ROUTER_ROUTING_MODE", "dynamic")
        monkeypatch.setenv("FALLBACK_ROUTER_COST_PREFERENCE", "economy")
        routing = RoutingSettings()
        assert routing.routing_mode == RoutingMode.DYNAMIC
        assert routing.cost_preference == CostPreference.ECONOMY

    def test_blank_system_default_is_none(self, monkeypatch):
        monkeypatch.setenv("FALLBACK_ROUTER_SYSTEM_DEFAULT_MODEL", "   ")
        assert RoutingSettings().system_default_model is None

    def test_ban_ttl_floor_enforced(self):
        with pytest.raises(ValidationError):
            RetrySettings(provider_ban_ttl_ms=10)

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")

    def test_log_level_normalized(self):
        assert Settings(log_level=" debug ").log_level == "DEBUG"


class TestPaths:
    """XDG-based path resolution."""

    def test_xdg_dirs(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
        paths = PathSettings()

        assert paths.config_dir == tmp_path / "cfg" / "fallback-router"
        assert paths.availability_cache_file == tmp_path / "cache" / "fallback-router" / "connected-providers.json"

    def test_schema_files(self, tmp_path):
        paths = PathSettings()
        assert paths.user_model_schema_file(tmp_path) == tmp_path / "model-schema.jsonc"
        assert paths.project_model_schema_file(Path("/proj")) == Path("/proj/.fallback-router/model-schema.jsonc")


class TestCachedAccess:
    """Singleton accessor behaviour."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache_reloads(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("FALLBACK_ROUTER_LOG_LEVEL", "WARNING")
        clear_settings_cache()
        second = get_settings()

        assert second is not first
        assert second.log_level == "WARNING"

    def test_configure_logging_sets_package_level(self):
        logger = logging.getLogger("fallback_router")
        previous = logger.level
        try:
            configure_logging(Settings(log_level="ERROR"))
            assert logger.level == logging.ERROR
        finally:
            logger.setLevel(previous)
