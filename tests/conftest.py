"""Pytest configuration and fixtures for fallback-router tests.

This file intentionally keeps the test environment lean (no extra deps).
To support `async def` tests without pytest-asyncio, we provide a minimal
hook that runs coroutine test functions using the stdlib's asyncio.
"""

import asyncio
import inspect

import pytest

from fallback_router.core.provider_health import ProviderHealthTracker
from fallback_router.core.routing_context import RoutingContext
from fallback_router.settings import RetrySettings, Settings, clear_settings_cache


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture(autouse=True)
def isolate_settings_between_tests(tmp_path_factory, monkeypatch):
    """Point XDG dirs at temp locations and drop cached settings.

    Keeps tests from reading the developer's real catalog overlays or
    availability snapshot.
    """
    xdg_root = tmp_path_factory.mktemp("xdg")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg_root / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(xdg_root / "cache"))
    for var in ("FALLBACK_ROUTER_ROUTING_MODE", "FALLBACK_ROUTER_SYSTEM_DEFAULT_MODEL", "FALLBACK_ROUTER_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_settings():
    """Settings with deferred polling shrunk so retry tests stay quick."""
    return Settings(
        retry=RetrySettings(
            deferred_poll_attempts=3,
            deferred_poll_interval_ms=0,
            prompt_timeout_ms=2_000,
        )
    )


@pytest.fixture
def context(fast_settings, clock):
    """Fresh routing context: default catalog, no bans, unknown availability."""
    return RoutingContext(
        settings=fast_settings,
        health=ProviderHealthTracker(clock=clock),
    )


def pytest_pyfunc_call(pyfuncitem: pytest.Item) -> bool | None:
    """Enable running `async def` tests without external plugins.

    If the test function is a coroutine function, execute it via asyncio.run.
    Return True to signal that the call was handled, allowing pytest to
    proceed without complaining about missing async plugins.
    """
    test_func = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_func):
        kwargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        asyncio.run(test_func(**kwargs))
        return True
    return None
