"""Tests for provider TTL bans."""

import logging

from fallback_router.core.provider_health import (
    DEFAULT_PROVIDER_BAN_TTL_MS,
    ProviderBanInfo,
    ProviderHealthTracker,
)


class TestProviderHealthTracker:
    """Tests for ban bookkeeping and expiry."""

    def test_unknown_provider_is_healthy(self, clock):
        assert ProviderHealthTracker(clock=clock).is_provider_healthy("openai")

    def test_ban_until_ttl_elapses(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        tracker.mark_provider_unhealthy("openai", "quota", ttl_ms=5000)

        assert not tracker.is_provider_healthy("openai")
        clock.advance(4999)
        assert not tracker.is_provider_healthy("openai")
        clock.advance(1)
        assert tracker.is_provider_healthy("openai")

    def test_ban_info(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        start = clock()
        tracker.mark_provider_unhealthy("anthropic", "quota")

        info = tracker.get_provider_ban_info("anthropic")

        assert info == ProviderBanInfo("anthropic", start + DEFAULT_PROVIDER_BAN_TTL_MS, "quota")

    def test_expired_ban_info_is_none(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        tracker.mark_provider_unhealthy("anthropic", "quota", ttl_ms=2000)
        clock.advance(2000)
        assert tracker.get_provider_ban_info("anthropic") is None

    def test_ttl_floor_of_one_second(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        tracker.mark_provider_unhealthy("openai", "quota", ttl_ms=10)

        clock.advance(999)
        assert not tracker.is_provider_healthy("openai")
        clock.advance(1)
        assert tracker.is_provider_healthy("openai")

    def test_ban_log_reports_applied_ttl(self, clock, caplog):
        tracker = ProviderHealthTracker(clock=clock)

        with caplog.at_level(logging.INFO, logger="fallback_router.core.provider_health"):
            tracker.mark_provider_unhealthy("openai", "quota", ttl_ms=10)

        assert "for 1000ms" in caplog.text
        assert "for 10ms" not in caplog.text

    def test_remark_replaces_ban(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        tracker.mark_provider_unhealthy("openai", "quota", ttl_ms=60_000)
        tracker.mark_provider_unhealthy("openai", "billing", ttl_ms=2000)

        assert tracker.get_provider_ban_info("openai").reason == "billing"
        clock.advance(2000)
        assert tracker.is_provider_healthy("openai")

    def test_blank_provider_ignored(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        tracker.mark_provider_unhealthy("", "quota")
        tracker.mark_provider_unhealthy("   ", "quota")
        assert tracker.banned_providers() == []

    def test_banned_providers_evicts_expired(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        tracker.mark_provider_unhealthy("openai", "quota", ttl_ms=1000)
        tracker.mark_provider_unhealthy("google", "quota", ttl_ms=10_000)

        clock.advance(1500)

        assert tracker.banned_providers() == ["google"]

    def test_clear(self, clock):
        tracker = ProviderHealthTracker(clock=clock)
        tracker.mark_provider_unhealthy("openai", "quota")
        tracker.clear()
        assert tracker.is_provider_healthy("openai")

    def test_trackers_are_independent(self, clock):
        first = ProviderHealthTracker(clock=clock)
        second = ProviderHealthTracker(clock=clock)
        first.mark_provider_unhealthy("openai", "quota")
        assert second.is_provider_healthy("openai")
