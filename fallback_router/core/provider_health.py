"""Provider Health Tracker - TTL bans for providers that hit quota or billing limits.

A provider is healthy unless it carries a ban whose ``until`` lies in the
future. Expired bans are evicted lazily on read; nothing runs in the
background. Routing and fallback code must treat a banned provider as absent
even when the availability snapshot still lists its models.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_BAN_TTL_MS = 5 * 60 * 1000
MIN_PROVIDER_BAN_TTL_MS = 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ProviderBanInfo:
    """Active ban on a provider. ``until`` is epoch milliseconds."""

    provider_id: str
    until: int
    reason: str


class ProviderHealthTracker:
    """In-memory circuit breaker keyed by provider id.

    Each RoutingContext owns one tracker; pass ``clock`` (returning epoch
    milliseconds) to drive expiry from tests.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        default_ttl_ms: int = DEFAULT_PROVIDER_BAN_TTL_MS,
    ):
        self._clock = clock or _now_ms
        self.default_ttl_ms = default_ttl_ms
        self._bans: Dict[str, ProviderBanInfo] = {}

    def mark_provider_unhealthy(
        self,
        provider_id: str,
        reason: str,
        ttl_ms: Optional[int] = None,
    ) -> None:
        if not provider_id or not provider_id.strip():
            return

        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        ttl = max(ttl, MIN_PROVIDER_BAN_TTL_MS)
        until = self._clock() + ttl
        self._bans[provider_id] = ProviderBanInfo(provider_id=provider_id, until=until, reason=reason)

        logger.info(f"Provider {provider_id} marked unhealthy ({reason}) for {ttl}ms, until={until}")

    def _active_ban(self, provider_id: str) -> Optional[ProviderBanInfo]:
        ban = self._bans.get(provider_id)
        if ban is None:
            return None
        if self._clock() >= ban.until:
            del self._bans[provider_id]
            logger.debug(f"Provider {provider_id} ban expired")
            return None
        return ban

    def is_provider_healthy(self, provider_id: str) -> bool:
        return self._active_ban(provider_id) is None

    def get_provider_ban_info(self, provider_id: str) -> Optional[ProviderBanInfo]:
        return self._active_ban(provider_id)

    def banned_providers(self) -> List[str]:
        """Providers currently banned (expired bans are evicted first)."""
        return [provider_id for provider_id in list(self._bans) if self._active_ban(provider_id)]

    def clear(self) -> None:
        self._bans.clear()
