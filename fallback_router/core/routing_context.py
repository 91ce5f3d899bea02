"""RoutingContext - the process-level state shared by routing and retry calls.

Owns the model catalog cache, the provider health tracker and the
availability snapshot. Create one at bootstrap and pass it to
resolve_model_pipeline() and PromptRetryEngine; tests build a fresh one or
call reset().
"""

import logging
from pathlib import Path
from typing import List, Optional, Set

from fallback_router.settings import Settings, get_settings

from .model_availability import AvailabilityCache, AvailabilityClient
from .model_catalog import ModelCatalog, ModelEntry
from .provider_health import ProviderHealthTracker

logger = logging.getLogger(__name__)


class RoutingContext:
    """Explicitly constructed holder of catalog, health and availability state."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalog: Optional[ModelCatalog] = None,
        health: Optional[ProviderHealthTracker] = None,
        availability: Optional[AvailabilityCache] = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog or ModelCatalog(paths=self.settings.paths)
        self.health = health or ProviderHealthTracker(default_ttl_ms=self.settings.retry.provider_ban_ttl_ms)
        self.availability = availability or AvailabilityCache()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        project_dir: Optional[Path] = None,
        load_availability: bool = True,
    ) -> "RoutingContext":
        """Context wired to the configured directories.

        Reads the user catalog overlay from the config dir, the project overlay
        from ``project_dir`` and the persisted availability snapshot.
        """
        settings = settings or get_settings()
        paths = settings.paths
        catalog = ModelCatalog(user_config_dir=paths.config_dir, project_dir=project_dir, paths=paths)
        availability = AvailabilityCache(path=paths.availability_cache_file)
        if load_availability:
            availability.load()
        return cls(settings=settings, catalog=catalog, availability=availability)

    def model_schema(self) -> List[ModelEntry]:
        return self.catalog.load()

    def connected_providers(self) -> Optional[List[str]]:
        return self.availability.connected_providers

    def available_models(self) -> Set[str]:
        return self.availability.available_models

    async def refresh_availability(self, client: AvailabilityClient, persist: bool = False) -> None:
        await self.availability.refresh(client)
        if persist:
            self.availability.save()

    def invalidate(self) -> None:
        """Drop the cached catalog so the next read reloads overlay files."""
        self.catalog.clear_cache()
        logger.debug("Routing context catalog invalidated")

    def reset(self) -> None:
        """Forget everything: catalog cache, provider bans and availability."""
        self.catalog.clear_cache()
        self.health.clear()
        self.availability.clear()
        logger.debug("Routing context reset")
