"""Model availability: which providers are connected and which models they serve.

Two things live here:

- fuzzy_match_model(), which resolves a requested "provider/model" (or bare
  model) against the set of available "provider/model" strings while
  tolerating naming drift such as ``claude-opus-4-6`` vs ``claude-opus-4.6``.
- The availability snapshot. ``connected_providers is None`` means "never
  fetched" and unlocks first-run leniency in the resolution pipeline; an empty
  list means "fetched, nothing connected" and filters strictly.
"""

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set, Tuple

import httpx
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

_CLAUDE_VERSION_RE = re.compile(r"claude-(opus|sonnet|haiku)-(\d+)[.-](\d+)")


def parse_provider_model(full_model: str) -> Optional[Tuple[str, str]]:
    """Split "provider/model" at the first slash; None when either side is empty."""
    provider_id, sep, model_id = full_model.partition("/")
    if not provider_id or not sep or not model_id:
        return None
    return provider_id, model_id


def normalize_model_name(name: str) -> str:
    return _CLAUDE_VERSION_RE.sub(r"claude-\1-\2.\3", name.lower())


def fuzzy_match_model(
    target: str,
    available: Iterable[str],
    providers: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """Find the available "provider/model" best matching ``target``.

    Preference: exact match, then exact model-id match, then the shortest
    available name containing the target.
    """
    pool = sorted(set(available))
    if not pool:
        return None

    if providers:
        prefixes = tuple(f"{provider}/" for provider in providers)
        pool = [model for model in pool if model.startswith(prefixes)]
        if not pool:
            return None

    wanted = normalize_model_name(target)
    matches = [model for model in pool if wanted in normalize_model_name(model)]
    if not matches:
        return None

    for model in matches:
        if normalize_model_name(model) == wanted:
            return model

    for model in matches:
        parsed = parse_provider_model(model)
        if parsed and normalize_model_name(parsed[1]) == wanted:
            return model

    return min(matches, key=len)


# =============================================================================
# Availability client protocol + HTTP implementation
# =============================================================================


class AvailabilityClient(Protocol):
    """Source of connected providers and available models."""

    async def get_connected_providers(self) -> List[str]:
        ...

    async def fetch_available_models(self, connected_providers: Optional[List[str]] = None) -> Set[str]:
        ...


class HttpAvailabilityClient:
    """AvailabilityClient backed by the host's ``GET /provider`` listing.

    The listing has the shape ``{"all": [{"id", "models": {...}}], "connected": [...]}``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        from fallback_router.settings import get_settings

        host = get_settings().host
        self.base_url = (base_url or host.base_url).rstrip("/")
        self.timeout = timeout or host.request_timeout
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._http_client

    async def _get_provider_listing(self) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.get("/provider")
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, dict) else {}

    async def get_connected_providers(self) -> List[str]:
        listing = await self._get_provider_listing()
        connected = listing.get("connected") or []
        return [str(provider) for provider in connected]

    async def fetch_available_models(self, connected_providers: Optional[List[str]] = None) -> Set[str]:
        listing = await self._get_provider_listing()
        allowed = set(connected_providers) if connected_providers is not None else None

        models: Set[str] = set()
        for provider in listing.get("all") or []:
            provider_id = provider.get("id")
            if not provider_id or (allowed is not None and provider_id not in allowed):
                continue
            for model_id in provider.get("models") or {}:
                models.add(f"{provider_id}/{model_id}")
        return models

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


# =============================================================================
# Snapshot cache
# =============================================================================


class AvailabilitySnapshot(BaseModel):
    """On-disk form of the availability cache."""

    connected_providers: Optional[List[str]] = None
    available_models: List[str] = Field(default_factory=list)
    updated_at: Optional[float] = None


class AvailabilityCache:
    """In-memory availability snapshot, optionally persisted as JSON."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._connected: Optional[List[str]] = None
        self._models: Set[str] = set()
        self.updated_at: Optional[float] = None

    @property
    def connected_providers(self) -> Optional[List[str]]:
        return list(self._connected) if self._connected is not None else None

    @property
    def available_models(self) -> Set[str]:
        return set(self._models)

    @property
    def is_known(self) -> bool:
        return self._connected is not None

    def update(
        self,
        connected_providers: Optional[Iterable[str]],
        available_models: Optional[Iterable[str]] = None,
    ) -> None:
        self._connected = list(connected_providers) if connected_providers is not None else None
        self._models = set(available_models or ())
        self.updated_at = time.time()

    async def refresh(self, client: AvailabilityClient) -> None:
        """Replace the snapshot with live data from ``client``."""
        connected = await client.get_connected_providers()
        models = await client.fetch_available_models(connected)
        self.update(connected, models)
        logger.info(f"Availability refreshed: {len(connected)} providers, {len(models)} models")

    def load(self) -> bool:
        """Load the persisted snapshot. Returns False when nothing usable exists."""
        if self.path is None or not self.path.exists():
            return False
        try:
            snapshot = AvailabilitySnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable availability cache {self.path}: {e}")
            return False

        self._connected = snapshot.connected_providers
        self._models = set(snapshot.available_models)
        self.updated_at = snapshot.updated_at
        return True

    def save(self) -> None:
        if self.path is None:
            return
        snapshot = AvailabilitySnapshot(
            connected_providers=self._connected,
            available_models=sorted(self._models),
            updated_at=self.updated_at,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(snapshot.model_dump(), indent=2), encoding="utf-8")

    def clear(self) -> None:
        self._connected = None
        self._models = set()
        self.updated_at = None
