"""Fallback Candidate Builder - expand a fallback chain into concrete (provider, model) pairs.

Walks the chain in order and each entry's providers in order, skipping
providers that are disconnected or banned and models the availability
snapshot does not list. Diagnostics are always returned so callers can
explain an empty result.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from .model_availability import fuzzy_match_model, parse_provider_model
from .model_requirements import FallbackEntry
from .provider_health import ProviderHealthTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackCandidate:
    provider_id: str
    model_id: str
    variant: Optional[str] = None

    @property
    def full_model(self) -> str:
        return f"{self.provider_id}/{self.model_id}"


@dataclass
class FallbackCandidateDiagnostics:
    connected_providers_known: bool
    connected_providers: List[str] = field(default_factory=list)
    available_model_count: int = 0
    skipped_disconnected: List[str] = field(default_factory=list)
    skipped_unavailable: List[str] = field(default_factory=list)
    skipped_unhealthy: List[str] = field(default_factory=list)


@dataclass
class BuildFallbackCandidatesResult:
    candidates: List[FallbackCandidate]
    diagnostics: FallbackCandidateDiagnostics


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _resolve_model_id(
    provider_id: str,
    model: str,
    available: Set[str],
) -> Optional[str]:
    """Exact model id ``provider_id`` serves for ``model``, or None."""
    match = fuzzy_match_model(f"{provider_id}/{model}", available, [provider_id])
    if match is None:
        match = fuzzy_match_model(model, available, [provider_id])
    if match is None:
        return None
    parsed = parse_provider_model(match)
    if parsed is None or parsed[0] != provider_id:
        return None
    return parsed[1]


def build_fallback_candidates(
    fallback_chain: Sequence[FallbackEntry],
    *,
    health: ProviderHealthTracker,
    connected_providers: Optional[Iterable[str]] = None,
    available_models: Optional[Iterable[str]] = None,
    exclude_models: Optional[Iterable[str]] = None,
    allow_model_list_miss: bool = False,
) -> BuildFallbackCandidatesResult:
    """Build ranked fallback candidates.

    Args:
        fallback_chain: Ordered chain to expand.
        health: Tracker consulted for provider bans.
        connected_providers: Connected provider ids, or None when unknown
            (unknown means no provider is skipped as disconnected).
        available_models: "provider/model" strings; empty or None disables
            the availability check.
        exclude_models: "provider/model" keys already tried.
        allow_model_list_miss: Keep a pair the availability snapshot misses.
    """
    connected = list(connected_providers) if connected_providers is not None else None
    connected_set = set(connected) if connected is not None else None
    available = set(available_models or ())
    exclude = set(exclude_models or ())

    candidates: List[FallbackCandidate] = []
    seen: Set[str] = set()
    skipped_disconnected: List[str] = []
    skipped_unavailable: List[str] = []
    skipped_unhealthy: List[str] = []

    for entry in fallback_chain:
        for provider_id in entry.providers:
            label = f"{provider_id}/{entry.model}"

            if connected_set is not None and provider_id not in connected_set:
                skipped_disconnected.append(label)
                continue

            if not health.is_provider_healthy(provider_id):
                skipped_unhealthy.append(label)
                continue

            model_id = entry.model
            if available:
                resolved = _resolve_model_id(provider_id, entry.model, available)
                if resolved is not None:
                    model_id = resolved
                elif not allow_model_list_miss:
                    skipped_unavailable.append(label)
                    continue

            key = f"{provider_id}/{model_id}"
            if key in exclude or key in seen:
                continue

            seen.add(key)
            candidates.append(FallbackCandidate(provider_id=provider_id, model_id=model_id, variant=entry.variant))

    diagnostics = FallbackCandidateDiagnostics(
        connected_providers_known=connected is not None,
        connected_providers=connected or [],
        available_model_count=len(available),
        skipped_disconnected=_unique(skipped_disconnected),
        skipped_unavailable=_unique(skipped_unavailable),
        skipped_unhealthy=_unique(skipped_unhealthy),
    )

    if not candidates:
        logger.debug(f"No fallback candidates from {len(fallback_chain)} chain entries: {diagnostics}")
    return BuildFallbackCandidatesResult(candidates=candidates, diagnostics=diagnostics)
