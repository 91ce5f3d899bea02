"""Model Router - pick the best catalog entry for an agent and a classified task.

Scoring:
- +10 when the model's reasoning tier suits the task complexity
- +5 per domain shared between task and model
- economy subtracts 2*cost_tier and the reasoning rank, performance adds them

The first-listed highest scorer wins, so results follow catalog order on ties.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from .model_catalog import REASONING_RANK, ModelEntry, ReasoningTier, get_models_for_agent
from .task_classifier import TaskClassification

logger = logging.getLogger(__name__)

REASONING_TIERS_FOR_COMPLEXITY: Dict[str, FrozenSet[ReasoningTier]] = {
    "trivial": frozenset({ReasoningTier.NONE, ReasoningTier.LOW}),
    "moderate": frozenset({ReasoningTier.MEDIUM, ReasoningTier.HIGH}),
    "complex": frozenset({ReasoningTier.HIGH, ReasoningTier.ULTRA}),
    "deep": frozenset({ReasoningTier.ULTRA}),
}

TIER_MATCH_SCORE = 10
DOMAIN_OVERLAP_SCORE = 5
COST_TIER_FACTOR = 2


@dataclass(frozen=True)
class RouteResult:
    """The router's pick. ``model`` is a bare model id (no provider)."""

    model: str
    variant: Optional[str] = None
    provenance: str = "dynamic-route"


def is_model_available_for_route(entry: ModelEntry, available_models: Iterable[str]) -> bool:
    available = available_models if isinstance(available_models, (set, frozenset)) else set(available_models)
    return any(f"{provider}/{entry.model}" in available for provider in entry.providers)


def score_candidate_model(
    entry: ModelEntry,
    classification: TaskClassification,
    cost_preference: Optional[str] = None,
) -> int:
    score = 0

    preferred = REASONING_TIERS_FOR_COMPLEXITY.get(classification.complexity, frozenset())
    if entry.reasoning in preferred:
        score += TIER_MATCH_SCORE

    overlap = sum(1 for domain in classification.domains if domain in entry.domains)
    score += overlap * DOMAIN_OVERLAP_SCORE

    rank = REASONING_RANK.get(entry.reasoning, 2)
    preference = getattr(cost_preference, "value", cost_preference)
    if preference == "economy":
        score -= entry.cost_tier * COST_TIER_FACTOR
        score -= rank
    elif preference == "performance":
        score += entry.cost_tier * COST_TIER_FACTOR
        score += rank

    return score


def route_model(
    agent_name: str,
    classification: TaskClassification,
    schema: List[ModelEntry],
    available_models: Iterable[str],
    cost_preference: Optional[str] = None,
) -> Optional[RouteResult]:
    """Route an agent's task to a catalog model, or None when nothing fits."""
    agent_models = get_models_for_agent(agent_name, schema)
    if not agent_models:
        logger.debug(f"No catalog models enabled for agent '{agent_name}'")
        return None

    available_set = set(available_models)
    candidates = [entry for entry in agent_models if is_model_available_for_route(entry, available_set)]
    if not candidates:
        logger.debug(f"No available models for agent '{agent_name}' ({len(agent_models)} enabled)")
        return None

    best = max(candidates, key=lambda entry: score_candidate_model(entry, classification, cost_preference))
    logger.debug(
        f"Routed agent '{agent_name}' ({classification.complexity}, {list(classification.domains)}) to {best.model}"
    )
    return RouteResult(model=best.model, variant=best.variant)
