"""Model Resolution Pipeline - one model decision with a provenance tag.

Precedence, each stage short-circuiting on success:
1. UI-selected model                        (override)
2. Inline prompt directive                  (override)
3. User/config model                        (override)
4. Category default, availability-checked   (category-default)
5. Dynamic routing: classify + route        (dynamic-route)
6. Custom or static fallback chain          (provider-fallback)
7. System default model                     (system-default)
8. None - nothing to use

Connectivity and provider health are read from the RoutingContext. An
unknown connected-provider snapshot (None) is treated as first run and is
lenient; a known one filters strictly.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Set

from fallback_router.settings import RoutingMode

from .model_availability import fuzzy_match_model, parse_provider_model
from .model_requirements import FallbackEntry
from .model_router import route_model
from .prompt_override import parse_prompt_model_override
from .routing_context import RoutingContext
from .task_classifier import classify_task

logger = logging.getLogger(__name__)


class Provenance(str, Enum):
    """Which pipeline stage produced a resolution."""

    OVERRIDE = "override"
    CATEGORY_DEFAULT = "category-default"
    PROVIDER_FALLBACK = "provider-fallback"
    SYSTEM_DEFAULT = "system-default"
    DYNAMIC_ROUTE = "dynamic-route"


@dataclass
class Intent:
    ui_selected_model: Optional[str] = None
    user_model: Optional[str] = None
    category_default_model: Optional[str] = None


@dataclass
class Constraints:
    # None: use the context's availability snapshot
    available_models: Optional[Set[str]] = None


@dataclass
class Policy:
    fallback_chain: Optional[Sequence[FallbackEntry]] = None
    system_default_model: Optional[str] = None
    custom_fallback_slots: Optional[Sequence[FallbackEntry]] = None


@dataclass
class DynamicRouting:
    routing_mode: Optional[str] = None
    agent_name: Optional[str] = None
    prompt: Optional[str] = None
    category: Optional[str] = None
    cost_preference: Optional[str] = None


@dataclass
class ModelResolutionRequest:
    intent: Intent = field(default_factory=Intent)
    constraints: Constraints = field(default_factory=Constraints)
    policy: Policy = field(default_factory=Policy)
    dynamic: DynamicRouting = field(default_factory=DynamicRouting)


@dataclass(frozen=True)
class ModelResolutionResult:
    model: str
    provenance: Provenance
    variant: Optional[str] = None
    attempted: Optional[List[str]] = None
    reason: Optional[str] = None


def _normalize_model(model: Optional[str]) -> Optional[str]:
    if model is None:
        return None
    return model.strip() or None


def _resolve_category_default(
    model: str,
    available: Set[str],
    connected: Optional[List[str]],
) -> Optional[str]:
    parsed = parse_provider_model(model)
    if available:
        provider_hint = [parsed[0]] if parsed else None
        return fuzzy_match_model(model, available, provider_hint)

    if connected is None:
        logger.info(f"Category default {model} accepted as-is (no availability snapshot yet)")
        return model
    if parsed and parsed[0] in connected:
        return model
    return None


def _resolve_dynamic_route(
    dynamic: DynamicRouting,
    context: RoutingContext,
    available: Set[str],
    connected: Optional[List[str]],
) -> Optional[ModelResolutionResult]:
    schema = context.model_schema()
    classification = classify_task(dynamic.prompt, dynamic.agent_name, dynamic.category)
    cost_preference = dynamic.cost_preference or context.settings.routing.cost_preference
    route = route_model(dynamic.agent_name, classification, schema, available, cost_preference)
    if route is None:
        logger.info(f"Dynamic routing found nothing for agent '{dynamic.agent_name}'")
        return None

    catalog_entry = next((entry for entry in schema if entry.model == route.model), None)
    providers = catalog_entry.providers if catalog_entry else []
    connected_set = set(connected) if connected is not None else None

    resolved: Optional[str] = None
    for provider in providers:
        if connected_set is not None and provider not in connected_set:
            continue
        if not context.health.is_provider_healthy(provider):
            continue
        if available:
            match = fuzzy_match_model(f"{provider}/{route.model}", available, [provider])
            if match:
                resolved = match
                break
            continue
        resolved = f"{provider}/{route.model}"
        break

    if resolved is None and "/" in route.model:
        resolved = route.model

    if resolved is None:
        logger.info(
            f"Dynamic route {route.model} for '{dynamic.agent_name}' has no connected, healthy "
            f"provider among {providers}"
        )
        return None

    logger.info(
        f"Model resolved via dynamic routing: {resolved} "
        f"(agent={dynamic.agent_name}, complexity={classification.complexity})"
    )
    return ModelResolutionResult(
        model=resolved,
        provenance=Provenance.DYNAMIC_ROUTE,
        variant=route.variant,
    )


def _resolve_fallback_chain(
    chain: Sequence[FallbackEntry],
    context: RoutingContext,
    available: Set[str],
    connected: Optional[List[str]],
) -> Optional[ModelResolutionResult]:
    health = context.health

    if not available:
        if connected is None:
            logger.info("Fallback chain skipped: no connected-provider snapshot")
            return None
        for entry in chain:
            for provider in entry.providers:
                if health.is_provider_healthy(provider) and provider in connected:
                    logger.info(f"Model resolved via fallback chain (connected provider): {provider}/{entry.model}")
                    return ModelResolutionResult(
                        model=f"{provider}/{entry.model}",
                        provenance=Provenance.PROVIDER_FALLBACK,
                        variant=entry.variant,
                    )
        logger.info("No connected provider in fallback chain")
        return None

    for entry in chain:
        for provider in entry.providers:
            if not health.is_provider_healthy(provider):
                continue
            match = fuzzy_match_model(f"{provider}/{entry.model}", available, [provider])
            if match:
                logger.info(f"Model resolved via fallback chain: {match}")
                return ModelResolutionResult(
                    model=match,
                    provenance=Provenance.PROVIDER_FALLBACK,
                    variant=entry.variant,
                )

        cross_match = fuzzy_match_model(entry.model, available)
        if cross_match:
            parsed = parse_provider_model(cross_match)
            if parsed and health.is_provider_healthy(parsed[0]):
                logger.info(f"Model resolved via fallback chain (cross-provider match): {cross_match}")
                return ModelResolutionResult(
                    model=cross_match,
                    provenance=Provenance.PROVIDER_FALLBACK,
                    variant=entry.variant,
                )

    logger.info("No available model in fallback chain")
    return None


def resolve_model_pipeline(
    request: ModelResolutionRequest,
    context: RoutingContext,
) -> Optional[ModelResolutionResult]:
    """Resolve one model for a request, or None when nothing can serve it."""
    intent, policy, dynamic = request.intent, request.policy, request.dynamic
    attempted: List[str] = []

    ui_model = _normalize_model(intent.ui_selected_model)
    if ui_model:
        logger.info(f"Model resolved via UI selection: {ui_model}")
        return ModelResolutionResult(model=ui_model, provenance=Provenance.OVERRIDE)

    if dynamic.prompt:
        prompt_model = parse_prompt_model_override(dynamic.prompt)
        if prompt_model:
            logger.info(f"Model resolved via prompt override: {prompt_model}")
            return ModelResolutionResult(model=prompt_model, provenance=Provenance.OVERRIDE)

    user_model = _normalize_model(intent.user_model)
    if user_model:
        logger.info(f"Model resolved via config override: {user_model}")
        return ModelResolutionResult(model=user_model, provenance=Provenance.OVERRIDE)

    if request.constraints.available_models is not None:
        available = set(request.constraints.available_models)
    else:
        available = context.available_models()
    connected = context.connected_providers()

    category_default = _normalize_model(intent.category_default_model)
    if category_default:
        attempted.append(category_default)
        match = _resolve_category_default(category_default, available, connected)
        if match:
            logger.info(f"Model resolved via category default: {match}")
            return ModelResolutionResult(
                model=match,
                provenance=Provenance.CATEGORY_DEFAULT,
                attempted=list(attempted),
            )
        logger.info(f"Category default {category_default} unavailable, continuing")

    routing_mode = dynamic.routing_mode or context.settings.routing.routing_mode
    is_dynamic = getattr(routing_mode, "value", routing_mode) == RoutingMode.DYNAMIC.value
    if is_dynamic and dynamic.agent_name and dynamic.prompt:
        routed = _resolve_dynamic_route(dynamic, context, available, connected)
        if routed:
            return ModelResolutionResult(
                model=routed.model,
                provenance=routed.provenance,
                variant=routed.variant,
                attempted=list(attempted),
            )

    chain = policy.custom_fallback_slots if policy.custom_fallback_slots is not None else policy.fallback_chain
    if chain:
        resolved = _resolve_fallback_chain(chain, context, available, connected)
        if resolved:
            return ModelResolutionResult(
                model=resolved.model,
                provenance=resolved.provenance,
                variant=resolved.variant,
                attempted=list(attempted),
            )

    system_default = _normalize_model(policy.system_default_model) or context.settings.routing.system_default_model
    if system_default is None:
        logger.info("No model resolved and no system default configured")
        return None

    logger.info(f"Model resolved via system default: {system_default}")
    return ModelResolutionResult(
        model=system_default,
        provenance=Provenance.SYSTEM_DEFAULT,
        attempted=list(attempted),
    )
