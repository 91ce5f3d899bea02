"""Model resolution, fallback routing and prompt retries.

This module provides:
- ModelCatalog: Layered model catalog (defaults + user + project overlays)
- classify_task / classify_task_with_llm: Task complexity and domain classification
- route_model: Scored catalog selection for an agent and task
- ProviderHealthTracker: TTL bans for providers hitting quota/billing limits
- build_fallback_candidates: Fallback chain expansion honoring connectivity and health
- resolve_agent_fallback_chain: User override > built-in fallback chains
- parse_prompt_model_override: Inline "use model X" directives
- RoutingContext: Shared catalog, health and availability state
- resolve_model_pipeline: One model decision with a provenance tag
- PromptRetryEngine: Timeouts, deferred errors and fallback walks
"""

from .errors import (
    RoutingError,
    HostPromptError,
    ModelNotFoundError,
    QuotaError,
    PromptTimeoutError,
    FallbackExhaustedError,
    SessionCreateError,
)
from .model_catalog import (
    ModelCatalog,
    ModelEntry,
    ModelDomain,
    ReasoningTier,
    DEFAULT_MODEL_SCHEMA,
    load_model_schema,
    get_models_for_agent,
    get_models_by_domain,
    get_models_by_reasoning,
)
from .classification_rules import ClassificationRules, DEFAULT_RULES
from .task_classifier import (
    Complexity,
    TaskClassification,
    TaskClassifier,
    HeuristicClassifier,
    classify_task,
    classify_task_with_llm,
)
from .llm_classifier import PydanticAIClassifier
from .model_router import RouteResult, route_model
from .provider_health import (
    DEFAULT_PROVIDER_BAN_TTL_MS,
    ProviderBanInfo,
    ProviderHealthTracker,
)
from .model_availability import (
    AvailabilityCache,
    AvailabilityClient,
    HttpAvailabilityClient,
    fuzzy_match_model,
    parse_provider_model,
)
from .model_requirements import (
    AGENT_MODEL_REQUIREMENTS,
    CATEGORY_MODEL_REQUIREMENTS,
    FallbackEntry,
    ModelRequirement,
)
from .fallback_candidates import (
    BuildFallbackCandidatesResult,
    FallbackCandidate,
    FallbackCandidateDiagnostics,
    build_fallback_candidates,
)
from .agent_fallback import (
    AGENT_ALIASES,
    AgentFallbackSlot,
    AgentOverrideConfig,
    convert_agent_fallback_slots,
    format_fallback_entry,
    resolve_agent_fallback_chain,
    resolve_category_fallback_chain,
)
from .prompt_override import parse_prompt_model_override
from .routing_context import RoutingContext
from .resolution_pipeline import (
    Constraints,
    DynamicRouting,
    Intent,
    ModelResolutionRequest,
    ModelResolutionResult,
    Policy,
    Provenance,
    resolve_model_pipeline,
)
from .failure_classifier import FailureKind, ModelSuggestionInfo, classify_failure, parse_model_suggestion
from .session_client import HttpSessionClient, SessionClient
from .deferred_poller import DeferredErrorPoller
from .prompt_retry import (
    PromptOutcome,
    PromptRetryEngine,
    PromptStatus,
    create_session_with_retry,
    prompt_with_retry,
)

__all__ = [
    # Errors
    "RoutingError",
    "HostPromptError",
    "ModelNotFoundError",
    "QuotaError",
    "PromptTimeoutError",
    "FallbackExhaustedError",
    "SessionCreateError",
    # Catalog
    "ModelCatalog",
    "ModelEntry",
    "ModelDomain",
    "ReasoningTier",
    "DEFAULT_MODEL_SCHEMA",
    "load_model_schema",
    "get_models_for_agent",
    "get_models_by_domain",
    "get_models_by_reasoning",
    # Classification
    "ClassificationRules",
    "DEFAULT_RULES",
    "Complexity",
    "TaskClassification",
    "TaskClassifier",
    "HeuristicClassifier",
    "classify_task",
    "classify_task_with_llm",
    "PydanticAIClassifier",
    # Routing
    "RouteResult",
    "route_model",
    "DEFAULT_PROVIDER_BAN_TTL_MS",
    "ProviderBanInfo",
    "ProviderHealthTracker",
    "AvailabilityCache",
    "AvailabilityClient",
    "HttpAvailabilityClient",
    "fuzzy_match_model",
    "parse_provider_model",
    "AGENT_MODEL_REQUIREMENTS",
    "CATEGORY_MODEL_REQUIREMENTS",
    "FallbackEntry",
    "ModelRequirement",
    "BuildFallbackCandidatesResult",
    "FallbackCandidate",
    "FallbackCandidateDiagnostics",
    "build_fallback_candidates",
    "AGENT_ALIASES",
    "AgentFallbackSlot",
    "AgentOverrideConfig",
    "convert_agent_fallback_slots",
    "format_fallback_entry",
    "resolve_agent_fallback_chain",
    "resolve_category_fallback_chain",
    "parse_prompt_model_override",
    "RoutingContext",
    # Pipeline
    "Constraints",
    "DynamicRouting",
    "Intent",
    "ModelResolutionRequest",
    "ModelResolutionResult",
    "Policy",
    "Provenance",
    "resolve_model_pipeline",
    # Retry
    "FailureKind",
    "ModelSuggestionInfo",
    "classify_failure",
    "parse_model_suggestion",
    "HttpSessionClient",
    "SessionClient",
    "DeferredErrorPoller",
    "PromptOutcome",
    "PromptRetryEngine",
    "PromptStatus",
    "create_session_with_retry",
    "prompt_with_retry",
]
