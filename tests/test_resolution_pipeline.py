"""Tests for the model resolution pipeline."""

from fallback_router.core.model_requirements import FallbackEntry
from fallback_router.core.provider_health import ProviderHealthTracker
from fallback_router.core.resolution_pipeline import (
    Constraints,
    DynamicRouting,
    Intent,
    ModelResolutionRequest,
    Policy,
    Provenance,
    resolve_model_pipeline,
)
from fallback_router.core.routing_context import RoutingContext
from fallback_router.settings import RoutingSettings, Settings

AVAILABLE = {
    "anthropic/claude-opus-4-6",
    "openai/gpt-5.2",
    "anthropic/claude-sonnet-4-5",
    "google/gemini-3-flash",
    "anthropic/claude-haiku-4-5",
    "openai/gpt-5-nano",
}

FALLBACK_CHAIN = [
    FallbackEntry(["anthropic"], "claude-opus-4-6", "max"),
    FallbackEntry(["openai"], "gpt-5.2", "high"),
]

REFACTOR_PROMPT = "refactor the entire authentication system architecture across all modules"


def _request(**kwargs):
    kwargs.setdefault("constraints", Constraints(available_models=AVAILABLE))
    kwargs.setdefault("policy", Policy(fallback_chain=FALLBACK_CHAIN))
    return ModelResolutionRequest(**kwargs)


class TestPrecedence:
    """Stage ordering of the pipeline."""

    def test_static_mode_uses_fallback_chain(self, context):
        result = resolve_model_pipeline(_request(), context)

        assert result.provenance == Provenance.PROVIDER_FALLBACK
        assert result.model == "anthropic/claude-opus-4-6"
        assert result.variant == "max"

    def test_dynamic_mode_routes_before_chain(self, context):
        request = _request(dynamic=DynamicRouting(routing_mode="dynamic", agent_name="kord", prompt=REFACTOR_PROMPT))

        result = resolve_model_pipeline(request, context)

        assert result.provenance == Provenance.DYNAMIC_ROUTE
        assert result.model == "anthropic/claude-opus-4-6"
        assert result.variant == "max"

    def test_dynamic_mode_falls_back_when_router_has_nothing(self, context):
        request = _request(dynamic=DynamicRouting(routing_mode="dynamic", agent_name="nonexistent-agent-xyz",
                                                  prompt="do something"))
        assert resolve_model_pipeline(request, context).provenance == Provenance.PROVIDER_FALLBACK

    def test_dynamic_mode_from_settings(self, clock):
        context = RoutingContext(
            settings=Settings(routing=RoutingSettings(routing_mode="dynamic")),
            health=ProviderHealthTracker(clock=clock),
        )
        request = _request(dynamic=DynamicRouting(agent_name="kord", prompt=REFACTOR_PROMPT))

        assert resolve_model_pipeline(request, context).provenance == Provenance.DYNAMIC_ROUTE

    def test_static_mode_explicit(self, context):
        request = _request(dynamic=DynamicRouting(routing_mode="static", agent_name="kord", prompt="complex task"))
        assert resolve_model_pipeline(request, context).provenance == Provenance.PROVIDER_FALLBACK

    def test_ui_selection_wins(self, context):
        request = _request(
            intent=Intent(ui_selected_model="google/gemini-3-flash"),
            dynamic=DynamicRouting(routing_mode="dynamic", agent_name="kord", prompt="complex architecture task"),
        )

        result = resolve_model_pipeline(request, context)

        assert result.model == "google/gemini-3-flash"
        assert result.provenance == Provenance.OVERRIDE

    def test_blank_ui_selection_ignored(self, context):
        request = _request(intent=Intent(ui_selected_model="   "))
        assert resolve_model_pipeline(request, context).provenance == Provenance.PROVIDER_FALLBACK

    def test_prompt_directive_wins_over_user_model(self, context):
        request = _request(
            intent=Intent(user_model="openai/gpt-5.2"),
            dynamic=DynamicRouting(prompt="use model gpt-5.3-codex here"),
        )

        result = resolve_model_pipeline(request, context)

        assert result.model == "gpt-5.3-codex"
        assert result.provenance == Provenance.OVERRIDE

    def test_user_model_wins_over_dynamic_routing(self, context):
        request = _request(
            intent=Intent(user_model="openai/gpt-5.2"),
            dynamic=DynamicRouting(routing_mode="dynamic", agent_name="kord", prompt="complex task"),
        )

        result = resolve_model_pipeline(request, context)

        assert result.model == "openai/gpt-5.2"
        assert result.provenance == Provenance.OVERRIDE

    def test_custom_slots_replace_policy_chain(self, context):
        request = _request(policy=Policy(
            fallback_chain=FALLBACK_CHAIN,
            custom_fallback_slots=[FallbackEntry(["google"], "gemini-3-flash")],
        ))

        result = resolve_model_pipeline(request, context)

        assert result.model == "google/gemini-3-flash"
        assert result.provenance == Provenance.PROVIDER_FALLBACK

    def test_empty_custom_slots_replace_policy_chain(self, context):
        request = _request(policy=Policy(
            fallback_chain=FALLBACK_CHAIN,
            custom_fallback_slots=[],
            system_default_model="google/gemini-3-flash",
        ))

        result = resolve_model_pipeline(request, context)

        assert result.model == "google/gemini-3-flash"
        assert result.provenance == Provenance.SYSTEM_DEFAULT


class TestCategoryDefault:
    """Availability-checked category defaults."""

    def test_available_category_default(self, context):
        request = _request(intent=Intent(category_default_model="google/gemini-3-flash"))

        result = resolve_model_pipeline(request, context)

        assert result.model == "google/gemini-3-flash"
        assert result.provenance == Provenance.CATEGORY_DEFAULT
        assert result.attempted == ["google/gemini-3-flash"]

    def test_unavailable_category_default_continues(self, context):
        request = _request(intent=Intent(category_default_model="google/gemini-3-pro"))

        result = resolve_model_pipeline(request, context)

        assert result.provenance == Provenance.PROVIDER_FALLBACK
        assert result.attempted == ["google/gemini-3-pro"]

    def test_first_run_accepts_category_default(self, context):
        request = ModelResolutionRequest(intent=Intent(category_default_model="google/gemini-3-pro"))

        result = resolve_model_pipeline(request, context)

        assert result.model == "google/gemini-3-pro"
        assert result.provenance == Provenance.CATEGORY_DEFAULT

    def test_known_connectivity_checks_provider(self, context):
        context.availability.update(["openai"], [])
        request = ModelResolutionRequest(
            intent=Intent(category_default_model="google/gemini-3-pro"),
            policy=Policy(system_default_model="openai/gpt-5.2"),
        )

        result = resolve_model_pipeline(request, context)

        assert result.provenance == Provenance.SYSTEM_DEFAULT
        assert result.attempted == ["google/gemini-3-pro"]


class TestFallbackChain:
    """Chain resolution against health and connectivity."""

    def test_unhealthy_provider_skipped(self, context):
        context.health.mark_provider_unhealthy("anthropic", "quota")

        result = resolve_model_pipeline(_request(), context)

        assert result.model == "openai/gpt-5.2"
        assert result.variant == "high"

    def test_connected_providers_without_model_list(self, context):
        context.availability.update(["openai"], [])
        request = ModelResolutionRequest(policy=Policy(fallback_chain=FALLBACK_CHAIN))

        result = resolve_model_pipeline(request, context)

        assert result.model == "openai/gpt-5.2"
        assert result.provenance == Provenance.PROVIDER_FALLBACK

    def test_context_snapshot_used_without_constraints(self, context):
        context.availability.update(["anthropic", "openai"], AVAILABLE)
        request = ModelResolutionRequest(policy=Policy(fallback_chain=FALLBACK_CHAIN))

        assert resolve_model_pipeline(request, context).model == "anthropic/claude-opus-4-6"

    def test_cross_provider_match(self, context):
        request = _request(policy=Policy(fallback_chain=[FallbackEntry(["github-copilot"], "gpt-5.2")]))
        assert resolve_model_pipeline(request, context).model == "openai/gpt-5.2"

    def test_dynamic_route_skips_banned_provider(self, context):
        context.health.mark_provider_unhealthy("anthropic", "quota")
        request = _request(dynamic=DynamicRouting(routing_mode="dynamic", agent_name="kord", prompt=REFACTOR_PROMPT))

        result = resolve_model_pipeline(request, context)

        assert result.provenance == Provenance.PROVIDER_FALLBACK
        assert result.model == "openai/gpt-5.2"


class TestSystemDefault:
    """Last-resort defaults."""

    def test_no_snapshot_skips_chain(self, context):
        request = ModelResolutionRequest(policy=Policy(fallback_chain=FALLBACK_CHAIN, system_default_model="openai/gpt-5.2"))

        result = resolve_model_pipeline(request, context)

        assert result.model == "openai/gpt-5.2"
        assert result.provenance == Provenance.SYSTEM_DEFAULT

    def test_system_default_from_settings(self, clock):
        context = RoutingContext(
            settings=Settings(routing=RoutingSettings(system_default_model="anthropic/claude-sonnet-4-5")),
            health=ProviderHealthTracker(clock=clock),
        )

        result = resolve_model_pipeline(ModelResolutionRequest(), context)

        assert result.model == "anthropic/claude-sonnet-4-5"
        assert result.provenance == Provenance.SYSTEM_DEFAULT

    def test_nothing_resolves(self, context):
        assert resolve_model_pipeline(ModelResolutionRequest(), context) is None

    def test_nothing_available_in_chain(self, context):
        request = _request(constraints=Constraints(available_models={"mistral/large"}))
        assert resolve_model_pipeline(request, context) is None
