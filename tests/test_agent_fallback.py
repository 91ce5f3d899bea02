"""Tests for agent/category fallback chain resolution."""

from fallback_router.core.agent_fallback import (
    AgentFallbackSlot,
    AgentOverrideConfig,
    convert_agent_fallback_slots,
    format_fallback_entry,
    resolve_agent_fallback_chain,
    resolve_category_fallback_chain,
)
from fallback_router.core.model_requirements import AGENT_MODEL_REQUIREMENTS, FallbackEntry


class TestConvertSlots:
    """Tests for user slot conversion."""

    def test_converts_provider_model_slots(self):
        result = convert_agent_fallback_slots([
            {"model": "anthropic/claude-opus-4-6", "variant": "max"},
            {"model": "openai/gpt-5.2"},
        ])

        assert result == [
            FallbackEntry(("anthropic",), "claude-opus-4-6", "max"),
            FallbackEntry(("openai",), "gpt-5.2"),
        ]

    def test_model_keeps_slashes_after_provider(self):
        result = convert_agent_fallback_slots([AgentFallbackSlot(model="openrouter/meta/llama-3")])
        assert result == [FallbackEntry(("openrouter",), "meta/llama-3")]

    def test_malformed_slots_dropped(self):
        result = convert_agent_fallback_slots([
            {"model": "no-provider"},
            {"model": "/missing-provider"},
            {"model": "openai/gpt-5.2"},
        ])
        assert result == [FallbackEntry(("openai",), "gpt-5.2")]

    def test_nothing_usable_is_none(self):
        assert convert_agent_fallback_slots([{"model": "bare"}]) is None
        assert convert_agent_fallback_slots([]) is None
        assert convert_agent_fallback_slots(None) is None

    def test_format_round_trip(self):
        slots = [{"model": "anthropic/claude-opus-4-6", "variant": "max"}]
        entry = convert_agent_fallback_slots(slots)[0]
        assert format_fallback_entry(entry) == ["anthropic/claude-opus-4-6"]

    def test_format_multi_provider_entry(self):
        entry = FallbackEntry(["anthropic", "opencode"], "claude-haiku-4-5")
        assert format_fallback_entry(entry) == ["anthropic/claude-haiku-4-5", "opencode/claude-haiku-4-5"]


class TestResolveAgentFallbackChain:
    """Tests for resolve_agent_fallback_chain."""

    def test_user_chain_wins(self):
        overrides = {
            "explore": {
                "fallback": [
                    {"model": "google/gemini-3-flash"},
                    {"model": "anthropic/claude-haiku-4-5"},
                ],
            },
        }

        result = resolve_agent_fallback_chain("explore", overrides)

        assert result == [
            FallbackEntry(("google",), "gemini-3-flash"),
            FallbackEntry(("anthropic",), "claude-haiku-4-5"),
        ]

    def test_user_config_model_instances_accepted(self):
        overrides = {"Dev": AgentOverrideConfig(fallback=[AgentFallbackSlot(model="opencode/gpt-5.2")])}
        assert resolve_agent_fallback_chain("dev", overrides) == [FallbackEntry(("opencode",), "gpt-5.2")]

    def test_override_without_fallback_uses_builtin(self):
        overrides = {"explore": {"model": "openai/gpt-5.2"}}
        result = resolve_agent_fallback_chain("explore", overrides)
        assert result == list(AGENT_MODEL_REQUIREMENTS["explore"].fallback_chain)

    def test_override_with_only_malformed_slots_uses_builtin(self):
        overrides = {"explore": {"fallback": [{"model": "bogus"}]}}
        result = resolve_agent_fallback_chain("explore", overrides)
        assert result == list(AGENT_MODEL_REQUIREMENTS["explore"].fallback_chain)

    def test_plan_alias_resolves_to_planner(self):
        result = resolve_agent_fallback_chain("plan")
        assert result == list(AGENT_MODEL_REQUIREMENTS["planner"].fallback_chain)

    def test_alias_applies_to_user_overrides(self):
        overrides = {"builder": {"fallback": [{"model": "openai/gpt-5.2"}]}}
        assert resolve_agent_fallback_chain("build", overrides) == [FallbackEntry(("openai",), "gpt-5.2")]

    def test_case_insensitive(self):
        assert resolve_agent_fallback_chain("KORD") == list(AGENT_MODEL_REQUIREMENTS["kord"].fallback_chain)

    def test_unknown_agent(self):
        assert resolve_agent_fallback_chain("nonexistent-agent-xyz") is None


class TestResolveCategoryFallbackChain:
    """Tests for category chains."""

    def test_known_category(self):
        chain = resolve_category_fallback_chain("deep")
        assert chain[0].model == "gpt-5.3-codex"

    def test_unknown_category(self):
        assert resolve_category_fallback_chain("nonexistent-category") is None
