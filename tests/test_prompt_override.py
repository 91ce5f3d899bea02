"""Tests for inline model directives in prompts."""

import pytest

from fallback_router.core.prompt_override import looks_like_model_id, parse_prompt_model_override


class TestParsePromptModelOverride:
    """Tests for parse_prompt_model_override."""

    @pytest.mark.parametrize(
        "prompt,expected",
        [
            ("use model claude-opus-4-6 for this task", "claude-opus-4-6"),
            ("use model anthropic/claude-opus-4-6 to analyze", "anthropic/claude-opus-4-6"),
            ("use model gpt-5.3-codex here", "gpt-5.3-codex"),
            ("use claude-opus-4-6 for this", "claude-opus-4-6"),
            ("use openai/gpt-5.2 to debug", "openai/gpt-5.2"),
            ("analyze this with model gemini-3-pro", "gemini-3-pro"),
            ("do it with model google/gemini-3-flash please", "google/gemini-3-flash"),
            ("@architect must use claude-opus-4-6, analyze the auth flow", "claude-opus-4-6"),
            ("@dev must use openai/gpt-5.3-codex for this refactor", "openai/gpt-5.3-codex"),
        ],
    )
    def test_directives(self, prompt, expected):
        assert parse_prompt_model_override(prompt) == expected

    @pytest.mark.parametrize(
        "prompt",
        [
            "refactor the authentication module",
            "",
            "we should use dependency injection here",
            "use the new pattern for this refactor",
        ],
    )
    def test_no_directive(self, prompt):
        assert parse_prompt_model_override(prompt) is None

    def test_uppercase(self):
        assert parse_prompt_model_override("USE MODEL claude-opus-4-6 for this") == "claude-opus-4-6"

    def test_mixed_case(self):
        assert parse_prompt_model_override("do it With Model gpt-5.2") == "gpt-5.2"

    def test_first_match_wins(self):
        prompt = "use model claude-opus-4-6, or maybe use model gpt-5.2"
        assert parse_prompt_model_override(prompt) == "claude-opus-4-6"

    def test_end_of_string(self):
        assert parse_prompt_model_override("use model claude-opus-4-6") == "claude-opus-4-6"

    def test_surrounding_punctuation(self):
        assert parse_prompt_model_override("(use model claude-opus-4-6)") == "claude-opus-4-6"


class TestLooksLikeModelId:
    """Tests for the model-id shape check."""

    @pytest.mark.parametrize("candidate", ["openai/gpt", "gpt-5", "gemini.pro"])
    def test_model_like(self, candidate):
        assert looks_like_model_id(candidate)

    @pytest.mark.parametrize("candidate", ["the", "Dependency", "codex", "multi-agent"])
    def test_not_model_like(self, candidate):
        assert not looks_like_model_id(candidate)
