"""Hardcoded model requirements per agent and per category - Single Source of Truth.

Each requirement carries an ordered fallback chain. Within an entry the
providers are tried in listed order; across entries the chain order is the
retry priority. User overrides (agent_fallback) replace these chains whole.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class FallbackEntry:
    """One step of a fallback chain."""

    providers: Tuple[str, ...]
    model: str
    variant: Optional[str] = None

    def __post_init__(self):
        # Accept lists from callers; store an immutable tuple.
        object.__setattr__(self, "providers", tuple(self.providers))


@dataclass(frozen=True)
class ModelRequirement:
    """Fallback chain plus any hard constraints on what may serve it."""

    fallback_chain: Tuple[FallbackEntry, ...]
    requires_model: Optional[str] = None
    requires_any_model: bool = False
    requires_provider: Optional[Tuple[str, ...]] = None


def _e(providers: List[str], model: str, variant: Optional[str] = None) -> FallbackEntry:
    return FallbackEntry(providers=tuple(providers), model=model, variant=variant)


_CLAUDE_PROVIDERS = ["anthropic", "github-copilot", "opencode"]
_OPENAI_PROVIDERS = ["openai", "github-copilot", "opencode"]
_GOOGLE_PROVIDERS = ["google", "github-copilot", "opencode"]


# =============================================================================
# AGENTS
# =============================================================================

AGENT_MODEL_REQUIREMENTS: Dict[str, ModelRequirement] = {
    "kord": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
            _e(["kimi-for-coding"], "k2p5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "high"),
            _e(["zai-coding-plan"], "glm-4.7"),
            _e(["opencode"], "glm-4.7-free"),
        ),
        requires_any_model=True,
    ),
    "dev": ModelRequirement(
        fallback_chain=(
            _e(_OPENAI_PROVIDERS, "gpt-5.3-codex", "medium"),
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
        ),
        requires_provider=("openai", "github-copilot", "opencode"),
    ),
    "architect": ModelRequirement(
        fallback_chain=(
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "high"),
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
            _e(_GOOGLE_PROVIDERS, "gemini-3-pro", "high"),
        ),
    ),
    "librarian": ModelRequirement(
        fallback_chain=(
            _e(["zai-coding-plan"], "glm-4.7"),
            _e(["opencode"], "glm-4.7-free"),
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
        ),
    ),
    "explore": ModelRequirement(
        fallback_chain=(
            _e(["github-copilot"], "grok-code-fast-1"),
            _e(["anthropic", "opencode"], "claude-haiku-4-5"),
            _e(["opencode"], "gpt-5-nano"),
        ),
    ),
    "vision": ModelRequirement(
        fallback_chain=(
            _e(["google", "github-copilot", "opencode"], "gemini-3-flash"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2"),
            _e(_CLAUDE_PROVIDERS, "claude-haiku-4-5"),
        ),
    ),
    "planner": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
            _e(["kimi-for-coding"], "k2p5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "high"),
        ),
    ),
    "analyst": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
            _e(["kimi-for-coding"], "k2p5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "high"),
        ),
    ),
    "plan-analyzer": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "high"),
        ),
    ),
    "plan-reviewer": ModelRequirement(
        fallback_chain=(
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "medium"),
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
        ),
    ),
    "qa": ModelRequirement(
        fallback_chain=(
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "medium"),
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
        ),
    ),
    "builder": ModelRequirement(
        fallback_chain=(
            _e(["kimi-for-coding"], "k2p5"),
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
            _e(["zai-coding-plan"], "glm-4.7"),
        ),
    ),
    "sm": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2"),
        ),
    ),
    "pm": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2"),
        ),
    ),
    "po": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2"),
        ),
    ),
    "devops": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.3-codex", "medium"),
        ),
    ),
    "data-engineer": ModelRequirement(
        fallback_chain=(
            _e(_OPENAI_PROVIDERS, "gpt-5.3-codex", "medium"),
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
        ),
    ),
    "ux-design-expert": ModelRequirement(
        fallback_chain=(
            _e(_GOOGLE_PROVIDERS, "gemini-3-pro", "high"),
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
        ),
    ),
    "squad-creator": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
            _e(["kimi-for-coding"], "k2p5"),
        ),
    ),
}


# =============================================================================
# CATEGORIES
# =============================================================================

CATEGORY_MODEL_REQUIREMENTS: Dict[str, ModelRequirement] = {
    "visual-engineering": ModelRequirement(
        fallback_chain=(
            _e(_GOOGLE_PROVIDERS, "gemini-3-pro"),
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
        ),
    ),
    "ultrabrain": ModelRequirement(
        fallback_chain=(
            _e(_OPENAI_PROVIDERS, "gpt-5.3-codex", "xhigh"),
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
        ),
    ),
    "deep": ModelRequirement(
        fallback_chain=(
            _e(_OPENAI_PROVIDERS, "gpt-5.3-codex", "medium"),
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
        ),
        requires_model="gpt-5.3-codex",
    ),
    "artistry": ModelRequirement(
        fallback_chain=(
            _e(_GOOGLE_PROVIDERS, "gemini-3-pro", "high"),
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
        ),
        requires_model="gemini-3-pro",
    ),
    "quick": ModelRequirement(
        fallback_chain=(
            _e(["anthropic", "github-copilot", "opencode"], "claude-haiku-4-5"),
            _e(_GOOGLE_PROVIDERS, "gemini-3-flash"),
            _e(["opencode"], "gpt-5-nano"),
        ),
    ),
    "unspecified-low": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "medium"),
        ),
    ),
    "unspecified-high": ModelRequirement(
        fallback_chain=(
            _e(_CLAUDE_PROVIDERS, "claude-opus-4-6", "max"),
            _e(_OPENAI_PROVIDERS, "gpt-5.2", "high"),
        ),
    ),
    "writing": ModelRequirement(
        fallback_chain=(
            _e(_GOOGLE_PROVIDERS, "gemini-3-flash"),
            _e(_CLAUDE_PROVIDERS, "claude-sonnet-4-5"),
        ),
    ),
}


def get_agent_requirement(agent_name: str) -> Optional[ModelRequirement]:
    return AGENT_MODEL_REQUIREMENTS.get(agent_name)


def get_category_requirement(category: str) -> Optional[ModelRequirement]:
    return CATEGORY_MODEL_REQUIREMENTS.get(category)
