"""Heuristic classification rules - Single Source of Truth.

Keyword lists, score weights and thresholds used by the task classifier.
They are hand-tuned; adjust them here rather than in the scoring code.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Tuple


# =============================================================================
# KEYWORD SIGNALS
# =============================================================================

TRIVIAL_KEYWORDS: Tuple[str, ...] = (
    "fix typo", "rename", "quick fix", "simple fix", "add comma", "remove comma",
    "update import", "fix import", "typo", "spelling", "whitespace", "formatting",
)

COMPLEX_KEYWORDS: Tuple[str, ...] = (
    "refactor", "architecture", "redesign", "migrate", "system-wide",
    "across modules", "breaking change", "cross-cutting", "rewrite",
    "overhaul", "restructure",
)

DEEP_KEYWORDS: Tuple[str, ...] = (
    "autonomous", "strategic", "long-running", "comprehensive overhaul",
)

DEBUG_KEYWORDS: Tuple[str, ...] = (
    "debug", "race condition", "deadlock", "memory leak", "investigate",
    "root cause", "intermittent", "flaky",
)

# Order matters: detected domains are reported in this order.
DOMAIN_SIGNALS: Dict[str, Tuple[str, ...]] = {
    "coding": (
        "implement", "code", "function", "class", "api", "endpoint", "module",
        "component", "service", "handler", "controller", "middleware", "test",
        "bug", "fix", "refactor", "build", "compile", "deploy",
    ),
    "planning": (
        "plan", "strategy", "roadmap", "epic", "story", "milestone", "phase",
        "timeline", "estimate", "prioritize", "scope",
    ),
    "analysis": (
        "analyze", "analysis", "investigate", "evaluate", "assess", "review",
        "audit", "benchmark", "performance", "bottleneck", "profil",
    ),
    "visual": (
        "screenshot", "image", "ui", "layout", "design", "visual", "css",
        "style", "pixel", "responsive", "mockup", "wireframe",
    ),
    "writing": (
        "document", "documentation", "write doc", "readme", "changelog",
        "comment", "explain", "describe", "tutorial", "guide",
    ),
    "search": (
        "search", "find", "locate", "grep", "look for", "where is",
        "which file", "codebase",
    ),
}

COMPLEX_AGENT_TYPES: FrozenSet[str] = frozenset(
    {"kord", "planner", "analyst", "plan-analyzer", "architect"}
)
TRIVIAL_AGENT_TYPES: FrozenSet[str] = frozenset({"explore"})

CATEGORY_COMPLEXITY: Dict[str, str] = {
    "ultrabrain": "complex",
    "deep": "deep",
    "quick": "trivial",
    "unspecified-high": "complex",
    "unspecified-low": "moderate",
}


# =============================================================================
# WEIGHTS AND THRESHOLDS
# =============================================================================


@dataclass(frozen=True)
class ClassificationRules:
    """Everything the heuristic classifier scores with."""

    trivial_keywords: Tuple[str, ...] = TRIVIAL_KEYWORDS
    complex_keywords: Tuple[str, ...] = COMPLEX_KEYWORDS
    deep_keywords: Tuple[str, ...] = DEEP_KEYWORDS
    debug_keywords: Tuple[str, ...] = DEBUG_KEYWORDS
    domain_signals: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DOMAIN_SIGNALS))
    complex_agent_types: FrozenSet[str] = COMPLEX_AGENT_TYPES
    trivial_agent_types: FrozenSet[str] = TRIVIAL_AGENT_TYPES
    category_complexity: Mapping[str, str] = field(default_factory=lambda: dict(CATEGORY_COMPLEXITY))

    trivial_weight: int = -3
    complex_weight: int = 3
    deep_weight: int = 5
    debug_weight: int = 2

    short_prompt_words: int = 5
    short_prompt_weight: int = -1
    long_prompt_words: int = 50
    long_prompt_weight: int = 2
    very_long_prompt_words: int = 100
    very_long_prompt_weight: int = 3

    complex_agent_weight: int = 2
    trivial_agent_weight: int = -3

    category_weights: Mapping[str, int] = field(
        default_factory=lambda: {"trivial": -4, "moderate": 0, "complex": 4, "deep": 7}
    )

    # score <= threshold -> level, checked in order; anything above is "deep"
    complexity_thresholds: Tuple[Tuple[int, str], ...] = (
        (-1, "trivial"),
        (1, "moderate"),
        (4, "complex"),
    )


DEFAULT_RULES = ClassificationRules()
