"""Task Classifier - turn a free-text prompt into complexity and domains.

The heuristic classifier is a pure scoring function over the keyword and
weight tables in classification_rules. An optional LLM-backed classifier can
be plugged in through classify_task_with_llm(); whenever it fails or returns
something outside the complexity enum the heuristic answer is used instead.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Tuple

from .classification_rules import DEFAULT_RULES, ClassificationRules

logger = logging.getLogger(__name__)


class Complexity(str, Enum):
    """Complexity buckets, from cheapest to most demanding."""

    TRIVIAL = "trivial"
    MODERATE = "moderate"
    COMPLEX = "complex"
    DEEP = "deep"


VALID_COMPLEXITY = frozenset(level.value for level in Complexity)


@dataclass(frozen=True)
class TaskClassification:
    """Result of classifying a task prompt."""

    complexity: str
    domains: Tuple[str, ...] = ("general",)


class TaskClassifier(Protocol):
    """Anything that can classify a prompt (e.g. an LLM-backed client)."""

    async def classify(self, prompt: str, agent_name: Optional[str] = None) -> Any:
        ...


def _matches_any(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def detect_domains(prompt: str, rules: ClassificationRules = DEFAULT_RULES) -> Tuple[str, ...]:
    lower = prompt.lower()
    detected = tuple(
        domain for domain, keywords in rules.domain_signals.items() if _matches_any(lower, keywords)
    )
    return detected or ("general",)


def compute_complexity_score(
    prompt: str,
    agent_name: Optional[str] = None,
    category: Optional[str] = None,
    rules: ClassificationRules = DEFAULT_RULES,
) -> int:
    lower = prompt.lower()
    score = 0

    if _matches_any(lower, rules.trivial_keywords):
        score += rules.trivial_weight
    if _matches_any(lower, rules.complex_keywords):
        score += rules.complex_weight
    if _matches_any(lower, rules.deep_keywords):
        score += rules.deep_weight
    if _matches_any(lower, rules.debug_keywords):
        score += rules.debug_weight

    # The very-long branch sits behind the long one and never fires; the
    # tuned weights were calibrated against this ordering.
    word_count = len(prompt.split())
    if word_count <= rules.short_prompt_words:
        score += rules.short_prompt_weight
    elif word_count >= rules.long_prompt_words:
        score += rules.long_prompt_weight
    elif word_count >= rules.very_long_prompt_words:
        score += rules.very_long_prompt_weight

    if agent_name:
        if agent_name in rules.complex_agent_types:
            score += rules.complex_agent_weight
        if agent_name in rules.trivial_agent_types:
            score += rules.trivial_agent_weight

    if category:
        level = rules.category_complexity.get(category)
        if level:
            score += rules.category_weights.get(level, 0)

    return score


def score_to_complexity(score: int, rules: ClassificationRules = DEFAULT_RULES) -> str:
    for threshold, level in rules.complexity_thresholds:
        if score <= threshold:
            return level
    return Complexity.DEEP.value


def classify_task(
    prompt: str,
    agent_name: Optional[str] = None,
    category: Optional[str] = None,
    rules: ClassificationRules = DEFAULT_RULES,
) -> TaskClassification:
    """Classify a task prompt. Same inputs always give the same result."""
    score = compute_complexity_score(prompt, agent_name, category, rules)
    return TaskClassification(
        complexity=score_to_complexity(score, rules),
        domains=detect_domains(prompt, rules),
    )


class HeuristicClassifier:
    """TaskClassifier backed by the keyword heuristic."""

    def __init__(self, rules: ClassificationRules = DEFAULT_RULES, category: Optional[str] = None):
        self.rules = rules
        self.category = category

    async def classify(self, prompt: str, agent_name: Optional[str] = None) -> TaskClassification:
        return classify_task(prompt, agent_name, self.category, self.rules)


def _coerce_classification(result: Any) -> Optional[TaskClassification]:
    """Accept TaskClassification-like values from a plugged-in classifier."""
    if isinstance(result, TaskClassification):
        complexity, domains = result.complexity, result.domains
    elif isinstance(result, dict):
        complexity, domains = result.get("complexity"), result.get("domains")
    else:
        complexity = getattr(result, "complexity", None)
        domains = getattr(result, "domains", None)

    if isinstance(complexity, Complexity):
        complexity = complexity.value
    if complexity not in VALID_COMPLEXITY:
        return None

    if isinstance(domains, str) or not domains:
        domains = ("general",)
    return TaskClassification(complexity=complexity, domains=tuple(str(d) for d in domains))


async def classify_task_with_llm(
    prompt: str,
    agent_name: Optional[str] = None,
    client: Optional[TaskClassifier] = None,
    category: Optional[str] = None,
) -> TaskClassification:
    """Classify with a pluggable client, falling back to the heuristic."""
    if client is None:
        return classify_task(prompt, agent_name, category)

    try:
        result = await client.classify(prompt, agent_name)
    except Exception as e:
        logger.warning(f"LLM classifier failed, using heuristic: {e}")
        return classify_task(prompt, agent_name, category)

    classification = _coerce_classification(result)
    if classification is None:
        logger.warning(f"LLM classifier returned an invalid classification: {result!r}")
        return classify_task(prompt, agent_name, category)
    return classification
