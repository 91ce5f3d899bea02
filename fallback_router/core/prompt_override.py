"""Inline model directives in task prompts ("use model X", "@agent must use X", ...)."""

import re
from typing import Optional, Pattern, Tuple

MODEL_PATTERN = r"[a-zA-Z][a-zA-Z0-9._-]*(?:/[a-zA-Z0-9._-]+)?"

# First pattern yielding a model-like candidate wins.
OVERRIDE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(rf"\buse\s+model\s+({MODEL_PATTERN})", re.IGNORECASE),
    re.compile(rf"\bwith\s+model\s+({MODEL_PATTERN})", re.IGNORECASE),
    re.compile(rf"@\w+\s+must\s+use\s+({MODEL_PATTERN})", re.IGNORECASE),
    re.compile(rf"\buse\s+({MODEL_PATTERN})", re.IGNORECASE),
)

FALSE_POSITIVE_WORDS = frozenset({
    "the", "a", "an", "this", "that", "it", "its", "my", "your", "our",
    "their", "new", "old", "dependency", "pattern", "injection", "best",
    "proper", "correct", "same", "different", "another", "existing",
    "following", "above", "below",
})


def looks_like_model_id(candidate: str) -> bool:
    if candidate.lower() in FALSE_POSITIVE_WORDS:
        return False
    if "/" in candidate:
        return True
    if any(ch.isdigit() for ch in candidate) and "-" in candidate:
        return True
    return "." in candidate


def parse_prompt_model_override(prompt: str) -> Optional[str]:
    for pattern in OVERRIDE_PATTERNS:
        match = pattern.search(prompt)
        if match and looks_like_model_id(match.group(1)):
            return match.group(1)
    return None
