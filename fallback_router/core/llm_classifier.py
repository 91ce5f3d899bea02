"""LLM-backed task classifier built on pydantic-ai.

Plugs into classify_task_with_llm() as its client. Any failure here is
absorbed by that wrapper, which falls back to the heuristic classifier.
"""

from __future__ import annotations

import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_ai import Agent

from .task_classifier import TaskClassification

logger = logging.getLogger(__name__)

CLASSIFIER_SYSTEM_PROMPT = """\
You classify software-engineering task prompts for model routing.

complexity:
- trivial: typo fixes, renames, one-line edits
- moderate: ordinary feature work or bug fixes in one area
- complex: refactors, migrations, cross-module or architectural changes
- deep: long-running, autonomous or strategic work

domains: any of planning, coding, analysis, visual, writing, search, general.
Use ["general"] when nothing else fits.
"""


class LLMClassification(BaseModel):
    """Structured output requested from the classifier model."""

    complexity: Literal["trivial", "moderate", "complex", "deep"]
    domains: List[Literal["planning", "coding", "analysis", "visual", "writing", "search", "general"]] = Field(
        default_factory=lambda: ["general"]
    )


class PydanticAIClassifier:
    """TaskClassifier that asks a (cheap) model for a structured classification."""

    def __init__(self, model: Any = None, agent: Optional[Any] = None):
        if agent is None and model is None:
            raise ValueError("PydanticAIClassifier needs a model or a prebuilt agent")
        self._model = model
        self._agent = agent

    def _get_agent(self) -> Any:
        if self._agent is None:
            self._agent = Agent(
                self._model,
                output_type=LLMClassification,
                system_prompt=CLASSIFIER_SYSTEM_PROMPT,
            )
        return self._agent

    async def classify(self, prompt: str, agent_name: Optional[str] = None) -> TaskClassification:
        user_prompt = f"Agent: {agent_name}\n\nTask:\n{prompt}" if agent_name else f"Task:\n{prompt}"
        result = await self._get_agent().run(user_prompt)
        output = result.output
        logger.debug(f"LLM classification for agent={agent_name}: {output}")
        return TaskClassification(
            complexity=output.complexity,
            domains=tuple(output.domains) or ("general",),
        )
