"""Model Catalog - known models, their reasoning tier, domains and cost.

The catalog is layered:
1. Built-in DEFAULT_MODEL_SCHEMA
2. User-level ``model-schema.jsonc`` (config dir)
3. Project-level ``<project>/.fallback-router/model-schema.jsonc``

Layers merge by ``model`` key and a later layer replaces the whole entry.
Invalid entries in an overlay are skipped; a malformed overlay file
contributes nothing. The merged result is cached on the ModelCatalog
instance until clear_cache() is called.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import json_repair
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from fallback_router.settings import PathSettings

logger = logging.getLogger(__name__)


class ReasoningTier(str, Enum):
    """Ordinal reasoning strength of a model."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ULTRA = "ultra"


REASONING_RANK: Dict[ReasoningTier, int] = {
    ReasoningTier.NONE: 0,
    ReasoningTier.LOW: 1,
    ReasoningTier.MEDIUM: 2,
    ReasoningTier.HIGH: 3,
    ReasoningTier.ULTRA: 4,
}


class ModelDomain(str, Enum):
    """Kinds of work a model is good at."""

    PLANNING = "planning"
    CODING = "coding"
    ANALYSIS = "analysis"
    VISUAL = "visual"
    WRITING = "writing"
    SEARCH = "search"
    GENERAL = "general"


class ModelEntry(BaseModel):
    """One catalog row."""

    model_config = ConfigDict(frozen=True)

    model: str
    providers: List[str]
    reasoning: ReasoningTier = ReasoningTier.NONE
    domains: List[ModelDomain]
    description: str
    enabled_agents: List[str] = Field(default_factory=list)
    cost_tier: int = Field(ge=1, le=5)
    variant: Optional[str] = None
    context_window: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_variant_without_reasoning(cls, data: Any) -> Any:
        # Models without reasoning have nothing for a variant to tune.
        if isinstance(data, dict) and data.get("variant") is not None:
            if data.get("reasoning", ReasoningTier.NONE) in (ReasoningTier.NONE, "none"):
                data = {k: v for k, v in data.items() if k != "variant"}
        return data


class ModelSchemaFile(BaseModel):
    """Top-level shape of a model schema overlay file."""

    models: List[ModelEntry]


def _entry(**kwargs: Any) -> ModelEntry:
    return ModelEntry(**kwargs)


DEFAULT_MODEL_SCHEMA: List[ModelEntry] = [
    _entry(
        model="claude-opus-4-6",
        providers=["anthropic", "github-copilot", "opencode"],
        reasoning="ultra",
        domains=["planning", "analysis", "coding"],
        description="Deep reasoning, strategic planning, complex architecture",
        enabled_agents=["kord", "planner", "analyst", "plan-analyzer", "unspecified-high"],
        cost_tier=5,
        variant="max",
    ),
    _entry(
        model="claude-sonnet-4-5",
        providers=["anthropic", "github-copilot", "opencode"],
        reasoning="high",
        domains=["coding", "general"],
        description="Balanced reasoning and speed",
        enabled_agents=["builder", "librarian", "unspecified-low"],
        cost_tier=3,
    ),
    _entry(
        model="claude-haiku-4-5",
        providers=["anthropic", "github-copilot", "opencode"],
        reasoning="low",
        domains=["search", "general"],
        description="Fast, economical, quick tasks",
        enabled_agents=["explore", "quick"],
        cost_tier=1,
    ),
    _entry(
        model="gpt-5.3-codex",
        providers=["openai", "github-copilot", "opencode"],
        reasoning="ultra",
        domains=["coding", "analysis"],
        description="Autonomous deep coding, extended problem solving",
        enabled_agents=["dev", "ultrabrain", "deep"],
        cost_tier=5,
        variant="medium",
    ),
    _entry(
        model="gpt-5.2",
        providers=["openai", "github-copilot", "opencode"],
        reasoning="high",
        domains=["coding", "analysis", "planning"],
        description="Strong general reasoning",
        enabled_agents=["architect", "qa", "plan-reviewer"],
        cost_tier=4,
        variant="high",
    ),
    _entry(
        model="gpt-5-nano",
        providers=["openai", "opencode"],
        reasoning="none",
        domains=["search"],
        description="Ultra-fast lookups, zero reasoning overhead",
        enabled_agents=["explore"],
        cost_tier=1,
    ),
    _entry(
        model="gemini-3-pro",
        providers=["google", "github-copilot", "opencode"],
        reasoning="high",
        domains=["visual", "coding", "analysis"],
        description="Multimodal, creative, strong visual understanding",
        enabled_agents=["visual-engineering", "artistry"],
        cost_tier=4,
        variant="high",
    ),
    _entry(
        model="gemini-3-flash",
        providers=["google", "github-copilot", "opencode"],
        reasoning="medium",
        domains=["writing", "visual", "search"],
        description="Fast multimodal, good for writing and quick visual",
        enabled_agents=["vision", "writing", "quick"],
        cost_tier=2,
    ),
    _entry(
        model="glm-4.7",
        providers=["zai-coding-plan"],
        reasoning="medium",
        domains=["search", "general"],
        description="Budget alternative, documentation search",
        enabled_agents=["librarian", "builder"],
        cost_tier=2,
    ),
    _entry(
        model="k2p5",
        providers=["kimi-for-coding"],
        reasoning="high",
        domains=["coding", "planning"],
        description="Kimi strong reasoning, cost-effective alternative",
        enabled_agents=["kord", "planner", "analyst", "builder"],
        cost_tier=3,
    ),
]


def get_models_for_agent(agent_name: str, schema: List[ModelEntry]) -> List[ModelEntry]:
    return [entry for entry in schema if agent_name in entry.enabled_agents]


def get_models_by_domain(domain: str, schema: List[ModelEntry]) -> List[ModelEntry]:
    return [entry for entry in schema if domain in entry.domains]


def get_models_by_reasoning(tier: str, schema: List[ModelEntry]) -> List[ModelEntry]:
    return [entry for entry in schema if entry.reasoning == tier]


def read_schema_file(path: Path) -> List[ModelEntry]:
    """Read the valid entries of one overlay file.

    Missing or malformed files yield an empty list; individual invalid
    entries are skipped.
    """
    if not path.exists():
        return []

    try:
        # Lenient: comments, trailing commas and a BOM are tolerated.
        parsed = json_repair.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        logger.warning(f"Ignoring unreadable model schema file {path}: {e}")
        return []

    if not isinstance(parsed, dict) or not isinstance(parsed.get("models"), list):
        logger.warning(f"Ignoring model schema file {path}: missing 'models' array")
        return []

    valid: List[ModelEntry] = []
    for index, item in enumerate(parsed["models"]):
        try:
            valid.append(ModelEntry.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping invalid model entry #{index} in {path}: {e.error_count()} error(s)")
    return valid


def merge_schemas(base: List[ModelEntry], overlay: List[ModelEntry]) -> List[ModelEntry]:
    """Merge by model id. Overlay entries replace base entries whole."""
    merged: Dict[str, ModelEntry] = {entry.model: entry for entry in base}
    for entry in overlay:
        merged[entry.model] = entry
    return list(merged.values())


class ModelCatalog:
    """Lazily loaded, cached, layered model catalog."""

    def __init__(
        self,
        user_config_dir: Optional[Path] = None,
        project_dir: Optional[Path] = None,
        paths: Optional[PathSettings] = None,
    ):
        self.user_config_dir = Path(user_config_dir) if user_config_dir else None
        self.project_dir = Path(project_dir) if project_dir else None
        self._paths = paths or PathSettings()
        self._cached: Optional[List[ModelEntry]] = None

    def load(self) -> List[ModelEntry]:
        if self._cached is not None:
            return self._cached

        merged = list(DEFAULT_MODEL_SCHEMA)

        if self.user_config_dir is not None:
            user_file = self._paths.user_model_schema_file(self.user_config_dir)
            user_entries = read_schema_file(user_file)
            if user_entries:
                merged = merge_schemas(merged, user_entries)
                logger.info(f"Loaded {len(user_entries)} model entries from {user_file}")

        if self.project_dir is not None:
            project_file = self._paths.project_model_schema_file(self.project_dir)
            project_entries = read_schema_file(project_file)
            if project_entries:
                merged = merge_schemas(merged, project_entries)
                logger.info(f"Loaded {len(project_entries)} model entries from {project_file}")

        self._cached = merged
        return merged

    def clear_cache(self) -> None:
        self._cached = None


def load_model_schema(
    user_config_dir: Optional[Path] = None,
    project_dir: Optional[Path] = None,
) -> List[ModelEntry]:
    """Load the merged catalog once, without caching."""
    return ModelCatalog(user_config_dir=user_config_dir, project_dir=project_dir).load()
