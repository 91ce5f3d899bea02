"""Agent Fallback Resolver - which fallback chain applies to an agent or category.

User-configured fallback slots win outright; otherwise the hardcoded
requirement tables are used. Agent names are matched case-insensitively and
through the canonical aliases (plan -> planner, build -> builder).
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .model_requirements import (
    AGENT_MODEL_REQUIREMENTS,
    CATEGORY_MODEL_REQUIREMENTS,
    FallbackEntry,
    ModelRequirement,
)

logger = logging.getLogger(__name__)

AGENT_ALIASES: Dict[str, str] = {
    "plan": "planner",
    "build": "builder",
}


class AgentFallbackSlot(BaseModel):
    """User-facing fallback slot: ``"provider/model"`` plus optional variant."""

    model: str
    variant: Optional[str] = None


class AgentOverrideConfig(BaseModel):
    """Per-agent user configuration relevant to routing."""

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    variant: Optional[str] = None
    fallback: Optional[List[AgentFallbackSlot]] = None


AgentOverrides = Mapping[str, Union[AgentOverrideConfig, Dict[str, Any], None]]


def normalize_agent_name(agent_name: str) -> str:
    return agent_name.strip().lower()


def _names_to_try(agent_name: str) -> List[str]:
    normalized = normalize_agent_name(agent_name)
    alias = AGENT_ALIASES.get(normalized)
    return [normalized, alias] if alias else [normalized]


def _to_fallback_entry(slot: AgentFallbackSlot) -> Optional[FallbackEntry]:
    provider_id, sep, model_id = slot.model.partition("/")
    if not provider_id or not sep or not model_id:
        return None
    return FallbackEntry(providers=(provider_id,), model=model_id, variant=slot.variant or None)


def convert_agent_fallback_slots(
    slots: Optional[Sequence[Union[AgentFallbackSlot, Dict[str, Any]]]],
) -> Optional[List[FallbackEntry]]:
    """Convert user slots to fallback entries, dropping malformed ones.

    Returns None when nothing usable remains.
    """
    if not slots:
        return None

    converted: List[FallbackEntry] = []
    for slot in slots:
        if not isinstance(slot, AgentFallbackSlot):
            slot = AgentFallbackSlot.model_validate(slot)
        entry = _to_fallback_entry(slot)
        if entry is None:
            logger.debug(f"Dropping malformed fallback slot '{slot.model}'")
            continue
        converted.append(entry)

    return converted or None


def format_fallback_entry(entry: FallbackEntry) -> List[str]:
    """Serialize an entry back to ``["provider/model", ...]``."""
    return [f"{provider_id}/{entry.model}" for provider_id in entry.providers]


def _find_agent_override(
    agent_name: str,
    overrides: Optional[AgentOverrides],
) -> Optional[Tuple[str, AgentOverrideConfig]]:
    if not overrides:
        return None

    names = _names_to_try(agent_name)
    for name, config in overrides.items():
        if not config:
            continue
        if normalize_agent_name(name) in names:
            if not isinstance(config, AgentOverrideConfig):
                config = AgentOverrideConfig.model_validate(config)
            return name, config
    return None


def _lookup_requirement(
    name: str,
    table: Mapping[str, ModelRequirement],
) -> Tuple[Optional[ModelRequirement], bool]:
    """Direct lookup, then normalized/alias lookup. Second value: matched by normalization."""
    direct = table.get(name)
    if direct is not None and direct.fallback_chain:
        return direct, False

    names = _names_to_try(name)
    for table_name, requirement in table.items():
        if normalize_agent_name(table_name) in names:
            return requirement, True
    return None, False


def resolve_agent_fallback_chain(
    agent_name: str,
    user_agent_overrides: Optional[AgentOverrides] = None,
) -> Optional[List[FallbackEntry]]:
    override = _find_agent_override(agent_name, user_agent_overrides)
    if override is not None:
        override_name, config = override
        chain = convert_agent_fallback_slots(config.fallback)
        if chain:
            logger.info(
                f"Fallback chain for '{agent_name}' from user config "
                f"('{override_name}', {len(chain)} entries)"
            )
            return chain

    requirement, normalized = _lookup_requirement(agent_name, AGENT_MODEL_REQUIREMENTS)
    if requirement is None:
        logger.debug(f"No fallback chain for agent '{agent_name}'")
        return None

    logger.debug(
        f"Fallback chain for '{agent_name}' from built-in requirements "
        f"({len(requirement.fallback_chain)} entries, normalized={normalized})"
    )
    return list(requirement.fallback_chain)


def resolve_category_fallback_chain(category: str) -> Optional[List[FallbackEntry]]:
    requirement, _ = _lookup_requirement(category, CATEGORY_MODEL_REQUIREMENTS)
    if requirement is None:
        return None
    return list(requirement.fallback_chain)
