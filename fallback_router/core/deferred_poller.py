"""Snapshot-and-diff polling for errors the host reports after a send.

The host may accept a prompt and append the quota/billing failure to the
session log a little later. Before each send the poller records a signature
for every message; afterwards it re-reads the log a bounded number of times
and only inspects messages whose signature is new. A message whose error
payload changes gets a new signature too.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Set

from .errors import QuotaError
from .failure_classifier import extract_message, is_quota_error
from .session_client import (
    Message,
    SessionClient,
    message_created,
    message_error,
    message_info,
    message_parts,
    message_role,
)

logger = logging.getLogger(__name__)

TOOL_PART_TYPES = frozenset({"tool", "tool-invocation", "tool_call", "tool-call"})


def message_signature(message: Message) -> str:
    info = message_info(message)
    error = message_error(message)
    error_text = json.dumps(error, sort_keys=True, default=str) if error else ""
    return f"{message_created(message)}|{info.get('id', '')}|{error_text}"


def snapshot_signatures(messages: Iterable[Message]) -> Set[str]:
    return {message_signature(message) for message in messages}


def new_messages(messages: Iterable[Message], snapshot: Set[str]) -> List[Message]:
    return [message for message in messages if message_signature(message) not in snapshot]


def quota_error_in(message: Message) -> Any:
    """The quota/billing error carried by a message, or None."""
    error = message_error(message)
    if error and is_quota_error(error):
        return error
    for part in message_parts(message):
        if part.get("type") == "error" and is_quota_error(part.get("text") or part):
            return part
    return None


def has_meaningful_output(message: Message) -> bool:
    """Non-error assistant (or unlabelled) message with text or tool output."""
    if message_role(message) == "user" or message_error(message):
        return False
    for part in message_parts(message):
        part_type = part.get("type")
        if part_type == "text" and str(part.get("text") or "").strip():
            return True
        if part_type in TOOL_PART_TYPES:
            return True
    return False


@dataclass
class PollResult:
    error: Optional[QuotaError] = None
    cancelled: bool = False
    output_seen: bool = False


class DeferredErrorPoller:
    """Bounded poller: ``attempts`` reads, ``interval_ms`` apart."""

    def __init__(
        self,
        client: SessionClient,
        attempts: int = 8,
        interval_ms: int = 250,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.attempts = attempts
        self.interval_ms = interval_ms
        self._sleep = sleep

    async def read_messages(self, session_id: str) -> Optional[List[Message]]:
        try:
            return list(await self.client.messages(session_id))
        except Exception as e:
            logger.warning(f"Could not read messages of session {session_id}: {e}")
            return None

    async def snapshot(self, session_id: str) -> Optional[Set[str]]:
        """Signatures of the current log, or None when it cannot be read."""
        messages = await self.read_messages(session_id)
        if messages is None:
            return None
        return snapshot_signatures(messages)

    async def poll(
        self,
        session_id: str,
        snapshot: Set[str],
        provider_id: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PollResult:
        """Look for a new quota/billing error appended after the snapshot.

        Stops early on cancellation or once new non-error output shows up.
        """
        for attempt in range(self.attempts):
            if cancel_event is not None and cancel_event.is_set():
                return PollResult(cancelled=True)

            await self._sleep(self.interval_ms / 1000)

            if cancel_event is not None and cancel_event.is_set():
                return PollResult(cancelled=True)

            messages = await self.read_messages(session_id)
            if messages is None:
                continue

            fresh = new_messages(messages, snapshot)
            for message in fresh:
                error = quota_error_in(message)
                if error is not None:
                    logger.info(
                        f"Deferred quota error in session {session_id} "
                        f"(poll {attempt + 1}/{self.attempts}): {extract_message(error)[:200]}"
                    )
                    return PollResult(
                        error=QuotaError(extract_message(error), provider_id=provider_id, deferred=True)
                    )

            if any(has_meaningful_output(message) for message in fresh):
                return PollResult(output_seen=True)

        return PollResult()
