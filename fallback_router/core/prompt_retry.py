"""Prompt Retry Engine - keep one logical prompt alive across transient failures.

Per attempt: snapshot the session log, send under a timeout, then poll for
deferred quota errors. Failures are classified:

- model-not-found: retry once with the host's suggested model, no chain walk
- quota/billing:  ban the provider, then walk the fallback chain
- timeout:        keep going if the session already shows fresh output,
                  otherwise walk the fallback chain
- anything else:  re-raised unchanged

The walk is strictly sequential. The in-flight turn is aborted before each
next candidate, so a session never has two outstanding prompts.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from fallback_router.settings import Settings

from .deferred_poller import DeferredErrorPoller, has_meaningful_output, new_messages
from .errors import FallbackExhaustedError, HostPromptError, PromptTimeoutError, QuotaError, SessionCreateError
from .failure_classifier import FailureKind, classify_failure, extract_message, parse_model_suggestion
from .fallback_candidates import FallbackCandidate, build_fallback_candidates
from .model_availability import AvailabilityClient
from .model_requirements import FallbackEntry
from .routing_context import RoutingContext
from .session_client import SessionClient, message_created

logger = logging.getLogger(__name__)

UNKNOWN_MODEL = "unknown/default"
QUOTA_BAN_REASON = "quota"


class PromptStatus(str, Enum):
    SUCCESS = "success"
    IN_PROGRESS = "in-progress"
    CANCELLED = "cancelled"


@dataclass
class PromptOutcome:
    """How a logical prompt ended (failures raise instead)."""

    status: PromptStatus
    model: Optional[str] = None
    variant: Optional[str] = None
    attempted: List[str] = field(default_factory=list)


@dataclass
class _AttemptResult:
    error: Optional[BaseException] = None
    snapshot: Optional[Set[str]] = None
    cancelled: bool = False


def body_model(body: Dict[str, Any]) -> Optional[Tuple[str, str]]:
    model = body.get("model")
    if isinstance(model, dict) and model.get("providerID") and model.get("modelID"):
        return str(model["providerID"]), str(model["modelID"])
    return None


def _with_model(body: Dict[str, Any], provider_id: str, model_id: str, variant: Optional[str] = None) -> Dict[str, Any]:
    updated = dict(body)
    updated["model"] = {"providerID": provider_id, "modelID": model_id}
    if variant:
        updated["variant"] = variant
    return updated


def _now_ms() -> int:
    return int(time.time() * 1000)


class PromptRetryEngine:
    """Runs prompts against a SessionClient with timeouts, deferred checks and fallbacks.

    Args:
        client: Host session API.
        context: Shared routing state (provider health, availability snapshot).
        availability_client: Used for live availability when the context has
            no connected-provider snapshot.
        settings: Timing knobs; defaults to the context's settings.
        sleep: Awaitable sleep (seconds), injectable for tests.
        clock: Epoch-millisecond clock for the recent-output window.
    """

    def __init__(
        self,
        client: SessionClient,
        context: RoutingContext,
        availability_client: Optional[AvailabilityClient] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.client = client
        self.context = context
        self.availability_client = availability_client
        self.settings = settings or context.settings
        self._sleep = sleep
        self._clock = clock or _now_ms
        retry = self.settings.retry
        self.poller = DeferredErrorPoller(
            client,
            attempts=retry.deferred_poll_attempts,
            interval_ms=retry.deferred_poll_interval_ms,
            sleep=sleep,
        )

    # -------------------------------------------------------------------------
    # Single attempt
    # -------------------------------------------------------------------------

    async def _send(self, session_id: str, body: Dict[str, Any], timeout_ms: int) -> None:
        try:
            result = await asyncio.wait_for(self.client.prompt(session_id, body), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise PromptTimeoutError(timeout_ms) from None
        if isinstance(result, dict) and result.get("error"):
            raise HostPromptError(result["error"])

    async def _attempt(
        self,
        session_id: str,
        body: Dict[str, Any],
        timeout_ms: int,
        cancel_event: Optional[asyncio.Event],
    ) -> _AttemptResult:
        """Send once and run the deferred check. Failures come back as values."""
        snapshot = await self.poller.snapshot(session_id)
        try:
            await self._send(session_id, body, timeout_ms)
        except Exception as e:
            return _AttemptResult(error=e, snapshot=snapshot)

        if snapshot is None:
            logger.debug(f"No message snapshot for session {session_id}, skipping deferred check")
            return _AttemptResult(snapshot=snapshot)

        current = body_model(body)
        poll = await self.poller.poll(
            session_id,
            snapshot,
            provider_id=current[0] if current else None,
            cancel_event=cancel_event,
        )
        if poll.cancelled:
            return _AttemptResult(snapshot=snapshot, cancelled=True)
        return _AttemptResult(error=poll.error, snapshot=snapshot)

    async def _has_recent_output(self, session_id: str, snapshot: Optional[Set[str]]) -> bool:
        messages = await self.poller.read_messages(session_id)
        if not messages:
            return False
        if snapshot is not None:
            messages = new_messages(messages, snapshot)
        cutoff = self._clock() - self.settings.retry.recent_output_window_ms
        for message in messages:
            created = message_created(message)
            if created is not None and created >= cutoff and has_meaningful_output(message):
                return True
        return False

    async def _abort(self, session_id: str, stage: str) -> None:
        try:
            await self.client.abort(session_id)
            logger.debug(f"Aborted session {session_id} before fallback ({stage})")
        except Exception as e:
            logger.warning(f"Failed to abort session {session_id} before fallback ({stage}): {e}")

    def _ban(self, provider_id: Optional[str], error: BaseException) -> None:
        if isinstance(error, QuotaError) and error.provider_id:
            provider_id = error.provider_id
        if provider_id:
            self.context.health.mark_provider_unhealthy(
                provider_id,
                QUOTA_BAN_REASON,
                self.settings.retry.provider_ban_ttl_ms,
            )

    @staticmethod
    def _cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    # -------------------------------------------------------------------------
    # Fallback walk
    # -------------------------------------------------------------------------

    async def _availability(self) -> Tuple[Optional[List[str]], Set[str]]:
        connected = self.context.connected_providers()
        available = self.context.available_models()
        if connected is not None or self.availability_client is None:
            return connected, available

        try:
            connected = await self.availability_client.get_connected_providers()
            available = await self.availability_client.fetch_available_models(connected)
        except Exception as e:
            logger.warning(f"Live availability lookup failed, walking chain unfiltered: {e}")
            return None, set()
        return connected, set(available)

    async def _build_candidates(
        self,
        fallback_chain: Sequence[FallbackEntry],
        tried: Sequence[str],
    ) -> List[FallbackCandidate]:
        connected, available = await self._availability()
        result = build_fallback_candidates(
            fallback_chain,
            health=self.context.health,
            connected_providers=connected,
            available_models=available,
            exclude_models=set(tried),
        )
        diagnostics = result.diagnostics
        logger.info(
            f"Fallback candidates: {[c.full_model for c in result.candidates]} "
            f"(skipped disconnected={diagnostics.skipped_disconnected}, "
            f"unhealthy={diagnostics.skipped_unhealthy}, unavailable={diagnostics.skipped_unavailable})"
        )
        return result.candidates

    async def _walk_fallbacks(
        self,
        session_id: str,
        body: Dict[str, Any],
        fallback_chain: Sequence[FallbackEntry],
        attempted: List[str],
        last_error: BaseException,
        timeout_ms: int,
        cancel_event: Optional[asyncio.Event],
    ) -> PromptOutcome:
        await self._abort(session_id, "initial")
        candidates = await self._build_candidates(fallback_chain, attempted)

        for candidate in candidates:
            if self._cancelled(cancel_event):
                logger.info(f"Prompt for session {session_id} cancelled during fallback walk")
                return PromptOutcome(status=PromptStatus.CANCELLED, attempted=list(attempted))

            if not self.context.health.is_provider_healthy(candidate.provider_id):
                logger.debug(f"Skipping {candidate.full_model}: provider banned during walk")
                continue

            variant = candidate.variant or body.get("variant")
            candidate_body = _with_model(body, candidate.provider_id, candidate.model_id, variant)
            attempted.append(candidate.full_model)
            logger.info(f"Attempting fallback {candidate.full_model} for session {session_id}")

            result = await self._attempt(session_id, candidate_body, timeout_ms, cancel_event)
            if result.cancelled:
                return PromptOutcome(status=PromptStatus.CANCELLED, attempted=list(attempted))
            if result.error is None:
                logger.info(f"Fallback {candidate.full_model} succeeded")
                return PromptOutcome(
                    status=PromptStatus.SUCCESS,
                    model=candidate.full_model,
                    variant=variant,
                    attempted=list(attempted),
                )

            error = result.error
            kind = classify_failure(error)
            if kind == FailureKind.UNCLASSIFIED:
                raise error
            if kind == FailureKind.QUOTA:
                self._ban(candidate.provider_id, error)
            elif kind == FailureKind.TIMEOUT and await self._has_recent_output(session_id, result.snapshot):
                logger.info(f"Fallback {candidate.full_model} timed out but is producing output; keeping it")
                return PromptOutcome(
                    status=PromptStatus.IN_PROGRESS,
                    model=candidate.full_model,
                    variant=variant,
                    attempted=list(attempted),
                )

            logger.info(f"Fallback {candidate.full_model} failed ({kind.value}): {extract_message(error)[:200]}")
            last_error = error
            await self._abort(session_id, "fallback")

        logger.warning(f"All fallbacks failed for session {session_id}: {attempted}")
        raise FallbackExhaustedError(attempted, last_error) from last_error

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def prompt_with_retry(
        self,
        session_id: str,
        body: Dict[str, Any],
        fallback_chain: Optional[Sequence[FallbackEntry]] = None,
        cancel_event: Optional[asyncio.Event] = None,
        prompt_timeout_ms: Optional[int] = None,
    ) -> PromptOutcome:
        """Execute one logical prompt.

        Raises:
            FallbackExhaustedError: every fallback candidate failed.
            Exception: unclassified host errors, unchanged.
        """
        timeout_ms = prompt_timeout_ms or self.settings.retry.prompt_timeout_ms
        current = body_model(body)
        current_label = f"{current[0]}/{current[1]}" if current else UNKNOWN_MODEL
        attempted = [current_label]

        result = await self._attempt(session_id, body, timeout_ms, cancel_event)
        if result.cancelled:
            return PromptOutcome(status=PromptStatus.CANCELLED, attempted=attempted)
        if result.error is None:
            return PromptOutcome(
                status=PromptStatus.SUCCESS,
                model=current_label if current else None,
                variant=body.get("variant"),
                attempted=attempted,
            )

        error = result.error
        kind = classify_failure(error)

        if kind == FailureKind.MODEL_NOT_FOUND:
            suggestion = parse_model_suggestion(error)
            if current is None:
                raise error
            provider_id = suggestion.provider_id or current[0]
            logger.info(
                f"Model not found: {suggestion.provider_id}/{suggestion.model_id}, "
                f"retrying with suggestion {suggestion.suggestion}"
            )
            retry_body = copy.copy(body)
            retry_body["model"] = {"providerID": provider_id, "modelID": suggestion.suggestion}
            retry_label = f"{provider_id}/{suggestion.suggestion}"
            attempted.append(retry_label)

            retry = await self._attempt(session_id, retry_body, timeout_ms, cancel_event)
            if retry.cancelled:
                return PromptOutcome(status=PromptStatus.CANCELLED, attempted=attempted)
            if retry.error is not None:
                raise retry.error
            return PromptOutcome(
                status=PromptStatus.SUCCESS,
                model=retry_label,
                variant=body.get("variant"),
                attempted=attempted,
            )

        if kind == FailureKind.UNCLASSIFIED:
            raise error

        logger.info(f"Retryable failure on {current_label} ({kind.value}): {extract_message(error)[:200]}")

        if kind == FailureKind.QUOTA:
            self._ban(current[0] if current else None, error)
        elif await self._has_recent_output(session_id, result.snapshot):
            logger.info(f"{current_label} timed out but the session shows fresh output; not aborting")
            return PromptOutcome(
                status=PromptStatus.IN_PROGRESS,
                model=current_label if current else None,
                variant=body.get("variant"),
                attempted=attempted,
            )

        if not fallback_chain:
            raise error

        if self._cancelled(cancel_event):
            return PromptOutcome(status=PromptStatus.CANCELLED, attempted=attempted)

        return await self._walk_fallbacks(
            session_id,
            body,
            fallback_chain,
            attempted,
            error,
            timeout_ms,
            cancel_event,
        )

    async def create_session_with_retry(self, body: Dict[str, Any]) -> str:
        """Create a session, backing off on quota/timeout errors only."""
        retry = self.settings.retry
        last_error: Optional[BaseException] = None

        for attempt in range(retry.session_create_attempts):
            try:
                return await self.client.create(body)
            except Exception as e:
                kind = classify_failure(e)
                if kind not in (FailureKind.QUOTA, FailureKind.TIMEOUT):
                    raise
                last_error = e

            if attempt + 1 < retry.session_create_attempts:
                delay_ms = session_backoff_ms(attempt, retry.session_backoff_base_ms, retry.session_backoff_cap_ms)
                logger.info(
                    f"Session creation failed (attempt {attempt + 1}/{retry.session_create_attempts}), "
                    f"retrying in {delay_ms}ms: {last_error}"
                )
                await self._sleep(delay_ms / 1000)

        raise SessionCreateError(retry.session_create_attempts, last_error) from last_error


def session_backoff_ms(attempt: int, base_ms: int = 750, cap_ms: int = 8000) -> int:
    return min(base_ms * 2 ** attempt, cap_ms)


async def prompt_with_retry(
    client: SessionClient,
    context: RoutingContext,
    session_id: str,
    body: Dict[str, Any],
    fallback_chain: Optional[Sequence[FallbackEntry]] = None,
    **kwargs: Any,
) -> PromptOutcome:
    """One-shot helper around PromptRetryEngine.prompt_with_retry()."""
    engine = PromptRetryEngine(client, context)
    return await engine.prompt_with_retry(session_id, body, fallback_chain, **kwargs)


async def create_session_with_retry(
    client: SessionClient,
    body: Dict[str, Any],
    context: Optional[RoutingContext] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> str:
    engine = PromptRetryEngine(client, context or RoutingContext(), sleep=sleep)
    return await engine.create_session_with_retry(body)
