"""Exception taxonomy for model routing and prompt retries.

Recoverable classes (model-not-found, quota, timeout) are handled inside the
retry engine. Only FallbackExhaustedError and unclassified host errors reach
callers.
"""

from typing import Any, Iterable, List, Optional


class RoutingError(Exception):
    """Base class for errors raised by the routing core."""
    pass


class HostPromptError(RoutingError):
    """The host returned ``{"error": ...}`` instead of raising."""

    def __init__(self, payload: Any):
        self.payload = payload
        message = payload.get("message") if isinstance(payload, dict) else None
        super().__init__(message if isinstance(message, str) else repr(payload))


class ModelNotFoundError(RoutingError):
    """The host did not recognize the requested model."""

    def __init__(self, provider_id: str, model_id: str, suggestion: Optional[str] = None):
        self.provider_id = provider_id
        self.model_id = model_id
        self.suggestion = suggestion
        message = f"Model not found: {provider_id}/{model_id}."
        if suggestion:
            message += f" Did you mean: {suggestion}?"
        super().__init__(message)


class QuotaError(RoutingError):
    """A provider reported rate limiting, exhausted quota or billing failure."""

    def __init__(self, message: str, provider_id: Optional[str] = None, deferred: bool = False):
        self.provider_id = provider_id
        self.deferred = deferred
        super().__init__(message)


class PromptTimeoutError(RoutingError):
    """A prompt call did not settle within its timeout."""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Model attempt timed out after {timeout_ms}ms")


class FallbackExhaustedError(RoutingError):
    """Every model in the fallback walk failed."""

    def __init__(self, attempted: Iterable[str], last_error: Optional[BaseException] = None):
        self.attempted: List[str] = list(attempted)
        self.last_error = last_error
        tried = ", ".join(self.attempted) if self.attempted else "none"
        message = f"All fallback models failed (attempted: {tried})"
        if last_error is not None:
            message += f"; last error: {last_error}"
        super().__init__(message)


class SessionCreateError(RoutingError):
    """Session creation kept failing with retryable errors."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Session creation failed after {attempts} attempts: {last_error}")
