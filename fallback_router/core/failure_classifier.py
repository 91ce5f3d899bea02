"""Failure classification for host prompt errors.

Host errors arrive in many shapes: exceptions, plain strings, structured
payloads such as ``{"name": "ProviderModelNotFoundError", "data": {...}}`` or
``{"status": 402, "code": "insufficient_credits"}``, sometimes nested under
``data``/``error``/``cause``. Everything here works on any of those.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Set

import httpx

from .errors import HostPromptError, ModelNotFoundError, PromptTimeoutError, QuotaError


class FailureKind(str, Enum):
    MODEL_NOT_FOUND = "model-not-found"
    QUOTA = "quota"
    TIMEOUT = "timeout"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class ModelSuggestionInfo:
    provider_id: str
    model_id: str
    suggestion: str


QUOTA_STATUS_CODES = (429, 402)

QUOTA_CODE_MARKERS = (
    "rate_limit",
    "too_many_requests",
    "ratelimit",
    "insufficient_quota",
    "insufficient_credits",
    "quota_exceeded",
)

QUOTA_MESSAGE_KEYWORDS = (
    "rate limit",
    "rate-limited",
    "too many requests",
    "resource exhausted",
    "quota",
    "429",
    "capacity",
    "overloaded",
    "insufficient credits",
    "insufficient balance",
    "billing",
)

TIMEOUT_MESSAGE_KEYWORDS = ("timed out", "timeout")

_MODEL_NOT_FOUND_RE = re.compile(r"model not found:\s*([^/\s]+)\s*/\s*([^.\s]+)", re.IGNORECASE)
_DID_YOU_MEAN_RE = re.compile(r"did you mean:\s*([^,?]+)", re.IGNORECASE)


def _structure_of(error: Any) -> Any:
    """The structured payload behind an error, when there is one."""
    if isinstance(error, HostPromptError):
        return error.payload
    if isinstance(error, httpx.HTTPStatusError):
        return {"status": error.response.status_code, "message": str(error)}
    return error


def extract_message(error: Any) -> str:
    error = _structure_of(error)
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str):
            return message
        try:
            return json.dumps(error, default=str)
        except (TypeError, ValueError):
            return ""
    return str(error)


def _is_quota_status(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value in QUOTA_STATUS_CODES
    if isinstance(value, str):
        return value.strip() in ("429", "402")
    return False


def _has_quota_code(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    lowered = value.lower()
    return any(marker in lowered for marker in QUOTA_CODE_MARKERS)


def _exception_fields(error: BaseException) -> Dict[str, Any]:
    fields = {
        key: getattr(error, key)
        for key in ("status", "status_code", "statusCode", "code", "type", "reason")
        if getattr(error, key, None) is not None
    }
    if error.__cause__ is not None:
        fields["cause"] = error.__cause__
    return fields


def has_structured_quota_signal(error: Any, _seen: Optional[Set[int]] = None) -> bool:
    """True when status fields or error codes mark a quota/billing failure."""
    error = _structure_of(error)
    if error is None:
        return False
    if isinstance(error, QuotaError):
        return True
    if isinstance(error, (int, str)):
        return _is_quota_status(error) or _has_quota_code(error)

    seen = _seen if _seen is not None else set()
    if id(error) in seen:
        return False
    seen.add(id(error))

    if isinstance(error, BaseException):
        obj = _exception_fields(error)
    elif isinstance(error, dict):
        obj = error
    elif isinstance(error, (list, tuple)):
        return any(has_structured_quota_signal(item, seen) for item in error)
    else:
        return False

    for key in ("status", "statusCode", "status_code", "httpStatusCode"):
        if _is_quota_status(obj.get(key)):
            return True

    for key in ("code", "type", "errorCode", "reason", "name"):
        if _has_quota_code(obj.get(key)):
            return True

    return any(
        has_structured_quota_signal(value, seen)
        for value in obj.values()
        if isinstance(value, (dict, list, tuple, BaseException))
    )


def is_quota_error(error: Any) -> bool:
    if has_structured_quota_signal(error):
        return True
    message = extract_message(error).lower()
    return any(keyword in message for keyword in QUOTA_MESSAGE_KEYWORDS)


def is_timeout_error(error: Any) -> bool:
    if isinstance(error, (PromptTimeoutError, asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return True
    message = extract_message(error).lower()
    return any(keyword in message for keyword in TIMEOUT_MESSAGE_KEYWORDS)


def is_retryable_model_error(error: Any) -> bool:
    return is_quota_error(error) or is_timeout_error(error)


def parse_model_suggestion(error: Any) -> Optional[ModelSuggestionInfo]:
    """Extract "did you mean" information from a model-not-found failure."""
    if isinstance(error, ModelNotFoundError):
        if not error.suggestion:
            return None
        return ModelSuggestionInfo(error.provider_id, error.model_id, error.suggestion)

    error = _structure_of(error)
    if not error:
        return None

    if isinstance(error, dict):
        if error.get("name") == "ProviderModelNotFoundError" and isinstance(error.get("data"), dict):
            data = error["data"]
            suggestions = data.get("suggestions")
            if isinstance(suggestions, list) and suggestions and isinstance(suggestions[0], str):
                return ModelSuggestionInfo(
                    provider_id=str(data.get("providerID") or ""),
                    model_id=str(data.get("modelID") or ""),
                    suggestion=suggestions[0],
                )
            return None

        for key in ("data", "error", "cause"):
            nested = error.get(key)
            if isinstance(nested, dict):
                result = parse_model_suggestion(nested)
                if result:
                    return result
    elif isinstance(error, BaseException) and error.__cause__ is not None:
        result = parse_model_suggestion(error.__cause__)
        if result:
            return result

    message = extract_message(error)
    if not message:
        return None

    model_match = _MODEL_NOT_FOUND_RE.search(message)
    suggestion_match = _DID_YOU_MEAN_RE.search(message)
    if model_match and suggestion_match:
        return ModelSuggestionInfo(
            provider_id=model_match.group(1).strip(),
            model_id=model_match.group(2).strip(),
            suggestion=suggestion_match.group(1).strip(),
        )
    return None


def classify_failure(error: Any) -> FailureKind:
    """Bucket a failure.

    A structured 429/402 status is quota even when the message mentions a
    timeout. Otherwise timeout keywords are checked before quota keywords so
    "timed out after 4290ms" stays a timeout.
    """
    if parse_model_suggestion(error) is not None:
        return FailureKind.MODEL_NOT_FOUND
    if isinstance(error, QuotaError) or has_structured_quota_signal(error):
        return FailureKind.QUOTA
    if is_timeout_error(error):
        return FailureKind.TIMEOUT
    if is_quota_error(error):
        return FailureKind.QUOTA
    return FailureKind.UNCLASSIFIED
