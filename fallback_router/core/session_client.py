"""Session Prompt Client - the host's session API as seen by the retry engine.

Messages are plain dicts in the host's wire shape::

    {"info": {"id", "role", "time": {"created"}, "agent", "model", "error"},
     "parts": [{"type": "text", "text": "..."}, ...],
     "error": {...}}

Session logs are append-only from the engine's point of view, ordered by
creation time.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


class SessionClient(Protocol):
    async def prompt(self, session_id: str, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Send a prompt. May return ``{"error": ...}`` instead of raising."""
        ...

    async def abort(self, session_id: str) -> None:
        ...

    async def messages(self, session_id: str) -> List[Message]:
        ...

    async def create(self, body: Dict[str, Any]) -> str:
        """Create a session and return its id."""
        ...


# =============================================================================
# Message accessors
# =============================================================================


def message_info(message: Message) -> Dict[str, Any]:
    info = message.get("info")
    return info if isinstance(info, dict) else {}


def message_role(message: Message) -> Optional[str]:
    return message_info(message).get("role")


def message_created(message: Message) -> Optional[float]:
    time_info = message_info(message).get("time")
    if isinstance(time_info, dict):
        created = time_info.get("created")
        if isinstance(created, (int, float)) and not isinstance(created, bool):
            return created
    return None


def message_error(message: Message) -> Any:
    """Error payload attached to the message or its info block, if any."""
    error = message.get("error")
    if error:
        return error
    return message_info(message).get("error") or None


def message_parts(message: Message) -> List[Dict[str, Any]]:
    parts = message.get("parts")
    if not isinstance(parts, list):
        return []
    return [part for part in parts if isinstance(part, dict)]


# =============================================================================
# HTTP implementation
# =============================================================================


class HttpSessionClient:
    """SessionClient over the host's HTTP API.

    Prompt calls carry no HTTP timeout of their own; the retry engine bounds
    them. Non-2xx prompt responses come back as ``{"error": ...}`` so they are
    classified like any other host error.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        from fallback_router.settings import get_settings

        host = get_settings().host
        self.base_url = (base_url or host.base_url).rstrip("/")
        self.timeout = timeout or host.request_timeout
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._http_client

    async def prompt(self, session_id: str, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        client = await self._get_client()
        response = await client.post(f"/session/{session_id}/message", json=body, timeout=None)
        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text}
            if not isinstance(payload, dict):
                payload = {"message": str(payload)}
            payload.setdefault("status", response.status_code)
            logger.debug(f"Prompt for session {session_id} failed with HTTP {response.status_code}")
            return {"error": payload}
        if not response.content:
            return None
        data = response.json()
        return data if isinstance(data, dict) else None

    async def abort(self, session_id: str) -> None:
        client = await self._get_client()
        response = await client.post(f"/session/{session_id}/abort")
        response.raise_for_status()

    async def messages(self, session_id: str) -> List[Message]:
        client = await self._get_client()
        response = await client.get(f"/session/{session_id}/message")
        response.raise_for_status()
        data = response.json()
        if isinstance(data, dict):
            data = data.get("data") or []
        return [item for item in data if isinstance(item, dict)]

    async def create(self, body: Dict[str, Any]) -> str:
        client = await self._get_client()
        response = await client.post("/session", json=body)
        response.raise_for_status()
        return str(response.json()["id"])

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
