"""HTTP client for the collaboration endpoint."""

from dataclasses import dataclass
from typing import Any

import httpx

from inspection_collab.errors import CollaborationRequestError, SessionNotFoundError
from inspection_collab.services.sync import CollaborationClient


@dataclass
class HttpxCollaborationClient(CollaborationClient):
    """Collaboration client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxCollaborationClient":
        """Create a collaboration client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def send(
        self, action: str, fields: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """POST an action; ``None`` fields are left out of the body."""
        fields = fields or {}
        payload: dict[str, Any] = {"action": action}
        payload.update({key: value for key, value in fields.items() if value is not None})
        response = await self.http_client.post(
            f"{self.base_url}/api/collaboration", json=payload, timeout=10
        )
        return _decode(response, fields.get("sessionId"))

    async def status(self, session_id: str) -> dict[str, Any]:
        """Query session metadata."""
        response = await self.http_client.get(
            f"{self.base_url}/api/collaboration",
            params={"sessionId": session_id},
            timeout=10,
        )
        if response.status_code >= httpx.codes.BAD_REQUEST:
            raise CollaborationRequestError(response.status_code, _error_text(response))
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


def _decode(response: httpx.Response, session_id: str | None) -> dict[str, Any]:
    if response.status_code == httpx.codes.NOT_FOUND:
        raise SessionNotFoundError(session_id)
    body = _json_or_none(response)
    if response.status_code >= httpx.codes.BAD_REQUEST or not body:
        raise CollaborationRequestError(response.status_code, _error_text(response))
    if not body.get("success"):
        raise CollaborationRequestError(response.status_code, body.get("error"))
    return body


def _json_or_none(response: httpx.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error_text(response: httpx.Response) -> str | None:
    body = _json_or_none(response)
    if body and isinstance(body.get("error"), str):
        return body["error"]
    return None
