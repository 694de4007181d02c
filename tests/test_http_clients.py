"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from inspection_collab.adapters.collaboration_client import HttpxCollaborationClient
from inspection_collab.adapters.openai_spell_check_client import (
    OpenAISpellCheckClient,
)
from inspection_collab.errors import CollaborationRequestError, SessionNotFoundError


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str = '{"errors": []}') -> None:
        self.responses = _FakeResponses(output_text)


def test_openai_spell_check_client_returns_text() -> None:
    fake = _FakeOpenAI()
    client = OpenAISpellCheckClient(client=fake)

    result = asyncio.run(
        client.complete(model="gpt-4.1-mini", instructions="Check", prompt="texto")
    )

    assert result == '{"errors": []}'
    assert fake.responses.last_payload == {
        "model": "gpt-4.1-mini",
        "instructions": "Check",
        "input": "texto",
        "store": False,
    }


def test_openai_spell_check_client_rejects_empty_output() -> None:
    client = OpenAISpellCheckClient(client=_FakeOpenAI(output_text=""))

    with pytest.raises(RuntimeError):
        asyncio.run(client.complete(model="m", instructions="i", prompt="p"))


def test_collaboration_client_posts_action() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/collaboration"
        seen.append(json.loads(request.content.decode()))
        return httpx.Response(200, json={"success": True, "sessionId": "AbC123xy"})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxCollaborationClient(
        base_url="https://reports.test", http_client=async_client
    )

    body = asyncio.run(client.send("create", {"userId": "ana", "data": None}))

    assert body["sessionId"] == "AbC123xy"
    assert seen == [{"action": "create", "userId": "ana"}]


def test_collaboration_client_maps_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode())
        if payload["action"] == "get":
            return httpx.Response(
                404, json={"success": False, "error": "Session not found"}
            )
        if payload["action"] == "poll":
            return httpx.Response(500, text="gateway exploded")
        return httpx.Response(400, json={"success": False, "error": "Invalid action"})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxCollaborationClient(
        base_url="https://reports.test", http_client=async_client
    )

    with pytest.raises(SessionNotFoundError) as not_found:
        asyncio.run(client.send("get", {"sessionId": "missing1"}))
    with pytest.raises(CollaborationRequestError) as server_error:
        asyncio.run(client.send("poll", {"sessionId": "AbC123xy"}))
    with pytest.raises(CollaborationRequestError) as invalid:
        asyncio.run(client.send("explode"))

    assert not_found.value.session_id == "missing1"
    assert server_error.value.status_code == 500
    assert server_error.value.error is None
    assert invalid.value.error == "Invalid action"


def test_collaboration_client_status_query() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.params["sessionId"] == "AbC123xy"
        return httpx.Response(200, json={"success": True, "exists": True})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxCollaborationClient(
        base_url="https://reports.test", http_client=async_client
    )

    body = asyncio.run(client.status("AbC123xy"))

    assert body == {"success": True, "exists": True}
