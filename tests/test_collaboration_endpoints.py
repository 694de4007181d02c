"""Tests for the collaboration HTTP endpoint."""

from fastapi.testclient import TestClient

from inspection_collab.api.app import create_app
from inspection_collab.containers import AppContainer
from tests.conftest import START_MS, FakeClock, InMemorySessionRepository


def _create(client: TestClient, **fields: object) -> str:
    response = client.post("/api/collaboration", json={"action": "create", **fields})
    assert response.status_code == 200
    return response.json()["sessionId"]


def test_health_endpoint(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_get_session(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/collaboration", json={"action": "create", "userId": "ana"}
    )
    body = response.json()
    fetched = client.post(
        "/api/collaboration", json={"action": "get", "sessionId": body["sessionId"]}
    )

    assert body["success"] is True
    assert len(body["sessionId"]) == 8
    assert body["shareLink"].endswith(f"/report/{body['sessionId']}")
    assert fetched.json() == {
        "success": True,
        "data": None,
        "userCount": 0,
        "sessionId": body["sessionId"],
    }


def test_join_with_initial_data_then_get(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = _create(client)

    joined = client.post(
        "/api/collaboration",
        json={
            "action": "join",
            "sessionId": session_id,
            "userId": "ana",
            "initialData": {"conclusion": "X"},
        },
    )
    fetched = client.post(
        "/api/collaboration", json={"action": "get", "sessionId": session_id}
    )

    assert joined.json()["userCount"] == 1
    assert fetched.json()["data"] == {"conclusion": "X"}


def test_update_and_poll_flow(container: AppContainer, clock: FakeClock) -> None:
    client = TestClient(create_app(container))
    session_id = _create(client)
    client.post(
        "/api/collaboration",
        json={"action": "join", "sessionId": session_id, "userId": "ana"},
    )

    full = client.post(
        "/api/collaboration",
        json={
            "action": "update",
            "sessionId": session_id,
            "userId": "ana",
            "type": "full",
            "data": {"conclusion": "done"},
        },
    )
    field = client.post(
        "/api/collaboration",
        json={
            "action": "update",
            "sessionId": session_id,
            "userId": "ana",
            "type": "field",
            "field": "inspection.tag",
            "value": "T-1",
            "timestamp": START_MS + 5,
        },
    )
    fetched = client.post(
        "/api/collaboration", json={"action": "get", "sessionId": session_id}
    )
    polled = client.post(
        "/api/collaboration",
        json={
            "action": "poll",
            "sessionId": session_id,
            "userId": "ana",
            "lastUpdate": START_MS,
        },
    )

    assert full.json() == {"success": True}
    assert field.json() == {"success": True}
    assert fetched.json()["data"] == {"conclusion": "done"}
    body = polled.json()
    assert body["userCount"] == 1
    assert body["timestamp"] == clock.now
    assert body["updates"] == [
        {
            "userId": "ana",
            "type": "field",
            "data": None,
            "field": "inspection.tag",
            "value": "T-1",
            "timestamp": START_MS + 5,
        }
    ]


def test_leave_and_delete_always_succeed(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    left = client.post(
        "/api/collaboration",
        json={"action": "leave", "sessionId": "missing1", "userId": "ana"},
    )
    deleted = client.post(
        "/api/collaboration", json={"action": "delete", "sessionId": "missing1"}
    )

    assert left.json() == {"success": True}
    assert deleted.json() == {"success": True}


def test_missing_session_returns_not_found(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    for action in ("join", "poll", "update", "get"):
        response = client.post(
            "/api/collaboration",
            json={"action": action, "sessionId": "missing1", "userId": "ana"},
        )
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Session not found"}


def test_invalid_requests_return_bad_request(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    unknown = client.post("/api/collaboration", json={"action": "explode"})
    missing_id = client.post("/api/collaboration", json={"action": "get"})
    not_json = client.post(
        "/api/collaboration",
        content=b"not json",
        headers={"content-type": "application/json"},
    )
    bad_type = client.post(
        "/api/collaboration", json={"action": "update", "type": "partial"}
    )

    assert unknown.status_code == 400
    assert unknown.json() == {"success": False, "error": "Invalid action"}
    assert missing_id.status_code == 400
    assert missing_id.json()["success"] is False
    assert not_json.status_code == 400
    assert bad_type.status_code == 400


def test_storage_failure_returns_generic_error(
    container: AppContainer, session_repository: InMemorySessionRepository
) -> None:
    client = TestClient(create_app(container))
    session_id = _create(client)
    record = session_repository.sessions[session_id]
    session_repository.sessions[session_id] = type(record)(
        session_id=session_id,
        data="{broken",
        created_at=record.created_at,
        updated_at=record.updated_at,
        expires_at=record.expires_at,
    )

    response = client.post(
        "/api/collaboration", json={"action": "get", "sessionId": session_id}
    )

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}


def test_status_query(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = _create(client)

    found = client.get("/api/collaboration", params={"sessionId": session_id})
    missing = client.get("/api/collaboration", params={"sessionId": "missing1"})
    no_id = client.get("/api/collaboration")

    assert found.json() == {
        "success": True,
        "exists": True,
        "createdAt": START_MS,
        "lastUpdated": START_MS,
        "userCount": 0,
    }
    assert missing.json() == {"success": False, "exists": False}
    assert no_id.status_code == 400
    assert no_id.json() == {"success": False, "error": "Session ID required"}
