"""Action-multiplexed collaboration endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from inspection_collab.domain.collaboration import CollaborationRequest
from inspection_collab.errors import InvalidRequestError, SessionNotFoundError

if TYPE_CHECKING:
    from inspection_collab.containers import AppContainer
    from inspection_collab.services.collaboration import CollaborationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/collaboration", tags=["collaboration"])


@router.post("")
async def collaboration(request: Request) -> JSONResponse:
    """Dispatch a collaboration action."""
    container: AppContainer = request.app.state.container
    try:
        body = CollaborationRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return _failure(status.HTTP_400_BAD_REQUEST, "Invalid request")

    try:
        result = dispatch_action(container.collaboration_service, body)
    except SessionNotFoundError:
        return _failure(status.HTTP_404_NOT_FOUND, "Session not found")
    except InvalidRequestError as exc:
        return _failure(status.HTTP_400_BAD_REQUEST, str(exc))
    except Exception:
        logger.exception(
            "Collaboration action failed",
            extra={"action": body.action, "session_id": body.session_id},
        )
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )
    return JSONResponse({"success": True, **result})


@router.get("")
async def session_status(
    request: Request, session_id: str | None = Query(default=None, alias="sessionId")
) -> JSONResponse:
    """Report whether a session exists, without joining it."""
    if not session_id:
        return _failure(status.HTTP_400_BAD_REQUEST, "Session ID required")
    container: AppContainer = request.app.state.container
    try:
        session = container.collaboration_service.session_status(session_id)
    except Exception:
        logger.exception("Session status failed", extra={"session_id": session_id})
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )
    if session is None:
        return JSONResponse({"success": False, "exists": False})
    return JSONResponse(
        {
            "success": True,
            "exists": True,
            "createdAt": session.created_at,
            "lastUpdated": session.last_updated,
            "userCount": session.user_count,
        }
    )


def dispatch_action(  # noqa: PLR0911
    service: CollaborationService, body: CollaborationRequest
) -> dict[str, Any]:
    """Run the requested action and return the response fields."""
    if body.action == "create":
        created = service.create_session(user_id=body.user_id, data=body.data)
        return {"sessionId": created.session_id, "shareLink": created.share_link}
    if body.action == "join":
        joined = service.join_session(
            body.session_id, body.user_id, initial_data=body.initial_data
        )
        return {
            "sessionId": joined.session_id,
            "data": joined.data,
            "userCount": joined.user_count,
        }
    if body.action == "leave":
        service.leave_session(body.session_id, body.user_id)
        return {}
    if body.action == "poll":
        polled = service.poll_session(body.session_id, body.user_id, body.last_update)
        return {
            "updates": [
                update.model_dump(mode="json", by_alias=True)
                for update in polled.updates
            ],
            "userCount": polled.user_count,
            "timestamp": polled.timestamp,
        }
    if body.action == "update":
        service.publish_update(
            body.session_id,
            body.user_id,
            kind=body.type,
            data=body.data,
            field=body.field,
            value=body.value,
            timestamp=body.timestamp,
        )
        return {}
    if body.action == "get":
        snapshot = service.get_session(body.session_id)
        return {
            "data": snapshot.data,
            "userCount": snapshot.user_count,
            "sessionId": snapshot.session_id,
        }
    if body.action == "delete":
        service.delete_session(body.session_id)
        return {}
    raise InvalidRequestError("Invalid action")


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=status_code)
