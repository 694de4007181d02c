"""Spell-check endpoint for report text."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from pydantic import ValidationError

from inspection_collab.domain.spell_check import SpellCheckRequest

if TYPE_CHECKING:
    from inspection_collab.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/spell-check", tags=["spell-check"])


@router.post("")
async def spell_check(request: Request) -> dict[str, object]:
    """Return correction suggestions; failures yield an empty list."""
    container: AppContainer = request.app.state.container
    try:
        body = SpellCheckRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        logger.warning("Ignoring malformed spell check request")
        return {"errors": []}
    errors = await container.spell_check_service.check(body.text, body.language)
    return {"errors": [error.model_dump(exclude_none=True) for error in errors]}


@router.get("")
async def spell_check_status() -> dict[str, str]:
    """Report that the spell-check service is reachable."""
    return {
        "status": "ok",
        "message": "Spell check service is available",
        "timestamp": datetime.now(tz=UTC).isoformat(),
    }
