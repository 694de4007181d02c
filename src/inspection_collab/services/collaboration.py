"""Shared-session protocol for collaborative report editing.

Every action reads the whole session payload, changes a working copy and
writes the whole payload back. There is no isolation between concurrent
actions on one session: the last write wins and the other action's change
(a registered participant, an appended update) can be lost.
"""

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from pydantic import ValidationError

from inspection_collab.domain.collaboration import (
    CreatedSession,
    Participant,
    PollResult,
    SessionRecord,
    SessionSnapshot,
    SessionState,
    SessionStatus,
    SessionUpdate,
    UpdateKind,
)
from inspection_collab.errors import (
    InvalidRequestError,
    SessionNotFoundError,
    StorageError,
)
from inspection_collab.timeutils import from_ms, now_ms, to_ms

logger = logging.getLogger(__name__)

SESSION_ID_ALPHABET = string.ascii_letters + string.digits
SESSION_ID_LENGTH = 8
DEFAULT_SESSION_TTL = timedelta(hours=24)
DEFAULT_INACTIVITY_WINDOW_MS = 5 * 60 * 1000


class SessionRepository(Protocol):
    """Persistence interface for shared sessions."""

    def create_session(
        self,
        session_id: str,
        data: str,
        expires_at: datetime,
        creator_id: str,
    ) -> SessionRecord:
        """Create a session record and return it."""

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""

    def update_session(self, session_id: str, data: str) -> None:
        """Replace the serialized payload of a session."""

    def delete_session(self, session_id: str) -> None:
        """Delete a session; absent sessions are ignored."""


def generate_session_id(length: int = SESSION_ID_LENGTH) -> str:
    """Return a random alphanumeric session id."""
    return "".join(secrets.choice(SESSION_ID_ALPHABET) for _ in range(length))


@dataclass
class CollaborationService:
    """Session lifecycle operations backed by a session repository."""

    repository: SessionRepository
    public_base_url: str = ""
    session_ttl: timedelta = DEFAULT_SESSION_TTL
    inactivity_window_ms: int = DEFAULT_INACTIVITY_WINDOW_MS
    clock: Callable[[], int] = now_ms
    id_factory: Callable[[], str] = generate_session_id

    def create_session(
        self, user_id: str | None = None, data: dict[str, Any] | None = None
    ) -> CreatedSession:
        """Create a session, optionally seeded with report data."""
        now = self.clock()
        session_id = self.id_factory()
        state = SessionState(data=data, last_updated=now)
        self.repository.create_session(
            session_id=session_id,
            data=_dump_state(state),
            expires_at=from_ms(now) + self.session_ttl,
            creator_id=user_id or "collaboration",
        )
        logger.info("Created collaboration session", extra={"session_id": session_id})
        return CreatedSession(
            session_id=session_id,
            share_link=f"{self.public_base_url}/report/{session_id}",
        )

    def join_session(
        self,
        session_id: str | None,
        user_id: str | None,
        initial_data: dict[str, Any] | None = None,
    ) -> SessionSnapshot:
        """Register the caller and return the canonical data.

        ``initial_data`` overwrites the canonical data outright.
        """
        if not user_id:
            raise InvalidRequestError("userId is required")
        record, state = self._load(session_id)
        now = self.clock()
        state.users[user_id] = Participant(id=user_id, joined_at=now, last_seen=now)
        if initial_data is not None:
            state.data = initial_data
            state.last_updated = now
        self._save(record.session_id, state)
        return SessionSnapshot(
            session_id=record.session_id,
            data=state.data,
            user_count=len(state.users),
        )

    def leave_session(self, session_id: str | None, user_id: str | None) -> None:
        """Remove the caller; missing sessions or participants are ignored."""
        if not session_id or not user_id:
            return
        record = self.repository.get_session(session_id)
        if record is None:
            return
        state = _load_state(record)
        if state.users.pop(user_id, None) is not None:
            self._save(record.session_id, state)

    def poll_session(
        self,
        session_id: str | None,
        user_id: str | None = None,
        last_update: int | None = None,
    ) -> PollResult:
        """Refresh liveness, prune stale state and return newer updates."""
        record, state = self._load(session_id)
        now = self.clock()
        participant = state.users.get(user_id) if user_id else None
        if participant is not None:
            state.users[user_id] = participant.model_copy(update={"last_seen": now})
        state.users = {
            key: value
            for key, value in state.users.items()
            if now - value.last_seen <= self.inactivity_window_ms
        }
        self._trim_updates(state, now)
        cursor = last_update or 0
        updates = [update for update in state.updates if update.timestamp > cursor]
        self._save(record.session_id, state)
        return PollResult(updates=updates, user_count=len(state.users), timestamp=now)

    def publish_update(  # noqa: PLR0913
        self,
        session_id: str | None,
        user_id: str | None,
        kind: UpdateKind | None = None,
        data: dict[str, Any] | None = None,
        field: str | None = None,
        value: Any = None,
        timestamp: int | None = None,
    ) -> None:
        """Append an update event to the session log.

        Full updates also replace the canonical data; field updates only
        travel through the log and are applied by each polling client.
        """
        kind = kind or "full"
        if kind == "field" and not field:
            raise InvalidRequestError("field is required for field updates")
        record, state = self._load(session_id)
        now = self.clock()
        if kind == "field":
            update = SessionUpdate(
                user_id=user_id,
                type="field",
                field=field,
                value=value,
                timestamp=timestamp or now,
            )
        else:
            update = SessionUpdate(
                user_id=user_id, type="full", data=data, timestamp=timestamp or now
            )
            state.data = data
            state.last_updated = now
        state.updates.append(update)
        self._trim_updates(state, now)
        self._save(record.session_id, state)

    def get_session(self, session_id: str | None) -> SessionSnapshot:
        """Return canonical data without touching participant liveness."""
        record, state = self._load(session_id)
        logger.info("Fetched collaboration session", extra={"session_id": session_id})
        return SessionSnapshot(
            session_id=record.session_id,
            data=state.data,
            user_count=len(state.users),
        )

    def delete_session(self, session_id: str | None) -> None:
        """Delete a session; deleting an absent session succeeds."""
        if not session_id:
            return
        self.repository.delete_session(session_id)
        logger.info("Deleted collaboration session", extra={"session_id": session_id})

    def session_status(self, session_id: str) -> SessionStatus | None:
        """Return session metadata, or None when the session is absent."""
        record = self.repository.get_session(session_id)
        if record is None:
            return None
        state = _load_state(record)
        return SessionStatus(
            created_at=to_ms(record.created_at),
            last_updated=state.last_updated or to_ms(record.updated_at),
            user_count=len(state.users),
        )

    def _load(self, session_id: str | None) -> tuple[SessionRecord, SessionState]:
        if not session_id:
            raise InvalidRequestError("sessionId is required")
        record = self.repository.get_session(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return record, _load_state(record)

    def _save(self, session_id: str, state: SessionState) -> None:
        self.repository.update_session(session_id, _dump_state(state))

    def _trim_updates(self, state: SessionState, now: int) -> None:
        state.updates = [
            update
            for update in state.updates
            if now - update.timestamp < self.inactivity_window_ms
        ]


def _load_state(record: SessionRecord) -> SessionState:
    try:
        return SessionState.model_validate_json(record.data or "{}")
    except ValidationError as exc:
        raise StorageError(f"Corrupt payload for session {record.session_id}") from exc


def _dump_state(state: SessionState) -> str:
    return state.model_dump_json(by_alias=True)
