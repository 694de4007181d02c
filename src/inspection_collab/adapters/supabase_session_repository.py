"""Supabase-backed shared session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from inspection_collab.domain.collaboration import SessionRecord
from inspection_collab.errors import StorageError
from inspection_collab.services.collaboration import SessionRepository

_COLUMNS = "session_id, data, created_at, updated_at, expires_at"


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for shared sessions."""

    client: Client

    def create_session(
        self,
        session_id: str,
        data: str,
        expires_at: datetime,
        creator_id: str,
    ) -> SessionRecord:
        """Create a session row and return it."""
        response = (
            self.client.table("shared_sessions")
            .insert(
                {
                    "session_id": session_id,
                    "creator_id": creator_id,
                    "report_type": "collaboration",
                    "permission": "edit",
                    "data": data,
                    "expires_at": expires_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise StorageError("Failed to create session")
        return _to_record(response.data[0])

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("shared_sessions")
            .select(_COLUMNS)
            .eq("session_id", session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_record(response.data[0])

    def update_session(self, session_id: str, data: str) -> None:
        """Replace the serialized payload of a session."""
        self.client.table("shared_sessions").update(
            {
                "data": data,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).eq("session_id", session_id).execute()

    def delete_session(self, session_id: str) -> None:
        """Delete a session row if it exists."""
        self.client.table("shared_sessions").delete().eq(
            "session_id", session_id
        ).execute()


def _to_record(row: dict[str, object]) -> SessionRecord:
    created_at = _parse_timestamp(row.get("created_at"))
    return SessionRecord(
        session_id=str(row["session_id"]),
        data=str(row.get("data") or ""),
        created_at=created_at,
        updated_at=_parse_timestamp(row.get("updated_at"), default=created_at),
        expires_at=_parse_timestamp(row.get("expires_at"), default=created_at),
    )


def _parse_timestamp(value: object, default: datetime | None = None) -> datetime:
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return default or datetime.now(tz=UTC)
