"""Client-side synchronization of a local report with a shared session."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol

from inspection_collab.domain.collaboration import SessionUpdate
from inspection_collab.domain.report import ReportPayload
from inspection_collab.services.editor import (
    CategorizedReportEditor,
    FlatReportEditor,
)
from inspection_collab.services.merge import MergeOutcome, MergeResult, ReportT
from inspection_collab.timeutils import now_ms

logger = logging.getLogger(__name__)


class CollaborationClient(Protocol):
    """Interface for calling the collaboration protocol."""

    async def send(
        self, action: str, fields: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Send one action and return the decoded success response."""

    async def status(self, session_id: str) -> dict[str, Any]:
        """Return session metadata without joining."""


@dataclass
class ReportSyncService(Generic[ReportT]):
    """Pushes local edits and pulls remote ones through the merge engine.

    Remote data is never accepted directly: joins, full updates and field
    updates all go through ``editor.merge``.
    """

    client: CollaborationClient
    editor: FlatReportEditor | CategorizedReportEditor
    user_id: str
    session_id: str | None = None
    last_update: int = 0
    user_count: int = 0
    clock: Callable[[], int] = now_ms

    async def create(self, share_local: bool = True) -> str:
        """Create a session seeded with the local report and join it."""
        seed = self.editor.export().to_wire() if share_local else None
        response = await self.client.send(
            "create", {"userId": self.user_id, "data": seed}
        )
        session_id = str(response["sessionId"])
        await self.join(session_id)
        return session_id

    async def join(
        self, session_id: str, share_local: bool = False
    ) -> MergeResult[ReportT] | None:
        """Join a session and merge its canonical data into the local report.

        With ``share_local`` the local report replaces the session data.
        """
        initial_data = self.editor.export().to_wire() if share_local else None
        response = await self.client.send(
            "join",
            {
                "sessionId": session_id,
                "userId": self.user_id,
                "initialData": initial_data,
            },
        )
        self.session_id = session_id
        self.last_update = 0
        self.user_count = int(response.get("userCount") or 0)
        payload = ReportPayload.from_wire(response.get("data"))
        if payload is None:
            return None
        return self.editor.merge(payload)

    async def push(self) -> None:
        """Publish the whole local report as a full update stamped at send time."""
        await self.client.send(
            "update",
            {
                "sessionId": self._require_session(),
                "userId": self.user_id,
                "type": "full",
                "data": self.editor.export().to_wire(),
                "timestamp": self.clock(),
            },
        )

    async def push_field(self, path: str, value: Any) -> None:
        """Publish a single field change, e.g. ``inspection.tag``."""
        await self.client.send(
            "update",
            {
                "sessionId": self._require_session(),
                "userId": self.user_id,
                "type": "field",
                "field": path,
                "value": value,
                "timestamp": self.clock(),
            },
        )

    async def pull(self) -> int:
        """Poll for remote updates and merge them; return how many applied."""
        response = await self.client.send(
            "poll",
            {
                "sessionId": self._require_session(),
                "userId": self.user_id,
                "lastUpdate": self.last_update,
            },
        )
        applied = 0
        for raw in response.get("updates") or []:
            update = SessionUpdate.model_validate(raw)
            if update.user_id == self.user_id:
                continue
            result = self.apply_update(update)
            if result is not None and result.outcome is MergeOutcome.APPLIED:
                applied += 1
        self.last_update = int(response.get("timestamp") or self.last_update)
        self.user_count = int(response.get("userCount") or 0)
        return applied

    def apply_update(self, update: SessionUpdate) -> MergeResult[ReportT] | None:
        """Merge one remote update event into the local report."""
        if update.type == "field":
            payload = ReportPayload.from_field(update.field or "", update.value)
        else:
            payload = ReportPayload.from_wire(update.data)
        if payload is None:
            logger.warning(
                "Ignoring unreadable update",
                extra={"type": update.type, "field": update.field},
            )
            return None
        return self.editor.merge(payload, server_timestamp=update.timestamp)

    async def leave(self) -> None:
        """Leave the current session, if any."""
        if self.session_id is None:
            return
        await self.client.send(
            "leave", {"sessionId": self.session_id, "userId": self.user_id}
        )
        self.session_id = None

    def _require_session(self) -> str:
        if self.session_id is None:
            raise RuntimeError("Not joined to a collaboration session")
        return self.session_id
