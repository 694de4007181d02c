"""Domain models for shared collaboration sessions."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UpdateKind = Literal["full", "field"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted shared session row."""

    session_id: str
    data: str
    created_at: datetime
    updated_at: datetime
    expires_at: datetime


class Participant(_CamelModel):
    """Connected participant with liveness timestamps in epoch ms."""

    id: str
    joined_at: int
    last_seen: int


class SessionUpdate(_CamelModel):
    """Update event recorded for other participants to poll."""

    user_id: str | None = None
    type: UpdateKind = "full"
    data: dict[str, Any] | None = None
    field: str | None = None
    value: Any = None
    timestamp: int


class SessionState(_CamelModel):
    """Serialized payload stored inside a session record."""

    data: dict[str, Any] | None = None
    users: dict[str, Participant] = Field(default_factory=dict)
    updates: list[SessionUpdate] = Field(default_factory=list)
    last_updated: int = 0


class CollaborationRequest(_CamelModel):
    """Action-multiplexed request body of the collaboration endpoint."""

    action: str = ""
    session_id: str | None = None
    user_id: str | None = None
    data: dict[str, Any] | None = None
    type: UpdateKind | None = None
    field: str | None = None
    value: Any = None
    timestamp: int | None = None
    last_update: int | None = None
    initial_data: dict[str, Any] | None = None


@dataclass(frozen=True)
class CreatedSession:
    """Result of creating a session."""

    session_id: str
    share_link: str


@dataclass(frozen=True)
class SessionSnapshot:
    """Canonical session data with the current participant count."""

    session_id: str
    data: dict[str, Any] | None
    user_count: int


@dataclass(frozen=True)
class PollResult:
    """Updates newer than the caller's cursor."""

    updates: list[SessionUpdate]
    user_count: int
    timestamp: int


@dataclass(frozen=True)
class SessionStatus:
    """Session metadata returned without joining."""

    created_at: int
    last_updated: int
    user_count: int
