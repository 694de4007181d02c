"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import datetime

import pytest

from inspection_collab.config import Settings
from inspection_collab.containers import AppContainer
from inspection_collab.domain.collaboration import SessionRecord
from inspection_collab.services.collaboration import (
    CollaborationService,
    SessionRepository,
)
from inspection_collab.services.local_store import SnapshotStore
from inspection_collab.services.spell_check import SpellCheckClient, SpellCheckService
from inspection_collab.timeutils import from_ms

START_MS = 1_700_000_000_000


@dataclass
class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    now: int = START_MS

    def __call__(self) -> int:
        return self.now

    def advance(self, milliseconds: int) -> int:
        self.now += milliseconds
        return self.now


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory shared session repository for tests."""

    clock: FakeClock = field(default_factory=FakeClock)
    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    creators: dict[str, str] = field(default_factory=dict)
    writes: int = 0

    def create_session(
        self,
        session_id: str,
        data: str,
        expires_at: datetime,
        creator_id: str,
    ) -> SessionRecord:
        now = from_ms(self.clock())
        record = SessionRecord(
            session_id=session_id,
            data=data,
            created_at=now,
            updated_at=now,
            expires_at=expires_at,
        )
        self.sessions[session_id] = record
        self.creators[session_id] = creator_id
        return record

    def get_session(self, session_id: str) -> SessionRecord | None:
        return self.sessions.get(session_id)

    def update_session(self, session_id: str, data: str) -> None:
        record = self.sessions[session_id]
        self.sessions[session_id] = SessionRecord(
            session_id=session_id,
            data=data,
            created_at=record.created_at,
            updated_at=from_ms(self.clock()),
            expires_at=record.expires_at,
        )
        self.writes += 1

    def delete_session(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)


@dataclass
class InMemorySnapshotStore(SnapshotStore):
    """Snapshot store keeping the envelope in memory."""

    envelope: dict[str, object] | None = None
    writes: int = 0

    def read(self) -> dict[str, object] | None:
        return self.envelope

    def write(self, envelope: dict[str, object]) -> None:
        self.envelope = envelope
        self.writes += 1


@dataclass
class FakeSpellCheckClient(SpellCheckClient):
    """Fake language model returning a fixed answer."""

    answer: str = '{"errors": []}'
    error: Exception | None = None
    calls: list[dict[str, str]] = field(default_factory=list)

    async def complete(self, *, model: str, instructions: str, prompt: str) -> str:
        self.calls.append(
            {"model": model, "instructions": instructions, "prompt": prompt}
        )
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
        public_base_url="https://reports.example.com",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_repository(clock: FakeClock) -> InMemorySessionRepository:
    return InMemorySessionRepository(clock=clock)


@pytest.fixture
def collaboration_service(
    session_repository: InMemorySessionRepository, clock: FakeClock
) -> CollaborationService:
    return CollaborationService(
        repository=session_repository,
        public_base_url="https://reports.example.com",
        clock=clock,
    )


@pytest.fixture
def spell_check_client() -> FakeSpellCheckClient:
    return FakeSpellCheckClient()


@pytest.fixture
def container(
    settings: Settings,
    collaboration_service: CollaborationService,
    spell_check_client: FakeSpellCheckClient,
) -> AppContainer:
    spell_check_service = SpellCheckService(
        client=spell_check_client, model=settings.openai_model
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        collaboration_service=collaboration_service,
        spell_check_service=spell_check_service,
        close_resources=close_resources,
    )
