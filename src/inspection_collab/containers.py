"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from inspection_collab.adapters.openai_spell_check_client import (
    OpenAISpellCheckClient,
)
from inspection_collab.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from inspection_collab.config import Settings, resolve_share_base_url
from inspection_collab.services.collaboration import CollaborationService
from inspection_collab.services.spell_check import SpellCheckService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    collaboration_service: CollaborationService
    spell_check_service: SpellCheckService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    collaboration_service = CollaborationService(
        repository=SupabaseSessionRepository(supabase_client),
        public_base_url=resolve_share_base_url(
            resolved_settings.public_base_url, resolved_settings.vercel_url
        ),
        session_ttl=timedelta(hours=resolved_settings.session_ttl_hours),
        inactivity_window_ms=resolved_settings.inactivity_window_seconds * 1000,
    )
    spell_check_client = OpenAISpellCheckClient.create(resolved_settings.openai_api_key)
    spell_check_service = SpellCheckService(
        client=spell_check_client,
        model=resolved_settings.openai_model,
    )

    async def close_resources() -> None:
        await spell_check_client.close()

    return AppContainer(
        settings=resolved_settings,
        collaboration_service=collaboration_service,
        spell_check_service=spell_check_service,
        close_resources=close_resources,
    )
