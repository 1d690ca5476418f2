"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import AsyncClient

from workout_tracker.adapters.supabase_store import SupabaseDocumentStore
from workout_tracker.config import Settings
from workout_tracker.services.entry_form import WorkoutEntryForm
from workout_tracker.services.store import RemoteStore
from workout_tracker.services.workouts import WorkoutSyncService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: RemoteStore
    workout_sync: WorkoutSyncService
    entry_form: WorkoutEntryForm
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = AsyncClient(
        resolved_settings.supabase_url, resolved_settings.supabase_anon_key
    )
    store = SupabaseDocumentStore(
        client=supabase_client, table=resolved_settings.documents_table
    )
    workout_sync = WorkoutSyncService(store=store, app_id=resolved_settings.app_id)
    entry_form = WorkoutEntryForm(workout_sync)

    async def close_resources() -> None:
        workout_sync.close()
        await store.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        workout_sync=workout_sync,
        entry_form=entry_form,
        close_resources=close_resources,
    )
