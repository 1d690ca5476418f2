"""Tests for container wiring."""

import asyncio

from workout_tracker.adapters.supabase_store import SupabaseDocumentStore
from workout_tracker.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.store, SupabaseDocumentStore)
    assert container.workout_sync.app_id == "test-app"
    assert container.entry_form.repository is container.workout_sync
    asyncio.run(container.close_resources())
