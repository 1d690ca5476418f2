"""Supabase-backed document store."""

import asyncio
import logging
from collections.abc import Coroutine, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from itertools import count
from typing import Any

from supabase import AsyncClient

from workout_tracker.services.store import (
    AuthHandler,
    CollectionHandle,
    OutcomeHandler,
    RemoteStore,
    SnapshotHandler,
    StoredDocument,
    StoreOutcome,
)

logger = logging.getLogger(__name__)

_channel_ids = count(1)


def encode_fields(fields: Mapping[str, object]) -> dict[str, object]:
    """Convert document fields to JSON-compatible values."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


def _user_id_from_session(session: Any) -> str | None:
    if session is None or getattr(session, "user", None) is None:
        return None
    return str(session.user.id)


class _TaskRunner:
    """Runs fire-and-forget coroutines on the current event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


@dataclass
class _AuthRegistration:
    handler: AuthHandler
    listener: Any = None
    active: bool = True

    def unsubscribe(self) -> None:
        self.active = False
        if self.listener is not None:
            self.listener.unsubscribe()
            self.listener = None


@dataclass
class _ChannelSubscription:
    client: AsyncClient
    runner: _TaskRunner
    channel: Any = None
    active: bool = True
    reloading: bool = False
    dirty: bool = False

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self.channel is not None:
            self.runner.spawn(self._remove(self.channel))
            self.channel = None

    async def _remove(self, channel: Any) -> None:
        try:
            await self.client.remove_channel(channel)
        except Exception:
            logger.exception("Failed to remove realtime channel")


@dataclass
class SupabaseCollection(CollectionHandle):
    """A collection stored as rows of a shared documents table."""

    client: AsyncClient
    table: str
    path: str
    runner: _TaskRunner

    def add_document(
        self, fields: Mapping[str, object], on_complete: OutcomeHandler
    ) -> None:
        """Insert a document row and report its generated id."""
        self.runner.spawn(self._insert(encode_fields(fields), on_complete))

    def subscribe(self, handler: SnapshotHandler) -> _ChannelSubscription:
        """Load the collection and reload it on every realtime change."""
        subscription = _ChannelSubscription(client=self.client, runner=self.runner)
        self.runner.spawn(self._listen(subscription, handler))
        return subscription

    async def fetch_documents(self) -> list[StoredDocument]:
        """Return every document in the collection."""
        response = (
            await self.client.table(self.table)
            .select("id, fields")
            .eq("collection_path", self.path)
            .execute()
        )
        return [
            StoredDocument(id=str(row["id"]), fields=row.get("fields") or {})
            for row in response.data or []
        ]

    async def _insert(
        self, payload: dict[str, object], on_complete: OutcomeHandler
    ) -> None:
        try:
            response = (
                await self.client.table(self.table)
                .insert({"collection_path": self.path, "fields": payload})
                .execute()
            )
        except Exception as exc:
            on_complete(StoreOutcome.failure(str(exc)))
            return
        if not response.data:
            on_complete(StoreOutcome.failure("Insert returned no rows"))
            return
        on_complete(StoreOutcome.success(str(response.data[0]["id"])))

    async def _listen(
        self, subscription: _ChannelSubscription, handler: SnapshotHandler
    ) -> None:
        def on_change(_payload: dict[str, Any]) -> None:
            self._request_reload(subscription, handler)

        try:
            channel = self.client.channel(f"workouts-{next(_channel_ids)}")
            channel.on_postgres_changes(
                event="*",
                callback=on_change,
                table=self.table,
                schema="public",
                filter=f"collection_path=eq.{self.path}",
            )
            await channel.subscribe()
        except Exception as exc:
            handler(None, str(exc))
            return
        if not subscription.active:
            await subscription._remove(channel)
            return
        subscription.channel = channel
        self._request_reload(subscription, handler)

    def _request_reload(
        self, subscription: _ChannelSubscription, handler: SnapshotHandler
    ) -> None:
        if not subscription.active:
            return
        if subscription.reloading:
            subscription.dirty = True
            return
        subscription.reloading = True
        self.runner.spawn(self._reload(subscription, handler))

    async def _reload(
        self, subscription: _ChannelSubscription, handler: SnapshotHandler
    ) -> None:
        # One reload in flight per subscription; changes seen meanwhile queue one more.
        try:
            while subscription.active:
                subscription.dirty = False
                await self._deliver(subscription, handler)
                if not subscription.dirty:
                    break
        finally:
            subscription.reloading = False

    async def _deliver(
        self, subscription: _ChannelSubscription, handler: SnapshotHandler
    ) -> None:
        try:
            documents = await self.fetch_documents()
        except Exception as exc:
            if subscription.active:
                handler(None, str(exc))
            return
        if subscription.active:
            handler(documents, None)


@dataclass
class SupabaseDocumentStore(RemoteStore):
    """Supabase implementation of the remote document store."""

    client: AsyncClient
    table: str = "documents"
    runner: _TaskRunner = field(default_factory=_TaskRunner)

    def on_auth_state_changed(self, handler: AuthHandler) -> _AuthRegistration:
        """Forward auth changes as user ids, starting with the current session."""
        registration = _AuthRegistration(handler=handler)

        def on_change(_event: Any, session: Any) -> None:
            if registration.active:
                handler(_user_id_from_session(session))

        registration.listener = self.client.auth.on_auth_state_change(on_change)
        self.runner.spawn(self._report_current_session(registration))
        return registration

    def sign_in_anonymously(self, on_complete: OutcomeHandler) -> None:
        """Start an anonymous sign-in; the outcome carries the user id."""
        self.runner.spawn(self._sign_in(on_complete))

    def collection(self, path: str) -> SupabaseCollection:
        """Return a handle for documents stored under ``path``."""
        return SupabaseCollection(
            client=self.client, table=self.table, path=path, runner=self.runner
        )

    async def close(self) -> None:
        """Finish pending calls and drop realtime channels."""
        await self.runner.drain()
        if self.client.get_channels():
            await self.client.remove_all_channels()

    async def _report_current_session(self, registration: _AuthRegistration) -> None:
        try:
            session = await self.client.auth.get_session()
        except Exception:
            logger.exception("Failed to read current auth session")
            session = None
        if registration.active:
            registration.handler(_user_id_from_session(session))

    async def _sign_in(self, on_complete: OutcomeHandler) -> None:
        try:
            response = await self.client.auth.sign_in_anonymously()
        except Exception as exc:
            on_complete(StoreOutcome.failure(str(exc)))
            return
        user = getattr(response, "user", None)
        on_complete(StoreOutcome.success(str(user.id) if user else None))
