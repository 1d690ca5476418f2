"""Sync layer between workout records and the remote document store."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from workout_tracker.domain.workouts import WorkoutRecord
from workout_tracker.services.feed import RecordFeed, Snapshot
from workout_tracker.services.store import (
    RemoteStore,
    StoredDocument,
    StoreOutcome,
    Subscription,
)

DEFAULT_APP_ID = "default-app-id"
WORKOUTS_COLLECTION = "workouts"


class FailureKind(StrEnum):
    """Categories of store failures that are logged and absorbed."""

    AUTH = "auth"
    WRITE = "write"
    LISTEN = "listen"
    DECODE = "decode"


class DocumentDecodeError(ValueError):
    """Raised when a stored document cannot be mapped to a record."""


def collection_path_for(app_id: str, user_id: str) -> str:
    """Return the per-user workouts collection path."""
    return f"artifacts/{app_id}/users/{user_id}/{WORKOUTS_COLLECTION}"


def encode_record(record: WorkoutRecord) -> dict[str, object]:
    """Map a record to its stored fields.

    The id is assigned by the store. Notes are not written yet.
    """
    return {
        "type": record.type,
        "durationMinutes": record.duration_minutes,
        "caloriesBurned": record.calories_burned,
        "date": record.date,
    }


def decode_document(document: StoredDocument) -> WorkoutRecord:
    """Map a stored document to a record, filling defaults for absent fields."""
    fields = document.fields
    if not isinstance(fields, Mapping):
        raise DocumentDecodeError(f"fields must be a mapping, got {fields!r}")
    workout_type = fields.get("type")
    if workout_type is None:
        workout_type = "Unknown"
    elif not isinstance(workout_type, str):
        raise DocumentDecodeError(f"type must be a string, got {workout_type!r}")
    notes = fields.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise DocumentDecodeError(f"notes must be a string, got {notes!r}")
    return WorkoutRecord(
        id=document.id,
        type=workout_type,
        duration_minutes=_decode_int(fields.get("durationMinutes"), "durationMinutes"),
        calories_burned=_decode_int(fields.get("caloriesBurned"), "caloriesBurned"),
        date=_decode_date(fields.get("date")),
        notes=notes,
    )


def _decode_int(value: object, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise DocumentDecodeError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise DocumentDecodeError(f"{name} must be an integer, got {value!r}")


def _decode_date(value: object) -> datetime:
    if value is None:
        return datetime.now(tz=UTC)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError as exc:
            raise DocumentDecodeError(f"date is not ISO-8601: {value!r}") from exc
    if not isinstance(value, datetime):
        raise DocumentDecodeError(f"date must be a timestamp, got {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass
class WorkoutSyncService:
    """Keeps a live, date-sorted view of the current user's workouts.

    Signs in anonymously whenever the store reports no user, binds to the
    user's collection once signed in, and republishes the full list on every
    snapshot. Store failures are logged through ``logger`` and never raised.
    """

    store: RemoteStore
    app_id: str = DEFAULT_APP_ID
    feed: RecordFeed = field(default_factory=RecordFeed)
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger(__name__)
    )
    _user_id: str | None = field(default=None, init=False)
    _collection_path: str | None = field(default=None, init=False)
    _subscription: Subscription | None = field(default=None, init=False)
    _auth_registration: Subscription | None = field(default=None, init=False)
    _sign_in_pending: bool = field(default=False, init=False)
    _generation: int = field(default=0, init=False)

    @property
    def user_id(self) -> str | None:
        """Return the signed-in user id, if any."""
        return self._user_id

    @property
    def collection_path(self) -> str | None:
        """Return the bound collection path, if any."""
        return self._collection_path

    @property
    def records(self) -> Snapshot:
        """Return the latest published snapshot."""
        return self.feed.current

    def start(self) -> None:
        """Begin listening for auth state changes."""
        if self._auth_registration is not None:
            return
        self._auth_registration = self.store.on_auth_state_changed(
            self._on_auth_state_changed
        )

    def close(self) -> None:
        """Drop the active subscription and the auth listener."""
        self._drop_subscription()
        if self._auth_registration is not None:
            self._auth_registration.unsubscribe()
            self._auth_registration = None

    def observe_records(self) -> RecordFeed:
        """Return the live feed of workout snapshots."""
        return self.feed

    def add_record(self, record: WorkoutRecord) -> None:
        """Write a record to the user's collection without waiting for it.

        The record shows up through the feed once the store reports the
        change; failures are only logged.
        """
        if self._user_id is None or self._collection_path is None:
            self.logger.warning("Attempted to add workout before authentication")
            return
        path = self._collection_path
        self.store.collection(path).add_document(
            encode_record(record),
            lambda outcome: self._on_write_complete(path, outcome),
        )

    def _on_auth_state_changed(self, user_id: str | None) -> None:
        if user_id is None:
            if self._user_id is not None:
                self.logger.info("User signed out: %s", self._user_id)
                self._user_id = None
                self._drop_subscription()
                self.feed.publish(())
            self._ensure_authenticated()
            return
        if user_id == self._user_id and self._subscription is not None:
            return
        self._user_id = user_id
        self.logger.info("User signed in: %s", user_id)
        self._bind_user_collection(user_id)

    def _ensure_authenticated(self) -> None:
        if self._sign_in_pending:
            return
        self._sign_in_pending = True
        self.store.sign_in_anonymously(self._on_sign_in_complete)

    def _on_sign_in_complete(self, outcome: StoreOutcome) -> None:
        self._sign_in_pending = False
        if outcome.ok:
            self.logger.info("Anonymous sign in successful")
            return
        self.logger.error(
            "Anonymous sign in failed: %s",
            outcome.error,
            extra={"failure_kind": FailureKind.AUTH},
        )

    def _bind_user_collection(self, user_id: str) -> None:
        self._drop_subscription()
        path = collection_path_for(self.app_id, user_id)
        self._collection_path = path
        self._generation += 1
        generation = self._generation
        self.logger.info("Workout collection bound at %s", path)
        self._subscription = self.store.collection(path).subscribe(
            lambda documents, error: self._on_snapshot(generation, documents, error)
        )

    def _drop_subscription(self) -> None:
        self._generation += 1
        self._collection_path = None
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_snapshot(
        self,
        generation: int,
        documents: list[StoredDocument] | None,
        error: str | None,
    ) -> None:
        if generation != self._generation:
            return
        if error is not None:
            self.logger.error(
                "Listen failed on %s: %s",
                self._collection_path,
                error,
                extra={"failure_kind": FailureKind.LISTEN},
            )
            return
        if documents is None:
            return
        records: list[WorkoutRecord] = []
        for document in documents:
            try:
                records.append(decode_document(document))
            except DocumentDecodeError as exc:
                self.logger.error(
                    "Error converting document %s: %s",
                    document.id,
                    exc,
                    extra={"failure_kind": FailureKind.DECODE},
                )
        records.sort(key=lambda record: record.date, reverse=True)
        self.feed.publish(records)
        self.logger.debug("Workouts updated: %d items", len(records))

    def _on_write_complete(self, path: str, outcome: StoreOutcome) -> None:
        if outcome.ok:
            self.logger.info("Workout added: %s", outcome.value)
            return
        self.logger.error(
            "Error adding workout to %s: %s",
            path,
            outcome.error,
            extra={"failure_kind": FailureKind.WRITE},
        )
