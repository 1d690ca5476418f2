"""Interfaces for the remote document store."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class StoredDocument:
    """A document as returned by a collection snapshot."""

    id: str
    fields: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class StoreOutcome:
    """Completion result of an asynchronous store call."""

    ok: bool
    value: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: str | None = None) -> "StoreOutcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str | None) -> "StoreOutcome":
        return cls(ok=False, error=error)


AuthHandler = Callable[[str | None], None]
OutcomeHandler = Callable[[StoreOutcome], None]
SnapshotHandler = Callable[[list[StoredDocument] | None, str | None], None]


class Subscription(Protocol):
    """Handle for a registered listener."""

    def unsubscribe(self) -> None:
        """Stop delivering events to the listener."""


class CollectionHandle(Protocol):
    """A reference to a collection of documents."""

    def add_document(
        self, fields: Mapping[str, object], on_complete: OutcomeHandler
    ) -> None:
        """Insert a document; the outcome value carries the generated id."""

    def subscribe(self, handler: SnapshotHandler) -> Subscription:
        """Deliver the full collection on every change."""


class RemoteStore(Protocol):
    """Document store with authentication."""

    def on_auth_state_changed(self, handler: AuthHandler) -> Subscription:
        """Report the current user id (or None) now and on every change."""

    def sign_in_anonymously(self, on_complete: OutcomeHandler) -> None:
        """Start an anonymous sign-in."""

    def collection(self, path: str) -> CollectionHandle:
        """Return a handle for the collection at ``path``."""
