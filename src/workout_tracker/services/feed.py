"""Publish/subscribe channel for workout snapshots."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable

from workout_tracker.domain.workouts import WorkoutRecord

Snapshot = tuple[WorkoutRecord, ...]
SnapshotListener = Callable[[Snapshot], None]

logger = logging.getLogger(__name__)


class RecordFeed:
    """Holds the latest snapshot and fans it out to listeners.

    Every publish replaces the previous snapshot as a whole; listeners never
    see partial updates.
    """

    def __init__(self) -> None:
        self._current: Snapshot = ()
        self._listeners: list[SnapshotListener] = []
        self._waiters: list[asyncio.Queue[Snapshot]] = []

    @property
    def current(self) -> Snapshot:
        """Return the latest published snapshot."""
        return self._current

    def publish(self, records: Iterable[WorkoutRecord]) -> None:
        """Replace the current snapshot and notify listeners."""
        snapshot = tuple(records)
        self._current = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")
        for queue in self._waiters:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(snapshot)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)
        try:
            listener(self._current)
        except Exception:
            logger.exception("Snapshot listener failed")

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def stream(self) -> AsyncIterator[Snapshot]:
        """Yield the current snapshot, then each new one (latest wins)."""
        queue: asyncio.Queue[Snapshot] = asyncio.Queue(maxsize=1)
        queue.put_nowait(self._current)
        self._waiters.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._waiters.remove(queue)
