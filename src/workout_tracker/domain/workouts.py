"""Domain models for logged workouts."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

WORKOUT_TYPES: tuple[str, ...] = (
    "Running",
    "Lifting",
    "Yoga",
    "Cycling",
    "Swimming",
    "Walking",
)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class WorkoutRecord:
    """Represents a single logged workout session.

    The record does not validate its values; inputs are checked at the entry
    form before a record is built. ``id`` stays ``None`` until the store
    assigns one.
    """

    type: str
    duration_minutes: int
    calories_burned: int
    date: datetime = field(default_factory=_utc_now)
    notes: str | None = None
    id: str | None = None
