"""Input validation for new workout entries."""

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from workout_tracker.domain.workouts import WORKOUT_TYPES, WorkoutRecord

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT_MAX = 2**31 - 1


class WorkoutSink(Protocol):
    """Destination for accepted workouts."""

    def add_record(self, record: WorkoutRecord) -> None:
        """Persist a workout record."""


def _parse_int(text: str) -> int | None:
    if not _INT_PATTERN.fullmatch(text):
        return None
    value = int(text)
    if not -_INT_MAX - 1 <= value <= _INT_MAX:
        return None
    return value


@dataclass
class WorkoutEntryForm:
    """Turns raw form input into a workout and hands it to the repository."""

    repository: WorkoutSink
    workout_types: tuple[str, ...] = WORKOUT_TYPES

    def validate_and_build(
        self, workout_type: str, duration_text: str, calories_text: str
    ) -> WorkoutRecord | None:
        """Validate input and submit the workout.

        Returns the submitted record, or None when the input is rejected. A
        returned record only means the input was valid, not that it was
        saved.
        """
        duration = _parse_int(duration_text)
        calories = _parse_int(calories_text)
        if (
            not workout_type.strip()
            or duration is None
            or calories is None
            or duration <= 0
            or calories <= 0
        ):
            return None

        record = WorkoutRecord(
            type=workout_type,
            duration_minutes=duration,
            calories_burned=calories,
            date=datetime.now(tz=UTC),
        )
        self.repository.add_record(record)
        return record
