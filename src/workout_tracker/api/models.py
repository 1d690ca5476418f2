"""Pydantic models for the workouts API."""

from datetime import datetime

from pydantic import BaseModel

from workout_tracker.domain.workouts import WorkoutRecord


class WorkoutEntry(BaseModel):
    """Raw form input for a new workout."""

    type: str
    duration: str | int
    calories: str | int


class WorkoutOut(BaseModel):
    """A workout as returned by the API."""

    id: str | None
    type: str
    duration_minutes: int
    calories_burned: int
    date: datetime
    notes: str | None = None

    @classmethod
    def from_record(cls, record: WorkoutRecord) -> "WorkoutOut":
        return cls(
            id=record.id,
            type=record.type,
            duration_minutes=record.duration_minutes,
            calories_burned=record.calories_burned,
            date=record.date,
            notes=record.notes,
        )
