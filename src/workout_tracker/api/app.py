"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from workout_tracker.api.models import WorkoutEntry, WorkoutOut
from workout_tracker.app_logging import configure_logging
from workout_tracker.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.workout_sync.start()
        logger.info("Workout sync started")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def session(request: Request) -> dict[str, str | None]:
        """Return the current anonymous session binding."""
        state_container: AppContainer = request.app.state.container
        return {
            "user_id": state_container.workout_sync.user_id,
            "collection_path": state_container.workout_sync.collection_path,
        }

    @app.get("/workout-types")
    async def workout_types(request: Request) -> dict[str, list[str]]:
        """Return suggested workout types."""
        state_container: AppContainer = request.app.state.container
        return {"workout_types": list(state_container.entry_form.workout_types)}

    @app.get("/workouts")
    async def list_workouts(request: Request) -> dict[str, list[WorkoutOut]]:
        """Return the current snapshot, most recent first."""
        state_container: AppContainer = request.app.state.container
        records = state_container.workout_sync.observe_records().current
        return {"workouts": [WorkoutOut.from_record(record) for record in records]}

    @app.post("/workouts", status_code=status.HTTP_202_ACCEPTED)
    async def add_workout(entry: WorkoutEntry, request: Request) -> dict[str, str]:
        """Validate and submit a workout; acceptance does not imply it was saved."""
        state_container: AppContainer = request.app.state.container
        record = state_container.entry_form.validate_and_build(
            entry.type, str(entry.duration), str(entry.calories)
        )
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Type must be set; duration and calories must be positive "
                "whole numbers.",
            )
        return {"status": "accepted"}

    return app
