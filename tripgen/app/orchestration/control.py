"""Control-Plane Handlers - user-facing start, pause, resume, retry and status.

Each handler validates synchronously, persists its transition and, where the
run has work to do, hands the next step to the scheduler. Errors surface as
``GenerationError`` subclasses carrying their HTTP status.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from tripgen.app.db.context import RequestContext
from tripgen.app.db.repositories import Repositories, StaleRecordError
from tripgen.app.models.common import GenerationAction
from tripgen.app.models.generation import Accepted, GenerationRecord, StepRequest
from tripgen.app.models.places import PlacesCatalog
from tripgen.app.models.trip import TravelPreferences, Trip
from tripgen.app.orchestration.chaining import DispatchError, InvocationScheduler
from tripgen.app.orchestration.errors import ConflictError, ForbiddenError, NotFoundError
from tripgen.app.orchestration.records import mutate_record
from tripgen.app.orchestration.state import apply_pause, apply_resume, apply_retry, claim_start

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationControl:
    """Synchronous entry points for generation runs."""

    def __init__(
        self,
        repos: Repositories,
        scheduler: InvocationScheduler,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repos = repos
        self._scheduler = scheduler
        self._now = clock

    async def start(
        self,
        trip_id: UUID,
        ctx: RequestContext,
        preferences: TravelPreferences,
        places_catalog: PlacesCatalog | None = None,
    ) -> Accepted:
        """Claim the trip for a fresh run and schedule the summary step.

        Raises:
            NotFoundError: Unknown trip
            ForbiddenError: Trip belongs to another user
            ConflictError: A run is already active, or a concurrent start won
        """
        trip = await self._owned_trip(trip_id, ctx)

        existing = await self._repos.generations.get(trip_id)
        record = claim_start(
            existing,
            trip=trip,
            preferences=preferences,
            places_catalog=places_catalog,
            now=self._now(),
        )
        try:
            saved = await self._repos.generations.save(record)
        except StaleRecordError as e:
            raise ConflictError("Generation already running") from e

        logger.info(
            f"Generation started for trip {trip_id}",
            extra={
                "structured": {
                    "trip_id": str(trip_id),
                    "total_days": saved.total_days,
                    "catalog_places": (
                        sum(len(v) for v in places_catalog.values()) if places_catalog else 0
                    ),
                }
            },
        )
        await self._dispatch(StepRequest(trip_id=trip_id, action=GenerationAction.start))
        return Accepted(
            trip_id=trip_id,
            message="Generation started",
            total_days=saved.total_days,
        )

    async def pause(self, trip_id: UUID, ctx: RequestContext) -> Accepted:
        """Mark the run paused; the in-flight step stops at its next check.

        Raises:
            PreconditionError: Run is not active
        """
        await self._owned_record(trip_id, ctx)
        saved = await mutate_record(
            self._repos.generations, trip_id, lambda fresh: apply_pause(fresh, self._now())
        )
        return Accepted(trip_id=trip_id, message="Generation paused", total_days=saved.total_days)

    async def resume(self, trip_id: UUID, ctx: RequestContext) -> Accepted:
        """Resume a paused run from where it stopped.

        Raises:
            PreconditionError: Not paused, or nothing left to generate
        """
        await self._owned_record(trip_id, ctx)

        action = GenerationAction.continue_

        def mutate(fresh: GenerationRecord) -> GenerationRecord:
            nonlocal action
            updated, action = apply_resume(fresh, self._now())
            return updated

        saved = await mutate_record(self._repos.generations, trip_id, mutate)
        await self._dispatch(
            StepRequest(trip_id=trip_id, action=action, day_number=saved.current_day)
        )
        return Accepted(trip_id=trip_id, message="Generation resumed", total_days=saved.total_days)

    async def retry(
        self, trip_id: UUID, ctx: RequestContext, day_number: int | None = None
    ) -> Accepted:
        """Put one failed day (or all of them) back into generation.

        Raises:
            ConflictError: A run is active
            PreconditionError: No failed days, or ``day_number`` has not failed
        """
        await self._owned_record(trip_id, ctx)
        saved = await mutate_record(
            self._repos.generations,
            trip_id,
            lambda fresh: apply_retry(fresh, day_number, self._now()),
        )
        await self._dispatch(
            StepRequest(
                trip_id=trip_id, action=GenerationAction.retry, day_number=saved.current_day
            )
        )
        message = f"Retrying day {day_number}" if day_number else "Retrying failed days"
        return Accepted(trip_id=trip_id, message=message, total_days=saved.total_days)

    async def get_status(self, trip_id: UUID, ctx: RequestContext) -> GenerationRecord:
        """Current generation record for the caller's trip."""
        return await self._owned_record(trip_id, ctx)

    async def _owned_trip(self, trip_id: UUID, ctx: RequestContext) -> Trip:
        trip = await self._repos.trips.get_trip(trip_id)
        if trip is None:
            raise NotFoundError(f"Trip {trip_id} not found")
        if trip.user_id != ctx.user_id:
            raise ForbiddenError("Trip belongs to another user")
        return trip

    async def _owned_record(self, trip_id: UUID, ctx: RequestContext) -> GenerationRecord:
        record = await self._repos.generations.get(trip_id)
        if record is None:
            raise NotFoundError(f"No generation found for trip {trip_id}")
        if record.user_id != ctx.user_id:
            raise ForbiddenError("Trip belongs to another user")
        return record

    async def _dispatch(self, request: StepRequest) -> None:
        try:
            await self._scheduler.schedule(request)
        except DispatchError as e:
            logger.error(
                f"Failed to schedule generation step: {e}",
                extra={
                    "structured": {
                        "trip_id": str(request.trip_id),
                        "action": request.action.value,
                        "day": request.day_number,
                        "error": str(e),
                    }
                },
            )
