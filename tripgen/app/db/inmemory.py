"""In-memory implementations of repository interfaces."""

import uuid
from datetime import datetime, timezone

from tripgen.app.db.repositories import (
    AIRequestLogRecord,
    MissingPlanError,
    Repositories,
    StaleRecordError,
)
from tripgen.app.models.generation import GenerationRecord
from tripgen.app.models.itinerary import ItineraryDay, TripPlan
from tripgen.app.models.trip import Trip


class InMemoryTripRepository:
    """In-memory implementation of TripRepository."""

    def __init__(self) -> None:
        self._trips: dict[uuid.UUID, Trip] = {}

    def add_trip(self, trip: Trip) -> None:
        """Register a trip (seed data and tests)."""
        self._trips[trip.trip_id] = trip

    async def get_trip(self, trip_id: uuid.UUID) -> Trip | None:
        """Get trip by ID."""
        return self._trips.get(trip_id)


class InMemoryGenerationRepository:
    """In-memory implementation of GenerationRepository with version checks."""

    def __init__(self) -> None:
        self._records: dict[uuid.UUID, GenerationRecord] = {}
        self.save_count = 0

    async def get(self, trip_id: uuid.UUID) -> GenerationRecord | None:
        """Get a copy of the stored record."""
        record = self._records.get(trip_id)
        return record.model_copy(deep=True) if record else None

    async def save(self, record: GenerationRecord) -> GenerationRecord:
        """Compare-and-swap save."""
        stored = self._records.get(record.trip_id)
        stored_version = stored.version if stored else 0

        if stored is None and record.version != 0:
            raise StaleRecordError(f"generation record for {record.trip_id} no longer exists")
        if stored_version != record.version:
            raise StaleRecordError(
                f"generation record for {record.trip_id} is at version {stored_version}, "
                f"caller read {record.version}"
            )

        saved = record.model_copy(deep=True, update={"version": record.version + 1})
        self._records[record.trip_id] = saved
        self.save_count += 1
        return saved.model_copy(deep=True)


class InMemoryPlanRepository:
    """In-memory implementation of PlanRepository."""

    def __init__(self) -> None:
        self._plans: dict[uuid.UUID, TripPlan] = {}

    async def get_plan(self, trip_id: uuid.UUID) -> TripPlan | None:
        """Get a copy of the stored plan."""
        plan = self._plans.get(trip_id)
        return plan.model_copy(deep=True) if plan else None

    async def save_plan(self, plan: TripPlan) -> None:
        """Create or replace a plan."""
        self._plans[plan.trip_id] = plan.model_copy(deep=True)

    async def save_day(self, trip_id: uuid.UUID, day: ItineraryDay) -> TripPlan:
        """Overwrite one day of the plan."""
        plan = self._plans.get(trip_id)
        if plan is None:
            raise MissingPlanError(f"no plan for trip {trip_id}")

        updated = plan.with_day(day, datetime.now(timezone.utc))
        self._plans[trip_id] = updated
        return updated.model_copy(deep=True)


class InMemoryAIRequestLogRepository:
    """In-memory implementation of AIRequestLogRepository."""

    def __init__(self) -> None:
        self._entries: list[AIRequestLogRecord] = []

    async def append(self, entry: AIRequestLogRecord) -> None:
        """Store one entry."""
        self._entries.append(entry)

    async def list_for_trip(self, trip_id: uuid.UUID) -> list[AIRequestLogRecord]:
        """List a trip's entries in start order."""
        entries = [e for e in self._entries if e.trip_id == trip_id]
        return sorted(entries, key=lambda e: e.started_at)


def create_inmemory_repositories() -> Repositories:
    """Fresh in-memory repository bundle."""
    return Repositories(
        trips=InMemoryTripRepository(),
        generations=InMemoryGenerationRepository(),
        plans=InMemoryPlanRepository(),
        ai_logs=InMemoryAIRequestLogRepository(),
    )
