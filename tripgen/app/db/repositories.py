"""Repository protocol interfaces for data access."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from tripgen.app.models.generation import GenerationRecord
from tripgen.app.models.itinerary import ItineraryDay, TripPlan
from tripgen.app.models.trip import Trip


class StaleRecordError(Exception):
    """A compare-and-swap save found a newer version than the one read."""

    pass


class MissingPlanError(LookupError):
    """A day was written for a trip that has no plan yet."""

    pass


@dataclass
class AIRequestLogRecord:
    """One completion call, for monitoring and cost tracking."""

    request_id: UUID
    trip_id: UUID | None
    user_id: UUID | None
    endpoint: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_cents: int
    duration_ms: int
    started_at: datetime
    completed_at: datetime
    status: str
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class TripRepository(Protocol):
    """Read access to trips."""

    async def get_trip(self, trip_id: UUID) -> Trip | None:
        """Get trip by ID.

        Args:
            trip_id: Trip ID

        Returns:
            Trip or None if not found
        """
        ...


class GenerationRepository(Protocol):
    """Durable store for generation records (one per trip)."""

    async def get(self, trip_id: UUID) -> GenerationRecord | None:
        """Get the generation record for a trip.

        Args:
            trip_id: Trip ID

        Returns:
            Record or None if generation was never started
        """
        ...

    async def save(self, record: GenerationRecord) -> GenerationRecord:
        """Compare-and-swap save.

        ``record.version`` is the version the caller read (0 for a record
        that has never been stored). The write succeeds only if the stored
        version still equals it.

        Args:
            record: Record to persist

        Returns:
            The stored record with its version incremented

        Raises:
            StaleRecordError: If another writer saved first
        """
        ...


class PlanRepository(Protocol):
    """Store for trip plans and their itinerary days."""

    async def get_plan(self, trip_id: UUID) -> TripPlan | None:
        """Get the plan for a trip, or None."""
        ...

    async def save_plan(self, plan: TripPlan) -> None:
        """Create or replace a whole plan."""
        ...

    async def save_day(self, trip_id: UUID, day: ItineraryDay) -> TripPlan:
        """Write one day into the plan, replacing any stored day with the same number.

        Args:
            trip_id: Trip ID
            day: Generated day

        Returns:
            Updated plan

        Raises:
            MissingPlanError: If the trip has no plan
        """
        ...


class AIRequestLogRepository(Protocol):
    """Append-only log of completion calls."""

    async def append(self, entry: AIRequestLogRecord) -> None:
        """Store one log entry."""
        ...

    async def list_for_trip(self, trip_id: UUID) -> list[AIRequestLogRecord]:
        """List a trip's log entries ordered by start time."""
        ...


@dataclass
class Repositories:
    """Bundle of the stores one generation run touches."""

    trips: TripRepository
    generations: GenerationRepository
    plans: PlanRepository
    ai_logs: AIRequestLogRepository
