"""SQL implementations of repository interfaces (SQLAlchemy async)."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tripgen.app.db.models import AIRequestLog, GenerationState
from tripgen.app.db.models import Trip as TripRow
from tripgen.app.db.models import TripPlan as TripPlanRow
from tripgen.app.db.repositories import (
    AIRequestLogRecord,
    MissingPlanError,
    Repositories,
    StaleRecordError,
)
from tripgen.app.models.generation import GenerationRecord
from tripgen.app.models.itinerary import ItineraryDay, TripPlan
from tripgen.app.models.trip import Trip


def _record_to_row_values(record: GenerationRecord) -> dict[str, Any]:
    data = record.model_dump(mode="json")
    return {
        "trip_id": record.trip_id,
        "user_id": record.user_id,
        "status": record.status.value,
        "total_days": record.total_days,
        "current_day": record.current_day,
        "pending_days": data["pending_days"],
        "completed_days": data["completed_days"],
        "failed_days": data["failed_days"],
        "retry_count": record.retry_count,
        "summary_result": data["summary_result"],
        "places_catalog": data["places_catalog"],
        "preferences": data["preferences"],
        "error_message": record.error_message,
        "linking_metrics": data["linking_metrics"],
        "version": record.version,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


def _row_to_record(row: GenerationState) -> GenerationRecord:
    return GenerationRecord.model_validate(
        {
            "trip_id": row.trip_id,
            "user_id": row.user_id,
            "status": row.status,
            "total_days": row.total_days,
            "current_day": row.current_day,
            "pending_days": row.pending_days,
            "completed_days": row.completed_days,
            "failed_days": row.failed_days,
            "retry_count": row.retry_count,
            "summary_result": row.summary_result,
            "places_catalog": row.places_catalog,
            "preferences": row.preferences,
            "error_message": row.error_message,
            "linking_metrics": row.linking_metrics or {},
            "version": row.version,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


class SqlTripRepository:
    """SQL implementation of TripRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_trip(self, trip_id: uuid.UUID) -> Trip | None:
        """Get trip by ID."""
        async with self._session_factory() as session:
            row = await session.get(TripRow, trip_id)
            if row is None:
                return None
            return Trip(
                trip_id=row.trip_id,
                user_id=row.user_id,
                destination=row.destination,
                origin=row.origin,
                start_date=row.start_date,
                end_date=row.end_date,
                travelers=row.travelers,
            )

    async def add_trip(self, trip: Trip) -> None:
        """Insert a trip (seed data and tests)."""
        async with self._session_factory() as session:
            session.add(
                TripRow(
                    trip_id=trip.trip_id,
                    user_id=trip.user_id,
                    destination=trip.destination,
                    origin=trip.origin,
                    start_date=trip.start_date,
                    end_date=trip.end_date,
                    travelers=trip.travelers,
                )
            )
            await session.commit()


class SqlGenerationRepository:
    """SQL implementation of GenerationRepository.

    Saves are a conditional UPDATE on ``version``; a first save is an INSERT
    that loses to any concurrent first save through the primary key.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, trip_id: uuid.UUID) -> GenerationRecord | None:
        """Get the generation record for a trip."""
        async with self._session_factory() as session:
            row = await session.get(GenerationState, trip_id)
            return _row_to_record(row) if row else None

    async def save(self, record: GenerationRecord) -> GenerationRecord:
        """Compare-and-swap save."""
        saved = record.model_copy(update={"version": record.version + 1})
        values = _record_to_row_values(saved)

        async with self._session_factory() as session:
            if record.version == 0:
                session.add(GenerationState(**values))
                try:
                    await session.commit()
                except IntegrityError as e:
                    await session.rollback()
                    raise StaleRecordError(
                        f"generation record for {record.trip_id} already exists"
                    ) from e
                return saved

            result = await session.execute(
                update(GenerationState)
                .where(GenerationState.trip_id == record.trip_id)
                .where(GenerationState.version == record.version)
                .values(**values)
            )
            if result.rowcount != 1:
                await session.rollback()
                raise StaleRecordError(
                    f"generation record for {record.trip_id} changed since version {record.version}"
                )
            await session.commit()
            return saved


class SqlPlanRepository:
    """SQL implementation of PlanRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_plan(self, trip_id: uuid.UUID) -> TripPlan | None:
        """Get the plan for a trip."""
        async with self._session_factory() as session:
            row = await session.get(TripPlanRow, trip_id)
            return TripPlan.model_validate(row.data) if row else None

    async def save_plan(self, plan: TripPlan) -> None:
        """Create or replace a plan."""
        async with self._session_factory() as session:
            row = await session.get(TripPlanRow, plan.trip_id)
            data = plan.model_dump(mode="json")
            if row is None:
                session.add(
                    TripPlanRow(
                        trip_id=plan.trip_id,
                        user_id=plan.user_id,
                        data=data,
                        version=plan.version,
                        created_at=plan.created_at,
                        updated_at=plan.updated_at,
                    )
                )
            else:
                row.data = data
                row.version = plan.version
                row.updated_at = plan.updated_at
            await session.commit()

    async def save_day(self, trip_id: uuid.UUID, day: ItineraryDay) -> TripPlan:
        """Overwrite one day of the plan."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TripPlanRow).where(TripPlanRow.trip_id == trip_id).with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise MissingPlanError(f"no plan for trip {trip_id}")

            plan = TripPlan.model_validate(row.data).with_day(day, datetime.now(timezone.utc))
            row.data = plan.model_dump(mode="json")
            row.version = plan.version
            row.updated_at = plan.updated_at
            await session.commit()
            return plan


class SqlAIRequestLogRepository:
    """SQL implementation of AIRequestLogRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, entry: AIRequestLogRecord) -> None:
        """Store one log entry."""
        async with self._session_factory() as session:
            session.add(
                AIRequestLog(
                    request_id=entry.request_id,
                    trip_id=entry.trip_id,
                    user_id=entry.user_id,
                    endpoint=entry.endpoint,
                    provider=entry.provider,
                    model=entry.model,
                    input_tokens=entry.input_tokens,
                    output_tokens=entry.output_tokens,
                    cost_cents=entry.cost_cents,
                    duration_ms=entry.duration_ms,
                    started_at=entry.started_at,
                    completed_at=entry.completed_at,
                    status=entry.status,
                    error_message=entry.error_message,
                    metadata_=entry.metadata,
                )
            )
            await session.commit()

    async def list_for_trip(self, trip_id: uuid.UUID) -> list[AIRequestLogRecord]:
        """List a trip's log entries ordered by start time."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(AIRequestLog)
                .where(AIRequestLog.trip_id == trip_id)
                .order_by(AIRequestLog.started_at)
            )
            rows = result.scalars().all()

        return [
            AIRequestLogRecord(
                request_id=row.request_id,
                trip_id=row.trip_id,
                user_id=row.user_id,
                endpoint=row.endpoint,
                provider=row.provider,
                model=row.model,
                input_tokens=row.input_tokens,
                output_tokens=row.output_tokens,
                cost_cents=row.cost_cents,
                duration_ms=row.duration_ms,
                started_at=row.started_at,
                completed_at=row.completed_at,
                status=row.status,
                error_message=row.error_message,
                metadata=row.metadata_,
            )
            for row in rows
        ]


def create_sql_repositories(session_factory: async_sessionmaker[AsyncSession]) -> Repositories:
    """Repository bundle backed by one session factory."""
    return Repositories(
        trips=SqlTripRepository(session_factory),
        generations=SqlGenerationRepository(session_factory),
        plans=SqlPlanRepository(session_factory),
        ai_logs=SqlAIRequestLogRepository(session_factory),
    )
