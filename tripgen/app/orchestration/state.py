"""Generation state machine - pure transitions over ``GenerationRecord``.

Every function returns a new record and leaves its input untouched. None of
them perform I/O, so the orchestrator and control plane can re-apply them to
a freshly read record after losing a compare-and-swap race.
"""

from datetime import datetime

from tripgen.app.models.common import GenerationAction, GenerationStatus
from tripgen.app.models.generation import FailedDay, GenerationRecord
from tripgen.app.models.itinerary import SummaryResult
from tripgen.app.models.linking import LinkingMetrics
from tripgen.app.models.places import PlacesCatalog
from tripgen.app.models.trip import TravelPreferences, Trip
from tripgen.app.orchestration.errors import ConflictError, PreconditionError


def claim_start(
    existing: GenerationRecord | None,
    *,
    trip: Trip,
    preferences: TravelPreferences,
    places_catalog: PlacesCatalog | None,
    now: datetime,
) -> GenerationRecord:
    """Reset (or create) the record for a fresh run in ``generating_summary``.

    Raises:
        ConflictError: If a run is already active
    """
    if existing is not None and existing.is_active:
        raise ConflictError("Generation already running")

    fresh = {
        "status": GenerationStatus.generating_summary,
        "total_days": trip.total_days,
        "current_day": None,
        "pending_days": list(range(1, trip.total_days + 1)),
        "completed_days": [],
        "failed_days": [],
        "retry_count": 0,
        "summary_result": None,
        "places_catalog": places_catalog,
        "preferences": preferences,
        "error_message": None,
        "linking_metrics": LinkingMetrics(),
        "updated_at": now,
    }

    if existing is None:
        return GenerationRecord(trip_id=trip.trip_id, user_id=trip.user_id, created_at=now, **fresh)
    return existing.model_copy(update=fresh)


def release_current_day(record: GenerationRecord, now: datetime) -> GenerationRecord:
    """Return an in-flight day to the front of ``pending_days``."""
    if record.current_day is None:
        return record
    day = record.current_day
    pending = [day, *[d for d in record.pending_days if d != day]]
    return record.model_copy(update={"current_day": None, "pending_days": pending, "updated_at": now})


def take_day(
    record: GenerationRecord, now: datetime, requested_day: int | None = None
) -> GenerationRecord:
    """Pop ``requested_day`` (if pending) or the first pending day into ``current_day``."""
    if record.current_day is not None or not record.pending_days:
        return record
    day = requested_day if requested_day in record.pending_days else record.pending_days[0]
    pending = [d for d in record.pending_days if d != day]
    return record.model_copy(update={"current_day": day, "pending_days": pending, "updated_at": now})


def finalize(record: GenerationRecord, now: datetime) -> GenerationRecord:
    """Terminal state once nothing is pending or in flight."""
    if record.failed_days:
        return record.model_copy(
            update={
                "status": GenerationStatus.failed,
                "current_day": None,
                "retry_count": 0,
                "error_message": f"Days failed after retries: {sorted(record.failed_day_numbers)}",
                "updated_at": now,
            }
        )
    return record.model_copy(
        update={
            "status": GenerationStatus.completed,
            "current_day": None,
            "retry_count": 0,
            "error_message": None,
            "updated_at": now,
        }
    )


def advance(record: GenerationRecord, now: datetime) -> GenerationRecord:
    """Move to the next pending day, or finish the run.

    A paused run keeps its pending days untouched; a paused run with nothing
    left pending is finalized.
    """
    if record.current_day is not None:
        return record
    if record.pending_days:
        if record.status == GenerationStatus.generating:
            return take_day(record, now)
        return record
    return finalize(record, now)


def store_summary(
    record: GenerationRecord, summary: SummaryResult, now: datetime
) -> GenerationRecord:
    """Cache the summary and begin the day loop (unless paused meanwhile)."""
    updated = record.model_copy(
        update={"summary_result": summary, "error_message": None, "updated_at": now}
    )
    if updated.status != GenerationStatus.generating_summary:
        return updated
    updated = updated.model_copy(update={"status": GenerationStatus.generating})
    return take_day(updated, now)


def fail_summary(record: GenerationRecord, error: str, now: datetime) -> GenerationRecord:
    """Summary generation failed; the run needs a new start (a paused run stays paused)."""
    status = (
        GenerationStatus.failed
        if record.status == GenerationStatus.generating_summary
        else record.status
    )
    return record.model_copy(update={"status": status, "error_message": error, "updated_at": now})


def complete_day(
    record: GenerationRecord,
    day_number: int,
    metrics: LinkingMetrics,
    now: datetime,
) -> GenerationRecord:
    """Record a successfully generated day, then advance."""
    updated = record.model_copy(
        update={
            "completed_days": sorted({*record.completed_days, day_number}),
            "pending_days": [d for d in record.pending_days if d != day_number],
            "failed_days": [f for f in record.failed_days if f.day_number != day_number],
            "current_day": None if record.current_day == day_number else record.current_day,
            "retry_count": 0,
            "error_message": None,
            "linking_metrics": record.linking_metrics.merge(metrics),
            "updated_at": now,
        }
    )
    return advance(updated, now)


def record_day_failure(
    record: GenerationRecord,
    day_number: int,
    error: str,
    max_retries: int,
    now: datetime,
) -> tuple[GenerationRecord, bool]:
    """Count a failed attempt at ``day_number``.

    Below ``max_retries`` the day stays in flight for another attempt (or goes
    back to pending when the run was paused). At the limit it moves to
    ``failed_days`` and the run advances.

    Returns:
        Tuple of (updated record, whether attempts are exhausted)
    """
    attempts = record.retry_count + 1

    if attempts < max_retries:
        updated = record.model_copy(
            update={"retry_count": attempts, "error_message": error, "updated_at": now}
        )
        if updated.status == GenerationStatus.paused:
            updated = release_current_day(updated, now)
        return updated, False

    failed = FailedDay(
        day_number=day_number,
        attempts=max_retries,
        last_error=error,
        last_attempt_at=now,
    )
    updated = record.model_copy(
        update={
            "failed_days": [
                *[f for f in record.failed_days if f.day_number != day_number],
                failed,
            ],
            "pending_days": [d for d in record.pending_days if d != day_number],
            "current_day": None if record.current_day == day_number else record.current_day,
            "retry_count": 0,
            "error_message": error,
            "updated_at": now,
        }
    )
    return advance(updated, now), True


def apply_pause(record: GenerationRecord, now: datetime) -> GenerationRecord:
    """Mark an active run paused; in-flight work notices on its next step.

    Raises:
        PreconditionError: If the run is not active
    """
    if not record.is_active:
        raise PreconditionError(f"Cannot pause generation in status '{record.status.value}'")
    return record.model_copy(update={"status": GenerationStatus.paused, "updated_at": now})


def apply_resume(
    record: GenerationRecord, now: datetime
) -> tuple[GenerationRecord, GenerationAction]:
    """Resume a paused run.

    Returns:
        Tuple of (updated record, action to chain)

    Raises:
        PreconditionError: If not paused or nothing is left to generate
    """
    if record.status != GenerationStatus.paused:
        raise PreconditionError(f"Cannot resume generation in status '{record.status.value}'")

    if record.summary_result is None:
        updated = record.model_copy(
            update={"status": GenerationStatus.generating_summary, "updated_at": now}
        )
        return updated, GenerationAction.start

    if not record.pending_days and record.current_day is None:
        raise PreconditionError("No pending days to resume")

    updated = record.model_copy(update={"status": GenerationStatus.generating, "updated_at": now})
    return take_day(updated, now), GenerationAction.continue_


def apply_retry(
    record: GenerationRecord, day_number: int | None, now: datetime
) -> GenerationRecord:
    """Put failed day(s) back in flight.

    Raises:
        ConflictError: If a run is active
        PreconditionError: If not failed/paused, or the day is not failed
    """
    if record.is_active:
        raise ConflictError("Generation is currently running")
    if record.status not in (GenerationStatus.failed, GenerationStatus.paused):
        raise PreconditionError(f"Cannot retry generation in status '{record.status.value}'")
    if not record.failed_days:
        raise PreconditionError("No failed days to retry")

    released = release_current_day(record, now)

    if day_number is not None:
        if record.get_failed_day(day_number) is None:
            raise PreconditionError(f"Day {day_number} has not failed")
        return released.model_copy(
            update={
                "failed_days": [f for f in record.failed_days if f.day_number != day_number],
                "pending_days": [d for d in released.pending_days if d != day_number],
                "current_day": day_number,
                "retry_count": 0,
                "status": GenerationStatus.generating,
                "error_message": None,
                "updated_at": now,
            }
        )

    pending = sorted({*released.pending_days, *record.failed_day_numbers})
    updated = released.model_copy(
        update={
            "failed_days": [],
            "pending_days": pending,
            "retry_count": 0,
            "status": GenerationStatus.generating,
            "error_message": None,
            "updated_at": now,
        }
    )
    return take_day(updated, now)
