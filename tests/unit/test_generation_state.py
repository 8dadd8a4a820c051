"""Tests for pure generation state transitions."""

import uuid
from datetime import date, datetime, timezone

import pytest

from tripgen.app.models.common import GenerationAction, GenerationStatus
from tripgen.app.models.generation import FailedDay, GenerationRecord, GenerationStatusView
from tripgen.app.models.itinerary import SummaryResult, TripSummary
from tripgen.app.models.linking import LinkingMetrics
from tripgen.app.models.trip import TravelPreferences, Trip
from tripgen.app.orchestration.errors import ConflictError, PreconditionError
from tripgen.app.orchestration.state import (
    apply_pause,
    apply_resume,
    apply_retry,
    claim_start,
    complete_day,
    fail_summary,
    finalize,
    record_day_failure,
    release_current_day,
    store_summary,
    take_day,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def summary() -> SummaryResult:
    return SummaryResult(
        summary=TripSummary(title="Barcelona", total_days=5, total_nights=4),
        day_titles=[f"Day {n}" for n in range(1, 6)],
    )


@pytest.fixture
def fresh(trip: Trip) -> GenerationRecord:
    return claim_start(None, trip=trip, preferences=TravelPreferences(), places_catalog=None, now=NOW)


def _record(**update: object) -> GenerationRecord:
    base = GenerationRecord(
        trip_id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        status=GenerationStatus.generating,
        total_days=5,
        created_at=NOW,
        updated_at=NOW,
    )
    return base.model_copy(update=update)


def _failed(day_number: int) -> FailedDay:
    return FailedDay(day_number=day_number, attempts=3, last_error="boom", last_attempt_at=NOW)


class TestClaimStart:
    """Test claiming a trip for a fresh run."""

    def test_new_record(self, fresh: GenerationRecord, trip: Trip) -> None:
        assert fresh.status == GenerationStatus.generating_summary
        assert fresh.pending_days == [1, 2, 3, 4, 5]
        assert fresh.total_days == 5
        assert fresh.user_id == trip.user_id
        assert fresh.version == 0
        assert fresh.partition_violations() == []

    def test_active_run_conflicts(self, fresh: GenerationRecord, trip: Trip) -> None:
        with pytest.raises(ConflictError):
            claim_start(fresh, trip=trip, preferences=TravelPreferences(), places_catalog=None, now=NOW)

    def test_restart_resets_progress(self, trip: Trip, summary: SummaryResult) -> None:
        previous = _record(
            trip_id=trip.trip_id,
            status=GenerationStatus.failed,
            completed_days=[1, 2, 3, 5],
            failed_days=[_failed(4)],
            summary_result=summary,
            error_message="Days failed after retries: [4]",
            linking_metrics=LinkingMetrics(total_timeline=3, linked_exact=3),
            version=9,
        )

        restarted = claim_start(
            previous, trip=trip, preferences=TravelPreferences(), places_catalog=None, now=NOW
        )

        assert restarted.status == GenerationStatus.generating_summary
        assert restarted.completed_days == []
        assert restarted.failed_days == []
        assert restarted.pending_days == [1, 2, 3, 4, 5]
        assert restarted.summary_result is None
        assert restarted.error_message is None
        assert restarted.linking_metrics.total_items == 0
        assert restarted.version == 9


class TestDayTransitions:
    """Test day claiming, completion and failure."""

    def test_take_day_pops_first_pending(self) -> None:
        record = take_day(_record(pending_days=[1, 2, 3, 4, 5]), NOW)

        assert record.current_day == 1
        assert record.pending_days == [2, 3, 4, 5]

    def test_take_day_honours_requested_day(self) -> None:
        record = take_day(_record(pending_days=[1, 2, 3, 4, 5]), NOW, requested_day=4)

        assert record.current_day == 4
        assert record.pending_days == [1, 2, 3, 5]

    def test_release_returns_day_to_front(self) -> None:
        record = release_current_day(_record(current_day=3, pending_days=[4, 5]), NOW)

        assert record.current_day is None
        assert record.pending_days == [3, 4, 5]

    def test_complete_day_advances(self) -> None:
        record = _record(current_day=1, pending_days=[2, 3, 4, 5], retry_count=2)

        updated = complete_day(record, 1, LinkingMetrics(total_timeline=2, linked_exact=2), NOW)

        assert updated.completed_days == [1]
        assert updated.current_day == 2
        assert updated.retry_count == 0
        assert updated.linking_metrics.linked_exact == 2

    def test_complete_last_day_completes_run(self) -> None:
        record = _record(current_day=5, completed_days=[1, 2, 3, 4])

        updated = complete_day(record, 5, LinkingMetrics(), NOW)

        assert updated.status == GenerationStatus.completed
        assert updated.current_day is None

    def test_complete_day_while_paused_does_not_take_next(self) -> None:
        record = _record(status=GenerationStatus.paused, current_day=2, pending_days=[3, 4, 5], completed_days=[1])

        updated = complete_day(record, 2, LinkingMetrics(), NOW)

        assert updated.status == GenerationStatus.paused
        assert updated.current_day is None
        assert updated.pending_days == [3, 4, 5]

    def test_failure_below_limit_keeps_day_in_flight(self) -> None:
        record = _record(current_day=2, pending_days=[3, 4, 5], completed_days=[1])

        updated, exhausted = record_day_failure(record, 2, "boom", 3, NOW)

        assert not exhausted
        assert updated.current_day == 2
        assert updated.retry_count == 1
        assert updated.error_message == "boom"

    def test_failure_at_limit_moves_day_to_failed(self) -> None:
        record = _record(current_day=2, pending_days=[3, 4, 5], completed_days=[1], retry_count=2)

        updated, exhausted = record_day_failure(record, 2, "boom", 3, NOW)

        assert exhausted
        assert updated.failed_days[0].day_number == 2
        assert updated.failed_days[0].attempts == 3
        assert updated.current_day == 3
        assert updated.retry_count == 0
        assert updated.status == GenerationStatus.generating

    def test_failure_at_limit_on_last_day_fails_run(self) -> None:
        record = _record(current_day=5, completed_days=[1, 2, 3, 4], retry_count=2)

        updated, exhausted = record_day_failure(record, 5, "boom", 3, NOW)

        assert exhausted
        assert updated.status == GenerationStatus.failed
        assert updated.error_message == "Days failed after retries: [5]"

    def test_finalize_with_failures(self) -> None:
        record = finalize(_record(completed_days=[1, 2, 3, 5], failed_days=[_failed(4)]), NOW)

        assert record.status == GenerationStatus.failed
        assert "[4]" in (record.error_message or "")


class TestSummaryTransitions:
    """Test summary storage and failure."""

    def test_store_summary_starts_day_loop(self, fresh: GenerationRecord, summary: SummaryResult) -> None:
        updated = store_summary(fresh, summary, NOW)

        assert updated.status == GenerationStatus.generating
        assert updated.current_day == 1
        assert updated.summary_result == summary

    def test_store_summary_while_paused_stays_paused(
        self, fresh: GenerationRecord, summary: SummaryResult
    ) -> None:
        paused = apply_pause(fresh, NOW)

        updated = store_summary(paused, summary, NOW)

        assert updated.status == GenerationStatus.paused
        assert updated.current_day is None
        assert updated.summary_result == summary

    def test_fail_summary(self, fresh: GenerationRecord) -> None:
        updated = fail_summary(fresh, "outage", NOW)

        assert updated.status == GenerationStatus.failed
        assert updated.error_message == "outage"


class TestControlTransitions:
    """Test pause, resume and retry preconditions."""

    def test_pause_keeps_day_sets(self) -> None:
        record = _record(current_day=2, pending_days=[3, 4, 5], completed_days=[1])

        paused = apply_pause(record, NOW)

        assert paused.status == GenerationStatus.paused
        assert paused.current_day == 2
        assert paused.pending_days == [3, 4, 5]

    @pytest.mark.parametrize(
        "status", [GenerationStatus.paused, GenerationStatus.completed, GenerationStatus.failed]
    )
    def test_pause_requires_active_run(self, status: GenerationStatus) -> None:
        with pytest.raises(PreconditionError):
            apply_pause(_record(status=status), NOW)

    def test_resume_continues(self, summary: SummaryResult) -> None:
        record = _record(status=GenerationStatus.paused, pending_days=[3, 4, 5], completed_days=[1, 2], summary_result=summary)

        updated, action = apply_resume(record, NOW)

        assert action == GenerationAction.continue_
        assert updated.status == GenerationStatus.generating
        assert updated.current_day == 3

    def test_resume_before_summary_restarts_summary(self) -> None:
        record = _record(status=GenerationStatus.paused, pending_days=[1, 2, 3, 4, 5])

        updated, action = apply_resume(record, NOW)

        assert action == GenerationAction.start
        assert updated.status == GenerationStatus.generating_summary

    def test_resume_with_nothing_pending_is_rejected(self, summary: SummaryResult) -> None:
        record = _record(status=GenerationStatus.paused, completed_days=[1, 2, 3, 4], failed_days=[_failed(5)], summary_result=summary)

        with pytest.raises(PreconditionError, match="No pending days"):
            apply_resume(record, NOW)

    def test_resume_requires_paused(self) -> None:
        with pytest.raises(PreconditionError):
            apply_resume(_record(), NOW)

    def test_retry_while_active_conflicts(self) -> None:
        with pytest.raises(ConflictError):
            apply_retry(_record(failed_days=[_failed(4)]), 4, NOW)

    def test_retry_completed_run_rejected(self) -> None:
        with pytest.raises(PreconditionError):
            apply_retry(_record(status=GenerationStatus.completed), None, NOW)

    def test_retry_day_that_did_not_fail(self) -> None:
        record = _record(status=GenerationStatus.failed, completed_days=[1, 2, 3, 5], failed_days=[_failed(4)])

        with pytest.raises(PreconditionError, match="Day 2"):
            apply_retry(record, 2, NOW)

    def test_retry_named_day(self) -> None:
        record = _record(status=GenerationStatus.failed, completed_days=[1, 2, 3, 5], failed_days=[_failed(4)])

        updated = apply_retry(record, 4, NOW)

        assert updated.status == GenerationStatus.generating
        assert updated.current_day == 4
        assert updated.failed_days == []
        assert updated.partition_violations() == []

    def test_retry_all_failed_days(self) -> None:
        record = _record(
            status=GenerationStatus.failed,
            completed_days=[1, 3],
            failed_days=[_failed(5), _failed(2), _failed(4)],
        )

        updated = apply_retry(record, None, NOW)

        assert updated.current_day == 2
        assert updated.pending_days == [4, 5]
        assert updated.failed_days == []
        assert updated.partition_violations() == []

    def test_retry_paused_run_displaces_in_flight_day(self) -> None:
        record = _record(
            status=GenerationStatus.paused,
            current_day=3,
            pending_days=[5],
            completed_days=[1, 2],
            failed_days=[_failed(4)],
        )

        updated = apply_retry(record, 4, NOW)

        assert updated.current_day == 4
        assert updated.pending_days == [3, 5]
        assert updated.partition_violations() == []


class TestPartition:
    """Test partition checks and the status view."""

    def test_detects_duplicates_and_gaps(self) -> None:
        record = _record(current_day=2, pending_days=[2, 3], completed_days=[1])

        problems = record.partition_violations()

        assert any("more than once" in p for p in problems)
        assert any("missing" in p for p in problems)

    def test_status_view_progress(self, summary: SummaryResult) -> None:
        record = _record(
            status=GenerationStatus.failed,
            completed_days=[1, 2, 3, 5],
            failed_days=[_failed(4)],
            summary_result=summary,
            linking_metrics=LinkingMetrics(total_timeline=4, linked_exact=4),
        )

        view = GenerationStatusView.from_record(record)

        assert view.progress_percent == 100
        assert view.has_summary
        assert view.linking is not None
        assert view.linking.health_score == 100

    def test_status_view_without_linking(self) -> None:
        view = GenerationStatusView.from_record(_record(completed_days=[1, 2]))

        assert view.progress_percent == 40
        assert view.linking is None
        assert not view.has_summary


def test_trip_total_days_inclusive() -> None:
    trip = Trip(
        trip_id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        destination="Lisbon",
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 1),
    )

    assert trip.total_days == 1
    assert trip.date_for_day(1) == date(2025, 3, 1)
