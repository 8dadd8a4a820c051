"""Generation Orchestrator - one durable step per invocation.

Each invocation reads the generation record, performs at most one completion
call, re-reads the record, applies a pure transition from ``state`` with a
compare-and-swap save and schedules the next step. Pause is cooperative: a
step that finds the record paused returns any in-flight day to pending and
stops without chaining.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from tripgen.app.config import Settings, get_settings
from tripgen.app.db.repositories import MissingPlanError, Repositories, StaleRecordError
from tripgen.app.llm.client import CompletionProvider
from tripgen.app.models.common import GenerationAction, GenerationStatus
from tripgen.app.models.generation import GenerationRecord, StepRequest
from tripgen.app.models.itinerary import ItineraryDay
from tripgen.app.models.trip import TravelPreferences, Trip
from tripgen.app.orchestration.chaining import DispatchError, InvocationScheduler
from tripgen.app.orchestration.completion import CompletionRunner
from tripgen.app.orchestration.day import DayGenerator, DayInputs
from tripgen.app.orchestration.errors import NotFoundError
from tripgen.app.orchestration.records import mutate_record
from tripgen.app.orchestration.state import (
    complete_day,
    fail_summary,
    finalize,
    record_day_failure,
    release_current_day,
    store_summary,
    take_day,
)
from tripgen.app.orchestration.summary import SummaryGenerator, build_initial_plan
from tripgen.app.places.metrics import log_linking_metrics
from tripgen.app.utils.logging import StructuredGenerationLogger
from tripgen.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)


class StepOutcome(str, Enum):
    """How one orchestrator step ended."""

    chained = "chained"
    retrying = "retrying"
    completed = "completed"
    failed = "failed"
    paused = "paused"
    skipped = "skipped"
    stale = "stale"


class StepAborted(Exception):
    """Stop the current step without further writes."""

    def __init__(self, outcome: StepOutcome, reason: str) -> None:
        super().__init__(reason)
        self.outcome = outcome
        self.reason = reason


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationOrchestrator:
    """Runs generation steps against the durable record."""

    def __init__(
        self,
        repos: Repositories,
        provider: CompletionProvider,
        scheduler: InvocationScheduler,
        settings: Settings | None = None,
        *,
        gen_logger: StructuredGenerationLogger | None = None,
        metrics: PrometheusGenerationMetrics | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repos = repos
        self._scheduler = scheduler
        self._settings = settings or get_settings()
        self._gen_logger = gen_logger or StructuredGenerationLogger()
        self._metrics = metrics or PrometheusGenerationMetrics()
        self._now = clock

        runner = CompletionRunner(
            provider, repos.ai_logs, gen_logger=self._gen_logger, metrics=self._metrics
        )
        self._summary = SummaryGenerator(runner, self._settings)
        self._days = DayGenerator(runner, self._settings, self._metrics)

    async def handle(self, request: StepRequest) -> StepOutcome:
        """Run one step; never raises for generation or race failures.

        Args:
            request: Trip, action and optional target day

        Returns:
            Step outcome (for logging and tests)
        """
        handlers = {
            GenerationAction.start: self._start,
            GenerationAction.continue_: self._continue,
            GenerationAction.retry: self._continue,
            GenerationAction.resume: self._resume,
        }
        error_reason: str | None = None

        try:
            outcome = await handlers[request.action](request)
        except NotFoundError as e:
            outcome, error_reason = StepOutcome.skipped, e.message
        except StepAborted as e:
            outcome, error_reason = e.outcome, e.reason
        except StaleRecordError as e:
            outcome, error_reason = StepOutcome.stale, str(e)

        self._metrics.record_step(request.action.value, outcome.value)
        self._gen_logger.log_step(
            request.trip_id,
            request.action.value,
            outcome.value,
            day_number=request.day_number,
            error_reason=error_reason,
        )
        return outcome

    # Actions

    async def _start(self, request: StepRequest) -> StepOutcome:
        record = await self._require_record(request.trip_id)
        if record.status == GenerationStatus.paused:
            return await self._observe_pause(request.trip_id)
        if record.status != GenerationStatus.generating_summary:
            raise StepAborted(StepOutcome.stale, f"start found status '{record.status.value}'")

        trip = await self._repos.trips.get_trip(request.trip_id)
        if trip is None:
            return await self._fail_run(request.trip_id, "Trip not found")

        preferences = record.preferences or TravelPreferences()

        try:
            summary = await self._summary.generate(trip, preferences)
        except Exception as e:
            return await self._summary_failed(
                request.trip_id, f"Summary generation failed: {type(e).__name__}: {e}"
            )

        # Guard before touching the plan so a restarted run keeps its own plan
        self._guard_summary(await self._require_record(request.trip_id))
        try:
            await self._repos.plans.save_plan(
                build_initial_plan(trip, preferences, summary, self._now())
            )
        except Exception as e:
            return await self._summary_failed(
                request.trip_id, f"Plan creation failed: {type(e).__name__}: {e}"
            )

        saved = await mutate_record(
            self._repos.generations,
            request.trip_id,
            lambda fresh: store_summary(self._guard_summary(fresh), summary, self._now()),
        )
        return await self._chain_next(saved)

    async def _continue(self, request: StepRequest) -> StepOutcome:
        record = await self._require_record(request.trip_id)
        if record.status == GenerationStatus.paused:
            return await self._observe_pause(request.trip_id)
        if record.status != GenerationStatus.generating:
            raise StepAborted(StepOutcome.stale, f"continue found status '{record.status.value}'")

        if record.current_day is None:
            record = await mutate_record(
                self._repos.generations,
                request.trip_id,
                lambda fresh: self._claim_day(fresh, request.day_number),
            )
            if record.current_day is None:
                return await self._chain_next(record)
        elif request.day_number is not None and request.day_number != record.current_day:
            raise StepAborted(
                StepOutcome.stale,
                f"day {request.day_number} requested but day {record.current_day} is in flight",
            )

        day_number = record.current_day
        trip = await self._repos.trips.get_trip(request.trip_id)
        if trip is None:
            return await self._fail_run(request.trip_id, "Trip not found")

        try:
            inputs = await self._day_inputs(record, trip, day_number)
            day, metrics = await self._days.generate(inputs)
        except Exception as e:
            return await self._day_failed(request.trip_id, day_number, e)

        self._guard_day(await self._require_record(request.trip_id), day_number)
        try:
            await self._write_day(record, trip, day)
        except Exception as e:
            return await self._day_failed(request.trip_id, day_number, e)

        saved = await mutate_record(
            self._repos.generations,
            request.trip_id,
            lambda fresh: complete_day(
                self._guard_day(fresh, day_number), day_number, metrics, self._now()
            ),
        )
        if metrics.total_items:
            self._metrics.observe_health(metrics.derived().health_score)
            log_linking_metrics(
                metrics,
                trip_id=str(request.trip_id),
                day_number=day_number,
                health_threshold=self._settings.linking_health_warn_threshold,
            )
        return await self._chain_next(saved)

    async def _resume(self, request: StepRequest) -> StepOutcome:
        record = await self._require_record(request.trip_id)
        if record.status == GenerationStatus.generating_summary:
            return await self._start(request)
        return await self._continue(request)

    # Transitions

    def _claim_day(self, fresh: GenerationRecord, requested: int | None) -> GenerationRecord | None:
        if fresh.status != GenerationStatus.generating:
            raise StepAborted(StepOutcome.stale, f"record moved to '{fresh.status.value}'")
        if fresh.current_day is not None:
            return None
        if not fresh.pending_days:
            return finalize(fresh, self._now())
        return take_day(fresh, self._now(), requested)

    def _guard_summary(self, fresh: GenerationRecord) -> GenerationRecord:
        if fresh.status not in (GenerationStatus.generating_summary, GenerationStatus.paused):
            raise StepAborted(StepOutcome.stale, f"record moved to '{fresh.status.value}'")
        if fresh.summary_result is not None:
            raise StepAborted(StepOutcome.stale, "summary already stored")
        return fresh

    def _guard_day(self, fresh: GenerationRecord, day_number: int) -> GenerationRecord:
        if fresh.status not in (GenerationStatus.generating, GenerationStatus.paused):
            raise StepAborted(StepOutcome.stale, f"record moved to '{fresh.status.value}'")
        if fresh.current_day != day_number:
            raise StepAborted(StepOutcome.stale, f"day {day_number} is no longer in flight")
        return fresh

    async def _observe_pause(self, trip_id: UUID) -> StepOutcome:
        await mutate_record(
            self._repos.generations,
            trip_id,
            lambda fresh: (
                release_current_day(fresh, self._now())
                if fresh.status == GenerationStatus.paused and fresh.current_day is not None
                else None
            ),
        )
        return StepOutcome.paused

    async def _fail_run(self, trip_id: UUID, message: str) -> StepOutcome:
        now = self._now()
        await mutate_record(
            self._repos.generations,
            trip_id,
            lambda fresh: release_current_day(fresh, now).model_copy(
                update={"status": GenerationStatus.failed, "error_message": message}
            ),
        )
        return StepOutcome.failed

    async def _summary_failed(self, trip_id: UUID, error: str) -> StepOutcome:
        logger.warning(error, extra={"structured": {"trip_id": str(trip_id)}})
        saved = await mutate_record(
            self._repos.generations,
            trip_id,
            lambda fresh: fail_summary(self._guard_summary(fresh), error, self._now()),
        )
        return self._terminal_outcome(saved)

    async def _day_failed(self, trip_id: UUID, day_number: int, error: Exception) -> StepOutcome:
        message = f"{type(error).__name__}: {error}"
        logger.warning(
            f"Day {day_number} generation failed: {message}",
            extra={"structured": {"trip_id": str(trip_id), "day": day_number, "error": message}},
        )

        exhausted = False

        def mutate(fresh: GenerationRecord) -> GenerationRecord:
            nonlocal exhausted
            updated, exhausted = record_day_failure(
                self._guard_day(fresh, day_number),
                day_number,
                message,
                self._settings.max_day_retries,
                self._now(),
            )
            return updated

        saved = await mutate_record(self._repos.generations, trip_id, mutate)

        if (
            not exhausted
            and saved.status == GenerationStatus.generating
            and saved.current_day == day_number
        ):
            delay = self._settings.retry_backoff_base_seconds * 2**saved.retry_count
            await self._dispatch(
                StepRequest(trip_id=trip_id, action=GenerationAction.continue_, day_number=day_number),
                delay,
            )
            return StepOutcome.retrying
        return await self._chain_next(saved)

    # Helpers

    async def _require_record(self, trip_id: UUID) -> GenerationRecord:
        record = await self._repos.generations.get(trip_id)
        if record is None:
            raise NotFoundError(f"No generation record for trip {trip_id}")
        return record

    async def _day_inputs(self, record: GenerationRecord, trip: Trip, day_number: int) -> DayInputs:
        summary = record.summary_result
        day_title = (summary.title_for_day(day_number) if summary else None) or f"Day {day_number}"

        previous_day_summary = None
        if day_number > 1:
            plan = await self._repos.plans.get_plan(record.trip_id)
            previous = plan.get_day(day_number - 1) if plan else None
            if previous is not None:
                previous_day_summary = previous.title
            elif summary is not None:
                previous_day_summary = summary.title_for_day(day_number - 1)

        return DayInputs(
            trip=trip,
            preferences=record.preferences or TravelPreferences(),
            day_number=day_number,
            day_date=trip.date_for_day(day_number),
            day_title=day_title,
            previous_day_summary=previous_day_summary,
            next_day_title=summary.title_for_day(day_number + 1) if summary else None,
            places_catalog=record.places_catalog,
        )

    async def _write_day(self, record: GenerationRecord, trip: Trip, day: ItineraryDay) -> None:
        try:
            await self._repos.plans.save_day(record.trip_id, day)
        except MissingPlanError:
            if record.summary_result is None:
                raise
            logger.warning(
                f"Plan missing for trip {record.trip_id}; rebuilding skeleton",
                extra={"structured": {"trip_id": str(record.trip_id), "day": day.day}},
            )
            plan = build_initial_plan(
                trip,
                record.preferences or TravelPreferences(),
                record.summary_result,
                self._now(),
            )
            await self._repos.plans.save_plan(plan)
            await self._repos.plans.save_day(record.trip_id, day)

    async def _chain_next(self, record: GenerationRecord) -> StepOutcome:
        if record.status == GenerationStatus.generating and record.current_day is not None:
            await self._dispatch(
                StepRequest(
                    trip_id=record.trip_id,
                    action=GenerationAction.continue_,
                    day_number=record.current_day,
                )
            )
            return StepOutcome.chained
        return self._terminal_outcome(record)

    def _terminal_outcome(self, record: GenerationRecord) -> StepOutcome:
        if record.status == GenerationStatus.paused:
            return StepOutcome.paused
        if record.status == GenerationStatus.completed:
            self._log_run_linking(record)
            return StepOutcome.completed
        if record.status == GenerationStatus.failed:
            if record.summary_result is not None:
                self._log_run_linking(record)
            return StepOutcome.failed
        return StepOutcome.stale

    def _log_run_linking(self, record: GenerationRecord) -> None:
        log_linking_metrics(
            record.linking_metrics,
            trip_id=str(record.trip_id),
            health_threshold=self._settings.linking_health_warn_threshold,
        )

    async def _dispatch(self, request: StepRequest, delay_seconds: float = 0) -> None:
        try:
            await self._scheduler.schedule(request, delay_seconds)
        except DispatchError as e:
            logger.error(
                f"Failed to chain generation step: {e}",
                extra={
                    "structured": {
                        "trip_id": str(request.trip_id),
                        "action": request.action.value,
                        "day": request.day_number,
                        "error": str(e),
                    }
                },
            )
