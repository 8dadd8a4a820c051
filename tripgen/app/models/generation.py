"""Generation record models - durable progress of one trip's generation run."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tripgen.app.models.common import ACTIVE_STATUSES, GenerationAction, GenerationStatus
from tripgen.app.models.itinerary import SummaryResult
from tripgen.app.models.linking import DerivedLinkingMetrics, LinkingMetrics
from tripgen.app.models.places import PlacesCatalog
from tripgen.app.models.trip import TravelPreferences

MAX_RETRIES = 3


class FailedDay(BaseModel):
    """A day whose generation exhausted its attempts."""

    day_number: int = Field(..., ge=1)
    attempts: int = Field(..., ge=0)
    last_error: str | None = None
    last_attempt_at: datetime


class GenerationRecord(BaseModel):
    """One row per trip; read-modify-written as a whole by every step.

    ``pending_days``, ``completed_days``, ``failed_days`` and ``current_day``
    partition ``1..total_days`` at every stable state.
    """

    trip_id: UUID
    user_id: UUID
    status: GenerationStatus = GenerationStatus.not_started
    total_days: int = Field(..., ge=1)
    current_day: int | None = None
    pending_days: list[int] = Field(default_factory=list)
    completed_days: list[int] = Field(default_factory=list)
    failed_days: list[FailedDay] = Field(default_factory=list)
    retry_count: int = Field(0, ge=0)
    summary_result: SummaryResult | None = None
    places_catalog: PlacesCatalog | None = None
    preferences: TravelPreferences | None = None
    error_message: str | None = None
    linking_metrics: LinkingMetrics = Field(default_factory=LinkingMetrics)
    version: int = 0
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def failed_day_numbers(self) -> list[int]:
        return [f.day_number for f in self.failed_days]

    def get_failed_day(self, day_number: int) -> FailedDay | None:
        for failed in self.failed_days:
            if failed.day_number == day_number:
                return failed
        return None

    def tracked_days(self) -> list[int]:
        """Every day number the record accounts for, duplicates included."""
        days = [*self.pending_days, *self.completed_days, *self.failed_day_numbers]
        if self.current_day is not None:
            days.append(self.current_day)
        return days

    def partition_violations(self) -> list[str]:
        """Describe any breach of the day-set partition (empty when consistent)."""
        problems: list[str] = []
        tracked = self.tracked_days()
        duplicates = sorted({d for d in tracked if tracked.count(d) > 1})
        if duplicates:
            problems.append(f"days tracked more than once: {duplicates}")
        expected = set(range(1, self.total_days + 1))
        missing = sorted(expected - set(tracked))
        if missing:
            problems.append(f"days missing from every set: {missing}")
        unexpected = sorted(set(tracked) - expected)
        if unexpected:
            problems.append(f"days outside 1..{self.total_days}: {unexpected}")
        return problems


class StepRequest(BaseModel):
    """Payload of one orchestrator invocation."""

    trip_id: UUID
    action: GenerationAction
    day_number: int | None = Field(None, ge=1)


class Accepted(BaseModel):
    """Control-plane acknowledgement."""

    trip_id: UUID
    status: str = "accepted"
    message: str = ""
    total_days: int | None = None


class GenerationStatusView(BaseModel):
    """Read model returned by the status endpoint."""

    trip_id: UUID
    status: GenerationStatus
    total_days: int
    current_day: int | None = None
    pending_days: list[int] = Field(default_factory=list)
    completed_days: list[int] = Field(default_factory=list)
    failed_days: list[FailedDay] = Field(default_factory=list)
    retry_count: int = 0
    progress_percent: int = 0
    error_message: str | None = None
    has_summary: bool = False
    linking: DerivedLinkingMetrics | None = None
    updated_at: datetime

    @classmethod
    def from_record(cls, record: GenerationRecord) -> "GenerationStatusView":
        """Project a record, deriving progress and linking quality."""
        settled = len(record.completed_days) + len(record.failed_days)
        linking = (
            record.linking_metrics.derived() if record.linking_metrics.total_items else None
        )
        return cls(
            trip_id=record.trip_id,
            status=record.status,
            total_days=record.total_days,
            current_day=record.current_day,
            pending_days=record.pending_days,
            completed_days=record.completed_days,
            failed_days=record.failed_days,
            retry_count=record.retry_count,
            progress_percent=round(100 * settled / record.total_days),
            error_message=record.error_message,
            has_summary=record.summary_result is not None,
            linking=linking,
            updated_at=record.updated_at,
        )


class TripRequest(BaseModel):
    """Body naming the trip a control request applies to."""

    trip_id: UUID


class StartGenerationRequest(TripRequest):
    """Body of the start endpoint."""

    preferences: TravelPreferences = Field(default_factory=TravelPreferences)
    places_catalog: PlacesCatalog | None = None


class RetryGenerationRequest(TripRequest):
    """Body of the retry endpoint; omit ``day_number`` to retry every failed day."""

    day_number: int | None = Field(None, ge=1)


class InvokeStepRequest(StepRequest):
    """Self-invocation payload: a step plus the delay to wait before running it."""

    delay_seconds: float = Field(0, ge=0)
