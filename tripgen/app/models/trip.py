"""Trip facts and traveler preferences consumed by the generators."""

from datetime import date, timedelta
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from tripgen.app.models.common import Pace


class Trip(BaseModel):
    """Trip entity fields read by the generation pipeline."""

    trip_id: UUID
    user_id: UUID
    destination: str = Field(..., min_length=1)
    origin: str = ""
    start_date: date
    end_date: date
    travelers: int = Field(1, ge=1)

    @model_validator(mode="after")
    def check_dates(self) -> "Trip":
        """Reject trips that end before they start."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    @property
    def total_days(self) -> int:
        """Number of itinerary days, both ends inclusive."""
        return (self.end_date - self.start_date).days + 1

    def date_for_day(self, day_number: int) -> date:
        """Calendar date of a 1-based itinerary day."""
        return self.start_date + timedelta(days=day_number - 1)


class TravelPreferences(BaseModel):
    """Answers to the quick questions asked before generation."""

    priority: str = "balanced"
    interests: list[str] = Field(default_factory=list)
    pace: Pace = Pace.moderate
    style: str = "comfort"
    accommodation_type: str = "hotel"
