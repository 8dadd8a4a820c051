"""Itinerary models - trip summary, plan skeleton and generated days."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from tripgen.app.models.common import MatchConfidence
from tripgen.app.models.places import Place
from tripgen.app.models.trip import TravelPreferences


class TimelineEntry(BaseModel):
    """Single activity slot in a day's timeline."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    time: str = ""
    activity: str
    location: str = ""
    icon: str = ""
    duration: str = ""
    notes: str = ""
    suggested_place_id: str | None = None
    place_id: str | None = None
    place_data: Place | None = None
    match_confidence: MatchConfidence = MatchConfidence.none


class MealSuggestion(BaseModel):
    """Restaurant suggestion for one meal of the day."""

    model_config = ConfigDict(extra="ignore")

    name: str
    cuisine: str = ""
    suggested_place_id: str | None = None
    place_id: str | None = None
    match_confidence: MatchConfidence = MatchConfidence.none


class DayNote(BaseModel):
    """Tip or warning attached to a day."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str = "tip"
    content: str


class ItineraryDay(BaseModel):
    """Itinerary for a single day."""

    model_config = ConfigDict(extra="ignore")

    day: int = Field(..., ge=1)
    date: date
    title: str = ""
    timeline: list[TimelineEntry] = Field(default_factory=list)
    meals: dict[str, MealSuggestion] = Field(default_factory=dict)
    important_notes: list[DayNote] = Field(default_factory=list)
    transport: str = ""
    overnight: str = ""


class TripSummary(BaseModel):
    """High-level trip overview."""

    model_config = ConfigDict(extra="ignore")

    title: str
    description: str = ""
    highlights: list[str] = Field(default_factory=list)
    total_days: int = Field(..., ge=1)
    total_nights: int = Field(0, ge=0)


class AccommodationSuggestion(BaseModel):
    """Suggested place to stay for part of the trip."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    type: str = ""
    area: str = ""
    price_per_night: float = 0
    why: str = ""
    nights: int = 1
    check_in: date | None = None
    check_out: date | None = None
    check_in_time: str = "3:00 PM"
    check_out_time: str = "11:00 AM"
    amenities: list[str] = Field(default_factory=list)


class AccommodationPlan(BaseModel):
    """Accommodation block of the summary."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    suggestions: list[AccommodationSuggestion] = Field(default_factory=list)
    total_cost: float = 0


class SummaryResult(BaseModel):
    """Cached output of the summary step; seeds the day loop."""

    model_config = ConfigDict(extra="ignore")

    summary: TripSummary
    day_titles: list[str] = Field(default_factory=list)
    accommodation: AccommodationPlan = Field(default_factory=AccommodationPlan)

    def title_for_day(self, day_number: int) -> str | None:
        """Planned title of a 1-based day, if the summary has one."""
        if 1 <= day_number <= len(self.day_titles):
            return self.day_titles[day_number - 1]
        return None


class TripPlan(BaseModel):
    """Trip plan document that generated days are written into."""

    trip_id: UUID
    user_id: UUID
    destination: str
    start_date: date
    end_date: date
    travelers: int
    preferences: TravelPreferences
    summary: TripSummary
    accommodations: list[AccommodationSuggestion] = Field(default_factory=list)
    itinerary: list[ItineraryDay] = Field(default_factory=list)
    version: int = 1
    created_at: datetime
    updated_at: datetime

    def get_day(self, day_number: int) -> ItineraryDay | None:
        """Stored itinerary day by number."""
        for day in self.itinerary:
            if day.day == day_number:
                return day
        return None

    def with_day(self, new_day: ItineraryDay, now: datetime) -> "TripPlan":
        """Copy of the plan with ``new_day`` replacing any stored day of the same number."""
        days = [d for d in self.itinerary if d.day != new_day.day]
        days.append(new_day)
        days.sort(key=lambda d: d.day)
        return self.model_copy(
            update={"itinerary": days, "version": self.version + 1, "updated_at": now}
        )
