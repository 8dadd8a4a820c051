"""Summary Generator - one completion producing the trip overview and day titles."""

from datetime import datetime

from tripgen.app.config import Settings
from tripgen.app.llm.client import CompletionRequest
from tripgen.app.models.itinerary import ItineraryDay, SummaryResult, TripPlan
from tripgen.app.models.trip import TravelPreferences, Trip
from tripgen.app.orchestration.completion import CompletionRunner
from tripgen.app.orchestration.parsing import parse_summary
from tripgen.app.orchestration.prompts import SYSTEM_PROMPT, build_summary_prompt


class SummaryGenerator:
    """Builds the summary request, calls the provider once and parses the result."""

    def __init__(self, runner: CompletionRunner, settings: Settings) -> None:
        self._runner = runner
        self._settings = settings

    async def generate(self, trip: Trip, preferences: TravelPreferences) -> SummaryResult:
        """Generate the trip summary.

        Raises:
            ProviderError: If the completion call fails
            ResponseParseError: If the response cannot be parsed
        """
        request = CompletionRequest(
            messages=[{"role": "user", "content": build_summary_prompt(trip, preferences)}],
            system_prompt=SYSTEM_PROMPT,
            max_tokens=self._settings.completion_max_tokens,
            temperature=self._settings.completion_temperature,
            timeout_seconds=self._settings.summary_timeout_seconds,
            context={
                "step": "summary",
                "destination": trip.destination,
                "total_days": trip.total_days,
                "start_date": trip.start_date.isoformat(),
                "accommodation_type": preferences.accommodation_type,
            },
        )
        response = await self._runner.run(
            request,
            step="summary",
            trip_id=trip.trip_id,
            user_id=trip.user_id,
            endpoint="generation/summary",
            metadata={"destination": trip.destination, "total_days": trip.total_days},
        )
        return parse_summary(response.content, trip, preferences)


def build_initial_plan(
    trip: Trip,
    preferences: TravelPreferences,
    summary: SummaryResult,
    now: datetime,
) -> TripPlan:
    """Plan skeleton: summary, accommodations and one titled, empty day per trip day."""
    itinerary = [
        ItineraryDay(
            day=day_number,
            date=trip.date_for_day(day_number),
            title=summary.title_for_day(day_number) or f"Day {day_number}",
        )
        for day_number in range(1, trip.total_days + 1)
    ]
    return TripPlan(
        trip_id=trip.trip_id,
        user_id=trip.user_id,
        destination=trip.destination,
        start_date=trip.start_date,
        end_date=trip.end_date,
        travelers=trip.travelers,
        preferences=preferences,
        summary=summary.summary,
        accommodations=summary.accommodation.suggestions,
        itinerary=itinerary,
        version=1,
        created_at=now,
        updated_at=now,
    )
