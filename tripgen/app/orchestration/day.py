"""Day Generator - one completion per itinerary day, then place linking."""

from dataclasses import dataclass
from datetime import date

from tripgen.app.config import Settings
from tripgen.app.llm.client import CompletionRequest
from tripgen.app.models.itinerary import ItineraryDay
from tripgen.app.models.linking import LinkingMetrics
from tripgen.app.models.places import PlacesCatalog
from tripgen.app.models.trip import TravelPreferences, Trip
from tripgen.app.orchestration.completion import CompletionRunner
from tripgen.app.orchestration.parsing import parse_day
from tripgen.app.orchestration.prompts import SYSTEM_PROMPT, build_day_prompt
from tripgen.app.places.catalog import CatalogIndex, simplify_catalog_for_prompt
from tripgen.app.places.linking import link_day_places
from tripgen.app.utils.metrics import PrometheusGenerationMetrics


@dataclass
class DayInputs:
    """Everything one day's prompt depends on."""

    trip: Trip
    preferences: TravelPreferences
    day_number: int
    day_date: date
    day_title: str
    previous_day_summary: str | None = None
    next_day_title: str | None = None
    places_catalog: PlacesCatalog | None = None


class DayGenerator:
    """Generates, parses and place-links one itinerary day."""

    def __init__(
        self,
        runner: CompletionRunner,
        settings: Settings,
        metrics: PrometheusGenerationMetrics | None = None,
    ) -> None:
        self._runner = runner
        self._settings = settings
        self._metrics = metrics

    async def generate(self, inputs: DayInputs) -> tuple[ItineraryDay, LinkingMetrics]:
        """Generate one day.

        Args:
            inputs: Trip, preferences and neighbouring-day context

        Returns:
            Tuple of (linked day, linking metrics for the day)

        Raises:
            ProviderError: If the completion call fails
            ResponseParseError: If the response cannot be parsed
        """
        places_context = (
            simplify_catalog_for_prompt(
                inputs.places_catalog, self._settings.prompt_places_per_category
            )
            if inputs.places_catalog
            else None
        )
        prompt = build_day_prompt(
            inputs.trip,
            inputs.preferences,
            day_number=inputs.day_number,
            day_date=inputs.day_date,
            day_title=inputs.day_title,
            previous_day_summary=inputs.previous_day_summary,
            next_day_title=inputs.next_day_title,
            places_context=places_context,
        )
        request = CompletionRequest(
            messages=[{"role": "user", "content": prompt}],
            system_prompt=SYSTEM_PROMPT,
            max_tokens=self._settings.completion_max_tokens,
            temperature=self._settings.completion_temperature,
            timeout_seconds=self._settings.day_timeout_seconds,
            context={
                "step": "day",
                "destination": inputs.trip.destination,
                "day_number": inputs.day_number,
                "date": inputs.day_date.isoformat(),
                "day_title": inputs.day_title,
                "catalog": places_context,
            },
        )
        response = await self._runner.run(
            request,
            step="day",
            trip_id=inputs.trip.trip_id,
            user_id=inputs.trip.user_id,
            endpoint="generation/day",
            metadata={"day_number": inputs.day_number, "has_places": bool(places_context)},
        )

        day = parse_day(
            response.content,
            day_number=inputs.day_number,
            day_date=inputs.day_date,
            fallback_title=inputs.day_title,
        )
        return link_day_places(
            day,
            CatalogIndex.from_catalog(inputs.places_catalog),
            id_pattern=self._settings.catalog_id_pattern,
            prometheus=self._metrics,
        )
