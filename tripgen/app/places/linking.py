"""Attach catalog places to a generated itinerary day."""

import logging

from tripgen.app.models.itinerary import ItineraryDay
from tripgen.app.models.linking import LinkingMetrics
from tripgen.app.places.catalog import CatalogIndex
from tripgen.app.places.matching import DEFAULT_CATALOG_ID_PATTERN, match_place
from tripgen.app.places.metrics import LinkingMetricsAggregator
from tripgen.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)


def link_day_places(
    day: ItineraryDay,
    index: CatalogIndex,
    *,
    id_pattern: str = DEFAULT_CATALOG_ID_PATTERN,
    prometheus: PrometheusGenerationMetrics | None = None,
) -> tuple[ItineraryDay, LinkingMetrics]:
    """Resolve every timeline entry and meal of ``day`` against the catalog.

    Linked entries get ``place_id`` and ``match_confidence`` set (timeline
    entries also carry ``place_data``). Unlinked entries keep confidence
    ``none`` and no place id. With an empty catalog the day is returned
    untouched and no items are counted.

    Args:
        day: Parsed day from the model
        index: Catalog index for the trip
        id_pattern: Regex a real catalog id matches
        prometheus: Metrics sink (defaults to the process registry)

    Returns:
        Tuple of (linked day copy, metrics for this day)
    """
    if not index:
        logger.info(f"No places catalog for day {day.day}; skipping place linking")
        return day, LinkingMetrics()

    aggregator = LinkingMetricsAggregator(prometheus)

    timeline = []
    for entry in day.timeline:
        match = match_place(
            entry.suggested_place_id,
            entry.activity,
            index,
            location=entry.location or None,
            id_pattern=id_pattern,
        )
        aggregator.record(match, entry.suggested_place_id, kind="timeline")
        timeline.append(
            entry.model_copy(
                update={
                    "place_id": match.place.id if match.place else None,
                    "place_data": match.place,
                    "match_confidence": match.confidence,
                }
            )
        )

    meals = {}
    for meal_name, meal in day.meals.items():
        match = match_place(meal.suggested_place_id, meal.name, index, id_pattern=id_pattern)
        aggregator.record(match, meal.suggested_place_id, kind="meal")
        meals[meal_name] = meal.model_copy(
            update={
                "place_id": match.place.id if match.place else None,
                "match_confidence": match.confidence,
            }
        )

    linked = day.model_copy(update={"timeline": timeline, "meals": meals})
    return linked, aggregator.finish()
