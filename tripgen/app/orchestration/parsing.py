"""Structured-output parsing and normalization of completion responses."""

import json
from datetime import date
from typing import Any

from pydantic import ValidationError

from tripgen.app.models.itinerary import (
    AccommodationPlan,
    AccommodationSuggestion,
    ItineraryDay,
    SummaryResult,
)
from tripgen.app.models.trip import TravelPreferences, Trip


class ResponseParseError(Exception):
    """Completion content was not valid JSON or did not fit the expected schema."""

    pass


def extract_json_object(content: str, context: str) -> dict[str, Any]:
    """Pull the JSON object out of a completion.

    Tolerates markdown code fences and prose around the object: everything
    from the first ``{`` to the last ``}`` is parsed.

    Raises:
        ResponseParseError: If no JSON object can be decoded
    """
    text = content.strip()

    if text.startswith("```"):
        first_newline = text.find("\n")
        last_fence = text.rfind("```")
        if first_newline != -1 and last_fence > first_newline:
            text = text[first_newline + 1 : last_fence].strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        text = text[start : end + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Failed to parse AI response for {context}: {e}") from e

    if not isinstance(data, dict):
        raise ResponseParseError(f"AI response for {context} is not a JSON object")
    return data


def _normalize_day_titles(titles: list[str], total_days: int) -> list[str]:
    titles = [t for t in titles if isinstance(t, str)][:total_days]
    return titles + [f"Day {n}" for n in range(len(titles) + 1, total_days + 1)]


def _normalize_accommodation(
    plan: AccommodationPlan, trip: Trip, preferences: TravelPreferences
) -> AccommodationPlan:
    suggestions: list[AccommodationSuggestion] = []
    for idx, suggestion in enumerate(plan.suggestions, start=1):
        suggestions.append(
            suggestion.model_copy(
                update={
                    "id": suggestion.id or f"acc-{idx}",
                    "name": suggestion.name or "Accommodation to be confirmed",
                    "type": suggestion.type or preferences.accommodation_type,
                    "check_in": suggestion.check_in or trip.start_date,
                    "check_out": suggestion.check_out or trip.end_date,
                }
            )
        )
    return plan.model_copy(
        update={"type": plan.type or preferences.accommodation_type, "suggestions": suggestions}
    )


def parse_summary(content: str, trip: Trip, preferences: TravelPreferences) -> SummaryResult:
    """Parse and normalize the summary completion.

    ``day_titles`` is padded with "Day N" or truncated to the trip length and
    summary day/night counts are forced to the trip's.

    Raises:
        ResponseParseError: On malformed JSON or schema mismatch
    """
    data = extract_json_object(content, "summary")
    summary_data = data.get("summary")
    if isinstance(summary_data, dict):
        summary_data = {
            **summary_data,
            "total_days": trip.total_days,
            "total_nights": max(trip.total_days - 1, 0),
        }

    try:
        result = SummaryResult.model_validate(
            {
                "summary": summary_data,
                "day_titles": data.get("day_titles") or [],
                "accommodation": data.get("accommodation") or {},
            }
        )
    except ValidationError as e:
        raise ResponseParseError(f"Summary response does not match schema: {e}") from e

    return result.model_copy(
        update={
            "day_titles": _normalize_day_titles(result.day_titles, trip.total_days),
            "accommodation": _normalize_accommodation(result.accommodation, trip, preferences),
        }
    )


_LINK_FIELDS = ("place_id", "place_data", "match_confidence")


def _clean_item(item: Any) -> Any:
    """Drop linking fields the model may echo and keep suggested ids as text.

    The matcher owns linking and decides whether a suggested id is usable.
    """
    if not isinstance(item, dict):
        return item
    cleaned = {k: v for k, v in item.items() if k not in _LINK_FIELDS}
    suggested = cleaned.get("suggested_place_id")
    if suggested is not None and not isinstance(suggested, str):
        cleaned["suggested_place_id"] = str(suggested)
    return cleaned


def _strip_link_fields(items: Any) -> Any:
    if not isinstance(items, list):
        return items
    return [_clean_item(item) for item in items]


def parse_day(content: str, *, day_number: int, day_date: date, fallback_title: str) -> ItineraryDay:
    """Parse and normalize one day completion.

    Day number and date are forced to the requested values; timeline and note
    ids are assigned as ``tl-{day}-{n}`` / ``note-{day}-{n}`` when missing.

    Raises:
        ResponseParseError: On malformed JSON or schema mismatch
    """
    data = extract_json_object(content, f"day {day_number}")
    meals = data.get("meals") or {}
    if not isinstance(meals, dict):
        raise ResponseParseError(f"Day {day_number} meals must be an object")

    try:
        parsed = ItineraryDay.model_validate(
            {
                **data,
                "day": day_number,
                "date": day_date,
                "title": data.get("title") or fallback_title,
                "timeline": _strip_link_fields(data.get("timeline") or []),
                "meals": {slot: _clean_item(meal) for slot, meal in meals.items() if meal},
                "important_notes": data.get("important_notes") or [],
                "transport": data.get("transport") or "",
                "overnight": data.get("overnight") or "",
            }
        )
    except ValidationError as e:
        raise ResponseParseError(f"Day {day_number} response does not match schema: {e}") from e

    timeline = [
        entry.model_copy(update={"id": entry.id or f"tl-{day_number}-{idx}"})
        for idx, entry in enumerate(parsed.timeline, start=1)
    ]
    notes = [
        note.model_copy(update={"id": note.id or f"note-{day_number}-{idx}"})
        for idx, note in enumerate(parsed.important_notes, start=1)
    ]
    return parsed.model_copy(update={"timeline": timeline, "important_notes": notes})
