"""Prompt builders for the summary and per-day completion calls."""

import json
from datetime import date

from tripgen.app.models.trip import TravelPreferences, Trip

SYSTEM_PROMPT = """You are an expert travel planner. You write realistic, well-paced itineraries
for real destinations and answer ONLY with a single JSON object, no prose and no markdown.

CRITICAL CONSTRAINTS:
- Use real places that exist at the destination.
- When a list of available places is provided, prefer those places and copy their "id"
  verbatim into "suggested_place_id". Never invent or modify an id; leave
  "suggested_place_id" null when the place is not in the list.
- Respect the traveler's pace: relaxed means fewer activities with long breaks,
  intensive means a full schedule.
- Use 24-hour times ("09:00") and ISO dates ("YYYY-MM-DD")."""


def _preferences_lines(preferences: TravelPreferences) -> list[str]:
    return [
        f"- Priority: {preferences.priority}",
        f"- Interests: {', '.join(preferences.interests) or 'general'}",
        f"- Pace: {preferences.pace.value}",
        f"- Style: {preferences.style}",
    ]


def build_summary_prompt(trip: Trip, preferences: TravelPreferences) -> str:
    """User prompt for the trip summary call."""
    total_days = trip.total_days
    total_nights = max(total_days - 1, 0)

    lines = [
        "Create a trip summary as JSON for:",
        f"- Destination: {trip.destination}",
        f"- Origin: {trip.origin or 'not specified'}",
        f"- Start date: {trip.start_date.isoformat()}",
        f"- End date: {trip.end_date.isoformat()}",
        f"- Total days: {total_days}",
        f"- Total nights: {total_nights}",
        f"- Travelers: {trip.travelers}",
        *_preferences_lines(preferences),
        f"- Preferred accommodation: {preferences.accommodation_type}",
        "",
        "ACCOMMODATION:",
        f"- Suggestions must cover all {total_nights} nights with consecutive check-in/check-out dates.",
        f"- The first night is {trip.start_date.isoformat()}; the last check-out is {trip.end_date.isoformat()}.",
        "- If the trip spans several areas, split the stay between 2-3 places.",
        "",
        "Respond with exactly this JSON shape:",
        json.dumps(
            {
                "summary": {
                    "title": "Catchy trip title",
                    "description": "2-3 sentence overview",
                    "highlights": ["highlight 1", "highlight 2", "highlight 3"],
                    "total_days": total_days,
                    "total_nights": total_nights,
                },
                "day_titles": ["Title for day 1", "Title for day 2", "... one per day"],
                "accommodation": {
                    "type": preferences.accommodation_type,
                    "suggestions": [
                        {
                            "name": "Accommodation name",
                            "type": preferences.accommodation_type,
                            "area": "Neighbourhood or region",
                            "price_per_night": 80,
                            "why": "Why it suits this part of the trip",
                            "nights": 3,
                            "check_in": "YYYY-MM-DD",
                            "check_out": "YYYY-MM-DD",
                            "amenities": ["WiFi"],
                        }
                    ],
                    "total_cost": 0,
                },
            },
            indent=2,
        ),
        "",
        f"\"day_titles\" must contain exactly {total_days} entries.",
    ]
    return "\n".join(lines)


def build_day_prompt(
    trip: Trip,
    preferences: TravelPreferences,
    *,
    day_number: int,
    day_date: date,
    day_title: str,
    previous_day_summary: str | None = None,
    next_day_title: str | None = None,
    places_context: dict[str, list[dict[str, object]]] | None = None,
) -> str:
    """User prompt for one itinerary day."""
    lines = [
        f"Create the itinerary for day {day_number} as JSON:",
        f"- Destination: {trip.destination}",
        f"- Date: {day_date.isoformat()}",
        f"- Suggested title: {day_title}",
        f"- Travelers: {trip.travelers}",
        *_preferences_lines(preferences),
    ]
    if previous_day_summary:
        lines.append(f"- Previous day: {previous_day_summary}")
    if next_day_title:
        lines.append(f"- Next day: {next_day_title}")

    if places_context:
        lines += [
            "",
            "Available places (copy ids verbatim into suggested_place_id):",
            json.dumps(places_context, indent=2),
        ]

    lines += [
        "",
        "Respond with exactly this JSON shape:",
        json.dumps(
            {
                "day": day_number,
                "date": day_date.isoformat(),
                "title": day_title,
                "timeline": [
                    {
                        "time": "09:00",
                        "activity": "Activity name",
                        "location": "Specific place",
                        "icon": "emoji",
                        "duration": "2 hours",
                        "notes": "Optional notes",
                        "suggested_place_id": "id from the available places or null",
                    }
                ],
                "meals": {
                    "breakfast": {"name": "Restaurant", "cuisine": "Type", "suggested_place_id": None},
                    "lunch": {"name": "Restaurant", "cuisine": "Type", "suggested_place_id": None},
                    "dinner": {"name": "Restaurant", "cuisine": "Type", "suggested_place_id": None},
                },
                "important_notes": [{"type": "tip", "content": "Useful tip"}],
                "transport": "How to get around today",
                "overnight": "Where the travelers sleep",
            },
            indent=2,
        ),
    ]
    return "\n".join(lines)
