"""Tests for completion response parsing and prompt building."""

import json
from datetime import date

import pytest

from tripgen.app.models.common import MatchConfidence, Pace
from tripgen.app.models.trip import TravelPreferences, Trip
from tripgen.app.orchestration.parsing import (
    ResponseParseError,
    extract_json_object,
    parse_day,
    parse_summary,
)
from tripgen.app.orchestration.prompts import build_day_prompt, build_summary_prompt


@pytest.fixture
def preferences() -> TravelPreferences:
    return TravelPreferences(interests=["architecture", "food"], pace=Pace.relaxed, accommodation_type="apartment")


def _summary_payload(day_titles: list[str]) -> dict:
    return {
        "summary": {
            "title": "Gaudí and tapas",
            "description": "Five days in Barcelona.",
            "highlights": ["Sagrada Família"],
            "total_days": 99,
            "total_nights": 0,
        },
        "day_titles": day_titles,
        "accommodation": {
            "suggestions": [
                {"name": "Eixample flat", "price_per_night": 120, "nights": 4},
                {"name": "", "area": "Gràcia", "check_in": "2025-06-12"},
            ]
        },
    }


class TestExtractJsonObject:
    """Test JSON extraction from raw completions."""

    def test_plain_object(self) -> None:
        assert extract_json_object('{"a": 1}', "test") == {"a": 1}

    def test_markdown_fence(self) -> None:
        content = '```json\n{"a": {"b": 2}}\n```'
        assert extract_json_object(content, "test") == {"a": {"b": 2}}

    def test_prose_around_object(self) -> None:
        content = 'Here is your plan:\n{"a": 1}\nEnjoy!'
        assert extract_json_object(content, "test") == {"a": 1}

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(ResponseParseError, match="day 3"):
            extract_json_object("{not json}", "day 3")

    def test_non_object_raises(self) -> None:
        with pytest.raises(ResponseParseError):
            extract_json_object("[1, 2, 3]", "summary")


class TestParseSummary:
    """Test summary normalization."""

    def test_pads_missing_day_titles(self, trip: Trip, preferences: TravelPreferences) -> None:
        content = json.dumps(_summary_payload(["Arrival", "Gaudí"]))

        result = parse_summary(content, trip, preferences)

        assert result.day_titles == ["Arrival", "Gaudí", "Day 3", "Day 4", "Day 5"]

    def test_truncates_extra_day_titles(self, trip: Trip, preferences: TravelPreferences) -> None:
        content = json.dumps(_summary_payload([f"T{n}" for n in range(1, 9)]))

        result = parse_summary(content, trip, preferences)

        assert result.day_titles == ["T1", "T2", "T3", "T4", "T5"]

    def test_forces_trip_length(self, trip: Trip, preferences: TravelPreferences) -> None:
        result = parse_summary(json.dumps(_summary_payload([])), trip, preferences)

        assert result.summary.total_days == 5
        assert result.summary.total_nights == 4

    def test_normalizes_accommodation(self, trip: Trip, preferences: TravelPreferences) -> None:
        result = parse_summary(json.dumps(_summary_payload([])), trip, preferences)

        first, second = result.accommodation.suggestions
        assert result.accommodation.type == "apartment"
        assert first.id == "acc-1"
        assert first.type == "apartment"
        assert first.check_in == date(2025, 6, 10)
        assert first.check_out == date(2025, 6, 14)
        assert second.id == "acc-2"
        assert second.name == "Accommodation to be confirmed"
        assert second.check_in == date(2025, 6, 12)

    def test_missing_summary_raises(self, trip: Trip, preferences: TravelPreferences) -> None:
        with pytest.raises(ResponseParseError):
            parse_summary(json.dumps({"day_titles": ["x"]}), trip, preferences)


class TestParseDay:
    """Test day normalization."""

    def test_forces_day_and_date_and_assigns_ids(self) -> None:
        content = json.dumps(
            {
                "day": 7,
                "date": "1999-01-01",
                "timeline": [
                    {"time": "09:00", "activity": "Visit to Park Güell"},
                    {"time": "13:00", "activity": "Lunch", "id": "custom"},
                ],
                "important_notes": [{"content": "Book tickets"}, {"id": "crowds", "type": "warning", "content": "Crowds"}],
            }
        )

        day = parse_day(content, day_number=2, day_date=date(2025, 6, 11), fallback_title="Gaudí")

        assert day.day == 2
        assert day.date == date(2025, 6, 11)
        assert day.title == "Gaudí"
        assert [e.id for e in day.timeline] == ["tl-2-1", "custom"]
        assert [n.id for n in day.important_notes] == ["note-2-1", "crowds"]
        assert day.transport == ""
        assert day.overnight == ""

    def test_strips_model_supplied_link_fields(self) -> None:
        content = json.dumps(
            {
                "timeline": [
                    {
                        "activity": "Museum",
                        "suggested_place_id": "abc",
                        "place_id": "abc",
                        "match_confidence": "exact",
                    }
                ],
                "meals": {"dinner": {"name": "Bar", "place_id": "x"}, "lunch": None},
            }
        )

        day = parse_day(content, day_number=1, day_date=date(2025, 6, 10), fallback_title="Day 1")

        entry = day.timeline[0]
        assert entry.suggested_place_id == "abc"
        assert entry.place_id is None
        assert entry.match_confidence == MatchConfidence.none
        assert day.meals["dinner"].place_id is None
        assert "lunch" not in day.meals

    def test_non_string_suggested_ids_are_kept_as_text(self) -> None:
        content = json.dumps(
            {
                "timeline": [{"activity": "Picasso Museum", "suggested_place_id": 12345}],
                "meals": {"lunch": {"name": "Bar Cañete", "suggested_place_id": 678}},
            }
        )

        day = parse_day(content, day_number=1, day_date=date(2025, 6, 10), fallback_title="Day 1")

        assert day.timeline[0].suggested_place_id == "12345"
        assert day.meals["lunch"].suggested_place_id == "678"

    def test_schema_mismatch_raises(self) -> None:
        content = json.dumps({"timeline": [{"time": "09:00"}]})

        with pytest.raises(ResponseParseError):
            parse_day(content, day_number=1, day_date=date(2025, 6, 10), fallback_title="Day 1")

    def test_meals_must_be_object(self) -> None:
        content = json.dumps({"meals": ["lunch"]})

        with pytest.raises(ResponseParseError):
            parse_day(content, day_number=1, day_date=date(2025, 6, 10), fallback_title="Day 1")


class TestPrompts:
    """Test prompt content."""

    def test_summary_prompt_mentions_trip_facts(self, trip: Trip, preferences: TravelPreferences) -> None:
        prompt = build_summary_prompt(trip, preferences)

        assert "Barcelona" in prompt
        assert "Total days: 5" in prompt
        assert "exactly 5 entries" in prompt
        assert "architecture, food" in prompt

    def test_day_prompt_includes_neighbours_and_places(
        self, trip: Trip, preferences: TravelPreferences
    ) -> None:
        prompt = build_day_prompt(
            trip,
            preferences,
            day_number=2,
            day_date=date(2025, 6, 11),
            day_title="Gaudí",
            previous_day_summary="Arrival",
            next_day_title="Beaches",
            places_context={"attractions": [{"id": "ChIJabc", "name": "Park Güell"}]},
        )

        assert "Previous day: Arrival" in prompt
        assert "Next day: Beaches" in prompt
        assert "ChIJabc" in prompt
        assert "copy ids verbatim" in prompt

    def test_day_prompt_without_places(self, trip: Trip, preferences: TravelPreferences) -> None:
        prompt = build_day_prompt(
            trip, preferences, day_number=1, day_date=date(2025, 6, 10), day_title="Arrival"
        )

        assert "Available places" not in prompt
        assert "Previous day" not in prompt
