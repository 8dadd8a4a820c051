"""Completion provider for itinerary generation with OpenAI integration.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic provider when no key is present for local runs and tests.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Protocol

from openai import APIError, APITimeoutError, AsyncOpenAI

from tripgen.app.config import Settings, get_settings

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 60000


class ProviderError(Exception):
    """Completion call failed (network, API or empty response)."""

    pass


class ProviderTimeoutError(ProviderError):
    """Completion call exceeded its timeout."""

    pass


@dataclass(frozen=True)
class CompletionUsage:
    """Token accounting for one call."""

    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class CompletionRequest:
    """One completion call.

    ``context`` is free-form data about the call (step, trip, day) used for
    logging and by the deterministic provider; it is never sent to the model.
    """

    messages: list[dict[str, str]]
    system_prompt: str
    max_tokens: int = 4000
    temperature: float = 0.7
    timeout_seconds: float = 45.0
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompletionResponse:
    """Raw text returned by the provider."""

    content: str
    usage: CompletionUsage
    model: str
    provider: str = "openai"


class CompletionProvider(Protocol):
    """Protocol for completion provider implementations."""

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run a single completion.

        Args:
            request: Prompt, limits and call context

        Returns:
            CompletionResponse with raw content and token usage

        Raises:
            ProviderTimeoutError: If the call exceeds ``request.timeout_seconds``
            ProviderError: On any other provider failure
        """
        ...


class DeterministicStubProvider:
    """Deterministic provider for local runs and tests (no API key required).

    Produces valid summary and day JSON shaped by ``request.context``.
    """

    model = "stub"
    provider_name = "stub"

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Generate a deterministic completion."""
        ctx = request.context
        if ctx.get("step") == "summary":
            payload = self._summary(ctx)
        else:
            payload = self._day(ctx)

        content = json.dumps(payload)
        return CompletionResponse(
            content=content,
            usage=CompletionUsage(
                input_tokens=sum(len(m["content"]) for m in request.messages) // 4,
                output_tokens=len(content) // 4,
            ),
            model=self.model,
            provider="stub",
        )

    def _summary(self, ctx: dict[str, Any]) -> dict[str, Any]:
        destination = ctx.get("destination", "your destination")
        total_days = int(ctx.get("total_days", 1))
        start = date.fromisoformat(ctx["start_date"]) if ctx.get("start_date") else None

        return {
            "summary": {
                "title": f"Trip to {destination}",
                "description": f"A {total_days}-day itinerary for {destination}.",
                "highlights": [f"Highlights of {destination}"],
                "total_days": total_days,
                "total_nights": max(total_days - 1, 0),
            },
            "day_titles": [f"Day {n} in {destination}" for n in range(1, total_days + 1)],
            "accommodation": {
                "type": ctx.get("accommodation_type", "hotel"),
                "suggestions": [
                    {
                        "name": f"Central stay in {destination}",
                        "area": "City centre",
                        "price_per_night": 100,
                        "why": "Walking distance to the main sights",
                        "nights": max(total_days - 1, 1),
                        "check_in": start.isoformat() if start else None,
                        "check_out": (
                            (start + timedelta(days=max(total_days - 1, 1))).isoformat()
                            if start
                            else None
                        ),
                    }
                ],
                "total_cost": 100 * max(total_days - 1, 1),
            },
        }

    def _day(self, ctx: dict[str, Any]) -> dict[str, Any]:
        day_number = int(ctx.get("day_number", 1))
        destination = ctx.get("destination", "the city")
        catalog: dict[str, list[dict[str, Any]]] = ctx.get("catalog") or {}
        places = [p for entries in catalog.values() for p in entries]

        timeline = []
        for slot, time_of_day in enumerate(("09:00", "13:00", "17:00")):
            place = places[slot] if slot < len(places) else None
            timeline.append(
                {
                    "time": time_of_day,
                    "activity": f"Visit {place['name']}" if place else f"Explore {destination}",
                    "location": place["name"] if place else destination,
                    "icon": "map-pin",
                    "duration": "2h",
                    "suggested_place_id": place["id"] if place else None,
                }
            )

        return {
            "day": day_number,
            "date": ctx.get("date"),
            "title": ctx.get("day_title") or f"Day {day_number}",
            "timeline": timeline,
            "meals": {"lunch": {"name": f"Local lunch in {destination}", "cuisine": "local"}},
            "important_notes": [{"type": "tip", "content": "Carry water and comfortable shoes."}],
            "transport": "Walking",
            "overnight": destination,
        }


class OpenAICompletionProvider:
    """OpenAI-backed completion provider."""

    provider_name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run a chat completion, converting every failure to ``ProviderError``."""
        messages = [{"role": "system", "content": request.system_prompt}, *request.messages]

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=request.temperature,
                    max_tokens=request.max_tokens,
                ),
                timeout=request.timeout_seconds,
            )
        except (asyncio.TimeoutError, APITimeoutError) as e:
            raise ProviderTimeoutError(
                f"completion timed out after {request.timeout_seconds}s"
            ) from e
        except APIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise ProviderError(f"OpenAI API error: {e}") from e

        content = response.choices[0].message.content or ""

        # Validation: Check for empty response
        if not content.strip():
            raise ProviderError("OpenAI returned an empty response")

        # Validation: Check for unreasonably long response
        if len(content) > MAX_CONTENT_CHARS:
            logger.warning(
                f"OpenAI response unexpectedly large ({len(content)} chars), "
                f"truncating to {MAX_CONTENT_CHARS}"
            )
            content = content[:MAX_CONTENT_CHARS]

        usage = response.usage
        return CompletionResponse(
            content=content,
            usage=CompletionUsage(
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
            ),
            model=response.model or self.model,
            provider="openai",
        )


def get_completion_provider(settings: Settings | None = None) -> CompletionProvider:
    """Factory function to get appropriate completion provider based on config.

    Returns:
        OpenAICompletionProvider if API key is configured, DeterministicStubProvider otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI completion provider")
        return OpenAICompletionProvider(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
        )
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub provider")
        return DeterministicStubProvider()
