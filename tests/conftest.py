"""Shared pytest fixtures for all test suites."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tripgen.app.config import Settings
from tripgen.app.db.context import RequestContext
from tripgen.app.db.inmemory import (
    InMemoryAIRequestLogRepository,
    InMemoryGenerationRepository,
    InMemoryPlanRepository,
    InMemoryTripRepository,
)
from tripgen.app.db.models import Base
from tripgen.app.db.repositories import Repositories
from tripgen.app.llm.client import (
    CompletionRequest,
    CompletionResponse,
    CompletionUsage,
    DeterministicStubProvider,
    ProviderError,
)
from tripgen.app.models.generation import StepRequest
from tripgen.app.models.places import Place, PlaceLocation, PlacesCatalog
from tripgen.app.models.trip import Trip
from tripgen.app.orchestration.control import GenerationControl
from tripgen.app.orchestration.orchestrator import GenerationOrchestrator, StepOutcome

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
OTHER_USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000ff")


class RecordingScheduler:
    """Queues scheduled steps instead of running them."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[StepRequest, float]] = []

    async def schedule(self, request: StepRequest, delay_seconds: float = 0) -> None:
        self.scheduled.append((request, delay_seconds))

    def pop(self, index: int = 0) -> StepRequest:
        request, _ = self.scheduled.pop(index)
        return request

    @property
    def delays(self) -> list[float]:
        return [delay for _, delay in self.scheduled]


class ScriptedProvider:
    """Deterministic provider with scripted failures.

    ``day_failures`` maps a day number to how many calls for it fail next
    (a negative count fails forever). ``day_malformed`` maps a day number to
    how many calls for it return unparseable text. ``on_call`` runs before
    each call.
    """

    model = "stub"
    provider_name = "stub"

    def __init__(self) -> None:
        self._stub = DeterministicStubProvider()
        self.day_failures: dict[int, int] = {}
        self.day_malformed: dict[int, int] = {}
        self.summary_failures = 0
        self.calls: list[dict[str, Any]] = []
        self.on_call: Callable[[dict[str, Any]], Awaitable[None]] | None = None

    def day_calls(self, day_number: int) -> int:
        return sum(
            1 for c in self.calls if c.get("step") == "day" and c.get("day_number") == day_number
        )

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        ctx = request.context
        self.calls.append(dict(ctx))
        if self.on_call is not None:
            await self.on_call(ctx)

        if ctx.get("step") == "summary":
            if self.summary_failures:
                self.summary_failures -= 1
                raise ProviderError("summary provider outage")
        else:
            day_number = ctx["day_number"]
            remaining = self.day_failures.get(day_number, 0)
            if remaining:
                self.day_failures[day_number] = remaining - 1
                raise ProviderError(f"provider outage on day {day_number}")
            if self.day_malformed.get(day_number, 0):
                self.day_malformed[day_number] -= 1
                return CompletionResponse(
                    content="Sorry, here is your day: not json at all",
                    usage=CompletionUsage(input_tokens=10, output_tokens=8),
                    model="stub",
                    provider="stub",
                )

        return await self._stub.complete(request)


@pytest.fixture
def settings() -> Settings:
    """Settings with fast retries and no API key."""
    return Settings(
        openai_api_key=None,
        database_url=None,
        max_day_retries=3,
        retry_backoff_base_seconds=1.0,
    )


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(user_id=USER_ID)


@pytest.fixture
def other_ctx() -> RequestContext:
    return RequestContext(user_id=OTHER_USER_ID)


@pytest.fixture
def trip() -> Trip:
    """Five-day Barcelona trip owned by USER_ID."""
    return Trip(
        trip_id=uuid.uuid4(),
        user_id=USER_ID,
        destination="Barcelona",
        origin="London",
        start_date=date(2025, 6, 10),
        end_date=date(2025, 6, 14),
        travelers=2,
    )


@pytest.fixture
def catalog() -> PlacesCatalog:
    """Small catalog with real-looking place ids."""
    return {
        "attractions": [
            Place(
                id="ChIJk_s92NyipBIRUMnDG8Kq2Js",
                name="Sagrada Família",
                type="attraction",
                rating=4.8,
                location=PlaceLocation(lat=41.4036, lng=2.1744, address="C/ de Mallorca, 401"),
            ),
            Place(
                id="ChIJ5TCOcRaYpBIRCmZHTz37sEQ",
                name="Park Güell",
                type="attraction",
                rating=4.6,
            ),
        ],
        "restaurants": [
            Place(
                id="ChIJ0T2NLikpdhIRMPIyqqLb8v8",
                name="Café del Mar",
                type="restaurant",
                rating=4.3,
                price_level=2,
            ),
        ],
    }


@pytest.fixture
def trip_repo(trip: Trip) -> InMemoryTripRepository:
    repo = InMemoryTripRepository()
    repo.add_trip(trip)
    return repo


@pytest.fixture
def repos(trip_repo: InMemoryTripRepository) -> Repositories:
    return Repositories(
        trips=trip_repo,
        generations=InMemoryGenerationRepository(),
        plans=InMemoryPlanRepository(),
        ai_logs=InMemoryAIRequestLogRepository(),
    )


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def orchestrator(
    repos: Repositories,
    provider: ScriptedProvider,
    scheduler: RecordingScheduler,
    settings: Settings,
) -> GenerationOrchestrator:
    return GenerationOrchestrator(repos, provider, scheduler, settings)


@pytest.fixture
def control(repos: Repositories, scheduler: RecordingScheduler) -> GenerationControl:
    return GenerationControl(repos, scheduler)


@pytest.fixture
def drive(
    orchestrator: GenerationOrchestrator, scheduler: RecordingScheduler
) -> Callable[..., Awaitable[list[StepOutcome]]]:
    """Run queued steps in order (ignoring delays) until the queue is empty."""

    async def _drive(max_steps: int = 100) -> list[StepOutcome]:
        outcomes: list[StepOutcome] = []
        while scheduler.scheduled:
            outcomes.append(await orchestrator.handle(scheduler.pop()))
            assert len(outcomes) <= max_steps, "generation did not settle"
        return outcomes

    return _drive


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Any) -> AsyncGenerator[AsyncEngine, None]:
    """Async engine on a throwaway SQLite file with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tripgen.db'}",
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)
