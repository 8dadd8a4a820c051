"""Service wiring - repositories, provider, scheduler, orchestrator and control plane."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tripgen.app.config import Settings, get_settings
from tripgen.app.db.engine import create_async_engine_from_settings, create_session_factory
from tripgen.app.db.inmemory import create_inmemory_repositories
from tripgen.app.db.repositories import Repositories
from tripgen.app.db.sql_repositories import create_sql_repositories
from tripgen.app.llm.client import CompletionProvider, get_completion_provider
from tripgen.app.orchestration.chaining import (
    BackgroundTaskScheduler,
    HttpInvocationScheduler,
    InvocationScheduler,
)
from tripgen.app.orchestration.control import GenerationControl
from tripgen.app.orchestration.orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class GenerationServices:
    """Everything the routes need, built once per application."""

    repos: Repositories
    scheduler: InvocationScheduler
    orchestrator: GenerationOrchestrator
    control: GenerationControl
    engine: AsyncEngine | None = None
    session_factory: async_sessionmaker[AsyncSession] | None = None

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_scheduler(settings: Settings) -> InvocationScheduler:
    """Scheduler for ``settings.scheduler_backend``."""
    if settings.scheduler_backend == "http":
        return HttpInvocationScheduler(
            settings.self_invoke_url,
            settings.invoke_token.get_secret_value(),
            timeout_seconds=settings.dispatch_timeout_seconds,
        )
    return BackgroundTaskScheduler()


def build_services(
    settings: Settings | None = None,
    *,
    repos: Repositories | None = None,
    provider: CompletionProvider | None = None,
    scheduler: InvocationScheduler | None = None,
) -> GenerationServices:
    """Wire the generation pipeline.

    Uses SQL repositories when ``database_url`` is configured and in-memory
    ones otherwise. Explicit collaborators override the settings-derived ones.
    """
    settings = settings or get_settings()

    engine = None
    session_factory = None
    if repos is None:
        if settings.database_url:
            engine = create_async_engine_from_settings(settings)
            session_factory = create_session_factory(engine)
            repos = create_sql_repositories(session_factory)
        else:
            logger.warning("DATABASE_URL not set, using in-memory repositories")
            repos = create_inmemory_repositories()

    scheduler = scheduler or build_scheduler(settings)
    orchestrator = GenerationOrchestrator(
        repos, provider or get_completion_provider(settings), scheduler, settings
    )
    if isinstance(scheduler, BackgroundTaskScheduler):
        scheduler.bind(orchestrator.handle)

    return GenerationServices(
        repos=repos,
        scheduler=scheduler,
        orchestrator=orchestrator,
        control=GenerationControl(repos, scheduler),
        engine=engine,
        session_factory=session_factory,
    )
