"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tripgen.app.api.routes.generation import router as generation_router
from tripgen.app.api.routes.health import router as health_router
from tripgen.app.api.routes.metrics import router as metrics_router
from tripgen.app.services import GenerationServices, build_services


def create_app(services: GenerationServices | None = None) -> FastAPI:
    """Build the application.

    Args:
        services: Pre-built services (tests); built from settings at startup otherwise
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services is None:
            app.state.services = build_services()
        yield
        await app.state.services.close()

    app = FastAPI(title="Trip Itinerary Generation API", version="0.1.0", lifespan=lifespan)
    if services is not None:
        app.state.services = services

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(generation_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Trip Itinerary Generation API", "version": "0.1.0"}

    return app


app = create_app()
