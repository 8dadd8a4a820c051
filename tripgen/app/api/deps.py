"""FastAPI dependencies resolving the application's generation services."""

from fastapi import Request

from tripgen.app.orchestration.control import GenerationControl
from tripgen.app.orchestration.orchestrator import GenerationOrchestrator
from tripgen.app.services import GenerationServices


def get_services(request: Request) -> GenerationServices:
    services: GenerationServices = request.app.state.services
    return services


def get_control(request: Request) -> GenerationControl:
    return get_services(request).control


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return get_services(request).orchestrator
