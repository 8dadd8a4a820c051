"""Generation endpoints - start, pause, resume, retry, status and internal invoke."""

import asyncio
import logging
import secrets
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status

from tripgen.app.api.auth import get_current_context
from tripgen.app.api.deps import get_control, get_orchestrator
from tripgen.app.config import Settings, get_settings
from tripgen.app.db.context import RequestContext
from tripgen.app.models.generation import (
    Accepted,
    GenerationStatusView,
    InvokeStepRequest,
    RetryGenerationRequest,
    StartGenerationRequest,
    StepRequest,
    TripRequest,
)
from tripgen.app.orchestration.control import GenerationControl
from tripgen.app.orchestration.errors import GenerationError
from tripgen.app.orchestration.orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generation", tags=["generation"])


def _http_error(error: GenerationError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


@router.post("/start", response_model=Accepted, status_code=status.HTTP_202_ACCEPTED)
async def start_generation(
    request: StartGenerationRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    control: Annotated[GenerationControl, Depends(get_control)],
) -> Accepted:
    """Start (or restart) itinerary generation for a trip.

    Returns:
        Accepted with the number of days to generate

    Raises:
        HTTPException: 404 unknown trip, 403 other user's trip, 409 already running
    """
    try:
        return await control.start(
            request.trip_id, ctx, request.preferences, request.places_catalog
        )
    except GenerationError as e:
        raise _http_error(e) from e


@router.post("/pause", response_model=Accepted, status_code=status.HTTP_202_ACCEPTED)
async def pause_generation(
    request: TripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    control: Annotated[GenerationControl, Depends(get_control)],
) -> Accepted:
    """Pause an active run."""
    try:
        return await control.pause(request.trip_id, ctx)
    except GenerationError as e:
        raise _http_error(e) from e


@router.post("/resume", response_model=Accepted, status_code=status.HTTP_202_ACCEPTED)
async def resume_generation(
    request: TripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    control: Annotated[GenerationControl, Depends(get_control)],
) -> Accepted:
    """Resume a paused run."""
    try:
        return await control.resume(request.trip_id, ctx)
    except GenerationError as e:
        raise _http_error(e) from e


@router.post("/retry", response_model=Accepted, status_code=status.HTTP_202_ACCEPTED)
async def retry_generation(
    request: RetryGenerationRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    control: Annotated[GenerationControl, Depends(get_control)],
) -> Accepted:
    """Retry one failed day, or every failed day when ``day_number`` is omitted."""
    try:
        return await control.retry(request.trip_id, ctx, request.day_number)
    except GenerationError as e:
        raise _http_error(e) from e


@router.get("/{trip_id}", response_model=GenerationStatusView)
async def get_generation_status(
    trip_id: UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    control: Annotated[GenerationControl, Depends(get_control)],
) -> GenerationStatusView:
    """Current progress of a trip's generation run."""
    try:
        record = await control.get_status(trip_id, ctx)
    except GenerationError as e:
        raise _http_error(e) from e
    return GenerationStatusView.from_record(record)


async def _run_step(
    orchestrator: GenerationOrchestrator, step: StepRequest, delay_seconds: float
) -> None:
    if delay_seconds > 0:
        await asyncio.sleep(delay_seconds)
    await orchestrator.handle(step)


@router.post("/invoke", status_code=status.HTTP_202_ACCEPTED, include_in_schema=False)
async def invoke_step(
    request: InvokeStepRequest,
    background_tasks: BackgroundTasks,
    orchestrator: Annotated[GenerationOrchestrator, Depends(get_orchestrator)],
    settings: Annotated[Settings, Depends(get_settings)],
    x_invoke_token: Annotated[str | None, Header()] = None,
) -> dict[str, str]:
    """Internal self-invocation: answer immediately, run the step afterwards.

    Raises:
        HTTPException: 401 if the invoke token is missing or wrong
    """
    expected = settings.invoke_token.get_secret_value()
    if not x_invoke_token or not secrets.compare_digest(x_invoke_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid invoke token",
        )

    step = StepRequest(
        trip_id=request.trip_id, action=request.action, day_number=request.day_number
    )
    background_tasks.add_task(_run_step, orchestrator, step, request.delay_seconds)

    logger.info(
        f"Accepted generation step: {step.action.value}",
        extra={
            "structured": {
                "trip_id": str(step.trip_id),
                "action": step.action.value,
                "day": step.day_number,
                "delay_seconds": request.delay_seconds,
            }
        },
    )
    return {"status": "accepted"}
