"""Invocation Scheduler - fire-and-forget chaining of orchestrator steps."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from tripgen.app.models.generation import StepRequest

logger = logging.getLogger(__name__)

StepHandler = Callable[[StepRequest], Awaitable[Any]]

INVOKE_TOKEN_HEADER = "X-Invoke-Token"


class DispatchError(Exception):
    """The next step could not be scheduled."""

    pass


class InvocationScheduler(Protocol):
    """Schedules an orchestrator step to run as a separate invocation."""

    async def schedule(self, request: StepRequest, delay_seconds: float = 0) -> None:
        """Schedule ``request`` without waiting for it to run.

        Args:
            request: Step to run
            delay_seconds: Minimum delay before the step starts

        Raises:
            DispatchError: If the step could not be handed off
        """
        ...


class BackgroundTaskScheduler:
    """Runs each step as an ``asyncio`` task in the serving process."""

    def __init__(self, handler: StepHandler | None = None) -> None:
        self._handler = handler
        self._tasks: set[asyncio.Task[None]] = set()

    def bind(self, handler: StepHandler) -> None:
        """Set the step handler (the orchestrator is built after the scheduler)."""
        self._handler = handler

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def schedule(self, request: StepRequest, delay_seconds: float = 0) -> None:
        """Start a background task for the step."""
        if self._handler is None:
            raise DispatchError("no step handler bound to scheduler")
        try:
            task = asyncio.create_task(self._run(self._handler, request, delay_seconds))
        except RuntimeError as e:
            raise DispatchError(f"cannot create background task: {e}") from e
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(
        self, handler: StepHandler, request: StepRequest, delay_seconds: float
    ) -> None:
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        try:
            await handler(request)
        except Exception:
            logger.exception(
                f"Background generation step crashed: {request.action.value}",
                extra={
                    "structured": {
                        "trip_id": str(request.trip_id),
                        "action": request.action.value,
                        "day": request.day_number,
                    }
                },
            )

    async def drain(self) -> None:
        """Wait until every scheduled step (including chained ones) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


class HttpInvocationScheduler:
    """POSTs each step to the service's internal invoke endpoint.

    The endpoint answers immediately and runs the step in the background, so
    every step is a fresh, short-lived invocation.
    """

    def __init__(
        self,
        invoke_url: str,
        invoke_token: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._invoke_url = invoke_url
        self._invoke_token = invoke_token
        self._timeout = timeout_seconds
        self._client = client

    async def schedule(self, request: StepRequest, delay_seconds: float = 0) -> None:
        """POST the step; any transport or HTTP error becomes ``DispatchError``."""
        payload = {**request.model_dump(mode="json"), "delay_seconds": delay_seconds}
        headers = {INVOKE_TOKEN_HEADER: self._invoke_token}

        try:
            if self._client is not None:
                response = await self._client.post(
                    self._invoke_url, json=payload, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._invoke_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DispatchError(f"self-invocation failed: {e}") from e
