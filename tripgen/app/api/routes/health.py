"""Health check endpoints.

- /health answers whenever the process is up
- /healthz checks database connectivity and reports component details
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text

from tripgen.app.api.deps import get_services
from tripgen.app.services import GenerationServices

router = APIRouter()


async def check_db(services: GenerationServices) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    if services.session_factory is None:
        return (True, "in_memory")

    try:
        async with services.session_factory() as session:
            await session.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    services: GenerationServices = Depends(get_services),
) -> dict[str, Any] | Response:
    """Health check endpoint.

    Returns:
        200 with component status if the database is reachable
        503 otherwise
    """
    db_ok, db_status = await check_db(services)

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {
            "db": db_status,
            "scheduler": type(services.scheduler).__name__,
        },
    }

    if not db_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
