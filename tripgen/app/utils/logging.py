"""Structured logging for generation steps."""

import logging
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)


class StructuredGenerationLogger:
    """Structured logger for orchestrator steps and completion calls."""

    def log_step(
        self,
        trip_id: UUID,
        action: str,
        outcome: str,
        *,
        day_number: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log an orchestrator step with structured data."""
        log_data: dict[str, Any] = {
            "trip_id": str(trip_id),
            "action": action,
            "outcome": outcome,
            "day": day_number,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Generation step: {action} - {outcome}"

        if outcome in ("failed", "retrying", "stale"):
            logger.warning(log_msg, extra={"structured": log_data})
        else:
            logger.info(log_msg, extra={"structured": log_data})

    def log_completion(
        self,
        trip_id: UUID,
        step: str,
        outcome: str,
        latency_ms: float,
        *,
        model: str | None = None,
        tokens: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log a completion provider call with structured data."""
        log_data: dict[str, Any] = {
            "trip_id": str(trip_id),
            "step": step,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "model": model,
            "tokens": tokens,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Completion: {step} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
