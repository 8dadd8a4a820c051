"""Instrumented completion calls: timing, AI request logging, metrics."""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from tripgen.app.db.repositories import AIRequestLogRecord, AIRequestLogRepository
from tripgen.app.llm.client import (
    CompletionProvider,
    CompletionRequest,
    CompletionResponse,
    ProviderError,
    ProviderTimeoutError,
)
from tripgen.app.llm.pricing import calculate_cost_cents
from tripgen.app.utils.logging import StructuredGenerationLogger
from tripgen.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)


class CompletionRunner:
    """Runs one provider call and records it, whatever the outcome."""

    def __init__(
        self,
        provider: CompletionProvider,
        ai_logs: AIRequestLogRepository,
        *,
        gen_logger: StructuredGenerationLogger | None = None,
        metrics: PrometheusGenerationMetrics | None = None,
    ) -> None:
        self._provider = provider
        self._ai_logs = ai_logs
        self._gen_logger = gen_logger or StructuredGenerationLogger()
        self._metrics = metrics or PrometheusGenerationMetrics()

    @property
    def model_name(self) -> str:
        return getattr(self._provider, "model", "unknown")

    async def run(
        self,
        request: CompletionRequest,
        *,
        step: str,
        trip_id: uuid.UUID,
        user_id: uuid.UUID | None,
        endpoint: str,
        metadata: dict[str, Any] | None = None,
    ) -> CompletionResponse:
        """Call the provider once.

        Args:
            request: Completion request
            step: "summary" or "day" (metric/log label)
            trip_id: Trip the call is for
            user_id: Trip owner
            endpoint: Logical endpoint name stored in the request log
            metadata: Extra fields stored in the request log

        Returns:
            Provider response

        Raises:
            ProviderError: Re-raised after logging
        """
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        try:
            response = await self._provider.complete(request)
        except ProviderError as e:
            latency_ms = (time.perf_counter() - start) * 1000
            outcome = "timeout" if isinstance(e, ProviderTimeoutError) else "error"
            self._metrics.record_completion(step, outcome, latency_ms)
            self._gen_logger.log_completion(
                trip_id, step, outcome, latency_ms, model=self.model_name, error_reason=str(e)
            )
            await self._append_log(
                AIRequestLogRecord(
                    request_id=uuid.uuid4(),
                    trip_id=trip_id,
                    user_id=user_id,
                    endpoint=endpoint,
                    provider=getattr(self._provider, "provider_name", "openai"),
                    model=self.model_name,
                    input_tokens=0,
                    output_tokens=0,
                    cost_cents=0,
                    duration_ms=round(latency_ms),
                    started_at=started_at,
                    completed_at=datetime.now(timezone.utc),
                    status="error",
                    error_message=str(e),
                    metadata=metadata or {},
                )
            )
            raise

        latency_ms = (time.perf_counter() - start) * 1000
        usage = response.usage
        self._metrics.record_completion(step, "success", latency_ms)
        self._gen_logger.log_completion(
            trip_id,
            step,
            "success",
            latency_ms,
            model=response.model,
            tokens=usage.input_tokens + usage.output_tokens,
        )
        await self._append_log(
            AIRequestLogRecord(
                request_id=uuid.uuid4(),
                trip_id=trip_id,
                user_id=user_id,
                endpoint=endpoint,
                provider=response.provider,
                model=response.model,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                cost_cents=calculate_cost_cents(
                    response.model, usage.input_tokens, usage.output_tokens
                ),
                duration_ms=round(latency_ms),
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
                status="success",
                metadata=metadata or {},
            )
        )
        return response

    async def _append_log(self, entry: AIRequestLogRecord) -> None:
        # A lost log row must never fail the generation step
        try:
            await self._ai_logs.append(entry)
        except Exception as e:
            logger.warning(
                f"Failed to write AI request log: {e}",
                extra={"structured": {"trip_id": str(entry.trip_id), "endpoint": entry.endpoint}},
            )
