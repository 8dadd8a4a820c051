"""Aggregation and reporting of place-linking outcomes."""

import logging
import time

from tripgen.app.models.common import MatchConfidence
from tripgen.app.models.linking import LinkingMetrics
from tripgen.app.places.matching import MatchStrategy, MatchResult
from tripgen.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)

HEALTH_WARN_THRESHOLD = 70
LINK_RATE_WARN_THRESHOLD = 50
INVALID_IDS_WARN_COUNT = 5
IDS_AS_NAMES_WARN_COUNT = 3


class LinkingMetricsAggregator:
    """Accumulates linking decisions for one generated day."""

    def __init__(self, prometheus: PrometheusGenerationMetrics | None = None) -> None:
        self._metrics = LinkingMetrics()
        self._prometheus = prometheus or PrometheusGenerationMetrics()
        self._started = time.perf_counter()

    def record(self, match: MatchResult, suggested_id: str | None, *, kind: str) -> None:
        """Count one resolved reference.

        Args:
            match: Matcher outcome
            suggested_id: The identifier the model proposed, if any
            kind: "timeline" or "meal"
        """
        m = self._metrics
        if kind == "meal":
            m.total_meals += 1
        else:
            m.total_timeline += 1

        if match.confidence == MatchConfidence.exact:
            m.linked_exact += 1
        elif match.confidence == MatchConfidence.high:
            m.linked_high += 1
        elif match.confidence == MatchConfidence.low:
            m.linked_low += 1
        else:
            m.unlinked += 1

        if suggested_id and match.strategy != MatchStrategy.exact_id:
            m.invalid_ids_detected += 1
            m.fallbacks_attempted += 1
            if match.linked:
                m.fallbacks_successful += 1
            if match.strategy == MatchStrategy.id_as_name:
                m.ids_used_as_names += 1

        self._prometheus.inc_place_link(match.confidence.value)

    def finish(self) -> LinkingMetrics:
        """Stop the clock and return the collected metrics."""
        self._metrics.processing_time_ms = round((time.perf_counter() - self._started) * 1000, 2)
        return self._metrics


def linking_warnings(
    metrics: LinkingMetrics, health_threshold: int = HEALTH_WARN_THRESHOLD
) -> list[str]:
    """Human-readable warnings for a metric set (empty when healthy)."""
    if metrics.total_items == 0:
        return []

    derived = metrics.derived()
    warnings: list[str] = []
    if derived.health_score < health_threshold:
        warnings.append(f"low linking health score: {derived.health_score}")
    if derived.link_rate < LINK_RATE_WARN_THRESHOLD:
        warnings.append(f"link rate below {LINK_RATE_WARN_THRESHOLD}%: {derived.link_rate}%")
    if metrics.invalid_ids_detected > INVALID_IDS_WARN_COUNT:
        warnings.append(f"{metrics.invalid_ids_detected} invalid place ids suggested")
    if metrics.ids_used_as_names > IDS_AS_NAMES_WARN_COUNT:
        warnings.append(f"{metrics.ids_used_as_names} place names used as ids")
    return warnings


def log_linking_metrics(
    metrics: LinkingMetrics,
    *,
    trip_id: str,
    day_number: int | None = None,
    health_threshold: int = HEALTH_WARN_THRESHOLD,
) -> list[str]:
    """Emit a structured linking report and any warnings.

    Returns:
        The warnings that were logged
    """
    derived = metrics.derived()
    log_data = {
        "trip_id": trip_id,
        "day": day_number,
        **metrics.model_dump(),
        **derived.model_dump(),
    }
    logger.info(
        f"Place linking: trip={trip_id} day={day_number} health={derived.health_score}",
        extra={"structured": log_data},
    )

    warnings = linking_warnings(metrics, health_threshold)
    for warning in warnings:
        logger.warning(
            f"Place linking warning: {warning}",
            extra={"structured": {"trip_id": trip_id, "day": day_number, "warning": warning}},
        )
    return warnings
