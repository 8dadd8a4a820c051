"""Prometheus metrics for itinerary generation."""

from prometheus_client import Counter, Histogram

generation_steps_total = Counter(
    "tripgen_generation_steps_total",
    "Total orchestrator steps by action and outcome",
    ["action", "outcome"],
)

completion_latency_ms = Histogram(
    "tripgen_completion_latency_ms",
    "Completion provider latency in milliseconds",
    ["step", "outcome"],
    buckets=[250, 500, 1000, 2000, 5000, 10000, 20000, 45000, 90000, 120000],
)

place_links_total = Counter(
    "tripgen_place_links_total",
    "Total place references resolved, by confidence tier",
    ["confidence"],
)

linking_health_score = Histogram(
    "tripgen_linking_health_score",
    "Place linking health score per generated day",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)


class PrometheusGenerationMetrics:
    """Prometheus-based generation metrics implementation."""

    def record_step(self, action: str, outcome: str) -> None:
        """Count one orchestrator step."""
        generation_steps_total.labels(action=action, outcome=outcome).inc()

    def record_completion(self, step: str, outcome: str, latency_ms: float) -> None:
        """Record completion provider latency."""
        completion_latency_ms.labels(step=step, outcome=outcome).observe(latency_ms)

    def inc_place_link(self, confidence: str) -> None:
        """Increment link counter for a confidence tier."""
        place_links_total.labels(confidence=confidence).inc()

    def observe_health(self, score: float) -> None:
        """Record a linking health score."""
        linking_health_score.observe(score)
