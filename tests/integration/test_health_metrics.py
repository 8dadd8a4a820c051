"""Integration tests for /health, /healthz and /metrics endpoints."""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from tripgen.app.api.routes.health import check_db
from tripgen.app.config import Settings
from tripgen.app.db.repositories import Repositories
from tripgen.app.main import create_app
from tripgen.app.services import GenerationServices, build_services


@pytest.fixture
def services(
    repos: Repositories, provider: Any, scheduler: Any, settings: Settings
) -> GenerationServices:
    return build_services(settings, repos=repos, provider=provider, scheduler=scheduler)


@pytest.fixture
def client(services: GenerationServices) -> TestClient:
    """Create test client."""
    return TestClient(create_app(services))


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_healthz_in_memory(self, client: TestClient) -> None:
        """In-memory repositories have no database to check."""
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"]["db"] == "in_memory"
        assert data["components"]["scheduler"] == "RecordingScheduler"

    @patch("tripgen.app.api.routes.health.check_db")
    def test_healthz_returns_503_when_db_fails(
        self, mock_check_db: MagicMock, client: TestClient
    ) -> None:
        """Test /healthz returns 503 when DB check fails."""
        mock_check_db.return_value = (False, "connection refused")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["db"] == "connection refused"

    @pytest.mark.asyncio
    async def test_check_db_runs_query_against_sql_database(
        self, services: GenerationServices, sqlite_session_factory: Any
    ) -> None:
        services.session_factory = sqlite_session_factory

        assert await check_db(services) == (True, "ok")


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        """Test /metrics returns Prometheus text format."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]

    def test_metrics_includes_generation_metrics(self, client: TestClient) -> None:
        """Test /metrics includes generation metrics once recorded."""
        from tripgen.app.utils.metrics import PrometheusGenerationMetrics

        metrics = PrometheusGenerationMetrics()
        metrics.record_step("continue", "chained")
        metrics.record_completion("day", "success", 850)
        metrics.inc_place_link("exact")
        metrics.observe_health(82)

        text = client.get("/metrics").text

        assert "tripgen_generation_steps_total" in text
        assert "tripgen_completion_latency_ms" in text
        assert "tripgen_place_links_total" in text
        assert "tripgen_linking_health_score" in text


class TestRootEndpoint:
    """Test root endpoint."""

    def test_root_returns_api_info(self, client: TestClient) -> None:
        """Test root endpoint returns API information."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Trip Itinerary Generation API"
        assert data["version"] == "0.1.0"
