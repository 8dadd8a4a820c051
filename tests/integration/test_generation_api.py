"""Integration tests for the /generation endpoints."""

import uuid
from typing import Any

import pytest
from fastapi.testclient import TestClient

from tripgen.app.config import Settings, get_settings
from tripgen.app.db.repositories import Repositories
from tripgen.app.main import create_app
from tripgen.app.models.places import PlacesCatalog
from tripgen.app.models.trip import Trip
from tripgen.app.orchestration.chaining import INVOKE_TOKEN_HEADER
from tripgen.app.services import build_services

OTHER_USER = "00000000-0000-0000-0000-0000000000ff"


@pytest.fixture
def client(
    repos: Repositories, provider: Any, scheduler: Any, settings: Settings
) -> TestClient:
    """Test client over in-memory services and a recording scheduler."""
    services = build_services(settings, repos=repos, provider=provider, scheduler=scheduler)
    app = create_app(services)
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


def _invoke_next(client: TestClient, scheduler: Any, settings: Settings) -> Any:
    request, delay = scheduler.scheduled.pop(0)
    payload = {**request.model_dump(mode="json"), "delay_seconds": 0}
    return client.post(
        "/generation/invoke",
        json=payload,
        headers={INVOKE_TOKEN_HEADER: settings.invoke_token.get_secret_value()},
    )


class TestStart:
    """Test POST /generation/start."""

    def test_start_accepted(self, client: TestClient, scheduler: Any, trip: Trip) -> None:
        response = client.post(
            "/generation/start",
            json={"trip_id": str(trip.trip_id), "preferences": {"pace": "relaxed"}},
        )

        assert response.status_code == 202
        data = response.json()
        assert data["trip_id"] == str(trip.trip_id)
        assert data["status"] == "accepted"
        assert data["total_days"] == 5
        [(request, _)] = scheduler.scheduled
        assert request.action.value == "start"

    def test_start_with_catalog(
        self, client: TestClient, repos: Repositories, trip: Trip, catalog: PlacesCatalog
    ) -> None:
        body = {
            "trip_id": str(trip.trip_id),
            "places_catalog": {
                category: [p.model_dump(mode="json") for p in places]
                for category, places in catalog.items()
            },
        }

        response = client.post("/generation/start", json=body)

        assert response.status_code == 202

    def test_second_start_conflicts(self, client: TestClient, trip: Trip) -> None:
        body = {"trip_id": str(trip.trip_id)}
        assert client.post("/generation/start", json=body).status_code == 202

        response = client.post("/generation/start", json=body)

        assert response.status_code == 409
        assert "already running" in response.json()["detail"]

    def test_unknown_trip(self, client: TestClient) -> None:
        response = client.post("/generation/start", json={"trip_id": str(uuid.uuid4())})

        assert response.status_code == 404

    def test_other_users_trip(self, client: TestClient, trip: Trip) -> None:
        response = client.post(
            "/generation/start",
            json={"trip_id": str(trip.trip_id)},
            headers={"Authorization": f"Bearer {OTHER_USER}"},
        )

        assert response.status_code == 403

    def test_malformed_authorization(self, client: TestClient, trip: Trip) -> None:
        response = client.post(
            "/generation/start",
            json={"trip_id": str(trip.trip_id)},
            headers={"Authorization": "Bearer not-a-uuid"},
        )

        assert response.status_code == 401


class TestControl:
    """Test pause, resume, retry and status."""

    def test_pause_without_generation(self, client: TestClient, trip: Trip) -> None:
        response = client.post("/generation/pause", json={"trip_id": str(trip.trip_id)})

        assert response.status_code == 404

    def test_pause_and_resume(self, client: TestClient, trip: Trip) -> None:
        body = {"trip_id": str(trip.trip_id)}
        client.post("/generation/start", json=body)

        assert client.post("/generation/pause", json=body).status_code == 202
        assert client.post("/generation/pause", json=body).status_code == 400
        assert client.get(f"/generation/{trip.trip_id}").json()["status"] == "paused"

        assert client.post("/generation/resume", json=body).status_code == 202
        assert client.post("/generation/resume", json=body).status_code == 400

    def test_retry_while_running_conflicts(self, client: TestClient, trip: Trip) -> None:
        body = {"trip_id": str(trip.trip_id)}
        client.post("/generation/start", json=body)

        response = client.post("/generation/retry", json={**body, "day_number": 2})

        assert response.status_code == 409

    def test_status_of_unknown_trip(self, client: TestClient) -> None:
        assert client.get(f"/generation/{uuid.uuid4()}").status_code == 404

    def test_status_hidden_from_other_users(self, client: TestClient, trip: Trip) -> None:
        client.post("/generation/start", json={"trip_id": str(trip.trip_id)})

        response = client.get(
            f"/generation/{trip.trip_id}", headers={"Authorization": f"Bearer {OTHER_USER}"}
        )

        assert response.status_code == 403


class TestInvoke:
    """Test the internal self-invocation endpoint."""

    def test_rejects_missing_or_wrong_token(self, client: TestClient, trip: Trip) -> None:
        payload = {"trip_id": str(trip.trip_id), "action": "start"}

        assert client.post("/generation/invoke", json=payload).status_code == 401
        response = client.post(
            "/generation/invoke", json=payload, headers={INVOKE_TOKEN_HEADER: "wrong"}
        )
        assert response.status_code == 401

    def test_full_run_through_invocations(
        self, client: TestClient, scheduler: Any, provider: Any, settings: Settings, trip: Trip
    ) -> None:
        """Each chained step arrives as its own invoke request."""
        provider.day_failures = {3: 1}
        client.post("/generation/start", json={"trip_id": str(trip.trip_id)})

        invocations = 0
        while scheduler.scheduled:
            response = _invoke_next(client, scheduler, settings)
            assert response.status_code == 202
            invocations += 1
            assert invocations < 20

        # summary + 5 days + 1 retry
        assert invocations == 7
        data = client.get(f"/generation/{trip.trip_id}").json()
        assert data["status"] == "completed"
        assert data["completed_days"] == [1, 2, 3, 4, 5]
        assert data["progress_percent"] == 100
        assert data["has_summary"] is True
        assert data["failed_days"] == []

    def test_failed_day_retry_via_api(
        self, client: TestClient, scheduler: Any, provider: Any, settings: Settings, trip: Trip
    ) -> None:
        provider.day_failures = {5: 3}
        body = {"trip_id": str(trip.trip_id)}
        client.post("/generation/start", json=body)
        while scheduler.scheduled:
            _invoke_next(client, scheduler, settings)

        data = client.get(f"/generation/{trip.trip_id}").json()
        assert data["status"] == "failed"
        assert data["failed_days"][0]["day_number"] == 5
        assert data["failed_days"][0]["attempts"] == 3

        assert client.post("/generation/retry", json={**body, "day_number": 2}).status_code == 400
        assert client.post("/generation/retry", json=body).status_code == 202
        while scheduler.scheduled:
            _invoke_next(client, scheduler, settings)

        data = client.get(f"/generation/{trip.trip_id}").json()
        assert data["status"] == "completed"
        assert data["error_message"] is None
