"""Fixtures for exercising the HTTP API against a temporary SQLite file."""

from fastapi.testclient import TestClient
import pytest

from carebook.api.dependencies import get_notification_bridge
from carebook.database import configure_database, init_db
from carebook.main import create_app


@pytest.fixture
def client(database_url, bridge):
    engine = configure_database(database_url)
    init_db(engine)
    app = create_app(initialize_database=False)
    app.dependency_overrides[get_notification_bridge] = lambda: bridge
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def slot_payload():
    return {
        "caregiver_id": "caregiver-1",
        "slot_date": "2030-06-03",
        "start_time": "09:00:00",
        "end_time": "17:00:00",
        "total_capacity": 2,
        "base_rate": "25.00",
        "conflict_policy": None,
    }


@pytest.fixture
def create_slot(client, slot_payload):
    def _create(**overrides):
        response = client.post("/api/v1/availability/slots", json={**slot_payload, **overrides})
        assert response.status_code == 201, response.text
        return response.json()["slot"]

    return _create
