"""Integration tests for liveness and readiness endpoints."""

import pytest
from fastapi.testclient import TestClient

from app.db import get_redis

pytestmark = pytest.mark.integration


class UnreachableRedis:
    async def ping(self):
        raise ConnectionError("Connection refused")


def test_health(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "freight-erp-backend"}


def test_health_draining(api_client: TestClient):
    api_client.app.state.shutting_down = True

    response = api_client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["status"] == "shutting_down"


def test_ready(api_client: TestClient):
    response = api_client.get("/api/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": True, "redis": True}}


def test_ready_degraded_without_redis(api_client: TestClient):
    api_client.app.dependency_overrides[get_redis] = lambda: UnreachableRedis()

    response = api_client.get("/api/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "degraded", "checks": {"database": True, "redis": False}}
