"""API tests for the health and root endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


def _manager(healthy: bool) -> MagicMock:
    manager = MagicMock()
    manager.check_connection = AsyncMock(return_value=healthy)
    return manager


@pytest.mark.asyncio
async def test_health_check_endpoint(client):
    with patch("tablebase.infrastructure.api.app.get_db_manager", return_value=_manager(True)):
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "TableBase"
    assert data["database"] == "connected"


@pytest.mark.asyncio
async def test_health_check_reports_database_down(client):
    with patch("tablebase.infrastructure.api.app.get_db_manager", return_value=_manager(False)):
        response = await client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_api_root(client):
    response = await client.get("/api/v1")

    assert response.status_code == 200
    assert response.json()["api_version"] == "v1"


@pytest.mark.asyncio
async def test_correlation_id_echoed(client):
    response = await client.get("/api/v1", headers={"X-Correlation-ID": "cid_test"})

    assert response.headers["X-Correlation-ID"] == "cid_test"
