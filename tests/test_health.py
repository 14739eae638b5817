"""Health, metrics and fallback routing tests."""

import pytest
from httpx import AsyncClient

from app.enums import HealthStatus


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["database"] == HealthStatus.HEALTHY.value
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient) -> None:
    await client.get("/health")
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "url_shortener_creation_requests" in response.text


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(client: AsyncClient) -> None:
    response = await client.get("/api/does/not/exist")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
