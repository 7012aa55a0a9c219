"""
Health, readiness, metrics and API root endpoint tests.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from magic_cards_server.core.config import Settings
from magic_cards_server.main import create_app


@pytest.fixture
def app():
    return create_app(Settings(log_format="text", _env_file=None))


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_ready_without_record_store(client: AsyncClient):
    """Not ready until the record store client exists."""
    response = await client.get("/ready")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_ready_with_gateway(app, client: AsyncClient, gateway):
    app.state.gateway = gateway
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "uploads": False}


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "magic_cards_uptime_seconds" in response.text


@pytest.mark.asyncio
async def test_security_headers(client: AsyncClient):
    response = await client.get("/health")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/projects" in data["endpoints"]


@pytest.mark.asyncio
async def test_unconfigured_store_is_502(client: AsyncClient):
    response = await client.get("/api/v1/projects/")
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "PERSISTENCE_FAILED"
