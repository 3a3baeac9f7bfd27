"""Tests for health check endpoints."""

from httpx import AsyncClient


class TestHealthEndpoint:
    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        """Liveness probe returns healthy."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

    async def test_health_no_dependency_checks(self, client: AsyncClient) -> None:
        """Health endpoint does not include store status."""
        response = await client.get("/health")

        data = response.json()
        assert data["database"] is None
        assert data["search_index"] is None


class TestReadyEndpoint:
    async def test_not_ready_before_index_built(self, client: AsyncClient) -> None:
        """Readiness fails until the search index exists."""
        response = await client.get("/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not ready"
        assert data["database"] == "connected"
        assert data["search_index"] == "unavailable"

    async def test_ready_after_build(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["search_index"] == "available"
