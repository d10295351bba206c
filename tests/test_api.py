"""Tests for FastAPI health and version endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from quadflow.api.main import app, status_for
from quadflow.errors import (
    AuditStorageError,
    InvalidTransitionError,
    QuadFlowError,
    UnknownFlowError,
)


@pytest.fixture
async def client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


class TestHealthEndpoint:
    """GET /health always answers, reporting component checks."""

    @pytest.mark.anyio
    async def test_health_returns_200(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200

    @pytest.mark.anyio
    async def test_health_response_body(self, client: AsyncClient) -> None:
        data = (await client.get("/health")).json()
        assert data["status"] in {"ok", "degraded"}
        assert data["checks"]["api"] is True
        assert "environment" in data


class TestVersionEndpoint:

    @pytest.mark.anyio
    async def test_version(self, client: AsyncClient) -> None:
        data = (await client.get("/api/version")).json()
        assert data["name"] == "QuadFlow"
        assert data["version"] == "0.1.0"


class TestErrorStatus:

    def test_mapped_kinds(self) -> None:
        assert status_for(UnknownFlowError("x")) == 404
        assert status_for(InvalidTransitionError("x", "QUESTION", "DELIVER")) == 409
        assert status_for(AuditStorageError("down")) == 503

    def test_unmapped_kind_defaults_to_400(self) -> None:
        assert status_for(QuadFlowError("generic")) == 400
