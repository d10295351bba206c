"""Tests for FastAPI participant endpoints."""

import pytest
from httpx import AsyncClient


class TestRegisterParticipant:

    @pytest.mark.anyio
    async def test_register_returns_zone(self, client: AsyncClient) -> None:
        resp = await client.post("/v1/participants", json={
            "participant_id": "kai", "display_name": "Kai", "skill": "LOW", "trust": "LOW",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["adoption_zone"] == "RESTRICTED_AI"
        assert data["requires_review"] is True

    @pytest.mark.anyio
    async def test_duplicate_is_409(self, client: AsyncClient) -> None:
        payload = {"participant_id": "kai", "skill": "LOW", "trust": "LOW"}
        await client.post("/v1/participants", json=payload)
        resp = await client.post("/v1/participants", json=payload)
        assert resp.status_code == 409
        assert resp.json()["error"] == "DuplicateParticipantError"

    @pytest.mark.anyio
    async def test_invalid_level_is_422(self, client: AsyncClient) -> None:
        resp = await client.post("/v1/participants", json={
            "participant_id": "kai", "skill": "GURU", "trust": "LOW",
        })
        assert resp.status_code == 422


class TestUpdateParticipant:

    @pytest.mark.anyio
    async def test_patch_trust_only(self, client: AsyncClient) -> None:
        await client.post("/v1/participants", json={
            "participant_id": "kai", "skill": "MEDIUM", "trust": "LOW",
        })
        resp = await client.patch("/v1/participants/kai", json={"trust": "HIGH"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["skill"] == "MEDIUM"
        assert data["trust"] == "HIGH"
        assert data["adoption_zone"] == "COLLABORATIVE_AI"

    @pytest.mark.anyio
    async def test_patch_unknown_is_404(self, client: AsyncClient) -> None:
        resp = await client.patch("/v1/participants/ghost", json={"skill": "HIGH"})
        assert resp.status_code == 404

    @pytest.mark.anyio
    async def test_get(self, client: AsyncClient) -> None:
        await client.post("/v1/participants", json={
            "participant_id": "noor", "skill": "HIGH", "trust": "MEDIUM",
        })
        resp = await client.get("/v1/participants/noor")
        assert resp.status_code == 200
        assert resp.json()["adoption_zone"] == "ENHANCED_AI"
