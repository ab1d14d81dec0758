"""Integration tests: identity, profiles and follows."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from factories import as_user


async def _user_id(client: AsyncClient, username: str) -> int:
    response = await client.get("/api/v1/users/me", headers=as_user(username))
    assert response.status_code == 200
    return response.json()["id"]


class TestIdentity:
    """Header identity and provisioning."""

    @pytest.mark.asyncio
    async def test_first_request_provisions_user(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me", headers=as_user("alice"))
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "alice@example.com"
        assert data["username"] == "alice"
        assert data["reputation"] == 0
        assert data["level"] == 1
        assert data["badges"] == []

        again = await client.get("/api/v1/users/me", headers=as_user("alice"))
        assert again.json()["id"] == data["id"]

    @pytest.mark.asyncio
    async def test_missing_identity(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_email(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me", headers={"X-User-Email": "not-an-email"})
        assert response.status_code == 401


class TestProfiles:
    """Registration, profile edits and public profiles."""

    @pytest.mark.asyncio
    async def test_register(self, client: AsyncClient):
        body = {
            "email": "maria@example.com",
            "username": "maria",
            "first_name": "Maria",
            "farm_type": "Organic",
            "specialties": ["tomatoes"],
        }
        response = await client.post("/api/v1/users", json=body)
        assert response.status_code == 201
        assert response.json()["farm_type"] == "Organic"

        duplicate = await client.post("/api/v1/users", json={**body, "username": "maria2"})
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "Conflict"

    @pytest.mark.asyncio
    async def test_register_rejects_bad_email(self, client: AsyncClient):
        response = await client.post("/api/v1/users", json={"email": "nope", "username": "maria"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_me(self, client: AsyncClient):
        response = await client.patch("/api/v1/users/me", headers=as_user("alice"), json={
            "bio": "Market gardener", "experience": "Intermediate",
        })
        assert response.status_code == 200
        assert response.json()["bio"] == "Market gardener"
        assert response.json()["experience"] == "Intermediate"

    @pytest.mark.asyncio
    async def test_public_profile_hides_email(self, client: AsyncClient):
        alice_id = await _user_id(client, "alice")
        response = await client.get(f"/api/v1/users/{alice_id}")
        assert response.status_code == 200
        assert "email" not in response.json()
        assert response.json()["level_title"]

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient):
        response = await client.get("/api/v1/users/999")
        assert response.status_code == 404


class TestFollowsAPI:
    """Follow, unfollow and listings."""

    @pytest.mark.asyncio
    async def test_follow_flow(self, client: AsyncClient):
        carol_id = await _user_id(client, "carol")
        alice_id = await _user_id(client, "alice")

        response = await client.post(f"/api/v1/users/{carol_id}/follow", headers=as_user("alice"))
        assert response.status_code == 201
        assert response.json()["follower_id"] == alice_id

        duplicate = await client.post(f"/api/v1/users/{carol_id}/follow", headers=as_user("alice"))
        assert duplicate.status_code == 409

        followers = (await client.get(f"/api/v1/users/{carol_id}/followers")).json()
        assert followers["total"] == 1
        assert followers["users"][0]["username"] == "alice"
        following = (await client.get(f"/api/v1/users/{alice_id}/following")).json()
        assert [u["id"] for u in following["users"]] == [carol_id]

        unfollow = await client.delete(f"/api/v1/users/{carol_id}/follow", headers=as_user("alice"))
        assert unfollow.status_code == 204
        assert (await client.get(f"/api/v1/users/{carol_id}/followers")).json()["total"] == 0

    @pytest.mark.asyncio
    async def test_follow_notifies(self, client: AsyncClient):
        carol_id = await _user_id(client, "carol")
        await client.post(f"/api/v1/users/{carol_id}/follow", headers=as_user("alice"))

        inbox = (await client.get("/api/v1/notifications", headers=as_user("carol"))).json()
        assert [n["type"] for n in inbox["notifications"]] == ["NEW_FOLLOWER"]

    @pytest.mark.asyncio
    async def test_cannot_follow_self(self, client: AsyncClient):
        alice_id = await _user_id(client, "alice")
        response = await client.post(f"/api/v1/users/{alice_id}/follow", headers=as_user("alice"))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_follow_unknown_user(self, client: AsyncClient):
        response = await client.post("/api/v1/users/999/follow", headers=as_user("alice"))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unfollow_when_not_following(self, client: AsyncClient):
        carol_id = await _user_id(client, "carol")
        response = await client.delete(f"/api/v1/users/{carol_id}/follow", headers=as_user("alice"))
        assert response.status_code == 204
