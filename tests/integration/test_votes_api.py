"""Integration tests: vote endpoints."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient

from factories import as_user, make_category, session_scope


@pytest_asyncio.fixture
async def question_id(client: AsyncClient) -> int:
    """A question asked by carol."""
    async with session_scope() as db:
        category = await make_category(db)
        await db.commit()
        category_id = category.id
    response = await client.post("/api/v1/questions", headers=as_user("carol"), json={
        "title": "Why are my tomato leaves turning yellow?",
        "content": "Lower leaves first, spreading upwards.",
        "category_id": category_id,
    })
    assert response.status_code == 201
    return response.json()["id"]


async def _vote(client: AsyncClient, user: str, question_id: int, type_: str = "up"):
    return await client.post(f"/api/v1/questions/{question_id}/vote", headers=as_user(user), json={"type": type_})


class TestQuestionVotes:
    """Cast, switch and retract votes on a question."""

    @pytest.mark.asyncio
    async def test_two_voters_switch_and_retract(self, client: AsyncClient, question_id: int):
        response = await _vote(client, "alice", question_id)
        assert response.status_code == 200
        data = response.json()
        assert data["vote_score"] == 1
        assert data["vote"] == "UP"
        assert data["message"] == "Vote recorded"

        assert (await _vote(client, "bob", question_id)).json()["vote_score"] == 2

        switched = (await _vote(client, "alice", question_id, "down")).json()
        assert switched["vote_score"] == 0
        assert switched["previous"] == "UP"
        assert switched["message"] == "Vote updated"

        retracted = await client.delete(f"/api/v1/questions/{question_id}/vote", headers=as_user("alice"))
        assert retracted.status_code == 200
        assert retracted.json()["vote_score"] == 1
        assert retracted.json()["message"] == "Vote removed"

        detail = (await client.get(f"/api/v1/questions/{question_id}")).json()
        assert detail["vote_score"] == 1

    @pytest.mark.asyncio
    async def test_repeat_vote_unchanged(self, client: AsyncClient, question_id: int):
        await _vote(client, "alice", question_id, "UP")
        data = (await _vote(client, "alice", question_id, "UP")).json()
        assert data["vote_score"] == 1
        assert data["changed"] is False
        assert data["message"] == "Vote unchanged"

    @pytest.mark.asyncio
    async def test_toggle(self, client: AsyncClient, question_id: int):
        path = f"/api/v1/questions/{question_id}/vote/toggle"
        first = await client.post(path, headers=as_user("alice"), json={"type": "up"})
        assert first.json()["vote_score"] == 1
        second = await client.post(path, headers=as_user("alice"), json={"type": "up"})
        assert second.json()["vote_score"] == 0
        assert second.json()["vote"] is None

    @pytest.mark.asyncio
    async def test_invalid_vote_type(self, client: AsyncClient, question_id: int):
        response = await _vote(client, "alice", question_id, "sideways")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_self_vote_rejected(self, client: AsyncClient, question_id: int):
        response = await _vote(client, "carol", question_id)
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_missing_question(self, client: AsyncClient):
        response = await _vote(client, "alice", 9999)
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    @pytest.mark.asyncio
    async def test_requires_identity(self, client: AsyncClient, question_id: int):
        response = await client.post(f"/api/v1/questions/{question_id}/vote", json={"type": "up"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_viewer_sees_own_vote(self, client: AsyncClient, question_id: int):
        await _vote(client, "alice", question_id, "down")

        mine = await client.get("/api/v1/votes/mine", params={"question_id": question_id}, headers=as_user("alice"))
        assert mine.json() == {"target_type": "question", "target_id": question_id, "vote": "DOWN"}

        detail = (await client.get(f"/api/v1/questions/{question_id}", headers=as_user("alice"))).json()
        assert detail["user_vote"] == "DOWN"
        anonymous = (await client.get(f"/api/v1/questions/{question_id}")).json()
        assert anonymous["user_vote"] is None


class TestCommentVotes:
    """Votes on answers."""

    @pytest.mark.asyncio
    async def test_vote_on_comment(self, client: AsyncClient, question_id: int):
        comment = (await client.post(
            f"/api/v1/questions/{question_id}/comments",
            headers=as_user("bob"),
            json={"content": "Early blight. Remove the lower leaves."},
        )).json()

        response = await client.post(
            f"/api/v1/comments/{comment['id']}/vote", headers=as_user("alice"), json={"type": "up"},
        )
        assert response.json()["vote_score"] == 1
        assert response.json()["target_type"] == "comment"

        bob = (await client.get("/api/v1/users/me", headers=as_user("bob"))).json()
        assert bob["reputation"] == 10

        retracted = await client.delete(f"/api/v1/comments/{comment['id']}/vote", headers=as_user("alice"))
        assert retracted.json()["vote_score"] == 0


class TestGenericVoteEndpoint:
    """POST /votes with exactly one target id."""

    @pytest.mark.asyncio
    async def test_question_target(self, client: AsyncClient, question_id: int):
        response = await client.post(
            "/api/v1/votes", headers=as_user("alice"), json={"question_id": question_id, "type": "down"},
        )
        assert response.status_code == 200
        assert response.json()["vote_score"] == -1

    @pytest.mark.asyncio
    async def test_both_targets_rejected(self, client: AsyncClient, question_id: int):
        response = await client.post(
            "/api/v1/votes", headers=as_user("alice"),
            json={"question_id": question_id, "comment_id": 1, "type": "up"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidTarget"

    @pytest.mark.asyncio
    async def test_no_target_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/votes", headers=as_user("alice"), json={"type": "up"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_mine_requires_one_target(self, client: AsyncClient):
        response = await client.get("/api/v1/votes/mine", headers=as_user("alice"))
        assert response.status_code == 400


class TestVoteNotifications:
    """Milestones notify the author after the vote commits."""

    @pytest.mark.asyncio
    async def test_tenth_upvote_notifies_author(self, client: AsyncClient, question_id: int):
        for i in range(10):
            response = await _vote(client, f"voter{i}", question_id)
            assert response.status_code == 200
        assert response.json()["vote_score"] == 10

        inbox = (await client.get("/api/v1/notifications", headers=as_user("carol"))).json()
        types = [n["type"] for n in inbox["notifications"]]
        assert types.count("UPVOTE_MILESTONE") == 1
        assert "BADGE_EARNED" in types
        milestone = next(n for n in inbox["notifications"] if n["type"] == "UPVOTE_MILESTONE")
        assert milestone["data"]["questionId"] == question_id
        assert milestone["data"]["score"] == 10
