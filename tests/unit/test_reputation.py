"""Unit tests for reputation rules, levels and badges."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import VoteType
from community.social.events import BadgeEarned
from community.users.reputation import badges_for, compute_level, vote_reputation
from community.users.service import adjust_reputation
from factories import make_user


class TestVoteReputation:
    """Reputation a single vote gives the content author."""

    def test_question_votes(self):
        assert vote_reputation("question", VoteType.UP) == 5
        assert vote_reputation("question", VoteType.DOWN) == -2

    def test_comment_votes(self):
        assert vote_reputation("comment", VoteType.UP) == 10
        assert vote_reputation("comment", VoteType.DOWN) == -2

    def test_no_vote(self):
        assert vote_reputation("question", None) == 0


class TestLevelComputation:
    """Level thresholds."""

    @pytest.mark.parametrize(("reputation", "level", "title"), [
        (0, 1, "Seedling"),
        (49, 1, "Seedling"),
        (50, 2, "Sprout"),
        (199, 2, "Sprout"),
        (200, 3, "Grower"),
        (500, 4, "Cultivator"),
        (1000, 5, "Harvester"),
        (2500, 6, "Agronomist"),
        (5000, 7, "Master Farmer"),
        (99999, 7, "Master Farmer"),
    ])
    def test_thresholds(self, reputation, level, title):
        assert compute_level(reputation) == {"level": level, "title": title}


class TestBadges:
    """Reputation badges are earned once."""

    def test_new_badges_only(self):
        assert [b["slug"] for b in badges_for(150, [])] == ["helpful", "trusted"]
        assert [b["slug"] for b in badges_for(150, ["helpful"])] == ["trusted"]
        assert badges_for(5, []) == []


class TestAdjustReputation:
    """adjust_reputation floors at zero and awards badges."""

    @pytest.mark.asyncio
    async def test_floor_at_zero(self, db_session: AsyncSession):
        user = await make_user(db_session, "alice")
        await adjust_reputation(db_session, user.id, -20)
        assert user.reputation == 0

    @pytest.mark.asyncio
    async def test_level_recomputed(self, db_session: AsyncSession):
        user = await make_user(db_session, "alice")
        await adjust_reputation(db_session, user.id, 210)
        assert user.level == 3
        await adjust_reputation(db_session, user.id, -200)
        assert user.level == 1

    @pytest.mark.asyncio
    async def test_badge_events(self, db_session: AsyncSession):
        user = await make_user(db_session, "alice")

        events = await adjust_reputation(db_session, user.id, 120)
        assert events == [
            BadgeEarned(recipient_id=user.id, badge="helpful", label="Helpful"),
            BadgeEarned(recipient_id=user.id, badge="trusted", label="Trusted Voice"),
        ]
        assert user.badges == ["helpful", "trusted"]

        await adjust_reputation(db_session, user.id, -120)
        assert await adjust_reputation(db_session, user.id, 120) == []
        assert user.badges == ["helpful", "trusted"]

    @pytest.mark.asyncio
    async def test_zero_delta_is_noop(self, db_session: AsyncSession):
        user = await make_user(db_session, "alice")
        assert await adjust_reputation(db_session, user.id, 0) == []
        assert user.reputation == 0
