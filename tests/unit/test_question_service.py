"""Unit tests for categories and questions."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import Comment, Question, Vote, VoteType
from community.errors import Conflict, NotFound, PermissionDenied, ValidationError
from community.questions.category_service import create_category, list_categories, slugify
from community.questions.question_service import (
    community_stats,
    create_question,
    delete_question,
    get_question,
    list_questions,
    normalize_tags,
    update_question,
)
from community.votes.ledger import cast_vote
from community.votes.targets import CommentTarget, QuestionTarget
from factories import make_category, make_comment, make_question, make_user


class TestCategories:
    """Category reference data."""

    def test_slugify(self):
        assert slugify("Pests & Diseases") == "pests-diseases"

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, db_session: AsyncSession):
        await create_category(db_session, "Irrigation")
        with pytest.raises(Conflict):
            await create_category(db_session, "irrigation", slug="watering")

    @pytest.mark.asyncio
    async def test_list_with_counts(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        soil = await create_category(db_session, "Soil", order=2)
        pests = await create_category(db_session, "Pests", order=1)
        await create_category(db_session, "Archive", order=0)
        archive = (await list_categories(db_session))[0][0]
        archive.is_active = False
        await make_question(db_session, author, soil)
        await make_question(db_session, author, soil, title="Is my soil too acidic?")
        await db_session.flush()

        rows = await list_categories(db_session)
        assert [(c.name, n) for c, n in rows] == [("Pests", 0), ("Soil", 2)]
        assert pests.color == "#22c55e"
        assert len(await list_categories(db_session, active_only=False)) == 3


class TestCreateQuestion:
    """Validation on create."""

    def test_normalize_tags(self):
        assert normalize_tags([" Tomato", "tomato", "BLIGHT", ""]) == ["tomato", "blight"]
        assert normalize_tags("Corn") == ["corn"]
        with pytest.raises(ValidationError):
            normalize_tags([f"t{i}" for i in range(11)])

    @pytest.mark.asyncio
    async def test_create(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        question = await create_question(
            db_session, author.id, category.id, "  Yellow leaves on tomatoes  ", "Details here",
            tags=["Tomato"], is_urgent=True,
        )
        assert question.title == "Yellow leaves on tomatoes"
        assert question.tags == ["tomato"]
        assert question.is_urgent is True
        assert question.vote_score == 0
        assert question.view_count == 0

    @pytest.mark.asyncio
    async def test_title_too_short(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        with pytest.raises(ValidationError, match="Title"):
            await create_question(db_session, author.id, category.id, "Why", "Details")

    @pytest.mark.asyncio
    async def test_title_too_long(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        with pytest.raises(ValidationError):
            await create_question(db_session, author.id, category.id, "x" * 201, "Details")

    @pytest.mark.asyncio
    async def test_empty_content(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        with pytest.raises(ValidationError, match="Content"):
            await create_question(db_session, author.id, category.id, "Valid title", "  ")

    @pytest.mark.asyncio
    async def test_too_many_images(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        with pytest.raises(ValidationError):
            await create_question(db_session, author.id, category.id, "Valid title", "x", images=["a.png"] * 6)

    @pytest.mark.asyncio
    async def test_missing_category(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        with pytest.raises(NotFound):
            await create_question(db_session, author.id, 999, "Valid title", "Details")

    @pytest.mark.asyncio
    async def test_missing_author(self, db_session: AsyncSession):
        category = await make_category(db_session)
        with pytest.raises(NotFound):
            await create_question(db_session, 999, category.id, "Valid title", "Details")

    @pytest.mark.asyncio
    async def test_inactive_category(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        category.is_active = False
        with pytest.raises(ValidationError):
            await create_question(db_session, author.id, category.id, "Valid title", "Details")


class TestReadQuestions:
    """get_question / list_questions."""

    @pytest.mark.asyncio
    async def test_view_count(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        question = await make_question(db_session, author, await make_category(db_session))
        await get_question(db_session, question.id, count_view=True)
        loaded = await get_question(db_session, question.id, count_view=True)
        assert loaded.view_count == 2
        assert loaded.author.username == "carol"
        assert loaded.category.name == "Crop Diseases"

    @pytest.mark.asyncio
    async def test_get_missing(self, db_session: AsyncSession):
        with pytest.raises(NotFound):
            await get_question(db_session, 999)

    @pytest.mark.asyncio
    async def test_filters_search_and_sort(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        voter = await make_user(db_session, "alice")
        crops = await make_category(db_session)
        soil = await make_category(db_session, "Soil")
        blight = await make_question(db_session, author, crops, title="Tomato blight spreading", is_urgent=True)
        ph = await make_question(db_session, author, soil, title="Soil pH for blueberries")
        garlic = await make_question(db_session, author, crops, title="Garlic planting depth")
        garlic.is_solved = True
        await db_session.flush()
        await cast_vote(db_session, voter.id, QuestionTarget(ph.id), VoteType.UP)

        newest, total = await list_questions(db_session)
        assert total == 3
        assert [q.id for q in newest] == [garlic.id, ph.id, blight.id]

        oldest, _ = await list_questions(db_session, sort="oldest")
        assert [q.id for q in oldest] == [blight.id, ph.id, garlic.id]

        by_votes, _ = await list_questions(db_session, sort="votes")
        assert by_votes[0].id == ph.id

        urgent, _ = await list_questions(db_session, filter_="urgent")
        assert [q.id for q in urgent] == [blight.id]
        solved, _ = await list_questions(db_session, filter_="solved")
        assert [q.id for q in solved] == [garlic.id]
        _, total = await list_questions(db_session, filter_="unsolved")
        assert total == 2

        _, total = await list_questions(db_session, category_id=crops.id)
        assert total == 2
        found, _ = await list_questions(db_session, search="BLUEBERR")
        assert [q.id for q in found] == [ph.id]

    @pytest.mark.asyncio
    async def test_pinned_first(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        pinned = await make_question(db_session, author, category, title="Community guidelines")
        await make_question(db_session, author, category, title="Later question")
        pinned.is_pinned = True
        await db_session.flush()

        questions, _ = await list_questions(db_session)
        assert questions[0].id == pinned.id

    @pytest.mark.asyncio
    async def test_pagination(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        category = await make_category(db_session)
        for i in range(5):
            await make_question(db_session, author, category, title=f"Question number {i}")
        page, total = await list_questions(db_session, sort="oldest", page=2, per_page=2)
        assert total == 5
        assert [q.title for q in page] == ["Question number 2", "Question number 3"]

    @pytest.mark.asyncio
    async def test_invalid_filter_and_sort(self, db_session: AsyncSession):
        with pytest.raises(ValidationError):
            await list_questions(db_session, filter_="hot")
        with pytest.raises(ValidationError):
            await list_questions(db_session, sort="random")


class TestUpdateDeleteQuestion:
    """Author/moderator permissions and cascades."""

    @pytest.mark.asyncio
    async def test_author_updates(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        question = await make_question(db_session, author, await make_category(db_session))
        updated = await update_question(db_session, question.id, author, {"title": "Edited title", "tags": ["X"]})
        assert updated.title == "Edited title"
        assert updated.tags == ["x"]

    @pytest.mark.asyncio
    async def test_stranger_cannot_update(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        stranger = await make_user(db_session, "bob")
        question = await make_question(db_session, author, await make_category(db_session))
        with pytest.raises(PermissionDenied):
            await update_question(db_session, question.id, stranger, {"title": "Hijacked"})

    @pytest.mark.asyncio
    async def test_pin_requires_moderator(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        moderator = await make_user(db_session, "mod", is_moderator=True)
        question = await make_question(db_session, author, await make_category(db_session))
        with pytest.raises(PermissionDenied):
            await update_question(db_session, question.id, author, {"is_pinned": True})
        updated = await update_question(db_session, question.id, moderator, {"is_pinned": True})
        assert updated.is_pinned is True

    @pytest.mark.asyncio
    async def test_vote_score_not_editable(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        question = await make_question(db_session, author, await make_category(db_session))
        with pytest.raises(ValidationError):
            await update_question(db_session, question.id, author, {"vote_score": 100})

    @pytest.mark.asyncio
    async def test_delete_cascades_to_comments_and_votes(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        alice = await make_user(db_session, "alice")
        question = await make_question(db_session, author, await make_category(db_session))
        answer = await make_comment(db_session, question, alice)
        await make_comment(db_session, question, author, parent=answer)
        await cast_vote(db_session, alice.id, QuestionTarget(question.id), VoteType.UP)
        await cast_vote(db_session, author.id, CommentTarget(answer.id), VoteType.UP)

        await delete_question(db_session, question.id, author)

        for model in (Question, Comment, Vote):
            count = (await db_session.execute(select(func.count()).select_from(model))).scalar_one()
            assert count == 0

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        stranger = await make_user(db_session, "bob")
        question = await make_question(db_session, author, await make_category(db_session))
        with pytest.raises(PermissionDenied):
            await delete_question(db_session, question.id, stranger)


class TestStats:
    """community_stats totals."""

    @pytest.mark.asyncio
    async def test_totals(self, db_session: AsyncSession):
        author = await make_user(db_session, "carol")
        alice = await make_user(db_session, "alice")
        question = await make_question(db_session, author, await make_category(db_session))
        await make_comment(db_session, question, alice)
        await cast_vote(db_session, alice.id, QuestionTarget(question.id), VoteType.UP)

        assert await community_stats(db_session) == {
            "total_questions": 1,
            "total_users": 2,
            "total_comments": 1,
            "total_votes": 1,
        }
