"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order.
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def alembic_env(tmp_path: Path) -> dict[str, str]:
    env = dict(os.environ)
    env["COMMUNITY_DATABASE_URL"] = f"sqlite+aiosqlite:///{tmp_path / 'community.db'}"
    return env


def _alembic(env: dict[str, str], *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "alembic", *args],
        cwd=REPO_ROOT,
        env=env,
        capture_output=True,
        text=True,
    )


def test_alembic_upgrade_head(alembic_env: dict[str, str], tmp_path: Path) -> None:
    """alembic upgrade head creates every table."""
    result = _alembic(alembic_env, "upgrade", "head")
    assert result.returncode == 0, f"alembic upgrade failed: {result.stderr}"

    engine = create_engine(f"sqlite:///{tmp_path / 'community.db'}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        vote_columns = {c["name"] for c in inspector.get_columns("votes")}
    finally:
        engine.dispose()
    assert {
        "community_users", "categories", "questions", "comments", "votes", "follows", "notifications",
    } <= tables
    assert "reputation_delta" in vote_columns


def test_alembic_current_shows_head(alembic_env: dict[str, str]) -> None:
    """alembic current shows the latest revision."""
    assert _alembic(alembic_env, "upgrade", "head").returncode == 0
    result = _alembic(alembic_env, "current")
    assert result.returncode == 0
    assert "002_vote_reputation_delta" in result.stdout
