"""Reputation rules, level thresholds and reputation badges."""

from __future__ import annotations

from community.db.models import VoteType

# Reputation granted to the author of the voted-on content
QUESTION_VOTE_REPUTATION = {VoteType.UP: 5, VoteType.DOWN: -2}
COMMENT_VOTE_REPUTATION = {VoteType.UP: 10, VoteType.DOWN: -2}
ACCEPTED_ANSWER_REPUTATION = 15

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "title": "Seedling", "reputation": 0},
    {"level": 2, "title": "Sprout", "reputation": 50},
    {"level": 3, "title": "Grower", "reputation": 200},
    {"level": 4, "title": "Cultivator", "reputation": 500},
    {"level": 5, "title": "Harvester", "reputation": 1000},
    {"level": 6, "title": "Agronomist", "reputation": 2500},
    {"level": 7, "title": "Master Farmer", "reputation": 5000},
]

# Earned once, never revoked when reputation drops again
REPUTATION_BADGES: list[dict] = [
    {"slug": "helpful", "label": "Helpful", "reputation": 10},
    {"slug": "trusted", "label": "Trusted Voice", "reputation": 100},
    {"slug": "respected", "label": "Respected Grower", "reputation": 500},
    {"slug": "community_pillar", "label": "Community Pillar", "reputation": 2000},
]


def vote_reputation(target_type: str, vote_type: VoteType | None) -> int:
    """Reputation contributed to the target's author by a single vote."""
    if vote_type is None:
        return 0
    table = QUESTION_VOTE_REPUTATION if target_type == "question" else COMMENT_VOTE_REPUTATION
    return table[vote_type]


def compute_level(reputation: int) -> dict:
    current = LEVEL_THRESHOLDS[0]
    for threshold in LEVEL_THRESHOLDS:
        if reputation >= threshold["reputation"]:
            current = threshold
    return {"level": current["level"], "title": current["title"]}


def badges_for(reputation: int, owned: list[str]) -> list[dict]:
    """Badges unlocked at ``reputation`` that are not in ``owned`` yet."""
    return [
        badge for badge in REPUTATION_BADGES
        if reputation >= badge["reputation"] and badge["slug"] not in owned
    ]
