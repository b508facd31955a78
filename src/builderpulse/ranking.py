"""Topic-level trend scores aggregated from member post momentum."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from builderpulse.models import MOMENTUM_FIELDS, Post, PostMomentum, TopicScore
from builderpulse.momentum import compute_post_momentum, hours_between, momentum_label
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)

_DIVERSITY_STEP = 0.2


def recency_factor(age_hours: float) -> float:
    if age_hours < 6:
        return 1.5
    if age_hours < 24:
        return 1.2
    if age_hours < 72:
        return 1.0
    return 0.8


def compute_topic_score(
    topic_id: int,
    members: list[PostMomentum],
    created_at: datetime | None,
    now: datetime | None = None,
) -> TopicScore:
    """Aggregate member momentum into a trend score.

    The label follows the single hottest member, not the average.
    """
    if not members:
        return TopicScore(topic_id=topic_id)

    now = now or datetime.now(UTC)
    total = sum(m.momentum_score for m in members)
    platforms = list(dict.fromkeys(m.platform for m in members))
    diversity_bonus = 1 + _DIVERSITY_STEP * len(platforms)
    age = hours_between(now, created_at) if created_at else 0.0

    return TopicScore(
        topic_id=topic_id,
        trend_score=total * diversity_bonus * recency_factor(age),
        momentum_label=momentum_label(max(m.momentum_score for m in members)),
        platform_count=len(platforms),
        signals=platforms,
    )


def member_momentum(store: SignalStore, posts: list[Post]) -> list[PostMomentum]:
    """Momentum per member: the persisted platform score where one exists,
    otherwise the blended snapshot velocity.
    """
    unscored = [p.id for p in posts if p.platform not in MOMENTUM_FIELDS]
    snapshots = store.snapshots_for(unscored) if unscored else {}

    members: list[PostMomentum] = []
    for post in posts:
        if post.platform in MOMENTUM_FIELDS:
            members.append(
                PostMomentum(
                    post_id=post.id,
                    platform=post.platform,
                    momentum_score=post.momentum,
                    label=momentum_label(post.momentum),
                )
            )
            continue
        blended = compute_post_momentum(post, snapshots.get(post.id, []))
        members.append(blended or PostMomentum(post_id=post.id, platform=post.platform))
    return members


def recompute_topic_scores(store: SignalStore, now: datetime | None = None) -> int:
    """Refresh trend score, label and signals for every topic; return how many."""
    now = now or datetime.now(UTC)
    memberships = store.topic_members()
    created = {t.id: t.created_at for t in store.topics()}
    for topic_id, posts in memberships.items():
        score = compute_topic_score(
            topic_id, member_momentum(store, posts), created.get(topic_id), now
        )
        store.update_topic_score(score, now)
    logger.info("Rescored %d topics", len(memberships))
    return len(memberships)
