"""Layer classification: promising / trending / hall of fame.

Each platform has its own decision table, evaluated top to bottom with the
first matching rule winning. ``velocity`` is a per-platform growth figure
and is not comparable across platforms.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from builderpulse.models import Classification, Layer, MetricSnapshot, Platform, Post
from builderpulse.momentum import age_hours, week_over_week_growth
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)

# ── Tunable thresholds ─────────────────────────────────────────────────────
GITHUB_THRESHOLDS = {
    "promising": {"max_stars": 5000, "min_velocity": 0.1},
    "trending": {"min_momentum": 50, "max_stars": 50000},
    "hall_of_fame": {"min_stars": 50000},
}

HN_THRESHOLDS = {
    "promising": {"max_score": 200, "min_comments": 20, "max_age_hours": 12},
    "trending": {"min_score": 200, "min_comments": 100},
    "hall_of_fame": {"min_score": 500},
}

REDDIT_THRESHOLDS = {
    "promising": {"max_upvotes": 500, "min_growth_rate": 10},
    "trending": {"min_upvotes": 500, "min_comments": 100},
    "hall_of_fame": {"min_upvotes": 5000},
}

PH_THRESHOLDS = {
    "promising": {"max_upvotes": 200, "max_age_hours": 24},
    "trending": {"min_upvotes": 200},
    "hall_of_fame": {"min_upvotes": 1000},
}

NPM_THRESHOLDS = {
    "promising": {"min_growth": 0.5, "max_weekly": 100_000},
    "trending": {"min_weekly": 100_000},
    "hall_of_fame": {"min_weekly": 1_000_000},
}

_EMPTY = MetricSnapshot(post_id=0, collected_at=datetime.fromtimestamp(0, UTC))


def _per_hour(value: float, age: float) -> float:
    return value / age if age > 0 else 0.0


def classify_github(post: Post, m: MetricSnapshot, now: datetime) -> Classification:
    t = GITHUB_THRESHOLDS
    stars = m.stars
    momentum = post.github_momentum
    velocity = momentum / stars if stars > 0 else 0.0

    if stars >= t["hall_of_fame"]["min_stars"]:
        return Classification(layer=Layer.HALL_OF_FAME, velocity=velocity)
    if stars < t["promising"]["max_stars"] and velocity > t["promising"]["min_velocity"]:
        return Classification(layer=Layer.PROMISING, velocity=velocity)
    if momentum >= t["trending"]["min_momentum"] and stars < t["trending"]["max_stars"]:
        return Classification(layer=Layer.TRENDING, velocity=velocity)
    return Classification(layer=Layer.TRENDING, velocity=velocity)


def classify_hackernews(post: Post, m: MetricSnapshot, now: datetime) -> Classification:
    t = HN_THRESHOLDS
    age = age_hours(post.published_at, now)
    velocity = _per_hour(m.score, age)

    if m.score >= t["hall_of_fame"]["min_score"]:
        return Classification(layer=Layer.HALL_OF_FAME, velocity=velocity)
    p = t["promising"]
    if m.score < p["max_score"] and m.comments > p["min_comments"] and age < p["max_age_hours"]:
        return Classification(layer=Layer.PROMISING, velocity=velocity)
    if m.score >= t["trending"]["min_score"] or m.comments >= t["trending"]["min_comments"]:
        return Classification(layer=Layer.TRENDING, velocity=velocity)
    return Classification(layer=Layer.PROMISING, velocity=velocity)


def classify_reddit(post: Post, m: MetricSnapshot, now: datetime) -> Classification:
    t = REDDIT_THRESHOLDS
    age = age_hours(post.published_at, now)
    velocity = _per_hour(m.upvotes, age)

    if m.upvotes >= t["hall_of_fame"]["min_upvotes"]:
        return Classification(layer=Layer.HALL_OF_FAME, velocity=velocity)
    p = t["promising"]
    if m.upvotes < p["max_upvotes"] and velocity > p["min_growth_rate"]:
        return Classification(layer=Layer.PROMISING, velocity=velocity)
    if m.upvotes >= t["trending"]["min_upvotes"] or m.comments >= t["trending"]["min_comments"]:
        return Classification(layer=Layer.TRENDING, velocity=velocity)
    return Classification(layer=Layer.PROMISING, velocity=velocity)


def classify_producthunt(post: Post, m: MetricSnapshot, now: datetime) -> Classification:
    t = PH_THRESHOLDS
    age = age_hours(post.published_at, now)
    velocity = _per_hour(m.upvotes, age)

    if m.upvotes >= t["hall_of_fame"]["min_upvotes"]:
        return Classification(layer=Layer.HALL_OF_FAME, velocity=velocity)
    p = t["promising"]
    if m.upvotes < p["max_upvotes"] and age < p["max_age_hours"]:
        return Classification(layer=Layer.PROMISING, velocity=velocity)
    if m.upvotes >= t["trending"]["min_upvotes"]:
        return Classification(layer=Layer.TRENDING, velocity=velocity)
    return Classification(layer=Layer.PROMISING, velocity=velocity)


def classify_npm(post: Post, m: MetricSnapshot, now: datetime) -> Classification:
    t = NPM_THRESHOLDS
    weekly = m.downloads_weekly
    growth = week_over_week_growth(m)

    if weekly >= t["hall_of_fame"]["min_weekly"]:
        return Classification(layer=Layer.HALL_OF_FAME, velocity=growth)
    p = t["promising"]
    if growth > p["min_growth"] and weekly < p["max_weekly"]:
        return Classification(layer=Layer.PROMISING, velocity=growth)
    if weekly >= t["trending"]["min_weekly"]:
        return Classification(layer=Layer.TRENDING, velocity=growth)
    return Classification(layer=Layer.PROMISING, velocity=growth)


_CLASSIFIERS: dict[Platform, Callable[[Post, MetricSnapshot, datetime], Classification]] = {
    Platform.GITHUB: classify_github,
    Platform.HACKERNEWS: classify_hackernews,
    Platform.REDDIT: classify_reddit,
    Platform.PRODUCTHUNT: classify_producthunt,
    Platform.NPM: classify_npm,
}


def classify_post(
    post: Post,
    latest: MetricSnapshot | None,
    now: datetime | None = None,
) -> Classification:
    """Pick a layer and velocity from the post's momentum, latest metrics and age.

    A post with no snapshot is classified against all-zero metrics.
    """
    classifier = _CLASSIFIERS.get(post.platform)
    if classifier is None:
        return Classification(layer=Layer.TRENDING, velocity=0.0)
    return classifier(post, latest or _EMPTY, now or datetime.now(UTC))


def classify_recent_posts(
    store: SignalStore,
    hours_back: int = 48,
    now: datetime | None = None,
) -> int:
    """Reclassify every post created in the trailing window; return how many."""
    now = now or datetime.now(UTC)
    posts = store.recent_posts(since=now - timedelta(hours=hours_back))
    if not posts:
        logger.info("No posts in the last %dh to classify", hours_back)
        return 0

    latest = store.latest_snapshots([p.id for p in posts])
    layers: Counter[str] = Counter()
    for post in posts:
        result = classify_post(post, latest.get(post.id), now)
        store.update_post(post.id, layer=result.layer, velocity=result.velocity)
        layers[result.layer.value] += 1

    logger.info("Classified %d posts: %s", len(posts), dict(layers))
    return len(posts)
