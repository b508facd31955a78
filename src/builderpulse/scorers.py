"""Per-platform momentum scorers.

Each scorer is a pure function of a post and its newest-first snapshots.
``score_platform`` loads what the scorers need from the store and
``persist_scores`` writes the results back onto the posts.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime

from builderpulse.models import (
    MOMENTUM_FIELDS,
    GitHubScore,
    HNHeatScore,
    MetricSnapshot,
    NpmScore,
    PHScore,
    Platform,
    PlatformScore,
    Post,
    RedditBuzzScore,
)
from builderpulse.momentum import (
    age_hours,
    metric_delta,
    metric_velocity,
    signal_label,
    split_snapshots,
    week_over_week_growth,
)
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)

# ── Weights (tuneable) ─────────────────────────────────────────────────────
_GH_W_STARS = 4.0
_GH_W_FORKS = 3.0
_GH_W_CONTRIBUTORS = 5.0  # forks stand in for contributor count
_GH_W_STARS_7D = 1.5
_GH_7D_EXTRAPOLATION = 3.5

_HN_W_SCORE = 2.0
_HN_W_COMMENTS = 3.0
_HN_RECENCY_HOURS = 24.0

_REDDIT_W_UPVOTES = 1.5
_REDDIT_W_COMMENTS = 2.0
_REDDIT_W_GROWTH = 3.0

_PH_W_UPVOTES = 2.0
_PH_W_COMMENTS = 3.0
_PH_RECENCY_HOURS = 48.0

_NPM_DOWNLOADS_PER_POINT = 1000.0
_NPM_W_GROWTH = 50.0

# Curated subreddit weighting; anything unlisted scores at 1.0.
SUBREDDIT_MULTIPLIERS: dict[str, float] = {
    "programming": 1.4,
    "machinelearning": 1.3,
    "startups": 1.2,
    "localllama": 1.2,
    "sideproject": 1.1,
    "webdev": 1.1,
    "devops": 1.1,
    "opensource": 1.1,
    "javascript": 1.0,
    "rust": 1.0,
    "golang": 1.0,
}

_SUBREDDIT_RE = re.compile(r"/r/([^/?#]+)", re.IGNORECASE)


def extract_subreddit(url: str) -> str:
    """Return the lower-cased subreddit from a Reddit URL, or ``""``."""
    match = _SUBREDDIT_RE.search(url or "")
    return match.group(1).lower() if match else ""


def github_momentum(post: Post, snapshots: list[MetricSnapshot]) -> GitHubScore | None:
    if not snapshots:
        return None
    latest, previous = split_snapshots(snapshots)

    stars_24h = metric_delta("stars", latest, previous)
    forks_24h = metric_delta("forks", latest, previous)
    stars_7d = stars_24h * _GH_7D_EXTRAPOLATION
    score = (
        stars_24h * _GH_W_STARS
        + forks_24h * _GH_W_FORKS
        + forks_24h * _GH_W_CONTRIBUTORS
        + stars_7d * _GH_W_STARS_7D
    )
    return GitHubScore(
        post_id=post.id,
        stars_24h=stars_24h,
        forks_24h=forks_24h,
        total_stars=latest.stars,
        score=score,
    )


def hn_heat(
    post: Post, snapshots: list[MetricSnapshot], now: datetime | None = None
) -> HNHeatScore | None:
    if not snapshots:
        return None
    latest = snapshots[0]
    age = age_hours(post.published_at, now)
    recency_boost = max(0.0, _HN_RECENCY_HOURS - age)
    score = latest.score * _HN_W_SCORE + latest.comments * _HN_W_COMMENTS + recency_boost
    return HNHeatScore(
        post_id=post.id,
        hn_score=latest.score,
        comments=latest.comments,
        age_hours=age,
        score=score,
    )


def reddit_buzz(post: Post, snapshots: list[MetricSnapshot]) -> RedditBuzzScore | None:
    if not snapshots:
        return None
    latest, previous = split_snapshots(snapshots)

    growth_rate = metric_velocity("upvotes", latest, previous)
    subreddit = extract_subreddit(post.url)
    multiplier = SUBREDDIT_MULTIPLIERS.get(subreddit, 1.0)
    score = (
        latest.upvotes * _REDDIT_W_UPVOTES
        + latest.comments * _REDDIT_W_COMMENTS
        + growth_rate * _REDDIT_W_GROWTH
    ) * multiplier
    return RedditBuzzScore(
        post_id=post.id,
        upvotes=latest.upvotes,
        comments=latest.comments,
        growth_rate=growth_rate,
        subreddit=subreddit,
        score=score,
    )


def ph_momentum(
    post: Post, snapshots: list[MetricSnapshot], now: datetime | None = None
) -> PHScore | None:
    if not snapshots:
        return None
    latest = snapshots[0]
    age = age_hours(post.published_at, now)
    recency_boost = max(0.0, _PH_RECENCY_HOURS - age)
    score = latest.upvotes * _PH_W_UPVOTES + latest.comments * _PH_W_COMMENTS + recency_boost
    return PHScore(
        post_id=post.id,
        upvotes=latest.upvotes,
        comments=latest.comments,
        age_hours=age,
        score=round(score, 2),
    )


def npm_traction(post: Post, snapshots: list[MetricSnapshot]) -> NpmScore | None:
    if not snapshots:
        return None
    latest = snapshots[0]
    growth = week_over_week_growth(latest)
    score = latest.downloads_weekly / _NPM_DOWNLOADS_PER_POINT + growth * _NPM_W_GROWTH
    return NpmScore(
        post_id=post.id,
        downloads_weekly=latest.downloads_weekly,
        download_growth=growth,
        score=round(score, 2),
    )


_SCORERS: dict[Platform, Callable[[Post, list[MetricSnapshot], datetime], PlatformScore | None]] = {
    Platform.GITHUB: lambda post, snaps, now: github_momentum(post, snaps),
    Platform.HACKERNEWS: hn_heat,
    Platform.REDDIT: lambda post, snaps, now: reddit_buzz(post, snaps),
    Platform.PRODUCTHUNT: ph_momentum,
    Platform.NPM: lambda post, snaps, now: npm_traction(post, snaps),
}


def score_posts(
    platform: Platform,
    posts: list[Post],
    snapshots: dict[int, list[MetricSnapshot]],
    now: datetime | None = None,
) -> list[PlatformScore]:
    """Score every post of *platform* that has at least one snapshot."""
    scorer = _SCORERS.get(platform)
    if scorer is None:
        logger.warning("No momentum scorer for platform %s", platform.value)
        return []
    now = now or datetime.now(UTC)

    results: list[PlatformScore] = []
    for post in posts:
        if post.platform is not platform:
            continue
        result = scorer(post, snapshots.get(post.id, []), now)
        if result is not None:
            results.append(result)
    return results


def score_platform(
    store: SignalStore,
    platform: Platform,
    post_ids: list[int],
    now: datetime | None = None,
) -> list[PlatformScore]:
    """Load posts and their two newest snapshots, then score them."""
    if not post_ids:
        return []
    posts = store.posts_by_id(post_ids)
    snapshots = store.snapshots_for(post_ids, per_post=2)
    results = score_posts(platform, posts, snapshots, now)
    logger.info(
        "[%s] scored %d of %d posts (%d without snapshots)",
        platform.value,
        len(results),
        len(post_ids),
        len(post_ids) - len(results),
    )
    return results


def persist_scores(store: SignalStore, platform: Platform, results: list[PlatformScore]) -> int:
    """Write each score and its signal label back onto the post."""
    field = MOMENTUM_FIELDS[platform]
    for result in results:
        fields: dict[str, object] = {
            field: result.score,
            "signal_label": signal_label(platform, result.score),
        }
        if platform is Platform.GITHUB:
            # Breakout status is re-derived on every pass.
            fields["is_early_breakout"] = False
        store.update_post(result.post_id, **fields)
    return len(results)
