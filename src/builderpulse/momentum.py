"""Snapshot velocities, momentum labels and the per-platform signal phrases."""

from __future__ import annotations

from datetime import UTC, datetime

from builderpulse.models import MetricSnapshot, MomentumLabel, Platform, Post, PostMomentum


# Hours a lone snapshot is assumed to have accumulated over.
COLD_START_HOURS = 24.0

# Age used when a post has no published_at.
UNKNOWN_AGE_HOURS = 999.0

_EXPLODING_ABOVE = 100.0
_RISING_ABOVE = 30.0

_SIGNAL_PHRASES: dict[Platform, dict[MomentumLabel, str]] = {
    Platform.GITHUB: {
        MomentumLabel.EXPLODING: "Hot Repo",
        MomentumLabel.RISING: "Gaining Traction",
    },
    Platform.HACKERNEWS: {
        MomentumLabel.EXPLODING: "Hot Discussion",
        MomentumLabel.RISING: "Active Thread",
    },
    Platform.REDDIT: {
        MomentumLabel.EXPLODING: "Community Buzz",
        MomentumLabel.RISING: "Getting Noticed",
    },
    Platform.PRODUCTHUNT: {
        MomentumLabel.EXPLODING: "Hot Launch",
        MomentumLabel.RISING: "Strong Launch",
    },
    Platform.NPM: {
        MomentumLabel.EXPLODING: "Exploding Package",
        MomentumLabel.RISING: "Growing Fast",
    },
}

# Weights for the platform-agnostic blended momentum.
_W_STAR = 0.5
_W_COMMENT = 0.3
_W_UPVOTE = 0.2


def momentum_label(score: float) -> MomentumLabel:
    if score > _EXPLODING_ABOVE:
        return MomentumLabel.EXPLODING
    if score > _RISING_ABOVE:
        return MomentumLabel.RISING
    return MomentumLabel.NEW


def signal_label(platform: Platform, score: float) -> str | None:
    """Human phrase for a momentum score; ``None`` while the post is still "new"."""
    return _SIGNAL_PHRASES.get(platform, {}).get(momentum_label(score))


def hours_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / 3600


def age_hours(published_at: datetime | None, now: datetime | None = None) -> float:
    """Hours since publication; posts without a date count as stale.

    Future timestamps (clock skew between sources) count as just published.
    """
    if published_at is None:
        return UNKNOWN_AGE_HOURS
    now = now or datetime.now(UTC)
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=UTC)
    return max(0.0, hours_between(now, published_at))


def metric_velocity(
    metric: str,
    latest: MetricSnapshot,
    previous: MetricSnapshot | None,
) -> float:
    """Per-hour growth of *metric* between the two most recent snapshots.

    A lone snapshot is treated as 24 hours of uniform accumulation. Drops
    (e.g. unstarred repos) floor at zero.
    """
    current = float(getattr(latest, metric))
    if previous is None:
        return max(0.0, current / COLD_START_HOURS)
    hours = hours_between(latest.collected_at, previous.collected_at)
    if hours <= 0:
        return 0.0
    return max(0.0, (current - float(getattr(previous, metric))) / hours)


def metric_delta(
    metric: str,
    latest: MetricSnapshot,
    previous: MetricSnapshot | None,
) -> float:
    """Raw growth of *metric* between the two most recent snapshots.

    Consecutive collector runs are roughly a day apart, so this is read as a
    24h figure. A lone snapshot falls back to the cold-start convention.
    """
    current = float(getattr(latest, metric))
    if previous is None:
        return max(0.0, current / COLD_START_HOURS)
    return max(0.0, current - float(getattr(previous, metric)))


def split_snapshots(
    snapshots: list[MetricSnapshot],
) -> tuple[MetricSnapshot, MetricSnapshot | None]:
    """Return ``(latest, previous)`` from a newest-first snapshot list."""
    return snapshots[0], snapshots[1] if len(snapshots) > 1 else None


def compute_post_momentum(post: Post, snapshots: list[MetricSnapshot]) -> PostMomentum | None:
    """Platform-agnostic blended velocity for one post, or ``None`` without snapshots."""
    if not snapshots:
        return None
    latest, previous = split_snapshots(snapshots)

    stars = metric_velocity("stars", latest, previous)
    comments = metric_velocity("comments", latest, previous)
    upvotes = metric_velocity("upvotes", latest, previous)
    score = stars * _W_STAR + comments * _W_COMMENT + upvotes * _W_UPVOTE

    return PostMomentum(
        post_id=post.id,
        platform=post.platform,
        star_velocity=stars,
        comment_velocity=comments,
        upvote_velocity=upvotes,
        momentum_score=score,
        label=momentum_label(score),
    )


def week_over_week_growth(snapshot: MetricSnapshot) -> float:
    """Download growth as a fraction of last week's downloads.

    Uses the stored previous-week count when the collector recorded one;
    otherwise trusts the snapshot's own ``download_growth``.
    """
    if snapshot.downloads_prev_week > 0:
        return (snapshot.downloads_weekly - snapshot.downloads_prev_week) / snapshot.downloads_prev_week
    return float(snapshot.download_growth)
