"""Domain models used across the pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Platform(str, Enum):
    GITHUB = "github"
    HACKERNEWS = "hackernews"
    REDDIT = "reddit"
    PRODUCTHUNT = "producthunt"
    NPM = "npm"
    BLOG = "blog"


# Platforms that carry a momentum scorer.
SCORED_PLATFORMS: tuple[Platform, ...] = (
    Platform.GITHUB,
    Platform.HACKERNEWS,
    Platform.REDDIT,
    Platform.PRODUCTHUNT,
    Platform.NPM,
)

# Post column holding each platform's momentum score.
MOMENTUM_FIELDS: dict[Platform, str] = {
    Platform.GITHUB: "github_momentum",
    Platform.HACKERNEWS: "hn_heat",
    Platform.REDDIT: "reddit_buzz",
    Platform.PRODUCTHUNT: "ph_momentum",
    Platform.NPM: "npm_traction",
}


class Layer(str, Enum):
    PROMISING = "promising"
    TRENDING = "trending"
    HALL_OF_FAME = "hall_of_fame"


class MomentumLabel(str, Enum):
    NEW = "new"
    RISING = "rising"
    EXPLODING = "exploding"


class Post(BaseModel):
    id: int = 0
    platform: Platform
    title: str
    url: str = ""
    author: str | None = None
    description: str | None = None
    published_at: datetime | None = None
    type: str = "repo"  # repo / discussion / article / product / package
    external_id: str
    embedding: list[float] | None = None
    github_momentum: float = 0.0
    hn_heat: float = 0.0
    reddit_buzz: float = 0.0
    ph_momentum: float = 0.0
    npm_traction: float = 0.0
    is_early_breakout: bool = False
    signal_label: str | None = None
    layer: Layer | None = None
    velocity: float = 0.0
    created_at: datetime | None = None

    @property
    def momentum(self) -> float:
        """The momentum score persisted for this post's own platform."""
        field = MOMENTUM_FIELDS.get(self.platform)
        return float(getattr(self, field)) if field else 0.0


class MetricSnapshot(BaseModel):
    post_id: int
    stars: float = 0
    comments: float = 0
    upvotes: float = 0
    score: float = 0
    forks: float = 0
    downloads_weekly: float = 0
    download_growth: float = 0
    downloads_prev_week: float = 0
    collected_at: datetime


class Topic(BaseModel):
    id: int = 0
    title: str
    description: str = ""
    trend_score: float = 0.0
    momentum_label: MomentumLabel = MomentumLabel.NEW
    platform_count: int = 0
    signals: list[Platform] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Neighbor(BaseModel):
    id: int
    title: str
    similarity: float


# ── Score results ──────────────────────────────────────────────────────────


class GitHubScore(BaseModel):
    post_id: int
    stars_24h: float
    forks_24h: float
    total_stars: float
    score: float


class HNHeatScore(BaseModel):
    post_id: int
    hn_score: float
    comments: float
    age_hours: float
    score: float


class RedditBuzzScore(BaseModel):
    post_id: int
    upvotes: float
    comments: float
    growth_rate: float
    subreddit: str
    score: float


class PHScore(BaseModel):
    post_id: int
    upvotes: float
    comments: float
    age_hours: float
    score: float


class NpmScore(BaseModel):
    post_id: int
    downloads_weekly: float
    download_growth: float
    score: float


PlatformScore = GitHubScore | HNHeatScore | RedditBuzzScore | PHScore | NpmScore


class PostMomentum(BaseModel):
    post_id: int
    platform: Platform
    star_velocity: float = 0.0
    comment_velocity: float = 0.0
    upvote_velocity: float = 0.0
    momentum_score: float = 0.0
    label: MomentumLabel = MomentumLabel.NEW


class Classification(BaseModel):
    layer: Layer
    velocity: float = 0.0


class TopicScore(BaseModel):
    topic_id: int
    trend_score: float = 0.0
    momentum_label: MomentumLabel = MomentumLabel.NEW
    platform_count: int = 0
    signals: list[Platform] = Field(default_factory=list)


# ── Pass summaries ─────────────────────────────────────────────────────────


class ScoringResult(BaseModel):
    scored: dict[Platform, int] = Field(default_factory=dict)
    failed: list[Platform] = Field(default_factory=list)
    breakouts: int = 0
    classified: int = 0


class ClusterResult(BaseModel):
    processed: int = 0
    topics_created: int = 0
    topics_updated: int = 0
    topics_rescored: int = 0
    skipped: int = 0


# ── Dashboard sections ─────────────────────────────────────────────────────


class SectionDef(BaseModel):
    title: str
    layer: Layer
    platforms: list[Platform]
    sort_field: str
    limit: int = 8


class SectionItem(BaseModel):
    post: Post
    latest: MetricSnapshot | None = None


class Section(BaseModel):
    title: str
    layer: Layer
    items: list[SectionItem] = Field(default_factory=list)
