"""Pass orchestration for scoring (momentum, breakouts, layers) and clustering (topics, ranks)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from builderpulse.breakout import detect_breakouts
from builderpulse.cluster import run_clustering
from builderpulse.embeddings import OpenAIEmbedder
from builderpulse.layers import classify_recent_posts
from builderpulse.llm import TopicTitler
from builderpulse.models import SCORED_PLATFORMS, ClusterResult, GitHubScore, Platform, ScoringResult
from builderpulse.scorers import persist_scores, score_platform
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)


def run_scoring_pass(
    store: SignalStore,
    hours_back: int = 48,
    now: datetime | None = None,
) -> ScoringResult:
    """Score every platform, flag GitHub breakouts, then reclassify layers.

    A platform that fails is logged and skipped; the others still run.
    """
    now = now or datetime.now(UTC)
    since = now - timedelta(hours=hours_back)
    logger.info("=== scoring pass start [window=%dh] ===", hours_back)
    result = ScoringResult()

    for platform in SCORED_PLATFORMS:
        try:
            posts = store.recent_posts(since=since, platform=platform)
            scores = score_platform(store, platform, [p.id for p in posts], now)
            result.scored[platform] = persist_scores(store, platform, scores)
            if platform is Platform.GITHUB:
                github = [s for s in scores if isinstance(s, GitHubScore)]
                result.breakouts = detect_breakouts(store, github)
        except Exception:
            logger.exception("Scoring failed for %s; continuing", platform.value)
            result.failed.append(platform)

    result.classified = classify_recent_posts(store, hours_back, now)
    logger.info(
        "=== scoring pass done — scored=%d breakouts=%d classified=%d failed=%s ===",
        sum(result.scored.values()),
        result.breakouts,
        result.classified,
        [p.value for p in result.failed],
    )
    return result


def run_clustering_pass(
    store: SignalStore,
    embedder: OpenAIEmbedder,
    titler: TopicTitler,
    *,
    batch_size: int = 100,
    embed_batch_size: int = 20,
    threshold: float = 0.3,
    neighbor_limit: int = 10,
    now: datetime | None = None,
) -> ClusterResult:
    """Cluster newly collected posts into topics and refresh topic scores.

    Runs should be serialised by the scheduler; overlapping runs may create
    duplicate topics for the same cluster.
    """
    logger.info("=== clustering pass start [batch=%d] ===", batch_size)
    result = run_clustering(
        store,
        embedder,
        titler,
        batch_size=batch_size,
        embed_batch_size=embed_batch_size,
        threshold=threshold,
        neighbor_limit=neighbor_limit,
        now=now,
    )
    logger.info("=== clustering pass done ===")
    return result
