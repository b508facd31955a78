"""Group embedded posts into topics by nearest-neighbour similarity."""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime

from builderpulse.embeddings import EmbeddingError, OpenAIEmbedder
from builderpulse.llm import TopicTitler
from builderpulse.models import ClusterResult, Post
from builderpulse.ranking import recompute_topic_scores
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)

_SOLO_TITLE_CHARS = 100
_SOLO_DESCRIPTION_CHARS = 300

# Outcomes of assigning one post.
JOINED = "joined"
CREATED = "created"
SKIPPED = "skipped"


def embedding_text(post: Post) -> str:
    return f"{post.title} {post.description or ''}".strip()


def embed_posts(
    store: SignalStore,
    embedder: OpenAIEmbedder,
    posts: list[Post],
    batch_size: int = 20,
) -> tuple[list[Post], int]:
    """Embed *posts* in batches and persist each vector.

    Returns the embedded posts and the number whose vector could not be
    stored. A failed batch is logged and skipped; the remaining batches
    still run.
    """
    embedded: list[Post] = []
    unsaved = 0
    for start in range(0, len(posts), batch_size):
        batch = posts[start : start + batch_size]
        try:
            vectors = embedder.embed([embedding_text(p) for p in batch])
        except EmbeddingError as exc:
            logger.warning(
                "Skipping embedding batch %d-%d: %s", start, start + len(batch) - 1, exc
            )
            continue
        for post, vector in zip(batch, vectors):
            try:
                store.set_embedding(post.id, vector)
            except sqlite3.Error:
                logger.exception("Failed to store embedding for post %d; skipping", post.id)
                unsaved += 1
                continue
            embedded.append(post.model_copy(update={"embedding": vector}))
    return embedded, unsaved


def assign_post(
    store: SignalStore,
    titler: TopicTitler,
    post: Post,
    threshold: float = 0.3,
    neighbor_limit: int = 10,
    now: datetime | None = None,
) -> str:
    """Place one embedded post into a topic.

    Already-linked posts are left alone. A post joins the topic of its
    neighbours (lowest topic id on conflict); with neighbours but no topic a
    new titled cluster is created; with no neighbours it becomes a solo topic.
    """
    if post.embedding is None or store.topic_for_post(post.id) is not None:
        return SKIPPED

    neighbors = store.find_similar_posts(
        post.embedding, threshold=threshold, exclude_id=post.id, limit=neighbor_limit
    )

    if not neighbors:
        topic_id = store.create_topic(
            title=post.title[:_SOLO_TITLE_CHARS],
            description=(post.description or "")[:_SOLO_DESCRIPTION_CHARS],
            now=now,
        )
        store.link_posts(topic_id, [post.id])
        logger.debug("Post %d → new solo topic %d", post.id, topic_id)
        return CREATED

    neighbor_topics = store.topics_for_posts([n.id for n in neighbors])
    if neighbor_topics:
        topic_id = min(neighbor_topics.values())
        store.link_posts(topic_id, [post.id])
        logger.debug("Post %d → existing topic %d", post.id, topic_id)
        return JOINED

    title = titler.title_for([post.title, *(n.title for n in neighbors)])
    topic_id = store.create_topic(
        title=title,
        description=f"Cluster of related {post.title} discussions",
        now=now,
    )
    store.link_posts(topic_id, [post.id, *(n.id for n in neighbors)])
    logger.debug("Post %d + %d neighbours → new topic %d", post.id, len(neighbors), topic_id)
    return CREATED


def _cluster_pending(
    store: SignalStore,
    embedder: OpenAIEmbedder,
    titler: TopicTitler,
    result: ClusterResult,
    *,
    batch_size: int,
    embed_batch_size: int,
    threshold: float,
    neighbor_limit: int,
    now: datetime,
) -> None:
    pending = store.unembedded_posts(batch_size)
    if not pending:
        logger.info("No unembedded posts; refreshing topic scores only.")
        return
    if not embedder.available:
        logger.warning("Embeddings unavailable — %d posts left unclustered.", len(pending))
        return

    embedded, unsaved = embed_posts(store, embedder, pending, embed_batch_size)
    result.processed = len(embedded)
    result.skipped += unsaved

    for post in embedded:
        try:
            outcome = assign_post(store, titler, post, threshold, neighbor_limit, now)
        except Exception:
            logger.exception("Failed to cluster post %d; skipping", post.id)
            result.skipped += 1
            continue
        if outcome == CREATED:
            result.topics_created += 1
        elif outcome == JOINED:
            result.topics_updated += 1
        else:
            result.skipped += 1


def run_clustering(
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
    """Embed up to *batch_size* new posts, cluster them, then rescore all topics."""
    now = now or datetime.now(UTC)
    result = ClusterResult()

    try:
        _cluster_pending(
            store,
            embedder,
            titler,
            result,
            batch_size=batch_size,
            embed_batch_size=embed_batch_size,
            threshold=threshold,
            neighbor_limit=neighbor_limit,
            now=now,
        )
    finally:
        result.topics_rescored = recompute_topic_scores(store, now)
    logger.info(
        "Clustering: processed=%d created=%d updated=%d skipped=%d rescored=%d",
        result.processed,
        result.topics_created,
        result.topics_updated,
        result.skipped,
        result.topics_rescored,
    )
    return result
