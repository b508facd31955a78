"""SQLite-backed signal store: posts, metric snapshots, topics and topic links."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections import defaultdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import numpy as np

from builderpulse.models import (
    Layer,
    MetricSnapshot,
    MomentumLabel,
    Neighbor,
    Platform,
    Post,
    Topic,
    TopicScore,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS posts (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    platform          TEXT NOT NULL,
    title             TEXT NOT NULL,
    url               TEXT NOT NULL DEFAULT '',
    author            TEXT,
    description       TEXT,
    published_at      TEXT,
    type              TEXT NOT NULL DEFAULT 'repo',
    external_id       TEXT NOT NULL UNIQUE,
    embedding         TEXT,
    github_momentum   REAL NOT NULL DEFAULT 0,
    hn_heat           REAL NOT NULL DEFAULT 0,
    reddit_buzz       REAL NOT NULL DEFAULT 0,
    ph_momentum       REAL NOT NULL DEFAULT 0,
    npm_traction      REAL NOT NULL DEFAULT 0,
    is_early_breakout INTEGER NOT NULL DEFAULT 0,
    signal_label      TEXT,
    layer             TEXT,
    velocity          REAL NOT NULL DEFAULT 0,
    created_at        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_posts_platform_created ON posts (platform, created_at);

CREATE TABLE IF NOT EXISTS metrics_history (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    post_id             INTEGER NOT NULL REFERENCES posts (id),
    stars               REAL NOT NULL DEFAULT 0,
    comments            REAL NOT NULL DEFAULT 0,
    upvotes             REAL NOT NULL DEFAULT 0,
    score               REAL NOT NULL DEFAULT 0,
    forks               REAL NOT NULL DEFAULT 0,
    downloads_weekly    REAL NOT NULL DEFAULT 0,
    download_growth     REAL NOT NULL DEFAULT 0,
    downloads_prev_week REAL NOT NULL DEFAULT 0,
    collected_at        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_metrics_post_collected ON metrics_history (post_id, collected_at);

CREATE TABLE IF NOT EXISTS topics (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    title          TEXT NOT NULL,
    description    TEXT NOT NULL DEFAULT '',
    trend_score    REAL NOT NULL DEFAULT 0,
    momentum_label TEXT NOT NULL DEFAULT 'new',
    platform_count INTEGER NOT NULL DEFAULT 0,
    signals        TEXT NOT NULL DEFAULT '[]',
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS topic_posts (
    topic_id INTEGER NOT NULL REFERENCES topics (id),
    post_id  INTEGER NOT NULL REFERENCES posts (id),
    UNIQUE (topic_id, post_id),
    UNIQUE (post_id)
);
"""

# Columns the scoring passes may write back onto a post.
_WRITABLE_POST_FIELDS = frozenset(
    {
        "github_momentum",
        "hn_heat",
        "reddit_buzz",
        "ph_momentum",
        "npm_traction",
        "is_early_breakout",
        "signal_label",
        "layer",
        "velocity",
    }
)

# Sort keys accepted by ``section_posts``.
_SORTABLE_POST_FIELDS = frozenset(
    {"github_momentum", "hn_heat", "reddit_buzz", "ph_momentum", "npm_traction", "velocity"}
)


def _iso(dt: datetime | None) -> str | None:
    """Normalise to a UTC ISO-8601 string so text comparison orders correctly."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SignalStore:
    """Relational store for the scoring and clustering core.

    A single instance is created at process start and handed to every
    component that needs storage.
    """

    def __init__(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._init_db()

    # ── posts & snapshots (collector write surface) ────────────────────

    def upsert_post(self, post: Post, now: datetime | None = None) -> int:
        """Insert *post* or update the row with the same external_id; return its id."""
        created = _iso(post.created_at or now or datetime.now(UTC))
        con = self._connect()
        try:
            con.execute(
                """
                INSERT INTO posts
                    (platform, title, url, author, description, published_at, type,
                     external_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (external_id) DO UPDATE SET
                    title = excluded.title,
                    url = excluded.url,
                    author = excluded.author,
                    description = excluded.description,
                    published_at = excluded.published_at,
                    type = excluded.type
                """,
                (
                    post.platform.value,
                    post.title,
                    post.url,
                    post.author,
                    post.description,
                    _iso(post.published_at),
                    post.type,
                    post.external_id,
                    created,
                ),
            )
            con.commit()
            row = con.execute(
                "SELECT id FROM posts WHERE external_id = ?", (post.external_id,)
            ).fetchone()
            return int(row["id"])
        finally:
            con.close()

    def add_snapshot(self, snapshot: MetricSnapshot) -> None:
        """Append one metric snapshot."""
        con = self._connect()
        try:
            con.execute(
                """
                INSERT INTO metrics_history
                    (post_id, stars, comments, upvotes, score, forks, downloads_weekly,
                     download_growth, downloads_prev_week, collected_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    snapshot.post_id,
                    snapshot.stars,
                    snapshot.comments,
                    snapshot.upvotes,
                    snapshot.score,
                    snapshot.forks,
                    snapshot.downloads_weekly,
                    snapshot.download_growth,
                    snapshot.downloads_prev_week,
                    _iso(snapshot.collected_at),
                ),
            )
            con.commit()
        finally:
            con.close()

    # ── post reads ─────────────────────────────────────────────────────

    def get_post(self, post_id: int) -> Post | None:
        posts = self.posts_by_id([post_id])
        return posts[0] if posts else None

    def posts_by_id(self, post_ids: list[int]) -> list[Post]:
        if not post_ids:
            return []
        con = self._connect()
        try:
            marks = ",".join("?" for _ in post_ids)
            rows = con.execute(
                f"SELECT * FROM posts WHERE id IN ({marks}) ORDER BY id", list(post_ids)
            ).fetchall()
        finally:
            con.close()
        return [self._row_to_post(r) for r in rows]

    def recent_posts(
        self,
        since: datetime,
        until: datetime | None = None,
        platform: Platform | None = None,
        limit: int | None = None,
    ) -> list[Post]:
        """Posts created in ``[since, until)``, newest first."""
        clauses = ["created_at >= ?"]
        params: list[Any] = [_iso(since)]
        if until is not None:
            clauses.append("created_at < ?")
            params.append(_iso(until))
        if platform is not None:
            clauses.append("platform = ?")
            params.append(platform.value)
        sql = f"SELECT * FROM posts WHERE {' AND '.join(clauses)} ORDER BY created_at DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        con = self._connect()
        try:
            rows = con.execute(sql, params).fetchall()
        finally:
            con.close()
        return [self._row_to_post(r) for r in rows]

    def unembedded_posts(self, limit: int) -> list[Post]:
        """Newest posts still lacking an embedding."""
        con = self._connect()
        try:
            rows = con.execute(
                "SELECT * FROM posts WHERE embedding IS NULL "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        finally:
            con.close()
        return [self._row_to_post(r) for r in rows]

    def section_posts(
        self,
        since: datetime,
        layer: Layer,
        platforms: list[Platform],
        sort_field: str,
        limit: int,
    ) -> list[Post]:
        """Posts of the trailing window in *layer*, ordered by *sort_field* descending."""
        if sort_field not in _SORTABLE_POST_FIELDS:
            raise ValueError(f"Cannot sort posts by {sort_field!r}")
        if not platforms:
            return []
        marks = ",".join("?" for _ in platforms)
        con = self._connect()
        try:
            rows = con.execute(
                f"""
                SELECT * FROM posts
                WHERE created_at >= ? AND layer = ? AND platform IN ({marks})
                ORDER BY {sort_field} DESC, id
                LIMIT ?
                """,
                [_iso(since), layer.value, *(p.value for p in platforms), limit],
            ).fetchall()
        finally:
            con.close()
        return [self._row_to_post(r) for r in rows]

    def snapshots_for(
        self, post_ids: list[int], per_post: int = 2
    ) -> dict[int, list[MetricSnapshot]]:
        """Return up to *per_post* most recent snapshots per post, newest first.

        Posts without snapshots are absent from the result.
        """
        if not post_ids:
            return {}
        con = self._connect()
        try:
            marks = ",".join("?" for _ in post_ids)
            rows = con.execute(
                f"""
                SELECT * FROM metrics_history
                WHERE post_id IN ({marks})
                ORDER BY post_id, collected_at DESC, id DESC
                """,
                list(post_ids),
            ).fetchall()
        finally:
            con.close()

        by_post: dict[int, list[MetricSnapshot]] = defaultdict(list)
        for row in rows:
            snaps = by_post[row["post_id"]]
            if len(snaps) < per_post:
                snaps.append(self._row_to_snapshot(row))
        return dict(by_post)

    def latest_snapshots(self, post_ids: list[int]) -> dict[int, MetricSnapshot]:
        return {pid: snaps[0] for pid, snaps in self.snapshots_for(post_ids, per_post=1).items()}

    def last_collected_at(self) -> datetime | None:
        con = self._connect()
        try:
            row = con.execute("SELECT MAX(collected_at) AS ts FROM metrics_history").fetchone()
        finally:
            con.close()
        return _parse(row["ts"])

    # ── post writes (scoring core) ─────────────────────────────────────

    def update_post(self, post_id: int, **fields: Any) -> None:
        """Write scoring fields back onto one post."""
        unknown = set(fields) - _WRITABLE_POST_FIELDS
        if unknown:
            raise ValueError(f"Unknown post fields: {sorted(unknown)}")
        if not fields:
            return
        values = [
            v.value if isinstance(v, Layer) else int(v) if isinstance(v, bool) else v
            for v in fields.values()
        ]
        assignments = ", ".join(f"{name} = ?" for name in fields)
        con = self._connect()
        try:
            con.execute(f"UPDATE posts SET {assignments} WHERE id = ?", [*values, post_id])
            con.commit()
        finally:
            con.close()

    def set_embedding(self, post_id: int, embedding: list[float]) -> None:
        con = self._connect()
        try:
            con.execute(
                "UPDATE posts SET embedding = ? WHERE id = ?", (json.dumps(embedding), post_id)
            )
            con.commit()
        finally:
            con.close()

    # ── vector search ──────────────────────────────────────────────────

    def find_similar_posts(
        self,
        query: list[float],
        threshold: float,
        exclude_id: int,
        limit: int,
    ) -> list[Neighbor]:
        """Cosine nearest neighbours among embedded posts, best first."""
        con = self._connect()
        try:
            rows = con.execute(
                "SELECT id, title, embedding FROM posts WHERE embedding IS NOT NULL AND id != ?",
                (exclude_id,),
            ).fetchall()
        finally:
            con.close()

        q = np.asarray(query, dtype=float)
        q_norm = np.linalg.norm(q)
        if not rows or not q_norm:
            return []

        candidates = [(r["id"], r["title"], json.loads(r["embedding"])) for r in rows]
        candidates = [c for c in candidates if len(c[2]) == len(q)]
        if not candidates:
            return []

        matrix = np.asarray([c[2] for c in candidates], dtype=float)
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = np.inf
        sims = matrix @ q / (norms * q_norm)

        order = np.argsort(-sims, kind="stable")
        neighbors: list[Neighbor] = []
        for idx in order:
            sim = float(sims[idx])
            if sim < threshold:
                break
            pid, title, _ = candidates[idx]
            neighbors.append(Neighbor(id=pid, title=title, similarity=sim))
            if len(neighbors) >= limit:
                break
        return neighbors

    # ── topics ─────────────────────────────────────────────────────────

    def create_topic(self, title: str, description: str, now: datetime | None = None) -> int:
        ts = _iso(now or datetime.now(UTC))
        con = self._connect()
        try:
            cur = con.execute(
                """
                INSERT INTO topics (title, description, trend_score, momentum_label,
                                    platform_count, signals, created_at, updated_at)
                VALUES (?, ?, 0, 'new', 1, '[]', ?, ?)
                """,
                (title, description, ts, ts),
            )
            con.commit()
            return int(cur.lastrowid)
        finally:
            con.close()

    def link_posts(self, topic_id: int, post_ids: list[int]) -> int:
        """Link posts to a topic, ignoring duplicates; return count of new links."""
        con = self._connect()
        try:
            before = con.total_changes
            con.executemany(
                "INSERT OR IGNORE INTO topic_posts (topic_id, post_id) VALUES (?, ?)",
                [(topic_id, pid) for pid in post_ids],
            )
            con.commit()
            return con.total_changes - before
        finally:
            con.close()

    def topic_for_post(self, post_id: int) -> int | None:
        return self.topics_for_posts([post_id]).get(post_id)

    def topics_for_posts(self, post_ids: list[int]) -> dict[int, int]:
        """Map post id → topic id for the given posts that are linked."""
        if not post_ids:
            return {}
        con = self._connect()
        try:
            marks = ",".join("?" for _ in post_ids)
            rows = con.execute(
                f"SELECT post_id, topic_id FROM topic_posts WHERE post_id IN ({marks})",
                list(post_ids),
            ).fetchall()
        finally:
            con.close()
        return {r["post_id"]: r["topic_id"] for r in rows}

    def topics(self) -> list[Topic]:
        con = self._connect()
        try:
            rows = con.execute("SELECT * FROM topics ORDER BY trend_score DESC, id").fetchall()
        finally:
            con.close()
        return [self._row_to_topic(r) for r in rows]

    def topic_members(self) -> dict[int, list[Post]]:
        """Every topic id mapped to its member posts (possibly empty)."""
        con = self._connect()
        try:
            topic_ids = [r["id"] for r in con.execute("SELECT id FROM topics ORDER BY id")]
            rows = con.execute(
                """
                SELECT tp.topic_id AS topic_id, p.*
                FROM topic_posts tp JOIN posts p ON p.id = tp.post_id
                ORDER BY tp.topic_id, p.id
                """
            ).fetchall()
        finally:
            con.close()

        members: dict[int, list[Post]] = {tid: [] for tid in topic_ids}
        for row in rows:
            members.setdefault(row["topic_id"], []).append(self._row_to_post(row))
        return members

    def count_links(self) -> int:
        con = self._connect()
        try:
            return int(con.execute("SELECT COUNT(*) FROM topic_posts").fetchone()[0])
        finally:
            con.close()

    def update_topic_score(self, score: TopicScore, now: datetime | None = None) -> None:
        con = self._connect()
        try:
            con.execute(
                """
                UPDATE topics
                SET trend_score = ?, momentum_label = ?, platform_count = ?, signals = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    score.trend_score,
                    score.momentum_label.value,
                    score.platform_count,
                    json.dumps([p.value for p in score.signals]),
                    _iso(now or datetime.now(UTC)),
                    score.topic_id,
                ),
            )
            con.commit()
        finally:
            con.close()

    # ── private ─────────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(str(self._db_path))
        con.row_factory = sqlite3.Row
        return con

    def _init_db(self) -> None:
        con = self._connect()
        con.executescript(_SCHEMA)
        con.close()

    @staticmethod
    def _row_to_post(row: sqlite3.Row) -> Post:
        return Post(
            id=row["id"],
            platform=Platform(row["platform"]),
            title=row["title"],
            url=row["url"] or "",
            author=row["author"],
            description=row["description"],
            published_at=_parse(row["published_at"]),
            type=row["type"] or "repo",
            external_id=row["external_id"],
            embedding=json.loads(row["embedding"]) if row["embedding"] else None,
            github_momentum=row["github_momentum"] or 0.0,
            hn_heat=row["hn_heat"] or 0.0,
            reddit_buzz=row["reddit_buzz"] or 0.0,
            ph_momentum=row["ph_momentum"] or 0.0,
            npm_traction=row["npm_traction"] or 0.0,
            is_early_breakout=bool(row["is_early_breakout"]),
            signal_label=row["signal_label"],
            layer=Layer(row["layer"]) if row["layer"] else None,
            velocity=row["velocity"] or 0.0,
            created_at=_parse(row["created_at"]),
        )

    @staticmethod
    def _row_to_snapshot(row: sqlite3.Row) -> MetricSnapshot:
        return MetricSnapshot(
            post_id=row["post_id"],
            stars=row["stars"] or 0,
            comments=row["comments"] or 0,
            upvotes=row["upvotes"] or 0,
            score=row["score"] or 0,
            forks=row["forks"] or 0,
            downloads_weekly=row["downloads_weekly"] or 0,
            download_growth=row["download_growth"] or 0,
            downloads_prev_week=row["downloads_prev_week"] or 0,
            collected_at=_parse(row["collected_at"]),
        )

    @staticmethod
    def _row_to_topic(row: sqlite3.Row) -> Topic:
        return Topic(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            trend_score=row["trend_score"] or 0.0,
            momentum_label=MomentumLabel(row["momentum_label"] or "new"),
            platform_count=row["platform_count"] or 0,
            signals=[Platform(s) for s in json.loads(row["signals"] or "[]")],
            created_at=_parse(row["created_at"]),
            updated_at=_parse(row["updated_at"]),
        )
