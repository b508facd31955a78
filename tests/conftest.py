"""Shared fixtures: a throwaway SQLite store and a fixed clock."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from builderpulse.models import MetricSnapshot, Platform, Post, Topic
from builderpulse.store import SignalStore

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def store(tmp_path: Path) -> SignalStore:
    return SignalStore(db_path=tmp_path / "signals.sqlite3")


def add_post(
    store: SignalStore,
    external_id: str,
    platform: Platform = Platform.GITHUB,
    title: str = "acme/widget",
    created_hours_ago: float = 1.0,
    **fields: object,
) -> int:
    post = Post(
        platform=platform,
        title=title,
        external_id=external_id,
        created_at=NOW - timedelta(hours=created_hours_ago),
        **fields,
    )
    return store.upsert_post(post)


def add_snapshot(store: SignalStore, post_id: int, hours_ago: float, **metrics: float) -> None:
    store.add_snapshot(
        MetricSnapshot(post_id=post_id, collected_at=NOW - timedelta(hours=hours_ago), **metrics)
    )


def get_topic(store: SignalStore, topic_id: int) -> Topic | None:
    return next((t for t in store.topics() if t.id == topic_id), None)
