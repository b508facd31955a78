"""Unit tests for the SQLite signal store."""

from datetime import timedelta

import pytest
from conftest import NOW, add_post, add_snapshot

from builderpulse.models import Layer, Platform, Post
from builderpulse.store import SignalStore


class TestPosts:
    def test_upsert_by_external_id(self, store: SignalStore) -> None:
        first = add_post(store, "gh-1", title="acme/widget")
        second = store.upsert_post(
            Post(platform=Platform.GITHUB, title="acme/widget-v2", external_id="gh-1"), now=NOW
        )

        assert first == second
        post = store.get_post(first)
        assert post is not None
        assert post.title == "acme/widget-v2"
        assert len(store.recent_posts(since=NOW - timedelta(days=1))) == 1

    def test_upsert_keeps_scores(self, store: SignalStore) -> None:
        pid = add_post(store, "gh-1")
        store.update_post(pid, github_momentum=42.0, layer=Layer.TRENDING, is_early_breakout=True)
        add_post(store, "gh-1", title="renamed")

        post = store.get_post(pid)
        assert post is not None
        assert post.github_momentum == 42.0
        assert post.layer is Layer.TRENDING
        assert post.is_early_breakout

    def test_defaults_filled_at_boundary(self, store: SignalStore) -> None:
        post = store.get_post(add_post(store, "hn-1", platform=Platform.HACKERNEWS))
        assert post is not None
        assert post.hn_heat == 0
        assert post.layer is None
        assert post.signal_label is None
        assert post.embedding is None
        assert post.published_at is None

    def test_recent_posts_filters(self, store: SignalStore) -> None:
        add_post(store, "gh-new", created_hours_ago=1)
        add_post(store, "gh-old", created_hours_ago=50)
        add_post(store, "hn-new", platform=Platform.HACKERNEWS, created_hours_ago=2)

        since = NOW - timedelta(hours=48)
        assert [p.external_id for p in store.recent_posts(since)] == ["gh-new", "hn-new"]
        assert [p.external_id for p in store.recent_posts(since, platform=Platform.HACKERNEWS)] == ["hn-new"]
        assert [
            p.external_id for p in store.recent_posts(NOW - timedelta(hours=72), until=since)
        ] == ["gh-old"]

    def test_update_rejects_unknown_fields(self, store: SignalStore) -> None:
        pid = add_post(store, "gh-1")
        with pytest.raises(ValueError):
            store.update_post(pid, title="nope")


class TestSnapshots:
    def test_newest_first_and_capped(self, store: SignalStore) -> None:
        pid = add_post(store, "gh-1")
        add_snapshot(store, pid, 48, stars=1)
        add_snapshot(store, pid, 0, stars=3)
        add_snapshot(store, pid, 24, stars=2)

        snaps = store.snapshots_for([pid])[pid]
        assert [s.stars for s in snaps] == [3, 2]
        assert store.latest_snapshots([pid])[pid].stars == 3
        assert store.last_collected_at() == NOW

    def test_posts_without_snapshots_absent(self, store: SignalStore) -> None:
        pid = add_post(store, "gh-1")
        assert store.snapshots_for([pid]) == {}


class TestTopicLinks:
    def test_duplicate_links_ignored(self, store: SignalStore) -> None:
        a = add_post(store, "a")
        b = add_post(store, "b")
        topic = store.create_topic("t", "", now=NOW)
        other = store.create_topic("u", "", now=NOW)

        assert store.link_posts(topic, [a, b]) == 2
        assert store.link_posts(topic, [a]) == 0
        # a post belongs to at most one topic
        assert store.link_posts(other, [b]) == 0
        assert store.topics_for_posts([a, b]) == {a: topic, b: topic}

    def test_topic_members_include_empty_topics(self, store: SignalStore) -> None:
        a = add_post(store, "a")
        topic = store.create_topic("t", "", now=NOW)
        empty = store.create_topic("e", "", now=NOW)
        store.link_posts(topic, [a])

        members = store.topic_members()
        assert [p.id for p in members[topic]] == [a]
        assert members[empty] == []


class TestFindSimilarPosts:
    def test_threshold_exclusion_and_order(self, store: SignalStore) -> None:
        q = add_post(store, "q")
        near = add_post(store, "near", title="near")
        mid = add_post(store, "mid", title="mid")
        far = add_post(store, "far", title="far")
        add_post(store, "plain")  # never embedded
        store.set_embedding(q, [1.0, 0.0])
        store.set_embedding(near, [1.0, 0.1])
        store.set_embedding(mid, [1.0, 1.0])
        store.set_embedding(far, [0.0, 1.0])

        neighbors = store.find_similar_posts([1.0, 0.0], threshold=0.3, exclude_id=q, limit=10)

        assert [n.id for n in neighbors] == [near, mid]
        assert neighbors[0].title == "near"
        assert neighbors[1].similarity == pytest.approx(2 ** -0.5)

    def test_limit(self, store: SignalStore) -> None:
        ids = [add_post(store, f"p{i}") for i in range(4)]
        for pid in ids:
            store.set_embedding(pid, [1.0, 0.0])
        assert len(store.find_similar_posts([1.0, 0.0], 0.3, exclude_id=ids[0], limit=2)) == 2

    def test_zero_query(self, store: SignalStore) -> None:
        pid = add_post(store, "p")
        store.set_embedding(pid, [1.0, 0.0])
        assert store.find_similar_posts([0.0, 0.0], 0.3, exclude_id=0, limit=5) == []
