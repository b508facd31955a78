"""Unit tests for layer classification."""

from datetime import timedelta

import pytest
from conftest import NOW, add_post, add_snapshot

from builderpulse.layers import classify_post, classify_recent_posts
from builderpulse.models import Layer, MetricSnapshot, Platform, Post
from builderpulse.store import SignalStore


def _post(
    platform: Platform,
    published_hours_ago: float | None = None,
    **momentum: float,
) -> Post:
    published = NOW - timedelta(hours=published_hours_ago) if published_hours_ago is not None else None
    return Post(
        id=1,
        platform=platform,
        title="t",
        external_id="x",
        published_at=published,
        **momentum,
    )


def _snap(**metrics: float) -> MetricSnapshot:
    return MetricSnapshot(post_id=1, collected_at=NOW, **metrics)


class TestGitHub:
    def test_hall_of_fame(self) -> None:
        result = classify_post(_post(Platform.GITHUB, github_momentum=10), _snap(stars=60_000), NOW)
        assert result.layer is Layer.HALL_OF_FAME

    def test_promising(self) -> None:
        result = classify_post(_post(Platform.GITHUB, github_momentum=200), _snap(stars=1000), NOW)
        assert result.layer is Layer.PROMISING
        assert result.velocity == pytest.approx(0.2)

    def test_trending(self) -> None:
        result = classify_post(_post(Platform.GITHUB, github_momentum=100), _snap(stars=20_000), NOW)
        assert result.layer is Layer.TRENDING

    def test_default_trending(self) -> None:
        result = classify_post(_post(Platform.GITHUB), None, NOW)
        assert result.layer is Layer.TRENDING
        assert result.velocity == 0


class TestHackerNews:
    def test_hall_of_fame(self) -> None:
        result = classify_post(_post(Platform.HACKERNEWS, 5), _snap(score=600), NOW)
        assert result.layer is Layer.HALL_OF_FAME

    def test_promising_young_discussion(self) -> None:
        result = classify_post(_post(Platform.HACKERNEWS, 4), _snap(score=40, comments=30), NOW)
        assert result.layer is Layer.PROMISING
        assert result.velocity == pytest.approx(10)

    def test_trending_by_comments(self) -> None:
        result = classify_post(_post(Platform.HACKERNEWS, 30), _snap(score=150, comments=120), NOW)
        assert result.layer is Layer.TRENDING

    def test_trending_by_score(self) -> None:
        result = classify_post(_post(Platform.HACKERNEWS, 30), _snap(score=250), NOW)
        assert result.layer is Layer.TRENDING

    def test_missing_date_uses_stale_age(self) -> None:
        result = classify_post(_post(Platform.HACKERNEWS), _snap(score=150, comments=30), NOW)
        assert result.layer is Layer.PROMISING
        assert result.velocity == pytest.approx(150 / 999)


class TestReddit:
    def test_hall_of_fame(self) -> None:
        result = classify_post(_post(Platform.REDDIT, 10), _snap(upvotes=6000), NOW)
        assert result.layer is Layer.HALL_OF_FAME

    def test_promising_fast_growth(self) -> None:
        result = classify_post(_post(Platform.REDDIT, 10), _snap(upvotes=400), NOW)
        assert result.layer is Layer.PROMISING
        assert result.velocity == pytest.approx(40)

    def test_trending(self) -> None:
        result = classify_post(_post(Platform.REDDIT, 100), _snap(upvotes=800), NOW)
        assert result.layer is Layer.TRENDING

    def test_trending_by_comments(self) -> None:
        result = classify_post(_post(Platform.REDDIT, 100), _snap(upvotes=300, comments=150), NOW)
        assert result.layer is Layer.TRENDING


class TestProductHunt:
    def test_hall_of_fame(self) -> None:
        result = classify_post(_post(Platform.PRODUCTHUNT, 50), _snap(upvotes=1200), NOW)
        assert result.layer is Layer.HALL_OF_FAME

    def test_promising_fresh_launch(self) -> None:
        result = classify_post(_post(Platform.PRODUCTHUNT, 5), _snap(upvotes=150), NOW)
        assert result.layer is Layer.PROMISING
        assert result.velocity == pytest.approx(30)

    def test_trending(self) -> None:
        result = classify_post(_post(Platform.PRODUCTHUNT, 5), _snap(upvotes=300), NOW)
        assert result.layer is Layer.TRENDING


class TestNpm:
    def test_hall_of_fame(self) -> None:
        result = classify_post(_post(Platform.NPM), _snap(downloads_weekly=2_000_000), NOW)
        assert result.layer is Layer.HALL_OF_FAME

    def test_promising_growth(self) -> None:
        result = classify_post(
            _post(Platform.NPM), _snap(downloads_weekly=5000, downloads_prev_week=2000), NOW
        )
        assert result.layer is Layer.PROMISING
        assert result.velocity == pytest.approx(1.5)

    def test_trending(self) -> None:
        result = classify_post(
            _post(Platform.NPM), _snap(downloads_weekly=200_000, download_growth=0.1), NOW
        )
        assert result.layer is Layer.TRENDING

    def test_default_promising(self) -> None:
        result = classify_post(_post(Platform.NPM), _snap(downloads_weekly=1000), NOW)
        assert result.layer is Layer.PROMISING


class TestClassifyPost:
    def test_unknown_platform(self) -> None:
        result = classify_post(_post(Platform.BLOG, 1), _snap(stars=10), NOW)
        assert result.layer is Layer.TRENDING
        assert result.velocity == 0

    def test_pure(self) -> None:
        post = _post(Platform.REDDIT, 3)
        snap = _snap(upvotes=100, comments=4)
        assert classify_post(post, snap, NOW) == classify_post(post, snap, NOW)


class TestClassifyRecentPosts:
    def test_writes_layer_and_velocity(self, store: SignalStore) -> None:
        recent = add_post(store, "gh-recent")
        old = add_post(store, "gh-old", created_hours_ago=72)
        store.update_post(recent, github_momentum=293.5)
        add_snapshot(store, recent, 0, stars=130)

        assert classify_recent_posts(store, hours_back=48, now=NOW) == 1

        post = store.get_post(recent)
        assert post is not None
        assert post.layer is Layer.PROMISING
        assert post.velocity == pytest.approx(293.5 / 130)
        old_post = store.get_post(old)
        assert old_post is not None
        assert old_post.layer is None

    def test_empty_window(self, store: SignalStore) -> None:
        assert classify_recent_posts(store, now=NOW) == 0
