"""Tests for dashboard section loading and filling."""

from datetime import timedelta
from pathlib import Path

from conftest import NOW, add_post, add_snapshot

from builderpulse import config
from builderpulse.models import Layer, Platform, SectionDef
from builderpulse.sections import (
    CATEGORIES,
    build_sections,
    dashboard_payload,
    is_valid_category,
    load_sections,
)
from builderpulse.store import SignalStore


class TestLoadSections:
    def test_bundled_definitions(self) -> None:
        loaded = load_sections(config.SECTIONS_PATH)
        assert set(loaded) == set(CATEGORIES)
        for defs in loaded.values():
            assert len(defs) == 4

    def test_unknown_category_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "sections.yml"
        path.write_text(
            "categories:\n"
            "  builder:\n"
            "    - title: Hot\n"
            "      layer: trending\n"
            "      platforms: [github]\n"
            "      sort_field: github_momentum\n"
            "  marketing:\n"
            "    - title: Nope\n"
            "      layer: trending\n"
            "      platforms: [github]\n"
            "      sort_field: github_momentum\n"
        )
        loaded = load_sections(path)
        assert list(loaded) == ["builder"]
        assert loaded["builder"][0].limit == 8

    def test_is_valid_category(self) -> None:
        assert is_valid_category("founder")
        assert not is_valid_category("marketing")
        assert not is_valid_category(None)


class TestBuildSections:
    def test_orders_and_drops_empty(self, store: SignalStore) -> None:
        low = add_post(store, "gh-low", title="low")
        high = add_post(store, "gh-high", title="high")
        hn = add_post(store, "hn-1", platform=Platform.HACKERNEWS)
        store.update_post(low, layer=Layer.TRENDING, github_momentum=10.0)
        store.update_post(high, layer=Layer.TRENDING, github_momentum=90.0)
        store.update_post(hn, layer=Layer.TRENDING, hn_heat=50.0)
        add_snapshot(store, high, 0, stars=42)

        defs = [
            SectionDef(
                title="Trending Repos",
                layer=Layer.TRENDING,
                platforms=[Platform.GITHUB],
                sort_field="github_momentum",
            ),
            SectionDef(
                title="Hall of Fame",
                layer=Layer.HALL_OF_FAME,
                platforms=[Platform.GITHUB],
                sort_field="github_momentum",
            ),
        ]
        sections = build_sections(store, defs, hours_back=48, now=NOW)

        assert [s.title for s in sections] == ["Trending Repos"]
        items = sections[0].items
        assert [i.post.title for i in items] == ["high", "low"]
        assert items[0].latest is not None
        assert items[0].latest.stars == 42
        assert items[1].latest is None

    def test_limit(self, store: SignalStore) -> None:
        for i in range(5):
            pid = add_post(store, f"gh-{i}")
            store.update_post(pid, layer=Layer.PROMISING, velocity=float(i))
        defs = [
            SectionDef(
                title="Promising",
                layer=Layer.PROMISING,
                platforms=[Platform.GITHUB],
                sort_field="velocity",
                limit=2,
            )
        ]
        (section,) = build_sections(store, defs, now=NOW)
        assert [i.post.velocity for i in section.items] == [4.0, 3.0]


class TestDashboardPayload:
    def test_includes_last_collection_time(self, store: SignalStore) -> None:
        pid = add_post(store, "gh-1", title="acme/widget")
        store.update_post(pid, layer=Layer.TRENDING, github_momentum=75.0)
        store.set_embedding(pid, [0.1, 0.2])
        add_snapshot(store, pid, 3, stars=10)
        add_snapshot(store, pid, 1, stars=12)
        defs = [
            SectionDef(
                title="Trending Repos",
                layer=Layer.TRENDING,
                platforms=[Platform.GITHUB],
                sort_field="github_momentum",
            )
        ]

        payload = dashboard_payload(store, "builder", defs, now=NOW)

        assert payload["category"] == "builder"
        assert payload["last_updated"] == (NOW - timedelta(hours=1)).isoformat()
        (section,) = payload["sections"]
        assert section["layer"] == "trending"
        (item,) = section["items"]
        assert item["title"] == "acme/widget"
        assert "embedding" not in item
        assert item["latest"]["stars"] == 12

    def test_empty_store(self, store: SignalStore) -> None:
        payload = dashboard_payload(store, "founder", [], now=NOW)
        assert payload == {"category": "founder", "last_updated": None, "sections": []}
