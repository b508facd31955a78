"""Dashboard section definitions and the read query that fills them."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import yaml

from builderpulse.models import Section, SectionDef, SectionItem
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)

CATEGORIES: tuple[str, ...] = ("builder", "founder", "growth")
DEFAULT_CATEGORY = "builder"


def is_valid_category(value: str | None) -> bool:
    return value in CATEGORIES


def load_sections(sections_path: Path) -> dict[str, list[SectionDef]]:
    """Parse ``sections.yml`` into category → section definitions.

    Unknown categories are ignored with a warning.
    """
    with open(sections_path) as fh:
        cfg: dict[str, Any] = yaml.safe_load(fh) or {}

    categories: dict[str, Any] = cfg.get("categories", {}) or {}
    loaded: dict[str, list[SectionDef]] = {}
    for name, defs in categories.items():
        if not is_valid_category(name):
            logger.warning("Skipping unknown section category: %s", name)
            continue
        loaded[name] = [SectionDef.model_validate(d) for d in defs or []]
    return loaded


def build_sections(
    store: SignalStore,
    defs: list[SectionDef],
    hours_back: int = 48,
    now: datetime | None = None,
) -> list[Section]:
    """Fill each section with its top posts; empty sections are dropped."""
    now = now or datetime.now(UTC)
    since = now - timedelta(hours=hours_back)

    sections: list[Section] = []
    for d in defs:
        posts = store.section_posts(since, d.layer, d.platforms, d.sort_field, d.limit)
        if not posts:
            continue
        latest = store.latest_snapshots([p.id for p in posts])
        sections.append(
            Section(
                title=d.title,
                layer=d.layer,
                items=[SectionItem(post=p, latest=latest.get(p.id)) for p in posts],
            )
        )
    logger.info("Built %d of %d sections", len(sections), len(defs))
    return sections


def dashboard_payload(
    store: SignalStore,
    category: str,
    defs: list[SectionDef],
    hours_back: int = 48,
    now: datetime | None = None,
) -> dict[str, Any]:
    """JSON-ready dashboard: filled sections plus the last collection time."""
    sections = build_sections(store, defs, hours_back, now)
    last = store.last_collected_at()
    return {
        "category": category,
        "last_updated": last.isoformat() if last else None,
        "sections": [
            {
                "title": s.title,
                "layer": s.layer.value,
                "items": [
                    {
                        **item.post.model_dump(mode="json", exclude={"embedding"}),
                        "latest": item.latest.model_dump(mode="json") if item.latest else None,
                    }
                    for item in s.items
                ],
            }
            for s in sections
        ],
    }
