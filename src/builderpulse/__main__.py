"""CLI entry-point: ``python -m builderpulse score|cluster|phrases|sections``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from builderpulse import config
from builderpulse.embeddings import OpenAIEmbedder
from builderpulse.llm import TopicTitler
from builderpulse.phrases import extract_emerging_topics, extract_trending_topics
from builderpulse.pipeline import run_clustering_pass, run_scoring_pass
from builderpulse.sections import CATEGORIES, DEFAULT_CATEGORY, dashboard_payload, load_sections
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _cluster(store: SignalStore) -> None:
    embedder = OpenAIEmbedder(
        api_key=config.OPENAI_API_KEY,
        model=config.EMBEDDING_MODEL,
        timeout=config.OPENAI_TIMEOUT,
        max_chars=config.EMBEDDING_MAX_CHARS,
    )
    titler = TopicTitler(
        api_key=config.OPENAI_API_KEY,
        model=config.LLM_MODEL,
        timeout=config.OPENAI_TIMEOUT,
    )
    result = run_clustering_pass(
        store,
        embedder,
        titler,
        batch_size=config.CLUSTER_BATCH_SIZE,
        embed_batch_size=config.EMBEDDING_BATCH_SIZE,
        threshold=config.SIMILARITY_THRESHOLD,
        neighbor_limit=config.NEIGHBOR_LIMIT,
    )
    print(result.model_dump_json(indent=2))


def _phrases(store: SignalStore) -> None:
    payload = {
        "trending_topics": extract_trending_topics(store, config.SCORING_WINDOW_HOURS, 10),
        "emerging_topics": extract_emerging_topics(store, 8),
    }
    print(json.dumps(payload, indent=2))


def _sections(store: SignalStore, category: str) -> None:
    defs = load_sections(config.SECTIONS_PATH).get(category, [])
    if not defs:
        logger.error("No sections configured for category '%s'", category)
        sys.exit(1)
    payload = dashboard_payload(store, category, defs, config.SCORING_WINDOW_HOURS)
    print(json.dumps(payload, indent=2))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="builderpulse",
        description="Momentum scoring and topic clustering for developer signals.",
    )
    parser.add_argument(
        "--db",
        default=str(config.DB_PATH),
        help="SQLite database path (default: BUILDERPULSE_DB).",
    )
    sub = parser.add_subparsers(dest="command")

    # ── score ──────────────────────────────────────────────────────────
    score_parser = sub.add_parser("score", help="Momentum, breakouts and layers.")
    score_parser.add_argument(
        "--hours",
        type=int,
        default=config.SCORING_WINDOW_HOURS,
        help="Trailing window in hours (default: %(default)s).",
    )

    # ── cluster ────────────────────────────────────────────────────────
    sub.add_parser("cluster", help="Embed new posts, cluster topics, rescore topics.")

    # ── phrases ────────────────────────────────────────────────────────
    sub.add_parser("phrases", help="Print trending and emerging title phrases.")

    # ── sections ───────────────────────────────────────────────────────
    sections_parser = sub.add_parser("sections", help="Print dashboard sections.")
    sections_parser.add_argument(
        "--category",
        choices=list(CATEGORIES),
        default=DEFAULT_CATEGORY,
        help="Audience category (default: %(default)s).",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    _setup_logging()
    store = SignalStore(db_path=Path(args.db))

    if args.command == "score":
        result = run_scoring_pass(store, hours_back=args.hours)
        print(result.model_dump_json(indent=2))
    elif args.command == "cluster":
        _cluster(store)
    elif args.command == "phrases":
        _phrases(store)
    elif args.command == "sections":
        _sections(store, args.category)


if __name__ == "__main__":
    main()
