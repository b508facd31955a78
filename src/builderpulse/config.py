"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DB_PATH: Path = Path(
    os.getenv("BUILDERPULSE_DB", str(PROJECT_ROOT / "var" / "builderpulse.sqlite3"))
)
SECTIONS_PATH: Path = Path(
    os.getenv("BUILDERPULSE_SECTIONS", str(Path(__file__).parent / "data" / "sections.yml"))
)

# ── OpenAI ─────────────────────────────────────────────────────────────────
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT: float = float(os.getenv("OPENAI_TIMEOUT", "30"))

# ── Scoring ────────────────────────────────────────────────────────────────
SCORING_WINDOW_HOURS: int = int(os.getenv("SCORING_WINDOW_HOURS", "48"))

# ── Clustering ─────────────────────────────────────────────────────────────
CLUSTER_BATCH_SIZE: int = int(os.getenv("CLUSTER_BATCH_SIZE", "100"))
EMBEDDING_BATCH_SIZE: int = int(os.getenv("EMBEDDING_BATCH_SIZE", "20"))
EMBEDDING_MAX_CHARS: int = int(os.getenv("EMBEDDING_MAX_CHARS", "8000"))
SIMILARITY_THRESHOLD: float = float(os.getenv("SIMILARITY_THRESHOLD", "0.3"))
NEIGHBOR_LIMIT: int = int(os.getenv("NEIGHBOR_LIMIT", "10"))
