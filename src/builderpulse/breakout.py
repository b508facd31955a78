"""Early-breakout detection for small, fast-moving GitHub repositories."""

from __future__ import annotations

import logging

from builderpulse.models import GitHubScore
from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)

VELOCITY_THRESHOLD = 0.2
MAX_STARS_FOR_BREAKOUT = 5000
BREAKOUT_LABEL = "Early Breakout"


def is_breakout(score: GitHubScore) -> bool:
    """Daily stars above 20% of the total, for repos with 1..5000 stars."""
    if score.total_stars <= 0 or score.total_stars > MAX_STARS_FOR_BREAKOUT:
        return False
    return score.stars_24h / score.total_stars > VELOCITY_THRESHOLD


def detect_breakouts(store: SignalStore, scores: list[GitHubScore]) -> int:
    """Flag breakout posts and override their signal label; return the count."""
    detected = 0
    for score in scores:
        if not is_breakout(score):
            continue
        store.update_post(score.post_id, is_early_breakout=True, signal_label=BREAKOUT_LABEL)
        detected += 1
    logger.info("Breakouts: %d of %d GitHub posts", detected, len(scores))
    return detected
