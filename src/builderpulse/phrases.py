"""Trending and emerging title phrases from n-gram counts.

Runs on post titles only, independent of the embedding pipeline.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from builderpulse.store import SignalStore

logger = logging.getLogger(__name__)

STOPWORDS: frozenset[str] = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "is", "it", "its", "was", "are", "be",
        "has", "have", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "can", "this", "that", "these", "those",
        "i", "you", "he", "she", "we", "they", "my", "your", "his", "her",
        "our", "their", "what", "which", "who", "whom", "how", "when", "where",
        "why", "not", "no", "if", "then", "else", "so", "as", "up", "out",
        "about", "into", "over", "after", "before", "between", "under", "above",
        "all", "each", "every", "both", "few", "more", "most", "other", "some",
        "such", "than", "too", "very", "just", "also", "now", "new", "like",
        "show", "hn", "ask", "tell", "via", "using", "use", "get", "got",
        "one", "two", "first", "way", "make", "made", "much", "many", "own",
        "here", "there", "only", "still", "even", "back", "any", "well",
        "already", "need", "want", "going", "been", "being", "vs", "yet",
    }
)

_NON_TOKEN_RE = re.compile(r"[^a-z0-9\s+#.-]")

# Titles read per window.
_MAX_TITLES = 500

TRENDING_MIN_COUNT = 3
EMERGING_MIN_COUNT = 2
# Growth credited per occurrence to phrases absent from the previous window.
NEW_PHRASE_BONUS = 2


def tokenize(text: str) -> list[str]:
    """Lower-case, keep ``[a-z0-9+#.-]``, drop 1-char tokens and stopwords."""
    cleaned = _NON_TOKEN_RE.sub(" ", text.lower())
    return [w for w in cleaned.split() if len(w) > 1 and w not in STOPWORDS]


def ngrams(tokens: list[str], n: int) -> list[str]:
    return [" ".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]


def count_phrases(titles: Iterable[str]) -> Counter[str]:
    """Count 2- and 3-word phrases, each at most once per title."""
    counts: Counter[str] = Counter()
    for title in titles:
        tokens = tokenize(title)
        phrases = dict.fromkeys(ngrams(tokens, 2) + ngrams(tokens, 3))
        counts.update(phrases.keys())
    return counts


def capitalize(phrase: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in phrase.split(" "))


def trending_phrases(titles: Iterable[str], limit: int = 10) -> list[str]:
    """Phrases found in at least three titles, most frequent first."""
    counts = count_phrases(titles)
    ranked = sorted(
        ((phrase, n) for phrase, n in counts.items() if n >= TRENDING_MIN_COUNT),
        key=lambda item: item[1],
        reverse=True,
    )
    return [capitalize(phrase) for phrase, _ in ranked[:limit]]


def phrase_growth(recent: int, previous: int) -> float:
    if previous > 0:
        return (recent - previous) / previous
    return float(recent * NEW_PHRASE_BONUS)


def emerging_phrases(
    recent_titles: Iterable[str],
    previous_titles: Iterable[str],
    limit: int = 8,
) -> list[str]:
    """Phrases growing fastest from the previous window to the recent one."""
    recent = count_phrases(recent_titles)
    previous = count_phrases(previous_titles)

    growing: list[tuple[str, float]] = []
    for phrase, n in recent.items():
        if n < EMERGING_MIN_COUNT:
            continue
        growth = phrase_growth(n, previous.get(phrase, 0))
        if growth > 0:
            growing.append((phrase, growth))

    growing.sort(key=lambda item: item[1], reverse=True)
    return [capitalize(phrase) for phrase, _ in growing[:limit]]


def extract_trending_topics(
    store: SignalStore,
    hours_back: int = 48,
    limit: int = 10,
    now: datetime | None = None,
) -> list[str]:
    now = now or datetime.now(UTC)
    posts = store.recent_posts(since=now - timedelta(hours=hours_back), limit=_MAX_TITLES)
    topics = trending_phrases((p.title for p in posts), limit)
    logger.info("Trending phrases from %d titles: %d", len(posts), len(topics))
    return topics


def extract_emerging_topics(
    store: SignalStore,
    limit: int = 8,
    now: datetime | None = None,
) -> list[str]:
    """Compare the last 24h of titles against the 24h before that."""
    now = now or datetime.now(UTC)
    recent_since = now - timedelta(hours=24)
    recent = store.recent_posts(since=recent_since, limit=_MAX_TITLES)
    if not recent:
        return []
    previous = store.recent_posts(
        since=now - timedelta(hours=48), until=recent_since, limit=_MAX_TITLES
    )
    topics = emerging_phrases((p.title for p in recent), (p.title for p in previous), limit)
    logger.info(
        "Emerging phrases from %d recent / %d previous titles: %d",
        len(recent),
        len(previous),
        len(topics),
    )
    return topics
