"""LLM-powered topic titler: names a cluster of related posts."""

from __future__ import annotations

import logging

from openai import OpenAI, OpenAIError

logger = logging.getLogger(__name__)

# ── System prompt used for every titling call ──────────────────────────────
_SYSTEM_PROMPT = (
    "You generate concise topic titles (3-6 words) that describe what a group "
    "of developer content is about. Return only the title, no punctuation."
)

_MAX_TITLES = 5
_FALLBACK_CHARS = 60


class TopicTitler:
    """Summarises a list of post titles into a short topic phrase.

    Never raises: without a client, or when the request fails, it falls back
    to the first title truncated.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 30.0) -> None:
        self._model = model
        self._client: OpenAI | None = None

        if not api_key:
            logger.warning("OPENAI_API_KEY not set — topic titles will use fallbacks.")
            return
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=1)

    # ── public ──────────────────────────────────────────────────────────

    def title_for(self, titles: list[str]) -> str:
        """Return a 3–6 word title for the posts behind *titles*."""
        if not titles:
            return ""
        if self._client is None:
            return self.fallback(titles)

        user_msg = (
            "These posts are all about the same topic:\n"
            + "\n".join(titles[:_MAX_TITLES])
            + "\n\nGenerate a short, clear topic title:"
        )
        try:
            resp = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": user_msg},
                ],
                temperature=0.3,
                max_tokens=20,
            )
        except OpenAIError as exc:
            logger.warning("Topic titling failed, using fallback: %s", exc)
            return self.fallback(titles)

        if not resp.choices:
            return self.fallback(titles)
        raw = (resp.choices[0].message.content or "").strip().strip("\"'")
        return raw or self.fallback(titles)

    @staticmethod
    def fallback(titles: list[str]) -> str:
        """Deterministic title: the seed post's title, truncated."""
        return titles[0][:_FALLBACK_CHARS] if titles else ""
