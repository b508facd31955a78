"""OpenAI text-embedding client used by the clustering engine."""

from __future__ import annotations

import logging

from openai import OpenAI, OpenAIError

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when an embedding request fails or times out."""


class OpenAIEmbedder:
    """Batched embeddings with per-input truncation and a request timeout."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        timeout: float = 30.0,
        max_chars: int = 8000,
    ) -> None:
        self._model = model
        self._max_chars = max_chars
        self._client: OpenAI | None = None

        if not api_key:
            logger.warning("OPENAI_API_KEY not set — embeddings are disabled.")
            return
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=1)

    @property
    def available(self) -> bool:
        return self._client is not None

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in one request; vectors come back in input order."""
        if self._client is None:
            raise EmbeddingError("Embedding client is not configured")
        if not texts:
            return []

        inputs = [(t or " ")[: self._max_chars] for t in texts]
        try:
            resp = self._client.embeddings.create(model=self._model, input=inputs)
        except OpenAIError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        data = sorted(resp.data, key=lambda d: d.index)
        if len(data) != len(inputs):
            raise EmbeddingError(
                f"Expected {len(inputs)} embeddings, got {len(data)}"
            )
        return [list(d.embedding) for d in data]
