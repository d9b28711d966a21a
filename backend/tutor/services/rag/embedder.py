"""
Embedder

Turns text into a fixed-length vector through a LangChain Embeddings backend
(OpenAI text-embedding-3-small unless another backend is injected).

The backend is created lazily so that a missing API key or an unreachable
endpoint surfaces as EmbeddingUnavailable at call time, which the vector
stores convert into a lexical fallback, instead of failing at startup.
"""

import asyncio
import logging
import math

from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from tutor.core.config import get_settings
from tutor.core.exceptions import EmbeddingUnavailable

logger = logging.getLogger(__name__)


class Embedder:
    """Async facade over a LangChain embeddings backend."""

    def __init__(
        self,
        embeddings: Embeddings | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
    ):
        settings = get_settings()
        self._embeddings = embeddings
        self.model = model or settings.embedding_model
        self.timeout_seconds = (
            settings.embedding_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

    def _get_backend(self) -> Embeddings:
        if self._embeddings is None:
            settings = get_settings()
            self._embeddings = OpenAIEmbeddings(
                model=self.model,
                openai_api_key=settings.openai_api_key,
                timeout=self.timeout_seconds,
                max_retries=settings.embedding_max_retries,
            )
        return self._embeddings

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Raises:
            EmbeddingUnavailable: the backend failed, did not answer within
                timeout_seconds, or returned a vector that is empty or
                contains non-finite values.
        """
        try:
            vector = await asyncio.wait_for(
                self._get_backend().aembed_query(text),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning("[RAG] Embedding timed out after %ss (%s)", self.timeout_seconds, self.model)
            raise EmbeddingUnavailable("embedding backend timed out") from e
        except Exception as e:
            logger.warning("[RAG] Embedding failed (%s): %s", self.model, e)
            raise EmbeddingUnavailable(f"embedding backend failed: {e}") from e

        return _validate_vector(vector)

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed texts one call per item, in order."""
        return [await self.embed(text) for text in texts]


def _validate_vector(vector) -> list[float]:
    if not isinstance(vector, (list, tuple)) or not vector:
        raise EmbeddingUnavailable("embedding backend returned an empty vector")
    try:
        values = [float(v) for v in vector]
    except (TypeError, ValueError) as e:
        raise EmbeddingUnavailable("embedding backend returned non-numeric data") from e
    if not all(math.isfinite(v) for v in values):
        raise EmbeddingUnavailable("embedding backend returned non-finite values")
    return values
