"""
Vector Store Adapters

Two backends behind one search() capability:

- RemoteIndexStore: embeds the query and asks a ChromaDB collection for the
  nearest chunks, with an optional equality filter on metadata.
- InMemoryStore: a small fixed corpus whose chunk embeddings are computed once
  per process and kept in a table owned by the store. If the query cannot be
  embedded it ranks the same filtered candidates by lexical overlap instead.

The remote store raises on failure; choosing the next tier is the retriever's
job. The in-memory store never raises.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from tutor.core.exceptions import ChunkNotFound, EmbeddingUnavailable, IndexUnavailable
from tutor.services.rag.content import ContentSource
from tutor.services.rag.embedder import Embedder
from tutor.services.rag.similarity import cosine_similarity, lexical_overlap
from tutor.services.rag.types import (
    Chunk,
    MetadataFilter,
    RetrievalResult,
    ScoredChunk,
    ScoringMethod,
)

logger = logging.getLogger(__name__)


class VectorStore(ABC):
    """Abstract base class for retrieval backends."""

    name: str = "base"

    @abstractmethod
    async def search(
        self,
        query: str,
        filter: MetadataFilter | None = None,
        top_k: int = 3,
    ) -> RetrievalResult:
        """
        Return up to top_k chunks ranked by descending score.

        Args:
            query: Natural-language query text
            filter: Optional metadata equality filter, applied before scoring
            top_k: Maximum number of chunks to return
        """
        ...


def rank(scored: list[ScoredChunk], top_k: int) -> RetrievalResult:
    """Stable sort by descending score, then truncate."""
    ordered = sorted(scored, key=lambda s: s.score, reverse=True)
    return RetrievalResult(chunks=ordered[: max(0, top_k)])


# ── In-memory corpus ─────────────────────────────────────────────────────────

class InMemoryStore(VectorStore):
    """Brute-force cosine search over a fixed chunk set."""

    name = "memory"

    def __init__(
        self,
        content: ContentSource,
        embedder: Embedder,
        retry_after_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.content = content
        self.embedder = embedder
        self.retry_after_seconds = retry_after_seconds
        self._clock = clock
        self._vectors: dict[str, list[float]] = {}
        self._populated = False
        self._retry_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def is_populated(self) -> bool:
        return self._populated

    async def ensure_embeddings(self) -> None:
        """
        Embed every corpus chunk once.

        Concurrent first callers wait on the same lock, so each chunk is sent to
        the embedding backend at most once. If the backend fails part way, the
        vectors computed so far are kept, and the rest are not retried until
        retry_after_seconds have passed. Once complete, the table is only read.

        Raises:
            EmbeddingUnavailable: the corpus is not fully embedded yet
        """
        if self._populated:
            return

        async with self._lock:
            if self._populated:
                return
            if self._retry_at is not None and self._clock() < self._retry_at:
                raise EmbeddingUnavailable("corpus embedding recently failed; retry window not over")

            missing = []
            for chunk in self.content.find_chunks():
                if chunk.id in self._vectors:
                    continue
                if chunk.embedding:
                    self._vectors[chunk.id] = list(chunk.embedding)
                else:
                    missing.append(chunk)

            vectors = await asyncio.gather(
                *(self.embedder.embed(chunk.text) for chunk in missing),
                return_exceptions=True,
            )
            failures = []
            for chunk, vector in zip(missing, vectors):
                if isinstance(vector, BaseException):
                    failures.append(vector)
                else:
                    self._vectors[chunk.id] = vector
            if failures:
                self._retry_at = self._clock() + self.retry_after_seconds
                logger.warning(
                    "[RAG] %d/%d corpus chunks failed to embed; retrying in %ss",
                    len(failures),
                    len(missing),
                    self.retry_after_seconds,
                )
                raise failures[0]

            self._populated = True
            self._retry_at = None
            logger.info("[RAG] In-memory corpus embedded: %d chunks", len(self._vectors))

    async def search(
        self,
        query: str,
        filter: MetadataFilter | None = None,
        top_k: int = 3,
    ) -> RetrievalResult:
        candidates = self.content.find_chunks(filter)
        if not candidates:
            return RetrievalResult()

        # The query goes first so a dead backend costs one call, not the corpus
        try:
            query_vector = await self.embedder.embed(query)
            await self.ensure_embeddings()
        except EmbeddingUnavailable as e:
            logger.warning("[RAG] Falling back to lexical search: %s", e)
            return self.lexical_search(query, candidates, top_k)

        scored = [
            ScoredChunk(
                chunk=chunk,
                score=cosine_similarity(query_vector, self._vectors[chunk.id]),
                method=ScoringMethod.COSINE,
            )
            for chunk in candidates
        ]
        return rank(scored, top_k)

    @staticmethod
    def lexical_search(query: str, candidates: list[Chunk], top_k: int) -> RetrievalResult:
        scored = []
        for chunk in candidates:
            score = lexical_overlap(query, chunk.text)
            # No overlap at all means no grounding
            if score > 0:
                scored.append(ScoredChunk(chunk=chunk, score=score, method=ScoringMethod.LEXICAL))
        return rank(scored, top_k)


# ── Remote index (ChromaDB) ──────────────────────────────────────────────────

class RemoteIndexStore(VectorStore):
    """
    Similarity search against a ChromaDB collection built with cosine space.

    Chroma reports cosine *distance*; the score is 1 - distance so that it
    lives in the same [-1, 1] range as the in-memory cosine scores.
    """

    name = "remote"

    def __init__(
        self,
        collection: Any,
        embedder: Embedder,
        content: ContentSource | None = None,
        timeout_seconds: float | None = 2.0,
    ):
        self.collection = collection
        self.embedder = embedder
        self.content = content
        self.timeout_seconds = timeout_seconds

    async def search(
        self,
        query: str,
        filter: MetadataFilter | None = None,
        top_k: int = 3,
    ) -> RetrievalResult:
        query_embedding = await self.embedder.embed(query)
        where = filter.to_where() if filter else None

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(
                    self.collection.query,
                    query_embeddings=[query_embedding],
                    n_results=top_k,
                    where=where,
                    include=["documents", "metadatas", "distances"],
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise IndexUnavailable(f"vector index did not answer within {self.timeout_seconds}s") from e
        except Exception as e:
            raise IndexUnavailable(f"vector index query failed: {e}") from e

        try:
            ids = result["ids"][0] if result.get("ids") else []
            docs = result["documents"][0] if result.get("documents") else []
            metas = result["metadatas"][0] if result.get("metadatas") else []
            distances = result["distances"][0] if result.get("distances") else []
        except (KeyError, IndexError, TypeError) as e:
            raise IndexUnavailable(f"malformed vector index response: {e}") from e

        if len(distances) != len(ids):
            raise IndexUnavailable("vector index returned ids without distances")

        scored = []
        for i, chunk_id in enumerate(ids):
            chunk = self._to_chunk(
                chunk_id,
                docs[i] if i < len(docs) else None,
                metas[i] if i < len(metas) else None,
            )
            if chunk is None:
                continue
            scored.append(
                ScoredChunk(
                    chunk=chunk,
                    score=max(-1.0, min(1.0, 1.0 - float(distances[i]))),
                    method=ScoringMethod.COSINE,
                )
            )

        return rank(scored, top_k)

    def _to_chunk(self, chunk_id: str, text: str | None, metadata: dict | None) -> Chunk | None:
        if text and text.strip():
            return Chunk(id=chunk_id, text=text.strip(), metadata=metadata or {})

        # Index entry without a stored document: resolve through the content source
        if self.content is not None:
            try:
                return self.content.get_chunk(chunk_id)
            except ChunkNotFound:
                pass
        logger.warning("[RAG] Index returned chunk %s without text; skipping", chunk_id)
        return None

    def count(self) -> int:
        return self.collection.count()
