"""
RAG Retriever Service

Finds curriculum chunks for every expanded query and merges them into one
ranking.

Per query, backends are tried in order:
1. Remote ChromaDB index (if configured). Any error, a timeout, or zero
   matches moves on.
2. In-memory corpus with cosine similarity, which itself degrades to lexical
   overlap when the query cannot be embedded.

Across queries, results are merged by chunk id keeping the highest score
(never a sum or average), sorted, and truncated to the final top-K. Per-query
searches run concurrently; the merge is order-independent so concurrency only
changes latency.

Uses the chromadb client directly (not langchain_chroma) so results come back
as plain dicts.
"""

import asyncio
import logging
import os

import chromadb

from tutor.core.config import get_settings
from tutor.services.rag.stores import InMemoryStore, RemoteIndexStore, VectorStore
from tutor.services.rag.types import (
    ExpandedQuerySet,
    MetadataFilter,
    RetrievalResult,
    ScoredChunk,
    ScoringMethod,
)

logger = logging.getLogger(__name__)


class Retriever:
    """Runs the backend chain per query and aggregates across queries."""

    def __init__(
        self,
        memory_store: InMemoryStore,
        remote_store: VectorStore | None = None,
        per_query_top_k: int = 3,
        final_top_k: int = 5,
        remote_timeout_seconds: float | None = None,
    ):
        self.memory_store = memory_store
        self.remote_store = remote_store
        self.per_query_top_k = per_query_top_k
        self.final_top_k = final_top_k
        self.remote_timeout_seconds = remote_timeout_seconds

    async def search(
        self,
        query: str,
        filter: MetadataFilter | None = None,
        top_k: int | None = None,
    ) -> RetrievalResult:
        """Search one query string through remote → memory (→ lexical)."""
        top_k = top_k or self.per_query_top_k

        if self.remote_store is not None:
            try:
                result = await asyncio.wait_for(
                    self.remote_store.search(query, filter, top_k),
                    timeout=self.remote_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning("[RAG] Remote index timed out, using in-memory corpus")
            except Exception as e:
                logger.warning("[RAG] Remote index failed, using in-memory corpus: %s", e)
            else:
                if not result.is_empty:
                    return result
                logger.info("[RAG] Remote index had no matches for: %s", query)

        return await self.memory_store.search(query, filter, top_k)

    async def retrieve(
        self,
        queries: ExpandedQuerySet | list[str],
        filter: MetadataFilter | None = None,
    ) -> RetrievalResult:
        """Search every query concurrently and merge into the final top-K."""
        query_list = list(queries)
        per_query = await asyncio.gather(
            *(self.search(q, filter, self.per_query_top_k) for q in query_list)
        )

        result = aggregate(per_query, self.final_top_k)
        logger.info(
            "[RAG] Retrieved %d chunks for %d queries (method=%s)",
            len(result),
            len(query_list),
            result.method.value if result.method else "none",
        )
        return result

    def lexical_retrieve(
        self,
        queries: ExpandedQuerySet | list[str],
        filter: MetadataFilter | None = None,
    ) -> RetrievalResult:
        """
        Lexical-only retrieval over the in-memory corpus.

        Makes no network calls, so it is still usable once the retrieval
        deadline has passed.
        """
        candidates = self.memory_store.content.find_chunks(filter)
        per_query = [
            InMemoryStore.lexical_search(q, candidates, self.per_query_top_k) for q in queries
        ]
        return aggregate(per_query, self.final_top_k)


def aggregate(results: list[RetrievalResult], top_k: int) -> RetrievalResult:
    """
    Merge per-query results.

    Duplicate ids keep the strictly greater score; on ties the first-seen
    entry wins. Cosine and lexical scores are never ranked together: when any
    query produced cosine results, lexical results are dropped.
    """
    collected: list[ScoredChunk] = [sc for r in results for sc in r.chunks]
    if any(sc.method == ScoringMethod.COSINE for sc in collected):
        collected = [sc for sc in collected if sc.method == ScoringMethod.COSINE]

    best: dict[str, ScoredChunk] = {}
    for scored in collected:
        current = best.get(scored.id)
        if current is None or scored.score > current.score:
            best[scored.id] = scored

    ordered = sorted(best.values(), key=lambda s: s.score, reverse=True)
    return RetrievalResult(chunks=ordered[: max(0, top_k)])


# ── Remote index connection ──────────────────────────────────────────────────

def open_collection(settings=None):
    """
    Connect to the configured ChromaDB collection.

    Returns None when no index is configured: no chroma_host and no local
    persist directory (run ingestion first).
    """
    settings = settings or get_settings()

    if settings.chroma_host:
        client = chromadb.HttpClient(host=settings.chroma_host, port=settings.chroma_port)
    elif os.path.exists(settings.chroma_persist_dir):
        client = chromadb.PersistentClient(path=settings.chroma_persist_dir)
    else:
        logger.info("[RAG] ChromaDB not configured, using in-memory corpus only")
        return None

    return client.get_or_create_collection(
        settings.chroma_collection,
        metadata={"hnsw:space": "cosine"},
    )


def build_remote_store(embedder, content=None, settings=None) -> RemoteIndexStore | None:
    """Create the remote store, or None when the index is missing or unreachable."""
    try:
        collection = open_collection(settings)
        if collection is None:
            return None
        logger.info("[RAG] ChromaDB loaded: %d chunks available", collection.count())
    except Exception as e:
        logger.warning("[RAG] Failed to load ChromaDB: %s", e)
        return None

    return RemoteIndexStore(
        collection,
        embedder,
        content,
        timeout_seconds=(settings or get_settings()).index_timeout_seconds,
    )


def get_vector_store_status(remote_store: RemoteIndexStore | None, memory_store: InMemoryStore) -> dict:
    """Return status info about both retrieval backends for the /rag/status endpoint."""
    settings = get_settings()
    content_stats = memory_store.content.statistics()

    remote = {
        "available": False,
        "chunk_count": 0,
        "collection": settings.chroma_collection,
        "message": "ChromaDB not initialized. Run ingestion first.",
    }
    if remote_store is not None:
        try:
            remote.update(available=True, chunk_count=remote_store.count(), message="")
        except Exception as e:
            remote["message"] = f"Failed to query ChromaDB: {e}"

    return {
        "remote": remote,
        "memory": {
            "chunk_count": content_stats["total"],
            "embedded": memory_store.is_populated,
            "by_grade": content_stats["by_grade"],
            "by_subject": content_stats["by_subject"],
            "by_chapter": content_stats["by_chapter"],
        },
    }
