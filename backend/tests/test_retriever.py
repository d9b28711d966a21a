"""
Unit tests for the retriever: backend fallback chain and cross-query merge.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tutor.core.exceptions import IndexUnavailable
from tutor.services.rag.content import InMemoryContentSource
from tutor.services.rag.retriever import Retriever, aggregate, build_remote_store, get_vector_store_status
from tutor.services.rag.stores import InMemoryStore
from tutor.services.rag.types import (
    Chunk,
    ExpandedQuerySet,
    RetrievalResult,
    ScoredChunk,
    ScoringMethod,
    build_filter,
)


def scored(chunk_id: str, score: float, method=ScoringMethod.COSINE, text=None) -> ScoredChunk:
    return ScoredChunk(
        chunk=Chunk(id=chunk_id, text=text or f"text {chunk_id}"),
        score=score,
        method=method,
    )


def result(*chunks: ScoredChunk) -> RetrievalResult:
    return RetrievalResult(chunks=list(chunks))


class TestAggregate:
    def test_duplicates_keep_max_score(self):
        merged = aggregate(
            [result(scored("a", 0.5), scored("b", 0.4)), result(scored("a", 0.8))],
            top_k=5,
        )
        assert merged.ids == ["a", "b"]
        assert merged.chunks[0].score == 0.8

    def test_max_not_sum(self):
        merged = aggregate([result(scored("a", 0.3)), result(scored("a", 0.3)), result(scored("b", 0.5))], top_k=5)
        assert merged.ids == ["b", "a"]
        assert merged.chunks[1].score == 0.3

    def test_ties_keep_first_seen(self):
        merged = aggregate(
            [result(scored("a", 0.7, text="first")), result(scored("a", 0.7, text="second"))],
            top_k=5,
        )
        assert merged.chunks[0].chunk.text == "first"

    def test_equal_scores_keep_order(self):
        merged = aggregate([result(scored("x", 0.5), scored("y", 0.5)), result(scored("z", 0.5))], top_k=5)
        assert merged.ids == ["x", "y", "z"]

    def test_truncates_to_top_k(self):
        merged = aggregate([result(*(scored(str(i), i / 10) for i in range(8)))], top_k=5)
        assert merged.ids == ["7", "6", "5", "4", "3"]

    def test_order_independent(self):
        one = result(scored("a", 0.9), scored("b", 0.2))
        two = result(scored("b", 0.6), scored("c", 0.4))
        assert aggregate([one, two], 5).ids == aggregate([two, one], 5).ids

    def test_cosine_wins_over_lexical(self):
        merged = aggregate(
            [result(scored("a", 0.3)), result(scored("b", 1.0, ScoringMethod.LEXICAL))],
            top_k=5,
        )
        assert merged.ids == ["a"]
        assert merged.method == ScoringMethod.COSINE

    def test_all_lexical(self):
        merged = aggregate(
            [result(scored("a", 0.5, ScoringMethod.LEXICAL)), result(scored("b", 1.0, ScoringMethod.LEXICAL))],
            top_k=5,
        )
        assert merged.ids == ["b", "a"]
        assert merged.method == ScoringMethod.LEXICAL

    def test_empty(self):
        assert aggregate([RetrievalResult(), RetrievalResult()], top_k=5).is_empty


class TestRetrieverChain:
    def make_memory(self, chunks, embedder):
        return InMemoryStore(InMemoryContentSource(chunks), embedder)

    @pytest.mark.asyncio
    async def test_remote_result_used_when_available(self, m1_chunks, embedder):
        remote = MagicMock()
        remote.search = AsyncMock(return_value=result(scored("remote-1", 0.9)))
        retriever = Retriever(self.make_memory(m1_chunks, embedder), remote_store=remote)

        merged = await retriever.retrieve(ExpandedQuerySet(queries=["motion"]))

        assert merged.ids == ["remote-1"]

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back_to_memory(self, m1_chunks, embedder):
        remote = MagicMock()
        remote.search = AsyncMock(side_effect=IndexUnavailable("down"))
        retriever = Retriever(self.make_memory(m1_chunks, embedder), remote_store=remote)

        merged = await retriever.retrieve(["object in motion"])

        assert merged.ids[0] == "m1"
        assert merged.method == ScoringMethod.COSINE

    @pytest.mark.asyncio
    async def test_hanging_remote_falls_back_to_memory(self, m1_chunks, embedder):
        async def hang(*args, **kwargs):
            await asyncio.sleep(30)

        remote = MagicMock()
        remote.search = AsyncMock(side_effect=hang)
        retriever = Retriever(
            self.make_memory(m1_chunks, embedder),
            remote_store=remote,
            remote_timeout_seconds=0.05,
        )

        merged = await retriever.retrieve(["object in motion"])

        assert merged.ids[0] == "m1"
        assert merged.method == ScoringMethod.COSINE

    @pytest.mark.asyncio
    async def test_remote_empty_falls_back_to_memory(self, m1_chunks, embedder):
        remote = MagicMock()
        remote.search = AsyncMock(return_value=RetrievalResult())
        retriever = Retriever(self.make_memory(m1_chunks, embedder), remote_store=remote)

        merged = await retriever.retrieve(["photosynthesis"])

        assert merged.ids[0] == "m2"

    @pytest.mark.asyncio
    async def test_each_query_searched(self, m1_chunks, embedder):
        memory = self.make_memory(m1_chunks, embedder)
        memory.search = AsyncMock(return_value=RetrievalResult())
        retriever = Retriever(memory, per_query_top_k=2)

        await retriever.retrieve(ExpandedQuerySet(queries=["a", "b", "c"]))

        searched = [call.args[0] for call in memory.search.call_args_list]
        assert sorted(searched) == ["a", "b", "c"]
        assert all(call.args[2] == 2 for call in memory.search.call_args_list)

    @pytest.mark.asyncio
    async def test_merges_across_queries(self, m1_chunks, embedder):
        retriever = Retriever(self.make_memory(m1_chunks, embedder), final_top_k=5)

        merged = await retriever.retrieve(["object in motion", "photosynthesis plants", "adding fractions"])

        assert set(merged.ids) == {"m1", "m2", "m3"}
        assert len(merged.ids) == len(set(merged.ids))

    def test_lexical_retrieve_needs_no_embeddings(self, m1_chunks):
        embedder = MagicMock()
        retriever = Retriever(self.make_memory(m1_chunks, embedder), final_top_k=5)

        merged = retriever.lexical_retrieve(
            ["photosynthesis sunlight", "object in motion"],
            build_filter(grade=8, subject="science"),
        )

        assert merged.method == ScoringMethod.LEXICAL
        assert merged.ids == ["m2", "m1"]
        embedder.embed.assert_not_called()


class TestRemoteStoreSetup:
    def test_no_index_configured(self, embedder, tmp_path):
        settings = MagicMock(chroma_host="", chroma_persist_dir=str(tmp_path / "missing"))
        assert build_remote_store(embedder, settings=settings) is None

    def test_status_without_remote(self, m1_chunks, embedder):
        memory = InMemoryStore(InMemoryContentSource(m1_chunks), embedder)
        status = get_vector_store_status(None, memory)
        assert status["remote"]["available"] is False
        assert status["memory"]["chunk_count"] == 3
        assert status["memory"]["embedded"] is False
        assert status["memory"]["by_subject"] == {"science": 2, "mathematics": 1}

    def test_status_with_remote(self, m1_chunks, embedder):
        remote = MagicMock()
        remote.count.return_value = 42
        status = get_vector_store_status(remote, InMemoryStore(InMemoryContentSource(m1_chunks), embedder))
        assert status["remote"]["available"] is True
        assert status["remote"]["chunk_count"] == 42
