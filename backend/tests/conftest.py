"""
Shared test fixtures.

Provides: a deterministic keyword embeddings backend, a scripted LLM provider,
small curriculum corpora and a fully wired pipeline that never touches the
network.
"""

import asyncio
import zlib
from unittest.mock import AsyncMock

import pytest
from langchain_core.embeddings import Embeddings

from tutor.services.llm.base import EmptyCompletionError, LLMProvider
from tutor.services.llm.orchestrator import LLMOrchestrator
from tutor.services.rag.content import InMemoryContentSource, load_corpus
from tutor.services.rag.embedder import Embedder
from tutor.services.rag.expander import QueryExpander
from tutor.services.rag.generator import AnswerGenerator
from tutor.services.rag.pipeline import TutorPipeline
from tutor.services.rag.retriever import Retriever
from tutor.services.rag.similarity import tokenize
from tutor.services.rag.stores import InMemoryStore
from tutor.services.rag.types import Chunk

DIMENSIONS = 64


class KeywordEmbeddings(Embeddings):
    """
    Bag-of-words vectors: each token adds 1 to a crc32-chosen dimension.

    fail makes every call raise, fail_texts only those texts, and hang makes
    the async query call never return.
    """

    def __init__(self, fail: bool = False, fail_texts: tuple[str, ...] = (), hang: bool = False):
        self.fail = fail
        self.fail_texts = set(fail_texts)
        self.hang = hang
        self.calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail or text in self.fail_texts:
            raise RuntimeError("embedding service unreachable")
        vector = [0.0] * DIMENSIONS
        for token in tokenize(text):
            vector[zlib.crc32(token.encode()) % DIMENSIONS] += 1.0
        return vector

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._vector(text)

    async def aembed_query(self, text: str) -> list[float]:
        if self.hang:
            self.calls.append(text)
            await asyncio.sleep(30)
        return self._vector(text)

    def count(self, text: str) -> int:
        return self.calls.count(text)


class ScriptedProvider(LLMProvider):
    """
    Replays scripted replies per model.

    A reply is either text or an exception instance to raise. Models without a
    script raise EmptyCompletionError.
    """

    provider_name = "scripted"

    def __init__(self, script: dict[str, list] | None = None):
        self.script = {model: list(replies) for model, replies in (script or {}).items()}
        self.calls: list[tuple[str, str]] = []

    async def complete(
        self,
        prompt: str,
        model: str,
        system_prompt: str | None = None,
        max_output_tokens: int = 800,
        temperature: float = 0.3,
    ) -> str:
        self.calls.append((model, prompt))
        replies = self.script.get(model)
        if not replies:
            raise EmptyCompletionError(f"no scripted reply for {model}")
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def calls_for(self, model: str) -> int:
        return sum(1 for called, _ in self.calls if called == model)


def make_orchestrator(provider: LLMProvider, sleep=None) -> LLMOrchestrator:
    return LLMOrchestrator(
        provider_lookup=lambda model_id: (provider, model_id),
        backoff_base_seconds=0.3,
        sleep=sleep or AsyncMock(),
    )


# ── Corpora ───────────────────────────────────────────────────────────────────

@pytest.fixture
def m1_chunks() -> list[Chunk]:
    """Three grade-8 science chunks with one clear match for motion questions."""
    return [
        Chunk(
            id="m1",
            text="Newton's first law: an object in motion stays in motion unless a force acts on it.",
            metadata={"subject": "science", "grade": 8, "chapter": "Force"},
        ),
        Chunk(
            id="m2",
            text="Photosynthesis lets plants make food from sunlight, water and carbon dioxide.",
            metadata={"subject": "science", "grade": 8, "chapter": "Plants"},
        ),
        Chunk(
            id="m3",
            text="Fractions are added by making the denominators equal first.",
            metadata={"subject": "mathematics", "grade": 8, "chapter": "Fractions"},
        ),
    ]


@pytest.fixture
def demo_content() -> InMemoryContentSource:
    return InMemoryContentSource(load_corpus())


@pytest.fixture
def embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture
def embedder(embeddings) -> Embedder:
    return Embedder(embeddings=embeddings, model="keyword-test")


# ── Pipeline ──────────────────────────────────────────────────────────────────

@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider(
        {
            "gpt-4o-mini": [
                "What keeps an object in motion?\nNewton's first law of motion explained"
            ],
            "gpt-4o": ["An object keeps moving because of inertia, as Newton's first law says."],
        }
    )


@pytest.fixture
def make_pipeline(embedder):
    """Factory building a pipeline over the given chunks and provider."""

    def _make(chunks, provider, generation_models=None, remote_store=None, **kwargs):
        orchestrator = make_orchestrator(provider)
        store = InMemoryStore(InMemoryContentSource(chunks), kwargs.pop("embedder", embedder))
        return TutorPipeline(
            expander=QueryExpander(orchestrator, model_id="gpt-4o-mini", timeout_seconds=1.0),
            retriever=Retriever(
                store,
                remote_store=remote_store,
                per_query_top_k=3,
                final_top_k=5,
                remote_timeout_seconds=kwargs.pop("remote_timeout_seconds", None),
            ),
            generator=AnswerGenerator(
                orchestrator,
                model_ids=generation_models or ["gpt-4o", "gpt-4.1-nano"],
                timeout_seconds=1.0,
                extractive_fallback=kwargs.pop("extractive_fallback", False),
            ),
            context_max_chars=kwargs.pop("context_max_chars", 2000),
            retrieval_timeout_seconds=1.0,
        )

    return _make
