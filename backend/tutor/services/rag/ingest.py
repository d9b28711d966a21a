"""
Curriculum Index Ingestion Script

Loads curated curriculum chunks (the JSON corpus file, or the built-in demo
corpus), embeds them using OpenAI, and stores them in ChromaDB so the remote
index tier of the retriever can serve them.

How it works:
1. LOAD   – Chunks are read and validated through the content source
           (subject required, grade 1-12, unique ids)
2. SPLIT  – Over-long chunk texts are broken up by RecursiveCharacterTextSplitter
           into versioned ids "<id>::<n>"; short chunks keep their id
3. EMBED  – OpenAI text-embedding-3-small converts each piece to a vector
4. STORE  – collection.upsert() saves vectors + text + metadata in batches,
           in a cosine-space collection so distance maps back to cosine score

Usage:
    cd backend
    python -m tutor.services.rag.ingest [corpus.json]
"""

import logging
import os
import shutil
import sys

import chromadb
from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings
from langchain_text_splitters import RecursiveCharacterTextSplitter

from tutor.core.config import get_settings
from tutor.core.logging import configure_logging
from tutor.services.rag.content import load_corpus
from tutor.services.rag.types import Chunk

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100
PART_SEPARATOR = "::"


# ── Chunking ─────────────────────────────────────────────────────────────────

def split_chunks(chunks: list[Chunk], chunk_size: int = 1000, chunk_overlap: int = 100) -> list[Chunk]:
    """
    Split chunks whose text exceeds chunk_size.

    Curated chunks are usually paragraph-sized already; only long ones are
    split, at paragraph, then sentence, then word boundaries.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=["\n\n", "\n", ". ", " ", ""],
        length_function=len,
    )

    pieces: list[Chunk] = []
    for chunk in chunks:
        if len(chunk.text) <= chunk_size:
            pieces.append(chunk)
            continue

        parts = splitter.split_text(chunk.text)
        for n, part in enumerate(parts):
            pieces.append(
                Chunk(
                    id=f"{chunk.id}{PART_SEPARATOR}{n}",
                    text=part,
                    metadata={**chunk.metadata, "parent_id": chunk.id},
                )
            )
    return pieces


def to_index_metadata(metadata: dict) -> dict:
    """
    Chroma metadata values must be scalars: join lists, drop the rest.

    Subjects are stored lowercased and digit-string grades as integers, so
    the where clause from MetadataFilter.to_where() matches the same chunks
    as the in-memory filter.
    """
    flat = {}
    for key, value in metadata.items():
        if key == "subject" and isinstance(value, str):
            flat[key] = value.strip().lower()
        elif key == "grade" and isinstance(value, str) and value.strip().isdigit():
            flat[key] = int(value.strip())
        elif isinstance(value, (str, int, float, bool)):
            flat[key] = value
        elif isinstance(value, (list, tuple)):
            flat[key] = ",".join(str(v) for v in value)
    return flat


# ── Embedding & Storage ──────────────────────────────────────────────────────

def upsert_chunks(collection, chunks: list[Chunk], embeddings: Embeddings) -> int:
    """Embed chunks that carry no vector yet and upsert them in batches."""
    to_embed = [c for c in chunks if not c.embedding]
    computed = iter(embeddings.embed_documents([c.text for c in to_embed])) if to_embed else iter(())

    vectors = [list(c.embedding) if c.embedding else next(computed) for c in chunks]

    for start in range(0, len(chunks), UPSERT_BATCH_SIZE):
        batch = chunks[start:start + UPSERT_BATCH_SIZE]
        collection.upsert(
            ids=[c.id for c in batch],
            embeddings=vectors[start:start + UPSERT_BATCH_SIZE],
            documents=[c.text for c in batch],
            metadatas=[to_index_metadata(c.metadata) for c in batch],
        )
        logger.info(
            "[Ingest] Upserted batch %d/%d",
            start // UPSERT_BATCH_SIZE + 1,
            (len(chunks) + UPSERT_BATCH_SIZE - 1) // UPSERT_BATCH_SIZE,
        )
    return len(chunks)


def create_collection(persist_dir: str, collection_name: str, rebuild: bool = True):
    """Open (and by default wipe) the local ChromaDB collection."""
    # Remove old data if it exists (full re-ingest)
    if rebuild and os.path.exists(persist_dir):
        logger.info("[Ingest] Removing old ChromaDB data at %s", persist_dir)
        shutil.rmtree(persist_dir)

    client = chromadb.PersistentClient(path=persist_dir)
    return client.get_or_create_collection(
        collection_name,
        metadata={"hnsw:space": "cosine"},
    )


# ── Main ─────────────────────────────────────────────────────────────────────

def run_ingestion(
    corpus_path: str | None = None,
    persist_dir: str | None = None,
    collection=None,
    embeddings: Embeddings | None = None,
) -> int:
    """
    Run the full ingestion pipeline.

    Returns:
        Number of chunks stored in the index
    """
    settings = get_settings()
    corpus_path = corpus_path or settings.corpus_path or None
    persist_dir = persist_dir or settings.chroma_persist_dir

    if embeddings is None:
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is not set. Cannot create embeddings.")
        embeddings = OpenAIEmbeddings(
            model=settings.embedding_model,
            openai_api_key=settings.openai_api_key,
        )

    logger.info("[Ingest] Loading corpus from %s", corpus_path or "built-in demo corpus")
    chunks = load_corpus(corpus_path)

    pieces = split_chunks(chunks, settings.ingest_chunk_size, settings.ingest_chunk_overlap)
    logger.info("[Ingest] %d chunks -> %d index entries", len(chunks), len(pieces))

    if collection is None:
        if settings.chroma_host:
            client = chromadb.HttpClient(host=settings.chroma_host, port=settings.chroma_port)
            collection = client.get_or_create_collection(
                settings.chroma_collection,
                metadata={"hnsw:space": "cosine"},
            )
        else:
            collection = create_collection(persist_dir, settings.chroma_collection)

    stored = upsert_chunks(collection, pieces, embeddings)
    logger.info("[Ingest] Ingestion complete! %d chunks stored in ChromaDB.", stored)
    return stored


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    try:
        run_ingestion(sys.argv[1] if len(sys.argv) > 1 else None)
    except Exception as e:
        logger.error("[Ingest] ERROR: %s", e)
        sys.exit(1)
