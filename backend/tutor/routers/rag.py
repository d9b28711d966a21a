"""
RAG Admin Router

Provides endpoints to check RAG status, look up chunks, and trigger
re-ingestion of the remote index.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from tutor.core.exceptions import ChunkNotFound
from tutor.services.rag.pipeline import TutorPipeline, get_pipeline, reset_pipeline
from tutor.services.rag.retriever import get_vector_store_status

router = APIRouter()


class RemoteIndexStatus(BaseModel):
    available: bool
    chunk_count: int
    collection: str
    message: str = ""


class MemoryCorpusStatus(BaseModel):
    chunk_count: int
    embedded: bool
    by_grade: dict[str, int] = {}
    by_subject: dict[str, int] = {}
    by_chapter: dict[str, int] = {}


class RAGStatusResponse(BaseModel):
    remote: RemoteIndexStatus
    memory: MemoryCorpusStatus


class ChunkResponse(BaseModel):
    id: str
    text: str
    metadata: dict


@router.get("/status", response_model=RAGStatusResponse)
async def rag_status(pipeline: TutorPipeline = Depends(get_pipeline)):
    """Check the status of the remote index and the in-memory corpus."""
    retriever = pipeline.retriever
    info = get_vector_store_status(retriever.remote_store, retriever.memory_store)
    return RAGStatusResponse(**info)


@router.get("/chunks/{chunk_id}", response_model=ChunkResponse)
async def get_chunk(chunk_id: str, pipeline: TutorPipeline = Depends(get_pipeline)):
    """Look up a curriculum chunk by id (for provenance display)."""
    try:
        chunk = pipeline.retriever.memory_store.content.get_chunk(chunk_id)
    except ChunkNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ChunkResponse(id=chunk.id, text=chunk.text, metadata=chunk.metadata)


@router.post("/ingest")
async def trigger_ingestion():
    """
    Trigger curriculum re-ingestion.

    This re-embeds the configured corpus and rebuilds the ChromaDB collection,
    then drops the cached pipeline so the next request uses the fresh index.
    """
    try:
        from tutor.services.rag.ingest import run_ingestion
        stored = await asyncio.to_thread(run_ingestion)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Ingestion failed: {str(e)}",
        )

    reset_pipeline()
    return {
        "status": "success",
        "message": f"Ingestion complete. {stored} chunks stored.",
        "chunk_count": stored,
    }
