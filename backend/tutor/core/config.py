from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # OpenAI (embeddings + generation)
    openai_api_key: str = ""
    embedding_model: str = "text-embedding-3-small"
    # Cheap, fast model for query rephrasing
    expansion_model: str = "gpt-4o-mini"
    # Ordered fallback chain: primary first, then cheaper/smaller models
    generation_models: list[str] = ["gpt-4o", "gpt-4o-mini", "gpt-4.1-nano"]

    # ChromaDB remote index (disabled unless the persist dir exists or a host is set)
    chroma_persist_dir: str = "chroma_data"
    chroma_host: str = ""
    chroma_port: int = 8000
    chroma_collection: str = "curriculum"

    # In-memory corpus: JSON file of chunks, built-in demo corpus when empty
    corpus_path: str = ""

    # Retrieval
    per_query_top_k: int = 3
    final_top_k: int = 5
    context_max_chars: int = 2000

    # Generation
    backoff_base_seconds: float = 0.3
    extractive_fallback: bool = False

    # Request-scoped deadlines
    expansion_timeout_seconds: float = 5.0
    retrieval_timeout_seconds: float = 5.0
    generation_timeout_seconds: float = 20.0

    # Per-tier bounds inside the retrieval deadline; a hit counts as that tier failing
    embedding_timeout_seconds: float = 2.0
    embedding_max_retries: int = 1
    index_timeout_seconds: float = 2.0
    # After the corpus fails to embed, skip re-embedding it for this long
    embedding_retry_seconds: float = 30.0

    # Ingestion
    ingest_chunk_size: int = 1000
    ingest_chunk_overlap: int = 100

    # Logging
    log_level: str = "INFO"

    # URLs
    frontend_url: str = "http://localhost:5173"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
