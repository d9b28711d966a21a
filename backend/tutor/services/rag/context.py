from tutor.services.rag.types import RetrievalResult

CONTEXT_SEPARATOR = "\n\n"


def build_context(result: RetrievalResult, max_chars: int = 2000) -> str:
    """Join chunk texts in ranking order, then cut hard at max_chars."""
    joined = CONTEXT_SEPARATOR.join(sc.chunk.text for sc in result.chunks)
    return joined[: max(0, max_chars)]
