"""
Similarity scoring.

cosine_similarity is the normal ranking score. lexical_overlap is only a
degraded fallback for when no query vector can be produced; the two are
never combined in one ranking.
"""

import math
import string
from collections.abc import Sequence

# Query tokens must be longer than this to count towards lexical overlap
MIN_LEXICAL_TOKEN_LENGTH = 3


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Dot product over the product of norms, clamped to [-1, 1].

    Returns 0.0 for empty or mismatched vectors and when either vector is
    all zeros.
    """
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def tokenize(text: str) -> list[str]:
    """Whitespace split, case-folded, with surrounding punctuation stripped."""
    tokens = (t.strip(string.punctuation) for t in text.casefold().split())
    return [t for t in tokens if t]


def lexical_overlap(query_text: str, chunk_text: str) -> float:
    """Fraction of significant query tokens found inside some chunk token."""
    query_tokens = [t for t in tokenize(query_text) if len(t) > MIN_LEXICAL_TOKEN_LENGTH]
    if not query_tokens:
        return 0.0

    chunk_tokens = set(tokenize(chunk_text))
    if not chunk_tokens:
        return 0.0

    hits = sum(
        1 for q in query_tokens if any(q in token for token in chunk_tokens)
    )
    return hits / len(query_tokens)
