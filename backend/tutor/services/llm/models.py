"""
Typed outcomes of a single model attempt.

The orchestrator walks the fallback chain and decides what to do next from
the outcome type alone:

- Success:   non-empty text, stop.
- Retryable: transient failure (rate limit, 5xx, timeout, empty output);
             back off, then try the next model.
- Fatal:     failure that waiting cannot fix (auth, bad request, unknown
             model); try the next model immediately.
"""

from dataclasses import dataclass

import openai

from tutor.services.llm.registry import UnknownModelError


@dataclass(frozen=True)
class Success:
    model_id: str
    text: str


@dataclass(frozen=True)
class Retryable:
    model_id: str
    error: Exception


@dataclass(frozen=True)
class Fatal:
    model_id: str
    error: Exception


Outcome = Success | Retryable | Fatal

_FATAL_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.NotFoundError,
    UnknownModelError,
)


def classify_error(model_id: str, error: Exception) -> Retryable | Fatal:
    """Map a provider exception onto Retryable or Fatal."""
    if isinstance(error, _FATAL_ERRORS):
        return Fatal(model_id=model_id, error=error)
    # Rate limits, 5xx, connection errors, timeouts, empty output and anything unexpected
    return Retryable(model_id=model_id, error=error)
