"""
Error taxonomy for the tutor core.

Only InvalidFilter is meant to reach an HTTP caller (as a 400). The others
are caught inside the retrieval and generation layers and converted into a
degraded result or a refusal answer.
"""


class TutorError(Exception):
    """Base class for all tutor errors."""


class EmbeddingUnavailable(TutorError):
    """The embedding backend could not produce a usable vector."""


class IndexUnavailable(TutorError):
    """The remote vector index is unreachable or returned malformed data."""


class GenerationUnavailable(TutorError):
    """Every model in the fallback chain failed."""

    def __init__(self, message: str, errors: list[Exception] | None = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidFilter(TutorError, ValueError):
    """A caller-supplied grade/subject filter is malformed."""


class ChunkNotFound(TutorError, KeyError):
    """No chunk with the requested id exists in the content source."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class CorpusError(TutorError, ValueError):
    """A corpus file could not be loaded or failed validation."""
