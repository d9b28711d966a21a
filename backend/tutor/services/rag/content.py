"""
Curriculum Content Source

Read-only access to curated curriculum chunks. Content is authored and
managed elsewhere; the RAG core only ever reads it through find_chunks() and
get_chunk().

A small built-in demo corpus is used when no corpus file is configured.
A corpus file is a JSON list of objects with "id", "text" and "metadata".
"""

import json
import logging
from abc import ABC, abstractmethod
from collections import Counter
from pathlib import Path

from pydantic import ValidationError

from tutor.core.exceptions import ChunkNotFound, CorpusError
from tutor.services.rag.types import Chunk, MetadataFilter, MAX_GRADE, MIN_GRADE

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = {"beginner", "intermediate", "advanced"}


# ── Demo corpus ──────────────────────────────────────────────────────────────

DEMO_CORPUS: list[dict] = [
    # Class 6
    {
        "id": "science-6-basic-concepts-1",
        "text": "In Class 6 Science, we learn about basic concepts like living and non-living things, plants, animals, and simple machines. Plants make their own food through photosynthesis using sunlight, water, and carbon dioxide.",
        "metadata": {"subject": "science", "grade": 6, "chapter": "Basic Concepts"},
    },
    {
        "id": "math-6-basic-operations-1",
        "text": "In Class 6 Math, we learn basic operations like addition, subtraction, multiplication, and division. We also study fractions, decimals, and basic geometry shapes like triangles, squares, and circles.",
        "metadata": {"subject": "mathematics", "grade": 6, "chapter": "Basic Operations"},
    },
    {
        "id": "science-6-matter-1",
        "text": "In Class 6 Science, matter is anything that has mass and takes up space. There are three states of matter: solid, liquid, and gas. Water can exist in all three states.",
        "metadata": {"subject": "science", "grade": 6, "chapter": "Matter"},
    },
    # Class 8
    {
        "id": "science-8-motion-1",
        "text": "In Class 8 Science, Motion is the change in position of an object with time. Speed is distance traveled per unit time. Velocity includes both speed and direction. Acceleration is the rate of change of velocity.",
        "metadata": {"subject": "science", "grade": 8, "chapter": "Motion"},
    },
    {
        "id": "math-8-fractions-1",
        "text": "In Class 8 Math, to add fractions, first make the denominators same, then add numerators. To multiply fractions, multiply numerators and denominators separately. Division of fractions is done by multiplying with the reciprocal.",
        "metadata": {"subject": "mathematics", "grade": 8, "chapter": "Fractions"},
    },
    {
        "id": "science-8-force-1",
        "text": "In Class 8 Science, Force is a push or pull that can change the state of motion of an object. Newton's first law states that an object at rest stays at rest unless acted upon by an external force.",
        "metadata": {"subject": "science", "grade": 8, "chapter": "Force"},
    },
    # Class 10
    {
        "id": "science-10-light-1",
        "text": "In Class 10 Science, Light is a form of energy that enables us to see objects. Light travels in straight lines. Reflection occurs when light bounces off a surface. The angle of incidence equals the angle of reflection.",
        "metadata": {"subject": "science", "grade": 10, "chapter": "Light"},
    },
    {
        "id": "math-10-algebra-1",
        "text": "In Class 10 Math, we study quadratic equations, polynomials, and coordinate geometry. A quadratic equation has the form ax² + bx + c = 0, where a ≠ 0. The discriminant b² - 4ac determines the nature of roots.",
        "metadata": {"subject": "mathematics", "grade": 10, "chapter": "Algebra"},
    },
    {
        "id": "science-10-electricity-1",
        "text": "In Class 10 Science, Electric current is the flow of electric charge. Ohm's law states that V = IR, where V is voltage, I is current, and R is resistance. Electric power is given by P = VI.",
        "metadata": {"subject": "science", "grade": 10, "chapter": "Electricity"},
    },
    # Class 12
    {
        "id": "physics-12-mechanics-1",
        "text": "In Class 12 Physics, we study advanced mechanics including rotational motion, gravitation, and oscillations. Angular momentum is conserved in the absence of external torque. Simple harmonic motion follows the equation x = A sin(ωt + φ).",
        "metadata": {"subject": "physics", "grade": 12, "chapter": "Mechanics"},
    },
    {
        "id": "math-12-calculus-1",
        "text": "In Class 12 Math, we study calculus including limits, derivatives, and integrals. The derivative of x^n is nx^(n-1). The integral of x^n is (x^(n+1))/(n+1) + C, where C is the constant of integration.",
        "metadata": {"subject": "mathematics", "grade": 12, "chapter": "Calculus"},
    },
    {
        "id": "chemistry-12-organic-1",
        "text": "In Class 12 Chemistry, we study organic chemistry including hydrocarbons, functional groups, and reactions. Alkanes have single bonds, alkenes have double bonds, and alkynes have triple bonds. IUPAC naming follows specific rules.",
        "metadata": {"subject": "chemistry", "grade": 12, "chapter": "Organic Chemistry"},
    },
]


# ── Validation ───────────────────────────────────────────────────────────────

def validate_metadata(metadata: dict) -> list[str]:
    """Return a list of problems with a chunk's metadata (empty when valid)."""
    errors = []

    subject = metadata.get("subject")
    if not isinstance(subject, str) or not subject.strip():
        errors.append("subject is required")

    grade = metadata.get("grade")
    if isinstance(grade, bool) or not isinstance(grade, int) or not MIN_GRADE <= grade <= MAX_GRADE:
        errors.append(f"grade must be an integer between {MIN_GRADE} and {MAX_GRADE}")

    difficulty = metadata.get("difficulty")
    if difficulty is not None and difficulty not in DIFFICULTY_LEVELS:
        errors.append("difficulty must be beginner, intermediate, or advanced")

    return errors


def parse_chunks(records: list[dict]) -> list[Chunk]:
    """
    Turn raw records into validated chunks.

    Raises:
        CorpusError: a record is malformed, has invalid metadata, or reuses an id.
    """
    chunks: list[Chunk] = []
    seen: set[str] = set()

    for index, record in enumerate(records):
        try:
            chunk = Chunk(**record)
        except (TypeError, ValidationError) as e:
            raise CorpusError(f"record {index} is not a valid chunk: {e}") from e

        errors = validate_metadata(chunk.metadata)
        if errors:
            raise CorpusError(f"chunk {chunk.id!r}: {'; '.join(errors)}")
        if chunk.id in seen:
            raise CorpusError(f"duplicate chunk id {chunk.id!r}")

        seen.add(chunk.id)
        chunks.append(chunk)

    return chunks


def load_corpus(path: str | None = None) -> list[Chunk]:
    """Load chunks from a JSON corpus file, or the demo corpus when no path is given."""
    if not path:
        return parse_chunks(DEMO_CORPUS)

    corpus_file = Path(path)
    try:
        records = json.loads(corpus_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CorpusError(f"cannot read corpus file {corpus_file}: {e}") from e

    if not isinstance(records, list):
        raise CorpusError(f"corpus file {corpus_file} must contain a JSON list")

    chunks = parse_chunks(records)
    logger.info("[Content] Loaded %d chunks from %s", len(chunks), corpus_file)
    return chunks


# ── Content source boundary ──────────────────────────────────────────────────

class ContentSource(ABC):
    """Read-only view over curriculum chunks."""

    @abstractmethod
    def find_chunks(self, filter: MetadataFilter | None = None) -> list[Chunk]:
        ...

    @abstractmethod
    def get_chunk(self, chunk_id: str) -> Chunk:
        """Raises ChunkNotFound when the id is unknown."""
        ...

    def statistics(self) -> dict:
        """Chunk counts by grade, subject and chapter."""
        chunks = self.find_chunks()
        by_grade: Counter = Counter()
        by_subject: Counter = Counter()
        by_chapter: Counter = Counter()
        for chunk in chunks:
            meta = chunk.metadata
            if meta.get("grade") is not None:
                by_grade[str(meta["grade"])] += 1
            if meta.get("subject"):
                by_subject[meta["subject"]] += 1
            if meta.get("chapter"):
                by_chapter[meta["chapter"]] += 1
        return {
            "total": len(chunks),
            "by_grade": dict(by_grade),
            "by_subject": dict(by_subject),
            "by_chapter": dict(by_chapter),
        }


class InMemoryContentSource(ContentSource):
    def __init__(self, chunks: list[Chunk]):
        self._chunks = list(chunks)
        self._by_id = {chunk.id: chunk for chunk in self._chunks}

    def __len__(self) -> int:
        return len(self._chunks)

    def find_chunks(self, filter: MetadataFilter | None = None) -> list[Chunk]:
        if filter is None or filter.is_empty:
            return list(self._chunks)
        return [chunk for chunk in self._chunks if filter.matches(chunk.metadata)]

    def get_chunk(self, chunk_id: str) -> Chunk:
        try:
            return self._by_id[chunk_id]
        except KeyError:
            raise ChunkNotFound(f"chunk {chunk_id!r} not found") from None
