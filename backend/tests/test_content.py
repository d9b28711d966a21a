"""
Unit tests for corpus loading, validation and the content source.
"""

import json

import pytest

from tutor.core.exceptions import ChunkNotFound, CorpusError
from tutor.services.rag.content import InMemoryContentSource, load_corpus, validate_metadata
from tutor.services.rag.types import build_filter


class TestLoadCorpus:
    def test_demo_corpus(self):
        chunks = load_corpus()
        assert len(chunks) == 12
        assert {c.metadata["grade"] for c in chunks} == {6, 8, 10, 12}

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(
            json.dumps([{"id": "c1", "text": "Cells are units of life.", "metadata": {"subject": "biology", "grade": 9}}]),
            encoding="utf-8",
        )

        chunks = load_corpus(str(path))

        assert [c.id for c in chunks] == ["c1"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(CorpusError):
            load_corpus(str(tmp_path / "missing.json"))

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps({"id": "c1"}), encoding="utf-8")
        with pytest.raises(CorpusError):
            load_corpus(str(path))

    def test_duplicate_ids(self, tmp_path):
        record = {"id": "c1", "text": "Text", "metadata": {"subject": "biology", "grade": 9}}
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps([record, record]), encoding="utf-8")
        with pytest.raises(CorpusError, match="duplicate"):
            load_corpus(str(path))

    def test_empty_text_rejected(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(
            json.dumps([{"id": "c1", "text": "", "metadata": {"subject": "biology", "grade": 9}}]),
            encoding="utf-8",
        )
        with pytest.raises(CorpusError):
            load_corpus(str(path))


class TestValidateMetadata:
    def test_valid(self):
        assert validate_metadata({"subject": "science", "grade": 8, "difficulty": "beginner"}) == []

    def test_problems_reported(self):
        errors = validate_metadata({"grade": 14, "difficulty": "expert"})
        assert len(errors) == 3


class TestInMemoryContentSource:
    def test_find_with_filter(self):
        source = InMemoryContentSource(load_corpus())
        chunks = source.find_chunks(build_filter(grade=10, subject="science"))
        assert {c.id for c in chunks} == {"science-10-light-1", "science-10-electricity-1"}

    def test_get_chunk(self):
        source = InMemoryContentSource(load_corpus())
        assert source.get_chunk("math-8-fractions-1").metadata["chapter"] == "Fractions"

    def test_unknown_chunk(self):
        source = InMemoryContentSource(load_corpus())
        with pytest.raises(ChunkNotFound):
            source.get_chunk("nope")

    def test_statistics(self):
        stats = InMemoryContentSource(load_corpus()).statistics()
        assert stats["total"] == 12
        assert stats["by_grade"] == {"6": 3, "8": 3, "10": 3, "12": 3}
        assert stats["by_subject"]["science"] == 6
