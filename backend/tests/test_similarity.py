"""
Unit tests for cosine and lexical scoring.
"""

import pytest

from tutor.services.rag.similarity import cosine_similarity, lexical_overlap, tokenize


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "a, b",
        [
            ([], []),
            ([1.0, 2.0], [1.0]),
            ([0.0, 0.0], [1.0, 1.0]),
        ],
    )
    def test_degenerate_inputs_score_zero(self, a, b):
        assert cosine_similarity(a, b) == 0.0

    def test_result_is_clamped(self):
        score = cosine_similarity([1e-3, 1e-3, 1e-3], [1e-3, 1e-3, 1e-3])
        assert -1.0 <= score <= 1.0


class TestLexicalOverlap:
    def test_tokenize_strips_punctuation_and_case(self):
        assert tokenize("What is Photosynthesis?") == ["what", "is", "photosynthesis"]

    def test_full_overlap(self):
        assert lexical_overlap("photosynthesis plants", "Plants use photosynthesis.") == 1.0

    def test_short_tokens_are_ignored(self):
        # "what" is the only token longer than three characters
        assert lexical_overlap("what is it", "what a day") == 1.0
        assert lexical_overlap("is it a", "is it a") == 0.0

    def test_partial_overlap(self):
        assert lexical_overlap("force motion gravity", "force causes motion") == pytest.approx(2 / 3)

    def test_substring_match_counts(self):
        # "motion" is found inside "locomotion"
        assert lexical_overlap("motion", "animal locomotion") == 1.0

    def test_empty_chunk(self):
        assert lexical_overlap("photosynthesis", "") == 0.0
