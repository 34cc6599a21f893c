"""
Tests for vector similarity helpers.
"""

import math

import pytest

from kbgraph.core.embeddings.vector_math import (
    cosine_similarity,
    cosine_similarity_matrix,
    normalize_vector,
)
from kbgraph.utils.exceptions import ValidationError


@pytest.mark.unit
class TestCosineSimilarity:
    """Test pairwise cosine similarity."""

    def test_identical_vectors(self):
        """Test identical vectors score 1."""
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        """Test orthogonal vectors score 0."""
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        """Test opposite vectors score -1."""
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_vector(self):
        """Test a zero-magnitude vector scores 0."""
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_dimension_mismatch(self):
        """Test vectors of different lengths are rejected."""
        with pytest.raises(ValidationError, match="dimensions must match"):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_scale_invariance(self):
        """Test scaling a vector does not change the score."""
        a = [0.3, 0.4, 0.5]
        assert cosine_similarity(a, [x * 10 for x in a]) == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "a, b",
        [
            ([0.3, -0.4, 0.5], [0.9, 0.1, -0.2]),
            ([1.0, 2.0, 3.0, 4.0], [-4.0, 3.0, -2.0, 1.0]),
            ([0.0, 0.0], [1.0, 1.0]),
        ],
    )
    def test_symmetry(self, a, b):
        """Test the score does not depend on argument order."""
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


@pytest.mark.unit
class TestVectorHelpers:
    """Test normalization and batched similarity."""

    def test_normalize_vector(self):
        """Test normalization yields unit length."""
        normalized = normalize_vector([3.0, 4.0])
        assert normalized == pytest.approx([0.6, 0.8])
        assert math.isclose(sum(x * x for x in normalized), 1.0)

    def test_normalize_zero_vector(self):
        """Test a zero vector is returned unchanged."""
        assert normalize_vector([0.0, 0.0]) == [0.0, 0.0]

    def test_similarity_matrix(self):
        """Test one query against several vectors."""
        scores = cosine_similarity_matrix([1.0, 0.0], [[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]])
        assert scores == pytest.approx([1.0, 0.0, 0.0])

    def test_similarity_matrix_empty(self):
        """Test no vectors gives no scores."""
        assert cosine_similarity_matrix([1.0], []) == []

    def test_similarity_matrix_dimension_mismatch(self):
        """Test rows must match the query dimension."""
        with pytest.raises(ValidationError):
            cosine_similarity_matrix([1.0, 0.0], [[1.0, 0.0, 0.0]])
