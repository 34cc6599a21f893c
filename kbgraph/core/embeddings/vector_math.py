"""
Vector helpers for similarity scoring.
"""

from collections.abc import Sequence

import numpy as np

from kbgraph.utils.exceptions import ValidationError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Raises:
        ValidationError: If the vectors have different dimensions

    Returns 0.0 when either vector has zero magnitude.
    """
    if len(a) != len(b):
        raise ValidationError(
            f"Vector dimensions must match: {len(a)} != {len(b)}",
            context={"left": len(a), "right": len(b)},
        )

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    # Guard against float drift just outside the range
    return max(-1.0, min(1.0, similarity))


def normalize_vector(vector: Sequence[float]) -> list[float]:
    """Scale to unit length. A zero vector is returned unchanged."""
    v = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(v)
    if norm == 0:
        return [float(x) for x in v]
    return (v / norm).tolist()


def cosine_similarity_matrix(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> list[float]:
    """
    Cosine similarity of one query against many vectors.

    Rows with zero magnitude score 0.0. All rows must share the query's
    dimension.
    """
    if not vectors:
        return []

    matrix = np.asarray(vectors, dtype=np.float64)
    q = np.asarray(query, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        raise ValidationError(
            "Vector dimensions must match the query",
            context={"query": int(q.shape[0]), "matrix": list(matrix.shape)},
        )

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)
    return np.clip(scores, -1.0, 1.0).tolist()
