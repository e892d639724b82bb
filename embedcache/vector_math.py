"""Vector normalization and cosine similarity over float32 arrays."""

from __future__ import annotations

import numpy as np

from embedcache.errors import DimensionMismatch


def as_vector(values) -> np.ndarray:
    """Coerce a sequence or array to a 1-D float32 vector."""
    vec = np.asarray(values, dtype=np.float32)
    if vec.ndim != 1:
        raise DimensionMismatch(f"Expected a 1-D vector, got shape {vec.shape}")
    return vec


def normalize(vec) -> np.ndarray:
    """Scale a vector to unit length. Zero vectors are returned unchanged."""
    vec = as_vector(vec)
    norm = np.linalg.norm(vec)
    if norm == 0:
        return vec.copy()
    return (vec / norm).astype(np.float32)


def cosine_similarity(a, b) -> float:
    """Compute cosine similarity between two vectors."""
    a = as_vector(a)
    b = as_vector(b)
    if a.shape != b.shape:
        raise DimensionMismatch(
            f"Cannot compare vectors of length {a.shape[0]} and {b.shape[0]}"
        )
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))
