"""
Vector helpers shared by the vector index and its callers.
"""
from typing import List, Sequence

import numpy as np

from utils.errors import DimensionMismatchError


def as_embedding(vector: Sequence[float], dimension: int) -> List[float]:
    """Check a vector against a collection dimension and return it as floats.

    Raises:
        DimensionMismatchError: if the vector length differs from ``dimension``
        ValueError: if the vector is not one-dimensional or holds non-finite values
    """
    arr = np.asarray(vector, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"Embedding must be one-dimensional, got shape {arr.shape}")
    if arr.shape[0] != dimension:
        raise DimensionMismatchError(expected=dimension, actual=arr.shape[0])
    if not np.all(np.isfinite(arr)):
        raise ValueError("Embedding contains non-finite values")
    return arr.tolist()


def cosine_similarity(embedding1: Sequence[float], embedding2: Sequence[float]) -> float:
    """Cosine similarity of two vectors, 0.0 when either is all zeros."""
    vec1 = np.asarray(embedding1, dtype=np.float64)
    vec2 = np.asarray(embedding2, dtype=np.float64)

    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)
    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.dot(vec1, vec2) / (norm1 * norm2))
