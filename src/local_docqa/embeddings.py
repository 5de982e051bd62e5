from __future__ import annotations

from typing import Sequence

import numpy as np


def as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """Coerce an embedding into a flat ``float64`` NumPy vector."""
    return np.asarray(values, dtype=np.float64).reshape(-1)


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Compute cosine similarity between two embedding vectors.

    Args:
        a: First vector.
        b: Second vector, same length as ``a``.

    Returns:
        Similarity in ``[-1, 1]``. When either vector is all zeros the
        denominator is taken as 1, giving a score of 0.

    Raises:
        ValueError: If the vectors differ in length.
    """
    left = as_vector(a)
    right = as_vector(b)
    if left.shape != right.shape:
        raise ValueError(f"Embedding length mismatch: {left.shape[0]} != {right.shape[0]}")

    denominator = float(np.linalg.norm(left) * np.linalg.norm(right)) or 1.0
    return float(np.clip(np.dot(left, right) / denominator, -1.0, 1.0))
