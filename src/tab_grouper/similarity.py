"""
Vector similarity helpers shared by categorization, placement and clustering.
"""

from typing import Sequence

import numpy as np


def cosine_similarity(
    embedding1: Sequence[float], embedding2: Sequence[float]
) -> float:
    """
    Calculate cosine similarity between two embeddings.

    Args:
        embedding1: First embedding vector
        embedding2: Second embedding vector (same length as the first)

    Returns:
        Cosine similarity score in [-1, 1]. Zero vectors score 0.0.
    """
    vec1 = np.asarray(embedding1, dtype=float)
    vec2 = np.asarray(embedding2, dtype=float)

    if vec1.shape != vec2.shape:
        raise ValueError(
            f"Embedding dimensions differ: {vec1.shape} vs {vec2.shape}"
        )

    # Handle zero vectors
    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    similarity = float(np.dot(vec1, vec2) / (norm1 * norm2))
    # Rounding can push identical vectors a hair past 1
    return max(-1.0, min(1.0, similarity))


def cosine_distance_matrix(embeddings: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Pairwise cosine distances (1 - similarity) for a batch of embeddings.

    Rows with zero norm get similarity 0.0 against everything (distance 1.0),
    matching cosine_similarity().

    Args:
        embeddings: n vectors of equal length

    Returns:
        (n, n) array of distances
    """
    matrix = np.asarray(embeddings, dtype=float)
    if matrix.ndim != 2:
        raise ValueError("Expected a 2-D batch of embeddings")

    norms = np.linalg.norm(matrix, axis=1)
    safe_norms = np.where(norms == 0, 1.0, norms)
    unit = matrix / safe_norms[:, None]

    similarities = np.clip(unit @ unit.T, -1.0, 1.0)
    zero_rows = norms == 0
    similarities[zero_rows, :] = 0.0
    similarities[:, zero_rows] = 0.0

    return 1.0 - similarities
