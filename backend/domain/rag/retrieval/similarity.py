"""
Similarity functions (cosine)
"""

import numpy as np
from typing import List


def cosine_similarity(vec1: List[float], vec2: List[float]) -> float:
    """Compute cosine similarity between two vectors"""
    vec1_np = np.array(vec1)
    vec2_np = np.array(vec2)

    dot_product = np.dot(vec1_np, vec2_np)
    norm1 = np.linalg.norm(vec1_np)
    norm2 = np.linalg.norm(vec2_np)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(dot_product / (norm1 * norm2))


def batch_cosine_similarity(
    query_vector: List[float],
    candidate_vectors: List[List[float]]
) -> List[float]:
    """
    Cosine similarity of one query vector against many candidates (vectorized).

    Args:
        query_vector: Query embedding vector, shape [d]
        candidate_vectors: Candidate embedding vectors, shape [N, d]

    Returns:
        List of N similarity scores
    """
    if not candidate_vectors:
        return []

    query_arr = np.array(query_vector, dtype=float)  # Shape: [d]
    cand_arr = np.array(candidate_vectors, dtype=float)  # Shape: [N, d]

    query_norm = np.linalg.norm(query_arr)
    cand_norm = np.linalg.norm(cand_arr, axis=1)

    # Avoid division by zero
    denom = query_norm * cand_norm + 1e-8
    scores = np.matmul(cand_arr, query_arr) / denom

    return [float(s) for s in scores]
