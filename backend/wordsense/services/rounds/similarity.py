import numpy as np


def cosine_similarity(vec_a, vec_b) -> float:
    """Cosine similarity of two equal-length vectors.

    Raises ValueError for mismatched lengths or a zero vector; provider
    embeddings are normalized so either one means the input is broken.
    """
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Vector shapes differ: {a.shape} vs {b.shape}")
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if not denom:
        raise ValueError("Cosine similarity is undefined for a zero vector")
    return float(np.dot(a, b) / denom)
