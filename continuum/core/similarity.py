"""
Vector similarity helpers.
"""

import math
from typing import List, Sequence


def _scaled(vec: Sequence[float]) -> List[float]:
    """Divide by the largest magnitude so products stay clear of overflow and underflow."""
    if not all(math.isfinite(x) for x in vec):
        raise ValueError("Vector components must be finite")
    scale = max((abs(x) for x in vec), default=0.0)
    if scale == 0:
        return []
    return [x / scale for x in vec]


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors of equal dimensionality.

    Returns 0.0 when either vector has zero magnitude. The result is clamped
    to [-1, 1] so rounding never leaks outside the valid range.
    """
    if len(vec_a) != len(vec_b):
        raise ValueError(
            f"Vector dimensions differ: {len(vec_a)} != {len(vec_b)}"
        )

    scaled_a = _scaled(vec_a)
    scaled_b = _scaled(vec_b)
    if not scaled_a or not scaled_b:
        return 0.0

    # Each scaled vector has a component of magnitude 1, so both norms are >= 1
    dot_product = math.fsum(a * b for a, b in zip(scaled_a, scaled_b))
    norm_a = math.sqrt(math.fsum(a * a for a in scaled_a))
    norm_b = math.sqrt(math.fsum(b * b for b in scaled_b))

    similarity = dot_product / (norm_a * norm_b)
    return max(-1.0, min(1.0, similarity))
