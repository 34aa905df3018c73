"""Vector similarity helpers."""

import math
from collections.abc import Sequence
from numbers import Real


def _is_numeric_vector(vector: Sequence[object]) -> bool:
    return all(
        isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)
        for value in vector
    )


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity ``dot(a, b) / (|a| * |b|)``.

    Never raises for malformed input: missing, empty, mismatched-length,
    zero-magnitude or non-numeric vectors all score 0.0.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Similarity in [-1.0, 1.0].
    """
    if not a or not b or len(a) != len(b):
        return 0.0
    if not _is_numeric_vector(a) or not _is_numeric_vector(b):
        return 0.0

    dot = math.fsum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))
