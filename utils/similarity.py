from collections.abc import Callable, Iterable
from typing import Optional, Tuple, TypeVar

import numpy as np
import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def numpy_cosine_similarity(
    vec1: Optional[np.ndarray], vec2: Optional[np.ndarray]
) -> float:
    """Calculate cosine similarity between two numpy vectors."""
    if vec1 is None or vec2 is None:
        logger.debug("Cosine similarity: one or both vectors are None. Returning 0.0.")
        return 0.0
    try:
        v1 = np.asarray(vec1, dtype=np.float64).flatten()
        v2 = np.asarray(vec2, dtype=np.float64).flatten()
    except (TypeError, ValueError) as e:
        logger.warning(
            "Cosine similarity: Could not convert input to numpy array: %s. Returning 0.0.",
            e,
        )
        return 0.0
    if v1.shape != v2.shape:
        logger.warning(
            "Cosine similarity: shape mismatch %s vs %s. Returning 0.0.",
            v1.shape,
            v2.shape,
        )
        return 0.0
    if v1.size == 0:
        logger.debug("Cosine similarity: input vector(s) are empty. Returning 0.0.")
        return 0.0
    norm_v1 = np.linalg.norm(v1)
    norm_v2 = np.linalg.norm(v2)
    if norm_v1 == 0.0 or norm_v2 == 0.0:
        logger.debug("Cosine similarity: at least one zero-norm vector. Returning 0.0.")
        return 0.0
    dot_product = np.dot(v1, v2)
    similarity = dot_product / (norm_v1 * norm_v2)
    return float(np.clip(similarity, -1.0, 1.0))


def find_most_similar(
    query_vector: Optional[np.ndarray],
    candidates: Iterable[T],
    vector_of: Callable[[T], Optional[np.ndarray]],
) -> Tuple[Optional[T], float]:
    """Linear scan for the candidate whose vector is closest to ``query_vector``.

    Returns ``(None, 0.0)`` when there are no candidates. Ties keep the
    first candidate seen.
    """
    best_item: Optional[T] = None
    highest_similarity = -2.0
    for candidate in candidates:
        similarity = numpy_cosine_similarity(query_vector, vector_of(candidate))
        if similarity > highest_similarity:
            highest_similarity = similarity
            best_item = candidate

    if best_item is None:
        return None, 0.0
    return best_item, highest_similarity
