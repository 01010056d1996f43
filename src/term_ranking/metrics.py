from __future__ import annotations

from typing import Iterable

import numpy as np


def precision_at_k(hits: np.ndarray, k: int) -> float:
    """
    Computes Precision@K over a boolean hit array in rank order.

    Args:
        hits: 1D array, True where the candidate at that rank matched.
        k: Top-k cutoff. A list shorter than k is scored over its full length.

    Returns:
        Precision at rank k (0.0 for an empty list).
    """
    n = min(k, hits.size)
    if n <= 0:
        return 0.0
    return float(np.count_nonzero(hits[:n])) / n


def precision_at_ks(hits: np.ndarray, ks: Iterable[int]) -> dict[int, float]:
    """
    Computes Precision@K for several cutoffs from one cumulative hit count.

    Args:
        hits: 1D boolean hit array in rank order.
        ks: Top-k cutoffs.

    Returns:
        k -> precision at rank k.
    """
    cumulative = np.cumsum(hits, dtype=np.int64)
    result = {}
    for k in ks:
        n = min(k, hits.size)
        result[k] = float(cumulative[n - 1]) / n if n > 0 else 0.0
    return result


def recall(matched: int, relevant: int) -> float:
    """
    Computes recall.

    Args:
        matched: Number of distinct relevant items found.
        relevant: Total number of relevant items.

    Returns:
        Recall (0.0 when there is nothing to find).
    """
    if relevant == 0:
        return 0.0
    return matched / relevant
