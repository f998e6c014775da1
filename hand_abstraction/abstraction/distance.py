"""
Distance metrics between equity histograms.

A metric is any pure function ``(a, b) -> float`` over two equal-length
histograms. It must not capture shared mutable state, since the clustering
engine calls it concurrently from worker threads.
"""

import math
from typing import Callable, Dict

import numpy as np

DistanceMetric = Callable[[np.ndarray, np.ndarray], float]


class NonFiniteDistanceError(ValueError):
    """Raised when a metric returns NaN or an infinite distance."""

    pass


def l2_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance: square root of the summed squared differences."""
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sqrt(np.dot(diff, diff)))


def squared_l2_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Sum of squared elementwise differences."""
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.dot(diff, diff))


def emd_distance(a: np.ndarray, b: np.ndarray) -> float:
    """
    Earth mover's distance between two histograms over the same ordered bins.

    In one dimension this is the L1 distance between the cumulative sums,
    with unit ground distance between neighbouring bins.
    """
    ca = np.cumsum(np.asarray(a, dtype=np.float64))
    cb = np.cumsum(np.asarray(b, dtype=np.float64))
    return float(np.sum(np.abs(ca - cb)))


_METRICS: Dict[str, DistanceMetric] = {
    "l2": l2_distance,
    "squared_l2": squared_l2_distance,
    "emd": emd_distance,
}


def get_metric(name: str) -> DistanceMetric:
    """
    Resolve a metric by name.

    Args:
        name: One of "l2", "squared_l2", "emd"

    Returns:
        Distance function
    """
    try:
        return _METRICS[name]
    except KeyError as exc:
        raise ValueError(
            f"Unknown distance metric: {name!r} (expected one of {sorted(_METRICS)})"
        ) from exc


def checked_distance(metric: DistanceMetric, a: np.ndarray, b: np.ndarray) -> float:
    """Call ``metric`` and fail fast on NaN or infinite results."""
    dist = metric(a, b)
    if not math.isfinite(dist):
        name = getattr(metric, "__name__", repr(metric))
        raise NonFiniteDistanceError(f"Distance metric {name} returned {dist}")
    return dist
