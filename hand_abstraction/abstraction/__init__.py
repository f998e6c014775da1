"""
Abstraction construction: distance metrics, k-means bucketing, hand
indexers, equity estimation and equity table I/O.
"""

from hand_abstraction.abstraction.clustering import FitResult, KMeans, update_min_dists
from hand_abstraction.abstraction.distance import (
    NonFiniteDistanceError,
    emd_distance,
    get_metric,
    l2_distance,
)

__all__ = [
    "FitResult",
    "KMeans",
    "NonFiniteDistanceError",
    "emd_distance",
    "get_metric",
    "l2_distance",
    "update_min_dists",
]
