"""
K-means clustering of equity histograms into abstraction buckets.

The engine is polymorphic over the distance metric: any function
``(histogram, histogram) -> float`` can be used. Assignment runs over
contiguous index chunks on a thread pool; center recomputation is a single
reduction over the whole dataset that completes before the next assignment
pass starts.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, MutableSequence, Optional, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from hand_abstraction.abstraction.distance import DistanceMetric, checked_distance

logger = logging.getLogger(__name__)

# Stop fitting once at most this fraction of the dataset changes cluster.
EPSILON = 0.005

DEFAULT_MAX_ITERATIONS = 300

RandomSource = Union[int, np.random.Generator, None]


def as_dataset(data) -> np.ndarray:
    """
    Convert histograms to a 2-D float64 array and validate its shape.

    Args:
        data: Sequence of equal-length histograms, or a 2-D array

    Returns:
        Array of shape (n_data, n_bins). Arrays that are already float64
        are returned without copying.
    """
    try:
        array = np.asarray(data, dtype=np.float64)
    except ValueError as exc:
        raise ValueError("Histograms in a dataset must all have the same length") from exc

    if array.ndim != 2:
        raise ValueError(f"Dataset must be 2-D (n_data, n_bins), got shape {array.shape}")
    if array.shape[0] == 0:
        raise ValueError("Dataset is empty")
    if array.shape[1] == 0:
        raise ValueError("Histograms must have at least one bin")

    return array


def chunk_bounds(n_items: int, n_chunks: int) -> List[Tuple[int, int]]:
    """Split ``range(n_items)`` into at most ``n_chunks`` contiguous, non-empty ranges."""
    n_chunks = max(1, min(n_chunks, n_items))
    size, extra = divmod(n_items, n_chunks)
    bounds = []
    start = 0
    for i in range(n_chunks):
        stop = start + size + (1 if i < extra else 0)
        bounds.append((start, stop))
        start = stop
    return bounds


def _map_chunks(fn: Callable[[int, int], int], n_items: int, n_workers: int) -> List[int]:
    bounds = chunk_bounds(n_items, n_workers)
    if len(bounds) == 1:
        return [fn(*bounds[0])]

    with ThreadPoolExecutor(max_workers=len(bounds)) as executor:
        futures = [executor.submit(fn, start, stop) for start, stop in bounds]
        return [future.result() for future in futures]


def compute_centers(dataset: np.ndarray, labels: np.ndarray, n_centers: int) -> np.ndarray:
    """
    Compute cluster centers as the elementwise mean of their assigned histograms.

    Bins whose accumulated mass is not positive are left undivided, so a
    cluster with no points gets an all-zero center.

    Args:
        dataset: Histograms, shape (n_data, n_bins)
        labels: Cluster index per histogram
        n_centers: Number of clusters

    Returns:
        New centers, shape (n_centers, n_bins)
    """
    labels = np.asarray(labels, dtype=np.int64)
    if labels.shape != (dataset.shape[0],):
        raise ValueError(
            f"Label count {labels.shape[0] if labels.ndim else 0} does not match "
            f"dataset size {dataset.shape[0]}"
        )
    if labels.size and (labels.min() < 0 or labels.max() >= n_centers):
        raise ValueError(f"Cluster labels must lie in [0, {n_centers})")

    counts = np.bincount(labels, minlength=n_centers).astype(np.float64)
    mass = np.zeros((n_centers, dataset.shape[1]), dtype=np.float64)
    np.add.at(mass, labels, dataset)

    centers = mass.copy()
    np.divide(mass, counts[:, np.newaxis], out=centers, where=mass > 0)
    return centers


def update_min_dists(
    metric: DistanceMetric,
    min_dists: np.ndarray,
    dataset: np.ndarray,
    new_center: np.ndarray,
) -> None:
    """
    Lower each point's running minimum squared distance using a new center.

    This is the bookkeeping step of k-means++ seeding: ``min_dists[i]`` holds
    the squared distance from point ``i`` to its nearest chosen center.
    Callers initialise the buffer (e.g. with ``np.inf``) before the first call.

    Args:
        metric: Distance function
        min_dists: Per-point buffer, updated in place
        dataset: Histograms, shape (n_data, n_bins)
        new_center: The center just chosen
    """
    if len(min_dists) != len(dataset):
        raise ValueError(
            f"Distance buffer length {len(min_dists)} does not match dataset size {len(dataset)}"
        )

    for i in range(len(dataset)):
        dist = checked_distance(metric, dataset[i], new_center)
        dist = dist * dist
        if dist < min_dists[i]:
            min_dists[i] = dist


@dataclass
class FitResult:
    """Outcome of a k-means fit."""

    labels: np.ndarray
    iterations: int
    converged: bool
    accuracy: float  # Fraction of the dataset that changed cluster in the last iteration


class KMeans:
    """
    K-means over histograms with a caller-supplied distance metric.

    Owns its centers: they are deep copies of dataset rows after
    initialisation and are replaced wholesale after every fitting iteration.

    ``n_workers`` splits assignment across threads. That only shortens wall
    time when the metric releases the GIL (numpy reductions over wide rows);
    a pure-Python metric on short histograms runs no faster than inline.
    """

    def __init__(
        self,
        centers,
        epsilon: float = EPSILON,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        n_workers: int = 1,
    ):
        """
        Initialize from explicit centers.

        Args:
            centers: Initial centers, shape (k, n_bins). Copied.
            epsilon: Convergence threshold on the fraction of changed assignments
            max_iterations: Upper bound on fitting iterations
            n_workers: Threads used for assignment (1 = run inline)
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if n_workers < 1:
            raise ValueError("n_workers must be at least 1")
        if epsilon < 0:
            raise ValueError("epsilon must be non-negative")

        self._centers = np.array(as_dataset(centers), copy=True)
        self.epsilon = epsilon
        self.max_iterations = max_iterations
        self.n_workers = n_workers

    @classmethod
    def init_random(
        cls,
        n_restarts: int,
        n_centers: int,
        rng: RandomSource,
        metric: DistanceMetric,
        dataset,
        show_progress: bool = False,
        **kwargs,
    ) -> "KMeans":
        """
        Initialize centers from the most spread-out of several random draws.

        Each restart samples ``n_centers`` histograms uniformly with
        replacement; the restart with the largest mean pairwise distance
        among its candidates wins.

        Args:
            n_restarts: Number of independent random draws
            n_centers: k in k-means
            rng: Seed or numpy Generator (sampling is sequential on it)
            metric: Distance function
            dataset: Histograms to sample from
            show_progress: Show a tqdm bar while scoring restarts
            **kwargs: Forwarded to the constructor (epsilon, max_iterations, n_workers)

        Returns:
            KMeans instance holding the chosen centers
        """
        data = as_dataset(dataset)
        n_data = data.shape[0]
        if n_restarts < 1:
            raise ValueError("n_restarts must be at least 1")
        if not 1 <= n_centers <= n_data:
            raise ValueError(f"Cannot choose {n_centers} centers from {n_data} histograms")

        rng = np.random.default_rng(rng)
        n_workers = kwargs.get("n_workers", 1)
        start = time.time()
        logger.info(f"Initializing k-means with {n_restarts} random restarts")

        candidates = [rng.integers(0, n_data, size=n_centers) for _ in range(n_restarts)]

        def score(rows: np.ndarray) -> float:
            if n_centers < 2:
                return 0.0
            total = 0.0
            for i in range(n_centers):
                for j in range(n_centers):
                    if i != j:
                        total += checked_distance(metric, data[rows[i]], data[rows[j]])
            return total / (n_centers * (n_centers - 1))

        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            scores = list(
                tqdm(
                    executor.map(score, candidates),
                    total=n_restarts,
                    desc="Scoring restarts",
                    unit="restart",
                    disable=not show_progress,
                )
            )

        best = int(np.argmax(scores))
        logger.info(
            f"Chose restart {best} (mean pairwise distance {scores[best]:.4f}) "
            f"in {(time.time() - start) * 1000:.0f}ms"
        )
        return cls(data[candidates[best]], **kwargs)

    @classmethod
    def init_plusplus(
        cls,
        n_centers: int,
        rng: RandomSource,
        metric: DistanceMetric,
        dataset,
        **kwargs,
    ) -> "KMeans":
        """
        K-means++ initialization.

        The first center is uniform; each further center is drawn with
        probability proportional to the squared distance to its nearest
        already-chosen center.
        """
        data = as_dataset(dataset)
        n_data = data.shape[0]
        if not 1 <= n_centers <= n_data:
            raise ValueError(f"Cannot choose {n_centers} centers from {n_data} histograms")

        rng = np.random.default_rng(rng)
        chosen = [int(rng.integers(0, n_data))]
        min_dists = np.full(n_data, np.inf)
        update_min_dists(metric, min_dists, data, data[chosen[0]])

        for _ in range(1, n_centers):
            total = float(min_dists.sum())
            if total > 0:
                next_idx = int(rng.choice(n_data, p=min_dists / total))
            else:
                # Every point coincides with a chosen center
                next_idx = int(rng.integers(0, n_data))
            chosen.append(next_idx)
            update_min_dists(metric, min_dists, data, data[next_idx])

        return cls(data[chosen], **kwargs)

    @property
    def centers(self) -> np.ndarray:
        """Copy of the current centers, shape (k, n_bins)."""
        return self._centers.copy()

    @property
    def n_centers(self) -> int:
        return self._centers.shape[0]

    def _check_dims(self, data: np.ndarray) -> None:
        if data.shape[1] != self._centers.shape[1]:
            raise ValueError(
                f"Histograms have {data.shape[1]} bins but centers have {self._centers.shape[1]}"
            )

    def predict(
        self,
        dataset,
        clusters: MutableSequence[int],
        metric: DistanceMetric,
    ) -> int:
        """
        Assign every histogram to its nearest center.

        Ties go to the lowest cluster index. ``clusters`` is updated in place.

        Args:
            dataset: Histograms, shape (n_data, n_bins)
            clusters: Current assignment per histogram; must match the dataset length
            metric: Distance function

        Returns:
            Number of histograms whose cluster changed
        """
        data = as_dataset(dataset)
        if len(clusters) != data.shape[0]:
            raise ValueError(
                f"Cluster buffer length {len(clusters)} does not match dataset size {data.shape[0]}"
            )
        self._check_dims(data)

        centers = self._centers
        n_centers = centers.shape[0]

        def assign(start: int, stop: int) -> int:
            changed = 0
            for i in range(start, stop):
                row = data[i]
                best = 0
                best_dist = checked_distance(metric, row, centers[0])
                for k in range(1, n_centers):
                    dist = checked_distance(metric, row, centers[k])
                    if dist < best_dist:
                        best = k
                        best_dist = dist
                if clusters[i] != best:
                    changed += 1
                    clusters[i] = best
            return changed

        return sum(_map_chunks(assign, data.shape[0], self.n_workers))

    def fit(self, dataset, metric: DistanceMetric) -> FitResult:
        """
        Fit centers to the dataset.

        Iterates assignment and center updates until the fraction of changed
        assignments drops to ``epsilon`` or ``max_iterations`` is reached.
        Hitting the iteration bound is reported as ``converged=False``.

        Args:
            dataset: Histograms, shape (n_data, n_bins)
            metric: Distance function

        Returns:
            FitResult with the final assignment
        """
        data = as_dataset(dataset)
        self._check_dims(data)

        n_data = data.shape[0]
        k = self.n_centers
        start = time.time()
        logger.info(f"Fitting {k} centers to {n_data} histograms")

        clusters = np.zeros(n_data, dtype=np.int64)
        accuracy = 1.0
        converged = False
        iteration = 0

        while iteration < self.max_iterations:
            iteration += 1
            changed = self.predict(data, clusters, metric)
            self._centers = compute_centers(data, clusters, k)

            accuracy = changed / n_data
            logger.debug(f"Iteration {iteration}: {changed} changed ({accuracy:.4f})")
            if accuracy <= self.epsilon:
                converged = True
                break

        elapsed_ms = (time.time() - start) * 1000
        if converged:
            logger.info(f"Converged after {iteration} iterations in {elapsed_ms:.0f}ms")
        else:
            logger.warning(
                f"Stopped after {iteration} iterations without converging "
                f"(last changed fraction {accuracy:.4f} > epsilon {self.epsilon})"
            )

        return FitResult(
            labels=clusters,
            iterations=iteration,
            converged=converged,
            accuracy=accuracy,
        )

    def inertia(self, dataset, labels: Sequence[int], metric: DistanceMetric) -> float:
        """Sum of squared distances from each histogram to its assigned center."""
        data = as_dataset(dataset)
        if len(labels) != data.shape[0]:
            raise ValueError("Label count does not match dataset size")
        total = 0.0
        for i, label in enumerate(labels):
            dist = checked_distance(metric, data[i], self._centers[label])
            total += dist * dist
        return total

    def __str__(self) -> str:
        return f"KMeans(n_centers={self.n_centers}, epsilon={self.epsilon})"


def fit_buckets(
    dataset,
    n_clusters: int,
    metric: DistanceMetric,
    n_restarts: int = 10,
    seed: Optional[int] = None,
    init: str = "random",
    **kwargs,
) -> Tuple[KMeans, FitResult]:
    """
    Initialize and fit k-means in one call.

    Args:
        dataset: Histograms
        n_clusters: Number of buckets
        metric: Distance function
        n_restarts: Restarts for random initialization
        seed: Random seed
        init: "random" (restart heuristic) or "kmeans++"
        **kwargs: Forwarded to the KMeans constructor

    Returns:
        (fitted model, fit result)
    """
    if init == "random":
        model = KMeans.init_random(n_restarts, n_clusters, seed, metric, dataset, **kwargs)
    elif init == "kmeans++":
        model = KMeans.init_plusplus(n_clusters, seed, metric, dataset, **kwargs)
    else:
        raise ValueError(f"Unknown initialization: {init!r}")

    return model, model.fit(dataset, metric)
