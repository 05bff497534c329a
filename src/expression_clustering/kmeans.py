"""
Generic k-means over any element type described by a MetricSpace.

The assignment vector is owned by the caller and mutated in place. Entries
equal to EXCLUDED (-1) mark elements that take no part in the run: they are
never assigned and never contribute to a centroid.

Doxygen-style docstrings are used (with @param / @return tags).
"""

from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from expression_clustering.config import KMeansConfig
from expression_clustering.logging_utils import LogContext, get_logger
from expression_clustering.metric_space import MetricSpace, ScalarSpace

__all__ = [
    "EXCLUDED",
    "EmptyClusterError",
    "KMeans",
    "count_distinct",
    "initialize_centroids",
    "closest_centroid",
    "recalculate_centroids",
    "kmeans_iteration",
    "centroid_ranks",
    "relabel_clusters",
]

logger = get_logger("kmeans")

EXCLUDED = -1


class EmptyClusterError(RuntimeError):
    """A cluster lost all of its members while its centroid was recomputed."""


def count_distinct(values: Sequence[Any], space: MetricSpace, limit: Optional[int] = None) -> int:
    """
    Count distinct values according to space.same.

    @param values: elements to inspect
    @param space: metric space of the elements
    @param limit: stop counting once this many distinct values are found
    @return: number of distinct values (capped at limit)
    """
    distinct: List[Any] = []
    for value in values:
        if limit is not None and len(distinct) >= limit:
            break
        if not any(space.same(value, seen) for seen in distinct):
            distinct.append(value)
    return len(distinct)


def initialize_centroids(data: Sequence[Any],
                         included: Sequence[bool],
                         k: int,
                         space: MetricSpace,
                         rng: np.random.Generator) -> List[Any]:
    """
    Pick k distinct non-excluded elements by rejection sampling.

    The caller must make sure at least k distinct included values exist,
    otherwise this never returns.

    @param data: elements
    @param included: False for excluded elements
    @param k: number of centroids
    @param space: metric space of the elements
    @param rng: random source
    @return: list of k centroids (references to elements of data)
    """
    centroids: List[Any] = []
    n = len(data)
    while len(centroids) < k:
        idx = int(rng.integers(0, n))
        if not included[idx]:
            continue
        candidate = data[idx]
        if any(space.same(candidate, c) for c in centroids):
            continue
        centroids.append(candidate)
    return centroids


def closest_centroid(element: Any, centroids: Sequence[Any], space: MetricSpace) -> int:
    """
    @return: index of the closest centroid; ties go to the lowest index
    """
    best = 0
    best_distance = space.distance(element, centroids[0])
    for c in range(1, len(centroids)):
        d = space.distance(element, centroids[c])
        if d < best_distance:
            best = c
            best_distance = d
    return best


def recalculate_centroids(data: Sequence[Any],
                          clusters: Sequence[int],
                          centroids: Sequence[Any],
                          space: MetricSpace,
                          empty_cluster_policy: str = "retain") -> List[Any]:
    """
    Mean of the members of every cluster.

    @param data: elements
    @param clusters: assignment vector
    @param centroids: current centroids, kept for clusters without members
                      when empty_cluster_policy is 'retain'
    @param space: metric space of the elements
    @param empty_cluster_policy: 'retain' or 'error'
    @return: new list of centroids
    @raises EmptyClusterError: on an empty cluster with policy 'error'
    """
    k = len(centroids)
    sums = [space.zero() for _ in range(k)]
    counts = [0] * k
    for element, cluster in zip(data, clusters):
        if cluster != EXCLUDED:
            sums[cluster] = space.add(sums[cluster], element)
            counts[cluster] += 1

    new_centroids = []
    for c in range(k):
        if counts[c] == 0:
            if empty_cluster_policy == "error":
                raise EmptyClusterError(f"Cluster {c} has no members.")
            logger.warning(f"Cluster {c} has no members, keeping its previous centroid")
            new_centroids.append(centroids[c])
        else:
            new_centroids.append(space.divide(sums[c], counts[c]))
    return new_centroids


def kmeans_iteration(data: Sequence[Any],
                     centroids: Sequence[Any],
                     clusters,
                     space: MetricSpace,
                     empty_cluster_policy: str = "retain") -> Tuple[List[Any], bool]:
    """
    One assignment step followed by one update step.

    @param clusters: assignment vector; modified in-place (excluded entries untouched)
    @return: tuple (new_centroids, changed) where changed tells whether any
             assignment moved
    """
    changed = False
    for i, element in enumerate(data):
        old_cluster = clusters[i]
        if old_cluster == EXCLUDED:
            continue
        new_cluster = closest_centroid(element, centroids, space)
        if new_cluster != old_cluster:
            changed = True
            clusters[i] = new_cluster

    return recalculate_centroids(data, clusters, centroids, space, empty_cluster_policy), changed


def centroid_ranks(centroids: Sequence[Any], space: MetricSpace) -> Optional[List[int]]:
    """
    Rank of every centroid in ascending order_key order (stable).

    @return: ranks[c] = new label of cluster c, or None if the space has no order
    """
    keys = [space.order_key(c) for c in centroids]
    if any(key is None for key in keys):
        return None
    order = sorted(range(len(centroids)), key=lambda c: keys[c])
    ranks = [0] * len(centroids)
    for position, c in enumerate(order):
        ranks[c] = position
    return ranks


def relabel_clusters(clusters, ranks: Sequence[int]) -> None:
    """Replace every non-excluded label c by ranks[c], in-place."""
    for i in range(len(clusters)):
        if clusters[i] != EXCLUDED:
            clusters[i] = ranks[clusters[i]]


class KMeans:
    """
    K-means over arbitrary elements.

    Usage:
        clusters = [0] * len(values)
        engine = KMeans(values, clusters, KMeansConfig(n_clusters=2, seed=0))
        centroids = engine.compute()
    """

    def __init__(self, data: Sequence[Any],
                 clusters,
                 config: Optional[KMeansConfig] = None,
                 space: Optional[MetricSpace] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        @param data: elements to cluster; never modified
        @param clusters: mutable assignment vector of the same length, each entry
                         EXCLUDED or a label in [0, n_clusters)
        @param config: K, iteration cap, seed and empty cluster policy
        @param space: metric space of the elements; ScalarSpace by default
        @param rng: random source; seeded from config.seed when omitted
        """
        self.data = data
        self.clusters = clusters
        self.config = config if config is not None else KMeansConfig()
        self.space = space if space is not None else ScalarSpace()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.centroids_: Optional[List[Any]] = None
        self.n_iter_ = 0
        self.converged_: Optional[bool] = None

    def _validate(self, k: int) -> List[bool]:
        if len(self.clusters) != len(self.data):
            raise ValueError(
                f"Assignment vector has {len(self.clusters)} entries "
                f"for {len(self.data)} elements.")
        for i, cluster in enumerate(self.clusters):
            if isinstance(cluster, bool) or not isinstance(cluster, (int, np.integer)):
                raise ValueError(
                    f"Assignment {cluster!r} of element {i} is not an integer label.")
            if cluster != EXCLUDED and not (0 <= cluster < k):
                raise ValueError(
                    f"Assignment {cluster} of element {i} is neither {EXCLUDED} "
                    f"nor in [0, {k}).")

        included = [cluster != EXCLUDED for cluster in self.clusters]
        candidates = [x for x, inc in zip(self.data, included) if inc]
        n_distinct = count_distinct(candidates, self.space, limit=k)
        if n_distinct < k:
            raise ValueError(
                f"Need at least {k} distinct non-excluded elements, found {n_distinct}.")
        return included

    def compute(self) -> List[Any]:
        """
        Run k-means on the non-excluded elements.

        The assignment vector is updated in place. When the metric space
        orders its elements, labels are renumbered so that centroid 0 is the
        smallest.

        @return: list of n_clusters centroids, in label order
        @raises ValueError: on an invalid assignment vector or too few distinct elements
        """
        k = self.config.n_clusters
        max_iter = self.config.max_iter
        included = self._validate(k)

        with LogContext(logger, "K-means", n_elements=len(self.data),
                        n_excluded=included.count(False), k=k):
            centroids = initialize_centroids(self.data, included, k, self.space, self.rng)

            n_iter = 0
            converged = False
            while n_iter < max_iter:
                centroids, changed = kmeans_iteration(
                    self.data, centroids, self.clusters, self.space,
                    self.config.empty_cluster_policy)
                n_iter += 1
                if not changed:
                    converged = True
                    break
            logger.debug(f"K-means stopped after {n_iter} iterations")

            ranks = centroid_ranks(centroids, self.space)
            if ranks is not None:
                relabel_clusters(self.clusters, ranks)
                ordered: List[Any] = [None] * k
                for c, rank in enumerate(ranks):
                    ordered[rank] = centroids[c]
                centroids = ordered

        if not converged:
            logger.warning(f"K-means did not converge after {max_iter} iterations")

        self.centroids_ = centroids
        self.n_iter_ = n_iter
        self.converged_ = converged
        return centroids

    def compute_iterated_binary_kmeans(self, n_iterations: int) -> int:
        """
        Repeated 2-means splits, each keeping only the lower side (label 0).

        Every round clusters the elements still on side 0 and excludes those
        landing on side 1. At the end, elements peeled off in any round get
        label 1, elements that stayed on side 0 in every round keep 0, and
        elements excluded by the caller stay EXCLUDED.

        centroids_, n_iter_ and converged_ describe the last split performed.

        @param n_iterations: number of splitting rounds (>= 1)
        @return: number of rounds actually performed
        @raises ValueError: if n_clusters != 2, n_iterations < 1, or the
                            non-excluded elements hold fewer than 2 distinct values
        """
        if self.config.n_clusters != 2:
            raise ValueError(
                f"Iterated binary k-means needs n_clusters == 2, got {self.config.n_clusters}.")
        if n_iterations < 1:
            raise ValueError(f"n_iterations must be >= 1, got {n_iterations}.")
        included = self._validate(2)

        temporary = [0 if inc else EXCLUDED for inc in included]
        rounds = 0
        for _ in range(n_iterations):
            survivors = [x for x, c in zip(self.data, temporary) if c != EXCLUDED]
            if count_distinct(survivors, self.space, limit=2) < 2:
                logger.warning(
                    f"Only one distinct value left after {rounds} splits, stopping early")
                break
            split = KMeans(self.data, temporary, self.config, self.space, rng=self.rng)
            split.compute()
            self.centroids_ = split.centroids_
            self.n_iter_ = split.n_iter_
            self.converged_ = split.converged_
            temporary = [0 if c == 0 else EXCLUDED for c in temporary]
            rounds += 1
            logger.debug(f"Split {rounds}: {temporary.count(0)} elements kept")

        for i, inc in enumerate(included):
            if inc:
                self.clusters[i] = 0 if temporary[i] == 0 else 1

        logger.info(f"Iterated binary k-means: {temporary.count(0)} elements in cluster 0 "
                    f"after {rounds} splits")
        return rounds
