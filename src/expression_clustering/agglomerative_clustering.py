#!/usr/bin/env python3
# agglomerative_clustering.py
"""
Agglomerative clustering over a precomputed pairwise matrix.

The engine keeps a live copy of the (N, N) matrix indexed by cluster
representative, and a union-find over the original samples. Each step pops
the best pair of live representatives from a heap (lazy deletion), merges
them into the smaller id, and rewrites the survivor's row with the linkage
rule. Supported linkages:
    - 'single', 'complete', 'average'

The matrix may hold distances (smaller is closer) or similarities (larger is
closer); the MatrixType tag decides the direction of every comparison.

Doxygen-style docstrings are used (with @param / @return tags).
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import heapq

import numpy as np

from expression_clustering.config import HierarchicalConfig, LinkageMethod, MatrixType
from expression_clustering.distances import compute_distance_matrix, matrix_type_for
from expression_clustering.logging_utils import LogContext, get_logger

__all__ = [
    "MergeRecord",
    "HierarchicalClustering",
    "init_clusters",
    "find_representative",
    "pair_to_heap_entries",
    "linkage_update",
    "extract_best_pair",
    "merge_clusters",
    "relabel_contiguous",
    "agglomerative",
]

logger = get_logger("agglomerative")


@dataclass
class MergeRecord:
    survivor: int  # representative kept after the merge (smaller id)
    retired: int  # representative removed from the live set
    value: float  # matrix entry between the two clusters at merge time
    size: int  # resulting cluster size


def _heap_key(value, matrix_type: MatrixType):
    # heapq pops the smallest key first
    return value if matrix_type == MatrixType.DISTANCE else -value


def _worst_value(matrix_type: MatrixType) -> float:
    return np.inf if matrix_type == MatrixType.DISTANCE else -np.inf


def init_clusters(n: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Initialize cluster bookkeeping structures.

    @param n: Number of initial clusters (typically = number of samples).

    @return: A tuple (parent, active, sizes)
        - parent: union-find parent array, parent[i] == i for every i
        - active: boolean array length n (True indicates a live representative)
        - sizes: integer array length n (cluster sizes)
    """
    parent = np.arange(n, dtype=int)
    active = np.ones(n, dtype=bool)
    sizes = np.ones(n, dtype=int)
    return parent, active, sizes


def find_representative(parent: np.ndarray, i: int) -> int:
    """
    Union-find lookup with path compression.

    @param parent: union-find parent array; compressed in-place
    @param i: original sample index
    @return: representative id of the cluster containing i
    """
    root = i
    while parent[root] != root:
        root = parent[root]
    while parent[i] != root:
        parent[i], i = root, parent[i]
    return int(root)


def pair_to_heap_entries(D: np.ndarray, matrix_type: MatrixType) -> List[Tuple[float, int, int]]:
    """
    Create heap entries (key, i, j) for the upper triangle of D (i < j),
    and heapify them for efficient pop-best.

    The key is the distance itself, or the negated similarity, so that the
    heap order (key, i, j) pops the best pair and breaks ties by ascending i
    then ascending j.

    @param D: symmetric pairwise matrix (n, n) with floats.
    @param matrix_type: MatrixType of D
    @return: list suitable for heapq operations (heapified).
    """
    n = D.shape[0]
    entries: List[Tuple[float, int, int]] = []
    for i in range(n):
        for j in range(i + 1, n):
            entries.append((float(_heap_key(D[i, j], matrix_type)), i, j))
    heapq.heapify(entries)
    return entries


def linkage_update(linkage, matrix_type,
                   d_ik, d_jk,
                   size_i: int, size_j: int):
    """
    Value between the merged cluster (i U j) and another cluster k.

    @param linkage: LinkageMethod or its name
    @param matrix_type: MatrixType or its name
    @param d_ik: value between cluster i and k (scalar or array)
    @param d_jk: value between cluster j and k (scalar or array)
    @param size_i: size of cluster i before the merge
    @param size_j: size of cluster j before the merge
    @return: updated value d(iuj, k)
    @raises ValueError: on an unknown linkage or matrix type
    """
    linkage = LinkageMethod(linkage)
    matrix_type = MatrixType(matrix_type)
    closer_is_smaller = matrix_type == MatrixType.DISTANCE

    if linkage == LinkageMethod.SINGLE:
        return np.minimum(d_ik, d_jk) if closer_is_smaller else np.maximum(d_ik, d_jk)
    elif linkage == LinkageMethod.COMPLETE:
        return np.maximum(d_ik, d_jk) if closer_is_smaller else np.minimum(d_ik, d_jk)
    else:
        return (size_i * np.asarray(d_ik) + size_j * np.asarray(d_jk)) / (size_i + size_j)


def extract_best_pair(heap: List[Tuple[float, int, int]],
                      D: np.ndarray,
                      active: np.ndarray,
                      matrix_type: MatrixType,
                      tol: float = 1e-12) -> Tuple[int, int, float]:
    """
    Pop from heap until a valid active pair (i, j) with up-to-date value is found.

    Lazy deletion: many heap entries can be stale after merges; this function skips
    them until it finds an active pair matching the current D[i, j].

    @param heap: heap list managed with heapq
    @param D: current inter-cluster matrix (n, n)
    @param active: boolean mask of live representatives
    @param matrix_type: MatrixType of D
    @param tol: absolute tolerance for considering a popped key equal to the current one
    @return: tuple (i, j, value) with i < j
    @raises RuntimeError: if heap is exhausted (should not happen normally)
    """
    n = D.shape[0]
    while heap:
        key, i, j = heapq.heappop(heap)
        if not (0 <= i < n and 0 <= j < n):
            continue
        if not (active[i] and active[j]):
            continue
        current = _heap_key(D[i, j], matrix_type)
        if np.isfinite(current) and abs(key - current) <= max(tol, 1e-12 * (1.0 + abs(current))):
            return int(i), int(j), float(D[i, j])
        # else stale -> skip
    raise RuntimeError("Heap exhausted without finding a valid pair.")


def merge_clusters(i: int, j: int,
                   parent: np.ndarray,
                   active: np.ndarray,
                   sizes: np.ndarray,
                   D: np.ndarray,
                   linkage,
                   matrix_type,
                   heap: List[Tuple[float, int, int]]) -> int:
    """
    Merge the clusters represented by i and j. The smaller id survives; the
    other one is retired from the live set and attached to it in the union-find.
    Rewrites the survivor's row/column of D and pushes its fresh heap entries.

    @param i: representative of the first cluster
    @param j: representative of the second cluster, j != i
    @param parent: union-find parent array; modified in-place
    @param active: boolean mask of live representatives; modified in-place
    @param sizes: integer array of cluster sizes; modified in-place
    @param D: inter-cluster matrix (n, n); modified in-place
    @param linkage: LinkageMethod or its name
    @param matrix_type: MatrixType or its name
    @param heap: heap list to push updated pairs into; modified in-place
    @return: id of the surviving representative
    """
    if i == j:
        raise ValueError("Cannot merge a cluster with itself.")
    if not (active[i] and active[j]):
        raise ValueError("Both clusters must be active to merge.")
    linkage = LinkageMethod(linkage)
    matrix_type = MatrixType(matrix_type)

    survivor, retired = min(i, j), max(i, j)
    size_s = int(sizes[survivor])
    size_r = int(sizes[retired])

    act_idx = np.where(active)[0]
    others = act_idx[(act_idx != survivor) & (act_idx != retired)]

    d_new = linkage_update(linkage, matrix_type,
                           D[survivor, others], D[retired, others],
                           size_s, size_r)

    # write back for survivor <-> others
    D[survivor, others] = d_new
    D[others, survivor] = d_new

    # retire: its row and column must never win a comparison again
    worst = _worst_value(matrix_type)
    D[retired, :] = worst
    D[:, retired] = worst
    active[retired] = False
    parent[retired] = survivor
    sizes[survivor] = size_s + size_r
    sizes[retired] = 0

    for k in others:
        a = min(survivor, int(k))
        b = max(survivor, int(k))
        heapq.heappush(heap, (float(_heap_key(D[a, b], matrix_type)), a, b))

    return survivor


def relabel_contiguous(representatives) -> np.ndarray:
    """
    Map representative ids to labels 0..k-1, in ascending representative order.

    @param representatives: array of representative ids, one per sample
    @return: integer label array of the same length
    """
    _, labels = np.unique(np.asarray(representatives, dtype=int), return_inverse=True)
    return labels.astype(int).ravel()


class HierarchicalClustering:
    """
    Agglomerative clustering of N samples given their (N, N) pairwise matrix.

    Usage:
        engine = HierarchicalClustering(D, HierarchicalConfig(linkage="average"))
        representatives = engine.compute(k=3)
    """

    def __init__(self, matrix: np.ndarray,
                 config: Optional[HierarchicalConfig] = None,
                 verbose: bool = False):
        """
        @param matrix: square symmetric matrix (N, N); never modified
        @param config: linkage and matrix type; defaults to complete linkage on distances
        @param verbose: log every merge at INFO level instead of DEBUG
        @raises ValueError: if the matrix is not a non-empty finite square 2D array
        """
        matrix = np.asarray(matrix, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ValueError(f"Pairwise matrix must be square, got shape {matrix.shape}.")
        if matrix.shape[0] == 0:
            raise ValueError("Pairwise matrix is empty.")
        off_diagonal = ~np.eye(matrix.shape[0], dtype=bool)
        if not np.all(np.isfinite(matrix[off_diagonal])):
            raise ValueError("Pairwise matrix contains non-finite values.")

        self.matrix = matrix
        self.config = config if config is not None else HierarchicalConfig()
        self.n = matrix.shape[0]
        self.verbose = verbose
        self.merge_history: List[MergeRecord] = []

    def compute(self, k: int) -> np.ndarray:
        """
        Merge clusters until exactly k remain.

        @param k: target number of clusters, 1 <= k <= N
        @return: integer array (N,) holding, for every sample, the id of its
                 final cluster representative
        @raises ValueError: if k is out of range
        """
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
            raise ValueError(f"k must be an integer, got {k!r}.")
        if not (1 <= k <= self.n):
            raise ValueError(f"k must be between 1 and {self.n}, got {k}.")

        linkage = self.config.linkage
        matrix_type = self.config.matrix_type
        log = logger.info if self.verbose else logger.debug

        parent, active, sizes = init_clusters(self.n)
        self.merge_history = []

        with LogContext(logger, "Hierarchical clustering", n_samples=self.n, k=k,
                        linkage=linkage.value, matrix_type=matrix_type.value):
            if k < self.n:
                D = self.matrix.copy()
                heap = pair_to_heap_entries(D, matrix_type)
                for step in range(self.n - k):
                    i, j, value = extract_best_pair(heap, D, active, matrix_type)
                    new_size = int(sizes[i] + sizes[j])
                    survivor = merge_clusters(i, j, parent, active, sizes, D,
                                              linkage, matrix_type, heap)
                    retired = j if survivor == i else i
                    self.merge_history.append(MergeRecord(survivor, retired, value, new_size))
                    log(f"Merge {step + 1}/{self.n - k}: {retired} -> {survivor} "
                        f"(value={value:.6g}, size={new_size})")

            representatives = np.array(
                [find_representative(parent, x) for x in range(self.n)], dtype=int)

        logger.info(f"{k} clusters, sizes: {sorted(int(s) for s in sizes[active])}")
        return representatives

    def linkage_matrix(self) -> np.ndarray:
        """
        SciPy-style linkage matrix of the last compute() call.

        @return: array (m, 4) with rows [node_a, node_b, value, new_cluster_size].
                 Nodes < N are samples, node N + t is the cluster formed at merge t.
        """
        node_id = list(range(self.n))
        rows: List[List[float]] = []
        for step, record in enumerate(self.merge_history):
            a = node_id[record.survivor]
            b = node_id[record.retired]
            rows.append([float(min(a, b)), float(max(a, b)), float(record.value), float(record.size)])
            node_id[record.survivor] = self.n + step
            node_id[record.retired] = -1
        return np.array(rows, dtype=float).reshape(len(rows), 4)


def agglomerative(X: np.ndarray,
                  n_clusters: int = 1,
                  linkage: str = "average",
                  metric: str = "euclidean",
                  return_linkage: bool = False) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Perform agglomerative clustering on data matrix X.

    @param X: data matrix shape (n_samples, n_features)
    @param n_clusters: desired number of clusters (1 <= n_clusters <= n_samples)
    @param linkage: one of 'single', 'complete', 'average'
    @param metric: DistanceMetric name used to build the pairwise matrix
    @param return_linkage: if True, also return SciPy-style linkage matrix Z shape
                           (n_samples - n_clusters, 4)

    @return: tuple (labels, linkage_matrix_or_None)
        - labels: integer array shape (n_samples,) with labels 0..(n_clusters-1)
        - linkage_matrix_or_None: np.ndarray if return_linkage else None
    """
    X = np.asarray(X, dtype=float)
    if X.ndim != 2:
        raise ValueError("X must be a 2D array (n_samples, n_features).")
    n = X.shape[0]
    if not (1 <= n_clusters <= n):
        raise ValueError("n_clusters must be between 1 and n_samples.")

    config = HierarchicalConfig(linkage=LinkageMethod(linkage),
                                matrix_type=matrix_type_for(metric))
    engine = HierarchicalClustering(compute_distance_matrix(X, metric), config)
    labels = relabel_contiguous(engine.compute(n_clusters))

    if return_linkage:
        return labels, engine.linkage_matrix()
    else:
        return labels, None
