"""
Pairwise matrices between expression samples.

Rows of the input are samples (patients), columns are features (genes).
Correlation and cosine measures produce SIMILARITY matrices, the norms
produce DISTANCE matrices.
"""

from enum import Enum

import numpy as np
from scipy.spatial.distance import cdist
from scipy.stats import rankdata

from expression_clustering.config import MatrixType

__all__ = [
    "DistanceMetric",
    "matrix_type_for",
    "compute_pairwise_distances",
    "compute_distance_matrix",
]


class DistanceMetric(str, Enum):
    PEARSON = "pearson"
    SPEARMAN = "spearman"
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    COSINE = "cosine"


_SIMILARITY_METRICS = {DistanceMetric.PEARSON, DistanceMetric.SPEARMAN, DistanceMetric.COSINE}


def matrix_type_for(metric) -> MatrixType:
    """
    @param metric: DistanceMetric or its name
    @return: MatrixType of the matrices produced by that metric
    @raises ValueError: on an unknown metric name
    """
    metric = DistanceMetric(metric)
    if metric in _SIMILARITY_METRICS:
        return MatrixType.SIMILARITY
    return MatrixType.DISTANCE


def compute_pairwise_distances(X: np.ndarray) -> np.ndarray:
    """
    Compute full pairwise Euclidean distance matrix for rows of X.

    @param X: 2D array, shape (n_samples, n_features). Rows are observations.
    @return: 2D array D shape (n_samples, n_samples) where D[i, j] is the Euclidean
             distance between X[i] and X[j]. The diagonal entries are zero.
    """
    X = np.asarray(X, dtype=float)
    sq = np.sum(X * X, axis=1, keepdims=True)  # (n,1)
    D2 = sq + sq.T - 2.0 * (X @ X.T)
    # Numerical safety: clip small negatives to zero
    D2[D2 < 0] = 0.0
    D = np.sqrt(D2, dtype=float)
    np.fill_diagonal(D, 0.0)
    return D


def compute_distance_matrix(X: np.ndarray, metric="pearson") -> np.ndarray:
    """
    Compute the (n_samples, n_samples) matrix of the given metric between rows of X.

    @param X: 2D array, shape (n_samples, n_features)
    @param metric: DistanceMetric or its name
    @return: symmetric matrix; use matrix_type_for(metric) to know its direction
    @raises ValueError: if X is not 2D or the metric is unknown
    """
    metric = DistanceMetric(metric)
    X = np.asarray(X, dtype=float)
    if X.ndim != 2:
        raise ValueError("X must be a 2D array (n_samples, n_features).")

    if metric == DistanceMetric.PEARSON:
        return np.atleast_2d(np.corrcoef(X))
    if metric == DistanceMetric.SPEARMAN:
        # Spearman is Pearson on per-sample ranks
        return np.atleast_2d(np.corrcoef(rankdata(X, axis=1)))
    if metric == DistanceMetric.EUCLIDEAN:
        return compute_pairwise_distances(X)
    if metric == DistanceMetric.MANHATTAN:
        return cdist(X, X, metric="cityblock")
    # cosine
    return 1.0 - cdist(X, X, metric="cosine")
