import numpy as np
import pytest

from expression_clustering.config import MatrixType
from expression_clustering.distances import (
    DistanceMetric,
    compute_distance_matrix,
    compute_pairwise_distances,
    matrix_type_for,
)


def test_pairwise_distances_basic_properties():
    """
    Verify basic mathematical properties of pairwise distances.

    Checks:
    - correct output shape
    - zeros on the diagonal
    - symmetry
    - correctness on a known example
    """
    X = np.array([[0, 0], [3, 4], [6, 8]])
    D = compute_pairwise_distances(X)

    assert D.shape == (3, 3)
    assert np.allclose(np.diag(D), 0)
    assert np.allclose(D, D.T)
    assert pytest.approx(D[0, 1]) == 5.0
    assert pytest.approx(D[1, 0]) == 5.0


def test_pairwise_distances_matches_naive():
    """
    Compare vectorized distance computation with a naive reference
    implementation using explicit loops.
    """
    rng = np.random.default_rng(0)
    X = rng.normal(size=(7, 3))
    D = compute_pairwise_distances(X)

    Dn = np.zeros((X.shape[0], X.shape[0]))
    for i in range(X.shape[0]):
        for j in range(X.shape[0]):
            Dn[i, j] = np.linalg.norm(X[i] - X[j])

    assert np.allclose(D, Dn, atol=1e-6)


@pytest.mark.parametrize("metric, expected", [
    ("pearson", MatrixType.SIMILARITY),
    ("spearman", MatrixType.SIMILARITY),
    ("cosine", MatrixType.SIMILARITY),
    ("euclidean", MatrixType.DISTANCE),
    (DistanceMetric.MANHATTAN, MatrixType.DISTANCE),
])
def test_matrix_type_for(metric, expected):
    assert matrix_type_for(metric) == expected


def test_unknown_metric():
    with pytest.raises(ValueError):
        matrix_type_for("chebyshev")
    with pytest.raises(ValueError):
        compute_distance_matrix(np.ones((2, 2)), "chebyshev")


@pytest.mark.parametrize("metric", list(DistanceMetric))
def test_matrices_are_square_and_symmetric(metric):
    X = np.random.default_rng(1).normal(size=(6, 10))
    M = compute_distance_matrix(X, metric)
    assert M.shape == (6, 6)
    assert np.allclose(M, M.T)


def test_known_values():
    X = np.array([[1.0, 2.0, 3.0],
                  [2.0, 4.0, 6.0],
                  [3.0, 2.0, 1.0]])
    assert compute_distance_matrix(X, "pearson")[0, 1] == pytest.approx(1.0)
    assert compute_distance_matrix(X, "pearson")[0, 2] == pytest.approx(-1.0)
    assert compute_distance_matrix(X, "cosine")[0, 1] == pytest.approx(1.0)
    assert compute_distance_matrix(X, "manhattan")[0, 2] == pytest.approx(4.0)


def test_spearman_is_rank_based():
    X = np.array([[1.0, 2.0, 3.0, 4.0],
                  [1.0, 10.0, 100.0, 1000.0]])
    assert compute_distance_matrix(X, "spearman")[0, 1] == pytest.approx(1.0)
    assert compute_distance_matrix(X, "pearson")[0, 1] < 0.99


def test_rejects_non_2d_input():
    with pytest.raises(ValueError):
        compute_distance_matrix(np.arange(5.0), "euclidean")
