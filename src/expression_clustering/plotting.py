from typing import Optional

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
import numpy as np
from scipy.cluster.hierarchy import dendrogram

from expression_clustering.kmeans import EXCLUDED


def cluster_order(labels: np.ndarray) -> np.ndarray:
    """
    Sample order that makes every cluster contiguous (stable within a cluster).

    Args:
        labels (np.ndarray): Cluster labels of shape (n_samples,).
    """
    return np.argsort(np.asarray(labels), kind="stable")


def plot_distance_heatmap(axis: Axes, matrix: np.ndarray, labels: np.ndarray) -> Axes:
    """
    Plots the pairwise matrix with samples grouped by cluster.

    Args:
        matrix (np.ndarray): Pairwise matrix of shape (n_samples, n_samples).
        labels (np.ndarray): Cluster labels of shape (n_samples,).
    """
    matrix = np.asarray(matrix, dtype=float)
    labels = np.asarray(labels)
    order = cluster_order(labels)
    image = axis.imshow(matrix[np.ix_(order, order)], cmap="viridis", interpolation="nearest")
    axis.figure.colorbar(image, ax=axis)

    # cluster boundaries
    sorted_labels = labels[order]
    for edge in np.flatnonzero(sorted_labels[1:] != sorted_labels[:-1]) + 1:
        axis.axhline(edge - 0.5, color="white", linewidth=1)
        axis.axvline(edge - 0.5, color="white", linewidth=1)

    axis.set_title('Pairwise matrix grouped by cluster')
    axis.set_xlabel('Sample')
    axis.set_ylabel('Sample')
    return axis


def plot_clusters(axis: Axes, X: np.ndarray, labels: np.ndarray) -> Axes:
    """
    Plots the clustered data points in 2D.

    Args:
        X (np.ndarray): Data points of shape (n_samples, 2).
        labels (np.ndarray): Cluster labels of shape (n_samples,).
    """
    X = np.asarray(X, dtype=float)
    labels = np.asarray(labels)
    for label in np.unique(labels):
        cluster_points = X[labels == label]
        name = 'Excluded' if label == EXCLUDED else f'Cluster {label}'
        axis.scatter(cluster_points[:, 0], cluster_points[:, 1], label=name)

    axis.set_title('Clustering Results')
    axis.set_xlabel('Feature 1')
    axis.set_ylabel('Feature 2')
    axis.legend()
    axis.grid(True)
    return axis


def plot_dendrogram(Z: np.ndarray, axis: Optional[Axes] = None) -> Axes:
    """
    Plots the dendrogram for the hierarchical clustering.

    Args:
        Z (np.ndarray): Full linkage matrix of shape (n_samples - 1, 4), built on distances.
    """
    if axis is None:
        _, axis = plt.subplots(figsize=(10, 7))
    dendrogram(Z, ax=axis)
    axis.set_title('Dendrogram for Agglomerative Clustering')
    axis.set_xlabel('Sample Index')
    axis.set_ylabel('Distance')
    return axis


if __name__ == "__main__":
    # Example usage
    from expression_clustering.agglomerative_clustering import agglomerative
    rng = np.random.RandomState(0)
    A = rng.normal(loc=0.0, scale=0.3, size=(10, 2))
    B = rng.normal(loc=2.0, scale=0.3, size=(8, 2))
    X = np.vstack([A, B])

    labels, Z = agglomerative(X, n_clusters=1, linkage='average', return_linkage=True)
    plot_dendrogram(Z)
    plt.show()
