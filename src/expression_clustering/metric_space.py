"""
Metric spaces consumed by the generic k-means engine.

A metric space bundles the operations k-means needs on its elements:
a distance, an addition, a division by a count and a zero element to
start sums from. Stateful spaces (e.g. weighted distances) are plain
instances carrying their parameters.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

import numpy as np

__all__ = [
    "MetricSpace",
    "ScalarSpace",
    "VectorSpace",
    "EuclideanSpace",
    "ManhattanSpace",
    "WeightedEuclideanSpace",
]


class MetricSpace(ABC):
    """
    Capability set {distance, add, divide, zero} over an element type.
    """

    @abstractmethod
    def distance(self, a: Any, b: Any) -> float:
        """
        @param a: first element
        @param b: second element
        @return: non-negative distance between a and b
        """

    @abstractmethod
    def add(self, a: Any, b: Any) -> Any:
        """Return a new element a + b; neither argument is modified."""

    @abstractmethod
    def divide(self, a: Any, count: int) -> Any:
        """Return a new element a / count."""

    @abstractmethod
    def zero(self) -> Any:
        """Return the neutral element of add."""

    def same(self, a: Any, b: Any) -> bool:
        """Whether a and b hold the same value (used for distinct centroids)."""
        return bool(a == b)

    def order_key(self, a: Any) -> Optional[Any]:
        """
        Sort key used to relabel clusters by ascending centroid.

        @return: a comparable key, or None if the space has no natural order
        """
        return None


class ScalarSpace(MetricSpace):
    """Real numbers with the absolute difference."""

    def distance(self, a: float, b: float) -> float:
        return abs(a - b)

    def add(self, a: float, b: float) -> float:
        return a + b

    def divide(self, a: float, count: int) -> float:
        return a / count

    def zero(self) -> float:
        return 0.0

    def order_key(self, a: float) -> float:
        return float(a)


class VectorSpace(MetricSpace):
    """
    Fixed-length real vectors stored as 1D numpy arrays.

    Centroids are ordered lexicographically by their coordinates.
    Subclasses provide the distance.
    """

    def __init__(self, dim: int):
        if dim < 1:
            raise ValueError(f"Vector dimension must be >= 1, got {dim}.")
        self.dim = dim

    def add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.asarray(a, dtype=float) + np.asarray(b, dtype=float)

    def divide(self, a: np.ndarray, count: int) -> np.ndarray:
        return np.asarray(a, dtype=float) / count

    def zero(self) -> np.ndarray:
        return np.zeros(self.dim, dtype=float)

    def same(self, a: np.ndarray, b: np.ndarray) -> bool:
        return bool(np.array_equal(a, b))

    def order_key(self, a: np.ndarray) -> Tuple[float, ...]:
        return tuple(float(x) for x in np.asarray(a).ravel())


class EuclideanSpace(VectorSpace):
    """Vectors with the L2 distance."""

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
        return float(np.sqrt(np.dot(diff, diff)))


class ManhattanSpace(VectorSpace):
    """Vectors with the L1 distance."""

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.sum(np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))))


class WeightedEuclideanSpace(VectorSpace):
    """
    Vectors with a per-coordinate weighted L2 distance
    sqrt(sum_i w_i * (a_i - b_i)^2).
    """

    def __init__(self, weights):
        weights = np.asarray(weights, dtype=float)
        if weights.ndim != 1:
            raise ValueError("weights must be a 1D array.")
        if np.any(weights < 0):
            raise ValueError("weights must be non-negative.")
        super().__init__(weights.shape[0])
        self.weights = weights

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
        return float(np.sqrt(np.sum(self.weights * diff * diff)))
