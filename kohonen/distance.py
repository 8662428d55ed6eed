"""Distance calculation utilities for SOM."""

import numpy as np
from sklearn.metrics import pairwise_distances

from .config import DistanceMetric


class DistanceCalculator:
    """Calculate distances using different metrics."""

    @staticmethod
    def squared_euclidean(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Squared Euclidean distance along the last axis.

        No square root is taken, so BMU matching and the reported
        residuals use identical values.
        """
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return np.sum(diff * diff, axis=-1)

    @staticmethod
    def pairwise(points: np.ndarray, metric: DistanceMetric) -> np.ndarray:
        """Symmetric n x n distance matrix between rows of ``points``."""
        points = np.asarray(points, dtype=np.float64)
        distances = pairwise_distances(points, metric=metric.value)
        # Exact zeros on the diagonal regardless of backend rounding
        np.fill_diagonal(distances, 0.0)
        return distances
