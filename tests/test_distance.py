"""
Tests for distance calculation utilities
"""

import pytest
import numpy as np
from kohonen.config import DistanceMetric
from kohonen.distance import DistanceCalculator


@pytest.mark.unit
class TestDistanceCalculator:
    """Test distance calculation methods"""

    @pytest.mark.unit
    def test_squared_euclidean(self):
        a = np.array([[0, 0]])
        b = np.array([[3, 4]])

        distance = DistanceCalculator.squared_euclidean(a, b)
        np.testing.assert_array_almost_equal(distance, [25.0])

    @pytest.mark.unit
    def test_squared_euclidean_broadcast(self):
        weights = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 0.0]])
        observation = np.array([1.0, 0.0])

        distances = DistanceCalculator.squared_euclidean(weights, observation)
        np.testing.assert_array_almost_equal(distances, [1.0, 1.0, 1.0])

    @pytest.mark.unit
    def test_squared_euclidean_matrix_shape(self):
        data = np.random.RandomState(0).random_sample((6, 3))
        weights = np.random.RandomState(1).random_sample((4, 3))

        distances = DistanceCalculator.squared_euclidean(
            data[:, np.newaxis, :], weights[np.newaxis, :, :]
        )
        assert distances.shape == (6, 4)
        assert distances[2, 3] == pytest.approx(np.sum((data[2] - weights[3]) ** 2))

    @pytest.mark.unit
    def test_pairwise_manhattan(self):
        points = np.array([[0, 0], [1, 2], [3, 1]])
        distances = DistanceCalculator.pairwise(points, DistanceMetric.MANHATTAN)
        np.testing.assert_array_equal(distances, [[0, 3, 4], [3, 0, 3], [4, 3, 0]])

    @pytest.mark.unit
    def test_pairwise_chebyshev(self):
        points = np.array([[0, 0], [1, 2], [3, 1]])
        distances = DistanceCalculator.pairwise(points, DistanceMetric.CHEBYSHEV)
        np.testing.assert_array_equal(distances, [[0, 2, 3], [2, 0, 2], [3, 2, 0]])

    @pytest.mark.unit
    def test_pairwise_diagonal_is_zero(self):
        points = np.random.RandomState(3).random_sample((20, 2)) * 1e6
        for metric in DistanceMetric:
            distances = DistanceCalculator.pairwise(points, metric)
            np.testing.assert_array_equal(np.diag(distances), 0.0)
            np.testing.assert_array_equal(distances, distances.T)
