"""
Rectangular map lattice and node-to-node distances
"""

import numbers
import numpy as np
from typing import Tuple

from .config import DistanceMetric
from .distance import DistanceCalculator
from .exceptions import InvalidTopology


class MapTopology:
    """
    Node coordinates and Manhattan distance matrix of a width x height lattice

    Nodes are enumerated with x in the outer loop and y in the inner loop,
    so node ``i`` sits at ``(i // height, i % height)``.
    """

    def __init__(self, width: int, height: int):
        self.check_dimensions(width, height)
        self.width = int(width)
        self.height = int(height)
        self.node_count = self.width * self.height

        self.coordinates = np.array(
            [[x, y] for x in range(self.width) for y in range(self.height)],
            dtype=np.int64,
        )
        self.distance_matrix = DistanceCalculator.pairwise(
            self.coordinates, DistanceMetric.MANHATTAN
        )

        self.coordinates.flags.writeable = False
        self.distance_matrix.flags.writeable = False

    @staticmethod
    def check_dimensions(width, height) -> None:
        """Raise InvalidTopology unless both dimensions are positive integers"""
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise InvalidTopology(f"Map {name} must be an integer, got {value!r}")
            if value <= 0:
                raise InvalidTopology(f"Map {name} must be positive, got {value}")

    def node_coordinates(self, index: int) -> Tuple[int, int]:
        if not 0 <= index < self.node_count:
            raise IndexError(f"Node index {index} out of range")
        return divmod(int(index), self.height)

    def node_index(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Coordinates ({x}, {y}) outside {self.width}x{self.height} map")
        return x * self.height + y

    def neighbors_within(self, node: int, radius: float) -> np.ndarray:
        """Boolean mask of nodes whose lattice distance to ``node`` is <= radius"""
        return self.distance_matrix[node] <= radius

    def distance_variance(self) -> float:
        """Population variance of every entry of the distance matrix"""
        return float(np.var(self.distance_matrix, ddof=0))

    def __repr__(self) -> str:
        return f"MapTopology(width={self.width}, height={self.height})"
