"""
Rectangular numeric data with column statistics and standardization
"""

import numpy as np
from typing import Sequence, Union

from .config import DistanceMetric
from .distance import DistanceCalculator
from .exceptions import InvalidDimensions


class RectangularGrid:
    """
    Validated, non-jagged 2-D array of floats

    A grid must have at least two rows, at least two columns and at least as
    many rows as columns. The input is always copied, so later changes to the
    caller's buffer never reach the grid (and vice versa).
    """

    def __init__(self, rows: Union[np.ndarray, Sequence[Sequence[float]]]):
        """
        Args:
            rows: Row-major numeric data, either a 2D array or a sequence of
                equal-length sequences
        """
        self._data = self._validate(rows)

    @staticmethod
    def _validate(rows) -> np.ndarray:
        if isinstance(rows, np.ndarray):
            if rows.ndim != 2:
                raise InvalidDimensions(
                    f"Grid data must be 2D array, got {rows.ndim}D"
                )
            row_lengths = [rows.shape[1]] * rows.shape[0]
        else:
            rows = list(rows)
            try:
                row_lengths = [len(row) for row in rows]
            except TypeError:
                raise InvalidDimensions("Grid rows must be sequences of numbers")

        n_rows = len(row_lengths)
        if n_rows < 2:
            raise InvalidDimensions(f"Grid needs at least 2 rows, got {n_rows}")

        n_cols = row_lengths[0]
        if n_rows < n_cols:
            raise InvalidDimensions(
                f"Grid needs at least as many rows as columns, got {n_rows}x{n_cols}"
            )
        if n_cols < 2:
            raise InvalidDimensions(f"Grid needs at least 2 columns, got {n_cols}")

        for i, length in enumerate(row_lengths):
            if length != n_cols:
                raise InvalidDimensions(
                    f"Row {i} has {length} values, expected {n_cols}"
                )

        return np.array(rows, dtype=np.float64)

    @property
    def data(self) -> np.ndarray:
        """Read-only view of the grid values"""
        view = self._data.view()
        view.flags.writeable = False
        return view

    @property
    def row_count(self) -> int:
        return self._data.shape[0]

    @property
    def col_count(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self):
        return self._data.shape

    def row(self, index: int) -> np.ndarray:
        return self.data[index]

    def get_obs(self, row: int, column: int) -> float:
        return float(self._data[row, column])

    @staticmethod
    def mean(vector) -> float:
        return float(np.mean(np.asarray(vector, dtype=np.float64)))

    @staticmethod
    def population_variance(vector) -> float:
        """Variance with denominator n (no Bessel correction)"""
        return float(np.var(np.asarray(vector, dtype=np.float64), ddof=0))

    def column_means(self) -> np.ndarray:
        return self._data.mean(axis=0)

    def column_variances(self) -> np.ndarray:
        return self._data.var(axis=0, ddof=0)

    def has_zero_variance_column(self) -> bool:
        """
        Whether any column has a population variance of exactly 0

        A column holding one repeated value always counts, even if rounding
        in the mean leaves a tiny nonzero computed variance. A column whose
        values differ but whose variance underflows to 0.0 (differences
        around 1e-160 and below) also counts, so standardize() never divides
        by a zero deviation.
        """
        constant = np.all(self._data == self._data[0], axis=0)
        return bool(np.any(constant | (self.column_variances() == 0.0)))

    def standardize(self) -> bool:
        """
        Scale every column to zero mean and unit population variance in place

        Skipped entirely when any column has zero variance, since dividing by
        a zero standard deviation is undefined. Callers that need to react to
        that case should check has_zero_variance_column() themselves.

        Returns:
            True if the grid was scaled, False if it was left untouched
        """
        if self.has_zero_variance_column():
            return False

        # No clamping of tiny deviations: a column that differs by one ulp is
        # still divided by its own population standard deviation
        means = self.column_means()
        deviations = np.sqrt(self.column_variances())
        self._data[:] = (self._data - means) / deviations
        return True

    def pairwise_chebyshev_distance(self) -> np.ndarray:
        """
        Maximum-coordinate distance between every pair of rows

        The first two columns are read as (x, y) points; entry (i, j) of the
        n x n result is max(|x_i - x_j|, |y_i - y_j|).
        """
        return DistanceCalculator.pairwise(self._data[:, :2], DistanceMetric.CHEBYSHEV)

    def copy(self) -> "RectangularGrid":
        return RectangularGrid(self._data)

    def __repr__(self) -> str:
        return f"RectangularGrid(rows={self.row_count}, cols={self.col_count})"

    def __str__(self) -> str:
        return "\n".join(" ".join(str(v) for v in row) for row in self._data)
