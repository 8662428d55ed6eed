"""
Exception types raised by the SOM core
"""


class SOMError(Exception):
    """Base class for all SOM validation errors"""


class InvalidDimensions(SOMError, ValueError):
    """Training data does not form a valid rectangular grid.

    Raised when there are fewer than two rows or columns, fewer rows than
    columns, or rows of differing lengths.
    """


class InvalidTopology(SOMError, ValueError):
    """Map width or height is not a positive integer"""


class InsufficientRows(SOMError, ValueError):
    """More map nodes than data rows to seed them from"""

    def __init__(self, node_count: int, row_count: int):
        self.node_count = node_count
        self.row_count = row_count
        super().__init__(
            f"Map has {node_count} nodes but data has only {row_count} rows; "
            "initial weights are sampled without replacement"
        )


class NotTrainedError(SOMError, RuntimeError):
    """Results were requested before training finished"""
