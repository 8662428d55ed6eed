"""
Kohonen Self-Organizing Map Package

Online SOM training on a rectangular lattice: validated data grids,
map topology, training and nearest-node assignment.
"""

from .core import SomTrainer
from .grid import RectangularGrid
from .topology import MapTopology
from .config import TrainerConfig, TrainerState, ColorChannel, DistanceMetric
from .exceptions import (
    SOMError,
    InvalidDimensions,
    InvalidTopology,
    InsufficientRows,
    NotTrainedError,
)
from .observability import (
    setup_logging,
    trace_operation,
    get_metrics,
    get_health_status,
    log_training_metrics,
    RequestTracingMiddleware,
)

__version__ = "0.1.0"

__all__ = [
    "SomTrainer",
    "RectangularGrid",
    "MapTopology",
    "TrainerConfig",
    "TrainerState",
    "ColorChannel",
    "DistanceMetric",
    "SOMError",
    "InvalidDimensions",
    "InvalidTopology",
    "InsufficientRows",
    "NotTrainedError",
    "setup_logging",
    "trace_operation",
    "get_metrics",
    "get_health_status",
    "log_training_metrics",
    "RequestTracingMiddleware",
]
