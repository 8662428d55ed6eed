"""
Configuration classes and enums for SOM
"""

from enum import Enum
from dataclasses import dataclass, asdict
from typing import Optional, Dict


class DistanceMetric(Enum):
    """Metrics available for pairwise distance matrices"""

    MANHATTAN = "manhattan"
    CHEBYSHEV = "chebyshev"


class ColorChannel(Enum):
    """Shading channel used when rendering node counts"""

    RED = "red"
    GREEN = "green"
    BLUE = "blue"

    @property
    def index(self) -> int:
        return ("red", "green", "blue").index(self.value)


class TrainerState(Enum):
    CREATED = "created"
    INITIALIZED = "initialized"
    TRAINED = "trained"


@dataclass
class TrainerConfig:
    """Centralized configuration for SOM training parameters"""

    width: int
    height: int
    epochs: int = 20

    # Linear decay from this value toward 0 over all iterations
    initial_learning_rate: float = 0.5

    # Initial radius = radius_factor * variance of the node distance matrix.
    # 1.75 covers about two thirds of node pairs by Chebyshev's inequality.
    radius_factor: float = 1.75
    # radius(t) = initial * exp(-radius_decay * t / T)
    radius_decay: float = 3.0

    seed: Optional[int] = None

    @property
    def node_count(self) -> int:
        return self.width * self.height

    def to_dict(self) -> Dict:
        """Convert config to dictionary for serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict) -> "TrainerConfig":
        """Create config from dictionary, ignoring unknown keys"""
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in config_dict.items() if k in known})
