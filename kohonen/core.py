"""
Core SOM implementation
"""

import numpy as np
import structlog
from datetime import datetime
from typing import Optional, Dict, Any, List, Union, Sequence
from tqdm import tqdm
from sklearn.metrics import pairwise_distances_chunked

from .config import TrainerConfig, TrainerState, ColorChannel
from .distance import DistanceCalculator
from .exceptions import InsufficientRows, NotTrainedError
from .grid import RectangularGrid
from .topology import MapTopology
from .visualization import SOMVisualizer

logger = structlog.get_logger(__name__)


def _nearest_node(distance_chunk: np.ndarray, start: int):
    """Per-row argmin over a chunk; ties go to the lowest node index"""
    nodes = np.argmin(distance_chunk, axis=1)
    return nodes, distance_chunk[np.arange(len(nodes)), nodes]


class SomTrainer:
    """
    Online self-organizing map over a rectangular lattice

    The trainer owns a copy of the training data, the map topology and the
    weight matrix (one prototype vector per node). Training draws random
    observations, pulls every node within the current neighborhood radius
    of the best-matching unit toward the observation, and finally assigns
    each observation to its nearest node.

    Lifecycle: CREATED -> init() -> INITIALIZED -> train() -> TRAINED
    """

    def __init__(
        self,
        data: Union[RectangularGrid, np.ndarray, Sequence[Sequence[float]]],
        width: int,
        height: int,
        epochs: int = 20,
        config: Optional[TrainerConfig] = None,
        rng: Optional[np.random.RandomState] = None,
        verbose: bool = False,
    ):
        """
        Args:
            data: Training data; array-likes are copied into a new grid
            width: Map width in nodes
            height: Map height in nodes
            epochs: Passes over the data; each pass is row_count iterations
            config: Learning-rate and radius parameters. width, height and
                epochs given here override the ones in config.
            rng: Random source for sampling and observation draws. Built
                from config.seed when omitted.
            verbose: Whether to show a progress bar
        """
        MapTopology.check_dimensions(width, height)
        if isinstance(epochs, bool) or not isinstance(epochs, (int, np.integer)) or epochs < 1:
            raise ValueError(f"epochs must be a positive integer, got {epochs!r}")

        self.grid = data if isinstance(data, RectangularGrid) else RectangularGrid(data)
        if not np.all(np.isfinite(self.grid.data)):
            raise ValueError("Input data contains NaN or infinite values")

        base = config.to_dict() if config is not None else {}
        base.update(width=int(width), height=int(height), epochs=int(epochs))
        self.config = TrainerConfig.from_dict(base)
        self.verbose = verbose

        self.n_nodes = self.config.node_count
        if self.n_nodes > self.grid.row_count:
            raise InsufficientRows(self.n_nodes, self.grid.row_count)

        if rng is None:
            rng = np.random.RandomState(self.config.seed)
        self.rng = rng

        self.state = TrainerState.CREATED
        self.topology: Optional[MapTopology] = None
        self.weights: Optional[np.ndarray] = None

        self.initial_learning_rate = self.config.initial_learning_rate
        self.learning_rate = self.initial_learning_rate
        self.initial_neighborhood_radius = 0.0
        self.neighborhood_radius = 0.0

        self.final_nodes: Optional[np.ndarray] = None
        self.final_distances: Optional[np.ndarray] = None

        self.history: List[Dict[str, float]] = []
        self.metadata: Dict[str, Any] = {
            "creation_time": datetime.now().isoformat(),
            "standardized": False,
            "iterations_planned": self.config.epochs * self.grid.row_count,
            "iterations_completed": 0,
            "early_stopped": False,
        }

    @property
    def iterations(self) -> int:
        return self.metadata["iterations_planned"]

    def init(self, rng: Optional[np.random.RandomState] = None) -> "SomTrainer":
        """
        Prepare for training: standardize data, build the map, seed weights

        Standardization is skipped when a column has zero variance and
        training then runs on the raw values.
        """
        rng = rng if rng is not None else self.rng

        standardized = self.grid.standardize()
        self.metadata["standardized"] = standardized
        if not standardized:
            logger.warning(
                "Zero-variance column found, training on unscaled data",
                rows=self.grid.row_count,
                cols=self.grid.col_count,
            )

        self.topology = MapTopology(self.config.width, self.config.height)

        # Bootstrap sample of distinct rows as starting prototypes
        indices = rng.choice(self.grid.row_count, self.n_nodes, replace=False)
        self.weights = np.array(self.grid.data[indices], dtype=np.float64)

        self.learning_rate = self.initial_learning_rate
        self.initial_neighborhood_radius = (
            self.config.radius_factor * self.topology.distance_variance()
        )
        self.neighborhood_radius = self.initial_neighborhood_radius

        self.history = []
        self.metadata["early_stopped"] = False
        self.metadata["iterations_completed"] = 0
        self.final_nodes = None
        self.final_distances = None
        self.state = TrainerState.INITIALIZED
        logger.debug(
            "SOM initialized",
            nodes=self.n_nodes,
            features=self.grid.col_count,
            initial_radius=self.initial_neighborhood_radius,
        )
        return self

    def _find_bmu(self, observation: np.ndarray) -> int:
        """Nearest node by squared Euclidean distance; ties go to the lowest index"""
        distances = DistanceCalculator.squared_euclidean(self.weights, observation)
        return int(np.argmin(distances))

    def train(self, rng: Optional[np.random.RandomState] = None) -> "SomTrainer":
        """
        Run the online training loop and assign every observation

        Runs epochs * row_count iterations unless the learning rate or the
        neighborhood radius decays to zero first.

        Returns:
            self for method chaining
        """
        # A trained map is re-seeded so every run starts from fresh parameters
        if self.state != TrainerState.INITIALIZED:
            self.init(rng)
        rng = rng if rng is not None else self.rng

        data = self.grid.data
        n_rows = self.grid.row_count
        iterations = self.iterations
        lr_step = self.initial_learning_rate / iterations
        distance_matrix = self.topology.distance_matrix

        iterator = range(iterations)
        if self.verbose:
            iterator = tqdm(iterator, desc="Training SOM")

        completed = 0
        for t in iterator:
            observation = data[rng.randint(n_rows)]
            bmu = self._find_bmu(observation)

            self.learning_rate -= lr_step
            self.neighborhood_radius = self.initial_neighborhood_radius * np.exp(
                -self.config.radius_decay * t / iterations
            )

            # Decayed parameters can drift to or below zero near the end
            if self.learning_rate <= 0 or self.neighborhood_radius <= 0:
                self.metadata["early_stopped"] = True
                logger.debug(
                    "Training stopped early",
                    iteration=t,
                    learning_rate=self.learning_rate,
                    neighborhood_radius=self.neighborhood_radius,
                )
                break

            neighborhood = distance_matrix[bmu] <= self.neighborhood_radius
            self.weights[neighborhood] += self.learning_rate * (
                observation - self.weights[neighborhood]
            )
            completed = t + 1

            if completed % n_rows == 0:
                self.history.append(
                    {
                        "epoch": completed // n_rows,
                        "iteration": completed,
                        "learning_rate": float(self.learning_rate),
                        "neighborhood_radius": float(self.neighborhood_radius),
                    }
                )
                if self.verbose:
                    iterator.set_postfix(
                        {
                            "α": f"{self.learning_rate:.4f}",
                            "r": f"{self.neighborhood_radius:.3f}",
                        }
                    )

        self.metadata["iterations_completed"] = completed
        self.metadata["last_training"] = datetime.now().isoformat()

        self._assign()
        self.state = TrainerState.TRAINED

        logger.info(
            "SOM training completed",
            iterations=completed,
            early_stopped=self.metadata["early_stopped"],
            quantization_error=self.quantization_error(),
        )
        return self

    def _assign(self) -> None:
        """Record the nearest node and its squared distance for every row"""
        data = self.grid.data
        nodes = []
        distances = []
        # Rows are scanned in chunks, so memory stays bounded by a
        # (chunk_rows, nodes) block instead of the full rows x nodes x cols
        for chunk_nodes, chunk_distances in pairwise_distances_chunked(
            data, self.weights, metric="sqeuclidean", reduce_func=_nearest_node
        ):
            nodes.append(chunk_nodes)
            distances.append(chunk_distances)
        self.final_nodes = np.concatenate(nodes).astype(np.int64)
        self.final_distances = np.concatenate(distances)

    def _check_trained(self):
        """Check if SOM has been trained, raise informative error if not"""
        if self.state != TrainerState.TRAINED:
            raise NotTrainedError("SOM has not been trained yet. Call train() first.")

    def get_nodes(self) -> np.ndarray:
        """Node index of every observation, in input order"""
        self._check_trained()
        return self.final_nodes.copy()

    def get_distances(self) -> np.ndarray:
        """Squared residual to the assigned node, paired with get_nodes()"""
        self._check_trained()
        return self.final_distances.copy()

    def get_node_counts(self) -> np.ndarray:
        """Number of observations assigned to each node"""
        self._check_trained()
        return np.bincount(self.final_nodes, minlength=self.n_nodes)

    def get_weights(self) -> np.ndarray:
        """Get weights in grid format"""
        self._check_trained()
        return self.weights.reshape(
            self.config.width, self.config.height, self.grid.col_count
        )

    def quantization_error(self) -> float:
        """Mean squared residual over all observations"""
        self._check_trained()
        return float(np.mean(self.final_distances))

    def get_info(self) -> Dict:
        """Get summary information about the SOM"""
        return {
            "config": self.config.to_dict(),
            "metadata": self.metadata,
            "state": self.state.value,
            "shape": (self.config.width, self.config.height),
            "n_nodes": self.n_nodes,
            "n_features": self.grid.col_count,
            "n_observations": self.grid.row_count,
        }

    # Visualization methods
    def plot_node_counts(
        self,
        channel: ColorChannel = ColorChannel.RED,
        show_plot=True,
        save_path="node_counts.png",
    ):
        """Shade each node by how many observations it holds"""
        SOMVisualizer.plot_node_counts(self, channel, show_plot, save_path)
        return self

    def plot_training_progress(self, show_plot=True, save_path="training_progress.png"):
        """Plot learning rate and neighborhood radius per epoch"""
        SOMVisualizer.plot_training_progress(self, show_plot, save_path)
        return self
