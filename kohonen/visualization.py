"""
Visualization utilities for SOM
"""

import io
import numpy as np
import os
from pathlib import Path
from typing import TYPE_CHECKING

# Set matplotlib backend to Agg (non-interactive) before importing pyplot
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from .config import ColorChannel  # noqa: E402

if TYPE_CHECKING:
    from .core import SomTrainer

# Lowest intensity for a node holding at least one observation
MIN_OCCUPIED_SHADE = 0.15
# Annotate counts only when cells are large enough to read
MAX_ANNOTATED_NODES = 400


def ensure_plots_dir(save_path: str) -> str:
    """Ensure plots directory exists and return full path"""
    if not os.path.isabs(save_path):
        plots_dir = Path("plots")
        plots_dir.mkdir(exist_ok=True)
        return str(plots_dir / save_path)
    return save_path


def count_image(
    counts: np.ndarray, width: int, height: int, channel: ColorChannel
) -> np.ndarray:
    """
    Build a (height, width, 3) RGB image from per-node counts

    Node i sits at x = i // height, y = i % height. Intensity in the chosen
    channel scales with count / max(count); empty nodes stay black.
    """
    counts = np.asarray(counts, dtype=np.float64).reshape(width, height)
    peak = counts.max()
    shade = counts / peak if peak > 0 else np.zeros_like(counts)
    shade = np.where(counts > 0, np.maximum(shade, MIN_OCCUPIED_SHADE), 0.0)

    img = np.zeros((height, width, 3))
    img[:, :, channel.index] = shade.T
    return img


class SOMVisualizer:
    """Visualization utilities for SOM analysis"""

    @staticmethod
    def _draw_node_counts(som: "SomTrainer", channel: ColorChannel):
        counts = som.get_node_counts()
        width, height = som.config.width, som.config.height
        img = count_image(counts, width, height, channel)

        plt.figure(figsize=(8, 8))
        plt.imshow(img, interpolation="nearest", origin="lower")
        plt.title(f"Observations per Node ({width}x{height})")
        plt.xlabel("x")
        plt.ylabel("y")
        plt.xticks(range(width))
        plt.yticks(range(height))

        if som.n_nodes <= MAX_ANNOTATED_NODES:
            for index, count in enumerate(counts):
                x, y = divmod(index, height)
                plt.text(x, y, str(count), ha="center", va="center", color="white")

    @staticmethod
    def node_counts_png(
        som: "SomTrainer", channel: ColorChannel = ColorChannel.RED
    ) -> bytes:
        """Render the node count heatmap to PNG bytes"""
        SOMVisualizer._draw_node_counts(som, channel)
        buffer = io.BytesIO()
        plt.savefig(buffer, format="png", dpi=100, bbox_inches="tight")
        plt.close()
        return buffer.getvalue()

    @staticmethod
    def plot_node_counts(
        som: "SomTrainer",
        channel: ColorChannel = ColorChannel.RED,
        show_plot: bool = True,
        save_path: str = "node_counts.png",
    ):
        """
        Shade every map node by the number of observations assigned to it

        Args:
            som: Trained SomTrainer instance
            channel: Color channel carrying the shading
            show_plot: Whether to display the plot
            save_path: Path to save the plot image (None to skip saving)
        """
        SOMVisualizer._draw_node_counts(som, channel)

        if save_path:
            full_path = ensure_plots_dir(save_path)
            plt.savefig(full_path, dpi=150, bbox_inches="tight")
            if som.verbose:
                print(f"Node count plot saved to {full_path}")

        if show_plot:
            plt.show()
        else:
            plt.close()

    @staticmethod
    def plot_training_progress(
        som: "SomTrainer", show_plot: bool = True, save_path: str = "training_progress.png"
    ):
        """
        Plot learning rate and neighborhood radius at the end of each epoch

        Args:
            som: Trained SomTrainer instance
            show_plot: Whether to display the plot
            save_path: Path to save the plot image (None to skip saving)
        """
        history = som.history
        if not history:
            if som.verbose:
                print("No training history data available")
            return

        epochs = [h["epoch"] for h in history]
        lr_values = [h["learning_rate"] for h in history]
        radius_values = [h["neighborhood_radius"] for h in history]

        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 5))

        ax1.plot(epochs, lr_values, "g-", linewidth=2)
        ax1.set_xlabel("Epoch")
        ax1.set_ylabel("Learning Rate")
        ax1.set_title("Learning Rate Decay")
        ax1.grid(True, alpha=0.3)

        ax2.plot(epochs, radius_values, "r-", linewidth=2)
        ax2.set_xlabel("Epoch")
        ax2.set_ylabel("Radius")
        ax2.set_title("Neighborhood Radius Decay")
        ax2.grid(True, alpha=0.3)

        plt.tight_layout()

        if save_path:
            full_path = ensure_plots_dir(save_path)
            plt.savefig(full_path, dpi=150, bbox_inches="tight")
            if som.verbose:
                print(f"Training progress plot saved to {full_path}")

        if show_plot:
            plt.show()
        else:
            plt.close()
