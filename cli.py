"""
Command Line Interface for Kohonen SOM with observability
"""

import argparse
import json
import os
import sys
import time
import structlog
from pathlib import Path

import numpy as np
import pandas as pd

from kohonen import (
    SomTrainer,
    RectangularGrid,
    ColorChannel,
    TrainerConfig,
    setup_logging,
    trace_operation,
    log_training_metrics,
    __version__,
)

# Initialize observability
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "WARNING"),
    json_format=False,  # Use console format for CLI
)

logger = structlog.get_logger()


def _load_csv(file_path: str) -> np.ndarray:
    """Read a headed CSV whose header fixes the column count"""
    df = pd.read_csv(file_path, skipinitialspace=True, index_col=False)

    if df.shape[1] < 2:
        raise ValueError("The file should have at least two columns.")

    non_numeric = [c for c in df.columns if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise ValueError("The file should contain only numeric data.")

    if df.isna().any().any():
        raise ValueError(
            "Every row should contain one number for every column in the file header."
        )

    if df.shape[0] < df.shape[1]:
        raise ValueError(
            "There must be at least as many data rows as columns in the file."
        )

    return df.to_numpy(dtype=np.float64)


def load_data(file_path: str, format: str = "auto") -> np.ndarray:
    """Load a numeric matrix from CSV, JSON, NPY or NPZ"""
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    # Auto-detect format if not specified
    if format == "auto":
        format = path.suffix.lower()

    try:
        if format in [".csv", "csv"]:
            return _load_csv(file_path)
        elif format in [".json", "json"]:
            with open(file_path, "r") as f:
                data = json.load(f)
            return np.array(data, dtype=np.float64)
        elif format in [".npy", "npy"]:
            return np.load(file_path).astype(np.float64)
        elif format in [".npz", "npz"]:
            loaded = np.load(file_path)
            # Use first array if multiple arrays in npz
            key = list(loaded.keys())[0]
            return loaded[key].astype(np.float64)
        else:
            raise ValueError(f"Unsupported format: {format}")
    except ValueError as e:
        # pandas parser errors are ValueError subclasses
        raise ValueError(f"Failed to load data from {file_path}: {e}")


def write_assignments(som: SomTrainer, output_path: str) -> None:
    """Write node assignments and residuals as JSON"""
    results = {
        "width": som.config.width,
        "height": som.config.height,
        "nodes": som.get_nodes().tolist(),
        "distances": som.get_distances().tolist(),
        "node_counts": som.get_node_counts().tolist(),
    }
    with open(output_path, "w") as f:
        json.dump(results, f, indent=2)


def train_command(args) -> None:
    """Train a SOM and write per-observation assignments"""
    print(f"Loading data from: {args.input}")
    try:
        data = load_data(args.input, args.format)
        print(f"Data shape: {data.shape}")

        grid = RectangularGrid(data)
        if grid.has_zero_variance_column():
            print(
                "Warning: a column has zero variance; training on unscaled data",
                file=sys.stderr,
            )

        config = TrainerConfig(
            width=args.width, height=args.height, epochs=args.epochs, seed=args.seed
        )
        print(f"Training SOM: {args.width}x{args.height}, {args.epochs} epochs")

        with trace_operation(
            "som_training", width=args.width, height=args.height, rows=grid.row_count
        ):
            start_time = time.time()
            som = SomTrainer(
                grid,
                args.width,
                args.height,
                args.epochs,
                config=config,
                verbose=args.verbose,
            )
            som.train()
            log_training_metrics(som, time.time() - start_time)

        print("Training completed!")
        print(f"Quantization Error: {som.quantization_error():.4f}")

        write_assignments(som, args.output)
        print(f"Assignments saved to: {args.output}")

        if args.plot:
            som.plot_node_counts(
                channel=ColorChannel(args.channel), show_plot=False, save_path=args.plot
            )
            print(f"Node count plot saved to: {args.plot}")

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def validate_command(args) -> None:
    """Check that a data file can be trained on and report column statistics"""
    try:
        data = load_data(args.input, args.format)
        grid = RectangularGrid(data)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
        return

    print(f"Data shape: {grid.shape}")
    print("\n=== Columns ===")
    for i, (mean, var) in enumerate(zip(grid.column_means(), grid.column_variances())):
        print(f"{i}: mean={mean:.4f} variance={var:.4f}")
    print(f"\nZero-variance column: {grid.has_zero_variance_column()}")
    print(f"Largest map: {grid.row_count} nodes")


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Kohonen Self-Organizing Map CLI",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Train command
    train_parser = subparsers.add_parser("train", help="Train a SOM on a data file")
    train_parser.add_argument("input", help="Input data file")
    train_parser.add_argument(
        "--output", "-o", default="assignments.json", help="Output assignments file"
    )
    train_parser.add_argument("--width", type=int, default=5, help="Map width")
    train_parser.add_argument("--height", type=int, default=5, help="Map height")
    train_parser.add_argument(
        "--epochs", type=int, default=20, help="Number of passes over the data"
    )
    train_parser.add_argument(
        "--seed", type=int, help="Random seed for reproducibility"
    )
    train_parser.add_argument(
        "--channel",
        choices=[c.value for c in ColorChannel],
        default="red",
        help="Shading channel for the node count plot",
    )
    train_parser.add_argument("--plot", help="Save a node count plot to this file")
    train_parser.add_argument(
        "--format",
        choices=["auto", "csv", "json", "npy", "npz"],
        default="auto",
        help="Input data format",
    )
    train_parser.add_argument("--verbose", action="store_true", help="Verbose output")

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Check a data file and show column statistics"
    )
    validate_parser.add_argument("input", help="Input data file")
    validate_parser.add_argument(
        "--format",
        choices=["auto", "csv", "json", "npy", "npz"],
        default="auto",
        help="Input data format",
    )

    # Version command
    subparsers.add_parser("version", help="Show version information")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "train":
        train_command(args)
    elif args.command == "validate":
        validate_command(args)
    elif args.command == "version":
        print(f"Kohonen SOM CLI v{__version__}")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
