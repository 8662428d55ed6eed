"""
Pytest configuration and fixtures for SOM tests
"""

import pytest
import numpy as np
from kohonen import SomTrainer, TrainerConfig, RectangularGrid


@pytest.fixture
def sample_data():
    """Generate sample 3-feature data for testing"""
    np.random.seed(42)
    return np.random.random((50, 3))


@pytest.fixture
def small_data():
    """Generate small dataset for quick tests"""
    np.random.seed(42)
    return np.random.random((10, 2))


@pytest.fixture
def diagonal_rows():
    return [[1, 1], [2, 2], [3, 3]]


@pytest.fixture
def constant_column_rows():
    return [[1, 5], [1, 6], [1, 7]]


@pytest.fixture
def basic_config():
    """Basic trainer configuration for testing"""
    return TrainerConfig(width=3, height=3, epochs=5, seed=42)


@pytest.fixture
def untrained_som(basic_config, sample_data):
    return SomTrainer(
        sample_data, basic_config.width, basic_config.height, basic_config.epochs,
        config=basic_config,
    )


@pytest.fixture
def trained_som(untrained_som):
    """Pre-trained SOM for testing"""
    return untrained_som.train()


@pytest.fixture
def sample_grid(sample_data):
    return RectangularGrid(sample_data)
