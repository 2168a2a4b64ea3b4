"""
Shared pytest fixtures for StatPower tests.
"""

import warnings

import numpy as np
import pytest

from tests.config import SEED, SMALL_GRID


@pytest.fixture
def rng():
    """Seeded MT19937 generator."""
    return np.random.Generator(np.random.MT19937(SEED))


@pytest.fixture
def small_config():
    """Fast simulation config (40 iterations in total)."""
    from statpower import SimulationConfig

    return SimulationConfig.from_dict(SMALL_GRID)


@pytest.fixture
def small_simulation(small_config):
    """PowerSimulation on the small grid."""
    from statpower import PowerSimulation

    return PowerSimulation(small_config)


@pytest.fixture
def data_config():
    """Default data generation settings with fewer features."""
    from statpower import DataGenerationConfig

    return DataGenerationConfig(num_features=4)


@pytest.fixture
def quiet_warnings():
    """Silence low-simulation-count and similar UserWarnings."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        yield


@pytest.fixture
def two_sample():
    """Two-sample t-test record, d = 0.5, N = 128."""
    from statpower import TestParameters

    return TestParameters("two-sample-t", sample_size=128, effect_size=0.5)
