"""Pytest configuration and shared fixtures."""

import pytest

from evolearn.run.config          import Config
from evolearn.utils.random_source import RandomSource


@pytest.fixture
def rng():
    """Provide a seeded random source."""
    return RandomSource(42)


@pytest.fixture
def xor_inputs():
    """The four XOR input pairs."""
    return [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]


@pytest.fixture
def xor_outputs():
    """The XOR targets, one per input pair."""
    return [[0.0], [1.0], [1.0], [0.0]]


@pytest.fixture
def default_config():
    """A Config holding the built-in defaults, for a 2-2-1 network."""
    config = Config()
    config.num_inputs    = 2
    config.num_outputs   = 1
    config.hidden_layers = [2]
    config.seed          = 42
    return config
