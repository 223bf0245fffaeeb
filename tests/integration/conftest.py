"""
Shared fixtures for integration tests.
"""

from itertools import count
from pathlib   import Path

import pytest

from evolearn.genotype import Individual

EXAMPLES_DIR = Path(__file__).parent.parent.parent / "examples"


@pytest.fixture(autouse=True)
def reset_individual_ids():
    """Reset the Individual ID generator so IDs start from 0 in each test."""
    Individual._id_generator = count(0)
    yield
    Individual._id_generator = count(0)


@pytest.fixture
def xor_config_path():
    """Path of the XOR example configuration."""
    return EXAMPLES_DIR / "configs" / "config_xor.ini"


@pytest.fixture
def regression_config_path():
    """Path of the regression example configuration."""
    return EXAMPLES_DIR / "configs" / "config_regression.ini"
