"""
Utilities Package

Shared building blocks used across the engine: the error taxonomy and the
injected random source.

Exported Classes:
    EvolearnError, ShapeMismatch, DimensionMismatch, IndexOutOfRange,
    InvalidConfiguration, NumericalInstability: Error taxonomy
    Distribution: Uniform / Gaussian sampling selector
    RandomSource: Seedable, lock-protected random number source
"""

from evolearn.utils.errors import (
    EvolearnError,
    ShapeMismatch,
    DimensionMismatch,
    IndexOutOfRange,
    InvalidConfiguration,
    NumericalInstability
)
from evolearn.utils.random_source import Distribution, RandomSource

__all__ = ['EvolearnError',
           'ShapeMismatch',
           'DimensionMismatch',
           'IndexOutOfRange',
           'InvalidConfiguration',
           'NumericalInstability',
           'Distribution',
           'RandomSource']
