"""
Tensor Module

A Tensor is an NDArray of any rank (at least one axis) restricted to the
elementwise algebra inherited from NDArray. Vector and Matrix are the
rank-specialized arrays that add linear-algebra operations.

Classes:
    Tensor: Arbitrary-rank array with elementwise operations only
"""

from typing import Optional

from evolearn.linalg.ndarray      import NDArray
from evolearn.utils.random_source import RandomSource


class Tensor(NDArray):
    """Arbitrary-rank array (rank >= 1) with elementwise operations only."""

    @classmethod
    def random(cls, shape, low=0.0, high=1.0, rng: Optional[RandomSource] = None) -> "Tensor":
        tensor = cls.zeros(shape)
        tensor.randomize(low, high, rng)
        return tensor

    @classmethod
    def random_normal(cls, shape, mean=0.0, stdev=1.0, rng: Optional[RandomSource] = None) -> "Tensor":
        tensor = cls.zeros(shape)
        tensor.randomize_normal(mean, stdev, rng)
        return tensor

    def sum(self) -> float:
        return float(self._data.sum())

    def max(self) -> float:
        return float(self._data.max())

    def min(self) -> float:
        return float(self._data.min())
