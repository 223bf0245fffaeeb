"""
Vector Module

Rank-1 arrays with the usual vector-space operations: inner and outer
products, p-norms, normalization and orthogonality checks.

Classes:
    Vector: Rank-1 NDArray
"""

from numbers import Real
from typing  import Optional

import numpy as np

from evolearn.linalg.ndarray      import NDArray
from evolearn.utils.errors        import InvalidConfiguration, NumericalInstability, ShapeMismatch
from evolearn.utils.random_source import RandomSource


class Vector(NDArray):
    """
    Rank-1 array.

    Public Properties:
        length: Number of elements

    Public Methods:
        dot(other):                Inner product
        outer(other):              Outer product (Matrix of shape (len(self), len(other)))
        norm(p), max_norm():       p-norm and infinity norm
        unit():                    Normalized copy
        is_unit(), is_orthogonal(), is_orthonormal(): Predicates within a tolerance
    """

    def _check_rank(self, shape):
        if len(shape) != 1:
            raise ShapeMismatch(f"A Vector has exactly one axis, got shape {shape}",
                                expected=1, actual=len(shape))

    @classmethod
    def random(cls, length: int, low=0.0, high=1.0, rng: Optional[RandomSource] = None) -> "Vector":
        vector = cls.zeros(length)
        vector.randomize(low, high, rng)
        return vector

    @classmethod
    def random_normal(cls, length: int, mean=0.0, stdev=1.0, rng: Optional[RandomSource] = None) -> "Vector":
        vector = cls.zeros(length)
        vector.randomize_normal(mean, stdev, rng)
        return vector

    @property
    def length(self) -> int:
        return self._data.size

    def dot(self, other: "Vector") -> float:
        if not isinstance(other, NDArray) or other.size != self.size:
            raise ShapeMismatch(f"Cannot take the dot product of lengths {self.size} and "
                                f"{getattr(other, 'size', None)}",
                                expected=self.size, actual=getattr(other, 'size', None))
        return float(np.dot(self._data, other._data))

    def outer(self, other: "Vector"):
        """Return the Matrix self ⊗ other, of shape (len(self), len(other))."""

        # Import here to avoid circular import
        from evolearn.linalg.matrix import Matrix

        return Matrix._from_flat(np.outer(self._data, other._data).ravel(), (self.size, other.size))

    def norm(self, p: float = 2) -> float:
        """Return the p-norm (sum |x|^p)^(1/p), for p >= 1."""
        if not isinstance(p, Real) or p < 1:
            raise InvalidConfiguration(f"Norm order must be >= 1, got {p}")
        return float(np.sum(np.abs(self._data) ** p) ** (1.0 / p))

    def max_norm(self) -> float:
        return float(np.max(np.abs(self._data))) if self.size else 0.0

    def unit(self) -> "Vector":
        length = self.norm()
        if length == 0.0:
            raise NumericalInstability("Cannot normalize a zero vector")
        return self / length

    def is_unit(self, eps: Optional[float] = None) -> bool:
        eps = self.epsilon if eps is None else eps
        return abs(self.norm() - 1.0) < eps

    def is_orthogonal(self, other: "Vector", eps: Optional[float] = None) -> bool:
        eps = self.epsilon if eps is None else eps
        return abs(self.dot(other)) < eps

    def is_orthonormal(self, other: "Vector", eps: Optional[float] = None) -> bool:
        return self.is_orthogonal(other, eps) and self.is_unit(eps) and other.is_unit(eps)

    def __matmul__(self, other):
        if isinstance(other, Vector):
            return self.dot(other)
        return NotImplemented
