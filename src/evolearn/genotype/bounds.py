"""
Gene Bounds Module

This module implements Bounds, the per-gene description of how genes are
initially sampled and how they mutate.

With the Uniform distribution every gene i has a range [min_i, max_i]. New
genes are drawn uniformly from it; a mutated gene is redrawn uniformly from
[value + min_delta_i, value + max_delta_i] clamped to the range. When all
deltas are zero, a mutated gene is simply redrawn from the whole range.

With the Gaussian distribution every gene i has (mean_i, stdev_i). New genes
are drawn from N(mean_i, stdev_i); a mutated gene is perturbed by adding a
draw from N(mean_delta_i, stdev_delta_i).

Classes:
    Bounds: Per-gene sampling parameters and mutation deltas
"""

from typing import Optional, Union

import numpy as np

from evolearn.linalg.ndarray      import NDArray
from evolearn.linalg.vector       import Vector
from evolearn.utils.errors        import InvalidConfiguration, ShapeMismatch
from evolearn.utils.random_source import Distribution, RandomSource

Genes = Union[float, NDArray, list, np.ndarray]


def _as_genes(values: Genes, gene_count: Optional[int], name: str) -> np.ndarray:
    """Broadcast a scalar to 'gene_count' genes, or flatten an array of genes."""
    if isinstance(values, NDArray):
        return values.flat()
    array = np.asarray(values, dtype=np.float64)
    if array.ndim == 0:
        if gene_count is None:
            raise InvalidConfiguration(f"'{name}' is a scalar, so gene_count is required")
        return np.full(gene_count, float(array))
    return array.ravel().copy()


class Bounds:
    """
    Per-gene sampling parameters (a, b) and mutation deltas (delta_a, delta_b).

    For Uniform bounds (a, b) = (min, max) and the deltas are (min_delta,
    max_delta). For Gaussian bounds (a, b) = (mean, stdev) and the deltas are
    (mean_delta, stdev_delta).

    Public Properties:
        distribution: Distribution.UNIFORM or Distribution.GAUSSIAN
        gene_count:   Number of genes described

    Public Methods:
        uniform(...), gaussian(...): Constructors
        sample(rng):                 Draw a new gene vector
        mutate_gene(i, value, rng):  Mutate gene i
        concatenate(*bounds):        Bounds for the concatenated gene vectors
    """

    def __init__(self,
                 distribution : Union[str, Distribution],
                 a            : Genes,
                 b            : Genes,
                 delta_a      : Genes = 0.0,
                 delta_b      : Genes = 0.0,
                 gene_count   : Optional[int] = None):
        self._distribution = Distribution.parse(distribution)
        self._a       = _as_genes(a, gene_count, "a")
        n = self._a.size if gene_count is None else gene_count
        self._b       = _as_genes(b, n, "b")
        self._delta_a = _as_genes(delta_a, n, "delta_a")
        self._delta_b = _as_genes(delta_b, n, "delta_b")

        if self._a.size == 0:
            raise InvalidConfiguration("Bounds must describe at least one gene")
        for name, values in (("b", self._b), ("delta_a", self._delta_a), ("delta_b", self._delta_b)):
            if values.size != self._a.size:
                raise ShapeMismatch(f"'{name}' has {values.size} genes, expected {self._a.size}",
                                    expected=self._a.size, actual=values.size)

        if self._distribution is Distribution.UNIFORM:
            if np.any(self._a > self._b):
                raise InvalidConfiguration("Uniform bounds need min <= max for every gene")
            if np.any(self._delta_a > self._delta_b):
                raise InvalidConfiguration("Uniform mutation deltas need min_delta <= max_delta for every gene")
        else:
            if np.any(self._b < 0) or np.any(self._delta_b < 0):
                raise InvalidConfiguration("Gaussian standard deviations cannot be negative")

        self._zero_deltas = not np.any(self._delta_a) and not np.any(self._delta_b)

    @classmethod
    def uniform(cls, minimum: Genes, maximum: Genes, min_delta: Genes = 0.0, max_delta: Genes = 0.0,
                gene_count: Optional[int] = None) -> "Bounds":
        return cls(Distribution.UNIFORM, minimum, maximum, min_delta, max_delta, gene_count)

    @classmethod
    def gaussian(cls, mean: Genes, stdev: Genes, mean_delta: Genes = 0.0, stdev_delta: Genes = 0.0,
                 gene_count: Optional[int] = None) -> "Bounds":
        return cls(Distribution.GAUSSIAN, mean, stdev, mean_delta, stdev_delta, gene_count)

    @classmethod
    def concatenate(cls, *parts: "Bounds") -> "Bounds":
        """Bounds of the gene vector made by concatenating the parts' gene vectors."""
        if not parts:
            raise InvalidConfiguration("Nothing to concatenate")
        distribution = parts[0].distribution
        if any(part.distribution is not distribution for part in parts):
            raise InvalidConfiguration("Cannot concatenate bounds of different distributions")
        return cls(distribution,
                   np.concatenate([part._a for part in parts]),
                   np.concatenate([part._b for part in parts]),
                   np.concatenate([part._delta_a for part in parts]),
                   np.concatenate([part._delta_b for part in parts]))

    @property
    def distribution(self) -> Distribution:
        return self._distribution

    @property
    def gene_count(self) -> int:
        return self._a.size

    @property
    def a(self) -> Vector:
        return Vector(self._a)

    @property
    def b(self) -> Vector:
        return Vector(self._b)

    @property
    def delta_a(self) -> Vector:
        return Vector(self._delta_a)

    @property
    def delta_b(self) -> Vector:
        return Vector(self._delta_b)

    def sample(self, rng: RandomSource) -> Vector:
        genes = Vector.zeros(self.gene_count)
        if self._distribution is Distribution.UNIFORM:
            genes.randomize(Vector(self._a), Vector(self._b), rng)
        else:
            genes.randomize_normal(Vector(self._a), Vector(self._b), rng)
        return genes

    def mutate_gene(self, i: int, value: float, rng: RandomSource) -> float:
        """
        Return the mutated value of gene i.

        Parameters:
            i:     Gene index
            value: Current value of the gene
            rng:   Random source

        Returns:
            The new value
        """
        if self._distribution is Distribution.GAUSSIAN:
            return value + rng.normal(self._delta_a[i], self._delta_b[i])

        if self._zero_deltas:
            low, high = self._a[i], self._b[i]
        else:
            low  = max(value + self._delta_a[i], self._a[i])
            high = min(value + self._delta_b[i], self._b[i])
            low  = min(low, high)
        return rng.uniform(low, high)

    def __repr__(self):
        return f"Bounds({self._distribution.value}, {self.gene_count} genes)"
