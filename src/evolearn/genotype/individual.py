"""
Individual Module

This module implements the Individual class, one candidate solution in the
genetic algorithm's population: a flat gene vector plus a fitness score.

Classes:
    Individual: Gene vector with an ID and an (optional) fitness
"""

from itertools import count
from typing    import Optional

from evolearn.linalg.vector import Vector


class Individual:
    """
    A candidate solution in the genetic algorithm's population.

    An Individual never changes once created: scoring it returns a new,
    scored Individual with the same ID and genes.

    Public Attributes:
        ID: Globally unique identifier

    Public Properties:
        genes:      Copy of the gene vector
        fitness:    Fitness score (None until evaluated)
        gene_count: Number of genes

    Public Methods:
        with_fitness(score): Scored copy of this individual
        clone():             Unscored copy with a new ID
    """

    _id_generator = count(0)

    def __init__(self, genes, fitness: Optional[float] = None):
        """
        Parameters:
            genes:   The gene vector (Vector or sequence; copied)
            fitness: Fitness score, if already known
        """
        self.ID       : int             = next(Individual._id_generator)  # unique ID
        self._genes   : Vector          = genes.clone() if isinstance(genes, Vector) else Vector(genes)
        self._fitness : Optional[float] = fitness

    @property
    def genes(self) -> Vector:
        return self._genes.clone()

    @property
    def fitness(self) -> Optional[float]:
        return self._fitness

    @property
    def is_scored(self) -> bool:
        return self._fitness is not None

    @property
    def gene_count(self) -> int:
        return self._genes.size

    def with_fitness(self, fitness: float) -> "Individual":
        scored = Individual.__new__(Individual)
        scored.ID       = self.ID
        scored._genes   = self._genes
        scored._fitness = fitness
        return scored

    def clone(self) -> "Individual":
        return Individual(self._genes)

    def __repr__(self):
        return f"Individual(ID={self.ID}, fitness={self._fitness}, genes={self._genes})"
