"""
Genotype Package

The genetic encoding searched by the genetic algorithm.

Exported Classes:
    Individual: Flat gene vector with an ID and a fitness
    Bounds:     Per-gene sampling parameters and mutation deltas
"""

from evolearn.genotype.bounds     import Bounds
from evolearn.genotype.individual import Individual

__all__ = ['Individual',
           'Bounds']
