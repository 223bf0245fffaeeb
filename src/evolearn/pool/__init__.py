"""
Pool Package

Population management.

Exported Classes:
    GeneticAlgorithm: Generational GA with roulette selection, crossover, mutation and elitism
"""

from evolearn.pool.genetic_algorithm import GeneticAlgorithm

__all__ = ['GeneticAlgorithm']
