"""
Genetic Algorithm Module

This module implements GeneticAlgorithm, a generational genetic algorithm over
flat real-valued gene vectors.

A run is the state machine

    populate -> { fit -> crossover -> mutate -> replace_population }* -> fit

  - populate():           sample population_size individuals from the Bounds
  - fit():                score every individual, sort best first, and build the
                          cumulative roulette table 'fitness_proportions'
  - crossover():          breed two children per pair of roulette-selected parents
  - mutate():             redraw or perturb each gene with probability mutation_rate
  - replace_population(): score the offspring, overwrite the worst elite_count of
                          them with the previous generation's best, and make them
                          the new population

Fitness evaluation, offspring generation and mutation can run on a pool of
threads (num_jobs != 1). Every task gets its own child RandomSource, derived
on the calling thread, and writes only its own result, so a run gives the
same result for any value of num_jobs.

Classes:
    GeneticAlgorithm: Generational GA with roulette selection and elitism
"""

import logging
import math
from typing import Callable, Optional, Sequence

import numpy as np
from joblib import Parallel, delayed

from evolearn.genotype.bounds     import Bounds
from evolearn.genotype.individual import Individual
from evolearn.linalg.vector       import Vector
from evolearn.utils.errors        import (IndexOutOfRange, InvalidConfiguration,
                                          NumericalInstability, ShapeMismatch)
from evolearn.utils.random_source import RandomSource

logger = logging.getLogger(__name__)

# Redraws of the second parent before settling for the first parent's neighbour
MAX_PARENT_DRAWS = 16


class GeneticAlgorithm:
    """
    Generational genetic algorithm with fitness-proportionate selection,
    multi-point or uniform crossover, per-gene mutation and elitism.

    Public Attributes:
        fitness_function: Callable mapping a gene Vector to a float (higher is better)
        population_size:  Number of individuals per generation
        elite_count:      Individuals copied unchanged into the next generation
        cross_points:     Number of crossover cut points (0 = uniform crossover)
        cross_offset:     Rotation applied to the children's gene indices
        mutation_rate:    Per-gene mutation probability
        fitness_epsilon:  Added to the shift that makes negative scores non-negative
        num_jobs:         Worker threads for evaluation, crossover and mutation
        fitness_proportions: Cumulative roulette table (valid after fit())
        generation:       Number of completed generations

    Public Properties:
        bounds:          Gene sampling / mutation Bounds (setting it clears the population)
        best_individual: Best individual of the last fit()
        best_fitness:    Its fitness

    Public Methods:
        run(k), continue_run(k):                Drive generations
        populate(), fit(), crossover(), mutate(), replace_population(), elite_selection()
        select_individual():                    Roulette-wheel draw
        get_best_fit(n), get_population(), get_individual(i)
        inject(genes):                          Replace the worst individual
    """

    def __init__(self,
                 fitness_function : Callable[[Vector], float],
                 bounds           : Bounds,
                 population_size  : int,
                 elite_count      : int = 0,
                 cross_points     : int = 1,
                 cross_offset     : int = 0,
                 mutation_rate    : float = 0.0,
                 fitness_epsilon  : float = 0.01,
                 num_jobs         : int = 1,
                 rng              : Optional[RandomSource] = None):
        """
        Parameters:
            fitness_function: Maps a gene Vector to its fitness; exceptions propagate
            bounds:           Gene sampling and mutation Bounds
            population_size:  Number of individuals (>= 1)
            elite_count:      Number of elites (0..population_size)
            cross_points:     Crossover cut points (>= 0, 0 = uniform crossover)
            cross_offset:     Rotation of the children's gene indices
            mutation_rate:    Per-gene mutation probability in [0, 1]
            fitness_epsilon:  Shift added when the lowest score is negative
            num_jobs:         Worker threads (1 = serial, -1 = all cores)
            rng:              Random source
        """
        self.fitness_function = fitness_function
        self.population_size  = population_size
        self.elite_count      = elite_count
        self.cross_points     = cross_points
        self.cross_offset     = cross_offset
        self.mutation_rate    = mutation_rate
        self.fitness_epsilon  = fitness_epsilon
        self.num_jobs         = num_jobs
        self._bounds          = bounds
        self._rng             = rng if rng is not None else RandomSource()

        self._population : list[Individual] = []
        self._offspring  : list[Individual] = []
        self.fitness_proportions : Vector   = Vector.zeros(0)
        self.generation  : int              = 0
        self._validate()

    def _validate(self):
        if not isinstance(self.population_size, int) or self.population_size < 1:
            raise InvalidConfiguration(f"Population size must be a positive integer, got {self.population_size}")
        if not 0 <= self.elite_count <= self.population_size:
            raise InvalidConfiguration(f"Elite count must be between 0 and {self.population_size}, "
                                       f"got {self.elite_count}")
        if self.cross_points < 0:
            raise InvalidConfiguration(f"Number of cross points cannot be negative, got {self.cross_points}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise InvalidConfiguration(f"Mutation rate must be in [0, 1], got {self.mutation_rate}")
        if self.fitness_epsilon < 0:
            raise InvalidConfiguration(f"Fitness epsilon cannot be negative, got {self.fitness_epsilon}")
        if not isinstance(self._bounds, Bounds):
            raise InvalidConfiguration("Genetic algorithm needs Bounds to sample its population")

    # ------------------------------------------------------------------
    # Properties and accessors
    # ------------------------------------------------------------------

    @property
    def bounds(self) -> Bounds:
        return self._bounds

    @bounds.setter
    def bounds(self, bounds: Bounds):
        self._bounds = bounds
        self._validate()
        self._population = []
        self._offspring  = []
        self.fitness_proportions = Vector.zeros(0)

    @property
    def gene_count(self) -> int:
        return self._bounds.gene_count

    @property
    def population(self) -> list[Individual]:
        return list(self._population)

    def _check_fitted(self):
        if not self._population:
            raise InvalidConfiguration("The population is empty, call populate() first")
        if self.fitness_proportions.size != len(self._population):
            raise InvalidConfiguration("The population has not been scored, call fit() first")

    @property
    def best_individual(self) -> Individual:
        self._check_fitted()
        return self._population[0]

    @property
    def best_fitness(self) -> float:
        return self.best_individual.fitness

    def get_population(self) -> list[Vector]:
        return [individual.genes for individual in self._population]

    def get_individual(self, i: int) -> Vector:
        if not -len(self._population) <= i < len(self._population):
            raise IndexOutOfRange(f"Individual {i} out of range for a population of {len(self._population)}")
        return self._population[i].genes

    def get_best_fit(self, n: int = 1) -> list[Vector]:
        """Gene vectors of the n best individuals of the last fit(), best first."""
        self._check_fitted()
        if not 1 <= n <= len(self._population):
            raise IndexOutOfRange(f"Cannot return the {n} best of {len(self._population)} individuals")
        return [individual.genes for individual in self._population[:n]]

    def inject(self, genes, fitness: Optional[float] = None):
        """
        Replace the worst individual of the population with the given genes.

        Used to write locally refined solutions back into the population
        (Lamarckian evolution).
        """
        if not self._population:
            raise InvalidConfiguration("The population is empty, call populate() first")
        individual = Individual(genes, fitness)
        if individual.gene_count != self.gene_count:
            raise ShapeMismatch(f"Injected individual has {individual.gene_count} genes, expected {self.gene_count}",
                                expected=self.gene_count, actual=individual.gene_count)
        self._population[-1] = individual

    # ------------------------------------------------------------------
    # Generation control
    # ------------------------------------------------------------------

    def run(self, k: int = 1) -> Individual:
        """Populate, then run k generations. Returns the best individual."""
        self.populate()
        return self.continue_run(k)

    def continue_run(self, k: int = 1) -> Individual:
        """Run k more generations, then score the final population. Returns the best individual."""
        if not self._population:
            raise InvalidConfiguration("The population is empty, call populate() or run() first")

        for _ in range(k):
            self.fit()
            self.crossover()
            self.mutate()
            self.replace_population()

        self.fit()
        return self.best_individual

    def populate(self):
        self._validate()
        self._population = [Individual(self._bounds.sample(self._rng)) for _ in range(self.population_size)]
        self._offspring  = []
        self.fitness_proportions = Vector.zeros(0)
        self.generation  = 0

    def _map(self, task: Callable, arguments: Sequence[tuple]) -> list:
        if self.num_jobs == 1:
            return [task(*args) for args in arguments]
        return Parallel(self.num_jobs, prefer="threads")(delayed(task)(*args) for args in arguments)

    # ------------------------------------------------------------------
    # Fitness
    # ------------------------------------------------------------------

    def _score(self, individual: Individual) -> Individual:
        fitness = float(self.fitness_function(individual.genes))
        if not math.isfinite(fitness):
            raise NumericalInstability(f"Fitness of individual {individual.ID} is {fitness}")
        return individual.with_fitness(fitness)

    def evaluate(self, individuals: Sequence[Individual]) -> list[Individual]:
        """Scored copies of the given individuals, in the same order."""
        return self._map(self._score, [(individual,) for individual in individuals])

    def fit(self):
        """
        Score the population, sort it best first, and build the roulette table.

        fitness_proportions[i] is the cumulative share of individuals 0..i.
        Scores are shifted by (-min + fitness_epsilon) when the lowest score
        is negative; if all shifted scores are zero every individual gets an
        equal share.
        """
        if not self._population:
            raise InvalidConfiguration("The population is empty, call populate() first")

        scored = self.evaluate(self._population)
        self._population = sorted(scored, key=lambda individual: individual.fitness, reverse=True)

        scores = np.array([individual.fitness for individual in self._population])
        lowest = scores[-1]
        shift  = -lowest + self.fitness_epsilon if lowest < 0 else 0.0
        cumulative = np.cumsum(scores + shift)

        if cumulative[-1] > 0:
            proportions = cumulative / cumulative[-1]
        else:
            proportions = np.arange(1, scores.size + 1) / scores.size
        self.fitness_proportions = Vector(proportions)

        logger.debug("Generation %d: best fitness %.6g, mean fitness %.6g",
                     self.generation, scores[0], scores.mean())

    # ------------------------------------------------------------------
    # Selection and crossover
    # ------------------------------------------------------------------

    def _select_index(self, rng: RandomSource) -> int:
        r = rng.random()
        index = int(np.searchsorted(self.fitness_proportions.flat(), r, side='left'))
        return min(index, len(self._population) - 1)

    def select_individual(self, rng: Optional[RandomSource] = None) -> Individual:
        """
        Roulette-wheel selection: draw r in [0, 1) and return the first
        individual whose cumulative proportion is >= r.
        """
        self._check_fitted()
        return self._population[self._select_index(rng if rng is not None else self._rng)]

    def _select_parents(self) -> tuple[Individual, Individual]:
        """Two distinct parents (a population of one pairs with itself)."""
        n = len(self._population)
        a = self._select_index(self._rng)
        b = self._select_index(self._rng)
        draws = 1
        while b == a and n > 1 and draws < MAX_PARENT_DRAWS:
            b = self._select_index(self._rng)
            draws += 1
        if b == a and n > 1:
            b = (a + 1) % n
        return self._population[a], self._population[b]

    def offspring(self, parent_a: Individual, parent_b: Individual,
                  rng: Optional[RandomSource] = None) -> tuple[Individual, Individual]:
        """
        Breed two children from two parents.

        Each child starts as a copy of one parent and takes some genes from
        the other. With cross_points == 0 every gene is swapped on a coin flip
        (uniform crossover). Otherwise the gene vector is cut into
        cross_points + 1 segments of equal length (the last one takes the
        remainder); the segments alternate between the parents, and every
        copied gene i is written at index (i + cross_offset) % n.

        Returns:
            The two (unscored) children
        """
        rng   = rng if rng is not None else self._rng
        genes_a, genes_b = parent_a._genes.flat(), parent_b._genes.flat()
        child_a, child_b = genes_b.copy(), genes_a.copy()
        n = genes_a.size

        if self.cross_points == 0:
            flips = rng.random(n) > 0.5
            child_a[flips] = genes_a[flips]
            child_b[flips] = genes_b[flips]
        else:
            points   = min(self.cross_points, n - 1)
            distance = n // (points + 1)
            cuts     = [distance * (k + 1) for k in range(points)]

            take = True
            next_cut = 0
            for i in range(n):
                if next_cut < points and i >= cuts[next_cut]:
                    take = not take
                    next_cut += 1
                if take:
                    child_a[(i + self.cross_offset) % n] = genes_a[i]
                    child_b[(i + self.cross_offset) % n] = genes_b[i]

        return Individual(child_a), Individual(child_b)

    def crossover(self):
        """
        Fill the offspring list with population_size children.

        Pairs of parents are drawn here; the children of each pair are bred
        by a separate task with its own random source. An odd population
        keeps only the first child of the last pair.
        """
        self._check_fitted()
        n = len(self._population)
        parents = [self._select_parents() for _ in range((n + 1) // 2)]
        rngs    = self._rng.spawn(len(parents))

        children = self._map(self.offspring, [(a, b, rng) for (a, b), rng in zip(parents, rngs)])

        self._offspring = []
        for child_a, child_b in children:
            self._offspring.append(child_a)
            if len(self._offspring) < n:
                self._offspring.append(child_b)

    # ------------------------------------------------------------------
    # Mutation and replacement
    # ------------------------------------------------------------------

    def _mutate_individual(self, individual: Individual, rng: RandomSource) -> Individual:
        genes  = individual._genes.flat()
        chosen = np.flatnonzero(rng.random(genes.size) < self.mutation_rate)
        if chosen.size == 0:
            return individual
        for i in chosen:
            genes[i] = self._bounds.mutate_gene(i, genes[i], rng)
        return Individual(genes)

    def mutate(self):
        """
        Mutate every offspring gene with probability mutation_rate.

        If crossover() has not produced offspring, copies of the current
        population are mutated instead.
        """
        if not self._offspring:
            if not self._population:
                raise InvalidConfiguration("The population is empty, call populate() first")
            self._offspring = [individual.clone() for individual in self._population]

        rngs = self._rng.spawn(len(self._offspring))
        self._offspring = self._map(self._mutate_individual, list(zip(self._offspring, rngs)))

    def elite_selection(self):
        """
        Score the offspring, sort them worst first, and overwrite the first
        elite_count of them with the best elite_count individuals of the
        current (fitted) population.
        """
        self._check_fitted()
        scored = self.evaluate(self._offspring)
        self._offspring = sorted(scored, key=lambda individual: individual.fitness)
        for i in range(min(self.elite_count, len(self._offspring))):
            self._offspring[i] = self._population[i]

    def replace_population(self):
        if not self._offspring:
            raise InvalidConfiguration("No offspring to replace the population with, call crossover() or mutate() first")
        self.elite_selection()
        self._population = self._offspring
        self._offspring  = []
        self.fitness_proportions = Vector.zeros(0)
        self.generation += 1
