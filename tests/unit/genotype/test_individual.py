"""
Unit tests for Individual.
"""

from itertools import count

import pytest

from evolearn.genotype import Individual
from evolearn.linalg   import Vector


@pytest.fixture(autouse=True)
def reset_individual_id_generator():
    """Reset Individual ID generator before each test."""
    Individual._id_generator = count(0)
    yield
    Individual._id_generator = count(0)


class TestIndividualInit:
    """Test Individual initialization."""

    def test_ids_are_sequential(self):
        """Test that every new individual gets the next ID."""
        assert [Individual([0.0]).ID for _ in range(3)] == [0, 1, 2]

    def test_unscored_by_default(self):
        """Test that a new individual has no fitness."""
        individual = Individual([1.0, 2.0])

        assert individual.fitness is None
        assert not individual.is_scored
        assert individual.gene_count == 2

    def test_genes_are_copied_in(self):
        """Test that the individual does not share the caller's vector."""
        genes = Vector([1.0, 2.0])
        individual = Individual(genes)
        genes[0] = 99.0

        assert individual.genes.tolist() == [1.0, 2.0]

    def test_genes_are_copied_out(self):
        """Test that mutating the returned genes leaves the individual alone."""
        individual = Individual([1.0, 2.0])
        individual.genes[0] = 99.0

        assert individual.genes.tolist() == [1.0, 2.0]


class TestIndividualScoring:
    """Test with_fitness() and clone()."""

    def test_with_fitness_returns_a_scored_copy(self):
        """Test that scoring keeps the ID and genes, and leaves the original unscored."""
        individual = Individual([1.0, 2.0])
        scored = individual.with_fitness(0.75)

        assert scored.ID == individual.ID
        assert scored.fitness == 0.75
        assert scored.is_scored
        assert scored.genes == individual.genes
        assert individual.fitness is None

    def test_clone_is_a_new_unscored_individual(self):
        """Test that a clone has a new ID and no fitness."""
        individual = Individual([1.0], fitness=3.0)
        clone = individual.clone()

        assert clone.ID != individual.ID
        assert clone.fitness is None
        assert clone.genes == individual.genes

    def test_repr(self):
        """Test that repr shows the ID and fitness."""
        assert repr(Individual([1.0], 0.5)) == "Individual(ID=0, fitness=0.5, genes=[1])"
