"""
Unit tests for Bounds.
"""

import numpy as np
import pytest

from evolearn.genotype            import Bounds
from evolearn.linalg              import Vector
from evolearn.utils.errors        import InvalidConfiguration, ShapeMismatch
from evolearn.utils.random_source import Distribution, RandomSource


# ============================================================================
# Construction
# ============================================================================

class TestBoundsInit:
    """Test construction and validation."""

    def test_scalars_are_broadcast(self):
        """Test that scalar bounds are repeated gene_count times."""
        bounds = Bounds.uniform(-1.0, 1.0, -0.1, 0.1, gene_count=4)

        assert bounds.distribution is Distribution.UNIFORM
        assert bounds.gene_count == 4
        assert bounds.a.tolist() == [-1.0] * 4
        assert bounds.delta_b.tolist() == [0.1] * 4

    def test_per_gene_bounds(self):
        """Test that arrays give one bound per gene."""
        bounds = Bounds.gaussian([0.0, 1.0, 2.0], Vector([1.0, 1.0, 0.5]))

        assert bounds.distribution is Distribution.GAUSSIAN
        assert bounds.gene_count == 3
        assert bounds.b.tolist() == [1.0, 1.0, 0.5]
        assert bounds.delta_a.tolist() == [0.0, 0.0, 0.0]

    def test_distribution_by_name(self):
        """Test that the distribution can be given as a string."""
        assert Bounds("Gaussian", 0.0, 1.0, gene_count=2).distribution is Distribution.GAUSSIAN

    def test_scalar_without_gene_count_raises(self):
        """Test that scalar bounds need a gene count."""
        with pytest.raises(InvalidConfiguration, match="gene_count"):
            Bounds.uniform(0.0, 1.0)

    def test_no_genes_raises(self):
        """Test that bounds must describe at least one gene."""
        with pytest.raises(InvalidConfiguration):
            Bounds.uniform([], [])

    def test_length_mismatch_raises(self):
        """Test that all per-gene arrays must have the same length."""
        with pytest.raises(ShapeMismatch):
            Bounds.uniform([0.0, 0.0], [1.0, 1.0, 1.0])

    def test_uniform_min_above_max_raises(self):
        """Test that uniform ranges must be ordered."""
        with pytest.raises(InvalidConfiguration):
            Bounds.uniform([0.0, 2.0], [1.0, 1.0])

    def test_uniform_deltas_must_be_ordered(self):
        """Test that uniform mutation deltas must be ordered."""
        with pytest.raises(InvalidConfiguration):
            Bounds.uniform(0.0, 1.0, 0.5, -0.5, gene_count=2)

    def test_negative_gaussian_stdev_raises(self):
        """Test that standard deviations cannot be negative."""
        with pytest.raises(InvalidConfiguration):
            Bounds.gaussian(0.0, -1.0, gene_count=2)
        with pytest.raises(InvalidConfiguration):
            Bounds.gaussian(0.0, 1.0, 0.0, -0.1, gene_count=2)


# ============================================================================
# Sampling
# ============================================================================

class TestSample:
    """Test sampling of new gene vectors."""

    def test_uniform_sample_within_ranges(self):
        """Test that every gene is drawn from its own range."""
        bounds = Bounds.uniform([0.0, 10.0, -5.0], [1.0, 20.0, -4.0])
        rng = RandomSource(0)

        for _ in range(50):
            genes = bounds.sample(rng)
            assert 0.0 <= genes[0] < 1.0
            assert 10.0 <= genes[1] < 20.0
            assert -5.0 <= genes[2] < -4.0

    def test_gaussian_sample(self):
        """Test Gaussian sampling with a zero and a non-zero spread."""
        bounds = Bounds.gaussian([3.0, 0.0], [0.0, 1.0])
        samples = np.array([bounds.sample(RandomSource(seed)).tolist() for seed in range(200)])

        assert np.all(samples[:, 0] == 3.0)
        assert abs(samples[:, 1].mean()) < 0.3

    def test_sample_is_reproducible(self):
        """Test that equal seeds give equal samples."""
        bounds = Bounds.uniform(-1.0, 1.0, gene_count=5)

        assert bounds.sample(RandomSource(4)) == bounds.sample(RandomSource(4))


# ============================================================================
# Mutation
# ============================================================================

class TestMutateGene:
    """Test mutation of a single gene."""

    def test_uniform_mutation_stays_near_and_in_range(self):
        """Test that a mutated gene lies in [v + min_delta, v + max_delta] ∩ [min, max]."""
        bounds = Bounds.uniform(0.0, 1.0, -0.1, 0.1, gene_count=1)
        rng = RandomSource(1)

        for value in (0.05, 0.5, 0.95):
            for _ in range(20):
                mutated = bounds.mutate_gene(0, value, rng)
                assert max(value - 0.1, 0.0) <= mutated <= min(value + 0.1, 1.0)

    def test_uniform_mutation_without_deltas_redraws(self):
        """Test that zero deltas redraw the gene from its whole range."""
        bounds = Bounds.uniform(-2.0, 2.0, gene_count=1)
        rng = RandomSource(2)
        values = [bounds.mutate_gene(0, 0.0, rng) for _ in range(200)]

        assert all(-2.0 <= v < 2.0 for v in values)
        assert max(values) > 1.0 and min(values) < -1.0

    def test_uniform_mutation_outside_range_clamps(self):
        """Test that a gene far outside the range is pulled to its edge."""
        bounds = Bounds.uniform(0.0, 1.0, -0.5, 0.5, gene_count=1)

        assert bounds.mutate_gene(0, 5.0, RandomSource(0)) == 1.0

    def test_gaussian_mutation_adds_a_perturbation(self):
        """Test that a Gaussian mutation adds a draw from N(mean_delta, stdev_delta)."""
        bounds = Bounds.gaussian(0.0, 1.0, 0.25, 0.0, gene_count=2)

        assert bounds.mutate_gene(1, 2.0, RandomSource(0)) == 2.25


# ============================================================================
# Concatenation
# ============================================================================

class TestConcatenate:
    """Test Bounds.concatenate()."""

    def test_concatenate(self):
        """Test that the genes of the parts are laid out one after the other."""
        weights = Bounds.gaussian(0.0, 1.0, 0.0, 0.5, gene_count=3)
        biases  = Bounds.gaussian(1.0, 2.0, 0.0, 0.1, gene_count=2)
        both    = Bounds.concatenate(weights, biases)

        assert both.gene_count == 5
        assert both.a.tolist() == [0.0, 0.0, 0.0, 1.0, 1.0]
        assert both.delta_b.tolist() == [0.5, 0.5, 0.5, 0.1, 0.1]

    def test_mixed_distributions_raise(self):
        """Test that uniform and Gaussian bounds cannot be combined."""
        with pytest.raises(InvalidConfiguration):
            Bounds.concatenate(Bounds.uniform(0.0, 1.0, gene_count=1),
                               Bounds.gaussian(0.0, 1.0, gene_count=1))

    def test_nothing_to_concatenate_raises(self):
        """Test that at least one part is required."""
        with pytest.raises(InvalidConfiguration):
            Bounds.concatenate()
