"""
Unit tests for Vector.
"""

import math

import pytest

from evolearn.linalg              import Matrix, Vector
from evolearn.utils.errors        import InvalidConfiguration, NumericalInstability, ShapeMismatch
from evolearn.utils.random_source import RandomSource


class TestVectorBasics:
    """Test construction and the rank restriction."""

    def test_length(self):
        """Test that length counts the elements."""
        assert Vector([1, 2, 3]).length == 3

    def test_rank_is_enforced(self):
        """Test that a Vector needs exactly one axis."""
        with pytest.raises(ShapeMismatch):
            Vector([[1, 2], [3, 4]])

    def test_random_constructors(self):
        """Test the random constructors."""
        v = Vector.random(50, 2.0, 3.0, RandomSource(0))

        assert v.length == 50
        assert all(2.0 <= x < 3.0 for x in v)
        assert Vector.random_normal(6, rng=RandomSource(0)).length == 6


class TestProducts:
    """Test dot and outer products."""

    def test_dot(self):
        """Test the inner product."""
        assert Vector([1, 2, 3]).dot(Vector([4, 5, 6])) == 32.0
        assert Vector([1, 2]) @ Vector([3, 4]) == 11.0

    def test_dot_length_mismatch_raises(self):
        """Test that the lengths must agree."""
        with pytest.raises(ShapeMismatch):
            Vector([1, 2]).dot(Vector([1, 2, 3]))

    def test_outer(self):
        """Test that the outer product is a Matrix of shape (len(a), len(b))."""
        m = Vector([1, 2]).outer(Vector([3, 4, 5]))

        assert isinstance(m, Matrix)
        assert m.tolist() == [[3, 4, 5], [6, 8, 10]]


class TestNorms:
    """Test norms and normalization."""

    def test_p_norms(self):
        """Test the 1-, 2- and 3-norms."""
        v = Vector([3, -4])

        assert v.norm(1) == 7.0
        assert v.norm() == 5.0
        assert v.norm(3) == pytest.approx((27 + 64) ** (1 / 3))

    def test_norm_order_below_one_raises(self):
        """Test that p < 1 is rejected."""
        with pytest.raises(InvalidConfiguration):
            Vector([1, 1]).norm(0.5)

    def test_max_norm(self):
        """Test the infinity norm."""
        assert Vector([1, -7, 3]).max_norm() == 7.0
        assert Vector.zeros(0).max_norm() == 0.0

    def test_unit(self):
        """Test that unit() returns a normalized copy."""
        v = Vector([3, 4])
        u = v.unit()

        assert u.tolist() == pytest.approx([0.6, 0.8])
        assert u.is_unit()
        assert v.tolist() == [3, 4]

    def test_unit_of_zero_raises(self):
        """Test that the zero vector cannot be normalized."""
        with pytest.raises(NumericalInstability):
            Vector.zeros(3).unit()


class TestPredicates:
    """Test the orthogonality predicates."""

    def test_orthogonal(self):
        """Test orthogonality within the default tolerance."""
        assert Vector([1, 1]).is_orthogonal(Vector([1, -1]))
        assert not Vector([1, 1]).is_orthogonal(Vector([1, 0]))

    def test_orthonormal(self):
        """Test that orthonormal needs orthogonal unit vectors."""
        s = 1 / math.sqrt(2)

        assert Vector([s, s]).is_orthonormal(Vector([s, -s]))
        assert not Vector([1, 1]).is_orthonormal(Vector([1, -1]))

    def test_custom_tolerance(self):
        """Test that the tolerance can be widened."""
        assert not Vector([1.001]).is_unit()
        assert Vector([1.001]).is_unit(eps=0.01)
