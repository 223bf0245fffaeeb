"""
Unit tests for Matrix.

The Strassen product is checked against the naive product and against numpy
on sizes that exercise the padding (odd and non-square operands).
"""

import numpy as np
import pytest

from evolearn.linalg              import Matrix, Vector
from evolearn.utils.errors        import DimensionMismatch, IndexOutOfRange, ShapeMismatch
from evolearn.utils.random_source import RandomSource


@pytest.fixture
def random_matrix():
    """Factory for reproducible random matrices."""
    rng = RandomSource(2024)

    def make(rows, cols):
        return Matrix.random(rows, cols, -1.0, 1.0, rng)
    return make


# ============================================================================
# Construction and access
# ============================================================================

class TestMatrixBasics:
    """Test constructors, shape and row/column access."""

    def test_identity(self):
        """Test the identity constructor."""
        assert Matrix.identity(3).tolist() == [[1, 0, 0], [0, 1, 0], [0, 0, 1]]

    def test_diag(self):
        """Test the diagonal constructor."""
        assert Matrix.diag([2, 3]).tolist() == [[2, 0], [0, 3]]

    def test_rank_is_enforced(self):
        """Test that a Matrix needs exactly two axes."""
        with pytest.raises(ShapeMismatch):
            Matrix([1, 2, 3])

    def test_rows_cols(self):
        """Test the shape properties."""
        m = Matrix.zeros((2, 5))

        assert (m.rows, m.cols) == (2, 5)
        assert not m.is_square
        assert Matrix.identity(4).is_square

    def test_rows_and_columns(self):
        """Test that rows and columns come back as independent Vectors."""
        m = Matrix([[1, 2, 3], [4, 5, 6]])
        row = m.get_row(1)
        row[0] = 100

        assert isinstance(row, Vector)
        assert m.get_row(1).tolist() == [4, 5, 6]
        assert m.get_column(2).tolist() == [3, 6]
        assert m.get_row(-1).tolist() == [4, 5, 6]

    def test_row_out_of_range_raises(self):
        """Test that a row outside the matrix raises IndexOutOfRange."""
        with pytest.raises(IndexOutOfRange):
            Matrix.identity(2).get_row(2)
        with pytest.raises(IndexOutOfRange):
            Matrix.identity(2).get_column(-3)


# ============================================================================
# Products
# ============================================================================

class TestProducts:
    """Test the naive and Strassen products."""

    def test_mat_mul_small(self):
        """Test the naive product on a hand-computed case."""
        a = Matrix([[1, 2], [3, 4]])
        b = Matrix([[5, 6], [7, 8]])

        assert Matrix.mat_mul(a, b).tolist() == [[19, 22], [43, 50]]
        assert (a @ b).tolist() == [[19, 22], [43, 50]]

    def test_mat_mul_matches_numpy(self, random_matrix):
        """Test the naive product against numpy on a rectangular case."""
        a, b = random_matrix(4, 7), random_matrix(7, 3)

        assert np.allclose(Matrix.mat_mul(a, b).to_numpy(), a.to_numpy() @ b.to_numpy())

    @pytest.mark.parametrize("m, n, p", [(2, 2, 2), (3, 3, 3), (3, 5, 2), (7, 7, 7), (1, 6, 4), (5, 1, 5)])
    def test_strassen_matches_mat_mul(self, random_matrix, m, n, p):
        """Test that Strassen with recursion down to 1x1 equals the naive product."""
        a, b = random_matrix(m, n), random_matrix(n, p)

        naive    = Matrix.mat_mul(a, b)
        strassen = Matrix.strassen_mul(a, b, threshold=1)

        assert strassen.shape == (m, p)
        assert strassen.allclose(naive, 1e-9)

    def test_strassen_below_threshold_is_naive(self, random_matrix):
        """Test that small operands fall back to the naive product."""
        a, b = random_matrix(3, 3), random_matrix(3, 3)

        assert Matrix.strassen_mul(a, b) == Matrix.mat_mul(a, b)

    def test_strassen_leaves_operands_unchanged(self, random_matrix):
        """Test that the padding works on copies."""
        a, b = random_matrix(3, 5), random_matrix(5, 2)
        a_copy, b_copy = a.clone(), b.clone()
        Matrix.strassen_mul(a, b, threshold=1)

        assert a == a_copy
        assert b == b_copy

    def test_inner_dimension_mismatch_raises(self):
        """Test that A.cols != B.rows raises DimensionMismatch."""
        with pytest.raises(DimensionMismatch) as info:
            Matrix.mat_mul(Matrix.zeros((2, 3)), Matrix.zeros((2, 3)))
        assert info.value.expected == 3
        assert info.value.actual == 2

        with pytest.raises(DimensionMismatch):
            Matrix.strassen_mul(Matrix.zeros((2, 3)), Matrix.zeros((4, 3)), threshold=1)

    def test_matrix_vector_products(self):
        """Test M·v and vᵀ·M."""
        m = Matrix([[1, 2, 3], [4, 5, 6]])

        assert m.mat_vec_mul(Vector([1, 0, 1])).tolist() == [4, 10]
        assert m.vec_mat_mul(Vector([1, 1])).tolist() == [5, 7, 9]
        assert (m @ Vector([0, 1, 0])).tolist() == [2, 5]

    def test_matrix_vector_mismatch_raises(self):
        """Test that vector lengths are checked."""
        m = Matrix([[1, 2, 3], [4, 5, 6]])
        with pytest.raises(DimensionMismatch):
            m.mat_vec_mul(Vector([1, 2]))
        with pytest.raises(DimensionMismatch):
            m.vec_mat_mul(Vector([1, 2, 3]))


# ============================================================================
# Matrix properties
# ============================================================================

class TestMatrixProperties:
    """Test transpose, trace, determinant, symmetry and norm."""

    def test_transpose(self):
        """Test that transpose swaps rows and columns."""
        m = Matrix([[1, 2, 3], [4, 5, 6]])

        assert m.transpose().tolist() == [[1, 4], [2, 5], [3, 6]]

    def test_transpose_involution(self, random_matrix):
        """Test that transposing twice gives the original matrix."""
        m = random_matrix(3, 6)

        assert m.transpose().transpose() == m

    def test_trace(self):
        """Test the sum of the diagonal."""
        assert Matrix([[1, 2], [3, 4]]).trace() == 5.0

    def test_determinant_of_identity(self):
        """Test that det(I) = 1."""
        for n in range(1, 6):
            assert Matrix.identity(n).determinant() == 1.0

    def test_determinant_known_values(self):
        """Test the closed forms and the cofactor expansion."""
        assert Matrix([[3]]).determinant() == 3.0
        assert Matrix([[1, 2], [3, 4]]).determinant() == -2.0
        assert Matrix([[2, 0, 1], [1, 3, 2], [1, 1, 2]]).determinant() == pytest.approx(6.0)

    def test_determinant_matches_numpy(self, random_matrix):
        """Test the expansion on a random 5x5 matrix."""
        m = random_matrix(5, 5)

        assert m.determinant() == pytest.approx(np.linalg.det(m.to_numpy()), abs=1e-10)

    def test_determinant_with_duplicate_rows_is_zero(self):
        """Test that a singular matrix has a zero determinant."""
        m = Matrix([[1, 2, 3, 4], [5, 6, 7, 8], [1, 2, 3, 4], [0, 1, 0, 1]])

        assert m.determinant() == pytest.approx(0.0, abs=1e-12)

    def test_determinant_of_transpose(self, random_matrix):
        """Test that det(Mᵀ) = det(M)."""
        m = random_matrix(4, 4)

        assert m.transpose().determinant() == pytest.approx(m.determinant())

    def test_non_square_raises(self):
        """Test that trace and determinant need a square matrix."""
        with pytest.raises(ShapeMismatch):
            Matrix.zeros((2, 3)).determinant()
        with pytest.raises(ShapeMismatch):
            Matrix.zeros((3, 2)).trace()

    def test_is_symmetric(self):
        """Test the symmetry check."""
        assert Matrix([[1, 2], [2, 1]]).is_symmetric()
        assert not Matrix([[1, 2], [3, 1]]).is_symmetric()
        assert not Matrix.zeros((2, 3)).is_symmetric()

    def test_norm(self):
        """Test the Frobenius norm."""
        assert Matrix([[3, 0], [0, 4]]).norm() == 5.0
