"""
Matrix Module

Rank-2 arrays and the engine's own linear-algebra kernels.

Two matrix products are provided. mat_mul() is the plain O(m*n*p) product.
strassen_mul() pads both operands to a common even square size, splits them in
quadrants and combines seven recursive sub-products instead of eight; below a
size threshold it falls back to mat_mul(). Both give the same result within
floating point tolerance.

determinant() uses cofactor (Laplace) expansion along the first row. Its cost
grows as O(n!), so it is only meant for small matrices.

Classes:
    Matrix: Rank-2 NDArray with matrix products, transpose, trace and determinant
"""

import math
from typing import Optional

import numpy as np

from evolearn.linalg.ndarray      import NDArray
from evolearn.linalg.vector       import Vector
from evolearn.utils.errors        import DimensionMismatch, IndexOutOfRange, NumericalInstability, ShapeMismatch
from evolearn.utils.random_source import RandomSource

# Operands with fewer elements than this are multiplied with mat_mul()
STRASSEN_THRESHOLD = 64 * 64


class Matrix(NDArray):
    """
    Rank-2 array of shape (rows, cols), stored row-major.

    Public Properties:
        rows, cols: Number of rows and columns
        is_square:  True if rows == cols

    Public Methods:
        identity(n), diag(values):           Constructors
        random(), random_normal():           Random constructors
        get_row(i), get_column(j):           Copies as Vectors
        mat_mul(a, b), strassen_mul(a, b):   Matrix products
        mat_vec_mul(v), vec_mat_mul(v):      Products with a Vector (M·v and vᵀ·M)
        transpose(), trace(), determinant(): The usual
        is_symmetric(eps), norm():           Symmetry check and Frobenius norm
    """

    def _default_shape(self):
        return (0, 0)

    def _check_rank(self, shape):
        if len(shape) != 2:
            raise ShapeMismatch(f"A Matrix has exactly two axes, got shape {shape}",
                                expected=2, actual=len(shape))

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def identity(cls, n: int) -> "Matrix":
        return cls._from_flat(np.eye(n, dtype=np.float64).ravel(), (n, n))

    @classmethod
    def diag(cls, values) -> "Matrix":
        values = values.flat() if isinstance(values, NDArray) else np.asarray(values, dtype=np.float64).ravel()
        n = values.size
        return cls._from_flat(np.diag(values).ravel(), (n, n))

    @classmethod
    def random(cls, rows: int, cols: int, low=0.0, high=1.0, rng: Optional[RandomSource] = None) -> "Matrix":
        matrix = cls.zeros((rows, cols))
        matrix.randomize(low, high, rng)
        return matrix

    @classmethod
    def random_normal(cls, rows: int, cols: int, mean=0.0, stdev=1.0,
                      rng: Optional[RandomSource] = None) -> "Matrix":
        matrix = cls.zeros((rows, cols))
        matrix.randomize_normal(mean, stdev, rng)
        return matrix

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self._shape[0]

    @property
    def cols(self) -> int:
        return self._shape[1]

    @property
    def is_square(self) -> bool:
        return self._shape[0] == self._shape[1]

    def _view(self) -> np.ndarray:
        return self._data.reshape(self._shape)

    def get_row(self, i: int) -> Vector:
        if not -self.rows <= i < self.rows:
            raise IndexOutOfRange(f"Row {i} out of range for {self.rows} rows")
        return Vector(self._view()[i])

    def get_column(self, j: int) -> Vector:
        if not -self.cols <= j < self.cols:
            raise IndexOutOfRange(f"Column {j} out of range for {self.cols} columns")
        return Vector(self._view()[:, j])

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @staticmethod
    def _check_inner(a: "Matrix", b: "Matrix"):
        if a.cols != b.rows:
            raise DimensionMismatch(f"Cannot multiply {a.shape} by {b.shape}: "
                                    f"{a.cols} columns vs {b.rows} rows",
                                    expected=a.cols, actual=b.rows)

    @staticmethod
    def mat_mul(a: "Matrix", b: "Matrix") -> "Matrix":
        """
        Naive matrix product.

        Parameters:
            a: Matrix of shape (m, n)
            b: Matrix of shape (n, p)

        Returns:
            Matrix of shape (m, p)
        """
        Matrix._check_inner(a, b)
        m, p = a.rows, b.cols
        av, bv = a._view(), b._view()

        product = np.zeros((m, p), dtype=np.float64)
        for i in range(m):
            for j in range(p):
                product[i, j] = np.dot(av[i, :], bv[:, j])
        return Matrix._from_flat(product.ravel(), (m, p))

    @staticmethod
    def strassen_mul(a: "Matrix", b: "Matrix", threshold: int = STRASSEN_THRESHOLD) -> "Matrix":
        """
        Strassen matrix product.

        Both operands are zero-padded (by crop-or-pad reshape) to a common
        even square size, split into quadrants, and combined from seven
        recursive sub-products. The padded result is cropped back to (m, p).

        Parameters:
            a:         Matrix of shape (m, n)
            b:         Matrix of shape (n, p)
            threshold: Operands with fewer elements than this are multiplied
                       with mat_mul()

        Returns:
            Matrix of shape (m, p)
        """
        Matrix._check_inner(a, b)
        m, n, p = a.rows, a.cols, b.cols

        if (a.size < threshold and b.size < threshold) or max(m, n, p) <= 1 or min(m, n, p) == 0:
            return Matrix.mat_mul(a, b)

        s = max(m, n, p)
        s += s % 2
        h = s // 2

        a_pad = a.clone()
        a_pad.reshape(s, s)
        b_pad = b.clone()
        b_pad.reshape(s, s)

        def quadrant(matrix, r, c):
            box = [(r * h, r * h + h - 1), (c * h, c * h + h - 1)]
            return Matrix(matrix.get_slice(box), (h, h))

        a11, a12, a21, a22 = (quadrant(a_pad, r, c) for r, c in ((0, 0), (0, 1), (1, 0), (1, 1)))
        b11, b12, b21, b22 = (quadrant(b_pad, r, c) for r, c in ((0, 0), (0, 1), (1, 0), (1, 1)))

        m1 = Matrix.strassen_mul(a11 + a22, b11 + b22, threshold)
        m2 = Matrix.strassen_mul(a21 + a22, b11,       threshold)
        m3 = Matrix.strassen_mul(a11,       b12 - b22, threshold)
        m4 = Matrix.strassen_mul(a22,       b21 - b11, threshold)
        m5 = Matrix.strassen_mul(a11 + a12, b22,       threshold)
        m6 = Matrix.strassen_mul(a21 - a11, b11 + b12, threshold)
        m7 = Matrix.strassen_mul(a12 - a22, b21 + b22, threshold)

        c11 = m1 + m4 - m5 + m7
        c12 = m3 + m5
        c21 = m2 + m4
        c22 = m1 - m2 + m3 + m6

        product = Matrix.zeros((s, s))
        product.set_slice(c11, [(0, h - 1), (0, h - 1)])
        product.set_slice(c12, [(0, h - 1), (h, s - 1)])
        product.set_slice(c21, [(h, s - 1), (0, h - 1)])
        product.set_slice(c22, [(h, s - 1), (h, s - 1)])
        product.reshape(m, p)
        return product

    def mat_vec_mul(self, v: Vector) -> Vector:
        """Return self·v, a Vector of length rows."""
        if v.size != self.cols:
            raise DimensionMismatch(f"Cannot multiply {self.shape} by a vector of length {v.size}",
                                    expected=self.cols, actual=v.size)
        return Vector._from_flat(self._view() @ v.flat(), (self.rows,))

    def vec_mat_mul(self, v: Vector) -> Vector:
        """Return vᵀ·self (equivalently selfᵀ·v), a Vector of length cols."""
        if v.size != self.rows:
            raise DimensionMismatch(f"Cannot multiply a vector of length {v.size} by {self.shape}",
                                    expected=self.rows, actual=v.size)
        return Vector._from_flat(v.flat() @ self._view(), (self.cols,))

    def __matmul__(self, other):
        if isinstance(other, Matrix):
            return Matrix.mat_mul(self, other)
        if isinstance(other, Vector):
            return self.mat_vec_mul(other)
        return NotImplemented

    # ------------------------------------------------------------------
    # Matrix properties
    # ------------------------------------------------------------------

    def transpose(self) -> "Matrix":
        return Matrix._from_flat(self._view().T.ravel(), (self.cols, self.rows))

    def _check_square(self, operation: str):
        if not self.is_square:
            raise ShapeMismatch(f"{operation} requires a square matrix, got shape {self.shape}",
                                expected=(self.rows, self.rows), actual=self.shape)

    def trace(self) -> float:
        self._check_square("trace")
        return float(np.trace(self._view()))

    def determinant(self) -> float:
        """
        Determinant by cofactor expansion along row 0.

        Closed forms are used for 1x1 and 2x2 matrices. The expansion costs
        O(n!), so keep n small.
        """
        self._check_square("determinant")
        det = self._cofactor_expansion(self._view())
        if not math.isfinite(det):
            raise NumericalInstability(f"Determinant of a {self.rows}x{self.cols} matrix is not finite")
        return det

    @staticmethod
    def _cofactor_expansion(values: np.ndarray) -> float:
        n = values.shape[0]
        if n == 0:
            return 1.0
        if n == 1:
            return float(values[0, 0])
        if n == 2:
            return float(values[0, 0] * values[1, 1] - values[0, 1] * values[1, 0])

        det  = 0.0
        rest = values[1:, :]
        for j in range(n):
            if values[0, j] == 0.0:
                continue
            minor = np.delete(rest, j, axis=1)
            sign  = 1.0 if j % 2 == 0 else -1.0
            det  += sign * float(values[0, j]) * Matrix._cofactor_expansion(minor)
        return det

    def is_symmetric(self, eps: Optional[float] = None) -> bool:
        eps = self.epsilon if eps is None else eps
        if not self.is_square:
            return False
        view = self._view()
        return bool(np.all(np.abs(view - view.T) <= eps))

    def norm(self) -> float:
        """Frobenius norm."""
        return float(math.sqrt(np.sum(self._data ** 2)))
