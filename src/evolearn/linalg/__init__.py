"""
Linear Algebra Package

Dense arrays and the kernels that operate on them.

Exported Classes:
    NDArray: Flat-buffer N-dimensional array with crop-or-pad reshape
    Tensor:  Arbitrary-rank array with elementwise operations
    Vector:  Rank-1 array (dot, norms, outer product)
    Matrix:  Rank-2 array (naive and Strassen products, determinant, trace)

Exported Modules:
    calculus: Finite-difference derivatives, quadrature and erf
"""

from evolearn.linalg.ndarray import NDArray
from evolearn.linalg.tensor  import Tensor
from evolearn.linalg.vector  import Vector
from evolearn.linalg.matrix  import Matrix, STRASSEN_THRESHOLD
from evolearn.linalg         import calculus

__all__ = ['NDArray',
           'Tensor',
           'Vector',
           'Matrix',
           'STRASSEN_THRESHOLD',
           'calculus']
