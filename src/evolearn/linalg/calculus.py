"""
Numerical Calculus Module

Finite-difference derivatives and quadrature rules used by the activation
functions (numeric derivative fallback, GELU's error function) and by the
gradient checks.

All derivatives are central differences with a fixed step H; higher orders
are obtained by differencing the lower-order estimate, which amplifies
round-off, so orders above 2 are only rough estimates.

Functions:
    derivative:          d^k f / dx^k at a point
    partial_derivative:  Mixed partial derivative of f: Vector -> float
    gradient:            Vector of first partial derivatives
    jacobian:            Matrix of first partials of several functions
    hessian:             Matrix of second partials
    integrate_trapezoid: Composite trapezoid rule
    integrate_simpson:   Composite Simpson rule
    erf:                 Error function by Simpson integration
"""

import math
from typing import Callable, Sequence, Union

from evolearn.linalg.matrix  import Matrix
from evolearn.linalg.vector  import Vector
from evolearn.utils.errors   import InvalidConfiguration

# Finite difference step
H = 1e-4

# Default number of quadrature intervals
N = 64

# erf(x) equals 1 to double precision beyond this
ERF_SATURATION = 6.0


def derivative(f: Callable[[float], float], x: float, order: int = 1, h: float = H) -> float:
    """
    Central-difference estimate of the order-th derivative of f at x.

    Parameters:
        f:     Function of one variable
        x:     Point of evaluation
        order: Derivative order (>= 1)
        h:     Step size

    Returns:
        The derivative estimate
    """
    if order < 1:
        raise InvalidConfiguration(f"Derivative order must be >= 1, got {order}")
    if order == 1:
        return (f(x + h) - f(x - h)) / (2 * h)
    return (derivative(f, x + h, order - 1, h) - derivative(f, x - h, order - 1, h)) / (2 * h)


def partial_derivative(f: Callable[[Vector], float], x: Vector, dims: Union[int, Sequence[int]], h: float = H) -> float:
    """
    Central-difference estimate of a mixed partial derivative.

    Parameters:
        f:    Function of a Vector
        x:    Point of evaluation
        dims: Axis to differentiate along, or a sequence of axes (one per
              order, e.g. (i, j) for d2f/dxi dxj)
        h:    Step size

    Returns:
        The partial derivative estimate
    """
    dims = [dims] if isinstance(dims, int) else list(dims)
    if not dims:
        raise InvalidConfiguration("At least one dimension is required")

    first, rest = dims[0], dims[1:]
    forward  = x.clone()
    backward = x.clone()
    forward[first]  = x[first] + h
    backward[first] = x[first] - h

    if not rest:
        return (f(forward) - f(backward)) / (2 * h)
    return (partial_derivative(f, forward, rest, h) - partial_derivative(f, backward, rest, h)) / (2 * h)


def gradient(f: Callable[[Vector], float], x: Vector, h: float = H) -> Vector:
    return Vector([partial_derivative(f, x, i, h) for i in range(x.length)])


def jacobian(functions: Sequence[Callable[[Vector], float]], x: Vector, h: float = H) -> Matrix:
    """Matrix J with J[i, j] = d functions[i] / dx_j."""
    return Matrix([[partial_derivative(fi, x, j, h) for j in range(x.length)] for fi in functions],
                  (len(functions), x.length))


def hessian(f: Callable[[Vector], float], x: Vector, h: float = H) -> Matrix:
    """Matrix H with H[i, j] = d2f / dx_i dx_j."""
    n = x.length
    return Matrix([[partial_derivative(f, x, (i, j), h) for j in range(n)] for i in range(n)], (n, n))


def integrate_trapezoid(f: Callable[[float], float], a: float, b: float, n: int = N) -> float:
    if n < 1:
        raise InvalidConfiguration(f"Number of intervals must be >= 1, got {n}")
    dx = (b - a) / n
    total = f(a) + f(b)
    for i in range(1, n):
        total += 2 * f(a + i * dx)
    return total * dx / 2


def integrate_simpson(f: Callable[[float], float], a: float, b: float, n: int = N) -> float:
    """
    Composite Simpson rule over n intervals (an odd n is rounded up).

    Weights are 1, 4, 2, 4, ..., 2, 4, 1 scaled by dx/3.
    """
    if n < 1:
        raise InvalidConfiguration(f"Number of intervals must be >= 1, got {n}")
    if n % 2 == 1:
        n += 1
    dx = (b - a) / n
    total = f(a) + f(b)
    for i in range(1, n):
        total += (4 if i % 2 == 1 else 2) * f(a + i * dx)
    return total * dx / 3


def _erf_integrand(t: float) -> float:
    return math.exp(-t * t)


def erf(x: float) -> float:
    """Error function, 2/sqrt(pi) times the integral of exp(-t^2) from 0 to x."""
    x = max(-ERF_SATURATION, min(ERF_SATURATION, x))
    return 2 / math.sqrt(math.pi) * integrate_simpson(_erf_integrand, 0.0, x)
