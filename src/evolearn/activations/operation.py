"""
Operation Module

An Operation is the unit of differentiable computation used by the network:
an activation function paired with its derivative. When no analytic
derivative is supplied, the derivative is estimated with a central finite
difference of fixed step.

Classes:
    Operation: Immutable (f, df) pair with a registry name
"""

from typing import Callable, Optional

from evolearn.linalg import calculus


class Operation:
    """
    Immutable pair of a scalar function and its derivative.

    Public Properties:
        name:                    Registry name (used by configuration and persistence)
        has_analytic_derivative: False when the derivative is a numeric estimate

    Public Methods:
        __call__(x):   f(x)
        derivative(x): f'(x), analytic or central-difference estimate
    """

    __slots__ = ('_f', '_df', '_name', '_step')

    def __init__(self,
                 f    : Callable[[float], float],
                 df   : Optional[Callable[[float], float]] = None,
                 name : Optional[str] = None,
                 step : float = calculus.H):
        """
        Parameters:
            f:    The function
            df:   Its derivative; if None, a numeric estimate is used
            name: Name under which the operation is registered
            step: Finite difference step of the numeric derivative
        """
        object.__setattr__(self, '_f', f)
        object.__setattr__(self, '_df', df)
        object.__setattr__(self, '_name', name if name is not None else getattr(f, '__name__', 'operation'))
        object.__setattr__(self, '_step', step)

    def __setattr__(self, key, value):
        raise AttributeError(f"Operation '{self._name}' is immutable")

    @property
    def name(self) -> str:
        return self._name

    @property
    def has_analytic_derivative(self) -> bool:
        return self._df is not None

    def __call__(self, x: float) -> float:
        return float(self._f(x))

    def derivative(self, x: float) -> float:
        if self._df is not None:
            return float(self._df(x))
        return float(calculus.derivative(self._f, x, h=self._step))

    # Immutable, so copies share the instance
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (Operation, (self._f, self._df, self._name, self._step))

    def __repr__(self):
        kind = "analytic" if self._df is not None else "numeric"
        return f"Operation({self._name}, {kind} derivative)"
