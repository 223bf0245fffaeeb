"""
N-Dimensional Array Module

This module implements NDArray, the dense array type underlying every vector,
matrix and tensor in the engine. An NDArray owns a flat float64 buffer and a
shape; coordinates map to flat indices in row-major order (the last axis is
contiguous) and negative per-axis indices wrap from the end.

IMPORTANT: reshape() is NOT a relabeling of the buffer (as numpy's reshape is).
It visits every coordinate of the new shape and copies the old element when
that coordinate is inside the old shape, otherwise it writes zero. Shrinking
an axis crops it, growing an axis zero-pads it. Topology editing in the neural
network relies on this to grow and shrink weight matrices while preserving the
existing connections.

Classes:
    NDArray: Dense N-dimensional float64 array with in-place elementwise algebra
"""

import math
from numbers import Real
from typing  import Callable, Iterable, Optional, Sequence

import numpy as np

from evolearn.utils.errors        import IndexOutOfRange, NumericalInstability, ShapeMismatch
from evolearn.utils.random_source import RandomSource


def _normalize_shape(shape) -> tuple[int, ...]:
    """Validate a shape given as an int or a sequence of ints."""
    if isinstance(shape, (int, np.integer)):
        shape = (shape,)
    shape = tuple(shape)
    for n in shape:
        if not isinstance(n, (int, np.integer)) or isinstance(n, bool):
            raise ShapeMismatch(f"Axis lengths must be integers, got {shape}")
        if n < 0:
            raise ShapeMismatch(f"Axis lengths must be non-negative, got {shape}")
    return tuple(int(n) for n in shape)


class NDArray:
    """
    Dense N-dimensional array of 64-bit floats.

    Mutating operations (add, subtract, scale, negate, hadamard_product, fill,
    apply, randomize, reshape, copy_from) work in place. The arithmetic
    operators (+, -, *, /, unary -) return new arrays of the same type.

    Public Properties:
        shape: Per-axis lengths (tuple)
        rank:  Number of axes
        size:  Total number of elements

    Public Methods:
        get_element(coords) / set_element(coords, value): Coordinate access
        get_slice(ranges) / set_slice(values, ranges):    Inclusive box access
        reshape(shape):                                   Crop-or-pad reshape
        copy_from(other):                                 Reshape to other's shape, then copy
        fill(value), apply(func):                         Elementwise overwrite
        add, subtract, scale, negate, hadamard_product:   In-place algebra
        randomize(low, high, rng):                        Uniform fill
        randomize_normal(mean, stdev, rng):               Gaussian fill
        flat(), to_numpy(), tolist(), clone():            Copies of the contents
        allclose(other, tol):                             Approximate equality
    """

    # Tolerance for approximate floating point comparisons
    epsilon = 1e-5

    def __init__(self, data=None, shape=None):
        """
        Create an array from nested sequences, a numpy array, another NDArray,
        or a flat sequence of values together with a shape.

        Parameters:
            data:  Values to store. If None, the array is zero-filled.
            shape: Target shape. Required when 'data' is flat and meant to be
                   interpreted with a different shape; if 'data' is None the
                   array is created as zeros of this shape.
        """
        if data is None:
            shape = _normalize_shape(shape if shape is not None else self._default_shape())
            self._check_rank(shape)
            self._data  = np.zeros(math.prod(shape), dtype=np.float64)
            self._shape = shape
            return

        if isinstance(data, NDArray):
            values = data._data.copy()
            source_shape = data._shape
        else:
            array = np.array(data, dtype=np.float64)
            values = array.ravel()
            source_shape = array.shape

        if shape is None:
            shape = source_shape
        shape = _normalize_shape(shape)
        if values.size != math.prod(shape):
            raise ShapeMismatch(f"Cannot store {values.size} values in shape {shape}",
                                expected=math.prod(shape), actual=values.size)
        self._check_rank(shape)
        self._data  = values
        self._shape = shape

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _default_shape(self) -> tuple[int, ...]:
        return (0,)

    def _check_rank(self, shape: tuple[int, ...]):
        """Subclasses restrict the allowed rank here."""
        if len(shape) < 1:
            raise ShapeMismatch("Arrays must have at least one axis")

    @classmethod
    def _from_flat(cls, values: np.ndarray, shape: tuple[int, ...]):
        """Wrap an already validated flat buffer without copying it."""
        obj = cls.__new__(cls)
        obj._data  = values
        obj._shape = shape
        return obj

    @classmethod
    def zeros(cls, shape):
        return cls(None, shape)

    @classmethod
    def ones(cls, shape):
        return cls.full(shape, 1.0)

    @classmethod
    def full(cls, shape, value: float):
        array = cls(None, shape)
        array.fill(value)
        return array

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def rank(self) -> int:
        return len(self._shape)

    @property
    def size(self) -> int:
        return self._data.size

    def __len__(self) -> int:
        return self._data.size

    def reshape(self, *shape):
        """
        Crop-or-pad the array to a new shape, in place.

        For every coordinate of the new shape: if the coordinate lies inside
        the old shape, the old element is kept, otherwise the element is zero.
        When the ranks differ, the old array is read as if it had extra
        trailing axes of length 1 (growing rank), or at index 0 of the dropped
        trailing axes (shrinking rank).

        Parameters:
            shape: The new shape, as a tuple or as separate integers
        """
        if len(shape) == 1 and not isinstance(shape[0], (int, np.integer)):
            shape = shape[0]
        new_shape = _normalize_shape(shape)
        self._check_rank(new_shape)

        old       = self._data.reshape(self._shape)
        old_rank  = len(self._shape)
        new_rank  = len(new_shape)
        resized   = np.zeros(new_shape, dtype=np.float64)

        if new_rank > old_rank:
            old = old.reshape(self._shape + (1,) * (new_rank - old_rank))
        elif new_rank < old_rank:
            if any(n == 0 for n in self._shape[new_rank:]):
                old = np.zeros((0,) * new_rank)
            else:
                old = old[(slice(None),) * new_rank + (0,) * (old_rank - new_rank)]

        region = tuple(slice(0, min(a, b)) for a, b in zip(old.shape, new_shape))
        resized[region] = old[region]

        self._data  = resized.ravel()
        self._shape = new_shape

    def copy_from(self, other: "NDArray"):
        """Reshape to 'other's shape, then copy all of its elements."""
        self.reshape(other.shape)
        self._data[:] = other._data

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------

    @staticmethod
    def _as_index(c) -> int:
        if isinstance(c, bool) or not isinstance(c, (int, np.integer)):
            raise IndexOutOfRange(f"Indices must be integers, got {c!r}")
        return int(c)

    def _flat_index(self, coords: Sequence[int]) -> int:
        """Map a coordinate to its row-major flat index, validating bounds."""
        coords = tuple(coords)
        if len(coords) != self.rank:
            raise IndexOutOfRange(f"Expected {self.rank} coordinates, got {len(coords)}")

        index = 0
        for axis, (c, n) in enumerate(zip(coords, self._shape)):
            c = self._as_index(c)
            if c < 0:
                c += n
            if not 0 <= c < n:
                raise IndexOutOfRange(f"Index {coords[axis]} out of range for axis {axis} of length {n}")
            index = index * n + c
        return index

    def _wrap_flat(self, index: int) -> int:
        index = self._as_index(index)
        n = self._data.size
        if index < 0:
            index += n
        if not 0 <= index < n:
            raise IndexOutOfRange(f"Flat index out of range for length {n}")
        return index

    def get_element(self, coords: Sequence[int]) -> float:
        return float(self._data[self._flat_index(coords)])

    def set_element(self, coords: Sequence[int], value: float):
        self._data[self._flat_index(coords)] = value

    def __getitem__(self, key) -> float:
        if isinstance(key, tuple):
            return self.get_element(key)
        return float(self._data[self._wrap_flat(key)])

    def __setitem__(self, key, value: float):
        if isinstance(key, tuple):
            self.set_element(key, value)
        else:
            self._data[self._wrap_flat(key)] = value

    def __iter__(self):
        return (float(x) for x in self._data)

    # ------------------------------------------------------------------
    # Slices (inclusive [a, b] ranges, one per axis)
    # ------------------------------------------------------------------

    def _box(self, ranges: Sequence[Sequence[int]]) -> tuple[slice, ...]:
        ranges = [tuple(r) for r in ranges]
        if len(ranges) != self.rank:
            raise IndexOutOfRange(f"Expected {self.rank} ranges, got {len(ranges)}")

        box = []
        for axis, ((a, b), n) in enumerate(zip(ranges, self._shape)):
            a = a + n if a < 0 else a
            b = b + n if b < 0 else b
            if not (0 <= a <= b < n):
                raise IndexOutOfRange(f"Range {ranges[axis]} out of bounds for axis {axis} of length {n}")
            box.append(slice(a, b + 1))
        return tuple(box)

    def get_slice(self, ranges: Sequence[Sequence[int]]) -> np.ndarray:
        """
        Return the elements of an inclusive box, in row-major order.

        Parameters:
            ranges: One (a, b) pair per axis, both ends included

        Returns:
            Flat numpy array with the box contents
        """
        box = self._box(ranges)
        return self._data.reshape(self._shape)[box].ravel().copy()

    def set_slice(self, values, ranges: Sequence[Sequence[int]]):
        """
        Overwrite the elements of an inclusive box, in row-major order.

        Parameters:
            values: Flat sequence (or NDArray) whose length equals the box volume
            ranges: One (a, b) pair per axis, both ends included
        """
        box = self._box(ranges)
        box_shape = tuple(s.stop - s.start for s in box)
        values = values._data if isinstance(values, NDArray) else np.asarray(values, dtype=np.float64).ravel()
        if values.size != math.prod(box_shape):
            raise ShapeMismatch(f"Slice of shape {box_shape} needs {math.prod(box_shape)} values, got {values.size}",
                                expected=math.prod(box_shape), actual=values.size)
        self._data.reshape(self._shape)[box] = values.reshape(box_shape)

    # ------------------------------------------------------------------
    # In-place operations
    # ------------------------------------------------------------------

    def _check_same_shape(self, other: "NDArray", operation: str):
        if not isinstance(other, NDArray):
            raise TypeError(f"{operation} expects an NDArray, got {type(other).__name__}")
        if other._shape != self._shape:
            raise ShapeMismatch(f"{operation}: shapes {self._shape} and {other._shape} differ",
                                expected=self._shape, actual=other._shape)

    def fill(self, value: float):
        self._data.fill(value)

    def add(self, other: "NDArray"):
        self._check_same_shape(other, "add")
        self._data += other._data

    def subtract(self, other: "NDArray"):
        self._check_same_shape(other, "subtract")
        self._data -= other._data

    def scale(self, c: float):
        self._data *= c

    def negate(self):
        self._data *= -1.0

    def hadamard_product(self, other: "NDArray"):
        self._check_same_shape(other, "hadamard_product")
        self._data *= other._data

    def apply(self, func: Callable[[float], float]):
        """Replace every element x with func(x)."""
        self._data = np.fromiter((func(float(x)) for x in self._data),
                                 dtype=np.float64, count=self._data.size)

    def _bound(self, bound, name: str):
        """Turn a scalar or per-element bound into something numpy can broadcast."""
        if isinstance(bound, NDArray):
            if bound.size != self.size:
                raise ShapeMismatch(f"'{name}' has {bound.size} elements, expected {self.size}",
                                    expected=self.size, actual=bound.size)
            return bound._data
        return float(bound)

    def randomize(self, low=0.0, high=1.0, rng: Optional[RandomSource] = None):
        """
        Fill with uniform samples from [low, high).

        Parameters:
            low, high: Scalars, or arrays with one bound per element
            rng:       Random source (a fresh unseeded one if None)
        """
        rng = rng if rng is not None else RandomSource()
        low  = self._bound(low,  'low')
        high = self._bound(high, 'high')
        self._data = np.asarray(rng.uniform(low, high, self.size), dtype=np.float64)

    def randomize_normal(self, mean=0.0, stdev=1.0, rng: Optional[RandomSource] = None):
        """
        Fill with samples from N(mean, stdev).

        Parameters:
            mean, stdev: Scalars, or arrays with one parameter per element
            rng:         Random source (a fresh unseeded one if None)
        """
        rng = rng if rng is not None else RandomSource()
        mean  = self._bound(mean,  'mean')
        stdev = self._bound(stdev, 'stdev')
        self._data = np.asarray(rng.normal(mean, stdev, self.size), dtype=np.float64)

    # ------------------------------------------------------------------
    # Copies and conversions
    # ------------------------------------------------------------------

    def clone(self):
        return type(self)._from_flat(self._data.copy(), self._shape)

    def flat(self) -> np.ndarray:
        return self._data.copy()

    def to_numpy(self) -> np.ndarray:
        return self._data.reshape(self._shape).copy()

    def tolist(self):
        return self.to_numpy().tolist()

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._data)))

    def check_finite(self, what: str = "array"):
        """Raise NumericalInstability if any element is NaN or infinite."""
        if not self.is_finite():
            raise NumericalInstability(f"{what} contains NaN or infinite values")

    def allclose(self, other: "NDArray", tol: Optional[float] = None) -> bool:
        tol = self.epsilon if tol is None else tol
        return (isinstance(other, NDArray) and other._shape == self._shape and
                bool(np.allclose(self._data, other._data, rtol=0.0, atol=tol)))

    # ------------------------------------------------------------------
    # Operators (out of place)
    # ------------------------------------------------------------------

    def __add__(self, other):
        if not isinstance(other, NDArray):
            return NotImplemented
        result = self.clone()
        result.add(other)
        return result

    def __sub__(self, other):
        if not isinstance(other, NDArray):
            return NotImplemented
        result = self.clone()
        result.subtract(other)
        return result

    def __neg__(self):
        result = self.clone()
        result.negate()
        return result

    def __mul__(self, c):
        if not isinstance(c, Real):
            return NotImplemented
        result = self.clone()
        result.scale(c)
        return result

    __rmul__ = __mul__

    def __truediv__(self, c):
        if not isinstance(c, Real):
            return NotImplemented
        if c == 0:
            raise NumericalInstability("Division of an array by zero")
        return self * (1.0 / c)

    def __eq__(self, other):
        if not isinstance(other, NDArray):
            return NotImplemented
        return other._shape == self._shape and bool(np.array_equal(self._data, other._data))

    __hash__ = None

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    @staticmethod
    def _format(values: Iterable, shape: tuple[int, ...]) -> str:
        values = list(values)
        if len(shape) == 1:
            return "[" + ", ".join(format(v, 'g') for v in values) + "]"
        step = math.prod(shape[1:])
        parts = [NDArray._format(values[i * step:(i + 1) * step], shape[1:]) for i in range(shape[0])]
        return "[" + ", ".join(parts) + "]"

    def __str__(self):
        return self._format(self._data.tolist(), self._shape)

    def __repr__(self):
        return f"{type(self).__name__}(shape={self._shape}, data={self})"
