"""
Error Taxonomy Module

This module defines the exceptions raised by the numerical and learning engine.
Every error is raised at the point of detection and is meant to be handled by
the caller; nothing in the engine retries or silently corrects a bad input.

Classes:
    EvolearnError:        Base class for all engine errors
    ShapeMismatch:        Operand shapes are incompatible for an elementwise or matrix operation
    DimensionMismatch:    Inner dimensions of a matrix product differ
    IndexOutOfRange:      A coordinate or slice falls outside the array bounds
    InvalidConfiguration: A hyperparameter, bound or topology request is not valid
    NumericalInstability: A computation produced NaN or infinity
"""


class EvolearnError(Exception):
    """Base class for all errors raised by evolearn."""


class ShapeMismatch(EvolearnError, ValueError):
    """Operand shapes are incompatible for the requested operation."""

    def __init__(self, message: str, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual   = actual


class DimensionMismatch(ShapeMismatch):
    """The inner dimensions of a matrix product differ (A.cols != B.rows)."""


class IndexOutOfRange(EvolearnError, IndexError):
    """A coordinate, flat index or slice range lies outside the array bounds."""


class InvalidConfiguration(EvolearnError, ValueError):
    """A configuration value or topology request cannot be honoured."""


class NumericalInstability(EvolearnError, ArithmeticError):
    """A computation produced NaN or an infinite value."""
