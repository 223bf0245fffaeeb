"""
Unit tests for Operation.
"""

import copy
import math
import pickle

import pytest

from evolearn.activations import Operation, activations


class TestOperation:
    """Test the (function, derivative) pair."""

    def test_call_and_analytic_derivative(self):
        """Test that both halves of the pair are used."""
        op = Operation(lambda x: x * x, lambda x: 2 * x, "square")

        assert op(3.0) == 9.0
        assert op.derivative(3.0) == 6.0
        assert op.has_analytic_derivative
        assert op.name == "square"

    def test_numeric_derivative_fallback(self):
        """Test that a missing derivative is estimated by central differences."""
        op = Operation(math.sin)

        assert not op.has_analytic_derivative
        assert op.derivative(0.4) == pytest.approx(math.cos(0.4), abs=1e-7)

    def test_custom_step(self):
        """Test that the finite difference step can be chosen."""
        op = Operation(lambda x: x ** 3, step=1e-2)

        # central differences of a cubic are off by h²
        assert op.derivative(1.0) == pytest.approx(3.0 + 1e-4)

    def test_default_name_is_the_function_name(self):
        """Test that the name defaults to the function's __name__."""
        assert Operation(math.exp).name == "exp"

    def test_results_are_floats(self):
        """Test that numpy scalars are converted to float."""
        sigmoid = activations["sigmoid"]

        assert type(sigmoid(0.3)) is float
        assert type(sigmoid.derivative(0.3)) is float

    def test_is_immutable(self):
        """Test that attributes cannot be reassigned."""
        op = Operation(math.exp)
        with pytest.raises(AttributeError, match="immutable"):
            op._f = math.log

    def test_copies_share_the_instance(self):
        """Test that copying an immutable operation returns it unchanged."""
        op = activations["tanh"]

        assert copy.copy(op) is op
        assert copy.deepcopy(op) is op

    def test_pickle_round_trip(self):
        """Test that registered operations survive pickling (process pools)."""
        op = pickle.loads(pickle.dumps(activations["relu"]))

        assert op.name == "relu"
        assert op(-1.0) == 0.0
        assert op.derivative(2.0) == 1.0

    def test_repr(self):
        """Test that repr names the derivative kind."""
        assert repr(activations["gelu"]) == "Operation(gelu, numeric derivative)"
        assert repr(activations["tanh"]) == "Operation(tanh, analytic derivative)"
