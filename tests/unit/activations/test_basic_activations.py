"""
Unit tests for basic activation functions.

Analytic derivatives are checked against autograd; GELU, which has no
analytic derivative in the registry, is checked against math.erf and the
closed-form derivative.
"""

import math

import autograd
import numpy as np
import pytest

from evolearn.activations import Operation, activation_codes, activations, get_activation
from evolearn.activations import basic_activations
from evolearn.activations.basic_activations import (
    binary_step_activation,
    elliot_sig_activation,
    gelu_activation,
    identity_activation,
    leaky_relu_activation,
    relu_activation,
    sigmoid_activation,
    sqnl_activation,
    swish_activation,
    tanh_activation,
    LEAKY_SLOPE
)
from evolearn.utils.errors import InvalidConfiguration

# Points away from the kinks of relu, leaky_relu and sqnl
SAMPLE_POINTS = [-3.0, -1.3, -0.4, 0.6, 1.7, 2.5]

# Activations with an analytic derivative
DIFFERENTIABLE = ["identity", "sigmoid", "tanh", "relu", "leaky_relu", "elliot_sig", "swish", "sqnl"]


@pytest.fixture
def sample_1d_array():
    """Standard 1D array for testing."""
    return np.array([-2.0, -1.0, 0.0, 1.0, 2.0])


class TestActivationsDictionary:
    """Test the registry of activations."""

    def test_all_ten_functions_in_dictionary(self):
        """Test that every activation is registered."""
        expected_names = ["identity", "binary_step", "sigmoid", "tanh", "relu", "leaky_relu",
                          "elliot_sig", "swish", "sqnl", "gelu"]
        for name in expected_names:
            assert name in activations, f"{name} not found in activations dictionary"
        assert len(activations) == 10

    def test_entries_are_operations_named_by_their_key(self):
        """Test that each entry is an Operation carrying its registry name."""
        for name, operation in activations.items():
            assert isinstance(operation, Operation)
            assert operation.name == name

    def test_codes_cover_every_activation(self):
        """Test that every activation has a unique 3-letter code."""
        assert set(activation_codes) == set(activations)
        assert all(len(code) == 3 for code in activation_codes.values())
        assert len(set(activation_codes.values())) == len(activation_codes)

    def test_only_gelu_uses_a_numeric_derivative(self):
        """Test which operations fall back to finite differences."""
        numeric = [name for name, op in activations.items() if not op.has_analytic_derivative]
        assert numeric == ["gelu"]


class TestGetActivation:
    """Test activation lookup by name."""

    def test_lookup_is_case_insensitive(self):
        """Test that names are stripped and lowercased."""
        assert get_activation(" Sigmoid ") is activations["sigmoid"]

    def test_operation_passes_through(self):
        """Test that an Operation is returned unchanged."""
        op = Operation(math.cos)
        assert get_activation(op) is op

    def test_unknown_name_raises(self):
        """Test that an unknown name raises InvalidConfiguration."""
        with pytest.raises(InvalidConfiguration, match="Unknown activation"):
            get_activation("softmax")

    def test_non_string_raises(self):
        """Test that a non-string, non-Operation is rejected."""
        with pytest.raises(InvalidConfiguration):
            get_activation(42)


class TestActivationValues:
    """Test the function values."""

    def test_identity(self, sample_1d_array):
        """Test identity on scalars and arrays."""
        assert identity_activation(5.0) == 5.0
        assert np.array_equal(identity_activation(sample_1d_array), sample_1d_array)

    def test_binary_step(self):
        """Test that the step is 0 below zero and 1 from zero on."""
        assert binary_step_activation(-0.1) == 0.0
        assert binary_step_activation(0.0) == 1.0
        assert binary_step_activation(3.0) == 1.0

    def test_sigmoid(self):
        """Test sigmoid at zero and in the saturated range."""
        assert sigmoid_activation(0.0) == 0.5
        assert sigmoid_activation(1.0) == pytest.approx(1 / (1 + math.exp(-1)))
        assert sigmoid_activation(1000.0) == pytest.approx(1.0)
        assert sigmoid_activation(-1000.0) == pytest.approx(0.0)

    def test_tanh(self):
        """Test tanh against the standard library."""
        assert tanh_activation(0.5) == pytest.approx(math.tanh(0.5))

    def test_relu(self, sample_1d_array):
        """Test relu on an array."""
        assert np.array_equal(relu_activation(sample_1d_array), [0, 0, 0, 1, 2])

    def test_leaky_relu(self):
        """Test the slope below zero."""
        assert leaky_relu_activation(-2.0) == pytest.approx(-2.0 * LEAKY_SLOPE)
        assert leaky_relu_activation(2.0) == 2.0

    def test_elliot_sig(self):
        """Test x / (1 + |x|)."""
        assert elliot_sig_activation(1.0) == 0.5
        assert elliot_sig_activation(-3.0) == -0.75

    def test_swish(self):
        """Test x·sigmoid(x)."""
        assert swish_activation(2.0) == pytest.approx(2.0 / (1 + math.exp(-2.0)))

    def test_sqnl(self):
        """Test the four pieces of the square nonlinearity."""
        assert sqnl_activation(3.0) == 1.0
        assert sqnl_activation(1.0) == 0.75
        assert sqnl_activation(-1.0) == -0.75
        assert sqnl_activation(-3.0) == -1.0

    @pytest.mark.parametrize("x", [-3.0, -1.0, 0.0, 0.5, 2.0])
    def test_gelu_matches_math_erf(self, x):
        """Test GELU against x·Φ(x) computed with math.erf."""
        expected = 0.5 * x * (1.0 + math.erf(x / math.sqrt(2.0)))
        assert gelu_activation(x) == pytest.approx(expected, abs=1e-6)


class TestActivationDerivatives:
    """Test the derivatives the network uses in backpropagation."""

    @pytest.mark.parametrize("name", DIFFERENTIABLE)
    @pytest.mark.parametrize("x", SAMPLE_POINTS)
    def test_analytic_derivative_matches_autograd(self, name, x):
        """Test every analytic derivative against automatic differentiation."""
        operation = activations[name]
        function  = getattr(basic_activations, f"{name}_activation")

        assert operation.derivative(x) == pytest.approx(float(autograd.grad(function)(x)), abs=1e-9)

    def test_binary_step_derivative_is_zero(self):
        """Test that the step function has a zero derivative everywhere."""
        for x in SAMPLE_POINTS:
            assert activations["binary_step"].derivative(x) == 0.0

    @pytest.mark.parametrize("x", [-2.0, -0.5, 0.0, 0.7, 1.5])
    def test_gelu_numeric_derivative(self, x):
        """Test the finite-difference derivative of GELU against Φ(x) + x·φ(x)."""
        cdf = 0.5 * (1.0 + math.erf(x / math.sqrt(2.0)))
        pdf = math.exp(-x * x / 2.0) / math.sqrt(2.0 * math.pi)

        assert activations["gelu"].derivative(x) == pytest.approx(cdf + x * pdf, abs=1e-5)
