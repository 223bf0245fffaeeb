import math

import autograd.numpy as np  # type: ignore

from evolearn.activations.operation import Operation
from evolearn.linalg.calculus       import erf
from evolearn.utils.errors          import InvalidConfiguration

LEAKY_SLOPE = 0.01

def identity_activation(z):
    return z

def identity_derivative(z):
    return 1.0

def binary_step_activation(z):
    return np.where(z < 0, 0.0, 1.0)

def binary_step_derivative(z):
    return 0.0

def sigmoid_activation(z):
    z = np.clip(z, -500, 500)   # to prevent overflow when calculating exp
    return 1.0 / (1.0 + np.exp(-z))

def sigmoid_derivative(z):
    s = sigmoid_activation(z)
    return s * (1.0 - s)

def tanh_activation(z):
    return np.tanh(z)

def tanh_derivative(z):
    return 1.0 - np.tanh(z) ** 2

def relu_activation(z):
    return np.maximum(0.0, z)

def relu_derivative(z):
    return np.where(z <= 0, 0.0, 1.0)

def leaky_relu_activation(z):
    return np.where(z < 0, LEAKY_SLOPE * z, z)

def leaky_relu_derivative(z):
    return np.where(z < 0, LEAKY_SLOPE, 1.0)

def elliot_sig_activation(z):
    return z / (1.0 + np.abs(z))

def elliot_sig_derivative(z):
    return 1.0 / (1.0 + np.abs(z)) ** 2

def swish_activation(z):
    return z * sigmoid_activation(z)

def swish_derivative(z):
    s = swish_activation(z)
    return s + sigmoid_activation(z) * (1.0 - s)

def sqnl_activation(z):
    return np.where(z > 2.0, 1.0,
           np.where(z > 0.0, z - z * z / 4.0,
           np.where(z >= -2.0, z + z * z / 4.0, -1.0)))

def sqnl_derivative(z):
    return np.where(z > 2.0, 0.0,
           np.where(z > 0.0, 1.0 - z / 2.0,
           np.where(z >= -2.0, 1.0 + z / 2.0, 0.0)))

def gelu_activation(z):
    # Scalar only: erf is a Simpson quadrature
    return 0.5 * z * (1.0 + erf(z / math.sqrt(2.0)))

activations = {
    "identity"   : Operation(identity_activation,    identity_derivative,    "identity"),
    "binary_step": Operation(binary_step_activation, binary_step_derivative, "binary_step"),
    "sigmoid"    : Operation(sigmoid_activation,     sigmoid_derivative,     "sigmoid"),
    "tanh"       : Operation(tanh_activation,        tanh_derivative,        "tanh"),
    "relu"       : Operation(relu_activation,        relu_derivative,        "relu"),
    "leaky_relu" : Operation(leaky_relu_activation,  leaky_relu_derivative,  "leaky_relu"),
    "elliot_sig" : Operation(elliot_sig_activation,  elliot_sig_derivative,  "elliot_sig"),
    "swish"      : Operation(swish_activation,       swish_derivative,       "swish"),
    "sqnl"       : Operation(sqnl_activation,        sqnl_derivative,        "sqnl"),
    "gelu"       : Operation(gelu_activation,        None,                   "gelu")
    }

# 3-letter identifiers for each activation function
activation_codes = {
    "identity"   : "IDN",
    "binary_step": "BST",
    "sigmoid"    : "SIG",
    "tanh"       : "TNH",
    "relu"       : "RLU",
    "leaky_relu" : "LRL",
    "elliot_sig" : "ELS",
    "swish"      : "SWS",
    "sqnl"       : "SQN",
    "gelu"       : "GLU"
    }

def get_activation(name) -> Operation:
    """
    Resolve an activation by name.

    Parameters:
        name: Registry name (case-insensitive), or an Operation which is
              returned unchanged

    Returns:
        The registered Operation
    """
    if isinstance(name, Operation):
        return name
    try:
        return activations[name.strip().lower()]
    except (KeyError, AttributeError):
        raise InvalidConfiguration(f"Unknown activation '{name}'. "
                                   f"Choose from: {', '.join(activations)}")
