"""
Activations Package

This package provides the activation functions used by the network layers.

Exported:
    Operation:        Immutable (function, derivative) pair
    activations:      Dictionary mapping activation names to Operations
    activation_codes: Dictionary mapping activation names to 3-letter codes
    get_activation:   Resolve an activation name to its Operation
"""

from evolearn.activations.operation import Operation
from evolearn.activations.basic_activations import (
    activations,
    activation_codes,
    get_activation
)

__all__ = [
    'Operation',
    'activations',
    'activation_codes',
    'get_activation'
]
