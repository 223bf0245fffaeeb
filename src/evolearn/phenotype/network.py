"""
Feedforward Network Module

This module implements FeedForwardNetwork, a fully connected layered network
whose parameters live in the engine's own Matrix and Vector types.

Layer i has a width and one activation Operation shared by all its units.
weights[i] is the Matrix of shape (width(i), width(i+1)) connecting layer i to
layer i+1, and biases[i] is the Vector of length width(i+1) added to the
pre-activation of layer i+1. The forward pass computes, for each connection i,

    z = weights[i]ᵀ · v + biases[i],    v = f_{i+1}(z)

The network is trained by backpropagation of the loss ½‖a_L − y‖² and
minibatch stochastic gradient descent. Its topology can be edited after
construction (layers and units added or removed); every edit keeps the weight
and bias shapes consistent, preserves the existing parameters that survive
the edit, and samples every new parameter from the network's initialization
distribution (new connections are never zero).

Classes:
    Layer:              Width plus shared activation
    FeedForwardNetwork: Layered network with forward pass, backprop and SGD
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs

from evolearn.activations         import Operation, get_activation
from evolearn.linalg.matrix       import STRASSEN_THRESHOLD, Matrix
from evolearn.linalg.vector       import Vector
from evolearn.phenotype.dataset   import DataSet
from evolearn.utils.errors        import IndexOutOfRange, InvalidConfiguration, ShapeMismatch
from evolearn.utils.random_source import Distribution, RandomSource

logger = logging.getLogger(__name__)

Gradients = tuple[list[Matrix], list[Vector]]


class Layer:
    """A layer: its number of units and the activation they share."""

    def __init__(self, width: int, activation: Operation):
        self.width      : int       = width
        self.activation : Operation = activation

    def __repr__(self):
        return f"Layer(width={self.width}, activation={self.activation.name})"


class FeedForwardNetwork:
    """
    Fully connected feedforward network.

    Public Properties:
        depth:            Number of layers (input and output included)
        layer_widths:     Width of every layer
        activation_names: Activation name of every layer
        parameter_count:  Number of weights plus number of biases
        topology_version: Incremented by every topology edit

    Public Methods:
        activate(x), activate_batch(xs):      Forward pass
        add_layer(), remove_layer():          Insert / delete a hidden layer
        add_unit(), remove_unit():            Grow / shrink a layer
        set_layer_width(), set_layer_activation()
        get_weight(), set_weight(), get_bias(), set_bias()
        get_weight_matrix(), get_bias_vector(), set_weight_matrix(), set_bias_vector()
        get_parameters(), set_parameters():   Flat parameter vector (all weights, then all biases)
        backprop(x, y):                       Gradients of ½‖a − y‖²
        train_mini_batch(xs, ys, lr):         One gradient step on a batch
        sgd(xs, ys, epochs, batch_size, lr):  Minibatch stochastic gradient descent
        loss(x, y), mean_squared_error(xs, ys)
        clone():                              Independent copy sharing the random source
    """

    def __init__(self,
                 num_inputs        : int = 1,
                 num_outputs       : int = 1,
                 hidden_layers     : Sequence[int] = (),
                 hidden_activation : Union[str, Operation] = "sigmoid",
                 output_activation : Union[str, Operation] = "identity",
                 distribution      : Union[str, Distribution] = Distribution.GAUSSIAN,
                 init_params       : tuple[float, float] = (0.0, 1.0),
                 rng               : Optional[RandomSource] = None):
        """
        Build an input layer (identity activation), the hidden layers, and an
        output layer, with every parameter sampled from the initialization
        distribution.

        Parameters:
            num_inputs:        Width of the input layer
            num_outputs:       Width of the output layer
            hidden_layers:     Widths of the hidden layers, input side first
            hidden_activation: Activation of the hidden layers (name or Operation)
            output_activation: Activation of the output layer (name or Operation)
            distribution:      Initialization distribution for new parameters
            init_params:       (mean, stdev) for Gaussian, (low, high) for Uniform
            rng:               Random source for initialization
        """
        if num_inputs < 1 or num_outputs < 1:
            raise InvalidConfiguration(f"Input and output layers need at least one unit, "
                                       f"got {num_inputs} and {num_outputs}")

        self._distribution     : Distribution        = Distribution.parse(distribution)
        self._init_params      : tuple[float, float] = tuple(init_params)
        self._rng              : RandomSource        = rng if rng is not None else RandomSource()
        self._topology_version : int                 = 0

        self._layers  : list[Layer]  = [Layer(num_inputs,  get_activation("identity")),
                                        Layer(num_outputs, get_activation(output_activation))]
        self._weights : list[Matrix] = [self._sample(Matrix, (num_inputs, num_outputs))]
        self._biases  : list[Vector] = [self._sample(Vector, (num_outputs,))]

        for width in hidden_layers:
            self.add_layer(width, hidden_activation)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def depth(self) -> int:
        return len(self._layers)

    @property
    def layer_widths(self) -> list[int]:
        return [layer.width for layer in self._layers]

    @property
    def activation_names(self) -> list[str]:
        return [layer.activation.name for layer in self._layers]

    @property
    def num_inputs(self) -> int:
        return self._layers[0].width

    @property
    def num_outputs(self) -> int:
        return self._layers[-1].width

    @property
    def parameter_count(self) -> int:
        return sum(w.size for w in self._weights) + sum(b.size for b in self._biases)

    @property
    def topology_version(self) -> int:
        return self._topology_version

    @property
    def distribution(self) -> Distribution:
        return self._distribution

    @property
    def init_params(self) -> tuple[float, float]:
        return self._init_params

    @property
    def rng(self) -> RandomSource:
        return self._rng

    def get_layer_width(self, i: int) -> int:
        return self._layers[self._layer_index(i)].width

    def get_layer_activation(self, i: int) -> Operation:
        return self._layers[self._layer_index(i)].activation

    def _layer_index(self, i: int) -> int:
        if not -self.depth <= i < self.depth:
            raise IndexOutOfRange(f"Layer {i} out of range for a network of depth {self.depth}")
        return i % self.depth

    def _connection_index(self, i: int) -> int:
        n = len(self._weights)
        if not -n <= i < n:
            raise IndexOutOfRange(f"Connection {i} out of range for {n} weight matrices")
        return i % n

    def __repr__(self):
        layers = ", ".join(f"{layer.width}:{layer.activation.name}" for layer in self._layers)
        return f"FeedForwardNetwork([{layers}])"

    # ------------------------------------------------------------------
    # Sampling of new parameters
    # ------------------------------------------------------------------

    def _sample(self, kind: type, shape: tuple[int, ...]):
        """New Matrix or Vector of the given shape drawn from the initialization distribution."""
        array = kind.zeros(shape)
        a, b = self._init_params
        if self._distribution is Distribution.GAUSSIAN:
            array.randomize_normal(a, b, self._rng)
        else:
            array.randomize(a, b, self._rng)
        return array

    def _resize(self, array, shape: tuple[int, ...]):
        """
        Crop or grow an array to a new shape.

        Entries inside both shapes are kept, entries only in the new shape
        are sampled.
        """
        kept    = [(0, min(a, b) - 1) for a, b in zip(array.shape, shape)]
        resized = self._sample(type(array), shape)
        if all(last >= 0 for _, last in kept):
            cropped = array.clone()
            cropped.reshape(tuple(last + 1 for _, last in kept))
            resized.set_slice(cropped, kept)
        return resized

    # ------------------------------------------------------------------
    # Topology edits
    # ------------------------------------------------------------------

    def add_layer(self, width: int = 1, activation: Union[str, Operation] = "identity",
                  index: Optional[int] = None):
        """
        Insert a hidden layer.

        Parameters:
            width:      Number of units of the new layer
            activation: Its activation (name or Operation)
            index:      Position of the new layer in the layer list, between
                        1 and depth-1; defaults to just before the output layer
        """
        index = self.depth - 1 if index is None else index
        if not 1 <= index <= self.depth - 1:
            raise InvalidConfiguration(f"A hidden layer must be inserted between the input and output "
                                       f"layers (1..{self.depth - 1}), got {index}")
        if width < 1:
            raise InvalidConfiguration(f"A layer needs at least one unit, got {width}")

        previous = self._layers[index - 1].width
        following = self._layers[index].width

        self._layers.insert(index, Layer(width, get_activation(activation)))
        self._weights[index - 1] = self._sample(Matrix, (previous, width))
        self._weights.insert(index, self._sample(Matrix, (width, following)))
        self._biases.insert(index - 1, self._sample(Vector, (width,)))
        self._topology_version += 1

    def remove_layer(self, index: Optional[int] = None):
        """
        Delete a hidden layer; defaults to the last one.

        The weights into the removed layer are resized to connect its
        predecessor directly to its successor.
        """
        index = self.depth - 2 if index is None else index
        if not 1 <= index <= self.depth - 2:
            raise InvalidConfiguration(f"Only hidden layers (1..{self.depth - 2}) can be removed, got {index}")

        following = self._layers[index + 1].width
        previous  = self._layers[index - 1].width

        del self._layers[index]
        del self._weights[index]
        del self._biases[index - 1]
        self._weights[index - 1] = self._resize(self._weights[index - 1], (previous, following))
        self._topology_version += 1

    def _set_width(self, i: int, width: int):
        self._layers[i].width = width
        if i > 0:
            self._weights[i - 1] = self._resize(self._weights[i - 1], (self._layers[i - 1].width, width))
            self._biases[i - 1]  = self._resize(self._biases[i - 1], (width,))
        if i < self.depth - 1:
            self._weights[i] = self._resize(self._weights[i], (width, self._layers[i + 1].width))
        self._topology_version += 1

    def add_unit(self, i: int, n: int = 1):
        """Append n units to layer i; their connections and biases are sampled."""
        i = self._layer_index(i)
        if n < 1:
            raise InvalidConfiguration(f"Number of units to add must be positive, got {n}")
        self._set_width(i, self._layers[i].width + n)

    def remove_unit(self, i: int, n: int = 1):
        """Remove the last n units of layer i; the layer keeps at least one unit."""
        i = self._layer_index(i)
        if n < 1:
            raise InvalidConfiguration(f"Number of units to remove must be positive, got {n}")
        width = self._layers[i].width - n
        if width < 1:
            raise InvalidConfiguration(f"Layer {i} has {self._layers[i].width} units, cannot remove {n}")
        self._set_width(i, width)

    def set_layer_width(self, i: int, width: int):
        i = self._layer_index(i)
        if width < 1:
            raise InvalidConfiguration(f"A layer needs at least one unit, got {width}")
        if width != self._layers[i].width:
            self._set_width(i, width)

    def set_layer_activation(self, i: int, activation: Union[str, Operation]):
        i = self._layer_index(i)
        if i == 0:
            raise InvalidConfiguration("The activation of the input layer cannot be changed")
        self._layers[i].activation = get_activation(activation)
        self._topology_version += 1

    # ------------------------------------------------------------------
    # Parameter access
    # ------------------------------------------------------------------

    def get_weight(self, i: int, row: int, col: int) -> float:
        return self._weights[self._connection_index(i)][row, col]

    def set_weight(self, i: int, row: int, col: int, value: float):
        self._weights[self._connection_index(i)][row, col] = value

    def get_bias(self, i: int, j: int) -> float:
        return self._biases[self._connection_index(i)][j]

    def set_bias(self, i: int, j: int, value: float):
        self._biases[self._connection_index(i)][j] = value

    def get_weight_matrix(self, i: int) -> Matrix:
        return self._weights[self._connection_index(i)].clone()

    def get_bias_vector(self, i: int) -> Vector:
        return self._biases[self._connection_index(i)].clone()

    def set_weight_matrix(self, i: int, weights):
        i = self._connection_index(i)
        weights = weights if isinstance(weights, Matrix) else Matrix(weights)
        if weights.shape != self._weights[i].shape:
            raise ShapeMismatch(f"Weight matrix {i} has shape {self._weights[i].shape}, got {weights.shape}",
                                expected=self._weights[i].shape, actual=weights.shape)
        self._weights[i] = weights.clone()

    def set_bias_vector(self, i: int, biases):
        i = self._connection_index(i)
        biases = biases if isinstance(biases, Vector) else Vector(biases)
        if biases.shape != self._biases[i].shape:
            raise ShapeMismatch(f"Bias vector {i} has shape {self._biases[i].shape}, got {biases.shape}",
                                expected=self._biases[i].shape, actual=biases.shape)
        self._biases[i] = biases.clone()

    def get_parameters(self) -> Vector:
        """All weights (layer by layer, row-major), then all biases (layer by layer)."""
        parts = [w.flat() for w in self._weights] + [b.flat() for b in self._biases]
        return Vector(np.concatenate(parts))

    def set_parameters(self, parameters):
        """Write a flat parameter vector laid out as in get_parameters()."""
        values = parameters.flat() if isinstance(parameters, Vector) else np.asarray(parameters, dtype=np.float64).ravel()
        if values.size != self.parameter_count:
            raise ShapeMismatch(f"Network has {self.parameter_count} parameters, got {values.size}",
                                expected=self.parameter_count, actual=values.size)

        offset = 0
        for target in self._weights + self._biases:
            target.set_slice(values[offset:offset + target.size], [(0, n - 1) for n in target.shape])
            offset += target.size

    # ------------------------------------------------------------------
    # Forward pass
    # ------------------------------------------------------------------

    def _as_input(self, x) -> Vector:
        x = x if isinstance(x, Vector) else Vector(x)
        if x.size != self.num_inputs:
            raise ShapeMismatch(f"Network expects {self.num_inputs} inputs, got {x.size}",
                                expected=self.num_inputs, actual=x.size)
        return x

    def _as_target(self, y) -> Vector:
        y = y if isinstance(y, Vector) else Vector(y)
        if y.size != self.num_outputs:
            raise ShapeMismatch(f"Network has {self.num_outputs} outputs, got a target of length {y.size}",
                                expected=self.num_outputs, actual=y.size)
        return y

    def _forward(self, x: Vector) -> tuple[list[Vector], list[Vector]]:
        """Return the pre-activations z[i] of layer i+1 and the activations a[i] of layer i."""
        zs, activations = [], [x]
        for i, (weights, biases) in enumerate(zip(self._weights, self._biases)):
            z = weights.vec_mat_mul(activations[-1])
            z.add(biases)
            a = z.clone()
            a.apply(self._layers[i + 1].activation)
            zs.append(z)
            activations.append(a)
        return zs, activations

    def activate(self, x) -> Vector:
        """
        Forward pass.

        Parameters:
            x: Input vector (Vector or sequence) of length width(0)

        Returns:
            Output Vector of length width(depth-1)
        """
        v = self._as_input(x)
        for i, (weights, biases) in enumerate(zip(self._weights, self._biases)):
            v = weights.vec_mat_mul(v)
            v.add(biases)
            v.apply(self._layers[i + 1].activation)
        return v

    def activate_batch(self, xs: Sequence, threshold: int = STRASSEN_THRESHOLD) -> list[Vector]:
        """
        Forward pass of a whole batch, one matrix product per layer.

        The inputs are stacked as the rows of a Matrix V, and each layer
        computes V · weights[i] with Matrix.strassen_mul(), which falls back
        to the naive product for operands smaller than 'threshold' elements.

        Returns:
            One output Vector per input, in order
        """
        if len(xs) == 0:
            return []
        v = Matrix([self._as_input(x).flat() for x in xs])
        for i, (weights, biases) in enumerate(zip(self._weights, self._biases)):
            v = Matrix.strassen_mul(v, weights, threshold)
            v = Matrix(v.to_numpy() + biases.flat())
            v.apply(self._layers[i + 1].activation)
        return [v.get_row(r) for r in range(v.rows)]

    def loss(self, x, y) -> float:
        """½‖a − y‖² for one sample."""
        error = self.activate(x) - self._as_target(y)
        return 0.5 * error.dot(error)

    def mean_squared_error(self, xs: Sequence, ys: Sequence) -> float:
        """Mean over samples of the mean squared output error."""
        if len(xs) != len(ys):
            raise ShapeMismatch(f"Got {len(xs)} inputs but {len(ys)} targets", expected=len(xs), actual=len(ys))
        if len(xs) == 0:
            raise InvalidConfiguration("Cannot compute the error of an empty batch")

        total = 0.0
        for x, y in zip(xs, ys):
            error = self.activate(x) - self._as_target(y)
            total += error.dot(error) / error.size
        return total / len(xs)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def backprop(self, x, y) -> Gradients:
        """
        Gradients of the loss ½‖a_L − y‖² with respect to every weight and bias.

        Parameters:
            x: Input vector
            y: Target vector

        Returns:
            (grad_weights, grad_biases), shaped like the weights and biases
        """
        x, y = self._as_input(x), self._as_target(y)
        zs, activations = self._forward(x)
        last = len(self._weights) - 1

        grad_weights : list[Matrix] = [None] * len(self._weights)
        grad_biases  : list[Vector] = [None] * len(self._biases)

        # Output layer: δ = (a − y) ⊙ f'(z)
        delta = activations[-1] - y
        slope = zs[last].clone()
        slope.apply(self._layers[last + 1].activation.derivative)
        delta.hadamard_product(slope)
        grad_weights[last] = activations[last].outer(delta)
        grad_biases[last]  = delta

        # Hidden layers: δ_l = (W_{l+1} · δ_{l+1}) ⊙ f'(z_l)
        for l in range(last - 1, -1, -1):
            delta = self._weights[l + 1].mat_vec_mul(delta)
            slope = zs[l].clone()
            slope.apply(self._layers[l + 1].activation.derivative)
            delta.hadamard_product(slope)
            grad_weights[l] = activations[l].outer(delta)
            grad_biases[l]  = delta

        return grad_weights, grad_biases

    def _zero_gradients(self) -> Gradients:
        return ([Matrix.zeros(w.shape) for w in self._weights],
                [Vector.zeros(b.shape) for b in self._biases])

    def _accumulate_gradients(self, xs: Sequence, ys: Sequence) -> Gradients:
        """Sum of the per-sample gradients, in a buffer private to the caller."""
        sum_weights, sum_biases = self._zero_gradients()
        for x, y in zip(xs, ys):
            grad_weights, grad_biases = self.backprop(x, y)
            for total, grad in zip(sum_weights, grad_weights):
                total.add(grad)
            for total, grad in zip(sum_biases, grad_biases):
                total.add(grad)
        return sum_weights, sum_biases

    def train_mini_batch(self, xs: Sequence, ys: Sequence, learning_rate: float = 1.0, num_jobs: int = 1):
        """
        One gradient descent step on a batch.

        W -= (lr/n)·Σ∇W and b -= (lr/n)·Σ∇b over the n samples. With num_jobs
        other than 1 the samples are split between worker threads; each worker
        sums its gradients in its own buffer, and the buffers are added
        together here once all workers are done.

        Parameters:
            xs, ys:        Inputs and targets of the batch
            learning_rate: Step size
            num_jobs:      Number of worker threads (joblib convention, -1 = all cores)
        """
        if len(xs) != len(ys):
            raise ShapeMismatch(f"Got {len(xs)} inputs but {len(ys)} targets", expected=len(xs), actual=len(ys))
        n = len(xs)
        if n == 0:
            raise InvalidConfiguration("Cannot train on an empty batch")

        num_workers = min(n, effective_n_jobs(num_jobs))
        if num_workers <= 1:
            sum_weights, sum_biases = self._accumulate_gradients(xs, ys)
        else:
            chunks = np.array_split(np.arange(n), num_workers)
            partials = Parallel(num_workers, prefer="threads")(
                delayed(self._accumulate_gradients)([xs[k] for k in chunk], [ys[k] for k in chunk])
                for chunk in chunks)

            sum_weights, sum_biases = partials[0]
            for partial_weights, partial_biases in partials[1:]:
                for total, part in zip(sum_weights, partial_weights):
                    total.add(part)
                for total, part in zip(sum_biases, partial_biases):
                    total.add(part)

        # the network is left untouched when the step overflows
        step = learning_rate / n
        new_weights = [weights - grad * step for weights, grad in zip(self._weights, sum_weights)]
        new_biases  = [biases - grad * step for biases, grad in zip(self._biases, sum_biases)]
        for i, (weights, biases) in enumerate(zip(new_weights, new_biases)):
            weights.check_finite(f"weights[{i}]")
            biases.check_finite(f"biases[{i}]")

        for weights, updated in zip(self._weights, new_weights):
            weights.copy_from(updated)
        for biases, updated in zip(self._biases, new_biases):
            biases.copy_from(updated)

    def sgd(self,
            xs            : Sequence,
            ys            : Sequence,
            epochs        : int = 1,
            batch_size    : int = 10,
            learning_rate : float = 1.0,
            num_jobs      : int = 1):
        """
        Minibatch stochastic gradient descent.

        Each epoch shuffles the samples and runs train_mini_batch() on every
        full batch of 'batch_size' samples.

        Returns:
            The mean squared error over all samples after each epoch
        """
        if epochs < 0:
            raise InvalidConfiguration(f"Number of epochs cannot be negative, got {epochs}")
        dataset = DataSet(xs, ys, rng=self._rng)

        history = []
        for epoch in range(epochs):
            for batch in dataset.epoch_batches(batch_size):
                self.train_mini_batch([s.x for s in batch], [s.y for s in batch], learning_rate, num_jobs)
            history.append(self.mean_squared_error(xs, ys))
            logger.info("Epoch %d/%d complete (batch size %d, learning rate %g, mse %.6g)",
                        epoch + 1, epochs, batch_size, learning_rate, history[-1])
        return history

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def clone(self) -> "FeedForwardNetwork":
        """Deep copy of layers and parameters; the random source is shared."""
        other = FeedForwardNetwork.__new__(FeedForwardNetwork)
        other._distribution     = self._distribution
        other._init_params      = self._init_params
        other._rng              = self._rng
        other._topology_version = self._topology_version
        other._layers           = [Layer(layer.width, layer.activation) for layer in self._layers]
        other._weights          = [w.clone() for w in self._weights]
        other._biases           = [b.clone() for b in self._biases]
        return other
