"""
evolearn - feedforward neural networks trained by backpropagation, by a
genetic algorithm over their parameters, or by both.

This package provides its own dense array engine (N-dimensional arrays,
vectors and matrices with Strassen multiplication), a registry of activation
functions, a feedforward network with topology editing, backpropagation and
minibatch SGD, and a generational genetic algorithm that can search a
network's parameter space directly.

Main components:
- utils: Error taxonomy and the injected random source
- linalg: NDArray, Tensor, Vector, Matrix and numerical calculus
- activations: Activation functions for neural networks
- phenotype: The feedforward network, datasets and JSON persistence
- genotype: Individuals and gene bounds
- pool: The genetic algorithm
- run: Configuration, the EvoNetwork bridge, trials and experiments

Example:
    >>> from evolearn import Config, FeedForwardNetwork, EvoNetwork
    >>> network = FeedForwardNetwork(num_inputs=2, num_outputs=1, hidden_layers=[2])
    >>> evo = EvoNetwork(network, Config())
    >>> evo.train(xs, ys, epochs=10, batch_size=4)
"""

__version__ = "0.1.0"

# Import main classes for convenient access
from evolearn.run.config import Config
from evolearn.run.evo_network import EvoNetwork
from evolearn.run.trial import Trial
from evolearn.run.trial_grad import TrialGrad
from evolearn.run.experiment import Experiment
from evolearn.phenotype.network import FeedForwardNetwork
from evolearn.phenotype.dataset import DataSet
from evolearn.pool.genetic_algorithm import GeneticAlgorithm
from evolearn.genotype.bounds import Bounds
from evolearn.genotype.individual import Individual
from evolearn.utils.random_source import RandomSource

__all__ = [
    "Config",
    "EvoNetwork",
    "Trial",
    "TrialGrad",
    "Experiment",
    "FeedForwardNetwork",
    "DataSet",
    "GeneticAlgorithm",
    "Bounds",
    "Individual",
    "RandomSource",
]
