"""
Evolutionary Network Module

This module implements EvoNetwork, the bridge that lets the genetic algorithm
search a feedforward network's parameter space directly.

Every individual's gene vector is the network's flat parameter vector: all
weights (layer by layer, row-major), then all biases (layer by layer). The
fitness of a gene vector is 1 / (1 + MSE), where MSE is the mean squared
output error over the current evaluation batch of a copy of the network
carrying those parameters.

The genetic algorithm's gene count is fixed when its bounds are built, so it
must be re-synchronized whenever the network's topology changes. train()
checks this before every run.

Classes:
    EvoNetwork: Genetic algorithm search over a network's weights and biases
"""

import logging
import threading
from typing import Callable, Optional, Sequence

from evolearn.genotype.bounds     import Bounds
from evolearn.linalg.vector       import Vector
from evolearn.phenotype.dataset   import DataSet
from evolearn.phenotype.network   import FeedForwardNetwork
from evolearn.pool                import GeneticAlgorithm
from evolearn.run.config          import Config
from evolearn.utils.errors        import InvalidConfiguration, ShapeMismatch
from evolearn.utils.random_source import Distribution, RandomSource

logger = logging.getLogger(__name__)


class EvoNetwork:
    """
    Genetic algorithm search over the weights and biases of a network.

    Public Attributes:
        ga: The GeneticAlgorithm whose genes are the network's parameters

    Public Properties:
        network:      The network being trained
        weight_count: Number of weight genes (they come first)
        bias_count:   Number of bias genes

    Public Methods:
        flatten(), unflatten(genes):       Network parameters <-> gene vector
        set_evaluation_batch(xs, ys):      Samples scored by network_score()
        network_score(genes):              1 / (1 + MSE) of a gene vector
        is_synchronized(), synchronize():  Gene layout vs. network topology
        train(xs, ys, epochs, batch_size): One generation per minibatch
        refine(xs, ys, ...):               Gradient descent on the champion
    """

    def __init__(self,
                 network          : FeedForwardNetwork,
                 config           : Optional[Config] = None,
                 fitness_function : Optional[Callable[[Vector], float]] = None,
                 num_jobs         : int = 1,
                 rng              : Optional[RandomSource] = None):
        """
        Parameters:
            network:          The network whose parameters are evolved
            config:           Genetic algorithm settings and parameter bounds
                              (default: Config() defaults)
            fitness_function: Fitness of a gene vector (default: network_score)
            num_jobs:         Worker threads of the genetic algorithm (1 = serial)
            rng:              Random source (default: the network's)
        """
        self._network : FeedForwardNetwork = network
        self._config  : Config             = config if config is not None else Config()
        self._rng     : RandomSource       = rng if rng is not None else network.rng
        self._xs      : list[Vector]       = []
        self._ys      : list[Vector]       = []
        self._scratch = threading.local()  # per-thread copy of the network
        self._layout  : tuple[int, int]    = self._parameter_layout()

        self.ga = GeneticAlgorithm(fitness_function if fitness_function is not None else self.network_score,
                                   self._build_bounds(),
                                   population_size = self._config.population_size,
                                   elite_count     = self._config.elite_count,
                                   cross_points    = self._config.cross_points,
                                   cross_offset    = self._config.cross_offset,
                                   mutation_rate   = self._config.mutation_rate,
                                   fitness_epsilon = self._config.fitness_epsilon,
                                   num_jobs        = num_jobs,
                                   rng             = self._rng)
        self.ga.populate()

    # ------------------------------------------------------------------
    # Gene layout
    # ------------------------------------------------------------------

    @property
    def network(self) -> FeedForwardNetwork:
        return self._network

    @property
    def weight_count(self) -> int:
        return self._layout[0]

    @property
    def bias_count(self) -> int:
        return self._layout[1]

    def _parameter_layout(self) -> tuple[int, int]:
        weight_count = sum(self._network.get_weight_matrix(i).size for i in range(self._network.depth - 1))
        return weight_count, self._network.parameter_count - weight_count

    def _build_bounds(self) -> Bounds:
        """Weight bounds for the first weight_count genes, bias bounds for the rest."""
        c = self._config
        weight_count, bias_count = self._layout
        if Distribution.parse(c.distribution) is Distribution.UNIFORM:
            weights = Bounds.uniform(c.min_weight, c.max_weight, c.min_weight_mutation, c.max_weight_mutation,
                                     gene_count=weight_count)
            biases  = Bounds.uniform(c.min_bias, c.max_bias, c.min_bias_mutation, c.max_bias_mutation,
                                     gene_count=bias_count)
        else:
            weights = Bounds.gaussian(c.weight_init_mean, c.weight_init_stdev,
                                      c.weight_mutation_mean, c.weight_mutation_stdev,
                                      gene_count=weight_count)
            biases  = Bounds.gaussian(c.bias_init_mean, c.bias_init_stdev,
                                      c.bias_mutation_mean, c.bias_mutation_stdev,
                                      gene_count=bias_count)
        return Bounds.concatenate(weights, biases)

    def flatten(self) -> Vector:
        return self._network.get_parameters()

    def unflatten(self, genes):
        """Write a gene vector into the network's weights and biases."""
        self._network.set_parameters(genes)

    def is_synchronized(self) -> bool:
        """True if the gene layout still matches the network's weight and bias counts."""
        return self._layout == self._parameter_layout() and self.ga.gene_count == self._network.parameter_count

    def synchronize(self):
        """Rebuild the bounds and the population for the network's current topology."""
        self._layout = self._parameter_layout()
        self.ga.bounds = self._build_bounds()
        self.ga.populate()
        logger.debug("Genetic algorithm synchronized: %d weight genes, %d bias genes", *self._layout)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def set_evaluation_batch(self, xs: Sequence, ys: Sequence):
        """Set the samples network_score() evaluates gene vectors on."""
        if len(xs) != len(ys):
            raise ShapeMismatch(f"Got {len(xs)} inputs but {len(ys)} targets", expected=len(xs), actual=len(ys))
        self._xs = [x.clone() if isinstance(x, Vector) else Vector(x) for x in xs]
        self._ys = [y.clone() if isinstance(y, Vector) else Vector(y) for y in ys]

    def _scratch_network(self) -> FeedForwardNetwork:
        """This thread's copy of the network, recreated after a topology edit."""
        network = getattr(self._scratch, "network", None)
        key     = (id(self._network), self._network.topology_version)
        if network is None or self._scratch.key != key:
            network = self._network.clone()
            self._scratch.network = network
            self._scratch.key     = key
        return network

    def network_score(self, genes) -> float:
        """
        Fitness of a gene vector: 1 / (1 + MSE) over the evaluation batch.

        The network itself is left untouched; the genes are written into a
        per-thread copy of it, so scoring can run on several threads.
        """
        if not self._xs:
            raise InvalidConfiguration("No evaluation batch, call set_evaluation_batch() first")

        network = self._scratch_network()
        network.set_parameters(genes)
        outputs = network.activate_batch(self._xs, self._config.strassen_threshold)

        total = 0.0
        for output, y in zip(outputs, self._ys):
            error = output - y
            total += error.dot(error) / error.size
        return 1.0 / (1.0 + total / len(self._xs))

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(self, xs: Sequence, ys: Sequence, epochs: int = 1, batch_size: int = 10, num_jobs: int = 1):
        """
        Evolve the network's parameters on a dataset.

        Each epoch shuffles the samples into full minibatches; every minibatch
        becomes the evaluation batch of one generation of the genetic
        algorithm, after which the champion is written into the network.

        Parameters:
            xs, ys:     Inputs and targets
            epochs:     Number of passes over the data
            batch_size: Samples per minibatch (one generation each)
            num_jobs:   Worker threads of the genetic algorithm

        Returns:
            The network's mean squared error over all samples after each epoch
        """
        if epochs < 0:
            raise InvalidConfiguration(f"Number of epochs cannot be negative, got {epochs}")
        if not self.is_synchronized():
            logger.warning("Network has %d parameters but the genetic algorithm has %d genes, re-synchronizing",
                           self._network.parameter_count, self.ga.gene_count)
            self.synchronize()

        self.ga.num_jobs = num_jobs
        dataset = DataSet(xs, ys, rng=self._rng)

        history = []
        for epoch in range(epochs):
            for batch in dataset.epoch_batches(batch_size):
                self.set_evaluation_batch([s.x for s in batch], [s.y for s in batch])
                champion = self.ga.continue_run(1)
                self.unflatten(champion.genes)
            history.append(self._network.mean_squared_error(xs, ys))
            logger.info("Epoch %d/%d complete (batch size %d, generation %d, best fitness %.6g, mse %.6g)",
                        epoch + 1, epochs, batch_size, self.ga.generation, self.ga.best_fitness, history[-1])
        return history

    def refine(self,
               xs            : Sequence,
               ys            : Sequence,
               epochs        : int = 1,
               batch_size    : int = 10,
               learning_rate : float = 1.0,
               lamarckian    : bool = False,
               num_jobs      : int = 1) -> dict:
        """
        Refine the genetic algorithm's champion by gradient descent.

        The champion's parameters are written into the network and trained
        with minibatch SGD; the network keeps the refined parameters. With
        'lamarckian' set, the refined parameters also replace the worst
        individual of the population, so offspring can inherit them.

        Returns:
            dict with the fitness and loss (MSE) before and after refinement:
                'fitness_before', 'fitness_after', 'fitness_improvement',
                'loss_before', 'loss_after', 'loss_improvement'
        """
        champion = self.ga.best_individual
        self.set_evaluation_batch(xs, ys)

        self.unflatten(champion.genes)
        loss_before = self._network.mean_squared_error(xs, ys)
        self._network.sgd(xs, ys, epochs, min(batch_size, len(xs)), learning_rate, num_jobs)
        loss_after  = self._network.mean_squared_error(xs, ys)

        fitness_before = 1.0 / (1.0 + loss_before)
        fitness_after  = 1.0 / (1.0 + loss_after)

        if lamarckian:
            self.ga.inject(self.flatten())
            self.ga.fit()

        return {
            'fitness_before':      fitness_before,
            'fitness_after':       fitness_after,
            'fitness_improvement': fitness_after - fitness_before,
            'loss_before':         loss_before,
            'loss_after':          loss_after,
            'loss_improvement':    loss_before - loss_after
        }
