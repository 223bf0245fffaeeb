"""
Trial with Gradient Descent Module

This module defines an abstract base class for trials that combine the
genetic algorithm's derivative-free search with gradient descent.

TrialGrad extends the base Trial class with an optional refinement phase:
every 'gradient_frequency' generations, the best individual's parameters are
trained with minibatch SGD (backpropagation).

Classes:
    TrialGrad: Abstract base class combining evolution with gradient descent
"""

from typing import Optional

from evolearn.linalg.vector import Vector
from evolearn.run.config    import Config
from evolearn.run.trial     import Trial

class TrialGrad(Trial):
    """
    Abstract base class for trials with gradient descent support.

    Gradient Training Configuration (via Config.GRADIENT_DESCENT section):
        enable_gradient:      Whether to use gradient descent (default: False)
        learning_rate:        Step size of the SGD updates
        batch_size:           Samples per minibatch (capped at the training set size)
        epochs:               Passes over the training data per refinement
        gradient_frequency:   Refine every N generations (default: 1)
        lamarckian_evolution: Write refined parameters back into the population (default: False)

    The key distinction between modes:
    - Baldwin effect: the refined parameters stay in the trial's network
                      (they are what the trial delivers), but the population
                      keeps evolving the unrefined genes
    - Lamarckian:     the refined parameters also replace the worst individual
                      of the population, so offspring can inherit them

    Public Attributes:
        gradient_data: Per-generation refinement results (fitness and loss before/after)

    Public Methods (inherited from Trial):
        run(): Execute a complete trial with optional gradient descent
    """

    def __init__(self, config: Config, suppress_output: bool = False):
        """
        Initialize the gradient-enabled trial.

        Parameters:
            config:          Configuration parameters (including gradient descent settings)
            suppress_output: If True, suppress progress and final reports
        """
        super().__init__(config, suppress_output)

        # Refinement results, keyed by generation
        self.gradient_data      : dict[int, dict]   = {}
        self._refined_parameters: Optional[Vector] = None

    def _reset(self):
        """Reset trial state."""
        super()._reset()
        self.gradient_data       = {}
        self._refined_parameters = None

    def _evaluate_fitness_all(self, num_jobs: int):
        """
        Evaluate fitness for all individuals, then refine the champion.

        Uses a two-pass approach:
        1. First pass:  Standard fitness evaluation for all individuals
        2. Second pass: Train the best individual's parameters by gradient
                        descent, if enabled for this generation

        Parameters:
            num_jobs: Number of worker threads for evaluation and backpropagation
        """
        # Pass #1: Compute fitness for all individuals
        super()._evaluate_fitness_all(num_jobs)

        # Pass #2: Fine-tune the champion via gradient descent
        do_gradient_descent = (self._config.enable_gradient and
                               self._generation_counter % self._config.gradient_frequency == 0)
        if not do_gradient_descent:
            return

        inputs, targets = self._get_training_data()
        results = self._evo_network.refine(inputs, targets,
                                           epochs        = self._config.epochs,
                                           batch_size    = self._config.batch_size,
                                           learning_rate = self._config.learning_rate,
                                           lamarckian    = self._config.lamarckian_evolution,
                                           num_jobs      = num_jobs)
        results['generation'] = self._generation_counter
        self.gradient_data[self._generation_counter] = results

        # Keep the refined parameters, which the population does not
        # carry in Baldwinian mode
        self._refined_parameters = self._evo_network.flatten()

    def _finalize_network(self):
        """
        Write the final parameters into the network.

        In Baldwinian mode the last refined parameters are kept instead of
        the champion's when they score better.
        """
        super()._finalize_network()

        if self._refined_parameters is not None and not self._config.lamarckian_evolution:
            if self._evaluate_fitness(self._refined_parameters) > self.best_individual.fitness:
                self._evo_network.unflatten(self._refined_parameters)
