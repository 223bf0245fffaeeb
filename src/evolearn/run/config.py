"""
Configuration Module

This module implements Config, the plain configuration record read from a
sectioned INI file (or filled in attribute by attribute).

Sections:
    [NETWORK]            Shape and activations of the network, Strassen threshold
    [GENETIC_ALGORITHM]  Population size, elitism, crossover and mutation settings
    [PARAMETER_BOUNDS]   Sampling and mutation bounds of weights and biases
    [GRADIENT_DESCENT]   Optional gradient descent refinement (optional section)
    [TERMINATION]        When a trial stops
    [RANDOM]             Seed of the random source (optional section)

Classes:
    Config: Configuration parameters
"""

import configparser
import os
from typing import Optional

from evolearn.activations         import activations
from evolearn.linalg.matrix       import STRASSEN_THRESHOLD
from evolearn.utils.errors        import InvalidConfiguration
from evolearn.utils.random_source import Distribution

class Config:

    @staticmethod
    def _parse_hidden_layers(raw_layers):
        """
        Parse hidden_layers from string to list.

        Parameters:
            raw_layers: Either "none", an empty string, a comma-separated list of widths,
                        or already a sequence of widths

        Returns:
            List of hidden layer widths, input side first
        """
        if raw_layers is None:
            return []
        if not isinstance(raw_layers, str):
            return [int(width) for width in raw_layers]

        parsed = []
        for item in raw_layers.split(','):
            item = item.strip()
            if not item:
                continue
            try:
                parsed.append(int(item))
            except ValueError:
                raise InvalidConfiguration(f"Invalid layer width '{item}' in hidden_layers") from None
        return parsed

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize Config by parsing an INI file, or create a Config with default values.

        Parameters:
            config_file: Path to the INI configuration file.
                         If None, creates a Config with defaults for manual attribute setting.
        """

        # Default config for testing/manual setup
        if config_file is None:

            # Set defaults for the network
            self.num_inputs         = 1
            self.num_outputs        = 1
            self.hidden_layers      = []
            self.hidden_activation  = 'sigmoid'
            self.output_activation  = 'identity'
            self.strassen_threshold = STRASSEN_THRESHOLD

            # Set defaults for the genetic algorithm
            self.population_size = 50
            self.elite_count     = 2
            self.cross_points    = 1
            self.cross_offset    = 0
            self.mutation_rate   = 0.1
            self.fitness_epsilon = 0.01
            self.distribution    = Distribution.GAUSSIAN

            # Set defaults for the parameter bounds (Uniform distribution)
            self.min_weight          = -1.0
            self.max_weight          =  1.0
            self.min_weight_mutation = -0.5
            self.max_weight_mutation =  0.5
            self.min_bias            = -1.0
            self.max_bias            =  1.0
            self.min_bias_mutation   = -0.5
            self.max_bias_mutation   =  0.5

            # Set defaults for the parameter bounds (Gaussian distribution)
            self.weight_init_mean      = 0.0
            self.weight_init_stdev     = 1.0
            self.weight_mutation_mean  = 0.0
            self.weight_mutation_stdev = 0.5
            self.bias_init_mean        = 0.0
            self.bias_init_stdev       = 1.0
            self.bias_mutation_mean    = 0.0
            self.bias_mutation_stdev   = 0.5

            # Set defaults for gradient descent (optional)
            self.enable_gradient      = False
            self.learning_rate        = 0.5
            self.batch_size           = 10
            self.epochs               = 1
            self.gradient_frequency   = 1
            self.lamarckian_evolution = False

            # Set defaults for termination
            self.max_number_generations    = 100
            self.fitness_termination_check = False
            self.fitness_criterion         = 'max'
            self.fitness_threshold         = 1.0

            # Set defaults for the random source
            self.seed = None

            return

        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file '{config_file}' not found")

        parser = configparser.ConfigParser()
        parser.read(config_file)

        # Sentinel for missing default values
        _NO_DEFAULT = object()

        # Helper function to safely parse values
        def get_value(section, key, value_type, default=_NO_DEFAULT):
            try:
                raw_value = parser.get(section, key)
                if raw_value.lower() == 'none':
                    return None
                if value_type == int:
                    return parser.getint(section, key)
                elif value_type == float:
                    return parser.getfloat(section, key)
                elif value_type == bool:
                    return parser.getboolean(section, key)
                elif value_type == str:
                    return raw_value
            except (configparser.NoSectionError, configparser.NoOptionError):
                if default is not _NO_DEFAULT:
                    return default
                raise
            except ValueError as e:
                raise InvalidConfiguration(f"Bad value for '{key}' in section [{section}]: {e}") from e

        # [NETWORK]

        # The number of inputs, through which the network receives its input vector.
        self.num_inputs = get_value('NETWORK', 'num_inputs', int)

        # The number of outputs, through which the network delivers its output vector.
        self.num_outputs = get_value('NETWORK', 'num_outputs', int)

        # The widths of the hidden layers, input side first, as a comma-separated list.
        # Use "None" (or leave empty) for a network without hidden layers.
        self.hidden_layers = get_value('NETWORK', 'hidden_layers', str, default=None)

        # The activation functions of the hidden layers and of the output layer.
        # Allowed values: any name registered in evolearn.activations
        # (identity, binary_step, sigmoid, tanh, relu, leaky_relu, elliot_sig, swish, sqnl, gelu)
        self.hidden_activation = get_value('NETWORK', 'hidden_activation', str, default='sigmoid')
        self.output_activation = get_value('NETWORK', 'output_activation', str, default='identity')

        # Matrix products whose operands both hold fewer elements than this
        # threshold use the naive product instead of Strassen's algorithm.
        self.strassen_threshold = get_value('NETWORK', 'strassen_threshold', int, default=STRASSEN_THRESHOLD)

        # [GENETIC_ALGORITHM]

        # The number of individuals in each generation.
        self.population_size = get_value('GENETIC_ALGORITHM', 'population_size', int)

        # The number of best individuals copied unchanged into the next generation.
        self.elite_count = get_value('GENETIC_ALGORITHM', 'elite_count', int)

        # The number of crossover cut points. Use 0 for uniform (per-gene coin flip) crossover.
        self.cross_points = get_value('GENETIC_ALGORITHM', 'cross_points', int)

        # Rotation applied to the gene indices written into the children.
        self.cross_offset = get_value('GENETIC_ALGORITHM', 'cross_offset', int, default=0)

        # The probability that a single gene is mutated.
        self.mutation_rate = get_value('GENETIC_ALGORITHM', 'mutation_rate', float)

        # Added to the shift that makes negative fitness scores non-negative
        # before building the roulette-wheel selection table.
        self.fitness_epsilon = get_value('GENETIC_ALGORITHM', 'fitness_epsilon', float, default=0.01)

        # The distribution new parameters are sampled from, and which set
        # of bounds in [PARAMETER_BOUNDS] applies.
        # Allowed values: "uniform", "gaussian"
        self.distribution = get_value('GENETIC_ALGORITHM', 'distribution', str)

        # [PARAMETER_BOUNDS]

        # Uniform distribution: weights and biases are sampled from [min, max], and a
        # mutated value v is redrawn from [v + min_mutation, v + max_mutation] clamped
        # to [min, max]. With both mutation deltas zero, the value is redrawn from [min, max].
        self.min_weight          = get_value('PARAMETER_BOUNDS', 'min_weight',          float, default=-1.0)
        self.max_weight          = get_value('PARAMETER_BOUNDS', 'max_weight',          float, default= 1.0)
        self.min_weight_mutation = get_value('PARAMETER_BOUNDS', 'min_weight_mutation', float, default=-0.5)
        self.max_weight_mutation = get_value('PARAMETER_BOUNDS', 'max_weight_mutation', float, default= 0.5)
        self.min_bias            = get_value('PARAMETER_BOUNDS', 'min_bias',            float, default=-1.0)
        self.max_bias            = get_value('PARAMETER_BOUNDS', 'max_bias',            float, default= 1.0)
        self.min_bias_mutation   = get_value('PARAMETER_BOUNDS', 'min_bias_mutation',   float, default=-0.5)
        self.max_bias_mutation   = get_value('PARAMETER_BOUNDS', 'max_bias_mutation',   float, default= 0.5)

        # Gaussian distribution: weights and biases are sampled from N(init_mean, init_stdev),
        # and a mutated value is perturbed by a draw from N(mutation_mean, mutation_stdev).
        self.weight_init_mean      = get_value('PARAMETER_BOUNDS', 'weight_init_mean',      float, default=0.0)
        self.weight_init_stdev     = get_value('PARAMETER_BOUNDS', 'weight_init_stdev',     float, default=1.0)
        self.weight_mutation_mean  = get_value('PARAMETER_BOUNDS', 'weight_mutation_mean',  float, default=0.0)
        self.weight_mutation_stdev = get_value('PARAMETER_BOUNDS', 'weight_mutation_stdev', float, default=0.5)
        self.bias_init_mean        = get_value('PARAMETER_BOUNDS', 'bias_init_mean',        float, default=0.0)
        self.bias_init_stdev       = get_value('PARAMETER_BOUNDS', 'bias_init_stdev',       float, default=1.0)
        self.bias_mutation_mean    = get_value('PARAMETER_BOUNDS', 'bias_mutation_mean',    float, default=0.0)
        self.bias_mutation_stdev   = get_value('PARAMETER_BOUNDS', 'bias_mutation_stdev',   float, default=0.5)

        # [GRADIENT_DESCENT] (optional section)

        # Whether to refine the best individual by gradient descent during a trial.
        self.enable_gradient = get_value('GRADIENT_DESCENT', 'enable_gradient', bool, default=False)

        # Step size of the gradient descent updates.
        self.learning_rate = get_value('GRADIENT_DESCENT', 'learning_rate', float, default=0.5)

        # Number of samples per minibatch, for both training modes: one generation
        # of the genetic algorithm per minibatch, or one gradient step per minibatch.
        self.batch_size = get_value('GRADIENT_DESCENT', 'batch_size', int, default=10)

        # Number of passes over the training data per refinement.
        self.epochs = get_value('GRADIENT_DESCENT', 'epochs', int, default=1)

        # Refine every N generations (1 = every generation).
        self.gradient_frequency = get_value('GRADIENT_DESCENT', 'gradient_frequency', int, default=1)

        # Whether to write refined parameters back into the population (Lamarckian evolution).
        # If False, refinement only affects the reported result and is not inherited
        # by offspring (Baldwin effect).
        self.lamarckian_evolution = get_value('GRADIENT_DESCENT', 'lamarckian_evolution', bool, default=False)

        # [TERMINATION]

        # The maximum number of generations a trial runs for.
        self.max_number_generations = get_value('TERMINATION', 'max_number_generations', int)

        # Whether to also stop a trial once population fitness reaches a threshold.
        self.fitness_termination_check = get_value('TERMINATION', 'fitness_termination_check', bool)

        # Measure of population fitness compared against the threshold.
        # Allowed values: "max", "mean"
        self.fitness_criterion = get_value('TERMINATION', 'fitness_criterion', str, default='max')

        # The fitness threshold (only applicable if fitness_termination_check is True).
        self.fitness_threshold = get_value('TERMINATION', 'fitness_threshold', float, default=None)

        # [RANDOM] (optional section)

        # Seed of the random source. Use "None" for a non-reproducible run.
        self.seed = get_value('RANDOM', 'seed', int, default=None)

    def __setattr__(self, name, value):
        """
        Override 'setattr' to automatically parse hidden_layers and distribution when set.
        This allows users to write config.hidden_layers = "8, 4" or config.distribution = "uniform".
        """
        if name == 'hidden_layers':
            value = self._parse_hidden_layers(value)
        elif name == 'distribution' and value is not None:
            value = Distribution.parse(value)
        super().__setattr__(name, value)

    @property
    def weight_init_params(self) -> tuple[float, float]:
        """(low, high) for Uniform, (mean, stdev) for Gaussian."""
        if self.distribution is Distribution.UNIFORM:
            return self.min_weight, self.max_weight
        return self.weight_init_mean, self.weight_init_stdev

    def validate(self):
        """
        Check the values for consistency.

        Raises:
            InvalidConfiguration: if any value is out of its allowed range
        """
        if self.num_inputs is None or self.num_inputs < 1:
            raise InvalidConfiguration(f"num_inputs must be at least 1, got {self.num_inputs}")
        if self.num_outputs is None or self.num_outputs < 1:
            raise InvalidConfiguration(f"num_outputs must be at least 1, got {self.num_outputs}")
        if any(width < 1 for width in self.hidden_layers):
            raise InvalidConfiguration(f"Hidden layer widths must be at least 1, got {self.hidden_layers}")
        for name in (self.hidden_activation, self.output_activation):
            if name is None or name.strip().lower() not in activations:
                raise InvalidConfiguration(f"Unknown activation function '{name}'")
        if self.strassen_threshold is None or self.strassen_threshold < 1:
            raise InvalidConfiguration(f"strassen_threshold must be at least 1, got {self.strassen_threshold}")

        if self.population_size is None or self.population_size < 1:
            raise InvalidConfiguration(f"population_size must be at least 1, got {self.population_size}")
        if self.elite_count is None or not 0 <= self.elite_count <= self.population_size:
            raise InvalidConfiguration(f"elite_count must be between 0 and population_size, got {self.elite_count}")
        if self.cross_points is None or self.cross_points < 0:
            raise InvalidConfiguration(f"cross_points cannot be negative, got {self.cross_points}")
        if self.mutation_rate is None or not 0.0 <= self.mutation_rate <= 1.0:
            raise InvalidConfiguration(f"mutation_rate must be in [0, 1], got {self.mutation_rate}")
        if self.distribution is None:
            raise InvalidConfiguration("distribution must be 'uniform' or 'gaussian'")

        if self.distribution is Distribution.UNIFORM:
            if self.min_weight > self.max_weight or self.min_bias > self.max_bias:
                raise InvalidConfiguration("Uniform parameter bounds need min <= max")
            if (self.min_weight_mutation > self.max_weight_mutation or
                self.min_bias_mutation   > self.max_bias_mutation):
                raise InvalidConfiguration("Uniform mutation deltas need min <= max")
        else:
            stdevs = (self.weight_init_stdev, self.weight_mutation_stdev,
                      self.bias_init_stdev,   self.bias_mutation_stdev)
            if any(stdev < 0 for stdev in stdevs):
                raise InvalidConfiguration("Gaussian standard deviations cannot be negative")

        if self.learning_rate <= 0:
            raise InvalidConfiguration(f"learning_rate must be positive, got {self.learning_rate}")
        if self.batch_size < 1:
            raise InvalidConfiguration(f"batch_size must be at least 1, got {self.batch_size}")
        if self.epochs < 0:
            raise InvalidConfiguration(f"epochs cannot be negative, got {self.epochs}")
        if self.gradient_frequency < 1:
            raise InvalidConfiguration(f"gradient_frequency must be at least 1, got {self.gradient_frequency}")

        if self.max_number_generations is None or self.max_number_generations < 0:
            raise InvalidConfiguration(f"max_number_generations cannot be negative, "
                                       f"got {self.max_number_generations}")
        if self.fitness_termination_check:
            if self.fitness_criterion not in ('max', 'mean'):
                raise InvalidConfiguration(f"fitness_criterion must be 'max' or 'mean', "
                                           f"got '{self.fitness_criterion}'")
            if self.fitness_threshold is None:
                raise InvalidConfiguration("fitness_threshold is required when fitness_termination_check is set")
