"""
Trial Module

A trial is one self-contained evolutionary run: a network is built from the
configuration, its parameters become the genes of a population, and the
population is bred generation after generation until a stopping rule fires.
The winner's parameters are then written back into the network.

Scoring a generation may use a pool of worker threads (joblib).
"""

from abc        import ABC, abstractmethod
from statistics import mean
from typing     import Optional

from evolearn.genotype            import Individual
from evolearn.linalg.vector       import Vector
from evolearn.phenotype.network   import FeedForwardNetwork
from evolearn.run.config          import Config
from evolearn.run.evo_network     import EvoNetwork
from evolearn.utils.errors        import InvalidConfiguration
from evolearn.utils.random_source import RandomSource

# population statistics usable as 'fitness_criterion'
FITNESS_CRITERIA = {"max": max, "mean": mean}

class Trial(ABC):
    """
    Base class for a single evolutionary run over a network's parameters.

    Required hooks:
        _reset()               chain to super()._reset(), then set up problem data
        _get_training_data()   (inputs, targets) used for scoring
        _report_progress()     called once per generation, generation 0 included
        _final_report()        called after the network has been finalized

    Optional hooks:
        _evaluate_fitness(genes)   defaults to 1 / (1 + MSE) on the training data
        _finalize_network()        defaults to loading the best individual's genes
        _terminate()               defaults to a generation cap plus an optional
                                   fitness threshold

    After run() the trained network is available as 'network', the number of
    bred generations as 'generation', and 'failed' tells whether the fitness
    threshold was missed. Reports are skipped when 'suppress_output' is set,
    as experiments do for their trials.

    'num_jobs' is the joblib thread count used when scoring a generation
    (1 serial, -1 every core).
    """

    def __init__(self, config: Config, suppress_output: bool = False):
        self._config            : Config                       = config
        self._generation_counter: int                          = 0
        self._rng               : Optional[RandomSource]       = None
        self._network           : Optional[FeedForwardNetwork] = None
        self._evo_network       : Optional[EvoNetwork]         = None
        self._suppress_output   : bool                         = suppress_output
        self.failed             : bool                         = True

    @property
    def network(self) -> FeedForwardNetwork:
        return self._network

    @property
    def generation(self) -> int:
        return self._generation_counter

    @property
    def best_individual(self) -> Individual:
        return self._evo_network.ga.best_individual

    def run(self, num_jobs: int = 1):
        """Reset, then evolve until _terminate() says stop."""
        self._reset()

        self._network     = self._build_network()
        self._evo_network = EvoNetwork(self._network, self._config,
                                       fitness_function=self._evaluate_fitness,
                                       num_jobs=num_jobs,
                                       rng=self._rng)
        inputs, targets = self._get_training_data()
        self._evo_network.set_evaluation_batch(inputs, targets)

        self._evaluate_fitness_all(num_jobs)
        self._maybe_report()

        while not self._terminate():
            self._generation_counter += 1
            self._spawn_next_generation()
            self._evaluate_fitness_all(num_jobs)
            self._maybe_report()

        self._finalize_network()
        if not self._suppress_output:
            self._final_report()

    def _maybe_report(self):
        if not self._suppress_output:
            self._report_progress()

    @abstractmethod
    def _reset(self):
        """
        Prepare for a fresh run: validate the configuration, reseed, and
        zero the counters. Overrides must call this first.
        """
        self._config.validate()
        self._rng = RandomSource(self._config.seed)
        self._generation_counter = 0
        self.failed = True

    def _build_network(self) -> FeedForwardNetwork:
        """Network shaped by the [NETWORK] section, initialized from the trial's random source."""
        return FeedForwardNetwork(num_inputs        = self._config.num_inputs,
                                  num_outputs       = self._config.num_outputs,
                                  hidden_layers     = self._config.hidden_layers,
                                  hidden_activation = self._config.hidden_activation,
                                  output_activation = self._config.output_activation,
                                  distribution      = self._config.distribution,
                                  init_params       = self._config.weight_init_params,
                                  rng               = self._rng)

    @abstractmethod
    def _get_training_data(self) -> tuple[list, list]:
        """
        Return (inputs, targets): equally long sequences of vectors with
        num_inputs and num_outputs entries respectively.
        """
        pass

    def _evaluate_fitness(self, genes: Vector) -> float:
        """
        Fitness of one flat parameter vector (weights first, then biases).

        Larger is better. The default loads the genes into a scratch copy of
        the network and returns 1 / (1 + MSE) over the training data.
        """
        return self._evo_network.network_score(genes)

    def _evaluate_fitness_all(self, num_jobs: int):
        """Score the whole population; afterwards it is sorted best first."""
        ga = self._evo_network.ga
        ga.num_jobs = num_jobs
        ga.fit()

    def _finalize_network(self):
        """Load the champion's genes into the delivered network."""
        self._evo_network.unflatten(self.best_individual.genes)

    def _spawn_next_generation(self):
        ga = self._evo_network.ga
        ga.crossover()
        ga.mutate()
        ga.replace_population()

    @abstractmethod
    def _report_progress(self):
        """Show the state of the current generation (skipped when output is suppressed)."""
        pass

    @abstractmethod
    def _final_report(self):
        """Show the outcome of the run (skipped when output is suppressed)."""
        pass

    def _terminate(self) -> bool:
        """
        Default stopping rule.

        Stops once 'max_number_generations' generations have been bred. With
        'fitness_termination_check' on, it also stops as soon as the
        population statistic named by 'fitness_criterion' reaches
        'fitness_threshold', and records in 'failed' whether that happened.
        """
        out_of_generations = self._generation_counter >= self._config.max_number_generations
        if not self._config.fitness_termination_check:
            return out_of_generations

        statistic = FITNESS_CRITERIA.get(self._config.fitness_criterion)
        if statistic is None:
            raise InvalidConfiguration("bad 'fitness_criterion' in configuration file")

        population_fitness = statistic(indv.fitness for indv in self._evo_network.ga.population)
        success = population_fitness >= self._config.fitness_threshold
        if out_of_generations or success:
            self.failed = not success
            return True
        return False
