"""
Experiment Module

Repeats a trial many times with independent seeds and collects per-trial
statistics, so that the behaviour of the genetic algorithm on a problem can
be judged over a sample of runs rather than a single one.

Trials are either executed one after another or spread over a pool of
worker processes with joblib; inside each trial the fitness evaluations can
additionally use worker threads.
"""

import copy
import sys
from abc    import ABC, abstractmethod
from joblib import Parallel, delayed
from typing import Optional, Type

from evolearn.run.config import Config
from evolearn.run.trial  import Trial

class Experiment(ABC):
    """
    Base class for a batch of independent trials of the same kind.

    Each trial receives a private copy of the configuration. When the
    configuration carries a seed, trial n runs with seed + n; the sequence of
    results is therefore the same for any number of worker processes.

    Hooks for subclasses:
        _reset()                                      clear statistics, chain to super()
        _prepare_trial(trial, trial_number)           adjust a trial before it runs
        _extract_trial_results(trial, trial_number)   turn a finished trial into a dict
        _analyze_trial_results(results)               consume one result dict
        _final_report()                               summarize the whole batch

    Public interface:
        run(num_jobs_trials=1, num_jobs_fitness=1)
        success_rate

    Worker counts follow joblib conventions: 1 means serial, a positive
    number sets the pool size and -1 uses every core. 'num_jobs_trials'
    sizes a pool of processes; 'num_jobs_fitness' sizes the thread pool each
    trial uses for its fitness evaluations. Keep the latter at 1 when trials
    already run in parallel.
    """

    def __init__(self, trial_class: Type[Trial], num_trials: int, config: Config,
                 *args, **kwargs):
        """
        Parameters:
            trial_class: Trial subclass instantiated for every run
            num_trials:  how many runs make up the experiment
            config:      base configuration, copied per trial
            *args:       extra positional arguments for the trial constructor
            **kwargs:    extra keyword arguments for the trial constructor
        """
        self._trial_class: Type[Trial] = trial_class
        self._num_trials : int         = num_trials
        self._config     : Config      = config
        self._trial_args               = args
        self._trial_kwargs             = kwargs

        self._trial_counter  : int = 0  # trials completed
        self._success_counter: int = 0  # trials that met the fitness threshold

        # collected over successful trials only
        self._number_generations: list[int]   = []
        self._max_fitness       : list[float] = []
        self._final_mse         : list[float] = []

    @property
    def success_rate(self) -> float:
        """Fraction of completed trials that succeeded; 0.0 before any ran."""
        if not self._trial_counter:
            return 0.0
        return self._success_counter / self._trial_counter

    @abstractmethod
    def _reset(self):
        """Clear the statistics of a previous run."""
        self._trial_counter      = 0
        self._success_counter    = 0
        self._number_generations = []
        self._max_fitness        = []
        self._final_mse          = []

    def run(self, num_jobs_trials: int = 1, num_jobs_fitness: int = 1):
        """
        Execute every trial, then analyze and report.

        Results are analyzed in trial order once all trials have finished,
        whichever execution mode was used.
        """
        self._reset()

        if num_jobs_trials == 1:
            results = self._run_serial(num_jobs_fitness)
        else:
            results = self._run_parallel(num_jobs_trials, num_jobs_fitness)

        for r in results:
            self._analyze_trial_results(r)
        self._final_report()

    def _run_serial(self, num_jobs_fitness: int) -> list[dict]:
        results = []
        for n in range(1, self._num_trials + 1):
            results.append(self._run_trial(n, num_jobs_fitness))
            self._trial_counter = n
        return results

    def _run_parallel(self, num_jobs_trials: int, num_jobs_fitness: int) -> list[dict]:
        # joblib returns results in submission order
        results = Parallel(num_jobs_trials)(
            delayed(self._run_trial)(n, num_jobs_fitness)
            for n in range(1, self._num_trials + 1)
        )
        self._trial_counter = self._num_trials
        return list(results)

    def _trial_config(self, trial_number: int) -> Config:
        """Shallow copy of the base configuration, reseeded for one trial."""
        config = copy.copy(self._config)
        base_seed: Optional[int] = self._config.seed
        config.seed = None if base_seed is None else base_seed + trial_number
        return config

    def _run_trial(self, trial_number: int, num_jobs: int = 1) -> dict:
        """Build, prepare and run trial 'trial_number' (1-based); return its results."""
        trial = self._trial_class(*self._trial_args,
                                  config=self._trial_config(trial_number),
                                  suppress_output=True,
                                  **self._trial_kwargs)
        self._prepare_trial(trial, trial_number)
        trial.run(num_jobs)
        return self._extract_trial_results(trial, trial_number)

    @abstractmethod
    def _prepare_trial(self, trial: Trial, trial_number: int):
        """
        Hook called right before a trial runs.

        The base version writes a one-line progress indicator; overriding
        implementations may skip it.
        """
        sys.stdout.write(f"Starting trial {trial_number:03d} of {self._num_trials}...\r")
        sys.stdout.flush()

    @abstractmethod
    def _extract_trial_results(self, trial: Trial, trial_number: int) -> dict:
        """
        Summarize a finished trial as a dict.

        Overrides must start from the dict returned here, which holds the
        entries the base statistics rely on.
        """
        inputs, targets = trial._get_training_data()
        network         = trial.network
        return {
            "trial_number":       trial_number,
            "number_generations": trial.generation,
            "max_fitness":        trial.best_individual.fitness,
            "final_mse":          network.mean_squared_error(inputs, targets),
            "parameter_count":    network.parameter_count,
            "success":            not trial.failed,
        }

    @abstractmethod
    def _analyze_trial_results(self, results: dict):
        """
        Fold one trial's results into the experiment statistics.

        Overrides must call this before doing their own processing.
        """
        if not results["success"]:
            return
        self._success_counter += 1
        self._number_generations.append(results["number_generations"])
        self._max_fitness.append(results["max_fitness"])
        self._final_mse.append(results["final_mse"])

    @abstractmethod
    def _final_report(self):
        """Summarize the experiment once every trial has been analyzed."""
        pass
