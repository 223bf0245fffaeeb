"""
Function Regression with Gradient Descent.

This module approximates a 1D function with a small feedforward network whose
parameters are evolved by the genetic algorithm and periodically refined by
minibatch gradient descent.

The hybrid approach combines:
- the genetic algorithm's derivative-free global search over weights and biases
- backpropagation for fine-tuning the best individual

With lamarckian_evolution = True (as in config_regression.ini) the refined
parameters are written back into the population; otherwise they only shape
the network the trial delivers (Baldwin effect).

Classes:
    Trial_RegressionGrad:      Function approximation with gradient descent
    Experiment_RegressionGrad: Multi-trial experiment with gradient support
"""

import math
from pathlib    import Path
from statistics import mean
from typing     import Callable

import numpy as np

from evolearn.phenotype import save_network
from evolearn.run       import Config, Experiment, TrialGrad

CONFIG_FILE = Path(__file__).parent / "configs" / "config_regression.ini"

class Trial_RegressionGrad(TrialGrad):
    """
    Evolution + gradient descent for function approximation.

    The fitness is 1 / (1 + MSE) on evenly spaced sample points of the
    function; gradient descent minimizes the same MSE.
    """

    def __init__(self,
                 config          : Config,
                 function        : Callable[[float], float],
                 x_min           : float,
                 x_max           : float,
                 num_points      : int = 50,
                 suppress_output : bool = False):
        """
        Initialize the gradient-enhanced function approximation trial.

        Parameters:
            config:          Configuration parameters
            function:        The 1D function being approximated
            x_min:           Beginning of approximation range
            x_max:           End of approximation range
            num_points:      Number of sample points
            suppress_output: If True, suppress progress reports
        """
        super().__init__(config, suppress_output)

        # Generate sample points for function approximation
        self._Xs = [[x] for x in np.linspace(x_min, x_max, num_points)]
        self._Ys = [[function(x[0])] for x in self._Xs]

    def _reset(self):
        """Reset trial state."""
        return super()._reset()

    def _get_training_data(self):
        return self._Xs, self._Ys

    def _report_gradient_statistics(self) -> str:
        improvements = [data['loss_improvement'] for data in self.gradient_data.values()]
        s  = f"gradient steps  = {len(improvements)}\n"
        s += f"avg loss gain   = {mean(improvements):.6f}\n"
        return s

    def _report_progress(self):
        """
        Display progress including gradient descent statistics.
        """
        display_progress = (self._generation_counter % 20 == 1) or self._terminate()

        if display_progress:
            population = self._evo_network.ga.population

            s  = f"===============\n"
            s += f"GENERATION {self._generation_counter:04d}\n"
            s += f"population size = {len(population)}\n"
            s += f"maximum fitness = {population[0].fitness:.4f}\n"

            # Add gradient statistics if enabled
            if self.gradient_data:
                s += self._report_gradient_statistics()

            print(s)

    def _final_report(self):
        """
        Display final results including gradient training summary, and save the network.
        """
        if self.gradient_data:
            improvements = [data['loss_improvement'] for data in self.gradient_data.values()]
            print("\n" + "=" * 50)
            print("GRADIENT DESCENT SUMMARY")
            print("=" * 50)
            print(f"Total refinements applied:     {len(improvements)}")
            print(f"Average loss improvement:      {mean(improvements):.6f}")
            print(f"Total loss improvement:        {sum(improvements):.6f}")
            print()

        mse = self._network.mean_squared_error(self._Xs, self._Ys)
        print(f"Final mse: {mse:.6f}")

        path = save_network(self._network, "regression_network.json")
        print(f"Network saved as '{path}'")


class Experiment_RegressionGrad(Experiment):
    """
    Multi-trial experiment for gradient-enhanced function approximation.
    """

    def __init__(self,
                 num_trials : int,
                 config     : Config,
                 function   : Callable[[float], float],
                 x_min      : float,
                 x_max      : float):
        """
        Parameters:
            num_trials: Number of trials to run
            config:     Configuration parameters
            function:   The 1D function to approximate
            x_min:      Beginning of approximation range
            x_max:      End of approximation range
        """
        super().__init__(Trial_RegressionGrad,
                         num_trials,
                         config,
                         function=function,
                         x_min=x_min,
                         x_max=x_max)

    def _reset(self):
        super()._reset()

    def _prepare_trial(self, trial: Trial_RegressionGrad, trial_number: int):
        super()._prepare_trial(trial, trial_number)

    def _extract_trial_results(self, trial: Trial_RegressionGrad, trial_number: int) -> dict:
        results = super()._extract_trial_results(trial, trial_number)
        results["number_refinements"] = len(trial.gradient_data)
        return results

    def _analyze_trial_results(self, results: dict):
        super()._analyze_trial_results(results)

        s  = f"Trial {results['trial_number']:03d}: "
        s += f"max fitness={results['max_fitness']:.4f}, "
        s += f"mse={results['final_mse']:.5f}, "
        s += f"refinements={results['number_refinements']:3}, "
        s += f"generations={results['number_generations']:3} "
        s += "[SUCCESS]" if results['success'] else "[FAILED]"
        print(s)

    def _final_report(self):
        """
        Produce final report with gradient descent settings.
        """
        s  = "\nSUMMARY:\n"
        s += f"Total trials:         = {self._trial_counter}\n"
        s += f"Success rate          = {100*self.success_rate:.0f}%\n"
        if self._final_mse:
            s += f"Avg # generations     = {mean(self._number_generations):.0f}\n"
            s += f"Avg final mse         = {mean(self._final_mse):.5f}\n"
        print(s)

        print("GRADIENT DESCENT SETTINGS:")
        print(f"  Gradient descent was {'ENABLED' if self._config.enable_gradient else 'DISABLED'}")
        print(f"  Learning rate:      {self._config.learning_rate}")
        print(f"  Epochs per update:  {self._config.epochs}")
        print(f"  Update frequency:   Every {self._config.gradient_frequency} generations")
        print(f"  Lamarckian:         {self._config.lamarckian_evolution}")

if __name__ == '__main__':
    trial = Trial_RegressionGrad(Config(str(CONFIG_FILE)), math.sin, -math.pi, math.pi)
    trial.run(num_jobs=1)
