"""
XOR with an evolved 2-2-1 network

The four XOR cases are the smallest problem a linear model cannot fit:

    (0, 0) -> 0      (0, 1) -> 1
    (1, 0) -> 1      (1, 1) -> 0

A hidden layer of two sigmoid units is enough, so config_xor.ini fixes the
topology at 2-2-1 and lets the genetic algorithm search the nine weights and
biases. Fitness is 1 / (1 + MSE) over the four cases; a trial counts as
solved once the best individual passes 0.99.

Classes:
    Trial_XOR:      one evolutionary run on XOR
    Experiment_XOR: repeated runs with a success-rate summary

Usage:
    config = Config("examples/configs/config_xor.ini")
    Trial_XOR(config).run(num_jobs=1)

    config = Config("examples/configs/config_xor.ini")
    Experiment_XOR(num_trials=20, config=config).run(num_jobs_trials=-1)
"""

from pathlib    import Path
from statistics import mean

from evolearn.activations import activation_codes
from evolearn.run         import Config, Experiment, Trial

CONFIG_FILE = Path(__file__).parent / "configs" / "config_xor.ini"

class Trial_XOR(Trial):
    """
    Evolve the parameters of a fixed network until it reproduces XOR.

    Training data is the full truth table. Progress reports show population
    fitness; the final report shows the layer layout and the network's answer
    for each of the four cases.
    """

    def __init__(self, config: Config, suppress_output: bool = False):
        super().__init__(config, suppress_output)

        self.xor_inputs  = [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]
        self.xor_outputs = [[0.0],      [1.0],      [1.0],      [0.0]]

    def _reset(self):
        super()._reset()

    def _get_training_data(self):
        return self.xor_inputs, self.xor_outputs

    def _truth_table(self, network) -> str:
        rows = ["input         output   target  error",
                "-" * 36]
        for inputs, target in zip(self.xor_inputs, self.xor_outputs):
            output = network.activate(inputs)[0]
            rows.append(f"{inputs} -> {output:.4f}    {target[0]}   {abs(output - target[0]):.4f}")
        return "\n".join(rows) + "\n"

    def _report_progress(self):
        population = self._evo_network.ga.population
        best       = population[0]

        lines = ["===============",
                 f"GENERATION {self._generation_counter:04d}",
                 f"population size = {len(population)}",
                 f"maximum fitness = {best.fitness:.4f}",
                 f"mean fitness    = {mean(indv.fitness for indv in population):.4f}"]
        print("\n".join(lines) + "\n")

    def _final_report(self):
        network = self._network
        layers  = ", ".join(f"{width}:{activation_codes[name]}"
                            for width, name in zip(network.layer_widths, network.activation_names))
        status  = "[FAILED]" if self.failed else "[SUCCESS]"
        print(f"Layers: [{layers}]\n{status}\n\n{self._truth_table(network)}")

class Experiment_XOR(Experiment):
    """Repeated XOR trials; prints one line per trial and a closing summary."""

    def __init__(self, num_trials: int, config: Config):
        super().__init__(Trial_XOR, num_trials, config)

    def _reset(self):
        super()._reset()

    def _prepare_trial(self, trial: Trial_XOR, trial_number: int):
        super()._prepare_trial(trial, trial_number)

    def _extract_trial_results(self, trial: Trial_XOR, trial_number: int) -> dict:
        return super()._extract_trial_results(trial, trial_number)

    def _analyze_trial_results(self, results: dict):
        super()._analyze_trial_results(results)

        status = "[SUCCESS]" if results['success'] else "[FAILED]"
        print(f"Trial {results['trial_number']:03d}: "
              f"max fitness={results['max_fitness']:.4f}, "
              f"mse={results['final_mse']:.4f}, "
              f"generations={results['number_generations']:3} {status}")

    def _final_report(self):
        lines = ["",
                 "SUMMARY:",
                 f"Total trials          = {self._trial_counter}",
                 f"Success rate          = {100*self.success_rate:.0f}%"]

        # averages are taken over successful trials only
        if self._max_fitness:
            lines += [f"Avg # generations     = {mean(self._number_generations):.0f}",
                      f"Avg max fitness       = {mean(self._max_fitness):.4f}",
                      f"Avg final mse         = {mean(self._final_mse):.4f}"]
        else:
            lines.append("No trial succeeded; no averages to report")
        print("\n".join(lines) + "\n")

if __name__ == '__main__':
    Trial_XOR(Config(str(CONFIG_FILE))).run(num_jobs=1)
