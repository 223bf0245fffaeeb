"""
Integration tests for basic evolution and training.

These tests run the genetic algorithm, the EvoNetwork bridge, backpropagation
and the example trials end-to-end on small problems.

NOTE: These tests use fixed random seeds for reproducibility. They check
properties every seeded run has (elitism never loses the champion, full-batch
gradient descent lowers the error) rather than a particular final score.
"""

import math

from evolearn.phenotype           import FeedForwardNetwork, load_network, save_network
from evolearn.run                 import Config, EvoNetwork
from evolearn.utils.random_source import RandomSource

from examples.trial_XOR             import Experiment_XOR, Trial_XOR
from examples.trial_regression_grad import Trial_RegressionGrad


def line_data(n=12):
    xs = [[-1.0 + 2.0 * i / (n - 1)] for i in range(n)]
    ys = [[2.0 * x[0] + 1.0] for x in xs]
    return xs, ys


def sine_data(n=16):
    xs = [[-math.pi + 2.0 * math.pi * i / (n - 1)] for i in range(n)]
    ys = [[math.sin(x[0])] for x in xs]
    return xs, ys


# ============================================================================
# Test Evolution of Network Parameters
# ============================================================================

class TestEvoNetworkTraining:
    """Test evolving network parameters with EvoNetwork.train()."""

    def test_full_batch_training_never_gets_worse(self):
        """Test that with one batch per epoch the error never increases."""
        config = Config()
        config.population_size = 20
        config.elite_count     = 2
        network = FeedForwardNetwork(1, 1, [], output_activation="identity", rng=RandomSource(11))
        evo = EvoNetwork(network, config)
        xs, ys = line_data()

        history = evo.train(xs, ys, epochs=30, batch_size=len(xs))

        assert len(history) == 30
        for before, after in zip(history, history[1:]):
            assert after <= before + 1e-12
        assert history[-1] < history[0]

    def test_threaded_training_matches_serial(self):
        """Test that worker threads do not change the evolved parameters."""
        parameters = []
        for num_jobs in (1, 2):
            config = Config()
            config.population_size = 12
            network = FeedForwardNetwork(1, 1, [3], "tanh", "identity", rng=RandomSource(12))
            evo = EvoNetwork(network, config)
            xs, ys = sine_data()
            evo.train(xs, ys, epochs=3, batch_size=4, num_jobs=num_jobs)
            parameters.append(network.get_parameters())

        assert parameters[0] == parameters[1]


# ============================================================================
# Test Backpropagation
# ============================================================================

class TestBackpropagation:
    """Test minibatch gradient descent on a regression problem."""

    def test_sgd_fits_a_sine(self):
        """Test that SGD lowers the error of a 1-8-1 tanh network on sin(x)."""
        network = FeedForwardNetwork(1, 1, [8], "tanh", "identity", init_params=(0.0, 0.5), rng=RandomSource(13))
        xs, ys = sine_data()
        initial = network.mean_squared_error(xs, ys)

        history = network.sgd(xs, ys, epochs=200, batch_size=4, learning_rate=0.05)

        assert len(history) == 200
        assert history[-1] < 0.5 * initial

    def test_threaded_sgd_matches_serial(self):
        """Test that splitting batches over threads gives the serial parameters."""
        xs, ys = sine_data()
        parameters = []
        for num_jobs in (1, 3):
            network = FeedForwardNetwork(1, 1, [4], "sigmoid", "identity", rng=RandomSource(14))
            network.sgd(xs, ys, epochs=5, batch_size=8, learning_rate=0.1, num_jobs=num_jobs)
            parameters.append(network.get_parameters())

        assert parameters[0].allclose(parameters[1], 1e-12)


# ============================================================================
# Test Example Trials
# ============================================================================

class TestExampleTrials:
    """Test the example XOR and regression trials."""

    def test_xor_trial_improves(self, xor_config_path):
        """Test that evolution never loses the best XOR solution of the first generation."""
        fitness = []
        for generations in (0, 15):
            config = Config(str(xor_config_path))
            config.population_size        = 30
            config.max_number_generations = generations
            trial = Trial_XOR(config, suppress_output=True)
            trial.run()
            fitness.append(trial.best_individual.fitness)

        assert fitness[1] >= fitness[0]

    def test_xor_trial_reports(self, xor_config_path, capsys):
        """Test that an unsuppressed trial prints progress and the truth table."""
        config = Config(str(xor_config_path))
        config.population_size        = 10
        config.max_number_generations = 2
        Trial_XOR(config).run()
        out = capsys.readouterr().out

        assert "GENERATION 0002" in out
        assert "[1.0, 1.0] ->" in out

    def test_regression_trial_with_gradient(self, regression_config_path, tmp_path):
        """Test a Lamarckian regression trial and persisting the network it delivers."""
        config = Config(str(regression_config_path))
        config.population_size        = 10
        config.max_number_generations = 5
        trial = Trial_RegressionGrad(config, math.sin, -math.pi, math.pi, num_points=20, suppress_output=True)
        trial.run()

        assert sorted(trial.gradient_data) == [0, 5]
        assert trial.network.get_parameters() == trial.best_individual.genes

        loaded = load_network(save_network(trial.network, tmp_path / "sine.json"))
        for x in ([-1.0], [0.0], [2.5]):
            assert loaded.activate(x) == trial.network.activate(x)


# ============================================================================
# Test Parallel Experiments
# ============================================================================

class TestParallelExperiment:
    """Test that parallel trials give the serial results."""

    def test_parallel_trials_match_serial(self, xor_config_path):
        """Test that per-trial seeds make experiments independent of the process count."""
        max_fitness = []
        for num_jobs in (1, 2):
            config = Config(str(xor_config_path))
            config.population_size        = 10
            config.max_number_generations = 3
            config.fitness_threshold      = 0.0
            experiment = Experiment_XOR(num_trials=3, config=config)
            experiment.run(num_jobs_trials=num_jobs)
            max_fitness.append(experiment._max_fitness)

        assert experiment.success_rate == 1.0
        assert max_fitness[0] == max_fitness[1]
