"""
Unit tests for TrialGrad class.
"""

import pytest

from evolearn.run.config     import Config
from evolearn.run.trial_grad import TrialGrad


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def grad_config():
    """A linear 1-1 network fitted to y = 2x + 1, refined every other generation."""
    config = Config()
    config.num_inputs             = 1
    config.num_outputs            = 1
    config.hidden_layers          = []
    config.output_activation      = "identity"
    config.population_size        = 10
    config.elite_count            = 1
    config.max_number_generations = 4
    config.seed                   = 3

    config.enable_gradient      = True
    config.learning_rate        = 0.1
    config.batch_size           = 9
    config.epochs               = 2
    config.gradient_frequency   = 2
    config.lamarckian_evolution = False
    return config


# ============================================================================
# Concrete Implementation for Testing
# ============================================================================

class ConcreteTrialGrad(TrialGrad):
    """Concrete implementation of TrialGrad for testing purposes."""

    def __init__(self, config, suppress_output=True):
        super().__init__(config, suppress_output)
        self.reset_called = False

    def _reset(self):
        super()._reset()
        self.reset_called = True

    def _get_training_data(self):
        xs = [[-1.0 + 0.25 * i] for i in range(9)]
        ys = [[2.0 * x[0] + 1.0] for x in xs]
        return xs, ys

    def _report_progress(self):
        pass

    def _final_report(self):
        pass


# ============================================================================
# Test Gradient Refinement
# ============================================================================

class TestTrialGradRefinement:
    """Test when and how the champion is refined."""

    def test_initial_state(self, grad_config):
        """Test that a new trial has no refinement data."""
        trial = ConcreteTrialGrad(grad_config)

        assert trial.gradient_data == {}

    def test_refines_every_gradient_frequency_generations(self, grad_config):
        """Test that refinement happens on generations 0, 2 and 4."""
        trial = ConcreteTrialGrad(grad_config)
        trial.run()

        assert trial.reset_called
        assert sorted(trial.gradient_data) == [0, 2, 4]
        for generation, results in trial.gradient_data.items():
            assert results['generation'] == generation

    def test_gradient_data_contents(self, grad_config):
        """Test the fitness and loss recorded for a refinement."""
        trial = ConcreteTrialGrad(grad_config)
        trial.run()
        results = trial.gradient_data[0]

        assert set(results) == {'generation', 'fitness_before', 'fitness_after', 'fitness_improvement',
                                'loss_before', 'loss_after', 'loss_improvement'}
        assert results['loss_after'] < results['loss_before']
        assert results['fitness_after'] > results['fitness_before']

    def test_disabled(self, grad_config):
        """Test that nothing is refined when gradient descent is off."""
        grad_config.enable_gradient = False
        trial = ConcreteTrialGrad(grad_config)
        trial.run()

        assert trial.gradient_data == {}
        assert trial.network.get_parameters() == trial.best_individual.genes

    def test_rerun_clears_gradient_data(self, grad_config):
        """Test that refinement data does not leak between runs."""
        trial = ConcreteTrialGrad(grad_config)
        trial.run()
        grad_config.gradient_frequency = 4
        trial.run()

        assert sorted(trial.gradient_data) == [0, 4]


# ============================================================================
# Test Baldwinian and Lamarckian Modes
# ============================================================================

class TestTrialGradModes:
    """Test what happens to the refined parameters."""

    def test_baldwinian_delivers_the_better_parameters(self, grad_config):
        """Test that the delivered network scores at least as well as the champion."""
        trial = ConcreteTrialGrad(grad_config)
        trial.run()
        delivered = trial._evaluate_fitness(trial.network.get_parameters())

        assert delivered >= trial.best_individual.fitness

    def test_lamarckian_delivers_the_champion(self, grad_config):
        """Test that in Lamarckian mode the network holds the champion's parameters."""
        grad_config.lamarckian_evolution = True
        trial = ConcreteTrialGrad(grad_config)
        trial.run()

        assert trial.network.get_parameters() == trial.best_individual.genes

    def test_lamarckian_champion_is_refined(self, grad_config):
        """Test that refined parameters enter the population and can win."""
        grad_config.lamarckian_evolution = True
        trial = ConcreteTrialGrad(grad_config)
        trial.run()
        last = trial.gradient_data[4]

        assert trial.best_individual.fitness >= last['fitness_after'] - 1e-12
