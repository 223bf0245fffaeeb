"""
Run Package

Configuration, the network/genetic algorithm bridge, and the trial and
experiment framework.

Exported Classes:
    Config:     Configuration parameters (INI file or defaults)
    EvoNetwork: Genetic algorithm search over a network's weights and biases
    Trial:      One run of the genetic algorithm (abstract)
    TrialGrad:  Trial with gradient descent refinement (abstract)
    Experiment: Repeated independent trials (abstract)
"""

from evolearn.run.config      import Config
from evolearn.run.evo_network import EvoNetwork
from evolearn.run.trial       import Trial
from evolearn.run.trial_grad  import TrialGrad
from evolearn.run.experiment  import Experiment

__all__ = ['Config',
           'EvoNetwork',
           'Trial',
           'TrialGrad',
           'Experiment']
