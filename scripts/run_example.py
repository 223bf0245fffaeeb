#!/usr/bin/env python3
"""
Utility script to run the examples easily.

Usage:
    python scripts/run_example.py xor
    python scripts/run_example.py regression --mode experiment --num-trials 10
"""

import argparse
import logging
import math
import sys
from functools import partial
from pathlib   import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from evolearn import Config
from examples.trial_XOR import Trial_XOR, Experiment_XOR
from examples.trial_regression_grad import Trial_RegressionGrad, Experiment_RegressionGrad


EXAMPLES = {
    'xor': {
        'trial': Trial_XOR,
        'experiment': Experiment_XOR,
        'config': 'examples/configs/config_xor.ini',
        'kwargs': {},
        'description': 'XOR logic problem'
    },
    'regression': {
        'trial': Trial_RegressionGrad,
        'experiment': Experiment_RegressionGrad,
        'config': 'examples/configs/config_regression.ini',
        'kwargs': {'function': math.sin, 'x_min': -math.pi, 'x_max': math.pi},
        'description': '1D function regression with gradient descent'
    }
}


def main():
    parser = argparse.ArgumentParser(description='Run evolearn examples')
    parser.add_argument('example', choices=EXAMPLES.keys(),
                        help='Example to run')
    parser.add_argument('--mode', choices=['trial', 'experiment'], default='trial',
                        help='Run single trial or full experiment')
    parser.add_argument('--num-trials', type=int, default=10,
                        help='Number of trials for experiment mode')
    parser.add_argument('--num-jobs', type=int, default=1,
                        help='Number of parallel jobs')
    parser.add_argument('--verbose', action='store_true',
                        help='Show the library log messages')

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format='%(name)s: %(message)s')

    example = EXAMPLES[args.example]
    print(f"Running {example['description']}...")
    print(f"Mode: {args.mode}")

    config = Config(example['config'])

    if args.mode == 'trial':
        trial = partial(example['trial'], **example['kwargs'])(config)
        trial.run(num_jobs=args.num_jobs)
        print(f"\nBest fitness: {trial.best_individual.fitness:.4f}")
    else:
        experiment = example['experiment'](
            num_trials=args.num_trials,
            config=config,
            **example['kwargs']
        )
        experiment.run(num_jobs_trials=args.num_jobs, num_jobs_fitness=1)


if __name__ == '__main__':
    main()
