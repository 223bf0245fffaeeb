"""
Random Source Module

This module provides the single source of randomness used by every stochastic
operation in the engine (array randomization, dataset shuffling, weight
initialization, selection, crossover and mutation).

A RandomSource wraps a numpy Generator behind a lock, so one instance can be
shared between threads. For parallel work the orchestrating thread calls
spawn(n) to derive independent child sources, one per task; because the
children are derived deterministically from the parent seed, the outcome of a
parallel run does not depend on how the threads are scheduled.

Classes:
    Distribution: Enumeration of the supported sampling distributions
    RandomSource: Seedable, lock-protected random number source
"""

import threading
from enum   import Enum
from typing import Optional, Union

import numpy as np


class Distribution(Enum):
    """Sampling distribution used for initialization and mutation."""
    UNIFORM  = "uniform"
    GAUSSIAN = "gaussian"

    @classmethod
    def parse(cls, value: Union[str, "Distribution"]) -> "Distribution":
        """
        Convert a configuration string ("uniform"/"gaussian") to a Distribution.

        Parameters:
            value: Either a Distribution or its (case-insensitive) name

        Returns:
            The matching Distribution member
        """
        if isinstance(value, Distribution):
            return value

        # Import here to avoid circular import
        from evolearn.utils.errors import InvalidConfiguration

        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise InvalidConfiguration(f"Unknown distribution '{value}', use 'uniform' or 'gaussian'")


class RandomSource:
    """
    Seedable random number source shared by all stochastic operations.

    Public Properties:
        seed: The seed (or seed sequence entropy) this source was created from

    Public Methods:
        random():                    Uniform float(s) in [0, 1)
        uniform(low, high, size):    Uniform float(s) in [low, high)
        normal(mean, stdev, size):   Normally distributed float(s)
        integers(low, high, size):   Integer(s) in [low, high)
        shuffle(items):              In-place shuffle of a list (one permutation draw)
        spawn(n):                    Derive n independent child sources
    """

    def __init__(self, seed: Optional[Union[int, np.random.SeedSequence]] = None):
        """
        Parameters:
            seed: Integer seed, numpy SeedSequence, or None for OS entropy
        """
        if isinstance(seed, np.random.SeedSequence):
            self._seed_sequence = seed
        else:
            self._seed_sequence = np.random.SeedSequence(seed)
        self._generator = np.random.default_rng(self._seed_sequence)
        self._lock      = threading.Lock()

    @property
    def seed(self):
        return self._seed_sequence.entropy

    def random(self, size=None):
        with self._lock:
            value = self._generator.random(size)
        return float(value) if size is None else value

    def uniform(self, low=0.0, high=1.0, size=None):
        with self._lock:
            value = self._generator.uniform(low, high, size)
        return float(value) if size is None and np.ndim(value) == 0 else value

    def normal(self, mean=0.0, stdev=1.0, size=None):
        with self._lock:
            value = self._generator.normal(mean, stdev, size)
        return float(value) if size is None and np.ndim(value) == 0 else value

    def integers(self, low: int, high: int, size=None):
        with self._lock:
            value = self._generator.integers(low, high, size)
        return int(value) if size is None else value

    def shuffle(self, items: list):
        """
        Shuffle a list in place with one draw of a random permutation.

        Parameters:
            items: The list to shuffle
        """
        with self._lock:
            order = self._generator.permutation(len(items))
        items[:] = [items[k] for k in order]

    def spawn(self, n: int) -> list["RandomSource"]:
        """
        Derive independent child sources for parallel tasks.

        Must be called from the orchestrating thread, before the tasks start.

        Parameters:
            n: Number of child sources

        Returns:
            List of n new RandomSource objects
        """
        with self._lock:
            children = self._seed_sequence.spawn(n)
        return [RandomSource(child) for child in children]

    def __repr__(self):
        return f"RandomSource(seed={self.seed})"
