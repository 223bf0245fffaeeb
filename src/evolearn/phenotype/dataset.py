"""
DataSet Module

This module implements DataSet, the ordered collection of (input, target)
samples that feeds minibatch gradient descent and the genetic algorithm's
evaluation batches.

Classes:
    Sample:  One (x, y) pair of Vectors
    DataSet: Shuffling and batching of samples with a read cursor
"""

from typing import Iterator, NamedTuple, Optional, Sequence

from evolearn.linalg.vector       import Vector
from evolearn.utils.errors        import InvalidConfiguration, ShapeMismatch
from evolearn.utils.random_source import RandomSource


class Sample(NamedTuple):
    x: Vector
    y: Vector

    def copy(self) -> "Sample":
        return Sample(self.x.clone(), self.y.clone())


def _as_vector(values) -> Vector:
    return values.clone() if isinstance(values, Vector) else Vector(values)


class DataSet:
    """
    Ordered list of samples plus a read cursor.

    Samples are copied on the way in and on the way out, so callers can
    mutate what they pass or receive without affecting the dataset.

    Public Attributes:
        index: Position of the read cursor (reset to 0 by every shuffle)

    Public Properties:
        size, is_empty

    Public Methods:
        add(x, y), add_set(xs, ys): Append samples
        shuffle():                  Random permutation of the samples, resets the cursor
        next_batch(n):              Next n samples (reshuffles when fewer remain)
        epoch_batches(n):           Shuffle, then split into full batches of n
        clear():                    Remove every sample
    """

    def __init__(self,
                 xs  : Optional[Sequence] = None,
                 ys  : Optional[Sequence] = None,
                 rng : Optional[RandomSource] = None):
        """
        Parameters:
            xs, ys: Optional initial inputs and targets (same length)
            rng:    Random source used by shuffle()
        """
        self._samples : list[Sample]  = []
        self.index    : int           = 0
        self._rng     : RandomSource  = rng if rng is not None else RandomSource()

        if xs is not None or ys is not None:
            self.add_set([] if xs is None else xs, [] if ys is None else ys)

    @property
    def size(self) -> int:
        return len(self._samples)

    @property
    def is_empty(self) -> bool:
        return not self._samples

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return (sample.copy() for sample in self._samples)

    def __getitem__(self, i: int) -> Sample:
        return self._samples[i].copy()

    def add(self, x, y):
        self._samples.append(Sample(_as_vector(x), _as_vector(y)))

    def add_set(self, xs: Sequence, ys: Sequence):
        if len(xs) != len(ys):
            raise ShapeMismatch(f"Got {len(xs)} inputs but {len(ys)} targets",
                                expected=len(xs), actual=len(ys))
        for x, y in zip(xs, ys):
            self.add(x, y)

    def shuffle(self):
        self._rng.shuffle(self._samples)
        self.index = 0

    def _check_batch_size(self, batch_size: int):
        if batch_size < 1:
            raise InvalidConfiguration(f"Batch size must be positive, got {batch_size}")
        if batch_size > self.size:
            raise InvalidConfiguration(f"Batch size {batch_size} exceeds the dataset size {self.size}")

    def next_batch(self, batch_size: int) -> list[Sample]:
        """
        Return the next 'batch_size' samples from the cursor.

        If fewer than 'batch_size' samples remain, the dataset is reshuffled
        and reading restarts from the beginning.
        """
        self._check_batch_size(batch_size)
        if self.index + batch_size > self.size:
            self.shuffle()

        batch = [sample.copy() for sample in self._samples[self.index:self.index + batch_size]]
        self.index += batch_size
        return batch

    def epoch_batches(self, batch_size: int) -> list[list[Sample]]:
        """
        Shuffle, then split the dataset into full batches of 'batch_size'.

        The remaining size % batch_size samples are left out of this epoch.
        """
        self._check_batch_size(batch_size)
        self.shuffle()

        epoch = []
        while self.index + batch_size <= self.size:
            epoch.append(self.next_batch(batch_size))
        return epoch

    def clear(self):
        self._samples.clear()
        self.index = 0
