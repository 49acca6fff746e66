# random_source.py
"""
Sources of uniform random numbers for the galaxy generator.

Every source exposes `next() -> float` in [0, 1). Sources that can produce
many values at once also expose `sample(n)`, which must return exactly what
n consecutive `next()` calls would.
"""
import logging
from typing import Iterable, List, Optional

import numpy as np

# --- Data Contracts ---
#
# class SeededRandomSource:
#   - __init__(self, seed: Optional[int] = None)
#   - next(self) -> float in [0, 1)
#   - sample(self, n: int) -> np.ndarray of shape (n,), dtype float64
#
# class ReplayRandomSource:
#   - __init__(self, values: Iterable[float], cycle: bool = True)
#   - Replays `values` in order. Raises IndexError when exhausted and
#     cycle is False.
#
# class RecordingRandomSource:
#   - __init__(self, inner)
#   - Forwards to `inner` and appends every drawn value to `values`.


class SeededRandomSource:
    """
    Uniform source backed by a NumPy Generator.

    All randomness flows from a single seed; None asks NumPy for fresh
    entropy.
    """
    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        logging.debug(f"SeededRandomSource created with seed {seed}.")

    def next(self) -> float:
        return float(self.rng.random())

    def sample(self, n: int) -> np.ndarray:
        return self.rng.random(n)


class ReplayRandomSource:
    """Replays a fixed, recorded sequence of values."""

    def __init__(self, values: Iterable[float], cycle: bool = True):
        self.values = [float(v) for v in values]
        if not self.values:
            raise ValueError("ReplayRandomSource needs at least one value.")
        # Recorded test fixtures may contain the closed upper bound.
        if not all(0.0 <= v <= 1.0 for v in self.values):
            raise ValueError("ReplayRandomSource values must lie in [0, 1].")
        self.cycle = cycle
        self.position = 0

    def next(self) -> float:
        if self.position >= len(self.values):
            if not self.cycle:
                raise IndexError(
                    f"Replay sequence of {len(self.values)} values exhausted."
                )
            self.position = 0
        value = self.values[self.position]
        self.position += 1
        return value

    def reset(self) -> None:
        self.position = 0


class RecordingRandomSource:
    """Wraps another source and remembers everything it hands out."""

    def __init__(self, inner):
        self.inner = inner
        self.values: List[float] = []

    @property
    def calls(self) -> int:
        return len(self.values)

    def next(self) -> float:
        value = self.inner.next()
        self.values.append(value)
        return value

    def replay(self) -> ReplayRandomSource:
        """Returns a source that reproduces the recorded draws exactly once."""
        return ReplayRandomSource(self.values, cycle=False)
