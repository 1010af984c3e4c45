"""
Seeded random stream.

Every draw the simulation makes goes through one ``RandomStream`` so that a
run is reproducible from its seed. The distribution helpers parameterize
gamma and beta draws by mean and relative variance, which is how trait
mutation and lifespans are specified.
"""

from __future__ import annotations

import math

import numpy as np


class RandomStream:
    """Sequential sampler over a single ``numpy.random.Generator``."""

    def __init__(self, seed: int | None = None,
                 generator: np.random.Generator | None = None):
        self.generator = generator or np.random.default_rng(seed)

    def uniform(self, high: float = 1.0) -> float:
        """Uniform draw in [0, high)."""
        return float(self.generator.random()) * high

    def integers(self, high: int) -> int:
        """Uniform integer in [0, high)."""
        return int(self.generator.integers(0, high))

    def gaussian(self, std: float = 1.0) -> float:
        return float(self.generator.normal(0.0, 1.0)) * std

    def chance(self, p: float) -> bool:
        """True with probability p."""
        if p <= 0.0:
            return False
        if p >= 1.0:
            return True
        return bool(self.generator.random() < p)

    def angle(self) -> float:
        """Uniform heading angle in radians."""
        return math.radians(self.uniform(360.0))

    def gamma_around(self, mean: float, variance: float, floor: float = 0.0) -> float:
        """
        Gamma draw with the given mean and squared coefficient of variation.

        The result is never below ``floor``. Zero variance or a non-positive
        mean returns the mean itself (floored).
        """
        if variance <= 0 or mean <= 0:
            return max(mean, floor)
        shape = 1.0 / variance
        scale = mean * variance
        return max(float(self.generator.gamma(shape, scale)), floor)

    def beta_around(self, mean: float, variance: float) -> float:
        """
        Beta draw on [0, 1] with the given mean.

        ``variance`` is a fraction of the largest variance a distribution with
        that mean can have, so it must lie in (0, 1).
        """
        if variance <= 0:
            return mean
        variance = min(variance, 0.999)
        mean = min(max(mean, 1e-6), 1.0 - 1e-6)
        concentration = 1.0 / variance - 1.0
        return float(self.generator.beta(mean * concentration, (1.0 - mean) * concentration))

    def bounded_normal(self, mean: float, std: float,
                       low: float = -math.inf, high: float = math.inf) -> float:
        """Normal draw clipped to [low, high]."""
        return float(np.clip(mean + self.gaussian(std), low, high))
