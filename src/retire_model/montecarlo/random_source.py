# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Seeded uniform random stream.

RandomSource is a Mulberry32 generator: 32-bit state, one multiply-xorshift
mixing round per draw. Every higher-level draw (normal, lognormal, uniform,
triangular, integer index) is built from repeated ``next()`` calls, so a
fixed seed reproduces the exact same sequence on every platform.

Monte Carlo trials never share a RandomSource. Each trial builds its own
from ``derive_seed(base_seed, trial_index)``.
"""

import math
import secrets
from typing import Optional

MASK32 = 0xFFFFFFFF
_GOLDEN_GAMMA = 0x9E3779B9
_MULBERRY_INCREMENT = 0x6D2B79F5


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


def derive_seed(base_seed: int, stream: int) -> int:
    """Mix a base seed and a stream index into an independent 32-bit seed.

    Uses the splitmix32 finalizer, so neighbouring trial indices map to
    unrelated seeds.
    """
    z = (base_seed + (stream + 1) * _GOLDEN_GAMMA) & MASK32
    z = _imul(z ^ (z >> 16), 0x85EBCA6B)
    z = _imul(z ^ (z >> 13), 0xC2B2AE35)
    return (z ^ (z >> 16)) & MASK32


def random_seed() -> int:
    """Fresh non-reproducible 32-bit seed."""
    return secrets.randbits(32)


class RandomSource:
    """Reproducible uniform stream in [0, 1).

    Example:
        >>> rng = RandomSource(42)
        >>> a = [rng.next() for _ in range(3)]
        >>> rng = RandomSource(42)
        >>> a == [rng.next() for _ in range(3)]
        True
    """

    def __init__(self, seed: Optional[int] = None):
        """Initialize the stream.

        Args:
            seed: 32-bit integer seed. When None a fresh seed is drawn from
                  the OS entropy pool and the stream is not reproducible
                  unless ``self.seed`` is recorded.
        """
        self.reproducible = seed is not None
        self.seed = (seed if seed is not None else random_seed()) & MASK32
        self._state = self.seed

    def next(self) -> float:
        """Next uniform value in [0, 1)."""
        self._state = (self._state + _MULBERRY_INCREMENT) & MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / 4294967296.0

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.next()

    def randint(self, n: int) -> int:
        """Integer index in [0, n)."""
        if n <= 0:
            raise ValueError(f"randint needs a positive bound, got {n}")
        return min(int(self.next() * n), n - 1)

    def normal(self, mean: float = 0.0, std_dev: float = 1.0) -> float:
        """Box-Muller transform over two uniform draws."""
        u1 = 1.0 - self.next()  # (0, 1], keeps log finite
        u2 = self.next()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + std_dev * z0

    def lognormal(self, mean: float, std_dev: float) -> float:
        """Lognormal draw whose median is ``mean * exp(-std_dev**2 / 2)``.

        The underlying normal has location ``ln(mean) - std_dev**2 / 2`` and
        scale ``std_dev``, so the draw has expected value ``mean``.
        """
        mu = math.log(mean) - 0.5 * std_dev * std_dev
        return math.exp(self.normal(mu, std_dev))

    def triangular(self, low: float, mode: float, high: float) -> float:
        """Inverse-CDF triangular draw."""
        u = self.next()
        span = high - low
        if span == 0:
            return low
        c = (mode - low) / span
        if u < c:
            return low + math.sqrt(u * span * (mode - low))
        return high - math.sqrt((1 - u) * span * (high - mode))
