#!/usr/bin/env python3
"""
Random Sources
==============
Uniform, unbiased index sampling for secret generation.

Two implementations share one interface:
- SystemRandomSource: os.urandom() backed CSPRNG (default)
- SeededRandomSource: deterministic SHA-256 counter stream for tests and
  reproducible demos. NOT suitable for production secrets.

All sampling goes through ``next_uniform_index``, which uses rejection
sampling over the smallest covering power of two instead of a modulo.
"""

import os
import hashlib
from typing import Any, Sequence


# =============================================================================
# Base Interface
# =============================================================================

class RandomSource:
    """
    Abstract source of uniformly distributed indices.

    Subclasses only provide ``_random_bits``; every higher level helper is
    built on ``next_uniform_index`` so no helper can introduce bias.
    """

    deterministic = False

    def _random_bits(self, k: int) -> int:
        """Return an integer with k uniformly random bits."""
        raise NotImplementedError

    def next_uniform_index(self, bound: int) -> int:
        """
        Return an index in [0, bound) without modulo bias.

        Args:
            bound: Exclusive upper bound, must be positive

        Returns:
            Uniformly distributed integer
        """
        if bound <= 0:
            raise ValueError(f"bound must be positive, got {bound}")
        if bound == 1:
            return 0
        bits = (bound - 1).bit_length()
        while True:
            candidate = self._random_bits(bits)
            if candidate < bound:
                return candidate

    def choice(self, seq: Sequence) -> Any:
        """Return a uniformly chosen element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from empty sequence")
        return seq[self.next_uniform_index(len(seq))]

    def chance(self, probability: float) -> bool:
        """Return True with the given probability (2**-32 resolution)."""
        if probability <= 0:
            return False
        if probability >= 1:
            return True
        return self.next_uniform_index(1 << 32) < int(probability * (1 << 32))

    def fork(self, index: int) -> "RandomSource":
        """Independent stream for the secret at ``index`` of a batch."""
        raise NotImplementedError


# =============================================================================
# Implementations
# =============================================================================

class SystemRandomSource(RandomSource):
    """Operating system CSPRNG (os.urandom). Not reproducible."""

    def _random_bits(self, k: int) -> int:
        nbytes = (k + 7) // 8
        value = int.from_bytes(os.urandom(nbytes), 'big')
        return value >> (nbytes * 8 - k)

    def fork(self, index: int) -> "SystemRandomSource":
        return SystemRandomSource()

    def __repr__(self) -> str:
        return "SystemRandomSource()"


class SeededRandomSource(RandomSource):
    """
    Deterministic stream: SHA-256 over (seed material, block counter).

    Output is identical across platforms and Python versions for the same
    seed. Use only for tests and reproducible demos; a seeded secret is only
    as secret as its seed.
    """

    deterministic = True

    def __init__(self, seed: int, label: str = "seed", _material: bytes = None):
        self.seed = seed
        self._material = _material or f"keysmith-{label}:{seed}".encode('utf-8')
        self._counter = 0
        self._pool = b""

    def _next_bytes(self, n: int) -> bytes:
        while len(self._pool) < n:
            block = hashlib.sha256(
                self._material + self._counter.to_bytes(8, 'big')
            ).digest()
            self._counter += 1
            self._pool += block
        out, self._pool = self._pool[:n], self._pool[n:]
        return out

    def _random_bits(self, k: int) -> int:
        nbytes = (k + 7) // 8
        value = int.from_bytes(self._next_bytes(nbytes), 'big')
        return value >> (nbytes * 8 - k)

    def fork(self, index: int) -> "SeededRandomSource":
        return SeededRandomSource(self.seed, _material=self._material + f"/{index}".encode('utf-8'))

    def __repr__(self) -> str:
        return f"SeededRandomSource(seed={self.seed})"


def make_random_source(seed: int = None, label: str = "seed") -> RandomSource:
    """
    System source by default, seeded source only when a seed is given.

    ``label`` separates streams that share a seed (generation vs. mutation).
    """
    if seed is None:
        return SystemRandomSource()
    return SeededRandomSource(seed, label)


__all__ = [
    'RandomSource',
    'SystemRandomSource',
    'SeededRandomSource',
    'make_random_source',
]
