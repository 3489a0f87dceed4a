"""Seeded Mulberry32 generator.

Same seed, same stream of floats on every machine. Python integers do not
overflow, so every step is masked back to 32 bits.
"""

from __future__ import annotations

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply (unsigned result)."""
    return (a * b) & _MASK32


class Mulberry32:
    """Deterministic generator of floats in [0, 1).

    Each sampling call constructs its own instance; instances are never
    shared between calls.
    """

    __slots__ = ("seed", "_state")

    def __init__(self, seed: int = 42):
        self.seed = int(seed) & _MASK32
        self._state = self.seed

    def random(self) -> float:
        self._state = (self._state + _INCREMENT) & _MASK32
        r = self._state
        r = _imul(r ^ (r >> 15), r | 1)
        r ^= (r + _imul(r ^ (r >> 7), r | 61)) & _MASK32
        r &= _MASK32
        return ((r ^ (r >> 14)) & _MASK32) / _TWO_32

    __call__ = random

    def __repr__(self) -> str:
        return f"Mulberry32(seed={self.seed})"


def rng_factory(seed: int = 42) -> Mulberry32:
    return Mulberry32(seed)
