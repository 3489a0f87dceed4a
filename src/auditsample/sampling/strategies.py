"""Row selection strategies driven by a seeded generator.

``rng`` is any zero-argument callable returning floats in [0, 1), normally a
:class:`~auditsample.sampling.prng.Mulberry32` instance.
"""

from __future__ import annotations

import math
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")

Rng = Callable[[], float]


def shuffle(rows: Sequence[T], rng: Rng) -> List[T]:
    """Fisher-Yates shuffle of a copy of ``rows``."""
    a = list(rows)
    for i in range(len(a) - 1, 0, -1):
        j = math.floor(rng() * (i + 1))
        a[i], a[j] = a[j], a[i]
    return a


def random_sample(rows: Sequence[T], size: int, rng: Rng) -> List[T]:
    """Simple random sample without replacement: shuffle, then take ``size``."""
    if size <= 0:
        return []
    take = min(len(rows), size)
    return shuffle(rows, rng)[:take]


def systematic_sample(rows: Sequence[T], size: int, random_start: bool, rng: Rng) -> List[T]:
    """Every ``n/size``-th row, optionally from a random offset.

    When ``size`` covers the whole sequence every row is returned in order.
    """
    n = len(rows)
    if size <= 0:
        return []
    if size >= n:
        return list(rows)

    offset = math.floor(rng() * math.ceil(n / size)) if random_start else 0
    indices = [((k * n) // size + offset) % n for k in range(size)]
    return [rows[i] for i in indices]
