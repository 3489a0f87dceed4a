"""Proportional allocation of a total sample size across strata.

Largest-remainder method followed by capacity capping and rebalancing:

1. floor of each stratum's proportional share ``N_h / N * n``
2. leftover units go to the largest fractional remainders
3. cap each stratum at its population ``N_h``
4. trim from the largest allocations while over target
5. top up strata with spare capacity while under ``min(n, N)``

References:
- Cochran, W.G. (1977). Sampling Techniques (3rd ed.). Wiley.
"""

from __future__ import annotations

import math
from typing import Dict


def proportional_allocation(counts: Dict[str, int], total_size: int) -> Dict[str, int]:
    """Allocate ``total_size`` across strata in proportion to their counts.

    Args:
        counts: {stratum_key: population_count}, in stratum order.
        total_size: Target total sample size.

    Returns:
        {stratum_key: allocated_count} in the same key order. Sums to
        ``min(total_size, sum(counts))`` whenever capacity allows.
    """
    strata_keys = list(counts.keys())
    if not strata_keys or total_size <= 0:
        return {k: 0 for k in strata_keys}

    n_population = sum(counts.values())
    if n_population <= 0:
        return {k: 0 for k in strata_keys}

    raw = {k: (counts[k] / n_population) * total_size for k in strata_keys}
    allocation = {k: math.floor(v) for k, v in raw.items()}

    # Largest remainders first; sorted() is stable so ties keep stratum order
    leftover = total_size - sum(allocation.values())
    if leftover > 0:
        by_remainder = sorted(
            strata_keys, key=lambda k: raw[k] - math.floor(raw[k]), reverse=True
        )
        for k in by_remainder:
            if leftover <= 0:
                break
            allocation[k] += 1
            leftover -= 1

    # Cap by stratum size
    for k in strata_keys:
        if allocation[k] > counts[k]:
            allocation[k] = counts[k]

    # Adjust downward if over
    current = sum(allocation.values())
    while current > total_size:
        for k, v in sorted(allocation.items(), key=lambda kv: kv[1], reverse=True):
            if current <= total_size:
                break
            if v > 0:
                allocation[k] = v - 1
                current -= 1

    # Redistribute if under and capacity exists
    target = min(total_size, n_population)
    by_size = sorted(strata_keys, key=lambda k: counts[k], reverse=True)
    while current < target:
        increased = False
        for k in by_size:
            if current >= target:
                break
            if allocation[k] < counts[k]:
                allocation[k] += 1
                current += 1
                increased = True
        if not increased:
            break

    return allocation
