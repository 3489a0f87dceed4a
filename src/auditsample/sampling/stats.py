"""Sample size calculation for attribute (error-rate) testing.

Wald confidence interval with finite population correction:

    n0 = z^2 * p * (1 - p) / E^2        p = EER, E = TER - EER
    n  = ceil(N * n0 / (N + n0 - 1))

References:
- Cochran, W.G. (1977). Sampling Techniques (3rd ed.). Wiley.
- Acklam, P.J. An algorithm for computing the inverse normal cumulative
  distribution function.
"""

from __future__ import annotations

import math

from .errors import InvalidParameterError

# 99% confidence is pinned to the audit table value rather than 2.5758.
Z_99_CONVENTION = 2.58

# Acklam coefficients. Fixed so historical sample sizes stay reproducible.
_A = (
    -39.6968302866538,
    220.946098424521,
    -275.928510446969,
    138.357751867269,
    -30.6647980661472,
    2.50662827745924,
)
_B = (
    -54.4760987982241,
    161.585836858041,
    -155.698979859887,
    66.8013118877197,
    -13.2806815528857,
)
_C = (
    -0.00778489400243029,
    -0.322396458041136,
    -2.40075827716184,
    -2.54973253934373,
    4.37466414146497,
    2.93816398269878,
)
_D = (
    0.00778469570904146,
    0.32246712907004,
    2.445134137143,
    3.75440866190742,
)
_P_LOW = 0.02425
_P_HIGH = 1 - _P_LOW


def _tail(q: float) -> float:
    c1, c2, c3, c4, c5, c6 = _C
    d1, d2, d3, d4 = _D
    num = ((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6
    den = (((d1 * q + d2) * q + d3) * q + d4) * q + 1
    return num / den


def _probit(p: float) -> float:
    """Inverse standard normal CDF (Acklam rational approximation)."""
    if p < _P_LOW:
        return _tail(math.sqrt(-2 * math.log(p)))
    if p > _P_HIGH:
        return -_tail(math.sqrt(-2 * math.log(1 - p)))

    a1, a2, a3, a4, a5, a6 = _A
    b1, b2, b3, b4, b5 = _B
    q = p - 0.5
    r = q * q
    num = (((((a1 * r + a2) * r + a3) * r + a4) * r + a5) * r + a6) * q
    den = ((((b1 * r + b2) * r + b3) * r + b4) * r + b5) * r + 1
    return num / den


def z_score(confidence: float) -> float:
    """Two-tailed critical value for a confidence level in (0, 1).

    Args:
        confidence: e.g. 0.95 for 95% confidence.

    Returns:
        z such that P(|Z| <= z) = confidence. Exactly 2.58 for 0.99.
    """
    if abs(confidence - 0.99) < 1e-9:
        return Z_99_CONVENTION
    alpha = 1 - confidence
    return _probit(1 - alpha / 2)


def sample_size(
    population_size: float,
    confidence: float,
    tolerable_error_rate: float,
    expected_error_rate: float,
) -> int:
    """Required sample size for the given population and error rates.

    Args:
        population_size: N, must be >= 1.
        confidence: Confidence level in (0, 1).
        tolerable_error_rate: TER in (0, 1).
        expected_error_rate: EER in [0, 1), strictly below TER.

    Returns:
        Sample size clamped to [1, N].
    """
    N = population_size
    if not N >= 1:
        raise InvalidParameterError("Population must be >= 1")
    if not 0 < confidence < 1:
        raise InvalidParameterError("Confidence must be in (0,1)")
    if not 0 < tolerable_error_rate < 1:
        raise InvalidParameterError("Tolerable error rate must be in (0,1)")
    if not 0 <= expected_error_rate < 1:
        raise InvalidParameterError("Expected error rate must be in [0,1)")

    p = expected_error_rate
    E = tolerable_error_rate - expected_error_rate
    if not E > 0:
        raise InvalidParameterError("Tolerable error rate must exceed expected error rate.")

    z = z_score(confidence)
    n0 = (z ** 2 * p * (1 - p)) / (E ** 2)

    # Finite population correction; N == 1 with n0 == 0 has no defined ratio
    denom = N + n0 - 1
    n = math.ceil((N * n0) / denom) if denom > 0 else 1
    return int(max(1, min(N, n)))


def calculate_sample_size(
    population_size: float,
    confidence: float,
    tolerable_error_rate: float,
    expected_error_rate: float,
) -> int:
    """Preview entry point; same contract as :func:`sample_size`."""
    return sample_size(population_size, confidence, tolerable_error_rate, expected_error_rate)
