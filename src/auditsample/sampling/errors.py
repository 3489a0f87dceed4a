"""Error types raised by the sampling engine.

Every error is a caller-input validation failure. They all derive from
``ValueError`` so callers that only know about ``ValueError`` keep working.
"""

from __future__ import annotations


class SamplingError(ValueError):
    """Base class for sampling engine errors."""


class InvalidParameterError(SamplingError):
    """Statistical or configuration parameter out of its allowed range."""


class MissingInputError(SamplingError):
    """A method-specific required input (size or percentage) is absent."""


class DegenerateSampleError(SamplingError):
    """Resolved sample size is zero although a population exists."""


class UnsupportedMethodError(SamplingError):
    """Sampling method outside the supported set."""
