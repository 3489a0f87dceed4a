from .config import SamplingConfig, SamplingMethod, has_overrides, resolve_sample_size
from .engine import SamplingResult, sample_data, sample_dataframe
from .errors import (
    DegenerateSampleError,
    InvalidParameterError,
    MissingInputError,
    SamplingError,
    UnsupportedMethodError,
)
from .plan import SamplingPlan, add_coverage_overrides, compute_plan
from .stats import calculate_sample_size, sample_size, z_score

__all__ = [
    "SamplingConfig",
    "SamplingMethod",
    "SamplingPlan",
    "SamplingResult",
    "SamplingError",
    "InvalidParameterError",
    "MissingInputError",
    "DegenerateSampleError",
    "UnsupportedMethodError",
    "add_coverage_overrides",
    "calculate_sample_size",
    "compute_plan",
    "has_overrides",
    "resolve_sample_size",
    "sample_data",
    "sample_dataframe",
    "sample_size",
    "z_score",
]
