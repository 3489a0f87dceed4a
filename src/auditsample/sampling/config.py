"""Sampling configuration and target-size resolution."""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import InvalidParameterError, MissingInputError, UnsupportedMethodError
from .stats import sample_size as statistical_sample_size


class SamplingMethod(Enum):
    """How the target size is resolved and rows are drawn."""
    STATISTICAL = "statistical"       # Size from confidence/TER/EER, random draw
    SIMPLE_RANDOM = "simple_random"   # Caller-given size or percentage, random draw
    SYSTEMATIC = "systematic"         # Fixed-interval draw
    PERCENTAGE = "percentage"         # Fixed share of the population, random draw

    @classmethod
    def coerce(cls, value: "str | SamplingMethod") -> "SamplingMethod":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        # "random" is the method name used by older saved configurations
        if key == "random":
            key = cls.SIMPLE_RANDOM.value
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedMethodError(f"Unsupported method {value}") from None


# camelCase keys used by saved browser-tool configurations
_CAMEL_KEYS = {
    "expectedErrorRate": "expected_error_rate",
    "sampleSize": "sample_size",
    "samplePercentage": "sample_percentage",
    "systematicStep": "systematic_step",
    "systematicRandomStart": "systematic_random_start",
    "stratifyFields": "stratify_fields",
    "idColumn": "id_column",
    "overrideJustification": "override_justification",
    "populationOverride": "population_override",
    "tolerableErrorRate": "margin",
    "tolerable_error_rate": "margin",
}


@dataclass(frozen=True)
class SamplingConfig:
    """Parameters for one sampling request.

    ``margin`` is the tolerable error rate (TER).
    """

    method: SamplingMethod = SamplingMethod.STATISTICAL
    confidence: float = 0.95
    margin: float = 0.05
    expected_error_rate: float = 0.01
    sample_size: Optional[float] = None
    sample_percentage: Optional[float] = None
    systematic_step: Optional[int] = None
    systematic_random_start: bool = True
    seed: int = 42
    stratify_fields: Tuple[str, ...] = field(default_factory=tuple)
    id_column: Optional[str] = None
    override_justification: Optional[str] = None
    population_override: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "method", SamplingMethod.coerce(self.method))
        if isinstance(self.stratify_fields, str):
            object.__setattr__(self, "stratify_fields", (self.stratify_fields,))
        else:
            object.__setattr__(self, "stratify_fields", tuple(self.stratify_fields or ()))

    @property
    def tolerable_error_rate(self) -> float:
        return self.margin

    @property
    def is_stratified(self) -> bool:
        return len(self.stratify_fields) > 0

    def effective_population(self, actual: int) -> float:
        """Population size used for sizing: the override when positive."""
        if self.population_override is not None and self.population_override > 0:
            return self.population_override
        return actual

    def validate(self) -> "SamplingConfig":
        """Raise ``InvalidParameterError`` if any field is out of range."""
        if not 0 < self.confidence < 1:
            raise InvalidParameterError("Confidence must be in (0,1)")
        if not 0 < self.margin < 1:
            raise InvalidParameterError("Tolerable error rate must be in (0,1)")
        if not 0 <= self.expected_error_rate < 1:
            raise InvalidParameterError("Expected error rate must be in [0,1)")
        if self.method == SamplingMethod.STATISTICAL and not self.margin > self.expected_error_rate:
            raise InvalidParameterError("Tolerable error rate must exceed expected error rate.")

        if self.sample_size is not None:
            if not math.isfinite(self.sample_size) or self.sample_size < 0:
                raise InvalidParameterError(
                    f"sample_size must be a non-negative number, got {self.sample_size}"
                )
        if self.sample_percentage is not None:
            if not 0 <= self.sample_percentage <= 100:
                raise InvalidParameterError(
                    f"sample_percentage must be in [0, 100], got {self.sample_percentage}"
                )
        if self.systematic_step is not None and self.systematic_step <= 0:
            raise InvalidParameterError(
                f"systematic_step must be positive, got {self.systematic_step}"
            )
        if isinstance(self.seed, bool) or not isinstance(self.seed, int):
            raise InvalidParameterError(f"seed must be an integer, got {self.seed!r}")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SamplingConfig":
        """Build a config from snake_case or camelCase keys.

        Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL_KEYS.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "confidence": self.confidence,
            "margin": self.margin,
            "expected_error_rate": self.expected_error_rate,
            "sample_size": self.sample_size,
            "sample_percentage": self.sample_percentage,
            "systematic_step": self.systematic_step,
            "systematic_random_start": self.systematic_random_start,
            "seed": self.seed,
            "stratify_fields": list(self.stratify_fields),
            "id_column": self.id_column,
            "override_justification": self.override_justification,
            "population_override": self.population_override,
        }

    def replace(self, **changes: Any) -> "SamplingConfig":
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update(changes)
        return SamplingConfig(**data)


def _percentage_size(population: float, percentage: float) -> int:
    return math.ceil(population * (percentage / 100))


def resolve_sample_size(population: float, cfg: SamplingConfig) -> int:
    """Target sample size for a population before allocation.

    An explicit ``sample_size`` always wins. Otherwise the method decides:

    - statistical: confidence-interval formula
    - percentage: ``ceil(N * pct / 100)``, percentage required
    - simple_random: size or percentage required
    - systematic: size, else percentage, else the statistical formula

    Returns:
        Integer size in [0, N].
    """
    N = population
    if N <= 0:
        return 0

    if cfg.sample_size is not None and math.isfinite(cfg.sample_size):
        return int(max(0, min(N, math.floor(cfg.sample_size))))

    method = cfg.method
    if method == SamplingMethod.STATISTICAL:
        size = statistical_sample_size(N, cfg.confidence, cfg.margin, cfg.expected_error_rate)
    elif method == SamplingMethod.PERCENTAGE:
        if cfg.sample_percentage is None:
            raise MissingInputError("samplePercentage is required for percentage sampling.")
        size = _percentage_size(N, cfg.sample_percentage)
    elif method == SamplingMethod.SIMPLE_RANDOM:
        if cfg.sample_percentage is None:
            raise MissingInputError("Provide sampleSize or samplePercentage for simple_random.")
        size = _percentage_size(N, cfg.sample_percentage)
    elif method == SamplingMethod.SYSTEMATIC:
        if cfg.sample_percentage is not None:
            size = _percentage_size(N, cfg.sample_percentage)
        else:
            size = statistical_sample_size(N, cfg.confidence, cfg.margin, cfg.expected_error_rate)
    else:
        raise UnsupportedMethodError(f"Unsupported method {method}")

    return int(max(0, min(N, math.floor(size))))


def has_overrides(cfg: SamplingConfig) -> bool:
    """Whether the configuration departs from the method's own calculation.

    Inputs a method requires are not overrides: ``simple_random`` needs a
    size or percentage, ``percentage`` needs a percentage.
    """
    if cfg.population_override is not None and cfg.population_override > 0:
        return True
    if cfg.systematic_step is not None:
        return True
    if cfg.method == SamplingMethod.SIMPLE_RANDOM:
        return False
    if cfg.method == SamplingMethod.PERCENTAGE:
        return cfg.sample_size is not None
    return cfg.sample_size is not None or cfg.sample_percentage is not None


def config_signature(cfg: SamplingConfig) -> str:
    """SHA-256 of the parameters that determine the allocation."""
    payload = {
        "method": cfg.method.value,
        "confidence": cfg.confidence,
        "margin": cfg.margin,
        "expected_error_rate": cfg.expected_error_rate,
        "sample_size": cfg.sample_size,
        "sample_percentage": cfg.sample_percentage,
        "systematic_step": cfg.systematic_step,
        "stratify_fields": list(cfg.stratify_fields),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

