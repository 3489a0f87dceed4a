"""Strata grouping, allocation plans and the coverage-override pass."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .allocation import proportional_allocation
from .config import SamplingConfig, config_signature, resolve_sample_size
from .errors import DegenerateSampleError

logger = logging.getLogger(__name__)

MISSING_VALUE = "<MISSING>"
ALL_KEY = "__all__"

COVERAGE_JUSTIFICATION = (
    "Override made to allow for sampling coverage across all observed strata in the population."
)

Row = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Stratum keys
# ---------------------------------------------------------------------------


def normalize_value(value: Any) -> Any:
    """Collapse null-like values to one marker; unwrap numpy scalars."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None:
        return MISSING_VALUE
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return MISSING_VALUE
    return value


def normalize_key(values: Sequence[Any]) -> str:
    """Stable string key for a tuple of stratification values."""
    return json.dumps([normalize_value(v) for v in values], ensure_ascii=False, default=str)


def stratum_from_key(key: str, fields: Sequence[str]) -> Dict[str, Any]:
    values = [None if v == MISSING_VALUE else v for v in json.loads(key)]
    return dict(zip(fields, values))


def group_rows(rows: Sequence[Row], fields: Sequence[str]) -> Dict[str, List[Row]]:
    """Group rows by stratum key, in order of first appearance."""
    groups: Dict[str, List[Row]] = {}
    for row in rows:
        key = normalize_key([row.get(f) for f in fields])
        groups.setdefault(key, []).append(row)
    return groups


# ---------------------------------------------------------------------------
# Plan records
# ---------------------------------------------------------------------------


@dataclass
class StratumAllocation:
    """Planned (and, after sampling, realized) count for one stratum."""
    key: str
    stratum: Dict[str, Any]
    population_count: int
    sample_count: int
    original_sample_count: int
    share_of_population: Optional[float] = None
    share_of_sample: Optional[float] = None
    proportional_allocation: Optional[int] = None
    allocation_difference: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None or k == "stratum"}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StratumAllocation":
        return cls(
            key=data["key"],
            stratum=dict(data.get("stratum") or {}),
            population_count=int(data["population_count"]),
            sample_count=int(data["sample_count"]),
            original_sample_count=int(data.get("original_sample_count", data["sample_count"])),
            share_of_population=data.get("share_of_population"),
            share_of_sample=data.get("share_of_sample"),
            proportional_allocation=data.get("proportional_allocation"),
            allocation_difference=data.get("allocation_difference"),
        )


@dataclass(frozen=True)
class CoverageOverride:
    """A stratum raised from zero selections to one."""
    stratum: Dict[str, Any]
    original_sample_count: int = 0
    adjusted_to: int = 1
    justification: str = COVERAGE_JUSTIFICATION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stratum": dict(self.stratum),
            "original_sample_count": self.original_sample_count,
            "adjusted_to": self.adjusted_to,
            "justification": self.justification,
        }


@dataclass
class SamplingPlan:
    """Per-stratum allocations plus whole-population totals."""
    allocations: List[StratumAllocation]
    planned_size: int
    desired_size: int
    stratify_fields: List[str]
    population_size: Optional[int] = None
    signature: Optional[str] = None
    coverage_overrides: List[CoverageOverride] = field(default_factory=list)

    @property
    def allocation_map(self) -> Dict[str, int]:
        return {a.key: a.sample_count for a in self.allocations}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allocations": [a.to_dict() for a in self.allocations],
            "planned_size": self.planned_size,
            "desired_size": self.desired_size,
            "stratify_fields": list(self.stratify_fields),
            "population_size": self.population_size,
            "signature": self.signature,
            "coverage_overrides": [o.to_dict() for o in self.coverage_overrides],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SamplingPlan":
        """Rebuild a plan that a caller stored with :meth:`to_dict`."""
        allocations = [StratumAllocation.from_dict(a) for a in data.get("allocations", [])]
        overrides = [
            CoverageOverride(
                stratum=dict(o.get("stratum") or {}),
                original_sample_count=int(o.get("original_sample_count", 0)),
                adjusted_to=int(o.get("adjusted_to", 1)),
                justification=o.get("justification", COVERAGE_JUSTIFICATION),
            )
            for o in data.get("coverage_overrides", [])
        ]
        planned = data.get("planned_size")
        return cls(
            allocations=allocations,
            planned_size=int(planned) if planned is not None else sum(a.sample_count for a in allocations),
            desired_size=int(data.get("desired_size", 0)),
            stratify_fields=list(data.get("stratify_fields", [])),
            population_size=data.get("population_size"),
            signature=data.get("signature"),
            coverage_overrides=overrides,
        )


# ---------------------------------------------------------------------------
# Plan builder
# ---------------------------------------------------------------------------


def compute_plan(population: Sequence[Row], cfg: SamplingConfig) -> SamplingPlan:
    """Allocate the resolved target size across strata without drawing rows.

    ``population_override`` replaces the row count when sizing the target;
    grouping always uses the rows supplied.
    """
    cfg.validate()
    pop_size = len(population)
    effective_pop = cfg.effective_population(pop_size)
    desired_size = resolve_sample_size(effective_pop, cfg)

    if desired_size <= 0:
        raise DegenerateSampleError("Calculated sample size is 0. Adjust parameters.")

    if not cfg.is_stratified:
        sample_count = int(min(effective_pop, desired_size))
        logger.debug("Unstratified plan: %d of %s", sample_count, effective_pop)
        return SamplingPlan(
            allocations=[
                StratumAllocation(
                    key=ALL_KEY,
                    stratum={},
                    population_count=int(effective_pop),
                    sample_count=sample_count,
                    original_sample_count=sample_count,
                )
            ],
            planned_size=sample_count,
            desired_size=desired_size,
            stratify_fields=[],
            population_size=pop_size,
            signature=config_signature(cfg),
        )

    fields = list(cfg.stratify_fields)
    groups = group_rows(population, fields)
    counts = {k: len(rows) for k, rows in groups.items()}
    allocated = proportional_allocation(counts, desired_size)

    allocations = []
    for key, rows in groups.items():
        n_h = allocated.get(key, 0)
        allocations.append(
            StratumAllocation(
                key=key,
                stratum=stratum_from_key(key, fields),
                population_count=len(rows),
                sample_count=n_h,
                original_sample_count=n_h,
            )
        )

    planned_size = sum(a.sample_count for a in allocations)
    logger.debug(
        "Stratified plan over %s: %d strata, desired %d, planned %d",
        fields, len(allocations), desired_size, planned_size,
    )
    return SamplingPlan(
        allocations=allocations,
        planned_size=planned_size,
        desired_size=desired_size,
        stratify_fields=fields,
        population_size=pop_size,
        signature=config_signature(cfg),
    )


def add_coverage_overrides(plan: SamplingPlan) -> SamplingPlan:
    """Raise every observed stratum allocated zero to one selection.

    Mutates and returns ``plan``. Running it twice adds nothing the second
    time. Skip it when strict proportionality is required.
    """
    added: List[CoverageOverride] = []
    for alloc in plan.allocations:
        if alloc.sample_count == 0 and alloc.population_count > 0:
            added.append(CoverageOverride(stratum=dict(alloc.stratum)))
            alloc.sample_count = 1

    if added:
        logger.info("Coverage override applied to %d strata", len(added))
    plan.coverage_overrides = list(plan.coverage_overrides) + added
    plan.planned_size = sum(a.sample_count for a in plan.allocations)
    return plan
