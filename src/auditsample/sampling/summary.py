"""Audit-facing summary of a sampling run.

Pure assembly over the population, the drawn sample, realized allocations
and the plan; no randomness and no I/O.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .config import SamplingConfig
from .plan import (
    CoverageOverride,
    Row,
    SamplingPlan,
    StratumAllocation,
    group_rows,
    stratum_from_key,
)

DEFAULT_SOURCE_DESCRIPTION = (
    "Audit independently obtained the population from the system of record."
)


def distribution(rows: Sequence[Row], fields: Sequence[str]) -> List[Dict[str, Any]]:
    """Count and share of rows per stratum, in order of first appearance."""
    if not fields or not rows:
        return []
    total = len(rows)
    return [
        {"stratum": stratum_from_key(key, fields), "count": len(group), "share": len(group) / total}
        for key, group in group_rows(rows, fields).items()
    ]


@dataclass
class OverridesSection:
    """Every departure from the method's own calculation, each flagged separately."""
    has_overrides: bool
    justification: Optional[str]
    parameter_overrides: Dict[str, Dict[str, Any]]
    coverage_overrides: List[CoverageOverride] = field(default_factory=list)
    allocation_adjustments: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_overrides": self.has_overrides,
            "justification": self.justification,
            "parameter_overrides": {k: dict(v) for k, v in self.parameter_overrides.items()},
            "coverage_overrides": [o.to_dict() for o in self.coverage_overrides],
            "allocation_adjustments": [dict(a) for a in self.allocation_adjustments],
        }


@dataclass
class SamplingSummary:
    sample_source: Dict[str, Any]
    define_population: Dict[str, Any]
    sampling_rationale: Dict[str, Any]
    sample_selection_method: Dict[str, Any]
    overrides: OverridesSection
    generated_at_utc: Optional[str] = None
    sample_ids: Optional[List[Any]] = None

    @property
    def allocations(self) -> List[StratumAllocation]:
        return self.sample_selection_method["allocations_by_stratum"]

    def to_dict(self) -> Dict[str, Any]:
        selection = dict(self.sample_selection_method)
        selection["allocations_by_stratum"] = [a.to_dict() for a in self.allocations]
        out: Dict[str, Any] = {
            "sample_source": dict(self.sample_source),
            "define_population": dict(self.define_population),
            "sampling_rationale": dict(self.sampling_rationale),
            "sample_selection_method": selection,
            "overrides": self.overrides.to_dict(),
        }
        if self.generated_at_utc is not None:
            out["generated_at_utc"] = self.generated_at_utc
        if self.sample_ids is not None:
            out["sample_ids"] = list(self.sample_ids)
        return out

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False, default=str)


def _parameter_overrides(cfg: SamplingConfig, actual_population: int) -> Dict[str, Dict[str, Any]]:
    if cfg.population_override is not None and cfg.population_override > 0:
        population = {"applied": True, "value": cfg.population_override, "original": actual_population}
    else:
        population = {"applied": False}

    def _flag(value: Any) -> Dict[str, Any]:
        if value is not None:
            return {"applied": True, "value": value}
        return {"applied": False}

    return {
        "population_size": population,
        "sample_size": _flag(cfg.sample_size),
        "sample_percentage": _flag(cfg.sample_percentage),
        "systematic_step": _flag(cfg.systematic_step),
    }


def _rationale_notes(cfg: SamplingConfig) -> Dict[str, str]:
    conf = f"{cfg.confidence * 100:.0f}"
    if cfg.stratify_fields:
        stratification = (
            f"Stratification by {', '.join(cfg.stratify_fields)} ensures proportional "
            "representation across risk-relevant categories."
        )
    else:
        stratification = "No stratification applied - population treated as homogeneous."
    return {
        "confidence_level": (
            f"A {conf}% confidence level means we are {conf}% confident that the sample "
            "results reflect the population within the specified tolerable error rate."
        ),
        "tolerable_error_rate": (
            f"The tolerable error rate of {cfg.margin * 100:.1f}% represents the maximum "
            "acceptable deviation from the expected error rate."
        ),
        "expected_error_rate": (
            f"The expected error rate of {cfg.expected_error_rate * 100:.1f}% is based on "
            "historical performance or professional judgment."
        ),
        "stratification": stratification,
    }


def build_summary(
    population: Sequence[Row],
    sample: Sequence[Row],
    allocations: Sequence[StratumAllocation],
    cfg: SamplingConfig,
    planned_size: int,
    plan: Optional[SamplingPlan] = None,
    file_name: Optional[str] = None,
    sheet_name: Optional[str] = None,
    *,
    generated_at: Optional[datetime] = None,
    source_description: str = DEFAULT_SOURCE_DESCRIPTION,
) -> SamplingSummary:
    """Assemble the :class:`SamplingSummary` for a completed draw.

    ``allocation_difference`` is realized count minus the plan's count
    before any coverage override, matched by stratum.
    ``generated_at_utc`` is set only when ``generated_at`` is given.
    """
    coverage = list(plan.coverage_overrides) if plan else []
    planned_by_key = {a.key: a for a in plan.allocations} if plan else {}

    with_diff: List[StratumAllocation] = []
    for alloc in allocations:
        planned = planned_by_key.get(alloc.key)
        proportional = planned.original_sample_count if planned else alloc.sample_count
        with_diff.append(
            StratumAllocation(
                key=alloc.key,
                stratum=dict(alloc.stratum),
                population_count=alloc.population_count,
                sample_count=alloc.sample_count,
                original_sample_count=alloc.original_sample_count,
                share_of_population=alloc.share_of_population,
                share_of_sample=alloc.share_of_sample,
                proportional_allocation=proportional,
                allocation_difference=alloc.sample_count - proportional,
            )
        )

    if plan is not None and plan.allocations:
        original_planned = sum(a.original_sample_count for a in plan.allocations)
    else:
        original_planned = planned_size

    adjustments = [
        {
            "stratum": dict(a.stratum),
            "proportional_allocation": a.proportional_allocation,
            "actual_allocation": a.sample_count,
            "difference": a.allocation_difference,
        }
        for a in with_diff
        if a.allocation_difference != 0
    ]

    parameters = _parameter_overrides(cfg, len(population))
    any_parameter = any(p["applied"] for p in parameters.values())

    overrides = OverridesSection(
        has_overrides=any_parameter or bool(coverage) or bool(adjustments),
        justification=cfg.override_justification or None,
        parameter_overrides=parameters,
        coverage_overrides=coverage,
        allocation_adjustments=adjustments,
    )

    fields = list(cfg.stratify_fields)

    sample_source: Dict[str, Any] = {"description": source_description}
    if file_name is not None:
        sample_source["file_name"] = file_name
    if sheet_name is not None:
        sample_source["sheet_name"] = sheet_name

    selection: Dict[str, Any] = {
        "method": cfg.method.value,
        "seed": cfg.seed,
        "original_calculated_sample_size": original_planned,
        "final_sample_size": len(sample),
        "sample_distribution": distribution(sample, fields),
        "allocations_by_stratum": with_diff,
        "systematic_random_start": cfg.systematic_random_start,
    }

    return SamplingSummary(
        sample_source=sample_source,
        define_population={
            "total_population_size": len(population),
            "stratify_fields": fields,
            "population_distribution": distribution(population, fields),
            "strata_details": [
                {
                    "stratum": dict(a.stratum),
                    "population_count": a.population_count,
                    "share_of_population": a.share_of_population or 0,
                }
                for a in with_diff
            ],
        },
        sampling_rationale={
            "sampling_method": cfg.method.value,
            "confidence_level": cfg.confidence,
            "tolerable_error_rate": cfg.margin,
            "expected_error_rate": cfg.expected_error_rate,
            "rationale_notes": _rationale_notes(cfg),
        },
        sample_selection_method=selection,
        overrides=overrides,
        generated_at_utc=generated_at.isoformat() if generated_at is not None else None,
        sample_ids=[row.get(cfg.id_column) for row in sample] if cfg.id_column else None,
    )
