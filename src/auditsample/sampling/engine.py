"""Sampler: applies a plan to population rows and records what was drawn.

Every call seeds a fresh generator from ``cfg.seed``; for fixed rows (in a
fixed order), config and seed the sample and summary are identical on every
run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config import SamplingConfig, SamplingMethod
from .errors import DegenerateSampleError, InvalidParameterError
from .plan import (
    ALL_KEY,
    Row,
    SamplingPlan,
    StratumAllocation,
    compute_plan,
    group_rows,
    stratum_from_key,
)
from .prng import Mulberry32
from .strategies import Rng, random_sample, systematic_sample
from .summary import SamplingSummary, build_summary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingResult:
    """Drawn rows, the audit summary, and the plan as realized."""
    sample: List[Row]
    summary: SamplingSummary
    plan: SamplingPlan

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sample": [dict(r) for r in self.sample],
            "summary": self.summary.to_dict(),
            "plan": self.plan.to_dict(),
        }


@dataclass(frozen=True)
class DataFrameSample:
    """Sample and excluded rows as DataFrames, with the full result."""
    sample_df: pd.DataFrame
    excluded_df: pd.DataFrame
    result: SamplingResult


def _draw(rows: Sequence[Row], size: int, cfg: SamplingConfig, rng: Rng) -> List[Row]:
    if cfg.method == SamplingMethod.SYSTEMATIC:
        return systematic_sample(rows, size, cfg.systematic_random_start, rng)
    return random_sample(rows, size, rng)


def _stratified_draw(
    rows: Sequence[Row],
    cfg: SamplingConfig,
    rng: Rng,
    targets: Dict[str, int],
) -> Tuple[List[Row], List[StratumAllocation]]:
    fields = list(cfg.stratify_fields)
    groups = group_rows(rows, fields)
    n_rows = len(rows)

    sample: List[Row] = []
    allocations: List[StratumAllocation] = []
    for key, group in groups.items():
        n_h = targets.get(key, 0)
        chosen = _draw(group, n_h, cfg, rng) if n_h > 0 else []
        allocations.append(
            StratumAllocation(
                key=key,
                stratum=stratum_from_key(key, fields),
                population_count=len(group),
                sample_count=len(chosen),
                original_sample_count=max(n_h, 0),
                share_of_population=len(group) / n_rows,
            )
        )
        sample.extend(chosen)

    # Over rows drawn, which can fall short of the plan when a stratum is small
    drawn = len(sample) or 1
    for alloc in allocations:
        alloc.share_of_sample = alloc.sample_count / drawn
    return sample, allocations


def sample_data(
    population: Sequence[Row],
    cfg: SamplingConfig,
    plan: Optional[SamplingPlan] = None,
    *,
    file_name: Optional[str] = None,
    sheet_name: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> SamplingResult:
    """Draw a sample from ``population`` according to ``cfg``.

    Args:
        population: Ordered rows (field -> value mappings).
        cfg: Sampling configuration.
        plan: Precomputed plan, e.g. after :func:`add_coverage_overrides`.
            Built with :func:`compute_plan` when omitted.
        file_name, sheet_name: Provenance recorded in the summary.
        generated_at: Summary timestamp. Omitted from the summary when not
            given, so repeated runs produce identical JSON.

    Returns:
        A new :class:`SamplingResult`. ``plan`` is not modified.
    """
    cfg.validate()
    if plan is None:
        plan = compute_plan(population, cfg)
    elif list(plan.stratify_fields) != list(cfg.stratify_fields):
        raise InvalidParameterError(
            f"Plan is stratified by {list(plan.stratify_fields)}, "
            f"config by {list(cfg.stratify_fields)}"
        )

    desired_size = sum(a.sample_count for a in plan.allocations)
    if desired_size <= 0 and len(population) > 0:
        raise DegenerateSampleError("Calculated sample size is 0. Adjust parameters.")

    rng = Mulberry32(cfg.seed)

    if cfg.is_stratified:
        sample, allocations = _stratified_draw(population, cfg, rng, plan.allocation_map)
    else:
        take = min(desired_size, len(population))
        sample = _draw(population, take, cfg, rng)
        allocations = [
            StratumAllocation(
                key=ALL_KEY,
                stratum={},
                population_count=len(population),
                sample_count=len(sample),
                original_sample_count=len(sample),
                share_of_population=1.0,
                share_of_sample=1.0,
            )
        ]

    logger.debug(
        "Drew %d of %d rows (method=%s, seed=%d)",
        len(sample), len(population), cfg.method.value, cfg.seed,
    )

    summary = build_summary(
        population,
        sample,
        allocations,
        cfg,
        desired_size,
        plan,
        file_name,
        sheet_name,
        generated_at=generated_at,
    )

    realized = SamplingPlan(
        allocations=list(summary.allocations),
        planned_size=len(sample),
        desired_size=plan.desired_size,
        stratify_fields=list(plan.stratify_fields),
        population_size=len(population),
        signature=plan.signature,
        coverage_overrides=list(plan.coverage_overrides),
    )
    return SamplingResult(sample=sample, summary=summary, plan=realized)


def sample_dataframe(
    df: pd.DataFrame,
    cfg: SamplingConfig,
    plan: Optional[SamplingPlan] = None,
    **kwargs: Any,
) -> DataFrameSample:
    """Run :func:`sample_data` over a DataFrame's rows.

    ``sample_df`` keeps the draw order; ``excluded_df`` keeps population order.
    """
    records = df.to_dict(orient="records")
    result = sample_data(records, cfg, plan, **kwargs)

    position = {id(row): i for i, row in enumerate(records)}
    picked = [position[id(row)] for row in result.sample]
    picked_set = set(picked)
    excluded = [i for i in range(len(records)) if i not in picked_set]

    return DataFrameSample(
        sample_df=df.iloc[picked].reset_index(drop=True),
        excluded_df=df.iloc[excluded].reset_index(drop=True),
        result=result,
    )
