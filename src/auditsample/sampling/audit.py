"""Sampling audit workbook, manifest section and narrative context."""

from __future__ import annotations

import io
from typing import Any, Dict, List

import pandas as pd

from .engine import SamplingResult
from .summary import SamplingSummary


def stratum_label(stratum: Dict[str, Any]) -> str:
    """Human-readable stratum name, e.g. ``risk=High, region=EU``."""
    if not stratum:
        return "All records"
    return ", ".join(f"{k}={'NULL' if v is None else v}" for k, v in stratum.items())


def build_audit_dataframe(result: SamplingResult) -> pd.DataFrame:
    """Build one-row-per-stratum audit table.

    Columns: stratum, population_count, planned_count, selected_count,
    excluded_count, allocation_difference, coverage_override,
    sampling_method.
    """
    covered = {stratum_label(o.stratum) for o in result.plan.coverage_overrides}
    method = result.summary.sample_selection_method["method"]

    rows: List[Dict[str, Any]] = []
    for a in result.summary.allocations:
        label = stratum_label(a.stratum)
        rows.append(
            {
                "stratum": label,
                "population_count": a.population_count,
                "planned_count": a.proportional_allocation,
                "selected_count": a.sample_count,
                "excluded_count": a.population_count - a.sample_count,
                "allocation_difference": a.allocation_difference,
                "coverage_override": label in covered,
                "sampling_method": method,
            }
        )
    return pd.DataFrame(rows)


def build_overrides_dataframe(summary: SamplingSummary) -> pd.DataFrame:
    """One row per parameter override plus one per coverage override."""
    rows: List[Dict[str, Any]] = []
    for name, entry in summary.overrides.parameter_overrides.items():
        rows.append(
            {
                "override": name,
                "applied": entry["applied"],
                "value": entry.get("value"),
                "original": entry.get("original"),
                "justification": summary.overrides.justification if entry["applied"] else None,
            }
        )
    for o in summary.overrides.coverage_overrides:
        rows.append(
            {
                "override": f"coverage: {stratum_label(o.stratum)}",
                "applied": True,
                "value": o.adjusted_to,
                "original": o.original_sample_count,
                "justification": o.justification,
            }
        )
    return pd.DataFrame(rows, columns=["override", "applied", "value", "original", "justification"])


def audit_to_bytes(result: SamplingResult) -> bytes:
    """Generate ``sampling_audit.xlsx`` as bytes."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        build_audit_dataframe(result).to_excel(writer, sheet_name="allocations", index=False)
        build_overrides_dataframe(result.summary).to_excel(writer, sheet_name="overrides", index=False)
    buf.seek(0)
    return buf.getvalue()


def build_sampling_manifest_section(result: SamplingResult) -> Dict[str, Any]:
    """Build the ``sampling`` section for ``run_manifest.json``."""
    summary = result.summary
    selection = summary.sample_selection_method
    rationale = summary.sampling_rationale
    return {
        "method": selection["method"],
        "parameters": {
            "confidence_level": rationale["confidence_level"],
            "tolerable_error_rate": rationale["tolerable_error_rate"],
            "expected_error_rate": rationale["expected_error_rate"],
        },
        "seed": selection["seed"],
        "signature": result.plan.signature,
        "stratify_fields": list(result.plan.stratify_fields),
        "allocation": {
            "method": "proportional_largest_remainder",
            "formula_reference": "Cochran 1977",
            "desired_size": result.plan.desired_size,
            "original_calculated_sample_size": selection["original_calculated_sample_size"],
        },
        "result": {
            "final_sample_size": selection["final_sample_size"],
            "selected_per_stratum": [
                {"stratum": dict(a.stratum), "selected": a.sample_count}
                for a in summary.allocations
            ],
            "excluded_count": summary.define_population["total_population_size"]
            - selection["final_sample_size"],
        },
        "has_overrides": summary.overrides.has_overrides,
    }


def build_rationale_context(summary: SamplingSummary) -> Dict[str, Any]:
    """Structured input for an external narrative writer.

    Mirrors the workpaper sections: sample source, stratification, sample
    size calculation, allocation and overrides.
    """
    population = summary.define_population
    rationale = summary.sampling_rationale
    selection = summary.sample_selection_method
    total = population["total_population_size"]

    if population["stratify_fields"]:
        stratification: Dict[str, Any] = {
            "enabled": True,
            "fields": list(population["stratify_fields"]),
            "stratum_count": len(summary.allocations),
            "strata": [
                {
                    "name": stratum_label(a.stratum),
                    "stratum_values": dict(a.stratum),
                    "population_count": a.population_count,
                    "sample_count": a.sample_count,
                    "share_of_population": f"{a.population_count / total * 100:.2f}%" if total else "0%",
                }
                for a in summary.allocations
            ],
        }
    else:
        stratification = {"enabled": False, "note": "No stratification was applied to the population."}

    overrides = summary.overrides
    return {
        "sample_source": {
            "description": summary.sample_source["description"],
            "population_size": total,
            "file_name": summary.sample_source.get("file_name") or "Not specified",
        },
        "stratification": stratification,
        "sample_size_calculation": {
            "method": rationale["sampling_method"],
            "confidence_level": f"{rationale['confidence_level'] * 100:.0f}%",
            "tolerable_error_rate": f"{rationale['tolerable_error_rate'] * 100:.1f}%",
            "expected_error_rate": f"{rationale['expected_error_rate'] * 100:.1f}%",
            "calculated_sample_size": selection["original_calculated_sample_size"],
            "final_sample_size": selection["final_sample_size"],
            "rationale_notes": dict(rationale["rationale_notes"]),
        },
        "sample_allocation": {
            "method": selection["method"],
            "seed": selection["seed"],
            "allocation": "proportional" if population["stratify_fields"] else "none",
        },
        "overrides": {
            "has_overrides": overrides.has_overrides,
            "justification": overrides.justification,
            "parameters": {k: dict(v) for k, v in overrides.parameter_overrides.items() if v["applied"]},
            "coverage_overrides": [
                {"stratum": dict(o.stratum), "added": o.adjusted_to - o.original_sample_count}
                for o in overrides.coverage_overrides
            ],
        },
    }
