"""Tests for auditsample.sampling.summary."""

import json
from datetime import datetime, timezone

from auditsample.sampling import (
    SamplingConfig,
    add_coverage_overrides,
    compute_plan,
    has_overrides,
    sample_data,
)
from auditsample.sampling.summary import DEFAULT_SOURCE_DESCRIPTION, distribution

FIXED_TS = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def skewed_rows():
    rows = [{"id": i, "seg": "A"} for i in range(999)]
    rows.append({"id": 999, "seg": "B"})
    return rows


class TestDistribution:
    def test_counts_and_shares(self):
        rows = [{"r": "x"}, {"r": "y"}, {"r": "x"}, {"r": "x"}]
        assert distribution(rows, ["r"]) == [
            {"stratum": {"r": "x"}, "count": 3, "share": 0.75},
            {"stratum": {"r": "y"}, "count": 1, "share": 0.25},
        ]

    def test_no_fields(self):
        assert distribution([{"r": 1}], []) == []

    def test_no_rows(self):
        assert distribution([], ["r"]) == []


class TestSummarySections:
    def test_top_level_keys(self, risk_population):
        cfg = SamplingConfig(sample_size=20, stratify_fields=("risk",))
        summary = sample_data(risk_population, cfg, file_name="pop.csv", generated_at=FIXED_TS).summary
        data = summary.to_dict()
        assert set(data) == {
            "generated_at_utc",
            "sample_source",
            "define_population",
            "sampling_rationale",
            "sample_selection_method",
            "overrides",
        }
        assert data["generated_at_utc"] == "2024-01-02T03:04:05+00:00"
        assert data["sample_source"] == {
            "description": DEFAULT_SOURCE_DESCRIPTION,
            "file_name": "pop.csv",
        }

    def test_define_population(self, risk_population):
        cfg = SamplingConfig(sample_size=20, stratify_fields=("risk",))
        population = sample_data(risk_population, cfg).summary.define_population
        assert population["total_population_size"] == 1000
        assert population["stratify_fields"] == ["risk"]
        assert [d["count"] for d in population["population_distribution"]] == [600, 300, 100]
        assert len(population["strata_details"]) == 3

    def test_rationale(self, flat_population):
        cfg = SamplingConfig(confidence=0.9, margin=0.06, expected_error_rate=0.02)
        rationale = sample_data(flat_population, cfg).summary.sampling_rationale
        assert rationale["sampling_method"] == "statistical"
        assert rationale["confidence_level"] == 0.9
        notes = rationale["rationale_notes"]
        assert notes["confidence_level"].startswith("A 90% confidence level")
        assert "6.0%" in notes["tolerable_error_rate"]
        assert "2.0%" in notes["expected_error_rate"]
        assert notes["stratification"].startswith("No stratification applied")

    def test_systematic_random_start_always_recorded(self, flat_population):
        sys_cfg = SamplingConfig(method="systematic", sample_size=10)
        rnd_cfg = SamplingConfig(method="simple_random", sample_size=10)
        sys_sel = sample_data(flat_population, sys_cfg).summary.sample_selection_method
        rnd_sel = sample_data(flat_population, rnd_cfg).summary.sample_selection_method
        assert sys_sel["systematic_random_start"] is True
        assert rnd_sel["systematic_random_start"] is True

    def test_sample_ids_absent_without_id_column(self, flat_population):
        summary = sample_data(flat_population, SamplingConfig(sample_size=5)).summary
        assert summary.sample_ids is None
        assert "sample_ids" not in summary.to_dict()

    def test_timestamp_only_when_given(self, flat_population):
        cfg = SamplingConfig(sample_size=5)
        assert "generated_at_utc" not in sample_data(flat_population, cfg).summary.to_dict()
        stamped = sample_data(flat_population, cfg, generated_at=FIXED_TS).summary
        assert stamped.generated_at_utc == "2024-01-02T03:04:05+00:00"

    def test_to_json(self, risk_population):
        plan_cfg = SamplingConfig(sample_size=20, stratify_fields=("risk",), id_column="id")
        summary = sample_data(risk_population, plan_cfg, generated_at=FIXED_TS).summary
        data = json.loads(summary.to_json())
        assert data["sample_ids"] == summary.sample_ids
        assert data["sample_selection_method"]["final_sample_size"] == 20


class TestParameterOverrides:
    def test_statistical_with_size_flagged(self, flat_population):
        cfg = SamplingConfig(sample_size=30, override_justification="Prior year scope")
        overrides = sample_data(flat_population, cfg).summary.overrides
        assert overrides.has_overrides
        assert overrides.justification == "Prior year scope"
        assert overrides.parameter_overrides["sample_size"] == {"applied": True, "value": 30}
        assert overrides.parameter_overrides["population_size"] == {"applied": False}

    def test_simple_random_size_recorded(self, flat_population):
        cfg = SamplingConfig(method="simple_random", sample_size=30)
        overrides = sample_data(flat_population, cfg).summary.overrides
        assert overrides.has_overrides
        assert overrides.parameter_overrides["sample_size"] == {"applied": True, "value": 30}
        assert overrides.parameter_overrides["sample_percentage"] == {"applied": False}

    def test_config_exemption_does_not_hide_parameters(self, flat_population):
        cfg = SamplingConfig(method="simple_random", sample_size=30, sample_percentage=5)
        assert not has_overrides(cfg)
        overrides = sample_data(flat_population, cfg).summary.overrides
        assert overrides.parameter_overrides["sample_percentage"] == {"applied": True, "value": 5}

    def test_percentage_method(self, flat_population):
        cfg = SamplingConfig(method="percentage", sample_percentage=5)
        overrides = sample_data(flat_population, cfg).summary.overrides
        assert overrides.parameter_overrides["sample_percentage"] == {"applied": True, "value": 5}
        assert overrides.has_overrides

    def test_systematic_step_recorded(self, flat_population):
        cfg = SamplingConfig(method="systematic", sample_size=10, systematic_step=20)
        result = sample_data(flat_population, cfg)
        step = result.summary.overrides.parameter_overrides["systematic_step"]
        assert step == {"applied": True, "value": 20}
        assert len(result.sample) == 10

    def test_empty_justification_is_none(self, flat_population):
        cfg = SamplingConfig(sample_size=5, override_justification="")
        assert sample_data(flat_population, cfg).summary.overrides.justification is None


class TestCoverageInSummary:
    def test_to_dict(self):
        rows = skewed_rows()
        cfg = SamplingConfig(method="simple_random", sample_size=10, stratify_fields=("seg",))
        plan = add_coverage_overrides(compute_plan(rows, cfg))
        data = sample_data(rows, cfg, plan).summary.to_dict()

        overrides = data["overrides"]
        assert overrides["has_overrides"] is True
        assert overrides["coverage_overrides"][0]["stratum"] == {"seg": "B"}
        allocations = data["sample_selection_method"]["allocations_by_stratum"]
        b = allocations[1]
        assert b["proportional_allocation"] == 0
        assert b["sample_count"] == 1
        assert b["allocation_difference"] == 1
