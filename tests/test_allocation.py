"""Tests for auditsample.sampling.allocation."""

import pytest

from auditsample.sampling.allocation import proportional_allocation


class TestProportionalAllocation:
    def test_exact_shares(self):
        assert proportional_allocation({"Low": 600, "Medium": 300, "High": 100}, 50) == {
            "Low": 30,
            "Medium": 15,
            "High": 5,
        }

    def test_largest_remainder_gets_leftover(self):
        assert proportional_allocation({"A": 333, "B": 333, "C": 334}, 10) == {
            "A": 3,
            "B": 3,
            "C": 4,
        }

    def test_ties_keep_stratum_order(self):
        assert proportional_allocation({"A": 1, "B": 1, "C": 1}, 2) == {"A": 1, "B": 1, "C": 0}

    def test_capped_at_stratum_size(self):
        assert proportional_allocation({"A": 3, "B": 2}, 10) == {"A": 3, "B": 2}

    def test_tiny_stratum_can_get_zero(self):
        assert proportional_allocation({"A": 999, "B": 1}, 10) == {"A": 10, "B": 0}

    def test_key_order_preserved(self):
        out = proportional_allocation({"z": 5, "a": 50, "m": 20}, 10)
        assert list(out) == ["z", "a", "m"]

    def test_empty_counts(self):
        assert proportional_allocation({}, 10) == {}

    def test_zero_target(self):
        assert proportional_allocation({"A": 5, "B": 5}, 0) == {"A": 0, "B": 0}

    def test_zero_population(self):
        assert proportional_allocation({"A": 0, "B": 0}, 5) == {"A": 0, "B": 0}

    @pytest.mark.parametrize("target", [1, 7, 24, 99, 150, 500])
    def test_sum_matches_reachable_target(self, target):
        counts = {"a": 120, "b": 45, "c": 3, "d": 1, "e": 31}
        out = proportional_allocation(counts, target)
        assert sum(out.values()) == min(target, sum(counts.values()))
        assert all(0 <= out[k] <= counts[k] for k in counts)
