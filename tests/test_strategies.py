"""Tests for auditsample.sampling.strategies."""

from auditsample.sampling.prng import Mulberry32
from auditsample.sampling.strategies import random_sample, shuffle, systematic_sample


def const(value):
    return lambda: value


class TestShuffle:
    def test_rng_zero_rotates(self):
        assert shuffle([1, 2, 3, 4], const(0.0)) == [2, 3, 4, 1]

    def test_seed_42_reference_order(self):
        assert shuffle(list(range(10)), Mulberry32(42)) == [0, 7, 3, 5, 2, 1, 8, 9, 4, 6]

    def test_input_not_mutated(self):
        rows = [1, 2, 3, 4, 5]
        shuffle(rows, Mulberry32(1))
        assert rows == [1, 2, 3, 4, 5]

    def test_is_permutation(self):
        out = shuffle(list(range(50)), Mulberry32(7))
        assert sorted(out) == list(range(50))

    def test_empty_and_single(self):
        assert shuffle([], const(0.5)) == []
        assert shuffle(["x"], const(0.5)) == ["x"]


class TestRandomSample:
    def test_size(self):
        assert len(random_sample(list(range(100)), 10, Mulberry32(42))) == 10

    def test_no_duplicates(self):
        out = random_sample(list(range(100)), 60, Mulberry32(3))
        assert len(set(out)) == 60

    def test_size_above_population_returns_all(self):
        out = random_sample(list(range(5)), 99, Mulberry32(42))
        assert sorted(out) == [0, 1, 2, 3, 4]

    def test_zero_or_negative_size(self):
        assert random_sample([1, 2, 3], 0, Mulberry32(42)) == []
        assert random_sample([1, 2, 3], -2, Mulberry32(42)) == []

    def test_prefix_of_shuffle(self):
        rows = list(range(10))
        assert random_sample(rows, 3, Mulberry32(42)) == [0, 7, 3]


class TestSystematicSample:
    def test_fixed_start(self):
        rows = list(range(10))
        assert systematic_sample(rows, 5, False, const(0.99)) == [0, 2, 4, 6, 8]

    def test_random_start_offset(self):
        rows = list(range(10))
        assert systematic_sample(rows, 5, True, const(0.99)) == [1, 3, 5, 7, 9]

    def test_random_start_zero_draw(self):
        rows = list(range(10))
        assert systematic_sample(rows, 5, True, const(0.0)) == [0, 2, 4, 6, 8]

    def test_uneven_interval(self):
        rows = list(range(10))
        assert systematic_sample(rows, 3, False, const(0.0)) == [0, 3, 6]
        assert systematic_sample(rows, 3, True, const(0.99)) == [3, 6, 9]

    def test_indices_stay_in_range(self):
        rows = list(range(37))
        for size in range(1, 37):
            out = systematic_sample(rows, size, True, Mulberry32(size))
            assert len(out) == size
            assert all(0 <= v < 37 for v in out)

    def test_size_covers_population(self):
        rows = ["a", "b", "c"]
        assert systematic_sample(rows, 3, True, const(0.5)) == ["a", "b", "c"]
        assert systematic_sample(rows, 10, True, const(0.5)) == ["a", "b", "c"]

    def test_zero_size(self):
        assert systematic_sample([1, 2, 3], 0, True, const(0.5)) == []
