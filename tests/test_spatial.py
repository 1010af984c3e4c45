"""
Tests for the toroidal spatial fields.

Covers wrapping and minimal deltas, bucket maintenance on place/move/remove,
range queries across the seam, and grid occupancy.
"""

import math

import pytest

from famsim.core.spatial import ContinuousField, GridField, toroidal_delta, wrap


class TestWrap:
    def test_wrap_negative(self):
        assert wrap(-1.0, 10) == 9.0

    def test_wrap_upper_edge(self):
        assert wrap(10.0, 10) == 0.0

    def test_wrap_tiny_negative_stays_below_dim(self):
        assert 0.0 <= wrap(-1e-18, 10) < 10

    @pytest.mark.parametrize("value", [-25.5, -1e-9, 0.0, 3.25, 10.0, 47.0])
    def test_wrap_idempotent_and_in_range(self, value):
        once = wrap(value, 10)
        assert 0.0 <= once < 10
        assert wrap(once, 10) == once

    def test_delta_takes_short_way(self):
        assert toroidal_delta(9.0, 1.0, 10) == pytest.approx(2.0)
        assert toroidal_delta(1.0, 9.0, 10) == pytest.approx(-2.0)

    def test_delta_direct(self):
        assert toroidal_delta(2.0, 5.0, 10) == pytest.approx(3.0)


class TestContinuousField:
    def test_place_normalizes(self):
        f = ContinuousField(10)
        assert f.place(1, (12.5, -0.5)) == pytest.approx((2.5, 9.5))

    def test_distance_across_seam(self):
        f = ContinuousField(10)
        assert f.distance((0.5, 0.5), (9.5, 9.5)) == pytest.approx(math.sqrt(2))

    def test_neighbors_sorted_and_excluding(self):
        f = ContinuousField(10)
        f.place(5, (1.0, 1.0))
        f.place(2, (1.5, 1.0))
        f.place(9, (0.2, 9.8))   # across both seams
        f.place(3, (6.0, 6.0))
        assert f.neighbors_within((1.0, 1.0), 2.0, exclude=5) == [2, 9]

    def test_radius_is_inclusive(self):
        f = ContinuousField(10)
        f.place(1, (0.0, 0.0))
        f.place(2, (2.0, 0.0))
        assert f.neighbors_within((0.0, 0.0), 2.0, exclude=1) == [2]

    def test_move_updates_buckets(self):
        f = ContinuousField(10)
        f.place(1, (0.5, 0.5))
        f.move(1, (5.5, 5.5))
        assert f.neighbors_within((0.5, 0.5), 1.0) == []
        assert f.neighbors_within((5.5, 5.5), 0.1) == [1]
        assert f.position_of(1) == (5.5, 5.5)

    def test_large_radius_finds_everyone(self):
        f = ContinuousField(10)
        for i in range(5):
            f.place(i, (i * 2.0, i * 1.5))
        assert f.neighbors_within((0.0, 0.0), 100.0) == [0, 1, 2, 3, 4]

    def test_remove(self):
        f = ContinuousField(10)
        f.place(1, (3.0, 3.0))
        f.remove(1)
        assert 1 not in f
        assert len(f) == 0
        assert f.neighbors_within((3.0, 3.0), 1.0) == []

    def test_remove_absent_raises(self):
        with pytest.raises(KeyError):
            ContinuousField(10).remove(42)

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            ContinuousField(0)


class TestGridField:
    def test_normalize_to_cells(self):
        f = GridField(10)
        assert f.place(1, (-1, 10)) == (9, 0)

    def test_moore_neighbourhood_wraps(self):
        f = GridField(10)
        f.place(1, (0, 0))
        f.place(2, (1, 1))
        f.place(3, (2, 0))
        f.place(4, (9, 9))
        assert f.neighbors_within((0, 0), 1, exclude=1) == [2, 4]

    def test_same_cell_counts_as_neighbour(self):
        f = GridField(10)
        f.place(1, (4, 4))
        f.place(2, (4, 4))
        assert f.neighbors_within((4, 4), 0, exclude=1) == [2]

    def test_occupancy(self):
        f = GridField(10)
        f.place(1, (3, 3))
        assert f.is_occupied((3, 3))
        assert not f.is_occupied((3, 3), ignore=1)
        assert f.occupants((13, 3)) == [1]
