"""Tests for parabolic interpolation."""

import math

import numpy as np
import pytest

from vocalpitch.detectors.interpolation import (
    bin_to_frequency,
    parabolic_offset,
    refine_bin_frequency,
    refine_index,
)


def parabola(vertex, width=7):
    x = np.arange(width, dtype=np.float64)
    return -3.0 * (x - vertex) ** 2


class TestParabolicOffset:

    def test_symmetric_peak(self):
        assert parabolic_offset(-10.0, 0.0, -10.0) == 0.0

    @pytest.mark.parametrize("offset", [-0.4, -0.1, 0.25, 0.45])
    def test_recovers_vertex(self, offset):
        y0, y1, y2 = (-3.0 * (x - offset) ** 2 for x in (-1, 0, 1))
        assert parabolic_offset(y0, y1, y2) == pytest.approx(offset)

    def test_trough_uses_same_formula(self):
        y0, y1, y2 = (2.0 * (x - 0.3) ** 2 for x in (-1, 0, 1))
        assert parabolic_offset(y0, y1, y2) == pytest.approx(0.3)

    def test_flat_is_degenerate(self):
        assert parabolic_offset(-5.0, -5.0, -5.0) is None

    def test_collinear_is_degenerate(self):
        assert parabolic_offset(1.0, 2.0, 3.0) is None

    def test_non_finite(self):
        assert parabolic_offset(-math.inf, 0.0, -1.0) is None
        assert parabolic_offset(math.nan, 0.0, -1.0) is None


class TestRefineIndex:

    def test_interior(self):
        assert refine_index(parabola(3.2), 3) == pytest.approx(3.2)

    def test_edges_unchanged(self):
        values = parabola(0.0)
        assert refine_index(values, 0) == 0.0
        assert refine_index(values, len(values) - 1) == float(len(values) - 1)

    def test_degenerate_unchanged(self):
        assert refine_index([1.0, 1.0, 1.0], 1) == 1.0


class TestRefineBinFrequency:

    def test_bin_to_frequency(self):
        assert bin_to_frequency(10.0, 8000, 512) == pytest.approx(10 * 4000 / 512)

    def test_refined_frequency(self):
        spectrum = np.full(64, -100.0)
        spectrum[9:12] = parabola(10.25, 64)[9:12]
        expected = 10.25 * 4000 / 64
        assert refine_bin_frequency(spectrum, 10, 8000) == pytest.approx(expected)

    def test_edge_bin_returns_bin_centre(self):
        spectrum = np.linspace(-50, -10, 32)
        assert refine_bin_frequency(spectrum, 31, 8000) == pytest.approx(31 * 4000 / 32)
