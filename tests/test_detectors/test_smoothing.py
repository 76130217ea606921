"""Tests for the median smoother."""

import pytest

from vocalpitch.detectors.smoothing import PitchSmoother, create_smoother


@pytest.fixture
def smoother():
    return PitchSmoother()


def feed(smoother, *frequencies):
    return [smoother.smooth(f) for f in frequencies]


class TestMedian:

    def test_first_value_passes_through(self, smoother):
        assert smoother.smooth(220.0) == 220.0

    def test_median_of_three(self, smoother):
        assert feed(smoother, 220.0, 224.0, 221.0)[-1] == 221.0

    def test_history_is_bounded(self, smoother):
        feed(smoother, 200.0, 201.0, 202.0, 203.0)
        assert list(smoother.history) == [201.0, 202.0, 203.0]

    def test_moderate_change_accepted(self, smoother):
        smoother.smooth(220.0)
        smoother.smooth(330.0)
        assert list(smoother.history) == [220.0, 330.0]


class TestOctaveJumps:

    def test_jump_with_short_history_rejected(self, smoother):
        smoother.smooth(220.0)
        assert smoother.smooth(440.0) == 220.0
        assert list(smoother.history) == [220.0]

    def test_downward_jump_rejected(self, smoother):
        smoother.smooth(220.0)
        assert smoother.smooth(110.0) == 220.0

    def test_jump_from_consistent_history_accepted(self, smoother):
        feed(smoother, 220.0, 221.0, 222.0)

        assert smoother.smooth(442.0) == 442.0
        assert list(smoother.history) == [442.0]

    def test_jump_from_unsettled_history_rejected(self, smoother):
        feed(smoother, 200.0, 205.0, 215.0)  # spread 1.075

        assert smoother.smooth(410.0) == 205.0

    def test_wild_jump_rejected(self, smoother):
        smoother.smooth(220.0)
        assert smoother.smooth(600.0) == 220.0
        assert smoother.smooth(80.0) == 220.0


def test_reset(smoother):
    feed(smoother, 220.0, 221.0)
    smoother.reset()
    assert len(smoother.history) == 0
    assert smoother.smooth(440.0) == 440.0


class TestFactory:

    def test_disabled_by_default(self):
        assert create_smoother() is None
        assert create_smoother({'enabled': False}) is None

    def test_enabled(self):
        smoother = create_smoother({'enabled': True, 'history_size': 5})
        assert isinstance(smoother, PitchSmoother)
        assert smoother.history_size == 5
