"""Shared fixtures: synthetic spectra, tones and a controllable clock."""

import logging
import math
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Tuple

import numpy as np
import pytest

from vocalpitch.core.loader import LoadedAudio
from vocalpitch.core.models import PeakCandidate


SAMPLE_RATE = 44100
WINDOW_SIZE = 8192          # bin width 44100 / 8192 = 5.383 Hz
BASELINE_DB = -140.0
PEAK_CURVATURE = 6.0        # dB per squared bin away from a synthetic peak


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_spectrum(
    peaks: Iterable[Tuple[float, float]],
    sample_rate: float = SAMPLE_RATE,
    window_size: int = WINDOW_SIZE,
    baseline_db: float = BASELINE_DB,
) -> np.ndarray:
    """
    dB spectrum with one parabolic bump per (frequency, level) pair.

    Each bump is an exact parabola centred on the fractional bin of its
    frequency, so three-point interpolation recovers the frequency.
    """
    length = window_size // 2
    spectrum = np.full(length, baseline_db)
    bin_width = sample_rate / window_size

    for frequency_hz, level_db in peaks:
        centre = frequency_hz / bin_width
        for k in range(int(math.floor(centre)) - 1, int(math.ceil(centre)) + 2):
            if 0 <= k < length:
                value = level_db - PEAK_CURVATURE * (k - centre) ** 2
                spectrum[k] = max(spectrum[k], value)

    return spectrum


def sine(
    frequency_hz: float,
    sample_rate: float = SAMPLE_RATE,
    length: int = WINDOW_SIZE,
    amplitude: float = 0.5,
) -> np.ndarray:
    t = np.arange(length) / sample_rate
    return amplitude * np.sin(2.0 * np.pi * frequency_hz * t)


def harmonic_tone(
    fundamental_hz: float,
    amplitudes=(0.002, 0.001, 0.0005),
    sample_rate: float = SAMPLE_RATE,
    length: int = WINDOW_SIZE,
) -> np.ndarray:
    """Sum of the fundamental and its first harmonics."""
    tone = np.zeros(length)
    for number, amplitude in enumerate(amplitudes, start=1):
        tone += sine(fundamental_hz * number, sample_rate, length, amplitude)
    return tone


def peak(frequency_hz: float, magnitude_db: float, sample_rate: float = SAMPLE_RATE,
         window_size: int = WINDOW_SIZE) -> PeakCandidate:
    """PeakCandidate at the nearest bin of a frequency."""
    bin_width = sample_rate / window_size
    return PeakCandidate(
        bin_index=int(round(frequency_hz / bin_width)),
        frequency_hz=frequency_hz,
        magnitude_db=magnitude_db,
    )


def loaded_audio(samples: np.ndarray, sample_rate: int = SAMPLE_RATE,
                 name: str = "take.wav") -> LoadedAudio:
    return LoadedAudio(
        file_path=Path(name),
        samples=np.asarray(samples, dtype=np.float32),
        sample_rate=sample_rate,
        original_sample_rate=sample_rate,
        original_channels=1,
        original_format="WAV",
    )


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now_ms: int = 0):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock():
    return FakeClock(1000)


@pytest.fixture
def a3_spectrum():
    """220 Hz with harmonics at 440, 660 and 880 Hz."""
    return build_spectrum([(220.0, -40.0), (440.0, -45.0), (660.0, -50.0), (880.0, -55.0)])


@pytest.fixture
def silent_window():
    return np.zeros(WINDOW_SIZE)


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if isinstance(handler, RotatingFileHandler):
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
