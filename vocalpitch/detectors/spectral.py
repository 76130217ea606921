"""
Spectral peak finder for the vocal pitch detection engine.

Scans a dB magnitude spectrum for discrete local maxima above a noise
floor inside the plausible fundamental band.
"""

import math
from typing import Any, Dict, List, Optional

import numpy as np

from vocalpitch.core.models import PeakCandidate
from vocalpitch.detectors.base import BaseDetector
from vocalpitch.utils.errors import DetectorError


MIN_FREQUENCY_HZ: float = 50.0
MAX_FREQUENCY_HZ: float = 2000.0
NOISE_FLOOR_DB: float = -120.0


def frequency_to_bin(frequency_hz: float, sample_rate: float, spectrum_length: int) -> int:
    """Nearest bin for a frequency (halves round up)."""
    nyquist = sample_rate / 2.0
    return int(math.floor(frequency_hz / nyquist * spectrum_length + 0.5))


class SpectralPeakFinder(BaseDetector):
    """
    Finds local maxima of a magnitude spectrum.

    A bin is a peak when it is strictly louder than both neighbours and
    above the noise floor. The first and last bin of the band, and of
    the buffer, are never peaks.
    """

    def __init__(
        self,
        min_frequency_hz: float = MIN_FREQUENCY_HZ,
        max_frequency_hz: float = MAX_FREQUENCY_HZ,
        noise_floor_db: float = NOISE_FLOOR_DB,
    ):
        super().__init__("spectral_peaks", "1.0.0")
        if min_frequency_hz >= max_frequency_hz:
            raise DetectorError(
                f"Empty band: {min_frequency_hz}-{max_frequency_hz} Hz",
                detector_name=self.name,
            )
        self.min_frequency_hz = float(min_frequency_hz)
        self.max_frequency_hz = float(max_frequency_hz)
        self.noise_floor_db = float(noise_floor_db)

    def find_peaks(self, spectrum: np.ndarray, sample_rate: float) -> List[PeakCandidate]:
        """
        Find peaks inside the configured band.

        Args:
            spectrum: Magnitude spectrum in dB, length = window size / 2
            sample_rate: Sample rate in Hz

        Returns:
            List[PeakCandidate]: Peaks in ascending bin order (may be empty)
        """
        spectrum = np.asarray(spectrum, dtype=np.float64)
        length = spectrum.shape[0]
        if length < 3:
            return []

        min_bin = frequency_to_bin(self.min_frequency_hz, sample_rate, length)
        max_bin = frequency_to_bin(self.max_frequency_hz, sample_rate, length)

        start = max(min_bin + 1, 1)
        stop = min(max_bin - 1, length - 1)
        if start >= stop:
            return []

        center = spectrum[start:stop]
        left = spectrum[start - 1:stop - 1]
        right = spectrum[start + 1:stop + 1]
        is_peak = (center > self.noise_floor_db) & (center > left) & (center > right)

        nyquist = sample_rate / 2.0
        peaks = [
            PeakCandidate(
                bin_index=int(bin_index),
                frequency_hz=float(bin_index) * nyquist / length,
                magnitude_db=float(spectrum[bin_index]),
            )
            for bin_index in np.flatnonzero(is_peak) + start
        ]

        self.logger.debug(f"{len(peaks)} peaks in bins {start}-{stop - 1}")
        return peaks


def create_peak_finder(config: Optional[Dict[str, Any]] = None) -> SpectralPeakFinder:
    """
    Factory function to create a SpectralPeakFinder from the
    ``detection`` configuration section.
    """
    if config is None:
        config = {}

    return SpectralPeakFinder(
        min_frequency_hz=config.get('min_frequency_hz', MIN_FREQUENCY_HZ),
        max_frequency_hz=config.get('max_frequency_hz', MAX_FREQUENCY_HZ),
        noise_floor_db=config.get('noise_floor_db', NOISE_FLOOR_DB),
    )
