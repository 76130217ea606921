"""
Time-domain fallback detector.

Searches for the lag that minimises the squared difference between the
first half of the window and a shifted copy of it. Only used when the
spectral path yields nothing.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from vocalpitch.core.models import RejectionReason
from vocalpitch.detectors.base import BaseDetector
from vocalpitch.detectors.interpolation import parabolic_offset


RMS_THRESHOLD: float = 0.003
SEARCH_MIN_HZ: float = 50.0
SEARCH_MAX_HZ: float = 2000.0
MIN_LAG: int = 4
COARSE_STRIDE_LAG: int = 50


@dataclass(frozen=True)
class AutocorrelationResult:
    """
    Fallback outcome. ``frequency_hz`` is -1 when nothing was found.
    """

    frequency_hz: float
    rms: float
    lag: Optional[float] = None
    clarity: float = 0.0
    rejection_reason: Optional[RejectionReason] = None

    @property
    def found(self) -> bool:
        return self.frequency_hz > 0


def compute_rms(samples: np.ndarray) -> float:
    """Root-mean-square amplitude of a window."""
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples * samples)))


class AutocorrelationDetector(BaseDetector):
    """
    Squared-difference period detector.

    Lags at or beyond ``coarse_stride_lag`` sum every other sample:
    long lags are low frequencies, where a sample of period error
    matters little.
    """

    def __init__(
        self,
        rms_threshold: float = RMS_THRESHOLD,
        min_frequency_hz: float = SEARCH_MIN_HZ,
        max_frequency_hz: float = SEARCH_MAX_HZ,
        coarse_stride_lag: int = COARSE_STRIDE_LAG,
    ):
        super().__init__("autocorrelation", "1.0.0")
        self.rms_threshold = float(rms_threshold)
        self.min_frequency_hz = float(min_frequency_hz)
        self.max_frequency_hz = float(max_frequency_hz)
        self.coarse_stride_lag = int(coarse_stride_lag)

    def lag_bounds(self, sample_rate: float, window_length: int) -> tuple:
        """Half-open lag range [min_lag, max_lag) searched for a window."""
        min_lag = max(int(math.floor(sample_rate / self.max_frequency_hz)), MIN_LAG)
        max_lag = min(int(math.floor(sample_rate / self.min_frequency_hz)), window_length // 2)
        return min_lag, max_lag

    def difference_function(
        self,
        samples: np.ndarray,
        min_lag: int,
        max_lag: int,
    ) -> np.ndarray:
        """
        Squared difference per lag over the first half of the window.

        Entries below ``min_lag`` are +inf so the array can be indexed
        by lag directly.
        """
        samples = np.asarray(samples, dtype=np.float64)
        half = (samples.shape[0] + 1) // 2  # indices i < length / 2
        differences = np.full(max(max_lag, 0), np.inf)

        fine = np.arange(0, half)
        coarse = np.arange(0, half, 2)
        for lag in range(min_lag, max_lag):
            idx = fine if lag < self.coarse_stride_lag else coarse
            diff = samples[idx] - samples[idx + lag]
            differences[lag] = float(np.dot(diff, diff))

        return differences

    def detect(self, samples: np.ndarray, sample_rate: float) -> AutocorrelationResult:
        """
        Estimate the fundamental of a time-domain window.

        Args:
            samples: Time-domain window
            sample_rate: Sample rate in Hz

        Returns:
            AutocorrelationResult: frequency_hz == -1 for silence or no period
        """
        samples = np.asarray(samples, dtype=np.float64)
        rms = compute_rms(samples)

        if rms < self.rms_threshold:
            return AutocorrelationResult(
                frequency_hz=-1.0, rms=rms, rejection_reason=RejectionReason.SILENCE
            )

        min_lag, max_lag = self.lag_bounds(sample_rate, samples.shape[0])
        if max_lag - min_lag < 1:
            self.logger.debug(f"Window too short for lag search ({samples.shape[0]} samples)")
            return AutocorrelationResult(
                frequency_hz=-1.0, rms=rms, rejection_reason=RejectionReason.DEGENERATE_LAG
            )

        differences = self.difference_function(samples, min_lag, max_lag)
        searched = differences[min_lag:max_lag]
        best_lag = min_lag + int(np.argmin(searched))

        refined_lag = float(best_lag)
        if min_lag < best_lag < max_lag - 1:
            delta = parabolic_offset(
                differences[best_lag - 1],
                differences[best_lag],
                differences[best_lag + 1],
            )
            if delta is not None:
                refined_lag = best_lag + delta

        if not math.isfinite(refined_lag) or refined_lag <= 0:
            return AutocorrelationResult(
                frequency_hz=-1.0, rms=rms, rejection_reason=RejectionReason.DEGENERATE_LAG
            )

        mean_difference = float(np.mean(searched))
        clarity = 0.0
        if mean_difference > 0:
            clarity = float(np.clip(1.0 - differences[best_lag] / mean_difference, 0.0, 1.0))

        return AutocorrelationResult(
            frequency_hz=sample_rate / refined_lag,
            rms=rms,
            lag=refined_lag,
            clarity=clarity,
        )


def create_autocorrelation_detector(
    config: Optional[Dict[str, Any]] = None,
) -> AutocorrelationDetector:
    """
    Factory function to create an AutocorrelationDetector from the
    ``autocorrelation`` configuration section.
    """
    if config is None:
        config = {}

    return AutocorrelationDetector(
        rms_threshold=config.get('rms_threshold', RMS_THRESHOLD),
        coarse_stride_lag=config.get('coarse_stride_lag', COARSE_STRIDE_LAG),
    )
