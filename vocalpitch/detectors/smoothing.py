"""
Median smoothing of successive readings.

Applied by the polling loop, never inside the engine: the engine's
readings stay raw so that stability scoring sees what was detected.
"""

from collections import deque
from typing import Any, Dict, Optional

import numpy as np

from vocalpitch.detectors.base import BaseDetector


HISTORY_SIZE: int = 3

OCTAVE_UP = (1.9, 2.1)
OCTAVE_DOWN = (0.48, 0.52)
MAX_JUMP_RATIO: float = 2.5
MIN_JUMP_RATIO: float = 0.4
CONSISTENT_SPREAD: float = 1.05


class PitchSmoother(BaseDetector):
    """
    Median filter with octave-jump rejection.

    A sudden octave jump is usually a detector error, so it is replaced
    by the running median, unless the history is full and flat, in which
    case the singer probably really changed octave and history restarts.
    """

    def __init__(self, history_size: int = HISTORY_SIZE):
        super().__init__("smoother", "1.0.0")
        self.history_size = int(history_size)
        self._history: deque = deque(maxlen=self.history_size)

    def _median(self) -> float:
        # Upper median, matching an index-based pick on even counts
        ordered = sorted(self._history)
        return float(ordered[len(ordered) // 2])

    def smooth(self, frequency_hz: float) -> float:
        """Feed one frequency, return the smoothed value."""
        if self._history:
            median = self._median()
            ratio = frequency_hz / median

            is_octave_jump = (
                OCTAVE_UP[0] < ratio < OCTAVE_UP[1]
                or OCTAVE_DOWN[0] < ratio < OCTAVE_DOWN[1]
            )
            if is_octave_jump:
                if len(self._history) >= self.history_size:
                    spread = max(self._history) / min(self._history)
                    if spread < CONSISTENT_SPREAD:
                        self.logger.debug(f"Octave change accepted: {median:.1f}Hz -> {frequency_hz:.1f}Hz")
                        self._history.clear()
                        self._history.append(frequency_hz)
                        return frequency_hz
                return median

            if ratio > MAX_JUMP_RATIO or ratio < MIN_JUMP_RATIO:
                return median

        self._history.append(frequency_hz)
        return self._median()

    @property
    def history(self) -> np.ndarray:
        return np.array(self._history, dtype=np.float64)

    def reset(self) -> None:
        self._history.clear()


def create_smoother(config: Optional[Dict[str, Any]] = None) -> Optional[PitchSmoother]:
    """
    Factory function for the ``smoothing`` section. Returns None when
    smoothing is disabled.
    """
    if config is None:
        config = {}

    if not config.get('enabled', False):
        return None
    return PitchSmoother(history_size=config.get('history_size', HISTORY_SIZE))
