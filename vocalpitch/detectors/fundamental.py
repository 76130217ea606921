"""
Fundamental selection for the vocal pitch detection engine.

Scores spectral peaks by harmonic support, vocal-range membership,
loudness and continuity with the previous reading, then picks the
fundamental. A louder peak without harmonics or outside the vocal band
(mains hum, a whistle, a stray partial) must not beat a quieter peak
whose harmonic series is present.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from vocalpitch.core.models import (
    FundamentalCandidate,
    PeakCandidate,
    RejectionReason,
    StabilityState,
)
from vocalpitch.detectors.base import BaseDetector
from vocalpitch.detectors.spectral import MAX_FREQUENCY_HZ, NOISE_FLOOR_DB
from vocalpitch.detectors.stability import STABILITY_WINDOW_MS, stability_bonus


VOCAL_MIN_HZ: float = 80.0
VOCAL_MAX_HZ: float = 800.0
HARMONIC_TOLERANCE: float = 0.05
MAX_HARMONIC: int = 5

HARMONIC_WEIGHT: float = 10.0
PREFERRED_RANGE_BONUS: float = 5.0
MAGNITUDE_DIVISOR: float = 10.0


def score_candidate(
    harmonic_support_count: int,
    in_preferred_range: bool,
    magnitude_db: float,
    stability_bonus: float,
    noise_floor_db: float = NOISE_FLOOR_DB,
) -> float:
    """
    Combined candidate score.

    score = harmonics*10 + (5 if in range) + (dB above floor)/10 + stability
    """
    return (
        harmonic_support_count * HARMONIC_WEIGHT
        + (PREFERRED_RANGE_BONUS if in_preferred_range else 0.0)
        + (magnitude_db - noise_floor_db) / MAGNITUDE_DIVISOR
        + stability_bonus
    )


@dataclass
class SelectionResult:
    """Outcome of one selection: the winner, or why there is none."""

    fundamental: Optional[FundamentalCandidate]
    ranked: List[FundamentalCandidate] = field(default_factory=list)
    rejection_reason: Optional[RejectionReason] = None
    rejection_detail: Optional[str] = None
    policy: Optional[str] = None  # "harmonic" or "loudest_in_range"


class FundamentalSelector(BaseDetector):
    """
    Picks the most plausible fundamental among spectral peaks.

    Policy, in order:
    1. best-scoring candidate with harmonic support inside the vocal band
    2. best-scoring candidate inside the vocal band
    3. reject ("peaks outside vocal range")
    Ties keep ascending bin order.
    """

    def __init__(
        self,
        vocal_min_hz: float = VOCAL_MIN_HZ,
        vocal_max_hz: float = VOCAL_MAX_HZ,
        max_frequency_hz: float = MAX_FREQUENCY_HZ,
        harmonic_tolerance: float = HARMONIC_TOLERANCE,
        max_harmonic: int = MAX_HARMONIC,
        noise_floor_db: float = NOISE_FLOOR_DB,
        stability_window_ms: int = STABILITY_WINDOW_MS,
    ):
        super().__init__("fundamental_selector", "1.0.0")
        self.vocal_min_hz = float(vocal_min_hz)
        self.vocal_max_hz = float(vocal_max_hz)
        self.max_frequency_hz = float(max_frequency_hz)
        self.harmonic_tolerance = float(harmonic_tolerance)
        self.max_harmonic = int(max_harmonic)
        self.noise_floor_db = float(noise_floor_db)
        self.stability_window_ms = int(stability_window_ms)

    def harmonic_support(
        self,
        candidate: PeakCandidate,
        peaks: Sequence[PeakCandidate],
    ) -> Tuple[int, ...]:
        """Harmonic numbers (2..max_harmonic) with a matching peak."""
        matched = []
        for harmonic in range(2, self.max_harmonic + 1):
            if candidate.frequency_hz * harmonic > self.max_frequency_hz:
                break
            for peak in peaks:
                ratio = peak.frequency_hz / candidate.frequency_hz
                if abs(ratio - harmonic) < self.harmonic_tolerance:
                    matched.append(harmonic)
                    break
        return tuple(matched)

    def in_preferred_range(self, frequency_hz: float) -> bool:
        return self.vocal_min_hz <= frequency_hz <= self.vocal_max_hz

    def rank(
        self,
        peaks: Sequence[PeakCandidate],
        stability: Optional[StabilityState],
        now_ms: int,
    ) -> List[FundamentalCandidate]:
        """
        Score every peak at or above the vocal floor.

        Returns:
            List[FundamentalCandidate]: Sorted by score, highest first
        """
        state = stability if stability is not None else StabilityState()
        candidates = []

        for peak in sorted(peaks, key=lambda p: p.bin_index):
            if peak.frequency_hz < self.vocal_min_hz:
                continue

            matched = self.harmonic_support(peak, peaks)
            in_range = self.in_preferred_range(peak.frequency_hz)
            bonus = stability_bonus(state, peak.frequency_hz, now_ms, self.stability_window_ms)

            candidates.append(FundamentalCandidate(
                peak=peak,
                harmonic_support_count=len(matched),
                in_preferred_range=in_range,
                stability_bonus=bonus,
                score=score_candidate(
                    len(matched), in_range, peak.magnitude_db, bonus, self.noise_floor_db
                ),
                matched_harmonics=matched,
            ))

        # sorted() is stable: equal scores keep ascending bin order
        return sorted(candidates, key=lambda c: c.score, reverse=True)

    def select(
        self,
        peaks: Sequence[PeakCandidate],
        stability: Optional[StabilityState],
        now_ms: int,
    ) -> SelectionResult:
        """
        Select the fundamental among ``peaks``.

        Args:
            peaks: Spectral peaks (any order)
            stability: Last accepted reading, or None
            now_ms: Current time in milliseconds

        Returns:
            SelectionResult: Winner with ranking, or the rejection reason
        """
        ranked = self.rank(peaks, stability, now_ms)

        for candidate in ranked:
            if candidate.harmonic_support_count >= 1 and candidate.in_preferred_range:
                return SelectionResult(fundamental=candidate, ranked=ranked, policy="harmonic")

        for candidate in ranked:
            if candidate.in_preferred_range:
                self.logger.debug(
                    f"No harmonic support, using loudest in range: "
                    f"{candidate.frequency_hz:.1f}Hz"
                )
                return SelectionResult(
                    fundamental=candidate, ranked=ranked, policy="loudest_in_range"
                )

        return SelectionResult(
            fundamental=None,
            ranked=ranked,
            rejection_reason=RejectionReason.OUTSIDE_VOCAL_RANGE,
            rejection_detail=(
                f"All {len(peaks)} peaks outside vocal range "
                f"({self.vocal_min_hz:g}-{self.vocal_max_hz:g}Hz)"
            ),
        )


def create_fundamental_selector(config: Optional[Dict[str, Any]] = None) -> FundamentalSelector:
    """
    Factory function to create a FundamentalSelector from the
    ``detection`` configuration section.
    """
    if config is None:
        config = {}

    return FundamentalSelector(
        vocal_min_hz=config.get('vocal_min_hz', VOCAL_MIN_HZ),
        vocal_max_hz=config.get('vocal_max_hz', VOCAL_MAX_HZ),
        max_frequency_hz=config.get('max_frequency_hz', MAX_FREQUENCY_HZ),
        harmonic_tolerance=config.get('harmonic_tolerance', HARMONIC_TOLERANCE),
        max_harmonic=config.get('max_harmonic', MAX_HARMONIC),
        noise_floor_db=config.get('noise_floor_db', NOISE_FLOOR_DB),
        stability_window_ms=config.get('stability_window_ms', STABILITY_WINDOW_MS),
    )
