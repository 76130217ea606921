"""
Core data models for the vocal pitch detection engine.

Candidates and readings are immutable. The only mutable state lives in
the engine instance (buffers, lifecycle) and in the StabilityTracker.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DetectionMethod(str, Enum):
    """Which analysis path produced a reading."""

    FFT = "fft"
    AUTOCORRELATION_FALLBACK = "autocorrelation-fallback"


class EngineState(str, Enum):
    """Engine lifecycle."""

    STOPPED = "stopped"
    ACTIVE = "active"


class RejectionReason(str, Enum):
    """Why a detection stage produced no frequency."""

    SIGNAL_TOO_QUIET = "signal too quiet"
    OUTSIDE_VOCAL_RANGE = "peaks outside vocal range"
    SILENCE = "silence"
    DEGENERATE_LAG = "degenerate lag"
    FALLBACK_OUT_OF_RANGE = "fallback frequency out of range"
    UNMAPPABLE_FREQUENCY = "frequency cannot be mapped to a note"


@dataclass(frozen=True)
class PeakCandidate:
    """A local maximum of the magnitude spectrum."""

    bin_index: int
    frequency_hz: float
    magnitude_db: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bin_index': self.bin_index,
            'frequency_hz': self.frequency_hz,
            'magnitude_db': self.magnitude_db,
        }


@dataclass(frozen=True)
class FundamentalCandidate:
    """
    A peak scored as a possible fundamental.

    ``score`` is always derived from the other fields, see
    ``vocalpitch.detectors.fundamental.score_candidate``.
    """

    peak: PeakCandidate
    harmonic_support_count: int
    in_preferred_range: bool
    stability_bonus: float
    score: float
    matched_harmonics: Tuple[int, ...] = ()

    @property
    def bin_index(self) -> int:
        return self.peak.bin_index

    @property
    def frequency_hz(self) -> float:
        return self.peak.frequency_hz

    @property
    def magnitude_db(self) -> float:
        return self.peak.magnitude_db

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.peak.to_dict(),
            'harmonic_support_count': self.harmonic_support_count,
            'matched_harmonics': list(self.matched_harmonics),
            'in_preferred_range': self.in_preferred_range,
            'stability_bonus': self.stability_bonus,
            'score': self.score,
        }


@dataclass(frozen=True)
class StabilityState:
    """Last accepted frequency and when it was accepted."""

    last_frequency_hz: Optional[float] = None
    last_timestamp_ms: int = 0

    @property
    def is_empty(self) -> bool:
        return self.last_frequency_hz is None


@dataclass(frozen=True)
class PitchReading:
    """
    One detected pitch.

    ``confidence`` depends on the method: for FFT readings it is the
    magnitude of the selected spectral peak in dB, for autocorrelation
    readings it is the periodicity clarity in [0, 1].
    """

    frequency_hz: float
    note_name: str
    cents_offset: int
    method: DetectionMethod
    confidence: float

    def __post_init__(self) -> None:
        """Validate fields."""
        if not self.frequency_hz > 0:
            raise ValueError(f"Frequency must be positive, got {self.frequency_hz}")
        validate_cents(self.cents_offset)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'frequency_hz': self.frequency_hz,
            'note_name': self.note_name,
            'cents_offset': self.cents_offset,
            'method': self.method.value,
            'confidence': self.confidence,
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


@dataclass(frozen=True)
class LevelReading:
    """Input level of the most recent window."""

    rms: float
    volume: float  # [0, 100]
    is_clipping: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rms': self.rms,
            'volume': self.volume,
            'is_clipping': self.is_clipping,
        }


@dataclass(frozen=True)
class TrackedPitch:
    """A reading (or its absence) at one position of a tracked recording."""

    time_s: float
    reading: Optional[PitchReading]
    level: Optional[LevelReading] = None

    @property
    def is_voiced(self) -> bool:
        return self.reading is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'time_s': self.time_s,
            'reading': self.reading.to_dict() if self.reading else None,
            'level': self.level.to_dict() if self.level else None,
        }


@dataclass
class TrackingSummary:
    """Aggregate view over a tracked recording."""

    total_frames: int
    voiced_frames: int
    median_frequency_hz: Optional[float]
    most_common_note: Optional[str]
    method_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def voiced_ratio(self) -> float:
        if self.total_frames == 0:
            return 0.0
        return self.voiced_frames / self.total_frames

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_frames': self.total_frames,
            'voiced_frames': self.voiced_frames,
            'voiced_ratio': self.voiced_ratio,
            'median_frequency_hz': self.median_frequency_hz,
            'most_common_note': self.most_common_note,
            'method_counts': dict(self.method_counts),
        }

    def get_summary(self) -> str:
        """Get human-readable summary."""
        parts = [f"Voiced: {self.voiced_frames}/{self.total_frames} ({self.voiced_ratio:.0%})"]
        if self.median_frequency_hz is not None:
            parts.append(f"Median: {self.median_frequency_hz:.1f} Hz")
        if self.most_common_note:
            parts.append(f"Note: {self.most_common_note}")
        return " | ".join(parts)


@dataclass
class TrackingResult:
    """Readings for a whole recording plus its summary."""

    source_name: str
    sample_rate: float
    window_size: int
    hop_size: int
    frames: List[TrackedPitch]
    summary: TrackingSummary
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'source_name': self.source_name,
            'sample_rate': self.sample_rate,
            'window_size': self.window_size,
            'hop_size': self.hop_size,
            'processing_time': self.processing_time,
            'summary': self.summary.to_dict(),
            'frames': [frame.to_dict() for frame in self.frames],
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)


def validate_cents(cents: int) -> None:
    """Validate a cents offset lies within half a semitone."""
    if not (-50 <= cents <= 50):
        raise ValueError(f"Cents offset must be in [-50, 50], got {cents}")
