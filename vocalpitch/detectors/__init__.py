"""
Detection stages composed by the engine.
"""

from vocalpitch.detectors.autocorrelation import (
    AutocorrelationDetector,
    AutocorrelationResult,
    create_autocorrelation_detector,
)
from vocalpitch.detectors.base import BaseDetector, Detector
from vocalpitch.detectors.fundamental import (
    FundamentalSelector,
    SelectionResult,
    create_fundamental_selector,
    score_candidate,
)
from vocalpitch.detectors.interpolation import parabolic_offset, refine_bin_frequency
from vocalpitch.detectors.pitch_mapper import PitchMapper, create_pitch_mapper, parse_note
from vocalpitch.detectors.smoothing import PitchSmoother, create_smoother
from vocalpitch.detectors.spectral import SpectralPeakFinder, create_peak_finder
from vocalpitch.detectors.stability import StabilityTracker, stability_bonus

__all__ = [
    "AutocorrelationDetector",
    "AutocorrelationResult",
    "create_autocorrelation_detector",
    "BaseDetector",
    "Detector",
    "FundamentalSelector",
    "SelectionResult",
    "create_fundamental_selector",
    "score_candidate",
    "parabolic_offset",
    "refine_bin_frequency",
    "PitchMapper",
    "create_pitch_mapper",
    "parse_note",
    "PitchSmoother",
    "create_smoother",
    "SpectralPeakFinder",
    "create_peak_finder",
    "StabilityTracker",
    "stability_bonus",
]
