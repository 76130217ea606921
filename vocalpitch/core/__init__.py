"""
Core module containing data models, audio sources, and the detection engine.

Uses lazy imports for modules with heavy dependencies (librosa, scipy).
"""

# Models are lightweight - import directly
from vocalpitch.core.models import (
    DetectionMethod,
    EngineState,
    RejectionReason,
    PeakCandidate,
    FundamentalCandidate,
    StabilityState,
    PitchReading,
    LevelReading,
    TrackedPitch,
    TrackingSummary,
    TrackingResult,
    validate_cents,
)

__all__ = [
    # Models (always available)
    "DetectionMethod",
    "EngineState",
    "RejectionReason",
    "PeakCandidate",
    "FundamentalCandidate",
    "StabilityState",
    "PitchReading",
    "LevelReading",
    "TrackedPitch",
    "TrackingSummary",
    "TrackingResult",
    "validate_cents",
    # Heavy modules (lazy loaded)
    "AudioLoader",
    "LoadedAudio",
    "create_audio_loader",
    "AudioFrameSource",
    "ArrayFrameSource",
    "FileFrameSource",
    "compute_spectrum_db",
    "PitchDetectionEngine",
    "create_pitch_engine",
    "PitchTracker",
    "create_pitch_tracker",
    "RecordingDiagnosticsSink",
    "LoggingDiagnosticsSink",
    "create_result_writer",
]

_LAZY = {
    "AudioLoader": "vocalpitch.core.loader",
    "LoadedAudio": "vocalpitch.core.loader",
    "create_audio_loader": "vocalpitch.core.loader",
    "AudioFrameSource": "vocalpitch.core.source",
    "ArrayFrameSource": "vocalpitch.core.source",
    "FileFrameSource": "vocalpitch.core.source",
    "compute_spectrum_db": "vocalpitch.core.source",
    "PitchDetectionEngine": "vocalpitch.core.engine",
    "create_pitch_engine": "vocalpitch.core.engine",
    "PitchTracker": "vocalpitch.core.tracker",
    "create_pitch_tracker": "vocalpitch.core.tracker",
    "RecordingDiagnosticsSink": "vocalpitch.core.diagnostics",
    "LoggingDiagnosticsSink": "vocalpitch.core.diagnostics",
    "create_result_writer": "vocalpitch.core.result_writer",
}


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    import importlib
    return getattr(importlib.import_module(module_name), name)
