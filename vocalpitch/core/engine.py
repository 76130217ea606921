"""
Hybrid pitch detection engine.

Composes the detection stages into one polling contract: each call to
``detect_pitch()`` reads the current window from an AudioFrameSource and
returns a PitchReading, or None when nothing usable was heard.
"""

import itertools
import time
from typing import Any, Callable, Dict, Optional

import numpy as np

from vocalpitch.core.diagnostics import (
    ESCALATION,
    RANKING,
    READING,
    REJECTION,
    DiagnosticEvent,
    DiagnosticsSink,
)
from vocalpitch.core.models import (
    DetectionMethod,
    EngineState,
    LevelReading,
    PitchReading,
    RejectionReason,
    StabilityState,
)
from vocalpitch.core.source import AudioFrameSource
from vocalpitch.detectors.autocorrelation import (
    AutocorrelationDetector,
    compute_rms,
    create_autocorrelation_detector,
)
from vocalpitch.detectors.base import describe_detectors
from vocalpitch.detectors.fundamental import FundamentalSelector, create_fundamental_selector
from vocalpitch.detectors.interpolation import refine_bin_frequency
from vocalpitch.detectors.pitch_mapper import PitchMapper, create_pitch_mapper
from vocalpitch.detectors.spectral import SpectralPeakFinder, create_peak_finder
from vocalpitch.detectors.stability import STABILITY_WINDOW_MS, StabilityTracker
from vocalpitch.utils.errors import NotInitializedError
from vocalpitch.utils.logging import create_logger_with_context


ENGINE_VERSION = "1.0.0"

ACCEPT_MIN_HZ: float = 50.0
ACCEPT_MAX_HZ: float = 2000.0

CLIPPING_LEVEL: float = 0.99
VOLUME_SCALE: float = 200.0

Clock = Callable[[], int]

_engine_ids = itertools.count(1)


def monotonic_ms() -> int:
    """Default engine clock."""
    return int(time.monotonic() * 1000)


def measure_level(samples: np.ndarray) -> LevelReading:
    """RMS, 0-100 volume and clipping flag of a time-domain window."""
    rms = compute_rms(samples)
    peak = float(np.max(np.abs(samples))) if samples.size else 0.0
    return LevelReading(
        rms=rms,
        volume=min(100.0, rms * VOLUME_SCALE),
        is_clipping=peak >= CLIPPING_LEVEL,
    )


class PitchDetectionEngine:
    """
    Spectral-first pitch detector with an autocorrelation fallback.

    Design:
    - Dependency Injection: source, stages and clock are injected
    - Owned buffers: sample and spectrum windows are allocated by
      ``start()``, overwritten on every call and released by ``stop()``
    - Expected-empty outcomes return None, they never raise
    - Only spectral readings update the stability state

    Not thread-safe. Use one engine per input source.
    """

    def __init__(
        self,
        source: AudioFrameSource,
        peak_finder: Optional[SpectralPeakFinder] = None,
        selector: Optional[FundamentalSelector] = None,
        autocorrelator: Optional[AutocorrelationDetector] = None,
        stability: Optional[StabilityTracker] = None,
        mapper: Optional[PitchMapper] = None,
        accept_min_hz: float = ACCEPT_MIN_HZ,
        accept_max_hz: float = ACCEPT_MAX_HZ,
        clock: Optional[Clock] = None,
        engine_id: Optional[str] = None,
    ):
        """
        Initialize a stopped engine.

        Args:
            source: Supplier of time-domain and spectrum windows
            peak_finder: Spectral peak stage
            selector: Fundamental selection stage
            autocorrelator: Time-domain fallback stage
            stability: Stability state owner (one per engine)
            mapper: Frequency to note conversion
            accept_min_hz: Lowest fallback frequency accepted
            accept_max_hz: Highest fallback frequency accepted
            clock: Callable returning the current time in milliseconds
            engine_id: Name carried on every log record
        """
        self.source = source
        self.peak_finder = peak_finder or SpectralPeakFinder()
        self.selector = selector or FundamentalSelector()
        self.autocorrelator = autocorrelator or AutocorrelationDetector()
        self.stability = stability or StabilityTracker(self.selector.stability_window_ms)
        self.mapper = mapper or PitchMapper()
        self.accept_min_hz = float(accept_min_hz)
        self.accept_max_hz = float(accept_max_hz)
        self.clock: Clock = clock or monotonic_ms
        self.engine_id = engine_id or f"engine-{next(_engine_ids)}"

        self.logger = create_logger_with_context('engine', {'engine_id': self.engine_id})

        self._state = EngineState.STOPPED
        self._samples: Optional[np.ndarray] = None
        self._spectrum: Optional[np.ndarray] = None
        self._level: Optional[LevelReading] = None
        self._diagnostics: Optional[DiagnosticsSink] = None

    # Lifecycle

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is EngineState.ACTIVE

    def start(self) -> None:
        """
        Allocate buffers and become Active.

        Raises:
            NotInitializedError: Audio source is not ready
        """
        if self.is_active:
            self.logger.debug("start() while active, ignoring")
            return

        if not self.source.is_ready():
            raise NotInitializedError(
                "Audio source is not ready; start it before the engine",
                source_name=getattr(self.source, 'name', type(self.source).__name__),
            )

        window_size = int(self.source.window_size())
        self._samples = np.zeros(window_size, dtype=np.float64)
        self._spectrum = np.zeros(window_size // 2, dtype=np.float64)
        self._state = EngineState.ACTIVE

        self.logger.info(
            f"Engine started: window {window_size} at {self.source.sample_rate():g} Hz"
        )

    def stop(self) -> None:
        """Release buffers and become Stopped. Safe to call repeatedly."""
        if not self.is_active:
            return

        self._samples = None
        self._spectrum = None
        self._level = None
        self._state = EngineState.STOPPED
        self.logger.info("Engine stopped")

    def __enter__(self) -> "PitchDetectionEngine":
        """Context manager support."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop on context exit."""
        self.stop()

    # Diagnostics

    def enable_diagnostics(self, sink: DiagnosticsSink) -> None:
        self._diagnostics = sink

    def disable_diagnostics(self) -> None:
        self._diagnostics = None

    def _emit(self, event: DiagnosticEvent) -> None:
        sink = self._diagnostics
        if sink is None:
            return
        try:
            sink.record(event)
        except Exception as e:
            # Sink errors never reach the caller
            self.logger.warning(f"Diagnostics sink failed: {e}")

    def _reject(self, stage: str, reason: RejectionReason, message: str = "") -> None:
        self.logger.debug(f"[{stage}] {reason.value}")
        if self._diagnostics is not None:
            self._emit(DiagnosticEvent(kind=REJECTION, stage=stage, reason=reason, message=message))

    # Detection

    @property
    def level(self) -> Optional[LevelReading]:
        """Level of the most recent window, None while stopped."""
        return self._level

    @property
    def stability_state(self) -> StabilityState:
        return self.stability.state

    @property
    def detector_versions(self) -> Dict[str, str]:
        versions = {'engine': ENGINE_VERSION}
        versions.update(describe_detectors(
            self.peak_finder, self.selector, self.autocorrelator, self.mapper
        ))
        return versions

    def detect_pitch(self) -> Optional[PitchReading]:
        """
        Detect the pitch of the current window.

        Returns:
            PitchReading, or None when stopped, silent, or nothing usable
            was found by either path
        """
        if not self.is_active:
            return None

        sample_rate = float(self.source.sample_rate())
        self.source.fill_time_domain(self._samples)
        self._level = measure_level(self._samples)

        reading = self._detect_spectral(sample_rate)
        if reading is not None:
            return reading

        self.logger.debug("Spectral path empty, trying autocorrelation")
        if self._diagnostics is not None:
            self._emit(DiagnosticEvent(kind=ESCALATION, stage="engine"))

        return self._detect_fallback(sample_rate)

    def _detect_spectral(self, sample_rate: float) -> Optional[PitchReading]:
        self.source.fill_frequency_domain_db(self._spectrum)
        now_ms = int(self.clock())

        peaks = self.peak_finder.find_peaks(self._spectrum, sample_rate)
        if not peaks:
            self._reject("spectral", RejectionReason.SIGNAL_TOO_QUIET)
            return None

        selection = self.selector.select(peaks, self.stability.fresh_state(now_ms), now_ms)
        if self._diagnostics is not None:
            self._emit(DiagnosticEvent(
                kind=RANKING,
                stage="spectral",
                candidates=tuple(selection.ranked),
                data={'peak_count': len(peaks), 'policy': selection.policy},
            ))

        fundamental = selection.fundamental
        if fundamental is None:
            self._reject("spectral", selection.rejection_reason, selection.rejection_detail or "")
            return None

        frequency = refine_bin_frequency(self._spectrum, fundamental.bin_index, sample_rate)
        reading = self._build_reading(
            frequency, DetectionMethod.FFT, fundamental.magnitude_db, "spectral"
        )
        if reading is not None:
            self.stability.update(frequency, now_ms)
        return reading

    def _detect_fallback(self, sample_rate: float) -> Optional[PitchReading]:
        result = self.autocorrelator.detect(self._samples, sample_rate)
        if not result.found:
            self._reject("fallback", result.rejection_reason or RejectionReason.DEGENERATE_LAG)
            return None

        if not self.accept_min_hz <= result.frequency_hz <= self.accept_max_hz:
            self._reject(
                "fallback",
                RejectionReason.FALLBACK_OUT_OF_RANGE,
                f"{result.frequency_hz:.1f}Hz",
            )
            return None

        return self._build_reading(
            result.frequency_hz, DetectionMethod.AUTOCORRELATION_FALLBACK, result.clarity, "fallback"
        )

    def _build_reading(
        self,
        frequency_hz: float,
        method: DetectionMethod,
        confidence: float,
        stage: str,
    ) -> Optional[PitchReading]:
        note_name = self.mapper.note_name(frequency_hz)
        cents = self.mapper.cents_offset(frequency_hz)
        if note_name is None or cents is None:
            self._reject(stage, RejectionReason.UNMAPPABLE_FREQUENCY, f"{frequency_hz!r}")
            return None

        reading = PitchReading(
            frequency_hz=float(frequency_hz),
            note_name=note_name,
            cents_offset=cents,
            method=method,
            confidence=float(confidence),
        )
        self.logger.debug(
            f"{method.value}: {frequency_hz:.2f}Hz {note_name} {cents:+d}c"
        )
        if self._diagnostics is not None:
            self._emit(DiagnosticEvent(kind=READING, stage=stage, data=reading.to_dict()))
        return reading


def create_pitch_engine(
    source: AudioFrameSource,
    config: Optional[Dict[str, Any]] = None,
    clock: Optional[Clock] = None,
    engine_id: Optional[str] = None,
) -> PitchDetectionEngine:
    """
    Factory function to create a fully configured engine.

    Args:
        source: Audio frame source
        config: Full configuration dict (see ``get_default_config``)
        clock: Optional millisecond clock
        engine_id: Optional name for log records

    Returns:
        PitchDetectionEngine: Stopped engine
    """
    if config is None:
        config = {}

    detection_config = config.get('detection', {})
    autocorrelation_config = config.get('autocorrelation', {})

    return PitchDetectionEngine(
        source=source,
        peak_finder=create_peak_finder(detection_config),
        selector=create_fundamental_selector(detection_config),
        autocorrelator=create_autocorrelation_detector(autocorrelation_config),
        stability=StabilityTracker(
            detection_config.get('stability_window_ms', STABILITY_WINDOW_MS)
        ),
        mapper=create_pitch_mapper(config.get('pitch', {})),
        accept_min_hz=autocorrelation_config.get('accept_min_hz', ACCEPT_MIN_HZ),
        accept_max_hz=autocorrelation_config.get('accept_max_hz', ACCEPT_MAX_HZ),
        clock=clock,
        engine_id=engine_id,
    )
