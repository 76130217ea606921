"""Tests for PitchDetectionEngine."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from conftest import (
    SAMPLE_RATE,
    WINDOW_SIZE,
    FakeClock,
    build_spectrum,
    harmonic_tone,
    sine,
)
from vocalpitch.core.diagnostics import RANKING, READING, REJECTION, RecordingDiagnosticsSink
from vocalpitch.core.engine import PitchDetectionEngine, create_pitch_engine, measure_level
from vocalpitch.core.models import DetectionMethod, EngineState, RejectionReason
from vocalpitch.core.source import ArrayFrameSource
from vocalpitch.utils.config import get_default_config
from vocalpitch.utils.errors import NotInitializedError


SHORT_WINDOW = 1024  # only one 150 Hz period (294 lags) in the search range
NO_PEAKS = np.full(SHORT_WINDOW // 2, -200.0)


def short_sine(frequency_hz=150.0, amplitude=0.5):
    return sine(frequency_hz, SAMPLE_RATE, SHORT_WINDOW, amplitude)


def make_engine(samples=None, spectrum=None, clock=None, **kwargs):
    if samples is None:
        samples = np.zeros(WINDOW_SIZE)
    source = ArrayFrameSource(samples, SAMPLE_RATE, spectrum_db=spectrum)
    return PitchDetectionEngine(source, clock=clock or FakeClock(1000), **kwargs)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:

    def test_created_stopped(self):
        engine = make_engine()
        assert engine.state is EngineState.STOPPED
        assert engine.level is None

    def test_start_requires_ready_source(self):
        source = ArrayFrameSource(np.zeros(WINDOW_SIZE), SAMPLE_RATE, ready=False)
        engine = PitchDetectionEngine(source)

        with pytest.raises(NotInitializedError):
            engine.start()
        assert engine.state is EngineState.STOPPED

    def test_start_and_stop(self):
        engine = make_engine()
        engine.start()
        assert engine.state is EngineState.ACTIVE

        engine.stop()
        assert engine.state is EngineState.STOPPED

    def test_stop_twice_is_safe(self):
        engine = make_engine()
        engine.start()
        engine.stop()
        engine.stop()
        assert engine.state is EngineState.STOPPED

    def test_stop_before_start_is_safe(self):
        engine = make_engine()
        engine.stop()
        assert engine.state is EngineState.STOPPED

    def test_detect_while_stopped_has_no_side_effects(self):
        source = MagicMock()
        engine = PitchDetectionEngine(source, clock=FakeClock())

        assert engine.detect_pitch() is None
        assert engine.detect_pitch() is None
        source.fill_time_domain.assert_not_called()
        source.fill_frequency_domain_db.assert_not_called()
        assert engine.stability_state.is_empty

    def test_context_manager(self, a3_spectrum):
        engine = make_engine(spectrum=a3_spectrum)
        with engine as active:
            assert active.state is EngineState.ACTIVE
            assert active.detect_pitch() is not None
        assert engine.state is EngineState.STOPPED
        assert engine.level is None

    def test_detector_versions(self):
        versions = make_engine().detector_versions
        assert set(versions) == {
            'engine', 'spectral_peaks', 'fundamental_selector', 'autocorrelation', 'pitch_mapper'
        }


# ---------------------------------------------------------------------------
# Spectral path
# ---------------------------------------------------------------------------


class TestSpectralPath:

    def test_harmonic_a3(self, a3_spectrum):
        with make_engine(spectrum=a3_spectrum) as engine:
            reading = engine.detect_pitch()

        assert reading.method is DetectionMethod.FFT
        assert reading.frequency_hz == pytest.approx(220.0, abs=0.5)
        assert reading.note_name == "A3"
        assert abs(reading.cents_offset) <= 5
        assert reading.confidence == pytest.approx(-40.0, abs=0.5)

    def test_updates_stability(self, a3_spectrum):
        clock = FakeClock(2500)
        with make_engine(spectrum=a3_spectrum, clock=clock) as engine:
            reading = engine.detect_pitch()

            state = engine.stability_state
            assert state.last_frequency_hz == pytest.approx(reading.frequency_hz)
            assert state.last_timestamp_ms == 2500

    def test_loud_peak_outside_vocal_band_rejected(self):
        spectrum = build_spectrum([(3000.0, 0.0)])
        with make_engine(spectrum=spectrum) as engine:
            assert engine.detect_pitch() is None

    def test_in_band_peaks_outside_vocal_range_rejected(self):
        sink = RecordingDiagnosticsSink()
        spectrum = build_spectrum([(1200.0, -10.0), (1700.0, -20.0)])

        with make_engine(spectrum=spectrum) as engine:
            engine.enable_diagnostics(sink)
            assert engine.detect_pitch() is None

        assert RejectionReason.OUTSIDE_VOCAL_RANGE in sink.rejection_reasons
        assert engine.stability_state.is_empty

    def test_stability_prefers_previous_pitch(self):
        spectrum = build_spectrum([(221.0, -40.0), (500.0, -20.0)])
        clock = FakeClock(1200)

        with make_engine(spectrum=spectrum, clock=clock) as engine:
            engine.stability.update(220.0, 1000)
            reading = engine.detect_pitch()

        assert reading.frequency_hz == pytest.approx(221.0, abs=0.5)

    def test_stale_stability_ignored(self):
        spectrum = build_spectrum([(221.0, -40.0), (500.0, -20.0)])
        clock = FakeClock(1600)

        with make_engine(spectrum=spectrum, clock=clock) as engine:
            engine.stability.update(220.0, 1000)
            reading = engine.detect_pitch()

        assert reading.frequency_hz == pytest.approx(500.0, abs=0.5)

    def test_computed_spectrum_of_harmonic_tone(self):
        source = ArrayFrameSource(harmonic_tone(220.0), SAMPLE_RATE)

        with PitchDetectionEngine(source, clock=FakeClock()) as engine:
            reading = engine.detect_pitch()

        assert reading.method is DetectionMethod.FFT
        assert reading.note_name == "A3"
        assert reading.frequency_hz == pytest.approx(220.0, abs=0.7)


# ---------------------------------------------------------------------------
# Fallback path
# ---------------------------------------------------------------------------


class TestFallbackPath:

    def test_sine_without_spectral_peaks(self):
        with make_engine(samples=short_sine(), spectrum=NO_PEAKS) as engine:
            reading = engine.detect_pitch()

        assert reading.method is DetectionMethod.AUTOCORRELATION_FALLBACK
        assert reading.frequency_hz == pytest.approx(150.0, rel=0.02)
        assert reading.note_name == "D3"
        assert 0.0 <= reading.confidence <= 1.0

    def test_fallback_does_not_update_stability(self):
        with make_engine(samples=short_sine(), spectrum=NO_PEAKS) as engine:
            assert engine.detect_pitch() is not None
            assert engine.stability_state.is_empty

    def test_fallback_outside_acceptance_band(self):
        sink = RecordingDiagnosticsSink()
        engine = make_engine(samples=short_sine(), spectrum=NO_PEAKS, accept_min_hz=200.0)

        with engine:
            engine.enable_diagnostics(sink)
            assert engine.detect_pitch() is None

        assert sink.rejection_reasons[-1] is RejectionReason.FALLBACK_OUT_OF_RANGE

    def test_silence_returns_none_after_both_paths(self, silent_window):
        sink = RecordingDiagnosticsSink()
        with make_engine(samples=silent_window) as engine:
            engine.enable_diagnostics(sink)
            assert engine.detect_pitch() is None

        assert sink.rejection_reasons == [
            RejectionReason.SIGNAL_TOO_QUIET,
            RejectionReason.SILENCE,
        ]


# ---------------------------------------------------------------------------
# Level metering
# ---------------------------------------------------------------------------


class TestLevel:

    def test_measure_level(self):
        level = measure_level(sine(150.0, amplitude=0.5))
        assert level.rms == pytest.approx(0.3536, abs=1e-3)
        assert level.volume == pytest.approx(70.7, abs=0.2)
        assert not level.is_clipping

    def test_clipping_and_volume_cap(self):
        level = measure_level(sine(150.0, amplitude=1.0))
        assert level.is_clipping
        assert level.volume == 100.0

    def test_level_updated_per_call(self):
        with make_engine(samples=short_sine(), spectrum=NO_PEAKS) as engine:
            assert engine.level is None
            engine.detect_pitch()
            assert engine.level.volume == pytest.approx(70.7, abs=0.2)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class TestDiagnostics:

    def test_ranking_and_reading_events(self, a3_spectrum):
        sink = RecordingDiagnosticsSink()
        with make_engine(spectrum=a3_spectrum) as engine:
            engine.enable_diagnostics(sink)
            engine.detect_pitch()

        ranking = sink.of_kind(RANKING)[0]
        assert ranking.candidates[0].harmonic_support_count == 3
        assert ranking.data['policy'] == "harmonic"
        assert sink.of_kind(READING)[0].data['note_name'] == "A3"
        assert sink.of_kind(REJECTION) == []

    def test_disable(self, silent_window):
        sink = RecordingDiagnosticsSink()
        with make_engine(samples=silent_window) as engine:
            engine.enable_diagnostics(sink)
            engine.disable_diagnostics()
            engine.detect_pitch()
        assert sink.events == []

    def test_failing_sink_does_not_change_result(self, a3_spectrum):
        sink = MagicMock()
        sink.record.side_effect = RuntimeError("sink down")

        with make_engine(spectrum=a3_spectrum) as engine:
            engine.enable_diagnostics(sink)
            reading = engine.detect_pitch()

        assert reading.note_name == "A3"
        assert sink.record.called


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestFactory:

    def test_uses_configuration(self):
        config = get_default_config()
        config['detection']['vocal_max_hz'] = 600.0
        config['autocorrelation']['accept_min_hz'] = 70.0
        config['pitch']['a4_hz'] = 442.0

        engine = create_pitch_engine(ArrayFrameSource(np.zeros(64), 8000), config)

        assert engine.selector.vocal_max_hz == 600.0
        assert engine.accept_min_hz == 70.0
        assert engine.mapper.a4_hz == 442.0

    def test_defaults_without_config(self):
        engine = create_pitch_engine(ArrayFrameSource(np.zeros(64), 8000))
        assert engine.accept_min_hz == 50.0
        assert engine.accept_max_hz == 2000.0
        assert engine.stability.window_ms == 500

    def test_independent_engines_do_not_share_state(self, a3_spectrum):
        first = make_engine(spectrum=a3_spectrum)
        second = make_engine(spectrum=a3_spectrum)

        with first:
            first.detect_pitch()

        assert not first.stability_state.is_empty
        assert second.stability_state.is_empty
        assert first.engine_id != second.engine_id
