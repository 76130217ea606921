"""Tests for diagnostics sinks."""

import logging

from conftest import peak
from vocalpitch.core.diagnostics import (
    RANKING,
    REJECTION,
    DiagnosticEvent,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    RecordingDiagnosticsSink,
)
from vocalpitch.core.models import FundamentalCandidate, RejectionReason
from vocalpitch.utils.logging import create_logger_with_context


def candidate(frequency_hz=220.0, score=42.0):
    return FundamentalCandidate(
        peak=peak(frequency_hz, -40.0),
        harmonic_support_count=2,
        in_preferred_range=True,
        stability_bonus=0.0,
        score=score,
        matched_harmonics=(2, 3),
    )


class TestDiagnosticEvent:

    def test_to_dict(self):
        event = DiagnosticEvent(
            kind=REJECTION,
            stage="spectral",
            reason=RejectionReason.SIGNAL_TOO_QUIET,
        )
        data = event.to_dict()
        assert data['reason'] == "signal too quiet"
        assert data['candidates'] == []

    def test_candidates_serialised(self):
        event = DiagnosticEvent(kind=RANKING, stage="spectral", candidates=(candidate(),))
        serialised = event.to_dict()['candidates'][0]
        assert serialised['frequency_hz'] == 220.0
        assert serialised['matched_harmonics'] == [2, 3]


class TestRecordingDiagnosticsSink:

    def test_records_in_order(self):
        sink = RecordingDiagnosticsSink()
        sink.record(DiagnosticEvent(kind=RANKING, stage="spectral"))
        sink.record(DiagnosticEvent(
            kind=REJECTION, stage="fallback", reason=RejectionReason.SILENCE
        ))

        assert [e.kind for e in sink.events] == [RANKING, REJECTION]
        assert sink.rejection_reasons == [RejectionReason.SILENCE]
        assert len(sink.of_kind(RANKING)) == 1

        sink.clear()
        assert sink.events == []

    def test_satisfies_protocol(self):
        assert isinstance(RecordingDiagnosticsSink(), DiagnosticsSink)
        assert isinstance(LoggingDiagnosticsSink(), DiagnosticsSink)


class TestLoggingDiagnosticsSink:

    def test_logs_rejection(self, caplog):
        sink = LoggingDiagnosticsSink()
        with caplog.at_level(logging.DEBUG, logger="engine.diagnostics"):
            sink.record(DiagnosticEvent(
                kind=REJECTION,
                stage="spectral",
                reason=RejectionReason.OUTSIDE_VOCAL_RANGE,
                message="All 2 peaks outside vocal range",
            ))

        record = caplog.records[-1]
        assert "peaks outside vocal range" in record.getMessage()
        assert record.diagnostic['stage'] == "spectral"

    def test_logs_ranking_with_context(self, caplog):
        adapter = create_logger_with_context("engine", {"engine_id": "mic-1"})
        sink = LoggingDiagnosticsSink(adapter, level=logging.INFO)

        with caplog.at_level(logging.INFO, logger="engine"):
            sink.record(DiagnosticEvent(
                kind=RANKING, stage="spectral", candidates=(candidate(), candidate(440.0, 20.0))
            ))

        record = caplog.records[-1]
        assert record.engine_id == "mic-1"
        assert "220.0Hz=42.0" in record.getMessage()
