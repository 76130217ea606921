"""Tests for the exception hierarchy."""

import pytest

from vocalpitch.utils.errors import (
    AudioLoadError,
    ConfigurationError,
    DetectorError,
    FileTooLargeError,
    NotInitializedError,
    PitchDetectionError,
    UnsupportedFormatError,
)


def test_str_includes_details():
    error = AudioLoadError("Cannot decode", file_path="take.wav")
    assert str(error) == "Cannot decode (Details: {'file_path': 'take.wav'})"


def test_str_without_details():
    assert str(PitchDetectionError("Broken")) == "Broken"


@pytest.mark.parametrize("error", [
    NotInitializedError("not ready", source_name="mic"),
    AudioLoadError("load"),
    UnsupportedFormatError("format", format=".xyz"),
    FileTooLargeError("big", file_size=10, max_size=5),
    DetectorError("bad", detector_name="autocorrelation"),
    ConfigurationError("config", config_key="pitch.a4_hz"),
])
def test_all_errors_share_base(error):
    assert isinstance(error, PitchDetectionError)


def test_loader_errors_are_load_errors():
    assert issubclass(UnsupportedFormatError, AudioLoadError)
    assert issubclass(FileTooLargeError, AudioLoadError)


def test_detector_error_keeps_cause():
    cause = ValueError("window too short")
    error = DetectorError("bad", detector_name="spectral", original_error=cause)
    assert error.original_error is cause
    assert error.details['original_error'] == "window too short"
