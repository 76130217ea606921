"""
Custom exceptions for the vocal pitch detection engine.

Only caller errors and I/O failures are exceptions. Silence, quiet
input and out-of-range peaks are normal outcomes and are reported as
"no reading", never raised.
"""

from typing import Optional, Any


class PitchDetectionError(Exception):
    """Base exception for all pitch detection errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NotInitializedError(PitchDetectionError):
    """Raised when the engine is started before its audio source is ready."""

    def __init__(self, message: str, source_name: Optional[str] = None):
        super().__init__(message, details={"source": source_name})
        self.source_name = source_name


class AudioLoadError(PitchDetectionError):
    """Raised when an audio file cannot be loaded."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class UnsupportedFormatError(AudioLoadError):
    """Raised when the audio format is not supported."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format
        self.details = {"format": format}


class FileTooLargeError(AudioLoadError):
    """Raised when an audio file exceeds the size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {"file_size": file_size, "max_size": max_size}


class DetectorError(PitchDetectionError):
    """Raised when a detector is constructed with unusable parameters."""

    def __init__(
        self,
        message: str,
        detector_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.detector_name = detector_name
        self.original_error = original_error
        self.details = {
            "detector_name": detector_name,
            "original_error": str(original_error) if original_error else None,
        }


class ConfigurationError(PitchDetectionError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}
