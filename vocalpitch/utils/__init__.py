"""
Utility modules for configuration, logging, and error handling.
"""

from vocalpitch.utils.errors import (
    PitchDetectionError,
    NotInitializedError,
    AudioLoadError,
    UnsupportedFormatError,
    FileTooLargeError,
    DetectorError,
    ConfigurationError,
)
from vocalpitch.utils.logging import (
    get_logger,
    setup_logging,
    JSONFormatter,
    create_logger_with_context,
)
from vocalpitch.utils.config import ConfigManager, load_config, get_default_config

__all__ = [
    "PitchDetectionError",
    "NotInitializedError",
    "AudioLoadError",
    "UnsupportedFormatError",
    "FileTooLargeError",
    "DetectorError",
    "ConfigurationError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "create_logger_with_context",
    "ConfigManager",
    "load_config",
    "get_default_config",
]
