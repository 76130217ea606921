"""
Detector base interface for the vocal pitch detection engine.

Every stage of the engine (peak finding, fundamental selection,
autocorrelation, pitch mapping) is a detector: it has a name and a
version that the engine reports alongside its readings.
"""

import logging
from typing import Dict, Protocol, runtime_checkable


@runtime_checkable
class Detector(Protocol):
    """
    Structural protocol for engine stages.

    A class doesn't need to inherit from Detector to be compatible; it
    just needs the two properties.
    """

    @property
    def name(self) -> str:
        """Detector name (e.g., 'spectral_peaks')."""
        ...

    @property
    def version(self) -> str:
        """Detector version for result tracking."""
        ...


class BaseDetector:
    """
    Shared name/version/logger plumbing for detectors.

    Detectors are pure computations over the buffers handed to them, so
    unlike the engine they keep no per-call state.
    """

    def __init__(self, name: str, version: str):
        self._name = name
        self._version = version
        self.logger = logging.getLogger(f"detector.{name}")

    @property
    def name(self) -> str:
        """Return detector name."""
        return self._name

    @property
    def version(self) -> str:
        """Return detector version."""
        return self._version

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, version={self._version!r})"


def describe_detectors(*detectors: Detector) -> Dict[str, str]:
    """Map detector names to versions, for reporting."""
    return {detector.name: detector.version for detector in detectors}
