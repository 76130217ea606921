"""
Audio loader for offline pitch tracking.

Loads and validates recordings that a FileFrameSource then replays
window by window.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple

import librosa
import numpy as np
import soundfile as sf

from vocalpitch.utils.errors import AudioLoadError, FileTooLargeError, UnsupportedFormatError


# Constants
SUPPORTED_FORMATS: Dict[str, str] = {
    '.wav': 'soundfile',
    '.aif': 'soundfile',
    '.aiff': 'soundfile',
    '.flac': 'soundfile',
    '.ogg': 'soundfile',
    '.mp3': 'audioread',
}

MAX_FILE_SIZE: int = 524288000  # 500 MB

logger = logging.getLogger('loader')


@dataclass(frozen=True)
class LoadedAudio:
    """A mono recording ready for windowed analysis."""

    file_path: Path
    samples: np.ndarray  # mono, float32
    sample_rate: int
    original_sample_rate: int
    original_channels: int
    original_format: str

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.samples.shape[0] / self.sample_rate


class AudioLoader:
    """
    Loads audio files as mono sample arrays.

    Stateless; one loader can be shared.
    """

    def __init__(
        self,
        target_sr: Optional[int] = None,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        """
        Initialize loader with configuration.

        Args:
            target_sr: Resample to this rate; None keeps the native rate
            max_file_size: Maximum file size in bytes
        """
        self.target_sr = target_sr
        self.max_file_size = max_file_size
        self.supported_suffixes: Set[str] = set(SUPPORTED_FORMATS.keys())

    def load(self, file_path: Path) -> LoadedAudio:
        """
        Load an audio file.

        Raises:
            FileNotFoundError: File doesn't exist
            UnsupportedFormatError: File format not supported
            FileTooLargeError: File exceeds size limit
            AudioLoadError: Audio data is invalid
        """
        file_path = Path(file_path)

        self._validate_file(file_path)
        metadata = self._load_metadata(file_path)
        samples, sample_rate = self._load_audio_data(file_path)
        samples = self._validate_audio_data(samples, file_path)

        logger.info(
            f"Loaded {file_path.name}: {samples.shape[0] / sample_rate:.2f}s at {sample_rate} Hz"
        )

        return LoadedAudio(
            file_path=file_path,
            samples=samples,
            sample_rate=int(sample_rate),
            original_sample_rate=metadata['sample_rate'],
            original_channels=metadata['channels'],
            original_format=metadata['format'],
        )

    def _validate_file(self, file_path: Path) -> None:
        """Validate file exists, has supported format, and is within size limit."""
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise UnsupportedFormatError(
                f"Format {suffix} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                format=suffix
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=file_size,
                max_size=self.max_file_size
            )

    def _load_metadata(self, file_path: Path) -> Dict[str, Any]:
        """Read original sample rate and channel count before any resampling."""
        try:
            info = sf.info(str(file_path))
            return {
                'sample_rate': int(info.samplerate),
                'channels': int(info.channels),
                'format': file_path.suffix.lstrip('.').upper(),
            }
        except Exception as e:
            # soundfile cannot read every container (e.g. some MP3s)
            logger.warning(f"Could not read metadata with soundfile: {e}")
            return {
                'sample_rate': 0,
                'channels': 0,
                'format': file_path.suffix.lstrip('.').upper(),
            }

    def _load_audio_data(self, file_path: Path) -> Tuple[np.ndarray, int]:
        try:
            samples, sample_rate = librosa.load(
                str(file_path),
                sr=self.target_sr,
                mono=True,
                dtype=np.float32
            )
        except Exception as e:
            raise AudioLoadError(
                f"Failed to load audio data from {file_path}: {e}",
                file_path=str(file_path)
            ) from e

        return samples, int(sample_rate)

    def _validate_audio_data(self, samples: np.ndarray, file_path: Path) -> np.ndarray:
        """Reject empty audio, warn on silence, normalise clipped input."""
        if samples.size == 0:
            raise AudioLoadError(f"Audio file is empty: {file_path}", file_path=str(file_path))

        rms = float(np.sqrt(np.mean(samples.astype(np.float64) ** 2)))
        if rms < 1e-6:
            logger.warning(f"Audio appears to be silent: {file_path}")

        max_abs = float(np.max(np.abs(samples)))
        if max_abs > 1.0:
            logger.warning(
                f"Audio contains clipping (max: {max_abs:.2f}), normalizing: {file_path}"
            )
            samples = samples / max_abs

        return samples


def create_audio_loader(config: Optional[Dict[str, Any]] = None) -> AudioLoader:
    """
    Factory function to create an AudioLoader from the ``source`` section.
    """
    if config is None:
        config = {}

    return AudioLoader(
        target_sr=config.get('target_sample_rate'),
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
    )
