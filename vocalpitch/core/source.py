"""
Audio frame sources.

The engine never captures audio itself. It asks an AudioFrameSource to
copy the current window into buffers the engine owns: time-domain
samples, and the dB magnitude spectrum of the same window.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

import numpy as np
import scipy.fft
import scipy.signal

from vocalpitch.core.loader import LoadedAudio
from vocalpitch.utils.errors import ConfigurationError


WINDOW_SIZE: int = 4096
HOP_SIZE: int = 1024
MIN_GAIN: float = 0.1
MAX_GAIN: float = 5.0
SPECTRUM_FLOOR_DB: float = -400.0

logger = logging.getLogger('source')


@runtime_checkable
class AudioFrameSource(Protocol):
    """
    Supplier of analysis windows.

    ``fill_*`` methods copy into the caller's buffer and must not keep a
    reference to it.
    """

    def sample_rate(self) -> float:
        ...

    def window_size(self) -> int:
        ...

    def fill_time_domain(self, buffer: np.ndarray) -> None:
        ...

    def fill_frequency_domain_db(self, buffer: np.ndarray) -> None:
        ...

    def is_ready(self) -> bool:
        ...


def compute_spectrum_db(window: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """
    dB magnitude spectrum of one window, like an analyser node reports it.

    Blackman window, real FFT, magnitude scaled by 1/N, first N/2 bins.
    Exact zeros map to SPECTRUM_FLOOR_DB instead of -inf.

    Args:
        window: Time-domain samples (length N)
        out: Optional buffer of length N/2 to write into

    Returns:
        np.ndarray: The spectrum (``out`` when given)
    """
    window = np.asarray(window, dtype=np.float64)
    size = window.shape[0]
    taper = scipy.signal.get_window("blackman", size, fftbins=True)

    magnitude = np.abs(scipy.fft.rfft(window * taper))[: size // 2] / size
    with np.errstate(divide="ignore"):
        spectrum = 20.0 * np.log10(magnitude)
    spectrum = np.maximum(spectrum, SPECTRUM_FLOOR_DB)

    if out is None:
        return spectrum
    out[:] = spectrum
    return out


def clamp_gain(gain: float) -> float:
    """Input gain limited to [0.1, 5.0]."""
    return float(min(MAX_GAIN, max(MIN_GAIN, gain)))


class ArrayFrameSource:
    """
    In-memory source holding one window and (optionally) its spectrum.

    When no spectrum is given it is computed from the samples. Useful
    for synthetic input and for feeding externally captured windows.
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: float,
        spectrum_db: Optional[np.ndarray] = None,
        ready: bool = True,
    ):
        self._sample_rate = float(sample_rate)
        self._ready = ready
        self._samples = np.zeros(0)
        self._spectrum = np.zeros(0)
        self.set_window(samples, spectrum_db)

    def set_window(self, samples: np.ndarray, spectrum_db: Optional[np.ndarray] = None) -> None:
        """Replace the current window (and spectrum)."""
        samples = np.array(samples, dtype=np.float64)
        if spectrum_db is None:
            spectrum_db = compute_spectrum_db(samples)
        spectrum_db = np.array(spectrum_db, dtype=np.float64)

        if spectrum_db.shape[0] != samples.shape[0] // 2:
            raise ValueError(
                f"Spectrum length {spectrum_db.shape[0]} does not match "
                f"window size {samples.shape[0]} (expected {samples.shape[0] // 2})"
            )
        self._samples = samples
        self._spectrum = spectrum_db

    def set_ready(self, ready: bool) -> None:
        self._ready = ready

    def sample_rate(self) -> float:
        return self._sample_rate

    def window_size(self) -> int:
        return int(self._samples.shape[0])

    def fill_time_domain(self, buffer: np.ndarray) -> None:
        buffer[:] = self._samples[: buffer.shape[0]]

    def fill_frequency_domain_db(self, buffer: np.ndarray) -> None:
        buffer[:] = self._spectrum[: buffer.shape[0]]

    def is_ready(self) -> bool:
        return self._ready


class FileFrameSource:
    """
    Replays a loaded recording one analysis window at a time.

    The cursor starts at sample 0 and moves by ``hop_size`` on
    ``advance()``. Windows running past the end are zero-padded.
    """

    def __init__(
        self,
        audio: LoadedAudio,
        window_size: int = WINDOW_SIZE,
        hop_size: int = HOP_SIZE,
        gain: float = 1.0,
    ):
        if window_size < 4 or window_size % 2:
            raise ConfigurationError(
                f"Window size must be an even number >= 4, got {window_size}",
                config_key="source.window_size",
            )
        if hop_size < 1:
            raise ConfigurationError(
                f"Hop size must be positive, got {hop_size}",
                config_key="source.hop_size",
            )

        self.audio = audio
        self._window_size = int(window_size)
        self.hop_size = int(hop_size)
        self.gain = clamp_gain(gain)
        if self.gain != gain:
            logger.warning(f"Gain {gain} clamped to {self.gain}")

        self._position = 0
        self._window = np.zeros(self._window_size, dtype=np.float64)
        self._spectrum: Optional[np.ndarray] = None
        self._load_window()

    @property
    def name(self) -> str:
        return self.audio.file_path.name

    @property
    def position(self) -> int:
        """Cursor in samples."""
        return self._position

    def position_ms(self) -> int:
        """Cursor in milliseconds of audio time."""
        return int(round(self._position * 1000.0 / self.audio.sample_rate))

    def frame_count(self) -> int:
        """Number of windows ``advance()`` will visit, including the first."""
        total = self.audio.samples.shape[0]
        if total <= self._window_size:
            return 1
        return 1 + -(-(total - self._window_size) // self.hop_size)

    def advance(self) -> bool:
        """Move to the next window. Returns False when past the last one."""
        next_position = self._position + self.hop_size
        if next_position + self._window_size > self.audio.samples.shape[0] + self.hop_size - 1:
            return False
        self._position = next_position
        self._load_window()
        return True

    def rewind(self) -> None:
        self._position = 0
        self._load_window()

    def _load_window(self) -> None:
        chunk = self.audio.samples[self._position:self._position + self._window_size]
        self._window[:] = 0.0
        self._window[: chunk.shape[0]] = chunk
        self._window *= self.gain
        self._spectrum = None

    def sample_rate(self) -> float:
        return float(self.audio.sample_rate)

    def window_size(self) -> int:
        return self._window_size

    def fill_time_domain(self, buffer: np.ndarray) -> None:
        buffer[:] = self._window

    def fill_frequency_domain_db(self, buffer: np.ndarray) -> None:
        if self._spectrum is None:
            self._spectrum = compute_spectrum_db(self._window)
        buffer[:] = self._spectrum

    def is_ready(self) -> bool:
        return self.audio.samples.shape[0] > 0


def create_file_source(audio: LoadedAudio, config: Optional[dict] = None) -> FileFrameSource:
    """Factory function for the ``source`` configuration section."""
    if config is None:
        config = {}

    return FileFrameSource(
        audio,
        window_size=config.get('window_size', WINDOW_SIZE),
        hop_size=config.get('hop_size', HOP_SIZE),
        gain=config.get('gain', 1.0),
    )
