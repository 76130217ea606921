"""
Frequency to note conversion (12-tone equal temperament).

Notes are counted in half steps from C0 = A4 * 2^-4.75, so octave
numbers follow scientific pitch notation (A4 = 440 Hz, middle C = C4).
"""

import math
import re
from typing import Any, Dict, Optional, Tuple

from vocalpitch.detectors.base import BaseDetector


# Musical note names
NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

A4_HZ: float = 440.0
MIN_VALID_HZ: float = 1.0

_NOTE_PATTERN = re.compile(r'^([A-Ga-g])([#b]?)(-?\d+)$')
_FLAT_TO_SHARP = {'Db': 'C#', 'Eb': 'D#', 'Gb': 'F#', 'Ab': 'G#', 'Bb': 'A#'}


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves towards +inf."""
    return int(math.floor(value + 0.5))


class PitchMapper(BaseDetector):
    """Maps frequencies to note names and cents offsets."""

    def __init__(self, a4_hz: float = A4_HZ):
        super().__init__("pitch_mapper", "1.0.0")
        self.a4_hz = float(a4_hz)
        self.c0_hz = self.a4_hz * 2.0 ** -4.75

    def half_steps(self, frequency_hz: float) -> Optional[float]:
        """Fractional half steps above C0, or None for invalid input."""
        if not (frequency_hz >= MIN_VALID_HZ) or not math.isfinite(frequency_hz):
            return None
        return 12.0 * math.log2(frequency_hz / self.c0_hz)

    def note_name(self, frequency_hz: float) -> Optional[str]:
        """
        Nearest note name with octave, e.g. 440.0 -> "A4".

        Returns None for frequencies below 1 Hz.
        """
        half_steps = self.half_steps(frequency_hz)
        if half_steps is None:
            return None

        note_index = round_half_up(half_steps)
        octave = note_index // 12
        return f"{NOTE_NAMES[note_index % 12]}{octave}"

    def cents_offset(self, frequency_hz: float) -> Optional[int]:
        """
        Signed deviation from the nearest note in cents, in [-50, 50].

        Returns None for frequencies below 1 Hz.
        """
        half_steps = self.half_steps(frequency_hz)
        if half_steps is None:
            return None
        return round_half_up((half_steps - round_half_up(half_steps)) * 100.0)

    def note_to_frequency(self, note: str, octave: int) -> Optional[float]:
        """
        Equal-tempered frequency of a note, e.g. ("A", 4) -> 440.0.

        Flats are accepted ("Bb" == "A#"). Unknown names return None.
        """
        note = _FLAT_TO_SHARP.get(note, note)
        if note not in NOTE_NAMES:
            return None

        half_steps_from_a4 = (octave - 4) * 12 + (NOTE_NAMES.index(note) - 9)
        return self.a4_hz * 2.0 ** (half_steps_from_a4 / 12.0)

    def frequency_of(self, label: str) -> Optional[float]:
        """Frequency of a note label such as "C#3"."""
        parsed = parse_note(label)
        if parsed is None:
            return None
        return self.note_to_frequency(*parsed)


def parse_note(label: str) -> Optional[Tuple[str, int]]:
    """Split "C#3" into ("C#", 3). Returns None if not a note label."""
    match = _NOTE_PATTERN.match(label.strip())
    if not match:
        return None
    letter, accidental, octave = match.groups()
    return letter.upper() + accidental, int(octave)


def create_pitch_mapper(config: Optional[Dict[str, Any]] = None) -> PitchMapper:
    """Factory function to create a PitchMapper from the ``pitch`` section."""
    if config is None:
        config = {}

    return PitchMapper(a4_hz=config.get('a4_hz', A4_HZ))
