"""
File-driven polling loop.

Steps a FileFrameSource through a recording and calls the engine once
per window, the way a live application would call it once per frame.
"""

import logging
import time
from collections import Counter
from dataclasses import replace
from typing import Any, Dict, List, Optional

import numpy as np

from vocalpitch.core.engine import PitchDetectionEngine, create_pitch_engine
from vocalpitch.core.loader import LoadedAudio
from vocalpitch.core.models import PitchReading, TrackedPitch, TrackingResult, TrackingSummary
from vocalpitch.core.source import FileFrameSource, create_file_source
from vocalpitch.detectors.smoothing import PitchSmoother, create_smoother


class PitchTracker:
    """
    Runs an engine over every window of a FileFrameSource.

    The engine should read time from ``source.position_ms`` so that
    stability freshness follows audio time, not wall time;
    ``create_pitch_tracker`` wires it that way.
    """

    def __init__(
        self,
        engine: PitchDetectionEngine,
        source: FileFrameSource,
        smoother: Optional[PitchSmoother] = None,
    ):
        self.engine = engine
        self.source = source
        self.smoother = smoother
        self.logger = logging.getLogger('tracker')

    def run(self) -> TrackingResult:
        """
        Track the whole recording from the start.

        Returns:
            TrackingResult: One TrackedPitch per window plus a summary
        """
        start_time = time.time()
        self.source.rewind()
        if self.smoother:
            self.smoother.reset()

        owns_engine = not self.engine.is_active
        if owns_engine:
            self.engine.start()

        sample_rate = self.source.sample_rate()
        frames: List[TrackedPitch] = []
        try:
            while True:
                reading = self.engine.detect_pitch()
                if reading is not None and self.smoother is not None:
                    reading = self._smooth(reading)

                frames.append(TrackedPitch(
                    time_s=self.source.position / sample_rate,
                    reading=reading,
                    level=self.engine.level,
                ))
                if not self.source.advance():
                    break
        finally:
            if owns_engine:
                self.engine.stop()

        processing_time = time.time() - start_time
        summary = summarize(frames)
        self.logger.info(
            f"Tracked {self.source.name}: {summary.get_summary()} in {processing_time:.3f}s"
        )

        return TrackingResult(
            source_name=self.source.name,
            sample_rate=sample_rate,
            window_size=self.source.window_size(),
            hop_size=self.source.hop_size,
            frames=frames,
            summary=summary,
            processing_time=processing_time,
        )

    def _smooth(self, reading: PitchReading) -> PitchReading:
        smoothed = self.smoother.smooth(reading.frequency_hz)
        if smoothed == reading.frequency_hz:
            return reading

        mapper = self.engine.mapper
        return replace(
            reading,
            frequency_hz=smoothed,
            note_name=mapper.note_name(smoothed),
            cents_offset=mapper.cents_offset(smoothed),
        )


def summarize(frames: List[TrackedPitch]) -> TrackingSummary:
    """Aggregate a tracked sequence."""
    voiced = [frame.reading for frame in frames if frame.reading is not None]

    median_frequency = None
    most_common_note = None
    if voiced:
        median_frequency = float(np.median([r.frequency_hz for r in voiced]))
        most_common_note = Counter(r.note_name for r in voiced).most_common(1)[0][0]

    return TrackingSummary(
        total_frames=len(frames),
        voiced_frames=len(voiced),
        median_frequency_hz=median_frequency,
        most_common_note=most_common_note,
        method_counts=dict(Counter(r.method.value for r in voiced)),
    )


def create_pitch_tracker(
    audio: LoadedAudio,
    config: Optional[Dict[str, Any]] = None,
) -> PitchTracker:
    """
    Factory function wiring source, engine and smoother for one recording.

    Args:
        audio: Loaded recording
        config: Full configuration dict

    Returns:
        PitchTracker: Ready to ``run()``
    """
    if config is None:
        config = {}

    source = create_file_source(audio, config.get('source', {}))
    engine = create_pitch_engine(
        source,
        config,
        clock=source.position_ms,
        engine_id=audio.file_path.name,
    )
    smoother = create_smoother(config.get('smoothing', {}))

    return PitchTracker(engine, source, smoother)
