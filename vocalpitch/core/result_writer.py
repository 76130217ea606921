"""
Result writers for tracked pitch sequences.

One writer per output format behind a common interface; new formats
are added by registering a class in ``create_result_writer``.
"""

import csv
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from vocalpitch.core.models import TrackingResult


CSV_COLUMNS = [
    'time_s', 'frequency_hz', 'note_name', 'cents_offset',
    'method', 'confidence', 'rms', 'volume', 'is_clipping',
]


class ResultWriter(ABC):
    """Abstract base class for result writers (Strategy Pattern)."""

    @abstractmethod
    def write(self, result: TrackingResult, output_path: Path) -> None:
        """Write a tracking result to the specified path."""
        pass


class TextResultWriter(ResultWriter):
    """Writes a human-readable report, one line per window."""

    def __init__(self, include_timestamp: bool = True, voiced_only: bool = False):
        """
        Initialize text writer.

        Args:
            include_timestamp: Whether to include timestamp in output
            voiced_only: Skip windows without a reading
        """
        self.include_timestamp = include_timestamp
        self.voiced_only = voiced_only
        self.logger = logging.getLogger("result_writer.text")

    def write(self, result: TrackingResult, output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("=" * 70 + "\n")
            f.write("VOCALPITCH TRACKING RESULTS\n")
            f.write("=" * 70 + "\n")

            if self.include_timestamp:
                f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

            f.write(f"Source: {result.source_name}\n")
            f.write(
                f"Sample Rate: {result.sample_rate:g} Hz | Window: {result.window_size} "
                f"| Hop: {result.hop_size}\n"
            )
            f.write(f"Summary: {result.summary.get_summary()}\n")
            f.write("=" * 70 + "\n\n")

            for frame in result.frames:
                if frame.reading is None:
                    if not self.voiced_only:
                        f.write(f"{frame.time_s:8.3f}s  --\n")
                    continue
                reading = frame.reading
                f.write(
                    f"{frame.time_s:8.3f}s  {reading.frequency_hz:8.2f} Hz  "
                    f"{reading.note_name:<4} {reading.cents_offset:+3d}c  "
                    f"[{reading.method.value}]\n"
                )

            f.write("\n" + "=" * 70 + "\n")
            f.write("END OF REPORT\n")
            f.write("=" * 70 + "\n")

        self.logger.info(f"Results written to: {output_path}")


class JSONResultWriter(ResultWriter):
    """Writes the full result as JSON."""

    def __init__(self, indent: int = 2):
        self.indent = indent
        self.logger = logging.getLogger("result_writer.json")

    def write(self, result: TrackingResult, output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_data = {
            "generated": datetime.now().isoformat(),
            **result.to_dict(),
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=self.indent, default=str)

        self.logger.info(f"Results written to: {output_path}")


class CSVResultWriter(ResultWriter):
    """Writes one row per window; unvoiced windows leave pitch columns empty."""

    def __init__(self):
        self.logger = logging.getLogger("result_writer.csv")

    def write(self, result: TrackingResult, output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for frame in result.frames:
                row = {'time_s': f"{frame.time_s:.4f}"}
                if frame.reading is not None:
                    row.update(frame.reading.to_dict())
                    row['method'] = frame.reading.method.value
                if frame.level is not None:
                    row.update(frame.level.to_dict())
                writer.writerow(row)

        self.logger.info(f"Results written to: {output_path}")


def create_result_writer(format: str = "text", **kwargs) -> ResultWriter:
    """
    Factory function to create appropriate result writer.

    Args:
        format: Output format ("text", "json" or "csv")
        **kwargs: Additional arguments for the writer

    Returns:
        Appropriate ResultWriter instance
    """
    writers = {
        "text": TextResultWriter,
        "txt": TextResultWriter,
        "json": JSONResultWriter,
        "csv": CSVResultWriter,
    }

    writer_class = writers.get(format.lower())
    if writer_class is None:
        raise ValueError(f"Unknown format: {format}. Supported: {list(writers.keys())}")

    return writer_class(**kwargs)
