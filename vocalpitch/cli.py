"""
vocalpitch - pitch tracking CLI

Runs the hybrid pitch detection engine over a recording, window by
window, and prints what it heard. Installed as 'vocalpitch'.

Example usage:
    vocalpitch path/to/take.wav
    vocalpitch --smooth --output take.csv path/to/take.wav
    vocalpitch --window-size 8192 --hop-size 2048 --format json -o take.json take.wav
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from vocalpitch import __version__
from vocalpitch.core.diagnostics import LoggingDiagnosticsSink
from vocalpitch.core.loader import create_audio_loader
from vocalpitch.core.models import TrackingResult
from vocalpitch.core.result_writer import create_result_writer
from vocalpitch.core.tracker import create_pitch_tracker
from vocalpitch.utils.config import load_config
from vocalpitch.utils.errors import ConfigurationError, PitchDetectionError
from vocalpitch.utils.logging import setup_logging


OUTPUT_FORMATS = ("text", "json", "csv")


def print_tracking_result(result: TrackingResult, max_lines: int = 20) -> None:
    """Print a tracking result to console."""
    summary = result.summary

    print("\n" + "=" * 60)
    print("VOCALPITCH TRACKING RESULTS")
    print("=" * 60)
    print(f"File: {result.source_name}")
    print(f"Processing Time: {result.processing_time:.3f}s")
    print(f"Windows: {summary.total_frames} x {result.window_size} (hop {result.hop_size})")
    print("-" * 60)
    print(summary.get_summary())
    print("-" * 60)

    if summary.method_counts:
        print("\nMethods:")
        for method, count in sorted(summary.method_counts.items()):
            print(f"  {method}: {count}")

    voiced = [frame for frame in result.frames if frame.is_voiced]
    if voiced:
        print(f"\nReadings (first {min(max_lines, len(voiced))} of {len(voiced)}):")
        for frame in voiced[:max_lines]:
            reading = frame.reading
            print(
                f"  {frame.time_s:7.3f}s  {reading.frequency_hz:8.2f} Hz  "
                f"{reading.note_name:<4} {reading.cents_offset:+3d}c"
            )

    print("=" * 60)


def infer_format(output: Optional[Path], requested: Optional[str]) -> str:
    """Output format from --format, else from the output file suffix."""
    if requested:
        return requested
    if output is not None:
        suffix = output.suffix.lower().lstrip('.')
        if suffix in OUTPUT_FORMATS:
            return suffix
    return "text"


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Fold command-line overrides into the configuration."""
    source_config = config.setdefault('source', {})
    if args.gain is not None:
        source_config['gain'] = args.gain
    if args.window_size is not None:
        source_config['window_size'] = args.window_size
    if args.hop_size is not None:
        source_config['hop_size'] = args.hop_size
    if args.smooth:
        config.setdefault('smoothing', {})['enabled'] = True
    return config


def track_file(
    audio_file: Path,
    config: dict,
    output: Optional[Path] = None,
    output_format: str = "text",
    diagnostics: bool = False,
    verbose: bool = False,
) -> int:
    """
    Track the pitch of a single audio file.

    Args:
        audio_file: Path to audio file
        config: Configuration dictionary
        output: Optional path for results
        output_format: "text", "json" or "csv"
        diagnostics: Log rejection reasons and candidate rankings
        verbose: Enable verbose error output

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not audio_file.exists():
        print(f"Error: Audio file not found: {audio_file}")
        return 1

    print(f"Tracking: {audio_file}")

    try:
        audio = create_audio_loader(config.get('source', {})).load(audio_file)
        tracker = create_pitch_tracker(audio, config)

        if diagnostics:
            tracker.engine.enable_diagnostics(
                LoggingDiagnosticsSink(tracker.engine.logger, level=logging.INFO)
            )

        result = tracker.run()
        print_tracking_result(result)

        if output:
            writer = create_result_writer(output_format)
            writer.write(result, output)
            print(f"\nResults saved to: {output}")

        return 0

    except PitchDetectionError as e:
        print(f"\nError: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None):
    """Main entry point for vocalpitch."""
    parser = argparse.ArgumentParser(
        prog="vocalpitch",
        description="Track the sung or played pitch of a recording",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vocalpitch take.wav
  vocalpitch --smooth take.wav
  vocalpitch --output take.json take.wav
  vocalpitch --format csv --output pitches.out take.wav
  vocalpitch --diagnostics --verbose take.wav
        """
    )

    parser.add_argument(
        "input",
        type=Path,
        help="Audio file to track"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Path to save results"
    )
    parser.add_argument(
        "--format",
        "-f",
        choices=OUTPUT_FORMATS,
        default=None,
        help="Results format (default: from --output suffix, else text)"
    )
    parser.add_argument(
        "--smooth",
        action="store_true",
        help="Median-smooth readings and reject octave glitches"
    )
    parser.add_argument(
        "--gain",
        type=float,
        default=None,
        help="Input gain (clamped to 0.1-5.0)"
    )
    parser.add_argument(
        "--window-size",
        type=int,
        default=None,
        help="Analysis window in samples"
    )
    parser.add_argument(
        "--hop-size",
        type=int,
        default=None,
        help="Samples between successive windows"
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Log rejection reasons and candidate rankings"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vocalpitch {__version__}"
    )

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(str(args.config) if args.config else None)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)
    config = apply_overrides(config, args)

    # Setup logging
    logging_config = config.get("logging", {})
    log_level = "DEBUG" if args.verbose else logging_config.get("level", "INFO")
    setup_logging(
        level=log_level,
        log_format=logging_config.get("format", "text"),
        colored=True,
        console_enabled=True
    )

    exit_code = track_file(
        audio_file=args.input,
        config=config,
        output=args.output,
        output_format=infer_format(args.output, args.format),
        diagnostics=args.diagnostics,
        verbose=args.verbose,
    )

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
