"""
Parabolic (three-point) interpolation.

Shared by the spectral path, which refines a peak bin, and the
autocorrelation path, which refines a difference-function trough. The
vertex formula is the same for maxima and minima.
"""

import math
from typing import Optional, Sequence


def parabolic_offset(y0: float, y1: float, y2: float) -> Optional[float]:
    """
    Offset of the parabola vertex through (-1, y0), (0, y1), (1, y2).

    Returns None when the three points are collinear (the curvature term
    ``2*y1 - y2 - y0`` is zero) or when any value is not finite.
    """
    denominator = 2.0 * y1 - y2 - y0
    if denominator == 0.0 or not math.isfinite(denominator):
        return None

    delta = 0.5 * (y2 - y0) / denominator
    if not math.isfinite(delta):
        return None
    return delta


def refine_index(values: Sequence[float], index: int) -> float:
    """
    Refine ``index`` to sub-sample precision.

    Edge indices and degenerate geometry return the index unchanged.
    """
    if index <= 0 or index >= len(values) - 1:
        return float(index)

    delta = parabolic_offset(
        float(values[index - 1]),
        float(values[index]),
        float(values[index + 1]),
    )
    if delta is None:
        return float(index)
    return index + delta


def bin_to_frequency(bin_position: float, sample_rate: float, spectrum_length: int) -> float:
    """Frequency of a (possibly fractional) bin of a half-spectrum."""
    nyquist = sample_rate / 2.0
    return bin_position * nyquist / spectrum_length


def refine_bin_frequency(
    spectrum: Sequence[float],
    bin_index: int,
    sample_rate: float,
) -> float:
    """
    Sub-bin frequency of a spectral peak.

    Args:
        spectrum: Magnitude spectrum in dB (half the analysis window)
        bin_index: Bin of the selected peak
        sample_rate: Sample rate in Hz

    Returns:
        float: Interpolated frequency in Hz, or the bin-centre frequency
        at the buffer edges and for flat/inverted peaks
    """
    refined = refine_index(spectrum, bin_index)
    return bin_to_frequency(refined, sample_rate, len(spectrum))
