"""
Vocal pitch detection

Hybrid monophonic pitch detector: harmonic-aware spectral peak
selection with an autocorrelation fallback, mapped to note names and
cents offsets.
"""

__version__ = "1.0.0"
__author__ = "Vocal Pitch Team"
