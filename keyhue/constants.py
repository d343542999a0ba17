"""Application-wide constants used by the analysis engine.

The values in this module configure the feature extractor, the pitch
detector, the pitch-class histogram, the key estimator and the colour
mapper.  Centralising the configuration avoids magic numbers spread
throughout the code base and makes it easy to tune behaviour in one place.
Most classes accept these values as keyword defaults so a single instance
can be tuned without touching the module.
"""

from __future__ import annotations

# ─── Note naming ────────────────────────────────────────────────────────────

# Tuning reference used when converting frequencies to pitch classes.
A4_FREQ: float = 440.0
A4_MIDI: int = 69

NOTE_NAMES: tuple[str, ...] = (
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
)
NOTE_NAMES_FLAT: tuple[str, ...] = (
    "C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B",
)

# Labels rendered at the result boundary when nothing can be reported.
NO_NOTE_LABEL: str = "N/A"
DETECTING_LABEL: str = "Detecting..."
UNDETERMINED_LABEL: str = "N/A"

# ─── Feature extraction ─────────────────────────────────────────────────────

# Floor applied to the loudness in dBFS.  Digital silence maps here too.
SILENCE_DB: float = -100.0

# ─── Pitch detection ────────────────────────────────────────────────────────

# Frames quieter than this RMS level never produce a pitch.  Keeps the
# histogram free of low-confidence locks on near-silence.
PITCH_RMS_THRESHOLD: float = 0.015

# Added to the RMS before normalising a frame.
PITCH_NORMALISE_EPSILON: float = 0.001

# Search range of the autocorrelation lag, expressed in hertz.
PITCH_MIN_FREQ: float = 40.0
PITCH_MAX_FREQ: float = 1200.0

# Minimum lag score accepted as a pitch.
PITCH_CORRELATION_THRESHOLD: float = 0.5

# ─── Pitch-class histogram ──────────────────────────────────────────────────

# Multiplicative decay applied to every bin before each accepted update.
DECAY_FACTOR: float = 0.98

HISTOGRAM_WINDOW: int = 30

# Every ``RESCALE_INTERVAL`` accepted updates the histogram is divided by
# its maximum when that maximum exceeds ``RESCALE_CEILING``.
RESCALE_INTERVAL: int = HISTOGRAM_WINDOW * 3
RESCALE_CEILING: float = 100.0

# Loudness (dBFS) and spectral centroid (Hz) ranges used to weight each
# pitch detection.  Louder, brighter frames contribute more evidence.
WEIGHT_LOUDNESS_RANGE: float = 40.0
WEIGHT_CENTROID_SCALE: float = 3000.0
WEIGHT_CENTROID_FLOOR: float = 0.5

# ─── Key estimation ─────────────────────────────────────────────────────────

# Krumhansl-Kessler probe-tone ratings, indexed from the tonic.
MAJOR_PROFILE: tuple[float, ...] = (
    6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88,
)
MINOR_PROFILE: tuple[float, ...] = (
    6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17,
)

# Pitch detections required before a key is estimated at all.
MIN_KEY_SAMPLES: int = 5

# Histogram mass below which no key can be inferred.
MIN_HISTOGRAM_TOTAL: float = 0.1

# Best correlation at or below this value clears the stability counter.
MIN_CONFIDENCE_THRESHOLD: float = 0.15

# A candidate that differs from the committed key must beat the runner-up
# by ``KEY_SEPARATION_THRESHOLD`` and reach ``KEY_CHANGE_CONFIDENCE``.
KEY_SEPARATION_THRESHOLD: float = 0.1
KEY_CHANGE_CONFIDENCE: float = 0.3

# Consecutive agreeing frames required before a key is reported.
KEY_STABILITY_THRESHOLD: int = 3

# ─── Colours ────────────────────────────────────────────────────────────────

# Hue step between neighbouring pitch classes (C starts at 0°).
HUE_STEP: float = 30.0

NEUTRAL_COLOR: tuple[float, float, float] = (0.60, 0.15, 200.0)

NOTE_LIGHTNESS: float = 0.74
NOTE_CHROMA: float = 0.42
NOTE_LIGHTNESS_RANGE: tuple[float, float] = (0.70, 0.78)
NOTE_CHROMA_RANGE: tuple[float, float] = (0.38, 0.46)

MAJOR_KEY_LIGHTNESS: float = 0.76
MAJOR_KEY_CHROMA: float = 0.44
MINOR_KEY_LIGHTNESS: float = 0.59
MINOR_KEY_CHROMA: float = 0.32

# ─── Spectrum analyser ──────────────────────────────────────────────────────

# Defaults mirror the browser ``AnalyserNode`` the visualiser reads from.
SAMPLE_RATE: int = 44_100
FFT_SIZE: int = 4096
SMOOTHING_TIME_CONSTANT: float = 0.75
MIN_DECIBELS: float = -100.0
MAX_DECIBELS: float = -30.0

# ─── Result significance ────────────────────────────────────────────────────

# A frame is considered significant when any delta exceeds its threshold.
SIGNIFICANT_LOUDNESS_DELTA: float = 0.5
SIGNIFICANT_CENTROID_DELTA: float = 10.0
SIGNIFICANT_FLUX: float = 1.0

__all__ = [
    "A4_FREQ",
    "A4_MIDI",
    "NOTE_NAMES",
    "NOTE_NAMES_FLAT",
    "NO_NOTE_LABEL",
    "DETECTING_LABEL",
    "UNDETERMINED_LABEL",
    "SILENCE_DB",
    "PITCH_RMS_THRESHOLD",
    "PITCH_NORMALISE_EPSILON",
    "PITCH_MIN_FREQ",
    "PITCH_MAX_FREQ",
    "PITCH_CORRELATION_THRESHOLD",
    "DECAY_FACTOR",
    "HISTOGRAM_WINDOW",
    "RESCALE_INTERVAL",
    "RESCALE_CEILING",
    "WEIGHT_LOUDNESS_RANGE",
    "WEIGHT_CENTROID_SCALE",
    "WEIGHT_CENTROID_FLOOR",
    "MAJOR_PROFILE",
    "MINOR_PROFILE",
    "MIN_KEY_SAMPLES",
    "MIN_HISTOGRAM_TOTAL",
    "MIN_CONFIDENCE_THRESHOLD",
    "KEY_SEPARATION_THRESHOLD",
    "KEY_CHANGE_CONFIDENCE",
    "KEY_STABILITY_THRESHOLD",
    "HUE_STEP",
    "NEUTRAL_COLOR",
    "NOTE_LIGHTNESS",
    "NOTE_CHROMA",
    "NOTE_LIGHTNESS_RANGE",
    "NOTE_CHROMA_RANGE",
    "MAJOR_KEY_LIGHTNESS",
    "MAJOR_KEY_CHROMA",
    "MINOR_KEY_LIGHTNESS",
    "MINOR_KEY_CHROMA",
    "SAMPLE_RATE",
    "FFT_SIZE",
    "SMOOTHING_TIME_CONSTANT",
    "MIN_DECIBELS",
    "MAX_DECIBELS",
    "SIGNIFICANT_LOUDNESS_DELTA",
    "SIGNIFICANT_CENTROID_DELTA",
    "SIGNIFICANT_FLUX",
]
