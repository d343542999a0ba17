"""Fundamental frequency estimation and note naming."""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Optional

import numpy as np

from .constants import (
    A4_FREQ,
    A4_MIDI,
    NO_NOTE_LABEL,
    NOTE_NAMES,
    NOTE_NAMES_FLAT,
    PITCH_CORRELATION_THRESHOLD,
    PITCH_MAX_FREQ,
    PITCH_MIN_FREQ,
    PITCH_NORMALISE_EPSILON,
    PITCH_RMS_THRESHOLD,
)
from .features import rms


class PitchClass(IntEnum):
    """One of the twelve equal-tempered note identities, ``C`` = 0."""

    C = 0
    C_SHARP = 1
    D = 2
    D_SHARP = 3
    E = 4
    F = 5
    F_SHARP = 6
    G = 7
    G_SHARP = 8
    A = 9
    A_SHARP = 10
    B = 11

    @property
    def sharp_name(self) -> str:
        return NOTE_NAMES[self.value]

    @property
    def flat_name(self) -> str:
        return NOTE_NAMES_FLAT[self.value]

    @property
    def is_black_key(self) -> bool:
        return self.sharp_name != self.flat_name

    @classmethod
    def parse(cls, name: str) -> Optional["PitchClass"]:
        """Return the pitch class spelled by ``name`` (sharp or flat).

        ``None`` is returned for names that are not in either table.
        """
        name = name.strip()
        if name in NOTE_NAMES:
            return cls(NOTE_NAMES.index(name))
        if name in NOTE_NAMES_FLAT:
            return cls(NOTE_NAMES_FLAT.index(name))
        return None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def freq_to_midi(freq: float) -> float:
    """Convert frequency to MIDI number using A4 reference."""
    return 12.0 * math.log2(freq / A4_FREQ) + A4_MIDI


def midi_to_freq(midi: float) -> float:
    """Convert MIDI number to frequency using A4 reference."""
    return A4_FREQ * 2 ** ((midi - A4_MIDI) / 12.0)


def frequency_to_pitch_class(freq: float) -> Optional[PitchClass]:
    """Return the pitch class nearest to ``freq``.

    The semitone distance from A4 is rounded half up before being folded
    into a single octave.  Non-positive frequencies mean "no pitch" and
    yield ``None``.
    """
    if freq <= 0.0:
        return None
    half_steps = _round_half_up(12.0 * math.log2(freq / A4_FREQ))
    return PitchClass((half_steps + PitchClass.A) % 12)


def frequency_to_note(freq: float) -> str:
    """Return the sharp-preferring note name for ``freq`` or ``"N/A"``."""
    pitch_class = frequency_to_pitch_class(freq)
    if pitch_class is None:
        return NO_NOTE_LABEL
    return pitch_class.sharp_name


def detect_pitch(
    samples: np.ndarray,
    sample_rate: float,
    *,
    rms_threshold: float = PITCH_RMS_THRESHOLD,
    min_freq: float = PITCH_MIN_FREQ,
    max_freq: float = PITCH_MAX_FREQ,
    correlation_threshold: float = PITCH_CORRELATION_THRESHOLD,
) -> float:
    """Estimate the fundamental frequency of ``samples``.

    The frame is normalised by its RMS level and compared against lagged
    copies of itself.  For every candidate lag the first half of the frame
    is used to compute ``1 - sqrt(mean((x[i] - x[i + lag]) ** 2))``; the
    lag with the highest score (the earliest on ties) wins.

    Args:
        samples: One-dimensional array of audio samples.
        sample_rate: Sampling frequency in hertz.
        rms_threshold: Frames quieter than this never produce a pitch.
        min_freq: Lowest frequency considered, sets the longest lag.
        max_freq: Highest frequency considered, sets the shortest lag.
        correlation_threshold: Minimum score for the winning lag.

    Returns:
        Frequency in hertz, or ``0.0`` when no reliable pitch was found.
    """

    samples = np.asarray(samples, dtype=np.float64).reshape(-1)
    size = samples.size
    if size == 0:
        return 0.0

    level = rms(samples)
    if level < rms_threshold:
        return 0.0

    normalised = samples / (level + PITCH_NORMALISE_EPSILON)

    # Both the compared span and the lag stay below half the frame length.
    half = (size + 1) // 2
    min_offset = int(math.floor(sample_rate / max_freq))
    max_offset = min(int(math.floor(sample_rate / min_freq)), half)
    if min_offset >= max_offset:
        return 0.0

    head = normalised[:half]
    offsets = np.arange(min_offset, max_offset)
    scores = np.empty(offsets.size, dtype=np.float64)
    for n, offset in enumerate(offsets):
        diff = head - normalised[offset : offset + half]
        scores[n] = 1.0 - np.sqrt(np.mean(diff**2))

    best = int(np.argmax(scores))
    best_offset = int(offsets[best])
    if scores[best] <= correlation_threshold or best_offset == 0:
        return 0.0

    freq = sample_rate / best_offset
    if min_freq <= freq <= max_freq:
        return float(freq)
    return 0.0


__all__ = [
    "PitchClass",
    "freq_to_midi",
    "midi_to_freq",
    "frequency_to_pitch_class",
    "frequency_to_note",
    "detect_pitch",
]
