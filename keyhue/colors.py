"""Perceptual colours for notes and keys.

Colours are expressed as OKLCH triples (lightness, chroma, hue).  Each
pitch class owns a fixed hue, evenly spaced around the wheel, so the same
note keeps the same colour in every view.  Keys reuse their tonic's hue:
major keys are bright and saturated, minor keys darker and softer.
"""

from __future__ import annotations

from typing import NamedTuple

from .constants import (
    DETECTING_LABEL,
    HUE_STEP,
    MAJOR_KEY_CHROMA,
    MAJOR_KEY_LIGHTNESS,
    MINOR_KEY_CHROMA,
    MINOR_KEY_LIGHTNESS,
    NEUTRAL_COLOR,
    NO_NOTE_LABEL,
    NOTE_CHROMA,
    NOTE_CHROMA_RANGE,
    NOTE_LIGHTNESS,
    NOTE_LIGHTNESS_RANGE,
    UNDETERMINED_LABEL,
)
from .pitch import PitchClass


class OklchColor(NamedTuple):
    lightness: float
    chroma: float
    hue: float

    def css(self) -> str:
        """Return the colour as a CSS ``oklch()`` expression."""
        return f"oklch({self.lightness:.2f} {self.chroma:.2f} {self.hue:.0f})"


NEUTRAL = OklchColor(*NEUTRAL_COLOR)


def base_hue(name: str) -> float:
    """Return the hue of a note spelled with sharps or flats.

    Unknown names fall back to ``0`` (the hue of ``C``).
    """
    pitch_class = PitchClass.parse(name)
    if pitch_class is None:
        return 0.0
    return int(pitch_class) * HUE_STEP


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def note_color(note: str) -> OklchColor:
    """Return the fixed colour used for ``note`` in badges and legends."""
    if note.strip() == NO_NOTE_LABEL:
        return NEUTRAL
    return OklchColor(NOTE_LIGHTNESS, NOTE_CHROMA, base_hue(note))


def dynamic_note_color(
    note: str,
    loudness_delta: float,
    centroid_delta: float,
    flux: float,
) -> OklchColor:
    """Return the colour of ``note`` nudged by the frame's dynamics.

    The hue moves a few degrees with the loudness and centroid deltas, and
    lightness and chroma move within narrow bands, so a note stays
    recognisable while still reacting to the music.

    Args:
        note: Sharp or flat note name, or ``"N/A"``.
        loudness_delta: Change in loudness since the previous frame (dB).
        centroid_delta: Change in spectral centroid (Hz).
        flux: Signed spectral flux.

    Returns:
        The OKLCH colour, or the neutral colour when there is no note.
    """

    if note.strip() == NO_NOTE_LABEL:
        return NEUTRAL

    norm_loudness = _clamp((loudness_delta + 20.0) / 40.0, 0.0, 1.0)
    norm_centroid = _clamp((centroid_delta + 2000.0) / 4000.0, 0.0, 1.0)
    norm_flux = _clamp((flux + 50.0) / 100.0, 0.0, 1.0)

    hue_shift = (norm_loudness - 0.5) * 8.0 + (norm_centroid - 0.5) * 5.0
    hue = (base_hue(note) + hue_shift) % 360.0

    lightness = _clamp(
        NOTE_LIGHTNESS + norm_loudness * 0.04 + norm_flux * 0.02 - 0.03,
        *NOTE_LIGHTNESS_RANGE,
    )
    chroma = _clamp(
        NOTE_CHROMA + norm_centroid * 0.04 + norm_flux * 0.02 - 0.03,
        *NOTE_CHROMA_RANGE,
    )
    return OklchColor(lightness, chroma, hue)


def key_color(key: str) -> OklchColor:
    """Return the colour of a key label such as ``"F# major"``."""
    label = key.strip()
    if label in (DETECTING_LABEL, UNDETERMINED_LABEL):
        return NEUTRAL

    parts = label.split()
    hue = base_hue(parts[0]) if parts else 0.0
    if len(parts) > 1 and parts[1].lower() == "major":
        return OklchColor(MAJOR_KEY_LIGHTNESS, MAJOR_KEY_CHROMA, hue)
    return OklchColor(MINOR_KEY_LIGHTNESS, MINOR_KEY_CHROMA, hue)


__all__ = [
    "OklchColor",
    "NEUTRAL",
    "base_hue",
    "note_color",
    "dynamic_note_color",
    "key_color",
]
