"""Per-recording analysis session and the frame processing entry points.

An :class:`AnalysisSession` owns every piece of state the engine keeps
between frames: the previous frame's features, the pitch-class histogram
and the key stability tracker.  :func:`process` turns one
:class:`AnalysisFrame` into an :class:`AnalysisResult` and updates the
session in place; :func:`reset` restores the initial state so the session
can be reused for the next recording.

A session is not thread-safe.  Frames for one session must be processed
one at a time, in order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

import numpy as np

from .colors import OklchColor, dynamic_note_color, key_color
from .constants import (
    DETECTING_LABEL,
    NO_NOTE_LABEL,
    SIGNIFICANT_CENTROID_DELTA,
    SIGNIFICANT_FLUX,
    SIGNIFICANT_LOUDNESS_DELTA,
)
from .features import delta, loudness, spectral_centroid, spectral_flux
from .histogram import PitchClassAccumulator, pitch_weight
from .key_estimation import KeyStabilityTracker, estimate_key, key_label
from .pitch import detect_pitch, frequency_to_pitch_class

logger = logging.getLogger(__name__)

ArrayLike = Union[np.ndarray, Sequence[float]]


def _as_vector(values: ArrayLike, name: str) -> np.ndarray:
    array = np.asarray(values)
    if array.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional, got shape {array.shape}")
    if array.size == 0:
        raise ValueError(f"{name} must not be empty")
    if not np.issubdtype(array.dtype, np.number):
        raise ValueError(f"{name} must be numeric, got dtype {array.dtype}")
    if not np.all(np.isfinite(array)):
        raise ValueError(f"{name} contains NaN or infinite values")
    return array


@dataclass(frozen=True, eq=False)
class AnalysisFrame:
    """One block of audio as delivered by the capture side.

    Attributes:
        magnitudes: Byte-scaled magnitude spectrum, one value in ``0..255``
            per frequency bin.
        samples: Time-domain samples in ``[-1, 1]``.
        sample_rate: Sampling frequency in hertz.

    Raises:
        ValueError: If either sequence is empty, not one-dimensional or not
            finite, if a magnitude lies outside ``0..255`` or if the sample
            rate is not a positive finite number.
    """

    magnitudes: np.ndarray
    samples: np.ndarray
    sample_rate: float

    def __post_init__(self) -> None:
        magnitudes = _as_vector(self.magnitudes, "magnitudes")
        if magnitudes.min() < 0 or magnitudes.max() > 255:
            raise ValueError("magnitudes must lie in the range 0..255")
        samples = _as_vector(self.samples, "samples")
        try:
            sample_rate = float(self.sample_rate)
        except (TypeError, ValueError):
            raise ValueError(
                f"sample_rate must be a number, got {self.sample_rate!r}"
            ) from None
        if not math.isfinite(sample_rate) or sample_rate <= 0.0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate!r}")
        object.__setattr__(self, "magnitudes", magnitudes)
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "sample_rate", sample_rate)

    @property
    def bin_count(self) -> int:
        return int(self.magnitudes.size)

    @property
    def frame_length(self) -> int:
        return int(self.samples.size)


@dataclass(frozen=True)
class AnalysisResult:
    """Everything the engine reports for one frame."""

    loudness_delta: float
    spectral_centroid_delta: float
    spectral_flux: float
    key: str
    key_confidence: float
    color: OklchColor
    note: str
    pitch: float = 0.0

    @property
    def is_significant(self) -> bool:
        """``True`` when the frame changed enough to be worth drawing."""
        return (
            abs(self.loudness_delta) > SIGNIFICANT_LOUDNESS_DELTA
            or abs(self.spectral_centroid_delta) > SIGNIFICANT_CENTROID_DELTA
            or abs(self.spectral_flux) > SIGNIFICANT_FLUX
        )

    @property
    def key_color(self) -> OklchColor:
        return key_color(self.key)

    def as_dict(self) -> dict[str, Any]:
        """Return the result with colours rendered as CSS strings."""
        return {
            "loudnessDelta": self.loudness_delta,
            "spectralCentroidDelta": self.spectral_centroid_delta,
            "spectralFlux": self.spectral_flux,
            "key": self.key,
            "keyConfidence": self.key_confidence,
            "color": self.color.css(),
            "note": self.note,
            "pitch": self.pitch,
        }


class AnalysisSession:
    """State carried between frames of one recording.

    Args:
        expected_bin_count: Number of magnitude bins every frame must have.
            When ``None`` the count of the first frame is adopted.
        expected_frame_length: Number of samples every frame must have.
            When ``None`` the length of the first frame is adopted.
        accumulator: Pitch-class histogram to use.  A default
            :class:`PitchClassAccumulator` is created when omitted.
        key_tracker: Key stability state machine to use.  A default
            :class:`KeyStabilityTracker` is created when omitted.
    """

    def __init__(
        self,
        expected_bin_count: Optional[int] = None,
        expected_frame_length: Optional[int] = None,
        *,
        accumulator: Optional[PitchClassAccumulator] = None,
        key_tracker: Optional[KeyStabilityTracker] = None,
    ) -> None:
        self._configured_bin_count = expected_bin_count
        self._configured_frame_length = expected_frame_length
        self.expected_bin_count: Optional[int] = expected_bin_count
        self.expected_frame_length: Optional[int] = expected_frame_length
        self.accumulator = accumulator if accumulator is not None else PitchClassAccumulator()
        self.key_tracker = key_tracker if key_tracker is not None else KeyStabilityTracker()
        self.previous_loudness: Optional[float] = None
        self.previous_spectral_centroid: Optional[float] = None
        self.previous_magnitude_spectrum: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    @property
    def pitch_class_histogram(self) -> np.ndarray:
        return self.accumulator.histogram

    @property
    def pitch_class_weights(self) -> np.ndarray:
        return self.accumulator.weights

    @property
    def histogram_update_count(self) -> int:
        return self.accumulator.update_count

    @property
    def current_key(self) -> str:
        committed = self.key_tracker.committed
        return committed.label if committed is not None else DETECTING_LABEL

    @property
    def current_key_confidence(self) -> float:
        return self.key_tracker.committed_confidence

    @property
    def key_stability_counter(self) -> int:
        return self.key_tracker.counter

    # ------------------------------------------------------------------
    def check_frame(self, frame: AnalysisFrame) -> None:
        """Validate ``frame`` against the session's frame shape.

        The first frame fixes any shape that was not configured up front.

        Raises:
            ValueError: If the bin count or frame length differs from the
                session's expected values.
        """
        if (
            self.expected_bin_count is not None
            and frame.bin_count != self.expected_bin_count
        ):
            raise ValueError(
                f"frame has {frame.bin_count} magnitude bins, "
                f"session expects {self.expected_bin_count}"
            )
        if (
            self.expected_frame_length is not None
            and frame.frame_length != self.expected_frame_length
        ):
            raise ValueError(
                f"frame has {frame.frame_length} samples, "
                f"session expects {self.expected_frame_length}"
            )

        if self.expected_bin_count is None:
            self.expected_bin_count = frame.bin_count
            logger.debug("Session adopted %d magnitude bins", frame.bin_count)
        if self.expected_frame_length is None:
            self.expected_frame_length = frame.frame_length
            logger.debug("Session adopted a frame length of %d", frame.frame_length)

    def process(self, frame: AnalysisFrame) -> AnalysisResult:
        return process(frame, self)

    def reset(self) -> None:
        reset(self)


def process(frame: AnalysisFrame, session: AnalysisSession) -> AnalysisResult:
    """Analyse one frame and advance ``session``.

    Loudness, spectral centroid and flux are computed against the previous
    frame, the pitch is estimated independently, a detected pitch is added
    to the histogram and the key estimate is refreshed.

    Args:
        frame: The frame to analyse.
        session: State of the current recording, updated in place.

    Returns:
        The :class:`AnalysisResult` for ``frame``.

    Raises:
        ValueError: If ``frame`` does not match the session's frame shape.
    """

    session.check_frame(frame)

    level = loudness(frame.samples)
    centroid = spectral_centroid(frame.magnitudes, frame.sample_rate)
    flux = spectral_flux(frame.magnitudes, session.previous_magnitude_spectrum)
    loudness_delta = delta(level, session.previous_loudness)
    centroid_delta = delta(centroid, session.previous_spectral_centroid)

    session.previous_loudness = level
    session.previous_spectral_centroid = centroid
    session.previous_magnitude_spectrum = frame.magnitudes.astype(np.float64)

    pitch = detect_pitch(frame.samples, frame.sample_rate)
    pitch_class = frequency_to_pitch_class(pitch)
    if pitch_class is not None:
        session.accumulator.update(pitch_class, pitch_weight(level, centroid))

    estimate, confidence = estimate_key(session.accumulator, session.key_tracker)

    note = pitch_class.sharp_name if pitch_class is not None else NO_NOTE_LABEL
    color = dynamic_note_color(note, loudness_delta, centroid_delta, flux)

    return AnalysisResult(
        loudness_delta=loudness_delta,
        spectral_centroid_delta=centroid_delta,
        spectral_flux=flux,
        key=key_label(estimate),
        key_confidence=confidence,
        color=color,
        note=note,
        pitch=pitch,
    )


def reset(session: AnalysisSession) -> None:
    """Restore ``session`` to the state of a freshly created one.

    Safe to call at any time and any number of times.
    """
    session.accumulator.reset()
    session.key_tracker.reset()
    session.previous_loudness = None
    session.previous_spectral_centroid = None
    session.previous_magnitude_spectrum = None
    session.expected_bin_count = session._configured_bin_count
    session.expected_frame_length = session._configured_frame_length
    logger.debug("Analysis session reset")


__all__ = ["AnalysisFrame", "AnalysisResult", "AnalysisSession", "process", "reset"]
