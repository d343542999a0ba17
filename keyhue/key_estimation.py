"""Musical key estimation with a stability gate.

The pitch-class histogram is correlated with the Krumhansl-Kessler major
and minor profiles for all twelve tonics.  The best of the 24 candidates is
then passed through :class:`KeyStabilityTracker`, which only reports a key
once several consecutive frames agree, so the visible label does not
flicker between close candidates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np

from .constants import (
    DETECTING_LABEL,
    KEY_CHANGE_CONFIDENCE,
    KEY_SEPARATION_THRESHOLD,
    KEY_STABILITY_THRESHOLD,
    MAJOR_PROFILE,
    MIN_CONFIDENCE_THRESHOLD,
    MIN_HISTOGRAM_TOTAL,
    MIN_KEY_SAMPLES,
    MINOR_PROFILE,
    UNDETERMINED_LABEL,
)
from .histogram import PitchClassAccumulator
from .pitch import PitchClass

logger = logging.getLogger(__name__)


class Mode(Enum):
    MAJOR = "major"
    MINOR = "minor"


@dataclass(frozen=True)
class Key:
    """A tonic and a mode, e.g. ``Key(PitchClass.A, Mode.MINOR)``."""

    tonic: PitchClass
    mode: Mode

    @property
    def label(self) -> str:
        """Return the display label.

        Major keys are spelled with sharps; minor keys on a black-key tonic
        are spelled with flats (``"Bb minor"`` rather than ``"A# minor"``).
        """
        if self.mode is Mode.MINOR and self.tonic.is_black_key:
            return f"{self.tonic.flat_name} minor"
        return f"{self.tonic.sharp_name} {self.mode.value}"

    def __str__(self) -> str:
        return self.label


class KeyStatus(Enum):
    """Reasons for not reporting a key."""

    DETECTING = DETECTING_LABEL
    UNDETERMINED = UNDETERMINED_LABEL

    @property
    def label(self) -> str:
        return self.value


KeyEstimate = Union[Key, KeyStatus]


def key_label(estimate: KeyEstimate) -> str:
    """Render a key estimate as the string shown to callers."""
    return estimate.label


def pearson_correlation(a: np.ndarray, b: np.ndarray) -> float:
    """Return the Pearson correlation of ``a`` and ``b``.

    ``0.0`` is returned when either input has zero variance.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    a_diff = a - a.mean()
    b_diff = b - b.mean()
    denominator = float(np.sqrt(np.sum(a_diff**2) * np.sum(b_diff**2)))
    if denominator == 0.0:
        return 0.0
    return float(np.sum(a_diff * b_diff) / denominator)


def rotated_profile(profile: Sequence[float], tonic: PitchClass) -> np.ndarray:
    """Return ``profile`` shifted so its tonic weight sits on ``tonic``.

    The result is normalised to sum to one.
    """
    rotated = np.roll(np.asarray(profile, dtype=np.float64), int(tonic))
    return rotated / np.sum(rotated)


def key_correlations(histogram: np.ndarray) -> list[tuple[Key, float]]:
    """Correlate ``histogram`` with all 24 major and minor keys.

    Args:
        histogram: Twelve pitch-class weights, ideally normalised.

    Returns:
        ``(key, correlation)`` pairs ordered by tonic, major before minor.
    """

    results: list[tuple[Key, float]] = []
    for tonic in PitchClass:
        for mode, profile in ((Mode.MAJOR, MAJOR_PROFILE), (Mode.MINOR, MINOR_PROFILE)):
            score = pearson_correlation(histogram, rotated_profile(profile, tonic))
            results.append((Key(tonic, mode), score))
    return results


def best_key(histogram: np.ndarray) -> tuple[Key, float, float]:
    """Return the best-matching key, its correlation and the runner-up score.

    Ties keep the first maximum found in tonic-then-mode order.
    """
    best: Optional[Key] = None
    best_score = -np.inf
    second_score = -np.inf
    for key, score in key_correlations(histogram):
        if score > best_score:
            second_score = best_score
            best_score = score
            best = key
        elif score > second_score:
            second_score = score
    assert best is not None
    return best, float(best_score), float(second_score)


class StabilityState(Enum):
    NO_EVIDENCE = "no_evidence"
    TENTATIVE = "tentative"
    COMMITTED = "committed"


class KeyStabilityTracker:
    """Hysteresis between the raw best key and the reported key.

    The tracker is a small state machine:

    * ``NO_EVIDENCE``: nothing is being counted.
    * ``TENTATIVE``: a candidate that differs from the committed key has
      been the best match for ``counter`` consecutive qualifying frames.
    * ``COMMITTED``: the committed key has been confirmed for at least
      ``threshold`` frames and is reported.

    A candidate qualifies when its confidence exceeds ``change_confidence``
    and, once a key has been committed, it also leads the runner-up by more
    than ``separation``.  Weak frames (best correlation at or below
    ``min_confidence``) clear the counter without forgetting the committed
    key.
    """

    def __init__(
        self,
        threshold: int = KEY_STABILITY_THRESHOLD,
        min_confidence: float = MIN_CONFIDENCE_THRESHOLD,
        separation: float = KEY_SEPARATION_THRESHOLD,
        change_confidence: float = KEY_CHANGE_CONFIDENCE,
    ) -> None:
        self.threshold: int = threshold
        self.min_confidence: float = min_confidence
        self.separation: float = separation
        self.change_confidence: float = change_confidence
        self.committed: Optional[Key] = None
        self.committed_confidence: float = 0.0
        self.candidate: Optional[Key] = None
        self.counter: int = 0

    @property
    def state(self) -> StabilityState:
        if self.committed is not None and self.counter >= self.threshold:
            return StabilityState.COMMITTED
        if self.candidate is not None:
            return StabilityState.TENTATIVE
        return StabilityState.NO_EVIDENCE

    def observe(
        self, key: Key, correlation: float, second_best: float
    ) -> tuple[KeyEstimate, float]:
        """Feed one frame's best key and return the key to report.

        Args:
            key: Best-matching key of the current frame.
            correlation: Its correlation with the histogram.
            second_best: Highest correlation among the other candidates.

        Returns:
            ``(estimate, confidence)`` where ``estimate`` is the committed
            key once it is stable and :attr:`KeyStatus.DETECTING` otherwise.
        """

        confidence = max(0.0, min(1.0, correlation))
        separation = correlation - second_best

        if correlation <= self.min_confidence:
            self.counter = 0
            self.candidate = None
        elif self.committed is not None and key == self.committed:
            self.counter += 1
            self.candidate = None
        elif confidence > self.change_confidence and (
            self.committed is None or separation > self.separation
        ):
            if key == self.candidate:
                self.counter += 1
            else:
                self.candidate = key
                self.counter = 1
            if self.counter >= self.threshold:
                self._commit(key, confidence)
        else:
            self.counter = 0
            self.candidate = None

        if self.state is StabilityState.COMMITTED:
            return self.committed, self.committed_confidence  # type: ignore[return-value]
        return KeyStatus.DETECTING, confidence

    def _commit(self, key: Key, confidence: float) -> None:
        logger.info(
            "Key changed from %s to %s (confidence %.2f)",
            self.committed.label if self.committed else DETECTING_LABEL,
            key.label,
            confidence,
        )
        self.committed = key
        self.committed_confidence = confidence
        self.candidate = None

    def reset(self) -> None:
        self.committed = None
        self.committed_confidence = 0.0
        self.candidate = None
        self.counter = 0


def estimate_key(
    accumulator: PitchClassAccumulator,
    tracker: KeyStabilityTracker,
    *,
    min_samples: int = MIN_KEY_SAMPLES,
    min_total: float = MIN_HISTOGRAM_TOTAL,
) -> tuple[KeyEstimate, float]:
    """Estimate the key from ``accumulator`` and gate it through ``tracker``.

    Args:
        accumulator: Pitch-class evidence collected so far.
        tracker: Stability state updated in place.
        min_samples: Detections required before any key is estimated.
        min_total: Histogram mass required to infer a key.

    Returns:
        ``(estimate, confidence)``.  Insufficient evidence yields
        ``(KeyStatus.DETECTING, 0.0)`` or ``(KeyStatus.UNDETERMINED, 0.0)``
        and leaves ``tracker`` untouched.
    """

    if accumulator.update_count < min_samples:
        return KeyStatus.DETECTING, 0.0
    if accumulator.total() < min_total:
        return KeyStatus.UNDETERMINED, 0.0

    key, correlation, second_best = best_key(accumulator.normalized())
    return tracker.observe(key, correlation, second_best)


__all__ = [
    "Mode",
    "Key",
    "KeyStatus",
    "KeyEstimate",
    "key_label",
    "pearson_correlation",
    "rotated_profile",
    "key_correlations",
    "best_key",
    "StabilityState",
    "KeyStabilityTracker",
    "estimate_key",
]
