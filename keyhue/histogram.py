"""Recency-weighted pitch-class histogram.

This module provides the :class:`PitchClassAccumulator` used by
:class:`~keyhue.session.AnalysisSession` to collect tonal evidence.  Each
accepted pitch detection decays the whole histogram before adding its
weight, so the key estimator sees a sliding profile dominated by recent
notes rather than a flat lifetime average.
"""

from __future__ import annotations

import numpy as np

from .constants import (
    DECAY_FACTOR,
    RESCALE_CEILING,
    RESCALE_INTERVAL,
    WEIGHT_CENTROID_FLOOR,
    WEIGHT_CENTROID_SCALE,
    WEIGHT_LOUDNESS_RANGE,
)
from .pitch import PitchClass


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def pitch_weight(loudness: float, spectral_centroid: float) -> float:
    """Return the evidence weight of a pitch detection.

    Parameters
    ----------
    loudness:
        Frame loudness in dBFS.  ``-40`` dB and below contributes nothing,
        ``0`` dB contributes fully.
    spectral_centroid:
        Frame spectral centroid in hertz.  Dark frames still count for half.

    Returns
    -------
    float
        Weight in ``[0, 1]``.
    """

    loudness_weight = _clamp(
        (loudness + WEIGHT_LOUDNESS_RANGE) / WEIGHT_LOUDNESS_RANGE, 0.0, 1.0
    )
    spectral_weight = _clamp(
        spectral_centroid / WEIGHT_CENTROID_SCALE, WEIGHT_CENTROID_FLOOR, 1.0
    )
    return loudness_weight * spectral_weight


class PitchClassAccumulator:
    """Exponentially decaying histogram over the twelve pitch classes.

    Two parallel arrays are maintained: ``histogram`` feeds the key
    estimator while ``weights`` tracks the raw confidence mass.  Both are
    decayed and rescaled identically.

    Parameters
    ----------
    decay:
        Multiplier applied to every bin before each update.
    rescale_interval:
        Number of accepted updates between rescale checks.
    rescale_ceiling:
        Histogram maximum above which a rescale divides both arrays by it.
    """

    def __init__(
        self,
        decay: float = DECAY_FACTOR,
        rescale_interval: int = RESCALE_INTERVAL,
        rescale_ceiling: float = RESCALE_CEILING,
    ) -> None:
        self.decay: float = decay
        self.rescale_interval: int = max(int(rescale_interval), 1)
        self.rescale_ceiling: float = rescale_ceiling
        self.histogram: np.ndarray = np.zeros(12, dtype=np.float64)
        self.weights: np.ndarray = np.zeros(12, dtype=np.float64)
        self.update_count: int = 0

    def update(self, pitch_class: PitchClass, weight: float) -> None:
        """Decay all bins and add ``weight`` to ``pitch_class``."""
        weight = max(float(weight), 0.0)
        self.histogram *= self.decay
        self.weights *= self.decay
        self.histogram[int(pitch_class)] += weight
        self.weights[int(pitch_class)] += weight
        self.update_count += 1

        if self.update_count % self.rescale_interval == 0:
            peak = float(np.max(self.histogram))
            if peak > self.rescale_ceiling:
                self.histogram /= peak
                self.weights /= peak

    def total(self) -> float:
        return float(np.sum(self.histogram))

    def normalized(self) -> np.ndarray:
        """Return the histogram scaled to sum to one (zeros if empty)."""
        total = self.total()
        if total == 0.0:
            return np.zeros_like(self.histogram)
        return self.histogram / total

    def reset(self) -> None:
        self.histogram = np.zeros(12, dtype=np.float64)
        self.weights = np.zeros(12, dtype=np.float64)
        self.update_count = 0


__all__ = ["pitch_weight", "PitchClassAccumulator"]
