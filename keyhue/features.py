"""Per-frame spectral and loudness features.

The functions in this module are the stateless half of the feature
extractor.  :class:`~keyhue.session.AnalysisSession` keeps the one frame of
memory (previous loudness, centroid and magnitude spectrum) needed to turn
these values into deltas.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .constants import SILENCE_DB


def rms(samples: np.ndarray) -> float:
    """Return the root-mean-square level of ``samples`` (``0.0`` if empty)."""
    if samples.size == 0:
        return 0.0
    samples = samples.astype(np.float64, copy=False)
    return float(np.sqrt(np.mean(samples**2)))


def loudness(samples: np.ndarray, *, floor: float = SILENCE_DB) -> float:
    """Return the loudness of ``samples`` in dBFS.

    Parameters
    ----------
    samples:
        One-dimensional array of audio samples in ``[-1, 1]``.
    floor:
        Lowest value returned.  Digital silence maps directly to it.

    Returns
    -------
    float
        ``20 * log10(rms)`` clamped to ``floor``.
    """

    level = rms(samples)
    if level == 0.0:
        return floor
    return max(floor, 20.0 * float(np.log10(level)))


def spectral_centroid(magnitudes: np.ndarray, sample_rate: float) -> float:
    """Return the magnitude-weighted mean frequency of a spectrum.

    Bin ``i`` of an ``N`` bin spectrum is taken to sit at
    ``i * sample_rate / (2 * N)`` hertz.

    Parameters
    ----------
    magnitudes:
        Magnitude spectrum, one value per frequency bin.
    sample_rate:
        Sampling frequency of the frame the spectrum came from.

    Returns
    -------
    float
        Centroid in hertz, or ``0.0`` when the spectrum carries no energy.
    """

    mags = magnitudes.astype(np.float64, copy=False)
    total = float(np.sum(mags))
    if total == 0.0:
        return 0.0
    freqs = np.arange(mags.size, dtype=np.float64) * sample_rate / (2.0 * mags.size)
    return float(np.dot(freqs, mags) / total)


def spectral_flux(
    magnitudes: np.ndarray, previous: Optional[np.ndarray]
) -> float:
    """Return the signed mean change between two magnitude spectra.

    The differences are not rectified, so a decaying spectrum yields a
    negative flux.  Without a ``previous`` spectrum the flux is ``0.0``.
    """
    if previous is None or magnitudes.size == 0:
        return 0.0
    diff = magnitudes.astype(np.float64) - previous.astype(np.float64)
    return float(np.sum(diff) / magnitudes.size)


def delta(current: float, previous: Optional[float]) -> float:
    """Return ``current - previous`` or ``0.0`` when there is no previous."""
    if previous is None:
        return 0.0
    return current - previous


__all__ = ["rms", "loudness", "spectral_centroid", "spectral_flux", "delta"]
