"""Build analysis frames from raw audio.

:class:`SpectrumAnalyser` turns a block of float samples into an
:class:`~keyhue.session.AnalysisFrame` with the same conventions as the
browser ``AnalyserNode`` the visualiser reads from: a Blackman-windowed
FFT, exponential smoothing between calls and a decibel range mapped onto
unsigned bytes.  It lets offline tools and tests feed the engine exactly
what a live capture would.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.fft import rfft
from scipy.signal import get_window

from .constants import (
    FFT_SIZE,
    MAX_DECIBELS,
    MIN_DECIBELS,
    SAMPLE_RATE,
    SMOOTHING_TIME_CONSTANT,
)
from .session import AnalysisFrame


class SpectrumAnalyser:
    """Stateful magnitude-spectrum analyser.

    Parameters
    ----------
    fft_size:
        Number of samples per frame.  Must be a power of two of at least
        32.  The magnitude spectrum has ``fft_size // 2`` bins.
    sample_rate:
        Sampling frequency attached to produced frames.
    smoothing_time_constant:
        Weight of the previous spectrum when smoothing, in ``[0, 1)``.
    min_decibels, max_decibels:
        Decibel range mapped onto the byte values ``0`` and ``255``.
    """

    def __init__(
        self,
        fft_size: int = FFT_SIZE,
        sample_rate: float = SAMPLE_RATE,
        smoothing_time_constant: float = SMOOTHING_TIME_CONSTANT,
        min_decibels: float = MIN_DECIBELS,
        max_decibels: float = MAX_DECIBELS,
    ) -> None:
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing_time_constant < 1.0:
            raise ValueError("smoothing_time_constant must lie in [0, 1)")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.fft_size = fft_size
        self.sample_rate = float(sample_rate)
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        # Periodic Blackman window, matching the Web Audio definition.
        self.window: np.ndarray = get_window("blackman", fft_size, fftbins=True)
        self._smoothed: Optional[np.ndarray] = None

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def _latest_block(self, samples: np.ndarray) -> np.ndarray:
        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim == 2:
            # Down-mix multichannel input to mono
            samples = samples.mean(axis=1)
        samples = samples.reshape(-1)
        if samples.size >= self.fft_size:
            return samples[-self.fft_size :]
        block = np.zeros(self.fft_size, dtype=np.float64)
        block[self.fft_size - samples.size :] = samples
        return block

    def magnitudes(self, block: np.ndarray) -> np.ndarray:
        """Return the smoothed, byte-scaled spectrum of ``block``."""
        spectrum = np.abs(rfft(block * self.window))[: self.bin_count] / self.fft_size
        if self._smoothed is None:
            smoothed = (1.0 - self.smoothing_time_constant) * spectrum
        else:
            smoothed = (
                self.smoothing_time_constant * self._smoothed
                + (1.0 - self.smoothing_time_constant) * spectrum
            )
        self._smoothed = smoothed

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(smoothed)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (decibels - self.min_decibels))
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def frame(self, samples: np.ndarray) -> AnalysisFrame:
        """Return an :class:`AnalysisFrame` for the most recent samples.

        The last ``fft_size`` samples are used; shorter input is padded with
        leading zeros.
        """
        block = self._latest_block(samples)
        return AnalysisFrame(
            magnitudes=self.magnitudes(block),
            samples=block.astype(np.float32),
            sample_rate=self.sample_rate,
        )

    def reset(self) -> None:
        self._smoothed = None


__all__ = ["SpectrumAnalyser"]
