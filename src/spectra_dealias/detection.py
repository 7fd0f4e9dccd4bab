"""
Noise floor estimation and detection of range gates with candidate aliasing.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Tuple

from .chirps import ChirpTable
from .config import DealiasConfig
from .moments import estimate_noise, signal_threshold, significant_bins

logger = logging.getLogger(__name__)


@dataclass
class NoiseEstimate:
    """
    Noise levels of every range gate of a profile.

    Attributes
    ----------
    peaknoise : np.ndarray
        Largest noise bin per gate, shape (n_gates,)
    meannoise : np.ndarray
        Mean noise per gate, shape (n_gates,)
    """

    peaknoise: np.ndarray
    meannoise: np.ndarray

    @classmethod
    def empty(cls, n_gates: int) -> "NoiseEstimate":
        return cls(
            peaknoise=np.full(n_gates, np.nan),
            meannoise=np.full(n_gates, np.nan),
        )

    def at(self, gate: int) -> Tuple[float, float]:
        """(meannoise, peaknoise) of one gate, as expected by compute_moments."""
        return float(self.meannoise[gate]), float(self.peaknoise[gate])


def peak_near_nyquist(
    spectrum: np.ndarray,
    threshold: float,
    min_bins: int,
    margin: int,
) -> bool:
    """
    Check whether the dominant significant peak sits on a Nyquist edge.

    Parameters
    ----------
    spectrum : np.ndarray
        Valid bins of one Doppler spectrum
    threshold : float
        Signal threshold
    min_bins : int
        Minimum number of consecutive bins above threshold
    margin : int
        Number of bins from either edge counted as "near"

    Returns
    -------
    bool
        True if a significant run exists and its maximum lies within
        margin bins of the first or last bin
    """
    signal = significant_bins(spectrum, threshold, min_bins)
    if not signal.any():
        return False
    i_peak = int(np.argmax(np.where(signal, spectrum, -np.inf)))
    return i_peak < margin or i_peak >= spectrum.size - margin


def detect_aliasing(
    spectra: np.ndarray,
    chirps: ChirpTable,
    config: DealiasConfig,
) -> Tuple[NoiseEstimate, np.ndarray]:
    """
    Estimate noise levels and flag gates with candidate aliasing.

    A gate is an alias candidate when its dominant significant peak lies
    within config.nyquist_margin bins of either Nyquist edge of its chirp
    sequence. This is a symptom, not a confirmed diagnosis.

    Parameters
    ----------
    spectra : np.ndarray
        Linear spectra, shape (n_gates, n_bins)
    chirps : ChirpTable
        Velocity axes and range offsets of the profile
    config : DealiasConfig
        Processing options

    Returns
    -------
    noise : NoiseEstimate
        Mean and peak noise per gate (NaN for gates without significant
        signal)
    alias_flag : np.ndarray
        Boolean candidate flag per gate
    """
    n_gates = spectra.shape[0]
    noise = NoiseEstimate.empty(n_gates)
    alias_flag = np.zeros(n_gates, dtype=bool)
    nfft = chirps.nfft

    for gate in range(n_gates):
        seq = chirps.sequence_of(gate)
        spectrum = spectra[gate, : nfft[seq]]
        if not np.isfinite(spectrum).any():
            continue

        meannoise, peaknoise = estimate_noise(spectrum, chirps.n_avg[seq])
        threshold = signal_threshold(meannoise, peaknoise, config.noise_mode, config.noise_factor)
        if not significant_bins(spectrum, threshold, config.min_consecutive_bins).any():
            continue

        noise.meannoise[gate] = meannoise
        noise.peaknoise[gate] = peaknoise
        alias_flag[gate] = peak_near_nyquist(
            spectrum, threshold, config.min_consecutive_bins, config.nyquist_margin
        )

    logger.debug(f"Alias candidates: {alias_flag.sum()} of {n_gates} gates")
    return noise, alias_flag
