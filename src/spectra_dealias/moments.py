"""
Noise estimation and radar moments of a single Doppler spectrum.

The de-aliasing calls compute_moments() as a black box: spectrum, velocity
axis, number of averages and (optionally) a noise estimate in, the moments
and the noise used out.
"""

import numpy as np
from typing import Optional, Tuple
from scipy import ndimage
from pyart.util import estimate_noise_hs74

from .constants import (
    MOMENT_ORDER,
    DEFAULT_HIGHEST_MOMENT,
    DEFAULT_NOISE_MODE,
    DEFAULT_NOISE_FACTOR,
    DEFAULT_MIN_CONSECUTIVE_BINS,
    DEFAULT_MIN_TOTAL_POWER,
)


def estimate_noise(spectrum: np.ndarray, n_avg: float = 1) -> Tuple[float, float]:
    """
    Estimate the noise floor of a Doppler spectrum.

    Uses the method of Hildebrand and Sekhon (1974) through Py-ART.

    Parameters
    ----------
    spectrum : np.ndarray
        Doppler spectrum in linear units, NaN for missing bins
    n_avg : float, optional
        Number of incoherent spectral averages (default: 1)

    Returns
    -------
    meannoise : float
        Mean power of the bins identified as noise
    peaknoise : float
        Largest power among the bins identified as noise

    Notes
    -----
    Returns (nan, nan) when the spectrum holds no finite value.

    References
    ----------
    P. H. Hildebrand and R. S. Sekhon, Objective Determination of the Noise
    Level in Doppler Spectra. Journal of Applied Meteorology, 1974, 13, 808-811.
    """
    values = spectrum[np.isfinite(spectrum)]
    if values.size == 0:
        return np.nan, np.nan
    meannoise, _, _, nnoise = estimate_noise_hs74(values, navg=n_avg)
    peaknoise = np.sort(values)[int(nnoise) - 1]
    return float(meannoise), float(peaknoise)


def signal_threshold(
    meannoise: float,
    peaknoise: float,
    noise_mode: str = DEFAULT_NOISE_MODE,
    noise_factor: float = DEFAULT_NOISE_FACTOR,
) -> float:
    """Power above which a bin may be signal."""
    if noise_mode == "mean":
        return meannoise * noise_factor
    if noise_mode == "peak":
        return peaknoise * noise_factor
    raise ValueError(f"Unknown noise mode: {noise_mode}")


def significant_bins(
    spectrum: np.ndarray,
    threshold: float,
    min_bins: int = DEFAULT_MIN_CONSECUTIVE_BINS,
) -> np.ndarray:
    """
    Mask of bins belonging to runs of at least min_bins consecutive bins
    above threshold.

    Parameters
    ----------
    spectrum : np.ndarray
        Doppler spectrum, 1-D
    threshold : float
        Power threshold
    min_bins : int, optional
        Minimum run length (default: 5)

    Returns
    -------
    np.ndarray
        Boolean mask, same shape as spectrum
    """
    if not np.isfinite(threshold):
        return np.zeros(spectrum.shape, dtype=bool)
    above = np.isfinite(spectrum) & (spectrum > threshold)
    labels, n_runs = ndimage.label(above)
    if n_runs == 0:
        return above
    run_lengths = np.bincount(labels.ravel())
    keep = run_lengths >= min_bins
    keep[0] = False
    return keep[labels]


def empty_moments(meannoise: float = np.nan, peaknoise: float = np.nan) -> dict:
    """Moments dict with every moment set to NaN."""
    result = {name: np.nan for name in MOMENT_ORDER}
    result["meannoise"] = meannoise
    result["peaknoise"] = peaknoise
    return result


def compute_moments(
    spectrum: np.ndarray,
    velocity: np.ndarray,
    n_avg: float = 1,
    noise: Optional[Tuple[float, float]] = None,
    highest_moment: str = DEFAULT_HIGHEST_MOMENT,
    noise_mode: str = DEFAULT_NOISE_MODE,
    noise_factor: float = DEFAULT_NOISE_FACTOR,
    min_bins: int = DEFAULT_MIN_CONSECUTIVE_BINS,
    min_total_power: float = DEFAULT_MIN_TOTAL_POWER,
) -> dict:
    """
    Radar moments of one Doppler spectrum.

    Reflectivity, mean Doppler velocity, spectral width, skewness and kurtosis
    are computed from the noise-subtracted power of the significant bins.

    Parameters
    ----------
    spectrum : np.ndarray
        Doppler spectrum in linear units, NaN for missing bins
    velocity : np.ndarray
        Velocity bin centres, same length as spectrum
    n_avg : float, optional
        Number of spectral averages, used by the noise estimate
    noise : tuple of float, optional
        (meannoise, peaknoise). Estimated from the spectrum if not given.
    highest_moment : str, optional
        Highest moment to compute; higher ones are NaN (default: 'kurt')
    noise_mode : str, optional
        'peak' or 'mean' noise discrimination (default: 'peak')
    noise_factor : float, optional
        Threshold factor on the noise level (default: 1.2)
    min_bins : int, optional
        Minimum number of consecutive significant bins (default: 5)
    min_total_power : float, optional
        Spectra with less total power hold no signal (default: 1e-20)

    Returns
    -------
    dict
        Keys 'Ze', 'vm', 'sigma', 'skew', 'kurt', 'peaknoise', 'meannoise'.
        Moments are NaN when no significant signal is found.
    """
    spectrum = np.asarray(spectrum, dtype="float64")
    velocity = np.asarray(velocity, dtype="float64")
    if spectrum.shape != velocity.shape:
        raise ValueError(
            f"spectrum shape {spectrum.shape} does not match velocity shape {velocity.shape}"
        )

    finite = np.isfinite(spectrum)
    if not finite.any() or np.nansum(spectrum) < min_total_power:
        return empty_moments()

    if noise is None:
        meannoise, peaknoise = estimate_noise(spectrum, n_avg)
    else:
        meannoise, peaknoise = noise
    result = empty_moments(meannoise, peaknoise)

    threshold = signal_threshold(meannoise, peaknoise, noise_mode, noise_factor)
    signal = significant_bins(spectrum, threshold, min_bins)
    if not signal.any():
        return result

    power = spectrum[signal] - meannoise
    vel = velocity[signal]
    ze = np.sum(power)
    if not ze > 0:
        return result

    order = MOMENT_ORDER.index(highest_moment)
    result["Ze"] = ze
    if order < 1:
        return result

    weights = power / ze
    vm = np.sum(vel * weights)
    result["vm"] = vm
    if order < 2:
        return result

    vel_diff = vel - vm
    vel_diff2 = vel_diff * vel_diff
    sigma = np.sqrt(np.abs(np.sum(weights * vel_diff2)))
    result["sigma"] = sigma
    if order < 3 or sigma == 0:
        return result

    sigma2 = sigma * sigma
    result["skew"] = np.sum(weights * vel_diff * vel_diff2) / (sigma * sigma2)
    if order < 4:
        return result

    result["kurt"] = np.sum(weights * vel_diff2 * vel_diff2) / (sigma2 * sigma2)
    return result
