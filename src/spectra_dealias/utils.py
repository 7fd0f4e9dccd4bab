"""
Utility functions for unit conversion and input validation.
"""
from __future__ import annotations
from typing import Optional
import numpy as np


def z2lin(array: np.ndarray) -> np.ndarray:
    """Convert from dB to linear units."""
    return 10.0 ** (np.asarray(array, dtype="float64") / 10.0)


def lin2z(array: np.ndarray) -> np.ndarray:
    """Convert from linear units to dB, NaN for non-positive values."""
    array = np.asarray(array, dtype="float64")
    out = np.full(array.shape, np.nan)
    positive = array > 0
    out[positive] = 10.0 * np.log10(array[positive])
    return out


def validate_profile_inputs(
    spectra,
    range_resolution: float,
    previous_vm=None,
) -> tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Check the shapes of one profile's inputs.

    Parameters
    ----------
    spectra : array-like
        Spectra, shape (n_gates, n_bins)
    range_resolution : float
        Range gate spacing
    previous_vm : array-like, optional
        Mean velocity of the previous time step, shape (n_gates,)

    Returns
    -------
    tuple
        (spectra, previous_vm) as float arrays

    Raises
    ------
    ValueError
        If an input is empty or its shape does not match the spectra
    """
    spectra = np.asarray(spectra, dtype="float64")
    if spectra.ndim != 2:
        raise ValueError(f"spectra must be 2-D (gates x velocity bins), got {spectra.ndim}-D")
    if spectra.size == 0:
        raise ValueError("spectra are empty")
    if spectra.shape[1] < 2:
        raise ValueError("spectra need at least 2 velocity bins")

    if not np.isfinite(range_resolution) or range_resolution <= 0:
        raise ValueError(f"range_resolution must be positive, got {range_resolution}")

    if previous_vm is not None:
        previous_vm = np.asarray(previous_vm, dtype="float64").ravel()
        if previous_vm.size != spectra.shape[0]:
            raise ValueError(
                f"previous_vm has {previous_vm.size} gates, spectra have {spectra.shape[0]}"
            )

    return spectra, previous_vm
