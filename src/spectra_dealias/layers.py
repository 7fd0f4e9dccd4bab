"""
Segmentation of a profile into cloud layers.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import List
from scipy import ndimage

from .chirps import ChirpTable
from .config import DealiasConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloudLayer:
    """
    Contiguous (gap-bridged) run of range gates with signal.

    Attributes
    ----------
    base : int
        Lowest range gate of the layer
    top : int
        Highest range gate of the layer (inclusive)
    """

    base: int
    top: int

    def __post_init__(self):
        if self.top < self.base:
            raise ValueError(f"Layer top {self.top} below base {self.base}")

    def __len__(self) -> int:
        return self.top - self.base + 1

    def __contains__(self, gate: int) -> bool:
        return self.base <= gate <= self.top

    def gates(self) -> range:
        return range(self.base, self.top + 1)


def has_signal(spectrum: np.ndarray, min_total_power: float) -> bool:
    """True if a spectrum holds any data with non-negligible total power."""
    return bool(np.isfinite(spectrum).any() and np.nansum(spectrum) >= min_total_power)


def gates_with_signal(
    spectra: np.ndarray,
    chirps: ChirpTable,
    min_total_power: float,
) -> np.ndarray:
    """Boolean mask of range gates with signal, shape (n_gates,)."""
    nfft = chirps.nfft
    return np.array([
        has_signal(spectra[gate, : nfft[chirps.sequence_of(gate)]], min_total_power)
        for gate in range(spectra.shape[0])
    ], dtype=bool)


def find_cloud_layers(
    spectra: np.ndarray,
    chirps: ChirpTable,
    range_resolution: float,
    config: DealiasConfig,
) -> List[CloudLayer]:
    """
    Group range gates with signal into cloud layers.

    Maximal runs of gates with signal are found first; runs separated by at
    most ceil(max_gap_distance / range_resolution) gates without signal are
    merged into one layer.

    Parameters
    ----------
    spectra : np.ndarray
        Linear spectra after artifact filtering, shape (n_gates, n_bins)
    chirps : ChirpTable
        Velocity axes and range offsets
    range_resolution : float
        Range gate spacing
    config : DealiasConfig
        Processing options (gap distance, power floor)

    Returns
    -------
    list of CloudLayer
        Disjoint layers ordered by increasing base
    """
    signal = gates_with_signal(spectra, chirps, config.min_total_power)
    labels, n_runs = ndimage.label(signal)
    if n_runs == 0:
        return []

    max_gap = config.gap_gates(range_resolution)
    runs = ndimage.find_objects(labels)

    layers = []
    base, top = runs[0][0].start, runs[0][0].stop - 1
    for run in runs[1:]:
        start, stop = run[0].start, run[0].stop - 1
        if start - top - 1 <= max_gap:
            top = stop
        else:
            layers.append(CloudLayer(base, top))
            base, top = start, stop
    layers.append(CloudLayer(base, top))

    logger.debug(f"{n_runs} signal run(s) merged into {len(layers)} layer(s), max gap {max_gap} gate(s)")
    return layers
