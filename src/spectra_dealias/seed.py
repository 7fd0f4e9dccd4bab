"""
Selection of the unaliased anchor gate of a cloud layer.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Optional

from .chirps import ChirpTable
from .config import DealiasConfig
from .constants import SEED_TIE_TOLERANCE
from .detection import NoiseEstimate
from .layers import CloudLayer, has_signal
from .moments import compute_moments
from .result import GateOutcome, PartialResult

logger = logging.getLogger(__name__)


@dataclass
class SeedResult:
    """
    Anchor gate of a layer and the raw moments of the layer.

    Attributes
    ----------
    idx0 : int or None
        Seed gate, None if no clean signal was found
    no_clean_signal : bool
        True if no gate qualifies as seed
    raw : PartialResult
        Moments of the untouched spectra of every gate with signal
    """

    idx0: Optional[int]
    no_clean_signal: bool
    raw: PartialResult = field(default_factory=PartialResult)

    @property
    def vm0(self) -> float:
        """Raw mean velocity of the seed gate."""
        if self.idx0 is None:
            return np.nan
        return self.raw.only(self.idx0).outcomes[0].moments["vm"]


def raw_layer_moments(
    layer: CloudLayer,
    spectra: np.ndarray,
    chirps: ChirpTable,
    noise: NoiseEstimate,
    config: DealiasConfig,
) -> PartialResult:
    """Moments of the untouched, possibly aliased spectra of a layer."""
    raw = PartialResult()
    nfft = chirps.nfft
    for gate in layer.gates():
        seq = chirps.sequence_of(gate)
        spectrum = spectra[gate, : nfft[seq]]
        if not has_signal(spectrum, config.min_total_power):
            continue
        moments = compute_moments(
            spectrum, chirps.velocity_of(seq), chirps.n_avg[seq],
            noise=noise.at(gate), **config.moment_kwargs()
        )
        raw.add(GateOutcome(gate=gate, moments=moments))
    return raw


def find_seed_gate(
    layer: CloudLayer,
    spectra: np.ndarray,
    chirps: ChirpTable,
    noise: NoiseEstimate,
    alias_flag: np.ndarray,
    config: DealiasConfig,
) -> SeedResult:
    """
    Find the gate of a layer most likely to be unaliased.

    Among the gates with significant signal that the detector did not flag
    as alias candidates, the one with the smallest raw |vm| is chosen;
    velocities close to zero are the least likely to have wrapped. Ties go
    to the lowest gate index.

    Parameters
    ----------
    layer : CloudLayer
        Layer to search
    spectra : np.ndarray
        Linear spectra, shape (n_gates, n_bins)
    chirps : ChirpTable
        Velocity axes and range offsets
    noise : NoiseEstimate
        Noise levels per gate
    alias_flag : np.ndarray
        Alias candidate flags from the detector
    config : DealiasConfig
        Processing options

    Returns
    -------
    SeedResult
    """
    raw = raw_layer_moments(layer, spectra, chirps, noise, config)

    gates = np.array(raw.gates, dtype="int64")
    vm = raw.vm()
    clean = np.isfinite(vm)
    if gates.size:
        clean &= ~alias_flag[gates]

    if not clean.any():
        logger.debug(f"Layer {layer.base}-{layer.top}: no clean signal")
        return SeedResult(idx0=None, no_clean_signal=True, raw=raw)

    candidates = np.where(clean)[0]
    magnitude = np.abs(vm[candidates])
    ties = np.isclose(magnitude, magnitude.min(), rtol=0, atol=SEED_TIE_TOLERANCE)
    best = candidates[np.argmax(ties)]
    idx0 = int(gates[best])
    logger.debug(f"Layer {layer.base}-{layer.top}: seed gate {idx0}, vm = {vm[best]:.3f} m/s")
    return SeedResult(idx0=idx0, no_clean_signal=False, raw=raw)
