"""
Filter for hardware-induced spectral spikes of the high resolution mode.

The acquisition electronics add narrow spikes at fixed velocity bins
(around zero velocity) of some range gates, independent of the
atmospheric signal.
"""

import logging
import numpy as np
from typing import List, Optional, Tuple

from .chirps import ChirpTable
from .config import ArtifactTemplate, DealiasConfig
from .detection import NoiseEstimate
from .moments import signal_threshold, significant_bins

logger = logging.getLogger(__name__)


class SpikeFilter:
    """
    Detects hardware spikes in a spectrum matrix.

    The filter maintains a boolean contamination mask of the same shape as
    the spectra where True = contaminated bin. Gates where every candidate
    bin is a spike and no other signal remains are fully contaminated and
    their whole mask row is set.

    Parameters
    ----------
    spectra : np.ndarray
        Linear spectra, shape (n_gates, n_bins)
    chirps : ChirpTable
        Velocity axes and range offsets of the profile
    template : ArtifactTemplate
        Spike positions and detection factor

    Examples
    --------
    >>> sf = SpikeFilter(spectra, chirps, config.artifact)
    >>> if sf.applies():
    ...     sf.flag_spikes(noise, config)
    ...     spectra = sf.apply()
    """

    def __init__(self, spectra: np.ndarray, chirps: ChirpTable, template: ArtifactTemplate):
        self.spectra = spectra
        self.chirps = chirps
        self.template = template
        self.n_gates = spectra.shape[0]
        self._contaminated = np.zeros(spectra.shape, dtype=bool)
        self._fully_contaminated = np.zeros(self.n_gates, dtype=bool)
        self._filter_history: List[str] = []

    @property
    def contamination_mask(self) -> np.ndarray:
        """Boolean mask where True = contaminated bin."""
        return self._contaminated

    @property
    def fully_contaminated(self) -> np.ndarray:
        """Boolean mask of gates holding nothing but spikes."""
        return self._fully_contaminated

    @property
    def partially_contaminated(self) -> np.ndarray:
        """Gates with spikes on top of real signal."""
        return self._contaminated.any(axis=1) & ~self._fully_contaminated

    def applies(self) -> bool:
        """True if the profile was recorded in the high resolution mode."""
        return self.n_gates == self.template.n_gates

    def summary(self) -> str:
        """Return a summary of the filter."""
        lines = [
            f"SpikeFilter Summary:",
            f"  Total gates: {self.n_gates:,}",
            f"  Fully contaminated: {int(self._fully_contaminated.sum()):,}",
            f"  Partially contaminated: {int(self.partially_contaminated.sum()):,}",
            f"  Steps applied ({len(self._filter_history)}):",
        ]
        for f in self._filter_history:
            lines.append(f"    - {f}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SpikeFilter(full={int(self._fully_contaminated.sum()):,}/{self.n_gates:,}, "
            f"partial={int(self.partially_contaminated.sum()):,})"
        )

    def _candidate_bins(self, velocity: np.ndarray) -> Tuple[np.ndarray, int, int]:
        """Candidate spike bins and the first/last bin of the candidate window."""
        zero_bin = int(np.argmin(np.abs(velocity)))
        offsets = np.asarray(self.template.bin_offsets)
        candidates = zero_bin + offsets
        candidates = candidates[(candidates >= 0) & (candidates < velocity.size)]
        return candidates, zero_bin + int(offsets.min()), zero_bin + int(offsets.max())

    def _is_spike(self, spectrum: np.ndarray, candidates: np.ndarray, lo: int, hi: int,
                  fallback: float) -> np.ndarray:
        """Template match: candidate bins standing out of a flat neighbourhood."""
        flank = np.r_[lo - 2:lo, hi + 1:hi + 3]
        flank = flank[(flank >= 0) & (flank < spectrum.size)]
        reference = np.nanmedian(spectrum[flank]) if flank.size else np.nan
        if not np.isfinite(reference):
            reference = fallback
        values = spectrum[candidates]
        return np.isfinite(values) & (values > self.template.spike_factor * reference)

    def flag_spikes(self, noise: NoiseEstimate, config: DealiasConfig) -> 'SpikeFilter':
        """
        Flag spike bins and fully contaminated gates.

        Parameters
        ----------
        noise : NoiseEstimate
            Noise levels of the profile, used for the remaining-signal test
        config : DealiasConfig
            Noise discrimination options

        Returns
        -------
        self : SpikeFilter
            Returns self for method chaining
        """
        gates = range(self.n_gates) if self.template.gates is None else self.template.gates
        nfft = self.chirps.nfft
        n_spiky = 0

        for gate in gates:
            if not 0 <= gate < self.n_gates:
                logger.warning(f"Spike template gate {gate} outside profile. Skipped.")
                continue
            seq = self.chirps.sequence_of(gate)
            spectrum = self.spectra[gate, : nfft[seq]]
            if not np.isfinite(spectrum).any():
                continue

            meannoise, peaknoise = noise.at(gate)
            candidates, lo, hi = self._candidate_bins(self.chirps.velocity_of(seq))
            spikes = self._is_spike(spectrum, candidates, lo, hi, fallback=meannoise)
            if not spikes.any():
                continue
            n_spiky += 1
            self._contaminated[gate, candidates[spikes]] = True

            if spikes.all():
                cleaned = spectrum.copy()
                cleaned[candidates] = meannoise
                threshold = signal_threshold(meannoise, peaknoise, config.noise_mode, config.noise_factor)
                if not significant_bins(cleaned, threshold, config.min_consecutive_bins).any():
                    self._contaminated[gate, :] = True
                    self._fully_contaminated[gate] = True

        self._filter_history.append(
            f"spikes at offsets {tuple(self.template.bin_offsets)} "
            f"(factor {self.template.spike_factor}): {n_spiky} gate(s)"
        )
        return self

    def apply(self) -> np.ndarray:
        """
        Return a copy of the spectra with fully contaminated gates set to NaN.

        Partially contaminated gates are left untouched.
        """
        cleaned = self.spectra.copy()
        cleaned[self._fully_contaminated, :] = np.nan
        n_partial = int(self.partially_contaminated.sum())
        if n_partial:
            logger.debug(f"{n_partial} partially contaminated gate(s) left uncorrected")
        return cleaned


def filter_artifacts(
    spectra: np.ndarray,
    chirps: ChirpTable,
    noise: NoiseEstimate,
    config: DealiasConfig,
) -> Tuple[np.ndarray, Optional[SpikeFilter]]:
    """
    Remove gates holding only hardware spikes, if in the high resolution mode.

    Parameters
    ----------
    spectra : np.ndarray
        Linear spectra, shape (n_gates, n_bins)
    chirps : ChirpTable
        Velocity axes and range offsets
    noise : NoiseEstimate
        Noise levels from the alias detection
    config : DealiasConfig
        Processing options including the spike template

    Returns
    -------
    spectra : np.ndarray
        Spectra with fully contaminated gates invalidated (the input array
        itself when the filter does not apply)
    spike_filter : SpikeFilter or None
        The applied filter, None when the acquisition mode does not match
    """
    sf = SpikeFilter(spectra, chirps, config.artifact)
    if not sf.applies():
        return spectra, None
    sf.flag_spikes(noise, config)
    logger.debug(sf.summary())
    return sf.apply(), sf
