"""
Gate-by-gate unwrapping of Doppler spectra along a profile.

Starting next to an unaliased anchor gate, every spectrum is folded by
integer multiples of the Nyquist interval (2 * vn) so that its mean
velocity stays continuous with the previously processed gate.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional

from .chirps import ChirpTable
from .config import DealiasConfig
from .detection import NoiseEstimate, peak_near_nyquist
from .layers import has_signal
from .moments import compute_moments, signal_threshold
from .result import GateOutcome, PartialResult
from .status import StatusFlag

logger = logging.getLogger(__name__)


@dataclass
class Unfolded:
    """
    Spectrum of one gate after unfolding.

    Attributes
    ----------
    spectrum : np.ndarray
        Emitted spectrum (valid bins only)
    velocity : np.ndarray
        Velocity axis of the emitted spectrum
    moments : dict
        Moments of the emitted spectrum
    fold : int
        Number of Nyquist intervals the dominant peak was moved by
    shifted : bool
        True if spectrum or velocity axis differ from the raw ones
    boundary : bool
        True if the required fold exceeds the available velocity axis
    """

    spectrum: np.ndarray
    velocity: np.ndarray
    moments: dict
    fold: int = 0
    shifted: bool = False
    boundary: bool = False


def _threshold(moments: dict, config: DealiasConfig) -> float:
    return signal_threshold(
        moments["meannoise"], moments["peaknoise"], config.noise_mode, config.noise_factor
    )


def unfold_gate(
    spectrum: np.ndarray,
    velocity: np.ndarray,
    vn: float,
    n_avg: float,
    raw: dict,
    vm_guess: float,
    config: DealiasConfig,
) -> Unfolded:
    """
    Fold one spectrum towards a velocity guess.

    If the raw peak lies clear of the Nyquist edges the whole spectrum is
    moved by k = round((vm_guess - vm_raw) / (2 vn)) Nyquist intervals,
    i.e. k * 2 vn is added to its velocity axis. If the raw peak sits on an
    edge it is split across the wrap; the spectrum is then continued
    periodically over 2 * max_fold + 1 intervals and a window of the same
    length, centred on vm_guess, is cut out.

    Parameters
    ----------
    spectrum : np.ndarray
        Valid bins of the raw spectrum
    velocity : np.ndarray
        Velocity axis of the raw spectrum
    vn : float
        Nyquist velocity of the chirp sequence
    n_avg : float
        Number of spectral averages
    raw : dict
        Moments of the raw spectrum (from compute_moments)
    vm_guess : float
        Expected true mean velocity
    config : DealiasConfig
        Processing options (max_fold, noise discrimination)

    Returns
    -------
    Unfolded
        With boundary=True and the raw spectrum if the fold would need
        bins beyond the available velocity axis
    """
    span = 2.0 * vn
    unchanged = Unfolded(spectrum=spectrum, velocity=velocity, moments=raw)

    split_peak = peak_near_nyquist(
        spectrum, _threshold(raw, config), config.min_consecutive_bins, config.nyquist_margin
    )

    if not split_peak:
        fold = int(np.round((vm_guess - raw["vm"]) / span))
        if fold == 0:
            return unchanged
        if abs(fold) > config.max_fold:
            unchanged.boundary = True
            return unchanged
        folded_velocity = velocity + fold * span
        moments = compute_moments(
            spectrum, folded_velocity, n_avg,
            noise=(raw["meannoise"], raw["peaknoise"]), **config.moment_kwargs()
        )
        return Unfolded(spectrum, folded_velocity, moments, fold=fold, shifted=True)

    n = spectrum.size
    spectrum_ext = np.tile(spectrum, 2 * config.max_fold + 1)
    velocity_ext = np.concatenate([
        velocity + j * span for j in range(-config.max_fold, config.max_fold + 1)
    ])
    centre = int(np.argmin(np.abs(velocity_ext - vm_guess)))
    start = centre - n // 2
    if start < 0 or start + n > spectrum_ext.size:
        unchanged.boundary = True
        return unchanged

    offset = start - config.max_fold * n
    if offset == 0:
        return unchanged
    window = spectrum_ext[start:start + n]
    window_velocity = velocity_ext[start:start + n]
    # noise re-estimated on the refolded window
    moments = compute_moments(window, window_velocity, n_avg, noise=None, **config.moment_kwargs())
    # interval the dominant peak was taken from
    fold = (start + int(np.nanargmax(window))) // n - config.max_fold
    return Unfolded(window, window_velocity, moments, fold=fold, shifted=True)


def propagate_sweep(
    spectra: np.ndarray,
    chirps: ChirpTable,
    noise: NoiseEstimate,
    start: int,
    end: int,
    vm_guess: Optional[float],
    range_resolution: float,
    config: DealiasConfig,
    previous_vm: Optional[np.ndarray] = None,
) -> PartialResult:
    """
    Unwrap the spectra from gate start to gate end (inclusive).

    The sweep direction follows from the bounds (upwards if end >= start).
    Every gate is folded to be continuous with the last gate that produced
    a usable vm; the emitted vm becomes the guess for the next gate even
    when the gate is flagged unreliable. A gate is reported as aliased when
    its dominant peak was moved by at least one Nyquist interval.

    Parameters
    ----------
    spectra : np.ndarray
        Linear spectra, shape (n_gates, n_bins)
    chirps : ChirpTable
        Velocity axes and range offsets
    noise : NoiseEstimate
        Noise levels per gate
    start, end : int
        First and last gate of the sweep
    vm_guess : float or None
        True mean velocity expected at the first gate, usually the vm of the
        neighbouring anchor gate. None starts without a guess.
    range_resolution : float
        Range gate spacing, used for the gap tolerance
    config : DealiasConfig
        Processing options
    previous_vm : np.ndarray, optional
        Mean velocity of the previous time step, shape (n_gates,)

    Returns
    -------
    PartialResult
        One outcome per gate with signal, in sweep order. Gates without
        signal are skipped.
    """
    step = 1 if end >= start else -1
    max_gap = config.gap_gates(range_resolution)
    nfft = chirps.nfft
    if vm_guess is not None and not np.isfinite(vm_guess):
        vm_guess = None

    partial = PartialResult()
    last_valid = start - step

    for gate in range(start, end + step, step):
        seq = chirps.sequence_of(gate)
        spectrum = spectra[gate, : nfft[seq]]
        velocity = chirps.velocity_of(seq)
        n_avg = chirps.n_avg[seq]

        raw = None
        if has_signal(spectrum, config.min_total_power):
            raw = compute_moments(
                spectrum, velocity, n_avg, noise=noise.at(gate), **config.moment_kwargs()
            )
        if raw is None or not np.isfinite(raw["vm"]):
            if vm_guess is not None and abs(gate - last_valid) > max_gap:
                logger.debug(f"Gate {gate}: gap exceeds {max_gap} gate(s), velocity guess dropped")
                vm_guess = None
            continue

        status = StatusFlag.OK
        if vm_guess is None:
            status |= StatusFlag.NO_INITIAL_GUESS
            result = Unfolded(spectrum=spectrum, velocity=velocity, moments=raw)
        else:
            result = unfold_gate(spectrum, velocity, chirps.vn[seq], n_avg, raw, vm_guess, config)
            if result.boundary:
                status |= StatusFlag.BOUNDARY_REACHED
                logger.debug(
                    f"Gate {gate}: fold towards {vm_guess:.2f} m/s exceeds velocity axis "
                    f"(vn = {chirps.vn[seq]:.2f} m/s)"
                )

        vm = result.moments["vm"]
        if peak_near_nyquist(
            result.spectrum, _threshold(result.moments, config),
            config.min_consecutive_bins, config.nyquist_margin
        ):
            status |= StatusFlag.NEAR_NYQUIST

        if previous_vm is not None and np.isfinite(previous_vm[gate]) and np.isfinite(vm):
            if abs(vm - previous_vm[gate]) > config.max_vm_jump:
                status |= StatusFlag.PREVIOUS_COLUMN_JUMP

        if result.shifted:
            logger.debug(f"Gate {gate}: folded by {result.fold} interval(s), vm {raw['vm']:.2f} -> {vm:.2f} m/s")

        partial.add(GateOutcome(
            gate=gate,
            moments=result.moments,
            spectrum=result.spectrum,
            velocity=result.velocity,
            alias_flag=result.fold != 0,
            status=status,
        ))

        if np.isfinite(vm):
            vm_guess = vm
            last_valid = gate

    return partial
