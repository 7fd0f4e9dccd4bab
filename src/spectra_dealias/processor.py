"""
De-aliasing of Doppler spectra profiles, with optional parallel processing
of time series.
"""

import logging
import numpy as np
from typing import List, Optional, Tuple
from multiprocessing import Pool, cpu_count

from .chirps import ChirpTable
from .config import DealiasConfig
from .detection import detect_aliasing
from .filters import filter_artifacts
from .layers import find_cloud_layers, has_signal
from .moments import compute_moments
from .propagate import propagate_sweep
from .result import DealiasResult, GateOutcome, PartialResult, ResultBuilder
from .seed import find_seed_gate
from .utils import z2lin, validate_profile_inputs

logger = logging.getLogger(__name__)


def _direct_moments(spectra, chirps, noise, config) -> PartialResult:
    """Moments of every gate computed from the spectra as they are."""
    partial = PartialResult()
    nfft = chirps.nfft
    for gate in range(spectra.shape[0]):
        seq = chirps.sequence_of(gate)
        spectrum = spectra[gate, : nfft[seq]]
        if not has_signal(spectrum, config.min_total_power):
            continue
        moments = compute_moments(
            spectrum, chirps.velocity_of(seq), chirps.n_avg[seq],
            noise=noise.at(gate), **config.moment_kwargs()
        )
        partial.add(GateOutcome(gate=gate, moments=moments))
    return partial


def dealias_profile(
    spectra: np.ndarray,
    velocity: np.ndarray,
    n_avg,
    range_resolution: float,
    previous_vm: Optional[np.ndarray] = None,
    config: Optional[DealiasConfig] = None,
) -> Optional[DealiasResult]:
    """
    De-alias the Doppler spectra of one profile and compute their moments.

    Steps:
    1. noise estimation and alias candidate detection
    2. removal of hardware spikes (high resolution mode only)
    3. without any alias candidate, moments are computed directly
    4. otherwise, per cloud layer: anchor gate selection and unwrapping
       downwards to the layer base and upwards to the layer top

    Parameters
    ----------
    spectra : np.ndarray
        Doppler spectra, shape (n_gates, n_bins), rows ordered by increasing
        range, NaN for missing values. Linear units unless
        config.input_linear is False.
    velocity : np.ndarray
        Velocity bin centres, shape (n_bins, n_seq), NaN-filled per sequence
    n_avg : int or sequence of int
        Number of spectral averages per chirp sequence
    range_resolution : float
        Range gate spacing
    previous_vm : np.ndarray, optional
        Mean velocity of the previous time step at the same gates, used only
        as continuity reference. None if unavailable.
    config : DealiasConfig, optional
        Processing options (default: DealiasConfig())

    Returns
    -------
    DealiasResult or None
        None if the first velocity bin is missing at every gate (no data)

    Raises
    ------
    ValueError
        If the inputs have inconsistent shapes or are empty
    """
    if config is None:
        config = DealiasConfig()

    spectra, previous_vm = validate_profile_inputs(spectra, range_resolution, previous_vm)
    n_gates, n_bins = spectra.shape
    chirps = ChirpTable.from_arrays(velocity, n_avg, n_gates, n_bins, config.range_offsets)

    if np.all(np.isnan(spectra[:, 0])):
        logger.info("Profile holds no data, skipped")
        return None

    if not config.input_linear:
        spectra = z2lin(spectra)

    noise, alias_flag = detect_aliasing(spectra, chirps, config)

    spectra, spike_filter = filter_artifacts(spectra, chirps, noise, config)
    if spike_filter is not None:
        alias_flag = alias_flag & ~spike_filter.fully_contaminated

    builder = ResultBuilder(spectra, chirps.gate_velocity_matrix(), noise, alias_flag)

    if not alias_flag.any():
        logger.info("No aliasing detected, moments computed directly")
        builder.apply(_direct_moments(spectra, chirps, noise, config))
        return builder.build(dealiased=False)

    layers = find_cloud_layers(spectra, chirps, range_resolution, config)
    logger.info(f"Aliasing candidates at {int(alias_flag.sum())} gate(s), {len(layers)} layer(s)")

    for layer in layers:
        builder.add_layer(layer)
        seed = find_seed_gate(layer, spectra, chirps, noise, alias_flag, config)

        if seed.no_clean_signal:
            # independent per-gate moments, no folding attempted
            builder.apply(seed.raw)
            continue

        idx0 = seed.idx0
        builder.apply(seed.raw.only(idx0))
        for start, end in _sweeps(idx0, layer.base, layer.top):
            builder.apply(propagate_sweep(
                spectra, chirps, noise, start, end, seed.vm0,
                range_resolution, config, previous_vm,
            ))

    return builder.build(dealiased=True)


def _sweeps(idx0: int, base: int, top: int) -> List[Tuple[int, int]]:
    """(start, end) of the downward and upward sweeps away from the seed."""
    sweeps = []
    if idx0 > base:
        sweeps.append((idx0 - 1, base))
    if idx0 < top:
        sweeps.append((idx0 + 1, top))
    return sweeps


def _process_single_profile(args) -> Tuple[int, Optional[DealiasResult]]:
    """
    Worker function to de-alias a single profile.

    This function is designed to be called by multiprocessing.Pool.
    """
    (it, spectra, velocity, n_avg, range_resolution, previous_vm, config) = args
    return it, dealias_profile(spectra, velocity, n_avg, range_resolution, previous_vm, config)


def dealias_profiles(
    spectra: np.ndarray,
    velocity: np.ndarray,
    n_avg,
    range_resolution: float,
    previous_vm: Optional[np.ndarray] = None,
    config: Optional[DealiasConfig] = None,
    n_workers: Optional[int] = None,
) -> List[Optional[DealiasResult]]:
    """
    De-alias a time series of profiles.

    Parameters
    ----------
    spectra : np.ndarray
        Doppler spectra, shape (n_time, n_gates, n_bins)
    velocity : np.ndarray
        Velocity table shared by all profiles, shape (n_bins, n_seq)
    n_avg : int or sequence of int
        Number of spectral averages per chirp sequence
    range_resolution : float
        Range gate spacing
    previous_vm : np.ndarray, optional
        Continuity reference for every profile, shape (n_time, n_gates).
        If given, the profiles are independent and processed in parallel.
        If None, the profiles are chained: each uses the vm of the
        preceding result, so processing is sequential.
    config : DealiasConfig, optional
        Processing options (default: DealiasConfig())
    n_workers : int, optional
        Number of parallel workers for independent profiles.
        Default: cpu_count() - 1
        Set to 1 for sequential processing

    Returns
    -------
    list
        One DealiasResult (or None for empty profiles) per time step
    """
    spectra = np.asarray(spectra, dtype="float64")
    if spectra.ndim != 3:
        raise ValueError(f"spectra must be 3-D (time x gates x bins), got {spectra.ndim}-D")
    if config is None:
        config = DealiasConfig()
    n_time = spectra.shape[0]

    if previous_vm is None:
        if n_workers not in (None, 1):
            logger.warning("Chained profiles are processed sequentially, n_workers ignored")
        results = []
        prev = None
        for it in range(n_time):
            result = dealias_profile(spectra[it], velocity, n_avg, range_resolution, prev, config)
            results.append(result)
            prev = result.moments.vm if result is not None else None
        logger.info(f"De-aliased {n_time} chained profile(s)")
        return results

    previous_vm = np.asarray(previous_vm, dtype="float64")
    if previous_vm.shape != spectra.shape[:2]:
        raise ValueError(
            f"previous_vm shape {previous_vm.shape} does not match (n_time, n_gates) {spectra.shape[:2]}"
        )

    if n_workers is None:
        n_workers = max(1, cpu_count() - 1)

    args_list = [
        (it, spectra[it], velocity, n_avg, range_resolution, previous_vm[it], config)
        for it in range(n_time)
    ]
    logger.info(f"Processing {n_time} profile(s) with {n_workers} worker(s)...")

    results: List[Optional[DealiasResult]] = [None] * n_time
    if n_workers == 1:
        for args in args_list:
            it, result = _process_single_profile(args)
            results[it] = result
    else:
        with Pool(n_workers) as pool:
            for it, result in pool.imap_unordered(_process_single_profile, args_list):
                logger.debug(f"  Profile {it} done")
                results[it] = result

    return results
