"""
Basic example: De-alias a single synthetic Doppler spectra profile.

A cloud layer whose mean Doppler velocity rises above the Nyquist limit is
simulated, then unfolded and its moments computed.
"""
import logging
import numpy as np

from spectra_dealias import dealias_profile, DealiasConfig, StatusFlag


def make_profile(v_true, vn=4.0, n_bins=256, width=0.25):
    """Gaussian peaks on a flat noise floor, folded into [-vn, vn)."""
    velocity = -vn + 2.0 * vn / n_bins * np.arange(n_bins)
    spectra = np.empty((v_true.size, n_bins))
    for gate, v0 in enumerate(v_true):
        d = ((velocity - v0 + vn) % (2.0 * vn)) - vn
        spectra[gate] = 1e-3 * (1.0 + 100.0 * np.exp(-0.5 * (d / width) ** 2))
    return spectra, velocity


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # Updraft core: vm from -1 m/s at cloud base to 7 m/s at cloud top
    v_true = np.linspace(-1.0, 7.0, 40)
    spectra, velocity = make_profile(v_true)

    config = DealiasConfig(max_gap_distance=60.0)
    result = dealias_profile(
        spectra,
        velocity,
        n_avg=16,
        range_resolution=30.0,
        config=config,
    )

    print(result)
    print(f"Layers: {result.layers}")
    print(f"Max abs error vm: {np.nanmax(np.abs(result.moments.vm - v_true)):.3f} m/s")

    for gate in np.where(result.status > 0)[0]:
        print(f"  Gate {gate}: {result.status_flags(gate)!r} ({result.legacy_status()[gate]})")

    folded = np.where(result.alias_flag)[0]
    print(f"Folded gates: {folded.tolist()}")
    if np.all(result.status & StatusFlag.BOUNDARY_REACHED == 0):
        print("No gate needed more than one Nyquist interval")


if __name__ == "__main__":
    main()
