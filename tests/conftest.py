"""
Pytest configuration and fixtures.

Synthetic profiles are built from Gaussian peaks on a flat noise floor. The
peak is periodic over the Nyquist interval, so a true velocity beyond the
Nyquist limit shows up folded exactly as a radar would record it.
"""
import pytest
import numpy as np

from spectra_dealias.config import DealiasConfig

VN = 4.0
N_BINS = 64
N_AVG = 100
RANGE_RESOLUTION = 30.0


def velocity_axis(vn=VN, n_bins=N_BINS):
    """Bin centres from -vn up to vn - delv."""
    delv = 2.0 * vn / n_bins
    return -vn + delv * np.arange(n_bins)


def folded_gaussian(velocity, v0, vn=VN, amplitude=100.0, width=0.3, noise=1.0):
    """Gaussian peak at true velocity v0, wrapped into [-vn, vn)."""
    d = ((velocity - v0 + vn) % (2.0 * vn)) - vn
    return noise + amplitude * np.exp(-0.5 * (d / width) ** 2)


def build_spectra(v_true, vn=VN, n_bins=N_BINS):
    """Spectra of a profile, one gate per entry of v_true (NaN = no data)."""
    velocity = velocity_axis(vn, n_bins)
    spectra = np.full((len(v_true), n_bins), np.nan)
    for gate, v0 in enumerate(v_true):
        if np.isfinite(v0):
            spectra[gate] = folded_gaussian(velocity, v0, vn)
    return spectra


@pytest.fixture
def velocity():
    """Velocity axis of a single chirp sequence, shape (n_bins,)."""
    return velocity_axis()


@pytest.fixture
def config():
    """Default processing options."""
    return DealiasConfig()


@pytest.fixture
def folded_profile():
    """
    20 gates with vm rising 0.5 m/s per gate from -2 to 7.5 m/s.

    Gate 4 is at rest; gates 11-13 straddle the Nyquist limit and gates
    14-19 are folded by one full interval.
    """
    v_true = -2.0 + 0.5 * np.arange(20)
    return build_spectra(v_true), v_true


@pytest.fixture
def boundary_profile():
    """
    36 gates with vm rising 0.375 m/s per gate up to 11.625 m/s.

    The top gate would need a second fold beyond the available velocity axis.
    """
    v_true = -1.5 + 0.375 * np.arange(36)
    return build_spectra(v_true), v_true


@pytest.fixture
def chirp_profile():
    """
    Two chirp sequences: gates 0-9 with vn = 4 m/s (64 bins), gates 10-19
    with vn = 2 m/s (32 bins, NaN-filled). vm rises 0.24 m/s per gate, so
    the upper sequence is aliased from its first gate on.
    """
    v_true = 0.24 * np.arange(20)
    spectra = np.full((20, N_BINS), np.nan)
    spectra[:10] = build_spectra(v_true[:10])
    spectra[10:, :32] = build_spectra(v_true[10:], vn=2.0, n_bins=32)

    velocity = np.full((N_BINS, 2), np.nan)
    velocity[:, 0] = velocity_axis()
    velocity[:32, 1] = velocity_axis(vn=2.0, n_bins=32)
    return spectra, velocity, v_true


@pytest.fixture
def calm_profile():
    """10 gates with small velocities, far from the Nyquist limit."""
    v_true = np.linspace(-1.0, 1.0, 10)
    return build_spectra(v_true), v_true
