"""
Unit tests for spectra_dealias.moments module.
"""

import pytest
import numpy as np

from spectra_dealias.moments import (
    estimate_noise,
    signal_threshold,
    significant_bins,
    empty_moments,
    compute_moments,
)
from spectra_dealias.constants import MOMENT_FIELDS

from conftest import folded_gaussian, N_AVG


class TestEstimateNoise:
    """Test the Hildebrand-Sekhon noise estimate."""

    def test_flat_noise(self):
        """Test noise of a flat spectrum."""
        meannoise, peaknoise = estimate_noise(np.ones(64), N_AVG)
        assert meannoise == pytest.approx(1.0)
        assert peaknoise == pytest.approx(1.0)

    def test_peak_excluded_from_noise(self, velocity):
        """Test that the peak does not raise the noise level."""
        spectrum = folded_gaussian(velocity, 0.0)
        meannoise, peaknoise = estimate_noise(spectrum, N_AVG)

        assert 1.0 <= meannoise < 1.1
        assert meannoise <= peaknoise < 2.0

    def test_ignores_nan_bins(self, velocity):
        """Test that missing bins are ignored."""
        spectrum = folded_gaussian(velocity, 0.0)
        padded = np.concatenate([spectrum, np.full(16, np.nan)])
        assert estimate_noise(padded, N_AVG) == estimate_noise(spectrum, N_AVG)

    def test_all_nan(self):
        """Test an all-NaN spectrum."""
        meannoise, peaknoise = estimate_noise(np.full(8, np.nan))
        assert np.isnan(meannoise)
        assert np.isnan(peaknoise)


class TestSignalThreshold:
    """Test noise discrimination modes."""

    def test_peak_mode(self):
        """Test threshold on the peak noise."""
        assert signal_threshold(1.0, 2.0, "peak", 1.5) == pytest.approx(3.0)

    def test_mean_mode(self):
        """Test threshold on the mean noise."""
        assert signal_threshold(1.0, 2.0, "mean", 1.5) == pytest.approx(1.5)

    def test_unknown_mode(self):
        """Test rejection of an unknown noise mode."""
        with pytest.raises(ValueError, match="Unknown noise mode"):
            signal_threshold(1.0, 2.0, "median", 1.5)


class TestSignificantBins:
    """Test consecutive-bin signal detection."""

    def test_short_runs_dropped(self):
        """Test that runs shorter than min_bins are dropped."""
        spectrum = np.array([0, 5, 5, 5, 0, 5, 5, 5, 5, 5, 0], dtype=float)
        mask = significant_bins(spectrum, threshold=1.0, min_bins=5)

        expected = np.zeros(11, dtype=bool)
        expected[5:10] = True
        np.testing.assert_array_equal(mask, expected)

    def test_nan_breaks_run(self):
        """Test that a missing bin splits a run."""
        spectrum = np.array([5, 5, 5, np.nan, 5, 5, 5], dtype=float)
        assert not significant_bins(spectrum, threshold=1.0, min_bins=4).any()

    def test_nan_threshold(self):
        """Test that a NaN threshold finds nothing."""
        spectrum = np.full(10, 5.0)
        assert not significant_bins(spectrum, threshold=np.nan).any()

    def test_nothing_above(self):
        """Test a spectrum below the threshold."""
        assert not significant_bins(np.ones(10), threshold=2.0).any()


class TestComputeMoments:
    """Test moment computation of a single spectrum."""

    def test_gaussian_peak(self, velocity):
        """Test moments of a Gaussian peak."""
        spectrum = folded_gaussian(velocity, 1.0)
        moments = compute_moments(spectrum, velocity, N_AVG)

        assert set(moments) == set(MOMENT_FIELDS)
        assert moments["Ze"] > 0
        assert moments["vm"] == pytest.approx(1.0, abs=1e-9)
        assert moments["sigma"] == pytest.approx(0.3, abs=0.05)
        assert moments["skew"] == pytest.approx(0.0, abs=1e-6)
        assert np.isfinite(moments["kurt"])

    def test_highest_moment_limits_output(self, velocity):
        """Test that moments above highest_moment stay NaN."""
        spectrum = folded_gaussian(velocity, 1.0)
        moments = compute_moments(spectrum, velocity, N_AVG, highest_moment="vm")

        assert np.isfinite(moments["vm"])
        assert np.isnan(moments["sigma"])
        assert np.isnan(moments["skew"])
        assert np.isnan(moments["kurt"])

    def test_given_noise_is_used(self, velocity):
        """Test that a supplied noise pair is used as is."""
        spectrum = folded_gaussian(velocity, 1.0)
        moments = compute_moments(spectrum, velocity, N_AVG, noise=(1.0, 1.5))

        assert moments["meannoise"] == 1.0
        assert moments["peaknoise"] == 1.5

    def test_noise_only(self, velocity):
        """Test a spectrum without signal."""
        moments = compute_moments(np.ones(64), velocity, N_AVG)

        assert np.isnan(moments["Ze"])
        assert np.isnan(moments["vm"])
        assert moments["meannoise"] == pytest.approx(1.0)

    def test_all_nan(self, velocity):
        """Test an all-NaN spectrum."""
        moments = compute_moments(np.full(64, np.nan), velocity)
        assert all(np.isnan(v) for v in moments.values())

    def test_below_power_floor(self, velocity):
        """Test a spectrum below the power floor."""
        moments = compute_moments(np.zeros(64), velocity)
        assert all(np.isnan(v) for v in moments.values())

    def test_shifted_axis_shifts_vm(self, velocity):
        """Test that shifting the axis shifts only vm."""
        spectrum = folded_gaussian(velocity, -3.0)
        raw = compute_moments(spectrum, velocity, N_AVG)
        shifted = compute_moments(spectrum, velocity + 8.0, N_AVG)

        assert shifted["vm"] == pytest.approx(raw["vm"] + 8.0)
        assert shifted["Ze"] == pytest.approx(raw["Ze"])
        assert shifted["sigma"] == pytest.approx(raw["sigma"])

    def test_shape_mismatch(self, velocity):
        """Test rejection of mismatching spectrum and axis."""
        with pytest.raises(ValueError, match="does not match"):
            compute_moments(np.ones(32), velocity)


def test_empty_moments():
    """Test NaN-filled moments dict."""
    moments = empty_moments(meannoise=2.0)
    assert moments["meannoise"] == 2.0
    assert np.isnan(moments["peaknoise"])
    assert np.isnan(moments["vm"])
