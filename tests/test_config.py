"""
Unit tests for spectra_dealias.config module.
"""

import pytest

from spectra_dealias.config import ArtifactTemplate, DealiasConfig


class TestDealiasConfig:
    """Test option defaults and validation."""

    def test_defaults(self):
        """Test default option values."""
        config = DealiasConfig()

        assert config.highest_moment == "kurt"
        assert config.noise_mode == "peak"
        assert config.noise_factor == 1.2
        assert config.min_consecutive_bins == 5
        assert config.range_offsets is None
        assert config.max_gap_distance == 50.0
        assert config.max_fold == 1
        assert config.input_linear
        assert config.artifact == ArtifactTemplate()

    def test_frozen(self):
        """Test that options cannot be changed after creation."""
        config = DealiasConfig()
        with pytest.raises(AttributeError):
            config.max_fold = 2

    @pytest.mark.parametrize("options,match", [
        ({"highest_moment": "median"}, "Unknown moment"),
        ({"highest_moment": "Ze"}, "at least 'vm'"),
        ({"noise_mode": "median"}, "Unknown noise mode"),
        ({"noise_factor": 0.0}, "noise_factor"),
        ({"min_consecutive_bins": 0}, "min_consecutive_bins"),
        ({"nyquist_margin": -1}, "nyquist_margin"),
        ({"max_gap_distance": -5.0}, "max_gap_distance"),
        ({"max_fold": -1}, "max_fold"),
        ({"max_vm_jump": 0.0}, "max_vm_jump"),
        ({"range_offsets": (5, 10)}, "range_offsets"),
        ({"range_offsets": (0, 10, 10)}, "range_offsets"),
        ({"range_offsets": ()}, "range_offsets"),
    ])
    def test_invalid(self, options, match):
        """Test validation of out-of-range options."""
        with pytest.raises(ValueError, match=match):
            DealiasConfig(**options)

    def test_range_offsets_normalized(self):
        """Test that range offsets are stored as a tuple."""
        config = DealiasConfig(range_offsets=[0, 100, 300])
        assert config.range_offsets == (0, 100, 300)

    @pytest.mark.parametrize("range_resolution,expected", [
        (30.0, 2),
        (25.0, 2),
        (50.0, 1),
        (100.0, 1),
    ])
    def test_gap_gates(self, range_resolution, expected):
        """Test the gap tolerance in gates."""
        assert DealiasConfig().gap_gates(range_resolution) == expected

    def test_gap_gates_invalid_resolution(self):
        """Test gap tolerance with a zero range resolution."""
        with pytest.raises(ValueError):
            DealiasConfig().gap_gates(0.0)

    def test_moment_kwargs(self):
        """Test keyword arguments passed to compute_moments."""
        kwargs = DealiasConfig(noise_mode="mean", min_consecutive_bins=3).moment_kwargs()
        assert kwargs["noise_mode"] == "mean"
        assert kwargs["min_bins"] == 3
        assert set(kwargs) == {
            "highest_moment", "noise_mode", "noise_factor", "min_bins", "min_total_power"
        }


class TestFromDict:
    """Test building a config from a mapping."""

    def test_from_dict(self):
        """Test nested artifact options from a mapping."""
        config = DealiasConfig.from_dict({
            "noise_factor": 1.5,
            "range_offsets": [0, 50],
            "artifact": {"n_gates": 512, "gates": (3, 4)},
        })

        assert config.noise_factor == 1.5
        assert config.range_offsets == (0, 50)
        assert config.artifact.n_gates == 512
        assert config.artifact.gates == (3, 4)

    def test_unknown_key(self):
        """Test rejection of misspelled options."""
        with pytest.raises(ValueError, match="Unknown option"):
            DealiasConfig.from_dict({"nosie_factor": 1.5})

    def test_empty(self):
        """Test that an empty mapping gives the defaults."""
        assert DealiasConfig.from_dict({}) == DealiasConfig()
