"""
Unit tests for spectra_dealias.chirps module.
"""

import pytest
import numpy as np

from spectra_dealias.chirps import ChirpTable

from conftest import velocity_axis


@pytest.fixture
def two_sequences():
    velocity = np.full((64, 2), np.nan)
    velocity[:, 0] = velocity_axis()
    velocity[:32, 1] = velocity_axis(vn=2.0, n_bins=32)
    return ChirpTable.from_arrays(velocity, [20, 40], n_gates=30, n_bins=64, range_offsets=[0, 10])


class TestChirpTable:
    """Test ChirpTable properties and gate lookup."""

    def test_properties(self, two_sequences):
        """Test derived properties of the chirp table."""
        ct = two_sequences

        assert ct.n_sequences == 2
        assert ct.n_bins == 64
        np.testing.assert_allclose(ct.vn, [4.0, 2.0])
        np.testing.assert_allclose(ct.delv, [0.125, 0.125])
        np.testing.assert_array_equal(ct.nfft, [64, 32])
        np.testing.assert_array_equal(ct.n_avg, [20.0, 40.0])

    @pytest.mark.parametrize("gate,seq", [(0, 0), (9, 0), (10, 1), (29, 1)])
    def test_sequence_of(self, two_sequences, gate, seq):
        """Test gate to chirp sequence lookup."""
        assert two_sequences.sequence_of(gate) == seq

    def test_sequence_of_out_of_range(self, two_sequences):
        """Test that gates outside the profile raise IndexError."""
        with pytest.raises(IndexError):
            two_sequences.sequence_of(30)
        with pytest.raises(IndexError):
            two_sequences.sequence_of(-1)

    def test_velocity_of(self, two_sequences):
        """Test the valid velocity bins of a sequence."""
        np.testing.assert_allclose(two_sequences.velocity_of(1), velocity_axis(2.0, 32))

    def test_gate_velocity_matrix(self, two_sequences):
        """Test the per-gate velocity axes, NaN padded."""
        matrix = two_sequences.gate_velocity_matrix()

        assert matrix.shape == (30, 64)
        np.testing.assert_allclose(matrix[5], velocity_axis())
        np.testing.assert_allclose(matrix[20, :32], velocity_axis(2.0, 32))
        assert np.isnan(matrix[20, 32:]).all()
        np.testing.assert_array_equal(matrix[20], two_sequences.gate_velocity(20))

    def test_repr(self, two_sequences):
        """Test string representation."""
        text = repr(two_sequences)
        assert "n_sequences=2" in text
        assert "range_offsets=[0, 10]" in text


class TestFromArrays:
    """Test validation of the chirp description."""

    def test_single_sequence_1d(self):
        """Test a single 1-D velocity axis."""
        ct = ChirpTable.from_arrays(velocity_axis(), 10, n_gates=5, n_bins=64)
        assert ct.n_sequences == 1
        np.testing.assert_array_equal(ct.range_offsets, [0])

    def test_transposed_table(self):
        """Test that a table with sequences along rows is transposed."""
        ct = ChirpTable.from_arrays(velocity_axis()[np.newaxis, :], 10, n_gates=5, n_bins=64)
        assert ct.velocity.shape == (64, 1)

    def test_trailing_offset_accepted(self, two_sequences):
        """Test that an offset equal to the gate count is dropped."""
        ct = ChirpTable.from_arrays(
            two_sequences.velocity, [20, 40], n_gates=30, n_bins=64, range_offsets=[0, 10, 30]
        )
        np.testing.assert_array_equal(ct.range_offsets, [0, 10])

    def test_bin_mismatch(self):
        """Test a velocity table not matching the spectrum bins."""
        with pytest.raises(ValueError, match="bins"):
            ChirpTable.from_arrays(velocity_axis(), 10, n_gates=5, n_bins=128)

    def test_not_increasing(self):
        """Test rejection of a decreasing velocity axis."""
        with pytest.raises(ValueError, match="strictly increasing"):
            ChirpTable.from_arrays(velocity_axis()[::-1], 10, n_gates=5, n_bins=64)

    def test_leading_nan(self):
        """Test rejection of missing bins at the start of an axis."""
        velocity = velocity_axis()
        velocity[0] = np.nan
        with pytest.raises(ValueError, match="missing bins"):
            ChirpTable.from_arrays(velocity, 10, n_gates=5, n_bins=64)

    def test_n_avg_count(self, two_sequences):
        """Test rejection of too few averaging counts."""
        with pytest.raises(ValueError, match="n_avg"):
            ChirpTable.from_arrays(
                two_sequences.velocity, [20], n_gates=30, n_bins=64, range_offsets=[0, 10]
            )

    def test_n_avg_positive(self):
        """Test rejection of non-positive averaging counts."""
        with pytest.raises(ValueError, match="n_avg"):
            ChirpTable.from_arrays(velocity_axis(), 0, n_gates=5, n_bins=64)

    def test_offsets_required(self, two_sequences):
        """Test that several sequences need range offsets."""
        with pytest.raises(ValueError, match="range_offsets are required"):
            ChirpTable.from_arrays(two_sequences.velocity, [20, 40], n_gates=30, n_bins=64)

    @pytest.mark.parametrize("offsets", [[1, 10], [0, 40], [10, 0], [0]])
    def test_invalid_offsets(self, two_sequences, offsets):
        """Test rejection of invalid range offsets."""
        with pytest.raises(ValueError, match="range_offsets|Invalid range_offsets"):
            ChirpTable.from_arrays(
                two_sequences.velocity, [20, 40], n_gates=30, n_bins=64, range_offsets=offsets
            )
