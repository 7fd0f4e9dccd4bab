"""
ChirpTable class: velocity axes, range offsets and averaging counts of the
chirp sequences of one profile.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class ChirpTable:
    """
    Stores the velocity axis of every chirp sequence and maps range gates to
    sequences.

    Attributes
    ----------
    velocity : np.ndarray
        Velocity bin centres, shape (n_bins, n_seq). Sequences with fewer
        bins are NaN-filled at the end.
    range_offsets : np.ndarray
        First range gate of every sequence, shape (n_seq,)
    n_avg : np.ndarray
        Number of spectral averages of every sequence, shape (n_seq,)
    n_gates : int
        Number of range gates of the profile

    Notes
    -----
    The Nyquist velocity of sequence s is ``-velocity[0, s]`` and its
    velocity resolution ``velocity[1, s] - velocity[0, s]``.
    """

    velocity: np.ndarray
    range_offsets: np.ndarray
    n_avg: np.ndarray
    n_gates: int

    @property
    def n_sequences(self) -> int:
        return self.velocity.shape[1]

    @property
    def n_bins(self) -> int:
        return self.velocity.shape[0]

    @property
    def vn(self) -> np.ndarray:
        """Nyquist velocity per sequence."""
        return -self.velocity[0, :]

    @property
    def delv(self) -> np.ndarray:
        """Velocity resolution per sequence."""
        return self.velocity[1, :] - self.velocity[0, :]

    @property
    def nfft(self) -> np.ndarray:
        """Number of valid (non-NaN) velocity bins per sequence."""
        return np.sum(~np.isnan(self.velocity), axis=0)

    def sequence_of(self, gate: int) -> int:
        """Return the chirp sequence index of a range gate."""
        if not 0 <= gate < self.n_gates:
            raise IndexError(f"Range gate {gate} outside [0, {self.n_gates})")
        return int(np.searchsorted(self.range_offsets, gate, side="right") - 1)

    def velocity_of(self, seq: int) -> np.ndarray:
        """Valid velocity bins of a sequence."""
        return self.velocity[: self.nfft[seq], seq]

    def gate_velocity(self, gate: int) -> np.ndarray:
        """Full-length (NaN-filled) velocity axis of the sequence of a gate."""
        return self.velocity[:, self.sequence_of(gate)].copy()

    def gate_velocity_matrix(self) -> np.ndarray:
        """Velocity axis for every range gate, shape (n_gates, n_bins)."""
        seq_idx = np.searchsorted(self.range_offsets, np.arange(self.n_gates), side="right") - 1
        return self.velocity[:, seq_idx].T.copy()

    def __repr__(self) -> str:
        return (
            f"ChirpTable(\n"
            f"  n_gates={self.n_gates},\n"
            f"  n_sequences={self.n_sequences},\n"
            f"  range_offsets={self.range_offsets.tolist()},\n"
            f"  nfft={self.nfft.tolist()},\n"
            f"  vn={np.round(self.vn, 3).tolist()},\n"
            f"  n_avg={self.n_avg.tolist()}\n"
            f")"
        )

    @classmethod
    def from_arrays(
        cls,
        velocity: np.ndarray,
        n_avg,
        n_gates: int,
        n_bins: int,
        range_offsets: Optional[Sequence[int]] = None,
    ) -> "ChirpTable":
        """
        Build and validate a ChirpTable.

        Parameters
        ----------
        velocity : np.ndarray
            Velocity table, shape (n_bins, n_seq) or 1-D for a single
            sequence. A table with more columns than rows is taken as
            (n_seq, n_bins) and transposed.
        n_avg : int or sequence of int
            Spectral averages per sequence
        n_gates : int
            Number of range gates of the spectra
        n_bins : int
            Number of velocity bins of the spectra
        range_offsets : sequence of int, optional
            First range gate of every sequence. A trailing entry equal to
            n_gates is accepted. Required for more than one sequence.

        Returns
        -------
        ChirpTable

        Raises
        ------
        ValueError
            If the velocity table, averaging counts and offsets do not
            describe the same sequences or do not match the spectra
        """
        velocity = np.asarray(velocity, dtype="float64")
        if velocity.ndim == 1:
            velocity = velocity[:, np.newaxis]
        elif velocity.ndim != 2:
            raise ValueError(f"velocity must be 1-D or 2-D, got {velocity.ndim}-D")
        if velocity.shape[1] > velocity.shape[0]:
            logger.debug(f"Transposing velocity table of shape {velocity.shape}")
            velocity = velocity.T

        if velocity.shape[0] != n_bins:
            raise ValueError(
                f"velocity has {velocity.shape[0]} bins but spectra have {n_bins}"
            )
        n_seq = velocity.shape[1]

        for s in range(n_seq):
            column = velocity[:, s]
            valid = ~np.isnan(column)
            nfft = int(valid.sum())
            if nfft < 2:
                raise ValueError(f"Sequence {s} has fewer than 2 velocity bins")
            if not np.all(valid[:nfft]):
                raise ValueError(f"Sequence {s} velocity has missing bins before the fill")
            if np.any(np.diff(column[:nfft]) <= 0):
                raise ValueError(f"Sequence {s} velocity is not strictly increasing")

        n_avg = np.atleast_1d(np.asarray(n_avg, dtype="float64"))
        if n_avg.shape != (n_seq,):
            raise ValueError(f"n_avg has {n_avg.size} entries for {n_seq} sequence(s)")
        if np.any(n_avg < 1):
            raise ValueError("n_avg must be >= 1")

        if range_offsets is None:
            if n_seq > 1:
                raise ValueError("range_offsets are required for more than one chirp sequence")
            offsets = np.array([0])
        else:
            offsets = np.asarray(range_offsets, dtype="int64")
            if offsets.size == n_seq + 1 and offsets[-1] == n_gates:
                offsets = offsets[:-1]
            if offsets.size != n_seq:
                raise ValueError(
                    f"range_offsets has {offsets.size} entries for {n_seq} sequence(s)"
                )
            if offsets[0] != 0 or np.any(np.diff(offsets) <= 0) or offsets[-1] >= n_gates:
                raise ValueError(f"Invalid range_offsets {offsets.tolist()} for {n_gates} gates")

        return cls(velocity=velocity, range_offsets=offsets, n_avg=n_avg, n_gates=int(n_gates))
