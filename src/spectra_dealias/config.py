"""
Processing configuration for the de-aliasing.
"""

import math
from dataclasses import dataclass, field, fields
from typing import Optional, Tuple

from .constants import (
    MOMENT_ORDER,
    NOISE_MODES,
    DEFAULT_HIGHEST_MOMENT,
    DEFAULT_NOISE_MODE,
    DEFAULT_NOISE_FACTOR,
    DEFAULT_MIN_CONSECUTIVE_BINS,
    DEFAULT_NYQUIST_MARGIN,
    DEFAULT_MAX_GAP_DISTANCE,
    DEFAULT_MAX_FOLD,
    DEFAULT_MAX_VM_JUMP,
    DEFAULT_MIN_TOTAL_POWER,
    HIGH_RES_N_GATES,
    DEFAULT_SPIKE_BIN_OFFSETS,
    DEFAULT_SPIKE_FACTOR,
)


@dataclass(frozen=True)
class ArtifactTemplate:
    """
    Positions of hardware spikes in the high resolution acquisition mode.

    Attributes
    ----------
    n_gates : int
        Number of range gates identifying the acquisition mode
    bin_offsets : tuple of int
        Candidate spike bins relative to the zero velocity bin
    gates : tuple of int, optional
        Range gates known to carry spikes. None checks every gate.
    spike_factor : float
        A candidate bin is a spike if it exceeds this factor times the
        median of the bins flanking the candidate window
    """

    n_gates: int = HIGH_RES_N_GATES
    bin_offsets: Tuple[int, ...] = DEFAULT_SPIKE_BIN_OFFSETS
    gates: Optional[Tuple[int, ...]] = None
    spike_factor: float = DEFAULT_SPIKE_FACTOR

    def __post_init__(self):
        if self.n_gates < 1:
            raise ValueError(f"n_gates must be positive, got {self.n_gates}")
        if len(self.bin_offsets) == 0:
            raise ValueError("bin_offsets must not be empty")
        if self.spike_factor <= 1.0:
            raise ValueError(f"spike_factor must be > 1, got {self.spike_factor}")


@dataclass(frozen=True)
class DealiasConfig:
    """
    All options recognised by the de-aliasing, validated once at construction.

    Attributes
    ----------
    highest_moment : str
        Highest moment to compute, one of 'Ze', 'vm', 'sigma', 'skew', 'kurt'.
        At least 'vm' is required since the unwrapping follows vm.
    noise_mode : str
        'peak' (threshold on the peak noise) or 'mean' (on the mean noise)
    noise_factor : float
        Signal threshold = noise_factor * noise level
    min_consecutive_bins : int
        Minimum number of consecutive bins above threshold for a signal
    range_offsets : tuple of int, optional
        First range gate of each chirp sequence. Required when the velocity
        table holds more than one sequence.
    nyquist_margin : int
        Bins from either velocity edge within which a peak counts as
        sitting on the Nyquist limit
    max_gap_distance : float
        Gaps up to ceil(max_gap_distance / dr) gates are bridged, both when
        building cloud layers and when carrying the velocity guess
    max_fold : int
        Number of Nyquist intervals (2 * vn) a spectrum may be folded to
        either side of the measured axis
    max_vm_jump : float
        Maximum accepted difference to the previous column vm (m/s)
    min_total_power : float
        Spectra with less total power hold no signal
    input_linear : bool
        False if the spectra are given in dB and must be converted
    artifact : ArtifactTemplate
        Hardware spike template for the high resolution mode
    """

    highest_moment: str = DEFAULT_HIGHEST_MOMENT
    noise_mode: str = DEFAULT_NOISE_MODE
    noise_factor: float = DEFAULT_NOISE_FACTOR
    min_consecutive_bins: int = DEFAULT_MIN_CONSECUTIVE_BINS
    range_offsets: Optional[Tuple[int, ...]] = None
    nyquist_margin: int = DEFAULT_NYQUIST_MARGIN
    max_gap_distance: float = DEFAULT_MAX_GAP_DISTANCE
    max_fold: int = DEFAULT_MAX_FOLD
    max_vm_jump: float = DEFAULT_MAX_VM_JUMP
    min_total_power: float = DEFAULT_MIN_TOTAL_POWER
    input_linear: bool = True
    artifact: ArtifactTemplate = field(default_factory=ArtifactTemplate)

    def __post_init__(self):
        if self.highest_moment not in MOMENT_ORDER:
            raise ValueError(
                f"Unknown moment '{self.highest_moment}', expected one of {MOMENT_ORDER}"
            )
        if MOMENT_ORDER.index(self.highest_moment) < MOMENT_ORDER.index("vm"):
            raise ValueError("highest_moment must be at least 'vm' for de-aliasing")
        if self.noise_mode not in NOISE_MODES:
            raise ValueError(f"Unknown noise mode: {self.noise_mode}")
        if self.noise_factor <= 0:
            raise ValueError(f"noise_factor must be positive, got {self.noise_factor}")
        if self.min_consecutive_bins < 1:
            raise ValueError("min_consecutive_bins must be >= 1")
        if self.nyquist_margin < 0:
            raise ValueError("nyquist_margin must be >= 0")
        if self.max_gap_distance < 0:
            raise ValueError("max_gap_distance must be >= 0")
        if self.max_fold < 0:
            raise ValueError("max_fold must be >= 0")
        if self.max_vm_jump <= 0:
            raise ValueError("max_vm_jump must be positive")
        if self.range_offsets is not None:
            offsets = tuple(int(o) for o in self.range_offsets)
            if not offsets or offsets[0] != 0 or any(b <= a for a, b in zip(offsets, offsets[1:])):
                raise ValueError(
                    f"range_offsets must start at 0 and increase strictly: {offsets}"
                )
            object.__setattr__(self, "range_offsets", offsets)

    def gap_gates(self, range_resolution: float) -> int:
        """Number of no-signal gates bridged for a given range resolution."""
        if range_resolution <= 0:
            raise ValueError(f"range_resolution must be positive, got {range_resolution}")
        return int(math.ceil(self.max_gap_distance / range_resolution))

    def moment_kwargs(self) -> dict:
        """Keyword arguments forwarded to compute_moments."""
        return {
            "highest_moment": self.highest_moment,
            "noise_mode": self.noise_mode,
            "noise_factor": self.noise_factor,
            "min_bins": self.min_consecutive_bins,
            "min_total_power": self.min_total_power,
        }

    @classmethod
    def from_dict(cls, options: dict) -> "DealiasConfig":
        """
        Build a config from a plain mapping of option names.

        An 'artifact' entry may itself be a mapping of ArtifactTemplate
        fields. Unknown keys raise ValueError.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise ValueError(f"Unknown option(s): {sorted(unknown)}")
        options = dict(options)
        artifact = options.get("artifact")
        if isinstance(artifact, dict):
            options["artifact"] = ArtifactTemplate(**artifact)
        return cls(**options)
