"""
spectra_dealias - De-aliasing of cloud radar Doppler spectra
"""

from .config import DealiasConfig, ArtifactTemplate
from .chirps import ChirpTable
from .status import StatusFlag, to_legacy_string, from_legacy_string, decode
from .moments import estimate_noise, signal_threshold, significant_bins, compute_moments
from .detection import NoiseEstimate, detect_aliasing, peak_near_nyquist
from .filters import SpikeFilter, filter_artifacts
from .layers import CloudLayer, find_cloud_layers, gates_with_signal
from .seed import SeedResult, find_seed_gate
from .propagate import unfold_gate, propagate_sweep
from .result import DealiasResult, MomentsSet, GateOutcome, PartialResult
from .processor import dealias_profile, dealias_profiles
from .utils import z2lin, lin2z

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "DealiasConfig",
    "ArtifactTemplate",
    "ChirpTable",
    # Status codes
    "StatusFlag",
    "to_legacy_string",
    "from_legacy_string",
    "decode",
    # Moments
    "estimate_noise",
    "signal_threshold",
    "significant_bins",
    "compute_moments",
    # Processing steps
    "NoiseEstimate",
    "detect_aliasing",
    "peak_near_nyquist",
    "SpikeFilter",
    "filter_artifacts",
    "CloudLayer",
    "find_cloud_layers",
    "gates_with_signal",
    "SeedResult",
    "find_seed_gate",
    "unfold_gate",
    "propagate_sweep",
    # Results
    "DealiasResult",
    "MomentsSet",
    "GateOutcome",
    "PartialResult",
    # Main entry points
    "dealias_profile",
    "dealias_profiles",
    # Utilities
    "z2lin",
    "lin2z",
]
