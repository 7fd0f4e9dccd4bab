"""
Constants for moment names, default processing thresholds and the
high resolution acquisition mode.
"""

# Radar moments in increasing order; requesting a moment computes all lower ones
MOMENT_ORDER = ("Ze", "vm", "sigma", "skew", "kurt")

# Fields carried by a MomentsSet
MOMENT_FIELDS = MOMENT_ORDER + ("peaknoise", "meannoise")

# Noise discrimination modes: threshold = factor * noise level
NOISE_MODES = ("peak", "mean")

# Default processing parameters
DEFAULT_HIGHEST_MOMENT = "kurt"
DEFAULT_NOISE_MODE = "peak"
DEFAULT_NOISE_FACTOR = 1.2
DEFAULT_MIN_CONSECUTIVE_BINS = 5
DEFAULT_NYQUIST_MARGIN = 5          # bins from either velocity edge
DEFAULT_MAX_GAP_DISTANCE = 50.0     # same units as the range resolution
DEFAULT_MAX_FOLD = 1                # Nyquist spans available on each side
DEFAULT_MAX_VM_JUMP = 4.0           # m/s, against the previous column
DEFAULT_MIN_TOTAL_POWER = 1e-20     # below this a spectrum holds no signal
SEED_TIE_TOLERANCE = 1e-9           # m/s, equal |vm| when choosing a seed

# Number of range gates of the high resolution mode (hardware spikes)
HIGH_RES_N_GATES = 1021
DEFAULT_SPIKE_BIN_OFFSETS = (-1, 0, 1)  # relative to the zero velocity bin
DEFAULT_SPIKE_FACTOR = 3.0
