"""
Result containers: per-gate outcomes, partial results of the processing
steps and the assembled result of one profile.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .constants import MOMENT_FIELDS
from .status import StatusFlag, to_legacy_string, decode


@dataclass(frozen=True)
class MomentsSet:
    """
    Radar moments and noise levels of every range gate, NaN where no signal
    was found.
    """

    Ze: np.ndarray
    vm: np.ndarray
    sigma: np.ndarray
    skew: np.ndarray
    kurt: np.ndarray
    peaknoise: np.ndarray
    meannoise: np.ndarray

    @classmethod
    def empty(cls, n_gates: int) -> "MomentsSet":
        return cls(**{name: np.full(n_gates, np.nan) for name in MOMENT_FIELDS})

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {name: getattr(self, name) for name in MOMENT_FIELDS}

    def at(self, gate: int) -> Dict[str, float]:
        """All fields of one gate."""
        return {name: float(getattr(self, name)[gate]) for name in MOMENT_FIELDS}


@dataclass
class GateOutcome:
    """
    Outcome of processing one range gate.

    Fields left as None are not written when the outcome is merged: a
    spectrum of None keeps the input spectrum, an alias_flag of None keeps
    the detector's flag.
    """

    gate: int
    moments: Dict[str, float]
    spectrum: Optional[np.ndarray] = None
    velocity: Optional[np.ndarray] = None
    alias_flag: Optional[bool] = None
    status: StatusFlag = StatusFlag.OK


@dataclass
class PartialResult:
    """Ordered outcomes produced by one processing step."""

    outcomes: List[GateOutcome] = field(default_factory=list)

    def add(self, outcome: GateOutcome) -> None:
        self.outcomes.append(outcome)

    def extend(self, other: "PartialResult") -> None:
        self.outcomes.extend(other.outcomes)

    def only(self, gate: int) -> "PartialResult":
        """Sub-result holding the outcome of a single gate."""
        return PartialResult([o for o in self.outcomes if o.gate == gate])

    @property
    def gates(self) -> List[int]:
        return [o.gate for o in self.outcomes]

    def vm(self) -> np.ndarray:
        return np.array([o.moments["vm"] for o in self.outcomes], dtype="float64")

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self):
        return iter(self.outcomes)


@dataclass(frozen=True)
class DealiasResult:
    """
    De-aliased spectra, velocity axes, moments and diagnostics of one profile.

    Attributes
    ----------
    spectra : np.ndarray
        Corrected spectra in linear units, shape (n_gates, n_bins)
    velocity : np.ndarray
        Velocity axis of every corrected spectrum, shape (n_gates, n_bins)
    moments : MomentsSet
        Radar moments computed from the corrected spectra
    alias_flag : np.ndarray
        True where the gate was folded (or, without de-aliasing, where the
        detector found a candidate)
    status : np.ndarray
        Status code 0-15 per gate, see StatusFlag
    layers : list
        Cloud layers processed (empty when no de-aliasing was needed)
    dealiased : bool
        False if no gate showed aliasing and the moments were computed directly
    """

    spectra: np.ndarray
    velocity: np.ndarray
    moments: MomentsSet
    alias_flag: np.ndarray
    status: np.ndarray
    layers: list = field(default_factory=list)
    dealiased: bool = False

    @property
    def n_gates(self) -> int:
        return self.spectra.shape[0]

    def status_flags(self, gate: int) -> StatusFlag:
        return StatusFlag(int(self.status[gate]))

    def decoded_status(self, gate: int) -> dict:
        return decode(self.status[gate])

    def legacy_status(self) -> np.ndarray:
        """Status codes as legacy four character binary strings."""
        return np.array([to_legacy_string(code) for code in self.status])

    def to_dict(self) -> dict:
        return {
            "spectra": self.spectra,
            "velocity": self.velocity,
            "moments": self.moments.to_dict(),
            "alias_flag": self.alias_flag,
            "status": self.status,
        }

    def __repr__(self) -> str:
        n_signal = int(np.sum(np.isfinite(self.moments.vm)))
        return (
            f"DealiasResult(n_gates={self.n_gates}, signal={n_signal}, "
            f"folded={int(self.alias_flag.sum())}, flagged={int(np.sum(self.status > 0))}, "
            f"layers={len(self.layers)}, dealiased={self.dealiased})"
        )


class ResultBuilder:
    """
    Accumulates partial results into fresh profile-wide arrays.

    The builder starts from copies of the (filtered) input spectra, the
    per-gate velocity axes, the detector's noise levels and alias flags.
    Status bits are OR-ed in and never cleared.
    """

    def __init__(self, spectra: np.ndarray, velocity: np.ndarray, noise, alias_flag: np.ndarray):
        n_gates = spectra.shape[0]
        self._spectra = spectra.copy()
        self._velocity = velocity.copy()
        self._moments = MomentsSet.empty(n_gates)
        self._moments.peaknoise[:] = noise.peaknoise
        self._moments.meannoise[:] = noise.meannoise
        self._alias_flag = alias_flag.copy()
        self._status = np.zeros(n_gates, dtype="int64")
        self._layers = []

    def add_layer(self, layer) -> None:
        self._layers.append(layer)

    def apply(self, partial: PartialResult) -> None:
        for outcome in partial:
            g = outcome.gate
            for name, value in outcome.moments.items():
                getattr(self._moments, name)[g] = value
            if outcome.spectrum is not None:
                n = outcome.spectrum.size
                self._spectra[g, :] = np.nan
                self._spectra[g, :n] = outcome.spectrum
            if outcome.velocity is not None:
                n = outcome.velocity.size
                self._velocity[g, :] = np.nan
                self._velocity[g, :n] = outcome.velocity
            if outcome.alias_flag is not None:
                self._alias_flag[g] = outcome.alias_flag
            self._status[g] |= int(outcome.status)

    def build(self, dealiased: bool) -> DealiasResult:
        return DealiasResult(
            spectra=self._spectra,
            velocity=self._velocity,
            moments=self._moments,
            alias_flag=self._alias_flag,
            status=self._status,
            layers=list(self._layers),
            dealiased=dealiased,
        )
