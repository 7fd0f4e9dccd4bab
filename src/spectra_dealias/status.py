"""
Per-gate status bits emitted by the de-aliasing.
"""

import enum
import numpy as np
from typing import Union


class StatusFlag(enum.IntFlag):
    """
    Four independent diagnostic bits, combinable.

    The integer value matches the legacy encoding where the flags were
    written as a four character binary string and converted to decimal,
    e.g. ``'0101'`` == 5 == NO_INITIAL_GUESS | NEAR_NYQUIST.
    """

    OK = 0
    NO_INITIAL_GUESS = 1        # no velocity guess, raw spectrum kept
    BOUNDARY_REACHED = 2        # fold needed beyond the available velocity axis
    NEAR_NYQUIST = 4            # dominant peak still on a Nyquist edge
    PREVIOUS_COLUMN_JUMP = 8    # vm too far from the previous time step


def to_legacy_string(code: Union[int, StatusFlag]) -> str:
    """Return the four character binary form, e.g. 5 -> '0101'."""
    code = int(code)
    if not 0 <= code <= 15:
        raise ValueError(f"Status code out of range: {code}")
    return format(code, "04b")


def from_legacy_string(bits: str) -> StatusFlag:
    """Parse a legacy binary string such as '0101' into a StatusFlag."""
    if len(bits) != 4 or set(bits) - {"0", "1"}:
        raise ValueError(f"Invalid legacy status string: {bits!r}")
    return StatusFlag(int(bits, 2))


def decode(code: Union[int, np.integer]) -> dict:
    """
    Split a status code into named booleans.

    Parameters
    ----------
    code : int
        Status code 0-15

    Returns
    -------
    dict
        {flag_name: bool} for the four bits
    """
    flag = StatusFlag(int(code))
    return {
        member.name.lower(): bool(flag & member)
        for member in StatusFlag
        if member is not StatusFlag.OK
    }
