"""Fixed catalogue of note durations.

Durations are identified by their fractional names (``"1"`` for a whole note,
``"1/8"`` for an eighth and so on).  Each name maps to its length in the units
used throughout the package, where a whole note is ``4`` and a quarter note is
``1``.  The table is ordered longest first and exposed read-only so no caller
can register new values at runtime.

Example
-------
>>> from phrase_generator.durations import durations_at_most, length_of
>>> length_of("1/8")
0.5
>>> durations_at_most("1/4")
['1/4', '1/8', '1/16', '1/32']
"""

from __future__ import annotations

from functools import lru_cache
from types import MappingProxyType
from typing import List, Mapping

from .errors import InvalidArgument

__all__ = [
    "DURATION_VALUES",
    "DURATION_ALIASES",
    "TOLERANCE",
    "length_of",
    "all_durations",
    "durations_at_most",
    "canonical_duration",
    "duration_for_length",
]

# Lengths compare as floats; every catalogue value is a power of two so sums of
# them are exact, but the tolerance still guards comparisons of derived values.
TOLERANCE = 1e-3

DURATION_VALUES: Mapping[str, float] = MappingProxyType(
    {
        "1": 4.0,  # whole
        "1/2": 2.0,  # half
        "1/4": 1.0,  # quarter
        "1/8": 0.5,  # eighth
        "1/16": 0.25,  # sixteenth
        "1/32": 0.125,  # thirty-second
    }
)

# English names accepted on input. They resolve to the fractional names above.
DURATION_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "whole": "1",
        "half": "1/2",
        "quarter": "1/4",
        "eighth": "1/8",
        "sixteenth": "1/16",
        "thirty-second": "1/32",
        "thirtysecond": "1/32",
    }
)


@lru_cache(maxsize=None)
def canonical_duration(name: str) -> str:
    """Return the catalogue name for ``name``.

    Parameters
    ----------
    name:
        Either a fractional name such as ``"1/8"`` or an English alias such as
        ``"eighth"``. Case and surrounding whitespace are ignored.

    Raises
    ------
    InvalidArgument
        If ``name`` does not correspond to a catalogue entry.
    """

    if not isinstance(name, str):
        raise InvalidArgument(f"Unknown duration: {name!r}")
    cleaned = name.strip().lower()
    if cleaned in DURATION_VALUES:
        return cleaned
    alias = DURATION_ALIASES.get(cleaned)
    if alias is None:
        raise InvalidArgument(f"Unknown duration: {name}")
    return alias


def length_of(duration: str) -> float:
    """Return the length of ``duration`` (quarter note == ``1``)."""

    return DURATION_VALUES[canonical_duration(duration)]


def all_durations() -> List[str]:
    """Return every catalogue name, longest first."""

    return list(DURATION_VALUES)


def durations_at_most(max_duration: str) -> List[str]:
    """Return catalogue entries no longer than ``max_duration``.

    Catalogue order (longest first) is preserved so the result can be used
    directly as a fitting preference list.
    """

    limit = length_of(max_duration)
    return [name for name, value in DURATION_VALUES.items() if value <= limit]


def duration_for_length(value: float) -> str:
    """Return the catalogue name whose length is closest to ``value``.

    Only matches within :data:`TOLERANCE` are accepted so that a length such as
    ``0.75`` (a dotted eighth) is rejected rather than rounded to a neighbour.

    Raises
    ------
    InvalidArgument
        If no catalogue length lies within the tolerance of ``value``.
    """

    name, length = min(DURATION_VALUES.items(), key=lambda item: abs(item[1] - value))
    if abs(length - value) >= TOLERANCE:
        raise InvalidArgument(f"No duration matches length {value}")
    return name
