"""Scale construction from a root pitch class and an interval pattern.

A scale is the list produced by adding each interval of a pattern to the root
and wrapping around the twelve-tone chromatic table.  Pattern order is
preserved, so ``generate_scale("F", "minor")`` starts on ``F`` and wraps past
``B`` back to ``C``::

    >>> generate_scale("F", "minor")
    [5, 7, 8, 10, 0, 1, 3]

Unknown roots or scale kinds raise :class:`~phrase_generator.errors.InvalidArgument`
instead of returning an empty list, so a caller can never go on to generate
notes from an unusable scale.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from types import MappingProxyType
from typing import List, Mapping, Tuple, Union

from .errors import InvalidArgument

__all__ = [
    "NOTES",
    "NOTE_TO_SEMITONE",
    "SCALE_PATTERNS",
    "generate_scale",
    "pitch_class_for",
    "canonical_scale_kind",
    "pitch_name",
    "key_display",
]

# Sharp spellings only; generated pitches are always spelled from this table.
NOTES: Tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

# Both sharp and flat spellings resolve to the same semitone so users may type
# ``Bb`` for a root even though output is spelled ``A#``.
NOTE_TO_SEMITONE: Mapping[str, int] = MappingProxyType(
    {
        "C": 0,
        "B#": 0,
        "C#": 1,
        "Db": 1,
        "D": 2,
        "D#": 3,
        "Eb": 3,
        "E": 4,
        "Fb": 4,
        "E#": 5,
        "F": 5,
        "F#": 6,
        "Gb": 6,
        "G": 7,
        "G#": 8,
        "Ab": 8,
        "A": 9,
        "A#": 10,
        "Bb": 10,
        "B": 11,
        "Cb": 11,
    }
)

# Semitone offsets from the root, ascending.
SCALE_PATTERNS: Mapping[str, Tuple[int, ...]] = MappingProxyType(
    {
        "major": (0, 2, 4, 5, 7, 9, 11),
        "minor": (0, 2, 3, 5, 7, 8, 10),
        "pentatonic": (0, 2, 4, 7, 9),
    }
)

_LOWER_NOTE_NAMES = {name.lower(): value for name, value in NOTE_TO_SEMITONE.items()}

Root = Union[int, str]


def pitch_class_for(root: Root) -> int:
    """Return the pitch class (``0``-``11``) for ``root``.

    ``root`` may already be a pitch class or a note name such as ``"F#"`` or
    ``"bb"``. Booleans are rejected even though they are integers.

    Raises
    ------
    InvalidArgument
        If ``root`` is neither a pitch class in range nor a known note name.
    """

    if isinstance(root, bool):
        raise InvalidArgument(f"Invalid root note: {root!r}")
    if isinstance(root, int):
        if not 0 <= root <= 11:
            raise InvalidArgument(f"Invalid root note: {root}")
        return root
    if isinstance(root, str):
        value = _LOWER_NOTE_NAMES.get(root.strip().lower())
        if value is not None:
            return value
    raise InvalidArgument(f"Invalid root note: {root!r}")


@lru_cache(maxsize=None)
def canonical_scale_kind(name: str) -> str:
    """Return the lowercase scale kind for ``name`` or raise ``InvalidArgument``."""

    kind = name.strip().lower() if isinstance(name, str) else None
    if kind not in SCALE_PATTERNS:
        raise InvalidArgument(f"Invalid scale type: {name!r}")
    return kind


def generate_scale(root: Root, kind: str) -> List[int]:
    """Return the pitch classes of the ``kind`` scale starting on ``root``.

    Parameters
    ----------
    root:
        Pitch class or note name of the tonic.
    kind:
        One of the keys of :data:`SCALE_PATTERNS`.

    Returns
    -------
    List[int]
        Pitch classes in interval-pattern order. The list always has the same
        length as the pattern and every entry lies in ``0``-``11``.

    Raises
    ------
    InvalidArgument
        If ``root`` or ``kind`` is unknown.
    """

    try:
        root_index = pitch_class_for(root)
        pattern = SCALE_PATTERNS[canonical_scale_kind(kind)]
    except InvalidArgument as exc:
        logging.error("Cannot build scale: %s", exc)
        raise

    return [(root_index + interval) % 12 for interval in pattern]


def pitch_name(pitch_class: int, octave: int) -> str:
    """Return the spelled pitch for ``pitch_class`` in ``octave`` (``"F#4"``)."""

    if not 0 <= pitch_class <= 11:
        raise InvalidArgument(f"Pitch class out of range: {pitch_class}")
    return f"{NOTES[pitch_class]}{octave}"


def key_display(root: Root, kind: str) -> str:
    """Return a human readable key label such as ``"C Major"``."""

    return f"{NOTES[pitch_class_for(root)]} {canonical_scale_kind(kind).capitalize()}"
