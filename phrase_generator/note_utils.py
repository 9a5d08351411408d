"""Conversions between spelled pitches, :class:`Pitch` objects and MIDI numbers.

These helpers are shared by the notation adapter, which needs the letter and
octave of each pitch, and the MIDI writer, which needs note numbers.

Example
-------
>>> from phrase_generator.note_utils import note_to_midi, parse_pitch
>>> note_to_midi("C4")
60
>>> parse_pitch("F#4").pitch_class
6
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Union

from .errors import InvalidArgument
from .models import Pitch
from .scales import NOTE_TO_SEMITONE, NOTES

__all__ = ["parse_pitch", "note_to_midi", "midi_to_note"]

# Letter, optional accidental, signed octave. Examples: ``C#4``, ``Bb3``, ``C-1``.
_PITCH_RE = re.compile(r"([A-Ga-g][#b]?)(-?\d+)")


@lru_cache(maxsize=None)
def parse_pitch(note: str) -> Pitch:
    """Return the :class:`Pitch` spelled by ``note``.

    Flats are accepted and mapped to their sharp equivalents, so
    ``parse_pitch("Bb3")`` and ``parse_pitch("A#3")`` are equal.

    Raises
    ------
    InvalidArgument
        If ``note`` is not a letter, optional accidental and octave.
    """

    match = _PITCH_RE.fullmatch(note.strip()) if isinstance(note, str) else None
    if not match:
        logging.error("Invalid note format: %s", note)
        raise InvalidArgument(f"Invalid note format: {note!r}")

    name, octave = match.groups()
    name = name[0].upper() + name[1:]
    try:
        pitch_class = NOTE_TO_SEMITONE[name]
    except KeyError:
        raise InvalidArgument(f"Unknown note name: {name}") from None
    return Pitch(pitch_class, int(octave))


def note_to_midi(note: Union[str, Pitch]) -> int:
    """Convert ``note`` (``"C#4"`` or a :class:`Pitch`) into a MIDI number.

    Raises
    ------
    InvalidArgument
        If the note is malformed or falls outside the MIDI range ``0-127``.
    """

    pitch = note if isinstance(note, Pitch) else parse_pitch(note)
    # MIDI octave numbering is offset by one from scientific pitch notation.
    midi_val = pitch.pitch_class + (pitch.octave + 1) * 12
    if not 0 <= midi_val <= 127:
        raise InvalidArgument(
            f"Computed MIDI value {midi_val} out of range 0-127 for note {pitch.name}"
        )
    return midi_val


def midi_to_note(midi_note: int) -> str:
    """Convert a MIDI number into a sharp-spelled note name such as ``"C4"``.

    >>> midi_to_note(61)
    'C#4'
    """

    if not 0 <= midi_note <= 127:
        raise InvalidArgument(f"MIDI note {midi_note} out of range 0-127")
    return f"{NOTES[midi_note % 12]}{midi_note // 12 - 1}"
