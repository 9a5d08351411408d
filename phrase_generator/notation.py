"""Adapter between generated melodies and the browser notation renderer.

Drawing is done client side by VexFlow (see ``templates/score.html``).  This
module only turns a :class:`~phrase_generator.models.Melody` into the plain
data VexFlow needs: one entry per voice with its clef and bars, and for every
note a lowercase key such as ``"f#/4"`` and a duration tag such as ``"8"``.
The payload is JSON serialisable so the web view can embed it directly and the
CLI can print it.

A failure to load or run VexFlow is handled entirely in the page; nothing here
depends on the renderer being available.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Mapping, Union

from .errors import InvalidArgument
from .models import Bar, Melody, Note, Pitch, Voice
from .note_utils import parse_pitch
from .scales import NOTES, key_display

__all__ = [
    "DURATION_TO_VEXFLOW",
    "pitch_to_vexflow_key",
    "note_to_notation",
    "melody_to_notation",
]

DURATION_TO_VEXFLOW: Mapping[str, str] = MappingProxyType(
    {
        "1": "w",
        "1/2": "h",
        "1/4": "q",
        "1/8": "8",
        "1/16": "16",
        "1/32": "32",
    }
)


def pitch_to_vexflow_key(pitch: Union[str, Pitch]) -> str:
    """Return the VexFlow key for ``pitch``, e.g. ``"F#4"`` -> ``"f#/4"``."""

    if not isinstance(pitch, Pitch):
        pitch = parse_pitch(pitch)
    return f"{NOTES[pitch.pitch_class].lower()}/{pitch.octave}"


def note_to_notation(note: Note) -> Dict[str, object]:
    try:
        tag = DURATION_TO_VEXFLOW[note.duration]
    except KeyError:
        raise InvalidArgument(f"Unknown duration: {note.duration}") from None
    return {
        "time": note.start_time,
        "pitch": note.pitch.name,
        "keys": [pitch_to_vexflow_key(note.pitch)],
        "duration": tag,
        "name": note.duration,
    }


def _bar_to_notation(bar: Bar) -> Dict[str, object]:
    return {
        "number": bar.number,
        "duration": bar.duration,
        "partial": bar.partial,
        "notes": [note_to_notation(note) for note in bar.notes],
    }


def _voice_to_notation(voice: Voice) -> Dict[str, object]:
    return {
        "name": voice.name,
        "clef": voice.clef,
        "bars": [_bar_to_notation(bar) for bar in voice.bars],
    }


def melody_to_notation(melody: Melody) -> Dict[str, object]:
    """Return a JSON-ready description of ``melody`` for the renderer.

    Notes appear in time order within each bar and bars in order within each
    voice. ``partial`` marks bars that stop short of the bar line so the page
    can warn about them.
    """

    voices: List[Dict[str, object]] = [_voice_to_notation(v) for v in melody.voices]
    return {
        "timeSignature": melody.time_signature,
        "tempo": melody.tempo,
        "key": key_display(melody.root, melody.scale_kind),
        "instrument": melody.instrument,
        "syncopated": melody.syncopated,
        "voices": voices,
        "partialBars": sorted({bar.number for bar in melody.partial_bars}),
    }
