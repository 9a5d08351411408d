"""Write generated melodies to Standard MIDI Files.

Each voice of a :class:`~phrase_generator.models.Melody` becomes its own track.
The first track also carries the tempo and time-signature meta messages.  Notes
are placed at their ``start_time`` so partial bars leave a gap before the next
bar line instead of shifting later notes earlier.

``mido`` is imported lazily so the rest of the package, including the CLI and
web views, works without it until a file is actually written.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from .errors import InvalidArgument
from .models import Melody, Voice
from .note_utils import note_to_midi
from .sequence import get_time_signature

if TYPE_CHECKING:
    from mido import MidiFile, MidiTrack

__all__ = ["TICKS_PER_BEAT", "INSTRUMENTS", "create_midi_file"]

# Ticks per duration unit of ``1`` (a quarter note).
TICKS_PER_BEAT = 480

# General MIDI program numbers for the instruments offered in the UI.
INSTRUMENTS = {
    "Piano": 0,
    "Guitar": 24,
    "Bass": 32,
    "Violin": 40,
    "Flute": 73,
}

_BASE_VELOCITY = 64
_DOWNBEAT_ACCENT = 12


def _to_ticks(value: float) -> int:
    return int(round(value * TICKS_PER_BEAT))


def _voice_events(voice: Voice) -> List[Tuple[int, int, str, int, int]]:
    """Return ``(tick, order, type, note, velocity)`` tuples for ``voice``.

    ``order`` sorts ``note_off`` before ``note_on`` at the same tick so a
    repeated pitch is released before it sounds again.
    """

    events = []
    for bar in voice.bars:
        for note in bar.notes:
            midi_note = note_to_midi(note.pitch)
            velocity = _BASE_VELOCITY
            if abs(note.start_time - bar.start_time) < 1e-6:
                velocity += _DOWNBEAT_ACCENT
            start = _to_ticks(note.start_time)
            end = _to_ticks(note.end_time)
            events.append((start, 1, "note_on", midi_note, velocity))
            events.append((end, 0, "note_off", midi_note, velocity))
    events.sort(key=lambda e: (e[0], e[1]))
    return events


def create_midi_file(melody: Melody, output_file: str, program: Optional[int] = None) -> "MidiFile":
    """Write ``melody`` to ``output_file`` and return the ``MidiFile``.

    Parameters
    ----------
    melody:
        Melody to export. Every voice is written to a separate track on its
        own channel.
    output_file:
        Destination path. Missing parent directories are created.
    program:
        General MIDI program number. Defaults to the program of
        ``melody.instrument``.

    Raises
    ------
    ImportError
        If ``mido`` is not installed.
    InvalidArgument
        If ``program`` lies outside ``0-127`` or the melody's tempo is not
        positive.
    """

    try:
        import mido
        from mido import Message, MetaMessage, MidiFile, MidiTrack
    except ModuleNotFoundError as exc:
        raise ImportError(
            "mido is required to create MIDI files; install it with 'pip install mido'"
        ) from exc

    if program is None:
        program = INSTRUMENTS.get(melody.instrument, 0)
    if not 0 <= program <= 127:
        raise InvalidArgument("Instrument program must be between 0 and 127")
    if melody.tempo <= 0:
        raise InvalidArgument("Tempo must be a positive integer")

    meter = get_time_signature(melody.time_signature)
    mid = MidiFile(ticks_per_beat=TICKS_PER_BEAT)

    for channel, voice in enumerate(melody.voices):
        track: "MidiTrack" = MidiTrack()
        mid.tracks.append(track)
        track.append(MetaMessage("track_name", name=voice.name, time=0))
        if channel == 0:
            track.append(MetaMessage("set_tempo", tempo=mido.bpm2tempo(melody.tempo), time=0))
            track.append(
                MetaMessage(
                    "time_signature",
                    numerator=meter.beats_per_bar,
                    denominator=meter.beat_unit,
                    time=0,
                )
            )
        track.append(Message("program_change", program=program, channel=channel, time=0))

        last_tick = 0
        for tick, _order, kind, note, velocity in _voice_events(voice):
            track.append(
                Message(kind, note=note, velocity=velocity, channel=channel, time=tick - last_tick)
            )
            last_tick = tick

    Path(output_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
    mid.save(output_file)
    logging.info("MIDI file saved to %s", output_file)
    return mid
