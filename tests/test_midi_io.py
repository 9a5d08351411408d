"""Tests for MIDI export.

The files are written with the real ``mido`` package and read back to check
track layout, meta messages and note timing.
"""

import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

mido = pytest.importorskip("mido")

from phrase_generator import generate_melody  # noqa: E402
from phrase_generator.errors import InvalidArgument  # noqa: E402
from phrase_generator.midi_io import INSTRUMENTS, TICKS_PER_BEAT, create_midi_file  # noqa: E402
from phrase_generator.models import Bar, Melody, Note, Pitch, Voice  # noqa: E402


def _messages(track, kind):
    return [msg for msg in track if msg.type == kind]


def _simple_melody(notes, **kwargs):
    bar = Bar(index=0, notes=tuple(notes), duration=4.0, time_signature="4/4")
    voice = Voice(name="Melody", clef="treble", bars=(bar,))
    return Melody(voices=(voice,), tempo=100, time_signature="4/4", root="C", scale_kind="major", **kwargs)


def test_one_track_per_voice(tmp_path):
    melody = generate_melody(2, "C", "major", "3/4", "1/4", voices=2, rng=random.Random(0))
    out = tmp_path / "two.mid"
    create_midi_file(melody, str(out))

    mid = mido.MidiFile(str(out))
    assert mid.ticks_per_beat == TICKS_PER_BEAT
    assert len(mid.tracks) == 2
    for track, voice in zip(mid.tracks, melody.voices):
        assert len(_messages(track, "note_on")) == len(voice.notes)
        assert len(_messages(track, "note_off")) == len(voice.notes)
    assert {msg.channel for msg in _messages(mid.tracks[1], "note_on")} == {1}


def test_tempo_and_time_signature_meta(tmp_path):
    melody = generate_melody(1, "G", "major", "3/4", "1/4", tempo=90)
    out = tmp_path / "meta.mid"
    create_midi_file(melody, str(out))

    first = mido.MidiFile(str(out)).tracks[0]
    (tempo,) = _messages(first, "set_tempo")
    assert tempo.tempo == mido.bpm2tempo(90)
    (meter,) = _messages(first, "time_signature")
    assert (meter.numerator, meter.denominator) == (3, 4)


def test_note_timing_and_downbeat_accent(tmp_path):
    melody = _simple_melody(
        [Note(0.0, Pitch(0, 4), "1/2"), Note(2.0, Pitch(4, 4), "1/2")]
    )
    out = tmp_path / "timing.mid"
    create_midi_file(melody, str(out))

    track = mido.MidiFile(str(out)).tracks[0]
    notes = [msg for msg in track if msg.type in ("note_on", "note_off")]
    assert [(m.type, m.note, m.time) for m in notes] == [
        ("note_on", 60, 0),
        ("note_off", 60, 2 * TICKS_PER_BEAT),
        ("note_on", 64, 0),
        ("note_off", 64, 2 * TICKS_PER_BEAT),
    ]
    assert notes[0].velocity > notes[2].velocity


def test_program_defaults_to_instrument(tmp_path):
    melody = _simple_melody([Note(0.0, Pitch(0, 4), "1")], instrument="Flute")
    out = tmp_path / "flute.mid"
    create_midi_file(melody, str(out))
    (change,) = _messages(mido.MidiFile(str(out)).tracks[0], "program_change")
    assert change.program == INSTRUMENTS["Flute"]


def test_missing_parent_directory_is_created(tmp_path):
    melody = _simple_melody([Note(0.0, Pitch(0, 4), "1")])
    out = tmp_path / "nested" / "dir" / "out.mid"
    create_midi_file(melody, str(out))
    assert out.is_file()


def test_invalid_program_raises(tmp_path):
    melody = _simple_melody([Note(0.0, Pitch(0, 4), "1")])
    with pytest.raises(InvalidArgument):
        create_midi_file(melody, str(tmp_path / "bad.mid"), program=128)
