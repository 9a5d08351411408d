"""Tests for the notation payload consumed by the VexFlow page."""

import json
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from phrase_generator import generate_melody  # noqa: E402
from phrase_generator.errors import InvalidArgument  # noqa: E402
from phrase_generator.models import Note, Pitch  # noqa: E402
from phrase_generator.notation import (  # noqa: E402
    DURATION_TO_VEXFLOW,
    melody_to_notation,
    note_to_notation,
    pitch_to_vexflow_key,
)


def test_every_catalogue_duration_has_a_vexflow_tag():
    assert list(DURATION_TO_VEXFLOW) == ["1", "1/2", "1/4", "1/8", "1/16", "1/32"]
    assert DURATION_TO_VEXFLOW["1/4"] == "q"


def test_pitch_to_vexflow_key():
    assert pitch_to_vexflow_key("F#4") == "f#/4"
    assert pitch_to_vexflow_key("Bb3") == "a#/3"
    assert pitch_to_vexflow_key(Pitch(0, 5)) == "c/5"


def test_note_to_notation():
    data = note_to_notation(Note(2.0, Pitch(4, 4), "1/8"))
    assert data == {
        "time": 2.0,
        "pitch": "E4",
        "keys": ["e/4"],
        "duration": "8",
        "name": "1/8",
    }


def test_note_with_unknown_duration_raises():
    with pytest.raises(InvalidArgument):
        note_to_notation(Note(0.0, Pitch(0, 4), "1/3"))


def test_melody_to_notation_structure():
    melody = generate_melody(
        3, "F", "minor", "3/4", "1/8", voices=2, tempo=96, rng=random.Random(4)
    )
    data = melody_to_notation(melody)
    assert data["timeSignature"] == "3/4"
    assert data["tempo"] == 96
    assert data["key"] == "F Minor"
    assert data["instrument"] == "Piano"
    assert [(v["name"], v["clef"]) for v in data["voices"]] == [
        ("Melody", "treble"),
        ("Bass", "bass"),
    ]
    for voice in data["voices"]:
        assert [bar["number"] for bar in voice["bars"]] == [1, 2, 3]
        for bar in voice["bars"]:
            times = [note["time"] for note in bar["notes"]]
            assert times == sorted(times)
    assert data["partialBars"] == []
    # The page embeds the payload verbatim.
    json.dumps(data)


def test_partial_bars_listed_once_across_voices():
    melody = generate_melody(
        2, "C", "major", "4/4", "1/32", voices=2, rng=random.Random(0)
    )
    data = melody_to_notation(melody)
    assert data["partialBars"] == [1, 2]
    assert all(bar["partial"] for bar in data["voices"][1]["bars"])
