"""Command line interface tests.

``run_cli`` is called with explicit argument lists and a settings file inside
``tmp_path`` so the user's real preferences are never read or written.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from phrase_generator import cli  # noqa: E402


@pytest.fixture
def settings_file(tmp_path):
    return tmp_path / "settings.json"


def _run(settings_file, *args):
    cli.run_cli(["--settings-file", str(settings_file), *args])


def test_text_output(settings_file, capsys):
    _run(settings_file, "--bars", "2", "--timesig", "3/4", "--root", "F", "--scale", "minor", "--seed", "1")
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "F Minor, 3/4, 120 BPM"
    assert out[1] == "Melody (treble clef):"
    assert out[2].startswith("  Bar 1: ")
    assert out[3].startswith("  Bar 2: ")
    assert len(out) == 4


def test_two_voices_list_bass(settings_file, capsys):
    _run(settings_file, "--bars", "1", "--voices", "2")
    out = capsys.readouterr().out
    assert "Bass (bass clef):" in out


def test_json_output(settings_file, capsys):
    _run(settings_file, "--bars", "3", "--json", "--shortest-note", "eighth")
    data = json.loads(capsys.readouterr().out)
    assert data["timeSignature"] == "4/4"
    assert len(data["voices"][0]["bars"]) == 3


def test_seed_makes_output_reproducible(settings_file, capsys):
    _run(settings_file, "--seed", "5", "--shortest-note", "1/16")
    first = capsys.readouterr().out
    _run(settings_file, "--seed", "5", "--shortest-note", "1/16")
    assert capsys.readouterr().out == first


def test_partial_bars_are_marked(settings_file, capsys):
    _run(settings_file, "--bars", "1", "--shortest-note", "1/32")
    assert "[partial]" in capsys.readouterr().out


@pytest.mark.parametrize(
    "args",
    [
        ["--root", "X"],
        ["--scale", "invalid"],
        ["--timesig", "5/4"],
        ["--shortest-note", "1/64"],
        ["--bars", "0"],
        ["--base-octave", "9"],
        ["--instrument", "Kazoo"],
    ],
)
def test_invalid_arguments_exit_with_error(settings_file, capsys, caplog, args):
    with pytest.raises(SystemExit) as excinfo:
        _run(settings_file, *args)
    assert excinfo.value.code == 1
    assert capsys.readouterr().out == ""
    assert any(rec.levelno == logging.ERROR for rec in caplog.records)


@pytest.mark.parametrize(
    "flag, expected",
    [
        ("--list-durations", ["1", "1/2", "1/4", "1/8", "1/16", "1/32"]),
        ("--list-scales", ["major", "minor", "pentatonic"]),
        ("--list-timesigs", ["2/4", "3/4", "4/4"]),
    ],
)
def test_listings(capsys, flag, expected):
    cli.run_cli([flag])
    assert capsys.readouterr().out.split() == expected


def test_list_roots(capsys):
    cli.run_cli(["--list-roots"])
    assert len(capsys.readouterr().out.split()) == 12


def test_save_and_reuse_settings(settings_file, capsys):
    _run(settings_file, "--timesig", "2/4", "--root", "D", "--bars", "1", "--save-settings")
    saved = json.loads(settings_file.read_text())
    assert saved["timesig"] == "2/4"
    assert saved["root"] == "D"
    capsys.readouterr()

    _run(settings_file)
    header = capsys.readouterr().out.splitlines()[0]
    assert header == "D Major, 2/4, 120 BPM"


def test_corrupt_settings_file_is_ignored(settings_file, capsys, caplog):
    settings_file.write_text("{not json")
    _run(settings_file, "--bars", "1")
    assert capsys.readouterr().out.startswith("C Major, 4/4")
    assert "Could not load settings" in caplog.text


def test_output_writes_midi(settings_file, tmp_path, capsys):
    pytest.importorskip("mido")
    out = tmp_path / "song.mid"
    _run(settings_file, "--bars", "2", "--output", str(out))
    assert out.is_file()
    assert capsys.readouterr().out.startswith("C Major")


def test_output_failure_is_logged(settings_file, tmp_path, monkeypatch, caplog):
    def _fail(*_a, **_k):
        raise OSError("permission denied")

    monkeypatch.setattr(cli, "create_midi_file", _fail)
    with pytest.raises(SystemExit) as excinfo:
        _run(settings_file, "--output", str(tmp_path / "x.mid"))
    assert excinfo.value.code == 1
    assert "Could not write MIDI file" in caplog.text


def test_strict_closure_flag_is_forwarded(settings_file, monkeypatch, capsys):
    seen = {}
    real = cli.generate_melody

    def _spy(*args, **kwargs):
        seen.update(kwargs)
        return real(*args, **kwargs)

    monkeypatch.setattr(cli, "generate_melody", _spy)
    _run(settings_file, "--strict-closure", "--bars", "1")
    assert seen["closure"] == "strict"


def test_syncopated_flag_reaches_json(settings_file, capsys):
    _run(settings_file, "--syncopated", "--json", "--bars", "1")
    assert json.loads(capsys.readouterr().out)["syncopated"] is True


def test_format_melody_marks_empty_bars():
    from phrase_generator.models import Bar, Melody, Voice

    bar = Bar(index=0, notes=(), duration=3.0, time_signature="3/4", partial=True)
    melody = Melody(
        voices=(Voice("Melody", "treble", (bar,)),),
        tempo=100,
        time_signature="3/4",
        root="C",
        scale_kind="major",
    )
    assert cli.format_melody(melody).splitlines()[-1] == "  Bar 1: - [partial]"
