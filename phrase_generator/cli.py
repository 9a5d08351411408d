"""Command line helpers for Phrase Generator.

This module implements the console entry points for the project.
:func:`run_cli` parses arguments, generates a melody and prints it either as a
readable bar-by-bar listing or as the JSON payload consumed by the notation
page.  ``--output`` additionally writes a MIDI file and ``--serve`` starts the
Flask web interface instead of generating anything.

Option defaults come from the JSON settings file (see
:func:`phrase_generator.load_settings`), so a user who always writes in 3/4
can store that once with ``--save-settings``.

Example
-------
Running ``python -m phrase_generator --bars 4 --timesig 3/4 --root F \
    --scale minor --shortest-note 1/8 --voices 2`` prints four bars of F minor
in 3/4 for a melody and a bass voice.
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional

from . import (
    DEFAULT_SETTINGS_FILE,
    INSTRUMENTS,
    MAX_BARS,
    MAX_OCTAVE,
    MIN_OCTAVE,
    NOTES,
    SCALE_PATTERNS,
    TIME_SIGNATURES,
    all_durations,
    create_midi_file,
    generate_melody,
    key_display,
    load_settings,
    save_settings,
)
from .errors import InvalidArgument
from .models import Melody
from .notation import melody_to_notation

__all__ = ["run_cli", "main", "format_melody"]

# Options persisted by ``--save-settings`` and restored as argument defaults.
_SETTING_KEYS = (
    "bars",
    "voices",
    "shortest_note",
    "timesig",
    "root",
    "scale",
    "tempo",
    "base_octave",
    "instrument",
)

_LISTINGS = {
    "--list-durations": lambda: all_durations(),
    "--list-scales": lambda: list(SCALE_PATTERNS),
    "--list-timesigs": lambda: list(TIME_SIGNATURES),
    "--list-roots": lambda: list(NOTES),
}


def format_melody(melody: Melody) -> str:
    """Return a plain-text listing of ``melody`` with one line per bar."""

    lines = [
        f"{key_display(melody.root, melody.scale_kind)}, "
        f"{melody.time_signature}, {melody.tempo} BPM"
    ]
    for voice in melody.voices:
        lines.append(f"{voice.name} ({voice.clef} clef):")
        for bar in voice.bars:
            notes = " ".join(f"{n.pitch.name}({n.duration})" for n in bar.notes)
            marker = " [partial]" if bar.partial else ""
            lines.append(f"  Bar {bar.number}: {notes or '-'}{marker}")
    return "\n".join(lines)


def _build_parser(settings: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a short melody and print it or save it as MIDI."
    )
    for flag in _LISTINGS:
        parser.add_argument(flag, action="store_true", help=f"Print the supported {flag[7:]} and exit")
    parser.add_argument("--bars", type=int, default=4, help=f"Number of bars (1-{MAX_BARS}, default: 4).")
    parser.add_argument("--voices", type=int, default=1, choices=(1, 2), help="1 for melody only, 2 to add a bass line.")
    parser.add_argument("--shortest-note", dest="shortest_note", type=str, default="1/4", help="Duration name such as 1/8 or 'eighth' (default: 1/4).")
    parser.add_argument("--timesig", type=str, default="4/4", help="Time signature: " + ", ".join(TIME_SIGNATURES) + " (default: 4/4).")
    parser.add_argument("--root", type=str, default="C", help="Root note of the scale (default: C).")
    parser.add_argument("--scale", type=str, default="major", help="Scale kind: " + ", ".join(SCALE_PATTERNS) + " (default: major).")
    parser.add_argument("--tempo", type=int, default=120, help="Tempo in beats per minute (default: 120).")
    parser.add_argument(
        "--base-octave",
        dest="base_octave",
        type=int,
        default=4,
        help=f"Lowest octave of the melody ({MIN_OCTAVE}-{MAX_OCTAVE}, default: 4).",
    )
    parser.add_argument("--instrument", type=str, default="Piano", help="Instrument: " + ", ".join(INSTRUMENTS) + " (default: Piano).")
    parser.add_argument("--strict-closure", action="store_true", help="Never close a bar with a duration outside the allowed set")
    parser.add_argument("--syncopated", action="store_true", help="Mark the melody as syncopated (stored with the output only)")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    parser.add_argument("--json", action="store_true", help="Print the notation payload as JSON")
    parser.add_argument("--output", type=str, help="Also write the melody to this MIDI file")
    parser.add_argument("--settings-file", type=str, help="Path to the JSON settings file")
    parser.add_argument("--save-settings", action="store_true", help="Store the current options as future defaults")
    parser.add_argument("--serve", action="store_true", help="Run the web interface instead of generating")
    parser.add_argument("--port", type=int, default=5000, help="Port for --serve (default: 5000)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.set_defaults(**{k: v for k, v in settings.items() if k in _SETTING_KEYS})
    return parser


def _serve(port: int) -> None:
    try:
        from .web_gui import create_app
    except ImportError as exc:
        logging.error("Flask is required for the web interface: %s", exc)
        sys.exit(1)
    try:
        app = create_app()
    except RuntimeError as exc:
        logging.error(str(exc))
        sys.exit(1)
    app.run(port=port)


def run_cli(argv: Optional[List[str]] = None) -> None:
    """Parse CLI arguments and generate a melody.

    Invalid parameters are logged and terminate the process with exit code
    ``1`` before anything is printed or written, so scripts never receive a
    partial result. Bars that could not be filled exactly are still printed
    and marked ``[partial]``.
    """

    args_list = sys.argv[1:] if argv is None else argv
    for flag, listing in _LISTINGS.items():
        if flag in args_list:
            print("\n".join(listing()))
            return

    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--settings-file", type=str)
    pre_args, _ = pre_parser.parse_known_args(args_list)
    settings_path = (
        Path(pre_args.settings_file).expanduser() if pre_args.settings_file else DEFAULT_SETTINGS_FILE
    )

    args = _build_parser(load_settings(settings_path)).parse_args(args_list)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.serve:
        _serve(args.port)
        return

    rng = random.Random(args.seed) if args.seed is not None else None

    try:
        melody = generate_melody(
            args.bars,
            args.root,
            args.scale,
            args.timesig,
            args.shortest_note,
            voices=args.voices,
            tempo=args.tempo,
            base_octave=args.base_octave,
            instrument=args.instrument,
            syncopated=args.syncopated,
            closure="strict" if args.strict_closure else "lenient",
            rng=rng,
        )
    except InvalidArgument as exc:
        logging.error(str(exc))
        sys.exit(1)

    if args.save_settings:
        save_settings({key: getattr(args, key) for key in _SETTING_KEYS}, settings_path)

    if args.json:
        print(json.dumps(melody_to_notation(melody), indent=2))
    else:
        print(format_melody(melody))

    if args.output:
        try:
            create_midi_file(melody, args.output)
        except (ImportError, OSError) as exc:
            # The melody was already printed; only the file is missing.
            logging.error("Could not write MIDI file: %s", exc)
            sys.exit(1)

    logging.info("Melody generation complete.")


def main() -> None:
    """Entry point for ``python -m phrase_generator`` and the console script."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli()
