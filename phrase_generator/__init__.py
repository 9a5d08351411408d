#!/usr/bin/env python3
"""Phrase Generator library.

This package builds short musical phrases (a handful of bars in a chosen time
signature, key and rhythmic granularity) and prepares them for display as
music notation in the browser.  A typical workflow is to call
:func:`generate_melody` with a bar count, root, scale kind, time signature and
shortest note, then pass the result to
:func:`phrase_generator.notation.melody_to_notation` for the VexFlow page or to
:func:`create_midi_file` for a MIDI track.  A command line interface and a
Flask web interface wrap these calls.

Underlying Algorithm
--------------------
Each bar is filled greedily: the longest allowed duration that still fits the
remaining space is placed next, so the rhythm is a deterministic function of
the bar length and the allowed durations.  Pitch classes are drawn uniformly
from the scale and melody notes may jump up one octave at random.  When the
allowed durations cannot close a bar the filler looks for an exact match in
the full duration catalogue; if even that fails the bar is returned partially
filled and flagged so the caller can warn about it.

Algorithm Pseudocode
--------------------
The following outlines :func:`generate_melody`::

    params = validate(all inputs)          # raises InvalidArgument
    scale = generate_scale(root, kind)
    for voice in (melody, bass)[:voices]:
        start = 0
        for i in range(bars):
            notes = fill_bar(bar_length, allowed, scale, octave, start)
            bars.append(Bar(i, notes, partial=...))
            start += bar_length
    return Melody(voices, tempo, time_signature, root, kind)
"""

__version__ = "0.2.0"

import json
import logging
import os
import random
from pathlib import Path
from typing import Optional, Union

from .errors import InvalidArgument
from .durations import (  # noqa: F401
    DURATION_VALUES,
    TOLERANCE,
    all_durations,
    canonical_duration,
    duration_for_length,
    durations_at_most,
    length_of,
)
from .scales import (  # noqa: F401
    NOTES,
    NOTE_TO_SEMITONE,
    SCALE_PATTERNS,
    generate_scale,
    key_display,
    pitch_name,
)
from .models import Bar, Melody, Note, Pitch, TimeSignature, Voice  # noqa: F401
from .bar_filler import (  # noqa: F401
    CLOSURE_POLICIES,
    MAX_NOTES_PER_BAR,
    BarFill,
    FillObserver,
    fill_bar,
)
from .sequence import (  # noqa: F401
    TIME_SIGNATURES,
    flatten_bars_to_notes,
    generate_sequence,
    get_time_signature,
)
from .note_utils import midi_to_note, note_to_midi, parse_pitch  # noqa: F401
from .midi_io import INSTRUMENTS, create_midi_file  # noqa: F401
from .utils import MAX_BARS, MAX_OCTAVE, MIN_OCTAVE, validate_generation_params  # noqa: F401

# Default path for storing user preferences. The file lives in the user's home
# directory so CLI defaults persist between runs.
env_path = os.environ.get("PHRASE_GENERATOR_SETTINGS_FILE")
if env_path:
    DEFAULT_SETTINGS_FILE = Path(env_path).expanduser()
else:
    DEFAULT_SETTINGS_FILE = Path.home() / ".phrase_generator_settings.json"


def load_settings(path: Path = DEFAULT_SETTINGS_FILE) -> dict:
    """Load saved user settings from ``path`` if it exists.

    @param path (Path): Location of the settings file.
    @returns dict: Loaded settings or an empty dictionary when unavailable.
    """
    # Prefer the user's saved options but fall back to an empty dictionary
    # when the settings file is missing, unreadable or not a JSON object.
    if path.is_file():
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logging.error(f"Could not load settings: {exc}")
            return {}
        if isinstance(data, dict):
            return data
        logging.error("Ignoring settings file %s: expected a JSON object", path)
    return {}


def save_settings(settings: dict, path: Path = DEFAULT_SETTINGS_FILE) -> None:
    """Save user ``settings`` to ``path`` as JSON.

    @param settings (dict): Options to be persisted.
    @param path (Path): Destination file path.
    @returns None: Function does not return a value.
    """
    # Failing to save preferences is logged but never prevents generation.
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(settings, fh, indent=2)
    except OSError as exc:
        logging.error(f"Could not save settings: {exc}")


def generate_melody(
    num_bars: int,
    root: Union[str, int],
    scale_kind: str,
    time_signature: str,
    shortest_note: str,
    *,
    voices: int = 1,
    tempo: int = 120,
    base_octave: int = 4,
    instrument: str = "Piano",
    syncopated: bool = False,
    closure: str = "lenient",
    rng: Optional[random.Random] = None,
    observer: Optional[FillObserver] = None,
) -> Melody:
    """Generate a complete :class:`Melody`.

    Parameters
    ----------
    num_bars:
        Number of bars in every voice.
    root:
        Tonic as a note name (``"F#"``, ``"Bb"``) or pitch class.
    scale_kind:
        ``"major"``, ``"minor"`` or ``"pentatonic"``.
    time_signature:
        ``"2/4"``, ``"3/4"`` or ``"4/4"``.
    shortest_note:
        Duration name; every catalogue duration no longer than it may be used.
    voices:
        ``1`` for a melody alone, ``2`` to add a bass line one octave lower.
    tempo:
        Beats per minute. Stored on the melody for renderers and MIDI export.
    base_octave:
        Lowest octave of the melody voice.
    instrument:
        Name from :data:`INSTRUMENTS`; informational only.
    syncopated:
        Stored on the melody for renderers; the rhythm is unaffected.
    closure, rng, observer:
        Forwarded to :func:`fill_bar`.

    Returns
    -------
    Melody
        Voices in order melody, bass. Bars that could not be filled exactly
        have ``partial`` set.

    Raises
    ------
    InvalidArgument
        If any parameter is invalid. All inputs are checked before the first
        bar is generated so a bad request never yields a melody.
    """

    params = validate_generation_params(
        bars=num_bars,
        voices=voices,
        shortest_note=shortest_note,
        time_signature=time_signature,
        root=root,
        scale_kind=scale_kind,
        tempo=tempo,
        base_octave=base_octave,
        instrument=instrument,
    )
    if closure not in CLOSURE_POLICIES:
        raise InvalidArgument(f"Unknown closure policy: {closure!r}", field="closure")
    scale = generate_scale(params["root"], params["scale_kind"])

    layout = [("Melody", "treble", params["base_octave"], False)]
    if params["voices"] == 2:
        bass_octave = max(MIN_OCTAVE, params["base_octave"] - 1)
        layout.append(("Bass", "bass", bass_octave, True))

    built = []
    for name, clef, octave, is_bass in layout:
        bars = generate_sequence(
            params["bars"],
            params["time_signature"],
            scale,
            octave,
            params["shortest_note"],
            is_bass,
            closure=closure,
            rng=rng,
            observer=observer,
        )
        built.append(Voice(name=name, clef=clef, bars=tuple(bars)))

    melody = Melody(
        voices=tuple(built),
        tempo=params["tempo"],
        time_signature=params["time_signature"],
        root=params["root"],
        scale_kind=params["scale_kind"],
        scale=tuple(scale),
        instrument=params["instrument"],
        syncopated=bool(syncopated),
    )
    partial = melody.partial_bars
    if partial:
        logging.warning(
            "%d bar(s) could not be filled exactly with durations up to %s",
            len(partial),
            params["shortest_note"],
        )
    logging.debug(
        "Generated %d voice(s) of %d bar(s) in %s",
        len(built),
        params["bars"],
        key_display(params["root"], params["scale_kind"]),
    )
    return melody


def run_cli():
    from .cli import run_cli as _run_cli
    _run_cli()


def main():
    from .cli import main as _main
    _main()


if __name__ == "__main__":
    main()
