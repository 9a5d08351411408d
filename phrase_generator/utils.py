"""Validation helpers shared by the CLI, the web interface and the library.

Every generation request passes through :func:`validate_generation_params`
before a single note is produced, so an invalid root, scale kind, time
signature or duration aborts the whole request instead of yielding an empty
or half-built melody.  Errors are raised as
:class:`~phrase_generator.errors.InvalidArgument` with ``field`` set to the
name of the offending input.

Usage Example
-------------
>>> from phrase_generator.utils import validate_time_signature
>>> validate_time_signature(" 3 / 4 ")
'3/4'
"""

from __future__ import annotations

from typing import Dict, Optional, Union

from .durations import canonical_duration
from .errors import InvalidArgument
from .midi_io import INSTRUMENTS
from .scales import NOTES, canonical_scale_kind, pitch_class_for
from .sequence import get_time_signature

__all__ = [
    "MIN_OCTAVE",
    "MAX_OCTAVE",
    "MAX_BARS",
    "validate_time_signature",
    "parse_int_field",
    "validate_generation_params",
]

# Melody notes may sit one octave above the base octave, so the upper bound
# keeps the highest possible pitch (B8) inside the MIDI range.
MIN_OCTAVE = 0
MAX_OCTAVE = 7

# Upper limit on bars per request; the web form's slider uses the same value.
MAX_BARS = 32


def validate_time_signature(ts: str) -> str:
    """Return the catalogue name for ``ts`` or raise ``InvalidArgument``."""

    try:
        return get_time_signature(ts).name
    except InvalidArgument as exc:
        raise InvalidArgument(str(exc), field="time_signature") from None


def parse_int_field(
    raw: Union[str, int, None],
    field: str,
    label: str,
    *,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> int:
    """Convert ``raw`` to ``int`` and check it lies within the given bounds.

    Parameters
    ----------
    raw:
        Value as typed by the user. Strings are stripped before conversion.
    field:
        Input name attached to the raised error.
    label:
        Human readable name used in the error message.
    minimum, maximum:
        Optional inclusive bounds.
    """

    if isinstance(raw, bool):
        raise InvalidArgument(f"{label} must be an integer.", field=field)
    # ``int()`` would truncate 2.9 to 2; only whole floats are accepted.
    if isinstance(raw, float) and not raw.is_integer():
        raise InvalidArgument(f"{label} must be an integer.", field=field)
    try:
        value = int(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{label} must be an integer.", field=field) from None

    if minimum is not None and maximum is not None and not minimum <= value <= maximum:
        raise InvalidArgument(f"{label} must be between {minimum} and {maximum}.", field=field)
    if minimum is not None and value < minimum:
        raise InvalidArgument(f"{label} must be at least {minimum}.", field=field)
    if maximum is not None and value > maximum:
        raise InvalidArgument(f"{label} must be at most {maximum}.", field=field)
    return value


def validate_generation_params(
    *,
    bars: Union[str, int],
    voices: Union[str, int],
    shortest_note: str,
    time_signature: str,
    root: Union[str, int],
    scale_kind: str,
    tempo: Union[str, int],
    base_octave: Union[str, int],
    instrument: str,
) -> Dict[str, object]:
    """Return canonical generation parameters or raise ``InvalidArgument``.

    The returned dictionary holds integers for the numeric inputs, catalogue
    names for the shortest note and time signature, the sharp spelling of the
    root and the lowercase scale kind.
    """

    params: Dict[str, object] = {
        "bars": parse_int_field(bars, "bars", "Number of bars", minimum=1, maximum=MAX_BARS),
        "voices": parse_int_field(voices, "voices", "Number of voices", minimum=1, maximum=2),
        "tempo": parse_int_field(tempo, "tempo", "Tempo", minimum=1),
        "base_octave": parse_int_field(
            base_octave, "base_octave", "Base octave", minimum=MIN_OCTAVE, maximum=MAX_OCTAVE
        ),
    }

    try:
        params["shortest_note"] = canonical_duration(shortest_note)
    except InvalidArgument as exc:
        raise InvalidArgument(str(exc), field="shortest_note") from None

    params["time_signature"] = validate_time_signature(time_signature)

    try:
        params["root"] = NOTES[pitch_class_for(root)]
    except InvalidArgument as exc:
        raise InvalidArgument(str(exc), field="root") from None

    try:
        params["scale_kind"] = canonical_scale_kind(scale_kind)
    except InvalidArgument as exc:
        raise InvalidArgument(str(exc), field="scale_kind") from None

    if instrument not in INSTRUMENTS:
        raise InvalidArgument(f"Unknown instrument: {instrument}", field="instrument")
    params["instrument"] = instrument

    return params
