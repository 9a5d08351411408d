"""Generate a run of bars by repeatedly filling bars of one time signature.

``generate_sequence`` looks up the time signature, derives the allowed
durations from the shortest-note setting and asks :func:`fill_bar` for each
bar in turn, advancing the start time by one bar length every iteration.  It
always returns exactly ``num_bars`` bars; bars the allowed durations cannot
tile are returned with ``partial=True`` rather than dropped.
"""

from __future__ import annotations

import logging
import random
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence

from .bar_filler import FillObserver, fill_bar
from .durations import durations_at_most
from .errors import InvalidArgument
from .models import Bar, Note, TimeSignature

__all__ = [
    "TIME_SIGNATURES",
    "get_time_signature",
    "generate_sequence",
    "flatten_bars_to_notes",
]

TIME_SIGNATURES: Mapping[str, TimeSignature] = MappingProxyType(
    {
        "2/4": TimeSignature("2/4", 2, 4),
        "3/4": TimeSignature("3/4", 3, 4),
        "4/4": TimeSignature("4/4", 4, 4),
    }
)


def get_time_signature(name: str) -> TimeSignature:
    """Return the catalogue entry for ``name`` (whitespace around ``/`` ignored)."""

    key = name.replace(" ", "") if isinstance(name, str) else name
    try:
        return TIME_SIGNATURES[key]
    except (KeyError, TypeError):
        raise InvalidArgument(f"Invalid time signature: {name!r}") from None


def generate_sequence(
    num_bars: int,
    time_signature: str,
    scale: Sequence[int],
    base_octave: int,
    shortest_allowed_duration: str,
    is_bass_line: bool = False,
    *,
    closure: str = "lenient",
    rng: Optional[random.Random] = None,
    observer: Optional[FillObserver] = None,
) -> List[Bar]:
    """Return ``num_bars`` consecutive bars of randomised notes.

    Parameters
    ----------
    num_bars:
        Number of bars to produce. Must be positive.
    time_signature:
        Name from :data:`TIME_SIGNATURES` such as ``"3/4"``.
    scale:
        Pitch classes available to every bar.
    base_octave:
        Forwarded to :func:`fill_bar`.
    shortest_allowed_duration:
        Catalogue name; every duration no longer than it may be used.
    is_bass_line:
        Keep all notes in ``base_octave``.
    closure, rng, observer:
        Forwarded to :func:`fill_bar`.

    Raises
    ------
    InvalidArgument
        If any argument is invalid. Validation happens before the first bar
        is filled so no bars are produced for a bad request.
    """

    if isinstance(num_bars, bool) or not isinstance(num_bars, int) or num_bars <= 0:
        raise InvalidArgument(f"Number of bars must be a positive integer, got {num_bars!r}")
    meter = get_time_signature(time_signature)
    allowed = durations_at_most(shortest_allowed_duration)
    bar_length = meter.bar_length

    logging.debug(
        "Generating %d bar(s) of %s (bar length %s) with durations %s",
        num_bars,
        meter.name,
        bar_length,
        allowed,
    )

    bars: List[Bar] = []
    start_time = 0.0
    for index in range(num_bars):
        result = fill_bar(
            bar_length,
            allowed,
            scale,
            base_octave,
            is_bass_line,
            start_time,
            closure=closure,
            rng=rng,
            observer=observer,
        )
        if len(result.notes) < 2:
            logging.debug("Bar %d has only %d note(s)", index + 1, len(result.notes))
        bars.append(
            Bar(
                index=index,
                notes=result.notes,
                duration=bar_length,
                time_signature=meter.name,
                partial=result.partial,
            )
        )
        start_time += bar_length

    return bars


def flatten_bars_to_notes(bars: Optional[Iterable[Bar]]) -> List[Note]:
    """Return the notes of ``bars`` as one list in time order.

    ``None`` and empty inputs yield an empty list.
    """

    if not bars:
        return []
    return [note for bar in bars for note in bar.notes]
