"""Fill a single bar with randomised notes of exact total length.

The rhythmic skeleton is greedy and deterministic: at every step the longest
allowed duration that still fits in the remaining space is used.  Only the
pitch class and octave of each note are drawn at random.  Two fallbacks handle
bars the allowed set cannot tile directly:

1. When no allowed duration fits, the shortest allowed one becomes the
   candidate.
2. If the candidate would overshoot the bar line, the full catalogue is
   searched for a duration exactly equal to the remaining space.  With the
   ``"lenient"`` closure policy that duration is used even when it is not in
   the allowed set; with ``"strict"`` only allowed durations are considered.
   Failing that, the largest allowed duration that fits is used, and when
   none fits the bar is left partially filled.

Pseudocode::

    while filled < bar_length:
        remaining = bar_length - filled
        candidate = first allowed (longest first) <= remaining, else shortest
        if filled + candidate > bar_length:
            candidate = exact match for remaining
                        or largest allowed <= remaining
                        or stop
        emit note(random pitch, random octave, candidate)
        stop after MAX_NOTES_PER_BAR notes

A bar never exceeds its length by more than :data:`TOLERANCE` and never holds
more than :data:`MAX_NOTES_PER_BAR` notes.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .durations import DURATION_VALUES, TOLERANCE, canonical_duration
from .errors import InvalidArgument
from .models import Note, Pitch

__all__ = [
    "BarFill",
    "CLOSURE_POLICIES",
    "MAX_NOTES_PER_BAR",
    "fill_bar",
]

logger = logging.getLogger(__name__)

# Upper bound on notes in one bar regardless of how much space remains.
MAX_NOTES_PER_BAR = 20

CLOSURE_POLICIES = ("lenient", "strict")

# ``observer(note, remaining)`` is called after each note is placed.
FillObserver = Callable[[Note, float], None]


class BarFill(NamedTuple):
    """Notes produced for one bar and how much of the bar they cover."""

    notes: Tuple[Note, ...]
    filled: float
    partial: bool


def _exact_match(remaining: float, pool: Iterable[str]) -> Optional[str]:
    for name in pool:
        if abs(DURATION_VALUES[name] - remaining) < TOLERANCE:
            return name
    return None


def _choose_duration(
    remaining: float, ordered: Sequence[str], closure: str
) -> Optional[str]:
    """Return the duration to place next or ``None`` when nothing fits."""

    candidate = next(
        (name for name in ordered if DURATION_VALUES[name] <= remaining + TOLERANCE),
        ordered[-1],
    )
    if DURATION_VALUES[candidate] <= remaining + TOLERANCE:
        return candidate

    # The shortest allowed duration overshoots. Try to close the bar exactly.
    pool = DURATION_VALUES if closure == "lenient" else ordered
    exact = _exact_match(remaining, pool)
    if exact is not None:
        if exact not in ordered:
            logger.debug("Closing bar with %s outside the allowed set", exact)
        return exact

    return next(
        (name for name in ordered if DURATION_VALUES[name] <= remaining), None
    )


def fill_bar(
    bar_length: float,
    allowed_durations: Iterable[str],
    scale: Sequence[int],
    base_octave: int,
    is_bass_line: bool = False,
    start_time: float = 0.0,
    *,
    closure: str = "lenient",
    rng: Optional[random.Random] = None,
    observer: Optional[FillObserver] = None,
) -> BarFill:
    """Return notes filling ``bar_length`` as closely as the durations allow.

    Parameters
    ----------
    bar_length:
        Target length of the bar (quarter note == ``1``). Must be positive.
    allowed_durations:
        Catalogue names the rhythm may use. Must not be empty.
    scale:
        Pitch classes notes are drawn from. Must not be empty.
    base_octave:
        Octave of every bass note and the lowest octave of melody notes.
    is_bass_line:
        When ``True`` all notes stay in ``base_octave``; otherwise each note
        sits in ``base_octave`` or the octave above with equal probability.
    start_time:
        Offset of the bar within the melody. Note start times are relative
        to the beginning of the melody, not the bar.
    closure:
        ``"lenient"`` lets an exact-length duration outside
        ``allowed_durations`` close the bar; ``"strict"`` never does.
    rng:
        Random source providing ``choice`` and ``randint``. The module level
        :mod:`random` functions are used when omitted.
    observer:
        Optional callback receiving each note and the space left after it.
        Exceptions it raises are logged and do not stop the bar.

    Returns
    -------
    BarFill
        ``partial`` is ``True`` when the notes stop short of ``bar_length``.

    Raises
    ------
    InvalidArgument
        If ``allowed_durations`` or ``scale`` is empty, a duration name is
        unknown, a pitch class is out of range, ``bar_length`` is not
        positive or ``closure`` is not a known policy.
    """

    if bar_length <= 0:
        raise InvalidArgument(f"Bar length must be positive, got {bar_length}")
    if closure not in CLOSURE_POLICIES:
        raise InvalidArgument(f"Unknown closure policy: {closure!r}")
    allowed = {canonical_duration(name) for name in allowed_durations}
    if not allowed:
        raise InvalidArgument("At least one allowed duration is required")
    if not scale:
        raise InvalidArgument("Scale must contain at least one pitch class")
    if any(not 0 <= pc <= 11 for pc in scale):
        raise InvalidArgument(f"Scale contains pitch classes outside 0-11: {list(scale)}")

    source = rng if rng is not None else random
    ordered = sorted(allowed, key=lambda name: DURATION_VALUES[name], reverse=True)

    notes: List[Note] = []
    filled = 0.0
    while bar_length - filled > TOLERANCE:
        remaining = bar_length - filled
        duration = _choose_duration(remaining, ordered, closure)
        if duration is None:
            break

        pitch_class = source.choice(list(scale))
        octave = base_octave if is_bass_line else base_octave + source.randint(0, 1)
        note = Note(start_time + filled, Pitch(pitch_class, octave), duration)
        notes.append(note)
        filled += DURATION_VALUES[duration]

        if observer is not None:
            try:
                observer(note, bar_length - filled)
            except Exception:
                logger.exception("Fill observer failed at %s", note.start_time)
        if len(notes) >= MAX_NOTES_PER_BAR:
            break

    partial = bar_length - filled > TOLERANCE
    if partial:
        logger.warning(
            "Bar at %s filled %.3f of %.3f using %s",
            start_time,
            filled,
            bar_length,
            ", ".join(ordered),
        )
    return BarFill(tuple(notes), filled, partial)
