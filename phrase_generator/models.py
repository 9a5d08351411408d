"""Immutable value objects describing generated music.

Every object here is created fresh for each generation request and never
mutated afterwards.  A :class:`Melody` holds :class:`Voice` objects, each voice
holds :class:`Bar` objects and each bar holds :class:`Note` objects; there are
no references back up the tree so a melody can be passed to a renderer or
serialised without further bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .durations import TOLERANCE, length_of
from .errors import InvalidArgument
from .scales import pitch_name

__all__ = ["Pitch", "Note", "TimeSignature", "Bar", "Voice", "Melody"]


@dataclass(frozen=True)
class Pitch:
    """A pitch class combined with an octave number."""

    pitch_class: int
    octave: int

    def __post_init__(self) -> None:
        if not 0 <= self.pitch_class <= 11:
            raise InvalidArgument(f"Pitch class out of range: {self.pitch_class}")

    @property
    def name(self) -> str:
        """Spelled pitch, e.g. ``"C#4"``."""
        return pitch_name(self.pitch_class, self.octave)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Note:
    """A single sounding note within a melody."""

    start_time: float
    pitch: Pitch
    duration: str

    @property
    def length(self) -> float:
        return length_of(self.duration)

    @property
    def end_time(self) -> float:
        return self.start_time + self.length


@dataclass(frozen=True)
class TimeSignature:
    """Meter of a bar.

    ``bar_length`` is measured in the same units as note durations, so ``4/4``
    yields ``4.0`` and ``3/4`` yields ``3.0``.
    """

    name: str
    beats_per_bar: int
    beat_unit: int

    def __post_init__(self) -> None:
        if self.beats_per_bar <= 0 or self.beat_unit <= 0:
            raise InvalidArgument(f"Invalid time signature: {self.name}")

    @property
    def bar_length(self) -> float:
        return self.beats_per_bar * (4 / self.beat_unit)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Bar:
    """One measure of notes.

    ``partial`` is ``True`` when the allowed durations could not tile
    ``duration`` exactly and the notes stop short of the bar line.
    """

    index: int
    notes: Tuple[Note, ...]
    duration: float
    time_signature: str
    partial: bool = False

    @property
    def number(self) -> int:
        """One-based bar number as shown to users."""
        return self.index + 1

    @property
    def filled(self) -> float:
        return sum(note.length for note in self.notes)

    @property
    def start_time(self) -> float:
        return self.index * self.duration

    def is_complete(self) -> bool:
        return abs(self.filled - self.duration) < TOLERANCE


@dataclass(frozen=True)
class Voice:
    """A named line of bars rendered on its own staff."""

    name: str
    clef: str
    bars: Tuple[Bar, ...]

    @property
    def notes(self) -> Tuple[Note, ...]:
        return tuple(note for bar in self.bars for note in bar.notes)


@dataclass(frozen=True)
class Melody:
    """Complete result of a generation request."""

    voices: Tuple[Voice, ...]
    tempo: int
    time_signature: str
    root: str
    scale_kind: str
    scale: Tuple[int, ...] = field(default_factory=tuple)
    instrument: str = "Piano"
    syncopated: bool = False

    @property
    def bars(self) -> Tuple[Bar, ...]:
        """Bars of the first (melody) voice."""
        return self.voices[0].bars if self.voices else ()

    @property
    def partial_bars(self) -> Tuple[Bar, ...]:
        return tuple(bar for voice in self.voices for bar in voice.bars if bar.partial)
