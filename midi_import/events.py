"""Normalized MIDI events produced by the sequence decoder.

Every event carries ``channel`` (``None`` for global/meta events), the
absolute ``tick`` it occurred at, and ``beat``, its position in quarter notes.
``beat`` is filled in once the whole file has been read; it is an exact
``Fraction`` so that converting to project ticks never loses a tick to float
rounding.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Optional, Union

PITCH_BEND_CONTROLLER = 128
PITCH_BEND_RANGE = 8192
CONTROLLER_MAX = 127


@dataclass(frozen=True)
class NoteEvent:
    channel: int
    tick: int
    duration_ticks: int
    pitch: int
    velocity: int
    beat: Fraction = Fraction(0)
    duration_beats: Fraction = Fraction(0)


@dataclass(frozen=True)
class ControllerEvent:
    channel: int
    tick: int
    controller: int  # 0-127
    value: int  # 0-127
    beat: Fraction = Fraction(0)

    @property
    def normalized(self) -> float:
        """Value mapped onto 0..1."""
        return self.value / CONTROLLER_MAX


@dataclass(frozen=True)
class PitchBendEvent:
    channel: int
    tick: int
    pitch: int  # -8192..8191
    beat: Fraction = Fraction(0)

    controller = PITCH_BEND_CONTROLLER

    @property
    def normalized(self) -> float:
        """Bend mapped onto -1..1."""
        return self.pitch / PITCH_BEND_RANGE


@dataclass(frozen=True)
class ProgramChangeEvent:
    channel: int
    tick: int
    program: int
    beat: Fraction = Fraction(0)


@dataclass(frozen=True)
class TempoMetaEvent:
    tick: int
    microseconds_per_beat: int
    beat: Fraction = Fraction(0)
    channel: Optional[int] = None

    @property
    def bpm(self) -> float:
        return 60_000_000 / self.microseconds_per_beat


@dataclass(frozen=True)
class TimeSignatureMetaEvent:
    tick: int
    numerator: int
    denominator: int
    beat: Fraction = Fraction(0)
    channel: Optional[int] = None


@dataclass(frozen=True)
class TrackNameMetaEvent:
    tick: int
    name: str
    beat: Fraction = Fraction(0)
    channel: Optional[int] = None


@dataclass(frozen=True)
class UnhandledEvent:
    """Anything the importer records but does not translate."""

    channel: Optional[int]
    tick: int
    kind: str  # mido message type
    detail: str = ""
    beat: Fraction = Fraction(0)


SmfEvent = Union[
    NoteEvent,
    ControllerEvent,
    PitchBendEvent,
    ProgramChangeEvent,
    TempoMetaEvent,
    TimeSignatureMetaEvent,
    TrackNameMetaEvent,
    UnhandledEvent,
]


def is_global(event: SmfEvent) -> bool:
    return event.channel is None
