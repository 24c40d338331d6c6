"""Tick / beat / real-time conversion built from set-tempo meta-events.

Beat positions follow directly from the file's division
(``beat = tick / ticks_per_beat``); tempo only decides how beats map onto
seconds.  Tempo is constant between breakpoints and the last breakpoint's
tempo (the trailing tempo) holds to the end of the sequence.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterator, List, Optional, Tuple

DEFAULT_TEMPO = 500_000  # us per quarter note, 120 BPM


@dataclass(frozen=True)
class TempoBreakpoint:
    beat: Fraction
    seconds: float
    microseconds_per_beat: int

    @property
    def seconds_per_beat(self) -> float:
        return self.microseconds_per_beat / 1_000_000

    @property
    def bpm(self) -> float:
        return 60.0 / self.seconds_per_beat


class TempoMap:
    def __init__(self, ticks_per_beat: int, default_tempo: int = DEFAULT_TEMPO) -> None:
        if ticks_per_beat <= 0:
            raise ValueError(f"ticks_per_beat must be positive, got {ticks_per_beat}")
        if default_tempo <= 0:
            raise ValueError(f"default_tempo must be positive, got {default_tempo}")
        self.ticks_per_beat = ticks_per_beat
        self.breakpoints: List[TempoBreakpoint] = [
            TempoBreakpoint(beat=Fraction(0), seconds=0.0, microseconds_per_beat=default_tempo)
        ]
        self.has_trailing_tempo = True
        # parallel to breakpoints, for bisect
        self._beats: List[Fraction] = [Fraction(0)]
        self._seconds: List[float] = [0.0]

    def __len__(self) -> int:
        return len(self.breakpoints)

    @property
    def last_tempo(self) -> Optional[int]:
        """Tempo holding after the last breakpoint, if any."""
        if not self.has_trailing_tempo:
            return None
        return self.breakpoints[-1].microseconds_per_beat

    def tick_to_beat(self, tick: int) -> Fraction:
        return Fraction(tick, self.ticks_per_beat)

    def add_tempo(self, tick: int, microseconds_per_beat: int) -> TempoBreakpoint:
        """Append a tempo change.

        Changes must arrive in non-decreasing tick order.  A change at the
        same beat as the last breakpoint replaces its tempo.
        """
        if microseconds_per_beat <= 0:
            raise ValueError(f"tempo must be positive, got {microseconds_per_beat}")
        beat = self.tick_to_beat(tick)
        last = self.breakpoints[-1]
        if beat < last.beat:
            raise ValueError(
                f"tempo change at beat {float(beat)} precedes breakpoint at {float(last.beat)}"
            )
        seconds = self.beat_to_seconds(beat)
        point = TempoBreakpoint(beat=beat, seconds=seconds, microseconds_per_beat=microseconds_per_beat)
        if beat == last.beat:
            self.breakpoints[-1] = point
            self._seconds[-1] = seconds
        else:
            self.breakpoints.append(point)
            self._beats.append(beat)
            self._seconds.append(seconds)
        return point

    def _index_for_beat(self, beat: Fraction) -> int:
        return max(0, bisect.bisect_right(self._beats, beat) - 1)

    def _index_for_seconds(self, seconds: float) -> int:
        return max(0, bisect.bisect_right(self._seconds, seconds) - 1)

    def tempo_at(self, beat: Fraction) -> int:
        return self.breakpoints[self._index_for_beat(beat)].microseconds_per_beat

    def beat_to_seconds(self, beat: Fraction) -> float:
        bp = self.breakpoints[self._index_for_beat(beat)]
        return bp.seconds + float(beat - bp.beat) * bp.seconds_per_beat

    def tick_to_seconds(self, tick: int) -> float:
        return self.beat_to_seconds(self.tick_to_beat(tick))

    def seconds_to_beat(self, seconds: float) -> float:
        bp = self.breakpoints[self._index_for_seconds(seconds)]
        return float(bp.beat) + (seconds - bp.seconds) / bp.seconds_per_beat

    def segments(self) -> Iterator[Tuple[TempoBreakpoint, TempoBreakpoint]]:
        """Consecutive breakpoint pairs."""
        for i in range(len(self.breakpoints) - 1):
            yield self.breakpoints[i], self.breakpoints[i + 1]
