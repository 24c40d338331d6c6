"""Group notes and automation points into bar-anchored patterns.

Segmentation rule shared by notes and automation:

  * a new pattern starts when none exists yet, or when an item lies more
    than one bar after the previous item (``pos > last_pos + TICKS_PER_BAR``);
  * the new pattern is anchored at the bar boundary at or before the item;
  * ``last_pos`` follows every inserted item, so gaps are measured between
    consecutive items rather than from the pattern start.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .project import (
    TICKS_PER_BAR,
    AutomationPattern,
    AutomationTrack,
    InstrumentTrack,
    Note,
    Parameter,
    Pattern,
    bar_of,
    bar_start,
)


@dataclass
class Segmenter:
    """Tracks the gap rule for one stream of positions."""

    has_segment: bool = False
    last_pos: int = 0

    def starts_segment(self, pos: int) -> bool:
        return not self.has_segment or pos > self.last_pos + TICKS_PER_BAR

    def place(self, pos: int) -> Optional[int]:
        """Record ``pos``; return the anchor of a new segment, or ``None`` to extend the current one."""
        anchor = bar_start(pos) if self.starts_segment(pos) else None
        self.has_segment = True
        self.last_pos = pos
        return anchor

    def reset(self) -> None:
        self.has_segment = False
        self.last_pos = 0


@dataclass
class ControllerTrack:
    """Automation accumulator for one controller slot of one source track."""

    controller: int
    track: Optional[AutomationTrack] = None
    pattern: Optional[AutomationPattern] = None
    segmenter: Segmenter = field(default_factory=Segmenter)

    @property
    def last_pos(self) -> int:
        return self.segmenter.last_pos

    def put_value(self, parameter: Parameter, pos: int, value: float) -> AutomationPattern:
        if self.track is None:
            raise RuntimeError(f"controller {self.controller} has no automation track")
        anchor = self.segmenter.place(pos)
        if anchor is not None:
            self.pattern = self.track.create_pattern(anchor)
            self.pattern.add_target(parameter)
        rel = pos - self.pattern.start
        self.pattern.put_value(rel, value)
        self.pattern.length = (bar_of(rel) + 1) * TICKS_PER_BAR
        return self.pattern

    def clear(self) -> None:
        self.track = None
        self.pattern = None
        self.segmenter.reset()


def segment_notes(notes: Iterable[Note]) -> List[Tuple[int, List[Note]]]:
    """Sort absolute-position notes and split them into ``(anchor, notes)`` groups.

    Returned notes are copies positioned relative to their group's anchor.
    """
    segments: List[Tuple[int, List[Note]]] = []
    segmenter = Segmenter()
    for note in sorted(notes, key=lambda n: n.pos):
        anchor = segmenter.place(note.pos)
        if anchor is not None:
            segments.append((anchor, []))
        start, group = segments[-1]
        group.append(Note(pos=note.pos - start, length=note.length, key=note.key, volume=note.volume))
    return segments


def split_into_patterns(track: InstrumentTrack, notes: Iterable[Note]) -> List[Pattern]:
    """Replace ``track``'s patterns with gap-segmented patterns holding ``notes``."""
    track.patterns = []
    for anchor, group in segment_notes(notes):
        pattern = track.create_pattern(anchor)
        for note in group:
            pattern.add_note(note)
    return track.patterns
