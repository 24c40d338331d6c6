"""Project structures produced by an import.

Positions and lengths are project ticks: 48 per beat, 192 per (4/4) bar.
Pattern contents are positioned relative to their pattern's ``start``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, List, Optional

TICKS_PER_BAR = 192
BEATS_PER_BAR = 4
TICKS_PER_BEAT = TICKS_PER_BAR // BEATS_PER_BAR

SOUNDFONT_PLAYER = "sf2player"
PATCH_PLAYER = "patman"

TEMPO_TRACK_NAME = "Tempo"


def beat_to_ticks(beat: Fraction) -> int:
    """Convert a beat position to project ticks, truncating toward zero."""
    return int(beat * TICKS_PER_BEAT)


def bar_of(pos: int) -> int:
    return pos // TICKS_PER_BAR


def bar_start(pos: int) -> int:
    return bar_of(pos) * TICKS_PER_BAR


@dataclass
class Parameter:
    """An automatable value on a track or instrument."""

    name: str
    value: float

    def set_init_value(self, value: float) -> None:
        self.value = value

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value}


@dataclass
class Instrument:
    plugin: str  # SOUNDFONT_PLAYER or PATCH_PLAYER
    file: Optional[str] = None
    bank: Parameter = field(default_factory=lambda: Parameter("Bank", 0))
    patch: Parameter = field(default_factory=lambda: Parameter("Patch", 0))

    @property
    def is_soundfont(self) -> bool:
        return self.plugin == SOUNDFONT_PLAYER

    def to_dict(self) -> dict:
        return {
            "plugin": self.plugin,
            "file": self.file,
            "bank": self.bank.value,
            "patch": self.patch.value,
        }


@dataclass
class Note:
    pos: int
    length: int
    key: int
    volume: float

    @property
    def end(self) -> int:
        return self.pos + self.length

    def to_dict(self) -> dict:
        return {"pos": self.pos, "length": self.length, "key": self.key, "volume": self.volume}


@dataclass
class Pattern:
    start: int
    notes: List[Note] = field(default_factory=list)

    def add_note(self, note: Note) -> None:
        self.notes.append(note)

    @property
    def length(self) -> int:
        """Whole bars covering every note, at least one bar."""
        end = max((note.end for note in self.notes), default=0)
        return max(1, -(-end // TICKS_PER_BAR)) * TICKS_PER_BAR

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "length": self.length,
            "notes": [note.to_dict() for note in self.notes],
        }


@dataclass
class AutomationPattern:
    start: int = 0
    name: str = ""
    targets: List[Parameter] = field(default_factory=list)
    values: Dict[int, float] = field(default_factory=dict)
    length: int = TICKS_PER_BAR

    def add_target(self, parameter: Parameter) -> None:
        if not any(target is parameter for target in self.targets):
            self.targets.append(parameter)

    def put_value(self, pos: int, value: float) -> None:
        """Set the value at ``pos`` (relative to ``start``); an existing point there is replaced."""
        self.values[pos] = value

    def update_length(self) -> None:
        last = max(self.values, default=0)
        self.length = (bar_of(last) + 1) * TICKS_PER_BAR

    def clear(self) -> None:
        self.values.clear()
        self.length = TICKS_PER_BAR

    @property
    def points(self) -> List[tuple[int, float]]:
        return sorted(self.values.items())

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "length": self.length,
            "name": self.name,
            "targets": [target.name for target in self.targets],
            "points": [[pos, value] for pos, value in self.points],
        }


@dataclass
class InstrumentTrack:
    name: str
    instrument: Optional[Instrument] = None
    volume: Parameter = field(default_factory=lambda: Parameter("Volume", 100))
    panning: Parameter = field(default_factory=lambda: Parameter("Panning", 0))
    pitch: Parameter = field(default_factory=lambda: Parameter("Pitch", 0))
    pitch_range: Parameter = field(default_factory=lambda: Parameter("Pitch range", 1))
    patterns: List[Pattern] = field(default_factory=list)

    def create_pattern(self, start: int = 0) -> Pattern:
        pattern = Pattern(start=start)
        self.patterns.append(pattern)
        return pattern

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "instrument": self.instrument.to_dict() if self.instrument else None,
            "volume": self.volume.value,
            "panning": self.panning.value,
            "pitch": self.pitch.value,
            "pitch_range": self.pitch_range.value,
            "patterns": [pattern.to_dict() for pattern in self.patterns],
        }


@dataclass
class AutomationTrack:
    name: str
    patterns: List[AutomationPattern] = field(default_factory=list)

    def create_pattern(self, start: int = 0, name: str = "") -> AutomationPattern:
        pattern = AutomationPattern(start=start, name=name)
        self.patterns.append(pattern)
        return pattern

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "patterns": [pattern.to_dict() for pattern in self.patterns],
        }


@dataclass
class Project:
    """Track container filled by an import and handed to the caller."""

    instrument_tracks: List[InstrumentTrack] = field(default_factory=list)
    automation_tracks: List[AutomationTrack] = field(default_factory=list)
    tempo: Parameter = field(default_factory=lambda: Parameter("Tempo", 120))
    time_sig_numerator: Parameter = field(default_factory=lambda: Parameter("Numerator", 4))
    time_sig_denominator: Parameter = field(default_factory=lambda: Parameter("Denominator", 4))

    def create_instrument_track(self, name: str) -> InstrumentTrack:
        track = InstrumentTrack(name=name)
        self.instrument_tracks.append(track)
        return track

    def create_automation_track(self, name: str) -> AutomationTrack:
        track = AutomationTrack(name=name)
        self.automation_tracks.append(track)
        return track

    def remove_instrument_track(self, track: InstrumentTrack) -> None:
        self.instrument_tracks = [t for t in self.instrument_tracks if t is not track]

    def tempo_automation_pattern(self) -> AutomationPattern:
        """The tempo curve, created (as the first automation track) on first use."""
        for track in self.automation_tracks:
            if track.name == TEMPO_TRACK_NAME and track.patterns:
                return track.patterns[0]
        track = AutomationTrack(name=TEMPO_TRACK_NAME)
        self.automation_tracks.insert(0, track)
        pattern = track.create_pattern(0, name=TEMPO_TRACK_NAME)
        pattern.add_target(self.tempo)
        return pattern

    def find_automation_track(self, name: str) -> Optional[AutomationTrack]:
        for track in self.automation_tracks:
            if track.name == name:
                return track
        return None

    def to_dict(self) -> dict:
        return {
            "tempo": self.tempo.value,
            "time_signature": [self.time_sig_numerator.value, self.time_sig_denominator.value],
            "instrument_tracks": [track.to_dict() for track in self.instrument_tracks],
            "automation_tracks": [track.to_dict() for track in self.automation_tracks],
        }
