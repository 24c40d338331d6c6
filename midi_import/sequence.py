"""Decode an SMF payload into normalized per-track events and a tempo map.

Chunk, delta-time and running-status parsing is done by ``mido``; this
module turns its message stream into :mod:`midi_import.events` objects:

  * note-on / note-off pairs become one ``NoteEvent`` placed at the note-on;
  * tempo and time-signature meta-events are lifted out of the tracks into
    the sequence-level tempo map and time-signature list;
  * ``midi_port`` meta-events offset channels by 16 per port, so channel
    indices run 0-255;
  * everything else the importer does not translate becomes an
    ``UnhandledEvent``.

Event beats are assigned in a second pass once the tempo map is complete.
"""

from __future__ import annotations

import dataclasses
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import mido

from .errors import BadHeaderError, TruncatedError
from .events import (
    ControllerEvent,
    NoteEvent,
    PitchBendEvent,
    ProgramChangeEvent,
    SmfEvent,
    TempoMetaEvent,
    TimeSignatureMetaEvent,
    TrackNameMetaEvent,
    UnhandledEvent,
)
from .tempo_map import DEFAULT_TEMPO, TempoMap

logger = logging.getLogger(__name__)

CHANNELS_PER_PORT = 16


@dataclass
class TrackEvents:
    """One source track after decoding."""

    index: int
    events: List[SmfEvent]
    end_tick: int
    tempos: List[TempoMetaEvent] = field(default_factory=list)
    time_signatures: List[TimeSignatureMetaEvent] = field(default_factory=list)


@dataclass
class Sequence:
    ticks_per_beat: int
    format: int
    tracks: List[TrackEvents]
    tempo_map: TempoMap
    tempos: List[TempoMetaEvent]
    time_signatures: List[TimeSignatureMetaEvent]

    def __len__(self) -> int:
        return len(self.tracks)


def read_midi_file(payload: bytes) -> mido.MidiFile:
    """Parse ``payload`` with mido, mapping its errors onto ``FormatError``."""
    try:
        return mido.MidiFile(file=io.BytesIO(payload))
    except EOFError as exc:
        raise TruncatedError(f"unexpected end of MIDI data: {exc}") from exc
    except (OSError, ValueError, IndexError, KeyError, mido.KeySignatureError) as exc:
        raise BadHeaderError(f"malformed MIDI data: {exc}") from exc


def decode_track(track: mido.MidiTrack, index: int) -> TrackEvents:
    # Note-ons leave a None placeholder so the finished NoteEvent keeps the
    # note-on's place in the event order.
    slots: List[Optional[SmfEvent]] = []
    pending: Dict[Tuple[int, int], List[Tuple[int, int, int]]] = {}
    tempos: List[TempoMetaEvent] = []
    time_signatures: List[TimeSignatureMetaEvent] = []
    port = 0
    abs_tick = 0

    def close_note(key: Tuple[int, int], end_tick: int) -> None:
        slot, onset, velocity = pending[key].pop()
        if not pending[key]:
            del pending[key]
        slots[slot] = NoteEvent(
            channel=key[0],
            tick=onset,
            duration_ticks=end_tick - onset,
            pitch=key[1],
            velocity=velocity,
        )

    for msg in track:
        abs_tick += msg.time

        if msg.is_meta:
            if msg.type == "set_tempo":
                tempos.append(TempoMetaEvent(tick=abs_tick, microseconds_per_beat=msg.tempo))
            elif msg.type == "time_signature":
                time_signatures.append(
                    TimeSignatureMetaEvent(
                        tick=abs_tick,
                        numerator=msg.numerator,
                        denominator=msg.denominator,
                    )
                )
            elif msg.type == "track_name":
                slots.append(TrackNameMetaEvent(tick=abs_tick, name=msg.name))
            elif msg.type == "midi_port":
                port = msg.port
            elif msg.type != "end_of_track":
                slots.append(UnhandledEvent(channel=None, tick=abs_tick, kind=msg.type, detail=str(msg)))
            continue

        raw_channel = getattr(msg, "channel", None)
        if raw_channel is None:
            slots.append(UnhandledEvent(channel=None, tick=abs_tick, kind=msg.type, detail=str(msg)))
            continue
        channel = port * CHANNELS_PER_PORT + raw_channel

        if msg.type == "note_on" and msg.velocity > 0:
            pending.setdefault((channel, msg.note), []).append((len(slots), abs_tick, msg.velocity))
            slots.append(None)
        elif msg.type == "note_off" or msg.type == "note_on":
            key = (channel, msg.note)
            if key in pending:
                close_note(key, abs_tick)
        elif msg.type == "control_change":
            slots.append(
                ControllerEvent(channel=channel, tick=abs_tick, controller=msg.control, value=msg.value)
            )
        elif msg.type == "pitchwheel":
            slots.append(PitchBendEvent(channel=channel, tick=abs_tick, pitch=msg.pitch))
        elif msg.type == "program_change":
            slots.append(ProgramChangeEvent(channel=channel, tick=abs_tick, program=msg.program))
        else:
            slots.append(UnhandledEvent(channel=channel, tick=abs_tick, kind=msg.type, detail=str(msg)))

    for key in list(pending):
        while key in pending:
            close_note(key, abs_tick)

    events = [event for event in slots if event is not None]
    return TrackEvents(
        index=index,
        events=events,
        end_tick=abs_tick,
        tempos=tempos,
        time_signatures=time_signatures,
    )


def build_tempo_map(
    tempos: List[TempoMetaEvent], ticks_per_beat: int, default_tempo: int = DEFAULT_TEMPO
) -> TempoMap:
    tempo_map = TempoMap(ticks_per_beat, default_tempo=default_tempo)
    for tempo in sorted(tempos, key=lambda t: t.tick):
        tempo_map.add_tempo(tempo.tick, tempo.microseconds_per_beat)
    return tempo_map


def _with_beat(event: SmfEvent, tempo_map: TempoMap) -> SmfEvent:
    beat = tempo_map.tick_to_beat(event.tick)
    if isinstance(event, NoteEvent):
        return dataclasses.replace(
            event,
            beat=beat,
            duration_beats=tempo_map.tick_to_beat(event.duration_ticks),
        )
    return dataclasses.replace(event, beat=beat)


def decode_sequence(payload: bytes, *, default_tempo: int = DEFAULT_TEMPO) -> Sequence:
    """Decode a raw SMF payload.

    Raises ``TruncatedError`` or ``BadHeaderError`` for malformed input.
    """
    midi_file = read_midi_file(payload)
    ticks_per_beat = midi_file.ticks_per_beat
    if ticks_per_beat <= 0:
        raise BadHeaderError(f"SMPTE time division is not supported (division {ticks_per_beat})")

    tracks = [decode_track(track, index) for index, track in enumerate(midi_file.tracks)]

    tempos = [tempo for track in tracks for tempo in track.tempos]
    tempo_map = build_tempo_map(tempos, ticks_per_beat, default_tempo=default_tempo)

    for track in tracks:
        track.events = [_with_beat(event, tempo_map) for event in track.events]
        track.tempos = [_with_beat(event, tempo_map) for event in track.tempos]
        track.time_signatures = [_with_beat(event, tempo_map) for event in track.time_signatures]

    time_signatures = sorted(
        (sig for track in tracks for sig in track.time_signatures),
        key=lambda sig: sig.tick,
    )
    logger.debug(
        "decoded %d tracks, %d ticks/beat, %d tempo breakpoints",
        len(tracks),
        ticks_per_beat,
        len(tempo_map),
    )
    return Sequence(
        ticks_per_beat=ticks_per_beat,
        format=midi_file.type,
        tracks=tracks,
        tempo_map=tempo_map,
        tempos=sorted((t for track in tracks for t in track.tempos), key=lambda t: t.tick),
        time_signatures=time_signatures,
    )
