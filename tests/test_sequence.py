"""Tests for SMF decoding into normalized events."""

from __future__ import annotations

import io
from fractions import Fraction

import mido
import pytest

from midi_import.errors import BadHeaderError, TruncatedError
from midi_import.events import (
    ControllerEvent,
    NoteEvent,
    PitchBendEvent,
    ProgramChangeEvent,
    TrackNameMetaEvent,
    UnhandledEvent,
)
from midi_import.sequence import decode_sequence


def _track(events: list[tuple[int, mido.Message]]) -> mido.MidiTrack:
    """Build a track from (absolute_tick, message) pairs."""
    track = mido.MidiTrack()
    last_tick = 0
    for tick, msg in sorted(events, key=lambda item: item[0]):
        track.append(msg.copy(time=tick - last_tick))
        last_tick = tick
    return track


def _to_bytes(mid: mido.MidiFile) -> bytes:
    buf = io.BytesIO()
    mid.save(file=buf)
    return buf.getvalue()


def _file(*tracks: mido.MidiTrack, tpb: int = 96) -> bytes:
    mid = mido.MidiFile(ticks_per_beat=tpb)
    mid.tracks.extend(tracks)
    return _to_bytes(mid)


def test_note_on_off_pair_merged() -> None:
    payload = _file(
        _track(
            [
                (96, mido.Message("note_on", channel=2, note=60, velocity=90)),
                (144, mido.Message("note_off", channel=2, note=60, velocity=0)),
            ]
        )
    )
    sequence = decode_sequence(payload)
    (note,) = sequence.tracks[0].events
    assert note == NoteEvent(
        channel=2,
        tick=96,
        duration_ticks=48,
        pitch=60,
        velocity=90,
        beat=Fraction(1),
        duration_beats=Fraction(1, 2),
    )


def test_velocity_zero_note_on_is_note_off() -> None:
    payload = _file(
        _track(
            [
                (0, mido.Message("note_on", note=64, velocity=100)),
                (30, mido.Message("note_on", note=64, velocity=0)),
            ]
        )
    )
    (note,) = decode_sequence(payload).tracks[0].events
    assert note.duration_ticks == 30


def test_unmatched_note_on_closed_at_track_end() -> None:
    track = _track(
        [
            (0, mido.Message("note_on", note=60, velocity=100)),
            (10, mido.Message("note_on", note=62, velocity=100)),
            (20, mido.Message("note_off", note=62, velocity=0)),
        ]
    )
    track.append(mido.MetaMessage("end_of_track", time=80))
    sequence = decode_sequence(_file(track))
    notes = sequence.tracks[0].events
    assert [(n.pitch, n.tick, n.duration_ticks) for n in notes] == [(60, 0, 100), (62, 10, 10)]
    assert sequence.tracks[0].end_tick == 100


def test_note_keeps_note_on_position_in_event_order() -> None:
    payload = _file(
        _track(
            [
                (0, mido.Message("note_on", note=60, velocity=100)),
                (10, mido.Message("control_change", control=7, value=100)),
                (50, mido.Message("note_off", note=60, velocity=0)),
            ]
        )
    )
    events = decode_sequence(payload).tracks[0].events
    assert isinstance(events[0], NoteEvent)
    assert isinstance(events[1], ControllerEvent)


def test_unmatched_note_off_dropped() -> None:
    payload = _file(_track([(5, mido.Message("note_off", note=60, velocity=0))]))
    assert decode_sequence(payload).tracks[0].events == []


def test_channel_messages_decoded() -> None:
    payload = _file(
        _track(
            [
                (0, mido.Message("program_change", channel=1, program=33)),
                (48, mido.Message("control_change", channel=1, control=10, value=127)),
                (96, mido.Message("pitchwheel", channel=1, pitch=-8192)),
                (96, mido.Message("aftertouch", channel=1, value=5)),
            ]
        )
    )
    program, controller, bend, touch = decode_sequence(payload).tracks[0].events
    assert program == ProgramChangeEvent(channel=1, tick=0, program=33, beat=Fraction(0))
    assert controller.controller == 10
    assert controller.normalized == pytest.approx(1.0)
    assert controller.beat == Fraction(1, 2)
    assert isinstance(bend, PitchBendEvent)
    assert bend.normalized == pytest.approx(-1.0)
    assert bend.controller == 128
    assert isinstance(touch, UnhandledEvent)
    assert touch.channel == 1
    assert touch.kind == "aftertouch"


def test_meta_events() -> None:
    payload = _file(
        _track(
            [
                (0, mido.MetaMessage("track_name", name="Piano")),
                (0, mido.MetaMessage("key_signature", key="C")),
                (0, mido.MetaMessage("time_signature", numerator=6, denominator=8)),
                (0, mido.MetaMessage("set_tempo", tempo=400_000)),
            ]
        )
    )
    sequence = decode_sequence(payload)
    name, key = sequence.tracks[0].events
    assert name == TrackNameMetaEvent(tick=0, name="Piano")
    assert isinstance(key, UnhandledEvent)
    assert key.channel is None
    assert key.kind == "key_signature"
    (sig,) = sequence.time_signatures
    assert (sig.numerator, sig.denominator) == (6, 8)
    assert sequence.tempo_map.last_tempo == 400_000
    assert [t.microseconds_per_beat for t in sequence.tempos] == [400_000]


def test_tempo_events_from_all_tracks_merged_in_time_order() -> None:
    payload = _file(
        _track([(0, mido.MetaMessage("set_tempo", tempo=500_000)),
                (384, mido.MetaMessage("set_tempo", tempo=250_000))]),
        _track([(192, mido.MetaMessage("set_tempo", tempo=1_000_000))]),
    )
    tempo_map = decode_sequence(payload).tempo_map
    assert [bp.beat for bp in tempo_map.breakpoints] == [0, 2, 4]
    assert [bp.microseconds_per_beat for bp in tempo_map.breakpoints] == [500_000, 1_000_000, 250_000]
    # 2 beats at 0.5 s + 2 beats at 1 s
    assert tempo_map.breakpoints[2].seconds == pytest.approx(3.0)


def test_midi_port_offsets_channel() -> None:
    payload = _file(
        _track(
            [
                (0, mido.MetaMessage("midi_port", port=2)),
                (0, mido.Message("note_on", channel=3, note=60, velocity=100)),
                (10, mido.Message("note_off", channel=3, note=60, velocity=0)),
            ]
        )
    )
    (note,) = decode_sequence(payload).tracks[0].events
    assert note.channel == 2 * 16 + 3


def test_sysex_is_global_unhandled() -> None:
    payload = _file(_track([(0, mido.Message("sysex", data=[0x7E, 0x7F, 0x09, 0x01]))]))
    (event,) = decode_sequence(payload).tracks[0].events
    assert isinstance(event, UnhandledEvent)
    assert event.channel is None
    assert event.kind == "sysex"


def test_format_and_track_order_preserved() -> None:
    payload = _file(
        _track([(100, mido.Message("program_change", program=1))]),
        _track([(50, mido.Message("program_change", channel=1, program=2))]),
    )
    sequence = decode_sequence(payload)
    assert sequence.format == 1
    assert [t.index for t in sequence.tracks] == [0, 1]
    assert [e.tick for t in sequence.tracks for e in t.events] == [100, 50]


def test_truncated_track() -> None:
    payload = _file(
        _track(
            [
                (0, mido.Message("note_on", note=60, velocity=100)),
                (10, mido.Message("note_off", note=60, velocity=0)),
            ]
        )
    )
    with pytest.raises(TruncatedError):
        decode_sequence(payload[:-6])


def test_truncated_header() -> None:
    with pytest.raises(TruncatedError):
        decode_sequence(b"MThd\x00\x00")


def test_missing_track_chunk_is_bad_header() -> None:
    payload = b"MThd" + (6).to_bytes(4, "big") + b"\x00\x00\x00\x01\x00\x60" + b"XXXX\x00\x00\x00\x00"
    with pytest.raises(BadHeaderError):
        decode_sequence(payload)


def test_smpte_division_rejected() -> None:
    # -25 fps, 40 subframes
    payload = (
        b"MThd" + (6).to_bytes(4, "big") + b"\x00\x00\x00\x01" + bytes([0xE7, 40])
        + b"MTrk" + (4).to_bytes(4, "big") + b"\x00\xff\x2f\x00"
    )
    with pytest.raises(BadHeaderError):
        decode_sequence(payload)
