"""Tests for SMF / RIFF-RMID framing detection."""

from __future__ import annotations

import pytest

from midi_import.container import (
    RawChunk,
    extract_smf,
    iter_riff_chunks,
    wrap_rmid,
)
from midi_import.errors import (
    BadHeaderError,
    FormatError,
    FormatErrorKind,
    MissingDataChunkError,
    NotMidiError,
    NotRiffMidiError,
)

# Header-only SMF: format 0, one track, 96 ticks/beat, empty track.
SMF = (
    b"MThd" + (6).to_bytes(4, "big") + b"\x00\x00\x00\x01\x00\x60"
    + b"MTrk" + (4).to_bytes(4, "big") + b"\x00\xff\x2f\x00"
)


def _riff(body: bytes) -> bytes:
    return b"RIFF" + len(body).to_bytes(4, "little") + body


def _chunk(ident: bytes, payload: bytes) -> bytes:
    pad = b"\x00" if len(payload) % 2 else b""
    return ident + len(payload).to_bytes(4, "little") + payload + pad


def test_bare_smf_returned_unchanged() -> None:
    assert extract_smf(SMF) == SMF


def test_rmid_data_chunk_extracted() -> None:
    data = _riff(b"RMID" + _chunk(b"data", SMF))
    assert extract_smf(data) == SMF


def test_rmid_skips_odd_length_chunks_with_padding() -> None:
    data = _riff(
        b"RMID"
        + _chunk(b"LIST", b"abc")  # 3 bytes + 1 pad
        + _chunk(b"DISP", b"hello")
        + _chunk(b"data", SMF)
    )
    assert extract_smf(data) == SMF


def test_wrap_rmid_matches_manual_layout() -> None:
    manual = _riff(b"RMID" + _chunk(b"INFO", b"x") + _chunk(b"data", SMF))
    assert wrap_rmid(SMF, ((b"INFO", b"x"),)) == manual


def test_iter_riff_chunks_lists_every_chunk() -> None:
    data = wrap_rmid(SMF, ((b"LIST", b"abc"),))
    chunks = list(iter_riff_chunks(data))
    assert [c.ident for c in chunks] == [b"LIST", b"data"]
    assert chunks[0] == RawChunk(ident=b"LIST", length=3, payload=b"abc", offset=12)
    assert chunks[0].padded_length == 4
    assert chunks[1].offset == 12 + 8 + 4
    assert chunks[1].payload == SMF


def test_unknown_signature_is_not_midi() -> None:
    with pytest.raises(NotMidiError) as excinfo:
        extract_smf(b"OggS" + b"\x00" * 32)
    assert excinfo.value.kind is FormatErrorKind.NOT_MIDI
    assert isinstance(excinfo.value, FormatError)
    assert isinstance(excinfo.value, ValueError)


def test_empty_stream_is_not_midi() -> None:
    with pytest.raises(NotMidiError):
        extract_smf(b"")


def test_riff_with_other_form_type() -> None:
    data = _riff(b"WAVE" + _chunk(b"fmt ", b"\x00" * 16))
    with pytest.raises(NotRiffMidiError):
        extract_smf(data)


def test_riff_without_data_chunk() -> None:
    data = _riff(b"RMID" + _chunk(b"LIST", b"abcd"))
    with pytest.raises(MissingDataChunkError):
        extract_smf(data)


def test_riff_with_incomplete_chunk_header() -> None:
    data = _riff(b"RMID" + b"dat")
    with pytest.raises(MissingDataChunkError):
        extract_smf(data)


def test_riff_data_chunk_must_hold_smf() -> None:
    data = _riff(b"RMID" + _chunk(b"data", b"junkjunk"))
    with pytest.raises(BadHeaderError):
        extract_smf(data)


def test_data_chunk_overrunning_stream_is_cut_at_end() -> None:
    body = b"RMID" + b"data" + (len(SMF) + 100).to_bytes(4, "little") + SMF
    assert extract_smf(_riff(body)) == SMF


def test_wrap_rmid_rejects_bad_chunk_id() -> None:
    with pytest.raises(ValueError):
        wrap_rmid(SMF, ((b"TOOLONG", b""),))
