"""Locate the Standard MIDI File payload inside an input stream.

Two framings are accepted:

  SMF  : ``MThd ...`` -- the stream is the payload.
  RMID : ``RIFF <len u32 LE> RMID`` followed by chunks of
         ``<id 4 bytes> <len u32 LE> <payload>``.  The ``data`` chunk holds
         the SMF payload; every other chunk is skipped, padded to an even
         length.

Identifiers are compared as raw bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from .errors import BadHeaderError, MissingDataChunkError, NotMidiError, NotRiffMidiError

logger = logging.getLogger(__name__)

SMF_MAGIC = b"MThd"
RIFF_MAGIC = b"RIFF"
RMID_FORM = b"RMID"
DATA_CHUNK_ID = b"data"
ID_SIZE = 4
RIFF_PREFIX_SIZE = 12  # "RIFF" + length + "RMID"
CHUNK_HEADER_SIZE = 8


@dataclass(frozen=True)
class RawChunk:
    """One RIFF chunk: identifier, declared length and payload."""

    ident: bytes
    length: int
    payload: bytes
    offset: int  # offset of the chunk header in the stream

    @property
    def padded_length(self) -> int:
        return (self.length + 1) & ~1

    @property
    def name(self) -> str:
        return self.ident.decode("latin-1")


def read_u32_le(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 4], "little", signed=False)


def iter_riff_chunks(data: bytes) -> Iterator[RawChunk]:
    """Yield the chunks following the ``RIFF <len> RMID`` prefix.

    Iteration stops quietly at the first incomplete chunk header.  The last
    chunk's payload is cut at end of stream if its declared length overruns.
    """
    if data[:ID_SIZE] != RIFF_MAGIC:
        raise NotMidiError(f"not a RIFF stream: {data[:ID_SIZE]!r}")
    if data[8:RIFF_PREFIX_SIZE] != RMID_FORM:
        raise NotRiffMidiError(
            f"RIFF form type is {data[8:RIFF_PREFIX_SIZE]!r}, expected {RMID_FORM!r}"
        )

    pos = RIFF_PREFIX_SIZE
    while pos + CHUNK_HEADER_SIZE <= len(data):
        ident = data[pos : pos + ID_SIZE]
        length = read_u32_le(data, pos + ID_SIZE)
        start = pos + CHUNK_HEADER_SIZE
        chunk = RawChunk(
            ident=ident,
            length=length,
            payload=data[start : start + length],
            offset=pos,
        )
        yield chunk
        pos = start + chunk.padded_length


def extract_riff_payload(data: bytes) -> bytes:
    """Return the SMF payload of an RMID stream."""
    for chunk in iter_riff_chunks(data):
        if chunk.ident != DATA_CHUNK_ID:
            logger.debug(
                "skipping RIFF chunk %r (%d bytes) at 0x%X",
                chunk.ident,
                chunk.length,
                chunk.offset,
            )
            continue
        if chunk.payload[:ID_SIZE] != SMF_MAGIC:
            raise BadHeaderError(
                f"RIFF data chunk does not hold a MIDI file: {chunk.payload[:ID_SIZE]!r}"
            )
        return chunk.payload
    raise MissingDataChunkError("RIFF stream ended before a data chunk was found")


def extract_smf(data: bytes) -> bytes:
    """Detect the framing of ``data`` and return the raw SMF bytes.

    Raises
    ------
    NotMidiError
        The stream starts with neither ``MThd`` nor ``RIFF``.
    NotRiffMidiError
        RIFF stream whose form type is not ``RMID``.
    MissingDataChunkError
        RIFF stream without a ``data`` chunk.
    BadHeaderError
        The ``data`` chunk does not start with ``MThd``.
    """
    ident = bytes(data[:ID_SIZE])
    if ident == SMF_MAGIC:
        logger.debug("found MThd")
        return bytes(data)
    if ident == RIFF_MAGIC:
        logger.debug("found RIFF")
        return extract_riff_payload(bytes(data))
    raise NotMidiError(f"not a Standard MIDI file (leading bytes {ident!r})")


def wrap_rmid(smf: bytes, extra_chunks: tuple[tuple[bytes, bytes], ...] = ()) -> bytes:
    """Wrap an SMF payload in a RIFF/RMID container.

    ``extra_chunks`` are ``(ident, payload)`` pairs written before the data
    chunk.  Used by the tools and tests to produce RMID fixtures.
    """
    body = bytearray(RMID_FORM)
    for ident, payload in (*extra_chunks, (DATA_CHUNK_ID, smf)):
        if len(ident) != ID_SIZE:
            raise ValueError(f"chunk id must be 4 bytes, got {ident!r}")
        body += ident
        body += len(payload).to_bytes(4, "little")
        body += payload
        if len(payload) % 2:
            body += b"\x00"
    return RIFF_MAGIC + len(body).to_bytes(4, "little") + bytes(body)
