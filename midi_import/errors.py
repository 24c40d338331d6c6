from __future__ import annotations

from enum import Enum


class FormatErrorKind(str, Enum):
    NOT_MIDI = "not_midi"
    NOT_RIFF_MIDI = "not_riff_midi"
    MISSING_DATA_CHUNK = "missing_data_chunk"
    BAD_HEADER = "bad_header"
    TRUNCATED = "truncated"


class FormatError(ValueError):
    """Raised when an input stream cannot be imported.

    Every subclass is terminal for one import call: no partial project is
    returned.
    """

    kind: FormatErrorKind


class NotMidiError(FormatError):
    """Leading signature is neither ``MThd`` nor ``RIFF``.

    Callers that try several importers in turn treat this as "not ours"
    rather than as a broken file.
    """

    kind = FormatErrorKind.NOT_MIDI


class NotRiffMidiError(FormatError):
    kind = FormatErrorKind.NOT_RIFF_MIDI


class MissingDataChunkError(FormatError):
    kind = FormatErrorKind.MISSING_DATA_CHUNK


class BadHeaderError(FormatError):
    kind = FormatErrorKind.BAD_HEADER


class TruncatedError(FormatError):
    kind = FormatErrorKind.TRUNCATED
