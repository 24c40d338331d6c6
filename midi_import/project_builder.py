"""Build a project from a MIDI or RMID byte stream.

Order of work for one import:

  1. unwrap the container and decode the SMF payload (any failure here
     aborts the import with a ``FormatError``);
  2. write time-signature numerator/denominator curves;
  3. write the tempo curve from the tempo map;
  4. route every source track's events to channels and controllers;
  5. split channel notes into patterns, drop note-less channels and apply
     the General MIDI percussion bank to channel 10.

Steps 2-5 cannot fail: missing patch files and unknown events only produce
diagnostics.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

from .channels import ChannelMultiplexer
from .config import ImportConfig
from .container import extract_smf
from .instruments import DefaultInstrumentProvider, InstrumentProvider
from .project import AutomationPattern, Project, beat_to_ticks
from .sequence import Sequence, decode_sequence

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

# Progress steps reported before the first source track.
PRE_TRACK_STEPS = 2

NUMERATOR_TRACK_NAME = "MIDI Time Signature Numerator"
DENOMINATOR_TRACK_NAME = "MIDI Time Signature Denominator"


class ProjectBuilder:
    def __init__(
        self,
        container: Optional[Project] = None,
        instruments: Optional[InstrumentProvider] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.container = container if container is not None else Project()
        self.instruments = instruments if instruments is not None else DefaultInstrumentProvider()
        self.progress = progress
        self.diagnostics: List[str] = []
        self._progress_value = 0
        self._progress_max = PRE_TRACK_STEPS

    def _report(self, value: int) -> None:
        self._progress_value = value
        if self.progress is not None:
            self.progress(value, self._progress_max)

    def add_time_signatures(self, sequence: Sequence) -> None:
        project = self.container
        numerator_track = project.create_automation_track(NUMERATOR_TRACK_NAME)
        denominator_track = project.create_automation_track(DENOMINATOR_TRACK_NAME)
        numerator = numerator_track.create_pattern(0, name="Numerator")
        numerator.add_target(project.time_sig_numerator)
        denominator = denominator_track.create_pattern(0, name="Denominator")
        denominator.add_target(project.time_sig_denominator)

        for sig in sequence.time_signatures:
            pos = beat_to_ticks(sig.beat)
            numerator.put_value(pos, sig.numerator)
            denominator.put_value(pos, sig.denominator)
        numerator.update_length()
        denominator.update_length()

    def add_tempo(self, sequence: Sequence) -> AutomationPattern:
        tempo_map = sequence.tempo_map
        pattern = self.container.tempo_automation_pattern()
        pattern.clear()
        for point, following in tempo_map.segments():
            # beats per second across the segment, in BPM
            bpm = float(following.beat - point.beat) / (following.seconds - point.seconds) * 60.0
            pattern.put_value(beat_to_ticks(point.beat), bpm)
        if tempo_map.last_tempo is not None:
            last = tempo_map.breakpoints[-1]
            pattern.put_value(beat_to_ticks(last.beat), 60_000_000 / tempo_map.last_tempo)
        pattern.update_length()
        return pattern

    def build(self, sequence: Sequence) -> Project:
        logger.info(
            "importing SMF format %d: %d tracks, %d ticks per beat",
            sequence.format,
            len(sequence.tracks),
            sequence.ticks_per_beat,
        )
        self._progress_max = PRE_TRACK_STEPS + len(sequence.tracks)
        self._report(1)

        self.add_time_signatures(sequence)
        self._report(2)

        self.add_tempo(sequence)

        multiplexer = ChannelMultiplexer(self.container, self.instruments, self.diagnostics)
        for track in sequence.tracks:
            self._report(self._progress_value + 1)
            multiplexer.process_track(track)
        multiplexer.finalize()

        logger.info(
            "imported %d instrument tracks, %d automation tracks (%d diagnostics)",
            len(self.container.instrument_tracks),
            len(self.container.automation_tracks),
            len(self.diagnostics),
        )
        return self.container


def import_midi(
    data: bytes,
    *,
    config: Optional[ImportConfig] = None,
    instruments: Optional[InstrumentProvider] = None,
    container: Optional[Project] = None,
    progress: Optional[ProgressCallback] = None,
) -> Project:
    """Import a MIDI (SMF) or RMID byte stream.

    Parameters
    ----------
    data : bytes
        Whole input file.
    config : ImportConfig, optional
        Used for the default instrument provider and the default tempo.
    instruments : InstrumentProvider, optional
        Overrides the provider built from ``config``.
    container : Project, optional
        Project to add tracks to; a new one is created by default.
    progress : callable, optional
        Called as ``progress(value, maximum)`` twice before track
        processing and once per source track.

    Raises
    ------
    FormatError
        ``NotMidiError`` when the stream is not MIDI at all, other
        subclasses for damaged MIDI data.
    """
    config = config if config is not None else ImportConfig()
    payload = extract_smf(data)
    sequence = decode_sequence(payload, default_tempo=config.default_tempo)
    if instruments is None:
        instruments = DefaultInstrumentProvider(config)
    builder = ProjectBuilder(container=container, instruments=instruments, progress=progress)
    return builder.build(sequence)


def import_file(path: Union[str, Path], **kwargs) -> Project:
    return import_midi(Path(path).read_bytes(), **kwargs)
