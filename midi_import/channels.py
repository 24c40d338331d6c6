"""Route decoded events to per-channel instrument tracks and per-controller automation.

Channel slots persist for the whole import; controller slots are reset at
the start of each source track, so every source track gets its own
``"<track name> > <parameter>"`` automation tracks.

Controller values reach the mapping normalized (CC: 0..1, pitch bend:
-1..1) and are scaled onto the target parameter:

  ====  ==========  ====================
  CC    parameter   value
  ====  ==========  ====================
  0     Bank        value * 127 (soundfont instruments only)
  7     Volume      value * 100
  10    Panning     value * 200 - 100
  128   Pitch       value * 100 (pitch bend)
  ====  ==========  ====================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, List, Optional, Tuple

from .events import (
    ControllerEvent,
    NoteEvent,
    PitchBendEvent,
    ProgramChangeEvent,
    SmfEvent,
    TrackNameMetaEvent,
    is_global,
)
from .instruments import InstrumentProvider
from .patterns import ControllerTrack, split_into_patterns
from .project import Instrument, InstrumentTrack, Note, Parameter, Project, beat_to_ticks
from .sequence import TrackEvents

logger = logging.getLogger(__name__)

MAX_CHANNELS = 256
PERCUSSION_CHANNEL = 9
PERCUSSION_BANK = 128
KEY_OFFSET = 12  # MIDI key 12 is project key 0
GM_PITCH_RANGE = 2

CC_BANK_SELECT = 0
CC_VOLUME = 7
CC_PAN = 10
CC_PITCH_BEND = 128

MAX_VOLUME = 200
MAX_VELOCITY = 127


@dataclass
class Channel:
    index: int
    track: InstrumentTrack
    notes: List[Note] = field(default_factory=list)

    @property
    def instrument(self) -> Optional[Instrument]:
        return self.track.instrument

    @property
    def is_soundfont(self) -> bool:
        return self.instrument is not None and self.instrument.is_soundfont

    @property
    def has_notes(self) -> bool:
        return bool(self.notes)


def note_from_event(event: NoteEvent) -> Note:
    """Absolute-position project note for a decoded note."""
    return Note(
        pos=beat_to_ticks(event.beat),
        length=max(1, beat_to_ticks(event.duration_beats)),
        key=event.pitch - KEY_OFFSET,
        volume=event.velocity * (MAX_VOLUME / MAX_VELOCITY),
    )


class ChannelMultiplexer:
    def __init__(
        self,
        container: Project,
        instruments: InstrumentProvider,
        diagnostics: Optional[List[str]] = None,
    ) -> None:
        self.container = container
        self.instruments = instruments
        self.diagnostics = diagnostics if diagnostics is not None else []
        self.channels: Dict[int, Channel] = {}
        self.controllers: Dict[int, ControllerTrack] = {}

    def _diagnose(self, message: str, *args: object) -> None:
        text = message % args
        self.diagnostics.append(text)
        logger.debug(text)

    def channel(self, index: int, track_name: str) -> Channel:
        channel = self.channels.get(index)
        if channel is None:
            track = self.container.create_instrument_track(track_name)
            track.instrument = self.instruments.load_default_instrument(index)
            track.pitch_range.set_init_value(GM_PITCH_RANGE)
            channel = Channel(index=index, track=track)
            self.channels[index] = channel
        return channel

    def process_track(self, track: TrackEvents) -> None:
        track_name = f"Track{track.index}"
        for controller in self.controllers.values():
            controller.clear()

        for event in track.events:
            if is_global(event):
                if isinstance(event, TrackNameMetaEvent):
                    track_name = event.name or track_name
                else:
                    self._diagnose(
                        "unhandled global event in track %d at tick %d: %s",
                        track.index,
                        event.tick,
                        getattr(event, "detail", "") or type(event).__name__,
                    )
                continue
            if event.channel >= MAX_CHANNELS:
                self._diagnose("ignoring event on channel %d (out of range)", event.channel)
                continue
            self.route(event, track_name)

    def route(self, event: SmfEvent, track_name: str) -> None:
        channel = self.channel(event.channel, track_name)
        if isinstance(event, NoteEvent):
            channel.notes.append(note_from_event(event))
        elif isinstance(event, ProgramChangeEvent):
            self._program_change(channel, event.program)
        elif isinstance(event, (ControllerEvent, PitchBendEvent)):
            controller = CC_PITCH_BEND if isinstance(event, PitchBendEvent) else event.controller
            self._controller(channel, controller, event.normalized, event.beat, track_name)
        else:
            self._diagnose(
                "unhandled update on channel %d at tick %d: %s",
                event.channel,
                event.tick,
                getattr(event, "detail", "") or type(event).__name__,
            )

    def _program_change(self, channel: Channel, program: int) -> None:
        instrument = channel.instrument
        if instrument is not None and instrument.is_soundfont:
            # program number is the soundfont patch
            instrument.bank.value = 0
            instrument.patch.value = program
            return
        replacement = self.instruments.load_patch_by_program_number(program)
        if replacement is None:
            self._diagnose("no patch for program %d on channel %d", program, channel.index)
            return
        channel.track.instrument = replacement

    def target_parameter(
        self, channel: Channel, controller: int, value: float
    ) -> Optional[Tuple[Parameter, float]]:
        """Project parameter and scaled value for a controller, if it maps to one."""
        track = channel.track
        if controller == CC_BANK_SELECT:
            if channel.is_soundfont:
                return channel.instrument.bank, value * 127
            return None
        if controller == CC_VOLUME:
            return track.volume, value * 100
        if controller == CC_PAN:
            return track.panning, 200 * value - 100
        if controller == CC_PITCH_BEND:
            return track.pitch, 100 * value
        return None

    def _controller(
        self, channel: Channel, controller: int, value: float, beat: Fraction, track_name: str
    ) -> None:
        target = self.target_parameter(channel, controller, value)
        if target is None:
            self._diagnose("controller %d on channel %d has no target", controller, channel.index)
            return
        parameter, scaled = target
        if beat == 0:
            parameter.set_init_value(scaled)
            return

        slot = self.controllers.get(controller)
        if slot is None:
            slot = self.controllers[controller] = ControllerTrack(controller=controller)
        if slot.track is None:
            slot.track = self.container.create_automation_track(f"{track_name} > {parameter.name}")
        slot.put_value(parameter, beat_to_ticks(beat), scaled)

    def finalize(self) -> None:
        for index in sorted(self.channels):
            channel = self.channels[index]
            if channel.has_notes:
                split_into_patterns(channel.track, channel.notes)
            else:
                self._diagnose("channel %d has no notes; dropping track %r", index, channel.track.name)
                self.container.remove_instrument_track(channel.track)

        # General MIDI: channel 10 plays drums, bank 128 in a GM soundfont
        drums = self.channels.get(PERCUSSION_CHANNEL)
        if drums is not None and drums.has_notes and drums.is_soundfont:
            drums.instrument.bank.value = PERCUSSION_BANK
            drums.instrument.patch.value = 0
