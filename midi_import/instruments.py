"""Instrument provisioning for imported channels.

The default provider prefers a soundfont player and falls back to a GUS
patch player.  Program changes on patch-player channels look up a patch file
named after the program number (``000*.pat`` .. ``127*.pat``) in the
configured patch directory.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from .config import ImportConfig
from .project import PATCH_PLAYER, SOUNDFONT_PLAYER, Instrument

logger = logging.getLogger(__name__)


class InstrumentProvider(Protocol):
    def load_default_instrument(self, channel: int) -> Instrument: ...

    def load_patch_by_program_number(self, program: int) -> Optional[Instrument]: ...


def patch_glob(program: int) -> str:
    return f"{program:03d}*.pat"


class DefaultInstrumentProvider:
    def __init__(self, config: Optional[ImportConfig] = None) -> None:
        self.config = config if config is not None else ImportConfig()
        self.soundfont = self.config.resolved_soundfont() if self.config.use_soundfont else None
        if self.config.use_soundfont and self.soundfont is None:
            logger.warning(
                "no default soundfont configured; imported tracks will be silent "
                "until a General MIDI soundfont is set"
            )

    def load_default_instrument(self, channel: int) -> Instrument:
        if self.config.use_soundfont:
            return Instrument(
                plugin=SOUNDFONT_PLAYER,
                file=str(self.soundfont) if self.soundfont is not None else None,
            )
        return Instrument(plugin=PATCH_PLAYER)

    def find_patch(self, program: int) -> Optional[Path]:
        patch_dir = self.config.patch_dir
        if not patch_dir.is_dir():
            return None
        matches = sorted(patch_dir.glob(patch_glob(program)))
        return matches[0] if matches else None

    def load_patch_by_program_number(self, program: int) -> Optional[Instrument]:
        path = self.find_patch(program)
        if path is None:
            logger.info("no patch file for program %d in %s", program, self.config.patch_dir)
            return None
        return Instrument(plugin=PATCH_PLAYER, file=str(path))
