"""Import settings, loadable from a JSON object.

Example::

    {
      "use_soundfont": true,
      "soundfont": "/usr/share/sounds/sf2/FluidR3_GM.sf2",
      "patch_dir": "/usr/share/midi/freepats/Tone_000",
      "default_tempo": 500000
    }

Every key is optional.  ``MIDI_IMPORT_SOUNDFONT`` supplies the soundfont
path when the config does not name one.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .tempo_map import DEFAULT_TEMPO

SOUNDFONT_ENV = "MIDI_IMPORT_SOUNDFONT"
DEFAULT_PATCH_DIR = Path("/usr/share/midi/freepats/Tone_000")
VALID_KEYS = {"use_soundfont", "soundfont", "patch_dir", "default_tempo"}


@dataclass(frozen=True)
class ImportConfig:
    use_soundfont: bool = True
    soundfont: Optional[Path] = None
    patch_dir: Path = DEFAULT_PATCH_DIR
    default_tempo: int = DEFAULT_TEMPO  # us per beat until the first set-tempo

    def resolved_soundfont(self, environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
        if self.soundfont is not None:
            return self.soundfont
        env = os.environ if environ is None else environ
        value = env.get(SOUNDFONT_ENV)
        return Path(value) if value else None


def _require_dict(value: object, *, where: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object")
    return value


def _require_bool(value: object, *, where: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{where} must be a boolean")
    return value


def _optional_path(value: object, *, where: str, base_dir: Path) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ValueError(f"{where} must be a non-empty string")
    path = Path(value)
    return path if path.is_absolute() else base_dir / path


def _int_in_range(value: object, *, where: str, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{where} must be an integer")
    if not (low <= value <= high):
        raise ValueError(f"{where} must be in [{low}, {high}]")
    return value


def parse_config(raw: object, *, base_dir: Path = Path(".")) -> ImportConfig:
    """Validate a decoded JSON object and build an ``ImportConfig``.

    Relative paths resolve against ``base_dir``.
    """
    data = _require_dict(raw, where="config")
    unknown = sorted(set(data) - VALID_KEYS)
    if unknown:
        raise ValueError(f"config has unknown keys: {', '.join(unknown)}")

    kwargs: dict = {}
    if "use_soundfont" in data:
        kwargs["use_soundfont"] = _require_bool(data["use_soundfont"], where="config.use_soundfont")
    if "soundfont" in data:
        kwargs["soundfont"] = _optional_path(data["soundfont"], where="config.soundfont", base_dir=base_dir)
    if "patch_dir" in data:
        patch_dir = _optional_path(data["patch_dir"], where="config.patch_dir", base_dir=base_dir)
        if patch_dir is None:
            raise ValueError("config.patch_dir must be a non-empty string")
        kwargs["patch_dir"] = patch_dir
    if "default_tempo" in data:
        # 0xFFFFFF is the largest tempo an SMF set-tempo event can hold.
        kwargs["default_tempo"] = _int_in_range(
            data["default_tempo"], where="config.default_tempo", low=1, high=0xFFFFFF
        )
    return ImportConfig(**kwargs)


def load_config(path: Path) -> ImportConfig:
    raw = json.loads(path.read_text(encoding="utf-8"))
    return parse_config(raw, base_dir=path.parent)
