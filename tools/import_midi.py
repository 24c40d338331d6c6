#!/usr/bin/env python3
"""Import a MIDI / RMID file and print the resulting project.

Examples
--------
Summary:
    python tools/import_midi.py song.mid

Full project as JSON:
    python tools/import_midi.py song.rmi --json -o song.json

RIFF chunk listing:
    python tools/import_midi.py song.rmi --chunks
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from midi_import.config import ImportConfig, load_config  # noqa: E402
from midi_import.container import RIFF_MAGIC, iter_riff_chunks  # noqa: E402
from midi_import.errors import FormatError, NotMidiError  # noqa: E402
from midi_import.project import Project  # noqa: E402
from midi_import.project_builder import import_midi  # noqa: E402


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import a Standard MIDI file into a project",
    )
    parser.add_argument("midi", type=Path, help="Path to .mid / .rmi file")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON import config",
    )
    parser.add_argument(
        "--soundfont",
        type=Path,
        default=None,
        help="Soundfont for imported tracks (overrides config)",
    )
    parser.add_argument(
        "--patch-dir",
        type=Path,
        default=None,
        help="Directory of NNN*.pat patch files (overrides config)",
    )
    parser.add_argument(
        "--no-soundfont",
        action="store_true",
        help="Use patch-file instruments instead of a soundfont player",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full project as JSON",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write output here instead of stdout",
    )
    parser.add_argument(
        "--chunks",
        action="store_true",
        help="List RIFF chunks and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log diagnostics (-v info, -vv debug)",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> ImportConfig:
    config = load_config(args.config) if args.config is not None else ImportConfig()
    overrides = {}
    if args.soundfont is not None:
        overrides["soundfont"] = args.soundfont
    if args.patch_dir is not None:
        overrides["patch_dir"] = args.patch_dir
    if args.no_soundfont:
        overrides["use_soundfont"] = False
    return dataclasses.replace(config, **overrides)


def _summary(project: Project) -> str:
    lines = [f"instrument tracks: {len(project.instrument_tracks)}"]
    for track in project.instrument_tracks:
        notes = sum(len(p.notes) for p in track.patterns)
        inst = track.instrument
        inst_desc = "-" if inst is None else f"{inst.plugin} bank={inst.bank.value:g} patch={inst.patch.value:g}"
        lines.append(
            f"  {track.name:<24} patterns={len(track.patterns):<3} notes={notes:<5} {inst_desc}"
        )
    lines.append(f"automation tracks: {len(project.automation_tracks)}")
    for track in project.automation_tracks:
        points = sum(len(p.values) for p in track.patterns)
        lines.append(f"  {track.name:<40} patterns={len(track.patterns):<3} points={points}")
    return "\n".join(lines)


def main() -> int:
    parser = _build_arg_parser()
    args = parser.parse_args()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    data = args.midi.read_bytes()

    if args.chunks:
        if data[:4] != RIFF_MAGIC:
            print("not a RIFF file", file=sys.stderr)
            return 1
        try:
            for chunk in iter_riff_chunks(data):
                print(f"0x{chunk.offset:08X}  {chunk.name}  {chunk.length} bytes")
        except FormatError as exc:
            print(f"{args.midi}: {exc}", file=sys.stderr)
            return 1
        return 0

    try:
        project = import_midi(data, config=_config_from_args(args))
    except NotMidiError as exc:
        print(f"{args.midi}: {exc}", file=sys.stderr)
        return 2
    except FormatError as exc:
        print(f"{args.midi}: import failed ({exc.kind.value}): {exc}", file=sys.stderr)
        return 1

    text = json.dumps(project.to_dict(), indent=2) if args.json else _summary(project)
    if args.output is not None:
        args.output.write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
