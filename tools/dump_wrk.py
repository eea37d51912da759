#!/usr/bin/env python3
"""Print the contents of Cakewalk WRK files, one decoded record per line.

Columns are ``ticks track ch event data``; document-level records show
``--`` in the track and channel columns.

Examples
--------
    python tools/dump_wrk.py song.wrk
    python tools/dump_wrk.py -v --seconds --encoding cp1251 song.wrk
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import List, Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from wrk import events as ev  # noqa: E402
from wrk.codec import TextDecoder, text_decoder_for  # noqa: E402
from wrk.errors import StructuralError  # noqa: E402
from wrk.reader import WrkReader  # noqa: E402

NO_CHANNEL = "--"
HEADER_LINE = "__ticks track ch event____________________ data____"


def dump_line(tick: int, track: object, chan: object, event: str, data: str) -> str:
    return f"{tick:>7} {str(track):>5}{str(chan):>3} {event:<25} {data}".rstrip()


def doc_line(tick: int, event: str, data: str = "") -> str:
    return dump_line(tick, NO_CHANNEL, NO_CHANNEL, event, data)


def var_line(name: str, value: object) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return f"{'':43}{name} = {value}"


def hex_lines(data: bytes) -> List[str]:
    return [
        f"{'':42}" + "".join(f" {b:02x}" for b in data[i : i + 16])
        for i in range(0, len(data), 16)
    ]


def _track_vars(track: ev.Track) -> List[str]:
    return [
        var_line("pitch", track.base_pitch),
        var_line("velocity", track.base_velocity),
        var_line("port", track.port),
        var_line("selected", track.selected),
        var_line("muted", track.muted),
        var_line("loop", track.loop),
    ]


def format_event(
    event: ev.WrkEvent,
    *,
    verbose: bool = False,
    decoder: TextDecoder | None = None,
) -> List[str]:
    """Render one event as dump lines (empty for events with no output)."""

    decoder = decoder or text_decoder_for(None)
    e = event
    if isinstance(e, ev.Header):
        return [doc_line(0, "WRK File Version", e.version)]
    if isinstance(e, ev.TimeBase):
        return [doc_line(0, "Ticks per Quarter Note", str(e.division))]
    if isinstance(e, ev.GlobalVars):
        lines = [doc_line(0, "Global Vars")]
        if verbose:
            for name, value in vars(e).items():
                lines.append(var_line(name, value))
        return lines
    if isinstance(e, ev.Track):
        if e.legacy:
            data = f"name1='{e.names[0]}' name2='{e.names[1] if len(e.names) > 1 else ''}'"
        else:
            data = e.name
        lines = [dump_line(0, e.number, e.channel, "Track", data)]
        return lines + _track_vars(e) if verbose else lines
    if isinstance(e, ev.Note):
        return [dump_line(e.tick, e.track, e.channel, "Note",
                          f"key={e.pitch} vel={e.velocity} dur={e.duration}")]
    if isinstance(e, ev.KeyPressure):
        return [dump_line(e.tick, e.track, e.channel, "Key Pressure",
                          f"key={e.pitch} press={e.pressure}")]
    if isinstance(e, ev.ControlChange):
        return [dump_line(e.tick, e.track, e.channel, "Control Change",
                          f"ctl={e.controller} val={e.value}")]
    if isinstance(e, ev.PitchBend):
        return [dump_line(e.tick, e.track, e.channel, "Pitch Bend", str(e.value))]
    if isinstance(e, ev.ProgramChange):
        return [dump_line(e.tick, e.track, e.channel, "Program Change", str(e.patch))]
    if isinstance(e, ev.ChannelPressure):
        return [dump_line(e.tick, e.track, e.channel, "Channel Pressure", str(e.pressure))]
    if isinstance(e, ev.SysexRef):
        return [dump_line(e.tick, e.track, NO_CHANNEL, "System Exclusive", str(e.bank))]
    if isinstance(e, ev.SysexBank):
        lines = [doc_line(0, "System Exclusive Bank",
                          f"bank={e.bank} name='{e.name}' auto={str(e.autosend).lower()} port={e.port}")]
        return lines + hex_lines(e.data) if verbose else lines
    if isinstance(e, ev.Text):
        return [dump_line(e.tick, e.track, NO_CHANNEL, f"Text ({e.text_type})", e.text)]
    if isinstance(e, ev.TimeSignature):
        return [doc_line(0, "Time Signature", f"bar={e.bar}, {e.numerator}/{e.denominator}")]
    if isinstance(e, ev.KeySignature):
        return [doc_line(0, "Key Signature", f"bar={e.bar}, alt={e.alterations}")]
    if isinstance(e, ev.Tempo):
        return [doc_line(e.tick, "Tempo", f"{e.bpm:.2f}")]
    if isinstance(e, ev.Thru):
        return [doc_line(0, "Thru Mode",
                         f"mode={e.mode} port={e.port} chan={e.channel} key+={e.key_plus} "
                         f"vel+={e.velocity_plus} port={e.local_port}")]
    if isinstance(e, ev.TrackOffset):
        return [dump_line(0, e.track, NO_CHANNEL, "Track Offset", str(e.offset))]
    if isinstance(e, ev.TrackReps):
        return [dump_line(0, e.track, NO_CHANNEL, "Track Repetitions", str(e.reps))]
    if isinstance(e, ev.TrackPatch):
        return [dump_line(0, e.track, NO_CHANNEL, "Track Patch", str(e.patch))]
    if isinstance(e, ev.TrackBank):
        return [dump_line(0, e.track, NO_CHANNEL, "Track Bank", str(e.bank))]
    if isinstance(e, ev.TrackVolume):
        return [dump_line(0, e.track, NO_CHANNEL, "Track Volume", str(e.volume))]
    if isinstance(e, ev.TrackName):
        return [dump_line(0, e.track, NO_CHANNEL, "Track Name", e.name)]
    if isinstance(e, ev.TimeFormat):
        return [doc_line(0, "SMPTE Time Format", f"{e.frames} frames/second, offset={e.offset}")]
    if isinstance(e, ev.Comments):
        return [doc_line(0, "Comment", e.text.strip())]
    if isinstance(e, ev.VariableRecord):
        if e.is_text:
            return [doc_line(0, "Variable Record", f"{e.name}: {e.text(decoder)}".strip())]
        lines = [doc_line(0, "Variable Record", e.name.strip())]
        return lines + hex_lines(e.data) if verbose else lines
    if isinstance(e, ev.SoftwareVersion):
        return [doc_line(0, "Software Version", e.version)]
    if isinstance(e, ev.StringTable):
        return [doc_line(0, "String Table", ", ".join(e.entries))]
    if isinstance(e, ev.Segment):
        return [dump_line(e.tick, e.track, NO_CHANNEL, "Track Segment", e.name)]
    if isinstance(e, ev.Chord):
        lines = [dump_line(e.tick, e.track, NO_CHANNEL, "Chord Diagram", e.name)]
        return lines + hex_lines(e.diagram) if verbose else lines
    if isinstance(e, ev.Expression):
        return [dump_line(e.tick, e.track, NO_CHANNEL, "Expression", f"text={e.text} code={e.code}")]
    if isinstance(e, ev.Hairpin):
        return [dump_line(e.tick, e.track, NO_CHANNEL, "Hairpin", f"code={e.code}, dur={e.duration}")]
    if isinstance(e, ev.Marker):
        return [doc_line(e.tick, "Marker", f"smpte={e.smpte} {e.text}")]
    if isinstance(e, ev.UnknownChunk):
        lines = [doc_line(0, f"Unknown Chunk {e.chunk_kind} (0x{e.chunk_kind:02x})",
                          f"size={len(e.data)}")]
        return lines + hex_lines(e.data) if verbose else lines
    if isinstance(e, ev.Diagnostic):
        return [f"*** Warning! {e.message}"]
    # StreamEnd and EndOfFile print nothing
    return []


def dump_file(path: Path, *, verbose: bool, seconds: bool, decoder: TextDecoder) -> int:
    reader = WrkReader(text_decoder=decoder)
    print(HEADER_LINE)
    try:
        collected = reader.events(path)
    except StructuralError as exc:
        print(f"*** Error! {path}: {exc}")
        return 1
    for event in collected:
        for i, line in enumerate(format_event(event, verbose=verbose, decoder=decoder)):
            if seconds and i == 0:
                tick = getattr(event, "tick", 0)
                line = f"{reader.real_time(tick):10.4f} {line}"
            print(line)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Dump Cakewalk WRK files as text.")
    parser.add_argument("files", nargs="+", type=Path, help="Input WRK file(s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "--encoding",
        default=None,
        help="Codec for embedded strings (default: cp1252)",
    )
    parser.add_argument(
        "--seconds",
        action="store_true",
        help="Prefix each record with its real time in seconds",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        decoder = text_decoder_for(args.encoding)
    except LookupError:
        parser.error(f"unknown encoding: {args.encoding}")

    status = 0
    for path in args.files:
        if not path.exists():
            print(f"File not found: {path}")
            status = 1
            continue
        status = max(status, dump_file(path, verbose=args.verbose, seconds=args.seconds, decoder=decoder))
    return status


if __name__ == "__main__":
    raise SystemExit(main())
