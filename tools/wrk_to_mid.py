#!/usr/bin/env python3
"""Convert a Cakewalk WRK file to a type 1 Standard MIDI File.

Examples
--------
    python tools/wrk_to_mid.py song.wrk
    python tools/wrk_to_mid.py song.wrk -o output/song.mid --encoding cp1252
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from wrk.errors import StructuralError  # noqa: E402
from wrk.events import Diagnostic  # noqa: E402
from wrk.reader import read_wrk  # noqa: E402
from wrk.smf_export import write_midifile  # noqa: E402


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Convert a WRK file to MIDI.")
    parser.add_argument("input", type=Path, help="Input .wrk file")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Output .mid path (default: input with .mid suffix)")
    parser.add_argument("--encoding", default=None,
                        help="Codec for embedded strings (default: cp1252)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.input.exists():
        print(f"File not found: {args.input}", file=sys.stderr)
        return 1
    try:
        events = read_wrk(args.input, encoding=args.encoding)
    except StructuralError as exc:
        print(f"{args.input}: {exc}", file=sys.stderr)
        return 1
    except LookupError:
        parser.error(f"unknown encoding: {args.encoding}")

    for event in events:
        if isinstance(event, Diagnostic):
            print(f"warning: {event.message}", file=sys.stderr)

    output = args.output or args.input.with_suffix(".mid")
    output.parent.mkdir(parents=True, exist_ok=True)
    mid = write_midifile(events, output)
    print(f"Wrote {output} ({len(mid.tracks)} tracks, {mid.ticks_per_beat} ticks/beat)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
