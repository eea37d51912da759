"""Decode note arrays: the per-event record lists inside stream chunks.

Each record starts with a 24-bit absolute tick and a status byte.  The
status byte picks the record shape:

  >= 0x90  channel voice; high nibble is the message, low nibble the channel
           0x90 note         pitch, velocity, u16 duration
           0xA0 key pressure pitch, pressure
           0xB0 controller   number, value
           0xC0 program      patch
           0xD0 chan press.  pressure
           0xE0 pitch bend   lsb, msb (7 bits each, centered on 8192)
           0xF0 sysex ref    bank number
  5        expression mark   u16 code, u32 length, string
  6        hairpin           u16 code, u16 duration, 4 pad bytes
  7        chord diagram     u32 length, string, 13 diagram bytes
  8        inline sysex      u16 length, raw bytes
  other    text              u32 length, string (status is the text type)

Two loop forms exist.  Classic arrays (lyrics and segment chunks) decode
exactly the declared number of records.  Stream arrays (new stream chunks)
decode records until the chunk's declared extent is used up.

The old fixed-size stream chunk (kind 2) uses a simpler 9-byte record that
is always channel voice; :func:`decode_fixed_records` handles it.
"""

from __future__ import annotations

from typing import Tuple

from .context import DecodeContext
from .errors import DiagnosticKind, MalformedRecordError, TruncatedStreamError
from .events import (
    ChannelPressure,
    Chord,
    ControlChange,
    Expression,
    Hairpin,
    KeyPressure,
    Note,
    PitchBend,
    ProgramChange,
    StreamEnd,
    SysexBank,
    SysexRef,
    Text,
    WrkEvent,
)

STATUS_EXPRESSION = 5
STATUS_HAIRPIN = 6
STATUS_CHORD = 7
STATUS_SYSEX = 8
CHORD_DIAGRAM_SIZE = 13
PITCH_BEND_CENTER = 8192
FIXED_RECORD_SIZE = 9

# Channel voice messages that carry a second data byte in note arrays.
_TWO_DATA_BYTES = frozenset({0x90, 0xA0, 0xB0, 0xE0})


def channel_event(
    track: int, tick: int, status: int, data1: int, data2: int, duration: int = 0
) -> WrkEvent:
    """Build the event for a channel voice record (status >= 0x90)."""

    message = status & 0xF0
    channel = status & 0x0F
    if message == 0x90:
        return Note(track, tick, channel, data1, data2, duration)
    if message == 0xA0:
        return KeyPressure(track, tick, channel, data1, data2)
    if message == 0xB0:
        return ControlChange(track, tick, channel, data1, data2)
    if message == 0xC0:
        return ProgramChange(track, tick, channel, data1)
    if message == 0xD0:
        return ChannelPressure(track, tick, channel, data1)
    if message == 0xE0:
        return PitchBend(track, tick, channel, (data2 << 7) + data1 - PITCH_BEND_CENTER)
    if message == 0xF0:
        return SysexRef(track, tick, data1)
    raise MalformedRecordError(f"status 0x{status:02X} is not a channel voice message")


def _read_record(ctx: DecodeContext, track: int, tick: int, status: int) -> Tuple[WrkEvent, int]:
    """Read the body of one note-array record.  Returns (event, duration)."""

    r = ctx.reader
    if status >= 0x90:
        message = status & 0xF0
        data1 = r.read_byte()
        data2 = r.read_byte() if message in _TWO_DATA_BYTES else 0
        duration = r.read_16() if message == 0x90 else 0
        return channel_event(track, tick, status, data1, data2, duration), duration

    if status == STATUS_EXPRESSION:
        code = r.read_16()
        length = r.read_32()
        return Expression(track, tick, code, r.read_fixed_string(length)), 0

    if status == STATUS_HAIRPIN:
        code = r.read_16()
        duration = r.read_16()
        r.skip(4)
        return Hairpin(track, tick, code, duration), duration

    if status == STATUS_CHORD:
        length = r.read_32()
        name = r.read_fixed_string(length)
        diagram = r.read_bytes(CHORD_DIAGRAM_SIZE)
        return Chord(track, tick, name, diagram), 0

    if status == STATUS_SYSEX:
        length = r.read_16()
        return SysexBank(0, "", False, 0, r.read_bytes(length)), 0

    if 0x80 <= status < 0x90:
        ctx.diagnose(
            DiagnosticKind.MALFORMED_RECORD,
            f"unexpected status 0x{status:02X} in note array of track {track}; read as text",
            offset=r.position() - 1,
        )
    length = r.read_32()
    return Text(track, tick, status, r.read_fixed_string(length)), 0


def _truncated(ctx: DecodeContext, start: int, what: str) -> TruncatedStreamError:
    r = ctx.reader
    return TruncatedStreamError(
        f"stream ended inside {what}",
        offset=start,
        data=r.span(start, r.position()),
    )


def decode_note_array(
    ctx: DecodeContext,
    track: int,
    *,
    count: int | None = None,
    end: int | None = None,
) -> int:
    """Decode a note array and emit its events followed by a StreamEnd.

    Pass ``count`` for the classic form or ``end`` (an absolute stream
    offset) for the stream form.  Returns the number of records decoded.
    """

    if (count is None) == (end is None):
        raise TypeError("pass exactly one of count or end")

    r = ctx.reader
    tick = 0
    duration = 0
    decoded = 0
    while (decoded < count) if count is not None else (r.position() < end):
        start = r.position()
        tick = r.read_24()
        status = r.read_byte()
        event, duration = _read_record(ctx, track, tick, status)
        if r.exhausted:
            raise _truncated(ctx, start, f"note array record {decoded} of track {track}")
        ctx.emit(event)
        decoded += 1

    ctx.emit(StreamEnd(track, tick + duration))
    return decoded


def decode_fixed_records(ctx: DecodeContext, track: int, count: int) -> int:
    """Decode ``count`` fixed 9-byte channel voice records (old stream chunk)."""

    r = ctx.reader
    tick = 0
    duration = 0
    for index in range(count):
        start = r.position()
        tick = r.read_24()
        status = r.read_byte()
        data1 = r.read_byte()
        data2 = r.read_byte()
        duration = r.read_16()
        if r.exhausted:
            raise _truncated(ctx, start, f"stream record {index} of track {track}")
        if status < 0x90:
            ctx.diagnose(
                DiagnosticKind.MALFORMED_RECORD,
                f"stream record {index} of track {track} has status 0x{status:02X}; skipped",
                offset=start,
                data=r.span(start, start + FIXED_RECORD_SIZE),
            )
            continue
        ctx.emit(channel_event(track, tick, status, data1, data2, duration))

    ctx.emit(StreamEnd(track, tick + duration))
    return count
