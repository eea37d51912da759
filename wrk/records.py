"""Decoders for every WRK chunk kind except the note-array body itself.

Each decoder takes the :class:`~wrk.context.DecodeContext` positioned at the
start of the chunk payload, reads what it understands and emits events.  It
never has to land exactly on the end of the payload: the dispatcher seeks
there afterwards.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Tuple

from .context import DecodeContext
from .errors import DiagnosticKind, TruncatedStreamError
from .events import (
    Comments,
    GlobalVars,
    KeySignature,
    Marker,
    ProgramChange,
    Segment,
    SoftwareVersion,
    StringTable,
    SysexBank,
    Tempo,
    Thru,
    TimeBase,
    TimeFormat,
    TimeSignature,
    Track,
    TrackBank,
    TrackName,
    TrackOffset,
    TrackPatch,
    TrackReps,
    TrackVolume,
    VariableRecord,
)
from .note_array import decode_fixed_records, decode_note_array
from .primitives import PrimitiveReader

logger = logging.getLogger(__name__)

RecordDecoder = Callable[[DecodeContext], None]

VARIABLE_NAME_FIELD = 32
MAX_DENOMINATOR_EXPONENT = 6  # 64th notes


def _check_complete(ctx: DecodeContext, what: str, start: int) -> None:
    r = ctx.reader
    if r.exhausted:
        raise TruncatedStreamError(
            f"stream ended inside {what}", offset=start, data=r.span(start, r.position())
        )


# ── tracks ────────────────────────────────────────────────────────────


def decode_track(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    names: List[str] = []
    for _ in range(2):
        names.append(r.read_fixed_string(r.read_byte()))
    channel = r.read_s8()
    pitch = r.read_byte()
    velocity = r.read_byte()
    port = r.read_byte()
    flags = r.read_byte()
    _check_complete(ctx, f"track {number} header", ctx.chunk_start)
    track = Track(
        number=number,
        names=tuple(names),
        channel=channel,
        base_pitch=pitch,
        base_velocity=velocity,
        port=port,
        selected=bool(flags & 1),
        muted=bool(flags & 2),
        loop=bool(flags & 4),
        legacy=True,
    )
    ctx.tracks[number] = track
    ctx.emit(track)


def decode_new_track(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    name = r.read_fixed_string(r.read_byte())
    bank = r.read_s16()
    patch = r.read_s16()
    volume = r.read_s16()
    pan = r.read_s16()
    key = r.read_s8()
    velocity = r.read_s8()
    r.skip(7)
    port = r.read_byte()
    channel = r.read_s8()
    muted = r.read_byte() != 0
    _check_complete(ctx, f"track {number} header", ctx.chunk_start)
    track = Track(
        number=number,
        names=(name,),
        channel=channel,
        base_pitch=key,
        base_velocity=velocity,
        port=port,
        muted=muted,
        legacy=False,
        bank=bank,
        patch=patch,
        volume=volume,
        pan=pan,
    )
    ctx.tracks[number] = track
    ctx.emit(track)
    if bank > -1:
        ctx.emit(TrackBank(number, bank))
    if patch > -1:
        if channel > -1:
            ctx.emit(ProgramChange(number, 0, channel, patch))
        else:
            ctx.emit(TrackPatch(number, patch))


def decode_track_name(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    ctx.emit(TrackName(number, r.read_fixed_string(r.read_byte())))


def decode_track_offset(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    ctx.emit(TrackOffset(number, r.read_s16()))


def decode_new_track_offset(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    ctx.emit(TrackOffset(number, r.read_32()))


def decode_track_reps(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    ctx.emit(TrackReps(number, r.read_16()))


def decode_track_patch(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    ctx.emit(TrackPatch(number, r.read_s8()))


def decode_track_bank(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    ctx.emit(TrackBank(number, r.read_16()))


def decode_track_volume(ctx: DecodeContext) -> None:
    r = ctx.reader
    number = r.read_16()
    ctx.emit(TrackVolume(number, r.read_16()))


# ── event streams ─────────────────────────────────────────────────────


def decode_stream(ctx: DecodeContext) -> None:
    r = ctx.reader
    track = r.read_16()
    count = r.read_16()
    decode_fixed_records(ctx, track, count)


def decode_lyrics(ctx: DecodeContext) -> None:
    r = ctx.reader
    track = r.read_16()
    count = r.read_32()
    decode_note_array(ctx, track, count=count)


def decode_segment(ctx: DecodeContext) -> None:
    r = ctx.reader
    track = r.read_16()
    offset = r.read_32()
    r.skip(8)
    name = r.read_fixed_string(r.read_byte())
    r.skip(20)
    ctx.emit(Segment(track, offset, name))
    count = r.read_32()
    decode_note_array(ctx, track, count=count)


def decode_new_stream(ctx: DecodeContext) -> None:
    r = ctx.reader
    track = r.read_16()
    name = r.read_fixed_string(r.read_byte())
    ctx.emit(Segment(track, 0, name))
    declared = r.read_32()
    decoded = decode_note_array(ctx, track, end=ctx.chunk_end)
    if decoded != declared:
        ctx.diagnose(
            DiagnosticKind.MALFORMED_RECORD,
            f"track {track} stream declares {declared} events but holds {decoded}",
            offset=ctx.chunk_start,
        )


# ── timing ────────────────────────────────────────────────────────────


def decode_timebase(ctx: DecodeContext) -> None:
    division = ctx.reader.read_16()
    _check_complete(ctx, "timebase", ctx.chunk_start)
    if division == 0:
        ctx.diagnose(
            DiagnosticKind.MALFORMED_RECORD,
            f"timebase of 0 ticks per quarter ignored; keeping {ctx.division}",
            offset=ctx.chunk_start,
        )
        return
    ctx.division = division
    ctx.emit(TimeBase(division))


def _decode_tempo_map(ctx: DecodeContext, factor: int) -> None:
    r = ctx.reader
    count = r.read_16()
    for index in range(count):
        start = r.position()
        tick = r.read_32()
        r.skip(4)
        raw = r.read_16() * factor
        r.skip(8)
        _check_complete(ctx, f"tempo record {index}", start)
        if raw == 0:
            ctx.diagnose(
                DiagnosticKind.MALFORMED_RECORD,
                f"tempo of 0 bpm at tick {tick} ignored",
                offset=start,
            )
            continue
        point = ctx.tempo_map.append(tick, raw)
        ctx.emit(Tempo(point, raw))


def decode_tempo(ctx: DecodeContext) -> None:
    _decode_tempo_map(ctx, 100)


def decode_new_tempo(ctx: DecodeContext) -> None:
    _decode_tempo_map(ctx, 1)


def _meter_denominator(ctx: DecodeContext, exponent: int, offset: int) -> int:
    if exponent > MAX_DENOMINATOR_EXPONENT:
        ctx.diagnose(
            DiagnosticKind.MALFORMED_RECORD,
            f"time signature denominator 2**{exponent} is out of range",
            offset=offset,
        )
    return 2 ** exponent


def decode_meter(ctx: DecodeContext) -> None:
    r = ctx.reader
    count = r.read_16()
    for index in range(count):
        start = r.position()
        r.skip(4)
        bar = r.read_16()
        numerator = r.read_byte()
        exponent = r.read_byte()
        r.skip(4)
        _check_complete(ctx, f"meter record {index}", start)
        ctx.emit(TimeSignature(bar, numerator, _meter_denominator(ctx, exponent, start)))


def decode_meter_key(ctx: DecodeContext) -> None:
    r = ctx.reader
    count = r.read_16()
    for index in range(count):
        start = r.position()
        bar = r.read_16()
        numerator = r.read_byte()
        exponent = r.read_byte()
        alterations = r.read_s8()
        _check_complete(ctx, f"meter/key record {index}", start)
        ctx.emit(TimeSignature(bar, numerator, _meter_denominator(ctx, exponent, start)))
        ctx.emit(KeySignature(bar, alterations))


def decode_time_format(ctx: DecodeContext) -> None:
    r = ctx.reader
    frames = r.read_16()
    ctx.emit(TimeFormat(frames, r.read_16()))


def decode_markers(ctx: DecodeContext) -> None:
    r = ctx.reader
    count = r.read_32()
    for index in range(count):
        start = r.position()
        smpte = r.read_byte()
        r.skip(1)
        tick = r.read_24()
        r.skip(5)
        text = r.read_fixed_string(r.read_byte())
        _check_complete(ctx, f"marker {index}", start)
        ctx.emit(Marker(tick, smpte, text))


# ── system exclusive banks ────────────────────────────────────────────


def _emit_sysex(
    ctx: DecodeContext, bank: int, length: int, autosend: bool, port: int
) -> None:
    r = ctx.reader
    name = r.read_fixed_string(r.read_byte())
    data = r.read_bytes(length)
    _check_complete(ctx, f"sysex bank {bank}", ctx.chunk_start)
    ctx.emit(SysexBank(bank, name, autosend, port, data))


def decode_sysex(ctx: DecodeContext) -> None:
    r = ctx.reader
    bank = r.read_byte()
    length = r.read_16()
    autosend = r.read_byte() != 0
    _emit_sysex(ctx, bank, length, autosend, 0)


def decode_sysex2(ctx: DecodeContext) -> None:
    r = ctx.reader
    bank = r.read_16()
    length = r.read_32()
    flags = r.read_byte()
    _emit_sysex(ctx, bank, length, (flags & 0x0F) != 0, (flags & 0xF0) >> 4)


def decode_new_sysex(ctx: DecodeContext) -> None:
    r = ctx.reader
    bank = r.read_16()
    length = r.read_32()
    port = r.read_16()
    autosend = r.read_byte() != 0
    _emit_sysex(ctx, bank, length, autosend, port)


# ── document settings and text ────────────────────────────────────────


def _read_flag(r: PrimitiveReader) -> bool:
    return r.read_byte() != 0


def decode_global_vars(ctx: DecodeContext) -> None:
    r = ctx.reader
    fields = {}
    fields["now"] = r.read_32()
    fields["from_marker"] = r.read_32()
    fields["thru_marker"] = r.read_32()
    fields["key_sig"] = r.read_byte()
    fields["clock"] = r.read_byte()
    fields["auto_save"] = r.read_byte()
    fields["play_delay"] = r.read_byte()
    r.skip(1)
    fields["zero_ctrls"] = _read_flag(r)
    fields["send_spp"] = _read_flag(r)
    fields["send_cont"] = _read_flag(r)
    fields["patch_search"] = _read_flag(r)
    fields["auto_stop"] = _read_flag(r)
    fields["stop_time"] = r.read_32()
    fields["auto_rewind"] = _read_flag(r)
    fields["rewind_time"] = r.read_32()
    fields["metro_play"] = _read_flag(r)
    fields["metro_record"] = _read_flag(r)
    fields["metro_accent"] = _read_flag(r)
    fields["count_in"] = r.read_byte()
    r.skip(2)
    fields["thru_on"] = _read_flag(r)
    r.skip(19)
    fields["auto_restart"] = _read_flag(r)
    fields["cur_tempo_ofs"] = r.read_byte()
    fields["tempo_ofs1"] = r.read_byte()
    fields["tempo_ofs2"] = r.read_byte()
    fields["tempo_ofs3"] = r.read_byte()
    r.skip(2)
    fields["punch_enabled"] = _read_flag(r)
    fields["punch_in_time"] = r.read_32()
    fields["punch_out_time"] = r.read_32()
    fields["end_all_time"] = r.read_32()
    _check_complete(ctx, "global variables", ctx.chunk_start)
    ctx.global_vars = GlobalVars(**fields)
    ctx.emit(ctx.global_vars)


def decode_thru(ctx: DecodeContext) -> None:
    r = ctx.reader
    r.skip(2)
    port = r.read_s8()
    channel = r.read_s8()
    key_plus = r.read_s8()
    velocity_plus = r.read_s8()
    local_port = r.read_s8()
    mode = r.read_s8()
    ctx.emit(Thru(mode, port, channel, key_plus, velocity_plus, local_port))


def decode_comments(ctx: DecodeContext) -> None:
    r = ctx.reader
    ctx.emit(Comments(r.read_fixed_string(r.read_16())))


def decode_variable_record(ctx: DecodeContext) -> None:
    r = ctx.reader
    raw_name = r.read_nul_bytes()
    # The name lives in a 32-byte field; the NUL is already consumed.
    # The gap counts encoded bytes, not decoded characters.
    r.skip(VARIABLE_NAME_FIELD - 1 - len(raw_name))
    data = r.read_bytes(ctx.chunk_length - VARIABLE_NAME_FIELD)
    ctx.emit(VariableRecord(r.decode_text(raw_name), data))


def decode_software_version(ctx: DecodeContext) -> None:
    r = ctx.reader
    ctx.emit(SoftwareVersion(r.read_fixed_string(r.read_byte())))


def decode_string_table(ctx: DecodeContext) -> None:
    r = ctx.reader
    rows = r.read_16()
    indexed: List[Tuple[int, int, str]] = []
    for row in range(rows):
        text = r.read_fixed_string(r.read_byte())
        indexed.append((r.read_byte(), row, text))
    _check_complete(ctx, "string table", ctx.chunk_start)
    ctx.emit(StringTable(tuple(text for _, _, text in sorted(indexed))))
