"""Chunk framing and dispatch.

A WRK body is a run of ``[kind:u8][length:u32 LE][payload]`` chunks closed
by a single ``0xFF`` byte.  :class:`ChunkDispatcher` reads one chunk at a
time, hands the payload to the decoder registered for its kind and then
seeks to the declared end of the payload no matter how much the decoder
read.  A decoder that misreads one chunk therefore cannot shift the framing
of the next.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Union

from . import records
from .context import DecodeContext, EventSink
from .errors import DiagnosticKind, MalformedRecordError, TruncatedStreamError
from .events import UnknownChunk
from .records import RecordDecoder

logger = logging.getLogger(__name__)


class ChunkType(enum.IntEnum):
    TRACK = 1
    STREAM = 2
    VARS = 3
    TEMPO = 4
    METER = 5
    SYSEX = 6
    MEMRGN = 7
    COMMENTS = 8
    TRKOFFS = 9
    TIMEBASE = 10  # first chunk when present
    TIMEFMT = 11
    TRKREPS = 12
    TRKPATCH = 14
    NTEMPO = 15
    THRU = 16
    LYRICS = 18
    TRKVOL = 19
    SYSEX2 = 20
    MARKERS = 21
    STRTAB = 22
    METERKEY = 23
    TRKNAME = 24
    VARIABLE = 26
    NTRKOFS = 27
    TRKBANK = 30
    NTRACK = 36
    NSYSEX = 44
    NSTREAM = 45
    SGMNT = 49
    SOFTVER = 74
    END = 255


def chunk_name(kind: int) -> str:
    try:
        return ChunkType(kind).name
    except ValueError:
        return f"UNKNOWN_{kind}"


DECODERS: Mapping[int, RecordDecoder] = {
    ChunkType.TRACK: records.decode_track,
    ChunkType.STREAM: records.decode_stream,
    ChunkType.VARS: records.decode_global_vars,
    ChunkType.TEMPO: records.decode_tempo,
    ChunkType.METER: records.decode_meter,
    ChunkType.SYSEX: records.decode_sysex,
    ChunkType.COMMENTS: records.decode_comments,
    ChunkType.TRKOFFS: records.decode_track_offset,
    ChunkType.TIMEBASE: records.decode_timebase,
    ChunkType.TIMEFMT: records.decode_time_format,
    ChunkType.TRKREPS: records.decode_track_reps,
    ChunkType.TRKPATCH: records.decode_track_patch,
    ChunkType.NTEMPO: records.decode_new_tempo,
    ChunkType.THRU: records.decode_thru,
    ChunkType.LYRICS: records.decode_lyrics,
    ChunkType.TRKVOL: records.decode_track_volume,
    ChunkType.SYSEX2: records.decode_sysex2,
    ChunkType.MARKERS: records.decode_markers,
    ChunkType.STRTAB: records.decode_string_table,
    ChunkType.METERKEY: records.decode_meter_key,
    ChunkType.TRKNAME: records.decode_track_name,
    ChunkType.VARIABLE: records.decode_variable_record,
    ChunkType.NTRKOFS: records.decode_new_track_offset,
    ChunkType.TRKBANK: records.decode_track_bank,
    ChunkType.NTRACK: records.decode_new_track,
    ChunkType.NSYSEX: records.decode_new_sysex,
    ChunkType.NSTREAM: records.decode_new_stream,
    ChunkType.SGMNT: records.decode_segment,
    ChunkType.SOFTVER: records.decode_software_version,
}


def decode_unknown(ctx: DecodeContext) -> None:
    ctx.emit(UnknownChunk(ctx.chunk_kind, ctx.last_chunk_data))


@dataclass(frozen=True)
class Terminated:
    pass


@dataclass(frozen=True)
class Decoded:
    kind: int


@dataclass(frozen=True)
class DecodeFailed:
    kind: int


ChunkResult = Union[Terminated, Decoded, DecodeFailed]


class ChunkDispatcher:
    """Reads chunks from ``ctx.reader`` and decodes them into ``ctx.sink``.

    ``decoders`` entries override or extend :data:`DECODERS`; map a kind to
    ``None`` to force it through the unknown-chunk path.
    """

    def __init__(
        self,
        ctx: DecodeContext,
        decoders: Mapping[int, RecordDecoder | None] | None = None,
    ) -> None:
        self.ctx = ctx
        self.decoders: Dict[int, RecordDecoder | None] = dict(DECODERS)
        if decoders:
            self.decoders.update(decoders)

    def read_next_chunk(self, sink: EventSink | None = None) -> ChunkResult:
        ctx = self.ctx
        if sink is not None:
            ctx.sink = sink
        r = ctx.reader

        r.clear_exhausted()
        kind = r.read_byte()
        if kind == ChunkType.END:
            return Terminated()

        length = r.read_32()
        start = r.position()
        ctx.begin_chunk(kind, start, length)
        logger.debug("chunk %s (%d) length %d at offset %d", chunk_name(kind), kind, length, start)

        if r.exhausted:
            ctx.diagnose(
                DiagnosticKind.TRUNCATED_STREAM,
                f"stream ended inside the header of chunk {chunk_name(kind)}",
                offset=start,
            )
            return DecodeFailed(kind)

        ctx.last_chunk_data = r.read_bytes(length)
        short = r.exhausted
        r.clear_exhausted()
        r.seek(start)

        decoder = self.decoders.get(kind) or decode_unknown
        try:
            decoder(ctx)
        except TruncatedStreamError as exc:
            ctx.diagnose(
                DiagnosticKind.TRUNCATED_STREAM, str(exc), offset=exc.offset, data=exc.data
            )
            return DecodeFailed(kind)
        except MalformedRecordError as exc:
            ctx.diagnose(
                DiagnosticKind.MALFORMED_RECORD,
                str(exc),
                offset=exc.offset if exc.offset is not None else start,
            )
            return DecodeFailed(kind)
        finally:
            self._realign(start + length)

        if short or r.exhausted:
            ctx.diagnose(
                DiagnosticKind.TRUNCATED_STREAM,
                f"chunk {chunk_name(kind)} declares {length} bytes but only "
                f"{len(ctx.last_chunk_data)} remain",
                offset=start,
            )
            return DecodeFailed(kind)
        return Decoded(kind)

    def _realign(self, end: int) -> None:
        r = self.ctx.reader
        consumed = r.position() - self.ctx.chunk_start
        if consumed != self.ctx.chunk_length:
            logger.debug(
                "realigning after chunk %s: decoder read %d of %d bytes",
                chunk_name(self.ctx.chunk_kind),
                consumed,
                self.ctx.chunk_length,
            )
        r.seek(end)
