"""Top-level WRK reader.

Typical use::

    from wrk import WrkReader

    reader = WrkReader()
    for event in reader.iter_events("song.wrk"):
        ...
    seconds = reader.real_time(960)

or with a listener callback::

    reader.read("song.wrk", sink=print)

Decoding problems other than a bad file signature never raise; they show up
in the event stream as :class:`~wrk.events.Diagnostic` events.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Mapping, Union

from .chunks import ChunkDispatcher, Terminated
from .codec import TextDecoder, text_decoder_for
from .context import DecodeContext, EventSink
from .errors import DiagnosticKind, StructuralError
from .events import EndOfFile, GlobalVars, Header, Track, WrkEvent
from .primitives import PrimitiveReader
from .records import RecordDecoder
from .tempo import DEFAULT_DIVISION, TempoMap

logger = logging.getLogger(__name__)

MAGIC = b"CAKEWALK"
HEADER_SIZE = 11  # magic, reserved byte, minor, major

Source = Union[str, os.PathLike, bytes, bytearray, BinaryIO]


class WrkReader:
    """Stateful WRK decoder.

    One instance reads one file at a time; every read starts with
    :meth:`reset`, so an instance may be reused for several files in turn
    but not from several threads at once.
    """

    def __init__(
        self,
        text_decoder: TextDecoder | None = None,
        decoders: Mapping[int, RecordDecoder | None] | None = None,
    ) -> None:
        self.text_decoder = text_decoder or text_decoder_for(None)
        self.decoders = decoders
        self.version: tuple[int, int] | None = None
        self._ctx: DecodeContext | None = None
        self.reset()

    def reset(self) -> None:
        self.version = None
        self._ctx = None
        self._tempo_map = TempoMap(DEFAULT_DIVISION)

    # ── state of the last read ────────────────────────────────────────

    @property
    def tempo_map(self) -> TempoMap:
        return self._ctx.tempo_map if self._ctx else self._tempo_map

    @property
    def division(self) -> int:
        return self.tempo_map.division

    @property
    def global_vars(self) -> GlobalVars:
        return self._ctx.global_vars if self._ctx else GlobalVars()

    @property
    def tracks(self) -> Dict[int, Track]:
        return dict(self._ctx.tracks) if self._ctx else {}

    @property
    def last_chunk_data(self) -> bytes:
        return self._ctx.last_chunk_data if self._ctx else b""

    @property
    def position(self) -> int:
        return self._ctx.reader.position() if self._ctx else 0

    def real_time(self, tick: int) -> float:
        """Seconds from the start of the song to ``tick``."""
        return self.tempo_map.ticks_to_seconds(tick)

    # ── reading ───────────────────────────────────────────────────────

    @contextlib.contextmanager
    def _open(self, source: Source) -> Iterator[BinaryIO]:
        if isinstance(source, (bytes, bytearray)):
            yield io.BytesIO(bytes(source))
        elif isinstance(source, (str, os.PathLike)):
            with Path(source).open("rb") as fh:
                yield fh
        else:
            yield source

    def iter_events(self, source: Source) -> Iterator[WrkEvent]:
        """Decode ``source`` lazily, one chunk at a time.

        ``source`` is a path, a bytes object or a readable, seekable binary
        stream (which is left open).  Raises :class:`StructuralError` before
        yielding anything if the file signature is wrong.
        """
        self.reset()
        pending: List[WrkEvent] = []
        with self._open(source) as stream:
            reader = PrimitiveReader(stream, self.text_decoder)
            ctx = DecodeContext(reader=reader, sink=pending.append, tempo_map=self._tempo_map)
            self._ctx = ctx
            self._read_header(ctx)
            dispatcher = ChunkDispatcher(ctx, self.decoders)

            while True:
                yield from pending
                pending.clear()
                if reader.at_end():
                    ctx.chunk_kind = None
                    ctx.diagnose(
                        DiagnosticKind.MISSING_END,
                        "stream ended before the end chunk",
                        offset=reader.position(),
                    )
                    break
                if isinstance(dispatcher.read_next_chunk(), Terminated):
                    break

            ctx.chunk_kind = None
            if reader.at_end():
                ctx.emit(EndOfFile())
            else:
                ctx.diagnose(
                    DiagnosticKind.CORRUPTED_TRAILER,
                    f"{reader.size - reader.position()} bytes follow the end chunk",
                    offset=reader.position(),
                )
            yield from pending
            pending.clear()

    def _read_header(self, ctx: DecodeContext) -> None:
        r = ctx.reader
        magic = r.read_bytes(len(MAGIC))
        if magic != MAGIC:
            raise StructuralError(f"bad magic: {magic!r}")
        r.skip(1)
        minor = r.read_byte()
        major = r.read_byte()
        if r.exhausted:
            ctx.diagnose(
                DiagnosticKind.TRUNCATED_STREAM,
                "stream ended inside the file header",
                offset=r.position(),
            )
        self.version = (major, minor)
        logger.debug("WRK file version %d.%d", major, minor)
        ctx.emit(Header(major, minor))

    def read(self, source: Source, sink: EventSink) -> None:
        """Decode ``source`` and deliver every event to ``sink`` in order."""
        for event in self.iter_events(source):
            sink(event)

    def read_bytes(self, data: bytes, sink: EventSink) -> None:
        self.read(bytes(data), sink)

    def events(self, source: Source) -> List[WrkEvent]:
        return list(self.iter_events(source))


def read_wrk(
    source: Source,
    *,
    text_decoder: TextDecoder | None = None,
    encoding: str | None = None,
) -> List[WrkEvent]:
    """Decode a whole file and return its events."""

    if text_decoder is None:
        text_decoder = text_decoder_for(encoding)
    return WrkReader(text_decoder=text_decoder).events(source)
