"""Running decoder state shared by the chunk dispatcher and record decoders."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict

from .errors import DiagnosticKind
from .events import Diagnostic, GlobalVars, Track, WrkEvent
from .primitives import PrimitiveReader
from .tempo import TempoMap

logger = logging.getLogger(__name__)

EventSink = Callable[[WrkEvent], None]


@dataclass
class DecodeContext:
    reader: PrimitiveReader
    sink: EventSink
    tempo_map: TempoMap = field(default_factory=TempoMap)
    tracks: Dict[int, Track] = field(default_factory=dict)
    global_vars: GlobalVars = field(default_factory=GlobalVars)
    last_chunk_data: bytes = b""
    chunk_kind: int | None = None
    chunk_start: int = 0
    chunk_length: int = 0

    @property
    def division(self) -> int:
        return self.tempo_map.division

    @division.setter
    def division(self, value: int) -> None:
        self.tempo_map.division = value

    @property
    def chunk_end(self) -> int:
        return self.chunk_start + self.chunk_length

    def begin_chunk(self, kind: int, start: int, length: int) -> None:
        self.chunk_kind = kind
        self.chunk_start = start
        self.chunk_length = length

    def emit(self, event: WrkEvent) -> None:
        self.sink(event)

    def diagnose(
        self,
        diagnostic: DiagnosticKind,
        message: str,
        *,
        offset: int | None = None,
        data: bytes = b"",
    ) -> None:
        logger.warning("%s at offset %s: %s", diagnostic.value, offset, message)
        self.emit(
            Diagnostic(
                diagnostic=diagnostic,
                message=message,
                offset=offset,
                chunk_kind=self.chunk_kind,
                data=data,
            )
        )
