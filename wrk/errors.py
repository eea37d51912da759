"""Exceptions and diagnostic kinds for the WRK decoder.

Only :class:`StructuralError` ever escapes a read.  The other two are raised
inside record decoders and turned into :class:`~wrk.events.Diagnostic`
events by the chunk dispatcher.
"""

from __future__ import annotations

import enum


class WrkError(Exception):
    """Base class for every error raised by this package."""


class StructuralError(WrkError, ValueError):
    """The byte source is not a WRK file (bad magic)."""


class MalformedRecordError(WrkError, ValueError):
    """A record carried a field value the decoder cannot make sense of."""

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset


class TruncatedStreamError(WrkError, EOFError):
    """End of stream was reached in the middle of a chunk or record."""

    def __init__(
        self, message: str, *, offset: int | None = None, data: bytes = b""
    ) -> None:
        super().__init__(message)
        self.offset = offset
        self.data = data


class DiagnosticKind(enum.Enum):
    MALFORMED_RECORD = "malformed-record"
    TRUNCATED_STREAM = "truncated-stream"
    CORRUPTED_TRAILER = "corrupted-trailer"
    MISSING_END = "missing-end"
