"""Fixed-width field access over a seekable WRK byte source.

All multi-byte integers in a WRK file are little-endian.  Reads never fail
at end of stream: every missing byte of an integer field reads as ``0xFF``
and byte/string reads come back short.  The first such read sets the sticky
:attr:`PrimitiveReader.exhausted` flag, which is how the layers above notice
truncation.
"""

from __future__ import annotations

import io
import os
from typing import BinaryIO

from .codec import TextDecoder, text_decoder_for

EOF_BYTE = 0xFF


class PrimitiveReader:
    def __init__(self, stream: BinaryIO, text_decoder: TextDecoder | None = None) -> None:
        self.stream = stream
        self.text_decoder = text_decoder or text_decoder_for(None)
        self.exhausted = False
        here = stream.tell()
        self.size = stream.seek(0, os.SEEK_END)
        stream.seek(here)

    @classmethod
    def from_bytes(
        cls, data: bytes, text_decoder: TextDecoder | None = None
    ) -> "PrimitiveReader":
        return cls(io.BytesIO(data), text_decoder)

    # ── position ──────────────────────────────────────────────────────

    def position(self) -> int:
        return self.stream.tell()

    def seek(self, pos: int) -> None:
        self.stream.seek(pos)

    def skip(self, count: int) -> None:
        """Jump ``count`` bytes forward; non-positive counts are ignored.

        Jumping past the end of the stream sets :attr:`exhausted` like a read.
        """
        if count > 0:
            target = self.stream.tell() + count
            if target > self.size:
                self.exhausted = True
            self.stream.seek(target)

    def at_end(self) -> bool:
        return self.stream.tell() >= self.size

    def clear_exhausted(self) -> None:
        self.exhausted = False

    # ── integers ──────────────────────────────────────────────────────

    def _read_int(self, width: int) -> int:
        data = self.stream.read(width)
        if len(data) < width:
            self.exhausted = True
            data = data + bytes([EOF_BYTE]) * (width - len(data))
        return int.from_bytes(data, "little")

    def read_byte(self) -> int:
        return self._read_int(1)

    def read_s8(self) -> int:
        value = self._read_int(1)
        return value - 0x100 if value & 0x80 else value

    def read_16(self) -> int:
        return self._read_int(2)

    def read_s16(self) -> int:
        value = self._read_int(2)
        return value - 0x10000 if value & 0x8000 else value

    def read_24(self) -> int:
        return self._read_int(3)

    def read_32(self) -> int:
        return self._read_int(4)

    def peek_byte(self) -> int | None:
        """Return the next byte without consuming it, or ``None`` at EOF."""
        here = self.stream.tell()
        data = self.stream.read(1)
        self.stream.seek(here)
        return data[0] if data else None

    # ── byte spans and strings ────────────────────────────────────────

    def read_bytes(self, count: int) -> bytes:
        """Read up to ``count`` raw bytes; short only at end of stream."""
        if count <= 0:
            return b""
        data = self.stream.read(count)
        if len(data) < count:
            self.exhausted = True
        return data

    def read_fixed_bytes(self, length: int) -> bytes:
        """Read a NUL-padded field of at most ``length`` bytes.

        Reading stops after the first NUL, which is consumed but not
        returned.  Whatever follows it inside the field is left unread.
        """
        out = bytearray()
        for _ in range(max(length, 0)):
            b = self.stream.read(1)
            if not b:
                self.exhausted = True
                break
            if b == b"\x00":
                break
            out += b
        return bytes(out)

    def read_nul_bytes(self) -> bytes:
        """Read a C string, consuming its terminating NUL."""
        out = bytearray()
        while True:
            b = self.stream.read(1)
            if not b:
                self.exhausted = True
                break
            if b == b"\x00":
                break
            out += b
        return bytes(out)

    def decode_text(self, data: bytes) -> str:
        return self.text_decoder.decode(data)

    def read_fixed_string(self, length: int) -> str:
        return self.decode_text(self.read_fixed_bytes(length))

    def read_nul_string(self) -> str:
        return self.decode_text(self.read_nul_bytes())

    def span(self, start: int, end: int) -> bytes:
        """Return bytes ``[start, end)`` without moving the read position."""
        here = self.stream.tell()
        self.stream.seek(start)
        data = self.stream.read(max(end - start, 0))
        self.stream.seek(here)
        return data
