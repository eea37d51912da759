"""Text decoding strategies for strings embedded in WRK chunks.

Cakewalk wrote strings in the Windows ANSI codepage of the machine that saved
the file.  Western European files are by far the most common, so cp1252 is
the default.
"""

from __future__ import annotations

import codecs
from typing import Protocol


DEFAULT_ENCODING = "cp1252"


class TextDecoder(Protocol):
    def decode(self, data: bytes) -> str:
        ...


class CodecTextDecoder:
    """Decode through one of Python's registered codecs."""

    def __init__(self, encoding: str = DEFAULT_ENCODING, errors: str = "replace") -> None:
        self.encoding = codecs.lookup(encoding).name
        self.errors = errors

    def decode(self, data: bytes) -> str:
        return bytes(data).decode(self.encoding, self.errors)

    def __repr__(self) -> str:
        return f"CodecTextDecoder({self.encoding!r}, errors={self.errors!r})"


def text_decoder_for(encoding: str | None) -> TextDecoder:
    """Return a decoder for ``encoding`` (``None`` selects the default)."""

    return CodecTextDecoder(encoding or DEFAULT_ENCODING)
