from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from wrk.codec import CodecTextDecoder, text_decoder_for  # noqa: E402
from wrk.primitives import PrimitiveReader  # noqa: E402


def test_integers_are_little_endian() -> None:
    r = PrimitiveReader.from_bytes(bytes([0x34, 0x12, 0x56, 0x34, 0x12, 0x78, 0x56, 0x34, 0x12]))
    assert r.read_16() == 0x1234
    assert r.read_24() == 0x123456
    assert r.read_32() == 0x12345678
    assert r.at_end()
    assert not r.exhausted


def test_signed_reads() -> None:
    r = PrimitiveReader.from_bytes(b"\xff\x7f\xfe\xff\x00\x80")
    assert r.read_s8() == -1
    assert r.read_s8() == 127
    assert r.read_s16() == -2
    assert r.read_s16() == -32768


def test_reads_past_end_yield_ff_and_set_exhausted() -> None:
    r = PrimitiveReader.from_bytes(b"\x01")
    assert r.read_16() == 0xFF01
    assert r.exhausted
    assert r.read_byte() == 0xFF
    assert r.read_32() == 0xFFFFFFFF


def test_exhausted_flag_is_sticky_until_cleared() -> None:
    r = PrimitiveReader.from_bytes(b"")
    r.read_byte()
    r.seek(0)
    assert r.exhausted
    r.clear_exhausted()
    assert not r.exhausted


def test_read_bytes_comes_back_short_at_end() -> None:
    r = PrimitiveReader.from_bytes(b"abc")
    assert r.read_bytes(0) == b""
    assert r.read_bytes(2) == b"ab"
    assert not r.exhausted
    assert r.read_bytes(5) == b"c"
    assert r.exhausted


def test_fixed_string_stops_at_nul_and_leaves_rest() -> None:
    r = PrimitiveReader.from_bytes(b"ab\x00cdXY")
    assert r.read_fixed_string(5) == "ab"
    assert r.position() == 3
    assert r.read_fixed_string(2) == "cd"
    assert r.read_fixed_string(0) == ""
    assert r.position() == 5


def test_fixed_string_at_end_of_stream() -> None:
    r = PrimitiveReader.from_bytes(b"ab")
    assert r.read_fixed_string(4) == "ab"
    assert r.exhausted


def test_nul_string() -> None:
    r = PrimitiveReader.from_bytes(b"Title\x00rest")
    assert r.read_nul_string() == "Title"
    assert r.position() == 6


def test_nul_string_without_terminator_stops_at_end() -> None:
    r = PrimitiveReader.from_bytes(b"abc")
    assert r.read_nul_string() == "abc"
    assert r.exhausted


def test_default_codepage_is_western() -> None:
    r = PrimitiveReader.from_bytes(b"caf\xe9 \x80")
    assert r.read_fixed_string(6) == "café €"


def test_custom_text_decoder() -> None:
    r = PrimitiveReader.from_bytes(b"\xcf\xf0\xe8", text_decoder=CodecTextDecoder("cp1251"))
    assert r.read_fixed_string(3) == "При"


def test_unknown_codec_name_is_rejected() -> None:
    with pytest.raises(LookupError):
        text_decoder_for("no-such-codec")


def test_skip_seek_and_span() -> None:
    r = PrimitiveReader.from_bytes(bytes(range(10)))
    r.skip(3)
    assert r.position() == 3
    r.skip(-2)
    assert r.position() == 3
    assert r.span(1, 4) == b"\x01\x02\x03"
    assert r.position() == 3
    assert r.peek_byte() == 3
    assert r.position() == 3
    r.seek(10)
    assert r.at_end()
    assert r.peek_byte() is None


def test_skip_past_end_sets_exhausted() -> None:
    r = PrimitiveReader.from_bytes(b"\x01\x02\x03")
    r.skip(3)
    assert not r.exhausted
    r.skip(1)
    assert r.exhausted
    assert r.at_end()
