"""Decoding of the individual chunk kinds."""

from __future__ import annotations

from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from wrk.codec import CodecTextDecoder  # noqa: E402
from wrk.errors import DiagnosticKind  # noqa: E402
from wrk.events import (  # noqa: E402
    Comments,
    Diagnostic,
    GlobalVars,
    KeySignature,
    Marker,
    ProgramChange,
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
from wrk.reader import WrkReader  # noqa: E402

from wrkbuild import (  # noqa: E402
    chunk,
    meter_chunk,
    meter_key_chunk,
    new_track_chunk,
    pstr,
    tempo_chunk,
    text,
    timebase_chunk,
    track_chunk,
    u8,
    u16,
    u24,
    u32,
    wrk_file,
)


def _body_events(*chunks: bytes, reader: WrkReader | None = None):
    reader = reader or WrkReader()
    return reader.events(wrk_file(*chunks))[1:-1]


# ── meter and key ─────────────────────────────────────────────────────


def test_meter_denominator_is_power_of_two():
    events = _body_events(meter_chunk([(0, 3, 2), (8, 6, 3)]))
    assert events == [TimeSignature(0, 3, 4), TimeSignature(8, 6, 8)]


def test_meter_denominator_out_of_range_is_reported():
    events = _body_events(meter_chunk([(0, 4, 9)]))
    assert isinstance(events[0], Diagnostic)
    assert events[0].diagnostic is DiagnosticKind.MALFORMED_RECORD
    assert events[1] == TimeSignature(0, 4, 512)


def test_meter_key_emits_both_signatures():
    events = _body_events(meter_key_chunk([(0, 4, 2, -3), (16, 2, 1, 2)]))
    assert events == [
        TimeSignature(0, 4, 4),
        KeySignature(0, -3),
        TimeSignature(16, 2, 2),
        KeySignature(16, 2),
    ]


# ── timing ────────────────────────────────────────────────────────────


def test_timebase_sets_division_for_tempo_map():
    reader = WrkReader()
    events = _body_events(
        timebase_chunk(480), tempo_chunk([(0, 120), (1920, 60)]), reader=reader
    )
    assert events[0] == TimeBase(480)
    assert reader.division == 480
    tempos = [e for e in events if isinstance(e, Tempo)]
    assert [(t.tick, t.bpm, t.raw) for t in tempos] == [(0, 120.0, 12000), (1920, 60.0, 6000)]
    assert tempos[1].point.seconds == pytest.approx(2.0)
    assert reader.real_time(2400) == pytest.approx(3.0)


def test_default_division_is_120():
    reader = WrkReader()
    _body_events(tempo_chunk([(0, 120)]), reader=reader)
    assert reader.division == 120
    assert reader.real_time(240) == pytest.approx(1.0)


def test_new_tempo_chunk_is_unscaled():
    events = _body_events(tempo_chunk([(0, 9050)], kind=15))
    assert events[0].bpm == pytest.approx(90.5)
    assert events[0].raw == 9050


def test_zero_tempo_is_skipped():
    reader = WrkReader()
    events = _body_events(tempo_chunk([(0, 0), (0, 100)]), reader=reader)
    assert events[0].diagnostic is DiagnosticKind.MALFORMED_RECORD
    assert events[1].bpm == 100.0
    assert len(reader.tempo_map) == 1


def test_zero_timebase_is_ignored():
    reader = WrkReader()
    events = _body_events(timebase_chunk(0), reader=reader)
    assert isinstance(events[0], Diagnostic)
    assert reader.division == 120


def test_time_format():
    assert _body_events(chunk(11, u16(25) + u16(3))) == [TimeFormat(25, 3)]


def test_markers():
    payload = (
        u32(2)
        + u8(0) + b"\x00" + u24(960) + b"\x00" * 5 + pstr("Intro")
        + u8(1) + b"\x00" + u24(3840) + b"\x00" * 5 + pstr("Chorus")
    )
    assert _body_events(chunk(21, payload)) == [Marker(960, 0, "Intro"), Marker(3840, 1, "Chorus")]


# ── tracks ────────────────────────────────────────────────────────────


def test_legacy_track_header():
    reader = WrkReader()
    events = _body_events(
        track_chunk(3, "Piano", "Left hand", channel=2, pitch=12, velocity=5, port=1, flags=0b101),
        reader=reader,
    )
    track = events[0]
    assert track == Track(
        number=3,
        names=("Piano", "Left hand"),
        channel=2,
        base_pitch=12,
        base_velocity=5,
        port=1,
        selected=True,
        muted=False,
        loop=True,
        legacy=True,
    )
    assert track.name == "Piano"
    assert reader.tracks[3] == track


def test_legacy_track_any_channel_is_negative():
    events = _body_events(track_chunk(1, "", "Drums", channel=-1))
    assert events[0].channel == -1
    assert events[0].name == "Drums"


def test_new_track_with_channel_emits_program_change():
    events = _body_events(new_track_chunk(4, "Strings", bank=2, patch=48, volume=100, channel=3))
    track = events[0]
    assert isinstance(track, Track)
    assert not track.legacy
    assert track.names == ("Strings",)
    assert (track.bank, track.patch, track.volume, track.pan) == (2, 48, 100, -1)
    assert events[1:] == [TrackBank(4, 2), ProgramChange(4, 0, 3, 48)]


def test_new_track_without_channel_emits_track_patch():
    events = _body_events(new_track_chunk(5, "Pad", patch=88, channel=-1, muted=True))
    assert events[0].muted
    assert events[1:] == [TrackPatch(5, 88)]


def test_new_track_without_bank_or_patch():
    events = _body_events(new_track_chunk(6, "Click"))
    assert len(events) == 1


@pytest.mark.parametrize(
    "kind, payload, expected",
    [
        (24, u16(2) + pstr("Lead"), TrackName(2, "Lead")),
        (9, u16(2) + u16(-30), TrackOffset(2, -30)),
        (27, u16(2) + u32(100000), TrackOffset(2, 100000)),
        (12, u16(7) + u16(4), TrackReps(7, 4)),
        (14, u16(7) + u8(-1), TrackPatch(7, -1)),
        (30, u16(7) + u16(129), TrackBank(7, 129)),
        (19, u16(7) + u16(101), TrackVolume(7, 101)),
    ],
)
def test_small_track_records(kind, payload, expected):
    assert _body_events(chunk(kind, payload)) == [expected]


# ── sysex ─────────────────────────────────────────────────────────────


def test_sysex_bank():
    data = b"\xf0\x41\x10\x42\xf7"
    payload = u8(3) + u16(len(data)) + u8(1) + pstr("GS Reset") + data
    assert _body_events(chunk(6, payload)) == [SysexBank(3, "GS Reset", True, 0, data)]


def test_sysex2_bank_packs_port_and_autosend():
    data = b"\xf0\x7e\x7f\x09\x01\xf7"
    payload = u16(300) + u32(len(data)) + u8(0x20) + pstr("GM On") + data
    assert _body_events(chunk(20, payload)) == [SysexBank(300, "GM On", False, 2, data)]


def test_new_sysex_bank():
    data = b"\xf0\x43\x10\x4c\x00\x00\x7e\x00\xf7"
    payload = u16(12) + u32(len(data)) + u16(5) + u8(1) + pstr("XG On") + data
    assert _body_events(chunk(44, payload)) == [SysexBank(12, "XG On", True, 5, data)]


# ── document settings ─────────────────────────────────────────────────


def _vars_payload() -> bytes:
    return (
        u32(10) + u32(20) + u32(30)
        + u8(2) + u8(1) + u8(15) + u8(4)
        + b"\x00"
        + u8(1) + u8(0) + u8(0) + u8(1) + u8(1)
        + u32(5000)
        + u8(1) + u32(250)
        + u8(1) + u8(0) + u8(1) + u8(2)
        + b"\x00" * 2
        + u8(0)
        + b"\x00" * 19
        + u8(1) + u8(2) + u8(16) + u8(48) + u8(96)
        + b"\x00" * 2
        + u8(1) + u32(100) + u32(200) + u32(300)
    )


def test_global_vars():
    reader = WrkReader()
    events = _body_events(chunk(3, _vars_payload()), reader=reader)
    expected = GlobalVars(
        now=10, from_marker=20, thru_marker=30,
        key_sig=2, clock=1, auto_save=15, play_delay=4,
        zero_ctrls=True, send_spp=False, send_cont=False, patch_search=True, auto_stop=True,
        stop_time=5000, auto_rewind=True, rewind_time=250,
        metro_play=True, metro_record=False, metro_accent=True, count_in=2,
        thru_on=False, auto_restart=True,
        cur_tempo_ofs=2, tempo_ofs1=16, tempo_ofs2=48, tempo_ofs3=96,
        punch_enabled=True, punch_in_time=100, punch_out_time=200, end_all_time=300,
    )
    assert events == [expected]
    assert reader.global_vars == expected
    assert expected.tempo_offset_ratio(1) == 0.25


def test_global_vars_defaults():
    gv = GlobalVars()
    assert gv.thru_marker == 11930
    assert gv.stop_time == 0xFFFFFFFF
    assert gv.tempo_offset_ratio(3) == 2.0
    with pytest.raises(ValueError, match="1-3"):
        gv.tempo_offset_ratio(4)


def test_thru():
    payload = b"\x00\x00" + bytes([1, 0xFF, 12, 0xF6, 2, 1])
    assert _body_events(chunk(16, payload)) == [Thru(1, 1, -1, 12, -10, 2)]


def test_comments_and_software_version():
    comment = "Recorded live\r\n"
    events = _body_events(
        chunk(8, u16(len(comment)) + text(comment)),
        chunk(74, pstr("Cakewalk Pro Audio 9")),
    )
    assert events == [Comments(comment), SoftwareVersion("Cakewalk Pro Audio 9")]


def test_variable_record():
    name = b"Title"
    payload = name + b"\x00" + b"\x00" * (31 - len(name)) + b"My Song\x00\x00"
    events = _body_events(chunk(26, payload))
    record = events[0]
    assert record == VariableRecord("Title", b"My Song\x00\x00")
    assert record.is_text
    assert record.text(CodecTextDecoder()) == "My Song"


def test_binary_variable_record():
    payload = b"Fonts" + b"\x00" * 27 + b"\x01\x02"
    record = _body_events(chunk(26, payload))[0]
    assert record.data == b"\x01\x02"
    assert not record.is_text


def test_string_table_is_ordered_by_index():
    payload = u16(3) + pstr("Lyric") + u8(2) + pstr("Text") + u8(0) + pstr("Cue") + u8(1)
    assert _body_events(chunk(22, payload)) == [StringTable(("Text", "Cue", "Lyric"))]


def test_strings_use_configured_codepage():
    reader = WrkReader(text_decoder=CodecTextDecoder("cp1251"))
    payload = u16(1) + u8(3) + b"\xc1\xe0\xf1"
    events = _body_events(chunk(24, payload), reader=reader)
    assert events == [TrackName(1, "Бас")]


def test_variable_record_name_gap_counts_bytes():
    reader = WrkReader(text_decoder=CodecTextDecoder("utf-8"))
    name = "Café".encode("utf-8")
    payload = name + b"\x00" * (32 - len(name)) + b"\x07\x08"
    record = _body_events(chunk(26, payload), reader=reader)[0]
    assert record == VariableRecord("Café", b"\x07\x08")
