"""Decoded WRK records.

Every record the reader produces is one of the frozen dataclasses below.
Each class carries a ``kind`` tag so consumers can dispatch on a plain
string (``event.kind == "note"``) or on the class itself.

Ticks are absolute positions in the file's timebase (see :class:`TimeBase`).
Channel numbers are 0-based, as stored on disk.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Dict, Tuple

from .codec import TextDecoder
from .errors import DiagnosticKind
from .tempo import TempoPoint


@dataclass(frozen=True)
class WrkEvent:
    kind: ClassVar[str] = "event"


# ── file framing ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Header(WrkEvent):
    kind: ClassVar[str] = "header"

    major: int
    minor: int

    @property
    def version(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class EndOfFile(WrkEvent):
    kind: ClassVar[str] = "end"


@dataclass(frozen=True)
class UnknownChunk(WrkEvent):
    """A chunk with no registered decoder, passed through untouched."""

    kind: ClassVar[str] = "unknown-chunk"

    chunk_kind: int
    data: bytes


@dataclass(frozen=True)
class Diagnostic(WrkEvent):
    """A non-fatal problem found while decoding.

    ``data`` holds whatever raw bytes were consumed for the record that
    could not be completed, if any.
    """

    kind: ClassVar[str] = "diagnostic"

    diagnostic: DiagnosticKind
    message: str
    offset: int | None = None
    chunk_kind: int | None = None
    data: bytes = b""


# ── channel voice records (note arrays) ──────────────────────────────


@dataclass(frozen=True)
class Note(WrkEvent):
    kind: ClassVar[str] = "note"

    track: int
    tick: int
    channel: int
    pitch: int
    velocity: int
    duration: int


@dataclass(frozen=True)
class KeyPressure(WrkEvent):
    kind: ClassVar[str] = "key-pressure"

    track: int
    tick: int
    channel: int
    pitch: int
    pressure: int


@dataclass(frozen=True)
class ControlChange(WrkEvent):
    kind: ClassVar[str] = "control-change"

    track: int
    tick: int
    channel: int
    controller: int
    value: int


@dataclass(frozen=True)
class ProgramChange(WrkEvent):
    kind: ClassVar[str] = "program-change"

    track: int
    tick: int
    channel: int
    patch: int


@dataclass(frozen=True)
class ChannelPressure(WrkEvent):
    kind: ClassVar[str] = "channel-pressure"

    track: int
    tick: int
    channel: int
    pressure: int


@dataclass(frozen=True)
class PitchBend(WrkEvent):
    """Pitch wheel position, -8192..8191 with 0 at center."""

    kind: ClassVar[str] = "pitch-bend"

    track: int
    tick: int
    channel: int
    value: int


@dataclass(frozen=True)
class SysexRef(WrkEvent):
    """Send the :class:`SysexBank` numbered ``bank`` at this position."""

    kind: ClassVar[str] = "sysex-ref"

    track: int
    tick: int
    bank: int


# ── notation records (note arrays) ────────────────────────────────────


@dataclass(frozen=True)
class Text(WrkEvent):
    """Free text; ``text_type`` is the raw record status byte."""

    kind: ClassVar[str] = "text"

    track: int
    tick: int
    text_type: int
    text: str


@dataclass(frozen=True)
class Expression(WrkEvent):
    kind: ClassVar[str] = "expression"

    track: int
    tick: int
    code: int
    text: str


@dataclass(frozen=True)
class Hairpin(WrkEvent):
    kind: ClassVar[str] = "hairpin"

    track: int
    tick: int
    code: int
    duration: int


@dataclass(frozen=True)
class Chord(WrkEvent):
    kind: ClassVar[str] = "chord"

    track: int
    tick: int
    name: str
    diagram: bytes


@dataclass(frozen=True)
class StreamEnd(WrkEvent):
    """Extent of a note array: last record tick plus its duration."""

    kind: ClassVar[str] = "stream-end"

    track: int
    tick: int


# ── track metadata ────────────────────────────────────────────────────


@dataclass(frozen=True)
class Track(WrkEvent):
    """Track header.

    Legacy track chunks carry two names; newer ones carry one name plus
    bank/patch/volume/pan (-1 when unset).  ``channel`` is -1 when the track
    plays on whatever channel its events carry.
    """

    kind: ClassVar[str] = "track"

    number: int
    names: Tuple[str, ...]
    channel: int
    base_pitch: int
    base_velocity: int
    port: int
    selected: bool = False
    muted: bool = False
    loop: bool = False
    legacy: bool = True
    bank: int = -1
    patch: int = -1
    volume: int = -1
    pan: int = -1

    @property
    def name(self) -> str:
        return next((n for n in self.names if n), "")


@dataclass(frozen=True)
class TrackName(WrkEvent):
    kind: ClassVar[str] = "track-name"

    track: int
    name: str


@dataclass(frozen=True)
class TrackOffset(WrkEvent):
    kind: ClassVar[str] = "track-offset"

    track: int
    offset: int


@dataclass(frozen=True)
class TrackReps(WrkEvent):
    kind: ClassVar[str] = "track-reps"

    track: int
    reps: int


@dataclass(frozen=True)
class TrackPatch(WrkEvent):
    kind: ClassVar[str] = "track-patch"

    track: int
    patch: int


@dataclass(frozen=True)
class TrackBank(WrkEvent):
    kind: ClassVar[str] = "track-bank"

    track: int
    bank: int


@dataclass(frozen=True)
class TrackVolume(WrkEvent):
    kind: ClassVar[str] = "track-volume"

    track: int
    volume: int


@dataclass(frozen=True)
class Segment(WrkEvent):
    kind: ClassVar[str] = "segment"

    track: int
    tick: int
    name: str


# ── document level ────────────────────────────────────────────────────


@dataclass(frozen=True)
class TimeBase(WrkEvent):
    kind: ClassVar[str] = "timebase"

    division: int


@dataclass(frozen=True)
class Tempo(WrkEvent):
    """One tempo change.  ``raw`` is the scaled value (bpm * 100)."""

    kind: ClassVar[str] = "tempo"

    point: TempoPoint
    raw: int

    @property
    def tick(self) -> int:
        return self.point.tick

    @property
    def bpm(self) -> float:
        return self.point.bpm


@dataclass(frozen=True)
class TimeSignature(WrkEvent):
    kind: ClassVar[str] = "time-signature"

    bar: int
    numerator: int
    denominator: int


@dataclass(frozen=True)
class KeySignature(WrkEvent):
    """``alterations`` > 0 counts sharps, < 0 counts flats."""

    kind: ClassVar[str] = "key-signature"

    bar: int
    alterations: int


@dataclass(frozen=True)
class SysexBank(WrkEvent):
    kind: ClassVar[str] = "sysex-bank"

    bank: int
    name: str
    autosend: bool
    port: int
    data: bytes


@dataclass(frozen=True)
class Thru(WrkEvent):
    kind: ClassVar[str] = "thru"

    mode: int
    port: int
    channel: int
    key_plus: int
    velocity_plus: int
    local_port: int


@dataclass(frozen=True)
class TimeFormat(WrkEvent):
    """SMPTE frames per second and offset."""

    kind: ClassVar[str] = "time-format"

    frames: int
    offset: int


@dataclass(frozen=True)
class Comments(WrkEvent):
    kind: ClassVar[str] = "comments"

    text: str


READABLE_VARIABLES = frozenset(
    {"Title", "Author", "Copyright", "Subtitle", "Instructions", "Keywords"}
)


@dataclass(frozen=True)
class VariableRecord(WrkEvent):
    kind: ClassVar[str] = "variable-record"

    name: str
    data: bytes

    @property
    def is_text(self) -> bool:
        return self.name in READABLE_VARIABLES

    def text(self, decoder: TextDecoder) -> str:
        return decoder.decode(self.data.split(b"\x00", 1)[0])


@dataclass(frozen=True)
class SoftwareVersion(WrkEvent):
    kind: ClassVar[str] = "software-version"

    version: str


@dataclass(frozen=True)
class StringTable(WrkEvent):
    kind: ClassVar[str] = "string-table"

    entries: Tuple[str, ...]


@dataclass(frozen=True)
class Marker(WrkEvent):
    kind: ClassVar[str] = "marker"

    tick: int
    smpte: int
    text: str


@dataclass(frozen=True)
class GlobalVars(WrkEvent):
    """Document playback settings; defaults are those of an empty project."""

    kind: ClassVar[str] = "global-vars"

    now: int = 0
    from_marker: int = 0
    thru_marker: int = 11930
    key_sig: int = 0  # 0=C, 1=C#, ... 11=B
    clock: int = 0  # 0=internal, 1=MIDI, 2=FSK, 3=SMPTE
    auto_save: int = 0  # minutes, 0=disabled
    play_delay: int = 0
    zero_ctrls: bool = False
    send_spp: bool = True
    send_cont: bool = True
    patch_search: bool = False
    auto_stop: bool = False
    stop_time: int = 0xFFFFFFFF
    auto_rewind: bool = False
    rewind_time: int = 0
    metro_play: bool = False
    metro_record: bool = True
    metro_accent: bool = False
    count_in: int = 1
    thru_on: bool = True
    auto_restart: bool = False
    cur_tempo_ofs: int = 1
    tempo_ofs1: int = 32
    tempo_ofs2: int = 64
    tempo_ofs3: int = 128
    punch_enabled: bool = False
    punch_in_time: int = 0
    punch_out_time: int = 0
    end_all_time: int = 0

    def tempo_offset_ratio(self, index: int) -> float:
        """Return tempo offset ``index`` (1-3) as a ratio; values are n/64."""
        values = {1: self.tempo_ofs1, 2: self.tempo_ofs2, 3: self.tempo_ofs3}
        if index not in values:
            raise ValueError(f"tempo offset index must be 1-3, got {index}")
        return values[index] / 64.0


EVENT_TYPES: Dict[str, type] = {
    cls.kind: cls
    for cls in (
        Header, EndOfFile, UnknownChunk, Diagnostic,
        Note, KeyPressure, ControlChange, ProgramChange, ChannelPressure,
        PitchBend, SysexRef, Text, Expression, Hairpin, Chord, StreamEnd,
        Track, TrackName, TrackOffset, TrackReps, TrackPatch, TrackBank,
        TrackVolume, Segment, TimeBase, Tempo, TimeSignature, KeySignature,
        SysexBank, Thru, TimeFormat, Comments, VariableRecord,
        SoftwareVersion, StringTable, Marker, GlobalVars,
    )
}
