"""Cakewalk WRK project file decoder."""

from .chunks import (  # noqa: F401
    DECODERS,
    ChunkDispatcher,
    ChunkResult,
    ChunkType,
    Decoded,
    DecodeFailed,
    Terminated,
)
from .codec import DEFAULT_ENCODING, CodecTextDecoder, TextDecoder, text_decoder_for  # noqa: F401
from .context import DecodeContext, EventSink  # noqa: F401
from .errors import (  # noqa: F401
    DiagnosticKind,
    MalformedRecordError,
    StructuralError,
    TruncatedStreamError,
    WrkError,
)
from .events import (  # noqa: F401
    EVENT_TYPES,
    ChannelPressure,
    Chord,
    Comments,
    ControlChange,
    Diagnostic,
    EndOfFile,
    Expression,
    GlobalVars,
    Hairpin,
    Header,
    KeyPressure,
    KeySignature,
    Marker,
    Note,
    PitchBend,
    ProgramChange,
    Segment,
    SoftwareVersion,
    StreamEnd,
    StringTable,
    SysexBank,
    SysexRef,
    Tempo,
    Text,
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
    UnknownChunk,
    VariableRecord,
    WrkEvent,
)
from .primitives import PrimitiveReader  # noqa: F401
from .reader import MAGIC, WrkReader, read_wrk  # noqa: F401
from .tempo import DEFAULT_DIVISION, TempoMap, TempoPoint  # noqa: F401
