"""Build a Standard MIDI File from decoded WRK events using mido.

This is a consumer of the event stream, not a WRK writer.  The result is a
type 1 file: track 0 carries tempo, meter, key and markers, then one track
per WRK track number in ascending order.

Cakewalk's per-track channel setting overrides the channel stored in each
event when it is not -1, so the export applies it the same way.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple

import mido

from .events import (
    ChannelPressure,
    ControlChange,
    KeyPressure,
    KeySignature,
    Marker,
    Note,
    PitchBend,
    ProgramChange,
    SysexBank,
    SysexRef,
    Tempo,
    Text,
    TimeBase,
    TimeSignature,
    Track,
    TrackName,
    WrkEvent,
)
from .tempo import DEFAULT_DIVISION

logger = logging.getLogger(__name__)

# Major keys by number of sharps (negative = flats).
KEY_NAMES = {
    -7: "Cb", -6: "Gb", -5: "Db", -4: "Ab", -3: "Eb", -2: "Bb", -1: "F",
    0: "C", 1: "G", 2: "D", 3: "A", 4: "E", 5: "B", 6: "F#", 7: "C#",
}

MAX_DENOMINATOR = 64
MAX_TEMPO = 0xFFFFFF  # microseconds per quarter, 24-bit meta field

# Sort rank for messages sharing a tick: note offs before anything else so
# that repeated notes retrigger, note ons last.
_RANK_OFF = 0
_RANK_OTHER = 1
_RANK_ON = 2

Timed = Tuple[int, int, mido.Message]


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _data(value: int) -> int:
    return _clamp(value, 0, 127)


def _meta_text(text: str) -> str:
    # mido writes meta text as latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def bar_ticks(signatures: List[TimeSignature], division: int) -> Dict[int, int]:
    """Map each signature's bar (0-based) to its absolute tick."""

    result: Dict[int, int] = {}
    tick = 0
    bar = 0
    per_bar = division * 4
    for sig in sorted(signatures, key=lambda s: s.bar):
        tick += (sig.bar - bar) * per_bar
        bar = sig.bar
        result[sig.bar] = tick
        per_bar = division * 4 * max(sig.numerator, 1) // sig.denominator
    return result


def _to_track(timed: List[Timed]) -> mido.MidiTrack:
    track = mido.MidiTrack()
    last = 0
    for tick, _, msg in sorted(timed, key=lambda item: (item[0], item[1])):
        track.append(msg.copy(time=tick - last))
        last = tick
    return track


def _sysex_message(bank: SysexBank) -> mido.Message | None:
    payload = bytes(bank.data)
    if payload.startswith(b"\xF0"):
        payload = payload[1:]
    if payload.endswith(b"\xF7"):
        payload = payload[:-1]
    if any(b > 0x7F for b in payload):
        logger.warning("sysex bank %d holds non-data bytes; not exported", bank.bank)
        return None
    return mido.Message("sysex", data=payload)


def _conductor(events: List[WrkEvent], division: int) -> List[Timed]:
    timed: List[Timed] = []
    signatures = [e for e in events if isinstance(e, TimeSignature)]
    bars = bar_ticks(signatures, division)
    for event in events:
        if isinstance(event, Tempo):
            tempo = mido.bpm2tempo(event.bpm)
            if tempo > MAX_TEMPO:
                logger.warning("tempo %.2f bpm at tick %d clamped to the slowest SMF tempo", event.bpm, event.tick)
                tempo = MAX_TEMPO
            msg = mido.MetaMessage("set_tempo", tempo=tempo)
            timed.append((event.tick, _RANK_OTHER, msg))
        elif isinstance(event, TimeSignature):
            if event.denominator > MAX_DENOMINATOR:
                logger.warning("time signature %d/%d skipped", event.numerator, event.denominator)
                continue
            msg = mido.MetaMessage(
                "time_signature",
                numerator=_clamp(event.numerator, 1, 255),
                denominator=event.denominator,
            )
            timed.append((bars[event.bar], _RANK_OTHER, msg))
        elif isinstance(event, KeySignature):
            key = KEY_NAMES.get(event.alterations)
            if key is None:
                logger.warning("key signature with %d alterations skipped", event.alterations)
                continue
            tick = bars.get(event.bar, event.bar * division * 4)
            timed.append((tick, _RANK_OTHER, mido.MetaMessage("key_signature", key=key)))
        elif isinstance(event, Marker):
            timed.append((event.tick, _RANK_OTHER, mido.MetaMessage("marker", text=_meta_text(event.text))))
    return timed


def _channel_messages(event: WrkEvent, channel: int) -> List[Timed]:
    if isinstance(event, Note):
        on = mido.Message(
            "note_on", channel=channel, note=_data(event.pitch), velocity=_data(event.velocity)
        )
        off = mido.Message("note_off", channel=channel, note=_data(event.pitch), velocity=0)
        return [
            (event.tick, _RANK_ON, on),
            (event.tick + max(event.duration, 0), _RANK_OFF, off),
        ]
    if isinstance(event, KeyPressure):
        msg = mido.Message(
            "polytouch", channel=channel, note=_data(event.pitch), value=_data(event.pressure)
        )
    elif isinstance(event, ControlChange):
        msg = mido.Message(
            "control_change",
            channel=channel,
            control=_data(event.controller),
            value=_data(event.value),
        )
    elif isinstance(event, ProgramChange):
        msg = mido.Message("program_change", channel=channel, program=_data(event.patch))
    elif isinstance(event, ChannelPressure):
        msg = mido.Message("aftertouch", channel=channel, value=_data(event.pressure))
    elif isinstance(event, PitchBend):
        msg = mido.Message("pitchwheel", channel=channel, pitch=_clamp(event.value, -8192, 8191))
    else:
        return []
    return [(event.tick, _RANK_OTHER, msg)]


def events_to_midifile(events: Iterable[WrkEvent], division: int | None = None) -> mido.MidiFile:
    """Convert a decoded WRK event stream into a ``mido.MidiFile``."""

    events = list(events)
    for event in events:
        if isinstance(event, TimeBase) and division is None:
            division = event.division
    division = division or DEFAULT_DIVISION

    headers: Dict[int, Track] = {}
    names: Dict[int, str] = {}
    banks: Dict[int, SysexBank] = {}
    per_track: Dict[int, List[WrkEvent]] = {}
    for event in events:
        if isinstance(event, Track):
            headers[event.number] = event
            names.setdefault(event.number, event.name)
            per_track.setdefault(event.number, [])
        elif isinstance(event, TrackName):
            names[event.track] = event.name
        elif isinstance(event, SysexBank):
            banks[event.bank] = event
        elif isinstance(event, (Note, KeyPressure, ControlChange, ProgramChange,
                                ChannelPressure, PitchBend, SysexRef, Text)):
            per_track.setdefault(event.track, []).append(event)

    mid = mido.MidiFile(type=1, ticks_per_beat=division)
    mid.tracks.append(_to_track(_conductor(events, division)))

    for number in sorted(per_track):
        header = headers.get(number)
        forced = header.channel if header is not None and header.channel >= 0 else None
        timed: List[Timed] = []
        name = names.get(number)
        if name:
            timed.append((0, -1, mido.MetaMessage("track_name", name=_meta_text(name))))
        for event in per_track[number]:
            if isinstance(event, SysexRef):
                bank = banks.get(event.bank)
                msg = _sysex_message(bank) if bank is not None else None
                if msg is not None:
                    timed.append((event.tick, _RANK_OTHER, msg))
            elif isinstance(event, Text):
                timed.append((event.tick, _RANK_OTHER, mido.MetaMessage("text", text=_meta_text(event.text))))
            else:
                channel = forced if forced is not None else event.channel
                timed.extend(_channel_messages(event, channel & 0x0F))
        mid.tracks.append(_to_track(timed))

    return mid


def write_midifile(events: Iterable[WrkEvent], path, division: int | None = None) -> mido.MidiFile:
    mid = events_to_midifile(events, division)
    mid.save(str(path))
    return mid
