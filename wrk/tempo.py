"""Tempo map: tick positions to elapsed seconds.

The map is a list of checkpoints in file order.  Each checkpoint stores the
real time at which it starts, computed from the checkpoint before it, so a
query only has to find the last checkpoint strictly before the queried tick
and extrapolate forward at that checkpoint's tempo.

The first checkpoint always starts at 0 seconds, even when its tick is not 0.
Files written by Cakewalk start the map at tick 0, so this only matters for
hand-made or damaged files, and it matches how Cakewalk itself times them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List

DEFAULT_DIVISION = 120
DEFAULT_BPM = 100.0


@dataclass(frozen=True)
class TempoPoint:
    tick: int
    bpm: float
    seconds: float


class TempoMap:
    def __init__(self, division: int = DEFAULT_DIVISION) -> None:
        self.division = division
        self.points: List[TempoPoint] = []

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[TempoPoint]:
        return iter(self.points)

    def clear(self) -> None:
        self.points.clear()

    def _reference(self, tick: int, default: TempoPoint) -> TempoPoint:
        prev = default
        for point in self.points:
            if point.tick >= tick:
                break
            prev = point
        return prev

    def _elapsed(self, prev: TempoPoint, tick: int) -> float:
        return prev.seconds + ((tick - prev.tick) / float(self.division)) * (60.0 / prev.bpm)

    def append(self, tick: int, raw_tempo: int, factor: int = 1) -> TempoPoint:
        """Add a tempo change read from the file and return the new point.

        ``raw_tempo * factor`` is the tempo in hundredths of a beat per minute.
        """
        bpm = (raw_tempo * factor) / 100.0
        if not self.points:
            point = TempoPoint(tick=tick, bpm=bpm, seconds=0.0)
        else:
            prev = self._reference(tick, TempoPoint(0, bpm, 0.0))
            point = TempoPoint(tick=tick, bpm=bpm, seconds=self._elapsed(prev, tick))
        self.points.append(point)
        return point

    def ticks_to_seconds(self, tick: int) -> float:
        """Real time in seconds at ``tick``.

        A tick that falls exactly on a tempo change is timed with the tempo
        in force before the change.  An empty map runs at 100 bpm.
        """
        prev = self._reference(tick, TempoPoint(0, DEFAULT_BPM, 0.0))
        return self._elapsed(prev, tick)
