# midi/tempo.py
from typing import Iterable, List, Tuple

DEFAULT_TEMPO = 500000          # 120 bpm
DEFAULT_TICKS_PER_BEAT = 480

class TempoMap:
    """Ordered (tick, microseconds-per-beat) breakpoints.

    The first breakpoint is always (0, DEFAULT_TEMPO); tempo changes found in
    the file are appended and stably sorted, so a file tempo at tick 0 takes
    over from the default.
    """
    def __init__(self, breakpoints: Iterable[Tuple[int, int]] = (), ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT):
        points = [(0, DEFAULT_TEMPO)]
        points.extend((int(t), int(us)) for t, us in breakpoints if t >= 0 and us > 0)
        points.sort(key=lambda p: p[0])
        self.breakpoints: List[Tuple[int, int]] = points
        self.ticks_per_beat = ticks_per_beat if ticks_per_beat > 0 else DEFAULT_TICKS_PER_BEAT

    @classmethod
    def from_tracks(cls, tracks, ticks_per_beat: int) -> "TempoMap":
        points = []
        for track in tracks:
            tick = 0
            for msg in track:
                tick += msg.time
                if msg.type == 'set_tempo':
                    points.append((tick, msg.tempo))
        return cls(points, ticks_per_beat)

    def _span_ms(self, ticks: int, tempo: int) -> float:
        return ticks * tempo / (self.ticks_per_beat * 1000.0)

    def tick_to_ms(self, tick: int) -> int:
        ms = 0.0
        prev_tick = 0
        tempo = DEFAULT_TEMPO
        for bp_tick, bp_tempo in self.breakpoints:
            if bp_tick >= tick:
                break
            ms += self._span_ms(bp_tick - prev_tick, tempo)
            prev_tick, tempo = bp_tick, bp_tempo
        ms += self._span_ms(max(0, tick - prev_tick), tempo)
        return int(ms)

    def __len__(self):
        return len(self.breakpoints)

def resolve_ticks_per_beat(division: int) -> int:
    """Header division -> ticks per beat. SMPTE divisions become fps * ticks-per-frame."""
    if division > 0:
        return division
    if division < 0:
        raw = division & 0xFFFF
        fps = 256 - (raw >> 8)
        per_frame = raw & 0xFF
        if fps == 29:
            fps = 29.97
        tpb = int(fps * per_frame)
        if tpb > 0:
            return tpb
    return DEFAULT_TICKS_PER_BEAT
