# notes/model.py
from dataclasses import dataclass, field
from typing import List, Tuple

@dataclass(frozen=True)
class NoteEvent:
    start_ms: int     # 絕對時間 (ms)
    duration_ms: int
    pitch: int        # MIDI note number
    velocity: int

    @property
    def end_ms(self) -> int:
        return self.start_ms + self.duration_ms

@dataclass(frozen=True)
class MidiSummary:
    track_count: int
    duration_ms: int
    note_count: int
    min_pitch: int
    max_pitch: int

    @classmethod
    def from_events(cls, events: List[NoteEvent], track_count: int) -> "MidiSummary":
        return cls(
            track_count=track_count,
            duration_ms=max((e.end_ms for e in events), default=0),
            note_count=len(events),
            min_pitch=min((e.pitch for e in events), default=0),
            max_pitch=max((e.pitch for e in events), default=127),
        )

@dataclass
class MidiFile:
    """Decoded file: time-sorted note events plus summary statistics."""
    summary: MidiSummary
    events: List[NoteEvent]
    ticks_per_beat: int = 480
    tempo_map: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def start_bpm(self) -> float:
        """Tempo in effect at tick 0 (later breakpoints at tick 0 override the default)."""
        us = 500000
        for tick, tempo in self.tempo_map:
            if tick > 0:
                break
            us = tempo
        return 60_000_000 / us

    @property
    def pitches(self) -> List[int]:
        return [e.pitch for e in self.events]
