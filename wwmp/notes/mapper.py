# notes/mapper.py
"""MIDI pitch -> instrument note (octave band, degree, accidental) -> keystroke.

The instrument has three octave bands of seven diatonic degrees. The
reference pitch is Medium degree 1; sharps are played with Shift and flats
with Ctrl.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple
from wwmp.input.keymap import KeyMapping, KeyStroke, Modifier

class Octave(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class Accidental(Enum):
    FLAT = -1
    NATURAL = 0
    SHARP = 1

    def to_modifier(self) -> Modifier:
        return {
            Accidental.FLAT: Modifier.CTRL,
            Accidental.NATURAL: Modifier.NONE,
            Accidental.SHARP: Modifier.SHIFT,
        }[self]

@dataclass(frozen=True)
class InstrumentNote:
    octave: Octave
    degree: int          # 1-7
    accidental: Accidental

# 大調音階各級的半音位置
DEGREE_SEMITONES = (0, 2, 4, 5, 7, 9, 11)
OCTAVE_BY_OFFSET = {-1: Octave.LOW, 0: Octave.MEDIUM, 1: Octave.HIGH}
TRANSPOSE_CANDIDATES = (-24, -12, 0, 12, 24)

def find_degree_and_accidental(semitones: int) -> Optional[Tuple[int, Accidental]]:
    for i, s in enumerate(DEGREE_SEMITONES):
        if s == semitones:
            return i + 1, Accidental.NATURAL
    for i, s in enumerate(DEGREE_SEMITONES):
        if s + 1 == semitones:
            return i + 1, Accidental.SHARP
    for i, s in enumerate(DEGREE_SEMITONES):
        if s > 0 and s - 1 == semitones:
            return i + 1, Accidental.FLAT
    return None

def midi_to_instrument(pitch: int, transpose: int = 0, reference: int = 60) -> Optional[InstrumentNote]:
    """None when the pitch falls outside the three playable octaves."""
    offset = pitch + transpose - reference
    octave = OCTAVE_BY_OFFSET.get(offset // 12)
    if octave is None:
        return None
    found = find_degree_and_accidental(offset % 12)
    if found is None:
        return None
    degree, accidental = found
    return InstrumentNote(octave=octave, degree=degree, accidental=accidental)

def note_to_keystroke(note: InstrumentNote, mapping: KeyMapping) -> Optional[KeyStroke]:
    keys = mapping.row(note.octave.value)
    idx = note.degree - 1
    if idx >= len(keys):
        return None
    return KeyStroke(key=keys[idx], modifier=note.accidental.to_modifier())

def playable_range(reference: int) -> Tuple[int, int]:
    return reference - 12, reference + 23

def suggest_transpose(pitches: Iterable[int], reference: int = 60) -> int:
    """Octave shift (-24..24) that leaves the fewest semitones outside the playable band."""
    pitches = list(pitches)
    if not pitches:
        return 0
    lo, hi = min(pitches), max(pitches)
    play_lo, play_hi = playable_range(reference)

    def out_of_range(t: int) -> int:
        return max(0, play_lo - (lo + t)) + max(0, (hi + t) - play_hi)

    # 已在音域內就不移調
    if out_of_range(0) == 0:
        return 0
    best, best_out = 0, None
    for t in TRANSPOSE_CANDIDATES:
        out = out_of_range(t)
        if best_out is None or out < best_out:
            best, best_out = t, out
    return best
