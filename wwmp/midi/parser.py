# midi/parser.py
import io
import logging
import mido
from collections import defaultdict
from typing import Dict, List, Tuple
from wwmp.errors import DecodeError
from wwmp.midi.tempo import TempoMap, resolve_ticks_per_beat
from wwmp.notes.model import MidiFile, MidiSummary, NoteEvent

logger = logging.getLogger(__name__)

def _walk_track(track, tempo: TempoMap) -> List[NoteEvent]:
    tick = 0
    # pitch -> [(start_tick, velocity, opened)]，先開先關
    pending: Dict[int, List[Tuple[int, int, int]]] = defaultdict(list)
    opened = 0
    out: List[NoteEvent] = []

    def close(pitch: int, start: int, vel: int, end: int):
        start_ms = tempo.tick_to_ms(start)
        end_ms = tempo.tick_to_ms(end)
        out.append(NoteEvent(start_ms=start_ms, duration_ms=max(0, end_ms - start_ms), pitch=pitch, velocity=vel))

    for msg in track:
        tick += msg.time
        if msg.type == 'note_on' and msg.velocity > 0:
            pending[msg.note].append((tick, msg.velocity, opened))
            opened += 1
        elif msg.type == 'note_off' or (msg.type == 'note_on' and msg.velocity == 0):
            if pending[msg.note]:
                start, vel, _ = pending[msg.note].pop(0)
                close(msg.note, start, vel, tick)

    # close dangling at track end
    dangling = sorted(((n, st, p, v) for p, arr in pending.items() for st, v, n in arr))
    for _, st, p, v in dangling:
        close(p, st, v, tick)
    return out

def parse_midi_bytes(data: bytes) -> MidiFile:
    try:
        mid = mido.MidiFile(file=io.BytesIO(data))
    except Exception as e:
        raise DecodeError(f"Could not parse MIDI data: {e}") from e

    tpb = resolve_ticks_per_beat(mid.ticks_per_beat)
    tempo = TempoMap.from_tracks(mid.tracks, tpb)

    events: List[NoteEvent] = []
    for track in mid.tracks:
        events.extend(_walk_track(track, tempo))
    events.sort(key=lambda e: e.start_ms)

    summary = MidiSummary.from_events(events, track_count=len(mid.tracks))
    logger.info("Decoded %d notes from %d tracks (%d ms, tpb=%d, %d tempo points)",
                summary.note_count, summary.track_count, summary.duration_ms, tpb, len(tempo))
    return MidiFile(summary=summary, events=events, ticks_per_beat=tpb, tempo_map=list(tempo.breakpoints))

def load_midi_file(path: str) -> MidiFile:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise DecodeError(f"Could not read MIDI file {path}: {e}") from e
    return parse_midi_bytes(data)
