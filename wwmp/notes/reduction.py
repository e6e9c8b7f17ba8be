# ========================= notes/reduction.py =========================
from typing import List
from wwmp.notes.model import NoteEvent

CHORD_TOLERANCE_MS = 10

def group_by_onset(events: List[NoteEvent], tolerance_ms: int = CHORD_TOLERANCE_MS) -> List[List[NoteEvent]]:
    """Consecutive events whose start lies within tolerance of the group's first start."""
    groups: List[List[NoteEvent]] = []
    for e in events:
        if groups and e.start_ms <= groups[-1][0].start_ms + tolerance_ms:
            groups[-1].append(e)
        else:
            groups.append([e])
    return groups

def limit_polyphony(events: List[NoteEvent], max_notes: int, tolerance_ms: int = CHORD_TOLERANCE_MS) -> List[NoteEvent]:
    """Cap each onset group at max_notes, keeping the highest pitches in their original order."""
    if max_notes <= 0 or not events:
        return list(events)
    out: List[NoteEvent] = []
    for group in group_by_onset(events, tolerance_ms):
        if len(group) <= max_notes:
            out.extend(group)
            continue
        # 只保留最高的 N 個音，同音高先出現者優先
        ranked = sorted(range(len(group)), key=lambda i: -group[i].pitch)[:max_notes]
        out.extend(group[i] for i in sorted(ranked))
    return out
