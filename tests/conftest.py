import io
import time

import mido
import pytest

from wwmp.config import AppConfig
from wwmp.input.injector import LoggingInjector
from wwmp.notes.model import MidiFile, MidiSummary, NoteEvent


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    # keep crash/error logs and config out of the real user directories
    monkeypatch.setenv("WWMP_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))


def build_midi_bytes(tracks, ticks_per_beat=480):
    """tracks: list of message lists with delta times in ticks."""
    mid = mido.MidiFile(ticks_per_beat=ticks_per_beat)
    for msgs in tracks:
        mid.tracks.append(mido.MidiTrack(msgs))
    buf = io.BytesIO()
    mid.save(file=buf)
    return buf.getvalue()


def note_on(note, time=0, velocity=64):
    return mido.Message("note_on", note=note, velocity=velocity, time=time)


def note_off(note, time=0):
    return mido.Message("note_off", note=note, velocity=0, time=time)


def set_tempo(tempo, time=0):
    return mido.MetaMessage("set_tempo", tempo=tempo, time=time)


def midi_of(events):
    events = sorted(events, key=lambda e: e.start_ms)
    return MidiFile(summary=MidiSummary.from_events(events, track_count=1), events=events)


def wait_for(predicate, timeout=3.0, interval=0.005):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def single_note_bytes():
    return build_midi_bytes([[set_tempo(500000), note_on(60), note_off(60, time=480)]])


@pytest.fixture
def injector():
    return LoggingInjector()


@pytest.fixture
def fast_config():
    return AppConfig(start_delay_ms=0, tempo_factor=1.0)


@pytest.fixture
def scale_midi():
    # C major from the medium row, 100 ms apart
    pitches = [60, 62, 64, 65, 67, 69, 71]
    return midi_of([NoteEvent(i * 100, 80, p, 64) for i, p in enumerate(pitches)])
