# app.py
import logging, time
from typing import Optional
from wwmp.config import AppConfig, TRANSPOSE_RANGE
from wwmp.errors import DecodeError
from wwmp.input.injector import KeyInjector
from wwmp.input.keymap import Modifier
from wwmp.midi.parser import load_midi_file
from wwmp.notes.mapper import suggest_transpose
from wwmp.notes.model import MidiFile, MidiSummary
from wwmp.timeline.scheduler import PlaybackEngine
from wwmp.utils.crashlog import log_exception

logger = logging.getLogger(__name__)

TEST_KEY_HOLD_S = 0.05

class App:
    """Command surface: load / play / pause / stop plus the live tempo and transpose settings."""
    def __init__(self, cfg: AppConfig, injector: KeyInjector, engine: Optional[PlaybackEngine] = None):
        self.cfg = cfg.normalized()
        self.injector = injector
        self.engine = engine or PlaybackEngine(injector)

        # 狀態
        self.midi: Optional[MidiFile] = None
        self.current_midi: Optional[str] = None

    # ---------- Loading ----------
    def load_file(self, path: str) -> MidiSummary:
        try:
            midi = load_midi_file(path)
        except DecodeError as e:
            log_exception("load_file", e)
            logger.error("Failed to load %s: %s", path, e)
            raise
        self.engine.stop()
        self.midi = midi
        self.current_midi = path
        logger.info("Loaded %s (%d notes)", path, midi.summary.note_count)
        return midi.summary

    # ---------- Playback ----------
    def play(self) -> bool:
        if self.midi is None:
            logger.info("play ignored: no file loaded")
            return False
        return self.engine.start(self.midi, self.cfg)

    def pause(self):
        self.engine.pause()

    def toggle_playback(self):
        """Play/pause hotkey: starts the loaded file when idle, otherwise pauses or resumes."""
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def stop(self):
        self.engine.stop()

    @property
    def is_playing(self) -> bool:
        return self.engine.is_playing

    @property
    def is_paused(self) -> bool:
        return self.engine.is_paused

    # ---------- Settings ----------
    def set_tempo_factor(self, factor: float):
        if factor <= 0:
            raise ValueError(f"tempo factor must be positive, got {factor}")
        self.cfg.tempo_factor = float(factor)

    def set_transpose(self, semitones: int) -> int:
        lo, hi = TRANSPOSE_RANGE
        self.cfg.transpose = max(lo, min(hi, int(semitones)))
        return self.cfg.transpose

    def get_config(self) -> AppConfig:
        return self.cfg.copy()

    def suggest_transpose(self) -> int:
        if self.midi is None:
            return 0
        return suggest_transpose(self.midi.pitches, self.cfg.reference_midi_note)

    def apply_suggested_transpose(self) -> int:
        return self.set_transpose(self.suggest_transpose())

    def test_key(self, key: str, modifier="none"):
        """Tap one key so the user can check the game receives input. Errors propagate."""
        modifier = Modifier.parse(modifier)
        self.injector.press_key(key, modifier)
        time.sleep(TEST_KEY_HOLD_S)
        self.injector.release_key(key, modifier)
