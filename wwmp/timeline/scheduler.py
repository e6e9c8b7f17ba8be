# timeline/scheduler.py
"""Flattens mapped notes into a key-down/key-up timeline and plays it on a worker thread.

Controller and worker share only the ``playing`` / ``paused`` events, the
session's ``cancelled`` event and the dispatch lock. The timeline and its
cursor belong to the worker once it is launched. A key press and the
release-all issued by pause/stop never interleave, so no key is pressed
after the release-all that ends a run or starts a pause.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional
from wwmp.config import AppConfig
from wwmp.input.injector import KeyInjector
from wwmp.input.keymap import Modifier
from wwmp.notes.mapper import midi_to_instrument, note_to_keystroke
from wwmp.notes.model import MidiFile
from wwmp.notes.reduction import CHORD_TOLERANCE_MS, limit_polyphony

logger = logging.getLogger(__name__)

MIN_PRESS_MS = 30          # 太短的按鍵遊戲可能收不到
PAUSE_POLL_S = 0.010
DISPATCH_POLL_S = 0.0005

@dataclass(frozen=True)
class ScheduledEvent:
    time_ms: int
    key: str
    modifier: Modifier
    key_down: bool

def build_timeline(midi: MidiFile, config: AppConfig) -> List[ScheduledEvent]:
    events = limit_polyphony(midi.events, config.max_polyphony, CHORD_TOLERANCE_MS)

    out: List[ScheduledEvent] = []
    dropped = 0
    for ev in events:
        note = midi_to_instrument(ev.pitch, config.transpose, config.reference_midi_note)
        stroke = note_to_keystroke(note, config.key_mapping) if note is not None else None
        if stroke is None:
            dropped += 1
            continue
        out.append(ScheduledEvent(ev.start_ms, stroke.key, stroke.modifier, True))
        out.append(ScheduledEvent(ev.start_ms + max(ev.duration_ms, MIN_PRESS_MS), stroke.key, stroke.modifier, False))
    out.sort(key=lambda e: e.time_ms)
    if dropped:
        logger.debug("Dropped %d of %d notes outside the playable range/layout", dropped, len(events))
    return out

class PlaybackSession:
    """One run of a timeline. Advanced only by its worker."""
    def __init__(self, timeline: List[ScheduledEvent], tempo_factor: float, start_delay_ms: int):
        self.timeline = timeline
        self.tempo_factor = tempo_factor
        self.start_delay_ms = start_delay_ms
        self.cancelled = threading.Event()
        self.start_ref: Optional[float] = None
        self.i = 0

    @property
    def done(self) -> bool:
        return self.i >= len(self.timeline)

    def due(self, scaled_ms: float) -> Iterator[ScheduledEvent]:
        while self.i < len(self.timeline) and self.timeline[self.i].time_ms <= scaled_ms:
            yield self.timeline[self.i]
            self.i += 1

class PlaybackEngine:
    def __init__(self, injector: KeyInjector, clock: Callable[[], float] = time.perf_counter):
        self.injector = injector
        self.clock = clock
        self._playing = threading.Event()
        self._paused = threading.Event()
        self._control = threading.RLock()
        self._dispatching = threading.Lock()   # 按鍵與全部放開互斥
        self._session: Optional[PlaybackSession] = None
        self._worker: Optional[threading.Thread] = None

    # ---------- 狀態 ----------
    @property
    def is_playing(self) -> bool:
        return self._playing.is_set()

    @property
    def is_paused(self) -> bool:
        return self._paused.is_set()

    @property
    def progress(self) -> float:
        s = self._session
        if s is None or not s.timeline:
            return 0.0
        return s.i / len(s.timeline)

    # ---------- 控制 ----------
    def start(self, midi: MidiFile, config: AppConfig) -> bool:
        """Supersede any running session and play midi. False when nothing is playable."""
        with self._control:
            self.stop()
            self._join_worker()

            snapshot = config.copy()
            timeline = build_timeline(midi, snapshot)
            if not timeline:
                logger.info("Nothing to play: timeline is empty")
                return False

            session = PlaybackSession(timeline, snapshot.tempo_factor, snapshot.start_delay_ms)
            self._session = session
            self._paused.clear()
            self._playing.set()
            self._worker = threading.Thread(target=self._run, args=(session,), name="wwmp-playback", daemon=True)
            self._worker.start()
            logger.info("Playback started: %d key events, tempo x%.2f", len(timeline), snapshot.tempo_factor)
            return True

    def pause(self):
        with self._control:
            if not self._playing.is_set():
                return
            if self._paused.is_set():
                self._paused.clear()
                logger.info("Playback resumed")
            else:
                # 暫停時放開所有鍵，不延音
                with self._dispatching:
                    self._paused.set()
                    self._release_all()
                logger.info("Playback paused")

    def stop(self):
        with self._control, self._dispatching:
            self._playing.clear()
            self._paused.clear()
            if self._session is not None:
                self._session.cancelled.set()
            self._release_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current worker exits. True if it has exited."""
        w = self._worker
        if w is None:
            return True
        w.join(timeout)
        return not w.is_alive()

    def _join_worker(self):
        w = self._worker
        if w is not None and w is not threading.current_thread():
            w.join()
        self._worker = None

    # ---------- worker ----------
    def _run(self, session: PlaybackSession):
        try:
            if session.start_delay_ms > 0:
                session.cancelled.wait(session.start_delay_ms / 1000.0)
            session.start_ref = self.clock()

            while not session.done and not session.cancelled.is_set() and self._playing.is_set():
                if self._paused.is_set():
                    time.sleep(PAUSE_POLL_S)
                    continue
                # 暫停不調整起點：恢復後會一次補放暫停期間的事件
                scaled = (self.clock() - session.start_ref) * 1000.0 * session.tempo_factor
                for ev in session.due(scaled):
                    # 中斷時游標停在尚未送出的事件上
                    with self._dispatching:
                        if session.cancelled.is_set() or self._paused.is_set() or not self._playing.is_set():
                            break
                        self._dispatch(ev)
                time.sleep(DISPATCH_POLL_S)
        finally:
            self._release_all()
            if self._session is session:
                self._playing.clear()
                self._paused.clear()
            logger.info("Playback worker exited (%d/%d events)", session.i, len(session.timeline))

    def _dispatch(self, ev: ScheduledEvent):
        try:
            if ev.key_down:
                self.injector.press_key(ev.key, ev.modifier)
            else:
                self.injector.release_key(ev.key, ev.modifier)
        except Exception as e:
            logger.warning("Key %s %s failed at %d ms: %s", "down" if ev.key_down else "up", ev.key, ev.time_ms, e)

    def _release_all(self):
        try:
            self.injector.release_all_keys()
        except Exception as e:
            logger.warning("release_all_keys failed: %s", e)
