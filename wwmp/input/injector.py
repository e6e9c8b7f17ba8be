# input/injector.py
"""Keyboard injection backends used by the playback worker.

Every method may raise; the scheduler logs and ignores failures, so a
backend never needs to swallow its own errors.
"""
import logging
import threading
from typing import Iterable, List, Tuple
from wwmp.errors import InjectionError
from wwmp.input.keymap import Modifier

logger = logging.getLogger(__name__)

class KeyInjector:
    def press_key(self, key: str, modifier: Modifier = Modifier.NONE) -> None:
        raise NotImplementedError

    def release_key(self, key: str, modifier: Modifier = Modifier.NONE) -> None:
        raise NotImplementedError

    def release_all_keys(self) -> None:
        raise NotImplementedError

class PynputInjector(KeyInjector):
    """Sends real key events through pynput. Modifier goes down before the key and up after it."""
    def __init__(self, layout_keys: Iterable[str]):
        from pynput.keyboard import Controller, Key
        self._Key = Key
        self._kb = Controller()
        self._layout_keys = list(layout_keys)

    def _resolve(self, key: str):
        if len(key) == 1:
            return key.lower()
        named = getattr(self._Key, key.strip().lower(), None)
        if named is None:
            raise InjectionError(f"Unknown key: {key}")
        return named

    def _modifier_key(self, modifier: Modifier):
        if modifier == Modifier.SHIFT:
            return self._Key.shift
        if modifier == Modifier.CTRL:
            return self._Key.ctrl
        return None

    def press_key(self, key: str, modifier: Modifier = Modifier.NONE) -> None:
        k = self._resolve(key)
        mod = self._modifier_key(modifier)
        if mod is not None:
            self._kb.press(mod)
        self._kb.press(k)

    def release_key(self, key: str, modifier: Modifier = Modifier.NONE) -> None:
        k = self._resolve(key)
        self._kb.release(k)
        mod = self._modifier_key(modifier)
        if mod is not None:
            self._kb.release(mod)

    def release_all_keys(self) -> None:
        failed = []
        for key in self._layout_keys + [self._Key.shift, self._Key.ctrl]:
            try:
                self._kb.release(self._resolve(key) if isinstance(key, str) else key)
            except Exception as e:
                failed.append((key, e))
        if failed:
            raise InjectionError(f"release_all_keys: {len(failed)} keys failed ({failed[0][1]})")

class LoggingInjector(KeyInjector):
    """Dry-run backend: logs and records every call instead of touching the keyboard."""
    def __init__(self):
        self._lock = threading.Lock()
        self.calls: List[Tuple[str, str, Modifier]] = []

    def _record(self, action: str, key: str = "", modifier: Modifier = Modifier.NONE):
        with self._lock:
            self.calls.append((action, key, modifier))
        logger.debug("%s %s %s", action, key, modifier.value)

    def press_key(self, key: str, modifier: Modifier = Modifier.NONE) -> None:
        self._record("press", key, modifier)

    def release_key(self, key: str, modifier: Modifier = Modifier.NONE) -> None:
        self._record("release", key, modifier)

    def release_all_keys(self) -> None:
        self._record("release_all")

    def snapshot(self) -> List[Tuple[str, str, Modifier]]:
        with self._lock:
            return list(self.calls)
