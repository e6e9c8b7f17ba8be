import logging
import os
import sys
import types
from logging.handlers import RotatingFileHandler

import pytest

from conftest import build_midi_bytes, note_off, note_on
from wwmp.app import App
from wwmp.config import AppConfig
from wwmp.errors import DecodeError
from wwmp.input.injector import LoggingInjector
from wwmp.input.keymap import Modifier
from wwmp.main import _init_logging, _start_hotkeys, apply_overrides, build_parser, hotkey_spec, run


@pytest.fixture
def song(tmp_path, single_note_bytes):
    path = tmp_path / "song.mid"
    path.write_bytes(single_note_bytes)
    return str(path)


@pytest.fixture
def app(injector):
    return App(AppConfig(start_delay_ms=0, tempo_factor=5.0), injector)


def test_load_file_returns_summary(app, song):
    s = app.load_file(song)
    assert (s.note_count, s.duration_ms, s.min_pitch, s.max_pitch) == (1, 500, 60, 60)
    assert app.current_midi == song


def test_load_bad_file_raises_and_logs(app, tmp_path):
    bad = tmp_path / "bad.mid"
    bad.write_bytes(b"garbage")
    with pytest.raises(DecodeError):
        app.load_file(str(bad))
    assert app.midi is None
    logs = os.listdir(os.environ["WWMP_LOG_DIR"])
    assert any(name.startswith("error-") for name in logs)


def test_play_without_file(app, injector):
    assert app.play() is False
    assert not app.is_playing


def test_play_pause_stop(app, song, injector):
    app.load_file(song)
    assert app.play()
    assert app.engine.wait(3.0)
    calls = injector.snapshot()
    assert ("press", "A", Modifier.NONE) in calls
    assert ("release", "A", Modifier.NONE) in calls
    app.pause()
    assert not app.is_paused
    app.stop()
    assert not app.is_playing


def test_settings(app):
    app.set_tempo_factor(1.5)
    assert app.get_config().tempo_factor == 1.5
    with pytest.raises(ValueError):
        app.set_tempo_factor(0)
    assert app.set_transpose(30) == 24
    assert app.set_transpose(-99) == -24
    cfg = app.get_config()
    cfg.transpose = 3
    assert app.cfg.transpose == -24


def test_suggest_transpose(app, tmp_path):
    assert app.suggest_transpose() == 0
    path = tmp_path / "high.mid"
    path.write_bytes(build_midi_bytes([[note_on(96), note_off(96, time=240), note_on(100), note_off(100, time=240)]]))
    app.load_file(str(path))
    assert app.suggest_transpose() == -24
    assert app.apply_suggested_transpose() == -24
    assert app.cfg.transpose == -24


def test_test_key(app, injector):
    app.test_key("Q", "shift")
    assert injector.snapshot() == [("press", "Q", Modifier.SHIFT), ("release", "Q", Modifier.SHIFT)]


def test_hotkey_spec():
    assert hotkey_spec("F7") == "<f7>"
    assert hotkey_spec(" p ") == "p"


def test_overrides_are_clamped():
    args = build_parser().parse_args(["x.mid", "--transpose", "40", "--max-poly", "0", "--tempo", "2"])
    cfg = apply_overrides(AppConfig(), args)
    assert (cfg.transpose, cfg.max_polyphony, cfg.tempo_factor) == (24, 1, 2.0)


def test_transpose_argument_validation():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["x.mid", "--transpose", "up"])
    assert build_parser().parse_args(["x.mid", "--transpose", "auto"]).transpose == "auto"


def test_run_dry_run(song, tmp_path, capsys):
    code = run([song, "--dry-run", "--delay-ms", "0", "--tempo", "5", "--config", str(tmp_path / "c.json"),
                "--transpose", "auto", "--save-config"])
    assert code == 0
    assert "1 notes" in capsys.readouterr().out
    assert AppConfig.load(str(tmp_path / "c.json")).start_delay_ms == 0


def test_run_missing_file(tmp_path):
    assert run([str(tmp_path / "missing.mid"), "--dry-run", "--config", str(tmp_path / "c.json")]) == 2


def test_run_nothing_playable(tmp_path):
    path = tmp_path / "low.mid"
    path.write_bytes(build_midi_bytes([[note_on(10), note_off(10, time=480)]]))
    assert run([str(path), "--dry-run", "--delay-ms", "0", "--config", str(tmp_path / "c.json")]) == 1


def test_toggle_playback_starts_then_pauses(app, tmp_path):
    app.toggle_playback()
    assert not app.is_playing

    path = tmp_path / "long.mid"
    path.write_bytes(build_midi_bytes([[note_on(60), note_off(60, time=9600)]]))
    app.load_file(str(path))
    app.toggle_playback()
    assert app.is_playing and not app.is_paused
    app.toggle_playback()
    assert app.is_paused
    app.toggle_playback()
    assert app.is_playing and not app.is_paused
    app.stop()
    assert app.engine.wait(2.0)


def test_hotkeys_bind_toggle_and_stop(app, monkeypatch):
    bound = {}

    class RecordingHotKeys:
        def __init__(self, mapping):
            bound.update(mapping)

        def start(self):
            bound["started"] = True

    keyboard = types.ModuleType("pynput.keyboard")
    keyboard.GlobalHotKeys = RecordingHotKeys
    package = types.ModuleType("pynput")
    package.keyboard = keyboard
    monkeypatch.setitem(sys.modules, "pynput", package)
    monkeypatch.setitem(sys.modules, "pynput.keyboard", keyboard)

    _start_hotkeys(app)
    assert bound["<f7>"] == app.toggle_playback
    assert bound["<f8>"] == app.stop
    assert bound["started"]


@pytest.mark.parametrize("verbose, console_level", [(False, logging.INFO), (True, logging.DEBUG)])
def test_file_log_receives_debug_records(monkeypatch, verbose, console_level):
    root = logging.getLogger()
    old_level = root.level
    monkeypatch.setattr(root, "handlers", [])
    try:
        _init_logging(verbose)
        console, fh = root.handlers
        assert root.level == logging.DEBUG
        assert console.level == console_level
        assert isinstance(fh, RotatingFileHandler) and fh.level == logging.DEBUG
        assert fh.baseFilename.startswith(os.environ["WWMP_LOG_DIR"])
    finally:
        for h in root.handlers:
            h.close()
        root.setLevel(old_level)
