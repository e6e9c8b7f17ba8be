# main.py
import argparse, logging, os, sys, time
from logging.handlers import RotatingFileHandler
from wwmp.utils.crashlog import setup_crashlog, log_exception
from wwmp.utils.path import log_dir
from wwmp.app import App
from wwmp.config import AppConfig
from wwmp.errors import DecodeError
from wwmp.input.injector import LoggingInjector, PynputInjector

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

def _init_logging(verbose: bool = False):
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)
    # 主控台預設只顯示 INFO，檔案保留 DEBUG
    logging.getLogger().handlers[0].setLevel(logging.DEBUG if verbose else logging.INFO)
    try:
        fh = RotatingFileHandler(os.path.join(log_dir(), "app.log"), maxBytes=2*1024*1024, backupCount=3, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(fh)
    except OSError as e:
        logging.warning("File logging disabled: %s", e)

def hotkey_spec(name: str) -> str:
    """'F7' -> '<f7>', 'p' -> 'p' (pynput GlobalHotKeys syntax)."""
    name = name.strip()
    return name.lower() if len(name) == 1 else f"<{name.lower()}>"

def _transpose_arg(v: str):
    if v == 'auto':
        return v
    try:
        return int(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer or 'auto', got {v!r}")

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="wwmp", description="Play a MIDI file as keystrokes on the in-game instrument.")
    ap.add_argument('midi', help="path to a .mid/.midi file")
    ap.add_argument('--config', default=None, help="config JSON (default: per-user config dir)")
    ap.add_argument('--tempo', type=float, default=None, help="tempo factor, 1.0 = original speed")
    ap.add_argument('--transpose', type=_transpose_arg, default=None, help="semitones (-24..24) or 'auto'")
    ap.add_argument('--max-poly', type=int, default=None, help="max simultaneous notes (1..3)")
    ap.add_argument('--delay-ms', type=int, default=None, help="delay before the first note")
    ap.add_argument('--reference', type=int, default=None, help="MIDI note played by medium degree 1")
    ap.add_argument('--save-config', action='store_true', help="write the effective settings back to the config file")
    ap.add_argument('--dry-run', action='store_true', help="log keystrokes instead of sending them")
    ap.add_argument('--no-hotkeys', action='store_true')
    ap.add_argument('-v', '--verbose', action='store_true')
    return ap

def apply_overrides(cfg: AppConfig, args) -> AppConfig:
    if args.tempo is not None: cfg.tempo_factor = args.tempo
    if args.max_poly is not None: cfg.max_polyphony = args.max_poly
    if args.delay_ms is not None: cfg.start_delay_ms = args.delay_ms
    if args.reference is not None: cfg.reference_midi_note = args.reference
    if args.transpose not in (None, 'auto'):
        cfg.transpose = args.transpose
    return cfg.normalized()

def _start_hotkeys(app: App):
    from pynput import keyboard
    hk = app.cfg.hotkeys
    listener = keyboard.GlobalHotKeys({
        hotkey_spec(hk.play_pause): app.toggle_playback,
        hotkey_spec(hk.stop): app.stop,
    })
    listener.start()
    return listener

def run(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _init_logging(args.verbose)

    cfg = apply_overrides(AppConfig.load_or_default(args.config), args)
    injector = LoggingInjector() if args.dry_run else PynputInjector(cfg.key_mapping.all_keys())
    app = App(cfg, injector)

    try:
        s = app.load_file(args.midi)
    except DecodeError as e:
        print(f"無法讀取 MIDI：{e}", file=sys.stderr)
        return 2
    if args.transpose == 'auto':
        logging.info("Suggested transpose: %+d", app.apply_suggested_transpose())

    print(f"{os.path.basename(args.midi)}: {s.note_count} notes, {s.track_count} tracks, "
          f"{s.duration_ms / 1000:.1f}s, {app.midi.start_bpm:.0f} BPM, pitch {s.min_pitch}-{s.max_pitch}, transpose {app.cfg.transpose:+d}")
    if args.save_config:
        app.get_config().save(args.config)

    listener = None if (args.dry_run or args.no_hotkeys) else _start_hotkeys(app)
    try:
        if not app.play():
            print("沒有可演奏的音符（音域或鍵位設定不符）", file=sys.stderr)
            return 1
        while app.is_playing:
            time.sleep(0.1)
    except KeyboardInterrupt:
        app.stop()
    finally:
        app.engine.wait(1.0)
        if listener is not None:
            listener.stop()
    return 0

def main():
    setup_crashlog()
    try:
        sys.exit(run())
    except Exception as e:
        try:
            log_exception("Top-level exception", e)
        except OSError:
            pass
        logging.error("未捕捉的例外：%s", e, exc_info=True)
        print("程式發生錯誤，請到 logs/ 資料夾看 app.log 與 error-*.txt", file=sys.stderr)
        sys.exit(1)

if __name__ == '__main__':
    main()
