# utils/crashlog.py
"""Crash and error dumps written next to app.log (see utils.path.log_dir).

Each dump starts with the wwmp / Python version and the failing thread name,
since most crashes come from the playback worker rather than the main thread.
"""
import datetime, faulthandler, logging, os, sys, threading, traceback
from wwmp import __version__
from wwmp.utils.path import log_dir

logger = logging.getLogger(__name__)

_fault_file = None

def _new_log_path(prefix: str = "crash") -> str:
    # 同一秒內的多次錯誤不互相覆蓋
    stamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    return os.path.join(log_dir(), f"{prefix}-{stamp}.txt")

def _write_dump(prefix: str, headline: str, exc_type, exc, tb) -> str:
    path = _new_log_path(prefix)
    with open(path, "w", encoding="utf-8") as out:
        out.write(headline + "\n")
        out.write(f"wwmp {__version__}, Python {sys.version.split()[0]}, thread {threading.current_thread().name}\n")
        out.write("-" * 60 + "\n")
        out.writelines(traceback.format_exception(exc_type, exc, tb))
    return path

def setup_crashlog():
    """Native faults go to native-*.txt; uncaught exceptions (any thread) to crash-*.txt."""
    global _fault_file
    if _fault_file is None:
        try:
            _fault_file = open(_new_log_path("native"), "w", encoding="utf-8")
            faulthandler.enable(_fault_file, all_threads=True)
        except OSError as e:
            logger.warning("Native crash log disabled: %s", e)
            _fault_file = None

    def _hook(exc_type, exc, tb):
        try:
            _write_dump("crash", "UNCAUGHT EXCEPTION", exc_type, exc, tb)
        finally:
            sys.__excepthook__(exc_type, exc, tb)
    sys.excepthook = _hook

    def _thread_hook(args):
        if args.exc_type is SystemExit:
            return
        _hook(args.exc_type, args.exc_value, args.exc_traceback)
    threading.excepthook = _thread_hook

def log_exception(title: str, exc: BaseException) -> str:
    """Dump a handled exception to error-*.txt and return the file path."""
    path = _write_dump("error", f"[{title}] {type(exc).__name__}: {exc}", type(exc), exc, exc.__traceback__)
    logger.debug("Error dump written to %s", path)
    return path
