import os
import sys
import threading

from wwmp import __version__
from wwmp.utils import crashlog


def dumps(prefix):
    d = os.environ["WWMP_LOG_DIR"]
    return sorted(os.path.join(d, n) for n in os.listdir(d) if n.startswith(prefix + "-"))


def test_log_exception_writes_header_and_traceback():
    try:
        raise ValueError("bad tick")
    except ValueError as e:
        path = crashlog.log_exception("load_file", e)
    text = open(path, encoding="utf-8").read()
    assert text.startswith("[load_file] ValueError: bad tick\n")
    assert f"wwmp {__version__}" in text
    assert "thread MainThread" in text
    assert "raise ValueError" in text


def test_dumps_in_the_same_second_do_not_collide():
    paths = {crashlog.log_exception("again", RuntimeError(str(i))) for i in range(3)}
    assert len(paths) == 3
    assert sorted(paths) == dumps("error")


def test_worker_thread_crash_is_dumped(monkeypatch):
    # keep the test process's own hooks and faulthandler untouched
    monkeypatch.setattr(crashlog, "_fault_file", object())
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)
    monkeypatch.setattr(sys, "__excepthook__", lambda *a: None)
    crashlog.setup_crashlog()

    def boom():
        raise KeyError("worker")

    t = threading.Thread(target=boom, name="wwmp-playback")
    t.start()
    t.join()
    (path,) = dumps("crash")
    text = open(path, encoding="utf-8").read()
    assert text.startswith("UNCAUGHT EXCEPTION\n")
    assert "thread wwmp-playback" in text
    assert "KeyError: 'worker'" in text
