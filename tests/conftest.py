# tests/conftest.py
import sys
import os
import time
import signal
import threading
import traceback
import faulthandler


def _lingering_threads():
    main = threading.main_thread()
    return [t for t in threading.enumerate() if t is not main]


def _split_threads(live):
    """Return (aiosqlite_workers, others), each a list of (thread, stack)."""
    frames = sys._current_frames()
    workers, others = [], []

    for t in live:
        fr = frames.get(t.ident)
        stack = traceback.extract_stack(fr) if fr else []
        in_aiosqlite = "aiosqlite" in t.name.lower() or any(
            "aiosqlite" in (frm.filename or "") for frm in stack
        )
        (workers if in_aiosqlite else others).append((t, stack))
    return workers, others


def _schedule_sigterm(delay_sec: float = 3.0):
    """Send SIGTERM to the test process after ``delay_sec`` from a daemon thread."""

    def _killer(pid: int, d: float):
        time.sleep(d)
        os.kill(pid, signal.SIGTERM)

    t = threading.Thread(target=_killer, args=(os.getpid(), delay_sec), name="pytest-sigterm-killer", daemon=True)
    t.start()


def pytest_sessionfinish(session, exitstatus):
    """
    Report connections a test forgot to close: each open Database keeps an
    aiosqlite worker thread alive, which would hang interpreter shutdown.
    """
    tr = session.config.pluginmanager.getplugin("terminalreporter")
    if not tr:
        return

    workers, others = _split_threads(_lingering_threads())
    non_daemon = [t for t, _ in workers + others if not t.daemon]
    if not non_daemon:
        return

    tr.write_sep("=", "LIVE THREADS AT SESSION END")
    for t in non_daemon:
        tr.write_line(f"name={t.name!r} ident={t.ident} daemon={t.daemon} alive={t.is_alive()}")
    faulthandler.dump_traceback(file=sys.stderr, all_threads=True)

    if workers:
        tr.write_sep("-", "NOTICE")
        tr.write_line(
            "Detected lingering aiosqlite worker threads. "
            "Make sure every Database is closed with `await db.close()` "
            "or opened with `async with`."
        )
        _schedule_sigterm(3.0)
