"""
Dispatcher — runs blocking calls off the main loop and hands results back on it.

Worker threads never touch controller state directly: each finished job is
queued, and the loop drains the queue every DISPATCH_POLL_MS via after().
The loop is anything with Tk's after(ms, fn) / after_cancel(id).
"""

import queue
import threading

from .config import log
from .constants import DISPATCH_POLL_MS


class Dispatcher:

    def __init__(self, loop, poll_ms=DISPATCH_POLL_MS):
        self._loop = loop
        self._poll_ms = poll_ms
        self._queue = queue.Queue()
        self._poll_id = None
        self._running = False

    def start(self):
        if not self._running:
            self._running = True
            self._poll_id = self._loop.after(self._poll_ms, self._poll)

    def stop(self):
        self._running = False
        if self._poll_id is not None:
            self._loop.after_cancel(self._poll_id)
            self._poll_id = None

    def submit(self, fn, on_done=None):
        """
        Run fn() on a daemon thread; on_done(result) later runs on the loop.
        An exception from fn() is passed to on_done as the result.
        """
        threading.Thread(target=self._run, args=(fn, on_done), daemon=True).start()

    def _run(self, fn, on_done):
        try:
            result = fn()
        except Exception as e:
            log.warning("Worker error in %s: %s", getattr(fn, "__name__", fn), e, exc_info=True)
            result = e
        self._queue.put((on_done, result))

    # ─── Loop side ───────────────────────────────────────────

    def _poll(self):
        try:
            self.drain()
        except Exception as e:
            log.error("_poll error: %s", e, exc_info=True)
        if self._running:
            self._poll_id = self._loop.after(self._poll_ms, self._poll)

    def drain(self, limit=100):
        """Apply finished jobs. Returns how many were handled."""
        handled = 0
        while handled < limit:
            try:
                on_done, result = self._queue.get_nowait()
            except queue.Empty:
                break
            handled += 1
            if on_done is None:
                continue
            try:
                on_done(result)
            except Exception as e:
                log.error("Callback error in %s: %s",
                          getattr(on_done, "__name__", on_done), e, exc_info=True)
        return handled
