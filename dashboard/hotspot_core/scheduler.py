"""
DataSyncScheduler — per-view polling on the main loop.

Rules:
  * only the active view has a timer; switching views cancels it
    (after_cancel) and bumps a generation token
  * no timer runs unless the connection is CONNECTED; the next CONNECTED
    status resumes polling with an immediate fetch
  * ticks are serialized: the next timer is armed only after the previous
    fetch's result has been applied
  * a fetch that finishes after its view was switched away is discarded

Fetchers are blocking callables returning a Fetched; they run on the
dispatcher's worker threads and their results are applied on the loop.
"""

from .config import log
from .state import CADENCES, SyncResult, View


class DataSyncScheduler:

    def __init__(self, loop, dispatcher, monitor, fetchers, cadences=None):
        self._loop = loop
        self._dispatcher = dispatcher
        self._monitor = monitor
        self._fetchers = dict(fetchers)
        self._cadences = dict(cadences or CADENCES)
        self._listeners = []

        self.results = {}
        self.active_view = None
        self.auto_refresh = True

        self._started = False
        self._timer_id = None
        self._generation = 0
        self._in_flight = None      # generation of the running fetch, if any

        monitor.subscribe(self.on_connection_change)

    def subscribe(self, callback):
        """callback(SyncResult) runs on the loop whenever a view's result changes."""
        self._listeners.append(callback)

    # ─── Lifecycle ───────────────────────────────────────────

    def start(self, view=View.DASHBOARD):
        self._started = True
        self.activate(view)

    def stop(self):
        """Cancel the timer and forget any fetch still in flight."""
        self._started = False
        self._cancel_timer()
        self._generation += 1
        self._in_flight = None
        log.info("Sync stopped")

    def activate(self, view):
        """Make `view` the active one. Its poll starts now if it can."""
        view = View(view)
        if view is self.active_view and self._started and self._has_cycle():
            return
        previous = self.active_view
        self._cancel_timer()
        self._generation += 1
        self._in_flight = None
        self.active_view = view
        log.info("Active view %s → %s (cadence=%s)", previous and previous.value,
                 view.value, self._cadences.get(view))
        if self._can_poll():
            self._fetch()

    def set_auto_refresh(self, enabled):
        """Pause/resume the timer of the active view without switching."""
        self.auto_refresh = bool(enabled)
        if not self.auto_refresh:
            self._cancel_timer()
        elif self._can_poll() and self._in_flight is None and self._timer_id is None:
            self._fetch()

    def on_connection_change(self, status):
        if not status.connected:
            if self._timer_id is not None:
                log.info("Sync suspended (%s)", status.state.value)
            self._cancel_timer()
            return
        if self._can_poll() and self._in_flight is None and self._timer_id is None:
            log.info("Sync resumed for %s", self.active_view.value)
            self._fetch()

    # ─── Manual trigger ──────────────────────────────────────

    def run_once(self, view, fetch=None, on_done=None):
        """
        Fetch `view` now, outside its cadence (the analyzer's only way to
        refresh). For the active polled view this replaces the pending tick.
        Returns False when a fetch for the active view is already running.
        on_done(SyncResult) runs on the loop; it gets None if the result
        was discarded because the view changed meanwhile.
        """
        view = View(view)
        if view is self.active_view and self._in_flight is not None:
            return False
        if view is self.active_view:
            self._cancel_timer()
            return self._fetch(fetch, on_done)

        # Not the active view: the result is dropped by _apply anyway
        log.debug("run_once for inactive view %s ignored", view.value)
        return False

    # ─── Internals ───────────────────────────────────────────

    def _has_cycle(self):
        return self._timer_id is not None or self._in_flight is not None

    def _cadence(self):
        return self._cadences.get(self.active_view)

    def _can_poll(self):
        return (self._started
                and self.auto_refresh
                and self.active_view is not None
                and self._cadence() is not None
                and self._monitor.status.connected)

    def _cancel_timer(self):
        if self._timer_id is not None:
            self._loop.after_cancel(self._timer_id)
            self._timer_id = None

    def _tick(self):
        self._timer_id = None
        try:
            if self._can_poll() and self._in_flight is None:
                self._fetch()
        except Exception as e:
            log.error("_tick error: %s", e, exc_info=True)

    def _fetch(self, fetcher=None, on_done=None):
        view = self.active_view
        fetcher = fetcher or self._fetchers.get(view)
        if fetcher is None:
            return False
        token = self._generation
        self._in_flight = token
        self._dispatcher.submit(
            fetcher, lambda result: self._on_fetched(view, token, result, on_done))
        return True

    def _on_fetched(self, view, token, result, on_done=None):
        sync = None
        if token != self._generation:
            log.debug("Discarding %s result from an old view generation", view.value)
        else:
            self._in_flight = None
            sync = self._apply(view, token, result)
            if self._can_poll() and self._timer_id is None:
                self._timer_id = self._loop.after(int(self._cadence() * 1000), self._tick)
        if on_done is not None:
            on_done(sync)

    def _apply(self, view, token, result):
        if token != self._generation or view is not self.active_view:
            log.debug("Discarding %s result — view no longer active", view.value)
            return None
        if isinstance(result, Exception):
            # Fetchers are adapter-guarded; this is a bug, keep the previous data
            previous = self.results.get(view)
            sync = SyncResult(view, previous.data if previous else None,
                              stale=True, error=str(result))
        else:
            sync = SyncResult(view, result.data, stale=result.stale, error=result.error)
        self.results[view] = sync
        for callback in list(self._listeners):
            try:
                callback(sync)
            except Exception as e:
                log.error("Sync listener error: %s", e, exc_info=True)
        return sync
