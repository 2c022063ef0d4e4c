"""
ConnectivityMonitor — backend reachability as a tri-state status.

probe() is the blocking health check (worker thread); it returns a status and
never writes one. refresh() is what the controller calls from the loop: it
flips the status to CHECKING, runs probe() on the dispatcher and applies and
announces the result back on the loop.

Only one health request is ever outstanding; a probe asked for while another
is running is coalesced into it.
"""

import threading

from .config import log
from .errors import ApiTimeoutError, TransportError, RemoteStatusError
from .state import ConnectionStatus, ConnectionState


class ConnectivityMonitor:

    def __init__(self, api, dispatcher=None):
        self._api = api
        self._dispatcher = dispatcher
        self._probe_lock = threading.Lock()
        self._refresh_in_flight = False
        self._listeners = []
        self.status = ConnectionStatus()

    @property
    def in_flight(self):
        return self._probe_lock.locked()

    def subscribe(self, callback):
        """callback(status) runs on the loop after every status change."""
        self._listeners.append(callback)

    # ─── Blocking probe ──────────────────────────────────────

    def probe(self):
        if not self._probe_lock.acquire(blocking=False):
            log.debug("Probe already in flight — coalescing")
            return self.status
        try:
            return self._check()
        finally:
            self._probe_lock.release()

    def _check(self):
        try:
            self._api.health()
        except ApiTimeoutError as e:
            log.warning("Backend OFFLINE — %s", e)
            return ConnectionStatus.down(str(e))
        except RemoteStatusError as e:
            log.warning("Backend OFFLINE — health returned HTTP %d", e.status_code)
            return ConnectionStatus.down(f"HTTP {e.status_code}")
        except TransportError as e:
            log.warning("Backend OFFLINE — %s", e)
            return ConnectionStatus.down(str(e) or "Connection error")
        log.info("Backend ONLINE")
        return ConnectionStatus.ok()

    # ─── Loop side ───────────────────────────────────────────

    def refresh(self):
        """Non-blocking re-probe. Returns False if one was already running."""
        if self._refresh_in_flight:
            return False
        self._refresh_in_flight = True
        self._set(ConnectionStatus(ConnectionState.CHECKING, None, self.status.checked_at))
        self._dispatcher.submit(self.probe, self._on_probed)
        return True

    def _on_probed(self, result):
        self._refresh_in_flight = False
        if isinstance(result, Exception):
            result = ConnectionStatus.down(str(result) or "Connection error")
        self._set(result)

    def _set(self, status):
        self.status = status
        for callback in list(self._listeners):
            try:
                callback(status)
            except Exception as e:
                log.error("Connection listener error: %s", e, exc_info=True)
