"""
Shared fixtures: a manual main loop, synchronous/deferred dispatchers and an
in-memory store, so nothing in the suite sleeps or opens a socket.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from hotspot_core.auth import AuthSessionManager
from hotspot_core.credentials import CredentialStore
from hotspot_core.errors import TransportError
from hotspot_core.state import ConnectionStatus
from hotspot_core.storage import MemoryStore


class ManualLoop:
    """Stand-in for a Tk root: after()/after_cancel() on a virtual clock."""

    def __init__(self):
        self.now_ms = 0
        self._next_id = 0
        self.pending = {}       # id -> (due_ms, fn)

    def after(self, ms, fn):
        self._next_id += 1
        timer_id = f"after#{self._next_id}"
        self.pending[timer_id] = (self.now_ms + ms, fn)
        return timer_id

    def after_cancel(self, timer_id):
        self.pending.pop(timer_id, None)

    def delays(self):
        return sorted(due - self.now_ms for due, _ in self.pending.values())

    def advance(self, ms):
        """Move the clock forward, firing every callback that comes due."""
        target = self.now_ms + ms
        while True:
            due = [(d, tid) for tid, (d, _) in self.pending.items() if d <= target]
            if not due:
                break
            d, tid = min(due)
            _, fn = self.pending.pop(tid)
            self.now_ms = d
            fn()
        self.now_ms = target


class InlineDispatcher:
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = []

    def start(self):
        pass

    def stop(self):
        pass

    def submit(self, fn, on_done=None):
        self.submitted.append(fn)
        try:
            result = fn()
        except Exception as e:
            result = e
        if on_done is not None:
            on_done(result)


class DeferredDispatcher:
    """Holds submitted work until the test releases it."""

    def __init__(self):
        self.jobs = []

    def start(self):
        pass

    def stop(self):
        pass

    def submit(self, fn, on_done=None):
        self.jobs.append((fn, on_done))

    def run_next(self):
        fn, on_done = self.jobs.pop(0)
        try:
            result = fn()
        except Exception as e:
            result = e
        if on_done is not None:
            on_done(result)

    def run_all(self):
        while self.jobs:
            self.run_next()


class FakeMonitor:
    """ConnectivityMonitor double whose status the test sets directly."""

    def __init__(self, status=None):
        self.status = status or ConnectionStatus.ok()
        self._listeners = []
        self.refreshes = 0

    def subscribe(self, callback):
        self._listeners.append(callback)

    def refresh(self):
        self.refreshes += 1
        return True

    def set(self, status):
        self.status = status
        for callback in list(self._listeners):
            callback(status)


class Clock:
    """Controllable UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def loop():
    return ManualLoop()


@pytest.fixture
def dispatcher():
    return InlineDispatcher()


@pytest.fixture
def deferred():
    return DeferredDispatcher()


@pytest.fixture
def monitor():
    return FakeMonitor()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def credentials(store):
    return CredentialStore(store)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def auth(credentials, store, clock, sleeps):
    return AuthSessionManager(credentials, store, latency=1.2,
                              clock=clock, sleep=sleeps.append)


@pytest.fixture
def offline_api():
    """HotspotApi double with every endpoint failing at the transport level."""
    api = MagicMock()
    for name in ("health", "hotspot_stats", "hotspot_config", "update_hotspot_config",
                 "active_users", "monitoring_metrics", "system_logs", "analyze"):
        getattr(api, name).side_effect = TransportError("Connection refused")
    return api
