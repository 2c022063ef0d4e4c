"""
DashboardController — wires auth, connectivity and sync onto one main loop.

Everything that changes controller state runs on the loop thread. Blocking
work (simulated login latency, health probe, API fetches) goes through the
Dispatcher and comes back through its queue:

  Dispatcher._poll()       — applies finished worker results        (every 200ms)
  DataSyncScheduler._tick  — the active view's poll                 (view cadence)
  ConnectivityMonitor      — re-probed on start and on view change

The loop is a withdrawn Tk root when run() is used, or any object with
after()/after_cancel() that the caller passes in.
"""

import tkinter as tk

from .adapter import ResultAdapter
from .api import HotspotApi
from .auth import AuthSessionManager, AuthResult, Registration
from .config import log, Settings, configure_logging, LOG_FILE
from .constants import (
    CONTROLLER_VERSION, KEY_USER_PREFERENCES, KEY_ANALYSIS_CACHE,
    STATS_RANGES, DEFAULT_STATS_RANGE, DEVICE_CONFIG_SAMPLE,
)
from .credentials import CredentialStore
from .dispatch import Dispatcher
from .errors import NotAuthenticatedError
from .network import ConnectivityMonitor
from .scheduler import DataSyncScheduler
from .state import View, ConnectionState
from .storage import JsonFileStore, save_json, load_json_or_discard


class DashboardController:

    def __init__(self, loop=None, settings=None, store=None, api=None,
                 dispatcher=None, adapter=None, auth=None):
        self.settings = settings or Settings.load()
        self._loop = loop
        self._store = store if store is not None else JsonFileStore(self.settings.data_dir)
        self.api = api or HotspotApi(
            self.settings.api_url,
            timeout=self.settings.request_timeout,
            health_timeout=self.settings.health_timeout,
        )
        self.adapter = adapter or ResultAdapter()
        self.auth = auth or AuthSessionManager(
            CredentialStore(self._store), self._store,
            latency=self.settings.login_latency,
        )
        self._dispatcher = dispatcher
        self.monitor = None
        self.scheduler = None
        self.stats_range = DEFAULT_STATS_RANGE
        self._auth_in_flight = False
        self._analyzing = False
        if loop is not None:
            self._bind_loop(loop)

    def _bind_loop(self, loop):
        self._loop = loop
        if self._dispatcher is None:
            self._dispatcher = Dispatcher(loop)
        self.monitor = ConnectivityMonitor(self.api, self._dispatcher)
        self.monitor.subscribe(self._on_connection_change)
        self.scheduler = DataSyncScheduler(loop, self._dispatcher, self.monitor, {
            View.DASHBOARD: lambda: self.adapter.fetch_stats(self.api),
            View.MONITORING: lambda: self.adapter.fetch_monitoring(
                self.api, self.settings.logs_limit),
            View.STATS: lambda: self.adapter.fetch_usage(self.api, self.stats_range),
        })

    # ─── Lifecycle ───────────────────────────────────────────

    def start(self):
        """Start dispatching; resume straight into the dashboard if a session survived."""
        self._dispatcher.start()
        self.monitor.refresh()
        if self.auth.is_authenticated():
            self._enter_dashboard()
        log.info("Controller v%s started (authenticated=%s, api=%s)",
                 CONTROLLER_VERSION, self.auth.is_authenticated(), self.api.base_url)

    def shutdown(self):
        if self.scheduler is not None:
            self.scheduler.stop()
        if self._dispatcher is not None:
            self._dispatcher.stop()
        log.info("Controller shut down.")

    def run(self):
        """Own a hidden Tk root as the main loop. Blocks; call from the main thread."""
        configure_logging(LOG_FILE)
        root = tk.Tk()
        root.withdraw()
        self._bind_loop(root)
        self.start()
        try:
            root.mainloop()
        finally:
            self.shutdown()

    def _enter_dashboard(self):
        prefs = self.preferences()
        try:
            view = View(prefs.get("last_view", View.DASHBOARD.value))
        except ValueError:
            view = View.DASHBOARD
        stats_range = prefs.get("stats_range")
        self.stats_range = stats_range if stats_range in STATS_RANGES else DEFAULT_STATS_RANGE
        self.scheduler.auto_refresh = prefs.get("auto_refresh", True)
        # Coalesced with the startup probe when that one is still running
        self.monitor.refresh()
        self.scheduler.start(view)

    def _leave_dashboard(self):
        self.scheduler.stop()
        self.scheduler.results.clear()

    # ─── Auth ────────────────────────────────────────────────

    def login(self, username, password, on_done=None):
        """Runs the login off the loop; on_done(AuthResult) comes back on it."""
        return self._run_auth(lambda: self.auth.login(username, password), on_done)

    def register(self, registration: Registration, on_done=None):
        return self._run_auth(lambda: self.auth.register(registration), on_done)

    def _run_auth(self, call, on_done):
        if self._auth_in_flight:
            return False
        self._auth_in_flight = True

        def finished(result):
            self._auth_in_flight = False
            if isinstance(result, Exception):
                log.error("Auth call crashed: %s", result)
                result = AuthResult(error=NotAuthenticatedError("Authentication failed"))
            if result.success:
                self._enter_dashboard()
            if on_done is not None:
                on_done(result)

        self._dispatcher.submit(call, finished)
        return True

    def logout(self):
        self.auth.logout()
        self._leave_dashboard()

    def change_password(self, current_password, new_password):
        return self.auth.change_password(current_password, new_password)

    def is_authenticated(self):
        return self.auth.is_authenticated()

    # ─── Views ───────────────────────────────────────────────

    def set_active_view(self, view):
        """Switch views: re-probe connectivity and move the poll timer."""
        if not self.auth.is_authenticated():
            self._leave_dashboard()
            return False
        view = View(view)
        self.monitor.refresh()
        self.scheduler.activate(view)
        self._save_preferences(last_view=view.value)
        return True

    def set_auto_refresh(self, enabled):
        self.scheduler.set_auto_refresh(enabled)
        self._save_preferences(auto_refresh=bool(enabled))

    def set_stats_range(self, time_range):
        if time_range not in STATS_RANGES:
            raise ValueError(f"Unknown time range: {time_range!r}")
        self.stats_range = time_range
        self._save_preferences(stats_range=time_range)
        if self.scheduler.active_view is View.STATS:
            self.scheduler.run_once(View.STATS)

    def result(self, view):
        return self.scheduler.results.get(View(view))

    # ─── Analyzer ────────────────────────────────────────────

    def run_analysis(self, code=None, on_done=None):
        """
        Analyse `code`, or the device configuration export when code is None.
        The adapted report is cached in analysis_cache.
        """
        if not self.auth.is_authenticated() or self._analyzing:
            return False
        from_device = code is None
        if not from_device and not code.strip():
            return False
        source = DEVICE_CONFIG_SAMPLE if from_device else code
        if self.scheduler.active_view is not View.ANALYZER:
            self.scheduler.activate(View.ANALYZER)
        self._analyzing = True

        def finished(sync):
            self._analyzing = False
            if sync is None:
                return
            save_json(self._store, KEY_ANALYSIS_CACHE, {
                "report": sync.data, "stale": sync.stale,
            })
            if on_done is not None:
                on_done(sync)

        started = self.scheduler.run_once(
            View.ANALYZER,
            lambda: self.adapter.fetch_analysis(self.api, source, from_device=from_device),
            finished,
        )
        if not started:
            self._analyzing = False
        return started

    def cached_analysis(self):
        return load_json_or_discard(self._store, KEY_ANALYSIS_CACHE)

    def update_config(self, config, on_done=None):
        """PUT the HotSpot config; on_done(Fetched) runs on the loop."""
        self._dispatcher.submit(lambda: self.adapter.update_config(self.api, config), on_done)

    def load_config(self, on_done=None):
        self._dispatcher.submit(lambda: self.adapter.fetch_config(self.api), on_done)

    # ─── Preferences ─────────────────────────────────────────

    def preferences(self):
        prefs = load_json_or_discard(self._store, KEY_USER_PREFERENCES, default={})
        return prefs if isinstance(prefs, dict) else {}

    def _save_preferences(self, **changes):
        prefs = self.preferences()
        prefs.update(changes)
        save_json(self._store, KEY_USER_PREFERENCES, prefs)

    # ─── Connectivity ────────────────────────────────────────

    def _on_connection_change(self, status):
        if status.state is ConnectionState.DISCONNECTED:
            log.warning("Backend unreachable: %s", status.error)
            self.api.reset()
