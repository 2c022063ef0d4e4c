"""
Remote HotSpot API calls.

All methods are blocking (called from worker threads, never from the loop).
They return the decoded JSON body and raise ApiError subclasses:
ApiTimeoutError / TransportError for network-level failures,
RemoteStatusError for non-2xx answers. No retries; callers decide what a
failure means (the adapter turns it into stale synthetic data).
"""

import requests

from .config import log
from .constants import DEFAULT_API_URL, HEALTH_TIMEOUT_SEC, API_TIMEOUT_SEC, LOGS_LIMIT
from .errors import TransportError, ApiTimeoutError, RemoteStatusError
from . import http_client


class HotspotApi:

    def __init__(self, base_url=DEFAULT_API_URL, session=None,
                 timeout=API_TIMEOUT_SEC, health_timeout=HEALTH_TIMEOUT_SEC):
        self.base_url = base_url.rstrip("/")
        self._http = session if session is not None else http_client.create_session()
        self._timeout = timeout
        self._health_timeout = health_timeout

    def reset(self):
        """Drop pooled connections after the backend went away."""
        self._http = http_client.reset_session(self._http)

    # ─── Transport ───────────────────────────────────────────

    def _request(self, method, path, timeout=None, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            resp = self._http.request(method, url, timeout=timeout or self._timeout, **kwargs)
        except requests.Timeout as e:
            log.warning("%s %s timed out: %s", method, path, e)
            raise ApiTimeoutError() from e
        except requests.RequestException as e:
            log.warning("%s %s network error: %s", method, path, e)
            raise TransportError(str(e) or "Connection error") from e

        if not 200 <= resp.status_code < 300:
            log.warning("%s %s failed: HTTP %d — %s", method, path,
                        resp.status_code, (resp.text or "")[:200])
            raise RemoteStatusError(resp.status_code, resp.reason or "")

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {path}") from e

    # ─── Endpoints ───────────────────────────────────────────

    def health(self):
        return self._request("GET", "/api/health", timeout=self._health_timeout)

    def hotspot_stats(self):
        return self._request("GET", "/api/hotspot/stats")

    def hotspot_config(self):
        return self._request("GET", "/api/hotspot/config")

    def update_hotspot_config(self, config):
        return self._request("PUT", "/api/hotspot/config", json=config)

    def active_users(self):
        return self._request("GET", "/api/hotspot/active-users")

    def monitoring_metrics(self):
        return self._request("GET", "/api/monitoring/metrics")

    def system_logs(self, limit=LOGS_LIMIT):
        return self._request("GET", "/api/logs", params={"limit": limit})

    def analyze(self, code):
        return self._request("POST", "/api/hotspot/analyze", json={"code": code})
