"""
ResultAdapter — maps remote payloads onto the fixed view-model shapes.

Every fetch_* method wraps one API call: live data is adapted, and any
transport, status or shape failure is replaced with synthetic data of the
same shape, flagged stale. Background sync never sees an exception from here.

Synthetic values are random but always inside the documented ranges, so the
dashboard stays demonstrable without a live backend.
"""

import random
import re
from functools import partial
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from .config import log
from .constants import (
    LOGS_LIMIT, LOG_LEVELS, SYNTHETIC_METRICS, SYNTHETIC_UPTIME,
    SYNTHETIC_LOG_MESSAGES, SYNTHETIC_SECURITY_WARNINGS,
    STATS_RANGES, DEFAULT_STATS_RANGE,
)
from .errors import ApiError, describe_error
from .models import utcnow, to_iso
from .state import Fetched

PASSED = "passed"
WARNING = "warning"
ERROR = "error"

TOTAL_CHECKS = 6

_DEFAULT_CONFIG = {
    "interface": "wlan1",
    "enabled": True,
    "authentication": "local",
    "encryption": "wpa2",
    "timeout": "1h",
    "address_pool": "192.168.1.100-192.168.1.200",
    "dns_servers": "8.8.8.8,8.8.4.4",
    "max_users": 50,
}

_SYNTHETIC_ACTIVE_USERS = [
    {"id": 1, "username": "user1", "ip": "192.168.1.101", "mac": "00:11:22:33:44:55",
     "connected": "10:30", "traffic": "45.2 MB", "session_time": "2h 15m"},
    {"id": 2, "username": "user2", "ip": "192.168.1.102", "mac": "00:11:22:33:44:56",
     "connected": "09:15", "traffic": "128.7 MB", "session_time": "3h 45m"},
    {"id": 3, "username": "guest123", "ip": "192.168.1.103", "mac": "00:11:22:33:44:57",
     "connected": "11:45", "traffic": "15.8 MB", "session_time": "45m"},
]

_DEVICE_TYPES = [
    {"name": "Mobile", "value": 45},
    {"name": "Laptop", "value": 30},
    {"name": "Tablet", "value": 15},
    {"name": "Other", "value": 10},
]


def extract_param(text, key):
    """Value of `key=value` inside a RouterOS-style parameter string, or None."""
    if not text or not isinstance(text, str):
        return None
    match = re.search(rf"(?:^|\s){re.escape(key)}=(\S+)", text)
    return match.group(1) if match else None


def _number(value, name):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValueError(f"'{name}' is not numeric: {value!r}")
    return value


def _str_list(value):
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _parse_timestamp(value):
    """ISO-8601 string or epoch (seconds or ms) → aware datetime."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


class ResultAdapter:

    def __init__(self, rng=None, clock=utcnow):
        self._rng = rng or random.Random()
        self._clock = clock

    def _between(self, bounds):
        low, high = bounds
        return self._rng.randrange(low, high)

    # ─── Failure boundary ────────────────────────────────────

    def _guard(self, label, call, adapt, synthesize):
        try:
            raw = call()
        except ApiError as e:
            log.warning("%s fetch failed (%s) — using synthetic data", label, e)
            return Fetched(synthesize(), stale=True, error=describe_error(e))
        try:
            return Fetched(adapt(raw))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log.warning("%s payload unusable (%s) — using synthetic data", label, e)
            return Fetched(synthesize(), stale=True, error=f"Malformed {label} payload")

    # ─── Summary stats (dashboard view) ──────────────────────

    def adapt_stats(self, raw):
        active = int(raw.get("usuarios_activos") or 0)
        now = self._clock()
        reported_at = _parse_timestamp(raw.get("timestamp")) or now
        return {
            "active_users": active,
            # Backend does not report traffic yet
            "total_traffic": raw.get("total_traffic", self._rng.randrange(100, 600)),
            "hotspot_status": "active" if active > 0 else "inactive",
            "timestamp": to_iso(reported_at),
            "recent_activity": [
                {"description": f"{active} users connected", "timestamp": to_iso(reported_at)},
                {"description": "HotSpot service running normally",
                 "timestamp": to_iso(now - timedelta(minutes=5))},
                {"description": "Backend connected",
                 "timestamp": to_iso(now - timedelta(minutes=10))},
            ],
        }

    def synthetic_stats(self):
        now = self._clock()
        return {
            "active_users": self._rng.randrange(5, 30),
            "total_traffic": self._rng.randrange(100, 600),
            "hotspot_status": "active",
            "timestamp": to_iso(now),
            "recent_activity": [
                {"description": "User connected from 192.168.1.105",
                 "timestamp": to_iso(now - timedelta(minutes=5))},
                {"description": "Firewall configuration updated",
                 "timestamp": to_iso(now - timedelta(minutes=10))},
                {"description": "Scheduled reboot completed",
                 "timestamp": to_iso(now - timedelta(minutes=15))},
            ],
        }

    def fetch_stats(self, api):
        return self._guard("stats", api.hotspot_stats, self.adapt_stats, self.synthetic_stats)

    # ─── HotSpot configuration ───────────────────────────────

    def adapt_config(self, raw):
        hotspots = raw.get("HotSpots") or []
        config = dict(_DEFAULT_CONFIG)
        config.update({
            "enabled": len(hotspots) > 0,
            "hotspots": hotspots,
            "users": raw.get("Users") or [],
            "profiles": raw.get("Profiles") or [],
        })
        return config

    def synthetic_config(self):
        return dict(_DEFAULT_CONFIG)

    def fetch_config(self, api):
        return self._guard("config", api.hotspot_config, self.adapt_config, self.synthetic_config)

    def update_config(self, api, config):
        """PUT the config. Offline, the change is acknowledged in demo mode."""
        return self._guard(
            "config update",
            lambda: api.update_hotspot_config(config),
            lambda echoed: echoed if echoed is not None else {"success": True},
            lambda: {"success": True, "message": "Configuration updated (demo mode)"},
        )

    # ─── Active users ────────────────────────────────────────

    def _user_field(self, entry, key):
        if isinstance(entry, dict):
            return entry.get(key)
        return extract_param(entry, key)

    def adapt_active_users(self, raw):
        entries = raw.get("active_users") if isinstance(raw, dict) else None
        if not isinstance(entries, list):
            return []
        users = []
        for i, entry in enumerate(entries):
            field = partial(self._user_field, entry)
            users.append({
                "id": i + 1,
                "username": field("user") or f"user{i + 1}",
                "ip": field("address") or f"192.168.1.{100 + i}",
                "mac": field("mac-address") or f"00:11:22:33:44:{50 + i}",
                "connected": field("uptime") or
                    f"{self._rng.randrange(12)}:{self._rng.randrange(60):02d}",
                "traffic": f"{self._rng.uniform(10, 110):.1f} MB",
                "session_time": field("session-time") or
                    f"{self._rng.randrange(4)}h {self._rng.randrange(60)}m",
            })
        return users

    def synthetic_active_users(self):
        return [dict(user) for user in _SYNTHETIC_ACTIVE_USERS]

    def fetch_active_users(self, api):
        return self._guard("active users", api.active_users,
                           self.adapt_active_users, self.synthetic_active_users)

    # ─── System metrics ──────────────────────────────────────

    def adapt_metrics(self, raw):
        network = raw.get("network") or {}
        metrics = {
            "cpu": _number(raw["cpu"], "cpu"),
            "memory": _number(raw["memory"], "memory"),
            "disk": _number(raw["disk"], "disk"),
            "network": {
                "rx": _number(network.get("rx", 0), "network.rx"),
                "tx": _number(network.get("tx", 0), "network.tx"),
            },
            "uptime": str(raw.get("uptime", "")),
            "temperature": _number(raw.get("temperature", 0), "temperature"),
        }
        if "loadAverage" in raw:
            metrics["load_average"] = str(raw["loadAverage"])
        return metrics

    def synthetic_metrics(self):
        return {
            "cpu": self._between(SYNTHETIC_METRICS["cpu"]),
            "memory": self._between(SYNTHETIC_METRICS["memory"]),
            "disk": self._between(SYNTHETIC_METRICS["disk"]),
            "network": {
                "rx": self._between(SYNTHETIC_METRICS["rx"]),
                "tx": self._between(SYNTHETIC_METRICS["tx"]),
            },
            "uptime": SYNTHETIC_UPTIME,
            "temperature": self._between(SYNTHETIC_METRICS["temperature"]),
            "load_average": f"{self._rng.uniform(0, 3):.2f}",
        }

    def fetch_metrics(self, api):
        return self._guard("metrics", api.monitoring_metrics,
                           self.adapt_metrics, self.synthetic_metrics)

    # ─── System logs ─────────────────────────────────────────

    def adapt_logs(self, raw):
        entries = raw.get("logs") if isinstance(raw, dict) else raw
        if not isinstance(entries, list):
            raise ValueError("expected a list of log entries")
        logs = []
        for i, entry in enumerate(entries):
            level = str(entry.get("level", "info")).lower()
            logs.append({
                "id": entry.get("id", i + 1),
                "timestamp": entry.get("timestamp"),
                "level": level if level in LOG_LEVELS else "info",
                "message": str(entry.get("message", "")),
            })
        return logs

    def synthetic_logs(self, limit=LOGS_LIMIT):
        now = self._clock()
        logs = []
        for i in range(min(limit, 20)):
            level = self._rng.choice(LOG_LEVELS)
            message = self._rng.choice(SYNTHETIC_LOG_MESSAGES)
            logs.append({
                "id": i + 1,
                "timestamp": to_iso(now - timedelta(minutes=5 * i)),
                "level": level,
                "message": f"{message} user{i + 1}" if level == "info" else message,
            })
        return logs

    def fetch_logs(self, api, limit=LOGS_LIMIT):
        return self._guard("logs", lambda: api.system_logs(limit),
                           self.adapt_logs, lambda: self.synthetic_logs(limit))

    # ─── Monitoring group ────────────────────────────────────

    def fetch_monitoring(self, api, limit=LOGS_LIMIT):
        """
        Metrics, active users and logs in parallel; waits for all three.
        Each part falls back on its own, so the group itself never fails.
        """
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="monitoring") as pool:
            futures = {
                "metrics": pool.submit(self.fetch_metrics, api),
                "active_users": pool.submit(self.fetch_active_users, api),
                "logs": pool.submit(self.fetch_logs, api, limit),
            }
            parts = {name: future.result() for name, future in futures.items()}

        stale_parts = [name for name, part in parts.items() if part.stale]
        data = {name: part.data for name, part in parts.items()}
        data["stale_parts"] = stale_parts
        errors = [f"{name}: {parts[name].error}" for name in stale_parts]
        return Fetched(data, stale=bool(stale_parts), error="; ".join(errors) or None)

    # ─── Usage statistics (stats view) ───────────────────────

    def usage_report(self, stats, time_range=DEFAULT_STATS_RANGE):
        """
        Historical usage for the stats view. The backend only reports the live
        user count, so the history series are generated around it.
        """
        if time_range not in STATS_RANGES:
            raise ValueError(f"Unknown time range: {time_range!r}")
        days = {"24h": 1, "7d": 7, "30d": 30, "90d": 90}[time_range]
        points = 24 if time_range == "24h" else days
        rng = self._rng
        return {
            "time_range": time_range,
            "summary": {
                "active_users": stats.get("active_users", 0),
                "total_users": rng.randrange(500, 1500),
                "total_sessions": rng.randrange(2000, 7000),
                "total_traffic_gb": rng.randrange(200, 700),
                "avg_session_minutes": rng.randrange(30, 150),
                "peak_users": rng.randrange(50, 250),
                "peak_time": "14:30",
            },
            "user_activity": [
                {
                    "time": f"{i:02d}:00" if time_range == "24h" else f"Day {i + 1}",
                    "users": rng.randrange(10, 110),
                    "sessions": rng.randrange(20, 220),
                    "traffic": rng.randrange(5, 55),
                }
                for i in range(points)
            ],
            "top_users": [
                {
                    "id": i + 1,
                    "username": f"user{i + 1}",
                    "sessions": rng.randrange(5, 55),
                    "traffic_gb": rng.randrange(1, 11),
                    "avg_duration_minutes": rng.randrange(30, 210),
                }
                for i in range(10)
            ],
            "device_types": [dict(d) for d in _DEVICE_TYPES],
            "hourly_distribution": [
                {"hour": f"{h:02d}:00", "users": rng.randrange(5, 85)}
                for h in range(24)
            ],
        }

    def fetch_usage(self, api, time_range=DEFAULT_STATS_RANGE):
        live = self.fetch_stats(api)
        return Fetched(self.usage_report(live.data, time_range),
                       stale=live.stale, error=live.error)

    # ─── Analysis report (analyzer view) ─────────────────────

    def adapt(self, raw, from_device=False):
        """Six-check report from an analyzer response."""
        if not isinstance(raw, dict):
            raise ValueError("analysis payload must be an object")

        parse_valid = bool(raw.get("parseValid"))
        sem_valid = bool(raw.get("semValid"))
        parse_errors = _str_list(raw.get("parseErrors"))
        sem_errors = _str_list(raw.get("semErrors"))
        warnings = _str_list(raw.get("securityWarnings"))
        tokens = raw.get("tokens") or []
        stats = raw.get("hotspotStats") or {}
        hard_errors = not (parse_valid and sem_valid)

        def status(condition):
            if condition:
                return PASSED
            if warnings and not hard_errors:
                return WARNING
            return ERROR

        token_types = list(dict.fromkeys(
            t.get("type") for t in tokens if isinstance(t, dict) and t.get("type")
        ))
        counts = (
            f"HotSpots: {stats.get('hotspots', 0)}, Users: {stats.get('users', 0)}, "
            f"Bindings: {stats.get('bindings', 0)}"
        )

        checks = [
            {
                "id": 1, "name": "Lexical analysis",
                "status": status(len(tokens) > 0),
                "description": f"{len(tokens)} tokens identified" if tokens
                               else "No tokens could be identified",
                "details": f"Token types: {', '.join(token_types)}" if tokens
                           else "Lexical analysis failed",
            },
            {
                "id": 2, "name": "Syntactic analysis",
                "status": status(parse_valid),
                "description": "Syntax is valid" if parse_valid else "Syntax errors detected",
                "details": "; ".join(parse_errors) or "HotSpot command structure is valid",
            },
            {
                "id": 3, "name": "Semantic analysis",
                "status": status(sem_valid),
                "description": "Semantics are valid" if sem_valid else "Semantic errors detected",
                "details": "; ".join(sem_errors) or "Configuration is semantically valid",
            },
            {
                "id": 4, "name": "Security checks",
                "status": status(not warnings),
                "description": f"{len(warnings)} security warnings" if warnings
                               else "No security issues found",
                "details": "; ".join(warnings) or "Configuration is secure",
            },
            {
                "id": 5, "name": "Configuration statistics",
                "status": status(True),
                "description": counts,
                "details": "Configuration elements counted",
            },
            {
                "id": 6, "name": "Data origin",
                "status": status(True),
                "description": "Configuration read from device" if from_device
                               else "Code entered manually",
                "details": "Live configuration analysis" if from_device
                           else "Custom code analysis",
            },
        ]

        if not hard_errors:
            overall = PASSED
        elif warnings:
            overall = WARNING
        else:
            overall = ERROR

        return {
            "status": overall,
            "total_checks": TOTAL_CHECKS,
            "passed": sum(1 for c in checks if c["status"] == PASSED),
            "warnings": len(warnings),
            "errors": (0 if parse_valid else len(parse_errors) or 1)
                      + (0 if sem_valid else len(sem_errors) or 1),
            "last_analysis": to_iso(self._clock()),
            "from_device": from_device,
            "raw_results": raw,
            "checks": checks,
        }

    def synthetic_analysis_payload(self):
        """Analyzer-shaped response: valid config carrying two security warnings."""
        rng = self._rng
        token_types = ["COMMAND", "PATH", "PARAMETER", "VALUE", "NEWLINE"]
        return {
            "parseValid": True,
            "semValid": True,
            "parseErrors": [],
            "semErrors": [],
            "securityWarnings": rng.sample(SYNTHETIC_SECURITY_WARNINGS, 2),
            "hotspotStats": {
                "hotspots": rng.randrange(1, 4),
                "users": rng.randrange(1, 10),
                "bindings": rng.randrange(0, 5),
            },
            "tokens": [{"type": rng.choice(token_types)} for _ in range(rng.randrange(20, 80))],
        }

    def synthetic_analysis(self, from_device=False):
        return self.adapt(self.synthetic_analysis_payload(), from_device=from_device)

    def fetch_analysis(self, api, code, from_device=False):
        return self._guard(
            "analysis",
            lambda: api.analyze(code),
            lambda raw: self.adapt(raw, from_device=from_device),
            lambda: self.synthetic_analysis(from_device=from_device),
        )
