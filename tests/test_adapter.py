"""
Unit tests for ResultAdapter: payload adaptation, synthetic fallback, analysis report.
"""

import random
from unittest.mock import MagicMock

import pytest

from hotspot_core.adapter import ResultAdapter, extract_param, PASSED, WARNING, ERROR
from hotspot_core.errors import TransportError, RemoteStatusError, ApiTimeoutError


@pytest.fixture
def adapter(clock):
    return ResultAdapter(rng=random.Random(7), clock=clock)


def _live_api():
    api = MagicMock()
    api.monitoring_metrics.return_value = {
        "cpu": 42, "memory": 61.5, "disk": 70,
        "network": {"rx": 300, "tx": 200},
        "uptime": "5d 1h", "temperature": 44, "loadAverage": "0.42",
    }
    api.active_users.return_value = {"active_users": [
        "user=alice address=10.0.0.5 mac-address=AA:BB:CC:DD:EE:01 uptime=1h2m",
        {"user": "bob", "address": "10.0.0.6"},
    ]}
    api.system_logs.return_value = [
        {"id": 9, "timestamp": "2024-05-01T11:00:00Z", "level": "WARNING", "message": "disk"},
        {"timestamp": "2024-05-01T11:05:00Z", "level": "debug", "message": "noise"},
    ]
    api.hotspot_stats.return_value = {"usuarios_activos": 4, "timestamp": "2024-05-01T11:59:00Z"}
    return api


class TestExtractParam:

    def test_finds_value(self):
        text = "user=alice address=10.0.0.5 mac-address=AA:BB"
        assert extract_param(text, "address") == "10.0.0.5"
        assert extract_param(text, "mac-address") == "AA:BB"

    def test_whole_key_only(self):
        assert extract_param("mac-address=AA:BB", "address") is None

    def test_missing_or_not_text(self):
        assert extract_param("user=alice", "uptime") is None
        assert extract_param(None, "user") is None


class TestMetrics:

    def test_live_metrics(self, adapter):
        result = adapter.fetch_metrics(_live_api())
        assert not result.stale
        assert result.data["cpu"] == 42
        assert result.data["network"] == {"rx": 300, "tx": 200}
        assert result.data["load_average"] == "0.42"

    def test_network_failure_gives_stale_synthetic(self, adapter):
        api = _live_api()
        api.monitoring_metrics.side_effect = TransportError("Connection refused")
        result = adapter.fetch_metrics(api)
        assert result.stale
        assert result.error == "Cannot reach the server. Check the connection."
        metrics = result.data
        assert 10 <= metrics["cpu"] < 90
        assert 20 <= metrics["memory"] < 90
        assert 30 <= metrics["disk"] < 90
        assert 100 <= metrics["network"]["rx"] < 1100
        assert 80 <= metrics["network"]["tx"] < 880
        assert 35 <= metrics["temperature"] < 55

    @pytest.mark.parametrize("seed", range(25))
    def test_synthetic_ranges_hold_for_any_seed(self, seed, clock):
        metrics = ResultAdapter(rng=random.Random(seed), clock=clock).synthetic_metrics()
        assert 10 <= metrics["cpu"] < 90

    def test_missing_field_is_a_shape_failure(self, adapter):
        api = _live_api()
        api.monitoring_metrics.return_value = {"memory": 10}
        result = adapter.fetch_metrics(api)
        assert result.stale
        assert result.error == "Malformed metrics payload"


class TestMonitoringGroup:

    def test_all_live(self, adapter):
        result = adapter.fetch_monitoring(_live_api(), limit=20)
        assert not result.stale
        assert result.data["stale_parts"] == []
        users = result.data["active_users"]
        assert [u["username"] for u in users] == ["alice", "bob"]
        assert users[0]["ip"] == "10.0.0.5"
        assert users[0]["connected"] == "1h2m"
        logs = result.data["logs"]
        assert [log["level"] for log in logs] == ["warning", "info"]
        assert logs[1]["id"] == 2

    def test_one_failing_part_falls_back_alone(self, adapter):
        api = _live_api()
        api.monitoring_metrics.side_effect = ApiTimeoutError()
        result = adapter.fetch_monitoring(api, limit=20)
        assert result.stale
        assert result.data["stale_parts"] == ["metrics"]
        assert 10 <= result.data["metrics"]["cpu"] < 90
        assert [u["username"] for u in result.data["active_users"]] == ["alice", "bob"]
        assert result.error.startswith("metrics:")

    def test_everything_offline(self, adapter, offline_api):
        result = adapter.fetch_monitoring(offline_api, limit=50)
        assert set(result.data["stale_parts"]) == {"metrics", "active_users", "logs"}
        assert len(result.data["active_users"]) == 3
        assert len(result.data["logs"]) == 20


class TestStatsAndConfig:

    def test_live_stats(self, adapter):
        data = adapter.fetch_stats(_live_api()).data
        assert data["active_users"] == 4
        assert data["hotspot_status"] == "active"
        assert 100 <= data["total_traffic"] < 600
        assert data["timestamp"].startswith("2024-05-01T11:59:00")

    @pytest.mark.parametrize("timestamp", [1e30, -1e30, float("nan")])
    def test_out_of_range_timestamp_falls_back_to_now(self, adapter, clock, timestamp):
        api = MagicMock()
        api.hotspot_stats.return_value = {"usuarios_activos": 3, "timestamp": timestamp}
        result = adapter.fetch_stats(api)
        assert not result.stale
        assert result.data["active_users"] == 3
        assert result.data["timestamp"] == clock.now.isoformat()

    def test_zero_users_is_inactive(self, adapter):
        assert adapter.adapt_stats({"usuarios_activos": 0})["hotspot_status"] == "inactive"

    def test_config(self, adapter):
        api = MagicMock()
        api.hotspot_config.return_value = {"HotSpots": [], "Users": [{"name": "a"}]}
        data = adapter.fetch_config(api).data
        assert data["enabled"] is False
        assert data["users"] == [{"name": "a"}]
        assert data["interface"] == "wlan1"

    def test_update_config_offline_is_acknowledged(self, adapter, offline_api):
        result = adapter.update_config(offline_api, {"interface": "wlan2"})
        assert result.stale
        assert result.data["success"] is True
        assert "demo mode" in result.data["message"]

    @pytest.mark.parametrize("time_range,points", [("24h", 24), ("7d", 7), ("30d", 30), ("90d", 90)])
    def test_usage_report_ranges(self, adapter, time_range, points):
        report = adapter.usage_report({"active_users": 12}, time_range)
        assert report["summary"]["active_users"] == 12
        assert len(report["user_activity"]) == points
        assert len(report["top_users"]) == 10
        assert len(report["hourly_distribution"]) == 24

    def test_usage_report_unknown_range(self, adapter):
        with pytest.raises(ValueError):
            adapter.usage_report({}, "1y")

    def test_usage_offline_is_stale(self, adapter, offline_api):
        result = adapter.fetch_usage(offline_api, "24h")
        assert result.stale
        assert result.data["time_range"] == "24h"


class TestAnalysisReport:

    def _raw(self, **overrides):
        raw = {
            "parseValid": True, "semValid": True,
            "parseErrors": [], "semErrors": [], "securityWarnings": [],
            "hotspotStats": {"hotspots": 1, "users": 2, "bindings": 0},
            "tokens": [{"type": "COMMAND"}, {"type": "PATH"}, {"type": "COMMAND"}],
        }
        raw.update(overrides)
        return raw

    def test_clean_config_passes_everything(self, adapter):
        report = adapter.adapt(self._raw())
        assert report["status"] == PASSED
        assert report["total_checks"] == 6
        assert report["passed"] == 6
        assert report["errors"] == 0
        assert [c["status"] for c in report["checks"]] == [PASSED] * 6
        assert report["checks"][0]["details"] == "Token types: COMMAND, PATH"

    def test_warnings_without_hard_errors(self, adapter):
        report = adapter.adapt(self._raw(securityWarnings=["WPA3 is recommended over WPA2"]))
        assert report["status"] == PASSED
        assert report["warnings"] == 1
        assert report["checks"][3]["status"] == WARNING
        assert report["passed"] == 5

    def test_syntax_error_with_warnings(self, adapter):
        report = adapter.adapt(self._raw(parseValid=False, parseErrors=["line 2: unexpected"],
                                         securityWarnings=["weak password"]))
        assert report["status"] == WARNING
        assert report["checks"][1]["status"] == ERROR
        assert report["checks"][3]["status"] == ERROR
        assert report["errors"] == 1

    def test_semantic_error_without_warnings(self, adapter):
        report = adapter.adapt(self._raw(semValid=False))
        assert report["status"] == ERROR
        assert report["checks"][2]["status"] == ERROR
        assert report["errors"] == 1

    def test_no_tokens(self, adapter):
        report = adapter.adapt(self._raw(tokens=[]))
        assert report["checks"][0]["status"] == ERROR
        assert report["checks"][0]["description"] == "No tokens could be identified"
        assert report["passed"] == 5

    def test_no_tokens_with_warnings(self, adapter):
        report = adapter.adapt(self._raw(tokens=[], securityWarnings=["weak password"]))
        assert report["checks"][0]["status"] == WARNING

    def test_data_origin(self, adapter):
        assert adapter.adapt(self._raw(), from_device=True)["checks"][5]["description"] == \
            "Configuration read from device"
        assert adapter.adapt(self._raw())["checks"][5]["description"] == "Code entered manually"

    def test_remote_failure_gives_synthetic_report(self, adapter):
        api = MagicMock()
        api.analyze.side_effect = RemoteStatusError(500)
        result = adapter.fetch_analysis(api, "/ip hotspot print", from_device=True)
        assert result.stale
        assert result.error == "Internal server error."
        assert result.data["status"] == PASSED
        assert result.data["warnings"] == 2
        assert result.data["from_device"] is True
        assert len(result.data["checks"]) == 6

    def test_non_object_payload(self, adapter):
        api = MagicMock()
        api.analyze.return_value = ["not", "a", "report"]
        assert adapter.fetch_analysis(api, "x").stale
