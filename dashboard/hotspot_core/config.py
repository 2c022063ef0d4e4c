"""
Paths, logging setup, config load/save and the resolved Settings.
"""

import os
import json
import sys
import logging
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    DEFAULT_API_URL, HEALTH_TIMEOUT_SEC, API_TIMEOUT_SEC,
    LOGIN_LATENCY_SEC, LOGS_LIMIT,
)


# ─── Paths ───────────────────────────────────────────────────────
# One data directory per user per machine; HOTSPOT_DATA_DIR moves it.
_FOLDER_NAME = ".hotspot-dashboard"

BASE_DIR = Path(os.environ.get("HOTSPOT_DATA_DIR") or (Path.home() / _FOLDER_NAME))

CONFIG_FILE = BASE_DIR / "config.json"
LOG_FILE = BASE_DIR / "dashboard.log"
STORE_DIR = BASE_DIR / "store"

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

log = logging.getLogger("hotspot")


# ─── Logging ─────────────────────────────────────────────────────

def configure_logging(log_file=LOG_FILE, level=logging.INFO):
    """File + console logging. The log file is truncated once it passes 1 MB."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        if log_file.exists() and log_file.stat().st_size > 1_000_000:
            log_file.write_text("")
    except OSError:
        pass

    log.setLevel(level)
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    log.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    log.addHandler(console_handler)
    return log


# ─── Config Management ──────────────────────────────────────────

def load_config(path=CONFIG_FILE):
    """Load config from disk. Returns dict or None."""
    path = Path(path)
    if path.exists():
        try:
            with open(path, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            log.warning("Ignoring unreadable config file %s", path)
            return None
    return None


def save_config(config, path=CONFIG_FILE):
    """Save config dict to disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config, f, indent=2)
    log.info("Config saved to %s", path)


@dataclass
class Settings:
    api_url: str = DEFAULT_API_URL
    data_dir: Path = STORE_DIR
    health_timeout: float = HEALTH_TIMEOUT_SEC
    request_timeout: float = API_TIMEOUT_SEC
    login_latency: float = LOGIN_LATENCY_SEC
    logs_limit: int = LOGS_LIMIT

    @classmethod
    def load(cls, path=CONFIG_FILE, environ=None):
        """
        Defaults, then config.json, then environment.
        HOTSPOT_API_URL always wins so deployments can repoint the backend.
        """
        environ = os.environ if environ is None else environ
        data = load_config(path) or {}

        settings = cls()
        settings.api_url = data.get("apiUrl", settings.api_url)
        if data.get("dataDir"):
            settings.data_dir = Path(data["dataDir"])
        settings.health_timeout = float(data.get("healthTimeoutSec", settings.health_timeout))
        settings.request_timeout = float(data.get("requestTimeoutSec", settings.request_timeout))
        settings.login_latency = float(data.get("loginLatencySec", settings.login_latency))
        settings.logs_limit = int(data.get("logsLimit", settings.logs_limit))

        if environ.get("HOTSPOT_API_URL"):
            settings.api_url = environ["HOTSPOT_API_URL"]
        settings.api_url = settings.api_url.rstrip("/")
        return settings
