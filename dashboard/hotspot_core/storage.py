"""
Process-wide key-value slots.

JsonFileStore keeps one "<key>.json" file per slot (the same load/save-a-JSON-
file approach as config.json). MemoryStore is the in-process variant used by
tests and throwaway controllers. Both hold raw text; load_json/save_json do
the (de)serialization so corruption is detected in one place.

No transactions: every mutation is read-modify-write on a whole slot.
"""

import json
import re
import threading
from pathlib import Path

from .config import log
from .errors import StorageCorruptError

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class MemoryStore:
    """Dict-backed store."""

    def __init__(self, initial=None):
        self._data = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def set(self, key, value):
        with self._lock:
            self._data[key] = value

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def __contains__(self, key):
        with self._lock:
            return key in self._data


class JsonFileStore:
    """Directory-backed store, one file per slot."""

    def __init__(self, directory):
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key):
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}.json"

    def get(self, key):
        path = self._path(key)
        with self._lock:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except UnicodeDecodeError as e:
                raise StorageCorruptError(key, "not UTF-8 text") from e

    def set(self, key, value):
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        with self._lock:
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)

    def delete(self, key):
        path = self._path(key)
        with self._lock:
            path.unlink(missing_ok=True)

    def __contains__(self, key):
        return self._path(key).exists()


# ─── JSON helpers ────────────────────────────────────────────────

def load_json(store, key, default=None):
    """
    Parse a slot. Missing slot -> default.
    Raises StorageCorruptError when the payload is not valid JSON (or not text).
    """
    raw = store.get(key)
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise StorageCorruptError(key, str(e)) from e


def save_json(store, key, value):
    store.set(key, json.dumps(value, indent=2))


def load_json_or_discard(store, key, default=None):
    """load_json, but a corrupt slot is dropped and `default` returned."""
    try:
        return load_json(store, key, default)
    except StorageCorruptError as e:
        log.warning("%s — discarding slot", e)
        store.delete(key)
        return default
