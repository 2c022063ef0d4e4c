"""
Shared read state: active view identifiers, connection status, sync results.

Each object has exactly one writer (ConnectivityMonitor for ConnectionStatus,
DataSyncScheduler for SyncResult), applied on the main loop thread. Everyone
else only reads.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .models import utcnow


class View(str, Enum):
    DASHBOARD = "dashboard"
    MONITORING = "monitoring"
    STATS = "stats"
    ANALYZER = "analyzer"


# Poll cadence per view, in seconds. None = manual trigger only.
CADENCES = {
    View.DASHBOARD: 30,
    View.MONITORING: 5,
    View.STATS: 60,
    View.ANALYZER: None,
}


class ConnectionState(str, Enum):
    CHECKING = "checking"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass
class ConnectionStatus:
    state: ConnectionState = ConnectionState.CHECKING
    error: Optional[str] = None
    checked_at: Optional[datetime] = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def checking(self) -> bool:
        return self.state is ConnectionState.CHECKING

    @classmethod
    def ok(cls):
        return cls(ConnectionState.CONNECTED, None, utcnow())

    @classmethod
    def down(cls, error):
        return cls(ConnectionState.DISCONNECTED, error, utcnow())


@dataclass
class SyncResult:
    """
    Last adapted payload of one view.
    stale=True means part or all of `data` is synthetic fallback.
    """

    view: View
    data: Any = None
    stale: bool = False
    error: Optional[str] = None
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Fetched:
    """What a single adapter call hands back: data plus whether it is synthetic."""

    data: Any
    stale: bool = False
    error: Optional[str] = None
