"""
Constants, cadences, timeouts, storage slot names and demo accounts.
"""

CONTROLLER_VERSION = "1.0.0"

# ─── Network ─────────────────────────────────────────────────────
DEFAULT_API_URL = "http://localhost:8080"
HEALTH_TIMEOUT_SEC = 5         # Connectivity probe is bounded to 5s
API_TIMEOUT_SEC = 10           # Every other API call
LOGS_LIMIT = 20                # Log lines fetched per monitoring tick

# ─── Main loop ───────────────────────────────────────────────────
DISPATCH_POLL_MS = 200         # How often worker results are drained on the loop

# ─── Auth ────────────────────────────────────────────────────────
LOGIN_LATENCY_SEC = 1.2        # Simulated round trip for login/registration
SESSION_TTL_HOURS = 24
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
FORBIDDEN_CHARS = frozenset("<>'\"&")
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

ROLES = ("admin", "user", "guest")
DEFAULT_ROLE = "user"

# Seeded into an empty account collection. Plaintext on purpose: this is a
# local demo authority, not a credential vault.
DEMO_ACCOUNTS = (
    {"id": 1, "username": "admin", "email": "admin@mikrotik.com",
     "password": "admin123", "role": "admin"},
    {"id": 2, "username": "user", "email": "user@mikrotik.com",
     "password": "user123", "role": "user"},
    {"id": 3, "username": "guest", "email": "guest@mikrotik.com",
     "password": "guest123", "role": "guest"},
)

# ─── Persisted slots ─────────────────────────────────────────────
KEY_ACCOUNTS = "accounts"
KEY_CURRENT_SESSION = "current_session"
KEY_FAILED_LOGINS = "failed_login_attempts"
KEY_USER_PREFERENCES = "user_preferences"
KEY_ANALYSIS_CACHE = "analysis_cache"

# Slots that belong to the signed-in user and go away on logout
USER_SCOPED_KEYS = (KEY_CURRENT_SESSION, KEY_USER_PREFERENCES, KEY_ANALYSIS_CACHE)

# ─── Statistics view ─────────────────────────────────────────────
STATS_RANGES = ("24h", "7d", "30d", "90d")
DEFAULT_STATS_RANGE = "7d"

# ─── Analyzer ────────────────────────────────────────────────────
# Configuration export analysed in "device" mode.
DEVICE_CONFIG_SAMPLE = """/ip hotspot
add name=hotspot1 interface=wlan1 address-pool=dhcp_pool1
/ip hotspot user
add name=admin password=admin123
add name=guest password=guest123"""

# ─── Synthetic fallback ranges (half-open) ───────────────────────
SYNTHETIC_METRICS = {
    "cpu": (10, 90),
    "memory": (20, 90),
    "disk": (30, 90),
    "rx": (100, 1100),
    "tx": (80, 880),
    "temperature": (35, 55),
}
SYNTHETIC_UPTIME = "2d 14h 32m"

SYNTHETIC_LOG_MESSAGES = [
    "User connected from",
    "Bandwidth limit reached for",
    "Firewall configuration updated",
    "Scheduled reboot completed",
    "New device detected",
    "Session expired for user",
    "Automatic backup completed",
    "System update available",
]
LOG_LEVELS = ("info", "warning", "error")

SYNTHETIC_SECURITY_WARNINGS = [
    "WPA3 is recommended over WPA2",
    "Activity logging is not enabled",
    "Default hotspot profile allows unlimited sessions",
    "User password shorter than 8 characters",
]
