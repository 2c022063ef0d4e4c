"""
Error taxonomy.

Auth errors are handed back inside AuthResult for inline display; API errors
are raised by api.py and absorbed by the adapter into stale results;
StorageCorruptError is recovered where it is caught.
"""


class HotspotError(Exception):
    """Base exception for the dashboard controller"""
    pass


# ─── Auth ────────────────────────────────────────────────────────

class AuthError(HotspotError):
    """Base authentication error"""
    pass


class ValidationError(AuthError):
    """Malformed input, rejected before any lookup"""

    def __init__(self, violations):
        self.violations = list(violations)
        super().__init__(", ".join(self.violations))


class InvalidCredentialsError(AuthError):
    """Login failed. Deliberately says nothing about which part was wrong"""

    def __init__(self, message="Invalid username or password"):
        super().__init__(message)


class DuplicateAccountError(AuthError):
    """Username or email already taken"""

    def __init__(self, message="Username or email already exists"):
        super().__init__(message)


class WrongPasswordError(AuthError):
    """Current password did not match"""

    def __init__(self, message="Current password is incorrect"):
        super().__init__(message)


class WeakPasswordError(AuthError):
    """New password below the minimum length"""
    pass


class NotAuthenticatedError(AuthError):
    """Operation needs an active session"""

    def __init__(self, message="Not authenticated"):
        super().__init__(message)


# ─── Storage ─────────────────────────────────────────────────────

class StorageCorruptError(HotspotError):
    """A persisted slot could not be parsed"""

    def __init__(self, key, reason=""):
        self.key = key
        super().__init__(f"Corrupt payload in '{key}'" + (f": {reason}" if reason else ""))


# ─── Remote API ──────────────────────────────────────────────────

class ApiError(HotspotError):
    """Base exception for remote API calls"""
    pass


class TransportError(ApiError):
    """Request never produced a usable response"""
    pass


class ApiTimeoutError(TransportError):
    """Request aborted after its timeout"""

    def __init__(self, message="Request timed out"):
        super().__init__(message)


class RemoteStatusError(ApiError):
    """Backend answered with a non-2xx status"""

    def __init__(self, status_code, reason=""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}" + (f": {reason}" if reason else ""))


def describe_error(error):
    """Human-readable message for a failed API call (banner / stale tooltip)."""
    if isinstance(error, ApiTimeoutError):
        return "Slow connection or server not responding."
    if isinstance(error, RemoteStatusError):
        if error.status_code == 404:
            return "Resource not found on the server."
        if error.status_code >= 500:
            return "Internal server error."
        return str(error)
    if isinstance(error, TransportError):
        return "Cannot reach the server. Check the connection."
    return str(error) or "Unknown error"
