"""
AuthSessionManager — local login/registration authority.

Blocking by design: login() and register() sleep for the simulated round
trip, so the controller calls them from a worker thread, never from the loop.

Every failure is handed back as AuthResult(error=...) for inline display.
Nothing here raises to the caller.

Known limitation: passwords are stored and compared in plaintext. Failed
attempts are recorded per username but no lockout reads them.
"""

import re
import time
from dataclasses import dataclass
from typing import Optional

from .config import log
from .constants import (
    LOGIN_LATENCY_SEC, MIN_USERNAME_LENGTH, MIN_PASSWORD_LENGTH,
    FORBIDDEN_CHARS, EMAIL_PATTERN, DEFAULT_ROLE,
    KEY_CURRENT_SESSION, KEY_FAILED_LOGINS, USER_SCOPED_KEYS,
)
from .errors import (
    AuthError, ValidationError, InvalidCredentialsError, DuplicateAccountError,
    WrongPasswordError, WeakPasswordError, NotAuthenticatedError,
)
from .models import Account, Session, utcnow, to_iso
from .storage import save_json, load_json_or_discard

_EMAIL_RE = re.compile(EMAIL_PATTERN)


@dataclass
class AuthResult:
    session: Optional[Session] = None
    error: Optional[AuthError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""


@dataclass
class Registration:
    username: str
    email: str
    password: str
    confirm_password: Optional[str] = None
    first_name: str = ""
    last_name: str = ""


# ─── Input validation ────────────────────────────────────────────

def _has_forbidden_chars(value):
    return any(ch in FORBIDDEN_CHARS for ch in value or "")


def validate_credentials(username, password):
    """Shape rules for a login form. Returns the list of violated rules."""
    errors = []
    if not username or len(username.strip()) < MIN_USERNAME_LENGTH:
        errors.append(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if _has_forbidden_chars(username) or _has_forbidden_chars(password):
        errors.append("Forbidden characters detected")
    return errors


def validate_registration(reg):
    errors = []
    if not reg.username or len(reg.username.strip()) < MIN_USERNAME_LENGTH:
        errors.append(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    if not reg.email or not _EMAIL_RE.match(reg.email.strip()):
        errors.append("Invalid email")
    if not reg.password or len(reg.password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if (reg.password and reg.confirm_password is not None
            and reg.password != reg.confirm_password):
        errors.append("Passwords do not match")
    return errors


class AuthSessionManager:
    """
    Owns the one Session of a controller.

    Session lifecycle:
        Unauthenticated --login/register ok--> Authenticated
        Authenticated --logout / expiry seen on access--> Unauthenticated
    """

    def __init__(self, credentials, store, latency=LOGIN_LATENCY_SEC,
                 clock=utcnow, sleep=time.sleep):
        self._credentials = credentials
        self._store = store
        self._latency = latency
        self._clock = clock
        self._sleep = sleep
        self._session = None
        self._restore_session()

    # ── Startup ──────────────────────────────────────────────

    def _restore_session(self):
        """Pick up a persisted session unless it is unreadable or expired."""
        data = load_json_or_discard(self._store, KEY_CURRENT_SESSION)
        if not data:
            return
        try:
            session = Session.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            log.warning("Discarding unreadable session: %s", e)
            self._end_session()
            return
        if session.is_expired(self._clock()):
            log.info("Persisted session for %s expired — signing out", session.username)
            self._end_session()
            return
        self._session = session
        log.info("Restored session for %s (%s)", session.username, session.role)

    # ── Accessors ────────────────────────────────────────────

    @property
    def current_session(self):
        """The active Session, or None. Applies lazy expiry."""
        return self._session if self.is_authenticated() else None

    def is_authenticated(self):
        session = self._session
        if session is None:
            return False
        if session.is_expired(self._clock()):
            log.info("Session for %s expired", session.username)
            self._end_session()
            return False
        return True

    def failed_attempts(self, username):
        attempts = load_json_or_discard(self._store, KEY_FAILED_LOGINS, default={})
        if not isinstance(attempts, dict):
            attempts = {}
        return attempts.get(username, {"count": 0, "last_attempt_at": None})

    # ── Login ────────────────────────────────────────────────

    def login(self, username, password):
        violations = validate_credentials(username, password)
        if violations:
            return AuthResult(error=ValidationError(violations))

        # Same delay and same error whether or not the username exists
        self._sleep(self._latency)

        account = self._credentials.find_by_username(username)
        if account is None or account.password != password or not account.is_active:
            self._record_failed_attempt(username)
            log.warning("Login failed for %r", username)
            return AuthResult(error=InvalidCredentialsError())

        now = self._clock()
        account.last_login = now
        self._credentials.update(account)
        session = self._start_session(account, now)
        log.info("Login OK | user=%s | role=%s", account.username, account.role)
        return AuthResult(session=session)

    def _record_failed_attempt(self, username):
        attempts = load_json_or_discard(self._store, KEY_FAILED_LOGINS, default={})
        if not isinstance(attempts, dict):
            attempts = {}
        entry = attempts.get(username) or {"count": 0, "last_attempt_at": None}
        entry["count"] = int(entry.get("count", 0)) + 1
        entry["last_attempt_at"] = to_iso(self._clock())
        attempts[username] = entry
        save_json(self._store, KEY_FAILED_LOGINS, attempts)

    # ── Registration ─────────────────────────────────────────

    def register(self, registration):
        violations = validate_registration(registration)
        if violations:
            return AuthResult(error=ValidationError(violations))

        self._sleep(self._latency)

        username = registration.username.strip()
        email = registration.email.strip().lower()
        for existing in self._credentials.list():
            if (existing.username.lower() == username.lower()
                    or existing.email.lower() == email):
                log.info("Registration refused: %r already exists", username)
                return AuthResult(error=DuplicateAccountError())

        now = self._clock()
        account = Account(
            id=self._credentials.next_id(),
            username=username,
            email=email,
            password=registration.password,
            role=DEFAULT_ROLE,
            created_at=now,
            last_login=now,
            is_active=True,
            email_verified=False,
            first_name=(registration.first_name or "").strip(),
            last_name=(registration.last_name or "").strip(),
        )
        try:
            self._credentials.insert(account)
        except DuplicateAccountError as e:
            return AuthResult(error=e)

        session = self._start_session(account, now)
        log.info("Registered %s (id=%d)", account.username, account.id)
        return AuthResult(session=session)

    # ── Logout / password ────────────────────────────────────

    def logout(self):
        username = self._session.username if self._session else None
        self._end_session()
        if username:
            log.info("Logout | user=%s", username)

    def change_password(self, current_password, new_password):
        if not self.is_authenticated():
            return AuthResult(error=NotAuthenticatedError())

        account = self._credentials.find_by_id(self._session.account_id)
        if account is None:
            return AuthResult(error=NotAuthenticatedError("Account not found"))
        if account.password != current_password:
            return AuthResult(error=WrongPasswordError())
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            return AuthResult(error=WeakPasswordError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"))

        account.password = new_password
        account.password_changed_at = self._clock()
        self._credentials.update(account)
        log.info("Password changed for %s", account.username)
        return AuthResult()

    # ── Internals ────────────────────────────────────────────

    def _start_session(self, account, now):
        session = Session.issue(account, now)
        self._session = session
        save_json(self._store, KEY_CURRENT_SESSION, session.to_dict())
        return session

    def _end_session(self):
        """Drop the session and every user-scoped slot. Never raises."""
        self._session = None
        for key in USER_SCOPED_KEYS:
            try:
                self._store.delete(key)
            except OSError as e:
                log.warning("Could not clear %s: %s", key, e)
