"""
Account and Session records plus their JSON (de)serialization.

Timestamps are timezone-aware UTC datetimes in memory and ISO-8601 strings on
disk.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone, timedelta
from typing import Optional

from .constants import SESSION_TTL_HOURS, DEFAULT_ROLE, ROLES


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def from_iso(value) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _known_role(role):
    return role if role in ROLES else DEFAULT_ROLE


@dataclass
class Account:
    id: int
    username: str
    email: str
    password: str               # plaintext, known limitation
    role: str = DEFAULT_ROLE
    created_at: datetime = field(default_factory=utcnow)
    last_login: Optional[datetime] = None
    is_active: bool = True
    password_changed_at: Optional[datetime] = None
    email_verified: bool = True
    first_name: str = ""
    last_name: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = to_iso(self.created_at)
        data["last_login"] = to_iso(self.last_login)
        data["password_changed_at"] = to_iso(self.password_changed_at)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        return cls(
            id=int(data["id"]),
            username=data["username"],
            email=data["email"],
            password=data["password"],
            role=_known_role(data.get("role")),
            created_at=from_iso(data.get("created_at")) or utcnow(),
            last_login=from_iso(data.get("last_login")),
            is_active=bool(data.get("is_active", True)),
            password_changed_at=from_iso(data.get("password_changed_at")),
            email_verified=bool(data.get("email_verified", True)),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
        )


def _new_session_id(now: datetime) -> str:
    return f"session_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:12]}"


@dataclass
class Session:
    """Locally issued proof of a login. Not a verifiable token."""

    account_id: int
    username: str
    email: str
    role: str
    issued_at: datetime
    token_expiry: datetime
    session_id: str

    @classmethod
    def issue(cls, account: Account, now: datetime) -> "Session":
        return cls(
            account_id=account.id,
            username=account.username,
            email=account.email,
            role=account.role or DEFAULT_ROLE,
            issued_at=now,
            token_expiry=now + timedelta(hours=SESSION_TTL_HOURS),
            session_id=_new_session_id(now),
        )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.token_expiry

    def to_dict(self) -> dict:
        data = asdict(self)
        data["issued_at"] = to_iso(self.issued_at)
        data["token_expiry"] = to_iso(self.token_expiry)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        issued_at = from_iso(data["issued_at"])
        token_expiry = from_iso(data["token_expiry"])
        if issued_at is None or token_expiry is None:
            raise ValueError("session without issued_at/token_expiry")
        return cls(
            account_id=int(data["account_id"]),
            username=data["username"],
            email=data["email"],
            role=_known_role(data.get("role")),
            issued_at=issued_at,
            token_expiry=token_expiry,
            session_id=data["session_id"],
        )
