"""
CredentialStore — the account collection in the `accounts` slot.

Pure data access, no networking. The whole collection is one JSON list;
every write reads it, changes it and writes it back.
"""

from .config import log
from .constants import KEY_ACCOUNTS, DEMO_ACCOUNTS
from .errors import StorageCorruptError, DuplicateAccountError
from .models import Account, utcnow
from .storage import load_json, save_json


class CredentialStore:

    def __init__(self, store):
        self._store = store
        self._ensure_seeded()

    # ── Loading ──────────────────────────────────────────────

    def _ensure_seeded(self):
        if not self._load():
            self._seed()

    def _seed(self):
        now = utcnow()
        accounts = [
            Account(created_at=now, **demo)
            for demo in DEMO_ACCOUNTS
        ]
        self._write(accounts)
        log.info("Seeded %d demo accounts", len(accounts))

    def _read(self):
        raw = load_json(self._store, KEY_ACCOUNTS, default=[])
        if not isinstance(raw, list):
            raise StorageCorruptError(KEY_ACCOUNTS, "expected a list")
        try:
            return [Account.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            raise StorageCorruptError(KEY_ACCOUNTS, str(e)) from e

    def _load(self):
        """Read the collection, recovering from a corrupt slot."""
        try:
            return self._read()
        except StorageCorruptError as e:
            log.warning("%s — discarding account collection and re-seeding", e)
            self._store.delete(KEY_ACCOUNTS)
            self._seed()
            return self._read()

    def _write(self, accounts):
        save_json(self._store, KEY_ACCOUNTS, [a.to_dict() for a in accounts])

    # ── Queries ──────────────────────────────────────────────

    def list(self):
        return self._load()

    def find_by_username(self, username):
        """Exact, case-sensitive match."""
        for account in self._load():
            if account.username == username:
                return account
        return None

    def find_by_email(self, email):
        """Case-insensitive match."""
        wanted = (email or "").strip().lower()
        for account in self._load():
            if account.email.lower() == wanted:
                return account
        return None

    def find_by_id(self, account_id):
        for account in self._load():
            if account.id == account_id:
                return account
        return None

    def next_id(self):
        return max((a.id for a in self._load()), default=0) + 1

    # ── Mutations ────────────────────────────────────────────

    def insert(self, account):
        """Append a new account. Usernames and emails stay unique."""
        accounts = self._load()
        for existing in accounts:
            if (existing.username == account.username
                    or existing.email.lower() == account.email.lower()
                    or existing.id == account.id):
                raise DuplicateAccountError()
        accounts.append(account)
        self._write(accounts)
        return account

    def update(self, account):
        """Replace the stored record with the same id. Returns False if absent."""
        accounts = self._load()
        for i, existing in enumerate(accounts):
            if existing.id == account.id:
                accounts[i] = account
                self._write(accounts)
                return True
        return False
