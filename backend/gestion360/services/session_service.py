# Overview: PIN sessions for the clients of this app, one SessionGate per token.

"""
Session Gate

WHY: The till is shared by staff who identify with a 4-digit PIN. Each client
that logs in gets a bearer token backed by its own SessionGate. Sessions live
only in this process's memory; nothing about them is persisted.

RULES:
- login(pin) matches the mirrored usuarios by exact string equality. A miss
  leaves the session exactly as it was.
- logout() always clears the user and the authenticated flag.
- Bootstrap (first admin) is offered only once usuarios has loaded and is
  empty. Any existing user, whoever it is, closes the path.
- When the logged-in user's record changes in the mirror the session picks
  up the new record. When the record is deleted the session is logged out.
- Tokens are 32 random bytes; the registry keys sessions by their SHA-256
  hash. Sessions expire after SESSION_IDLE_TIMEOUT without use or
  SESSION_ABSOLUTE_TIMEOUT after login.
"""
from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from urllib.parse import quote

from flask import current_app

from ..models import COLLECTION_USERS
from ..permissions import Capability, ROLE_ADMIN, capabilities_from_map, capabilities_to_map
from ..validation import PIN_PATTERN
from ..time_utils import utcnow
from .replicated_store import ReplicatedStore

INITIAL_ADMIN_ID = "admin_initial"
AVATAR_URL_TEMPLATE = "https://ui-avatars.com/api/?name={name}&background=13ec5b&color=102216"

# Configuration constants
SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


class BootstrapError(Exception):
    """Raised when the first-admin setup is not available or its input is invalid."""
    pass


def avatar_url_for(name: str) -> str:
    return AVATAR_URL_TEMPLATE.format(name=quote(name))


class SessionGate:
    def __init__(self, store: ReplicatedStore):
        self._store = store
        self.current_user: dict | None = None
        self.is_authenticated = False
        self._user_watch = store.subscribe(COLLECTION_USERS, self._on_users)

    def close(self) -> None:
        self._user_watch.unsubscribe()

    def _on_users(self, users: list[dict]) -> None:
        if self.current_user is None:
            return
        for user in users:
            if user["id"] == self.current_user["id"]:
                self.current_user = user
                return
        # Record deleted
        current_app.logger.info("User %s removed, ending session", self.current_user["id"])
        self.logout()

    # -- authentication --------------------------------------------------------

    def login(self, pin: str) -> bool:
        """Authenticate by PIN. Returns False without touching the session on a miss."""
        if not isinstance(pin, str):
            return False
        for user in self._store.users:
            if user.get("pin") == pin:
                self.current_user = user
                self.is_authenticated = True
                current_app.logger.info("PIN login for user %s", user["id"])
                return True
        current_app.logger.info("PIN login rejected")
        return False

    def logout(self) -> None:
        self.current_user = None
        self.is_authenticated = False

    @property
    def capabilities(self) -> Capability:
        if not self.is_authenticated or self.current_user is None:
            return Capability.NONE
        if self.current_user.get("role") == ROLE_ADMIN:
            return Capability.ALL
        return capabilities_from_map(self.current_user.get("permissions"))

    def has_capability(self, capability: Capability) -> bool:
        """Admins hold every capability."""
        return (self.capabilities & capability) == capability

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and (self.current_user or {}).get("role") == ROLE_ADMIN

    # -- first run ---------------------------------------------------------------

    @property
    def needs_bootstrap(self) -> bool:
        return self._store.is_loaded(COLLECTION_USERS) and not self._store.users

    def bootstrap(self, name: str, pin: str) -> bool:
        """
        Create the first administrator and log in as them.

        Returns the result of the follow-up login.

        Raises:
            BootstrapError: users already exist / not loaded, or name/pin invalid
        """
        if not self.needs_bootstrap:
            raise BootstrapError("Setup is only available while no users exist")

        name = (name or "").strip()
        if not name:
            raise BootstrapError("name is required")
        if not isinstance(pin, str) or not PIN_PATTERN.match(pin):
            raise BootstrapError("pin must be exactly 4 digits")

        self._store.upsert_by_id(COLLECTION_USERS, INITIAL_ADMIN_ID, {
            "name": name,
            "pin": pin,
            "role": ROLE_ADMIN,
            "avatarUrl": avatar_url_for(name),
            "permissions": capabilities_to_map(Capability.ALL),
        })
        current_app.logger.info("Created initial admin %s", INITIAL_ADMIN_ID)

        return self.login(pin)


def public_user(user: dict | None) -> dict | None:
    """User document without the PIN, for responses."""
    if user is None:
        return None
    return {k: v for k, v in user.items() if k != "pin"}


# =============================================================================
# PER-CLIENT SESSIONS
# =============================================================================


def generate_token() -> str:
    """Plaintext token handed to the client (never stored)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass
class OpenSession:
    gate: SessionGate
    created_at: datetime
    last_used_at: datetime


class SessionRegistry:
    """
    Open sessions of this process, keyed by token hash.

    Every client gets its own SessionGate, so logging in or out on one client
    never changes what another client may do.
    """
    def __init__(self, store: ReplicatedStore):
        self._store = store
        self._sessions: dict[str, OpenSession] = {}

    @property
    def needs_bootstrap(self) -> bool:
        return self._store.is_loaded(COLLECTION_USERS) and not self._store.users

    def _register(self, gate: SessionGate) -> str:
        token = generate_token()
        now = utcnow()
        self._sessions[hash_token(token)] = OpenSession(gate=gate, created_at=now, last_used_at=now)
        return token

    def create_session(self, pin: str) -> str | None:
        """PIN login on a fresh gate. Returns the token, or None for a wrong PIN."""
        gate = SessionGate(self._store)
        if not gate.login(pin):
            gate.close()
            return None
        return self._register(gate)

    def bootstrap_session(self, name: str, pin: str) -> str:
        """
        Create the first administrator and open a session for them.

        Raises:
            BootstrapError: setup not available or input invalid
            LedgerError: the user record could not be written
        """
        gate = SessionGate(self._store)
        try:
            logged_in = gate.bootstrap(name, pin)
        except Exception:
            gate.close()
            raise
        if not logged_in:
            gate.close()
            raise BootstrapError("Initial admin was created but could not log in")
        return self._register(gate)

    def validate_session(self, token: str | None, *, now: datetime | None = None) -> SessionGate | None:
        """
        Gate for a token, or None if unknown, expired or logged out.

        Dead sessions are dropped on sight. Updates last_used_at.
        """
        if not token:
            return None
        key = hash_token(token)
        entry = self._sessions.get(key)
        if entry is None:
            return None

        now = now or utcnow()
        expired = (
            now - entry.created_at > SESSION_ABSOLUTE_TIMEOUT
            or now - entry.last_used_at > SESSION_IDLE_TIMEOUT
        )
        if expired or not entry.gate.is_authenticated:
            self._drop(key)
            return None

        entry.last_used_at = now
        return entry.gate

    def revoke_session(self, token: str | None) -> bool:
        """Log out one client. Returns False if the token was not open."""
        if not token:
            return False
        key = hash_token(token)
        if key not in self._sessions:
            return False
        self._drop(key)
        return True

    def _drop(self, key: str) -> None:
        entry = self._sessions.pop(key)
        entry.gate.logout()
        entry.gate.close()

    def __len__(self) -> int:
        return len(self._sessions)
