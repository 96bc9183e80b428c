"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores and routes do the work.

User deliberately has no password field. The hash and salt live on
Credentials, which only auth/credentials.py reads. Anything that serializes a
User therefore cannot leak the hash.

Layer rule: no imports from api/, core/, or marketplace/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    client = "client"
    admin = "admin"
    upholsterer = "upholsterer"


@dataclass(frozen=True)
class Principal:
    """The identity recovered from a verified bearer token.

    Only the subject and role claims are trusted. Everything else about the
    user must be re-read from the store.
    """

    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin


@dataclass
class User:
    """An account as seen by everything outside the credential module."""

    id: str
    email: str
    full_name: str
    role: Role = Role.client
    phone_number: str | None = None
    email_confirmed: bool = False
    last_login_date: str | None = None  # ISO 8601
    created_at: str = ""
    updated_at: str = ""

    @property
    def principal(self) -> Principal:
        return Principal(id=self.id, role=self.role)


@dataclass
class Credentials:
    """Password material for one user. Never returned past auth/credentials.py.

    password_salt is the bcrypt salt (cost + 22 chars). It is also embedded in
    password_hash; it is stored separately so the row keeps the original
    schema's (hash, salt) shape.
    """

    user_id: str
    password_hash: str
    password_salt: str
    confirmation_token: str | None = None
    reset_token: str | None = None


@dataclass
class Session:
    """A record of one issued token. Audit-only: never read back to gate requests.

    token_digest is HMAC-SHA256(SECRET_KEY, token). The raw token is not stored.
    expires_at is always created_at + the configured session TTL.
    """

    user_id: str
    token_digest: str
    expires_at: str
    ip_address: str
    user_agent: str
    id: str = ""
    created_at: str = ""


@dataclass
class LoginHistoryEntry:
    """One authentication attempt.

    user_id is None for attempts against an email that has no account.
    """

    user_id: str | None
    successful: bool
    ip_address: str
    user_agent: str
    failure_reason: str | None = None
    id: str = ""
    login_date: str = ""
