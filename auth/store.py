"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper. UserStore is the repository; the _row_to_*
functions are the mappers. Route and service code never touches SQL directly.

Tables owned here: users, user_sessions, user_login_history. Sessions and
login history rows are insert-only and go away with their user (ON DELETE
CASCADE, plus explicit deletes in delete_user() for engines that do not
enforce foreign keys).

Email uniqueness is the UNIQUE index on users.email, not an application
lock. A concurrent duplicate insert surfaces as IntegrityError and is raised
as DuplicateIdentity.

Connectivity failures (OperationalError / InterfaceError) are raised as
StoreUnavailable. Nothing here retries.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, core/, or marketplace/.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from auth.errors import DuplicateIdentity, StoreUnavailable
from auth.models import Credentials, LoginHistoryEntry, Role, Session, User

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'upholstr_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),  # case-sensitive exact match
    Column("full_name", String(255), nullable=False),
    Column("phone_number", String(50)),
    Column("role", String(20), nullable=False, server_default="client"),
    Column("password_hash", Text, nullable=False),
    Column("password_salt", String(64), nullable=False),
    Column("email_confirmed", Boolean, nullable=False, server_default="0"),
    Column("confirmation_token", String(36)),
    Column("reset_token", String(36)),
    Column("last_login_date", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_sessions = Table(
    "user_sessions",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("token_digest", String(64), nullable=False),  # HMAC-SHA256 hex
    Column("expires_at", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("ip_address", String(45), nullable=False),
    Column("user_agent", String(500), nullable=False),
)

_login_history = Table(
    "user_login_history",
    _metadata,
    Column("id", String(36), primary_key=True),
    # NULL for attempts against an unknown email
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True),
    Column("login_date", String(32), nullable=False),
    Column("successful", Boolean, nullable=False),
    Column("failure_reason", String(100)),
    Column("ip_address", String(45), nullable=False),
    Column("user_agent", String(500), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign keys. SQLite PRAGMAs are per-connection."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for users, sessions and login history.

    Usage:
        store = UserStore()
        user = store.create_user(user, credentials)
        found = store.get_credentials_by_email("alice@example.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        with self._connect() as conn:
            _metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailable(f"auth store unreachable: {exc}") from exc

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StoreUnavailable:
            return False
        return True

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User, credentials: Credentials) -> User:
        """Insert a user with its password material and return the stored User.

        Raises DuplicateIdentity if the email already exists.
        """
        now = _now_iso()
        user.id = user.id or _new_id()
        user.created_at = now
        user.updated_at = now
        try:
            with self._connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        email=user.email,
                        full_name=user.full_name,
                        phone_number=user.phone_number,
                        role=user.role.value,
                        password_hash=credentials.password_hash,
                        password_salt=credentials.password_salt,
                        email_confirmed=user.email_confirmed,
                        confirmation_token=credentials.confirmation_token,
                        reset_token=credentials.reset_token,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateIdentity() from exc
        credentials.user_id = user.id
        return user

    def get_by_id(self, user_id: str) -> User | None:
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_credentials_by_email(self, email: str) -> tuple[User, Credentials] | None:
        """Return the user and its password material, or None if the email is unknown."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            return None
        return _row_to_user(row), _row_to_credentials(row)

    def touch_last_login(self, user_id: str) -> bool:
        """Stamp last_login_date and updated_at. Returns False if the user is gone."""
        now = _now_iso()
        with self._connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(last_login_date=now, updated_at=now)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: str) -> bool:
        """Delete a user together with its sessions and login history."""
        with self._connect() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
            conn.execute(_login_history.delete().where(_login_history.c.user_id == user_id))
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session: Session) -> Session:
        session.id = _new_id()
        session.created_at = session.created_at or _now_iso()
        with self._connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    id=session.id,
                    user_id=session.user_id,
                    token_digest=session.token_digest,
                    expires_at=session.expires_at,
                    created_at=session.created_at,
                    ip_address=session.ip_address,
                    user_agent=session.user_agent,
                )
            )
            conn.commit()
        return session

    def list_sessions(self, user_id: str) -> list[Session]:
        """Return a user's sessions, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                select(_sessions).where(_sessions.c.user_id == user_id).order_by(_sessions.c.created_at.desc())
            ).fetchall()
        return [_row_to_session(r) for r in rows]

    # ------------------------------------------------------------------
    # Login history
    # ------------------------------------------------------------------

    def create_login_entry(self, entry: LoginHistoryEntry) -> LoginHistoryEntry:
        entry.id = _new_id()
        entry.login_date = _now_iso()
        with self._connect() as conn:
            conn.execute(
                _login_history.insert().values(
                    id=entry.id,
                    user_id=entry.user_id,
                    login_date=entry.login_date,
                    successful=entry.successful,
                    failure_reason=entry.failure_reason,
                    ip_address=entry.ip_address,
                    user_agent=entry.user_agent,
                )
            )
            conn.commit()
        return entry

    def list_login_history(self, user_id: str | None, limit: int = 50) -> list[LoginHistoryEntry]:
        """Return login attempts for a user (or for unknown emails when user_id is None), newest first."""
        if user_id is None:
            condition = _login_history.c.user_id.is_(None)
        else:
            condition = _login_history.c.user_id == user_id
        with self._connect() as conn:
            rows = conn.execute(
                select(_login_history).where(condition).order_by(_login_history.c.login_date.desc()).limit(limit)
            ).fetchall()
        return [_row_to_login_entry(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        phone_number=row.phone_number,
        role=Role(row.role),
        email_confirmed=bool(row.email_confirmed),
        last_login_date=row.last_login_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_credentials(row) -> Credentials:
    return Credentials(
        user_id=row.id,
        password_hash=row.password_hash,
        password_salt=row.password_salt,
        confirmation_token=row.confirmation_token,
        reset_token=row.reset_token,
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        token_digest=row.token_digest,
        expires_at=row.expires_at,
        created_at=row.created_at,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
    )


def _row_to_login_entry(row) -> LoginHistoryEntry:
    return LoginHistoryEntry(
        id=row.id,
        user_id=row.user_id,
        login_date=row.login_date,
        successful=bool(row.successful),
        failure_reason=row.failure_reason,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
    )
