"""
marketplace/store.py -- SQLAlchemy-backed persistence for products and conversations.

Uses SQLAlchemy Core (not ORM) so the dataclasses in marketplace/models.py
remain the authoritative domain representation.

Pattern: Repository + Data Mapper. MarketplaceStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Connectivity failures (OperationalError / InterfaceError) are raised as
auth.errors.StoreUnavailable, the same as UserStore, so both stores answer an
outage with one generic 500. That error class is the only thing shared with
auth/.

Timestamps are UTC ISO 8601 with fixed microsecond precision, so string
comparison in SQL orders them correctly.

This store knows nothing about who may touch what. Routes fetch the row,
hand it to auth.gate.ensure_access(), and only then call update/delete.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = MarketplaceStore()                               # SQLite default
    store = MarketplaceStore("postgresql://user:pw@host/db") # PostgreSQL
    product = store.create_product(Product(title="Armchair", creator_id=uid))
    store.close()
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import InterfaceError, OperationalError

from auth.errors import StoreUnavailable
from marketplace.models import Conversation, Message, Product

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'upholstr_marketplace.db'}"

# Fields the update routes may change. Anything else is ignored.
_PRODUCT_MUTABLE = {"title", "description", "price", "image_url", "status", "manufacturer_id"}
_CONVERSATION_MUTABLE = {"user_name", "user_phone"}

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_products = Table(
    "products",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("price", Float),
    Column("image_url", Text),
    Column("status", String(20), nullable=False, server_default="ai-generated"),
    Column("creator_id", String(36), nullable=False, index=True),
    Column("manufacturer_id", String(36), index=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_conversations = Table(
    "conversations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), nullable=False, index=True),
    Column("user_name", String(255), nullable=False),
    Column("user_phone", String(50)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_messages = Table(
    "messages",
    metadata,
    Column("id", String(36), primary_key=True),
    Column(
        "conversation_id",
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("content", Text, nullable=False),
    Column("is_user", Boolean, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
)


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def _now_iso() -> str:
    return _to_iso(datetime.now(timezone.utc))


def _to_iso(value: datetime) -> str:
    """UTC ISO 8601 with microseconds. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


class MarketplaceStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        with self._connect() as conn:
            metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailable(f"marketplace store unreachable: {exc}") from exc

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StoreUnavailable:
            return False
        return True

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, product: Product) -> Product:
        now = _now_iso()
        product.id = str(uuid.uuid4())
        product.created_at = now
        product.updated_at = now
        with self._connect() as conn:
            conn.execute(
                _products.insert().values(
                    id=product.id,
                    title=product.title,
                    description=product.description,
                    price=product.price,
                    image_url=product.image_url,
                    status=product.status,
                    creator_id=product.creator_id,
                    manufacturer_id=product.manufacturer_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return product

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._connect() as conn:
            row = conn.execute(_products.select().where(_products.c.id == product_id)).fetchone()
        return _row_to_product(row) if row is not None else None

    def list_products(
        self,
        status: Optional[str] = None,
        creator_id: Optional[str] = None,
        manufacturer_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Product], int]:
        """Return one page of products plus the total matching count."""
        conditions = []
        if status:
            conditions.append(_products.c.status == status)
        if creator_id:
            conditions.append(_products.c.creator_id == creator_id)
        if manufacturer_id:
            conditions.append(_products.c.manufacturer_id == manufacturer_id)

        with self._connect() as conn:
            total = conn.execute(select(func.count()).select_from(_products).where(*conditions)).scalar() or 0
            rows = conn.execute(
                select(_products)
                .where(*conditions)
                .order_by(_products.c.created_at.desc())
                .offset(_offset(page, limit))
                .limit(limit)
            ).fetchall()
        return [_row_to_product(r) for r in rows], total

    def update_product(self, product_id: str, **fields) -> Optional[Product]:
        values = {k: v for k, v in fields.items() if k in _PRODUCT_MUTABLE}
        values["updated_at"] = _now_iso()
        with self._connect() as conn:
            conn.execute(_products.update().where(_products.c.id == product_id).values(**values))
            conn.commit()
        return self.get_product(product_id)

    def delete_product(self, product_id: str) -> bool:
        with self._connect() as conn:
            result = conn.execute(_products.delete().where(_products.c.id == product_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def create_conversation(self, conversation: Conversation) -> Conversation:
        now = _now_iso()
        conversation.id = str(uuid.uuid4())
        conversation.created_at = now
        conversation.updated_at = now
        with self._connect() as conn:
            conn.execute(
                _conversations.insert().values(
                    id=conversation.id,
                    user_id=conversation.user_id,
                    user_name=conversation.user_name,
                    user_phone=conversation.user_phone,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._connect() as conn:
            row = conn.execute(_conversations.select().where(_conversations.c.id == conversation_id)).fetchone()
        return _row_to_conversation(row) if row is not None else None

    def list_conversations(
        self, user_id: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> tuple[list[Conversation], int]:
        """List conversations, most recently active first. user_id=None lists all."""
        conditions = [] if user_id is None else [_conversations.c.user_id == user_id]
        with self._connect() as conn:
            total = conn.execute(select(func.count()).select_from(_conversations).where(*conditions)).scalar() or 0
            rows = conn.execute(
                select(_conversations)
                .where(*conditions)
                .order_by(_conversations.c.updated_at.desc())
                .offset(_offset(page, limit))
                .limit(limit)
            ).fetchall()
        return [_row_to_conversation(r) for r in rows], total

    def update_conversation(self, conversation_id: str, **fields) -> Optional[Conversation]:
        values = {k: v for k, v in fields.items() if k in _CONVERSATION_MUTABLE}
        values["updated_at"] = _now_iso()
        with self._connect() as conn:
            conn.execute(_conversations.update().where(_conversations.c.id == conversation_id).values(**values))
            conn.commit()
        return self.get_conversation(conversation_id)

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages."""
        with self._connect() as conn:
            conn.execute(_messages.delete().where(_messages.c.conversation_id == conversation_id))
            result = conn.execute(_conversations.delete().where(_conversations.c.id == conversation_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def add_message(self, message: Message) -> Message:
        """Append a message and bump the conversation's updated_at."""
        now = _now_iso()
        message.id = str(uuid.uuid4())
        message.created_at = now
        with self._connect() as conn:
            conn.execute(
                _messages.insert().values(
                    id=message.id,
                    conversation_id=message.conversation_id,
                    content=message.content,
                    is_user=message.is_user,
                    created_at=now,
                )
            )
            conn.execute(
                _conversations.update()
                .where(_conversations.c.id == message.conversation_id)
                .values(updated_at=now)
            )
            conn.commit()
        return message

    def list_messages(
        self,
        conversation_id: str,
        page: int = 1,
        limit: int = 50,
        before: Optional[datetime] = None,
        after: Optional[datetime] = None,
    ) -> tuple[list[Message], int]:
        """Return messages oldest first, optionally bounded (exclusive) by before/after."""
        conditions = [_messages.c.conversation_id == conversation_id]
        if before is not None:
            conditions.append(_messages.c.created_at < _to_iso(before))
        if after is not None:
            conditions.append(_messages.c.created_at > _to_iso(after))
        with self._connect() as conn:
            total = conn.execute(select(func.count()).select_from(_messages).where(*conditions)).scalar() or 0
            rows = conn.execute(
                select(_messages)
                .where(*conditions)
                .order_by(_messages.c.created_at.asc())
                .offset(_offset(page, limit))
                .limit(limit)
            ).fetchall()
        return [_row_to_message(r) for r in rows], total

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        title=row.title,
        description=row.description,
        price=row.price,
        image_url=row.image_url,
        status=row.status,
        creator_id=row.creator_id,
        manufacturer_id=row.manufacturer_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_conversation(row) -> Conversation:
    return Conversation(
        id=row.id,
        user_id=row.user_id,
        user_name=row.user_name,
        user_phone=row.user_phone,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_message(row) -> Message:
    return Message(
        id=row.id,
        conversation_id=row.conversation_id,
        content=row.content,
        is_user=bool(row.is_user),
        created_at=row.created_at,
    )
