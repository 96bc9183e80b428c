"""
API request and response models for Upholstr REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in auth/models.py and marketplace/models.py,
which own the internal domain representation. Route handlers map between
the two.

Request bodies use PascalCase keys (Email, Password, FullName, ...) and
reject unknown keys, so `email` and `Email` are never both accepted.
Response bodies use camelCase keys (fullName, createdAt, ...).
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel, to_pascal

from auth.credentials import EMAIL_PATTERN
from auth.models import LoginHistoryEntry, Role, Session, User
from auth.passwords import MAX_PASSWORD_BYTES, MIN_PASSWORD_LENGTH
from marketplace.models import Conversation, Message, Product, ProductStatus

_EMAIL_RE = re.compile(EMAIL_PATTERN)
_EMAIL_RE_MSG = "Invalid email format"


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, extra="forbid")


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth requests
# ---------------------------------------------------------------------------


class RegisterRequest(_RequestModel):
    """Body for POST /api/auth/register."""

    email: str = Field(max_length=255)
    password: str
    full_name: str = Field(max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    role: Role = Role.client

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not _EMAIL_RE.match(value):
            raise ValueError(_EMAIL_RE_MSG)
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Full name is required")
        return value.strip()


class LoginRequest(_RequestModel):
    """Body for POST /api/auth/login."""

    email: str = Field(max_length=255)
    password: str = Field(max_length=1024)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not _EMAIL_RE.match(value):
            raise ValueError(_EMAIL_RE_MSG)
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


# ---------------------------------------------------------------------------
# Auth responses
# ---------------------------------------------------------------------------


class UserSummary(_ResponseModel):
    id: str
    email: str
    full_name: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, email=user.email, full_name=user.full_name, role=user.role)


class AuthResponse(_ResponseModel):
    message: str
    user: UserSummary
    token: str


class MeResponse(_ResponseModel):
    id: str
    email: str
    full_name: str
    role: Role
    phone_number: Optional[str] = None
    email_confirmed: bool
    last_login_date: Optional[str] = None
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            phone_number=user.phone_number,
            email_confirmed=user.email_confirmed,
            last_login_date=user.last_login_date,
            created_at=user.created_at,
        )


class SessionResponse(_ResponseModel):
    """A session as shown to its owner. The token digest is never exposed."""

    id: str
    created_at: str
    expires_at: str
    ip_address: str
    user_agent: str

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            id=session.id,
            created_at=session.created_at,
            expires_at=session.expires_at,
            ip_address=session.ip_address,
            user_agent=session.user_agent,
        )


class LoginHistoryResponse(_ResponseModel):
    id: str
    login_date: str
    successful: bool
    failure_reason: Optional[str] = None
    ip_address: str
    user_agent: str

    @classmethod
    def from_entry(cls, entry: LoginHistoryEntry) -> "LoginHistoryResponse":
        return cls(
            id=entry.id,
            login_date=entry.login_date,
            successful=entry.successful,
            failure_reason=entry.failure_reason,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
        )


# ---------------------------------------------------------------------------
# Shared responses
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Uniform error envelope for every non-2xx response."""

    error: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class Pagination(_ResponseModel):
    total: int
    pages: int
    current_page: int
    limit: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        pages = (total + limit - 1) // limit if limit else 0
        return cls(total=total, pages=pages, current_page=page, limit=limit)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class ProductCreate(_RequestModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    image_url: Optional[HttpUrl] = None
    status: ProductStatus = "ai-generated"
    manufacturer_id: Optional[str] = Field(default=None, max_length=36)


class ProductUpdate(_RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    image_url: Optional[HttpUrl] = None
    status: Optional[ProductStatus] = None
    manufacturer_id: Optional[str] = Field(default=None, max_length=36)

    @field_validator("title", "status")
    @classmethod
    def reject_null(cls, value: Optional[str], info: ValidationInfo) -> str:
        # Omit a key to leave it unchanged; null would clear a required column.
        if value is None:
            raise ValueError(f"{to_pascal(info.field_name)} cannot be null")
        return value


class ProductResponse(_ResponseModel):
    id: str
    title: str
    description: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None
    status: str
    creator_id: str
    manufacturer_id: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_product(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.id,
            title=product.title,
            description=product.description,
            price=product.price,
            image_url=product.image_url,
            status=product.status,
            creator_id=product.creator_id,
            manufacturer_id=product.manufacturer_id,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class ProductListResponse(_ResponseModel):
    products: list[ProductResponse]
    pagination: Pagination


# ---------------------------------------------------------------------------
# Conversations and messages
# ---------------------------------------------------------------------------


class ConversationCreate(_RequestModel):
    user_name: str = Field(min_length=1, max_length=255)
    user_phone: Optional[str] = Field(default=None, max_length=50)


class ConversationUpdate(_RequestModel):
    user_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    user_phone: Optional[str] = Field(default=None, max_length=50)

    @field_validator("user_name")
    @classmethod
    def reject_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("UserName cannot be null")
        return value


class ConversationResponse(_ResponseModel):
    id: str
    user_id: str
    user_name: str
    user_phone: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationResponse":
        return cls(
            id=conversation.id,
            user_id=conversation.user_id,
            user_name=conversation.user_name,
            user_phone=conversation.user_phone,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class ConversationListResponse(_ResponseModel):
    conversations: list[ConversationResponse]
    pagination: Pagination


class MessageCreate(_RequestModel):
    content: str = Field(min_length=1, max_length=10000)
    is_user: bool = True


class MessageResponse(_ResponseModel):
    id: str
    conversation_id: str
    content: str
    is_user: bool
    created_at: str

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            content=message.content,
            is_user=message.is_user,
            created_at=message.created_at,
        )


class MessageListResponse(_ResponseModel):
    messages: list[MessageResponse]
    pagination: Pagination
