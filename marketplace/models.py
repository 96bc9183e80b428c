"""
marketplace/models.py -- Domain dataclasses for the owned marketplace resources.

Pure data containers. Every ownable resource exposes owner_id, which is what
auth.gate.ensure_access() compares against the requesting principal.

Separation of concerns: the marketplace never imports auth/ models. It only
stores the owning user's id as an opaque string.
"""

from dataclasses import dataclass
from typing import Literal, Optional

ProductStatus = Literal["ai-generated", "pending", "approved", "rejected"]


@dataclass
class Product:
    """A furniture piece offered for reupholstering.

    creator_id is the owner. manufacturer_id optionally names the upholsterer
    assigned to the job; it grants no rights over the product.
    """

    title: str
    creator_id: str
    description: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None
    status: ProductStatus = "ai-generated"
    manufacturer_id: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""

    @property
    def owner_id(self) -> str:
        return self.creator_id


@dataclass
class Conversation:
    user_id: str
    user_name: str
    user_phone: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def owner_id(self) -> str:
        return self.user_id


@dataclass
class Message:
    """One message in a conversation. is_user is False for replies from the shop side."""

    conversation_id: str
    content: str
    is_user: bool = True
    id: Optional[str] = None
    created_at: str = ""
