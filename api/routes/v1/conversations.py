"""
api/routes/v1/conversations.py -- Conversation and message REST endpoints.

Routes:
  GET    /api/conversations                  -- own conversations (admins see all)
  POST   /api/conversations                  -- start a conversation owned by the caller
  GET    /api/conversations/{id}             -- detail (owner or admin)
  PUT    /api/conversations/{id}             -- update (owner or admin)
  DELETE /api/conversations/{id}             -- delete with its messages (owner or admin)
  GET    /api/conversations/{id}/messages    -- list messages (owner or admin)
  POST   /api/conversations/{id}/messages    -- send a message (owner or admin)

Unlike products, even reads are owner-only: a conversation is private to
the user who opened it. Every {id} route resolves the conversation through
_owned_conversation(), so the 404-before-403 order holds everywhere.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import (
    ConversationCreate,
    ConversationListResponse,
    ConversationResponse,
    ConversationUpdate,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    Pagination,
)
from auth.dependencies import get_principal
from auth.errors import NotFound
from auth.gate import ensure_access
from auth.models import Principal
from marketplace.models import Conversation, Message
from marketplace.store import MarketplaceStore

router = APIRouter()

_NOT_FOUND = "Conversation not found"
_FORBIDDEN = "Forbidden - you don't have access to this conversation"


def _store(request: Request) -> MarketplaceStore:
    return request.app.state.marketplace


def _owned_conversation(request: Request, conversation_id: str, principal: Principal) -> Conversation:
    conversation = _store(request).get_conversation(conversation_id)
    return ensure_access(principal, conversation, not_found=_NOT_FOUND, forbidden=_FORBIDDEN)


@router.get("/conversations", response_model=ConversationListResponse)
def list_conversations(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
) -> ConversationListResponse:
    owner = None if principal.is_admin else principal.id
    conversations, total = _store(request).list_conversations(user_id=owner, page=page, limit=limit)
    return ConversationListResponse(
        conversations=[ConversationResponse.from_conversation(c) for c in conversations],
        pagination=Pagination.build(total, page, limit),
    )


@router.post("/conversations", response_model=ConversationResponse, status_code=201)
def create_conversation(
    request: Request,
    body: ConversationCreate,
    principal: Principal = Depends(get_principal),
) -> ConversationResponse:
    conversation = _store(request).create_conversation(
        Conversation(user_id=principal.id, user_name=body.user_name, user_phone=body.user_phone)
    )
    return ConversationResponse.from_conversation(conversation)


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
def get_conversation(
    request: Request,
    conversation_id: str,
    principal: Principal = Depends(get_principal),
) -> ConversationResponse:
    return ConversationResponse.from_conversation(_owned_conversation(request, conversation_id, principal))


@router.put("/conversations/{conversation_id}", response_model=ConversationResponse)
def update_conversation(
    request: Request,
    conversation_id: str,
    body: ConversationUpdate,
    principal: Principal = Depends(get_principal),
) -> ConversationResponse:
    _owned_conversation(request, conversation_id, principal)
    updated = _store(request).update_conversation(conversation_id, **body.model_dump(exclude_unset=True))
    if updated is None:
        raise NotFound(_NOT_FOUND)
    return ConversationResponse.from_conversation(updated)


@router.delete("/conversations/{conversation_id}", status_code=204)
def delete_conversation(
    request: Request,
    conversation_id: str,
    principal: Principal = Depends(get_principal),
) -> Response:
    _owned_conversation(request, conversation_id, principal)
    _store(request).delete_conversation(conversation_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
def list_messages(
    request: Request,
    conversation_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    before: Optional[datetime] = Query(default=None),
    after: Optional[datetime] = Query(default=None),
    principal: Principal = Depends(get_principal),
) -> MessageListResponse:
    _owned_conversation(request, conversation_id, principal)
    messages, total = _store(request).list_messages(
        conversation_id, page=page, limit=limit, before=before, after=after
    )
    return MessageListResponse(
        messages=[MessageResponse.from_message(m) for m in messages],
        pagination=Pagination.build(total, page, limit),
    )


@router.post("/conversations/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
def send_message(
    request: Request,
    conversation_id: str,
    body: MessageCreate,
    principal: Principal = Depends(get_principal),
) -> MessageResponse:
    _owned_conversation(request, conversation_id, principal)
    message = _store(request).add_message(
        Message(conversation_id=conversation_id, content=body.content, is_user=body.is_user)
    )
    return MessageResponse.from_message(message)
