"""
auth/gate.py -- Ownership-based authorization.

One rule for every owned resource: admins may act on anything, everyone else
only on resources whose owner/creator id equals their own id. There are no
per-resource-type exceptions.

ensure_access() applies the rule in the order callers rely on:

    resource missing  -> NotFound   (404)
    not owner/admin   -> Forbidden  (403)

Authentication (401) has already happened by the time a principal exists.
Existence is checked first so "does not exist" and "exists but not yours"
stay distinguishable.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from auth.errors import Forbidden, NotFound
from auth.models import Principal

T = TypeVar("T")


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def authorize(principal: Principal, resource_owner_id: str | None) -> Decision:
    if principal.is_admin:
        return Decision.ALLOW
    if resource_owner_id is not None and principal.id == resource_owner_id:
        return Decision.ALLOW
    return Decision.DENY


def ensure_access(
    principal: Principal,
    resource: T | None,
    owner_id: str | None = None,
    *,
    not_found: str = "Not found",
    forbidden: str = "Forbidden",
) -> T:
    """Return the resource if the principal may act on it, raise otherwise.

    owner_id is read from resource.owner_id when not given explicitly.
    """
    if resource is None:
        raise NotFound(not_found)
    if owner_id is None:
        owner_id = getattr(resource, "owner_id", None)
    if authorize(principal, owner_id) is Decision.DENY:
        raise Forbidden(forbidden)
    return resource
