"""
api/routes/v1/products.py -- Product REST endpoints.

Routes:
  GET    /api/products        -- paginated list with optional filters (requires auth)
  POST   /api/products        -- create; caller becomes the creator (requires auth)
  GET    /api/products/{id}   -- detail (requires auth)
  PUT    /api/products/{id}   -- update (creator or admin)
  DELETE /api/products/{id}   -- delete (creator or admin)

Mutations go through auth.gate.ensure_access(): 404 if the product does not
exist, then 403 if the caller is neither its creator nor an admin.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import (
    Pagination,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from auth.dependencies import get_principal
from auth.errors import NotFound
from auth.gate import ensure_access
from auth.models import Principal
from marketplace.models import Product, ProductStatus
from marketplace.store import MarketplaceStore

router = APIRouter()

_NOT_FOUND = "Product not found"
_FORBIDDEN = "Forbidden - you don't have permission to modify this product"


def _store(request: Request) -> MarketplaceStore:
    return request.app.state.marketplace


@router.get("/products", response_model=ProductListResponse)
def list_products(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: Optional[ProductStatus] = Query(default=None),
    creator_id: Optional[str] = Query(default=None, alias="creatorId"),
    manufacturer_id: Optional[str] = Query(default=None, alias="manufacturerId"),
    principal: Principal = Depends(get_principal),
) -> ProductListResponse:
    products, total = _store(request).list_products(
        status=status,
        creator_id=creator_id,
        manufacturer_id=manufacturer_id,
        page=page,
        limit=limit,
    )
    return ProductListResponse(
        products=[ProductResponse.from_product(p) for p in products],
        pagination=Pagination.build(total, page, limit),
    )


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: Request,
    body: ProductCreate,
    principal: Principal = Depends(get_principal),
) -> ProductResponse:
    product = _store(request).create_product(
        Product(
            title=body.title,
            description=body.description,
            price=body.price,
            image_url=str(body.image_url) if body.image_url else None,
            status=body.status,
            manufacturer_id=body.manufacturer_id,
            creator_id=principal.id,
        )
    )
    return ProductResponse.from_product(product)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(
    request: Request,
    product_id: str,
    principal: Principal = Depends(get_principal),
) -> ProductResponse:
    product = _store(request).get_product(product_id)
    if product is None:
        raise NotFound(_NOT_FOUND)
    return ProductResponse.from_product(product)


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    request: Request,
    product_id: str,
    body: ProductUpdate,
    principal: Principal = Depends(get_principal),
) -> ProductResponse:
    store = _store(request)
    ensure_access(principal, store.get_product(product_id), not_found=_NOT_FOUND, forbidden=_FORBIDDEN)

    changes = body.model_dump(exclude_unset=True)
    if changes.get("image_url") is not None:
        changes["image_url"] = str(changes["image_url"])
    updated = store.update_product(product_id, **changes)
    if updated is None:
        raise NotFound(_NOT_FOUND)
    return ProductResponse.from_product(updated)


@router.delete("/products/{product_id}", status_code=204)
def delete_product(
    request: Request,
    product_id: str,
    principal: Principal = Depends(get_principal),
) -> Response:
    store = _store(request)
    ensure_access(principal, store.get_product(product_id), not_found=_NOT_FOUND, forbidden=_FORBIDDEN)
    store.delete_product(product_id)
    return Response(status_code=204)
