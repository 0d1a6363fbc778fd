"""Catalog and product form endpoints.

GET  /api/products                  - List products (optional ?search=)
GET  /api/products/{slug}           - One product with its localized price
GET  /api/products/{slug}/form      - Multi-page form definition
POST /api/products/{slug}/validate  - Validate a page (?page=N) or the whole form
POST /api/products/{slug}/preview   - Render the live preview for partial data
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel

from catalog.pricing import UserLocation, localize_price, resolve_location
from catalog.sanity import Product, SanityAPIError, SanityClient, get_sanity_client
from forms import registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])


class PriceOut(BaseModel):
    amount: int
    currency: str
    formatted: str
    converted: bool


class ProductOut(BaseModel):
    id: str
    name: str
    slug: str
    category: Optional[str] = None
    description: Any = None
    details: Any = None
    base_price: int
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    price: PriceOut
    has_form: bool


def _to_out(product: Product, location: UserLocation) -> ProductOut:
    price = localize_price(product, location)
    return ProductOut(
        id=product.id,
        name=product.name,
        slug=product.slug,
        category=product.category,
        description=product.description,
        details=product.details,
        base_price=product.base_price,
        stripe_product_id=product.stripe_product_id,
        stripe_price_id=product.stripe_price_id,
        price=PriceOut(
            amount=price.amount,
            currency=price.currency,
            formatted=price.formatted,
            converted=price.converted,
        ),
        has_form=not registry.lookup(product.slug).is_default,
    )


def _upstream_error(e: SanityAPIError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Content API error: {e.message}")


@router.get("", response_model=list[ProductOut])
async def list_products(
    search: Optional[str] = None,
    location: UserLocation = Depends(resolve_location),
    sanity: SanityClient = Depends(get_sanity_client),
):
    try:
        products = await sanity.list_products(search)
    except SanityAPIError as e:
        raise _upstream_error(e)
    return [_to_out(p, location) for p in products]


@router.get("/{slug}", response_model=ProductOut)
async def get_product(
    slug: str,
    location: UserLocation = Depends(resolve_location),
    sanity: SanityClient = Depends(get_sanity_client),
):
    try:
        product = await sanity.get_product(slug)
    except SanityAPIError as e:
        raise _upstream_error(e)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return _to_out(product, location)


@router.get("/{slug}/form")
async def get_form(slug: str):
    """Form layout for the product; unknown slugs get the default single-page form."""
    entry = registry.lookup(slug)
    return {"slug": slug, "is_default": entry.is_default, **entry.form.to_dict()}


@router.post("/{slug}/validate")
async def validate_form(
    slug: str,
    data: dict[str, Any] = Body(...),
    page: Optional[int] = Query(None, ge=1),
):
    """Validate the fields of one page, or the whole submission when no page is given."""
    try:
        result = registry.validate(slug, data, page=page)
    except IndexError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not result.valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Form validation failed", "errors": result.errors},
        )
    return {"valid": True, "data": result.data}


@router.post("/{slug}/preview")
async def preview_form(
    slug: str,
    data: dict[str, Any] = Body(...),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """Render the document preview with placeholders for fields not yet filled in."""
    try:
        product = await sanity.get_product(slug)
    except SanityAPIError as e:
        raise _upstream_error(e)
    preview = registry.render_preview(slug, data, product.model_dump() if product else None)
    return preview.to_dict()
