"""Purchase history and schema-cache maintenance endpoints."""

import uuid
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import get_current_user_id
from models import OrderItem, Purchase, get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["purchases"])


class OrderItemOut(BaseModel):
    id: uuid.UUID
    product_slug: Optional[str]
    price_at_purchase: int
    generations_remaining: int
    generations_used: int


class PurchaseOut(BaseModel):
    id: uuid.UUID
    product_slug: Optional[str]
    product_name: str
    amount: int
    currency: str
    payment_status: str
    stripe_session_id: Optional[str]
    created_at: datetime
    items: list[OrderItemOut]


@router.get("/purchases", response_model=list[PurchaseOut])
async def list_purchases(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Return the user's purchases, newest first, with their order lines."""
    result = await db.execute(
        select(Purchase).where(Purchase.user_id == user_id).order_by(Purchase.created_at.desc())
    )
    purchases = result.scalars().all()

    items_by_purchase: dict[uuid.UUID, list[OrderItem]] = {}
    if purchases:
        items = await db.execute(
            select(OrderItem).where(OrderItem.purchase_id.in_([p.id for p in purchases]))
        )
        for item in items.scalars().all():
            items_by_purchase.setdefault(item.purchase_id, []).append(item)

    return [
        PurchaseOut(
            id=p.id,
            product_slug=p.product_slug,
            product_name=p.product_name,
            amount=p.amount,
            currency=p.currency,
            payment_status=p.payment_status.value,
            stripe_session_id=p.stripe_session_id,
            created_at=p.created_at,
            items=[
                OrderItemOut(
                    id=i.id,
                    product_slug=i.product_slug,
                    price_at_purchase=i.price_at_purchase,
                    generations_remaining=i.generations_remaining,
                    generations_used=i.generations_used,
                )
                for i in items_by_purchase.get(p.id, [])
            ],
        )
        for p in purchases
    ]


@router.get("/refresh-schema")
async def refresh_schema(db: AsyncSession = Depends(get_db)):
    """Touch ``order_items`` so the connection pool picks up schema changes."""
    try:
        await db.execute(select(OrderItem.id).limit(1))
    except SQLAlchemyError as e:
        logger.error("Schema refresh failed: %s", e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return {"success": True, "message": "Schema cache refreshed"}
