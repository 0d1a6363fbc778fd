"""Visitor location / currency preference, stored in the ``user_location`` cookie."""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from catalog.pricing import (
    CURRENCY_SYMBOLS,
    LOCATION_COOKIE,
    LOCATION_COOKIE_MAX_AGE,
    UserLocation,
    resolve_location,
)

router = APIRouter(prefix="/api/location", tags=["location"])


class LocationUpdate(BaseModel):
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    currency: Optional[str] = Field(None, pattern=f"^({'|'.join(CURRENCY_SYMBOLS)})$")
    timezone: Optional[str] = Field(None, max_length=64)


@router.get("")
async def get_location(location: UserLocation = Depends(resolve_location)):
    return asdict(location)


@router.put("")
async def set_location(
    body: LocationUpdate,
    response: Response,
    current: UserLocation = Depends(resolve_location),
):
    """Merge the update into the current location and persist it for 30 days."""
    location = UserLocation(
        country=(body.country or current.country).upper(),
        currency=body.currency or current.currency,
        timezone=body.timezone or current.timezone,
    )
    response.set_cookie(
        key=LOCATION_COOKIE,
        value=location.to_cookie(),
        max_age=LOCATION_COOKIE_MAX_AGE,
        samesite="lax",
    )
    return asdict(location)
