"""Dashboard profile API endpoints.

POST  /api/profile/onboarding - Create the profile after first sign-in (idempotent)
GET   /api/profile            - Get current user's profile
PATCH /api/profile            - Partial update of the profile
"""

import uuid
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import get_current_user_id
from models import User, UserProfile, get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])


class ProfileOut(BaseModel):
    id: uuid.UUID
    display_name: Optional[str]
    email: Optional[str]
    is_admin: bool
    created_at: datetime


class OnboardingRequest(BaseModel):
    display_name: Optional[str] = Field(None, max_length=200)


class ProfilePatch(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)


def _to_out(profile: UserProfile) -> ProfileOut:
    return ProfileOut(
        id=profile.id,
        display_name=profile.display_name,
        email=profile.email,
        is_admin=bool(profile.is_admin),
        created_at=profile.created_at,
    )


@router.post("/onboarding", response_model=ProfileOut)
async def onboarding(
    body: OnboardingRequest | None = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create the profile for the signed-in user, or return the existing one."""
    profile = await db.get(UserProfile, user_id)
    if profile is not None:
        return _to_out(profile)

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    display_name = (body.display_name if body else None) or user.email.split("@")[0] or "User"
    profile = UserProfile(id=user_id, display_name=display_name, email=user.email, is_admin=False)
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    logger.info("Created profile for user %s", user_id)
    return _to_out(profile)


@router.get("", response_model=ProfileOut)
async def get_profile(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    profile = await db.get(UserProfile, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return _to_out(profile)


@router.patch("", response_model=ProfileOut)
async def update_profile(
    body: ProfilePatch,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Partially update the current user's profile."""
    profile = await db.get(UserProfile, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    patch_data = body.model_dump(exclude_unset=True)
    if not patch_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    for field, value in patch_data.items():
        setattr(profile, field, value)

    await db.commit()
    await db.refresh(profile)
    return _to_out(profile)
