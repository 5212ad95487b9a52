"""
Profile Details routes.
=======================

The about-me section of the portfolio form, one row per user in the
legacy "Profile Details" table.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.core.database import get_db
from skillweave.core.logging import get_logger
from skillweave.core.security import get_current_admin, get_current_user
from skillweave.models.user import User
from skillweave.schemas import ProfileOut, dump, dump_all, envelope
from skillweave.services import profile_service

logger = get_logger(__name__)
router = APIRouter()


class ProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName", max_length=100)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    username: Optional[str] = Field(None, max_length=100)
    title: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=64)
    website: Optional[str] = Field(None, max_length=1024)
    github: Optional[str] = Field(None, max_length=1024)
    linkedin: Optional[str] = Field(None, max_length=1024)
    avatar_url: Optional[str] = Field(None, alias="avatarUrl", max_length=1024)
    skills: Optional[List[str]] = None


class AvatarRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    avatar_url: Optional[str] = Field(None, alias="avatarUrl", max_length=1024)


class SkillsRequest(BaseModel):
    skills: List[str]


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")


@router.get("")
async def get_profile(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    profile = await profile_service.get_profile(db, current_user.id)
    if profile is None:
        raise _not_found()
    return envelope({"profile": dump(ProfileOut, profile)})


@router.put("")
async def save_profile(
    payload: ProfileRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create or update the current user's profile with the fields sent."""
    profile = await profile_service.upsert_profile(db, current_user.id, payload.model_dump(exclude_unset=True))
    return envelope({"profile": dump(ProfileOut, profile)}, "Profile saved successfully")


@router.delete("")
async def delete_profile(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    if await profile_service.delete_profile(db, current_user.id) is None:
        raise _not_found()
    return envelope(message="Profile deleted successfully")


@router.put("/avatar")
async def update_avatar(
    payload: AvatarRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await profile_service.update_avatar(db, current_user.id, payload.avatar_url)
    if profile is None:
        raise _not_found()
    return envelope({"profile": dump(ProfileOut, profile)}, "Avatar updated successfully")


@router.put("/skills")
async def update_skills(
    payload: SkillsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await profile_service.update_skills(db, current_user.id, payload.skills)
    if profile is None:
        raise _not_found()
    return envelope({"profile": dump(ProfileOut, profile)}, "Skills updated successfully")


@router.get("/all")
async def get_all_profiles(admin: User = Depends(get_current_admin), db: AsyncSession = Depends(get_db)):
    profiles = await profile_service.get_all_profiles(db)
    return envelope({"profiles": dump_all(ProfileOut, profiles), "count": len(profiles)})
