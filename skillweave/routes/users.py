"""
User account routes.
====================

Profile settings, dashboard summary, activity feed, password change, data
export and account deletion for the signed-in user, plus admin statistics.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.config import settings
from skillweave.core.database import get_db
from skillweave.core.logging import get_logger
from skillweave.core.security import get_current_admin, get_current_user, hash_password, verify_password
from skillweave.core.utils import now_iso
from skillweave.models.portfolio import PortfolioStatus
from skillweave.models.user import User
from skillweave.schemas import ActivityOut, PortfolioOut, UserOut, dump, dump_all, envelope
from skillweave.services import portfolio_service, template_service, user_service

logger = get_logger(__name__)
router = APIRouter()


class UpdateProfileRequest(BaseModel):
    """Fields a user may change on their own account."""
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName", max_length=100)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=100)
    username: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, alias="avatarUrl", max_length=1024)
    preferences: Optional[Dict[str, Any]] = None
    profile_data: Optional[Dict[str, Any]] = Field(None, alias="profileData")


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword")


class DeleteAccountRequest(BaseModel):
    password: Optional[str] = None


@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return envelope({"user": dump(UserOut, current_user)})


@router.put("/profile")
async def update_profile(
    payload: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the current user's names, username, avatar, preferences and
    profile data. Only the fields present in the body are changed.

    Raises:
        HTTPException: 409 if the username belongs to someone else
    """
    updates = payload.model_dump(exclude_unset=True)
    # JSON columns are never null
    for field in ("preferences", "profile_data"):
        if field in updates and updates[field] is None:
            del updates[field]
    if "username" in updates:
        updates["username"] = (updates["username"] or "").strip() or None
    if updates.get("username"):
        owner = await user_service.find_by_username(db, updates["username"])
        if owner is not None and owner.id != current_user.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This username is already taken")

    user = await user_service.update_by_id(db, current_user.id, updates)
    await user_service.log_activity(
        db,
        current_user.id,
        {"activity_type": "profile_updated", "description": "Updated account profile"},
    )
    return envelope({"user": dump(UserOut, user)}, "Profile updated successfully")


@router.put("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid current password")
    if len(payload.new_password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"New password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
        )

    await user_service.update_by_id(db, current_user.id, {"password_hash": hash_password(payload.new_password)})
    logger.info(f"Password changed for user: {current_user.email}")
    return envelope(message="Password changed successfully")


@router.get("/dashboard")
async def dashboard(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Five most recently edited portfolios plus portfolio counters."""
    recent = await portfolio_service.find_by_user_id(db, current_user.id, limit=5)
    statistics = {
        "total_portfolios": await portfolio_service.count_by_user_id(db, current_user.id),
        "published": await portfolio_service.count_by_user_id(
            db, current_user.id, status=PortfolioStatus.PUBLISHED.value
        ),
        "drafts": await portfolio_service.count_by_user_id(db, current_user.id, status=PortfolioStatus.DRAFT.value),
        "total_views": await portfolio_service.total_views_by_user_id(db, current_user.id),
    }
    return envelope(
        {
            "user": dump(UserOut, current_user),
            "recent_portfolios": dump_all(PortfolioOut, recent),
            "statistics": statistics,
        }
    )


@router.get("/activities")
async def get_activities(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    activities = await user_service.get_recent_activities(db, current_user.id, limit=limit)
    return envelope({"activities": dump_all(ActivityOut, activities)})


@router.post("/export-data")
async def export_data(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    portfolios = await portfolio_service.find_by_user_id(db, current_user.id)
    return envelope(
        {
            "user": dump(UserOut, current_user),
            "portfolios": dump_all(PortfolioOut, portfolios),
            "export_date": now_iso(),
            "total_portfolios": len(portfolios),
        },
        "Data exported successfully",
    )


@router.delete("/me")
async def delete_me(
    payload: Optional[DeleteAccountRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete the account; portfolios, sessions and activity go with it.

    Raises:
        HTTPException: 400 if the password is missing or does not match
    """
    password = payload.password if payload else None
    if not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password confirmation is required")
    if not verify_password(password, current_user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password")

    await user_service.delete_by_id(db, current_user.id)
    return envelope(message="Account deleted successfully")


@router.get("/stats")
async def get_stats(admin: User = Depends(get_current_admin), db: AsyncSession = Depends(get_db)):
    stats: Dict[str, int] = {}
    stats.update(await user_service.get_stats(db))
    stats.update(await portfolio_service.get_stats(db))
    stats.update(await template_service.get_stats(db))
    return envelope(stats)
