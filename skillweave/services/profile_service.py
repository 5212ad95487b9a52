"""
Profile Service
===============

Table operations for the legacy ``"Profile Details"`` table, one row per
user, holding the about-me fields of the portfolio form.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.core.errors import translate_errors
from skillweave.core.logging import get_logger
from skillweave.core.utils import pick, utcnow
from skillweave.models.profile import ProfileDetails

logger = get_logger(__name__)

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "username",
    "title",
    "bio",
    "location",
    "phone",
    "website",
    "github",
    "linkedin",
    "avatar_url",
    "skills",
)


async def _reload(db: AsyncSession, user_id: str) -> ProfileDetails:
    result = await db.execute(
        select(ProfileDetails)
        .where(ProfileDetails.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@translate_errors("getting profile")
async def get_profile(db: AsyncSession, user_id: str) -> Optional[ProfileDetails]:
    result = await db.execute(select(ProfileDetails).where(ProfileDetails.user_id == user_id))
    return result.scalar_one()


@translate_errors("creating profile")
async def create_profile(db: AsyncSession, user_id: str, data: Dict[str, Any]) -> ProfileDetails:
    values = pick(data, PROFILE_FIELDS)
    values.setdefault("skills", [])
    profile = ProfileDetails(user_id=user_id, **values)
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    logger.info(f"Profile created for user {user_id}")
    return profile


@translate_errors("updating profile")
async def update_profile(db: AsyncSession, user_id: str, updates: Dict[str, Any]) -> Optional[ProfileDetails]:
    values = pick(updates, PROFILE_FIELDS)
    await db.execute(
        update(ProfileDetails)
        .where(ProfileDetails.user_id == user_id)
        .values(**values, updated_at=utcnow())
    )
    return await _reload(db, user_id)


async def upsert_profile(db: AsyncSession, user_id: str, data: Dict[str, Any]) -> ProfileDetails:
    """Update the user's profile row, creating it on first save."""
    if await get_profile(db, user_id) is None:
        return await create_profile(db, user_id, data)
    return await update_profile(db, user_id, data)


@translate_errors("deleting profile")
async def delete_profile(db: AsyncSession, user_id: str) -> Optional[ProfileDetails]:
    profile = (
        await db.execute(select(ProfileDetails).where(ProfileDetails.user_id == user_id))
    ).scalar_one()
    await db.execute(delete(ProfileDetails).where(ProfileDetails.user_id == user_id))
    return profile


async def update_avatar(db: AsyncSession, user_id: str, avatar_url: Optional[str]) -> Optional[ProfileDetails]:
    return await update_profile(db, user_id, {"avatar_url": avatar_url})


async def update_skills(db: AsyncSession, user_id: str, skills: List[str]) -> Optional[ProfileDetails]:
    # keep order, drop blanks and repeats
    cleaned = list(dict.fromkeys(s.strip() for s in skills if s and s.strip()))
    return await update_profile(db, user_id, {"skills": cleaned})


@translate_errors("getting all profiles")
async def get_all_profiles(db: AsyncSession) -> List[ProfileDetails]:
    result = await db.execute(select(ProfileDetails).order_by(ProfileDetails.created_at.desc()))
    return list(result.scalars().all())
