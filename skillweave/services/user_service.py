"""
User Service
============

Table operations for ``users`` and the two logs keyed by user,
``user_sessions`` and ``recent_activities``.

Every function takes the request's AsyncSession. Missing rows come back as
None; driver failures are raised as DatabaseError("Error <action>: ...").
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.core.errors import translate_errors
from skillweave.core.logging import get_logger
from skillweave.core.utils import normalize_email, pick, utcnow
from skillweave.models.user import RecentActivity, User, UserRole, UserSession

logger = get_logger(__name__)

# Columns a user may change through update_by_id
UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "username",
    "avatar_url",
    "preferences",
    "profile_data",
    "password_hash",
    "role",
    "is_active",
)


@translate_errors("creating user")
async def create_user(db: AsyncSession, data: Dict[str, Any]) -> User:
    user = User(
        email=normalize_email(data["email"]),
        password_hash=data["password_hash"],
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        username=data.get("username") or None,
        role=data.get("role") or UserRole.USER.value,
        preferences=data.get("preferences") or {},
        profile_data=data.get("profile_data") or {},
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info(f"User created: {user.email}")
    return user


@translate_errors("finding user")
async def find_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one()


@translate_errors("finding user by email")
async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one()


@translate_errors("finding user by username")
async def find_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one()


@translate_errors("updating user")
async def update_by_id(db: AsyncSession, user_id: str, updates: Dict[str, Any]) -> Optional[User]:
    values = pick(updates, UPDATABLE_FIELDS)
    if values:
        await db.execute(update(User).where(User.id == user_id).values(**values, updated_at=utcnow()))
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@translate_errors("updating last login")
async def update_last_login(db: AsyncSession, user_id: str) -> Optional[User]:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(last_login_at=utcnow(), login_count=User.login_count + 1)
    )
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@translate_errors("deleting user")
async def delete_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one()
    await db.execute(delete(User).where(User.id == user_id))
    logger.info(f"User deleted: {user.email}")
    return user


@translate_errors("getting user stats")
async def get_stats(db: AsyncSession) -> Dict[str, int]:
    total = await db.scalar(select(func.count()).select_from(User))
    return {"total_users": total or 0}


# Session management

@translate_errors("creating session")
async def create_session(db: AsyncSession, user_id: str, session_data: Dict[str, Any]) -> UserSession:
    session = UserSession(
        user_id=user_id,
        session_token=session_data["session_token"],
        refresh_token=session_data.get("refresh_token"),
        expires_at=session_data.get("expires_at"),
        ip_address=session_data.get("ip_address"),
        user_agent=session_data.get("user_agent"),
    )
    db.add(session)
    await db.flush()
    return session


@translate_errors("finding session")
async def find_session_by_token(db: AsyncSession, session_token: str) -> Optional[UserSession]:
    result = await db.execute(
        select(UserSession).where(
            UserSession.session_token == session_token,
            UserSession.is_active.is_(True),
        )
    )
    return result.scalar_one()


@translate_errors("invalidating session")
async def invalidate_session(db: AsyncSession, session_token: str) -> Optional[UserSession]:
    await db.execute(
        update(UserSession)
        .where(UserSession.session_token == session_token)
        .values(is_active=False)
    )
    result = await db.execute(
        select(UserSession)
        .where(UserSession.session_token == session_token)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@translate_errors("invalidating user sessions")
async def invalidate_all_user_sessions(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        update(UserSession)
        .where(UserSession.user_id == user_id, UserSession.is_active.is_(True))
        .values(is_active=False)
    )
    return result.rowcount or 0


# Activity logging

@translate_errors("logging activity")
async def log_activity(db: AsyncSession, user_id: str, activity: Dict[str, Any]) -> RecentActivity:
    entry = RecentActivity(
        user_id=user_id,
        portfolio_id=activity.get("portfolio_id"),
        activity_type=activity["activity_type"],
        description=activity.get("description"),
        activity_data=activity.get("activity_data") or {},
    )
    db.add(entry)
    await db.flush()
    return entry


@translate_errors("getting recent activities")
async def get_recent_activities(db: AsyncSession, user_id: str, limit: int = 10) -> List[RecentActivity]:
    result = await db.execute(
        select(RecentActivity)
        .where(RecentActivity.user_id == user_id)
        .order_by(RecentActivity.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
