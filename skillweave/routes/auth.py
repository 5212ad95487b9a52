"""
Session routes: current user, token refresh and logout.
======================================================

Tokens are issued by ``/api/auth-direct/signin``. Every token carries the
``sid`` of its ``user_sessions`` row; logging out deactivates that row, which
makes both the access and the refresh token unusable.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.core.database import get_db
from skillweave.core.logging import get_logger
from skillweave.core.security import (
    access_token_ttl_seconds,
    bearer_scheme,
    create_access_token,
    get_current_user,
    verify_token,
)
from skillweave.models.user import User
from skillweave.schemas import UserOut, dump, envelope
from skillweave.services import user_service

logger = get_logger(__name__)
router = APIRouter()


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """JWT token response model."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Profile of the user the bearer token belongs to."""
    return envelope({"user": dump(UserOut, current_user)})


@router.post("/refresh")
async def refresh_token(payload: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """
    Exchange a refresh token for a new access token.

    Raises:
        HTTPException: 401 if the refresh token is invalid, expired or its
            session was signed out
    """
    claims = verify_token(payload.refresh_token, "refresh")
    if claims is None or not claims.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    session_token = claims.get("sid")
    if session_token and await user_service.find_session_by_token(db, session_token) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session has been signed out")

    user = await user_service.find_by_id(db, claims["sub"])
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    token = TokenResponse(
        access_token=create_access_token(user.id, session_token=session_token),
        expires_in=access_token_ttl_seconds(),
    )
    logger.info(f"Token refreshed for user: {user.email}")
    return envelope(token.model_dump(), "Token refreshed")


@router.post("/logout")
async def logout(
    all_sessions: bool = Query(False, alias="all"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Sign out the current session, or every session of the user with ``all=true``.
    """
    if all_sessions:
        count = await user_service.invalidate_all_user_sessions(db, current_user.id)
        logger.info(f"User {current_user.email} signed out of {count} sessions")
        return envelope({"sessions_closed": count}, "Logged out of all sessions")

    claims = verify_token(credentials.credentials, "access") if credentials else None
    session_token = claims.get("sid") if claims else None
    if session_token:
        await user_service.invalidate_session(db, session_token)
    logger.info(f"User logged out: {current_user.email}")
    return envelope(message="Logged out successfully")
