"""
Direct authentication routes: sign up and sign in against the users table.
=========================================================================

Accounts live in ``users`` with a bcrypt password hash; each account also
gets its "Profile Details" row on signup. Signing in records the login,
opens a ``user_sessions`` row and returns JWT access/refresh tokens bound
to that session.

Endpoints:
- POST /signup
- POST /signin
- GET  /test
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.config import settings
from skillweave.core.database import get_db, ping
from skillweave.core.errors import ConstraintError
from skillweave.core.logging import get_logger
from skillweave.core.security import (
    access_token_ttl_seconds,
    create_access_token,
    create_refresh_token,
    hash_password,
    new_session_token,
    verify_password,
)
from skillweave.core.utils import is_valid_email, normalize_email, now_iso, utcnow
from skillweave.models.user import User
from skillweave.schemas import UserOut, dump, envelope
from skillweave.services import profile_service, user_service

logger = get_logger(__name__)
router = APIRouter()

SERVER_ERROR = "Server error - please try again"


class SignupRequest(BaseModel):
    """Signup payload; names accept the front end's camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    username: Optional[str] = None


class SigninRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


async def open_session(db: AsyncSession, user: User, request: Optional[Request] = None) -> Dict[str, Any]:
    """
    Create a user_sessions row and the token pair bound to it.

    Returns:
        dict: access_token, refresh_token, expires_in, token_type
    """
    session_token = new_session_token()
    refresh_token = create_refresh_token(user.id, session_token=session_token)
    await user_service.create_session(
        db,
        user.id,
        {
            "session_token": session_token,
            "refresh_token": refresh_token,
            "expires_at": utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            "ip_address": request.client.host if request and request.client else None,
            "user_agent": request.headers.get("user-agent") if request else None,
        },
    )
    return {
        "access_token": create_access_token(user.id, session_token=session_token),
        "refresh_token": refresh_token,
        "expires_in": access_token_ttl_seconds(),
        "token_type": "bearer",
    }


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, db: AsyncSession = Depends(get_db)):
    """
    Create an account.

    Raises:
        HTTPException: 400 on missing/invalid input, 409 when the email or
            username is already registered
    """
    try:
        if not payload.email or not payload.password:
            raise _bad_request("Email and password are required")
        if len(payload.password) < settings.MIN_PASSWORD_LENGTH:
            raise _bad_request(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
            )

        email = normalize_email(payload.email)
        if not is_valid_email(email):
            raise _bad_request("Please enter a valid email address")

        logger.info(f"Signup request for: {email}")

        if await user_service.find_by_email(db, email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists",
            )
        username = (payload.username or "").strip() or None
        if username and await user_service.find_by_username(db, username):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This username is already taken",
            )

        user = await user_service.create_user(
            db,
            {
                "email": email,
                "password_hash": hash_password(payload.password),
                "first_name": payload.first_name,
                "last_name": payload.last_name,
                "username": username,
            },
        )
        await profile_service.create_profile(
            db,
            user.id,
            {
                "first_name": payload.first_name or "",
                "last_name": payload.last_name or "",
                "email": email,
                "username": username or "",
                "skills": [],
            },
        )

        logger.info(f"User created: {user.id}")
        return envelope({"user": dump(UserOut, user)}, "Account created successfully")

    except HTTPException:
        raise
    except ConstraintError as e:
        # a concurrent signup took the email or username after the lookups
        await db.rollback()
        if any(name in e.constraint_text for name in ("users.username", "users_username")):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This username is already taken")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )
    except Exception as e:
        logger.error(f"Signup failed: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=SERVER_ERROR)


@router.post("/signin")
async def signin(payload: SigninRequest, request: Request, db: AsyncSession = Depends(get_db)):
    """
    Verify credentials and open a session.

    Unknown emails and wrong passwords get the same 401 message.
    """
    try:
        if not payload.email or not payload.password:
            raise _bad_request("Email and password are required")

        email = normalize_email(payload.email)
        user = await user_service.find_by_email(db, email)
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.warning(f"Signin failed for: {email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )
        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated",
            )

        user = await user_service.update_last_login(db, user.id)
        session = await open_session(db, user, request)
        user_data = dump(UserOut, user)
        session["user"] = user_data

        logger.info(f"Signin successful for: {email}")
        return envelope({"user": user_data, "session": session}, "Signed in successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Signin failed: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=SERVER_ERROR)


@router.get("/test")
async def test_connection(db: AsyncSession = Depends(get_db)):
    if not await ping(db):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Connection failed")
    return envelope(message="Direct auth system ready", timestamp=now_iso())
