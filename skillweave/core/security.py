"""
Security utilities: password hashing, JWT creation/verification, and dependencies.
=================================================================================

Features:
- Password hashing with bcrypt (passlib)
- JWT access and refresh tokens bound to a user_sessions row
- Authentication dependencies: required user, optional user, admin
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.config import settings
from skillweave.core.database import get_db
from skillweave.core.logging import get_logger
from skillweave.models.user import User
from skillweave.services import user_service

logger = get_logger(__name__)

# bcrypt with 10 rounds, same cost as the hashes already stored in Supabase
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against its hash.

    Returns False for a missing or malformed stored hash instead of raising.
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(f"Unverifiable password hash: {e}")
        return False


def new_session_token() -> str:
    return uuid.uuid4().hex


def _encode(subject: str, token_type: str, expire: datetime, session_token: Optional[str]) -> str:
    to_encode = {
        "sub": subject,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": token_type,
    }
    if session_token:
        to_encode["sid"] = session_token
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: str,
    session_token: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: User id
        session_token: user_sessions.session_token the token belongs to
        expires_minutes: Token expiration time in minutes

    Returns:
        str: Encoded JWT token
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    token = _encode(subject, "access", expire, session_token)
    logger.debug(f"Access token created for subject: {subject}")
    return token


def create_refresh_token(subject: str, session_token: Optional[str] = None, expires_days: Optional[int] = None) -> str:
    """Create a JWT refresh token with longer expiration."""
    expire = datetime.now(timezone.utc) + timedelta(
        days=expires_days or settings.REFRESH_TOKEN_EXPIRE_DAYS
    )
    return _encode(subject, "refresh", expire, session_token)


def access_token_ttl_seconds() -> int:
    return settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def verify_token(token: str, token_type: str = "access") -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token to verify
        token_type: Expected token type ("access" or "refresh")

    Returns:
        Optional[dict]: Decoded token payload or None if invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    if payload.get("type") != token_type:
        logger.warning(f"Invalid token type: expected {token_type}, got {payload.get('type')}")
        return None
    return payload


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _user_from_token(token: str, db: AsyncSession) -> User:
    payload = verify_token(token, "access")
    if payload is None or not payload.get("sub"):
        raise _credentials_exception()

    session_token = payload.get("sid")
    if session_token:
        session = await user_service.find_session_by_token(db, session_token)
        if session is None:
            logger.warning("Token presented for an invalidated session")
            raise _credentials_exception("Session has been signed out")

    user = await user_service.find_by_id(db, payload["sub"])
    if user is None:
        logger.warning(f"User not found for token subject: {payload['sub']}")
        raise _credentials_exception()
    if not user.is_active:
        logger.warning(f"Inactive user attempted access: {user.email}")
        raise _credentials_exception("Account is deactivated")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or its
            session was signed out
    """
    if credentials is None:
        raise _credentials_exception("Not authenticated")
    return await _user_from_token(credentials.credentials, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous or bad tokens yield None."""
    if credentials is None:
        return None
    try:
        return await _user_from_token(credentials.credentials, db)
    except HTTPException:
        return None


async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current user and require the admin role.

    Raises:
        HTTPException: 403 if the user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return current_user
