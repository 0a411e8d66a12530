"""Authentication: bearer JWT validation and the current-user dependency."""
import logging

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

DEV_AUTH_ID = "dev|local-development-user"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate an HS256 JWT issued by the identity provider.

    Raises:
        HTTPException: If token is invalid, expired, or has the wrong audience.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidAudienceError:
        raise _unauthorized("Invalid audience")
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e, exc_info=True)
        raise _unauthorized("Invalid token")


async def get_or_create_user(
    db: AsyncSession,
    auth_id: str,
    email: str | None = None,
) -> User:
    """
    Get existing user or create new one from token claims.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    result = await db.execute(select(User).where(User.auth_id == auth_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(auth_id=auth_id, email=email)
        db.add(user)
        await db.flush()
        logger.info("Created user %s", user.id)
    elif email and user.email != email:
        user.email = email
        await db.flush()

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency that validates the bearer token and returns the current user.

    In DEV_MODE, bypasses auth and returns a local development user.
    """
    if settings.dev_mode:
        return await get_or_create_user(db, auth_id=DEV_AUTH_ID, email="dev@localhost")

    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_jwt(credentials.credentials, settings)

    auth_id = payload.get("sub")
    if not auth_id:
        raise _unauthorized("Invalid token: missing sub claim")

    return await get_or_create_user(db, auth_id=auth_id, email=payload.get("email"))
