from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
import uuid

from abiboard.core.database import get_db
from abiboard.core.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from abiboard.core.logging_config import logger, set_user_id
from abiboard.core.security import decode_token
from abiboard.models.user import User, UserRole

# Missing credentials are reported as 401 by get_current_user, not 403
security = HTTPBearer(auto_error=False)

ADMIN_ONLY_MESSAGE = "Nur für Admins zugänglich."
STUDENT_ONLY_MESSAGE = "Nur für Schüler zugänglich."


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if not credentials:
        raise AuthenticationError()

    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        logger.log_auth_event("token", success=False, reason="wrong token type")
        raise InvalidTokenError()

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError()

    try:
        uuid.UUID(str(user_id))
    except ValueError:
        raise InvalidTokenError()

    result = await db.execute(
        select(User).where(User.id == str(user_id))
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.log_auth_event("token", success=False, user_id=str(user_id), reason="unknown user")
        raise AuthenticationError()

    if not user.is_active:
        logger.log_auth_event("token", success=False, user_id=user.id, reason="inactive")
        raise AuthorizationError("Dein Konto ist deaktiviert.")

    # Used by the rate limiter key and the log context
    request.state.user_id = user.id
    set_user_id(user.id)
    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """Get current admin user"""
    if current_user.role != UserRole.ADMIN:
        raise AuthorizationError(ADMIN_ONLY_MESSAGE)
    return current_user


async def get_current_student(
    current_user: User = Depends(get_current_user)
) -> User:
    """Only students own a profile"""
    if current_user.role != UserRole.STUDENT:
        raise AuthorizationError(STUDENT_ONLY_MESSAGE)
    return current_user
