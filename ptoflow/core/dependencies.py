from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptoflow.core.database import get_db
from ptoflow.core.security import decode_token
from ptoflow.models.user import User, UserRole, UserStatus

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_id_from_token(token: str) -> Optional[UUID]:
    """Subject of a valid access token, or None."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        return None
    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to an active user.

    Tokens are issued by the identity service; only the subject and the
    ``type`` claim are used here.
    """
    user_id = user_id_from_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid authentication credentials")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or user.status != UserStatus.ACTIVE:
        raise _unauthorized("User not found or inactive")

    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require ADMIN role. Admins manage leave types, policies, holidays and balances."""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
