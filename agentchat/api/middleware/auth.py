"""Authentication dependencies."""

from fastapi import Depends, HTTPException, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.database import get_session
from agentchat.services.auth import SessionUser, get_auth_service

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


def _extract_key(authorization: str | None) -> str | None:
    if not authorization:
        return None
    if authorization.startswith("Bearer "):
        return authorization[7:]
    return authorization


async def get_optional_user(
    authorization: str | None = Security(api_key_header),
    session: AsyncSession = Depends(get_session),
) -> SessionUser | None:
    """The signed-in user, or None for anonymous requests."""
    api_key = _extract_key(authorization)
    if not api_key:
        return None
    return await get_auth_service().verify_api_key(session, api_key)


async def get_current_user(
    user: SessionUser | None = Depends(get_optional_user),
) -> SessionUser:
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(user: SessionUser = Depends(get_current_user)) -> SessionUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
