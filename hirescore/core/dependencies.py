"""FastAPI dependency injection: database session, unit of work and caller principal."""

from typing import AsyncIterator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hirescore.core.auth import InvalidTokenError, Principal, decode_access_token
from hirescore.core.db import new_async_session
from hirescore.core.uow import UnitOfWork
from hirescore.domain.scheduling_service import SchedulingService, get_scheduling_service

_bearer = HTTPBearer(auto_error=False)


async def get_async_session() -> AsyncIterator[AsyncSession]:
    """Provide one AsyncSession per request, rolled back on error and always closed."""
    session = new_async_session()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_uow(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncIterator[UnitOfWork]:
    # No auto-commit: callers commit explicitly
    uow = UnitOfWork(session=session)
    async with uow:
        yield uow


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    uow: UnitOfWork = Depends(get_uow),
) -> Principal:
    """Resolve ``Authorization: Bearer <jwt>`` into the caller's ``(user_id, role)``."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    try:
        user_id = decode_access_token(credentials.credentials)
    except InvalidTokenError:
        raise _unauthorized("Invalid or expired token")

    result = await uow.users.get(user_id)
    if result.is_failure():
        raise _unauthorized("User no longer exists")
    user = result.unwrap()
    return Principal(user_id=user.id, role=user.role)


def get_service() -> SchedulingService:
    return get_scheduling_service()


__all__ = ["get_async_session", "get_principal", "get_service", "get_uow"]
