"""
FastAPI dependencies — auth guards and database session.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Coroutine
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from depot.core.config import settings
from depot.core.security import decode_access_token
from depot.db.session import async_session_factory
from depot.models.user import User

# auto_error=False so a missing header yields our own 401 body
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the bearer JWT and look up its user."""
    if not token:
        raise _credentials_exception("No token, authorization denied")

    payload = decode_access_token(token)
    if payload is None:
        raise _credentials_exception("Token is not valid")

    user_id: str | None = payload.get("sub")
    if user_id is None or not user_id.isdigit():
        raise _credentials_exception("Token is not valid")

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if user is None:
        raise _credentials_exception("Token is not valid")
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject deactivated accounts with 401 so clients drop the session."""
    if not current_user.is_active:
        raise _credentials_exception("User account is inactive")
    return current_user


def require_roles(*positions: str) -> Callable[..., Coroutine[Any, Any, User]]:
    """Build a dependency that only admits users holding one of ``positions``."""

    async def _guard(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.position not in positions:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {' or '.join(positions)}",
            )
        return current_user

    return _guard


require_admin = require_roles("admin")
require_worker = require_roles("worker")
require_admin_or_editor = require_roles("admin", "editor")
