"""
Auth endpoints — login, self-registration, logout and profile.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from depot.api.v1.deps import get_current_active_user, get_db
from depot.core.config import settings
from depot.core.security import create_access_token, get_password_hash, verify_password
from depot.models.user import User
from depot.schemas.common import MessageResponse
from depot.schemas.token import AuthResponse, LoginRequest
from depot.schemas.user import UserCreate, UserRead

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Exchange username/password for a bearer token."""
    result = await db.execute(select(User).where(User.username == body.username.strip()))
    user = result.scalar_one_or_none()

    # Same answer for unknown, inactive and wrong-password accounts
    if user is None or not user.is_active or not verify_password(
        body.password, user.hashed_password
    ):
        logger.warning("Failed login for %r", body.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("User %s logged in", user.username)
    return AuthResponse(
        message="Login successful",
        token=create_access_token(user.id),
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Self-registration. Only worker accounts can be created this way."""
    if body.position != "worker":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only worker accounts can self-register",
        )

    existing = await db.execute(select(User).where(User.username == body.username))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Username already exists")

    user = User(
        username=body.username,
        hashed_password=get_password_hash(body.password),
        position="worker",
        branch=body.branch,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered worker %s (branch=%s)", user.username, user.branch)

    return AuthResponse(
        message="User registered successfully",
        token=create_access_token(user.id),
        user=UserRead.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    """Tokens are stateless; the client discards its copy."""
    logger.info("User %s logged out", current_user.username)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserRead)
async def read_current_user(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Return profile of the currently authenticated user."""
    return current_user
