"""
User management endpoints (admin only, except the branch dropdown list).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from depot.api.v1.deps import get_current_active_user, get_db, require_admin
from depot.core.security import get_password_hash
from depot.models.order import Order
from depot.models.user import User
from depot.schemas.common import MessageResponse
from depot.schemas.user import (
    BranchCount,
    BranchNamesResponse,
    UserCreate,
    UserListResponse,
    UserRead,
    UserStats,
    UserUpdate,
)

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _ensure_username_free(db: AsyncSession, username: str, exclude_id: int | None = None) -> None:
    query = select(User.id).where(User.username == username)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(status_code=400, detail="Username already exists")


# ── Static routes (declared before /{user_id}) ──────────────────────
@router.get("/stats/overview", response_model=UserStats)
async def user_stats(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> UserStats:
    total = (await db.execute(select(func.count(User.id)))).scalar_one()
    active = (
        await db.execute(select(func.count(User.id)).where(User.is_active.is_(True)))
    ).scalar_one()

    per_position = dict(
        (
            await db.execute(
                select(User.position, func.count(User.id))
                .where(User.is_active.is_(True))
                .group_by(User.position)
            )
        ).all()
    )

    count_col = func.count(User.id)
    branch_rows = (
        await db.execute(
            select(User.branch, count_col)
            .where(User.position == "worker", User.is_active.is_(True))
            .group_by(User.branch)
            .order_by(count_col.desc())
        )
    ).all()

    return UserStats(
        total_users=total,
        active_users=active,
        admin_count=per_position.get("admin", 0),
        worker_count=per_position.get("worker", 0),
        editor_count=per_position.get("editor", 0),
        branch_stats=[BranchCount(branch=b, count=c) for b, c in branch_rows],
    )


@router.get("/meta/branches", response_model=BranchNamesResponse)
async def worker_branches(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> BranchNamesResponse:
    """Distinct branches that currently have an active worker."""
    result = await db.execute(
        select(User.branch)
        .where(
            User.position == "worker",
            User.is_active.is_(True),
            User.branch.is_not(None),
        )
        .distinct()
        .order_by(User.branch)
    )
    return BranchNamesResponse(branches=list(result.scalars().all()))


# ── CRUD ────────────────────────────────────────────────────────────
@router.get("", response_model=UserListResponse)
async def list_users(
    position: str | None = Query(None, description="admin | worker | editor | all"),
    active: str = Query("true", description="true | false | all"),
    search: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> UserListResponse:
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    if position and position != "all":
        query = query.where(User.position == position)
    if active != "all":
        query = query.where(User.is_active.is_(active == "true"))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(User.username.ilike(pattern), User.branch.ilike(pattern)))

    users = list((await db.execute(query)).scalars().all())
    return UserListResponse(
        users=[UserRead.model_validate(u) for u in users],
        total=len(users),
    )


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    return await _get_user_or_404(db, user_id)


@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    """Create an account of any position. Workers need a branch."""
    await _ensure_username_free(db, body.username)
    if body.position == "worker" and not body.branch:
        raise HTTPException(status_code=400, detail="Branch is required for workers")

    user = User(
        username=body.username,
        hashed_password=get_password_hash(body.password),
        position=body.position,
        branch=body.branch if body.position == "worker" else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User %s (%s) created by %s", user.username, user.position, admin.username)
    return user


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    user = await _get_user_or_404(db, user_id)
    data = body.model_dump(exclude_unset=True)

    if user.id == admin.id and data.get("position") not in (None, "admin"):
        raise HTTPException(status_code=400, detail="Cannot change your own position from admin")
    if user.id == admin.id and data.get("is_active") is False:
        raise HTTPException(status_code=400, detail="Cannot deactivate your own account")

    if data.get("username") and data["username"] != user.username:
        await _ensure_username_free(db, data["username"], exclude_id=user.id)

    new_position = data.get("position") or user.position
    if new_position == "worker":
        if data.get("branch") is None:
            data.pop("branch", None)
        if not (data.get("branch") or user.branch):
            raise HTTPException(status_code=400, detail="Branch is required for workers")
    else:
        data["branch"] = None

    password = data.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)

    for field, value in data.items():
        if value is None and field in ("username", "position", "is_active"):
            continue
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("User %s updated by %s", user.username, admin.username)
    return user


@router.patch("/{user_id}/toggle-status", response_model=UserRead)
async def toggle_user_status(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    user = await _get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot deactivate your own account")

    user.is_active = not user.is_active
    await db.commit()
    await db.refresh(user)
    logger.info(
        "User %s %s by %s",
        user.username,
        "activated" if user.is_active else "deactivated",
        admin.username,
    )
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    user = await _get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    order_count = (
        await db.execute(select(func.count(Order.id)).where(Order.worker_id == user.id))
    ).scalar_one()
    if order_count:
        raise HTTPException(
            status_code=400,
            detail=f"User has {order_count} order(s); deactivate the account instead",
        )

    await db.delete(user)
    await db.commit()
    logger.info("User %s deleted by %s", user.username, admin.username)
    return MessageResponse(message="User deleted successfully")
