"""
Branch registry endpoints.

Users and orders store the branch label as plain text, so renaming a
branch rewrites the label on both tables in the same transaction.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from depot.api.v1.deps import get_current_active_user, get_db, require_admin
from depot.models.branch import Branch
from depot.models.order import Order
from depot.models.user import User
from depot.schemas.branch import (
    BranchCreate,
    BranchDetail,
    BranchListResponse,
    BranchRenameResponse,
    BranchSummary,
    BranchUpdate,
)
from depot.schemas.common import MessageResponse
from depot.schemas.user import BranchNamesResponse, UserRead

router = APIRouter(prefix="/branches", tags=["branches"])
logger = logging.getLogger(__name__)


async def _get_branch_or_404(db: AsyncSession, name: str) -> Branch:
    result = await db.execute(select(Branch).where(Branch.name == name))
    branch = result.scalar_one_or_none()
    if branch is None:
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch


async def _count_by_branch(db: AsyncSession, column, *where) -> dict[str, int]:
    result = await db.execute(
        select(column, func.count()).where(*where).group_by(column)
    )
    return dict(result.all())


@router.get("/names", response_model=BranchNamesResponse)
async def branch_names(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> BranchNamesResponse:
    """Active branch names for dropdowns; open to every role."""
    result = await db.execute(
        select(Branch.name).where(Branch.is_active.is_(True)).order_by(Branch.name)
    )
    return BranchNamesResponse(branches=list(result.scalars().all()))


@router.get("", response_model=BranchListResponse)
async def list_branches(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> BranchListResponse:
    result = await db.execute(
        select(Branch.name).where(Branch.is_active.is_(True)).order_by(Branch.name)
    )
    names = list(result.scalars().all())

    workers = await _count_by_branch(
        db, User.branch, User.position == "worker", User.is_active.is_(True)
    )
    orders = await _count_by_branch(db, Order.branch)
    pending = await _count_by_branch(db, Order.branch, Order.status == "pending")

    return BranchListResponse(
        branches=[
            BranchSummary(
                name=name,
                active_workers=workers.get(name, 0),
                total_orders=orders.get(name, 0),
                pending_orders=pending.get(name, 0),
            )
            for name in names
        ]
    )


@router.post("", response_model=BranchSummary, status_code=201)
async def create_branch(
    body: BranchCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> BranchSummary:
    existing = await db.execute(select(Branch.id).where(Branch.name == body.name))
    if existing.first() is not None:
        raise HTTPException(status_code=400, detail="Branch already exists")

    branch = Branch(name=body.name, description=body.description, created_by=admin.id)
    db.add(branch)
    await db.commit()
    logger.info("Branch %r created by %s", branch.name, admin.username)
    return BranchSummary(name=branch.name)


@router.get("/{name}", response_model=BranchDetail)
async def get_branch(
    name: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> BranchDetail:
    branch = await _get_branch_or_404(db, name)

    result = await db.execute(
        select(User)
        .where(User.branch == branch.name, User.position == "worker")
        .order_by(User.username)
    )
    workers = list(result.scalars().all())
    statuses = await _count_by_branch(db, Order.status, Order.branch == branch.name)

    return BranchDetail(
        name=branch.name,
        description=branch.description,
        active_workers=sum(1 for w in workers if w.is_active),
        total_workers=len(workers),
        total_orders=sum(statuses.values()),
        pending_orders=statuses.get("pending", 0),
        completed_orders=statuses.get("completed", 0),
        workers=[UserRead.model_validate(w) for w in workers],
    )


@router.put("/{name}", response_model=BranchRenameResponse)
async def update_branch(
    name: str,
    body: BranchUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> BranchRenameResponse:
    """Rename / re-describe a branch and relabel its users and orders."""
    branch = await _get_branch_or_404(db, name)
    old_name = branch.name

    if body.name != old_name:
        clash = await db.execute(select(Branch.id).where(Branch.name == body.name))
        if clash.first() is not None:
            raise HTTPException(status_code=400, detail="Branch name already exists")

        await db.execute(
            update(User)
            .where(User.branch == old_name)
            .values(branch=body.name)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Order)
            .where(Order.branch == old_name)
            .values(branch=body.name)
            .execution_options(synchronize_session=False)
        )

    branch.name = body.name
    if "description" in body.model_fields_set:
        branch.description = body.description
    await db.commit()

    logger.info("Branch %r updated to %r by %s", old_name, body.name, admin.username)
    return BranchRenameResponse(
        message="Branch updated successfully",
        old_name=old_name,
        new_name=body.name,
    )


@router.delete("/{name}", response_model=MessageResponse)
async def delete_branch(
    name: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    branch = await _get_branch_or_404(db, name)

    active_workers = (
        await db.execute(
            select(func.count(User.id)).where(
                User.branch == branch.name,
                User.position == "worker",
                User.is_active.is_(True),
            )
        )
    ).scalar_one()
    if active_workers:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Cannot delete branch with {active_workers} active worker(s). "
                "Please reassign or deactivate workers first."
            ),
        )

    order_count = (
        await db.execute(select(func.count(Order.id)).where(Order.branch == branch.name))
    ).scalar_one()
    if order_count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete branch with {order_count} order(s). Please reassign orders first.",
        )

    await db.delete(branch)
    await db.commit()
    logger.info("Branch %r deleted by %s", name, admin.username)
    return MessageResponse(message="Branch deleted successfully")
