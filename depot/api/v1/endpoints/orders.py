"""
Order endpoints — CRUD, status workflow, exports and analytics.

- Workers create orders and edit / delete their own pending ones.
- Admins and editors move orders through the status workflow and read
  exports and analytics.
- Static paths (``/bulk``, ``/export``, ``/stats``, ``/analytics``) are
  declared before ``/{order_id}``.
"""

from __future__ import annotations

import logging
import math
import random
from datetime import date, datetime, timedelta, timezone
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from depot.api.v1.deps import (
    get_current_active_user,
    get_db,
    require_admin_or_editor,
    require_worker,
)
from depot.core.workflow import OrderStatus, can_delete, can_edit, can_transition, ensure_transition
from depot.models.order import Order, OrderItem
from depot.models.product import Product
from depot.models.user import User
from depot.schemas.analytics import (
    BranchAnalyticsResponse,
    DashboardStats,
    FinancialMetrics,
    ProductInsightsResponse,
)
from depot.schemas.common import MessageResponse
from depot.schemas.order import (
    BulkStatusResponse,
    BulkStatusUpdate,
    OrderCreate,
    OrderExportResponse,
    OrderItemIn,
    OrderListResponse,
    OrderRead,
    OrderUpdate,
    Pagination,
    StatusUpdate,
)
from depot.services import analytics
from depot.services.pdf import generate_orders_pdf

router = APIRouter(prefix="/orders", tags=["orders"])
logger = logging.getLogger(__name__)

Timeframe = Literal["day", "week", "month", "quarter"]


# ── Helpers ─────────────────────────────────────────────────────────
def _order_query():
    """``SELECT orders`` with everything :class:`OrderRead` renders."""
    return select(Order).options(
        selectinload(Order.worker),
        selectinload(Order.processed_by),
        selectinload(Order.items).selectinload(OrderItem.product),
    )


async def _load_order(db: AsyncSession, order_id: int, *, refresh: bool = False) -> Order:
    query = _order_query().where(Order.id == order_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    order = (await db.execute(query)).scalar_one_or_none()
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def _validate_products(db: AsyncSession, items: list[OrderItemIn]) -> None:
    """Every referenced product must exist and be active."""
    wanted = {item.product_id for item in items}
    result = await db.execute(
        select(Product.id).where(Product.id.in_(wanted), Product.is_active.is_(True))
    )
    found = set(result.scalars().all())
    if found != wanted:
        missing = sorted(wanted - found)
        raise HTTPException(
            status_code=400,
            detail=f"One or more products are invalid or inactive: {missing}",
        )


async def _next_order_number(db: AsyncSession, now: datetime) -> str:
    """``ORD-YYYYMMDD-NNN`` from today's order count, suffixed on collision."""
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    count = (
        await db.execute(
            select(func.count(Order.id)).where(
                Order.created_at >= day_start,
                Order.created_at < day_start + timedelta(days=1),
            )
        )
    ).scalar_one()
    number = f"ORD-{now:%Y%m%d}-{count + 1:03d}"

    taken = await db.execute(select(Order.id).where(Order.order_number == number))
    if taken.first() is not None:
        number = f"{number}-{random.randint(0, 999):03d}"
    return number


def _ensure_owner_or_admin(order: Order, user: User) -> None:
    if user.position == "admin":
        return
    if user.position == "worker" and order.worker_id == user.id:
        return
    raise HTTPException(status_code=403, detail="Access denied")


def _requested_day_range(day: date) -> tuple:
    return (Order.requested_date >= day, Order.requested_date < day + timedelta(days=1))


async def _export_orders(db: AsyncSession, day: date, branch: str | None) -> list[Order]:
    query = (
        _order_query()
        .join(User, Order.worker_id == User.id)
        .where(*_requested_day_range(day))
        .order_by(Order.branch, User.username, Order.id)
    )
    if branch and branch != "all":
        query = query.where(Order.branch == branch)
    return list((await db.execute(query)).scalars().all())


async def _orders_since(db: AsyncSession, since: datetime | None = None) -> list[Order]:
    query = select(Order).options(selectinload(Order.items).selectinload(OrderItem.product))
    if since is not None:
        query = query.where(Order.created_at >= since)
    return list((await db.execute(query)).scalars().all())


# ── Status workflow ─────────────────────────────────────────────────
async def _compare_and_set_status(
    db: AsyncSession,
    order: Order,
    target: OrderStatus,
    admin_notes: str | None,
    user: User,
) -> bool:
    """Write ``target`` only if the row still holds the status we read."""
    now = datetime.now(timezone.utc)
    values = {
        "status": target.value,
        "processed_by_id": user.id,
        "processed_at": now,
        "updated_at": now,
    }
    if admin_notes is not None:
        values["admin_notes"] = admin_notes

    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == order.status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


@router.patch("/bulk/status", response_model=BulkStatusResponse)
async def bulk_update_status(
    body: BulkStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin_or_editor),
) -> BulkStatusResponse:
    """Apply one status change to many orders; illegal ones are skipped."""
    ids = list(dict.fromkeys(body.order_ids))
    result = await db.execute(select(Order).where(Order.id.in_(ids)))
    found = {o.id: o for o in result.scalars().all()}

    updated_ids: list[int] = []
    skipped: list[int] = []
    for order_id in ids:
        order = found.get(order_id)
        if order is None or not can_transition(order.status, body.status):
            skipped.append(order_id)
            continue
        if await _compare_and_set_status(db, order, body.status, body.admin_notes, user):
            updated_ids.append(order_id)
        else:
            skipped.append(order_id)
    await db.commit()

    orders = []
    if updated_ids:
        reloaded = await db.execute(
            _order_query()
            .where(Order.id.in_(updated_ids))
            .order_by(Order.id)
            .execution_options(populate_existing=True)
        )
        orders = list(reloaded.scalars().all())

    logger.info(
        "%s bulk-set %d order(s) to %s (skipped %s)",
        user.username,
        len(updated_ids),
        body.status.value,
        skipped,
    )
    return BulkStatusResponse(
        message=f"{len(updated_ids)} order(s) updated",
        updated_count=len(updated_ids),
        orders=[OrderRead.model_validate(o) for o in orders],
        skipped=skipped,
    )


@router.patch("/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: int,
    body: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin_or_editor),
) -> Order:
    order = await _load_order(db, order_id)
    previous = order.status
    target = ensure_transition(previous, body.status)

    if not await _compare_and_set_status(db, order, target, body.admin_notes, user):
        await db.rollback()
        logger.warning("Order %s changed concurrently; status update refused", order_id)
        raise HTTPException(
            status_code=409,
            detail="Order status was changed by another request. Reload and try again.",
        )
    await db.commit()

    logger.info(
        "Order %s: %s -> %s by %s", order.order_number, previous, target.value, user.username
    )
    return await _load_order(db, order_id, refresh=True)


# ── Exports ─────────────────────────────────────────────────────────
@router.get("/export/pdf", response_model=OrderExportResponse)
async def export_orders(
    day: date = Query(..., alias="date"),
    branch: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_admin_or_editor),
) -> OrderExportResponse:
    """Orders requested for ``date``, sorted by branch then worker."""
    orders = await _export_orders(db, day, branch)
    return OrderExportResponse(orders=[OrderRead.model_validate(o) for o in orders])


@router.get("/download/pdf")
async def download_orders_pdf(
    day: date = Query(..., alias="date"),
    branch: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin_or_editor),
) -> StreamingResponse:
    branch_filter = branch if branch and branch != "all" else None
    orders = await _export_orders(db, day, branch_filter)
    buffer = generate_orders_pdf(orders, day, branch_filter)

    filename = f"orders-{day.isoformat()}"
    if branch_filter:
        filename += "-" + branch_filter.replace(" ", "_")
    logger.info("%s downloaded %d order(s) as PDF", user.username, len(orders))
    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}.pdf"'},
    )


# ── Stats & analytics ───────────────────────────────────────────────
@router.get("/stats/dashboard", response_model=DashboardStats)
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_admin_or_editor),
) -> DashboardStats:
    orders = await _orders_since(db)
    return DashboardStats(**analytics.dashboard_stats(orders))


@router.get("/analytics/branches", response_model=BranchAnalyticsResponse)
async def branch_analytics(
    timeframe: Timeframe = Query("week"),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_admin_or_editor),
) -> BranchAnalyticsResponse:
    window = analytics.resolve_window(timeframe, month=month, year=year)
    orders = await _orders_since(db, window.previous_start)
    return BranchAnalyticsResponse(
        timeframe=timeframe,
        branches=analytics.branch_analytics(orders, window),
    )


@router.get("/analytics/products", response_model=ProductInsightsResponse)
async def product_insights(
    timeframe: Timeframe = Query("week"),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_admin_or_editor),
) -> ProductInsightsResponse:
    window = analytics.resolve_window(timeframe, month=month, year=year)
    orders = await _orders_since(db, window.previous_start)
    return ProductInsightsResponse(
        timeframe=timeframe,
        products=analytics.product_insights(orders, window),
    )


@router.get("/analytics/financial", response_model=FinancialMetrics)
async def financial_metrics(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_admin_or_editor),
) -> FinancialMetrics:
    now = datetime.now(timezone.utc)
    orders = await _orders_since(db, analytics.financial_earliest(now))
    return FinancialMetrics(**analytics.financial_metrics(orders, now))


# ── CRUD ────────────────────────────────────────────────────────────
@router.get("", response_model=OrderListResponse)
async def list_orders(
    day: date | None = Query(None, alias="date"),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=2100),
    branch: str | None = Query(None),
    status: str | None = Query(None, description="pending | approved | rejected | completed | all"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    view_all: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> OrderListResponse:
    """Workers see their own orders unless ``view_all`` is set."""
    filters = []
    if user.position == "worker" and not view_all:
        filters.append(Order.worker_id == user.id)
    if branch and branch != "all" and (user.position != "worker" or view_all):
        filters.append(Order.branch == branch)

    if day is not None:
        filters.extend(_requested_day_range(day))
    elif month and year:
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        filters.extend([Order.requested_date >= start, Order.requested_date < end])

    if status and status != "all":
        filters.append(Order.status == status)

    total = (await db.execute(select(func.count(Order.id)).where(*filters))).scalar_one()
    result = await db.execute(
        _order_query()
        .where(*filters)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    orders = list(result.scalars().all())

    return OrderListResponse(
        orders=[OrderRead.model_validate(o) for o in orders],
        pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
    )


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> Order:
    order = await _load_order(db, order_id)
    if user.position == "worker" and order.worker_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return order


@router.post("", response_model=OrderRead, status_code=201)
async def create_order(
    body: OrderCreate,
    db: AsyncSession = Depends(get_db),
    worker: User = Depends(require_worker),
) -> Order:
    branch = body.branch.strip() if body.branch and body.branch.strip() else worker.branch
    if not branch:
        raise HTTPException(status_code=400, detail="Branch is required")

    await _validate_products(db, body.items)

    now = datetime.now(timezone.utc)
    order = Order(
        order_number=await _next_order_number(db, now),
        worker_id=worker.id,
        branch=branch,
        requested_date=body.requested_date,
        status=OrderStatus.PENDING.value,
        notes=body.notes,
        created_at=now,
        updated_at=now,
        items=[
            OrderItem(product_id=item.product_id, quantity=item.quantity, notes=item.notes)
            for item in body.items
        ],
    )
    db.add(order)
    await db.commit()

    logger.info(
        "Order %s created by %s for %s (%d item(s))",
        order.order_number,
        worker.username,
        branch,
        len(body.items),
    )
    return await _load_order(db, order.id, refresh=True)


@router.put("/{order_id}", response_model=OrderRead)
async def update_order(
    order_id: int,
    body: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> Order:
    order = await _load_order(db, order_id)
    _ensure_owner_or_admin(order, user)
    if not can_edit(order.status):
        raise HTTPException(status_code=400, detail="Only pending orders can be edited")

    data = body.model_dump(exclude_unset=True)
    if data.get("requested_date") is not None:
        if data["requested_date"] < datetime.now(timezone.utc).date():
            raise HTTPException(status_code=400, detail="Requested date cannot be in the past")
        order.requested_date = data["requested_date"]

    if body.items is not None:
        await _validate_products(db, body.items)
        order.items = [
            OrderItem(product_id=item.product_id, quantity=item.quantity, notes=item.notes)
            for item in body.items
        ]

    if "notes" in data:
        order.notes = data["notes"]
    order.updated_at = datetime.now(timezone.utc)

    await db.commit()
    logger.info("Order %s updated by %s", order.order_number, user.username)
    return await _load_order(db, order_id, refresh=True)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> MessageResponse:
    order = await _load_order(db, order_id)
    _ensure_owner_or_admin(order, user)
    if not can_delete(order.status):
        raise HTTPException(status_code=400, detail="Only pending orders can be deleted")

    await db.delete(order)
    await db.commit()
    logger.info("Order %s deleted by %s", order.order_number, user.username)
    return MessageResponse(message="Order deleted successfully")
