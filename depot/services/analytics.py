"""
Order analytics — dashboard counters, branch performance, product
insights and spending metrics.

Endpoints fetch the relevant orders (with items and products loaded) in
**one** query and hand them to the pure functions below, which aggregate
in Python.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from depot.core.workflow import FULFILLED_STATUSES, OrderStatus
from depot.models.order import Order, OrderItem

TIMEFRAMES = ("day", "week", "month", "quarter")

# Orders that represent committed or pending spend
_SPEND_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.APPROVED, OrderStatus.COMPLETED}
)


@dataclass(frozen=True)
class Window:
    """A reporting window and the equally-long window right before it."""

    start: datetime
    end: datetime
    previous_start: datetime

    @property
    def previous_end(self) -> datetime:
        return self.start


# ── Helpers ─────────────────────────────────────────────────────────
def ensure_utc(dt: datetime | None) -> datetime:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt is None:
        return datetime.now(timezone.utc)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def shift_months(dt: datetime, months: int) -> datetime:
    """Move ``dt`` by whole months, clamping the day to the target month."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def resolve_window(
    timeframe: str = "week",
    now: datetime | None = None,
    month: int | None = None,
    year: int | None = None,
) -> Window:
    """Translate a timeframe (or an explicit month/year) into a window.

    Unknown timeframes fall back to ``week``.
    """
    if month and year:
        start = month_start(year, month)
        return Window(
            start=start,
            end=shift_months(start, 1),
            previous_start=shift_months(start, -1),
        )

    now = ensure_utc(now)
    if timeframe == "day":
        return Window(now - timedelta(days=1), now, now - timedelta(days=2))
    if timeframe == "month":
        return Window(shift_months(now, -1), now, shift_months(now, -2))
    if timeframe == "quarter":
        return Window(shift_months(now, -3), now, shift_months(now, -6))
    return Window(now - timedelta(days=7), now, now - timedelta(days=14))


def calculate_growth(current: float, previous: float) -> float:
    """Percent change from ``previous`` to ``current``."""
    if not previous:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def item_value(item: OrderItem) -> float:
    if item.product is None:
        return 0.0
    return item.quantity * (item.product.price or 0.0)


def order_value(order: Order) -> float:
    return sum(item_value(item) for item in order.items)


def _status(order: Order) -> OrderStatus:
    return OrderStatus(order.status)


def _created_between(
    orders: Iterable[Order], start: datetime, end: datetime, *, inclusive_end: bool = False
) -> list[Order]:
    selected = []
    for order in orders:
        created = ensure_utc(order.created_at)
        if created < start:
            continue
        if created > end or (created == end and not inclusive_end):
            continue
        selected.append(order)
    return selected


# ── Dashboard ───────────────────────────────────────────────────────
def dashboard_stats(orders: list[Order], now: datetime | None = None) -> dict:
    """Headline counters for the admin dashboard."""
    now = ensure_utc(now)
    today = start_of_day(now)
    tomorrow = today + timedelta(days=1)

    todays = _created_between(orders, today, tomorrow)
    fulfilled = [o for o in orders if _status(o) in FULFILLED_STATUSES]

    per_branch: dict[str, dict[str, int]] = defaultdict(
        lambda: {"total_orders": 0, "pending_orders": 0}
    )
    for order in orders:
        stats = per_branch[order.branch]
        stats["total_orders"] += 1
        if _status(order) is OrderStatus.PENDING:
            stats["pending_orders"] += 1

    return {
        "today_orders": len(todays),
        "today_completed_orders": sum(
            1 for o in todays if _status(o) in FULFILLED_STATUSES
        ),
        "pending_orders": sum(1 for o in orders if _status(o) is OrderStatus.PENDING),
        "total_orders": len(orders),
        "total_revenue": round(sum(order_value(o) for o in fulfilled), 2),
        "today_revenue": round(
            sum(order_value(o) for o in todays if _status(o) in FULFILLED_STATUSES), 2
        ),
        "total_items": sum(
            item.quantity for o in fulfilled for item in o.items if item.product is not None
        ),
        "branch_stats": [
            {"branch": branch, **stats} for branch, stats in sorted(per_branch.items())
        ],
    }


# ── Branch analytics ────────────────────────────────────────────────
def branch_analytics(orders: list[Order], window: Window) -> list[dict]:
    """Per-branch performance for ``window`` with a trend vs the window before."""
    current = _created_between(orders, window.start, window.end, inclusive_end=True)
    previous = _created_between(orders, window.previous_start, window.previous_end)

    previous_counts: dict[str, int] = defaultdict(int)
    for order in previous:
        previous_counts[order.branch] += 1

    by_branch: dict[str, list[Order]] = defaultdict(list)
    for order in current:
        by_branch[order.branch].append(order)

    results = []
    for branch, branch_orders in sorted(by_branch.items()):
        total_orders = len(branch_orders)
        total_value = sum(order_value(o) for o in branch_orders)

        products: dict[str, dict] = {}
        for order in branch_orders:
            for item in order.items:
                if item.product is None:
                    continue
                entry = products.setdefault(
                    item.product.name,
                    {"name": item.product.name, "quantity": 0, "value": 0.0},
                )
                entry["quantity"] += item.quantity
                entry["value"] += item_value(item)

        top_products = sorted(products.values(), key=lambda p: p["quantity"], reverse=True)[:5]

        results.append(
            {
                "branch": branch,
                "total_orders": total_orders,
                "total_value": round(total_value, 2),
                "avg_order_value": round(total_value / total_orders, 2) if total_orders else 0.0,
                "pending_orders": sum(
                    1 for o in branch_orders if _status(o) is OrderStatus.PENDING
                ),
                "completed_orders": sum(
                    1 for o in branch_orders if _status(o) is OrderStatus.COMPLETED
                ),
                "most_ordered_products": top_products,
                "weekly_trend": round(
                    calculate_growth(total_orders, previous_counts.get(branch, 0))
                ),
            }
        )
    return results


# ── Product insights ────────────────────────────────────────────────
def _product_totals(orders: Iterable[Order]) -> dict[int, dict]:
    totals: dict[int, dict] = {}
    for order in orders:
        for item in order.items:
            if item.product is None:
                continue
            entry = totals.setdefault(
                item.product.id,
                {
                    "product_id": item.product.id,
                    "name": item.product.name,
                    "total_ordered": 0,
                    "total_value": 0.0,
                    "frequency": 0,
                    "avg_price": item.product.price or 0.0,
                },
            )
            entry["total_ordered"] += item.quantity
            entry["total_value"] += item_value(item)
            entry["frequency"] += 1
    return totals


def product_trend(current: int, previous: int) -> str:
    """``up`` / ``down`` beyond a ±10 % change, else ``stable``."""
    if previous == 0:
        return "up" if current > 0 else "stable"
    change = (current - previous) / previous * 100
    if change > 10:
        return "up"
    if change < -10:
        return "down"
    return "stable"


def product_insights(orders: list[Order], window: Window, limit: int = 20) -> list[dict]:
    current = _product_totals(
        _created_between(orders, window.start, window.end, inclusive_end=True)
    )
    previous = _product_totals(
        _created_between(orders, window.previous_start, window.previous_end)
    )

    ranked = sorted(current.values(), key=lambda p: p["total_ordered"], reverse=True)[:limit]
    for entry in ranked:
        before = previous.get(entry["product_id"], {}).get("total_ordered", 0)
        entry["total_value"] = round(entry["total_value"], 2)
        entry["trend"] = product_trend(entry["total_ordered"], before)
    return ranked


# ── Financial metrics ───────────────────────────────────────────────
def _spend(orders: Iterable[Order], statuses: frozenset[OrderStatus]) -> float:
    return sum(order_value(o) for o in orders if _status(o) in statuses)


def financial_earliest(now: datetime | None = None) -> datetime:
    """Oldest ``created_at`` :func:`financial_metrics` needs to look at."""
    now = ensure_utc(now)
    previous_month = shift_months(start_of_day(now).replace(day=1), -1)
    return min(previous_month, now - timedelta(days=14))


def financial_metrics(orders: list[Order], now: datetime | None = None) -> dict:
    """Spending for today / the last 7 days / this month with growth figures.

    The current periods count pending, approved and completed orders; the
    comparison periods count only approved and completed ones.
    """
    now = ensure_utc(now)
    today = start_of_day(now)
    week_ago = now - timedelta(days=7)
    this_month = today.replace(day=1)
    yesterday = today - timedelta(days=1)
    two_weeks_ago = now - timedelta(days=14)
    last_month = shift_months(this_month, -1)

    daily = _spend(_created_between(orders, today, now, inclusive_end=True), _SPEND_STATUSES)
    weekly = _spend(_created_between(orders, week_ago, now, inclusive_end=True), _SPEND_STATUSES)
    month_orders = [
        o
        for o in _created_between(orders, this_month, now, inclusive_end=True)
        if _status(o) in _SPEND_STATUSES
    ]
    monthly = _spend(month_orders, _SPEND_STATUSES)

    prev_daily = _spend(_created_between(orders, yesterday, today), FULFILLED_STATUSES)
    prev_weekly = _spend(_created_between(orders, two_weeks_ago, week_ago), FULFILLED_STATUSES)
    prev_monthly = _spend(_created_between(orders, last_month, this_month), FULFILLED_STATUSES)

    total_orders = len(month_orders)
    avg_order_value = monthly / total_orders if total_orders else 0.0

    branch_spending: dict[str, float] = defaultdict(float)
    status_breakdown: dict[str, float] = {s.value: 0.0 for s in _SPEND_STATUSES}
    for order in month_orders:
        value = order_value(order)
        branch_spending[order.branch] += value
        status_breakdown[order.status] += value

    return {
        "daily_spending": round(daily, 2),
        "weekly_spending": round(weekly, 2),
        "monthly_spending": round(monthly, 2),
        "avg_order_value": round(avg_order_value, 2),
        "daily_growth": round(calculate_growth(daily, prev_daily), 2),
        "weekly_growth": round(calculate_growth(weekly, prev_weekly), 2),
        "monthly_growth": round(calculate_growth(monthly, prev_monthly), 2),
        "avg_order_growth": round(
            calculate_growth(avg_order_value, prev_monthly / total_orders), 2
        )
        if total_orders
        else 0.0,
        "previous_period": {
            "daily_spending": round(prev_daily, 2),
            "weekly_spending": round(prev_weekly, 2),
            "monthly_spending": round(prev_monthly, 2),
        },
        "total_orders": total_orders,
        "top_spending_branches": [
            {"branch": branch, "spending": round(spending, 2)}
            for branch, spending in sorted(
                branch_spending.items(), key=lambda kv: kv[1], reverse=True
            )
        ],
        "status_breakdown": {k: round(v, 2) for k, v in status_breakdown.items()},
    }
