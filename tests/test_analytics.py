"""Tests for the order analytics aggregations."""

from datetime import datetime, timedelta, timezone

import pytest

from depot.models.order import Order, OrderItem
from depot.models.product import Product
from depot.services.analytics import (
    branch_analytics,
    calculate_growth,
    dashboard_stats,
    financial_metrics,
    product_insights,
    product_trend,
    resolve_window,
    shift_months,
)

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)

FLOUR = Product(id=1, name="Flour", price=1.0)
SOAP = Product(id=2, name="Soap", price=1.0)


def make_order(branch, status, created, quantity, product=FLOUR):
    return Order(
        branch=branch,
        status=status,
        created_at=created,
        items=[OrderItem(quantity=quantity, product=product)],
    )


def at(month, day, hour=10):
    return datetime(2024, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def orders():
    return [
        make_order("North", "pending", at(5, 15, 9), 10),        # today
        make_order("North", "rejected", at(5, 15, 10), 100),    # today, never counted as spend
        make_order("South", "approved", at(5, 10), 20, SOAP),
        make_order("North", "completed", at(5, 14), 5),         # yesterday
        make_order("South", "approved", at(5, 5), 8),
        make_order("North", "completed", at(4, 20), 40),        # last month
        make_order("North", "pending", at(4, 21), 1000),        # last month, pending
    ]


# ── Helpers ─────────────────────────────────────────────────────────
def test_calculate_growth():
    assert calculate_growth(5, 0) == 100.0
    assert calculate_growth(0, 0) == 0.0
    assert calculate_growth(15, 10) == 50.0
    assert calculate_growth(5, 10) == -50.0


def test_product_trend_threshold():
    assert product_trend(11, 10) == "stable"
    assert product_trend(12, 10) == "up"
    assert product_trend(8, 10) == "down"
    assert product_trend(3, 0) == "up"
    assert product_trend(0, 0) == "stable"


def test_shift_months_clamps_day():
    assert shift_months(datetime(2024, 3, 31), -1) == datetime(2024, 2, 29)
    assert shift_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)


def test_resolve_window_timeframes():
    week = resolve_window("week", NOW)
    assert week.start == NOW - timedelta(days=7)
    assert week.end == NOW
    assert week.previous_start == NOW - timedelta(days=14)
    assert week.previous_end == week.start

    assert resolve_window("day", NOW).start == NOW - timedelta(days=1)
    assert resolve_window("quarter", NOW).start == datetime(2024, 2, 15, 12, tzinfo=timezone.utc)
    # Unknown timeframes behave like "week"
    assert resolve_window("fortnight", NOW) == week


def test_resolve_window_explicit_month():
    window = resolve_window(month=1, year=2024)
    assert window.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert window.end == datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert window.previous_start == datetime(2023, 12, 1, tzinfo=timezone.utc)


# ── Aggregations ────────────────────────────────────────────────────
def test_dashboard_stats(orders):
    stats = dashboard_stats(orders[:4], NOW)
    assert stats["today_orders"] == 2
    assert stats["today_completed_orders"] == 0
    assert stats["pending_orders"] == 1
    assert stats["total_orders"] == 4
    assert stats["total_revenue"] == 25.0
    assert stats["today_revenue"] == 0.0
    assert stats["total_items"] == 25
    assert stats["branch_stats"] == [
        {"branch": "North", "total_orders": 3, "pending_orders": 1},
        {"branch": "South", "total_orders": 1, "pending_orders": 0},
    ]


def test_dashboard_handles_naive_timestamps():
    """SQLite hands back naive datetimes; they are read as UTC."""
    naive = make_order("North", "approved", datetime(2024, 5, 15, 8), 3)
    stats = dashboard_stats([naive], NOW)
    assert stats["today_orders"] == 1
    assert stats["today_revenue"] == 3.0


def test_branch_analytics_trend():
    window = resolve_window("week", NOW)
    current = [
        make_order("North", "pending", at(5, 15, 9), 10),
        make_order("North", "completed", at(5, 14), 5),
        make_order("South", "approved", at(5, 10), 20, SOAP),
    ]
    previous = [make_order("North", "approved", at(5, d), 1) for d in (2, 3, 4, 5)]

    rows = {r["branch"]: r for r in branch_analytics(current + previous, window)}
    north = rows["North"]
    assert north["total_orders"] == 2
    assert north["total_value"] == 15.0
    assert north["avg_order_value"] == 7.5
    assert north["pending_orders"] == 1
    assert north["completed_orders"] == 1
    assert north["most_ordered_products"] == [{"name": "Flour", "quantity": 15, "value": 15.0}]
    assert north["weekly_trend"] == -50
    assert rows["South"]["weekly_trend"] == 100


def test_deleted_products_are_worth_nothing():
    order = Order(
        branch="North",
        status="approved",
        created_at=at(5, 15, 9),
        items=[OrderItem(quantity=4, product=None)],
    )
    (row,) = branch_analytics([order], resolve_window("week", NOW))
    assert row["total_value"] == 0.0
    assert row["most_ordered_products"] == []


def test_dashboard_item_count_skips_deleted_products():
    order = Order(
        branch="North",
        status="approved",
        created_at=at(5, 15, 9),
        items=[OrderItem(quantity=3, product=None), OrderItem(quantity=2, product=FLOUR)],
    )
    stats = dashboard_stats([order], NOW)
    assert stats["total_items"] == 2
    assert stats["total_revenue"] == 2.0


def test_product_insights(orders):
    window = resolve_window("month", NOW)
    insights = product_insights(orders, window)
    names = [p["name"] for p in insights]
    assert names == ["Flour", "Soap"]
    flour = insights[0]
    # pending + rejected + completed + approved lines since 15 April
    assert flour["total_ordered"] == 10 + 100 + 5 + 8 + 40 + 1000
    assert flour["frequency"] == 6
    assert flour["trend"] == "up"


def test_financial_metrics(orders):
    metrics = financial_metrics(orders, NOW)
    assert metrics["daily_spending"] == 10.0
    assert metrics["weekly_spending"] == 35.0
    assert metrics["monthly_spending"] == 43.0
    assert metrics["total_orders"] == 4
    assert metrics["avg_order_value"] == 10.75

    assert metrics["previous_period"] == {
        "daily_spending": 5.0,
        "weekly_spending": 8.0,
        "monthly_spending": 40.0,
    }
    assert metrics["daily_growth"] == 100.0
    assert metrics["weekly_growth"] == 337.5
    assert metrics["monthly_growth"] == 7.5
    assert metrics["avg_order_growth"] == 7.5

    assert metrics["status_breakdown"] == {"pending": 10.0, "approved": 28.0, "completed": 5.0}
    assert metrics["top_spending_branches"] == [
        {"branch": "South", "spending": 28.0},
        {"branch": "North", "spending": 15.0},
    ]


def test_financial_metrics_empty():
    metrics = financial_metrics([], NOW)
    assert metrics["monthly_spending"] == 0.0
    assert metrics["monthly_growth"] == 0.0
    assert metrics["avg_order_growth"] == 0.0
    assert metrics["top_spending_branches"] == []
