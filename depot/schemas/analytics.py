"""Pydantic schemas for dashboard and analytics responses."""

from __future__ import annotations

from pydantic import BaseModel


class BranchOrderStats(BaseModel):
    branch: str
    total_orders: int
    pending_orders: int


class DashboardStats(BaseModel):
    today_orders: int
    today_completed_orders: int
    pending_orders: int
    total_orders: int
    total_revenue: float
    today_revenue: float
    total_items: int
    branch_stats: list[BranchOrderStats]


class TopProduct(BaseModel):
    name: str
    quantity: int
    value: float


class BranchAnalytics(BaseModel):
    branch: str
    total_orders: int
    total_value: float
    avg_order_value: float
    pending_orders: int
    completed_orders: int
    most_ordered_products: list[TopProduct]
    weekly_trend: int


class BranchAnalyticsResponse(BaseModel):
    timeframe: str
    branches: list[BranchAnalytics]


class ProductInsight(BaseModel):
    product_id: int
    name: str
    total_ordered: int
    total_value: float
    frequency: int
    avg_price: float
    trend: str  # up | down | stable


class ProductInsightsResponse(BaseModel):
    timeframe: str
    products: list[ProductInsight]


class PeriodSpending(BaseModel):
    daily_spending: float
    weekly_spending: float
    monthly_spending: float


class BranchSpending(BaseModel):
    branch: str
    spending: float


class FinancialMetrics(BaseModel):
    daily_spending: float
    weekly_spending: float
    monthly_spending: float
    avg_order_value: float
    daily_growth: float
    weekly_growth: float
    monthly_growth: float
    avg_order_growth: float
    previous_period: PeriodSpending
    total_orders: int
    top_spending_branches: list[BranchSpending]
    status_breakdown: dict[str, float]
