"""Pydantic schemas for orders and their status workflow."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from depot.core.workflow import OrderStatus
from depot.schemas.product import ProductImage


# ── Requests ────────────────────────────────────────────────────────
class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)
    notes: str | None = Field(default=None, max_length=200)


class OrderCreate(BaseModel):
    branch: str | None = Field(default=None, max_length=100)
    requested_date: date
    items: list[OrderItemIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=500)


class OrderUpdate(BaseModel):
    requested_date: date | None = None
    items: list[OrderItemIn] | None = Field(default=None, min_length=1)
    notes: str | None = Field(default=None, max_length=500)


class StatusUpdate(BaseModel):
    status: OrderStatus
    admin_notes: str | None = Field(default=None, max_length=500)


class BulkStatusUpdate(BaseModel):
    order_ids: list[int] = Field(min_length=1)
    status: OrderStatus
    admin_notes: str | None = Field(default=None, max_length=500)


# ── Responses ───────────────────────────────────────────────────────
class UserRef(BaseModel):
    id: int
    username: str
    branch: str | None = None

    model_config = {"from_attributes": True}


class ProductSummary(BaseModel):
    id: int
    name: str
    category: str
    unit: str
    price: float
    supplier: str | None = None
    images: list[ProductImage] = []
    is_active: bool = True

    model_config = {"from_attributes": True}


class OrderItemRead(BaseModel):
    id: int
    product_id: int | None
    product: ProductSummary | None  # None once the product was deleted
    quantity: int
    notes: str | None

    model_config = {"from_attributes": True}


class OrderRead(BaseModel):
    id: int
    order_number: str
    worker: UserRef
    branch: str
    requested_date: date
    items: list[OrderItemRead]
    status: OrderStatus
    notes: str | None
    admin_notes: str | None
    processed_by: UserRef | None
    processed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class OrderListResponse(BaseModel):
    orders: list[OrderRead]
    pagination: Pagination


class OrderExportResponse(BaseModel):
    orders: list[OrderRead]


class BulkStatusResponse(BaseModel):
    message: str
    updated_count: int
    orders: list[OrderRead]
    skipped: list[int]
