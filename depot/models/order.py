"""
Order & OrderItem models — a worker's supply request and its lines.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, ForeignKey, Index, Integer,
                        String)
from sqlalchemy.orm import relationship

from depot.db.base import Base


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_branch_requested", "branch", "requested_date"),
        Index("ix_orders_worker_created", "worker_id", "created_at"),
        Index("ix_orders_status_requested", "status", "requested_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    order_number: str = Column(String(40), unique=True, nullable=False)  # type: ignore[assignment]
    worker_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    branch: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    requested_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="pending",
        server_default="pending",
    )  # pending | approved | rejected | completed
    notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    admin_notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    processed_by_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    processed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    worker = relationship("User", foreign_keys=[worker_id], lazy="raise")
    processed_by = relationship("User", foreign_keys=[processed_by_id], lazy="raise")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="raise",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    order_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Nullable so deleting a product leaves the order history intact
    product_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    quantity: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    notes: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="raise")
