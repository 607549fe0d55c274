"""
Product catalogue model.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String

from depot.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False, index=True)  # type: ignore[assignment]
    category: str = Column(String(30), nullable=False, default="other", index=True)  # type: ignore[assignment]
    # food | beverages | cleaning | equipment | packaging | other
    unit: str = Column(String(20), nullable=False, default="pieces")  # type: ignore[assignment]
    price: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    supplier: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    description: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    # Ordered list of {"url", "public_id", "is_primary"}
    images: list = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_by: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
