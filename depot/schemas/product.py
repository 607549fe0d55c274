"""Pydantic schemas for the product catalogue."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field, field_validator

from depot.services.images import primary_image

PRODUCT_CATEGORIES = ("food", "beverages", "cleaning", "equipment", "packaging", "other")
PRODUCT_UNITS = ("kg", "g", "l", "ml", "pieces", "boxes", "bottles", "cans", "packets")


def _check_category(v: str) -> str:
    if v not in PRODUCT_CATEGORIES:
        raise ValueError("Invalid category")
    return v


def _check_unit(v: str) -> str:
    if v not in PRODUCT_UNITS:
        raise ValueError("Invalid unit")
    return v


class ProductImage(BaseModel):
    url: str
    public_id: str | None = None
    is_primary: bool = False


class ProductCreate(BaseModel):
    name: str = Field(max_length=100)
    category: str = "other"
    unit: str = "pieces"
    price: float = Field(default=0.0, ge=0)
    supplier: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    images: list[ProductImage] = []

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Product name is required")
        return v

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        return _check_category(v)

    @field_validator("unit")
    @classmethod
    def _unit(cls, v: str) -> str:
        return _check_unit(v)


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    category: str | None = None
    unit: str | None = None
    price: float | None = Field(default=None, ge=0)
    supplier: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    images: list[ProductImage] | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Product name cannot be empty")
        return v

    @field_validator("category")
    @classmethod
    def _category(cls, v: str | None) -> str | None:
        return None if v is None else _check_category(v)

    @field_validator("unit")
    @classmethod
    def _unit(cls, v: str | None) -> str | None:
        return None if v is None else _check_unit(v)


class ProductRead(BaseModel):
    id: int
    name: str
    category: str
    unit: str
    price: float
    supplier: str | None
    description: str | None
    images: list[ProductImage]
    is_active: bool
    created_by: int | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def primary_image(self) -> ProductImage | None:
        """Thumbnail for lists: the flagged image, else the first usable one."""
        return primary_image(self.images)


class ProductListResponse(BaseModel):
    products: list[ProductRead]
    total: int


class CategoriesResponse(BaseModel):
    categories: list[str]


class UnitsResponse(BaseModel):
    units: list[str]


class ImageUploadResponse(BaseModel):
    images: list[ProductImage]
