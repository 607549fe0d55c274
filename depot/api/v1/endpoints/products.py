"""
Product catalogue endpoints.

- GET operations require any authenticated user.
- POST / PUT / PATCH / DELETE operations require admin role.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from depot.api.v1.deps import get_current_active_user, get_db, require_admin
from depot.core.config import settings
from depot.models.order import OrderItem
from depot.models.product import Product
from depot.models.user import User
from depot.schemas.common import MessageResponse
from depot.schemas.product import (
    PRODUCT_CATEGORIES,
    PRODUCT_UNITS,
    CategoriesResponse,
    ImageUploadResponse,
    ProductCreate,
    ProductListResponse,
    ProductRead,
    ProductUpdate,
    UnitsResponse,
)
from depot.services.images import ImageFile, ImageUploadError, upload_images, validate_image_files

router = APIRouter(prefix="/products", tags=["products"])
logger = logging.getLogger(__name__)


async def _get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    """Product names are unique regardless of case."""
    query = select(Product.id).where(func.lower(Product.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(status_code=400, detail="Product with this name already exists")


# ── Metadata & uploads (declared before /{product_id}) ──────────────
@router.get("/meta/categories", response_model=CategoriesResponse)
async def list_categories(
    _user: User = Depends(get_current_active_user),
) -> CategoriesResponse:
    return CategoriesResponse(categories=list(PRODUCT_CATEGORIES))


@router.get("/meta/units", response_model=UnitsResponse)
async def list_units(
    _user: User = Depends(get_current_active_user),
) -> UnitsResponse:
    return UnitsResponse(units=list(PRODUCT_UNITS))


@router.post("/upload-images", response_model=ImageUploadResponse)
async def upload_product_images(
    images: list[UploadFile] = File(...),
    admin: User = Depends(require_admin),
) -> ImageUploadResponse:
    """Push images to the CDN; the caller attaches the result to a product."""
    contents: dict[int, bytes] = {}
    candidates = []
    for upload in images:
        data = await upload.read()
        candidate = ImageFile(upload.filename or "upload", upload.content_type or "", len(data))
        contents[id(candidate)] = data
        candidates.append(candidate)

    valid, errors = validate_image_files(
        candidates,
        max_files=settings.IMAGE_MAX_FILES,
        max_bytes=settings.IMAGE_MAX_BYTES,
    )
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    if not valid:
        raise HTTPException(status_code=400, detail="No images provided")

    try:
        uploaded = await upload_images([contents[id(f)] for f in valid])
    except ImageUploadError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    logger.info("%s uploaded %d product image(s)", admin.username, len(uploaded))
    return ImageUploadResponse(images=uploaded)


# ── CRUD ────────────────────────────────────────────────────────────
@router.get("", response_model=ProductListResponse)
async def list_products(
    category: str | None = Query(None),
    search: str | None = Query(None, max_length=100),
    active: str | None = Query(None, description="true | false | all"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> ProductListResponse:
    query = select(Product).order_by(Product.name)
    if active is not None and active != "all":
        query = query.where(Product.is_active.is_(active == "true"))
    if category and category != "all":
        query = query.where(Product.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.supplier.ilike(pattern),
            )
        )

    products = list((await db.execute(query)).scalars().all())
    return ProductListResponse(
        products=[ProductRead.model_validate(p) for p in products],
        total=len(products),
    )


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> Product:
    return await _get_product_or_404(db, product_id)


@router.post("", response_model=ProductRead, status_code=201)
async def create_product(
    body: ProductCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Product:
    await _ensure_name_free(db, body.name)

    data = body.model_dump()
    product = Product(**data, created_by=admin.id)
    db.add(product)
    await db.commit()
    await db.refresh(product)
    logger.info("Product %r created by %s", product.name, admin.username)
    return product


@router.put("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: int,
    body: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Product:
    product = await _get_product_or_404(db, product_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("name") and data["name"] != product.name:
        await _ensure_name_free(db, data["name"], exclude_id=product.id)

    for field, value in data.items():
        if value is None and field in ("name", "category", "unit", "price", "images"):
            continue
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)
    logger.info("Product %s updated by %s", product.id, admin.username)
    return product


@router.patch("/{product_id}/toggle-status", response_model=ProductRead)
async def toggle_product_status(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Product:
    product = await _get_product_or_404(db, product_id)
    product.is_active = not product.is_active
    await db.commit()
    await db.refresh(product)
    logger.info(
        "Product %s %s by %s",
        product.id,
        "activated" if product.is_active else "deactivated",
        admin.username,
    )
    return product


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    """Hard delete. Order lines keep their quantity but lose the product link."""
    product = await _get_product_or_404(db, product_id)

    await db.execute(
        update(OrderItem).where(OrderItem.product_id == product.id).values(product_id=None)
    )
    await db.delete(product)
    await db.commit()
    logger.info("Product %s (%r) deleted by %s", product_id, product.name, admin.username)
    return MessageResponse(message="Product deleted successfully")
