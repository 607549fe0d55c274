"""
Product image helpers — URL validation, Cloudinary URL optimisation,
upload validation and the Cloudinary upload itself.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi.concurrency import run_in_threadpool

from depot.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif")

_IMAGE_EXT_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg|bmp|ico)(\?.*)?$", re.IGNORECASE)


class ImageUploadError(Exception):
    """The CDN is not configured or rejected an upload."""


# ── URLs ────────────────────────────────────────────────────────────
def is_valid_image_url(url: str | None) -> bool:
    """Whether ``url`` looks like something an ``<img>`` can display."""
    if not url or not isinstance(url, str) or not url.strip():
        return False
    url = url.strip()
    if url.startswith(("blob:", "data:image/", "/", "https://")):
        return True
    if "cloudinary.com" in url:
        return True
    return bool(_IMAGE_EXT_RE.search(url))


def _url(image: Any) -> str | None:
    return image.get("url") if isinstance(image, dict) else getattr(image, "url", None)


def _is_primary(image: Any) -> bool:
    if isinstance(image, dict):
        return bool(image.get("is_primary"))
    return bool(getattr(image, "is_primary", False))


def valid_images(images: list | None) -> list:
    return [img for img in images or [] if is_valid_image_url(_url(img))]


def primary_image(images: list | None) -> Any | None:
    """The flagged primary image if usable, else the first usable one."""
    usable = valid_images(images)
    for img in usable:
        if _is_primary(img):
            return img
    return usable[0] if usable else None


def optimize_image_url(
    url: str,
    width: int | None = None,
    height: int | None = None,
    quality: int | str | None = "auto",
    fmt: str | None = "auto",
) -> str:
    """Insert Cloudinary transformations after ``/upload/``.

    Non-Cloudinary URLs are returned unchanged.
    """
    if not is_valid_image_url(url) or "cloudinary.com" not in url:
        return url

    parts = url.split("/upload/")
    if len(parts) != 2:
        return url
    base, path = parts

    transformations = []
    if width:
        transformations.append(f"w_{width}")
    if height:
        transformations.append(f"h_{height}")
    if quality:
        transformations.append(f"q_{quality}")
    if fmt:
        transformations.append(f"f_{fmt}")
    if width and height:
        transformations.append("c_fill")
    elif width or height:
        transformations.append("c_limit")

    if not transformations:
        return url
    return f"{base}/upload/{','.join(transformations)}/{path}"


# ── Upload validation ───────────────────────────────────────────────
@dataclass(frozen=True)
class ImageFile:
    filename: str
    content_type: str
    size: int


def validate_image_files(
    files: list[ImageFile],
    max_files: int = 5,
    max_bytes: int = 5 * 1024 * 1024,
    allowed_types: tuple[str, ...] = ALLOWED_IMAGE_TYPES,
) -> tuple[list[ImageFile], list[str]]:
    """Split ``files`` into accepted files and human-readable errors."""
    valid: list[ImageFile] = []
    errors: list[str] = []

    for f in files:
        if not any(f.content_type == t or f.content_type.startswith(t) for t in allowed_types):
            errors.append(
                f"{f.filename}: Invalid file type. Allowed: {', '.join(allowed_types)}"
            )
            continue
        if f.size > max_bytes:
            errors.append(
                f"{f.filename}: File too large. Maximum size: {round(max_bytes / (1024 * 1024))}MB"
            )
            continue
        if len(valid) >= max_files:
            errors.append(f"Maximum {max_files} files allowed")
            break
        if len(f.filename) > 255:
            errors.append(f"{f.filename[:40]}...: File name too long")
            continue
        valid.append(f)

    return valid, errors


# ── Cloudinary ──────────────────────────────────────────────────────
def _configure() -> None:
    if not all(
        (settings.CLOUDINARY_CLOUD_NAME, settings.CLOUDINARY_API_KEY, settings.CLOUDINARY_API_SECRET)
    ):
        raise ImageUploadError("Image storage is not configured")
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True,
    )


async def upload_images(contents: list[bytes]) -> list[dict]:
    """Upload raw image bytes; the first image becomes the primary one."""
    _configure()
    uploaded = []
    for index, content in enumerate(contents):
        try:
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                content,
                folder=settings.IMAGE_UPLOAD_FOLDER,
                resource_type="image",
                allowed_formats=["jpg", "jpeg", "png", "webp", "gif"],
                transformation=[
                    {"width": 800, "height": 600, "crop": "limit"},
                    {"quality": "auto"},
                    {"fetch_format": "auto"},
                ],
            )
        except CloudinaryError as exc:
            logger.error("Cloudinary upload failed: %s", exc)
            raise ImageUploadError(f"Image upload failed: {exc}") from exc
        uploaded.append(
            {
                "url": result["secure_url"],
                "public_id": result["public_id"],
                "is_primary": index == 0,
            }
        )
    logger.info("Uploaded %d image(s) to %s", len(uploaded), settings.IMAGE_UPLOAD_FOLDER)
    return uploaded
