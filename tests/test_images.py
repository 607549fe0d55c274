"""Tests for product image helpers."""

import pytest

from depot.services.images import (
    ImageFile,
    is_valid_image_url,
    optimize_image_url,
    primary_image,
    valid_images,
    validate_image_files,
)

CDN_URL = "https://res.cloudinary.com/demo/image/upload/v1/depo-products/p1.jpg"


@pytest.mark.parametrize(
    "url,expected",
    [
        (None, False),
        ("", False),
        ("   ", False),
        ("http://example.com/page", False),
        ("http://example.com/photo.PNG", True),
        ("http://example.com/photo.webp?w=200", True),
        ("https://example.com/anything", True),
        ("blob:http://localhost/123", True),
        ("data:image/png;base64,AAAA", True),
        ("/static/placeholder", True),
        (CDN_URL, True),
    ],
)
def test_is_valid_image_url(url, expected):
    assert is_valid_image_url(url) is expected


def test_primary_image_prefers_flagged_valid_image():
    images = [
        {"url": "", "is_primary": True},
        {"url": "https://cdn.example.com/b.jpg"},
        {"url": "https://cdn.example.com/c.jpg", "is_primary": True},
    ]
    assert primary_image(images)["url"].endswith("c.jpg")
    assert len(valid_images(images)) == 2


def test_primary_image_falls_back_to_first_valid():
    images = [{"url": "nope"}, {"url": "https://cdn.example.com/b.jpg"}]
    assert primary_image(images)["url"].endswith("b.jpg")
    assert primary_image([]) is None
    assert primary_image(None) is None


def test_optimize_image_url_inserts_transformations():
    assert optimize_image_url(CDN_URL, width=300, height=200) == (
        "https://res.cloudinary.com/demo/image/upload/"
        "w_300,h_200,q_auto,f_auto,c_fill/v1/depo-products/p1.jpg"
    )
    assert optimize_image_url(CDN_URL, width=300) == (
        "https://res.cloudinary.com/demo/image/upload/"
        "w_300,q_auto,f_auto,c_limit/v1/depo-products/p1.jpg"
    )


def test_optimize_image_url_leaves_other_urls_alone():
    other = "https://example.com/a.jpg"
    assert optimize_image_url(other, width=100) == other
    assert optimize_image_url(CDN_URL, quality=None, fmt=None) == CDN_URL


def test_validate_image_files():
    files = [
        ImageFile("ok.jpg", "image/jpeg", 1024),
        ImageFile("notes.txt", "text/plain", 10),
        ImageFile("huge.png", "image/png", 6 * 1024 * 1024),
    ]
    valid, errors = validate_image_files(files)
    assert [f.filename for f in valid] == ["ok.jpg"]
    assert len(errors) == 2
    assert errors[0].startswith("notes.txt: Invalid file type")
    assert errors[1] == "huge.png: File too large. Maximum size: 5MB"


def test_validate_image_files_limits_count():
    files = [ImageFile(f"{i}.png", "image/png", 100) for i in range(7)]
    valid, errors = validate_image_files(files, max_files=5)
    assert len(valid) == 5
    assert errors == ["Maximum 5 files allowed"]
