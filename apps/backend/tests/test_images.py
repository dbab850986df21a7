"""Tests for product image matching against stored filenames."""

import logging

import pytest

from catalog.images import ImageMatcher, base_filename, find_best_image_match, score_image_candidate


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("products/Executive-Chair-v2-1699999999999.jpg", "executive-chair"),
        ("https://old.site/wp-content/uploads/2023/05/visitor-chair-rk-101.jpg?ver=2", "visitor-chair"),
        ("dining-table-copy.png", "dining-table"),
        ("Swing Chair RK Enterprises.webp", "swing-chair"),
        ("study-table-12-3.jpg", "study-table"),
        ("executive-chair-model-rk-12-3.jpeg", "executive-chair"),
        ("garden-chair-copy-v3-1700000000000.jpg", "garden-chair"),
        ("", ""),
    ],
)
def test_base_filename_strips_upload_suffixes(filename, expected):
    assert base_filename(filename) == expected


def test_timestamped_upload_matches_product_name():
    result = find_best_image_match(
        "Executive Chair Model X",
        [],
        ["executive-chair-model-x-1699999999999.jpg", "unrelated.jpg"],
    )
    assert result == "executive-chair-model-x-1699999999999.jpg"


def test_exact_base_beats_containment():
    result = find_best_image_match(
        "Executive Chair Model X",
        None,
        ["products/executive-chair-model-x-deluxe.jpg", "products/executive-chair-model-x.jpg"],
    )
    assert result == "products/executive-chair-model-x.jpg"


def test_ties_keep_input_order():
    files = [
        "products/executive-chair-1700000000000.jpg",
        "products/executive-chair-1699999999999.jpg",
    ]
    assert find_best_image_match("Executive Chair", None, files) == files[0]


def test_hint_breaks_ambiguity():
    result = find_best_image_match(
        "Chair",
        "https://old.site/uploads/gaming-chair-pro.jpg",
        ["products/office-chair.jpg", "products/gaming-chair-pro-1700000000000.jpg"],
    )
    assert result == "products/gaming-chair-pro-1700000000000.jpg"


def test_no_match_returns_none():
    assert find_best_image_match("Garden Swing", None, ["products/dining-table.jpg"]) is None
    assert find_best_image_match("Executive Chair", None, []) is None
    assert find_best_image_match("", None, ["products/dining-table.jpg"]) is None


def test_url_for_builds_public_url():
    result = find_best_image_match(
        "Dining Table",
        None,
        ["products/dining-table.jpg"],
        url_for=lambda path: f"https://cdn.test/{path}",
    )
    assert result == "https://cdn.test/products/dining-table.jpg"


def test_score_is_zero_for_empty_base():
    assert score_image_candidate("dining-table", "") == 0
    assert score_image_candidate("dining-table", "dining-table") == 3 * len("dining-table")


@pytest.mark.asyncio
async def test_image_matcher_lists_storage_once(make_storage):
    storage = make_storage(["products/study-chair.jpg", "products/dining-table-1700000000000.jpg"])
    matcher = ImageMatcher(storage, prefix="products")

    assert await matcher.match("Dining Table") == "https://cdn.test/products/dining-table-1700000000000.jpg"
    assert await matcher.match("Study Chair") == "https://cdn.test/products/study-chair.jpg"
    assert storage.list_calls == 1


@pytest.mark.asyncio
async def test_image_matcher_sorts_listing_before_tie_break(make_storage):
    storage = make_storage([
        "products/executive-chair-1700000000000.jpg",
        "products/executive-chair-1699999999999.jpg",
    ])
    matcher = ImageMatcher(storage, prefix="products")
    assert await matcher.match("Executive Chair") == "https://cdn.test/products/executive-chair-1699999999999.jpg"


@pytest.mark.asyncio
async def test_image_matcher_miss_logs_warning(caplog, make_storage):
    matcher = ImageMatcher(make_storage(["products/dining-table.jpg"]), prefix="products")
    with caplog.at_level(logging.WARNING, logger="catalog.images"):
        assert await matcher.match("Garden Swing") is None
    assert "No stored image matched product" in caplog.text
