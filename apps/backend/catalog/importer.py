"""CSV bulk import: raw product rows to product insertion records.

Expected columns (WooCommerce export): ``Name``, ``Categories``,
``Description``, ``Regular price``, ``Sale price``, ``Images``,
``Is featured?``. ``Categories`` holds ``|``-separated paths of the form
``Category > Sub, Sub``; the first category and the first subcategory become
the product's primary links.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import uuid
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import httpx

from catalog.images import ImageMatcher
from catalog.models import (
    RESERVED_PRODUCT_SLUGS,
    ImportReport,
    ProductDraft,
    SharedSubcategory,
    SkippedRow,
    SubcategoryRecord,
)
from catalog.normalizer import clean_html, simple_slugify, slug_for_name
from catalog.repository import CatalogStore
from catalog.shared import DEFAULT_SHARED_SUBCATEGORIES
from exceptions import StorageServiceError

logger = logging.getLogger(__name__)

OFFICE_CATEGORY_MARKERS: Tuple[str, ...] = ("office furniture", "visitor chair")
FEATURED_VALUES = {"1", "yes", "true"}

_CONTENT_TYPE_EXTENSIONS: Dict[str, str] = {
    "png": ".png",
    "jpeg": ".jpeg",
    "jpg": ".jpg",
    "gif": ".gif",
    "webp": ".webp",
}


def parse_csv_rows(text: str) -> List[Dict[str, str]]:
    """Rows of a CSV export as header -> value dicts."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    return [dict(row) for row in reader]


def parse_price(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        price = float(text)
    except ValueError:
        return None
    return None if math.isnan(price) or math.isinf(price) else price


def parse_category_paths(categories: str) -> List[Tuple[str, List[str]]]:
    """``"Office > Chairs, Desks | Dining"`` -> ``[("Office", ["Chairs", "Desks"]), ("Dining", [])]``"""
    paths: List[Tuple[str, List[str]]] = []
    for path in (categories or "").split("|"):
        parts = [part.strip() for part in path.split(">") if part.strip()]
        if not parts:
            continue
        subcategories = []
        if len(parts) > 1:
            subcategories = [name.strip() for name in parts[1].split(",") if name.strip()]
        paths.append((parts[0], subcategories))
    return paths


def split_image_urls(images: Optional[str]) -> List[str]:
    return [item.strip() for item in (images or "").split(",") if item.strip()]


def _extension_for(content_type: Optional[str]) -> str:
    for marker, ext in _CONTENT_TYPE_EXTENSIONS.items():
        if content_type and marker in content_type:
            return ext
    return ".jpg"


class ProductImporter:
    """Turns raw CSV rows into ``ProductDraft`` records and inserts them.

    Row-level problems (no name, no usable price, no category) skip the row
    and are reported. Image misses only produce warnings. Catalog backend
    failures propagate and abort the import.
    """

    def __init__(
        self,
        store: CatalogStore,
        image_matcher: Optional[ImageMatcher] = None,
        *,
        shared: Sequence[SharedSubcategory] = DEFAULT_SHARED_SUBCATEGORIES,
        storage=None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.store = store
        self.image_matcher = image_matcher
        self.shared = tuple(shared)
        self.storage = storage
        self.http_client = http_client

    async def import_rows(self, rows: Iterable[Mapping[str, str]]) -> ImportReport:
        report = ImportReport()
        drafts: List[ProductDraft] = []
        batch_slugs: Set[str] = set()

        for row_number, row in enumerate(rows, start=1):
            draft = await self.build_draft(row_number, row, report, batch_slugs)
            if draft is not None:
                drafts.append(draft)

        report.imported = await self.store.insert_products(drafts)
        report.products = drafts
        logger.info(
            "CSV import finished",
            extra={
                "imported": report.imported,
                "skipped": len(report.skipped),
                "warnings": len(report.warnings),
            },
        )
        return report

    async def build_draft(
        self,
        row_number: int,
        row: Mapping[str, str],
        report: ImportReport,
        batch_slugs: Set[str],
    ) -> Optional[ProductDraft]:
        name = clean_html(row.get("Name"))
        if not name:
            self._skip(report, row_number, "missing product name")
            return None

        regular_price = parse_price(row.get("Regular price"))
        sale_price = parse_price(row.get("Sale price"))
        has_regular = regular_price is not None and regular_price > 0
        has_sale = sale_price is not None and sale_price > 0
        if not has_regular and not has_sale:
            self._skip(report, row_number, "missing or invalid price", name)
            return None

        categories_text = clean_html(row.get("Categories"))
        category_id, subcategories = await self._link_categories(categories_text)
        if category_id is None:
            self._skip(report, row_number, "no valid primary category", name)
            return None

        description = clean_html(row.get("Description"))
        images = await self._resolve_images(name, split_image_urls(row.get("Images")), report)
        slug = await self._unique_slug(name, batch_slugs)

        draft = ProductDraft(
            name=name,
            slug=slug,
            price=sale_price if has_sale else regular_price,
            original_price=regular_price if has_regular else None,
            description=description or None,
            detailed_description=description or None,
            images=images,
            category_id=category_id,
            subcategory_id=subcategories[0].id if subcategories else None,
            is_featured=str(row.get("Is featured?") or "").strip().lower() in FEATURED_VALUES,
            show_in_office=any(marker in categories_text.lower() for marker in OFFICE_CATEGORY_MARKERS),
        )
        for flag in self._flags_for(subcategories):
            setattr(draft, flag, True)
        return draft

    def _skip(self, report: ImportReport, row_number: int, reason: str, name: Optional[str] = None) -> None:
        logger.warning(f"Skipping CSV row {row_number}: {reason}", extra={"product_name": name})
        report.skipped.append(SkippedRow(row_number=row_number, reason=reason, name=name))

    async def _link_categories(self, categories_text: str) -> Tuple[Optional[str], List[SubcategoryRecord]]:
        primary_category_id: Optional[str] = None
        subcategories: List[SubcategoryRecord] = []

        for category_name, subcategory_names in parse_category_paths(categories_text):
            category = await self.store.get_or_create_category(category_name)
            if category is None:
                logger.warning(f"Could not create/find category for name: {category_name}")
                continue
            if primary_category_id is None:
                primary_category_id = category.id

            for subcategory_name in subcategory_names:
                subcategory = await self.store.get_or_create_subcategory(subcategory_name, category.id)
                if subcategory is not None and all(sub.id != subcategory.id for sub in subcategories):
                    subcategories.append(subcategory)

        return primary_category_id, subcategories

    def _flags_for(self, subcategories: Sequence[SubcategoryRecord]) -> List[str]:
        flags: List[str] = []
        for subcategory in subcategories:
            slug = subcategory.slug or slug_for_name(subcategory.name)
            for entry in self.shared:
                if not entry.product_flag or entry.product_flag in flags:
                    continue
                # Singular subcategory names ("visitor sofa") count too.
                if slug in (entry.slug, entry.slug[:-1]):
                    flags.append(entry.product_flag)
        return flags

    async def _unique_slug(self, name: str, batch_slugs: Set[str]) -> str:
        base = simple_slugify(name) or f"product-{uuid.uuid4().hex[:7]}"
        candidate = base
        suffix = 1
        while (
            candidate in RESERVED_PRODUCT_SLUGS
            or candidate in batch_slugs
            or await self.store.slug_exists(candidate)
        ):
            candidate = f"{base}-{suffix}"
            suffix += 1
        batch_slugs.add(candidate)
        return candidate

    async def _resolve_images(self, name: str, hints: List[str], report: ImportReport) -> List[str]:
        urls: List[str] = []
        for hint in hints or [None]:
            url = await self._resolve_image(name, hint)
            if url is None:
                message = f"No image found for product '{name}'" + (f" (source: {hint})" if hint else "")
                logger.warning(message)
                report.warnings.append(message)
            elif url not in urls:
                urls.append(url)
        return urls

    async def _resolve_image(self, name: str, hint: Optional[str]) -> Optional[str]:
        if self.image_matcher is not None:
            url = await self.image_matcher.match(name, hint)
            if url:
                return url
        if hint and hint.startswith(("http://", "https://")) and self.storage and self.http_client:
            return await self._download_image(hint, name)
        return None

    async def _download_image(self, image_url: str, product_name: str) -> Optional[str]:
        """Copy a remote image into storage. Failures are soft: None."""
        try:
            response = await self.http_client.get(image_url, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.warning(f"Image download failed: {image_url} ({type(exc).__name__})")
            return None
        if response.status_code != 200:
            logger.warning(f"Image download failed: {image_url} (status {response.status_code})")
            return None

        ext = _extension_for(response.headers.get("content-type"))
        try:
            path = await self.storage.save_file(response.content, f"{product_name}{ext}", "products")
        except StorageServiceError:
            logger.warning(f"Image upload failed for product: {product_name}", exc_info=True)
            return None
        return self.storage.public_url(path)


__all__ = [
    "ProductImporter",
    "parse_category_paths",
    "parse_csv_rows",
    "parse_price",
    "split_image_urls",
]
