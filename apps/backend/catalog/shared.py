"""Shared-subcategory declarations and ``(category, subcategory)`` route resolution.

The catalog backend links a subcategory to one category, while the storefront
lists some subcategories under several top-level categories (visitor chairs
under both the office and the waiting-bench ranges, for instance). Those
cross-listings are declared here as data and injected into the resolver.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from catalog.models import (
    CategoryRecord,
    ProductListing,
    ProductRecord,
    Resolution,
    ResolvedSubcategory,
    SharedSubcategory,
)
from catalog.matching import find_best_match, find_containing_match
from catalog.normalizer import names_match, normalize_category_name, simple_slugify, slug_for_name
from catalog.repository import CatalogStore

logger = logging.getLogger(__name__)

DEFAULT_SHARED_SUBCATEGORIES: Tuple[SharedSubcategory, ...] = (
    SharedSubcategory(
        id="shared-visitor-office-chairs",
        name="Visitor Office Chairs",
        slug="visitor-office-chairs",
        categories=("office-range", "waiting-benches-range", "office furniture", "visitor bench"),
    ),
    SharedSubcategory(
        id="shared-visitor-sofas",
        name="Visitor Sofas",
        slug="visitor-sofas",
        categories=("waiting-benches-range", "office-range", "visitor bench"),
        product_flag="is_visitor_sofa",
    ),
    SharedSubcategory(
        id="shared-gaming-chairs",
        name="Gaming Chairs",
        slug="gaming-chairs",
        categories=("office-range", "study-range", "study chair"),
        product_flag="is_gaming_chair",
    ),
    SharedSubcategory(
        id="shared-ceo-chairs",
        name="CEO Chairs",
        slug="ceo-chairs",
        categories=("office-range", "office furniture", "executive furniture"),
        product_flag="is_ceo_chair",
    ),
    SharedSubcategory(
        id="shared-study-chairs",
        name="Study Chairs",
        slug="study-chairs",
        categories=("study-range", "office-range", "study chair"),
        product_flag="is_study_chair",
    ),
    SharedSubcategory(
        id="shared-dining-chairs",
        name="Dining Chairs",
        slug="dining-chairs",
        categories=("dining-range", "moulded-range", "dining furniture"),
        product_flag="is_dining_chair",
    ),
    SharedSubcategory(
        id="shared-moulded-chairs",
        name="Moulded Chairs",
        slug="moulded-chairs",
        categories=("moulded-range", "outdoor-range", "molded furniture"),
        product_flag="is_molded",
    ),
    SharedSubcategory(
        id="shared-folding-chairs",
        name="Folding Chairs",
        slug="folding-chairs",
        categories=("folding-range", "outdoor-range"),
        product_flag="is_folding_furniture",
    ),
    SharedSubcategory(
        id="shared-garden-chairs",
        name="Garden Chairs",
        slug="garden-chairs",
        categories=("outdoor-range", "moulded-range"),
        product_flag="is_outdoor_furniture",
    ),
)


def is_shared_for(
    entry: SharedSubcategory,
    category_slug: str,
    category: CategoryRecord,
) -> bool:
    """Whether ``entry`` is declared under the routed category.

    Owners may be the URL slug, the category's stored slug, or a name
    fragment that overlaps the category name (group names and backend names
    drift, e.g. "Office Range" vs "Office Furniture").
    """
    owners = entry.categories
    if category_slug and category_slug in owners:
        return True
    if category.slug and category.slug in owners:
        return True

    return any(names_match(category.name, owner) for owner in owners)


def _search_phrase(name: str) -> str:
    # "visitor sofas" should still find "Visitor Sofa 3 Seater".
    phrase = normalize_category_name(name)
    if len(phrase) > 3 and phrase.endswith("s") and not phrase.endswith("ss"):
        phrase = phrase[:-1]
    return phrase


def _dedupe_products(*groups: Sequence[ProductRecord]) -> List[ProductRecord]:
    seen = set()
    merged: List[ProductRecord] = []
    for group in groups:
        for product in group:
            if product.id in seen:
                continue
            seen.add(product.id)
            merged.append(product)
    return merged


class SharedSubcategoryResolver:
    """Resolves category/subcategory routes to records and product filters.

    Holds no mutable state: one instance can serve concurrent requests as
    long as its store does.
    """

    def __init__(
        self,
        store: CatalogStore,
        shared: Sequence[SharedSubcategory] = DEFAULT_SHARED_SUBCATEGORIES,
    ):
        self.store = store
        self.shared: Tuple[SharedSubcategory, ...] = tuple(shared)
        self._shared_by_id: Dict[str, SharedSubcategory] = {entry.id: entry for entry in self.shared}

    def find_shared(
        self,
        subcategory_slug: str,
        category_slug: str,
        category: CategoryRecord,
    ) -> Optional[SharedSubcategory]:
        for entry in self.shared:
            if entry.slug == subcategory_slug and is_shared_for(entry, category_slug, category):
                return entry
        return None

    def shared_for_category(self, category_slug: str, category: CategoryRecord) -> List[SharedSubcategory]:
        return [entry for entry in self.shared if is_shared_for(entry, category_slug, category)]

    async def resolve_category(self, category_slug: str) -> Optional[CategoryRecord]:
        """Category by stored slug, then by slugified name, then by slug containment."""
        wanted = simple_slugify(category_slug)
        if not wanted:
            return None

        category = await self.store.get_category_by_slug(category_slug)
        if category:
            return category

        category = find_containing_match(wanted, await self.store.list_categories())
        if category is not None:
            logger.info(
                "Category resolved by name",
                extra={"category_slug": category_slug, "category_name": category.name},
            )
        return category

    async def resolve_category_and_subcategory(
        self, category_slug: str, subcategory_slug: str
    ) -> Resolution:
        """Records behind a ``/categories/{slug}/{subslug}`` route.

        A shared subcategory comes back as a virtual record owned by the
        resolved category. ``subcategory`` is None when nothing matches; the
        caller must render not found rather than list everything.
        """
        category = await self.resolve_category(category_slug)
        if category is None:
            return Resolution()
        if not simple_slugify(subcategory_slug):
            return Resolution(category=category)

        entry = self.find_shared(subcategory_slug, category_slug, category)
        if entry is not None:
            return Resolution(
                category=category,
                subcategory=ResolvedSubcategory(
                    id=entry.id,
                    name=entry.name,
                    slug=entry.slug,
                    category_id=category.id,
                    shared=True,
                ),
            )

        subcategory = await self.store.get_subcategory(subcategory_slug, category.id)
        if subcategory is None:
            subcategory = find_best_match(subcategory_slug, await self.store.list_subcategories(category.id))

        if subcategory is None:
            logger.info(
                "Subcategory not found",
                extra={"category_slug": category_slug, "subcategory_slug": subcategory_slug},
            )
            return Resolution(category=category)

        return Resolution(
            category=category,
            subcategory=ResolvedSubcategory(
                id=subcategory.id,
                name=subcategory.name,
                slug=subcategory.slug or slug_for_name(subcategory.name),
                category_id=subcategory.category_id,
            ),
        )

    async def resolve_products_for_shared_subcategory(
        self, subcategory: ResolvedSubcategory
    ) -> ProductListing:
        """Products for a shared subcategory.

        A real subcategory row with the same slug wins. Otherwise the filter
        falls back to a name/description substring search plus the declared
        product flag. That fallback is approximate: it can include unrelated
        products and miss products named differently.
        """
        real = await self.store.get_subcategory(subcategory.slug)
        if real is not None:
            products = await self.store.list_products(subcategory_ids=[real.id])
            return ProductListing(products=products, strategy="shared_subcategory")

        entry = self._shared_by_id.get(subcategory.id)
        flag = entry.product_flag if entry else None
        products = await self.store.search_products(text=_search_phrase(subcategory.name), flag=flag)
        logger.info(
            "Shared subcategory listed by name/flag fallback",
            extra={"subcategory_slug": subcategory.slug, "flag": flag, "product_count": len(products)},
        )
        return ProductListing(products=products, approximate=True, strategy="shared_fallback")

    async def resolve_products(self, resolution: Resolution) -> ProductListing:
        if not resolution.found:
            return ProductListing()
        if resolution.subcategory.shared:
            return await self.resolve_products_for_shared_subcategory(resolution.subcategory)
        products = await self.store.list_products(subcategory_ids=[resolution.subcategory.id])
        return ProductListing(products=products, strategy="subcategory")

    async def list_category_products(
        self, category_slug: str
    ) -> Optional[Tuple[CategoryRecord, ProductListing]]:
        """Category page listing: direct products, products of its linked
        subcategories, then flagged products of shared subcategories declared
        under it. None when the category does not resolve."""
        category = await self.resolve_category(category_slug)
        if category is None:
            return None

        subcategories = await self.store.list_subcategories(category.id)
        direct = await self.store.list_products(
            category_ids=[category.id],
            subcategory_ids=[sub.id for sub in subcategories],
        )

        flagged: List[ProductRecord] = []
        for entry in self.shared_for_category(category_slug, category):
            if entry.product_flag:
                flagged.extend(await self.store.search_products(flag=entry.product_flag))

        listing = ProductListing(products=_dedupe_products(direct, flagged), strategy="category")
        return category, listing


__all__ = [
    "DEFAULT_SHARED_SUBCATEGORIES",
    "SharedSubcategoryResolver",
    "is_shared_for",
]
