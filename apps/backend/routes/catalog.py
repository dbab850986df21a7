"""Catalog routes - navigation tree and category/subcategory listings."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List
import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from catalog import (
    CatalogStore,
    CategoryRecord,
    ProductRecord,
    ResolvedSubcategory,
    SharedSubcategoryResolver,
    SqlCatalogStore,
    StructuredCategory,
    assemble_category_tree,
    get_taxonomy,
    slug_for_name,
)
from catalog.models import ListingStrategy
from database import get_session
from exceptions import ResourceNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["catalog"])
# Kept off /categories so no category slug is shadowed.
navigation_router = APIRouter(prefix="/navigation", tags=["catalog"])


def get_catalog_store(session: AsyncSession = Depends(get_session)) -> CatalogStore:
    return SqlCatalogStore(session)


def get_resolver(store: CatalogStore = Depends(get_catalog_store)) -> SharedSubcategoryResolver:
    return SharedSubcategoryResolver(store)


class CategoryPage(BaseModel):
    category: CategoryRecord
    subcategories: List[ResolvedSubcategory] = []
    products: List[ProductRecord] = []


class SubcategoryPage(BaseModel):
    category: CategoryRecord
    subcategory: ResolvedSubcategory
    products: List[ProductRecord] = []
    approximate: bool = False
    strategy: ListingStrategy = "subcategory"


@navigation_router.get("/tree", response_model=List[StructuredCategory])
async def get_category_tree(store: CatalogStore = Depends(get_catalog_store)):
    categories = await store.list_categories()
    subcategories = await store.list_subcategories()
    return assemble_category_tree(categories, subcategories, get_taxonomy())


@router.get("/{slug}", response_model=CategoryPage)
async def get_category_page(
    slug: str,
    store: CatalogStore = Depends(get_catalog_store),
    resolver: SharedSubcategoryResolver = Depends(get_resolver),
):
    found = await resolver.list_category_products(slug)
    if found is None:
        raise ResourceNotFoundError("Category not found", detail={"slug": slug})
    category, listing = found

    subcategories = [
        ResolvedSubcategory(
            id=sub.id,
            name=sub.name,
            slug=sub.slug or slug_for_name(sub.name),
            category_id=sub.category_id,
        )
        for sub in await store.list_subcategories(category.id)
    ]
    known = {sub.slug for sub in subcategories}
    for entry in resolver.shared_for_category(slug, category):
        if entry.slug not in known:
            subcategories.append(
                ResolvedSubcategory(
                    id=entry.id,
                    name=entry.name,
                    slug=entry.slug,
                    category_id=category.id,
                    shared=True,
                )
            )

    return CategoryPage(category=category, subcategories=subcategories, products=listing.products)


@router.get("/{slug}/{subslug}", response_model=SubcategoryPage)
async def get_subcategory_page(
    slug: str,
    subslug: str,
    resolver: SharedSubcategoryResolver = Depends(get_resolver),
):
    resolution = await resolver.resolve_category_and_subcategory(slug, subslug)
    if resolution.category is None:
        raise ResourceNotFoundError("Category not found", detail={"slug": slug})
    if resolution.subcategory is None:
        raise ResourceNotFoundError("Subcategory not found", detail={"slug": slug, "subslug": subslug})

    listing = await resolver.resolve_products(resolution)
    return SubcategoryPage(
        category=resolution.category,
        subcategory=resolution.subcategory,
        products=listing.products,
        approximate=listing.approximate,
        strategy=listing.strategy,
    )
