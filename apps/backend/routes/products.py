"""Product routes - homepage featured list, office list and product detail."""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from typing import List

from catalog import CatalogStore, ProductRecord
from exceptions import ResourceNotFoundError
from routes.catalog import get_catalog_store

router = APIRouter(prefix="/products", tags=["products"])

RELATED_PRODUCT_LIMIT = 5


class ProductPage(BaseModel):
    product: ProductRecord
    related: List[ProductRecord] = []


@router.get("/featured", response_model=List[ProductRecord])
async def list_featured_products(
    limit: int = Query(12, ge=1, le=100),
    store: CatalogStore = Depends(get_catalog_store),
):
    return await store.list_featured_products(limit=limit)


@router.get("/office", response_model=List[ProductRecord])
async def list_office_products(store: CatalogStore = Depends(get_catalog_store)):
    return await store.search_products(flag="show_in_office")


@router.get("/{slug}", response_model=ProductPage)
async def get_product_page(slug: str, store: CatalogStore = Depends(get_catalog_store)):
    product = await store.get_product_by_slug(slug)
    if product is None:
        raise ResourceNotFoundError("Product not found", detail={"slug": slug})

    related: List[ProductRecord] = []
    if product.category_id:
        related = await store.list_related_products(
            product.category_id, product.id, limit=RELATED_PRODUCT_LIMIT
        )
    return ProductPage(product=product, related=related)
