"""Catalog store contract and its SQLModel implementation.

The taxonomy engine only reads through ``CatalogStore``; the CSV importer
also writes through it. Lookups that find nothing return ``None`` or an
empty list. Backend failures raise ``CatalogUnavailableError``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from sqlalchemy import delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from catalog.models import (
    PRODUCT_FLAGS,
    CategoryRecord,
    ProductDraft,
    ProductRecord,
    SubcategoryRecord,
)
from catalog.normalizer import normalize_category_name, simple_slugify
from exceptions import CatalogUnavailableError
from models import Category, Product, Subcategory

logger = logging.getLogger(__name__)

DELETE_BATCH_SIZE = 1000


class CatalogStore(ABC):
    @abstractmethod
    async def list_categories(self) -> List[CategoryRecord]:
        pass

    @abstractmethod
    async def get_category_by_slug(self, slug: str) -> Optional[CategoryRecord]:
        pass

    @abstractmethod
    async def list_subcategories(self, category_id: Optional[str] = None) -> List[SubcategoryRecord]:
        pass

    @abstractmethod
    async def get_subcategory(
        self, slug: str, category_id: Optional[str] = None
    ) -> Optional[SubcategoryRecord]:
        """Subcategory by slug, restricted to ``category_id`` when given."""

    @abstractmethod
    async def get_or_create_category(self, name: str) -> Optional[CategoryRecord]:
        """Find by the normalized name's slug or insert. None for an empty name."""

    @abstractmethod
    async def get_or_create_subcategory(
        self, name: str, category_id: str
    ) -> Optional[SubcategoryRecord]:
        pass

    @abstractmethod
    async def list_products(
        self,
        category_ids: Sequence[str] = (),
        subcategory_ids: Sequence[str] = (),
    ) -> List[ProductRecord]:
        """Products in any of the categories OR any of the subcategories."""

    @abstractmethod
    async def search_products(
        self, text: Optional[str] = None, flag: Optional[str] = None
    ) -> List[ProductRecord]:
        """Products whose name/description contains ``text`` OR whose ``flag`` is set."""

    @abstractmethod
    async def get_product_by_slug(self, slug: str) -> Optional[ProductRecord]:
        pass

    @abstractmethod
    async def list_featured_products(self, limit: Optional[int] = None) -> List[ProductRecord]:
        """Featured products, newest first."""

    @abstractmethod
    async def list_related_products(
        self, category_id: str, exclude_product_id: str, limit: int = 5
    ) -> List[ProductRecord]:
        """Newest products of the category other than ``exclude_product_id``."""

    @abstractmethod
    async def slug_exists(self, slug: str) -> bool:
        pass

    @abstractmethod
    async def insert_products(self, drafts: Sequence[ProductDraft]) -> int:
        pass

    @abstractmethod
    async def delete_non_featured_products(self) -> List[ProductRecord]:
        """Delete every product not flagged featured and return the deleted rows."""


class SqlCatalogStore(CatalogStore):
    """CatalogStore over an async SQLModel session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _all(self, statement, what: str) -> list:
        try:
            result = await self.session.exec(statement)
            return list(result.all())
        except SQLAlchemyError as exc:
            logger.error(f"Catalog query failed: {what}", exc_info=True)
            raise CatalogUnavailableError(f"Failed to load {what}") from exc

    async def _first(self, statement, what: str):
        try:
            result = await self.session.exec(statement)
            return result.first()
        except SQLAlchemyError as exc:
            logger.error(f"Catalog query failed: {what}", exc_info=True)
            raise CatalogUnavailableError(f"Failed to load {what}") from exc

    async def _save(self, row, what: str):
        try:
            self.session.add(row)
            await self.session.commit()
            await self.session.refresh(row)
            return row
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Catalog write failed: {what}", exc_info=True)
            raise CatalogUnavailableError(f"Failed to create {what}") from exc

    async def list_categories(self) -> List[CategoryRecord]:
        rows = await self._all(select(Category).order_by(Category.name), "categories")
        return [CategoryRecord.model_validate(row) for row in rows]

    async def get_category_by_slug(self, slug: str) -> Optional[CategoryRecord]:
        if not slug:
            return None
        row = await self._first(select(Category).where(Category.slug == slug), "category")
        return CategoryRecord.model_validate(row) if row else None

    async def list_subcategories(self, category_id: Optional[str] = None) -> List[SubcategoryRecord]:
        statement = select(Subcategory).order_by(Subcategory.name)
        if category_id is not None:
            statement = statement.where(Subcategory.category_id == category_id)
        rows = await self._all(statement, "subcategories")
        return [SubcategoryRecord.model_validate(row) for row in rows]

    async def get_subcategory(
        self, slug: str, category_id: Optional[str] = None
    ) -> Optional[SubcategoryRecord]:
        if not slug:
            return None
        statement = select(Subcategory).where(Subcategory.slug == slug)
        if category_id is not None:
            statement = statement.where(Subcategory.category_id == category_id)
        row = await self._first(statement, "subcategory")
        return SubcategoryRecord.model_validate(row) if row else None

    async def get_or_create_category(self, name: str) -> Optional[CategoryRecord]:
        cleaned = normalize_category_name(name)
        if not cleaned:
            return None
        slug = simple_slugify(cleaned)

        existing = await self.get_category_by_slug(slug)
        if existing:
            return existing

        row = await self._save(Category(name=cleaned, slug=slug), f"category {cleaned}")
        logger.info("Created category", extra={"category_name": cleaned, "slug": slug})
        return CategoryRecord.model_validate(row)

    async def get_or_create_subcategory(
        self, name: str, category_id: str
    ) -> Optional[SubcategoryRecord]:
        cleaned = normalize_category_name(name)
        if not cleaned:
            return None
        slug = simple_slugify(cleaned)

        # Slugs are global: an existing row under another category is reused.
        existing = await self.get_subcategory(slug)
        if existing:
            return existing

        row = await self._save(
            Subcategory(name=cleaned, slug=slug, category_id=category_id),
            f"subcategory {cleaned}",
        )
        logger.info(
            "Created subcategory",
            extra={"subcategory_name": cleaned, "slug": slug, "category_id": category_id},
        )
        return SubcategoryRecord.model_validate(row)

    async def list_products(
        self,
        category_ids: Sequence[str] = (),
        subcategory_ids: Sequence[str] = (),
    ) -> List[ProductRecord]:
        conditions = []
        if category_ids:
            conditions.append(Product.category_id.in_(list(category_ids)))
        if subcategory_ids:
            conditions.append(Product.subcategory_id.in_(list(subcategory_ids)))
        if not conditions:
            return []

        statement = select(Product).where(or_(*conditions)).order_by(Product.created_at.desc())
        rows = await self._all(statement, "products")
        return [ProductRecord.model_validate(row) for row in rows]

    async def search_products(
        self, text: Optional[str] = None, flag: Optional[str] = None
    ) -> List[ProductRecord]:
        conditions = []
        if text:
            pattern = f"%{text}%"
            conditions.append(Product.name.ilike(pattern))
            conditions.append(Product.description.ilike(pattern))
        if flag:
            if flag not in PRODUCT_FLAGS:
                raise ValueError(f"Unknown product flag: {flag}")
            conditions.append(getattr(Product, flag).is_(True))
        if not conditions:
            return []

        statement = select(Product).where(or_(*conditions)).order_by(Product.created_at.desc())
        rows = await self._all(statement, "products")
        return [ProductRecord.model_validate(row) for row in rows]

    async def get_product_by_slug(self, slug: str) -> Optional[ProductRecord]:
        if not slug:
            return None
        row = await self._first(select(Product).where(Product.slug == slug), "product")
        return ProductRecord.model_validate(row) if row else None

    async def list_featured_products(self, limit: Optional[int] = None) -> List[ProductRecord]:
        statement = select(Product).where(Product.is_featured.is_(True)).order_by(Product.created_at.desc())
        if limit is not None:
            statement = statement.limit(limit)
        rows = await self._all(statement, "featured products")
        return [ProductRecord.model_validate(row) for row in rows]

    async def list_related_products(
        self, category_id: str, exclude_product_id: str, limit: int = 5
    ) -> List[ProductRecord]:
        statement = (
            select(Product)
            .where(Product.category_id == category_id, Product.id != exclude_product_id)
            .order_by(Product.created_at.desc())
            .limit(limit)
        )
        rows = await self._all(statement, "related products")
        return [ProductRecord.model_validate(row) for row in rows]

    async def slug_exists(self, slug: str) -> bool:
        row = await self._first(select(Product.id).where(Product.slug == slug), "product slug")
        return row is not None

    async def insert_products(self, drafts: Sequence[ProductDraft]) -> int:
        if not drafts:
            return 0
        try:
            self.session.add_all([Product(**draft.model_dump()) for draft in drafts])
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to insert products", exc_info=True)
            raise CatalogUnavailableError(
                "Failed to insert products", detail={"count": len(drafts)}
            ) from exc
        return len(drafts)

    async def delete_non_featured_products(self) -> List[ProductRecord]:
        rows = await self._all(select(Product).where(Product.is_featured.is_(False)), "non-featured products")
        deleted = [ProductRecord.model_validate(row) for row in rows]
        if not deleted:
            return []

        ids = [product.id for product in deleted]
        try:
            for start in range(0, len(ids), DELETE_BATCH_SIZE):
                batch = ids[start:start + DELETE_BATCH_SIZE]
                await self.session.execute(delete(Product).where(Product.id.in_(batch)))
                logger.info(
                    "Deleted product batch",
                    extra={"batch": start // DELETE_BATCH_SIZE + 1, "count": len(batch)},
                )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to delete non-featured products", exc_info=True)
            raise CatalogUnavailableError(
                "Failed to delete products", detail={"count": len(ids)}
            ) from exc
        return deleted


__all__ = ["CatalogStore", "SqlCatalogStore"]
