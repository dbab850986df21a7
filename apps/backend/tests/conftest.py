import os
import sys
import tempfile
import uuid
from typing import List, Optional, Sequence

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# Add parent directory to path to allow importing catalog and main
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ.setdefault("STORAGE_PATH", tempfile.mkdtemp(prefix="catalog-uploads-"))
os.environ["DB_CREATE_TABLES"] = "false"
os.environ["IMPORT_DOWNLOAD_IMAGES"] = "false"

from catalog.models import (
    PRODUCT_FLAGS,
    CategoryRecord,
    ProductDraft,
    ProductRecord,
    SubcategoryRecord,
)
from catalog.normalizer import normalize_category_name, simple_slugify
from catalog.repository import CatalogStore
from exceptions import CatalogUnavailableError, StorageServiceError
from main import app
from routes.admin import get_storage
from routes.catalog import get_catalog_store
from storage import IStorageProvider


class InMemoryCatalogStore(CatalogStore):
    """CatalogStore over plain lists, same lookup rules as SqlCatalogStore."""

    def __init__(self):
        self.categories: List[CategoryRecord] = []
        self.subcategories: List[SubcategoryRecord] = []
        self.products: List[ProductRecord] = []
        self.unavailable = False
        self.search_calls = []

    def _check(self):
        if self.unavailable:
            raise CatalogUnavailableError("Failed to load catalog")

    def add_category(self, name: str, slug: Optional[str] = None) -> CategoryRecord:
        record = CategoryRecord(id=f"cat-{len(self.categories) + 1}", name=name, slug=slug)
        self.categories.append(record)
        return record

    def add_subcategory(self, name: str, category_id: Optional[str], slug: Optional[str] = None) -> SubcategoryRecord:
        record = SubcategoryRecord(
            id=f"sub-{len(self.subcategories) + 1}", name=name, slug=slug, category_id=category_id
        )
        self.subcategories.append(record)
        return record

    def add_product(self, name: str, **fields) -> ProductRecord:
        fields.setdefault("slug", simple_slugify(name))
        fields.setdefault("price", 100.0)
        record = ProductRecord(id=f"prod-{len(self.products) + 1}", name=name, **fields)
        self.products.append(record)
        return record

    async def list_categories(self) -> List[CategoryRecord]:
        self._check()
        return sorted(self.categories, key=lambda c: c.name)

    async def get_category_by_slug(self, slug: str) -> Optional[CategoryRecord]:
        self._check()
        return next((c for c in self.categories if slug and c.slug == slug), None)

    async def list_subcategories(self, category_id: Optional[str] = None) -> List[SubcategoryRecord]:
        self._check()
        rows = [s for s in self.subcategories if category_id is None or s.category_id == category_id]
        return sorted(rows, key=lambda s: s.name)

    async def get_subcategory(self, slug: str, category_id: Optional[str] = None) -> Optional[SubcategoryRecord]:
        self._check()
        for sub in self.subcategories:
            if slug and sub.slug == slug and (category_id is None or sub.category_id == category_id):
                return sub
        return None

    async def get_or_create_category(self, name: str) -> Optional[CategoryRecord]:
        cleaned = normalize_category_name(name)
        if not cleaned:
            return None
        existing = await self.get_category_by_slug(simple_slugify(cleaned))
        return existing or self.add_category(cleaned, simple_slugify(cleaned))

    async def get_or_create_subcategory(self, name: str, category_id: str) -> Optional[SubcategoryRecord]:
        cleaned = normalize_category_name(name)
        if not cleaned:
            return None
        existing = await self.get_subcategory(simple_slugify(cleaned))
        return existing or self.add_subcategory(cleaned, category_id, simple_slugify(cleaned))

    async def list_products(
        self, category_ids: Sequence[str] = (), subcategory_ids: Sequence[str] = ()
    ) -> List[ProductRecord]:
        self._check()
        if not category_ids and not subcategory_ids:
            return []
        return [
            p for p in self.products
            if p.category_id in category_ids or p.subcategory_id in subcategory_ids
        ]

    async def search_products(self, text: Optional[str] = None, flag: Optional[str] = None) -> List[ProductRecord]:
        self._check()
        self.search_calls.append((text, flag))
        if flag and flag not in PRODUCT_FLAGS:
            raise ValueError(f"Unknown product flag: {flag}")
        if not text and not flag:
            return []
        needle = (text or "").lower()
        results = []
        for p in self.products:
            haystack = f"{p.name} {p.description or ''}".lower()
            if (needle and needle in haystack) or (flag and getattr(p, flag)):
                results.append(p)
        return results

    async def get_product_by_slug(self, slug: str) -> Optional[ProductRecord]:
        self._check()
        return next((p for p in self.products if slug and p.slug == slug), None)

    async def list_featured_products(self, limit: Optional[int] = None) -> List[ProductRecord]:
        self._check()
        featured = [p for p in self.products if p.is_featured]
        return featured if limit is None else featured[:limit]

    async def list_related_products(
        self, category_id: str, exclude_product_id: str, limit: int = 5
    ) -> List[ProductRecord]:
        self._check()
        related = [p for p in self.products if p.category_id == category_id and p.id != exclude_product_id]
        return related[:limit]

    async def slug_exists(self, slug: str) -> bool:
        self._check()
        return any(p.slug == slug for p in self.products)

    async def insert_products(self, drafts: Sequence[ProductDraft]) -> int:
        self._check()
        for draft in drafts:
            self.products.append(ProductRecord(id=uuid.uuid4().hex, **draft.model_dump()))
        return len(drafts)

    async def delete_non_featured_products(self) -> List[ProductRecord]:
        self._check()
        deleted = [p for p in self.products if not p.is_featured]
        self.products = [p for p in self.products if p.is_featured]
        return deleted


class FakeStorage(IStorageProvider):
    """Storage provider double with a fixed listing."""

    def __init__(self, files: Sequence[str] = (), broken: Sequence[str] = ()):
        self.files = list(files)
        self.broken = set(broken)
        self.list_calls = 0

    async def list_files(self, prefix: str = "products") -> List[str]:
        self.list_calls += 1
        return [f for f in self.files if f.startswith(prefix.rstrip("/") + "/")]

    async def save_file(self, file_content: bytes, filename: str, subfolder: str = "products") -> str:
        path = f"{subfolder}/{simple_slugify(filename)}"
        self.files.append(path)
        return path

    async def delete_file(self, file_path: str):
        if file_path in self.broken:
            raise StorageServiceError("Failed to delete file", detail={"path": file_path})
        if file_path in self.files:
            self.files.remove(file_path)

    def public_url(self, file_path: str) -> str:
        return f"https://cdn.test/{file_path}"


@pytest.fixture
def store():
    return InMemoryCatalogStore()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def seeded_store(store):
    """Office/visitor/dining catalog shaped like a live import."""
    office = store.add_category("Office Furniture", slug="office-furniture")
    benches = store.add_category("Visitor Bench", slug="visitor-bench")
    dining = store.add_category("Dining Furniture", slug="dining-furniture")

    executive = store.add_subcategory("Executive Chairs", office.id, slug="executive-chairs")
    store.add_subcategory("Staff Chairs", office.id, slug="staff-chairs")
    airport = store.add_subcategory("Airport Seating", benches.id, slug="airport-seating")
    store.add_subcategory("Dining Tables", dining.id, slug="dining-tables")

    store.add_product("Executive Chair Model X", category_id=office.id, subcategory_id=executive.id)
    store.add_product("Airport Bench 3 Seater", category_id=benches.id, subcategory_id=airport.id)
    store.add_product("Visitor Sofa 2 Seater", category_id=benches.id, is_visitor_sofa=True)
    store.add_product("Teak Dining Table", category_id=dining.id)
    return store


@pytest_asyncio.fixture
async def client(store, storage):
    app.dependency_overrides[get_catalog_store] = lambda: store
    app.dependency_overrides[get_storage] = lambda: storage
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_storage():
    return FakeStorage


@pytest_asyncio.fixture(name="sql_session")
async def sql_session_fixture(tmp_path):
    """AsyncSession on a throwaway SQLite file with the catalog tables created."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        echo=False,
        future=True,
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    session_factory = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await test_engine.dispose()
