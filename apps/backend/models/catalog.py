"""Catalog models: categories, subcategories and products."""

from typing import Any, Optional
from datetime import datetime, timezone
import uuid
import sqlalchemy as sa
from sqlmodel import Field, SQLModel, Column


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    # Timestamp columns only accept timezone-aware values.
    return datetime.now(timezone.utc)


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(index=True)
    # Nullable: rows created by older CSV imports carry no slug.
    slug: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class Subcategory(SQLModel, table=True):
    """
    A subcategory links to at most one category. Browsing a subcategory under
    several categories is handled by the shared-subcategory declarations, not
    by the schema.
    """

    __tablename__ = "subcategories"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(index=True)
    slug: Optional[str] = Field(default=None, index=True)
    category_id: Optional[str] = Field(default=None, foreign_key="categories.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(index=True, unique=True)
    price: float = 0.0
    original_price: Optional[float] = None
    description: Optional[str] = None
    detailed_description: Optional[str] = None
    images: Optional[Any] = Field(default=None, sa_column=Column(sa.JSON, nullable=True))  # JSON array of URLs

    category_id: Optional[str] = Field(default=None, foreign_key="categories.id", index=True)
    subcategory_id: Optional[str] = Field(default=None, foreign_key="subcategories.id", index=True)

    # Merchandising flags
    is_featured: bool = False
    show_in_office: bool = False
    is_molded: bool = False
    is_ceo_chair: bool = False
    is_gaming_chair: bool = False
    is_dining_chair: bool = False
    is_visitor_sofa: bool = False
    is_study_chair: bool = False
    is_outdoor_furniture: bool = False
    is_folding_furniture: bool = False

    created_at: datetime = Field(default_factory=_utcnow, index=True)
