"""Typed records for the catalog taxonomy engine."""

from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ProductFlag = Literal[
    "show_in_office",
    "is_molded",
    "is_ceo_chair",
    "is_gaming_chair",
    "is_dining_chair",
    "is_visitor_sofa",
    "is_study_chair",
    "is_outdoor_furniture",
    "is_folding_furniture",
]

PRODUCT_FLAGS: Tuple[str, ...] = (
    "show_in_office",
    "is_molded",
    "is_ceo_chair",
    "is_gaming_chair",
    "is_dining_chair",
    "is_visitor_sofa",
    "is_study_chair",
    "is_outdoor_furniture",
    "is_folding_furniture",
)

# Fixed path segments under /products; product slugs never take these.
RESERVED_PRODUCT_SLUGS = frozenset({"featured", "office"})

ListingStrategy = Literal[
    "category",
    "subcategory",
    "shared_subcategory",
    "shared_fallback",
]


class CategoryRecord(BaseModel):
    """Category row as stored by the catalog backend."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = ""
    slug: Optional[str] = None


class SubcategoryRecord(BaseModel):
    """Subcategory row. ``category_id`` is absent for unlinked rows."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = ""
    slug: Optional[str] = None
    category_id: Optional[str] = None


class ProductDraft(BaseModel):
    """Product insertion record produced by the CSV importer."""

    name: str
    slug: str
    price: float = Field(0.0, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    detailed_description: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
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

    @field_validator("images", mode="before")
    @classmethod
    def _ensure_images(cls, value: Optional[List[str]]) -> List[str]:
        return [item for item in (value or []) if item]


class ProductRecord(ProductDraft):
    model_config = ConfigDict(from_attributes=True)

    id: str


class StructuredSubcategory(BaseModel):
    id: str
    name: str
    slug: str
    placeholder: bool = False


class StructuredCategory(BaseModel):
    """Navigation node built from a canonical taxonomy group."""

    id: str
    name: str
    slug: str
    subcategories: List[StructuredSubcategory] = Field(default_factory=list)


class TaxonomyGroup(BaseModel):
    """One merchandising group of the canonical taxonomy, in menu order."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    children: Tuple[str, ...] = ()

    @field_validator("children", mode="before")
    @classmethod
    def _strip_children(cls, value):
        if value is None:
            return ()
        return tuple(str(item).strip() for item in value if str(item).strip())


class SharedSubcategory(BaseModel):
    """A subcategory browsable under several top-level categories.

    ``categories`` lists owner category slugs or name fragments. ``product_flag``
    names the boolean product column that approximates membership when no real
    subcategory row backs the declaration.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str
    categories: Tuple[str, ...] = ()
    product_flag: Optional[ProductFlag] = None


class ResolvedSubcategory(BaseModel):
    id: str
    name: str
    slug: str
    category_id: Optional[str] = None
    shared: bool = False


class Resolution(BaseModel):
    """Outcome of resolving a ``(category, subcategory)`` URL pair.

    A missing half is ``None``; callers render "not found" for it.
    """

    category: Optional[CategoryRecord] = None
    subcategory: Optional[ResolvedSubcategory] = None

    @property
    def found(self) -> bool:
        return self.category is not None and self.subcategory is not None


class ProductListing(BaseModel):
    """Products behind a resolved route.

    ``approximate`` is True when the filter came from the name/flag fallback
    for shared subcategories, which can both over- and under-match.
    """

    products: List[ProductRecord] = Field(default_factory=list)
    approximate: bool = False
    strategy: ListingStrategy = "subcategory"


class ImageMatchCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    stored_filename: str
    normalized_base_name: str


class SkippedRow(BaseModel):
    row_number: int
    reason: str
    name: Optional[str] = None


class ImportReport(BaseModel):
    imported: int = 0
    skipped: List[SkippedRow] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    products: List[ProductDraft] = Field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Successfully imported {self.imported} products."
