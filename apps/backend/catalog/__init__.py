"""Catalog taxonomy engine: name normalization, matching, tree assembly and route resolution."""

from .models import (
    PRODUCT_FLAGS,
    CategoryRecord,
    ImportReport,
    ProductDraft,
    ProductListing,
    ProductRecord,
    Resolution,
    ResolvedSubcategory,
    SharedSubcategory,
    StructuredCategory,
    StructuredSubcategory,
    SubcategoryRecord,
    TaxonomyGroup,
)
from .normalizer import clean_html, names_match, normalize_category_name, simple_slugify, slug_for_name
from .matching import find_best_match
from .images import ImageMatcher, find_best_image_match
from .taxonomy import CANONICAL_TAXONOMY, assemble_category_tree, get_taxonomy
from .repository import CatalogStore, SqlCatalogStore
from .shared import DEFAULT_SHARED_SUBCATEGORIES, SharedSubcategoryResolver
from .importer import ProductImporter, parse_csv_rows

__all__ = [
    "PRODUCT_FLAGS",
    "CategoryRecord",
    "ImportReport",
    "ProductDraft",
    "ProductListing",
    "ProductRecord",
    "Resolution",
    "ResolvedSubcategory",
    "SharedSubcategory",
    "StructuredCategory",
    "StructuredSubcategory",
    "SubcategoryRecord",
    "TaxonomyGroup",
    "clean_html",
    "names_match",
    "normalize_category_name",
    "simple_slugify",
    "slug_for_name",
    "find_best_match",
    "ImageMatcher",
    "find_best_image_match",
    "CANONICAL_TAXONOMY",
    "assemble_category_tree",
    "get_taxonomy",
    "CatalogStore",
    "SqlCatalogStore",
    "DEFAULT_SHARED_SUBCATEGORIES",
    "SharedSubcategoryResolver",
    "ProductImporter",
    "parse_csv_rows",
]
