"""Canonical merchandising taxonomy and navigation tree assembly."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter

from catalog.matching import find_best_match
from catalog.models import (
    CategoryRecord,
    StructuredCategory,
    StructuredSubcategory,
    SubcategoryRecord,
    TaxonomyGroup,
)
from catalog.normalizer import simple_slugify, slug_for_name

logger = logging.getLogger(__name__)

# Menu order is significant: the header and homepage render groups and their
# children exactly in this order.
CANONICAL_TAXONOMY: Tuple[TaxonomyGroup, ...] = (
    TaxonomyGroup(
        name="Office Range",
        children=(
            "Executive Chairs",
            "CEO Chairs",
            "Staff Chairs",
            "Visitor Office Chairs",
            "Gaming Chairs",
            "Office Tables",
        ),
    ),
    TaxonomyGroup(
        name="Waiting Benches Range",
        children=("Visitor Benches", "Airport Seating", "Visitor Sofas"),
    ),
    TaxonomyGroup(
        name="Dining Range",
        children=("Dining Chairs", "Dining Tables", "Dining Sets"),
    ),
    TaxonomyGroup(
        name="Folding Range",
        children=("Folding Chairs", "Folding Tables"),
    ),
    TaxonomyGroup(
        name="Moulded Range",
        children=("Moulded Chairs", "Moulded Tables", "Craft Chair UPVC"),
    ),
    TaxonomyGroup(
        name="Outdoor Range",
        children=("Garden Chairs", "Outdoor Sets", "Swing Chairs"),
    ),
    TaxonomyGroup(
        name="Study Range",
        children=("Study Chairs", "Study Tables"),
    ),
)

_TAXONOMY_ADAPTER = TypeAdapter(List[TaxonomyGroup])


def load_taxonomy(path: Union[str, Path]) -> Tuple[TaxonomyGroup, ...]:
    """Load a taxonomy override from JSON: ``[{"name": ..., "children": [...]}, ...]``.

    Raises pydantic.ValidationError on malformed entries and ValueError on
    duplicate group slugs.
    """
    with open(path) as f:
        groups = _TAXONOMY_ADAPTER.validate_python(json.load(f))

    seen = set()
    for group in groups:
        slug = simple_slugify(group.name)
        if slug in seen:
            raise ValueError(f"Duplicate taxonomy group: {group.name}")
        seen.add(slug)
    return tuple(groups)


def get_taxonomy() -> Tuple[TaxonomyGroup, ...]:
    """Taxonomy in effect: CATALOG_TAXONOMY_FILE when set, else the built-in one."""
    override = os.getenv("CATALOG_TAXONOMY_FILE")
    if override:
        return load_taxonomy(override)
    return CANONICAL_TAXONOMY


def placeholder_subcategory(child_name: str) -> StructuredSubcategory:
    slug = slug_for_name(child_name)
    return StructuredSubcategory(id=slug, name=child_name, slug=slug, placeholder=True)


def structure_subcategory(record: SubcategoryRecord) -> StructuredSubcategory:
    return StructuredSubcategory(
        id=record.id,
        name=record.name,
        slug=record.slug or slug_for_name(record.name),
    )


def assemble_category_tree(
    categories: Iterable[CategoryRecord],
    subcategories: Iterable[SubcategoryRecord],
    taxonomy: Optional[Sequence[TaxonomyGroup]] = None,
) -> List[StructuredCategory]:
    """Navigation tree with one node per canonical group.

    Each expected child is matched against the whole subcategory pool; a
    child with no live record becomes a placeholder so the menu keeps its
    shape. The result always has ``len(taxonomy)`` entries in canonical order.

    ``categories`` is accepted for callers that fetch both tables together;
    group ids come from the display names, not from category rows.
    """
    groups = CANONICAL_TAXONOMY if taxonomy is None else taxonomy
    pool = list(subcategories)

    tree: List[StructuredCategory] = []
    for group in groups:
        group_slug = simple_slugify(group.name)
        children: List[StructuredSubcategory] = []
        for child_name in group.children:
            match = find_best_match(child_name, pool)
            if match is None:
                logger.warning(
                    "Canonical subcategory has no catalog record; using placeholder",
                    extra={"group": group.name, "subcategory": child_name},
                )
                children.append(placeholder_subcategory(child_name))
            else:
                children.append(structure_subcategory(match))

        tree.append(
            StructuredCategory(
                id=group_slug,
                name=group.name,
                slug=group_slug,
                subcategories=children,
            )
        )
    return tree


__all__ = [
    "CANONICAL_TAXONOMY",
    "assemble_category_tree",
    "get_taxonomy",
    "load_taxonomy",
    "placeholder_subcategory",
    "structure_subcategory",
]
