"""Exact and containment matching of names against catalog records."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, TypeVar

from catalog.normalizer import normalize_category_name, simple_slugify, slug_for_name

T = TypeVar("T")


def candidate_name(candidate: Any) -> str:
    """Name of a record, pydantic model, ORM row or plain mapping."""
    if isinstance(candidate, Mapping):
        value = candidate.get("name")
    else:
        value = getattr(candidate, "name", None)
    return str(value) if value else ""


def is_exact_match(target: str, name: str) -> bool:
    normalized_target = normalize_category_name(target)
    if not normalized_target:
        return False
    if normalize_category_name(name) == normalized_target:
        return True
    target_slug = simple_slugify(target)
    return bool(target_slug) and simple_slugify(name) == target_slug


def find_best_match(target: Optional[str], candidates: Iterable[T]) -> Optional[T]:
    """First candidate whose name matches ``target`` exactly.

    Exact means equal normalized names or equal slugs. Input order breaks
    ties. An empty target never matches anything.
    """
    if not normalize_category_name(target):
        return None
    for candidate in candidates:
        if is_exact_match(target, candidate_name(candidate)):
            return candidate
    return None


def find_containing_match(target: Optional[str], candidates: Sequence[T]) -> Optional[T]:
    """Exact match first, then the first candidate whose slug contains the
    target slug or is contained by it."""
    exact = find_best_match(target, candidates)
    if exact is not None:
        return exact

    target_slug = slug_for_name(target)
    if not target_slug:
        return None
    for candidate in candidates:
        slug = slug_for_name(candidate_name(candidate))
        if not slug:
            continue
        if target_slug in slug or slug in target_slug:
            return candidate
    return None


__all__ = [
    "candidate_name",
    "find_best_match",
    "find_containing_match",
    "is_exact_match",
]
