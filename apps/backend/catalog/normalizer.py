"""Name normalization and slug helpers for category/subcategory matching."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from slugify import slugify

# Known misspellings seen in supplier CSVs. Applied to whole words (a trailing
# plural "s" allowed) after lower-casing, so keys must be lower-case.
TYPO_CORRECTIONS: Dict[str, str] = {
    "firniture": "furniture",
    "furnitre": "furniture",
    "chiar": "chair",
}

_ESCAPED_NEWLINE = "\\n"
_LINK_PATTERN = re.compile(
    r'<a\s+(?:[^>]*?\s+)?href="([^"]*)"[^>]*?>(.*?)</a>',
    re.IGNORECASE,
)
_TAG_PATTERN = re.compile(r"<[^>]*>?")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_DELIMITER_PATTERN = re.compile(r"[\s,;/\\()&\-]+")
_EDGE_PATTERN = re.compile(r"^[^a-z0-9]+|[^a-z0-9]+$")

_SLUG_REPLACEMENTS = [["&", " and "]]


def _build_typo_pattern(corrections: Dict[str, str]) -> Optional[re.Pattern]:
    keys = [key for key, value in corrections.items() if key and key != value]
    if not keys:
        return None
    # Longest first so overlapping keys resolve to the more specific one.
    keys.sort(key=len, reverse=True)
    alternatives = "|".join(re.escape(key) for key in keys)
    return re.compile(rf"\b(?:{alternatives})(?=s?\b)")


_TYPO_PATTERN = _build_typo_pattern(TYPO_CORRECTIONS)


def clean_html(text: Optional[str]) -> str:
    """Strip markup from imported text.

    Anchors become ``[Link: TEXT (URL)]``, every other tag is dropped (an
    unterminated trailing tag included), escaped ``\\n`` sequences are
    unescaped and whitespace is collapsed. Regex based, never raises.
    """
    if not text:
        return ""
    cleaned = str(text).replace(_ESCAPED_NEWLINE, "\n")
    cleaned = _LINK_PATTERN.sub(r"[Link: \2 (\1)]", cleaned)
    cleaned = _TAG_PATTERN.sub("", cleaned)
    cleaned = _WHITESPACE_PATTERN.sub(" ", cleaned)
    return cleaned.strip()


def correct_typos(text: str, corrections: Optional[Dict[str, str]] = None) -> str:
    if corrections is None:
        pattern, table = _TYPO_PATTERN, TYPO_CORRECTIONS
    else:
        pattern, table = _build_typo_pattern(corrections), corrections
    if pattern is None:
        return text
    return pattern.sub(lambda match: table[match.group(0)], text)


def _dedupe_tokens(text: str) -> List[str]:
    seen = set()
    tokens: List[str] = []
    for token in _DELIMITER_PATTERN.split(text):
        if not token or token in seen:
            continue
        seen.add(token)
        tokens.append(token)
    return tokens


def normalize_category_name(name: Optional[str]) -> str:
    """Canonical comparison form of a category or subcategory name.

    ``"Office Firniture / Chairs, chairs"`` -> ``"office furniture chairs"``.
    Token order is first-occurrence order. Returns ``""`` for empty input,
    which callers must never use as a match key.
    """
    normalized = correct_typos(clean_html(name).lower())

    # Edge stripping can expose a duplicate token (".x x." -> "x x"), so the
    # split/dedupe/strip pass runs until stable to keep this idempotent.
    while True:
        collapsed = " ".join(_dedupe_tokens(normalized))
        collapsed = _EDGE_PATTERN.sub("", collapsed).strip()
        if collapsed == normalized:
            return collapsed
        normalized = collapsed


def simple_slugify(text: Optional[str]) -> str:
    """Lower-case ASCII slug: alphanumerics and single inner hyphens."""
    if not text:
        return ""
    return slugify(str(text), lowercase=True, replacements=_SLUG_REPLACEMENTS)


def slug_for_name(name: Optional[str]) -> str:
    """Slug derived from the normalized name.

    Every slug the catalog invents (fallbacks, placeholders, get-or-create)
    goes through here so matching and routing agree on one key.
    """
    return simple_slugify(normalize_category_name(name))


def names_match(first: Optional[str], second: Optional[str]) -> bool:
    """True when two names denote the same concept.

    Equal normalized names, or one non-empty slug contained in the other.
    """
    left = normalize_category_name(first)
    right = normalize_category_name(second)
    if not left or not right:
        return False
    if left == right:
        return True
    left_slug = simple_slugify(left)
    right_slug = simple_slugify(right)
    if not left_slug or not right_slug:
        return False
    return left_slug in right_slug or right_slug in left_slug


__all__ = [
    "TYPO_CORRECTIONS",
    "clean_html",
    "correct_typos",
    "names_match",
    "normalize_category_name",
    "simple_slugify",
    "slug_for_name",
]
