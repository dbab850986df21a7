"""Match product names to stored image files.

Bulk CSV imports rarely carry exact asset filenames: upstream tooling appends
timestamps, version and copy markers, and supplier model codes. The matcher
strips those suffixes and scores the remaining base name against the product
name, so a plausible image can be attached without a foreign key.

A miss is not an error. Callers log it and import the product without the image.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, Iterable, List, Optional, Sequence, Union
from urllib.parse import unquote, urlsplit

from catalog.models import ImageMatchCandidate
from catalog.normalizer import simple_slugify, slug_for_name

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_PREFIX = os.getenv("PRODUCT_IMAGE_PREFIX", "products")

_EXTENSION_PATTERN = re.compile(r"\.[a-z0-9]{1,5}$", re.IGNORECASE)

# Applied to the slugified name, in order, until nothing changes.
_SUFFIX_PATTERNS: Sequence[re.Pattern] = (
    re.compile(r"-?\d{6,}$"),  # upload timestamps
    re.compile(r"-v\d+$"),
    re.compile(r"-copy$"),
    re.compile(r"-model-rk-\d+-\d+$"),
    re.compile(r"-\d+-\d+$"),
    re.compile(r"-rk-\d+$"),
    re.compile(r"-rk-enterprises?$"),
)

HintInput = Union[None, str, Iterable[str]]


def base_filename(filename: Optional[str]) -> str:
    """Comparable base of a stored filename or image URL.

    ``"products/Executive-Chair-v2-1699999999999.jpg"`` -> ``"executive-chair"``.
    """
    if not filename:
        return ""
    path = urlsplit(str(filename)).path if "://" in str(filename) else str(filename)
    path = path.split("?", 1)[0].split("#", 1)[0]
    name = unquote(path.rstrip("/").rsplit("/", 1)[-1])
    name = _EXTENSION_PATTERN.sub("", name)

    base = simple_slugify(name)
    previous = None
    while base != previous:
        previous = base
        for pattern in _SUFFIX_PATTERNS:
            base = pattern.sub("", base)
    return base.strip("-")


def build_candidates(stored_files: Iterable[str]) -> List[ImageMatchCandidate]:
    return [
        ImageMatchCandidate(stored_filename=name, normalized_base_name=base_filename(name))
        for name in stored_files
        if name
    ]


def _hint_bases(hint: HintInput) -> List[str]:
    if hint is None:
        return []
    hints = [hint] if isinstance(hint, str) else list(hint)
    bases = [base_filename(item) for item in hints if item]
    return [base for base in bases if base]


def score_image_candidate(target: str, candidate_base: str, hint_bases: Sequence[str] = ()) -> int:
    """Similarity of a stored file's base name to a product slug.

    Containment either way scores the shorter string's length, an exact
    match adds twice the target length, and each hint contained in the base
    adds the hint's length.
    """
    if not candidate_base:
        return 0

    score = 0
    if target:
        if target in candidate_base:
            score += len(target)
        elif candidate_base in target:
            score += len(candidate_base)
        if candidate_base == target:
            score += 2 * len(target)

    for hint in hint_bases:
        if hint and hint in candidate_base:
            score += len(hint)
    return score


def select_best_candidate(
    product_name: Optional[str],
    hint: HintInput,
    candidates: Sequence[ImageMatchCandidate],
) -> Optional[ImageMatchCandidate]:
    """Highest-scoring candidate; the first one wins a tie. None below 1."""
    target = slug_for_name(product_name)
    hints = _hint_bases(hint)
    if not target and not hints:
        return None

    best: Optional[ImageMatchCandidate] = None
    best_score = 0
    for candidate in candidates:
        score = score_image_candidate(target, candidate.normalized_base_name, hints)
        if score > best_score:
            best, best_score = candidate, score
    return best


def find_best_image_match(
    product_name: Optional[str],
    hint: HintInput,
    stored_files: Sequence[str],
    *,
    url_for: Optional[Callable[[str], str]] = None,
) -> Optional[str]:
    """URL of the stored file that best matches ``product_name``.

    ``url_for`` turns the stored path into a public URL; without it the
    stored path itself is returned. Ties keep listing order, so pass a
    sorted listing when the storage provider's order is not stable.
    """
    best = select_best_candidate(product_name, hint, build_candidates(stored_files))
    if best is None:
        return None
    return url_for(best.stored_filename) if url_for else best.stored_filename


class ImageMatcher:
    """Resolves product images against one storage listing.

    The listing is fetched once and sorted, so repeated matches during an
    import cost no extra storage calls and do not depend on listing order.
    """

    def __init__(self, storage, prefix: str = PRODUCT_IMAGE_PREFIX):
        self.storage = storage
        self.prefix = prefix
        self._candidates: Optional[List[ImageMatchCandidate]] = None

    async def load(self) -> List[ImageMatchCandidate]:
        files = await self.storage.list_files(self.prefix)
        self._candidates = build_candidates(sorted(files))
        logger.info(
            "Loaded stored images for matching",
            extra={"prefix": self.prefix, "file_count": len(self._candidates)},
        )
        return self._candidates

    async def match(self, product_name: Optional[str], hint: HintInput = None) -> Optional[str]:
        if self._candidates is None:
            await self.load()
        best = select_best_candidate(product_name, hint, self._candidates or [])
        if best is None:
            logger.warning(
                "No stored image matched product",
                extra={"product_name": product_name, "hint": hint if isinstance(hint, str) else None},
            )
            return None
        return self.storage.public_url(best.stored_filename)


__all__ = [
    "ImageMatcher",
    "PRODUCT_IMAGE_PREFIX",
    "base_filename",
    "build_candidates",
    "find_best_image_match",
    "score_image_candidate",
    "select_best_candidate",
]
