"""Attribute scorers: brand, size and category similarity.

A missing attribute on either side scores a neutral value instead of zero,
so absent data weighs less than an actual mismatch.
"""

from typing import Optional

from pricewatch.config import settings
from pricewatch.matching.similarity import edit_similarity, token_similarity
from pricewatch.normalize.size import extract_size
from pricewatch.normalize.text import normalize_brand, normalize_text

CONTAINMENT_SCORE = 0.8
BRAND_EDIT_MIN = 0.7


def brand_score(brand1: Optional[str], brand2: Optional[str]) -> float:
    """Score two brands after alias normalization."""
    b1 = normalize_brand(brand1)
    b2 = normalize_brand(brand2)

    if not b1 or not b2:
        return settings.match_neutral_score
    if b1 == b2:
        return 1.0
    if b1 in b2 or b2 in b1:
        return CONTAINMENT_SCORE

    similarity = edit_similarity(b1, b2)
    return similarity if similarity > BRAND_EDIT_MIN else 0.0


def size_score(
    size1: Optional[str],
    size2: Optional[str],
    tolerance: Optional[float] = None,
) -> float:
    """
    Score two free-text sizes.

    Args:
        size1: Size text (or full name) of the first product
        size2: Size text (or full name) of the second product
        tolerance: Relative difference still treated as identical
            (defaults to settings.size_tolerance)

    Returns:
        1.0 within tolerance, else smaller/larger; neutral if either is unparseable
    """
    tolerance = settings.size_tolerance if tolerance is None else tolerance

    s1 = extract_size(size1)
    s2 = extract_size(size2)

    if not s1 or not s2:
        return settings.match_neutral_score
    if s1 == s2:
        return 1.0

    mean = (s1 + s2) / 2
    if abs(s1 - s2) <= mean * tolerance:
        return 1.0

    return max(0.0, min(s1, s2) / max(s1, s2))


def category_score(cat1: Optional[str], cat2: Optional[str]) -> float:
    """Score two category labels."""
    if not cat1 or not cat2:
        return settings.match_neutral_score

    c1 = normalize_text(cat1)
    c2 = normalize_text(cat2)

    if c1 == c2:
        return 1.0
    if c1 in c2 or c2 in c1:
        return CONTAINMENT_SCORE

    return token_similarity(c1, c2)
