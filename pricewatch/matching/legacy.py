"""Single-pass product matcher for the manual single-product check.

Works on raw (lowercased) names and only counts an attribute when it found
evidence for it, then renormalizes by the weights actually used. Each result
carries human-readable reasons; the strict auto-approval predicate reads them.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from pricewatch.config import settings
from pricewatch.matching.models import CandidateProduct, InternalProduct
from pricewatch.matching.similarity import edit_similarity

REASON_STRONG_NAME = "Strong name match"
REASON_EXACT_BRAND = "Exact brand match"
REASON_SIMILAR_BRAND = "Similar brand"
REASON_MATCHING_SIZE = "Matching size/volume"
REASON_CATEGORY = "Category match"

_NUMBER = re.compile(r"\d+\.?\d*")


@dataclass
class LegacyMatch:
    """Result of the single-pass matcher."""

    candidate: CandidateProduct
    similarity_score: float
    match_reasons: List[str] = field(default_factory=list)

    def has_reason(self, reason: str) -> bool:
        return any(r.startswith(reason) for r in self.match_reasons)


def _raw_similarity(a: str, b: str) -> float:
    a = a.lower()
    b = b.lower()
    if not a and not b:
        return 1.0
    return edit_similarity(a, b)


def _raw_token_similarity(a: str, b: str) -> float:
    tokens_a = set(a.lower().split())
    tokens_b = set(b.lower().split())
    union = tokens_a | tokens_b
    return len(tokens_a & tokens_b) / len(union) if union else 0.0


def _extract_numbers(text: str) -> List[float]:
    return [float(m) for m in _NUMBER.findall(text)]


def numeric_similarity(internal: InternalProduct, candidate: CandidateProduct) -> float:
    """Compare any numbers in the size-bearing text of both products."""
    internal_text = " ".join(
        part for part in (internal.name, internal.size, internal.volume, internal.weight) if part
    )
    candidate_text = " ".join(part for part in (candidate.name, candidate.size) if part)

    internal_numbers = _extract_numbers(internal_text)
    candidate_numbers = _extract_numbers(candidate_text)

    if not internal_numbers or not candidate_numbers:
        return 0.0

    for ours in internal_numbers:
        for theirs in candidate_numbers:
            largest = max(ours, theirs)
            if largest == 0:
                return 0.9
            diff = abs(ours - theirs) / largest
            if diff < 0.1:
                return 0.9
            if diff < 0.2:
                return 0.7

    return 0.0


def legacy_brand_similarity(brand1: Optional[str], brand2: Optional[str]) -> float:
    """Brand similarity without alias table; missing brand gives no evidence."""
    if not brand1 or not brand2:
        return 0.0

    b1 = brand1.lower().strip()
    b2 = brand2.lower().strip()

    if b1 == b2:
        return 1.0
    if b1 in b2 or b2 in b1:
        return 0.8

    return edit_similarity(b1, b2)


def match_product(
    internal: InternalProduct,
    candidates: List[CandidateProduct],
    min_score: Optional[float] = None,
) -> List[LegacyMatch]:
    """
    Match one catalog product against candidate products.

    Weights: name 0.4, brand 0.25, numeric size 0.25, category 0.1. Brand,
    size and category only count when they produced evidence.

    Args:
        internal: Catalog product
        candidates: Candidate products
        min_score: Results at or below this are dropped
            (defaults to settings.legacy_min_score)

    Returns:
        Matches sorted by similarity score (highest first, stable)
    """
    min_score = settings.legacy_min_score if min_score is None else min_score
    results: List[LegacyMatch] = []

    for candidate in candidates:
        reasons: List[str] = []
        total_score = 0.0
        weights = 0.0

        name_score = max(
            _raw_similarity(internal.name, candidate.name),
            _raw_token_similarity(internal.name, candidate.name),
        )
        total_score += name_score * 0.4
        weights += 0.4
        if name_score > 0.7:
            reasons.append(f"{REASON_STRONG_NAME} ({name_score * 100:.0f}%)")

        brand_sim = legacy_brand_similarity(internal.brand, candidate.brand)
        if brand_sim > 0:
            total_score += brand_sim * 0.25
            weights += 0.25
            if brand_sim == 1.0:
                reasons.append(REASON_EXACT_BRAND)
            elif brand_sim > 0.7:
                reasons.append(REASON_SIMILAR_BRAND)

        size_sim = numeric_similarity(internal, candidate)
        if size_sim > 0:
            total_score += size_sim * 0.25
            weights += 0.25
            if size_sim > 0.8:
                reasons.append(REASON_MATCHING_SIZE)

        if internal.category and candidate.name:
            category_sim = _raw_token_similarity(internal.category, candidate.name)
            if category_sim > 0.3:
                total_score += category_sim * 0.1
                weights += 0.1
                reasons.append(REASON_CATEGORY)

        final_score = total_score / weights if weights > 0 else 0.0

        if final_score > min_score:
            results.append(
                LegacyMatch(
                    candidate=candidate,
                    similarity_score=round(final_score, 2),
                    match_reasons=reasons,
                )
            )

    results.sort(key=lambda m: m.similarity_score, reverse=True)
    return results
